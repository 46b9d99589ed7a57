"""Configuration loading helpers for the speedtest backend."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import yaml


DEFAULT_LOOKUP_URL = "https://ip.1888866.xyz/api/ip-lookup"


@dataclass
class PathsConfig:
    data_dir: Path
    logs_dir: Path


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8989
    base_path: str = ""
    reverse_proxy_headers: bool = False


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file_name: str = "speedtest.log"
    max_size_mb: int = 5
    backup_count: int = 5


@dataclass
class DatabaseConfig:
    model: str = "sqlite"
    file_name: str = "speedtest.db"

    @property
    def enabled(self) -> bool:
        return self.model != "none"


@dataclass
class FrontendConfig:
    chart_list: int = 100


@dataclass
class EnrichmentConfig:
    enabled: bool = True
    lookup_url: str = DEFAULT_LOOKUP_URL
    timeout_seconds: float = 5.0


@dataclass
class RateLimitConfig:
    max_requests: int = 5
    window_seconds: float = 10.0


@dataclass
class AppConfig:
    root_dir: Path
    paths: PathsConfig
    server: ServerConfig
    logging: LoggingConfig
    database: DatabaseConfig
    frontend: FrontendConfig
    enrichment: EnrichmentConfig
    rate_limit: RateLimitConfig

    @property
    def database_path(self) -> Path:
        return self.paths.data_dir / self.database.file_name


def _as_path(base: Path, maybe_path: Optional[str]) -> Path:
    if not maybe_path:
        raise ValueError("Path configuration entries cannot be empty")
    path = (base / maybe_path).resolve()
    path.mkdir(parents=True, exist_ok=True)
    return path


def _normalize_base_path(raw: str) -> str:
    cleaned = (raw or "").strip().rstrip("/")
    if cleaned and not cleaned.startswith("/"):
        cleaned = f"/{cleaned}"
    return cleaned


def load_config(path: Optional[str] = None) -> AppConfig:
    """Load application configuration from YAML file."""

    root_dir = Path(path).resolve().parent if path else Path.cwd()
    source_path = Path(path) if path else root_dir / "config.yaml"
    if not source_path.exists():
        raise FileNotFoundError(f"Missing configuration file at {source_path}")

    with source_path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    paths_data = data.get("paths", {})
    paths = PathsConfig(
        data_dir=_as_path(root_dir, paths_data.get("data_dir", "data")),
        logs_dir=_as_path(root_dir, paths_data.get("logs_dir", "logs")),
    )

    server = ServerConfig(**data.get("server", {}))
    server.base_path = _normalize_base_path(server.base_path)

    config = AppConfig(
        root_dir=root_dir,
        paths=paths,
        server=server,
        logging=LoggingConfig(**data.get("logging", {})),
        database=DatabaseConfig(**data.get("database", {})),
        frontend=FrontendConfig(**data.get("frontend", {})),
        enrichment=EnrichmentConfig(**data.get("enrichment", {})),
        rate_limit=RateLimitConfig(**data.get("rate_limit", {})),
    )

    if config.database.model not in ("sqlite", "none"):
        raise ValueError(f"Unsupported database model: {config.database.model}")

    return config
