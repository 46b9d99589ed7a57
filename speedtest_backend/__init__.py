"""Application bootstrap helpers."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .config import AppConfig, load_config
from .db import open_engine
from .logging_setup import configure_logging
from .network.isp_lookup import IspLookupClient
from .rate_limit import FixedWindowRateLimiter
from .telemetry.chart import ChartAggregator
from .telemetry.store import TelemetryStore
from .web.app import create_web_app

LOGGER = logging.getLogger(__name__)


class ApplicationContext:
    """Holds shared singletons for the service."""

    def __init__(self, config: AppConfig, setup_logging: bool = True):
        self.config = config
        if setup_logging:
            configure_logging(config)

        self.store: Optional[TelemetryStore] = None
        self.aggregator: Optional[ChartAggregator] = None
        if config.database.enabled:
            self.store = TelemetryStore(open_engine(config.database_path))
            self.aggregator = ChartAggregator(self.store)
        else:
            LOGGER.warning("Telemetry storage is disabled")

        self.lookup_client = IspLookupClient(config.enrichment)
        self.rate_limiter = FixedWindowRateLimiter(
            max_requests=config.rate_limit.max_requests,
            window=config.rate_limit.window_seconds,
        )
        self.web_app = create_web_app(
            config=config,
            store=self.store,
            aggregator=self.aggregator,
            lookup_client=self.lookup_client,
            rate_limiter=self.rate_limiter,
        )


def bootstrap(config_path: Optional[str] = None, setup_logging: bool = True) -> ApplicationContext:
    """Load configuration and wire dependencies."""

    config_file = Path(config_path).resolve() if config_path else None
    config = load_config(str(config_file)) if config_file else load_config()
    return ApplicationContext(config, setup_logging=setup_logging)
