"""Shared fixtures for the speedtest backend tests."""

import pytest
import yaml

from speedtest_backend import ApplicationContext
from speedtest_backend.config import load_config
from speedtest_backend.db import open_engine
from speedtest_backend.telemetry.store import TelemetryStore


@pytest.fixture
def config_file(tmp_path):
    """Write a minimal config.yaml into a temporary directory."""
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "paths": {"data_dir": "data", "logs_dir": "logs"},
                "frontend": {"chart_list": 10},
                "enrichment": {"lookup_url": "http://lookup.invalid/api", "timeout_seconds": 1},
                "rate_limit": {"max_requests": 5, "window_seconds": 10},
            }
        )
    )
    return path


@pytest.fixture
def config(config_file):
    return load_config(str(config_file))


@pytest.fixture
def store(tmp_path):
    engine = open_engine(tmp_path / "telemetry.db")
    yield TelemetryStore(engine)
    engine.dispose()


@pytest.fixture
def context(config):
    context = ApplicationContext(config, setup_logging=False)
    yield context
    if context.store is not None:
        context.store.engine.dispose()


@pytest.fixture
def client(context):
    context.web_app.config["TESTING"] = True
    return context.web_app.test_client()
