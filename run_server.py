"""
Entry point for running the relay with uvicorn.

    python run_server.py
"""

import copy

import uvicorn
from uvicorn.config import LOGGING_CONFIG

from webhook_relay.settings import app_settings


def build_log_config() -> dict:
    """uvicorn's default logging config with health/metrics access lines filtered."""
    log_config = copy.deepcopy(LOGGING_CONFIG)
    log_config.setdefault("filters", {})["exclude_metrics"] = {
        "()": "webhook_relay.uvicorn_filters.ExcludeMetricsFilter"
    }
    log_config["handlers"]["access"]["filters"] = ["exclude_metrics"]
    return log_config


if __name__ == "__main__":
    uvicorn.run(
        "webhook_relay:application",
        factory=True,
        host=app_settings.HOST,
        port=app_settings.PORT,
        log_config=build_log_config(),
    )
