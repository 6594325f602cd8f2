"""Custom filters for uvicorn access logging."""

import logging


class ExcludeMetricsFilter(logging.Filter):
    """
    Logging filter to exclude monitoring endpoint requests from access logs.

    Health probes and Prometheus scrapes would otherwise dominate the
    access log.

    Note: uvicorn loads this class from its logging config before the app
    starts, so settings are imported lazily at filter time.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()

        try:
            from webhook_relay.settings import app_settings

            excluded_paths = app_settings.LOG_EXCLUDED_PATHS
        except Exception:
            # Fallback to hardcoded paths if settings can't be loaded
            excluded_paths = ["/metrics", "/health"]

        return not any(f"{path} " in message for path in excluded_paths)
