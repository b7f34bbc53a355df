"""Logging setup for workers and scripts."""

import logging

from contact_sync.core.config import Settings, get_settings


def configure_logging(settings: Settings | None = None) -> None:
    """Set up root logging based on LOG_FORMAT / LOG_LEVEL.

    json: Structured JSON via python-json-logger (for production log shipping).
    text: Human-readable format (for local development).
    """
    settings = settings or get_settings()
    log_format = settings.LOG_FORMAT.lower()
    log_level = settings.LOG_LEVEL.upper()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level, logging.INFO))

    # Remove existing handlers to avoid duplicate output
    root_logger.handlers.clear()

    handler = logging.StreamHandler()

    if log_format == "json":
        from pythonjsonlogger.json import JsonFormatter

        formatter = JsonFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={
                "asctime": "timestamp",
                "levelname": "level",
                "name": "service",
            },
            static_fields={"app": "contact-sync"},
        )
        handler.setFormatter(formatter)
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )

    root_logger.addHandler(handler)

    # httpx logs full request URLs at INFO, which would include the Gemini key
    logging.getLogger("httpx").setLevel(logging.WARNING)
