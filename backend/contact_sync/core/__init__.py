"""Core module for configuration, errors, logging and retry helpers."""

from contact_sync.core.config import Settings, get_settings
from contact_sync.core.llm import CompletionClient
from contact_sync.core.logging_config import configure_logging

__all__ = [
    "CompletionClient",
    "Settings",
    "configure_logging",
    "get_settings",
]
