"""Utility helpers for PlayFeed."""

from playfeed.utils.logging_setup import get_logger, setup_logging, setup_logging_from_config

__all__ = [
    "get_logger",
    "setup_logging",
    "setup_logging_from_config",
]
