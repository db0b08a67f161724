"""
Core utilities and configuration for Toolgate.

This package provides shared functionality: settings loading and logging
configuration.
"""

from toolgate.core.logging_config import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]
