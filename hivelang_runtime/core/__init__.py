"""
Core utilities and configuration for the HiveLang runtime.

This package provides settings (pydantic-settings), logging configuration and
optional Logfire monitoring shared by the runtime and the server.
"""

from hivelang_runtime.core.logging_config import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]
