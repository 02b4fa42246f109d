"""Utility modules for Autopilot."""

from autopilot.utils.logging import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]
