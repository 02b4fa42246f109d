"""Exception types raised by the orchestration core."""

from __future__ import annotations


class AutopilotError(Exception):
    """Base class for errors raised by autopilot itself."""


class AlreadyRunningError(AutopilotError):
    """A workflow or stream was started while one is already in flight."""


class ProviderNotConfiguredError(AutopilotError):
    """An inference provider was asked to generate without credentials or endpoint."""
