"""Autopilot - supervised multi-step agent orchestration core."""
__version__ = "0.1.0"
