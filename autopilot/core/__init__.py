"""Core provider abstractions for Autopilot."""
