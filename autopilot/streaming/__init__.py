"""Paced delivery of streamed model output."""

from autopilot.streaming.buffer import StreamBuffer
from autopilot.streaming.coordinator import CANCELLED_MESSAGE, DetectedToolCall, StreamCoordinator

__all__ = ["CANCELLED_MESSAGE", "DetectedToolCall", "StreamBuffer", "StreamCoordinator"]
