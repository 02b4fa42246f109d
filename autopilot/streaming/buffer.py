"""Accumulates streamed text and hands it out in UI-sized pieces."""

from __future__ import annotations

import time
from typing import Callable


class StreamBuffer:
    """Text waiting to be shown.

    :meth:`should_flush` is true once the buffer holds ``max_buffer_size``
    characters or ``min_flush_interval`` seconds have passed since the last
    flush.
    """

    def __init__(
        self,
        max_buffer_size: int = 100,
        min_flush_interval: float = 0.05,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_buffer_size = max_buffer_size
        self.min_flush_interval = min_flush_interval
        self._clock = clock
        self._parts: list[str] = []
        self._size = 0
        self._last_flush = clock()
        self.total_chunks = 0
        self.total_chars = 0

    @property
    def size(self) -> int:
        return self._size

    @property
    def has_content(self) -> bool:
        return self._size > 0

    def append(self, text: str) -> None:
        if not text:
            return
        self._parts.append(text)
        self._size += len(text)
        self.total_chunks += 1
        self.total_chars += len(text)

    def should_flush(self) -> bool:
        if self._size >= self.max_buffer_size:
            return True
        return self._clock() - self._last_flush >= self.min_flush_interval

    def peek(self) -> str:
        return "".join(self._parts)

    def flush_partial(self, max_chars: int = 50) -> str:
        """Remove and return at most ``max_chars`` characters from the front."""
        if not self._size:
            return ""
        text = self.peek()
        head, rest = text[:max_chars], text[max_chars:]
        self._parts = [rest] if rest else []
        self._size = len(rest)
        self._last_flush = self._clock()
        return head

    def flush_all(self) -> str:
        if not self._size:
            return ""
        text = self.peek()
        self.clear()
        self._last_flush = self._clock()
        return text

    def clear(self) -> None:
        self._parts = []
        self._size = 0

    def reset_stats(self) -> None:
        self.total_chunks = 0
        self.total_chars = 0

    def stats(self) -> dict[str, int]:
        return {"chunks": self.total_chunks, "chars": self.total_chars, "buffered": self._size}
