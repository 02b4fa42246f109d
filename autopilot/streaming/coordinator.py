"""Turn a stream of response fragments into paced UI callbacks."""

from __future__ import annotations

import asyncio
import contextlib
import json
import time
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable

from autopilot.agent.envelope import parse_actions
from autopilot.config import StreamConfig
from autopilot.core.llm.types import FragmentType, StreamFragment
from autopilot.errors import AlreadyRunningError
from autopilot.streaming.buffer import StreamBuffer
from autopilot.utils.logging import get_logger

log = get_logger(__name__)

CANCELLED_MESSAGE = "Stream cancelled by user"

TextFn = Callable[[str], None]


@dataclass
class DetectedToolCall:
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    id: str | None = None
    source: str = "native"  # "native" tool call or "text" envelope


@dataclass
class _PendingCall:
    name: str
    id: str | None
    raw_arguments: list[str] = field(default_factory=list)

    def finish(self) -> DetectedToolCall:
        raw = "".join(self.raw_arguments)
        try:
            arguments = json.loads(raw) if raw else {}
        except json.JSONDecodeError:
            arguments = {"_raw": raw}
        if not isinstance(arguments, dict):
            arguments = {"_raw": raw}
        return DetectedToolCall(name=self.name, arguments=arguments, id=self.id)


class StreamCoordinator:
    """Consume fragments, batch text for the UI, report completion or error.

    Text reaches ``on_text`` when the buffer says so or when the update timer
    fires with text pending. A tool-call start flushes pending text first.
    Cancelling (through :meth:`cancel` or the ``cancel`` event passed to
    :meth:`run`) aborts the underlying stream and ends with ``on_error``.
    """

    def __init__(
        self,
        on_text: TextFn,
        on_complete: TextFn | None = None,
        on_error: TextFn | None = None,
        on_tool: Callable[[DetectedToolCall], None] | None = None,
        on_reasoning: TextFn | None = None,
        config: StreamConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or StreamConfig()
        self._on_text = on_text
        self._on_complete = on_complete or (lambda _text: None)
        self._on_error = on_error or (lambda _msg: None)
        self._on_tool = on_tool
        self._on_reasoning = on_reasoning
        self._clock = clock
        self._buffer = StreamBuffer(
            max_buffer_size=self._config.max_buffer_size,
            min_flush_interval=self._config.update_interval,
            clock=clock,
        )
        self._full: list[str] = []
        self._pending: dict[int, _PendingCall] = {}
        self._tool_calls: list[DetectedToolCall] = []
        self._cancel = asyncio.Event()
        self._streaming = False
        self._started = 0.0
        self._last_update = 0.0
        self._updates = 0

    @property
    def is_streaming(self) -> bool:
        return self._streaming

    @property
    def text(self) -> str:
        return "".join(self._full)

    @property
    def tool_calls(self) -> list[DetectedToolCall]:
        return list(self._tool_calls)

    def cancel(self) -> None:
        if self._streaming and not self._cancel.is_set():
            log.info("stream_cancel_requested")
            self._cancel.set()

    async def run(
        self,
        fragments: AsyncIterator[StreamFragment],
        cancel: asyncio.Event | None = None,
    ) -> str | None:
        """Drive the stream to its end. Returns the full text, or None on error or cancel."""
        if self._streaming:
            raise AlreadyRunningError("already streaming")
        self._reset()
        self._streaming = True
        self._started = self._last_update = self._clock()
        log.info("stream_started")

        consumer = asyncio.create_task(self._consume(fragments))
        ticker = asyncio.create_task(self._tick())
        waiters = [asyncio.create_task(self._cancel.wait())]
        if cancel is not None:
            waiters.append(asyncio.create_task(cancel.wait()))

        try:
            done, _ = await asyncio.wait(
                [consumer, *waiters], return_when=asyncio.FIRST_COMPLETED,
            )
            if consumer not in done:
                consumer.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await consumer
                self._buffer.clear()
                log.info("stream_cancelled", chars=len(self.text))
                self._on_error(CANCELLED_MESSAGE)
                return None

            try:
                error = consumer.result()
            except Exception as e:
                log.error("stream_error", error=str(e))
                self._on_error(f"Stream error: {e}")
                return None
            if error is not None:
                log.error("stream_error", error=error)
                self._on_error(error)
                return None

            self._flush_all()
            text = self.text
            self._detect_text_envelopes(text)
            log.info(
                "stream_completed",
                chars=len(text),
                updates=self._updates,
                elapsed=round(self._clock() - self._started, 3),
            )
            self._on_complete(text)
            return text
        finally:
            for task in (consumer, ticker, *waiters):
                task.cancel()
            await asyncio.gather(consumer, ticker, *waiters, return_exceptions=True)
            self._streaming = False

    def _reset(self) -> None:
        self._buffer.clear()
        self._buffer.reset_stats()
        self._full = []
        self._pending = {}
        self._tool_calls = []
        self._cancel = asyncio.Event()
        self._updates = 0

    async def _consume(self, fragments: AsyncIterator[StreamFragment]) -> str | None:
        """Returns an error message if the stream reported one."""
        async for fragment in fragments:
            kind = fragment.type
            if kind is FragmentType.TEXT_DELTA:
                if not fragment.delta:
                    continue
                self._buffer.append(fragment.delta)
                self._full.append(fragment.delta)
                if self._buffer.should_flush():
                    self._flush_all()
            elif kind is FragmentType.TOOL_CALL_START:
                self._flush_all()
                self._pending[fragment.index] = _PendingCall(
                    name=fragment.tool_name or "", id=fragment.tool_call_id,
                )
                log.debug("stream_tool_started", tool=fragment.tool_name)
            elif kind is FragmentType.TOOL_CALL_DELTA:
                pending = self._pending.get(fragment.index)
                if pending is not None:
                    pending.raw_arguments.append(fragment.delta)
            elif kind is FragmentType.TOOL_CALL_END:
                pending = self._pending.pop(fragment.index, None)
                if pending is not None:
                    self._emit_tool(pending.finish())
            elif kind is FragmentType.REASONING_DELTA:
                if self._on_reasoning is not None and fragment.delta:
                    self._on_reasoning(fragment.delta)
            elif kind is FragmentType.ERROR:
                return fragment.delta or "Stream error"
            elif kind is FragmentType.DONE:
                log.debug("stream_done_signal")
        return None

    async def _tick(self) -> None:
        interval = self._config.update_interval
        while True:
            await asyncio.sleep(interval)
            if self._buffer.has_content and self._clock() - self._last_update >= interval:
                self._emit_text(self._buffer.flush_partial(self._config.chars_per_update))

    def _flush_all(self) -> None:
        self._emit_text(self._buffer.flush_all())

    def _emit_text(self, text: str) -> None:
        if not text:
            return
        self._last_update = self._clock()
        self._updates += 1
        self._on_text(text)

    def _emit_tool(self, call: DetectedToolCall) -> None:
        self._tool_calls.append(call)
        log.debug("stream_tool_detected", tool=call.name, source=call.source)
        if self._config.tool_detection and self._on_tool is not None:
            self._on_tool(call)

    def _detect_text_envelopes(self, text: str) -> None:
        if not self._config.tool_detection:
            return
        for envelope in parse_actions(text):
            self._emit_tool(
                DetectedToolCall(name=envelope.operation, arguments=dict(envelope.params), source="text")
            )

    def stats(self) -> dict[str, Any]:
        return {
            "streaming": self._streaming,
            "elapsed": round(self._clock() - self._started, 3) if self._started else 0.0,
            "updates": self._updates,
            "tool_calls": len(self._tool_calls),
            **self._buffer.stats(),
        }
