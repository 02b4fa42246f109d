"""Success/failure markers at the tool-surface boundary.

Tools report results as text. A leading check mark means the call worked,
a cross (or an ``Error``/``Failed`` token) means it did not. The helpers here
turn that text into a :class:`ToolOutcome` once, so nothing downstream has to
scan for markers again.
"""

from __future__ import annotations

from enum import Enum

SUCCESS_MARKER = "✅"
FAILURE_MARKER = "❌"

_FAILURE_TOKENS = (FAILURE_MARKER, "Error", "Failed")


class ToolOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    UNKNOWN = "unknown"


def detect_outcome(text: str | None) -> ToolOutcome:
    if not text or not text.strip():
        return ToolOutcome.UNKNOWN
    if SUCCESS_MARKER in text:
        return ToolOutcome.SUCCESS
    if any(token in text for token in _FAILURE_TOKENS):
        return ToolOutcome.FAILURE
    return ToolOutcome.UNKNOWN


def resolve(outcome: ToolOutcome, fail_open: bool = True) -> bool:
    """Collapse an outcome to a boolean; UNKNOWN follows the fail-open policy."""
    if outcome is ToolOutcome.UNKNOWN:
        return fail_open
    return outcome is ToolOutcome.SUCCESS


def is_success(text: str | None, fail_open: bool = True) -> bool:
    return resolve(detect_outcome(text), fail_open)
