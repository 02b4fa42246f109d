"""The plain-text action envelope a model uses to request an operation.

    [TOOL:create_gameobject]
    name: Player
    [/TOOL]

One ``key: value`` per line, split on the first colon. Lines without a key
are ignored. Text outside the markers is free-form reasoning.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

_ENVELOPE_RE = re.compile(r"\[TOOL:(\w+)\](.*?)\[/TOOL\]", re.DOTALL)


@dataclass
class ActionEnvelope:
    operation: str
    params: dict[str, str] = field(default_factory=dict)


def _parse_params(body: str) -> dict[str, str]:
    params: dict[str, str] = {}
    for line in body.splitlines():
        key, sep, value = line.partition(":")
        key = key.strip()
        if sep and key:
            params[key] = value.strip()
    return params


def parse_action(text: str | None) -> ActionEnvelope | None:
    """First envelope in ``text``, or None for reasoning-only text."""
    match = _ENVELOPE_RE.search(text or "")
    if match is None:
        return None
    return ActionEnvelope(match.group(1), _parse_params(match.group(2)))


def parse_actions(text: str | None) -> list[ActionEnvelope]:
    return [
        ActionEnvelope(m.group(1), _parse_params(m.group(2)))
        for m in _ENVELOPE_RE.finditer(text or "")
    ]


def format_action(operation: str, params: dict[str, str] | None = None) -> str:
    lines = [f"[TOOL:{operation}]"]
    lines += [f"{k}: {v}" for k, v in (params or {}).items()]
    lines.append("[/TOOL]")
    return "\n".join(lines)
