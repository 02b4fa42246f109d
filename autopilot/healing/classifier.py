"""Map raw failure text to an error category, a confidence and candidate fixes."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping


class ErrorCategory(str, Enum):
    COMPILATION = "CompilationError"
    RUNTIME = "RuntimeError"
    MISSING_REFERENCE = "MissingReference"
    TYPE_MISMATCH = "TypeMismatch"
    NULL_REFERENCE = "NullReference"
    COMPONENT_NOT_FOUND = "ComponentNotFound"
    GAMEOBJECT_NOT_FOUND = "GameObjectNotFound"
    SCRIPT_NOT_FOUND = "ScriptNotFound"
    INVALID_PARAMETER = "InvalidParameter"
    PERMISSION_DENIED = "PermissionDenied"
    RESOURCE_NOT_FOUND = "ResourceNotFound"
    SYNTAX = "SyntaxError"
    LOGIC = "LogicError"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class ErrorAnalysis:
    category: ErrorCategory
    original_error: str
    root_cause: str
    possible_fixes: tuple[str, ...]
    confidence: int  # 1-10
    context: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def render(self) -> str:
        lines = [
            "ERROR ANALYSIS",
            f"Category: {self.category.value}",
            f"Confidence: {self.confidence}/10 ({confidence_description(self.confidence)})",
            "",
            f"Root Cause: {self.root_cause}",
        ]
        if self.context:
            lines.append("Context: " + ", ".join(f"{k}={v}" for k, v in self.context.items()))
        if self.possible_fixes:
            lines += ["", "Possible Fixes:"]
            lines += [f"  {i}. {fix}" for i, fix in enumerate(self.possible_fixes, start=1)]
        return "\n".join(lines)


@dataclass(frozen=True)
class _Rule:
    keywords: tuple[str, ...]
    category: ErrorCategory
    root_cause: str
    fixes: tuple[str, ...]
    confidence: int


_COMPILATION_MARKERS = ("cs0", "error cs", "compilation failed", "syntax error")

# Sub-cases of a compilation failure; first match wins
_COMPILATION_RULES = (
    _Rule(
        ("does not exist in the current context", "could not be found"),
        ErrorCategory.COMPILATION,
        "Missing using statement or namespace",
        (
            "Add the missing using statement (e.g. 'using UnityEngine;')",
            "Check namespace spelling",
            "Ensure assembly references are correct",
        ),
        9,
    ),
    _Rule(
        ("expected ;", "; expected"),
        ErrorCategory.COMPILATION,
        "Missing semicolon",
        ("Add semicolon at end of statement", "Check for syntax errors in line"),
        10,
    ),
    _Rule(
        ("expected }", "} expected", "{ expected"),
        ErrorCategory.COMPILATION,
        "Mismatched braces",
        ("Add missing closing brace", "Remove extra brace", "Check code block structure"),
        9,
    ),
    _Rule(
        ("inaccessible", "protection level"),
        ErrorCategory.COMPILATION,
        "Accessing private or protected member",
        ("Change member to public", "Use proper accessor method", "Check access modifiers"),
        8,
    ),
    _Rule(
        ("does not contain a definition",),
        ErrorCategory.COMPILATION,
        "Method or property not found",
        (
            "Check method name spelling",
            "Ensure method exists in class",
            "Add missing method implementation",
        ),
        8,
    ),
)

_COMPILATION_DEFAULT = _Rule(
    (),
    ErrorCategory.COMPILATION,
    "Syntax or compilation error",
    ("Check code syntax", "Review error message details", "Run a script analyzer for validation"),
    6,
)

_NOT_FOUND_MARKERS = ("not found", "does not exist", "cannot find")

_NOT_FOUND_RULES = (
    _Rule(
        ("gameobject", "game object"),
        ErrorCategory.GAMEOBJECT_NOT_FOUND,
        "GameObject does not exist in scene",
        (
            "Create the GameObject first",
            "Check GameObject name (case-sensitive)",
            "Ensure GameObject is in active scene",
        ),
        9,
    ),
    _Rule(
        ("component", "monobehaviour"),
        ErrorCategory.COMPONENT_NOT_FOUND,
        "Component not attached to GameObject",
        (
            "Add component to GameObject first",
            "Check component type name",
            "Verify component is enabled",
        ),
        9,
    ),
    _Rule(
        ("script", "type", "class"),
        ErrorCategory.SCRIPT_NOT_FOUND,
        "Script file does not exist",
        ("Create the script first", "Check script name spelling", "Refresh the asset database"),
        8,
    ),
)

_NOT_FOUND_DEFAULT = _Rule(
    (),
    ErrorCategory.RESOURCE_NOT_FOUND,
    "Resource or asset not found",
    ("Verify resource path", "Check if asset exists", "Refresh the project"),
    7,
)

_GENERAL_RULES = (
    _Rule(
        ("null", "nullreferenceexception"),
        ErrorCategory.NULL_REFERENCE,
        "Attempting to access null object",
        (
            "Check if object exists before using",
            "Initialize object before access",
            "Add null check: if (obj != null)",
        ),
        8,
    ),
    _Rule(
        ("type", "cannot convert", "invalid cast"),
        ErrorCategory.TYPE_MISMATCH,
        "Incompatible types or invalid cast",
        ("Use correct type", "Add type conversion", "Check parameter types"),
        7,
    ),
    _Rule(
        ("invalid", "parameter", "argument"),
        ErrorCategory.INVALID_PARAMETER,
        "Invalid parameter value or format",
        ("Check parameter format", "Validate input values", "Use correct parameter type"),
        7,
    ),
    _Rule(
        ("permission denied", "access denied", "unauthorized"),
        ErrorCategory.PERMISSION_DENIED,
        "Operation not permitted",
        (
            "Check file or asset permissions",
            "Make sure the target is not read-only or locked",
            "Retry with an allowed location",
        ),
        8,
    ),
    _Rule(
        ("exception", "error", "failed"),
        ErrorCategory.RUNTIME,
        "Runtime exception occurred",
        (
            "Check operation prerequisites",
            "Add error handling",
            "Validate state before operation",
        ),
        5,
    ),
)

_UNKNOWN = _Rule(
    (),
    ErrorCategory.UNKNOWN,
    "Unknown error type",
    ("Read full error message", "Check the editor console", "Review recent changes"),
    3,
)

_CONTEXT_PATTERNS = (
    ("line", re.compile(r"line (\d+)")),
    ("file", re.compile(r"'([^']+\.cs)'")),
    ("gameobject", re.compile(r"GameObject '([^']+)'")),
    ("component", re.compile(r"component '([^']+)'", re.IGNORECASE)),
)


def _contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    return any(k in text for k in keywords)


def _first_match(text: str, rules: tuple[_Rule, ...], default: _Rule | None) -> _Rule | None:
    for rule in rules:
        if _contains_any(text, rule.keywords):
            return rule
    return default


def _select_rule(lowered: str) -> _Rule:
    if _contains_any(lowered, _COMPILATION_MARKERS):
        return _first_match(lowered, _COMPILATION_RULES, _COMPILATION_DEFAULT)
    if _contains_any(lowered, _NOT_FOUND_MARKERS):
        return _first_match(lowered, _NOT_FOUND_RULES, _NOT_FOUND_DEFAULT)
    return _first_match(lowered, _GENERAL_RULES, _UNKNOWN)


def extract_context(error_text: str) -> dict[str, str]:
    context: dict[str, str] = {}
    for key, pattern in _CONTEXT_PATTERNS:
        match = pattern.search(error_text)
        if match:
            context[key] = match.group(1)
    return context


def classify(error_text: str | None) -> ErrorAnalysis:
    """Classify a failure string. Never raises; unrecognised text is ``Unknown``."""
    text = error_text or ""
    rule = _select_rule(text.lower())
    return ErrorAnalysis(
        category=rule.category,
        original_error=text,
        root_cause=rule.root_cause,
        possible_fixes=rule.fixes,
        confidence=rule.confidence,
        context=MappingProxyType(extract_context(text)),
    )


def confidence_description(confidence: int) -> str:
    if confidence >= 9:
        return "Very High"
    if confidence >= 7:
        return "High"
    if confidence >= 5:
        return "Medium"
    if confidence >= 3:
        return "Low"
    return "Very Low"


_FIX_PRIORITY = {
    ErrorCategory.COMPILATION: 10,
    ErrorCategory.SYNTAX: 10,
    ErrorCategory.MISSING_REFERENCE: 9,
    ErrorCategory.COMPONENT_NOT_FOUND: 9,
    ErrorCategory.GAMEOBJECT_NOT_FOUND: 9,
    ErrorCategory.NULL_REFERENCE: 8,
    ErrorCategory.SCRIPT_NOT_FOUND: 8,
    ErrorCategory.TYPE_MISMATCH: 7,
    ErrorCategory.INVALID_PARAMETER: 7,
    ErrorCategory.RUNTIME: 6,
}


def fix_priority(category: ErrorCategory) -> int:
    """How urgently an error of this category should be fixed (higher first)."""
    return _FIX_PRIORITY.get(category, 5)
