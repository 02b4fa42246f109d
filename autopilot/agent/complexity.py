"""Keyword heuristics that pick a step-by-step strategy and a step ceiling."""

from __future__ import annotations

import re
from dataclasses import dataclass

from autopilot.utils.logging import get_logger

log = get_logger(__name__)

BASE_COMPLEXITY = 3
MAX_COMPLEXITY = 10
BASE_STEPS = 5

_AND_RE = re.compile(r"\band\b")


@dataclass(frozen=True)
class Strategy:
    name: str
    objectives: tuple[str, ...]

    def to_prompt(self, task: str) -> str:
        lines = [f"# Task: {task}", f"# Strategy: {self.name}", "", "## Execution Plan:"]
        lines += [f"{i}. {obj}" for i, obj in enumerate(self.objectives, start=1)]
        return "\n".join(lines)


# (name, all-of keyword groups, objectives); every group must match for the strategy to apply
_STRATEGIES: tuple[tuple[str, tuple[tuple[str, ...], ...], tuple[str, ...]], ...] = (
    (
        "Player/Character Creation",
        (("create", "make", "add"), ("player", "character", "fps", "controller")),
        (
            "Create GameObject for player",
            "Add required components (CharacterController, Rigidbody, etc.)",
            "Create movement script",
            "Create camera/look script",
            "Attach scripts to player",
            "Configure input system",
            "Test basic movement",
        ),
    ),
    (
        "AI/Enemy Creation",
        (("enemy", "ai", "npc"), ("create", "make")),
        (
            "Create GameObject for AI",
            "Add NavMeshAgent component",
            "Create AI behavior script",
            "Set up patrol/chase logic",
            "Attach scripts",
            "Configure NavMesh",
            "Test AI behavior",
        ),
    ),
    (
        "UI Creation",
        (("ui", "menu", "hud", "canvas"),),
        (
            "Create Canvas",
            "Add UI elements (buttons, text, panels)",
            "Create UI controller script",
            "Wire up button events",
            "Apply styling",
            "Test UI interactions",
        ),
    ),
    (
        "Script Creation",
        (("script", "code", "class"), ("create", "write", "generate")),
        (
            "Analyze requirements",
            "Design class structure",
            "Generate script code",
            "Validate syntax",
            "Add to project",
            "Test compilation",
        ),
    ),
    (
        "Bug Fix",
        (("fix", "bug", "error", "issue", "problem"),),
        (
            "Identify the problem",
            "Analyze error messages",
            "Find root cause",
            "Propose solution",
            "Apply fix",
            "Verify fix works",
            "Test for side effects",
        ),
    ),
    (
        "Code Improvement",
        (("refactor", "improve", "optimize", "clean"),),
        (
            "Analyze current code",
            "Identify improvement areas",
            "Plan refactoring",
            "Apply changes incrementally",
            "Validate still works",
            "Check performance",
        ),
    ),
    (
        "Scene Setup",
        (("scene", "level"), ("create", "setup")),
        (
            "Create new scene",
            "Add lighting",
            "Create terrain/ground",
            "Add player spawn",
            "Place objects",
            "Configure scene settings",
            "Save scene",
        ),
    ),
)

GENERIC_STRATEGY = Strategy(
    "Generic Task Execution",
    (
        "Understand task requirements",
        "Gather necessary information",
        "Plan approach",
        "Execute main steps",
        "Validate results",
        "Handle any issues",
    ),
)

# (keywords, bump)
_COMPLEXITY_BUMPS = (
    (("complex", "advanced", "multiple", "many"), 2),
    (("fps", "multiplayer", "networking"), 3),
    (("ai", "pathfinding", "machine learning"), 2),
    (("physics", "ragdoll", "cloth"), 2),
    (("ui", "menu", "hud"), 1),
)


def _contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    return any(k in text for k in keywords)


def select_strategy(task: str) -> Strategy:
    lowered = task.lower()
    for name, groups, objectives in _STRATEGIES:
        if all(_contains_any(lowered, group) for group in groups):
            strategy = Strategy(name, objectives)
            break
    else:
        strategy = GENERIC_STRATEGY
    log.debug("strategy_selected", strategy=strategy.name, objectives=len(strategy.objectives))
    return strategy


def estimate_complexity(task: str) -> int:
    """Score a task from 1 to 10 by keyword and by the number of "and" clauses."""
    lowered = task.lower()
    score = BASE_COMPLEXITY
    for keywords, bump in _COMPLEXITY_BUMPS:
        if _contains_any(lowered, keywords):
            score += bump
    score += len(_AND_RE.findall(lowered))
    return min(score, MAX_COMPLEXITY)


def recommended_max_steps(task: str) -> int:
    return BASE_STEPS + estimate_complexity(task)
