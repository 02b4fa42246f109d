"""Error classification, fixes, bounded self-correction and recovery decisions."""

from autopilot.healing.advisor import HealingAdvisor, HealingDecision, HealingStrategy
from autopilot.healing.checkpoints import Checkpoint, CheckpointStore
from autopilot.healing.classifier import (
    ErrorAnalysis,
    ErrorCategory,
    classify,
    confidence_description,
    fix_priority,
)
from autopilot.healing.correction import (
    CorrectionAttempt,
    CorrectionSession,
    SelfCorrectionEngine,
)
from autopilot.healing.fixes import FixResult, FixStrategyResolver

__all__ = [
    "Checkpoint",
    "CheckpointStore",
    "CorrectionAttempt",
    "CorrectionSession",
    "ErrorAnalysis",
    "ErrorCategory",
    "FixResult",
    "FixStrategyResolver",
    "HealingAdvisor",
    "HealingDecision",
    "HealingStrategy",
    "SelfCorrectionEngine",
    "classify",
    "confidence_description",
    "fix_priority",
]
