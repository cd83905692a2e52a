"""Eligibility package - Completion tracking and prerequisite evaluation."""

from coursegate.eligibility.evaluator import EligibilityEvaluator
from coursegate.eligibility.models import EligibilityResult
from coursegate.eligibility.tracker import CompletionTracker

__all__ = [
    "CompletionTracker",
    "EligibilityEvaluator",
    "EligibilityResult",
]
