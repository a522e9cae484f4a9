"""Heuristic progress criteria used when no generated criteria exist for a subject."""

from __future__ import annotations

from typing import Dict, Tuple

from adaptive_tutor.learning.models import AdaptiveFactors, ProgressCriteria

SUBJECT_FAMILIES: Dict[str, Tuple[str, ...]] = {
    "math_science": ("math", "physics", "chemistry", "calculus", "algebra", "geometry", "statistics"),
    "language_arts": ("language", "literature", "writing", "english", "spanish", "french", "poetry"),
    "creative": ("art", "music", "design", "creative", "drawing", "painting"),
    "social_studies": ("history", "geography", "social", "politics", "economics", "culture"),
}

_PRESETS: Dict[str, ProgressCriteria] = {
    "math_science": ProgressCriteria(
        min_correct_answers=4,
        min_total_attempts=5,
        min_accuracy=0.75,
        adaptive_factors=AdaptiveFactors(
            difficulty_adjustment=1.1, engagement_weight=0.15, retention_factor=0.85
        ),
        reasoning="Math and science build on precise prerequisites, so mastery is checked more strictly.",
    ),
    "language_arts": ProgressCriteria(
        min_correct_answers=3,
        min_total_attempts=4,
        min_accuracy=0.6,
        adaptive_factors=AdaptiveFactors(
            difficulty_adjustment=0.9, engagement_weight=0.25, retention_factor=0.75
        ),
        reasoning="Language skills reward exploration and sustained engagement over exact answers.",
    ),
    "creative": ProgressCriteria(
        min_correct_answers=2,
        min_total_attempts=3,
        min_accuracy=0.55,
        adaptive_factors=AdaptiveFactors(
            difficulty_adjustment=0.8, engagement_weight=0.3, retention_factor=0.7
        ),
        reasoning="Creative subjects favour experimentation, so thresholds are lenient.",
    ),
    "social_studies": ProgressCriteria(
        min_correct_answers=3,
        min_total_attempts=4,
        min_accuracy=0.65,
        adaptive_factors=AdaptiveFactors(
            difficulty_adjustment=0.95, engagement_weight=0.2, retention_factor=0.8
        ),
        reasoning="Social studies balance factual recall with interpretation.",
    ),
    "general": ProgressCriteria(
        min_correct_answers=3,
        min_total_attempts=4,
        min_accuracy=0.65,
        adaptive_factors=AdaptiveFactors(
            difficulty_adjustment=1.0, engagement_weight=0.2, retention_factor=0.75
        ),
        reasoning="Balanced defaults for subjects without a recognised family.",
    ),
}


def subject_family(subject: str) -> str:
    """Return the preset family whose terms appear in the subject name, else `general`."""
    lowered = subject.lower()
    for family, terms in SUBJECT_FAMILIES.items():
        if any(term in lowered for term in terms):
            return family
    return "general"


def default_criteria(subject: str) -> ProgressCriteria:
    """Return a fresh copy of the preset criteria for the subject's family."""
    return _PRESETS[subject_family(subject)].model_copy(deep=True)
