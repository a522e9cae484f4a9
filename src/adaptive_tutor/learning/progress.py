from __future__ import annotations

import logging
import math
from threading import RLock
from typing import Any, Dict, List, Mapping, Optional

from adaptive_tutor.learning.criteria import default_criteria
from adaptive_tutor.learning.models import (
    ConceptInfo,
    LearningProgress,
    LessonPlan,
    ProgressCriteria,
    ProgressState,
)
from adaptive_tutor.learning.variety import ContentVarietyTracker

logger = logging.getLogger(__name__)


class AdaptiveProgressEngine:
    """
    Own per-subject lesson plans, progress counters and mastery criteria.

    Every answer updates the subject's `LearningProgress`, after which readiness is
    re-derived from the subject's criteria adjusted by the learner's engagement with
    the current lesson. Criteria come from `set_criteria` (usually generated alongside
    the plan) or, when absent, from the heuristic presets keyed on the subject name.

    Readiness rule
    --------------
    With criteria ``c`` and engagement ``e``::

        adj_correct  = ceil(c.min_correct_answers * c.difficulty_adjustment)
        adj_accuracy = c.min_accuracy * (1 + (e - 0.5) * c.engagement_weight)
        adj_attempts = max(c.min_total_attempts, adj_correct + 1)

    A learner is ready for the next lesson when correct answers, attempts and accuracy
    all meet their adjusted thresholds and the lesson's content history is varied
    enough. Review is flagged when accuracy falls below ``review_ratio * adj_accuracy``.

    Attributes
    ----------
    tracker : ContentVarietyTracker
        Shared content history used for engagement and variety checks.
    review_ratio : float
        Fraction of the adjusted accuracy below which review is flagged.

    Examples
    --------
    >>> engine = AdaptiveProgressEngine(ContentVarietyTracker())
    >>> engine.load_lesson_plan("Algebra", plan)
    >>> engine.reset_progress("Algebra")
    >>> engine.update_progress("Algebra", True).total_attempts
    1
    """

    def __init__(self, tracker: ContentVarietyTracker, review_ratio: float = 0.8):
        self.tracker = tracker
        self.review_ratio = review_ratio
        self._plans: Dict[str, LessonPlan] = {}
        self._progress: Dict[str, LearningProgress] = {}
        self._criteria: Dict[str, ProgressCriteria] = {}
        self._lock = RLock()

    # -- persistence boundary -------------------------------------------------

    def load_lesson_plan(self, subject: str, plan: LessonPlan | Mapping[str, Any]) -> LessonPlan:
        """Install a plan snapshot (model or camelCase mapping) for the subject."""
        if not isinstance(plan, LessonPlan):
            plan = LessonPlan.model_validate(plan)
        with self._lock:
            self._plans[subject] = plan.model_copy(deep=True)
        logger.debug("Loaded lesson plan for %s with %d lessons", subject, len(plan.lessons))
        return plan

    def load_progress(
        self, subject: str, progress: LearningProgress | Mapping[str, Any]
    ) -> LearningProgress:
        if not isinstance(progress, LearningProgress):
            progress = LearningProgress.model_validate(progress)
        with self._lock:
            self._progress[subject] = progress.model_copy()
        logger.debug(
            "Loaded progress for %s: %d/%d correct",
            subject,
            progress.correct_answers,
            progress.total_attempts,
        )
        return progress

    def get_lesson_plan(self, subject: str) -> Optional[LessonPlan]:
        with self._lock:
            plan = self._plans.get(subject)
            return plan.model_copy(deep=True) if plan else None

    def get_progress(self, subject: str) -> Optional[LearningProgress]:
        with self._lock:
            progress = self._progress.get(subject)
            return progress.model_copy() if progress else None

    def reset_progress(self, subject: str) -> LearningProgress:
        """Start the subject's current lesson from zero attempts."""
        return self.load_progress(subject, LearningProgress())

    def set_criteria(self, subject: str, criteria: ProgressCriteria | Mapping[str, Any]) -> None:
        if not isinstance(criteria, ProgressCriteria):
            criteria = ProgressCriteria.model_validate(criteria)
        with self._lock:
            self._criteria[subject] = criteria

    def get_criteria(self, subject: str) -> ProgressCriteria:
        """Stored criteria for the subject, else the heuristic preset."""
        with self._lock:
            criteria = self._criteria.get(subject)
        return criteria.model_copy(deep=True) if criteria else default_criteria(subject)

    def subjects(self) -> List[str]:
        with self._lock:
            return list(self._plans)

    def clear_subject(self, subject: str) -> None:
        with self._lock:
            self._plans.pop(subject, None)
            self._progress.pop(subject, None)
            self._criteria.pop(subject, None)
        self.tracker.clear_subject(subject)
        logger.debug("Cleared lesson plan, progress and content history for %s", subject)

    def clear_all(self) -> None:
        with self._lock:
            self._plans.clear()
            self._progress.clear()
            self._criteria.clear()
        self.tracker.clear_all()

    # -- progress -------------------------------------------------------------

    def update_progress(
        self, subject: str, is_correct: bool, lesson_id: Optional[str] = None
    ) -> Optional[LearningProgress]:
        """
        Count one answer and recompute readiness flags.

        Parameters
        ----------
        subject : str
            Subject whose progress is updated.
        is_correct : bool
            Whether the submitted answer was correct.
        lesson_id : Optional[str]
            Lesson the answer belongs to. Without it engagement is neutral and the
            variety requirement is waived.

        Returns
        -------
        Optional[LearningProgress]
            Copy of the updated progress, or None when the subject has no progress record.
        """
        with self._lock:
            progress = self._progress.get(subject)
            if progress is None:
                logger.debug("No progress found for subject %s", subject)
                return None

            progress.total_attempts += 1
            if is_correct:
                progress.correct_answers += 1
            accuracy = progress.accuracy

            criteria = self.get_criteria(subject)
            factors = criteria.adaptive_factors
            engagement = self.tracker.engagement_score(subject, lesson_id)

            adjusted_min_correct = math.ceil(
                criteria.min_correct_answers * factors.difficulty_adjustment
            )
            adjusted_min_accuracy = criteria.min_accuracy * (
                1 + (engagement - 0.5) * factors.engagement_weight
            )
            adjusted_min_attempts = max(criteria.min_total_attempts, adjusted_min_correct + 1)

            has_variety = True
            if lesson_id:
                has_variety = self.tracker.has_variety(subject, lesson_id, progress)

            progress.ready_for_next = (
                progress.correct_answers >= adjusted_min_correct
                and progress.total_attempts >= adjusted_min_attempts
                and accuracy >= adjusted_min_accuracy
                and has_variety
            )
            progress.needs_review = accuracy < adjusted_min_accuracy * self.review_ratio

            logger.debug(
                "Progress updated for %s: %s",
                subject,
                {
                    "correct_answers": progress.correct_answers,
                    "total_attempts": progress.total_attempts,
                    "accuracy": round(accuracy, 3),
                    "ready_for_next": progress.ready_for_next,
                    "needs_review": progress.needs_review,
                    "adjusted_min_correct": adjusted_min_correct,
                    "adjusted_min_accuracy": round(adjusted_min_accuracy, 3),
                    "adjusted_min_attempts": adjusted_min_attempts,
                    "engagement": round(engagement, 3),
                    "has_variety": has_variety,
                },
            )
            return progress.model_copy()

    def state(self, subject: str) -> ProgressState:
        with self._lock:
            plan = self._plans.get(subject)
            progress = self._progress.get(subject)
        if plan is not None and plan.lessons and all(lesson.completed for lesson in plan.lessons):
            return ProgressState.COMPLETED
        if plan is None or progress is None or progress.total_attempts == 0:
            return ProgressState.NOT_STARTED
        if progress.ready_for_next:
            return ProgressState.READY_FOR_NEXT
        if progress.needs_review:
            return ProgressState.NEEDS_REVIEW
        return ProgressState.IN_PROGRESS

    # -- lesson and concept navigation -----------------------------------------

    def advance_to_next_lesson(self, subject: str) -> bool:
        """
        Move to the next lesson when one exists.

        The current lesson is marked completed, its content history is cleared and
        progress restarts from zero. At the last lesson, or without a plan, nothing
        changes and False is returned.
        """
        with self._lock:
            plan = self._plans.get(subject)
            if plan is None:
                logger.debug("No lesson plan found for subject %s", subject)
                return False
            if not plan.has_next_lesson:
                logger.debug("Already at the last lesson for %s", subject)
                return False

            completed = plan.lessons[plan.current_lesson_index]
            completed.completed = True
            self.tracker.clear(subject, completed.id)
            plan.current_lesson_index += 1
            self._progress[subject] = LearningProgress()
        logger.info(
            "Advanced %s to lesson %d: %s",
            subject,
            plan.current_lesson_index + 1,
            plan.lessons[plan.current_lesson_index].title,
        )
        return True

    def complete_current_lesson(self, subject: str) -> bool:
        """Mark the final lesson completed once the learner is ready; returns success."""
        with self._lock:
            plan = self._plans.get(subject)
            progress = self._progress.get(subject)
            if plan is None or progress is None or plan.has_next_lesson:
                return False
            lesson = plan.current_lesson
            if lesson is None or not progress.ready_for_next:
                return False
            lesson.completed = True
            self.tracker.clear(subject, lesson.id)
        logger.info("Completed final lesson of %s", subject)
        return True

    def current_concept(self, subject: str) -> Optional[ConceptInfo]:
        with self._lock:
            plan = self._plans.get(subject)
            lesson = plan.current_lesson if plan else None
            if lesson is None or lesson.current_concept_index is None:
                return None
            return lesson.concepts[lesson.current_concept_index].model_copy()

    def advance_concept(self, subject: str) -> bool:
        """Step to the next concept of the current lesson, if there is one."""
        with self._lock:
            plan = self._plans.get(subject)
            lesson = plan.current_lesson if plan else None
            if lesson is None or lesson.current_concept_index is None:
                return False
            if lesson.current_concept_index >= len(lesson.concepts) - 1:
                return False
            lesson.current_concept_index += 1
            return True
