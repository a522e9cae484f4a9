from __future__ import annotations

import logging
import time
from threading import Lock
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from adaptive_tutor.learning.models import (
    Difficulty,
    GeneratedContentRecord,
    LearningProgress,
)

logger = logging.getLogger(__name__)

HistoryKey = Tuple[str, str]


class ContentVarietyTracker:
    """
    Record generated content per (subject, lesson) and score its variety.

    History is append-only until cleared explicitly, either for one lesson (when the
    learner advances), for a whole subject, or globally. Engagement and variety are
    derived from it on demand; nothing is cached.

    Attributes
    ----------
    engagement_window : int
        Number of most recent items considered by `engagement_score`.
    recency_decay_hours : float
        Age at which an item stops contributing to the recency component.
    default_engagement : float
        Neutral score returned when there is no lesson or no history.
    """

    def __init__(
        self,
        engagement_window: int = 5,
        recency_decay_hours: float = 24.0,
        default_engagement: float = 0.5,
        clock: Callable[[], float] = time.time,
    ):
        self.engagement_window = engagement_window
        self.recency_decay_hours = recency_decay_hours
        self.default_engagement = default_engagement
        self._clock = clock
        self._history: Dict[HistoryKey, List[GeneratedContentRecord]] = {}
        self._lock = Lock()

    def record(
        self,
        subject: str,
        lesson_id: str,
        content_type: str,
        data: Optional[Mapping[str, Any]] = None,
    ) -> GeneratedContentRecord:
        """Append a summary of a generated item to the lesson's history."""
        data = data or {}
        item = GeneratedContentRecord(
            type=str(getattr(content_type, "value", content_type)),
            timestamp=self._clock(),
            question=data.get("question") or data.get("problem") or data.get("title"),
            topic=data.get("category") or data.get("problemType"),
            difficulty=data.get("difficulty") or Difficulty.INTERMEDIATE.value,
        )
        with self._lock:
            self._history.setdefault((subject, lesson_id), []).append(item)
        logger.debug("Tracked %s content for %s/%s", item.type, subject, lesson_id)
        return item

    def history(self, subject: str, lesson_id: str) -> List[GeneratedContentRecord]:
        with self._lock:
            return list(self._history.get((subject, lesson_id), []))

    def clear(self, subject: str, lesson_id: str) -> None:
        with self._lock:
            self._history.pop((subject, lesson_id), None)
        logger.debug("Cleared content history for %s/%s", subject, lesson_id)

    def clear_subject(self, subject: str) -> None:
        with self._lock:
            for key in [key for key in self._history if key[0] == subject]:
                del self._history[key]

    def clear_all(self) -> None:
        with self._lock:
            self._history.clear()

    def has_variety(self, subject: str, lesson_id: str, progress: LearningProgress) -> bool:
        """
        Decide whether enough varied content has been seen for the learner's accuracy.

        Strong performers need less variety; weaker ones need more items across more types.
        """
        history = self.history(subject, lesson_id)
        accuracy = progress.accuracy
        type_count = len({item.type for item in history})
        if accuracy >= 0.8:
            return len(history) >= 2
        if accuracy >= 0.6:
            return len(history) >= 3 and type_count >= 2
        return len(history) >= 4 and type_count >= 3

    def engagement_score(self, subject: str, lesson_id: Optional[str] = None) -> float:
        """Weighted blend of recency, type variety and activity over the recent window."""
        if not lesson_id:
            return self.default_engagement
        history = self.history(subject, lesson_id)
        if not history:
            return self.default_engagement

        recent = history[-self.engagement_window :]
        now = self._clock()
        recency = sum(
            max(0.0, 1 - (now - item.timestamp) / 3600 / self.recency_decay_hours)
            for item in recent
        ) / len(recent)
        variety = min(1.0, len({item.type for item in recent}) / 3)
        consistency = min(1.0, len(recent) / 3)
        return recency * 0.4 + variety * 0.3 + consistency * 0.3

    def stats(self, subject: str, lesson_id: str) -> Dict[str, Any]:
        """Summarize a lesson's history for display and debugging."""
        history = self.history(subject, lesson_id)
        by_type: Dict[str, int] = {}
        topics: List[str] = []
        for item in history:
            by_type[item.type] = by_type.get(item.type, 0) + 1
            if item.topic and item.topic not in topics:
                topics.append(item.topic)
        return {
            "total_items": len(history),
            "by_type": by_type,
            "unique_topics": topics,
            "recent_questions": [item.question or "N/A" for item in history[-3:]],
            "has_minimum_variety": self.has_variety(
                subject, lesson_id, LearningProgress(correct_answers=1, total_attempts=1)
            ),
        }
