"""Service layer for tutoring operations - one object owns every piece of engine state.

The UI talks to the engine only through `TutorService`: it requests plans, content and
tutor responses, forwards learner interactions, and loads or reads snapshots for the
external database.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from pydantic import ValidationError

from adaptive_tutor.config.schema import Settings
from adaptive_tutor.generation.cache import ResponseCache
from adaptive_tutor.generation.errors import StructuralError
from adaptive_tutor.generation.fallbacks import (
    ANSWER_ACTIONS,
    default_plan_structure,
    template_content,
    template_educational_response,
    template_lesson_plan,
    template_tutor_response,
    template_welcome_message,
)
from adaptive_tutor.generation.json_repair import parse_json
from adaptive_tutor.generation.llm_client import CompletionClient, completion_text
from adaptive_tutor.generation.orchestrator import GenerationOrchestrator, model_parser, parse_text
from adaptive_tutor.generation import prompts
from adaptive_tutor.generation.throttle import CallThrottler
from adaptive_tutor.learning.criteria import default_criteria
from adaptive_tutor.learning.models import (
    ContentType,
    LearningProgress,
    Lesson,
    LessonContent,
    LessonPlan,
    PlanStructure,
    ProgressCriteria,
    ProgressState,
)
from adaptive_tutor.learning.progress import AdaptiveProgressEngine
from adaptive_tutor.learning.variety import ContentVarietyTracker

logger = logging.getLogger(__name__)

MIN_PLAN_LESSONS = 3

NEXT_CONTENT_ACTIONS: Dict[str, ContentType] = {
    "next_question": ContentType.MULTIPLE_CHOICE,
    "next_exercise": ContentType.FILL_BLANK,
    "next_problem": ContentType.STEP_SOLVER,
}


@dataclass
class InteractionOutcome:
    """Everything the UI needs after forwarding one learner action."""

    action: str
    response: str
    state: ProgressState
    progress: Optional[LearningProgress] = None
    content: Optional[LessonContent] = None


def plan_token_budget(structure: PlanStructure) -> int:
    """Output-token budget for the lesson-plan call, sized by the structure analysis."""
    if structure.recommended_lessons >= 12:
        return 2500
    if structure.complexity.value == "advanced":
        return 2200
    if structure.complexity.value == "beginner":
        return 1200
    return 1600


def lesson_plan_parser(
    subject: str, min_lessons: int = MIN_PLAN_LESSONS, require_subject: bool = True
) -> Callable[[str], LessonPlan]:
    """Parse a generated plan, filling missing lesson ids, titles and descriptions."""

    def parse(raw: str) -> LessonPlan:
        data = parse_json(raw)
        if not isinstance(data, dict) or not isinstance(data.get("lessons"), list):
            raise StructuralError("Invalid lesson plan structure")
        if require_subject and not data.get("subject"):
            raise StructuralError("Lesson plan is missing its subject")
        if len(data["lessons"]) < min_lessons:
            raise StructuralError(f"Too few lessons generated: {len(data['lessons'])}")

        lessons = []
        for index, item in enumerate(data["lessons"]):
            item = item if isinstance(item, dict) else {}
            lessons.append(
                {
                    "id": item.get("id") or f"lesson-{index + 1}",
                    "title": item.get("title") or f"Lesson {index + 1}",
                    "description": item.get("description") or f"Learn the fundamentals of {subject}.",
                    "concepts": item.get("concepts") or [],
                }
            )
        try:
            return LessonPlan.model_validate(
                {"subject": data.get("subject") or subject, "lessons": lessons}
            )
        except ValidationError as exc:
            raise StructuralError(f"Invalid lesson plan: {exc}", cause=exc) from exc

    return parse


class TutorService:
    """Service layer that provides a clean API for UI interactions.

    The service owns the response cache, call throttler, content variety tracker and
    adaptive progress engine; all of them are created once here and shared by reference.
    Every generation method degrades instead of raising, so callers always receive a
    usable plan, content item or message.
    """

    def __init__(
        self,
        client: CompletionClient,
        settings: Optional[Settings] = None,
        *,
        clock: Callable[[], float] = time.time,
        monotonic: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Wire engine components from settings.

        Args:
            client: Completion boundary used for every generation call.
            settings: Engine settings; built-in defaults when omitted.
            clock: Wall clock for cache expiry and content recency.
            monotonic: Clock used to space outbound calls.
            sleep: Awaitable sleep used for throttling and retry backoff.
        """
        self.settings = settings or Settings()
        self.client = client
        self.cache = ResponseCache(
            ttl_seconds=self.settings.cache.ttl_seconds,
            max_size=self.settings.cache.max_size,
            key_length=self.settings.cache.key_length,
            clock=clock,
        )
        self.throttler = CallThrottler(
            min_delay=self.settings.throttle.min_delay_seconds, clock=monotonic, sleep=sleep
        )
        self.orchestrator = GenerationOrchestrator(
            self.cache,
            self.throttler,
            max_retries=self.settings.retry.max_retries,
            backoff_base=self.settings.retry.backoff_base_seconds,
            sleep=sleep,
        )
        self.tracker = ContentVarietyTracker(
            engagement_window=self.settings.progress.engagement_window,
            recency_decay_hours=self.settings.progress.recency_decay_hours,
            default_engagement=self.settings.progress.default_engagement,
            clock=clock,
        )
        self.engine = AdaptiveProgressEngine(
            self.tracker, review_ratio=self.settings.progress.review_ratio
        )

    def _completion(
        self, messages: List[Dict[str, str]], temperature: float, max_tokens: int
    ) -> Callable[[], Awaitable[str]]:
        async def generate() -> str:
            response = await self.client.complete(messages, temperature, max_tokens)
            return completion_text(response)

        return generate

    # -- plans --------------------------------------------------------------------

    async def create_learning_plan(self, subject: str) -> LessonPlan:
        """Generate a plan, its progress criteria, and reset the subject's progress.

        Args:
            subject: Free-text subject name, e.g. "Algebra".

        Returns:
            The installed plan, positioned at its first lesson.
        """
        structure_result = await self.orchestrator.call(
            "lesson-structure",
            {"subject": subject},
            self._completion(prompts.lesson_structure_messages(subject), 0.4, 800),
            model_parser(PlanStructure),
            fallback=lambda error: default_plan_structure(),
        )
        structure: PlanStructure = structure_result.value
        max_tokens = plan_token_budget(structure)
        logger.info(
            "Planning %d lessons for %s (complexity: %s, max tokens: %d)",
            structure.recommended_lessons,
            subject,
            structure.complexity.value,
            max_tokens,
        )

        plan_params = {
            "subject": subject,
            "expectedLessons": structure.recommended_lessons,
            "maxTokens": max_tokens,
            "complexity": structure.complexity.value,
            "focusAreas": structure.focus_areas,
        }

        def plan_fallback(error):
            return self.orchestrator.degrade(
                "lesson-plan",
                self._completion(prompts.simplified_plan_messages(subject), 0.4, 1000),
                lesson_plan_parser(subject, min_lessons=1, require_subject=False),
                lambda: template_lesson_plan(subject),
                error,
            )

        plan_result = await self.orchestrator.call(
            "lesson-plan",
            plan_params,
            self._completion(prompts.lesson_plan_messages(subject, structure), 0.3, max_tokens),
            lesson_plan_parser(subject),
            fallback=plan_fallback,
        )
        self.engine.load_lesson_plan(subject, plan_result.value)

        criteria_result = await self.orchestrator.call(
            "progress-criteria",
            {"subject": subject, "complexity": structure.complexity.value},
            self._completion(
                prompts.progress_criteria_messages(subject, structure.complexity.value), 0.3, 400
            ),
            model_parser(ProgressCriteria),
            fallback=lambda error: default_criteria(subject),
        )
        self.engine.set_criteria(subject, criteria_result.value)
        self.engine.reset_progress(subject)

        logger.info(
            "Lesson plan ready for %s (%s, %d lessons)",
            subject,
            plan_result.source.value,
            len(plan_result.value.lessons),
        )
        return self.engine.get_lesson_plan(subject)

    # -- content ------------------------------------------------------------------

    async def generate_lesson_content(
        self,
        subject: str,
        lesson: Lesson | Mapping[str, Any],
        content_type: ContentType | str,
    ) -> LessonContent:
        """Generate one interactive content item and record it for variety tracking."""
        if not isinstance(lesson, Lesson):
            lesson = Lesson.model_validate(lesson)
        kind = ContentType.normalize(content_type)

        def content_fallback(error):
            return self.orchestrator.degrade(
                "lesson-content",
                self._completion(prompts.simplified_content_messages(lesson, kind), 0.5, 800),
                model_parser(LessonContent),
                lambda: template_content(lesson, kind),
                error,
            )

        result = await self.orchestrator.call(
            "lesson-content",
            {
                "subjectName": subject,
                "lessonId": lesson.id,
                "contentType": kind.value,
                "lessonTitle": lesson.title,
            },
            self._completion(prompts.content_messages(subject, lesson, kind), 0.6, 1500),
            model_parser(LessonContent),
            fallback=content_fallback,
        )
        content: LessonContent = result.value.model_copy(deep=True)
        self.tracker.record(subject, lesson.id, content.type.value, content.data)
        return content

    async def generate_tutor_response(
        self,
        subject: str,
        action: str,
        data: Any = None,
        context: Any = None,
    ) -> str:
        def response_fallback(error):
            return self.orchestrator.degrade(
                "tutor-response",
                self._completion(prompts.simplified_tutor_response_messages(action), 0.2, 50),
                parse_text,
                lambda: template_tutor_response(action, data),
                error,
            )

        result = await self.orchestrator.call(
            "tutor-response",
            {"subjectName": subject, "action": action, "data": data, "context": context},
            self._completion(prompts.tutor_response_messages(subject, action, data, context), 0.3, 100),
            parse_text,
            fallback=response_fallback,
        )
        return result.value

    async def generate_direct_educational_response(
        self,
        question: str,
        subject: Optional[str] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> str:
        """Answer a free-form learner question.

        Args:
            question: The learner's question.
            subject: Subject the learner is studying, if any.
            context: Optional `currentLesson` and `difficulty` hints.

        Returns:
            The answer text, or a short holding message when generation fails.
        """
        result = await self.orchestrator.call(
            "direct-educational-response",
            {"question": question, "subjectName": subject, "context": context},
            self._completion(prompts.educational_response_messages(question, subject, context), 0.4, 400),
            parse_text,
            fallback=lambda error: template_educational_response(subject),
        )
        return result.value

    async def generate_welcome_message(
        self,
        subject: str,
        lesson_title: str,
        lesson_index: int = 0,
        progress: Optional[LearningProgress] = None,
        returning: bool = True,
    ) -> str:
        progress = progress or LearningProgress()
        result = await self.orchestrator.call(
            "welcome-message",
            {
                "subjectName": subject,
                "currentLesson": {"title": lesson_title, "index": lesson_index},
                "progress": {
                    "correctAnswers": progress.correct_answers,
                    "totalAttempts": progress.total_attempts,
                },
                "isReturningUser": returning,
            },
            self._completion(
                prompts.welcome_messages(subject, lesson_title, lesson_index, progress, returning), 0.3, 80
            ),
            parse_text,
            fallback=lambda error: template_welcome_message(subject, lesson_title, returning),
        )
        return result.value

    # -- interactions ---------------------------------------------------------------

    async def handle_interaction(
        self,
        subject: str,
        action: str,
        payload: Optional[Mapping[str, Any]] = None,
        lesson_id: Optional[str] = None,
        context: Any = None,
    ) -> InteractionOutcome:
        """Apply one UI event: update progress, fetch new content, and respond.

        Args:
            subject: Subject the event belongs to.
            action: UI action name such as `answer_submitted` or `next_question`.
            payload: Action data; answers carry `correct`, `isCorrect` or a quiz `score`.
            lesson_id: Lesson the event happened in; defaults to the current lesson.
            context: Extra context forwarded to the tutor response prompt.

        Returns:
            The tutor response plus any updated progress and new content.
        """
        payload = dict(payload or {})
        lesson = self._lesson_for(subject, lesson_id)
        lesson_key = lesson.id if lesson is not None else lesson_id

        progress = None
        correct = answer_correctness(action, payload)
        if correct is not None:
            progress = self.engine.update_progress(subject, correct, lesson_key)

        content = None
        if action in NEXT_CONTENT_ACTIONS:
            if lesson is None:
                logger.warning("No lesson available for %s in %s", action, subject)
            else:
                content = await self.generate_lesson_content(subject, lesson, NEXT_CONTENT_ACTIONS[action])

        response = await self.generate_tutor_response(subject, action, payload, context)
        return InteractionOutcome(
            action=action,
            response=response,
            state=self.engine.state(subject),
            progress=progress,
            content=content,
        )

    def _lesson_for(self, subject: str, lesson_id: Optional[str]) -> Optional[Lesson]:
        plan = self.engine.get_lesson_plan(subject)
        if plan is None:
            return None
        if lesson_id:
            for lesson in plan.lessons:
                if lesson.id == lesson_id:
                    return lesson
        return plan.current_lesson

    # -- progress and persistence ---------------------------------------------------

    def update_progress(
        self, subject: str, is_correct: bool, lesson_id: Optional[str] = None
    ) -> Optional[LearningProgress]:
        return self.engine.update_progress(subject, is_correct, lesson_id)

    def advance_to_next_lesson(self, subject: str) -> bool:
        return self.engine.advance_to_next_lesson(subject)

    def load_lesson_plan(self, subject: str, plan: LessonPlan | Mapping[str, Any]) -> LessonPlan:
        return self.engine.load_lesson_plan(subject, plan)

    def load_progress(
        self, subject: str, progress: LearningProgress | Mapping[str, Any]
    ) -> LearningProgress:
        return self.engine.load_progress(subject, progress)

    def get_lesson_plan(self, subject: str) -> Optional[LessonPlan]:
        return self.engine.get_lesson_plan(subject)

    def get_progress(self, subject: str) -> Optional[LearningProgress]:
        return self.engine.get_progress(subject)

    def get_content_variety_stats(self, subject: str, lesson_id: str) -> Dict[str, Any]:
        return self.tracker.stats(subject, lesson_id)

    def cache_stats(self) -> Dict[str, Any]:
        return self.cache.stats()

    def cached_subjects(self) -> List[str]:
        return self.engine.subjects()

    def clear_subject_data(self, subject: str) -> None:
        """Forget the subject's plan, progress, criteria and content history."""
        self.engine.clear_subject(subject)

    def clear_all_data(self) -> None:
        """Forget every subject and reset call spacing; cached responses are kept."""
        self.engine.clear_all()
        self.throttler.reset()
        logger.info("Cleared all tutor data")


def answer_correctness(action: str, payload: Mapping[str, Any]) -> Optional[bool]:
    """Correctness carried by an answer-submission payload, or None for other actions."""
    if action not in ANSWER_ACTIONS:
        return None
    if "correct" in payload:
        return bool(payload["correct"])
    if "isCorrect" in payload:
        return bool(payload["isCorrect"])
    if action == "quiz_submitted" and "score" in payload:
        return float(payload["score"]) >= 80
    return None
