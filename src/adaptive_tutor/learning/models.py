from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class ContentType(str, Enum):
    """Closed set of interactive content kinds the UI can render."""

    MULTIPLE_CHOICE = "multiple-choice"
    FILL_BLANK = "fill-blank"
    DRAG_DROP = "drag-drop"
    STEP_SOLVER = "step-solver"
    CONCEPT_CARD = "concept-card"
    EXPLAINER = "explainer"
    INTERACTIVE_EXAMPLE = "interactive-example"
    TEXT_HIGHLIGHTER = "text-highlighter"
    GRAPH_VISUALIZER = "graph-visualizer"
    FORMULA_EXPLORER = "formula-explorer"
    PROGRESS_QUIZ = "progress-quiz"
    PLACEHOLDER = "placeholder"

    @classmethod
    def normalize(cls, value: "ContentType | str") -> "ContentType":
        """Resolve request aliases (`quiz`, `practice`) onto the closed set."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        return cls(CONTENT_TYPE_ALIASES.get(key, key))


CONTENT_TYPE_ALIASES = {
    "quiz": ContentType.MULTIPLE_CHOICE.value,
    "practice": ContentType.STEP_SOLVER.value,
}


class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class ProgressState(str, Enum):
    """Lifecycle of a subject's current lesson as seen by the progress engine."""

    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    NEEDS_REVIEW = "needs-review"
    READY_FOR_NEXT = "ready-for-next"
    COMPLETED = "completed"


class CamelModel(BaseModel):
    """Base model that serializes with camelCase keys and accepts either spelling."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


def _lower(value: Any) -> Any:
    return value.strip().lower() if isinstance(value, str) else value


class ConceptInfo(CamelModel):
    """Single concept taught inside a lesson."""

    id: str
    name: str
    description: str = ""
    difficulty: Difficulty = Difficulty.BEGINNER
    estimated_practice_items: int = Field(3, ge=0)
    related_concepts: List[str] = Field(default_factory=list)

    @field_validator("difficulty", mode="before")
    def normalize_difficulty(cls, value: Any) -> Any:
        return _lower(value)


class LessonContent(CamelModel):
    """Structured payload for one interactive widget."""

    type: ContentType
    data: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("type", mode="before")
    def normalize_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return ContentType.normalize(value)
        return value


class Lesson(CamelModel):
    """Lesson inside a plan; concepts are walked sequentially."""

    id: str
    title: str
    description: str = ""
    completed: bool = False
    concepts: List[ConceptInfo] = Field(default_factory=list)
    current_concept_index: Optional[int] = None
    content: LessonContent = Field(
        default_factory=lambda: LessonContent(type=ContentType.CONCEPT_CARD)
    )

    @model_validator(mode="after")
    def clamp_concept_index(self) -> "Lesson":
        if not self.concepts:
            self.current_concept_index = None
        elif self.current_concept_index is None or self.current_concept_index < 0:
            self.current_concept_index = 0
        elif self.current_concept_index >= len(self.concepts):
            self.current_concept_index = len(self.concepts) - 1
        return self


class LessonPlan(CamelModel):
    """Ordered lessons for one subject plus the learner's position in them."""

    subject: str
    lessons: List[Lesson]
    current_lesson_index: int = 0

    @model_validator(mode="after")
    def clamp_lesson_index(self) -> "LessonPlan":
        upper = max(len(self.lessons) - 1, 0)
        self.current_lesson_index = min(max(self.current_lesson_index, 0), upper)
        return self

    @property
    def current_lesson(self) -> Optional[Lesson]:
        if not self.lessons:
            return None
        return self.lessons[self.current_lesson_index]

    @property
    def has_next_lesson(self) -> bool:
        return self.current_lesson_index < len(self.lessons) - 1


class PlanStructure(CamelModel):
    """Sizing analysis produced before the lesson plan itself is generated."""

    recommended_lessons: int = Field(8, ge=1)
    complexity: Difficulty = Difficulty.INTERMEDIATE
    focus_areas: List[str] = Field(default_factory=list)
    learning_objectives: List[str] = Field(default_factory=list)
    estimated_hours_per_lesson: float = Field(1.0, gt=0)
    prerequisites: List[str] = Field(default_factory=list)
    reasoning: Optional[str] = None

    @field_validator("complexity", mode="before")
    def normalize_complexity(cls, value: Any) -> Any:
        return _lower(value)


class AdaptiveFactors(CamelModel):
    difficulty_adjustment: float = Field(1.0, gt=0, le=3)
    engagement_weight: float = Field(0.2, ge=0, le=1)
    retention_factor: float = Field(0.75, ge=0, le=1)


class ProgressCriteria(CamelModel):
    """Mastery thresholds a learner must meet before advancing."""

    min_correct_answers: int = Field(ge=1, le=20)
    min_total_attempts: int = Field(ge=1, le=30)
    min_accuracy: float = Field(gt=0, le=1)
    adaptive_factors: AdaptiveFactors = Field(default_factory=AdaptiveFactors)
    reasoning: Optional[str] = None


class LearningProgress(CamelModel):
    """Per-subject counters and readiness flags for the current lesson."""

    correct_answers: int = Field(0, ge=0)
    total_attempts: int = Field(0, ge=0)
    needs_review: bool = False
    ready_for_next: bool = False

    @model_validator(mode="after")
    def check_counts(self) -> "LearningProgress":
        if self.correct_answers > self.total_attempts:
            raise ValueError("correctAnswers cannot exceed totalAttempts")
        return self

    @property
    def accuracy(self) -> float:
        if self.total_attempts == 0:
            return 0.0
        return self.correct_answers / self.total_attempts


@dataclass
class GeneratedContentRecord:
    """Summary of one generated content item kept for variety checks."""

    type: str
    timestamp: float
    question: Optional[str] = None
    topic: Optional[str] = None
    difficulty: str = Difficulty.INTERMEDIATE.value
