from .criteria import default_criteria, subject_family
from .models import (
    AdaptiveFactors,
    ConceptInfo,
    ContentType,
    Difficulty,
    GeneratedContentRecord,
    LearningProgress,
    Lesson,
    LessonContent,
    LessonPlan,
    PlanStructure,
    ProgressCriteria,
    ProgressState,
)
from .progress import AdaptiveProgressEngine
from .variety import ContentVarietyTracker

__all__ = [
    "AdaptiveFactors",
    "AdaptiveProgressEngine",
    "ConceptInfo",
    "ContentType",
    "ContentVarietyTracker",
    "Difficulty",
    "GeneratedContentRecord",
    "LearningProgress",
    "Lesson",
    "LessonContent",
    "LessonPlan",
    "PlanStructure",
    "ProgressCriteria",
    "ProgressState",
    "default_criteria",
    "subject_family",
]
