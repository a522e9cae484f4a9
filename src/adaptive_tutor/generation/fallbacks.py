"""Deterministic templates used when generation and its simplified retry both fail."""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Optional

from adaptive_tutor.generation.prompts import RESET_ACTIONS
from adaptive_tutor.learning.models import (
    ContentType,
    Lesson,
    LessonContent,
    LessonPlan,
    PlanStructure,
)


def default_plan_structure() -> PlanStructure:
    return PlanStructure(recommended_lessons=8, reasoning="Default structure used without analysis.")


def template_lesson_plan(subject: str) -> LessonPlan:
    """Minimal three-lesson plan that always validates."""
    return LessonPlan(
        subject=subject,
        lessons=[
            Lesson(
                id="lesson-1",
                title=f"Introduction to {subject}",
                description=f"Learn the fundamentals of {subject}",
                content=LessonContent(type=ContentType.CONCEPT_CARD),
            ),
            Lesson(
                id="lesson-2",
                title=f"Core Concepts in {subject}",
                description="Understand key principles",
                content=LessonContent(type=ContentType.MULTIPLE_CHOICE),
            ),
            Lesson(
                id="lesson-3",
                title=f"Practice with {subject}",
                description="Apply what you've learned",
                content=LessonContent(type=ContentType.STEP_SOLVER),
            ),
        ],
    )


def _multiple_choice(lesson: Lesson) -> LessonContent:
    return LessonContent(
        type=ContentType.MULTIPLE_CHOICE,
        data={
            "question": f"What is an important aspect of {lesson.title}?",
            "options": [
                "Understanding the concept",
                "Memorizing facts",
                "Skipping practice",
                "Avoiding questions",
            ],
            "correctAnswer": 0,
            "explanation": "Understanding concepts is always better than just memorizing facts.",
            "difficulty": "beginner",
        },
    )


def _fill_blank(lesson: Lesson) -> LessonContent:
    return LessonContent(
        type=ContentType.FILL_BLANK,
        data={
            "question": f"Complete this statement about {lesson.title}",
            "template": f"The key to understanding {lesson.title} is to ___ and then ___.",
            "answers": ["practice regularly", "apply the concepts"],
            "hints": [
                "What should you do consistently?",
                "What should you do with what you learn?",
            ],
            "explanation": "Regular practice and applying concepts are fundamental to mastering any subject.",
            "category": lesson.title,
            "difficulty": "beginner",
        },
    )


def _step_solver(lesson: Lesson) -> LessonContent:
    return LessonContent(
        type=ContentType.STEP_SOLVER,
        data={
            "problem": f"Apply the principles of {lesson.title} to solve this practice problem",
            "problemType": lesson.title,
            "steps": [
                {
                    "id": "1",
                    "description": "Identify the key concepts",
                    "calculation": f"Review what you know about {lesson.title}",
                    "result": "Clear understanding of fundamentals",
                    "explanation": "Starting with basics ensures a solid foundation",
                },
                {
                    "id": "2",
                    "description": "Apply the concepts",
                    "calculation": "Use your knowledge to work through the problem",
                    "result": f"Solution using {lesson.title} principles",
                    "explanation": "Practical application reinforces learning",
                },
            ],
            "finalAnswer": f"Successful application of {lesson.title} concepts",
            "difficulty": "beginner",
            "learningObjective": f"Practice applying {lesson.title} in real scenarios",
        },
    )


def _concept_card(lesson: Lesson) -> LessonContent:
    return LessonContent(
        type=ContentType.CONCEPT_CARD,
        data={
            "title": lesson.title,
            "summary": f"{lesson.title} is an important topic that builds foundational understanding.",
            "details": (
                "This lesson introduces key concepts that connect to broader topics "
                "and practical applications."
            ),
            "examples": [
                "Real-world applications of these concepts",
                "How this topic connects to other areas of study",
                "Practical situations where this knowledge is useful",
            ],
            "keyPoints": [
                "Understanding the fundamental principles",
                "Connecting concepts to practical applications",
                "Building skills for advanced topics",
            ],
            "difficulty": "beginner",
        },
    )


CONTENT_TEMPLATES: Dict[ContentType, Callable[[Lesson], LessonContent]] = {
    ContentType.MULTIPLE_CHOICE: _multiple_choice,
    ContentType.FILL_BLANK: _fill_blank,
    ContentType.STEP_SOLVER: _step_solver,
    ContentType.CONCEPT_CARD: _concept_card,
}


def template_content(lesson: Lesson, content_type: ContentType | str) -> LessonContent:
    """Template for the requested kind; kinds without one fall back to a concept card."""
    kind = ContentType.normalize(content_type)
    return CONTENT_TEMPLATES.get(kind, _concept_card)(lesson)


_ACTION_RESPONSES: Dict[str, str] = {
    "needs_more_practice": "Keep practicing - you're making progress!",
    "continue_practicing": "Keep practicing - you're making progress!",
    "ready_for_practice": "Great! Let's continue.",
    "ready_for_next": "Great! Let's continue.",
    "concept_expanded": "I'll help you understand this better.",
    "examples_requested": "I'll help you understand this better.",
    "explain_more": "I'll help you understand this better.",
    "question_requested": "I'll help you understand this better.",
    "detail_expanded": "I'll help you understand this better.",
    "contextual_content_request": "I'll help you understand this better.",
    "next_question": "Ready for more practice!",
    "next_exercise": "Ready for more practice!",
    "next_problem": "Ready for more practice!",
    "quiz_started": "Good luck on your quiz!",
    "highlights_checked": "Good work analyzing the text!",
    "graph_control_changed": "Great exploration!",
}

ANSWER_ACTIONS = frozenset(
    {"answer_submitted", "fill_blank_submitted", "drag_drop_submitted", "quiz_submitted"}
)


def template_tutor_response(action: str, data: Any = None) -> str:
    if action in ANSWER_ACTIONS:
        if isinstance(data, Mapping):
            for flag in ("correct", "isCorrect"):
                if flag in data:
                    return "Correct! Well done." if data[flag] else "Not quite - keep trying!"
        return "Thanks for your response!"
    if action in RESET_ACTIONS:
        return "Reset complete. Try again!"
    return _ACTION_RESPONSES.get(action, "Keep exploring!")


def template_educational_response(subject: Optional[str] = None) -> str:
    if subject:
        return (
            f"Let me help you with {subject}. I'll create some interactive content "
            "to explore this topic together."
        )
    return "That's a great question! Let me create some interactive content to help you explore this topic."


def template_welcome_message(subject: str, lesson_title: str, returning: bool = True) -> str:
    if returning:
        return f'Back to {subject}. Current lesson: "{lesson_title}".'
    return f'Starting {subject}. First lesson: "{lesson_title}".'
