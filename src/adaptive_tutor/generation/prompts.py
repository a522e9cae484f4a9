"""Chat message builders for every generation call the tutor service makes."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from adaptive_tutor.learning.models import ContentType, LearningProgress, Lesson, PlanStructure

Messages = List[Dict[str, str]]


def _messages(system: str, user: str) -> Messages:
    return [{"role": "system", "content": system}, {"role": "user", "content": user}]


# -- lesson plans ---------------------------------------------------------------


def lesson_structure_messages(subject: str) -> Messages:
    return _messages(
        f'You are an expert curriculum designer. Decide the best learning structure for "{subject}".',
        f"""Analyze "{subject}" and respond with JSON only:
{{
  "recommendedLessons": <integer between 6 and 15, scaled to complexity>,
  "complexity": "beginner" | "intermediate" | "advanced",
  "focusAreas": ["area", ...],
  "learningObjectives": ["objective", ...],
  "estimatedHoursPerLesson": <number between 0.5 and 3>,
  "prerequisites": ["prerequisite", ...],
  "reasoning": "why this structure suits the subject"
}}

Weigh the depth of the subject, its usual learning progression, the balance of theory
and practice, and what keeps students engaged.""",
    )


def lesson_plan_messages(subject: str, structure: PlanStructure) -> Messages:
    lessons = structure.recommended_lessons
    focus = ", ".join(structure.focus_areas) or "General"
    objectives = ", ".join(structure.learning_objectives) or "Comprehensive understanding"
    return _messages(
        "You are an expert curriculum designer writing a complete learning plan. "
        f"Produce exactly {lessons} progressive lessons, each building on the one before.",
        f"""Write a learning plan for "{subject}" with exactly {lessons} lessons.

Subject analysis:
- Complexity: {structure.complexity.value}
- Focus areas: {focus}
- Learning objectives: {objectives}

Respond with JSON only:
{{
  "subject": "{subject}",
  "lessons": [
    {{"id": "lesson-1", "title": "specific, engaging title", "description": "what is learned and why it matters", "completed": false}}
  ]
}}

Move from foundations to advanced material, avoid generic titles, and tie lessons to
real-world use where it fits.""",
    )


def simplified_plan_messages(subject: str) -> Messages:
    return _messages(
        "You are a tutor writing a short, practical learning plan.",
        f"""Write a 6-lesson learning plan for "{subject}" covering only the essential concepts.

Respond with JSON only:
{{"subject": "{subject}", "lessons": [{{"id": "lesson-1", "title": "...", "description": "...", "completed": false}}]}}""",
    )


def progress_criteria_messages(subject: str, complexity: str) -> Messages:
    return _messages(
        f'You are an expert in learning analytics choosing mastery criteria for "{subject}".',
        f"""Choose learning progress criteria for "{subject}" (complexity: {complexity}).

Respond with JSON only:
{{
  "minCorrectAnswers": <integer 2-5>,
  "minTotalAttempts": <integer 3-6>,
  "minAccuracy": <number 0.6-0.8>,
  "adaptiveFactors": {{
    "difficultyAdjustment": <number 0.8-1.2>,
    "engagementWeight": <number 0.1-0.3>,
    "retentionFactor": <number 0.7-0.9>
  }},
  "reasoning": "why these criteria fit the subject"
}}

Consider how abstract the subject is, typical learning curves, and the balance between
accuracy and exploration.""",
    )


# -- lesson content -------------------------------------------------------------

_CONTENT_SHAPES: Dict[ContentType, str] = {
    ContentType.MULTIPLE_CHOICE: """Write one multiple-choice question that checks real understanding, not recall.
{{"type": "multiple-choice", "data": {{"question": "...", "options": ["A", "B", "C", "D"], "correctAnswer": 0,
  "explanation": "why the answer is right and the others are not", "difficulty": "beginner|intermediate|advanced",
  "category": "{title}"}}}}""",
    ContentType.FILL_BLANK: """Write a fill-in-the-blank exercise whose blanks test key concepts.
{{"type": "fill-blank", "data": {{"question": "Complete this statement about {title}",
  "template": "Text with ___ blanks ___", "answers": ["...", "..."], "hints": ["...", "..."],
  "explanation": "...", "category": "{title}", "difficulty": "beginner|intermediate|advanced"}}}}""",
    ContentType.CONCEPT_CARD: """Write a concept card explaining the lesson's key ideas clearly.
{{"type": "concept-card", "data": {{"title": "{title}", "summary": "one sentence", "details": "2-3 sentences",
  "examples": ["...", "..."], "keyPoints": ["...", "...", "..."], "difficulty": "beginner|intermediate|advanced"}}}}""",
    ContentType.STEP_SOLVER: """Write a practical problem solved step by step with the lesson's concepts.
{{"type": "step-solver", "data": {{"problem": "...", "problemType": "{title}",
  "steps": [{{"id": "1", "description": "...", "calculation": "...", "result": "...", "explanation": "..."}}],
  "finalAnswer": "...", "difficulty": "beginner|intermediate|advanced", "learningObjective": "..."}}}}""",
    ContentType.EXPLAINER: """Write a structured explanation with 2-4 paragraphs per section.
{{"type": "explainer", "data": {{"title": "{title}", "overview": "1-2 sentences",
  "sections": [{{"heading": "What is {title}?", "paragraphs": ["..."]}}, {{"heading": "Key Components", "paragraphs": ["..."]}},
  {{"heading": "Real-World Applications", "paragraphs": ["..."]}}],
  "conclusion": "...", "difficulty": "beginner", "estimatedReadTime": 3}}}}""",
}


def content_messages(subject: str, lesson: Lesson, content_type: ContentType) -> Messages:
    context = f"Subject: {subject}\nLesson: {lesson.title}\nDescription: {lesson.description}"
    shape = _CONTENT_SHAPES.get(content_type)
    if shape is None:
        task = (
            f'Create educational content of type "{content_type.value}" for this lesson.\n'
            f'Respond with JSON: {{"type": "{content_type.value}", "data": {{...}}}} '
            "using a data structure that suits the widget."
        )
    else:
        task = shape.format(title=lesson.title) + "\nRespond with JSON only."
    return _messages(
        "You are an expert educational content creator. Build engaging, interactive "
        "content that helps students learn.",
        f"{context}\n\n{task}",
    )


def simplified_content_messages(lesson: Lesson, content_type: ContentType) -> Messages:
    return _messages(
        "You are a tutor writing simple educational content. Keep it short and practical.",
        f'Create simple "{content_type.value}" content about "{lesson.title}".\n'
        f'Respond with JSON only: {{"type": "{content_type.value}", "data": {{...}}}}',
    )


# -- tutor responses ------------------------------------------------------------

_ACTION_SITUATIONS: Dict[str, str] = {
    "needs_more_practice": "needs more practice. Point to what to focus on.",
    "continue_practicing": "is practicing but not ready to advance. Suggest one specific improvement.",
    "ready_for_practice": "is ready to practice. Acknowledge and mention new practice content.",
    "ready_for_next": "is ready to move on. Acknowledge and mention new practice content.",
    "explain_more": "wants more explanation. Acknowledge and mention extra detail is coming.",
    "concept_expanded": "wants a deeper explanation of a concept. Acknowledge briefly.",
    "examples_requested": "wants more examples. Acknowledge and mention examples are coming.",
    "question_requested": "wants to ask a question. Invite them to ask.",
    "detail_expanded": "opened a detail section. Acknowledge briefly.",
    "next_question": "asked for another question. Acknowledge the extra practice.",
    "next_exercise": "asked for another exercise. Acknowledge the extra practice.",
    "next_problem": "asked for another problem. Acknowledge the extra practice.",
    "quiz_started": "started a quiz. Offer brief encouragement.",
    "highlights_checked": "finished a text highlighting exercise. Comment on their analysis.",
    "graph_control_changed": "adjusted the graph controls. Acknowledge the exploration.",
    "contextual_content_request": "asked a question. Acknowledge and mention relevant content is coming.",
}

RESET_ACTIONS = frozenset(
    {"reset_question", "fill_blank_reset", "drag_drop_reset", "solver_reset", "quiz_reset", "graph_reset"}
)


def _answer_situation(action: str, data: Mapping[str, Any]) -> Optional[str]:
    if action == "quiz_submitted" and "score" in data:
        score = data["score"]
        if score >= 80:
            return f"scored {score}% on the quiz. Congratulate them briefly."
        return f"scored {score}% on the quiz. Encourage a review and another try."
    if action == "highlights_checked" and "correctHighlights" in data:
        return (
            f"highlighted {data['correctHighlights']} key points correctly. "
            "Comment on their text analysis."
        )
    if action == "graph_control_changed" and "parameter" in data:
        return f"adjusted the {data['parameter']} on the graph. Acknowledge the exploration."
    for flag in ("correct", "isCorrect"):
        if action.endswith("_submitted") and flag in data:
            if data[flag]:
                return "answered correctly. Confirm briefly and suggest continuing."
            return "answered incorrectly. Give brief feedback on trying again."
    if action.endswith("_submitted"):
        return "submitted an answer. Acknowledge it briefly."
    return None


def tutor_response_messages(
    subject: str, action: str, data: Any = None, context: Any = None
) -> Messages:
    payload = data if isinstance(data, Mapping) else {}
    situation = _answer_situation(action, payload)
    if situation is None and action == "contextual_content_request" and isinstance(context, Mapping):
        lesson = context.get("lesson") or {}
        title = lesson.get("title") if isinstance(lesson, Mapping) else None
        situation = f"asked about {title or 'this topic'}. Acknowledge and mention relevant content is coming."
    if situation is None and action in RESET_ACTIONS:
        situation = "reset the exercise. Encourage another try in one sentence."
    if situation is None:
        situation = _ACTION_SITUATIONS.get(
            action, f'performed the action "{action}". Respond briefly and directly.'
        )
    return _messages(
        "You are a direct, helpful tutor. Give clear, concise feedback without excessive "
        "encouragement. Stay under two sentences and focus on next steps.",
        f"You are tutoring a student in {subject}. The student {situation} (1-2 sentences max)",
    )


def simplified_tutor_response_messages(action: str) -> Messages:
    return _messages(
        "You are a direct tutor. Reply in one short sentence specific to the action.",
        f'The student performed "{action}". Respond in one sentence.',
    )


def educational_response_messages(
    question: str, subject: Optional[str] = None, context: Optional[Mapping[str, Any]] = None
) -> Messages:
    context = context or {}
    framing = f"The student is learning {subject}" if subject else "General educational question"
    if context.get("currentLesson"):
        framing += f' and is on the lesson "{context["currentLesson"]}"'
    if context.get("difficulty"):
        framing += f" at {context['difficulty']} level"
    return _messages(
        "You are an expert educator. Answer educational questions directly and specifically, "
        "with practical, actionable information. Be comprehensive but concise.",
        f"""{framing}.

Question: "{question}"

Answer directly. For questions about what to learn, list the specific topics or skills
from fundamental to advanced with practical tips. For explanations, be clear, use
examples and connect the idea to the wider subject. Skip filler such as "great question".""",
    )


def welcome_messages(
    subject: str,
    lesson_title: str,
    lesson_index: int,
    progress: Optional[LearningProgress] = None,
    returning: bool = True,
) -> Messages:
    system = (
        "You are a direct tutor writing brief, informative welcome messages about the "
        "current lesson and progress. Stay under two sentences."
    )
    if not returning:
        return _messages(
            system,
            f'Write a welcome message for a student starting {subject}. '
            f'The first lesson is "{lesson_title}". State that they are starting and name the lesson.',
        )
    progress = progress or LearningProgress()
    accuracy = round(progress.accuracy * 100)
    return _messages(
        system,
        f"""Write a welcome back message for a student returning to {subject}.

- Current lesson: {lesson_index + 1} - "{lesson_title}"
- Progress: {progress.correct_answers}/{progress.total_attempts} correct ({accuracy}% accuracy)

Mention the subject and the current lesson; note progress only if it is relevant.""",
    )
