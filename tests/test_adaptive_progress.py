"""Tests for adaptive readiness, review flags and lesson navigation."""

from __future__ import annotations

import random

import pytest
from pydantic import ValidationError

from adaptive_tutor.learning.criteria import default_criteria, subject_family
from adaptive_tutor.learning.models import (
    ConceptInfo,
    LearningProgress,
    Lesson,
    LessonPlan,
    ProgressCriteria,
    ProgressState,
)
from adaptive_tutor.learning.progress import AdaptiveProgressEngine
from adaptive_tutor.learning.variety import ContentVarietyTracker

ALGEBRA_CRITERIA = {
    "minCorrectAnswers": 4,
    "minTotalAttempts": 5,
    "minAccuracy": 0.75,
    "adaptiveFactors": {
        "difficultyAdjustment": 1.0,
        "engagementWeight": 0.15,
        "retentionFactor": 0.85,
    },
}


@pytest.fixture
def tracker(clock):
    return ContentVarietyTracker(clock=clock)


@pytest.fixture
def engine(tracker):
    """Engine with a two-lesson Algebra plan, explicit criteria and fresh progress."""
    engine = AdaptiveProgressEngine(tracker)
    engine.load_lesson_plan(
        "Algebra",
        {
            "subject": "Algebra",
            "lessons": [
                {
                    "id": "lesson-1",
                    "title": "Variables",
                    "concepts": [
                        {"id": "c1", "name": "Symbols"},
                        {"id": "c2", "name": "Expressions", "difficulty": "Intermediate"},
                    ],
                },
                {"id": "lesson-2", "title": "Linear Equations"},
            ],
        },
    )
    engine.set_criteria("Algebra", ALGEBRA_CRITERIA)
    engine.reset_progress("Algebra")
    return engine


def answer(engine, results, lesson_id=None):
    progress = None
    for is_correct in results:
        progress = engine.update_progress("Algebra", is_correct, lesson_id)
    return progress


def test_ready_for_next_after_four_of_five_with_varied_content(engine, tracker):
    """4/5 correct with three items across two types clears adjusted thresholds."""
    tracker.record("Algebra", "lesson-1", "multiple-choice", {})
    tracker.record("Algebra", "lesson-1", "fill-blank", {})
    tracker.record("Algebra", "lesson-1", "multiple-choice", {})

    # Engagement 0.9 lifts the accuracy bar to 0.795.
    before_last = answer(engine, [True, True, False, True], "lesson-1")
    assert not before_last.ready_for_next, "Four attempts are below the attempt minimum"

    progress = engine.update_progress("Algebra", True, "lesson-1")
    assert progress.correct_answers == 4
    assert progress.total_attempts == 5
    assert progress.ready_for_next
    assert not progress.needs_review
    assert engine.state("Algebra") is ProgressState.READY_FOR_NEXT


def test_missing_variety_blocks_readiness(engine, tracker):
    tracker.record("Algebra", "lesson-1", "multiple-choice", {})

    progress = answer(engine, [True, True, True, True, True], "lesson-1")

    assert not progress.ready_for_next, "A single content item is not enough variety"


def test_low_accuracy_needs_review(engine):
    """1/4 correct falls below 80% of the adjusted accuracy."""
    progress = answer(engine, [True, False, False, False])

    assert progress.needs_review
    assert not progress.ready_for_next
    assert engine.state("Algebra") is ProgressState.NEEDS_REVIEW


def test_heuristic_criteria_apply_without_stored_criteria(tracker):
    """Math presets scale the correct-answer minimum by 1.1, so 4/5 is not enough."""
    engine = AdaptiveProgressEngine(tracker)
    engine.load_lesson_plan("Algebra", LessonPlan(subject="Algebra", lessons=[Lesson(id="l1", title="Intro")]))
    engine.reset_progress("Algebra")

    progress = answer(engine, [True, True, True, True, False])

    assert engine.get_criteria("Algebra") == default_criteria("Algebra")
    assert not progress.ready_for_next
    assert answer(engine, [True]).ready_for_next


def test_update_without_progress_returns_none(tracker):
    engine = AdaptiveProgressEngine(tracker)
    assert engine.update_progress("Chemistry", True) is None
    assert engine.state("Chemistry") is ProgressState.NOT_STARTED


def test_advance_moves_to_next_lesson_and_resets(engine, tracker):
    tracker.record("Algebra", "lesson-1", "multiple-choice", {})
    answer(engine, [True, True])

    assert engine.advance_to_next_lesson("Algebra")

    plan = engine.get_lesson_plan("Algebra")
    assert plan.current_lesson_index == 1
    assert plan.lessons[0].completed
    assert tracker.history("Algebra", "lesson-1") == [], "Completed lesson history is cleared"
    assert engine.get_progress("Algebra") == LearningProgress()


def test_advance_at_last_lesson_fails_without_change(engine):
    """At the last lesson advancing is refused and the index stays put."""
    assert engine.advance_to_next_lesson("Algebra")
    answer(engine, [True])

    assert not engine.advance_to_next_lesson("Algebra")

    plan = engine.get_lesson_plan("Algebra")
    assert plan.current_lesson_index == 1
    assert not plan.lessons[1].completed
    assert engine.get_progress("Algebra").total_attempts == 1


def test_advance_without_plan_fails(tracker):
    assert not AdaptiveProgressEngine(tracker).advance_to_next_lesson("History")


def test_complete_final_lesson_once_ready(engine):
    engine.advance_to_next_lesson("Algebra")
    assert not engine.complete_current_lesson("Algebra"), "Not ready yet"

    answer(engine, [True] * 5)
    assert engine.complete_current_lesson("Algebra")
    assert engine.state("Algebra") is ProgressState.COMPLETED


def test_concepts_are_walked_in_order(engine):
    assert engine.current_concept("Algebra").name == "Symbols"
    assert engine.advance_concept("Algebra")
    concept = engine.current_concept("Algebra")
    assert concept.name == "Expressions"
    assert concept.difficulty.value == "intermediate"
    assert not engine.advance_concept("Algebra"), "No concept after the last one"

    engine.advance_to_next_lesson("Algebra")
    assert engine.current_concept("Algebra") is None


def test_concept_index_is_clamped_on_load():
    lesson = Lesson(
        id="l1",
        title="Sets",
        concepts=[ConceptInfo(id="c1", name="Union")],
        current_concept_index=5,
    )
    assert lesson.current_concept_index == 0
    assert Lesson(id="l2", title="Empty", current_concept_index=2).current_concept_index is None


def test_progress_snapshot_validation(engine):
    """Snapshots use camelCase keys and must keep correct answers within attempts."""
    loaded = engine.load_progress("Algebra", {"correctAnswers": 2, "totalAttempts": 3})
    assert loaded.accuracy == pytest.approx(2 / 3)
    assert loaded.to_payload() == {
        "correctAnswers": 2,
        "totalAttempts": 3,
        "needsReview": False,
        "readyForNext": False,
    }
    with pytest.raises(ValidationError):
        engine.load_progress("Algebra", {"correctAnswers": 4, "totalAttempts": 3})


def test_readers_return_copies(engine):
    plan = engine.get_lesson_plan("Algebra")
    plan.lessons[0].completed = True
    assert not engine.get_lesson_plan("Algebra").lessons[0].completed


def test_clear_subject_and_all(engine, tracker):
    tracker.record("Algebra", "lesson-1", "multiple-choice", {})
    assert engine.subjects() == ["Algebra"]

    engine.clear_subject("Algebra")
    assert engine.get_lesson_plan("Algebra") is None
    assert engine.get_progress("Algebra") is None
    assert tracker.history("Algebra", "lesson-1") == []
    assert engine.subjects() == []


@pytest.mark.parametrize(
    "subject, family",
    [
        ("AP Calculus", "math_science"),
        ("Creative Writing", "language_arts"),
        ("Music Theory", "creative"),
        ("World History", "social_studies"),
        ("Cooking", "general"),
    ],
)
def test_subject_families(subject, family):
    assert subject_family(subject) == family


def test_criteria_ranges_are_validated():
    with pytest.raises(ValidationError):
        ProgressCriteria(min_correct_answers=0, min_total_attempts=3, min_accuracy=0.7)


def test_loaded_snapshots_are_not_mutated_by_the_engine(tracker):
    """The engine keeps its own copies of loaded plan and progress models."""
    engine = AdaptiveProgressEngine(tracker)
    plan = LessonPlan(
        subject="Algebra",
        lessons=[Lesson(id="l1", title="Variables"), Lesson(id="l2", title="Equations")],
    )
    progress = LearningProgress(correct_answers=1, total_attempts=2)
    engine.load_lesson_plan("Algebra", plan)
    engine.load_progress("Algebra", progress)

    engine.update_progress("Algebra", True)
    engine.advance_to_next_lesson("Algebra")

    assert (progress.correct_answers, progress.total_attempts) == (1, 2)
    assert plan.current_lesson_index == 0
    assert not plan.lessons[0].completed
    assert engine.get_lesson_plan("Algebra").current_lesson_index == 1


def answer_sequence(seed: int, length: int = 40):
    rng = random.Random(seed)
    return [rng.random() < 0.7 for _ in range(length)]


@pytest.mark.parametrize("seed", [3, 11, 29])
@pytest.mark.parametrize(
    "subject, criteria",
    [
        ("Algebra", None),
        ("Creative Writing", None),
        ("Music Theory", None),
        ("World History", None),
        ("Cooking", None),
        ("Algebra", ALGEBRA_CRITERIA),
    ],
)
def test_progress_counters_and_readiness_stay_consistent(tracker, subject, criteria, seed):
    """Over any answer sequence correct answers never exceed attempts, and readiness
    never precedes the attempt minimum, even when the difficulty adjustment is below 1."""
    engine = AdaptiveProgressEngine(tracker)
    engine.load_lesson_plan(subject, LessonPlan(subject=subject, lessons=[Lesson(id="l1", title="Intro")]))
    if criteria is not None:
        engine.set_criteria(subject, criteria)
    engine.reset_progress(subject)
    min_attempts = engine.get_criteria(subject).min_total_attempts

    previous_correct = 0
    for step, is_correct in enumerate(answer_sequence(seed), start=1):
        progress = engine.update_progress(subject, is_correct)

        assert progress.total_attempts == step
        assert progress.correct_answers <= progress.total_attempts
        assert progress.correct_answers >= previous_correct
        if progress.total_attempts < min_attempts:
            assert not progress.ready_for_next, f"Ready after only {step} attempts"
        previous_correct = progress.correct_answers
