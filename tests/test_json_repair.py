"""Tests for cleaning and repairing model JSON output."""

from __future__ import annotations

import json

import pytest

from adaptive_tutor.generation.errors import StructuralError
from adaptive_tutor.generation.json_repair import (
    UnrecoverableJSONError,
    clean_json_response,
    parse_json,
    repair_json,
)
from adaptive_tutor.generation.orchestrator import model_parser
from adaptive_tutor.learning.models import LessonContent


def test_valid_json_is_returned_unchanged():
    text = '{"type": "concept-card", "data": {"title": "Limits"}}'
    assert repair_json(text) == text


def test_code_fences_are_stripped():
    """Markdown fences around the payload are removed before parsing."""
    fenced = '```json\n{"a": 1}\n```'
    assert clean_json_response(fenced) == '{"a": 1}'
    assert parse_json(fenced) == {"a": 1}


def test_truncated_object_and_array_are_closed():
    """Missing closers are appended innermost first."""
    assert json.loads(repair_json('{"a": 1, "b": [1, 2')) == {"a": 1, "b": [1, 2]}


def test_dangling_comma_is_dropped():
    assert json.loads(repair_json('{"a": [1, 2,')) == {"a": [1, 2]}


def test_unterminated_string_is_closed():
    assert json.loads(repair_json('{"summary": "Limits describe')) == {"summary": "Limits describe"}


def test_unquoted_keys_and_trailing_commas_are_fixed():
    assert json.loads(repair_json("{a: 1, b: [1, 2,],}")) == {"a": 1, "b": [1, 2]}


def test_brackets_inside_strings_are_ignored():
    """Patches act only outside string literals."""
    repaired = repair_json('{"text": "use {x}, [y] and z:", "n": 1')
    assert json.loads(repaired) == {"text": "use {x}, [y] and z:", "n": 1}


def test_escaped_quotes_do_not_end_a_string():
    repaired = repair_json('{"quote": "she said \\"hi\\"", "n": 2')
    assert json.loads(repaired) == {"quote": 'she said "hi"', "n": 2}


def test_dangling_key_is_cut_back_to_last_complete_member():
    """When balancing alone fails, the text is cut back to an earlier boundary."""
    assert json.loads(repair_json('{"a": 1, "b"')) == {"a": 1}


def test_truncated_plan_keeps_complete_lessons():
    raw = '{"lessons": [{"id": "l1"}, {"id": "l2", "title": tru'
    assert json.loads(repair_json(raw)) == {"lessons": [{"id": "l1"}, {"id": "l2"}]}


def test_short_garbage_becomes_placeholder():
    """Short unparseable text is wrapped in a placeholder content object."""
    result = json.loads(repair_json("not json at all"))
    assert result == {"type": "placeholder", "data": {"text": "not json at all"}}


def test_long_garbage_is_unrecoverable():
    with pytest.raises(UnrecoverableJSONError) as excinfo:
        repair_json("x" * 150)
    assert isinstance(excinfo.value, StructuralError)


def test_parse_json_handles_fenced_truncated_content():
    raw = '```json\n{"type": "multiple-choice", "data": {"question": "2+2?", "options": ["3", "4"'
    assert parse_json(raw) == {
        "type": "multiple-choice",
        "data": {"question": "2+2?", "options": ["3", "4"]},
    }


def test_fences_inside_string_values_are_preserved():
    """Only the outer fences are stripped; code samples in values survive intact."""
    plain = json.dumps({"type": "explainer", "data": {"body": "Use ```json to open a block"}})
    assert parse_json(plain)["data"]["body"] == "Use ```json to open a block"

    sample = "```python\nprint(1)\n```"
    fenced = "```json\n" + json.dumps({"type": "concept-card", "data": {"examples": [sample]}}) + "\n```"
    assert parse_json(fenced)["data"]["examples"] == [sample]


def test_model_parser_keeps_code_samples_in_content():
    sample = "```python\nprint(1)\n```"
    raw = "```json\n" + json.dumps({"type": "concept-card", "data": {"examples": [sample]}}) + "\n```"

    content = model_parser(LessonContent)(raw)

    assert content.data["examples"] == [sample]
