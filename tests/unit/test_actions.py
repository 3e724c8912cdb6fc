"""Unit tests for typed action conversion."""

import pytest

from tutor.exceptions import DirectiveValidationError
from tutor.models.actions import (
    ACTION_MODELS,
    CreateCourseAction,
    FetchExamSnipeDataAction,
    NavigateAction,
    SetExamDateAction,
    StartPracticeAction,
    clean_slug,
    to_typed_action,
)
from tutor.models.directives import ActionDirective


def _action(action_name, **params):
    return ActionDirective(name=action_name, params=params)


class TestToTypedAction:
    """Tests for converting parsed actions into typed models."""

    def test_create_course_name_maps_to_course_name(self):
        action = to_typed_action(_action("create_course", name="Linear Algebra", syllabus="Vectors"))

        assert action == CreateCourseAction(course_name="Linear Algebra", syllabus="Vectors")
        assert action.name == "create_course"

    def test_create_course_defaults(self):
        action = to_typed_action(_action("create_course"))
        assert action.course_name == "New Course"
        assert action.syllabus == ""

    def test_set_exam_date(self):
        action = to_typed_action(_action("set_exam_date", slug="x", date="5 days"))
        assert action == SetExamDateAction(slug="x", date="5 days")

    def test_set_exam_date_requires_date(self):
        with pytest.raises(DirectiveValidationError) as exc_info:
            to_typed_action(_action("set_exam_date", slug="x"))

        assert exc_info.value.action_name == "set_exam_date"
        assert any(error.startswith("date:") for error in exc_info.value.errors)

    def test_slug_is_normalized(self):
        action = to_typed_action(_action("navigate_course", slug="  Signals-101! "))
        assert action.slug == "signals-101"

    def test_slug_that_normalizes_to_empty_is_invalid(self):
        with pytest.raises(DirectiveValidationError):
            to_typed_action(_action("open_flashcards", slug="!!!"))

    def test_navigate_requires_absolute_path(self):
        assert to_typed_action(_action("navigate", path="/quicklearn")) == NavigateAction(path="/quicklearn")
        with pytest.raises(DirectiveValidationError, match="navigate"):
            to_typed_action(_action("navigate", path="quicklearn"))

    def test_exam_snipe_slug_keeps_free_text(self):
        action = to_typed_action(_action("fetch_exam_snipe_data", slug="Signaler och System"))
        assert action == FetchExamSnipeDataAction(slug="Signaler och System")

    def test_start_practice_optional_topic(self):
        assert to_typed_action(_action("start_practice", slug="bio")).topic is None
        action = to_typed_action(_action("start_practice", slug="bio", topic="Cells"))
        assert action == StartPracticeAction(slug="bio", topic="Cells")

    def test_unknown_params_ignored(self):
        action = to_typed_action(_action("open_course_modal", color="blue"))
        assert action.name == "open_course_modal"

    def test_unknown_action_returns_none(self):
        assert to_typed_action(_action("play_music", slug="x")) is None

    def test_vocabulary(self):
        assert set(ACTION_MODELS) == {
            "create_course",
            "open_course_modal",
            "navigate",
            "navigate_course",
            "open_flashcards",
            "set_exam_date",
            "fetch_practice_logs",
            "fetch_exam_snipe_data",
            "start_practice",
        }


class TestCleanSlug:
    def test_clean_slug(self):
        assert clean_slug(" Math_101 (v2) ") == "math_101v2"
