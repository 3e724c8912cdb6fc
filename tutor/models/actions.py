"""
Typed Action Models

The action vocabulary the tutor is prompted with is fixed, so each known
action gets its own model with explicit required and optional fields.
`to_typed_action` turns a parsed `ActionDirective` into one of these.
"""

import re
from typing import Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from tutor.exceptions import DirectiveValidationError
from tutor.models.directives import ActionDirective

_SLUG_INVALID = re.compile(r"[^a-zA-Z0-9\-_]")


def clean_slug(value: str) -> str:
    """Keep only slug characters, lowercased."""
    return _SLUG_INVALID.sub("", value.strip()).lower()


class _TypedAction(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class _SlugAction(_TypedAction):
    slug: str

    @field_validator("slug")
    @classmethod
    def _normalize_slug(cls, value: str) -> str:
        slug = clean_slug(value)
        if not slug:
            raise ValueError("slug is empty after normalization")
        return slug


class CreateCourseAction(_TypedAction):
    name: Literal["create_course"] = "create_course"
    course_name: str = "New Course"
    syllabus: str = ""


class OpenCourseModalAction(_TypedAction):
    name: Literal["open_course_modal"] = "open_course_modal"


class NavigateAction(_TypedAction):
    name: Literal["navigate"] = "navigate"
    path: str

    @field_validator("path")
    @classmethod
    def _require_absolute(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("path must start with '/'")
        return value


class NavigateCourseAction(_SlugAction):
    name: Literal["navigate_course"] = "navigate_course"


class OpenFlashcardsAction(_SlugAction):
    name: Literal["open_flashcards"] = "open_flashcards"


class SetExamDateAction(_SlugAction):
    name: Literal["set_exam_date"] = "set_exam_date"
    date: str


class FetchPracticeLogsAction(_SlugAction):
    name: Literal["fetch_practice_logs"] = "fetch_practice_logs"


class FetchExamSnipeDataAction(_TypedAction):
    """Matched by course name first, so the slug may be free text."""

    name: Literal["fetch_exam_snipe_data"] = "fetch_exam_snipe_data"
    slug: str


class StartPracticeAction(_SlugAction):
    name: Literal["start_practice"] = "start_practice"
    topic: Optional[str] = None


TypedAction = Union[
    CreateCourseAction,
    OpenCourseModalAction,
    NavigateAction,
    NavigateCourseAction,
    OpenFlashcardsAction,
    SetExamDateAction,
    FetchPracticeLogsAction,
    FetchExamSnipeDataAction,
    StartPracticeAction,
]

ACTION_MODELS: dict[str, type[_TypedAction]] = {
    "create_course": CreateCourseAction,
    "open_course_modal": OpenCourseModalAction,
    "navigate": NavigateAction,
    "navigate_course": NavigateCourseAction,
    "open_flashcards": OpenFlashcardsAction,
    "set_exam_date": SetExamDateAction,
    "fetch_practice_logs": FetchPracticeLogsAction,
    "fetch_exam_snipe_data": FetchExamSnipeDataAction,
    "start_practice": StartPracticeAction,
}


def to_typed_action(directive: ActionDirective) -> Optional[TypedAction]:
    """
    Convert a parsed action into its typed model.

    Returns None for actions outside the known vocabulary.

    Raises:
        DirectiveValidationError: required parameters are missing or invalid
    """
    model = ACTION_MODELS.get(directive.name)
    if model is None:
        return None

    params = dict(directive.params)
    if model is CreateCourseAction and "name" in params:
        # `name` is the discriminator on the typed model
        params["course_name"] = params.pop("name")
    params.pop("name", None)

    try:
        return model.model_validate(params)
    except ValidationError as e:
        errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise DirectiveValidationError(action_name=directive.name, errors=errors) from e
