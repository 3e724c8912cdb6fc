"""
Directive Models

Structured commands extracted from tutor output. Directives are pure data:
they are produced by the directive parser and consumed once by the dispatcher.
"""

from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field


class ActionDirective(BaseModel):
    """`ACTION:<name>|key:value...`"""

    model_config = ConfigDict(frozen=True)

    kind: Literal["action"] = "action"
    name: str
    params: dict[str, str] = Field(default_factory=dict)


class ButtonDirective(BaseModel):
    """`BUTTON:<id>|label:...|action:...`"""

    model_config = ConfigDict(frozen=True)

    kind: Literal["button"] = "button"
    id: str
    label: str = "Button"
    action: Optional[str] = None
    params: dict[str, str] = Field(default_factory=dict)


class FileUploadDirective(BaseModel):
    """`FILE_UPLOAD:<id>|message:...|action:...|buttonLabel:...`"""

    model_config = ConfigDict(frozen=True)

    kind: Literal["file_upload"] = "file_upload"
    id: str
    message: str = "Upload files"
    action: str = "generate_course"
    button_label: str = "Generate"
    params: dict[str, str] = Field(default_factory=dict)


Directive = Annotated[
    Union[ActionDirective, ButtonDirective, FileUploadDirective],
    Field(discriminator="kind"),
]


class HighlightSpan(BaseModel):
    """A `◊`-delimited run of display text. `complete` is False while unterminated."""

    model_config = ConfigDict(frozen=True)

    text: str
    start: int
    end: int
    complete: bool = True


class TextSegment(BaseModel):
    """Plain text between highlight spans."""

    model_config = ConfigDict(frozen=True)

    text: str


class ParseResult(BaseModel):
    """Cleaned display text plus the directives found in one buffer."""

    model_config = ConfigDict(frozen=True)

    display_text: str = ""
    directives: list[Directive] = Field(default_factory=list)
    highlights: list[HighlightSpan] = Field(default_factory=list)

    @property
    def actions(self) -> list[ActionDirective]:
        return [d for d in self.directives if isinstance(d, ActionDirective)]

    @property
    def ui_elements(self) -> list[Union[ButtonDirective, FileUploadDirective]]:
        return [d for d in self.directives if not isinstance(d, ActionDirective)]

    @property
    def question(self) -> Optional[str]:
        """Text of the first complete highlight span, used as the practice question."""
        for span in self.highlights:
            if span.complete and span.text:
                return span.text
        return None
