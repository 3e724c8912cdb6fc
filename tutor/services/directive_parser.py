"""
Directive stream parser.

Turns the accumulated text of a tutor reply into cleaned display text plus the
directives embedded in it. The caller re-parses the *whole* buffer after every
fragment, because a directive token may straddle fragment boundaries; `parse`
is therefore a pure function of the buffer and converges to the same result
no matter how the text was split.

Directive grammar (one directive per line, no nesting or escaping):

    ACTION:<name>[|key:value|key:value...]
    BUTTON:<id>[|label:...|action:...|key:value...]
    FILE_UPLOAD:<id>[|message:...|action:...|buttonLabel:...|key:value...]

Inline highlights are bounded by the lozenge character `◊`. An unterminated
opening delimiter marks a tentative span running to the end of the text.
"""

import re
from typing import Callable, Union

from tutor.models.directives import (
    ActionDirective,
    ButtonDirective,
    FileUploadDirective,
    HighlightSpan,
    ParseResult,
    TextSegment,
)

HIGHLIGHT_DELIMITER = "◊"

# Values of these keys are natural language and keep their spaces
FREE_TEXT_PARAMS = frozenset({
    "topic",
    "name",
    "syllabus",
    "message",
    "label",
    "buttonLabel",
    "description",
    "date",
    "title",
})

DEFAULT_BUTTON_LABEL = "Button"
DEFAULT_UPLOAD_MESSAGE = "Upload files"
DEFAULT_UPLOAD_ACTION = "generate_course"
DEFAULT_UPLOAD_BUTTON_LABEL = "Generate"

_KEYWORDS = ("ACTION", "BUTTON", "FILE_UPLOAD")


def _token_pattern(keyword: str) -> re.Pattern:
    # Leading blanks belong to the token; the keyword must start a word and
    # the token always runs to end of line.
    return re.compile(
        rf"[ \t]*(?<!\w){keyword}:(?P<name>[A-Za-z0-9_-]+)(?P<rest>[^\n\r]*)"
    )


_ACTION_RE = _token_pattern("ACTION")
_BUTTON_RE = _token_pattern("BUTTON")
_FILE_UPLOAD_RE = _token_pattern("FILE_UPLOAD")

_WHITESPACE_RE = re.compile(r"\s")
_BLANK_RUN_RE = re.compile(r"\r?\n(?:[ \t\r]*\n){2,}")


def _partial_keyword_pattern() -> re.Pattern:
    prefixes = {
        f"{keyword}:"[:length]
        for keyword in _KEYWORDS
        for length in range(2, len(keyword) + 2)
    }
    alternatives = "|".join(re.escape(p) for p in sorted(prefixes, key=len, reverse=True))
    return re.compile(rf"[ \t]*(?<!\w)(?:{alternatives})\Z")


_PARTIAL_KEYWORD_RE = _partial_keyword_pattern()


def parse_params(rest: str) -> dict[str, str]:
    """
    Parse the `|key:value|key:value` segments following a directive name.

    Text before the first pipe is not a parameter and is ignored. Segments
    without a colon or with an empty key are dropped; the rest of the
    directive is kept. Values stop at the first whitespace unless the key is a
    free-text parameter. Empty values are dropped.
    """
    params: dict[str, str] = {}
    for segment in rest.split("|")[1:]:
        key, sep, value = segment.partition(":")
        if not sep:
            continue
        key = key.strip()
        value = value.strip()
        if not key:
            continue
        if key not in FREE_TEXT_PARAMS:
            value = _WHITESPACE_RE.split(value, maxsplit=1)[0]
        if value:
            params[key] = value
    return params


def _build_action(match: re.Match) -> ActionDirective:
    return ActionDirective(
        name=match.group("name"),
        params=parse_params(match.group("rest")),
    )


def _build_button(match: re.Match) -> ButtonDirective:
    params = parse_params(match.group("rest"))
    label = params.pop("label", DEFAULT_BUTTON_LABEL)
    action = params.pop("action", None)
    return ButtonDirective(id=match.group("name"), label=label, action=action, params=params)


def _build_file_upload(match: re.Match) -> FileUploadDirective:
    params = parse_params(match.group("rest"))
    return FileUploadDirective(
        id=match.group("name"),
        message=params.pop("message", DEFAULT_UPLOAD_MESSAGE),
        action=params.pop("action", DEFAULT_UPLOAD_ACTION),
        button_label=params.pop("buttonLabel", DEFAULT_UPLOAD_BUTTON_LABEL),
        params=params,
    )


_SCANNERS: tuple[tuple[re.Pattern, Callable], ...] = (
    (_ACTION_RE, _build_action),
    (_BUTTON_RE, _build_button),
    (_FILE_UPLOAD_RE, _build_file_upload),
)


def _scan_tokens(buffer: str) -> list[tuple[int, int, object]]:
    """Scan each token family independently, then merge in buffer order."""
    found = []
    for pattern, build in _SCANNERS:
        for match in pattern.finditer(buffer):
            found.append((match.start(), match.end(), build(match)))
    found.sort(key=lambda item: item[0])

    # A token runs to end of line, so anything starting inside it is parameter text
    tokens = []
    last_end = -1
    for start, end, directive in found:
        if start < last_end:
            continue
        tokens.append((start, end, directive))
        last_end = end
    return tokens


def clean_display_text(text: str) -> str:
    """Collapse runs of blank lines to a single blank line and trim."""
    return _BLANK_RUN_RE.sub("\n\n", text).strip()


def parse(buffer: str, *, streaming: bool = False) -> ParseResult:
    """
    Extract directives and highlights from the accumulated buffer.

    Args:
        buffer: Full text received so far (not just the newest fragment)
        streaming: True while more text may still arrive. A trailing partial
            directive keyword is then withheld from the display text.

    Returns:
        ParseResult with display text, directives in token order and
        highlight spans over the display text
    """
    tokens = _scan_tokens(buffer)

    pieces = []
    cursor = 0
    for start, end, _ in tokens:
        pieces.append(buffer[cursor:start])
        cursor = end
    pieces.append(buffer[cursor:])
    remaining = "".join(pieces)

    if streaming:
        remaining = _PARTIAL_KEYWORD_RE.sub("", remaining)

    display_text = clean_display_text(remaining)
    return ParseResult(
        display_text=display_text,
        directives=[directive for _, _, directive in tokens],
        highlights=find_highlights(display_text),
    )


def find_highlights(text: str) -> list[HighlightSpan]:
    """Locate `◊...◊` spans; an unterminated span runs to the end of the text."""
    spans = []
    search_from = 0
    while True:
        open_index = text.find(HIGHLIGHT_DELIMITER, search_from)
        if open_index == -1:
            break
        close_index = text.find(HIGHLIGHT_DELIMITER, open_index + 1)
        if close_index == -1:
            spans.append(HighlightSpan(
                text=text[open_index + 1:].strip(),
                start=open_index,
                end=len(text),
                complete=False,
            ))
            break
        spans.append(HighlightSpan(
            text=text[open_index + 1:close_index].strip(),
            start=open_index,
            end=close_index + 1,
        ))
        search_from = close_index + 1
    return spans


def split_highlights(text: str) -> list[Union[TextSegment, HighlightSpan]]:
    """Split display text into plain segments and highlight spans, in order."""
    parts: list[Union[TextSegment, HighlightSpan]] = []
    cursor = 0
    for span in find_highlights(text):
        if span.start > cursor:
            parts.append(TextSegment(text=text[cursor:span.start]))
        parts.append(span)
        cursor = span.end
    if cursor < len(text):
        parts.append(TextSegment(text=text[cursor:]))
    return parts


_HTML_TAG_RE = re.compile(r"<[^>]*>")
_HEADING_RE = re.compile(r"#{1,6}\s")


def strip_markup(text: str) -> str:
    """Plain-text preview: drop highlight delimiters, HTML tags, bold markers and headings."""
    text = text.replace(HIGHLIGHT_DELIMITER, "")
    text = _HTML_TAG_RE.sub("", text)
    text = text.replace("**", "")
    return _HEADING_RE.sub("", text)
