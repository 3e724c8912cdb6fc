"""
Document token-budget truncation.

Source documents are inlined into a request in priority order (earlier is more
important) until a character budget derived from the model's token window is
spent. Each included document is introduced by a labelled header. Once one
document is cut short, nothing after it is included, so the emitted text is
always a prefix of the ordered input and easy to explain.
"""

import json
import logging
import math
import re
from typing import Iterable, Literal, Optional

from pydantic import BaseModel, Field

from config import Settings, get_settings

logger = logging.getLogger(__name__)

DEFAULT_CHARS_PER_TOKEN = 4
HEADER_TEMPLATE = "\n\n=== FILE: {label} ===\n"

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0E-\x1F]")


class SourceDocument(BaseModel):
    """A labelled bulk text, e.g. an extracted PDF or a pasted syllabus."""

    label: str
    text: str = ""


class DocumentUsage(BaseModel):
    """How much of one document made it into the output."""

    label: str
    original_chars: int
    emitted_chars: int = 0
    status: Literal["full", "partial", "dropped"] = "dropped"


class TruncationResult(BaseModel):
    text: str = ""
    usages: list[DocumentUsage] = Field(default_factory=list)

    @property
    def truncated(self) -> bool:
        return any(u.status != "full" for u in self.usages)


def estimate_tokens(text: str, chars_per_token: int = DEFAULT_CHARS_PER_TOKEN) -> int:
    """Rough token count for a text (ceil of chars / ratio)."""
    return math.ceil(len(text) / chars_per_token)


def chars_for_tokens(tokens: int, chars_per_token: int = DEFAULT_CHARS_PER_TOKEN) -> int:
    """Character budget corresponding to a token budget."""
    return max(0, tokens) * chars_per_token


def normalize_document_text(text: str) -> str:
    return _CONTROL_CHARS_RE.sub("", text or "").strip()


def plan_truncation(
    documents: Iterable[SourceDocument],
    max_chars: int,
    header_template: str = HEADER_TEMPLATE,
) -> TruncationResult:
    """
    Greedily fill `max_chars` with documents in input order.

    - A document's header is emitted whole or not at all; when it does not fit,
      inclusion stops.
    - The body is included up to the remaining budget.
    - After a partial body, every later document is dropped.

    The returned text never exceeds `max_chars`.
    """
    budget = max(0, max_chars)
    blocks: list[str] = []
    usages: list[DocumentUsage] = []
    stopped = False

    for document in documents:
        body = normalize_document_text(document.text)
        usage = DocumentUsage(label=document.label, original_chars=len(body))
        usages.append(usage)
        if stopped:
            continue

        header = header_template.format(label=document.label)
        if len(header) > budget:
            stopped = True
            continue
        blocks.append(header)
        budget -= len(header)

        chunk = body[:budget]
        blocks.append(chunk)
        budget -= len(chunk)
        usage.emitted_chars = len(chunk)
        if len(chunk) == len(body):
            usage.status = "full"
        else:
            usage.status = "partial"
            stopped = True

    result = TruncationResult(text="".join(blocks), usages=usages)
    if result.truncated:
        logger.info(json.dumps({
            "step": "DOCUMENT_TRUNCATION",
            "max_chars": max_chars,
            "emitted_chars": len(result.text),
            "documents": [u.model_dump() for u in usages],
        }))
    return result


def truncate_documents(
    documents: Iterable[SourceDocument],
    max_chars: int,
    header_template: str = HEADER_TEMPLATE,
) -> str:
    """Labelled, budget-bounded concatenation of `documents`."""
    return plan_truncation(documents, max_chars, header_template).text


def truncate_for_token_budget(
    documents: Iterable[SourceDocument],
    max_tokens: int,
    chars_per_token: int = DEFAULT_CHARS_PER_TOKEN,
) -> TruncationResult:
    """Convert a model token budget to characters, then truncate."""
    return plan_truncation(documents, chars_for_tokens(max_tokens, chars_per_token))


def truncate_for_request(
    documents: Iterable[SourceDocument],
    max_tokens: Optional[int] = None,
    settings: Optional[Settings] = None,
) -> TruncationResult:
    """
    Truncate with the configured budget.

    The character budget is `document_char_budget`, tightened to the model's
    remaining token window when `max_tokens` is given.
    """
    settings = settings or get_settings()
    budget = settings.document_char_budget
    if max_tokens is not None:
        budget = min(budget, chars_for_tokens(max_tokens, settings.chars_per_token))
    return plan_truncation(documents, budget)
