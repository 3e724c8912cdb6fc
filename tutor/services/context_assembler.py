"""
Context budget assembly.

Composes independently sized context sections into one string bounded by a
hard character capacity. One section (the practice history) is *reserved*:
its size is measured first and room for it is set aside before any other
section is placed, so an oversized course overview or source excerpt can
never crowd it out.
"""

import json
import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Optional, Sequence

logger = logging.getLogger(__name__)

DEFAULT_SEPARATOR = "\n\n"


class SectionKey(IntEnum):
    """Section identities; the value is the fixed placement priority."""

    OVERVIEW = 10
    TOPIC_LIST = 20
    TOPIC_DETAIL = 30
    SOURCE_EXCERPTS = 40
    UPCOMING_REVIEWS = 50
    ANALYSIS_LIST = 60
    ANALYSIS_DETAIL = 70
    PRACTICE_HISTORY = 100


@dataclass(frozen=True)
class ContextSection:
    """A stateless view over collaborator data that renders to text."""

    key: str
    priority: int
    render: Callable[[], str]
    reserve_min_chars: int = 0
    reserved: bool = False

    @classmethod
    def for_key(
        cls,
        key: SectionKey,
        render: Callable[[], str],
        reserve_min_chars: int = 0,
    ) -> "ContextSection":
        return cls(
            key=key.name.lower(),
            priority=int(key),
            render=render,
            reserve_min_chars=reserve_min_chars,
            reserved=key is SectionKey.PRACTICE_HISTORY,
        )


@dataclass(frozen=True)
class RenderedSection:
    key: str
    priority: int
    text: str
    reserve_min_chars: int = 0
    reserved: bool = False


def snapshot(sections: Sequence[ContextSection]) -> list[RenderedSection]:
    """
    Render every section exactly once.

    A section whose render raises or returns nothing counts as zero-length and
    does not affect the others.
    """
    rendered = []
    for section in sections:
        try:
            text = section.render() or ""
        except Exception as e:
            logger.warning(f"Context section '{section.key}' failed to render: {e}")
            text = ""
        rendered.append(RenderedSection(
            key=section.key,
            priority=section.priority,
            text=text,
            reserve_min_chars=section.reserve_min_chars,
            reserved=section.reserved,
        ))
    return rendered


def reservation_size(reserved_chars: int, capacity: int, floor: int = 0, margin: int = 0) -> int:
    """R = max(floor, min(S + margin, capacity)), never more than capacity."""
    if reserved_chars <= 0 or capacity <= 0:
        return 0
    return min(capacity, max(floor, min(reserved_chars + margin, capacity)))


def assemble(
    sections: Sequence[ContextSection],
    capacity: int,
    *,
    reserve_margin: int = 0,
    separator: str = DEFAULT_SEPARATOR,
) -> str:
    """
    Compose sections into one string of at most `capacity` characters.

    1. Snapshot all sections.
    2. Measure the reserved section (S) and set aside R characters for it.
    3. Join the other non-empty sections by ascending priority and cut the
       result to fit `capacity - R`.
    4. Append the reserved text, itself cut to R.

    Raises:
        ValueError: more than one section is marked reserved
    """
    if capacity <= 0:
        return ""

    rendered = snapshot(sections)
    reserved_sections = [s for s in rendered if s.reserved]
    if len(reserved_sections) > 1:
        raise ValueError(
            f"Only one reserved context section is allowed, got: {[s.key for s in reserved_sections]}"
        )
    reserved: Optional[RenderedSection] = reserved_sections[0] if reserved_sections else None
    reserved_text = reserved.text if reserved else ""

    reserve = reservation_size(
        len(reserved_text),
        capacity,
        floor=reserved.reserve_min_chars if reserved else 0,
        margin=reserve_margin,
    )
    reserved_part = reserved_text[:reserve]

    others = sorted(
        (s for s in rendered if not s.reserved and s.text),
        key=lambda s: s.priority,
    )
    others_text = separator.join(s.text for s in others)

    others_budget = capacity - reserve
    if reserved_part:
        others_budget -= len(separator)
    others_part = others_text[:max(0, others_budget)]

    if others_part and reserved_part:
        assembled = f"{others_part}{separator}{reserved_part}"
    else:
        assembled = others_part or reserved_part

    if len(others_part) < len(others_text) or len(reserved_part) < len(reserved_text):
        logger.info(json.dumps({
            "step": "CONTEXT_ASSEMBLY",
            "capacity": capacity,
            "reserved_chars": len(reserved_text),
            "reservation": reserve,
            "other_chars": len(others_text),
            "other_chars_kept": len(others_part),
            "output_chars": len(assembled),
        }))
    return assembled
