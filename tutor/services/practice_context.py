"""
Practice Context Builders

Render stored course data, the practice log and exam analysis results into the
sections of a practice-mode context block. Each section is a stateless view;
`build_practice_context` hands them to the budget assembler, which protects the
practice history from being crowded out by bulky course material.
"""

import json
import logging
import math
import re
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Optional, Sequence

from config import Settings, get_settings
from tutor.models.course import CourseData, ExamAnalysis
from tutor.models.practice_log import PracticeLogEntry, now_ms
from tutor.services.context_assembler import ContextSection, SectionKey, assemble

logger = logging.getLogger(__name__)

DAY_MS = 24 * 60 * 60 * 1000

OVERVIEW_MAX_CHARS = 500
QUICK_SUMMARY_MAX_CHARS = 400
NOTES_MAX_CHARS = 400
TOPIC_OVERVIEW_MAX_CHARS = 280
SOURCE_EXCERPT_MAX_CHARS = 2500
PRACTICE_LOG_MAX_CHARS = 3500

REVIEW_WINDOW_DAYS = 7
MAX_UPCOMING_REVIEWS = 5
RECENT_ENTRY_COUNT = 8

NEEDS_ATTENTION_BELOW = 6
STRONG_PERFORMANCE_FROM = 9
DUE_FOR_REVIEW_AFTER_DAYS = 14

EMPTY_LOG_STATUS = (
    "PRACTICE LOG STATUS: No previous practice sessions recorded. "
    "This is your first time practicing this course."
)

_WHITESPACE_RUN_RE = re.compile(r"\s+")


def _collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RUN_RE.sub(" ", text)


def _format_timestamp(timestamp_ms: int) -> str:
    moment = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    return moment.strftime("%Y-%m-%d %H:%M UTC")


def _format_number(value: float) -> str:
    return f"{value:g}"


# ---- Course sections ----

def render_overview(slug: str, course: Optional[CourseData]) -> str:
    if course is None:
        return "\n".join([
            "PRACTICE MODE ACTIVE",
            f"Course slug: {slug}",
            "No stored course data was found. Ask the student which topics they want to practice.",
        ])

    lines = [f'PRACTICE MODE ACTIVE FOR COURSE "{course.name or slug}" (slug: {slug})']
    if course.course_context:
        lines.append(f"Course overview: {course.course_context[:OVERVIEW_MAX_CHARS]}")
    if course.course_quick_summary:
        lines.append(f"Quick summary: {course.course_quick_summary[:QUICK_SUMMARY_MAX_CHARS]}")
    if course.course_notes:
        lines.append(f"Instructor/student notes: {course.course_notes[:NOTES_MAX_CHARS]}")
    return "\n".join(lines)


def render_topic_list(course: Optional[CourseData]) -> str:
    if course is None:
        return ""
    names = [name.strip() for name in course.topics if name and name.strip()]
    if not names:
        return ""
    return f"Topics ({len(names)}): {', '.join(names)}"


def render_topic_detail(course: Optional[CourseData]) -> str:
    """One `TOPIC:` line per generated topic, with lesson titles and a short overview."""
    if course is None:
        return ""
    lines = []
    for topic_name, topic in course.nodes.items():
        lesson_titles = []
        for index, lesson in enumerate(topic.lessons):
            if lesson is None:
                continue
            title = (lesson.title or "").strip() or f"Lesson {index + 1}"
            if lesson.quiz_count > 0:
                title = f"{title} (quiz: {lesson.quiz_count} q)"
            lesson_titles.append(title)

        if not lesson_titles and not topic.overview:
            continue

        header = f"TOPIC: {topic_name}"
        if lesson_titles:
            header += f" — lessons: {', '.join(lesson_titles)}"
        lines.append(header)
        if topic.overview:
            overview = _collapse_whitespace(topic.overview)[:TOPIC_OVERVIEW_MAX_CHARS]
            lines.append(f"Overview: {overview}")
    return "\n".join(lines)


def render_source_excerpts(course: Optional[CourseData]) -> str:
    if course is None or not (course.combined_text or "").strip():
        return ""
    excerpt = _collapse_whitespace(course.combined_text)[:SOURCE_EXCERPT_MAX_CHARS]
    return f"Source excerpts:\n{excerpt}"


def render_upcoming_reviews(course: Optional[CourseData], now: int) -> str:
    if course is None:
        return ""
    due_soon = []
    for schedule in course.review_schedules.values():
        if not schedule.next_review:
            continue
        days_until = (schedule.next_review - now) / DAY_MS
        if days_until > REVIEW_WINDOW_DAYS:
            continue
        rounded = max(0, math.floor(days_until + 0.5))
        due_soon.append(
            f"{schedule.topic_name} lesson {schedule.lesson_index + 1} in ~{rounded} day(s)"
        )
        if len(due_soon) == MAX_UPCOMING_REVIEWS:
            break
    if not due_soon:
        return ""
    return f"Upcoming reviews (≤{REVIEW_WINDOW_DAYS} days): {'; '.join(due_soon)}"


# ---- Exam analysis sections ----

def render_analysis_summary(analysis: ExamAnalysis) -> str:
    """Compressed view of one analysis: top 15 concepts, top 5 questions."""
    lines = [f"EXAM ANALYSIS RESULTS FOR {analysis.course_name or analysis.slug or 'UNKNOWN COURSE'}:"]
    if analysis.total_exams:
        lines.append(f"Total exams analyzed: {analysis.total_exams}")
    if analysis.grade_info:
        lines.append(f"Grade info: {analysis.grade_info[:150]}")
    if analysis.pattern_analysis:
        lines.append(f"Pattern: {analysis.pattern_analysis[:200]}")

    if analysis.concepts:
        study_order = []
        for index, concept in enumerate(analysis.concepts[:15]):
            name = concept.name or f"Concept {index + 1}"
            description = f" ({concept.description[:80]})" if concept.description else ""
            study_order.append(f"{index + 1}. {name}{description}")
        lines.append("STUDY ORDER (priority):\n" + "\n".join(study_order))

    if analysis.common_questions:
        questions = [
            f'- "{q.question[:100]}" (appears in {q.exam_count} exams, '
            f"avg {_format_number(q.average_points)} pts)"
            for q in analysis.common_questions[:5]
        ]
        lines.append("Common questions:\n" + "\n".join(questions))
    return "\n".join(lines)


def render_analysis_list(analyses: Sequence[ExamAnalysis]) -> str:
    return "\n\n".join(render_analysis_summary(a) for a in analyses)


def render_analysis_detail(analysis: Optional[ExamAnalysis]) -> str:
    """Full view of one analysis, as added to the chat after a fetch."""
    if analysis is None:
        return ""
    blocks = [
        f"DETAILED EXAM ANALYSIS DATA FOR {analysis.course_name or (analysis.slug or '').upper()}:",
        f"Total exams analyzed: {analysis.total_exams}",
    ]
    if analysis.grade_info:
        blocks.append(f"Grade info: {analysis.grade_info}")
    if analysis.pattern_analysis:
        blocks.append(f"Pattern analysis: {analysis.pattern_analysis}")
    if analysis.concepts:
        study_order = []
        for index, concept in enumerate(analysis.concepts):
            name = concept.name or f"Concept {index + 1}"
            description = f" - {concept.description}" if concept.description else ""
            study_order.append(f"{index + 1}. {name}{description}")
        blocks.append("STUDY ORDER (priority, all concepts):\n" + "\n".join(study_order))
    if analysis.common_questions:
        questions = [
            f'{index + 1}. "{q.question}" (appears in {q.exam_count} exams, '
            f"avg {_format_number(q.average_points)} pts)"
            for index, q in enumerate(analysis.common_questions)
        ]
        blocks.append("ALL COMMON QUESTIONS:\n" + "\n".join(questions))
    return "\n\n".join(blocks)


def find_analysis(analyses: Sequence[ExamAnalysis], query: str) -> Optional[ExamAnalysis]:
    """Name matches win over slug matches."""
    needle = query.lower().strip()
    if not needle:
        return None
    for analysis in analyses:
        name = (analysis.course_name or "").lower().strip()
        if name and (name == needle or needle in name or name in needle):
            return analysis
    for analysis in analyses:
        if (analysis.slug or "").lower().strip() == needle:
            return analysis
    return None


# ---- Practice history ----

def _recommendation(average: float, days_since: int) -> str:
    if average < NEEDS_ATTENTION_BELOW:
        return " - NEEDS ATTENTION (low grades)"
    if days_since > DUE_FOR_REVIEW_AFTER_DAYS:
        return " - DUE FOR REVIEW (not practiced recently)"
    if average >= STRONG_PERFORMANCE_FROM:
        return " - STRONG PERFORMANCE (consider advancing)"
    return ""


def format_practice_log_summary(
    entries: Sequence[PracticeLogEntry],
    now: Optional[int] = None,
) -> str:
    """
    Summarize the practice log for the tutor.

    Per topic: attempts, average grade, days since last practice and a
    recommendation flag. Followed by the most recent entries, newest first.

    Args:
        entries: Practice log in timestamp order
        now: Reference time in epoch milliseconds (defaults to the current time)

    Returns:
        Summary text, or the empty-log status line when there are no entries
    """
    if not entries:
        return EMPTY_LOG_STATUS
    now = now_ms() if now is None else now

    by_topic: "OrderedDict[str, list[PracticeLogEntry]]" = OrderedDict()
    for entry in entries:
        by_topic.setdefault(entry.topic or "General", []).append(entry)

    insights = []
    for topic, topic_entries in by_topic.items():
        average = sum(e.grade for e in topic_entries) / len(topic_entries)
        last_practiced = max(e.timestamp for e in topic_entries)
        days_since = max(0, (now - last_practiced) // DAY_MS)
        insights.append(
            f"{topic}: {len(topic_entries)} attempts, avg grade {average:.1f}/10, "
            f"last practiced {days_since} days ago{_recommendation(average, days_since)}"
        )

    recent = list(entries[-RECENT_ENTRY_COUNT:])[::-1]
    recent_lines = [
        f"• {e.topic or 'General'} | Grade: {e.grade}/10 | Q: {_collapse_whitespace(e.question)[:120]} "
        f"({_format_timestamp(e.timestamp)})"
        for e in recent
    ]

    return (
        f"PRACTICE INSIGHTS (based on {len(entries)} actual practice entries):\n"
        + "\n".join(insights)
        + f"\n\nRECENT SESSIONS (last {len(recent)} entries):\n"
        + "\n".join(recent_lines)
    )


def render_practice_history(entries: Sequence[PracticeLogEntry], now: int) -> str:
    if not entries:
        return EMPTY_LOG_STATUS
    summary = format_practice_log_summary(entries, now)[:PRACTICE_LOG_MAX_CHARS]
    return f"PRACTICE LOG DATA ({len(entries)} total entries):\n{summary}"


# ---- Assembly ----

def practice_sections(
    slug: str,
    course: Optional[CourseData],
    practice_log: Sequence[PracticeLogEntry],
    analyses: Sequence[ExamAnalysis] = (),
    detailed_analysis: Optional[ExamAnalysis] = None,
    *,
    now: int,
    reserve_floor: int = 0,
) -> list[ContextSection]:
    """Section views over a snapshot of the inputs."""
    entries = tuple(practice_log)
    analyses = tuple(analyses)
    return [
        ContextSection.for_key(SectionKey.OVERVIEW, lambda: render_overview(slug, course)),
        ContextSection.for_key(SectionKey.TOPIC_LIST, lambda: render_topic_list(course)),
        ContextSection.for_key(SectionKey.TOPIC_DETAIL, lambda: render_topic_detail(course)),
        ContextSection.for_key(SectionKey.SOURCE_EXCERPTS, lambda: render_source_excerpts(course)),
        ContextSection.for_key(SectionKey.UPCOMING_REVIEWS, lambda: render_upcoming_reviews(course, now)),
        ContextSection.for_key(SectionKey.ANALYSIS_LIST, lambda: render_analysis_list(analyses)),
        ContextSection.for_key(SectionKey.ANALYSIS_DETAIL, lambda: render_analysis_detail(detailed_analysis)),
        ContextSection.for_key(
            SectionKey.PRACTICE_HISTORY,
            lambda: render_practice_history(entries, now),
            reserve_min_chars=reserve_floor,
        ),
    ]


def build_practice_context(
    slug: str,
    course: Optional[CourseData],
    practice_log: Sequence[PracticeLogEntry],
    analyses: Sequence[ExamAnalysis] = (),
    detailed_analysis: Optional[ExamAnalysis] = None,
    *,
    settings: Optional[Settings] = None,
    now: Optional[int] = None,
) -> str:
    """
    Build the practice-mode context block for one course.

    Capacity, reservation margin and floor come from settings.
    """
    settings = settings or get_settings()
    now = now_ms() if now is None else now

    sections = practice_sections(
        slug,
        course,
        practice_log,
        analyses,
        detailed_analysis,
        now=now,
        reserve_floor=settings.practice_log_reserve_floor,
    )
    context = assemble(
        sections,
        settings.practice_context_capacity,
        reserve_margin=settings.practice_log_reserve_margin,
    )
    logger.debug(json.dumps({
        "step": "PRACTICE_CONTEXT",
        "slug": slug,
        "log_entries": len(practice_log),
        "analyses": len(analyses),
        "chars": len(context),
    }))
    return context
