"""Tutor models."""
from tutor.models.messages import Message, Conversation
from tutor.models.directives import (
    ActionDirective,
    ButtonDirective,
    FileUploadDirective,
    Directive,
    HighlightSpan,
    TextSegment,
    ParseResult,
)
from tutor.models.actions import ACTION_MODELS, TypedAction, to_typed_action
from tutor.models.practice_log import PracticeLogEntry, AssessmentOutcome, new_entry_id
from tutor.models.course import CourseData, TopicContent, LessonSummary, ReviewSchedule, ExamAnalysis
