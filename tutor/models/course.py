"""
Course Data Models

Read-only views over stored course data and separately fetched exam analysis.
Context sections render from these; nothing here is persisted by the core.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class LessonSummary(BaseModel):
    title: Optional[str] = None
    quiz_count: int = 0


class TopicContent(BaseModel):
    """Generated content for one topic node."""

    overview: Optional[str] = None
    lessons: list[Optional[LessonSummary]] = Field(default_factory=list)


class ReviewSchedule(BaseModel):
    topic_name: str
    lesson_index: int = 0
    next_review: Optional[int] = Field(default=None, description="Unix epoch milliseconds")


class CourseData(BaseModel):
    """Stored data for one course."""

    model_config = ConfigDict(extra="ignore")

    slug: str
    name: Optional[str] = None
    course_context: Optional[str] = None
    course_quick_summary: Optional[str] = None
    course_notes: Optional[str] = None
    topics: list[str] = Field(default_factory=list)
    nodes: dict[str, TopicContent] = Field(default_factory=dict)
    combined_text: Optional[str] = None
    review_schedules: dict[str, ReviewSchedule] = Field(default_factory=dict)


class ExamConcept(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class ExamQuestion(BaseModel):
    question: str = ""
    exam_count: int = 0
    average_points: float = 0


class ExamAnalysis(BaseModel):
    """Results of an exam analysis run for one course."""

    model_config = ConfigDict(extra="ignore")

    course_name: Optional[str] = None
    slug: Optional[str] = None
    total_exams: int = 0
    grade_info: Optional[str] = None
    pattern_analysis: Optional[str] = None
    concepts: list[ExamConcept] = Field(default_factory=list)
    common_questions: list[ExamQuestion] = Field(default_factory=list)

