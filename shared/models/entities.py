"""SQLAlchemy ORM database models."""
from datetime import datetime
from sqlalchemy import Column, String, Integer, BigInteger, Text, DateTime, Index, UniqueConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class PracticeLogRecord(Base):
    """Practice log table - one assessed answer per row, append-only."""
    __tablename__ = "practice_log_entries"

    pk = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String, nullable=False)             # `<millis>-<hex>`, unique per course
    course_slug = Column(String, nullable=False)
    timestamp = Column(BigInteger, nullable=False)  # Unix epoch milliseconds
    topic = Column(String, nullable=False, default="General")
    question = Column(Text, nullable=False)
    answer = Column(Text, nullable=False)
    assessment = Column(Text, nullable=False, default="")
    grade = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("course_slug", "id", name="uq_practice_log_course_entry"),
        Index("idx_practice_log_course_time", "course_slug", "timestamp"),
    )
