"""Practice log data access layer."""
import json
import logging
from typing import Optional
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session as DBSession

from shared.models.entities import PracticeLogRecord
from shared.utils.exceptions import DatabaseException
from tutor.exceptions import DuplicateEntryError, EntryNotFoundError
from tutor.models.practice_log import PracticeLogEntry

logger = logging.getLogger(__name__)


class PracticeLogRepository:
    """
    Course-scoped, append-only store of practice log entries.

    Entries are never updated; a correction is a new entry.
    """

    def __init__(self, db: DBSession):
        self.db = db

    def append(self, entry: PracticeLogEntry) -> PracticeLogEntry:
        """
        Append an entry to its course log.

        Raises:
            DuplicateEntryError: an entry with the same id exists for the course
        """
        if self._find(entry.course_slug, entry.id) is not None:
            raise DuplicateEntryError(course_slug=entry.course_slug, entry_id=entry.id)

        record = PracticeLogRecord(**entry.model_dump())
        self.db.add(record)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateEntryError(course_slug=entry.course_slug, entry_id=entry.id) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseException("append", e) from e

        logger.info(json.dumps({
            "step": "PRACTICE_LOG",
            "action": "append",
            "course_slug": entry.course_slug,
            "entry_id": entry.id,
            "topic": entry.topic,
            "grade": entry.grade,
        }))
        return entry

    def list_for_course(self, course_slug: str) -> list[PracticeLogEntry]:
        """
        All entries for a course, oldest first.

        Args:
            course_slug: Course identifier

        Returns:
            Entries in timestamp order (insertion order for equal timestamps)
        """
        rows = (
            self.db.query(PracticeLogRecord)
            .filter(PracticeLogRecord.course_slug == course_slug)
            .order_by(PracticeLogRecord.timestamp.asc(), PracticeLogRecord.pk.asc())
            .all()
        )
        return [self._to_entry(row) for row in rows]

    def get(self, course_slug: str, entry_id: str) -> Optional[PracticeLogEntry]:
        row = self._find(course_slug, entry_id)
        return self._to_entry(row) if row is not None else None

    def delete(self, course_slug: str, entry_id: str) -> None:
        """
        Remove one entry.

        Raises:
            EntryNotFoundError: no such entry in the course log
        """
        row = self._find(course_slug, entry_id)
        if row is None:
            raise EntryNotFoundError(course_slug=course_slug, entry_id=entry_id)
        try:
            self.db.delete(row)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseException("delete", e) from e

    def clear(self, course_slug: str) -> int:
        """Remove every entry of a course. Returns the number removed."""
        try:
            count = (
                self.db.query(PracticeLogRecord)
                .filter(PracticeLogRecord.course_slug == course_slug)
                .delete(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseException("clear", e) from e
        logger.info(f"Cleared {count} practice log entries for course {course_slug}")
        return count

    def _find(self, course_slug: str, entry_id: str) -> Optional[PracticeLogRecord]:
        return (
            self.db.query(PracticeLogRecord)
            .filter(
                PracticeLogRecord.course_slug == course_slug,
                PracticeLogRecord.id == entry_id,
            )
            .first()
        )

    @staticmethod
    def _to_entry(row: PracticeLogRecord) -> PracticeLogEntry:
        return PracticeLogEntry(
            id=row.id,
            course_slug=row.course_slug,
            timestamp=row.timestamp,
            topic=row.topic,
            question=row.question,
            answer=row.answer,
            assessment=row.assessment or "",
            grade=row.grade,
        )
