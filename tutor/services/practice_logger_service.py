"""
Practice Logger Service

Assesses a student's answer to a practice question and produces a practice
log entry:

1. Multiple-choice fast path: correctness is already known, only a topic
   label is requested from the model (falling back to "General").
2. Otherwise the answer is classified; messages that are not an answer
   attempt (questions, requests for help, refusals) are skipped.
3. Answer attempts are graded with the rubric prompt; the grade is clamped
   to 0-10.
"""

import json
import logging
from typing import Any, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shared.services.llm_service import LLMService, LLMServiceError
from tutor.exceptions import AgentOutputError
from tutor.models.practice_log import AssessmentOutcome, PracticeLogEntry, new_entry_id, now_ms
from tutor.prompts.practice_prompts import format_existing_logs
from tutor.prompts.templates import (
    ASSESSMENT_SYSTEM_PROMPT,
    ASSESSMENT_TEMPLATE,
    CLASSIFICATION_SYSTEM_PROMPT,
    CLASSIFICATION_TEMPLATE,
    TOPIC_SYSTEM_PROMPT,
    TOPIC_TEMPLATE,
)
from tutor.utils.schema_utils import extract_json_object, validate_agent_output

logger = logging.getLogger(__name__)

AGENT_NAME = "practice_logger"
MC_CHOICES = ("A", "B", "C", "D")
MC_CORRECT_GRADE = 10
MC_INCORRECT_GRADE = 3

TOPIC_TEMPERATURE = 0.2
CLASSIFICATION_TEMPERATURE = 0.8
ASSESSMENT_TEMPERATURE = 0.4


class MultipleChoiceAnswer(BaseModel):
    """Choice selected by the student and the correct choice, both A-D."""

    selected: str
    correct: str

    @field_validator("selected", "correct")
    @classmethod
    def _normalize_choice(cls, value: str) -> str:
        choice = str(value or "").strip().upper()
        if choice not in MC_CHOICES:
            raise ValueError(f"choice must be one of {', '.join(MC_CHOICES)}")
        return choice

    @property
    def is_correct(self) -> bool:
        return self.selected == self.correct


class AnswerClassification(BaseModel):
    """Classifier verdict on whether a message attempts to answer the question."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    is_answer_attempt: bool = Field(default=False, alias="isAnswerAttempt")
    reason: Optional[str] = None


def clamp_grade(value: Any) -> int:
    """Integer grade in [0, 10]; anything unparseable counts as 0."""
    try:
        grade = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(0, min(10, grade))


class PracticeLoggerService:
    """Turns a question/answer pair into an assessed practice log entry."""

    def __init__(self, llm_service: LLMService):
        self.llm = llm_service

    def assess(
        self,
        course_slug: str,
        question: str,
        answer: str,
        existing_logs: Sequence[PracticeLogEntry] = (),
        mc: Optional[MultipleChoiceAnswer] = None,
    ) -> AssessmentOutcome:
        """
        Assess one answer.

        Args:
            course_slug: Course the question belongs to
            question: The practice question (usually the highlighted span)
            answer: The student's reply
            existing_logs: Course log so far, for consistent topic names
            mc: Multiple-choice selection, if the question was multiple choice

        Returns:
            AssessmentOutcome with the new entry, or `skipped` with a reason

        Raises:
            ValueError: question, answer or course slug is empty
            LLMServiceError: the model call failed
            AgentOutputError: the model reply held no decodable JSON object
        """
        if not question or not answer or not course_slug:
            raise ValueError("question, answer and course_slug are required")

        existing_context = format_existing_logs(existing_logs)

        if mc is not None:
            return AssessmentOutcome(entry=self._log_multiple_choice(course_slug, question, mc, existing_context))

        is_attempt, reason = self._classify(question, answer)
        if not is_attempt:
            logger.info(json.dumps({
                "step": "PRACTICE_ASSESSMENT",
                "status": "skipped",
                "course_slug": course_slug,
                "reason": reason,
            }))
            return AssessmentOutcome(skipped=True, reason=reason or "Message is not an answer attempt")

        return AssessmentOutcome(entry=self._grade(course_slug, question, answer, existing_context))

    def _log_multiple_choice(
        self,
        course_slug: str,
        question: str,
        mc: MultipleChoiceAnswer,
        existing_context: str,
    ) -> PracticeLogEntry:
        topic = "General"
        prompt = TOPIC_TEMPLATE.render(
            question=question,
            course_slug=course_slug,
            existing_logs=existing_context,
        )
        try:
            payload = self._call_json(prompt, TOPIC_SYSTEM_PROMPT, TOPIC_TEMPERATURE)
        except (LLMServiceError, AgentOutputError) as e:
            logger.warning(f"Topic labelling failed, using 'General': {e}")
        else:
            label = payload.get("topic")
            if isinstance(label, str) and label.strip():
                topic = label.strip()

        if mc.is_correct:
            assessment = "Correct multiple-choice answer."
        else:
            assessment = f"Incorrect multiple-choice answer. Correct: {mc.correct}."

        timestamp = now_ms()
        return PracticeLogEntry(
            id=new_entry_id(timestamp),
            course_slug=course_slug,
            timestamp=timestamp,
            topic=topic,
            question=question,
            answer=f"MC selected: {mc.selected}",
            assessment=assessment,
            grade=MC_CORRECT_GRADE if mc.is_correct else MC_INCORRECT_GRADE,
        )

    def _classify(self, question: str, answer: str) -> tuple[bool, Optional[str]]:
        prompt = CLASSIFICATION_TEMPLATE.render(question=question, answer=answer)
        payload = self._call_json(prompt, CLASSIFICATION_SYSTEM_PROMPT, CLASSIFICATION_TEMPERATURE)
        verdict = validate_agent_output(payload, AnswerClassification, agent_name=AGENT_NAME)
        return verdict.is_answer_attempt, verdict.reason

    def _grade(
        self,
        course_slug: str,
        question: str,
        answer: str,
        existing_context: str,
    ) -> PracticeLogEntry:
        prompt = ASSESSMENT_TEMPLATE.render(
            question=question,
            answer=answer,
            existing_logs=existing_context,
        )
        payload = self._call_json(prompt, ASSESSMENT_SYSTEM_PROMPT, ASSESSMENT_TEMPERATURE)

        timestamp = now_ms()
        entry = PracticeLogEntry(
            id=new_entry_id(timestamp),
            course_slug=course_slug,
            timestamp=timestamp,
            topic=_text_or(payload.get("topic"), "General"),
            question=_text_or(payload.get("question"), question),
            answer=_text_or(payload.get("answer"), answer),
            assessment=_text_or(payload.get("assessment"), ""),
            grade=clamp_grade(payload.get("grade")),
        )
        logger.info(json.dumps({
            "step": "PRACTICE_ASSESSMENT",
            "status": "graded",
            "course_slug": course_slug,
            "topic": entry.topic,
            "grade": entry.grade,
        }))
        return entry

    def _call_json(self, prompt: str, system: str, temperature: float) -> dict[str, Any]:
        response = self.llm.call(prompt, system=system, json_mode=True, temperature=temperature)
        return extract_json_object(response.get("output_text"), agent_name=AGENT_NAME)


def _text_or(value: Any, fallback: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return fallback
