"""Unit tests for practice answer assessment."""

import json

import pytest
from pydantic import ValidationError

from shared.services.llm_service import LLMServiceError
from tutor.exceptions import AgentOutputError
from tutor.models.practice_log import PracticeLogEntry
from tutor.prompts.templates import ASSESSMENT_SYSTEM_PROMPT, CLASSIFICATION_SYSTEM_PROMPT, TOPIC_SYSTEM_PROMPT
from tutor.services.practice_logger_service import (
    MultipleChoiceAnswer,
    PracticeLoggerService,
    clamp_grade,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _reply(payload):
    text = payload if isinstance(payload, str) else json.dumps(payload)
    return {"output_text": text, "reasoning": None}


@pytest.fixture
def service(mock_llm_service):
    return PracticeLoggerService(mock_llm_service)


# ---------------------------------------------------------------------------
# Free-text answers
# ---------------------------------------------------------------------------

class TestAssess:
    """Tests for classification and grading."""

    def test_answer_attempt_is_graded(self, service, mock_llm_service):
        mock_llm_service.call.side_effect = [
            _reply({"isAnswerAttempt": True, "reason": "User is answering"}),
            _reply('```json\n{"topic": " Laplace Transforms ", "assessment": "Mention the ROC.", "grade": 7}\n```'),
        ]

        outcome = service.assess("signals", "What is L{1}?", "1/s")

        entry = outcome.entry
        assert not outcome.skipped
        assert entry.course_slug == "signals"
        assert entry.topic == "Laplace Transforms"
        assert entry.question == "What is L{1}?"
        assert entry.answer == "1/s"
        assert entry.assessment == "Mention the ROC."
        assert entry.grade == 7
        assert entry.id.startswith(f"{entry.timestamp}-")

    def test_model_calls(self, service, mock_llm_service):
        mock_llm_service.call.side_effect = [
            _reply({"isAnswerAttempt": True}),
            _reply({"topic": "Laplace", "grade": 5}),
        ]

        service.assess("signals", "What is L{1}?", "1/s")

        classify, grade = mock_llm_service.call.call_args_list
        assert classify.kwargs == {"system": CLASSIFICATION_SYSTEM_PROMPT, "json_mode": True, "temperature": 0.8}
        assert 'User message: "1/s"' in classify.args[0]
        assert grade.kwargs == {"system": ASSESSMENT_SYSTEM_PROMPT, "json_mode": True, "temperature": 0.4}
        assert "No previous practice logs" in grade.args[0]

    def test_existing_logs_are_shown_to_the_grader(self, service, mock_llm_service):
        mock_llm_service.call.side_effect = [_reply({"isAnswerAttempt": True}), _reply({"topic": "Laplace", "grade": 5})]
        existing = [
            PracticeLogEntry(course_slug="signals", topic="Laplace", question="Q0", answer="A0", grade=6)
        ]

        service.assess("signals", "Q1", "A1", existing_logs=existing)

        prompt = mock_llm_service.call.call_args_list[1].args[0]
        assert "EXISTING PRACTICE LOGS" in prompt
        assert '"topic": "Laplace"' in prompt

    def test_non_attempt_is_skipped(self, service, mock_llm_service):
        mock_llm_service.call.return_value = _reply({"isAnswerAttempt": False, "reason": "User asked for a hint"})

        outcome = service.assess("signals", "What is L{1}?", "Can you give me a hint?")

        assert outcome.skipped
        assert outcome.entry is None
        assert outcome.reason == "User asked for a hint"
        assert mock_llm_service.call.call_count == 1

    def test_missing_fields_fall_back(self, service, mock_llm_service):
        mock_llm_service.call.side_effect = [_reply({"isAnswerAttempt": True}), _reply({"grade": "11.5", "topic": "  "})]

        entry = service.assess("signals", "Q", "A").entry

        assert entry.topic == "General"
        assert entry.question == "Q"
        assert entry.assessment == ""
        assert entry.grade == 10

    def test_undecodable_grading_reply(self, service, mock_llm_service):
        mock_llm_service.call.side_effect = [_reply({"isAnswerAttempt": True}), _reply("Great answer!")]

        with pytest.raises(AgentOutputError):
            service.assess("signals", "Q", "A")

    def test_service_errors_propagate(self, service, mock_llm_service):
        mock_llm_service.call.side_effect = LLMServiceError("down")

        with pytest.raises(LLMServiceError):
            service.assess("signals", "Q", "A")

    @pytest.mark.parametrize("slug,question,answer", [("", "Q", "A"), ("s", "", "A"), ("s", "Q", "")])
    def test_required_inputs(self, service, mock_llm_service, slug, question, answer):
        with pytest.raises(ValueError):
            service.assess(slug, question, answer)
        mock_llm_service.call.assert_not_called()


# ---------------------------------------------------------------------------
# Multiple choice
# ---------------------------------------------------------------------------

class TestMultipleChoice:
    """Tests for the multiple-choice fast path."""

    def test_correct_choice(self, service, mock_llm_service):
        mock_llm_service.call.return_value = _reply({"topic": "Z-Transform"})

        entry = service.assess("signals", "Which ROC?", "b", mc=MultipleChoiceAnswer(selected="b", correct="B")).entry

        assert entry.topic == "Z-Transform"
        assert entry.answer == "MC selected: B"
        assert entry.assessment == "Correct multiple-choice answer."
        assert entry.grade == 10
        assert mock_llm_service.call.call_args.kwargs["system"] == TOPIC_SYSTEM_PROMPT
        assert mock_llm_service.call.call_args.kwargs["temperature"] == 0.2

    def test_incorrect_choice_with_failed_topic_call(self, service, mock_llm_service):
        mock_llm_service.call.side_effect = LLMServiceError("down")

        entry = service.assess("signals", "Which ROC?", "a", mc=MultipleChoiceAnswer(selected="A", correct="C")).entry

        assert entry.topic == "General"
        assert entry.assessment == "Incorrect multiple-choice answer. Correct: C."
        assert entry.grade == 3

    def test_undecodable_topic_reply(self, service, mock_llm_service):
        mock_llm_service.call.return_value = _reply("Topic: Z-Transform")

        entry = service.assess("signals", "Q", "A", mc=MultipleChoiceAnswer(selected="D", correct="D")).entry

        assert entry.topic == "General"

    def test_choice_validation(self):
        with pytest.raises(ValidationError):
            MultipleChoiceAnswer(selected="E", correct="A")
        assert MultipleChoiceAnswer(selected=" c ", correct="C").is_correct


class TestClampGrade:
    @pytest.mark.parametrize(
        "value,expected",
        [(7, 7), ("8", 8), (6.9, 6), (-2, 0), (42, 10), (None, 0), ("n/a", 0), (float("inf"), 0), (float("nan"), 0)],
    )
    def test_clamp(self, value, expected):
        assert clamp_grade(value) == expected
