"""Unit tests for tutor/exceptions.py

Tests the exception hierarchy: message formatting, attribute storage, and
isinstance inheritance chains.
"""

import pytest

from tutor.exceptions import (
    TutorAgentError,
    AgentError,
    AgentOutputError,
    StreamError,
    StreamFrameError,
    ExchangeCancelledError,
    ExchangeClosedError,
    DirectiveError,
    DirectiveValidationError,
    PracticeLogError,
    DuplicateEntryError,
    EntryNotFoundError,
    PromptError,
    PromptTemplateError,
)


class TestTutorAgentError:
    def test_message_and_details(self):
        err = TutorAgentError("boom", {"k": 1})
        assert str(err) == "boom"
        assert err.message == "boom"
        assert err.details == {"k": 1}

    def test_details_default_to_empty(self):
        assert TutorAgentError("boom").details == {}


class TestAgentErrors:
    def test_agent_error_prefixes_name(self):
        err = AgentError("grader", "failed")
        assert str(err) == "[grader] failed"
        assert err.agent_name == "grader"

    def test_output_error_with_schema(self):
        err = AgentOutputError("grader", "JSON object")
        assert str(err) == "[grader] Invalid or malformed output (expected schema: JSON object)"
        assert err.expected_schema == "JSON object"

    def test_output_error_without_schema(self):
        assert str(AgentOutputError("grader")) == "[grader] Invalid or malformed output"


class TestStreamErrors:
    def test_frame_error_default_message(self):
        assert StreamFrameError().error == "Streaming error"
        assert StreamFrameError("Rate limited").error == "Rate limited"

    def test_exchange_errors_carry_id(self):
        assert ExchangeCancelledError("ex1").exchange_id == "ex1"
        assert "ex1" in str(ExchangeClosedError("ex1"))

    @pytest.mark.parametrize("err", [StreamFrameError(), ExchangeCancelledError("a"), ExchangeClosedError("a")])
    def test_hierarchy(self, err):
        assert isinstance(err, StreamError)
        assert isinstance(err, TutorAgentError)


class TestDirectiveAndLogErrors:
    def test_directive_validation_error(self):
        err = DirectiveValidationError("set_exam_date", ["date: Field required", "slug: bad"])

        assert str(err) == "Invalid parameters for action 'set_exam_date': date: Field required; slug: bad"
        assert err.errors == ["date: Field required", "slug: bad"]
        assert isinstance(err, DirectiveError)

    def test_log_errors(self):
        duplicate = DuplicateEntryError("bio", "1-a")
        missing = EntryNotFoundError("bio", "1-a")

        assert "already exists" in str(duplicate)
        assert missing.course_slug == "bio"
        assert isinstance(duplicate, PracticeLogError)
        assert isinstance(missing, PracticeLogError)


class TestPromptErrors:
    def test_prompt_template_error(self):
        err = PromptTemplateError("tutor", ["a", "b"])
        assert str(err) == "Prompt template 'tutor' missing variables: a, b"
        assert isinstance(err, PromptError)
