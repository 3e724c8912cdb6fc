"""
Custom Exception Hierarchy for Tutor Module

Exception Hierarchy:
    TutorAgentError (base)
    ├── AgentError
    │   └── AgentOutputError
    ├── StreamError
    │   ├── StreamFrameError
    │   ├── ExchangeCancelledError
    │   └── ExchangeClosedError
    ├── DirectiveError
    │   └── DirectiveValidationError
    ├── PracticeLogError
    │   ├── DuplicateEntryError
    │   └── EntryNotFoundError
    └── PromptError
        └── PromptTemplateError
"""

from typing import Optional


class TutorAgentError(Exception):
    """Base exception for all tutor errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# Agent Errors

class AgentError(TutorAgentError):
    """Base exception for errors in a model-backed component."""

    def __init__(self, agent_name: str, message: str, details: Optional[dict] = None):
        formatted_message = f"[{agent_name}] {message}"
        super().__init__(formatted_message, details)
        self.agent_name = agent_name


class AgentOutputError(AgentError):
    """Raised when model output is invalid or cannot be decoded."""

    def __init__(self, agent_name: str, expected_schema: Optional[str] = None):
        message = "Invalid or malformed output"
        if expected_schema:
            message += f" (expected schema: {expected_schema})"
        super().__init__(agent_name, message)
        self.expected_schema = expected_schema


# Stream Errors

class StreamError(TutorAgentError):
    """Base exception for text-stream exchange errors."""
    pass


class StreamFrameError(StreamError):
    """Raised when the stream delivers an error frame. Fatal to the exchange."""

    def __init__(self, error: Optional[str] = None):
        message = error or "Streaming error"
        super().__init__(message)
        self.error = message


class ExchangeCancelledError(StreamError):
    """Raised when an exchange is torn down before its stream completed."""

    def __init__(self, exchange_id: str):
        super().__init__(f"Exchange cancelled: {exchange_id}")
        self.exchange_id = exchange_id


class ExchangeClosedError(StreamError):
    """Raised when text is appended to a buffer that was finalized or discarded."""

    def __init__(self, exchange_id: str):
        super().__init__(f"Exchange buffer is closed: {exchange_id}")
        self.exchange_id = exchange_id


# Directive Errors

class DirectiveError(TutorAgentError):
    """Base exception for directive handling errors."""
    pass


class DirectiveValidationError(DirectiveError):
    """Raised when a known action is missing required parameters."""

    def __init__(self, action_name: str, errors: list[str]):
        message = f"Invalid parameters for action '{action_name}': {'; '.join(errors)}"
        super().__init__(message)
        self.action_name = action_name
        self.errors = errors


# Practice Log Errors

class PracticeLogError(TutorAgentError):
    """Base exception for practice log store errors."""
    pass


class DuplicateEntryError(PracticeLogError):
    """Raised when an entry id already exists in a course log."""

    def __init__(self, course_slug: str, entry_id: str):
        super().__init__(f"Practice log entry {entry_id} already exists for course {course_slug}")
        self.course_slug = course_slug
        self.entry_id = entry_id


class EntryNotFoundError(PracticeLogError):
    """Raised when an entry is not present in a course log."""

    def __init__(self, course_slug: str, entry_id: str):
        super().__init__(f"Practice log entry {entry_id} not found for course {course_slug}")
        self.course_slug = course_slug
        self.entry_id = entry_id


# Prompt Errors

class PromptError(TutorAgentError):
    """Base exception for prompt-related errors."""
    pass


class PromptTemplateError(PromptError):
    """Raised when prompt template rendering fails."""

    def __init__(self, template_name: str, missing_vars: list[str]):
        message = f"Prompt template '{template_name}' missing variables: {', '.join(missing_vars)}"
        super().__init__(message)
        self.template_name = template_name
        self.missing_vars = missing_vars
