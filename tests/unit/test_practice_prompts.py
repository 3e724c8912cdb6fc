"""Unit tests for the tutor chat prompt builders."""

import json

from tutor.models.messages import Conversation
from tutor.models.practice_log import PracticeLogEntry
from tutor.prompts.practice_prompts import (
    TUTOR_SYSTEM_PROMPT,
    build_chat_messages,
    build_context_message,
    format_existing_logs,
)


def _entry(index, topic="Laplace"):
    return PracticeLogEntry(
        id=f"{index}-abc",
        course_slug="signals",
        timestamp=1_000 + index,
        topic=topic,
        question=f"Q{index}",
        answer="A",
        assessment="ok",
        grade=index % 11,
    )


class TestSystemPrompt:
    def test_default_tutor_name(self):
        prompt = TUTOR_SYSTEM_PROMPT.render()
        assert prompt.startswith("You are Nova, an AI tutor.")

    def test_describes_directive_vocabulary(self):
        prompt = TUTOR_SYSTEM_PROMPT.render(tutor_name="Ada")

        assert "ACTION:action_name|param1:value1|param2:value2" in prompt
        assert "set_exam_date|slug:course-slug|date:YYYY-MM-DD" in prompt
        assert "BUTTON:button_id" in prompt
        assert "FILE_UPLOAD:upload_id" in prompt
        assert "◊" in prompt


class TestExistingLogs:
    def test_no_logs(self):
        assert format_existing_logs([]) == "\n\nNo previous practice logs. This is the first question."

    def test_recent_logs_as_json(self):
        text = format_existing_logs([_entry(i) for i in range(30)], limit=20)

        header, payload = text.split(":\n", 1)
        records = json.loads(payload)
        assert "EXISTING PRACTICE LOGS" in header
        assert len(records) == 20
        assert records[0] == {"timestamp": 1_010, "topic": "Laplace", "question": "Q10", "grade": 10}
        assert records[-1]["question"] == "Q29"


class TestChatMessages:
    def test_context_message(self):
        assert build_context_message("CTX", "/courses") == "Current page: /courses\n\nCONTEXT:\nCTX"
        assert build_context_message("abcdef", max_chars=3) == "Current page: \n\nCONTEXT:\nabc"
        assert build_context_message(None) == "Current page: \n\nCONTEXT:\n"

    def test_message_order(self):
        conversation = Conversation()
        conversation.add_user("hi")
        conversation.add_hidden_context("FETCHED LOGS")
        conversation.start_assistant()

        messages = build_chat_messages(conversation, "CTX", path="/", system_prompt="SYSTEM")

        assert messages == [
            {"role": "system", "content": "SYSTEM"},
            {"role": "user", "content": "Current page: /\n\nCONTEXT:\nCTX"},
            {"role": "user", "content": "hi"},
            {"role": "system", "content": "FETCHED LOGS"},
        ]

    def test_default_system_prompt(self):
        messages = build_chat_messages(Conversation())
        assert messages[0]["content"] == TUTOR_SYSTEM_PROMPT.render()
