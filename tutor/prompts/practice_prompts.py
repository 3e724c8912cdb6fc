"""
Practice Chat Prompt Templates

System prompt for the streaming tutor chat and the helpers that turn a
conversation plus a context block into the message list sent to the model.
The system prompt teaches the model the directive vocabulary and the `◊`
question-highlighting convention that the directive parser understands.
"""

import json
from typing import Optional, Sequence

from tutor.models.messages import Conversation
from tutor.models.practice_log import PracticeLogEntry
from tutor.prompts.templates import PromptTemplate


TUTOR_SYSTEM_PROMPT = PromptTemplate(
    """You are {tutor_name}, an AI tutor.
Answer any question. Be concise, direct, and clear. Short sentences. No fluff.
Use the provided CONTEXT if it helps; treat it as useful background, not a hard constraint.
Prefer bullet points where helpful. Use Markdown. Equations in KaTeX ($...$). Code in fenced blocks.
If something depends on assumptions or missing data, state it explicitly.

## Practice questions
When asking a NEW practice question, wrap the COMPLETE question between ◊ characters,
e.g. ◊What is the derivative of f(x) = x² + 3x?◊. Never use ◊ when referring to earlier questions.

## Site actions
You can interact with the site with commands on their own line at the END of your reply:
ACTION:action_name|param1:value1|param2:value2

Available actions:
- create_course|name:CourseName|syllabus:Optional description
- open_course_modal
- navigate|path:/subjects/slug
- navigate_course|slug:course-slug
- open_flashcards|slug:course-slug
- set_exam_date|slug:course-slug|date:YYYY-MM-DD
- fetch_practice_logs|slug:course-slug
- fetch_exam_snipe_data|slug:Exact course name the user mentioned
- start_practice|slug:course-slug|topic:Optional topic

You can also render interactive elements:
BUTTON:button_id|label:Button Text|action:action_name|param1:value1
FILE_UPLOAD:upload_id|message:Instructions for what files to upload|buttonLabel:Generate

Rules:
1. Actions are optional; always write a natural response FIRST, then the command.
2. Use the exact course slug and topic names shown in CONTEXT. Never guess slugs.
3. Commands are hidden from the user; never output a command without a message.""",
    name="tutor_system",
    defaults={"tutor_name": "Nova"},
)

EXISTING_LOGS_LIMIT = 20


def format_existing_logs(entries: Sequence[PracticeLogEntry], limit: int = EXISTING_LOGS_LIMIT) -> str:
    """Recent log entries as JSON so the assessor reuses topic names."""
    if not entries:
        return "\n\nNo previous practice logs. This is the first question."
    recent = [
        entry.model_dump(include={"topic", "question", "grade", "timestamp"})
        for entry in list(entries)[-limit:]
    ]
    return (
        "\n\nEXISTING PRACTICE LOGS (use consistent topic names if similar questions exist):\n"
        + json.dumps(recent, indent=2, ensure_ascii=False)
    )


def build_context_message(context: str, path: str = "", max_chars: int = 12_000) -> str:
    """User-role preamble carrying the page path and the (capped) CONTEXT block."""
    return f"Current page: {path}\n\nCONTEXT:\n{(context or '')[:max(0, max_chars)]}"


def build_chat_messages(
    conversation: Conversation,
    context: str = "",
    *,
    path: str = "",
    max_context_chars: int = 12_000,
    system_prompt: Optional[str] = None,
) -> list[dict[str, str]]:
    """
    Message list for one streamed tutor reply.

    Order: system prompt, context preamble, then the conversation history
    (hidden side-channel messages included, streaming placeholders excluded).
    """
    return [
        {"role": "system", "content": system_prompt or TUTOR_SYSTEM_PROMPT.render()},
        {"role": "user", "content": build_context_message(context, path, max_context_chars)},
        *conversation.history_for_model(),
    ]
