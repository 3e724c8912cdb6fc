"""
Message Models

Conversation messages exchanged with the tutor model, plus the conversation
container that decides what is shown and what is sent back to the model.
"""

from typing import Literal
from pydantic import BaseModel, Field

from tutor.exceptions import ExchangeClosedError


class Message(BaseModel):
    """Individual message in a conversation."""

    role: Literal["user", "assistant", "system"] = Field(description="Role of the message sender")
    content: str = Field(default="", description="Message content text")
    visible: bool = Field(default=True, description="False for side-channel messages never shown to the user")
    streaming: bool = Field(default=False, description="True while content is still arriving")

    def replace_streamed_content(self, content: str) -> None:
        """Set the latest cleaned content of a streaming message."""
        if not self.streaming:
            raise ExchangeClosedError(exchange_id=f"message:{self.role}")
        self.content = content

    def finish(self, content: str) -> None:
        """Store the final content and freeze the message."""
        if not self.streaming:
            raise ExchangeClosedError(exchange_id=f"message:{self.role}")
        self.content = content
        self.streaming = False


class Conversation(BaseModel):
    """Ordered list of messages for one chat."""

    messages: list[Message] = Field(default_factory=list)

    def add(self, message: Message) -> Message:
        self.messages.append(message)
        return message

    def add_user(self, content: str, visible: bool = True) -> Message:
        return self.add(Message(role="user", content=content, visible=visible))

    def add_hidden_context(self, content: str) -> Message:
        """Carry side-channel data (fetched analysis, logs) into the next model call."""
        return self.add(Message(role="system", content=content, visible=False))

    def start_assistant(self) -> Message:
        return self.add(Message(role="assistant", content="", streaming=True))

    def remove(self, message: Message) -> None:
        self.messages = [m for m in self.messages if m is not message]

    def visible_messages(self) -> list[Message]:
        return [m for m in self.messages if m.visible]

    def history_for_model(self) -> list[dict[str, str]]:
        """Messages in role/content form, hidden ones included, empty ones skipped."""
        return [
            {"role": m.role, "content": m.content}
            for m in self.messages
            if m.content and not m.streaming
        ]
