"""
Exchange Service

Consumes one streamed tutor reply (an *exchange*) fragment by fragment:

- every text frame is appended to the exchange's buffer and the whole buffer
  is re-parsed, so the visible message always reflects the latest parse;
- when the stream completes, a final parse runs and the directives are
  dispatched exactly once;
- an error frame or a cancellation discards the buffer; nothing is dispatched.

`ChatSession` owns the conversation and makes sure at most one exchange is
active: starting a new one cancels the previous one.
"""

import json
import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from pydantic import BaseModel, ConfigDict

from config import Settings, get_settings
from shared.services.llm_service import LLMService
from tutor.exceptions import ExchangeCancelledError, ExchangeClosedError, StreamFrameError
from tutor.models.directives import ParseResult
from tutor.models.messages import Conversation, Message
from tutor.prompts.practice_prompts import build_chat_messages
from tutor.services.directive_dispatcher import DirectiveDispatcher, DispatchOutcome
from tutor.services.directive_parser import parse
from tutor.services.stream_frames import StreamFrame

logger = logging.getLogger(__name__)


class StreamBuffer:
    """Append-only text accumulated for one exchange."""

    def __init__(self, exchange_id: str):
        self.exchange_id = exchange_id
        self._text = ""
        self._closed = False

    @property
    def text(self) -> str:
        return self._text

    @property
    def closed(self) -> bool:
        return self._closed

    def append(self, fragment: str) -> str:
        if self._closed:
            raise ExchangeClosedError(exchange_id=self.exchange_id)
        self._text += fragment
        return self._text

    def close(self) -> None:
        """Freeze the buffer; its text stays readable."""
        self._closed = True

    def discard(self) -> None:
        """Drop the accumulated text and close the buffer."""
        self._text = ""
        self._closed = True


class ExchangeUpdate(BaseModel):
    """One published parse of the buffer. Higher `seq` is newer."""

    model_config = ConfigDict(frozen=True)

    seq: int
    result: ParseResult
    final: bool = False


@dataclass
class ExchangeResult:
    result: ParseResult
    outcome: Optional[DispatchOutcome] = None


class TutorExchange:
    """
    Lifecycle of one streamed reply.

    States: streaming -> completed | failed | cancelled.
    """

    def __init__(
        self,
        message: Message,
        dispatcher: Optional[DirectiveDispatcher] = None,
        on_update: Optional[Callable[[ExchangeUpdate], None]] = None,
        exchange_id: Optional[str] = None,
    ):
        self.id = exchange_id or uuid.uuid4().hex[:12]
        self.message = message
        self.dispatcher = dispatcher
        self.on_update = on_update
        self.buffer = StreamBuffer(self.id)
        self.state = "streaming"
        self._cancelled = threading.Event()
        self._lock = threading.Lock()
        self._seq = 0
        self._latest: Optional[ExchangeUpdate] = None
        self._dispatched = False

    @property
    def latest(self) -> Optional[ExchangeUpdate]:
        return self._latest

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def finished(self) -> bool:
        return self.state != "streaming"

    def cancel(self) -> None:
        """Request teardown. Takes effect at the next frame boundary."""
        self._cancelled.set()

    def _publish(self, result: ParseResult, final: bool = False) -> ExchangeUpdate:
        with self._lock:
            self._seq += 1
            update = ExchangeUpdate(seq=self._seq, result=result, final=final)
            if self._latest is None or update.seq > self._latest.seq:
                self._latest = update
        if self.on_update is not None:
            self.on_update(update)
        return update

    def _abort(self, state: str) -> None:
        self.buffer.discard()
        if self.message.streaming:
            self.message.finish("")
        self.state = state

    def run(self, frames: Iterable[StreamFrame]) -> ExchangeResult:
        """
        Consume frames until `done`, an error or the end of the stream.

        Raises:
            StreamFrameError: the stream delivered an error frame or broke off
            ExchangeCancelledError: the exchange was cancelled mid-stream
            ExchangeClosedError: the exchange already finished
        """
        if self.finished or self.buffer.closed:
            raise ExchangeClosedError(exchange_id=self.id)

        iterator = iter(frames)
        try:
            for frame in iterator:
                if self.cancelled:
                    break
                if frame.type == "error":
                    self._abort("failed")
                    logger.warning(json.dumps({
                        "step": "EXCHANGE",
                        "status": "failed",
                        "exchange_id": self.id,
                        "error": frame.error,
                    }))
                    raise StreamFrameError(frame.error)
                if frame.type == "done":
                    break
                if frame.content:
                    self.buffer.append(frame.content)
                    result = parse(self.buffer.text, streaming=True)
                    self.message.replace_streamed_content(result.display_text)
                    self._publish(result)
        except StreamFrameError:
            raise
        except Exception as e:
            self._abort("failed")
            logger.error(json.dumps({
                "step": "EXCHANGE",
                "status": "failed",
                "exchange_id": self.id,
                "error": str(e),
                "error_type": type(e).__name__,
            }))
            raise StreamFrameError(str(e)) from e
        finally:
            if self.cancelled or self.state == "failed":
                close = getattr(iterator, "close", None)
                if close is not None:
                    close()

        if self.cancelled:
            self._abort("cancelled")
            logger.info(json.dumps({
                "step": "EXCHANGE",
                "status": "cancelled",
                "exchange_id": self.id,
            }))
            raise ExchangeCancelledError(exchange_id=self.id)

        return self._complete()

    def _complete(self) -> ExchangeResult:
        self.buffer.close()
        result = parse(self.buffer.text, streaming=False)
        self.message.finish(result.display_text)
        self._publish(result, final=True)
        self.state = "completed"

        outcome = None
        if self.dispatcher is not None and not self._dispatched:
            self._dispatched = True
            outcome = self.dispatcher.dispatch(result.directives)

        logger.info(json.dumps({
            "step": "EXCHANGE",
            "status": "complete",
            "exchange_id": self.id,
            "chars": len(self.buffer.text),
            "updates": self._seq,
            "directives": len(result.directives),
        }))
        return ExchangeResult(result=result, outcome=outcome)


class ChatSession:
    """A conversation with at most one active exchange."""

    def __init__(
        self,
        llm_service: LLMService,
        dispatcher: Optional[DirectiveDispatcher] = None,
        *,
        settings: Optional[Settings] = None,
        on_update: Optional[Callable[[ExchangeUpdate], None]] = None,
        path: str = "",
    ):
        self.llm_service = llm_service
        self.dispatcher = dispatcher
        self.settings = settings or get_settings()
        self.on_update = on_update
        self.path = path
        self.conversation = Conversation()
        self._active: Optional[TutorExchange] = None
        self._lock = threading.Lock()

    @property
    def active_exchange(self) -> Optional[TutorExchange]:
        return self._active

    def add_hidden_context(self, text: str) -> Message:
        """Side-channel data for the next model call, never displayed."""
        return self.conversation.add_hidden_context(text)

    def start_exchange(self) -> TutorExchange:
        """Open a new exchange, cancelling any exchange still in flight."""
        with self._lock:
            previous = self._active
            if previous is not None and not previous.finished:
                logger.info(f"Cancelling exchange {previous.id} in favour of a new one")
                previous.cancel()
            message = self.conversation.start_assistant()
            exchange = TutorExchange(message, self.dispatcher, self.on_update)
            self._active = exchange
            return exchange

    def cancel_active(self) -> None:
        with self._lock:
            if self._active is not None:
                self._active.cancel()

    def send(self, user_text: str, context: str = "", *, visible: bool = True) -> ExchangeResult:
        """
        Send a user message and stream the tutor's reply.

        Args:
            user_text: Message text (empty to only trigger a reply)
            context: CONTEXT block for this request
            visible: False for trigger messages that must not be displayed

        Raises:
            StreamFrameError: the stream failed; the reply placeholder is removed
            ExchangeCancelledError: a newer exchange superseded this one
        """
        if user_text:
            self.conversation.add_user(user_text, visible=visible)

        messages = build_chat_messages(
            self.conversation,
            context,
            path=self.path,
            max_context_chars=self.settings.chat_context_max_chars,
        )
        exchange = self.start_exchange()
        payloads = self.llm_service.stream_chat(
            messages,
            temperature=self.settings.chat_temperature,
            max_tokens=self.settings.chat_max_tokens,
        )
        frames = (StreamFrame.model_validate(payload) for payload in payloads)

        try:
            return exchange.run(frames)
        except Exception:
            self.conversation.remove(exchange.message)
            raise
        finally:
            close = getattr(payloads, "close", None)
            if close is not None:
                close()
            with self._lock:
                if self._active is exchange:
                    self._active = None
