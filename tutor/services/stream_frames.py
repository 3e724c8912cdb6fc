"""
Stream frames.

The chat stream is a server-sent-event body whose `data:` lines carry one JSON
frame each: `{"type": "text", "content": ...}`, `{"type": "done"}` or
`{"type": "error", "error": ...}`. Transport chunks may split lines anywhere,
including inside a multi-byte character.
"""

import codecs
import json
import logging
from typing import Iterable, Iterator, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"


class StreamFrame(BaseModel):
    """One decoded stream event."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: Literal["text", "done", "error"]
    content: str = ""
    error: Optional[str] = None

    @classmethod
    def text(cls, content: str) -> "StreamFrame":
        return cls(type="text", content=content)

    @classmethod
    def done(cls) -> "StreamFrame":
        return cls(type="done")

    @classmethod
    def failure(cls, error: str) -> "StreamFrame":
        return cls(type="error", error=error)


def decode_sse_line(line: str) -> Optional[StreamFrame]:
    """Decode one SSE line. Returns None for anything that is not a valid frame."""
    line = line.rstrip("\r")
    if not line.startswith(DATA_PREFIX):
        return None
    payload = line[len(DATA_PREFIX):].strip()
    if not payload:
        return None
    try:
        return StreamFrame.model_validate(json.loads(payload))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.debug(f"Ignoring undecodable stream payload: {payload[:100]} ({e.__class__.__name__})")
        return None


def decode_sse(chunks: Iterable[Union[str, bytes]]) -> Iterator[StreamFrame]:
    """
    Decode an SSE body delivered as arbitrary chunks into frames.

    Comments (`:`-prefixed lines), blank lines, non-data fields and payloads
    that are not valid frames are skipped. A final line without a trailing
    newline is still decoded when the body ends.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    pending = ""
    for chunk in chunks:
        pending += decoder.decode(chunk) if isinstance(chunk, bytes) else chunk
        *lines, pending = pending.split("\n")
        for line in lines:
            frame = decode_sse_line(line)
            if frame is not None:
                yield frame

    pending += decoder.decode(b"", final=True)
    if pending:
        frame = decode_sse_line(pending)
        if frame is not None:
            yield frame


def encode_sse(frame: StreamFrame) -> str:
    """Wire form of one frame, as the chat stream writes it."""
    payload = frame.model_dump(exclude_defaults=True)
    payload["type"] = frame.type
    return f"{DATA_PREFIX} {json.dumps(payload, ensure_ascii=False)}\n\n"
