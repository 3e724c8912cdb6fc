"""Unit tests for stream frame decoding."""

import pytest
from pydantic import ValidationError

from tutor.services.stream_frames import StreamFrame, decode_sse, decode_sse_line, encode_sse


BODY = (
    'data: {"type": "text", "content": "héllo ◊"}\n'
    "\n"
    ": keep-alive comment\n"
    "event: message\n"
    "data: not json\n"
    'data: {"type": "bogus"}\n'
    'data: {"type": "done"}'
)


class TestStreamFrame:
    """Tests for the frame model."""

    def test_constructors(self):
        assert StreamFrame.text("hi") == StreamFrame(type="text", content="hi")
        assert StreamFrame.done().type == "done"
        assert StreamFrame.failure("boom").error == "boom"

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            StreamFrame(type="partial")

    def test_extra_fields_ignored(self):
        frame = StreamFrame.model_validate({"type": "text", "content": "a", "index": 3})
        assert frame == StreamFrame.text("a")


class TestDecodeLine:
    """Tests for single-line decoding."""

    def test_data_line(self):
        assert decode_sse_line('data: {"type": "text", "content": "x"}') == StreamFrame.text("x")

    def test_prefix_without_space_and_crlf(self):
        assert decode_sse_line('data:{"type": "done"}\r') == StreamFrame.done()

    @pytest.mark.parametrize("line", ["", ": comment", "event: x", "data:", "data:   ", "data: [1, 2]", "data: {"])
    def test_ignored_lines(self, line):
        assert decode_sse_line(line) is None


class TestDecodeBody:
    """Tests for chunked body decoding."""

    def test_whole_body(self):
        assert list(decode_sse([BODY])) == [StreamFrame.text("héllo ◊"), StreamFrame.done()]

    def test_every_byte_split(self):
        raw = BODY.encode("utf-8")
        expected = [StreamFrame.text("héllo ◊"), StreamFrame.done()]

        for cut in range(len(raw) + 1):
            assert list(decode_sse([raw[:cut], raw[cut:]])) == expected, f"cut at byte {cut}"

    def test_one_byte_chunks(self):
        raw = BODY.encode("utf-8")
        frames = list(decode_sse(raw[i:i + 1] for i in range(len(raw))))
        assert frames == [StreamFrame.text("héllo ◊"), StreamFrame.done()]

    def test_empty_body(self):
        assert list(decode_sse([])) == []


class TestEncode:
    """Tests for the wire form."""

    def test_text_frame(self):
        assert encode_sse(StreamFrame.text("hi")) == 'data: {"type": "text", "content": "hi"}\n\n'

    def test_done_frame(self):
        assert encode_sse(StreamFrame.done()) == 'data: {"type": "done"}\n\n'

    def test_error_frame(self):
        assert encode_sse(StreamFrame.failure("Rate limited")) == (
            'data: {"type": "error", "error": "Rate limited"}\n\n'
        )

    def test_encoded_stream_decodes_back(self):
        frames = [StreamFrame.text("Δx "), StreamFrame.text("ACTION:navigate|path:/"), StreamFrame.done()]
        assert list(decode_sse(encode_sse(f) for f in frames)) == frames
