import asyncio
import json

import pytest

from interview_coach.core.errors import StreamInterruptedError
from interview_coach.streaming.decoder import StreamingResponseDecoder, decode_line, extract_content, iter_fragments


def frame(text):
    return "data: " + json.dumps({"choices": [{"delta": {"content": text}}]})


class ListReader:
    def __init__(self, lines, fail_after=None):
        self.lines = lines
        self.fail_after = fail_after
        self.closed = 0

    async def aiter_lines(self):
        for i, line in enumerate(self.lines):
            if self.fail_after is not None and i == self.fail_after:
                raise ConnectionResetError("connection reset by peer")
            yield line

    async def aclose(self):
        self.closed += 1


def test_decode_line_cases():
    assert decode_line(frame("Hel")) == ("Hel", False)
    assert decode_line("data: [DONE]") == (None, True)
    assert decode_line("") == (None, False)
    assert decode_line(": keep-alive") == (None, False)
    assert decode_line("event: ping") == (None, False)
    assert decode_line("data: {not json") == (None, False)
    assert decode_line(b'data: {"choices":[{"delta":{}}]}') == (None, False)


def test_extract_content_handles_both_shapes():
    assert extract_content({"choices": [{"delta": {"content": "a"}}]}) == "a"
    assert extract_content({"message": {"content": "b"}}) == "b"
    assert extract_content({"choices": []}) is None
    assert extract_content(["not", "a", "dict"]) is None


def test_decoder_delivers_fragments_in_order_and_stops_at_done():
    reader = ListReader([frame("Hel"), "", frame("lo"), "data: {bad", "data: [DONE]", frame("ignored")])
    fragments = []

    result = asyncio.run(StreamingResponseDecoder().decode(reader, fragments.append))

    assert fragments == ["Hel", "lo"]
    assert result.full_response == "Hello"
    assert result.fragment_count == 2
    assert result.finished is True
    assert reader.closed == 1


def test_decoder_accepts_stream_closed_without_sentinel():
    reader = ListReader([frame("just"), frame(" this")])
    result = asyncio.run(StreamingResponseDecoder().decode(reader, lambda _: None))
    assert result.full_response == "just this"
    assert result.finished is False


def test_decoder_reports_partial_text_on_interruption():
    reader = ListReader([frame("Think "), frame("about "), frame("never")], fail_after=2)
    fragments = []

    with pytest.raises(StreamInterruptedError) as excinfo:
        asyncio.run(StreamingResponseDecoder().decode(reader, fragments.append))

    assert excinfo.value.full_response == "Think about "
    assert fragments == ["Think ", "about "]
    assert reader.closed == 1


def test_iter_fragments_is_lazy_and_finite():
    reader = ListReader([frame("a"), "data: [DONE]", frame("never read")], fail_after=2)

    async def collect():
        return [f async for f in iter_fragments(reader.aiter_lines())]

    assert asyncio.run(collect()) == ["a"]


def test_callback_failure_still_closes_reader():
    reader = ListReader([frame("a"), frame("b")])

    def boom(_fragment):
        raise ValueError("surface went away")

    with pytest.raises(StreamInterruptedError):
        asyncio.run(StreamingResponseDecoder().decode(reader, boom))
    assert reader.closed == 1
