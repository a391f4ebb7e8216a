"""
Decoder for `data: <json>` event streams as sent by chat-completions style APIs.

    data: {"choices":[{"delta":{"content":"Hel"}}]}
    data: {"choices":[{"delta":{"content":"lo"}}]}
    data: [DONE]

Blank lines, comments (`:`) and lines without the `data:` marker are ignored.
A frame that is not valid JSON is skipped; one bad frame never aborts the stream.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Optional, Protocol, Tuple, Union

from interview_coach.core.errors import ModelError, RateLimitedError, StreamInterruptedError

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


class StreamReader(Protocol):
    """The subset of `httpx.Response` the decoder consumes."""

    def aiter_lines(self) -> AsyncIterator[str]:
        ...

    async def aclose(self) -> None:
        ...


@dataclass(frozen=True)
class StreamResult:
    full_response: str
    fragment_count: int
    finished: bool  # True when the end sentinel was seen, False when the stream just closed


def extract_content(message: Any) -> Optional[str]:
    """Incremental text of one frame: OpenAI `choices[0].delta.content` or Ollama `message.content`."""
    if not isinstance(message, dict):
        return None
    choices = message.get("choices")
    if isinstance(choices, list) and choices:
        first = choices[0] if isinstance(choices[0], dict) else {}
        delta = first.get("delta") or {}
        content = delta.get("content") if isinstance(delta, dict) else None
        return content if isinstance(content, str) else None
    msg = message.get("message")
    if isinstance(msg, dict):
        content = msg.get("content")
        return content if isinstance(content, str) else None
    return None


def decode_line(raw: Union[str, bytes]) -> Tuple[Optional[str], bool]:
    """Returns (fragment or None, end-of-stream reached)."""
    line = raw.decode("utf-8", errors="ignore") if isinstance(raw, bytes) else raw
    line = line.strip()
    if not line or line.startswith(":") or not line.startswith(DATA_PREFIX):
        return None, False
    payload = line[len(DATA_PREFIX):].strip()
    if payload == DONE_SENTINEL:
        return None, True
    try:
        message = json.loads(payload)
    except json.JSONDecodeError:
        logger.debug("skipping non-JSON frame: %.200s", payload)
        return None, False
    return extract_content(message) or None, False


async def iter_fragments(lines: AsyncIterator[Union[str, bytes]]) -> AsyncIterator[str]:
    """Lazy, finite, single-pass sequence of text fragments."""
    async for raw in lines:
        fragment, done = decode_line(raw)
        if done:
            return
        if fragment:
            yield fragment


def error_for_status(provider: str, status: int, detail: str) -> ModelError:
    message = f"{provider} request failed: {status} - {detail or f'HTTP {status}'}"
    if status == 429:
        return RateLimitedError(message, status=status)
    return ModelError(message, status=status)


async def raise_for_stream_status(response: Any, provider: str) -> None:
    """Fail before any fragment when the provider answered with an error status."""
    if response.status_code < 400:
        return
    try:
        body = await response.aread()
        detail = body.decode("utf-8", errors="ignore")[:500] if body else ""
    finally:
        await response.aclose()
    raise error_for_status(provider, response.status_code, detail)


class StreamingResponseDecoder:
    """Pushes fragments to a callback in arrival order and returns the assembled text."""

    async def decode(self, reader: StreamReader, on_fragment: Callable[[str], None]) -> StreamResult:
        parts: list[str] = []
        finished = False
        try:
            async for raw in reader.aiter_lines():
                fragment, done = decode_line(raw)
                if done:
                    finished = True
                    break
                if fragment:
                    parts.append(fragment)
                    on_fragment(fragment)
        except Exception as e:
            partial = "".join(parts)
            logger.warning("reply stream interrupted after %d fragments: %s", len(parts), e)
            raise StreamInterruptedError(
                f"Reply stream interrupted: {e}", full_response=partial
            ) from e
        finally:
            await reader.aclose()

        return StreamResult(full_response="".join(parts), fragment_count=len(parts), finished=finished)
