from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

import httpx

from interview_coach.core.errors import ConfigurationError, MalformedResponseError, ModelError, ModelTimeoutError
from interview_coach.core.interfaces import FragmentCallback, LLMProvider
from interview_coach.core.models import Prompt
from interview_coach.streaming.decoder import (
    StreamingResponseDecoder,
    error_for_status,
    raise_for_stream_status,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OpenAILLMConfig:
    api_key: str
    model: str = "gpt-4o-mini"
    temperature: float = 0.7
    max_tokens: int = 300
    base_url: str = "https://api.openai.com/v1"

    @staticmethod
    def from_env() -> "OpenAILLMConfig":
        api_key = os.getenv("OPENAI_API_KEY", "").strip()
        if not api_key:
            raise ConfigurationError("Missing OPENAI_API_KEY in environment.")

        model = os.getenv("OPENAI_MODEL", "gpt-4o-mini").strip()
        temperature = float(os.getenv("OPENAI_TEMPERATURE", "0.7"))
        max_tokens = int(os.getenv("OPENAI_MAX_TOKENS", "300"))
        base_url = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1").strip()
        return OpenAILLMConfig(
            api_key=api_key,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            base_url=base_url,
        )


class OpenAILLM(LLMProvider):
    """
    Chat completions over httpx. A fresh AsyncClient per call keeps the provider
    usable from whichever event loop the caller runs.
    """

    provider_name = "OpenAI"

    def __init__(
        self,
        config: OpenAILLMConfig,
        timeout_s: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._cfg = config
        self._timeout = httpx.Timeout(timeout_s, connect=10.0)
        self._transport = transport
        self._decoder = StreamingResponseDecoder()

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._cfg.base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {self._cfg.api_key}"},
            timeout=self._timeout,
            transport=self._transport,
        )

    def _payload(self, prompt: Prompt, stream: bool) -> dict:
        return {
            "model": self._cfg.model,
            "messages": prompt.to_messages(),
            "max_tokens": self._cfg.max_tokens,
            "temperature": self._cfg.temperature,
            "stream": stream,
        }

    async def complete(self, prompt: Prompt) -> str:
        logger.info("%s complete model=%s history=%d", self.provider_name, self._cfg.model, len(prompt.history))
        try:
            async with self._client() as client:
                resp = await client.post("/chat/completions", json=self._payload(prompt, stream=False))
        except httpx.TimeoutException as e:
            raise ModelTimeoutError(f"{self.provider_name} request timed out ({e})") from e
        except httpx.HTTPError as e:
            raise ModelError(f"Failed to reach {self.provider_name} at {self._cfg.base_url} ({e})") from e

        if resp.status_code >= 400:
            raise error_for_status(self.provider_name, resp.status_code, resp.text[:500])

        try:
            data = resp.json()
            text = (data["choices"][0]["message"]["content"] or "").strip()
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise MalformedResponseError(
                f"{self.provider_name} returned an unexpected response body.", status=resp.status_code
            ) from e
        return text

    async def stream_complete(self, prompt: Prompt, on_fragment: FragmentCallback) -> str:
        logger.info("%s stream model=%s history=%d", self.provider_name, self._cfg.model, len(prompt.history))
        try:
            async with self._client() as client:
                request = client.build_request(
                    "POST",
                    "/chat/completions",
                    json=self._payload(prompt, stream=True),
                    headers={"Accept": "text/event-stream"},
                )
                response = await client.send(request, stream=True)
                await raise_for_stream_status(response, self.provider_name)
                result = await self._decoder.decode(response, on_fragment)
        except httpx.TimeoutException as e:
            raise ModelTimeoutError(f"{self.provider_name} request timed out ({e})") from e
        except httpx.HTTPError as e:
            raise ModelError(f"Failed to reach {self.provider_name} at {self._cfg.base_url} ({e})") from e

        logger.debug("%s stream finished: %d fragments, sentinel=%s", self.provider_name, result.fragment_count, result.finished)
        return result.full_response.strip()
