from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

import httpx
import requests

from interview_coach.core.errors import MalformedResponseError, ModelError, ModelTimeoutError
from interview_coach.core.models import Prompt
from interview_coach.providers.llm_openai import OpenAILLM, OpenAILLMConfig
from interview_coach.streaming.decoder import error_for_status, extract_content

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OllamaLLMConfig:
    base_url: str = "http://localhost:11434"
    model: str = "llama3.2:3b"
    temperature: float = 0.7

    @staticmethod
    def from_env() -> "OllamaLLMConfig":
        base_url = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434").strip()
        model = os.getenv("OLLAMA_MODEL", "llama3.2:3b").strip()
        temperature = float(os.getenv("OLLAMA_TEMPERATURE", "0.7"))
        return OllamaLLMConfig(base_url=base_url, model=model, temperature=temperature)


@dataclass(frozen=True)
class OllamaStatus:
    ok: bool
    base_url: str
    model: str
    error: Optional[str] = None
    available_models: Optional[list[str]] = None

    @property
    def model_available(self) -> bool:
        return bool(self.available_models) and self.model in (self.available_models or [])


def check_ollama(base_url: str, model: str, timeout_s: float = 2.0) -> OllamaStatus:
    """Reachability and installed models, from /api/tags."""
    url = f"{base_url.rstrip('/')}/api/tags"
    try:
        resp = requests.get(url, timeout=timeout_s)
    except requests.RequestException as e:
        return OllamaStatus(ok=False, base_url=base_url, model=model, error=str(e))
    if resp.status_code >= 400:
        return OllamaStatus(
            ok=False,
            base_url=base_url,
            model=model,
            error=f"HTTP {resp.status_code}: {resp.text[:200]}",
        )
    data = resp.json()
    models = [m.get("name", "") for m in (data.get("models") or []) if m.get("name")]
    return OllamaStatus(ok=True, base_url=base_url, model=model, available_models=models)


class OllamaLLM(OpenAILLM):
    """
    Local Ollama model. Streaming goes through Ollama's OpenAI-compatible
    /v1/chat/completions endpoint so the same event-stream decoder applies;
    single-shot completions use the native /api/chat endpoint.
    """

    provider_name = "Ollama"

    def __init__(
        self,
        config: OllamaLLMConfig,
        timeout_s: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._ollama = config
        super().__init__(
            OpenAILLMConfig(
                api_key="ollama",
                model=config.model,
                temperature=config.temperature,
                base_url=f"{config.base_url.rstrip('/')}/v1",
            ),
            timeout_s=timeout_s,
            transport=transport,
        )

    async def complete(self, prompt: Prompt) -> str:
        url = f"{self._ollama.base_url.rstrip('/')}/api/chat"
        payload = {
            "model": self._ollama.model,
            "messages": prompt.to_messages(),
            "stream": False,
            "options": {"temperature": self._ollama.temperature},
        }
        logger.info("Ollama complete model=%s history=%d", self._ollama.model, len(prompt.history))
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(url, json=payload)
        except httpx.TimeoutException as e:
            raise ModelTimeoutError(f"Ollama request timed out ({e})") from e
        except httpx.HTTPError as e:
            raise ModelError(
                f"Failed to reach Ollama at {self._ollama.base_url}. Is `ollama serve` running? ({e})"
            ) from e

        if resp.status_code >= 400:
            raise error_for_status("Ollama", resp.status_code, resp.text[:500])

        try:
            text = extract_content(resp.json())
        except ValueError as e:
            raise MalformedResponseError("Ollama returned a non-JSON body.", status=resp.status_code) from e
        if text is None:
            raise MalformedResponseError("Ollama response has no message content.", status=resp.status_code)
        return text.strip()
