from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

import openai
from openai import OpenAI

from interview_coach.core.errors import ConfigurationError, TranscriptionError
from interview_coach.core.interfaces import STTProvider
from interview_coach.core.models import AudioClip

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OpenAISTTConfig:
    api_key: str
    model: str = "gpt-4o-mini-transcribe"
    language: Optional[str] = "en"

    @staticmethod
    def from_env() -> "OpenAISTTConfig":
        api_key = os.getenv("OPENAI_API_KEY", "").strip()
        if not api_key:
            raise ConfigurationError("Missing OPENAI_API_KEY in environment.")
        model = os.getenv("STT_MODEL", "gpt-4o-mini-transcribe").strip()
        language = os.getenv("STT_LANGUAGE", "en").strip() or None
        return OpenAISTTConfig(api_key=api_key, model=model, language=language)


class OpenAISTT(STTProvider):
    """OpenAI audio transcription implementing STTProvider."""

    def __init__(self, config: OpenAISTTConfig, timeout_s: float = 30.0, client: Optional[OpenAI] = None) -> None:
        self._cfg = config
        self._client = client or OpenAI(api_key=config.api_key, timeout=timeout_s, max_retries=0)

    def transcribe(self, clip: AudioClip) -> str:
        if not clip.data:
            raise TranscriptionError("No audio was recorded.")

        kwargs = {}
        if self._cfg.language:
            kwargs["language"] = self._cfg.language

        logger.info("transcribing %.1fs clip with %s", clip.duration_s, self._cfg.model)
        try:
            resp = self._client.audio.transcriptions.create(
                model=self._cfg.model,
                file=(clip.filename, clip.data, clip.mime_type),
                **kwargs,
            )
        except openai.APIStatusError as e:
            raise TranscriptionError(
                f"Transcription failed: {e.status_code} {e.message}", status=e.status_code
            ) from e
        except openai.APIError as e:
            raise TranscriptionError(f"Transcription failed: {e}") from e

        return (getattr(resp, "text", "") or "").strip()
