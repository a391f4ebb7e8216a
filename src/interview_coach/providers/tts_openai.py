from __future__ import annotations

import io
import logging
import os
import wave
from dataclasses import dataclass
from typing import Optional

import openai
from openai import OpenAI

from interview_coach.core.errors import ConfigurationError, SynthesisError
from interview_coach.core.interfaces import TTSProvider
from interview_coach.core.models import AudioClip

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OpenAITTSConfig:
    api_key: str
    model: str = "tts-1"
    voice: str = "alloy"

    @staticmethod
    def from_env() -> "OpenAITTSConfig":
        api_key = os.getenv("OPENAI_API_KEY", "").strip()
        if not api_key:
            raise ConfigurationError("Missing OPENAI_API_KEY in environment.")
        model = os.getenv("OPENAI_TTS_MODEL", "tts-1").strip()
        voice = os.getenv("OPENAI_TTS_VOICE", "alloy").strip()
        return OpenAITTSConfig(api_key=api_key, model=model, voice=voice)


def _wav_info(data: bytes) -> tuple[int, float]:
    try:
        with wave.open(io.BytesIO(data), "rb") as wf:
            rate = wf.getframerate()
            return rate, wf.getnframes() / float(rate or 1)
    except (wave.Error, EOFError):
        return 24000, 0.0


class OpenAITTS(TTSProvider):
    """OpenAI speech synthesis; asks for WAV so the clip plays without an MP3 decoder."""

    def __init__(self, config: OpenAITTSConfig, timeout_s: float = 30.0, client: Optional[OpenAI] = None) -> None:
        self._cfg = config
        self._client = client or OpenAI(api_key=config.api_key, timeout=timeout_s, max_retries=0)

    def synthesize(self, text: str) -> AudioClip:
        text = (text or "").strip()
        if not text:
            raise SynthesisError("OpenAITTS.synthesize received empty text.")

        try:
            resp = self._client.audio.speech.create(
                model=self._cfg.model,
                voice=self._cfg.voice,
                input=text,
                response_format="wav",
            )
        except openai.APIStatusError as e:
            raise SynthesisError(f"TTS failed: {e.status_code} {e.message}", status=e.status_code) from e
        except openai.APIError as e:
            raise SynthesisError(f"TTS failed: {e}") from e

        audio = resp.content
        if not audio:
            raise SynthesisError("OpenAI returned empty audio content.")
        rate, duration = _wav_info(audio)
        logger.debug("synthesized %.1fs of speech", duration)
        return AudioClip(data=audio, mime_type="audio/wav", sample_rate=rate, duration_s=duration)
