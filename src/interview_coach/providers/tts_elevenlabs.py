from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

import requests

from interview_coach.core.errors import ConfigurationError, SynthesisError
from interview_coach.core.interfaces import TTSProvider
from interview_coach.core.models import AudioClip

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ElevenLabsTTSConfig:
    api_key: str
    voice_id: str
    model_id: Optional[str] = None
    output_format: str = "pcm_22050"  # raw 16-bit PCM, playable without a decoder
    base_url: str = "https://api.elevenlabs.io/v1"

    @staticmethod
    def from_env() -> "ElevenLabsTTSConfig":
        api_key = os.getenv("ELEVENLABS_API_KEY", "").strip()
        if not api_key:
            raise ConfigurationError("Missing ELEVENLABS_API_KEY in environment.")

        voice_id = os.getenv("ELEVENLABS_VOICE_ID", "").strip()
        if not voice_id:
            raise ConfigurationError("Missing ELEVENLABS_VOICE_ID in environment.")

        model_id = os.getenv("ELEVENLABS_MODEL_ID", "").strip() or None
        output_format = os.getenv("ELEVENLABS_OUTPUT_FORMAT", "pcm_22050").strip()

        return ElevenLabsTTSConfig(
            api_key=api_key,
            voice_id=voice_id,
            model_id=model_id,
            output_format=output_format,
        )

    @property
    def clip_format(self) -> tuple[str, int]:
        """(mime type, sample rate) of what `output_format` asks for, e.g. pcm_22050 or mp3_44100_128."""
        codec, _, rest = self.output_format.partition("_")
        rate = rest.split("_")[0]
        sample_rate = int(rate) if rate.isdigit() else 22050
        if codec == "pcm":
            return "audio/pcm", sample_rate
        if codec == "mp3":
            return "audio/mpeg", sample_rate
        return f"audio/{codec}", sample_rate


class ElevenLabsTTS(TTSProvider):
    """
    ElevenLabs Text-to-Speech provider.
    Returns raw PCM by default so SoundDevicePlayer can play it directly.
    """

    def __init__(self, config: ElevenLabsTTSConfig, timeout_s: float = 30.0) -> None:
        self._cfg = config
        self._timeout_s = timeout_s

    def synthesize(self, text: str) -> AudioClip:
        text = (text or "").strip()
        if not text:
            raise SynthesisError("ElevenLabsTTS.synthesize received empty text.")

        url = f"{self._cfg.base_url}/text-to-speech/{self._cfg.voice_id}"
        mime_type, sample_rate = self._cfg.clip_format

        headers = {
            "xi-api-key": self._cfg.api_key,
            "accept": "audio/mpeg" if mime_type == "audio/mpeg" else "*/*",
            "content-type": "application/json",
        }

        payload: dict = {"text": text}
        if self._cfg.model_id:
            payload["model_id"] = self._cfg.model_id

        params = {"output_format": self._cfg.output_format} if self._cfg.output_format else None

        try:
            resp = requests.post(
                url,
                headers=headers,
                params=params,
                json=payload,
                timeout=self._timeout_s,
            )
        except requests.RequestException as e:
            raise SynthesisError(f"Failed to reach ElevenLabs ({e})") from e

        if resp.status_code >= 400:
            detail = resp.text[:500] if resp.text else f"HTTP {resp.status_code}"
            raise SynthesisError(f"ElevenLabs TTS failed: {resp.status_code} - {detail}", status=resp.status_code)

        audio_bytes = resp.content
        if not audio_bytes:
            raise SynthesisError("ElevenLabs returned empty audio content.")

        duration = len(audio_bytes) / 2 / sample_rate if mime_type == "audio/pcm" else 0.0
        logger.debug("ElevenLabs synthesized %d bytes (%s)", len(audio_bytes), self._cfg.output_format)
        return AudioClip(data=audio_bytes, mime_type=mime_type, sample_rate=sample_rate, duration_s=duration)
