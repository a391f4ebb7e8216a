from __future__ import annotations

from interview_coach.core.interfaces import LLMProvider, STTProvider, TTSProvider
from interview_coach.providers.llm_ollama import OllamaLLM, OllamaLLMConfig
from interview_coach.providers.llm_openai import OpenAILLM, OpenAILLMConfig
from interview_coach.providers.stt_openai import OpenAISTT, OpenAISTTConfig
from interview_coach.providers.tts_elevenlabs import ElevenLabsTTS, ElevenLabsTTSConfig
from interview_coach.providers.tts_openai import OpenAITTS, OpenAITTSConfig


def get_llm_provider(name: str, timeout_s: float = 60.0) -> LLMProvider:
    key = (name or "").strip().lower()

    if key in {"openai", "gpt"}:
        cfg = OpenAILLMConfig.from_env()
        return OpenAILLM(cfg, timeout_s=timeout_s)

    if key in {"ollama"}:
        cfg = OllamaLLMConfig.from_env()
        return OllamaLLM(cfg, timeout_s=max(timeout_s, 120.0))

    raise ValueError(f"Unknown LLM provider: {name}")


def get_stt_provider(name: str = "openai", timeout_s: float = 30.0) -> STTProvider:
    key = (name or "").strip().lower()

    if key in {"openai", "whisper"}:
        cfg = OpenAISTTConfig.from_env()
        return OpenAISTT(cfg, timeout_s=timeout_s)

    raise ValueError(f"Unknown STT provider: {name}")


def get_tts_provider(name: str, timeout_s: float = 30.0) -> TTSProvider:
    key = (name or "").strip().lower()

    if key in {"openai"}:
        cfg = OpenAITTSConfig.from_env()
        return OpenAITTS(cfg, timeout_s=timeout_s)

    if key in {"elevenlabs", "11labs", "eleven"}:
        cfg = ElevenLabsTTSConfig.from_env()
        return ElevenLabsTTS(cfg, timeout_s=timeout_s)

    raise ValueError(f"Unknown TTS provider: {name}")
