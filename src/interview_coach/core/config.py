from __future__ import annotations

import os
from dataclasses import dataclass


def env_int(name: str, default: int) -> int:
    val = os.environ.get(name)
    if val is None:
        return default
    try:
        return int(val)
    except ValueError:
        return default


def env_float(name: str, default: float) -> float:
    val = os.environ.get(name)
    if val is None:
        return default
    try:
        return float(val)
    except ValueError:
        return default


def env_bool(name: str, default: bool) -> bool:
    val = os.environ.get(name)
    if val is None:
        return default
    return val.strip().lower() not in {"0", "false", "no", "off"}


@dataclass(frozen=True)
class CoachConfig:
    history_limit: int = 8
    transcribe_timeout_s: float = 30.0
    reply_timeout_s: float = 60.0
    synth_timeout_s: float = 30.0
    shortcut_debounce_ms: int = 500
    stream_replies: bool = True
    llm_provider: str = "openai"
    tts_provider: str = "openai"

    @staticmethod
    def from_env() -> "CoachConfig":
        d = CoachConfig()
        return CoachConfig(
            history_limit=max(0, env_int("INTERVIEW_HISTORY_LIMIT", d.history_limit)),
            transcribe_timeout_s=env_float("INTERVIEW_TRANSCRIBE_TIMEOUT_S", d.transcribe_timeout_s),
            reply_timeout_s=env_float("INTERVIEW_REPLY_TIMEOUT_S", d.reply_timeout_s),
            synth_timeout_s=env_float("INTERVIEW_SYNTH_TIMEOUT_S", d.synth_timeout_s),
            shortcut_debounce_ms=env_int("INTERVIEW_SHORTCUT_DEBOUNCE_MS", d.shortcut_debounce_ms),
            stream_replies=env_bool("INTERVIEW_STREAM_REPLIES", d.stream_replies),
            llm_provider=os.getenv("INTERVIEW_LLM_PROVIDER", d.llm_provider).strip(),
            tts_provider=os.getenv("INTERVIEW_TTS_PROVIDER", d.tts_provider).strip(),
        )
