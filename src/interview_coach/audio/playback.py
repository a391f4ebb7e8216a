from __future__ import annotations

import io
import logging
import wave
from typing import Optional

from interview_coach.core.errors import PlaybackError
from interview_coach.core.models import AudioClip

logger = logging.getLogger(__name__)


class SoundDevicePlayer:
    """Plays WAV or raw 16-bit PCM clips on the output device and blocks until done."""

    def __init__(self, device: Optional[int] = None) -> None:
        self.device = device

    def play(self, clip: AudioClip) -> None:
        import numpy as np
        import sounddevice as sd

        mime = (clip.mime_type or "").lower()
        if "wav" in mime:
            try:
                with wave.open(io.BytesIO(clip.data), "rb") as wf:
                    if wf.getsampwidth() != 2:
                        raise PlaybackError(f"Unsupported WAV sample width: {wf.getsampwidth()}")
                    channels = wf.getnchannels()
                    sample_rate = wf.getframerate()
                    pcm = wf.readframes(wf.getnframes())
            except (wave.Error, EOFError) as e:
                raise PlaybackError(f"Could not decode WAV audio: {e}") from e
        elif "pcm" in mime:
            channels, sample_rate, pcm = 1, clip.sample_rate, clip.data
        else:
            raise PlaybackError(f"Cannot play {clip.mime_type} audio; request WAV or PCM from the TTS provider.")

        samples = np.frombuffer(pcm, dtype=np.int16)
        if channels > 1:
            samples = samples.reshape(-1, channels)
        try:
            sd.play(samples, samplerate=sample_rate, device=self.device)
            sd.wait()
        except sd.PortAudioError as e:
            raise PlaybackError(f"Audio playback failed: {e}") from e
        logger.debug("played %.2fs of audio", len(samples) / max(1, sample_rate))


class CollectingPlayer:
    """Keeps the clips instead of playing them, for surfaces that render audio themselves."""

    def __init__(self) -> None:
        self.clips: list[AudioClip] = []

    @property
    def last(self) -> Optional[AudioClip]:
        return self.clips[-1] if self.clips else None

    def play(self, clip: AudioClip) -> None:
        self.clips.append(clip)
