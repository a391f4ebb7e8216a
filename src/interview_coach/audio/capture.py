from __future__ import annotations

import asyncio
import io
import logging
import threading
import wave
from typing import Callable, Optional

from interview_coach.core.errors import DeviceUnavailableError, PermissionDeniedError
from interview_coach.core.interfaces import MicrophoneBackend, MicrophoneHandle
from interview_coach.core.models import AudioClip

logger = logging.getLogger(__name__)

SAMPLE_RATE = 16000
FRAME_MS = 10
FRAME_SAMPLES = SAMPLE_RATE * FRAME_MS // 1000


def pcm_to_wav(pcm16: bytes, sample_rate: int = SAMPLE_RATE) -> bytes:
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm16)
    return buffer.getvalue()


class AudioCaptureController:
    """
    Owns the microphone for push-to-talk recording.

    start() acquires the device and buffers PCM chunks; stop() turns the buffer
    into a WAV clip and stops every track. stop() and release() are idempotent,
    and a stop() that lands while the device is still opening makes start()
    release the handle as soon as it arrives.
    """

    def __init__(self, backend: MicrophoneBackend, sample_rate: int = SAMPLE_RATE) -> None:
        self._backend = backend
        self._sample_rate = sample_rate
        self._lock = threading.Lock()
        self._chunks: list[bytes] = []
        self._handle: Optional[MicrophoneHandle] = None
        self._opening = False
        self._abandoned = False

    @property
    def is_recording(self) -> bool:
        return self._handle is not None

    @property
    def is_opening(self) -> bool:
        return self._opening

    @property
    def active_tracks(self) -> int:
        handle = self._handle
        return handle.active_tracks if handle is not None else 0

    def _on_chunk(self, chunk: bytes) -> None:
        # Called from the audio thread.
        if not chunk:
            return
        with self._lock:
            if self._handle is not None or self._opening:
                self._chunks.append(bytes(chunk))

    def _open_device(self) -> Optional[MicrophoneHandle]:
        # Runs on a worker thread; it outlives a cancelled start().
        handle = self._backend.open(self._on_chunk)
        with self._lock:
            if not self._abandoned:
                self._handle = handle
                return handle
            self._chunks = []
        logger.info("capture abandoned while opening; releasing device")
        handle.stop()
        return None

    def _abandon(self) -> bool:
        with self._lock:
            self._abandoned = True
            handle, self._handle = self._handle, None
            self._chunks = []
        if handle is None:
            return False
        handle.stop()
        return True

    async def start(self) -> bool:
        """
        Returns True when recording, False when the capture was abandoned while
        the device was opening. Raises PermissionDeniedError / DeviceUnavailableError.
        """
        with self._lock:
            self._chunks = []
            self._abandoned = False
        self._opening = True
        try:
            handle = await asyncio.to_thread(self._open_device)
        except asyncio.CancelledError:
            self._abandon()
            raise
        finally:
            self._opening = False

        if handle is None or self._abandoned:
            return False
        logger.debug("recording started (%d tracks)", handle.active_tracks)
        return True

    def stop(self) -> Optional[AudioClip]:
        """Finish the recording. Returns None when nothing was recording."""
        if self._opening:
            self._abandon()
            return None

        handle, self._handle = self._handle, None
        if handle is None:
            return None
        handle.stop()

        with self._lock:
            pcm = b"".join(self._chunks)
            self._chunks = []

        duration = len(pcm) / 2 / self._sample_rate
        logger.debug("recording stopped: %.2fs of audio", duration)
        return AudioClip(
            data=pcm_to_wav(pcm, self._sample_rate) if pcm else b"",
            mime_type="audio/wav",
            sample_rate=self._sample_rate,
            duration_s=duration,
        )

    def release(self) -> None:
        """Teardown: drop any buffered audio and free the device."""
        if self._abandon():
            logger.info("microphone released on teardown")


class _SoundDeviceHandle:
    def __init__(self, stream) -> None:
        self._stream = stream
        self._lock = threading.Lock()

    @property
    def active_tracks(self) -> int:
        return 1 if self._stream is not None else 0

    def stop(self) -> None:
        with self._lock:
            stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
        finally:
            stream.close()


class SoundDeviceMicrophone:
    """Mono 16 kHz input stream from the default (or given) input device."""

    def __init__(self, device: Optional[int] = None, sample_rate: int = SAMPLE_RATE) -> None:
        self.device = device
        self.sample_rate = sample_rate

    def open(self, on_chunk: Callable[[bytes], None]) -> _SoundDeviceHandle:
        import numpy as np
        import sounddevice as sd

        try:
            sd.query_devices(self.device, kind="input")
        except (ValueError, sd.PortAudioError) as e:
            raise DeviceUnavailableError() from e

        def cb(indata, _frames, _time_info, status):
            if status:
                logger.debug("input status: %s", status)
            frame = indata[:, 0].astype(np.float32)
            pcm16 = np.clip(frame * 32768.0, -32768, 32767).astype(np.int16)
            on_chunk(pcm16.tobytes())

        try:
            stream = sd.InputStream(
                samplerate=self.sample_rate,
                channels=1,
                dtype="float32",
                blocksize=FRAME_SAMPLES,
                latency="low",
                device=self.device,
                callback=cb,
            )
        except sd.PortAudioError as e:
            raise PermissionDeniedError() from e

        handle = _SoundDeviceHandle(stream)
        try:
            stream.start()
        except sd.PortAudioError as e:
            handle.stop()
            raise PermissionDeniedError() from e
        return handle
