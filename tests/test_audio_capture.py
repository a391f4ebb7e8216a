import asyncio
import io
import wave

import pytest

from interview_coach.audio.capture import AudioCaptureController, pcm_to_wav
from interview_coach.audio.playback import CollectingPlayer
from interview_coach.core.errors import PermissionDeniedError
from interview_coach.core.models import AudioClip

from conftest import DummyMicrophone, GatedMicrophone


def test_pcm_to_wav_header():
    data = pcm_to_wav(b"\x00\x00" * 160, sample_rate=16000)
    with wave.open(io.BytesIO(data), "rb") as wf:
        assert wf.getnchannels() == 1
        assert wf.getsampwidth() == 2
        assert wf.getframerate() == 16000
        assert wf.getnframes() == 160


def test_start_stop_produces_wav_clip():
    mic = DummyMicrophone(chunk=b"\x01\x00" * 16000)
    capture = AudioCaptureController(mic)

    assert asyncio.run(capture.start()) is True
    assert capture.is_recording
    assert capture.active_tracks == 1

    clip = capture.stop()

    assert clip.mime_type == "audio/wav"
    assert clip.filename == "audio.wav"
    assert clip.duration_s == pytest.approx(1.0)
    assert clip.data.startswith(b"RIFF")
    assert capture.active_tracks == 0
    assert mic.handles[0].stop_calls == 1


def test_stop_and_release_are_idempotent():
    mic = DummyMicrophone()
    capture = AudioCaptureController(mic)
    asyncio.run(capture.start())

    assert capture.stop() is not None
    assert capture.stop() is None
    capture.release()
    capture.release()

    assert mic.handles[0].stop_calls == 1


def test_stop_without_audio_gives_empty_clip():
    capture = AudioCaptureController(DummyMicrophone(chunk=b""))
    asyncio.run(capture.start())
    clip = capture.stop()
    assert not clip
    assert clip.duration_s == 0.0


def test_permission_denied_propagates():
    capture = AudioCaptureController(DummyMicrophone(error=PermissionDeniedError()))
    with pytest.raises(PermissionDeniedError):
        asyncio.run(capture.start())
    assert not capture.is_recording
    assert not capture.is_opening


def test_stop_while_opening_releases_device_when_it_arrives():
    mic = GatedMicrophone()
    capture = AudioCaptureController(mic)

    async def scenario():
        start = asyncio.create_task(capture.start())
        await asyncio.to_thread(mic.opening.wait, 5)
        assert capture.is_opening
        assert capture.stop() is None
        mic.resolve.set()
        return await start

    assert asyncio.run(scenario()) is False
    assert not capture.is_recording
    assert mic.handles[0].stop_calls == 1


def test_cancelled_start_releases_device_when_it_arrives():
    mic = GatedMicrophone()
    capture = AudioCaptureController(mic)

    async def scenario():
        start = asyncio.create_task(capture.start())
        await asyncio.to_thread(mic.opening.wait, 5)
        start.cancel()
        with pytest.raises(asyncio.CancelledError):
            await start
        assert not capture.is_opening
        mic.resolve.set()

    # asyncio.run waits for the opening thread before returning
    asyncio.run(scenario())

    assert len(mic.handles) == 1
    assert mic.handles[0].active_tracks == 0
    assert not capture.is_recording


def test_release_discards_partial_recording():
    mic = DummyMicrophone()
    capture = AudioCaptureController(mic)
    asyncio.run(capture.start())

    capture.release()

    assert capture.stop() is None
    assert mic.handles[0].active_tracks == 0


def test_collecting_player_keeps_clips():
    player = CollectingPlayer()
    assert player.last is None
    player.play(AudioClip(data=b"x"))
    assert player.last.data == b"x"
