import asyncio
import threading

import pytest

from interview_coach.audio.capture import AudioCaptureController
from interview_coach.core.config import CoachConfig
from interview_coach.core.models import AudioClip, PageSnapshot
from interview_coach.core.settings import InMemorySettingsStore
from interview_coach.core.snapshot import StaticSnapshotSupplier
from interview_coach.orchestrators.session import InterviewSession
from interview_coach.orchestrators.turn_orchestrator import TurnOrchestrator

TWO_SUM = PageSnapshot(
    title="Two Sum",
    description="Given an array of integers nums and an integer target, return indices of the two numbers that add up to target.",
    code="def twoSum(nums, target):\n    pass",
    topics="Array, Hash Table",
    hints="A really brute force way would be to search for all possible pairs of numbers.",
    test_cases="nums = [2,7,11,15], target = 9",
)


class DummyLLM:
    def __init__(self, replies=None, error=None):
        self.replies = list(replies or [])
        self.error = error
        self.prompts = []

    def _next(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.replies.pop(0) if self.replies else f"Reply {len(self.prompts)}"

    async def complete(self, prompt):
        return self._next(prompt)

    async def stream_complete(self, prompt, on_fragment):
        text = self._next(prompt)
        for word in text.split(" "):
            on_fragment(word + " ")
        return text


class DummySTT:
    def __init__(self, text="I would use a hash map", error=None):
        self.text = text
        self.error = error
        self.clips = []

    def transcribe(self, clip):
        self.clips.append(clip)
        if self.error is not None:
            raise self.error
        return self.text


class DummyTTS:
    def __init__(self, error=None):
        self.error = error
        self.texts = []

    def synthesize(self, text):
        self.texts.append(text)
        if self.error is not None:
            raise self.error
        return AudioClip(data=text.encode("utf-8"), mime_type="audio/pcm")


class DummyPlayer:
    def __init__(self):
        self.played = []

    def play(self, clip):
        self.played.append(clip)


class DummyHandle:
    def __init__(self):
        self.tracks = 1
        self.stop_calls = 0

    @property
    def active_tracks(self):
        return self.tracks

    def stop(self):
        self.stop_calls += 1
        self.tracks = 0


class DummyMicrophone:
    """Delivers one fixed chunk as soon as it is opened."""

    def __init__(self, chunk=b"\x01\x00" * 1600, error=None):
        self.chunk = chunk
        self.error = error
        self.handles = []

    def open(self, on_chunk):
        if self.error is not None:
            raise self.error
        handle = DummyHandle()
        self.handles.append(handle)
        if self.chunk:
            on_chunk(self.chunk)
        return handle


class GatedMicrophone(DummyMicrophone):
    """open() blocks until the test lets the permission prompt resolve."""

    def __init__(self):
        super().__init__()
        self.opening = threading.Event()
        self.resolve = threading.Event()

    def open(self, on_chunk):
        self.opening.set()
        self.resolve.wait(timeout=5)
        return super().open(on_chunk)


class RecordingSurface:
    def __init__(self):
        self.states = []
        self.lines = []
        self.fragments = []
        self.text_input = []

    def on_state(self, state):
        self.states.append(state)

    def on_transcript(self, line):
        self.lines.append(line)

    def on_fragment(self, fragment):
        self.fragments.append(fragment)

    def on_text_input(self, visible):
        self.text_input.append(visible)


class FakeClock:
    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        return self.now


async def drain():
    """Wait for every task the orchestrator scheduled, including ones they schedule."""
    current = asyncio.current_task()
    while True:
        pending = [t for t in asyncio.all_tasks() if t is not current and not t.done()]
        if not pending:
            return
        await asyncio.gather(*pending, return_exceptions=True)


@pytest.fixture
def snapshots():
    return StaticSnapshotSupplier(TWO_SUM)


@pytest.fixture
def settings():
    return InMemorySettingsStore(shortcut="cmd+y")


@pytest.fixture
def llm():
    return DummyLLM()


@pytest.fixture
def stt():
    return DummySTT()


@pytest.fixture
def tts():
    return DummyTTS()


@pytest.fixture
def player():
    return DummyPlayer()


@pytest.fixture
def microphone():
    return DummyMicrophone()


@pytest.fixture
def surface():
    return RecordingSurface()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_orchestrator(snapshots, settings, llm, stt, tts, player, microphone, surface, clock):
    def build(**overrides):
        session = InterviewSession(
            snapshots=overrides.pop("snapshots", snapshots),
            settings=overrides.pop("settings", settings),
            llm=overrides.pop("llm", llm),
            stt=overrides.pop("stt", stt),
            tts=overrides.pop("tts", tts),
            player=overrides.pop("player", player),
            capture=overrides.pop("capture", AudioCaptureController(microphone)),
            config=overrides.pop("config", CoachConfig()),
        )
        assert not overrides, f"unknown overrides: {overrides}"
        return TurnOrchestrator(session, surface=surface, clock=clock)

    return build
