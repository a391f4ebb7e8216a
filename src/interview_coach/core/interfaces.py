from typing import Callable, Protocol

from interview_coach.core.models import (
    AudioClip,
    OrchestratorState,
    OutputChannel,
    PageSnapshot,
    PersonalityPolicy,
    Prompt,
    TranscriptLine,
)

FragmentCallback = Callable[[str], None]


class PageSnapshotSupplier(Protocol):
    """Reads the problem workspace as it is right now."""

    def get_snapshot(self) -> PageSnapshot:
        ...


class STTProvider(Protocol):
    """Speech-to-text provider interface."""

    def transcribe(self, clip: AudioClip) -> str:
        """
        Convert a recorded clip into text. Raises TranscriptionError.
        """
        ...


class LLMProvider(Protocol):
    """Conversational model interface."""

    async def complete(self, prompt: Prompt) -> str:
        ...

    async def stream_complete(self, prompt: Prompt, on_fragment: FragmentCallback) -> str:
        """
        Deliver reply fragments to `on_fragment` as they arrive and return the full text.
        Raises ModelError.
        """
        ...


class TTSProvider(Protocol):
    """Text-to-speech provider interface."""

    def synthesize(self, text: str) -> AudioClip:
        ...


class AudioPlayer(Protocol):
    def play(self, clip: AudioClip) -> None:
        """Blocks until playback ends. Raises PlaybackError."""
        ...


class MicrophoneHandle(Protocol):
    @property
    def active_tracks(self) -> int:
        ...

    def stop(self) -> None:
        """Stop every track. Safe to call more than once."""
        ...


class MicrophoneBackend(Protocol):
    def open(self, on_chunk: Callable[[bytes], None]) -> MicrophoneHandle:
        """
        Acquire the input device and start delivering 16-bit mono PCM chunks.
        Raises PermissionDeniedError or DeviceUnavailableError.
        """
        ...


class SettingsStore(Protocol):
    def get_shortcut(self) -> str:
        ...

    def get_channel_mode(self) -> OutputChannel:
        ...

    def get_personality_policy(self) -> PersonalityPolicy:
        ...

    def subscribe(self, callback: Callable[[dict], None]) -> Callable[[], None]:
        ...


class UISurface(Protocol):
    def on_state(self, state: OrchestratorState) -> None:
        ...

    def on_transcript(self, line: TranscriptLine) -> None:
        ...

    def on_fragment(self, fragment: str) -> None:
        ...

    def on_text_input(self, visible: bool) -> None:
        ...
