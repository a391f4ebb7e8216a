from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from interview_coach.audio.capture import AudioCaptureController
from interview_coach.context.builder import ConversationContextBuilder
from interview_coach.core.config import CoachConfig
from interview_coach.core.interfaces import (
    AudioPlayer,
    LLMProvider,
    PageSnapshotSupplier,
    SettingsStore,
    STTProvider,
    TTSProvider,
)
from interview_coach.core.models import OrchestratorState, TranscriptLine


@dataclass
class InterviewSession:
    """
    Everything one mounted overlay owns. Built at mount, dropped at unmount;
    the orchestrator only reaches collaborators through this object.
    Voice input needs `stt` and `capture`; spoken replies need `tts` (and
    `player` to actually play them).
    """

    snapshots: PageSnapshotSupplier
    settings: SettingsStore
    llm: LLMProvider
    stt: Optional[STTProvider] = None
    tts: Optional[TTSProvider] = None
    player: Optional[AudioPlayer] = None
    capture: Optional[AudioCaptureController] = None
    config: CoachConfig = field(default_factory=CoachConfig)
    builder: Optional[ConversationContextBuilder] = None

    def __post_init__(self) -> None:
        if self.builder is None:
            self.builder = ConversationContextBuilder(history_limit=self.config.history_limit)

    @property
    def voice_input_ready(self) -> bool:
        return self.stt is not None and self.capture is not None


class NullSurface:
    def on_state(self, state: OrchestratorState) -> None:
        pass

    def on_transcript(self, line: TranscriptLine) -> None:
        pass

    def on_fragment(self, fragment: str) -> None:
        pass

    def on_text_input(self, visible: bool) -> None:
        pass
