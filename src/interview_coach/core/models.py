from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

NO_CODE_PLACEHOLDER = "No code written yet"


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class PersonalityMode(str, Enum):
    SAGE = "sage"
    INTERVIEWER = "interviewer"


class Revelation(str, Enum):
    HINTS = "hints"  # sage guides, never hands over a full solution
    FULL = "full"


class OutputChannel(str, Enum):
    VOICE = "voice"
    TEXT = "text"


class OrchestratorState(str, Enum):
    IDLE = "idle"
    AWAITING_CONNECTION = "awaiting_connection"
    LISTENING = "listening"
    TRANSCRIBING = "transcribing"
    AWAITING_REPLY = "awaiting_reply"
    SPEAKING = "speaking"
    ERROR = "error"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ConversationMessage:
    role: Role
    content: str
    timestamp: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class PageSnapshot:
    """Everything the workspace currently shows. Fields are empty strings when not found."""

    title: str = ""
    description: str = ""
    code: str = ""
    last_input: str = ""
    runtime_error: str = ""
    runtime_exception: str = ""
    topics: str = ""
    hints: str = ""
    test_cases: str = ""


@dataclass(frozen=True)
class StaticProblemContext:
    title: str
    description: str = ""
    topics: str = ""
    hints: str = ""
    test_cases: str = ""

    @staticmethod
    def from_snapshot(snapshot: PageSnapshot) -> "StaticProblemContext":
        return StaticProblemContext(
            title=snapshot.title,
            description=snapshot.description,
            topics=snapshot.topics,
            hints=snapshot.hints,
            test_cases=snapshot.test_cases,
        )


def add_line_numbers(code: str) -> str:
    if not code or code.strip() == NO_CODE_PLACEHOLDER:
        return code
    return "\n".join(f"{i:>2}: {line}" for i, line in enumerate(code.split("\n"), start=1))


@dataclass(frozen=True)
class TurnContext:
    current_code: str
    last_executed_input: str = ""
    runtime_error: str = ""
    runtime_exception: str = ""

    @staticmethod
    def from_snapshot(snapshot: PageSnapshot) -> "TurnContext":
        return TurnContext(
            current_code=add_line_numbers(snapshot.code or NO_CODE_PLACEHOLDER),
            last_executed_input=snapshot.last_input or "",
            runtime_error=snapshot.runtime_error or "",
            runtime_exception=snapshot.runtime_exception or "",
        )


@dataclass(frozen=True)
class PersonalityPolicy:
    mode: PersonalityMode = PersonalityMode.INTERVIEWER
    revelation: Revelation = Revelation.HINTS
    output_channel: OutputChannel = OutputChannel.VOICE


@dataclass(frozen=True)
class Prompt:
    system_prompt: str
    full_user_message: str
    history: tuple[ConversationMessage, ...] = ()

    def to_messages(self) -> list[dict[str, str]]:
        """Chat-completions message list: system, history tail, then the current turn."""
        messages = [{"role": "system", "content": self.system_prompt}]
        messages.extend({"role": m.role.value, "content": m.content} for m in self.history)
        messages.append({"role": "user", "content": self.full_user_message})
        return messages


_EXTENSIONS = (
    ("wav", "wav"),
    ("mpeg", "mp3"),
    ("mp3", "mp3"),
    ("ogg", "ogg"),
    ("webm", "webm"),
)


@dataclass(frozen=True)
class AudioClip:
    data: bytes
    mime_type: str = "audio/wav"
    sample_rate: int = 16000
    duration_s: float = 0.0

    @property
    def extension(self) -> str:
        mime = (self.mime_type or "").lower()
        for needle, ext in _EXTENSIONS:
            if needle in mime:
                return ext
        return "wav"

    @property
    def filename(self) -> str:
        return f"audio.{self.extension}"

    def __bool__(self) -> bool:
        return bool(self.data)


class TranscriptKind(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    ERROR = "error"


_PREFIXES = {
    TranscriptKind.SYSTEM: "",
    TranscriptKind.USER: "You: ",
    TranscriptKind.ASSISTANT: "Interviewer: ",
    TranscriptKind.ERROR: "Error: ",
}


@dataclass(frozen=True)
class TranscriptLine:
    kind: TranscriptKind
    text: str

    def render(self) -> str:
        return f"{_PREFIXES[self.kind]}{self.text}"


@dataclass(frozen=True)
class TurnResult:
    user_text: str
    reply_text: str
    metrics: dict[str, float]
    completed: bool
    audio: Optional[AudioClip] = None
    error: Optional[str] = None
