from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, TypeVar

from interview_coach.audio.capture import AudioCaptureController
from interview_coach.core.errors import (
    ConfigurationError,
    InterviewCoachError,
    InvalidTransition,
    ModelTimeoutError,
    StreamInterruptedError,
    SynthesisError,
    TranscriptionError,
)
from interview_coach.core.interfaces import UISurface
from interview_coach.core.metrics import Timer
from interview_coach.core.models import (
    AudioClip,
    OrchestratorState,
    OutputChannel,
    PersonalityPolicy,
    StaticProblemContext,
    TranscriptKind,
    TranscriptLine,
    TurnContext,
    TurnResult,
)
from interview_coach.input.shortcuts import Shortcut, ShortcutDetector
from interview_coach.orchestrators.session import InterviewSession, NullSurface

logger = logging.getLogger(__name__)

T = TypeVar("T")

FALLBACK_REPLY = "I understand. Please continue."

State = OrchestratorState


async def _bounded(awaitable: Awaitable[T], timeout_s: float, error: InterviewCoachError) -> T:
    try:
        return await asyncio.wait_for(awaitable, timeout_s)
    except asyncio.TimeoutError as e:
        raise error from e


class TurnOrchestrator:
    """
    Push-to-talk interview state machine.

        Idle --begin-turn--> Listening --end-turn--> Transcribing --> AwaitingReply
             --> Speaking --> Idle
        Idle --submit-text--> AwaitingReply --> (Speaking) --> Idle

    Any failure goes through Error back to Idle with one `Error:` transcript
    line. Commands that arrive in a state that cannot take them are dropped,
    so at most one turn is ever in flight. The only thing queued is a single
    begin-turn pressed before the interview finished connecting.
    """

    def __init__(
        self,
        session: InterviewSession,
        surface: Optional[UISurface] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._session = session
        self._surface = surface or NullSurface()
        self._state = State.IDLE
        self._connected = False
        self._pending_action = False
        self._mounted = False
        self._text_input_visible = False
        self._turn_seq = 0
        self._turn_context: Optional[TurnContext] = None
        self._turn_policy: Optional[PersonalityPolicy] = None
        self._transcript: list[TranscriptLine] = []
        self._tasks: set[asyncio.Task] = set()
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._shortcuts = ShortcutDetector(
            Shortcut.parse(session.settings.get_shortcut()),
            on_press=lambda: self.dispatch("begin-turn"),
            on_release=lambda: self.dispatch("end-turn"),
            min_interval_s=session.config.shortcut_debounce_ms / 1000.0,
            clock=clock,
        )

    # ---- observable state ---------------------------------------------

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def pending_action(self) -> bool:
        return self._pending_action

    @property
    def shortcuts(self) -> ShortcutDetector:
        return self._shortcuts

    @property
    def transcript(self) -> list[TranscriptLine]:
        return list(self._transcript)

    @property
    def history(self):
        return self._session.builder.history

    # ---- lifecycle ----------------------------------------------------

    def mount(self) -> "TurnOrchestrator":
        if not self._mounted:
            self._unsubscribe = self._session.settings.subscribe(self._on_settings_changed)
            self._mounted = True
        return self

    async def unmount(self) -> None:
        """Teardown: the microphone is released and any partial clip is discarded."""
        self._mounted = False
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._shortcuts.reset(notify=False)
        self._release_microphone()

        tasks = [t for t in self._tasks if not t.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._pending_action = False
        self._set_state(State.IDLE)

    async def __aenter__(self) -> "TurnOrchestrator":
        return self.mount()

    async def __aexit__(self, *exc_info) -> None:
        await self.unmount()

    def dispatch(self, command: str, *args) -> Optional[asyncio.Task]:
        """
        Schedule a command on the running loop. Used by callback-style inputs
        (keyboard hook, buttons) that cannot await.
        """
        if not self._mounted:
            logger.debug("dropping %s: not mounted", command)
            return None
        handlers = {
            "connect": self.connect,
            "begin-turn": self.begin_turn,
            "end-turn": self.end_turn,
            "submit-text": self.submit_text,
            "interrupt": self.interrupt,
        }
        handler = handlers.get(command)
        if handler is None:
            raise ValueError(f"Unknown command: {command}")
        task = asyncio.get_running_loop().create_task(handler(*args))
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("command task failed", exc_info=exc)

    # ---- commands -----------------------------------------------------

    async def connect(self) -> bool:
        """Load the problem from the workspace and get ready for the first turn."""
        if self._connected:
            return True
        try:
            self._require("connect", State.IDLE)
        except InvalidTransition as e:
            logger.debug("ignored: %s", e)
            return False

        self._set_state(State.AWAITING_CONNECTION)
        try:
            snapshot = await asyncio.to_thread(self._session.snapshots.get_snapshot)
            problem = StaticProblemContext.from_snapshot(snapshot)
            self._session.builder.set_static_context(problem)
        except Exception as e:
            self._pending_action = False
            self._fail(e)
            return False

        self._connected = True
        self._set_state(State.IDLE)
        self._emit(TranscriptKind.SYSTEM, self._ready_message(problem))
        if self._session.settings.get_channel_mode() is OutputChannel.VOICE and not self._session.voice_input_ready:
            self._emit(TranscriptKind.SYSTEM, "Voice input is unavailable here; type your answers instead.")

        if self._pending_action:
            self._pending_action = False
            logger.debug("executing pending shortcut action")
            await self.begin_turn()
        return True

    async def begin_turn(self) -> bool:
        if not self._connected:
            if self._pending_action:
                logger.debug("begin-turn already pending; ignoring")
                return False
            self._pending_action = True
            if self._state is State.AWAITING_CONNECTION:
                return False
            await self.connect()
            return self._state is State.LISTENING or self._text_input_visible

        try:
            self._require("begin-turn", State.IDLE)
        except InvalidTransition as e:
            logger.debug("ignored: %s", e)
            return False

        policy = self._session.settings.get_personality_policy()
        if policy.output_channel is OutputChannel.TEXT:
            self._show_text_input(True)
            return True
        return await self._start_listening(policy)

    async def end_turn(self) -> Optional[TurnResult]:
        voice = self._session.settings.get_channel_mode() is OutputChannel.VOICE
        if self._pending_action and not self._connected and voice:
            # released before the connection finished: the queued press never started
            self._pending_action = False
            logger.debug("pending shortcut action cancelled by release")
            return None
        try:
            self._require("end-turn", State.LISTENING)
        except InvalidTransition as e:
            logger.debug("ignored: %s", e)
            return None

        capture = self._session.capture
        if capture is not None and capture.is_opening:
            # begin_turn finishes the transition once the device handle arrives
            capture.stop()
            return None

        clip = capture.stop() if capture is not None else None
        if not clip:
            self._emit(TranscriptKind.SYSTEM, "Recording stopped before any audio was captured.")
            self._set_state(State.IDLE)
            return None

        self._emit(TranscriptKind.SYSTEM, "Recording stopped. Processing...")
        return await self._run_voice_turn(clip)

    async def submit_text(self, text: str) -> Optional[TurnResult]:
        text = (text or "").strip()
        if not text:
            return None
        if not self._connected and not await self.connect():
            return None
        try:
            self._require("submit-text", State.IDLE)
        except InvalidTransition as e:
            logger.debug("ignored: %s", e)
            return None

        self._show_text_input(False)
        self._turn_seq += 1
        timer = Timer()
        try:
            self._capture_turn_inputs(self._session.settings.get_personality_policy())
        except Exception as e:
            return self._abort(e, text, timer)
        self._emit(TranscriptKind.USER, text)
        return await self._reply(text, timer)

    async def interrupt(self) -> Optional[TurnResult]:
        """Window blur or tab hidden: finish a recording the same way a key release would."""
        self._shortcuts.reset(notify=False)
        self._show_text_input(False)
        if self._state is State.LISTENING:
            return await self.end_turn()
        return None

    # ---- turn stages --------------------------------------------------

    async def _start_listening(self, policy: PersonalityPolicy) -> bool:
        if not self._session.voice_input_ready:
            self._fail(ConfigurationError("Voice input is not configured; switch to text mode or add a microphone."))
            return False

        self._turn_seq += 1
        turn = self._turn_seq
        try:
            self._capture_turn_inputs(policy)
        except Exception as e:
            self._fail(e)
            return False

        self._set_state(State.LISTENING)
        capture: AudioCaptureController = self._session.capture
        try:
            recording = await capture.start()
        except Exception as e:
            if turn == self._turn_seq and self._state is State.LISTENING:
                self._fail(e)
            return False

        if not recording:
            if turn == self._turn_seq and self._state is State.LISTENING:
                self._emit(TranscriptKind.SYSTEM, "Recording cancelled.")
                self._set_state(State.IDLE)
            return False

        if turn != self._turn_seq or self._state is not State.LISTENING:
            capture.release()
            return False

        self._emit(TranscriptKind.SYSTEM, "Recording... Speak now!")
        return True

    async def _run_voice_turn(self, clip: AudioClip) -> TurnResult:
        cfg = self._session.config
        stt = self._session.stt
        timer = Timer()

        self._set_state(State.TRANSCRIBING)
        try:
            text = await timer.measure_async(
                "transcribe_ms",
                lambda: _bounded(
                    asyncio.to_thread(stt.transcribe, clip),
                    cfg.transcribe_timeout_s,
                    TranscriptionError(f"Transcription timed out after {cfg.transcribe_timeout_s:.0f}s"),
                ),
            )
        except Exception as e:
            return self._abort(e, "", timer)

        text = (text or "").strip()
        if not text:
            self._emit(TranscriptKind.SYSTEM, "I didn't catch that. Hold the shortcut and try again.")
            self._set_state(State.IDLE)
            return TurnResult(user_text="", reply_text="", metrics=timer.summary(), completed=False)

        self._emit(TranscriptKind.USER, text)
        return await self._reply(text, timer)

    async def _reply(self, user_text: str, timer: Timer) -> TurnResult:
        cfg = self._session.config
        llm = self._session.llm
        policy = self._turn_policy
        self._set_state(State.AWAITING_REPLY)

        prompt = self._session.builder.build_prompt(user_text, self._turn_context, policy)
        timeout_error = ModelTimeoutError(f"The interviewer did not answer within {cfg.reply_timeout_s:.0f}s")
        try:
            if cfg.stream_replies:
                reply = await timer.measure_async(
                    "reply_ms",
                    lambda: _bounded(llm.stream_complete(prompt, self._surface.on_fragment), cfg.reply_timeout_s, timeout_error),
                )
            else:
                reply = await timer.measure_async(
                    "reply_ms",
                    lambda: _bounded(llm.complete(prompt), cfg.reply_timeout_s, timeout_error),
                )
        except StreamInterruptedError as e:
            return self._abort(e, user_text, timer, partial_reply=e.full_response)
        except Exception as e:
            return self._abort(e, user_text, timer)

        reply = (reply or "").strip() or FALLBACK_REPLY
        self._session.builder.record_turn(user_text, reply)
        self._emit(TranscriptKind.ASSISTANT, reply)

        audio: Optional[AudioClip] = None
        speech_error: Optional[str] = None
        if policy.output_channel is OutputChannel.VOICE and self._session.tts is not None:
            self._set_state(State.SPEAKING)
            audio, speech_error = await self._speak(reply, timer)

        self._set_state(State.IDLE)
        metrics = timer.summary()
        logger.info("turn %d complete in %.0f ms", self._turn_seq, metrics["total_ms"])
        return TurnResult(
            user_text=user_text,
            reply_text=reply,
            metrics=metrics,
            completed=True,
            audio=audio,
            error=speech_error,
        )

    async def _speak(self, reply: str, timer: Timer) -> tuple[Optional[AudioClip], Optional[str]]:
        """Speech failures are reported but never undo the turn; the reply is already shown."""
        cfg = self._session.config
        tts = self._session.tts
        player = self._session.player
        audio: Optional[AudioClip] = None
        try:
            audio = await timer.measure_async(
                "tts_ms",
                lambda: _bounded(
                    asyncio.to_thread(tts.synthesize, reply),
                    cfg.synth_timeout_s,
                    SynthesisError(f"Speech synthesis timed out after {cfg.synth_timeout_s:.0f}s"),
                ),
            )
            if player is not None:
                await timer.measure_async("playback_ms", lambda: asyncio.to_thread(player.play, audio))
        except Exception as e:
            self._log_failure(e)
            self._emit(TranscriptKind.ERROR, self._describe(e))
            return audio, f"{type(e).__name__}: {e}"
        return audio, None

    # ---- helpers ------------------------------------------------------

    def _require(self, command: str, *states: OrchestratorState) -> None:
        if self._state not in states:
            raise InvalidTransition(command, self._state.value)

    def _capture_turn_inputs(self, policy: PersonalityPolicy) -> None:
        # Read fresh for every turn: code and errors change between turns.
        snapshot = self._session.snapshots.get_snapshot()
        self._turn_context = TurnContext.from_snapshot(snapshot)
        self._turn_policy = policy

    def _set_state(self, state: OrchestratorState) -> None:
        if state is self._state:
            return
        logger.debug("state %s -> %s", self._state.value, state.value)
        self._state = state
        self._surface.on_state(state)

    def _emit(self, kind: TranscriptKind, text: str) -> None:
        line = TranscriptLine(kind=kind, text=text)
        self._transcript.append(line)
        self._surface.on_transcript(line)

    def _show_text_input(self, visible: bool) -> None:
        if visible == self._text_input_visible:
            return
        self._text_input_visible = visible
        self._surface.on_text_input(visible)

    def _release_microphone(self) -> None:
        if self._session.capture is not None:
            self._session.capture.release()

    @staticmethod
    def _describe(exc: BaseException) -> str:
        return str(exc) or type(exc).__name__

    @staticmethod
    def _log_failure(exc: BaseException) -> None:
        if isinstance(exc, InterviewCoachError):
            logger.warning("turn failed: %s", exc)
        else:
            logger.error("turn failed unexpectedly", exc_info=exc)

    def _fail(self, exc: BaseException) -> None:
        self._log_failure(exc)
        self._set_state(State.ERROR)
        self._emit(TranscriptKind.ERROR, self._describe(exc))
        self._release_microphone()
        self._set_state(State.IDLE)

    def _abort(self, exc: BaseException, user_text: str, timer: Timer, partial_reply: str = "") -> TurnResult:
        self._fail(exc)
        return TurnResult(
            user_text=user_text,
            reply_text=partial_reply,
            metrics=timer.summary(),
            completed=False,
            error=self._describe(exc),
        )

    def _ready_message(self, problem: StaticProblemContext) -> str:
        label = self._shortcuts.shortcut.label
        if self._session.settings.get_channel_mode() is OutputChannel.TEXT:
            instructions = f"Press {label} to open text input and type your response!"
        else:
            instructions = f"Hold {label} to start speaking about your approach!"
        return (
            "Ready for interview!\n\n"
            "Problem Context Loaded:\n"
            f"- Problem: {problem.title or 'Unknown'}\n"
            f"- Description: {problem.description or 'None'}\n"
            f"- Topics: {problem.topics or 'None'}\n"
            f"- Hints: {problem.hints or 'None'}\n\n"
            f"{instructions}"
        )

    def _on_settings_changed(self, changes: dict) -> None:
        # Applies from the next turn; the turn in flight keeps its policy.
        if "shortcut" in changes:
            try:
                self._shortcuts.set_shortcut(Shortcut.parse(changes["shortcut"]))
            except ValueError as e:
                logger.warning("keeping shortcut %s: %s", self._shortcuts.shortcut.label, e)
        if changes.get("channel") is OutputChannel.VOICE:
            self._show_text_input(False)
        logger.info("settings changed: %s", ", ".join(sorted(changes)))
