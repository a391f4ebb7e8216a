from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv

from interview_coach.audio.capture import AudioCaptureController, SoundDeviceMicrophone
from interview_coach.audio.playback import SoundDevicePlayer
from interview_coach.core.config import CoachConfig
from interview_coach.core.errors import ConfigurationError
from interview_coach.core.factory import get_llm_provider, get_stt_provider, get_tts_provider
from interview_coach.core.logging_setup import configure_logging
from interview_coach.core.models import (
    OrchestratorState,
    OutputChannel,
    PersonalityMode,
    Revelation,
    TranscriptKind,
    TranscriptLine,
)
from interview_coach.core.settings import InMemorySettingsStore
from interview_coach.core.snapshot import WorkspaceSnapshotSupplier
from interview_coach.input.keyboard_pynput import PynputShortcutSource
from interview_coach.orchestrators.session import InterviewSession
from interview_coach.orchestrators.turn_orchestrator import TurnOrchestrator

logger = logging.getLogger("run_voice_session")


class ConsoleSurface:
    """Prints transcript lines; streams reply fragments inline."""

    def __init__(self) -> None:
        self._streaming = False

    def on_state(self, state: OrchestratorState) -> None:
        logger.debug("state: %s", state.value)

    def on_fragment(self, fragment: str) -> None:
        if not self._streaming:
            sys.stdout.write("Interviewer: ")
            self._streaming = True
        sys.stdout.write(fragment)
        sys.stdout.flush()

    def on_transcript(self, line: TranscriptLine) -> None:
        if self._streaming and line.kind is TranscriptKind.ASSISTANT:
            # already printed fragment by fragment
            sys.stdout.write("\n\n")
            self._streaming = False
            return
        if self._streaming:
            sys.stdout.write("\n")
            self._streaming = False
        print(line.render(), end="\n\n", flush=True)

    def on_text_input(self, visible: bool) -> None:
        if visible:
            print("(text mode: type your answer and press Enter)", flush=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Push-to-talk mock interview in the terminal")
    parser.add_argument("--problem", type=Path, required=True, help="JSON file with title, description, topics, hints")
    parser.add_argument("--code", type=Path, required=True, help="Your solution file; re-read on every turn")
    parser.add_argument("--run", type=Path, default=None, help="Optional JSON with last_input / runtime_error")
    parser.add_argument("--shortcut", default=None, help="Push-to-talk shortcut, e.g. ctrl+shift+r or cmd+y")
    parser.add_argument("--mode", choices=[m.value for m in PersonalityMode], default=PersonalityMode.INTERVIEWER.value)
    parser.add_argument("--revelation", choices=[r.value for r in Revelation], default=Revelation.HINTS.value)
    parser.add_argument("--channel", choices=[c.value for c in OutputChannel], default=OutputChannel.VOICE.value)
    parser.add_argument("--device-index", type=int, default=None, help="Mic device index (default: system input)")
    parser.add_argument("--no-speech", action="store_true", help="Print replies without speaking them")
    return parser


async def _read_text_input(orch: TurnOrchestrator) -> None:
    while True:
        line = await asyncio.to_thread(sys.stdin.readline)
        if not line:
            return
        if line.strip():
            orch.dispatch("submit-text", line)


async def run(args: argparse.Namespace) -> int:
    config = CoachConfig.from_env()
    settings = InMemorySettingsStore(
        shortcut=args.shortcut,
        channel=OutputChannel(args.channel),
        mode=PersonalityMode(args.mode),
        revelation=Revelation(args.revelation),
    )

    try:
        llm = get_llm_provider(config.llm_provider, timeout_s=config.reply_timeout_s)
        stt = get_stt_provider("openai", timeout_s=config.transcribe_timeout_s)
        tts = None if args.no_speech else get_tts_provider(config.tts_provider, timeout_s=config.synth_timeout_s)
    except (ConfigurationError, ValueError) as e:
        logger.error("%s", e)
        return 2

    session = InterviewSession(
        snapshots=WorkspaceSnapshotSupplier(args.problem, args.code, args.run),
        settings=settings,
        llm=llm,
        stt=stt,
        tts=tts,
        player=None if args.no_speech else SoundDevicePlayer(),
        capture=AudioCaptureController(SoundDeviceMicrophone(device=args.device_index)),
        config=config,
    )

    orch = TurnOrchestrator(session, surface=ConsoleSurface())
    keyboard = PynputShortcutSource(orch.shortcuts, asyncio.get_running_loop())

    async with orch:
        await orch.connect()
        keyboard.start()
        stdin_task = asyncio.create_task(_read_text_input(orch))
        try:
            await stdin_task
        finally:
            stdin_task.cancel()
            keyboard.stop()
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv()
    configure_logging()
    args = build_parser().parse_args(argv)
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
