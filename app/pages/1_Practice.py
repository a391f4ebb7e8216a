from __future__ import annotations

import asyncio
from typing import Optional

import streamlit as st
from dotenv import load_dotenv

from interview_coach.audio.capture import pcm_to_wav
from interview_coach.audio.playback import CollectingPlayer
from interview_coach.core.config import CoachConfig
from interview_coach.core.errors import ConfigurationError
from interview_coach.core.factory import get_llm_provider, get_tts_provider
from interview_coach.core.logging_setup import configure_logging
from interview_coach.core.models import (
    AudioClip,
    OrchestratorState,
    OutputChannel,
    PersonalityMode,
    Revelation,
    TranscriptKind,
    TranscriptLine,
)
from interview_coach.core.settings import InMemorySettingsStore
from interview_coach.core.snapshot import StaticSnapshotSupplier
from interview_coach.orchestrators.session import InterviewSession
from interview_coach.orchestrators.turn_orchestrator import TurnOrchestrator
from ui.common import render_ollama_status_sidebar

# Load .env once per Streamlit server start
load_dotenv()
configure_logging()

st.set_page_config(page_title="Practice | Interview Coach", page_icon="🎙️", layout="wide")

st.title("🧑‍💻 Practice Interview")
st.caption("Fill in the problem, start the interview, then explain your approach turn by turn.")


class StreamlitSurface:
    """Streams reply fragments into whichever placeholder the current rerun bound."""

    def __init__(self) -> None:
        self._placeholder = None
        self._buffer = ""

    def bind(self, placeholder) -> None:
        self._placeholder = placeholder
        self._buffer = ""

    def on_state(self, state: OrchestratorState) -> None:
        pass

    def on_transcript(self, line: TranscriptLine) -> None:
        pass

    def on_fragment(self, fragment: str) -> None:
        self._buffer += fragment
        if self._placeholder is not None:
            self._placeholder.markdown(self._buffer + "▌")

    def on_text_input(self, visible: bool) -> None:
        pass


# ---- Provider caching ----
@st.cache_resource
def build_llm(name: str):
    cfg = CoachConfig.from_env()
    return get_llm_provider(name, timeout_s=cfg.reply_timeout_s)


@st.cache_resource
def build_tts(name: str):
    cfg = CoachConfig.from_env()
    return get_tts_provider(name, timeout_s=cfg.synth_timeout_s)


def playable(clip: AudioClip) -> tuple[bytes, str]:
    if clip.mime_type == "audio/pcm":
        return pcm_to_wav(clip.data, clip.sample_rate), "audio/wav"
    return clip.data, clip.mime_type


# --- Session memory (persist across reruns) ---
if "snapshots" not in st.session_state:
    st.session_state["snapshots"] = StaticSnapshotSupplier()
if "settings" not in st.session_state:
    st.session_state["settings"] = InMemorySettingsStore()
if "surface" not in st.session_state:
    st.session_state["surface"] = StreamlitSurface()
if "player" not in st.session_state:
    st.session_state["player"] = CollectingPlayer()
if "last_metrics" not in st.session_state:
    st.session_state["last_metrics"] = {}

snapshots: StaticSnapshotSupplier = st.session_state["snapshots"]
settings: InMemorySettingsStore = st.session_state["settings"]
surface: StreamlitSurface = st.session_state["surface"]
player: CollectingPlayer = st.session_state["player"]

# ---- Sidebar controls ----
with st.sidebar:
    st.header("Interviewer")

    llm_choice = st.selectbox("LLM Provider", ["OpenAI", "Ollama"], index=0)
    if llm_choice == "Ollama":
        llm_choice, _ = render_ollama_status_sidebar(current_llm_choice=llm_choice)

    st.divider()
    mode = st.radio(
        "Personality",
        [m.value for m in PersonalityMode],
        index=1,
        format_func=lambda v: v.capitalize(),
        help="Interviewer asks probing questions. Sage pair programs with you.",
    )
    revelation = Revelation.HINTS.value
    if mode == PersonalityMode.SAGE.value:
        reveal_full = st.toggle("Allow full solutions", value=False)
        revelation = Revelation.FULL.value if reveal_full else Revelation.HINTS.value

    channel = st.radio(
        "Reply channel",
        [c.value for c in OutputChannel],
        index=1,
        format_func=lambda v: "Spoken" if v == OutputChannel.VOICE.value else "Written",
        help="Spoken replies avoid code and symbols and are synthesized to audio.",
    )
    tts_choice = "OpenAI"
    if channel == OutputChannel.VOICE.value:
        tts_choice = st.selectbox("TTS Provider", ["OpenAI", "ElevenLabs"], index=0)

    changed = settings.update(mode=mode, revelation=revelation, channel=channel)
    if changed and "orch" in st.session_state:
        st.caption("Settings apply from your next turn.")

    st.divider()
    st.subheader("Last Turn")
    m = st.session_state["last_metrics"]
    if m:
        st.metric("Reply (ms)", f"{m.get('reply_ms', 0):.0f}")
        if "tts_ms" in m:
            st.metric("TTS (ms)", f"{m.get('tts_ms', 0):.0f}")
        st.metric("Total (ms)", f"{m.get('total_ms', 0):.0f}")
    else:
        st.caption("No turns yet.")

try:
    llm = build_llm(llm_choice)
    tts = build_tts(tts_choice) if channel == OutputChannel.VOICE.value else None
except ConfigurationError as e:
    st.error("**Provider configuration error**")
    st.markdown(f"{e}\n\nCheck your `.env` file and reload the page.")
    st.stop()

# ---- Problem workspace ----
with st.expander("Problem", expanded="orch" not in st.session_state):
    c1, c2 = st.columns([1, 1], gap="large")
    with c1:
        title = st.text_input("Title", value="Two Sum", key="problem_title")
        description = st.text_area(
            "Description",
            value="Given an array of integers nums and an integer target, return indices of the two numbers such that they add up to target.",
            height=120,
            key="problem_description",
        )
        topics = st.text_input("Topics", value="Array, Hash Table", key="problem_topics")
        hints = st.text_input("Hints (optional)", value="", key="problem_hints")
    with c2:
        code = st.text_area(
            "Your code",
            value="def twoSum(nums, target):\n    pass",
            height=220,
            key="problem_code",
        )
        last_input = st.text_input("Last run input (optional)", value="", key="last_input")
        runtime_error = st.text_input("Runtime error (optional)", value="", key="runtime_error")

snapshots.update(
    title=title,
    description=description,
    topics=topics,
    hints=hints,
    code=code,
    last_input=last_input,
    runtime_error=runtime_error,
)

if st.button("Start interview", type="primary", use_container_width=True):
    session = InterviewSession(
        snapshots=snapshots,
        settings=settings,
        llm=llm,
        tts=tts,
        player=player,
        config=CoachConfig.from_env(),
    )
    orch = TurnOrchestrator(session, surface=surface).mount()
    with st.spinner("Loading problem context..."):
        asyncio.run(orch.connect())
    st.session_state["orch"] = orch
    st.session_state["session"] = session
    st.session_state["last_metrics"] = {}
    player.clips.clear()
    st.rerun()

orch: Optional[TurnOrchestrator] = st.session_state.get("orch")
if orch is None:
    st.info("Fill in the problem and click **Start interview**.")
    st.stop()

# Providers can be switched mid-interview without losing history.
session: InterviewSession = st.session_state["session"]
session.llm = llm
session.tts = tts

st.divider()

# ---- Transcript ----
for line in orch.transcript:
    if line.kind is TranscriptKind.USER:
        with st.chat_message("user"):
            st.markdown(line.text)
    elif line.kind is TranscriptKind.ASSISTANT:
        with st.chat_message("assistant"):
            st.markdown(line.text)
    elif line.kind is TranscriptKind.ERROR:
        st.error(line.render())
    else:
        st.caption(line.text.replace("\n", "  \n"))

if player.last is not None and channel == OutputChannel.VOICE.value:
    data, fmt = playable(player.last)
    st.audio(data, format=fmt)

user_text = st.chat_input("Explain your approach...")
if user_text:
    with st.chat_message("user"):
        st.markdown(user_text)
    with st.chat_message("assistant"):
        placeholder = st.empty()
        surface.bind(placeholder)
        result = asyncio.run(orch.submit_text(user_text))
    if result is not None:
        st.session_state["last_metrics"] = result.metrics
    st.rerun()
