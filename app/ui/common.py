from __future__ import annotations

import streamlit as st
from dotenv import load_dotenv

from interview_coach.providers.llm_ollama import OllamaLLMConfig, OllamaStatus, check_ollama

load_dotenv()


@st.cache_data(ttl=5)
def _get_ollama_status_cached() -> OllamaStatus:
    cfg = OllamaLLMConfig.from_env()
    return check_ollama(cfg.base_url, cfg.model)


def render_ollama_status_sidebar(
    current_llm_choice: str,
    openai_label: str = "OpenAI",
    ollama_label: str = "Ollama",
    title: str = "Local Interviewer Status (Ollama)",
) -> tuple[str, OllamaStatus]:
    """
    Sidebar widget:
      - Shows whether the local interviewer model can answer
      - Auto-switch toggle: if Ollama is down AND selected, fall back to OpenAI

    Returns: (possibly_updated_llm_choice, status)
    """
    st.divider()
    st.subheader(title)

    if "auto_switch_openai" not in st.session_state:
        st.session_state["auto_switch_openai"] = True

    st.session_state["auto_switch_openai"] = st.toggle(
        "Auto-switch to OpenAI if Ollama is down",
        value=st.session_state["auto_switch_openai"],
        help="Keeps the interview going when the local model is not running.",
    )

    status = _get_ollama_status_cached()

    if status.ok:
        st.success("Ollama is running")
        st.caption(f"Base URL: {status.base_url}")
        st.caption(f"Configured model: {status.model}")
        if status.available_models is not None:
            if status.model_available:
                st.caption("Model is available ✅")
            else:
                st.warning(f"Model not found locally: {status.model}")
                st.code(f"ollama pull {status.model}", language="bash")
                with st.expander("Available models"):
                    st.write(status.available_models)
    else:
        st.warning("Ollama is not running (or not reachable).")
        st.caption(f"Base URL: {status.base_url}")
        st.markdown("**How to fix**")
        st.code("ollama serve", language="bash")
        with st.expander("Details (debug)"):
            st.write(status.error or "No additional error details.")

    if st.button("Refresh status", use_container_width=True):
        _get_ollama_status_cached.clear()
        st.rerun()

    updated_choice = current_llm_choice
    if (
        current_llm_choice == ollama_label
        and not status.ok
        and st.session_state.get("auto_switch_openai", False)
    ):
        updated_choice = openai_label
        st.info("Auto-switched to OpenAI because Ollama is down.")

    return updated_choice, status
