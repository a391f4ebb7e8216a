import streamlit as st

st.set_page_config(page_title="Interview Coach", page_icon="🎙️", layout="wide")

st.title("🎙️ Interview Coach")
st.subheader("Mock coding interviews with an AI interviewer")
st.write(
    """
Describe your approach, paste your code, and talk it through with an interviewer
that sees your current code and runtime errors on every turn.

- **Interviewer** mode asks follow-up questions and never gives the answer away.
- **Sage** mode pair programs with you: hints only, or full walkthroughs if you allow it.
- Replies can be written (code in fenced blocks) or spoken (plain speech, no symbols).

For push-to-talk with your microphone, run `python scripts/run_voice_session.py --help`.
"""
)

st.info("Go to **Practice** in the left sidebar to start an interview.")
