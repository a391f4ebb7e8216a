from __future__ import annotations

import sys
from pathlib import Path

from dotenv import load_dotenv

from interview_coach.audio.capture import pcm_to_wav
from interview_coach.core.factory import get_tts_provider


def main() -> None:
    load_dotenv()  # loads .env from repo root (current working dir)

    provider = sys.argv[1] if len(sys.argv) > 1 else "openai"
    tts = get_tts_provider(provider)
    clip = tts.synthesize("Good start. What is the time complexity of checking every pair?")

    data = pcm_to_wav(clip.data, clip.sample_rate) if clip.mime_type == "audio/pcm" else clip.data
    ext = "wav" if clip.mime_type == "audio/pcm" else clip.extension
    out = Path(f"tmp_tts_{provider}.{ext}")
    out.write_bytes(data)
    print(f"Wrote {out} ({len(data)} bytes, {clip.duration_s:.1f}s).")


if __name__ == "__main__":
    main()
