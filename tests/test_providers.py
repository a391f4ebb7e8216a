import asyncio
import json
from types import SimpleNamespace

import httpx
import pytest

from interview_coach.core.errors import (
    ConfigurationError,
    MalformedResponseError,
    ModelError,
    RateLimitedError,
    StreamInterruptedError,
    SynthesisError,
    TranscriptionError,
)
from interview_coach.core.factory import get_llm_provider, get_tts_provider
from interview_coach.core.models import AudioClip, ConversationMessage, Prompt, Role
from interview_coach.providers.llm_ollama import OllamaLLM, OllamaLLMConfig
from interview_coach.providers.llm_openai import OpenAILLM, OpenAILLMConfig
from interview_coach.providers.stt_openai import OpenAISTT, OpenAISTTConfig
from interview_coach.providers.tts_elevenlabs import ElevenLabsTTS, ElevenLabsTTSConfig
from interview_coach.providers.tts_openai import OpenAITTS, OpenAITTSConfig

PROMPT = Prompt(
    system_prompt="You are an interviewer.",
    full_user_message='CURRENT CONTEXT:\n- Current Code: No code written yet\n\nUser said: "hi"',
    history=(ConversationMessage(Role.USER, "earlier"), ConversationMessage(Role.ASSISTANT, "ok")),
)


def _llm(handler):
    return OpenAILLM(OpenAILLMConfig(api_key="sk-test"), transport=httpx.MockTransport(handler))


def test_complete_sends_history_and_returns_text():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": " Nice start. "}}]})

    text = asyncio.run(_llm(handler).complete(PROMPT))

    assert text == "Nice start."
    assert seen["auth"] == "Bearer sk-test"
    assert [m["role"] for m in seen["body"]["messages"]] == ["system", "user", "assistant", "user"]
    assert seen["body"]["stream"] is False


def test_complete_maps_errors():
    def rate_limited(request):
        return httpx.Response(429, text="slow down")

    def malformed(request):
        return httpx.Response(200, json={"unexpected": True})

    with pytest.raises(RateLimitedError) as excinfo:
        asyncio.run(_llm(rate_limited).complete(PROMPT))
    assert excinfo.value.status == 429

    with pytest.raises(MalformedResponseError):
        asyncio.run(_llm(malformed).complete(PROMPT))


def test_connection_failure_is_model_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ModelError):
        asyncio.run(_llm(handler).complete(PROMPT))


def test_stream_complete_delivers_fragments():
    body = (
        'data: {"choices":[{"delta":{"role":"assistant"}}]}\n\n'
        'data: {"choices":[{"delta":{"content":"Try "}}]}\n\n'
        'data: {"choices":[{"delta":{"content":"a map."}}]}\n\n'
        "data: [DONE]\n\n"
    )

    def handler(request):
        assert json.loads(request.content)["stream"] is True
        return httpx.Response(200, content=body.encode("utf-8"), headers={"content-type": "text/event-stream"})

    fragments = []
    text = asyncio.run(_llm(handler).stream_complete(PROMPT, fragments.append))

    assert fragments == ["Try ", "a map."]
    assert text == "Try a map."


def test_stream_broken_midway_keeps_partial():
    async def chunks():
        yield b'data: {"choices":[{"delta":{"content":"Think "}}]}\n\n'
        raise httpx.ReadError("connection lost")

    def handler(request):
        return httpx.Response(200, content=chunks(), headers={"content-type": "text/event-stream"})

    with pytest.raises(StreamInterruptedError) as excinfo:
        asyncio.run(_llm(handler).stream_complete(PROMPT, lambda _: None))
    assert excinfo.value.full_response == "Think "


def test_ollama_complete_uses_native_chat():
    def handler(request):
        assert request.url.path == "/api/chat"
        return httpx.Response(200, json={"message": {"role": "assistant", "content": "Local reply"}})

    llm = OllamaLLM(OllamaLLMConfig(), transport=httpx.MockTransport(handler))
    assert asyncio.run(llm.complete(PROMPT)) == "Local reply"


def test_ollama_streams_through_openai_compatible_endpoint():
    def handler(request):
        assert request.url.path == "/v1/chat/completions"
        return httpx.Response(200, content=b'data: {"choices":[{"delta":{"content":"hey"}}]}\n\ndata: [DONE]\n\n')

    llm = OllamaLLM(OllamaLLMConfig(), transport=httpx.MockTransport(handler))
    assert asyncio.run(llm.stream_complete(PROMPT, lambda _: None)) == "hey"


class FakeTranscriptions:
    def __init__(self, text="I'd sort first"):
        self.text = text
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        return SimpleNamespace(text=self.text)


class FakeSpeech:
    def __init__(self, content):
        self.content = content

    def create(self, **kwargs):
        return SimpleNamespace(content=self.content)


def _openai_client(transcriptions=None, speech=None):
    return SimpleNamespace(audio=SimpleNamespace(transcriptions=transcriptions, speech=speech))


def test_stt_sends_clip_with_filename_from_mime():
    transcriptions = FakeTranscriptions()
    stt = OpenAISTT(OpenAISTTConfig(api_key="sk-test"), client=_openai_client(transcriptions=transcriptions))

    text = stt.transcribe(AudioClip(data=b"RIFF....", mime_type="audio/webm;codecs=opus"))

    assert text == "I'd sort first"
    call = transcriptions.calls[0]
    assert call["model"] == "gpt-4o-mini-transcribe"
    assert call["file"][0] == "audio.webm"
    assert call["language"] == "en"


def test_stt_rejects_empty_clip():
    stt = OpenAISTT(OpenAISTTConfig(api_key="sk-test"), client=_openai_client(transcriptions=FakeTranscriptions()))
    with pytest.raises(TranscriptionError):
        stt.transcribe(AudioClip(data=b""))


def test_tts_returns_wav_clip():
    from interview_coach.audio.capture import pcm_to_wav

    wav = pcm_to_wav(b"\x00\x00" * 2400, sample_rate=24000)
    tts = OpenAITTS(OpenAITTSConfig(api_key="sk-test"), client=_openai_client(speech=FakeSpeech(wav)))

    clip = tts.synthesize("Good idea.")

    assert clip.mime_type == "audio/wav"
    assert clip.sample_rate == 24000
    assert clip.duration_s == pytest.approx(0.1)


def test_tts_empty_audio_is_error():
    tts = OpenAITTS(OpenAITTSConfig(api_key="sk-test"), client=_openai_client(speech=FakeSpeech(b"")))
    with pytest.raises(SynthesisError):
        tts.synthesize("Good idea.")


def test_tts_rejects_blank_text_with_synthesis_error():
    speech = FakeSpeech(b"RIFF")
    openai_tts = OpenAITTS(OpenAITTSConfig(api_key="sk-test"), client=_openai_client(speech=speech))
    with pytest.raises(SynthesisError, match="empty text"):
        openai_tts.synthesize("   ")

    eleven = ElevenLabsTTS(ElevenLabsTTSConfig(api_key="k", voice_id="v"))
    with pytest.raises(SynthesisError, match="empty text"):
        eleven.synthesize("")


def test_elevenlabs_clip_format():
    cfg = ElevenLabsTTSConfig(api_key="k", voice_id="v")
    assert cfg.clip_format == ("audio/pcm", 22050)
    assert ElevenLabsTTSConfig(api_key="k", voice_id="v", output_format="mp3_44100_128").clip_format == (
        "audio/mpeg",
        44100,
    )


def test_factory_requires_keys(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(ConfigurationError):
        get_llm_provider("openai")
    with pytest.raises(ValueError):
        get_tts_provider("festival")

    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    assert isinstance(get_llm_provider("gpt"), OpenAILLM)
    assert isinstance(get_llm_provider("ollama"), OllamaLLM)
