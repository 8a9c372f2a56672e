import pytest

from study_assistant.errors import AppError, UpstreamServiceError
from study_assistant.services import tts_service
from study_assistant.services.tts_service import ElevenLabsService
from tests.conftest import FakeResponse

STORY = (
    "The first sentence opens the lecture on cell biology. "
    "The second sentence introduces the nucleus and its envelope. "
    "The third sentence describes ribosomes building proteins. "
    "The fourth sentence wraps up with the cell membrane."
)


@pytest.fixture
def sleeps(monkeypatch):
    recorded = []
    monkeypatch.setattr(tts_service.time, "sleep", recorded.append)
    return recorded


def test_chunks_are_synthesized_in_order_and_concatenated(app_ctx, providers, sleeps):
    app_ctx.config["TTS_CHUNK_SIZE"] = 70
    app_ctx.config["TTS_OVERLAP_WORDS"] = 3
    app_ctx.config["TTS_REQUEST_DELAY"] = 0.25
    service = ElevenLabsService()

    audio = service.synthesize(STORY)

    sent = [kw["json"]["text"] for _, kw in providers.calls_to("/text-to-speech/")]
    assert len(sent) == 4
    assert sent[0] == "The first sentence opens the lecture on cell biology"
    assert sent[1].startswith("on cell biology. The second sentence")
    assert audio == "".join(sent).encode("utf-8")
    assert sleeps == [0.25, 0.25, 0.25]


def test_request_uses_configured_voice(app_ctx, providers, sleeps):
    ElevenLabsService(voice_id="voice-123").synthesize("Hello there.")
    url, kwargs = providers.calls_to("/text-to-speech/")[0]
    assert url.endswith("/text-to-speech/voice-123")
    assert kwargs["headers"]["xi-api-key"] == "test-elevenlabs"
    assert kwargs["json"]["model_id"] == "eleven_monolingual_v1"
    assert sleeps == []


def test_text_without_sentences_is_sent_as_is(app_ctx, providers, sleeps):
    assert ElevenLabsService().synthesize("...") == b"..."


def test_missing_api_key(app_ctx):
    app_ctx.config["ELEVENLABS_API_KEY"] = ""
    with pytest.raises(AppError) as exc:
        ElevenLabsService()
    assert exc.value.status_code == 500
    assert "not configured" in exc.value.message


def test_provider_error_stops_synthesis(app_ctx, providers, sleeps):
    providers.on("/text-to-speech/", lambda url, kw: FakeResponse(401, text="invalid key"))
    with pytest.raises(UpstreamServiceError) as exc:
        ElevenLabsService().synthesize(STORY)
    assert exc.value.status_code == 502
    assert exc.value.message.startswith("Speech generation failed")
    assert len(providers.calls_to("/text-to-speech/")) == 1


@pytest.mark.parametrize("status", [429, 413])
def test_provider_rate_limit_is_429(app_ctx, providers, sleeps, status):
    providers.on("/text-to-speech/", lambda url, kw: FakeResponse(status, text="too_many_concurrent_requests"))
    with pytest.raises(UpstreamServiceError) as exc:
        ElevenLabsService().synthesize("Hello there.")
    assert exc.value.is_rate_limited
    assert exc.value.status_code == 429
    assert exc.value.message.startswith("Speech generation failed")


def test_list_voices(app_ctx, providers):
    providers.on("/voices", lambda url, kw: FakeResponse(json_data={"voices": [
        {"voice_id": "v1", "name": "Rachel", "category": "premade", "labels": {"accent": "american"},
         "preview_url": "https://example.com/v1.mp3", "settings": {}},
    ]}))
    assert ElevenLabsService().list_voices() == [{
        "voice_id": "v1",
        "name": "Rachel",
        "category": "premade",
        "labels": {"accent": "american"},
        "preview_url": "https://example.com/v1.mp3",
    }]
