import pytest

from study_assistant.errors import UpstreamServiceError
from study_assistant.services.openrouter import OpenRouterService
from tests.conftest import FakeResponse, completion_stream

MESSAGES = [{"role": "user", "content": "Hi"}]


def test_stream_yields_deltas_and_releases_connection(app_ctx, providers):
    upstream = completion_stream(["Hel", "lo"])
    providers.on("/chat/completions", lambda url, kw: upstream)

    assert list(OpenRouterService().chat_completion_stream(MESSAGES)) == ["Hel", "lo"]
    assert upstream.closed


def test_unread_stream_can_be_closed(app_ctx, providers):
    upstream = completion_stream(["never read"])
    providers.on("/chat/completions", lambda url, kw: upstream)

    stream = OpenRouterService().chat_completion_stream(MESSAGES)
    assert not upstream.closed
    stream.close()
    assert upstream.closed


def test_failed_stream_request_is_closed_before_raising(app_ctx, providers):
    upstream = FakeResponse(503, text="overloaded")
    providers.on("/chat/completions", lambda url, kw: upstream)

    with pytest.raises(UpstreamServiceError) as exc:
        OpenRouterService().chat_completion_stream(MESSAGES)
    assert exc.value.status_code == 502
    assert "overloaded" in exc.value.message
    assert upstream.closed
