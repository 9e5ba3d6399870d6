"""Tests for protocol adapters and endpoint normalization."""

import json

import pytest

from pingboard.core.adapters import (
    ChatCompletionAdapter,
    GenerateContentAdapter,
    MessagesAdapter,
    ProtocolAdapter,
    UnsupportedProviderError,
    append_query,
    ensure_path,
    get_adapter,
)
from pingboard.schemas.check import ProviderType

from tests.conftest import make_provider


@pytest.mark.unit
class TestEnsurePath:
    """Fallback path handling."""

    def test_bare_endpoint_gets_path(self):
        assert ensure_path("https://api.example.com", "/v1/messages") == "https://api.example.com/v1/messages"

    def test_trailing_slash_is_not_doubled(self):
        assert ensure_path("https://api.example.com/", "/v1/messages") == "https://api.example.com/v1/messages"

    def test_query_string_leaves_endpoint_unchanged(self):
        endpoint = "https://api.example.com/v1/custom?x=1"
        assert ensure_path(endpoint, "/v1/messages") == endpoint

    def test_already_has_path(self):
        endpoint = "https://proxy.example.com/openai/v1/chat/completions"
        assert ensure_path(endpoint, "/v1/chat/completions") == endpoint

    def test_versioned_segment_leaves_endpoint_unchanged(self):
        endpoint = "https://proxy.example.com/v1/chat"
        assert ensure_path(endpoint, "/v1/chat/completions") == endpoint

    def test_deployment_segment_leaves_endpoint_unchanged(self):
        endpoint = "https://res.openai.azure.com/openai/deployments/gpt4o/chat/completions"
        assert ensure_path(endpoint, "/v1/chat/completions") == endpoint

    def test_empty_endpoint_yields_path(self):
        assert ensure_path("", "/v1/messages") == "/v1/messages"


@pytest.mark.unit
def test_append_query():
    assert append_query("https://x.test/a", "key=1") == "https://x.test/a?key=1"
    assert append_query("https://x.test/a?alt=sse", "key=1") == "https://x.test/a?alt=sse&key=1"


@pytest.mark.unit
class TestRegistry:

    @pytest.mark.parametrize("provider_type, adapter_class", [
        (ProviderType.OPENAI, ChatCompletionAdapter),
        (ProviderType.GEMINI, GenerateContentAdapter),
        (ProviderType.ANTHROPIC, MessagesAdapter),
    ])
    def test_every_provider_type_has_an_adapter(self, provider_type, adapter_class):
        adapter = get_adapter(provider_type)

        assert isinstance(adapter, adapter_class)
        assert adapter.provider_type == provider_type

    def test_unknown_type_raises(self):
        with pytest.raises(UnsupportedProviderError, match="Unsupported provider: mistral"):
            get_adapter("mistral")


@pytest.mark.unit
class TestChatCompletionAdapter:

    def test_default_endpoint(self, openai_provider):
        request = ChatCompletionAdapter().build_request(openai_provider)

        assert request.url == "https://api.openai.com/v1/chat/completions"
        assert request.method == "POST"
        assert request.headers["Authorization"] == "Bearer sk-test-1234567890"
        assert request.body["model"] == "gpt-4o-mini"
        assert request.body["max_tokens"] == 3
        assert request.body["messages"][-1] == {"role": "user", "content": "ping"}

    def test_bare_base_url(self):
        provider = make_provider(endpoint="https://llm.internal")
        request = ChatCompletionAdapter().build_request(provider)

        assert request.url == "https://llm.internal/v1/chat/completions"
        assert request.reported_endpoint == "https://llm.internal"


@pytest.mark.unit
class TestGenerateContentAdapter:

    def test_model_path_and_query_key(self, gemini_provider):
        request = GenerateContentAdapter().build_request(gemini_provider)

        assert request.url == (
            "https://generativelanguage.googleapis.com/v1beta/models/"
            "gemini-1.5-flash:generateContent?key=AIza-test-key"
        )
        assert request.body == {"contents": [{"role": "user", "parts": [{"text": "ping"}]}]}

    def test_key_never_in_headers(self, gemini_provider):
        request = GenerateContentAdapter().build_request(gemini_provider)

        assert all("AIza-test-key" not in value for value in request.headers.values())
        assert "AIza-test-key" not in request.reported_endpoint

    def test_fully_qualified_endpoint_is_kept(self):
        provider = make_provider(
            provider_type=ProviderType.GEMINI,
            endpoint="https://gw.example.com/v1beta/models/custom:generateContent",
            model="ignored",
            key="k"
        )
        request = GenerateContentAdapter().build_request(provider)

        assert request.url == "https://gw.example.com/v1beta/models/custom:generateContent?key=k"


@pytest.mark.unit
class TestMessagesAdapter:

    def test_headers_and_body(self, anthropic_provider):
        request = MessagesAdapter().build_request(anthropic_provider)

        assert request.url == "https://api.anthropic.com/v1/messages"
        assert request.headers["x-api-key"] == "sk-ant-test-key"
        assert request.headers["anthropic-version"] == "2023-06-01"
        assert "Authorization" not in request.headers
        assert request.body["max_tokens"] == 10


@pytest.mark.unit
class TestExtractErrorMessage:

    adapter = ProtocolAdapter()

    def test_nested_error_message(self):
        body = json.dumps({"error": {"message": "Incorrect API key provided", "type": "invalid_request_error"}})
        assert self.adapter.extract_error_message(body) == "Incorrect API key provided"

    def test_string_error(self):
        assert self.adapter.extract_error_message('{"error": "quota exceeded"}') == "quota exceeded"

    def test_top_level_message(self):
        assert self.adapter.extract_error_message('{"message": "Not Found"}') == "Not Found"

    def test_unrecognised_json_is_serialised(self):
        assert self.adapter.extract_error_message('{"detail": "nope"}') == '{"detail":"nope"}'

    def test_plain_text_is_truncated(self):
        assert self.adapter.extract_error_message("<html>" + "x" * 500) == ("<html>" + "x" * 500)[:280]

    def test_empty_body(self):
        assert self.adapter.extract_error_message("") == ""
