"""Tests for drawagent/providers — stop sequences, clients, streaming and SDK adapters."""

import threading

import anthropic
import httpx
import openai
import pytest
from unittest.mock import MagicMock, patch

from drawagent.errors import ConfigurationError, RunCancelled, TransportError
from drawagent.providers import (
    AnthropicProvider, Message, OpenAIProvider, RetryingCaller, get_provider, list_providers,
)
from drawagent.providers.anthropic import HUMAN_PROMPT
from drawagent.providers.base import CompletionResponse


def _request():
    return httpx.Request("POST", "https://example.invalid/v1/messages")


def _auth_error():
    response = httpx.Response(401, request=_request())
    return anthropic.AuthenticationError("bad key", response=response, body=None)


# ──────────────────────────────────────────────
# Stop sequences
# ──────────────────────────────────────────────

class TestStopSequences:

    def test_call_site_stop_merged_with_defaults(self):
        provider = AnthropicProvider(api_key="k")
        assert provider.resolve_stop_sequences(["\nObservation:"]) == ["\nObservation:", HUMAN_PROMPT]

    def test_defaults_when_nothing_given(self):
        provider = AnthropicProvider(api_key="k")
        assert provider.resolve_stop_sequences() == [HUMAN_PROMPT]

    def test_instance_stop_used_alone(self):
        provider = AnthropicProvider(api_key="k", stop_sequences=["END"])
        assert provider.resolve_stop_sequences() == ["END"]

    def test_conflict_rejected(self):
        provider = AnthropicProvider(api_key="k", stop_sequences=["END"])
        with pytest.raises(ConfigurationError, match="stop_sequences"):
            provider.resolve_stop_sequences(["\nObservation:"])

    def test_build_request_carries_sampling_params(self):
        provider = AnthropicProvider(api_key="k", model="claude-3-5-haiku-20241022", temperature=0.3, top_k=5)
        request = provider.build_request("hello", stop=["X"])
        assert request.model == "claude-3-5-haiku-20241022"
        assert request.temperature == 0.3
        assert request.top_k == 5
        assert request.stop_sequences == ["X", HUMAN_PROMPT]
        assert request.stream is False


# ──────────────────────────────────────────────
# Base behaviour
# ──────────────────────────────────────────────

class TestBaseProvider:

    def test_missing_api_key(self):
        with pytest.raises(ConfigurationError, match="ANTHROPIC_API_KEY"):
            AnthropicProvider(api_key=None)

    def test_clients_built_once(self, scripted):
        provider = scripted("Final Answer: x")
        for _ in range(3):
            provider.invoke("p")
        assert provider.clients_built == 1
        provider.invoke("p", stream=True)
        provider.invoke("p", stream=True)
        assert provider.clients_built == 2

    def test_clients_built_once_across_threads(self, scripted):
        provider = scripted("Final Answer: x")
        seen = []
        threads = [threading.Thread(target=lambda: seen.append(provider.batch_client)) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert provider.clients_built == 1
        assert all(client is seen[0] for client in seen)

    def test_streaming_deltas_from_cumulative_updates(self, scripted):
        provider = scripted("unused")
        updates = [
            CompletionResponse(text="Hi"),
            CompletionResponse(text="Hi there"),
            CompletionResponse(text="Hi there!", stop_reason="stop_sequence"),
        ]
        provider._complete_stream = lambda client, request: iter(updates)
        tokens = []
        response = provider.invoke("p", stream=True, on_token=tokens.append)
        assert tokens == ["Hi", " there"]
        assert response.text == "Hi there!"
        assert response.stop_reason == "stop_sequence"

    def test_stream_cancelled(self, scripted):
        cancel = threading.Event()
        provider = scripted("a b c d")
        tokens = []

        def on_token(token):
            tokens.append(token)
            cancel.set()

        with pytest.raises(RunCancelled):
            provider.invoke("p", stream=True, on_token=on_token, cancel=cancel)
        assert tokens == ["a"]

    def test_messages_joined_for_plain_prompt(self, scripted):
        provider = scripted("ok")
        provider.invoke([Message("system", "Be brief."), Message("user", "Draw.")])
        assert provider.requests[0].prompt == "Be brief.\n\nDraw."

    def test_retry_through_provider(self, scripted):
        provider = scripted("ok", caller=RetryingCaller(max_retries=2, base_delay=0))
        calls = []
        original = provider._complete

        def flaky(client, request):
            calls.append(request)
            if len(calls) == 1:
                raise ConnectionError("reset")
            return original(client, request)

        provider._complete = flaky
        provider.is_retryable = lambda e: isinstance(e, ConnectionError)
        assert provider.invoke("p").text == "ok"
        assert len(calls) == 2


# ──────────────────────────────────────────────
# Anthropic
# ──────────────────────────────────────────────

class TestAnthropicProvider:

    def test_messages_sent_as_turns(self):
        provider = AnthropicProvider(api_key="k")
        request = provider.build_request([
            Message("system", "You draw."),
            Message("user", "Draw a sun"),
            Message("assistant", "Which colour?"),
            Message("user", "Yellow"),
        ])
        kwargs = provider._request_kwargs(request)
        assert kwargs["system"] == "You draw."
        assert kwargs["messages"] == [
            {"role": "user", "content": "Draw a sun"},
            {"role": "assistant", "content": "Which colour?"},
            {"role": "user", "content": "Yellow"},
        ]

    def test_unknown_role(self):
        provider = AnthropicProvider(api_key="k")
        with pytest.raises(ValueError):
            provider.build_request([Message("tool", "x")])

    @patch("anthropic.Anthropic")
    def test_batch_completion(self, mock_cls):
        client = mock_cls.return_value
        client.messages.create.return_value = MagicMock(
            content=[MagicMock(type="text", text=" Final Answer: a sun")],
            stop_reason="end_turn",
        )
        provider = AnthropicProvider(api_key="k", temperature=0)
        response = provider.invoke("Question: a sun", stop=["\nObservation:"])

        assert response.text == " Final Answer: a sun"
        assert response.stop_reason == "end_turn"
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["model"] == "claude-sonnet-4-5"
        assert kwargs["max_tokens"] == 2048
        assert kwargs["messages"] == [{"role": "user", "content": "Question: a sun"}]
        assert kwargs["stop_sequences"] == ["\nObservation:", HUMAN_PROMPT]
        assert kwargs["temperature"] == 0
        assert "top_k" not in kwargs
        assert "system" not in kwargs
        assert mock_cls.call_args.kwargs["max_retries"] == 0

    @patch("anthropic.Anthropic")
    def test_streaming_accumulates_text_stream(self, mock_cls):
        client = mock_cls.return_value
        stream = client.messages.stream.return_value.__enter__.return_value
        stream.text_stream = iter(["Final", " Answer: ok"])
        stream.get_final_message.return_value = MagicMock(stop_reason="stop_sequence")
        provider = AnthropicProvider(api_key="k", streaming=True, top_p=0.9)
        tokens = []
        response = provider.invoke("p", on_token=tokens.append)

        assert tokens == ["Final", " Answer: ok"]
        assert response.text == "Final Answer: ok"
        assert response.stop_reason == "stop_sequence"
        assert client.messages.stream.call_args.kwargs["top_p"] == 0.9
        client.messages.create.assert_not_called()

    def test_retryable_errors(self):
        provider = AnthropicProvider(api_key="k")
        assert provider.is_retryable(anthropic.APIConnectionError(request=_request()))
        assert not provider.is_retryable(ValueError("bad"))

    @patch("anthropic.Anthropic")
    def test_connection_errors_exhaust_retries(self, mock_cls):
        client = mock_cls.return_value
        client.messages.create.side_effect = anthropic.APIConnectionError(request=_request())
        provider = AnthropicProvider(api_key="k", caller=RetryingCaller(max_retries=2, base_delay=0))
        with pytest.raises(TransportError):
            provider.invoke("p")
        assert client.messages.create.call_count == 3

    @patch("anthropic.Anthropic")
    def test_auth_error_wrapped_without_retry(self, mock_cls):
        client = mock_cls.return_value
        client.messages.create.side_effect = _auth_error()
        provider = AnthropicProvider(api_key="k", caller=RetryingCaller(max_retries=3, base_delay=0))
        with pytest.raises(TransportError, match="bad key") as exc_info:
            provider.invoke("p")
        assert isinstance(exc_info.value.__cause__, anthropic.AuthenticationError)
        assert client.messages.create.call_count == 1


# ──────────────────────────────────────────────
# OpenAI
# ──────────────────────────────────────────────

class TestOpenAIProvider:

    def test_defaults_to_zero_temperature(self):
        assert OpenAIProvider(api_key="k").temperature == 0

    @patch("openai.OpenAI")
    def test_batch_completion(self, mock_cls):
        client = mock_cls.return_value
        client.completions.create.return_value = MagicMock(
            choices=[MagicMock(text="Final Answer: done", finish_reason="stop")]
        )
        provider = OpenAIProvider(api_key="k", top_k=10, base_url="http://localhost:8080/v1")
        response = provider.invoke("p", stop=["\nObservation:"])

        assert response.text == "Final Answer: done"
        assert response.stop_reason == "stop"
        kwargs = client.completions.create.call_args.kwargs
        assert kwargs["stop"] == ["\nObservation:"]
        assert kwargs["max_tokens"] == 2048
        assert "top_k" not in kwargs
        assert mock_cls.call_args.kwargs["base_url"] == "http://localhost:8080/v1"

    @patch("openai.OpenAI")
    def test_streaming(self, mock_cls):
        client = mock_cls.return_value
        client.completions.create.return_value = iter([
            MagicMock(choices=[]),
            MagicMock(choices=[MagicMock(text="Hi", finish_reason=None)]),
            MagicMock(choices=[MagicMock(text=" there", finish_reason=None)]),
            MagicMock(choices=[MagicMock(text="", finish_reason="stop")]),
        ])
        provider = OpenAIProvider(api_key="k")
        tokens = []
        response = provider.invoke("p", stream=True, on_token=tokens.append)
        assert tokens == ["Hi", " there"]
        assert response.text == "Hi there"

    def test_retryable_errors(self):
        provider = OpenAIProvider(api_key="k")
        assert provider.is_retryable(openai.APIConnectionError(request=_request()))
        assert not provider.is_retryable(KeyError("x"))


# ──────────────────────────────────────────────
# Registry
# ──────────────────────────────────────────────

class TestProviderRegistry:

    def test_list_providers(self):
        assert set(list_providers()) == {"anthropic", "openai"}

    def test_get_provider(self):
        provider = get_provider("openai", api_key="k", model="davinci-002")
        assert isinstance(provider, OpenAIProvider)
        assert provider.model == "davinci-002"

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown provider"):
            get_provider("cohere", api_key="k")
