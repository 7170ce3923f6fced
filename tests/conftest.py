"""Shared fixtures: a scripted provider that never touches the network."""

from typing import Iterator, List

import pytest

from drawagent.providers.base import BaseProvider, CompletionRequest, CompletionResponse
from drawagent.providers.retry import RetryingCaller


class ScriptedProvider(BaseProvider):
    """Replies with canned completions in order, repeating the last one."""

    name = "scripted"
    default_model = "scripted-model"

    def __init__(self, replies: List[str], **kwargs):
        kwargs.setdefault("api_key", "test-key")
        kwargs.setdefault("caller", RetryingCaller(max_retries=0))
        super().__init__(**kwargs)
        self.replies = list(replies)
        self.requests: List[CompletionRequest] = []
        self.clients_built = 0

    def _build_client(self):
        self.clients_built += 1
        return object()

    def _next_reply(self) -> str:
        if len(self.replies) > 1:
            return self.replies.pop(0)
        return self.replies[0]

    def _complete(self, client, request: CompletionRequest) -> CompletionResponse:
        self.requests.append(request)
        return CompletionResponse(text=self._next_reply(), stop_reason="stop_sequence")

    def _complete_stream(self, client, request: CompletionRequest) -> Iterator[CompletionResponse]:
        self.requests.append(request)
        reply = self._next_reply()
        text = ""
        for word in reply.split(" "):
            text = f"{text} {word}" if text else word
            yield CompletionResponse(text=text)
        yield CompletionResponse(text=text, stop_reason="stop_sequence")


@pytest.fixture
def scripted():
    """Factory for ScriptedProvider instances."""
    def make(*replies, **kwargs):
        return ScriptedProvider(list(replies), **kwargs)
    return make
