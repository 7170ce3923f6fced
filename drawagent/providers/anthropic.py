"""Anthropic Claude provider using the Messages API."""

from typing import Iterator, List, Sequence

from .base import BaseProvider, CompletionRequest, CompletionResponse, Message

# Stops a reply that starts writing the next user turn itself
HUMAN_PROMPT = "\n\nHuman:"

_ROLES = {
    "user": "user",
    "human": "user",
    "assistant": "assistant",
    "ai": "assistant",
}


def get_anthropic_role(role: str) -> str:
    """Map a message role to a Messages API role. System messages have none."""
    if role in _ROLES:
        return _ROLES[role]
    if role == "system":
        return ""
    raise ValueError(f"Unknown message role: {role}")


class AnthropicProvider(BaseProvider):
    """Anthropic Claude API provider.

    A plain prompt is sent as a single user message. Streaming text arrives
    as increments from ``text_stream`` and is accumulated here before being
    handed to the base class.
    """

    name = "anthropic"
    default_model = "claude-sonnet-4-5"
    api_key_env = "ANTHROPIC_API_KEY"

    DEFAULT_STOP_SEQUENCES: List[str] = [HUMAN_PROMPT]

    MODELS = [
        "claude-opus-4-5",
        "claude-opus-4-5-20251101",
        "claude-sonnet-4-5",
        "claude-sonnet-4-5-20250929",
        "claude-opus-4-1-20250805",
        "claude-sonnet-4",
        "claude-3-5-haiku-20241022",
    ]

    def _build_client(self):
        try:
            import anthropic
            import httpx
        except ImportError:
            raise ImportError("anthropic package required: pip install anthropic")
        # Retries are handled by self.caller
        return anthropic.Anthropic(
            api_key=self.api_key,
            timeout=httpx.Timeout(self.timeout, connect=30.0),
            max_retries=0,
        )

    def format_messages_as_prompt(self, messages: Sequence[Message]) -> str:
        """Reject unknown roles before a request is built."""
        for m in messages:
            get_anthropic_role(m.role)
        return super().format_messages_as_prompt(messages)

    def _request_kwargs(self, request: CompletionRequest) -> dict:
        system = ""
        if request.messages:
            msg_list = []
            for m in request.messages:
                role = get_anthropic_role(m.role)
                if role:
                    msg_list.append({"role": role, "content": m.content})
                else:
                    system = f"{system}\n\n{m.content}" if system else m.content
        else:
            msg_list = [{"role": "user", "content": request.prompt}]

        kwargs = {
            "model": request.model,
            "max_tokens": request.max_tokens,
            "messages": msg_list,
            "stop_sequences": request.stop_sequences,
        }
        if system:
            kwargs["system"] = system
        # Unset sampling options are left to the API defaults
        if request.temperature is not None:
            kwargs["temperature"] = request.temperature
        if request.top_k is not None:
            kwargs["top_k"] = request.top_k
        if request.top_p is not None:
            kwargs["top_p"] = request.top_p
        kwargs.update(self.kwargs.get("invocation_kwargs", {}))
        return kwargs

    def _complete(self, client, request: CompletionRequest) -> CompletionResponse:
        response = client.messages.create(**self._request_kwargs(request))
        text = "".join(block.text for block in response.content if block.type == "text")
        return CompletionResponse(text=text, stop_reason=response.stop_reason)

    def _complete_stream(self, client, request: CompletionRequest) -> Iterator[CompletionResponse]:
        text = ""
        with client.messages.stream(**self._request_kwargs(request)) as stream:
            for delta in stream.text_stream:
                text += delta
                yield CompletionResponse(text=text)
            final = stream.get_final_message()
        yield CompletionResponse(text=text, stop_reason=final.stop_reason or "end_turn")

    def is_retryable(self, error: Exception) -> bool:
        import anthropic
        return isinstance(error, (
            anthropic.APIConnectionError,
            anthropic.RateLimitError,
            anthropic.InternalServerError,
        ))

    def list_models(self) -> List[str]:
        """List available Claude models."""
        return self.MODELS

    def get_config_help(self) -> str:
        return """Anthropic Claude

1. Get API key: https://console.anthropic.com/
2. Set environment variable:
   export ANTHROPIC_API_KEY=sk-ant-...

Or add to ~/.drawagent/.env:
   ANTHROPIC_API_KEY=sk-ant-..."""
