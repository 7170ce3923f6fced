"""OpenAI provider using the legacy Completions API."""

from typing import Iterator, List

from .base import BaseProvider, CompletionRequest, CompletionResponse


class OpenAIProvider(BaseProvider):
    """OpenAI completions provider.

    The Completions endpoint has no top-k option, so ``top_k`` is ignored.
    """

    name = "openai"
    default_model = "gpt-3.5-turbo-instruct"
    api_key_env = "OPENAI_API_KEY"

    MODELS = [
        "gpt-3.5-turbo-instruct",
        "davinci-002",
        "babbage-002",
    ]

    def __init__(self, api_key: str = None, model: str = None, temperature: float = 0, **kwargs):
        super().__init__(api_key=api_key, model=model, temperature=temperature, **kwargs)
        self.base_url = kwargs.get("base_url")

    def _build_client(self):
        try:
            import httpx
            from openai import OpenAI
        except ImportError:
            raise ImportError("openai package required: pip install openai")
        return OpenAI(
            api_key=self.api_key,
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout, connect=30.0),
            max_retries=0,
        )

    def _request_kwargs(self, request: CompletionRequest) -> dict:
        kwargs = {
            "model": request.model,
            "prompt": request.prompt,
            "max_tokens": request.max_tokens,
        }
        if request.stop_sequences:
            kwargs["stop"] = request.stop_sequences
        if request.temperature is not None:
            kwargs["temperature"] = request.temperature
        if request.top_p is not None:
            kwargs["top_p"] = request.top_p
        return kwargs

    def _complete(self, client, request: CompletionRequest) -> CompletionResponse:
        response = client.completions.create(**self._request_kwargs(request))
        choice = response.choices[0]
        return CompletionResponse(text=choice.text, stop_reason=choice.finish_reason)

    def _complete_stream(self, client, request: CompletionRequest) -> Iterator[CompletionResponse]:
        text = ""
        stream = client.completions.create(stream=True, **self._request_kwargs(request))
        for chunk in stream:
            if not chunk.choices:
                continue
            choice = chunk.choices[0]
            text += choice.text or ""
            yield CompletionResponse(text=text, stop_reason=choice.finish_reason)
            if choice.finish_reason:
                break

    def is_retryable(self, error: Exception) -> bool:
        import openai
        return isinstance(error, (
            openai.APIConnectionError,
            openai.RateLimitError,
            openai.InternalServerError,
        ))

    def list_models(self) -> List[str]:
        """List known completion models."""
        return self.MODELS

    def get_config_help(self) -> str:
        return """OpenAI

1. Get API key: https://platform.openai.com/api-keys
2. Set environment variable:
   export OPENAI_API_KEY=sk-...

Or add to ~/.drawagent/.env:
   OPENAI_API_KEY=sk-..."""
