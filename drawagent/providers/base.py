"""Base provider interface for completion backends."""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, List, Optional, Sequence, Union

from ..errors import ConfigurationError, RunCancelled
from .retry import RetryingCaller

logger = logging.getLogger("drawagent.providers")


@dataclass
class Message:
    """A chat message."""
    role: str  # "user", "assistant", "system"
    content: str


@dataclass
class CompletionRequest:
    """Sampling configuration plus the rendered prompt."""
    prompt: str
    model: str
    temperature: Optional[float] = None
    top_k: Optional[int] = None
    top_p: Optional[float] = None
    max_tokens: int = 2048
    stop_sequences: List[str] = field(default_factory=list)
    stream: bool = False
    # Set when the caller passed chat messages; ``prompt`` is then their flattened form
    messages: List[Message] = field(default_factory=list)


@dataclass
class CompletionResponse:
    """Generated text. For streaming updates the text is cumulative."""
    text: str
    stop_reason: Optional[str] = None


TokenCallback = Callable[[str], Any]
PromptInput = Union[str, Sequence[Message]]


class BaseProvider(ABC):
    """Abstract base class for completion providers.

    Subclasses supply the transport (`_build_client`, `_complete`,
    `_complete_stream`). Stop-sequence merging, client caching, retry and
    streaming deltas live here so every backend behaves the same way.
    """

    name: str = "base"
    default_model: str = ""
    api_key_env: str = ""

    # Appended to caller-supplied stop sequences
    DEFAULT_STOP_SEQUENCES: List[str] = []

    def __init__(
        self,
        api_key: str = None,
        model: str = None,
        temperature: float = None,
        top_k: int = None,
        top_p: float = None,
        max_tokens: int = 2048,
        stop_sequences: List[str] = None,
        streaming: bool = False,
        timeout: float = 120.0,
        caller: RetryingCaller = None,
        **kwargs,
    ):
        if not api_key:
            raise ConfigurationError(
                f"{self.name} API key not found. Set {self.api_key_env or 'an API key'} "
                f"or pass api_key explicitly."
            )
        self.api_key = api_key
        self.model = model or self.default_model
        self.temperature = temperature
        self.top_k = top_k
        self.top_p = top_p
        self.max_tokens = max_tokens
        self.stop_sequences = list(stop_sequences) if stop_sequences else None
        self.streaming = streaming
        self.timeout = timeout
        self.caller = caller or RetryingCaller()
        self.kwargs = kwargs

        # Built on first use, then shared read-only
        self._batch_client = None
        self._streaming_client = None
        self._client_lock = threading.Lock()

    # === Transport hooks ===

    @abstractmethod
    def _build_client(self) -> Any:
        """Create an SDK client bound to ``self.api_key``."""

    @abstractmethod
    def _complete(self, client: Any, request: CompletionRequest) -> CompletionResponse:
        """Issue a single non-streaming request."""

    @abstractmethod
    def _complete_stream(self, client: Any, request: CompletionRequest) -> Iterator[CompletionResponse]:
        """Yield cumulative updates until one carries a stop reason."""

    def is_retryable(self, error: Exception) -> bool:
        """Whether a transport error is worth another attempt."""
        return False

    # === Clients ===

    @property
    def batch_client(self):
        if self._batch_client is None:
            with self._client_lock:
                if self._batch_client is None:
                    logger.debug(f"Building {self.name} batch client")
                    self._batch_client = self._build_client()
        return self._batch_client

    @property
    def streaming_client(self):
        if self._streaming_client is None:
            with self._client_lock:
                if self._streaming_client is None:
                    logger.debug(f"Building {self.name} streaming client")
                    self._streaming_client = self._build_client()
        return self._streaming_client

    # === Request building ===

    def format_messages_as_prompt(self, messages: Sequence[Message]) -> str:
        """Flatten chat messages into a single completion prompt."""
        return "\n\n".join(m.content for m in messages)

    def resolve_stop_sequences(self, stop: Optional[List[str]] = None) -> List[str]:
        """Merge call-site stop sequences with the provider defaults.

        Supplying ``stop`` when the instance was built with its own stop
        sequences is ambiguous and rejected.
        """
        if self.stop_sequences and stop:
            raise ConfigurationError('"stop_sequences" parameter found in input and default params')
        if stop:
            return list(stop) + list(self.DEFAULT_STOP_SEQUENCES)
        return list(self.stop_sequences or self.DEFAULT_STOP_SEQUENCES)

    def invocation_params(self) -> dict:
        """Get the sampling parameters used to invoke the model."""
        return {
            "model": self.model,
            "temperature": self.temperature,
            "top_k": self.top_k,
            "top_p": self.top_p,
            "max_tokens": self.max_tokens,
            "stream": self.streaming,
        }

    def build_request(
        self,
        prompt: PromptInput,
        stop: Optional[List[str]] = None,
        stream: Optional[bool] = None,
    ) -> CompletionRequest:
        messages = []
        if not isinstance(prompt, str):
            messages = list(prompt)
            prompt = self.format_messages_as_prompt(messages)
        params = self.invocation_params()
        if stream is not None:
            params["stream"] = stream
        return CompletionRequest(
            prompt=prompt,
            stop_sequences=self.resolve_stop_sequences(stop),
            messages=messages,
            **params,
        )

    # === Public entry point ===

    def invoke(
        self,
        prompt: PromptInput,
        stop: Optional[List[str]] = None,
        on_token: Optional[TokenCallback] = None,
        stream: Optional[bool] = None,
        cancel: Optional[threading.Event] = None,
    ) -> CompletionResponse:
        """Complete ``prompt`` (a string or a list of messages).

        Args:
            prompt: Prompt text or chat messages
            stop: Extra stop sequences for this call
            on_token: Called with each newly generated piece of text when streaming
            stream: Override the instance streaming mode for this call
            cancel: Event checked before each attempt and during retry waits

        Returns:
            The final CompletionResponse
        """
        request = self.build_request(prompt, stop=stop, stream=stream)

        if request.stream:
            client = self.streaming_client

            def make_request():
                return self._consume_stream(client, request, on_token, cancel)
        else:
            client = self.batch_client

            def make_request():
                return self._complete(client, request)

        return self.caller.call(make_request, is_retryable=self.is_retryable, cancel=cancel)

    def _consume_stream(
        self,
        client: Any,
        request: CompletionRequest,
        on_token: Optional[TokenCallback],
        cancel: Optional[threading.Event],
    ) -> CompletionResponse:
        emitted = ""
        last = CompletionResponse(text="")
        for update in self._complete_stream(client, request):
            if cancel is not None and cancel.is_set():
                raise RunCancelled(f"{self.name} stream cancelled")
            last = update
            if update.stop_reason:
                break
            part = update.text
            if part:
                delta = part[len(emitted):]
                emitted += delta
                if delta and on_token:
                    on_token(delta)
        return last

    def get_config_help(self) -> str:
        """Get help text for configuring this provider."""
        return f"{self.name} provider"
