"""
Drawing assistant - wires settings, provider, tools and agent together.
"""

import logging
import threading
from typing import Callable, Optional

from .config import Settings
from .core.agent import AgentResult, DrawAgent
from .providers import BaseProvider, RetryingCaller, get_provider
from .skills.shapes import CommandCanvas, build_drawing_tools

logger = logging.getLogger("drawagent")


def create_provider(settings: Settings) -> BaseProvider:
    """Build the configured provider. Raises ConfigurationError without a key."""
    caller = RetryingCaller(max_retries=settings.max_retries, base_delay=settings.retry_base_delay)
    return get_provider(
        settings.provider,
        api_key=settings.api_key_for(),
        model=settings.model,
        temperature=settings.temperature,
        top_k=settings.top_k,
        top_p=settings.top_p,
        max_tokens=settings.max_tokens,
        streaming=settings.stream,
        timeout=settings.timeout,
        caller=caller,
    )


class DrawingAssistant:
    """Turns drawing requests into commands on a canvas."""

    def __init__(
        self,
        settings: Settings,
        provider: Optional[BaseProvider] = None,
        canvas=None,
        on_token: Optional[Callable[[str], None]] = None,
    ):
        self.settings = settings
        self.provider = provider or create_provider(settings)
        self.canvas = canvas if canvas is not None else CommandCanvas()
        self.agent = DrawAgent(
            provider=self.provider,
            tools=build_drawing_tools(self.canvas),
            allowed_tools=settings.allowed_tools,
            max_iterations=settings.max_iterations,
            stream=settings.stream,
            on_token=on_token,
        )

    def draw(self, request: str, cancel: Optional[threading.Event] = None) -> AgentResult:
        """Run the agent for one drawing request."""
        logger.info(f"Drawing request via {self.provider.name}/{self.provider.model}: {request[:80]!r}")
        return self.agent.run(request, cancel=cancel)
