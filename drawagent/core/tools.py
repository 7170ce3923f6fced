"""
Tool registry with an explicit dispatch allow-list.

A tool is a name, a description shown to the model, and a handler that takes
the parsed shape records and returns observation text. Dispatch never raises:
unknown tools, disallowed tools, bad arguments and handler failures all come
back as observation strings the model can react to.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from ..errors import ConfigurationError
from .params import INVALID_ARG, parse_tool_input, to_shape_params

logger = logging.getLogger("drawagent.tools")

Handler = Callable[[List], str]


@dataclass(frozen=True)
class Tool:
    """A named, described tool handler."""
    name: str
    description: str
    handler: Optional[Handler] = None

    def __call__(self, raw_input: str) -> str:
        """Parse ``raw_input`` and pass the records to the handler."""
        records = parse_tool_input(raw_input)
        if records is None:
            return INVALID_ARG
        if self.handler is None:
            return "undefined draw"
        return self.handler(to_shape_params(records))


class ToolRegistry:
    """Tools keyed by name plus the subset that may be dispatched."""

    def __init__(self, tools: Iterable[Tool], allowed: Optional[Iterable[str]] = None):
        self._tools: Dict[str, Tool] = {}
        for tool in tools:
            if tool.name in self._tools:
                raise ConfigurationError(f"Duplicate tool name: {tool.name}")
            self._tools[tool.name] = tool
        self.allowed = frozenset(self._tools if allowed is None else allowed)

        unknown = self.allowed - set(self._tools)
        if unknown:
            logger.warning(f"Allow-list names tools that are not registered: {sorted(unknown)}")

    @property
    def tools(self) -> List[Tool]:
        """Registered tools in registration order."""
        return list(self._tools.values())

    @property
    def names(self) -> List[str]:
        return list(self._tools)

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def is_allowed(self, name: str) -> bool:
        return name in self._tools and name in self.allowed

    def dispatch(self, name: str, raw_input: str) -> str:
        """Run a tool by name and return the observation text."""
        tool = self._tools.get(name)
        if tool is None:
            logger.info(f"Unknown tool requested: {name!r}")
            return f"unknown tool: {name}. Available tools: {', '.join(self.names)}"
        if name not in self.allowed:
            logger.info(f"Tool not in allow-list: {name!r}")
            return f"tool not allowed: {name}"

        logger.info(f"Calling: {name}({raw_input[:80]!r})")
        start = time.time()
        try:
            result = tool(raw_input)
        except Exception as e:
            logger.warning(f"{name} failed: {e}")
            return f"Error: {name} failed: {e}"
        duration = time.time() - start
        logger.debug(f"Completed: {name} in {duration:.2f}s -> {str(result)[:100]!r}")
        return str(result)
