"""Agent loop, prompt, tool registry and argument parsing."""

from .agent import AgentResult, AgentStep, DrawAgent, Outcome, parse_agent_output
from .params import INVALID_ARG, ShapeParams, parse_tool_input, quote_bare_keys
from .prompt import PromptBuilder
from .tools import Tool, ToolRegistry

__all__ = [
    "AgentResult",
    "AgentStep",
    "DrawAgent",
    "Outcome",
    "parse_agent_output",
    "INVALID_ARG",
    "ShapeParams",
    "parse_tool_input",
    "quote_bare_keys",
    "PromptBuilder",
    "Tool",
    "ToolRegistry",
]
