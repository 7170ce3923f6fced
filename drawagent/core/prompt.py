"""Prompt template for the drawing agent."""

import re
from typing import Iterable, List

from ..errors import ConfigurationError
from .tools import Tool

# The output parser depends on these exact markers
ACTION = "Action:"
ACTION_INPUT = "Action Input:"
OBSERVATION = "Observation:"
THOUGHT = "Thought:"
FINAL_ANSWER = "Final Answer:"

INPUT_SLOT = "{input}"
SCRATCHPAD_SLOT = "{agent_scratchpad}"
_SLOT_PATTERN = re.compile(re.escape(INPUT_SLOT) + "|" + re.escape(SCRATCHPAD_SLOT))

DEFAULT_PREFIX = (
    "Imagine you are an AI painting master, specializing in helping users break their drawing "
    "requests down into basic geometric shapes (limited to circles, rectangles, ellipses and lines). "
    "When a user gives you a drawing request, analyse it and use these simple shapes to build the "
    "picture step by step. Describe each step precisely so the matching shape can be drawn. "
    "You have access to the following tools:"
)

DEFAULT_SUFFIX = (
    "Begin! The Action Input is a comma separated list of objects with the keys "
    '"x","y","width","height","radius","radiusX","radiusY","x1","y1","x2","y2". '
    "Only use the keys the shape needs.\n\n"
    "Question: {input}\n"
    "Thought:{agent_scratchpad}"
)

FORMAT_INSTRUCTIONS = """Use the following format:

Question: the input question you must answer
Thought: you should always think about what to do
Action: the action to take, should be one of [{tool_names}]
Action Input: the input to the action
Observation: the result of the action
... (this Thought/Action/Action Input/Observation can repeat N times)
Thought: I now know the final answer
Final Answer: the final answer to the original input question"""


def format_scratchpad(steps: Iterable) -> str:
    """Render prior steps as the transcript the model continues from."""
    out = ""
    for step in steps:
        out += f"{step.log}\n{OBSERVATION} {step.observation}\n{THOUGHT}"
    return out


class PromptBuilder:
    """Prefix, one catalog line per tool, format instructions, suffix."""

    def __init__(
        self,
        tools: Iterable[Tool],
        prefix: str = DEFAULT_PREFIX,
        suffix: str = DEFAULT_SUFFIX,
        format_instructions: str = FORMAT_INSTRUCTIONS,
    ):
        for slot in (INPUT_SLOT, SCRATCHPAD_SLOT):
            if slot not in suffix:
                raise ConfigurationError(f"Prompt suffix is missing the {slot} placeholder")

        self.tools: List[Tool] = list(tools)
        tool_strings = "\n".join(f"{tool.name}: {tool.description}" for tool in self.tools)
        tool_names = ", ".join(tool.name for tool in self.tools)
        self.template = "\n\n".join([
            prefix,
            tool_strings,
            format_instructions.replace("{tool_names}", tool_names),
            suffix,
        ])

    def render(self, input: str, steps: Iterable = ()) -> str:
        """Fill in the user request and the transcript of prior steps."""
        values = {INPUT_SLOT: input, SCRATCHPAD_SLOT: format_scratchpad(steps)}
        # Single pass so substituted text is never rescanned
        return _SLOT_PATTERN.sub(lambda m: values[m.group(0)], self.template)
