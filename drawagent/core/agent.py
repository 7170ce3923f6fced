"""
Reasoning/act loop for the drawing agent.

Each iteration renders the prompt with the steps taken so far, asks the model
for a continuation, and either finishes on a final answer or dispatches the
requested tool and records the observation.

The output parser accepts `Action:` and `Action Input:` on the same line or on
separate lines.
"""

import logging
import re
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, List, Optional, Union

from ..errors import ConfigurationError, RunCancelled
from .prompt import (
    ACTION, ACTION_INPUT, DEFAULT_PREFIX, DEFAULT_SUFFIX, FINAL_ANSWER, OBSERVATION,
    THOUGHT, PromptBuilder,
)
from .tools import Tool, ToolRegistry

logger = logging.getLogger("drawagent.agent")

DEFAULT_MAX_ITERATIONS = 15

# Stop before the model invents its own observation
STOP_SEQUENCES = [f"\n{OBSERVATION}", f"\n\t{OBSERVATION}"]

INVALID_FORMAT = (
    "Invalid Format: could not parse output. Reply with "
    f"'{ACTION} <tool name>' followed by '{ACTION_INPUT} <arguments>', "
    f"or with '{FINAL_ANSWER} <answer>'."
)
INVALID_FORMAT_ACTION = "_Exception"

ITERATION_LIMIT_OUTPUT = "Agent stopped due to iteration limit."
CANCELLED_OUTPUT = "Agent stopped: run cancelled."

_ACTION_PATTERN = re.compile(
    rf"{re.escape(ACTION)}(.*?)\s*{re.escape(ACTION_INPUT)}(.*)",
    re.DOTALL,
)
_NEXT_MARKER = re.compile(
    rf"\n\s*(?:{re.escape(OBSERVATION)}|{re.escape(THOUGHT)}|{re.escape(ACTION)})"
)


class Outcome(Enum):
    """How a run ended."""
    FINISHED = "finished"
    ITERATION_LIMIT_EXCEEDED = "iteration_limit_exceeded"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class AgentAction:
    """A tool call requested by the model."""
    tool: str
    tool_input: str
    log: str


@dataclass(frozen=True)
class AgentFinish:
    """The model's final answer."""
    output: str
    log: str


@dataclass(frozen=True)
class AgentStep:
    """One dispatched action and what came back."""
    action: str
    action_input: str
    observation: str
    log: str = ""


@dataclass
class AgentResult:
    """Final output plus the steps that led to it."""
    output: str
    outcome: Outcome
    steps: List[AgentStep] = field(default_factory=list)

    @property
    def finished(self) -> bool:
        return self.outcome is Outcome.FINISHED


def parse_agent_output(text: str) -> Optional[Union[AgentAction, AgentFinish]]:
    """Parse one model continuation.

    A final answer wins over an action. Returns None when neither marker
    pattern is present.
    """
    if FINAL_ANSWER in text:
        output = text.split(FINAL_ANSWER, 1)[1].strip()
        return AgentFinish(output=output, log=text)

    match = _ACTION_PATTERN.search(text)
    if not match:
        return None

    tool = match.group(1).strip()
    tool_input = match.group(2)
    next_marker = _NEXT_MARKER.search(tool_input)
    if next_marker:
        tool_input = tool_input[:next_marker.start()]
    return AgentAction(tool=tool, tool_input=tool_input.strip(), log=text)


class DrawAgent:
    """Drives the prompt → model → tool loop for one request at a time.

    The tool set is fixed at construction. ``allowed_tools`` can narrow the
    dispatchable subset; a registered tool outside it is never run.
    """

    def __init__(
        self,
        provider,
        tools: Iterable[Tool],
        allowed_tools: Optional[Iterable[str]] = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        prefix: str = DEFAULT_PREFIX,
        suffix: str = DEFAULT_SUFFIX,
        stream: Optional[bool] = None,
        on_token: Optional[Callable[[str], None]] = None,
    ):
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        # The loop always sends its own stop sequences
        if getattr(provider, "stop_sequences", None):
            raise ConfigurationError(
                f"Provider {provider.name} has fixed stop_sequences; the agent supplies its own"
            )
        self.provider = provider
        self.registry = ToolRegistry(tools, allowed=allowed_tools)
        self.prompt = PromptBuilder(self.registry.tools, prefix=prefix, suffix=suffix)
        self.max_iterations = max_iterations
        self.stream = stream
        self.on_token = on_token

    def run(self, input: str, cancel: Optional[threading.Event] = None) -> AgentResult:
        """Run the loop for ``input``.

        Malformed model output and tool failures become observations; only
        configuration and exhausted transport errors raise.
        """
        steps: List[AgentStep] = []
        logger.debug(f"Run started: {input[:80]!r}")

        try:
            for iteration in range(1, self.max_iterations + 1):
                self._check_cancel(cancel)
                prompt = self.prompt.render(input, steps)

                self._check_cancel(cancel)
                logger.debug(f"Iteration {iteration}/{self.max_iterations}: calling {self.provider.name}")
                response = self.provider.invoke(
                    prompt,
                    stop=STOP_SEQUENCES,
                    on_token=self.on_token,
                    stream=self.stream,
                    cancel=cancel,
                )
                text = response.text

                parsed = parse_agent_output(text)
                if isinstance(parsed, AgentFinish):
                    logger.debug(f"Finished after {iteration} iteration(s)")
                    return AgentResult(output=parsed.output, outcome=Outcome.FINISHED, steps=steps)

                if parsed is None:
                    logger.warning(f"Could not parse model output: {text[:100]!r}")
                    steps.append(AgentStep(
                        action=INVALID_FORMAT_ACTION,
                        action_input=text,
                        observation=INVALID_FORMAT,
                        log=text,
                    ))
                    continue

                observation = self.registry.dispatch(parsed.tool, parsed.tool_input)
                steps.append(AgentStep(
                    action=parsed.tool,
                    action_input=parsed.tool_input,
                    observation=observation,
                    log=parsed.log,
                ))
        except RunCancelled:
            logger.info(f"Run cancelled after {len(steps)} step(s)")
            return AgentResult(output=CANCELLED_OUTPUT, outcome=Outcome.CANCELLED, steps=steps)

        logger.warning(f"Iteration limit ({self.max_iterations}) reached without a final answer")
        return AgentResult(output=ITERATION_LIMIT_OUTPUT, outcome=Outcome.ITERATION_LIMIT_EXCEEDED, steps=steps)

    @staticmethod
    def _check_cancel(cancel: Optional[threading.Event]):
        if cancel is not None and cancel.is_set():
            raise RunCancelled("Run cancelled")
