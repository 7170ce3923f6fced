# Skills module
# Each skill is a set of tools the agent can call

from .shapes import DRAWING_TOOL_NAMES, CommandCanvas, DrawCommand, build_drawing_tools

__all__ = ["DRAWING_TOOL_NAMES", "CommandCanvas", "DrawCommand", "build_drawing_tools"]
