"""
Drawing tools - circle, rectangle, line, ellipse and clear.

Handlers record draw commands on a canvas object and describe what they did.
Anything with a ``draw(shape, params)`` and ``clear()`` method can stand in
for the CommandCanvas, e.g. a bridge to a real renderer.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

from ..core.params import ShapeParams
from ..core.tools import Tool

# Fields each shape needs to be drawable
REQUIRED_FIELDS = {
    "circle": ("x", "y", "radius"),
    "rect": ("x", "y", "width", "height"),
    "line": ("x1", "y1", "x2", "y2"),
    "ellipse": ("x", "y", "radiusX", "radiusY"),
}


@dataclass
class DrawCommand:
    """A single recorded draw call."""
    shape: str
    params: Dict[str, Any]


class CommandCanvas:
    """In-memory canvas that keeps the list of draw commands."""

    def __init__(self):
        self.commands: List[DrawCommand] = []

    def draw(self, shape: str, params: ShapeParams):
        self.commands.append(DrawCommand(shape=shape, params=params.as_dict()))

    def clear(self):
        self.commands = []

    def to_list(self) -> List[Dict[str, Any]]:
        return [{"shape": c.shape, **c.params} for c in self.commands]


def _missing(params: ShapeParams, shape: str) -> List[str]:
    return [name for name in REQUIRED_FIELDS[shape] if getattr(params, name) is None]


def _draw_all(canvas, shape: str, records: Sequence[Any]) -> str:
    """Draw every usable record and report the rest."""
    drawn = 0
    problems = []
    for index, record in enumerate(records):
        if not isinstance(record, ShapeParams):
            problems.append(f"item {index + 1} is not an object")
            continue
        missing = _missing(record, shape)
        if missing:
            problems.append(f"item {index + 1} missing {', '.join(missing)}")
            continue
        canvas.draw(shape, record)
        drawn += 1

    if not records:
        return f"No {shape} given"
    result = f"Drew {drawn} {shape}{'s' if drawn != 1 else ''}"
    if problems:
        result += f"; skipped: {'; '.join(problems)}"
    return result


def build_drawing_tools(canvas) -> List[Tool]:
    """Create the five drawing tools bound to ``canvas``."""

    def draw_circle(records):
        return _draw_all(canvas, "circle", records)

    def draw_rect(records):
        return _draw_all(canvas, "rect", records)

    def draw_line(records):
        return _draw_all(canvas, "line", records)

    def draw_ellipse(records):
        return _draw_all(canvas, "ellipse", records)

    def clear(records):
        canvas.clear()
        return "Canvas cleared"

    return [
        Tool(
            name="drawCircle",
            description="Draw one or more circles. Input: x, y (center) and radius, e.g. x:100, y:100, radius:50",
            handler=draw_circle,
        ),
        Tool(
            name="drawRect",
            description="Draw one or more rectangles. Input: x, y (top-left corner), width and height, "
                        "e.g. x:10, y:10, width:80, height:40",
            handler=draw_rect,
        ),
        Tool(
            name="drawLine",
            description="Draw one or more straight lines from (x1, y1) to (x2, y2), "
                        "e.g. x1:0, y1:0, x2:100, y2:100",
            handler=draw_line,
        ),
        Tool(
            name="drawEllipse",
            description="Draw one or more ellipses. Input: x, y (center), radiusX and radiusY, "
                        "e.g. x:100, y:80, radiusX:60, radiusY:30",
            handler=draw_ellipse,
        ),
        Tool(
            name="Clear",
            description="Remove everything from the canvas. Input: {}",
            handler=clear,
        ),
    ]


DRAWING_TOOL_NAMES = ["drawCircle", "drawRect", "drawLine", "drawEllipse", "Clear"]
