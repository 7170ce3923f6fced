"""
Lenient parsing of tool arguments into shape parameters.

Models write arguments like ``x:10, y:20, radius:5`` or
``{x:1,y:1,width:4,height:2},{x:9,y:9,width:1,height:1}``: object-literal
bodies with bare keys and no enclosing array. The text is wrapped in ``[...]``
(a lone ``key:value`` body is first wrapped in ``{...}``), bare keys are
quoted, and the result is parsed as JSON.

Known limitation: the key-quoting pass does not track string state, so a
colon inside a quoted value (``label:"a:b"``) is mis-repaired and the parse
fails. A tokenizer that tracks quotes would close that gap.
"""

import json
import re
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Mapping, Optional

INVALID_ARG = "invalid arg"

_BARE_KEY = re.compile(r"(\w+)(\s*:\s*)")
_STARTS_WITH_KEY = re.compile(r"^\s*\"?\w+\"?\s*:")

SHAPE_FIELDS = ("x", "y", "radius", "radiusX", "radiusY", "width", "height", "x1", "y1", "x2", "y2")


@dataclass
class ShapeParams:
    """Parameters for one shape. Unset fields stay None."""
    x: Optional[float] = None
    y: Optional[float] = None
    radius: Optional[float] = None
    radiusX: Optional[float] = None
    radiusY: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None
    x1: Optional[float] = None
    y1: Optional[float] = None
    x2: Optional[float] = None
    y2: Optional[float] = None
    extras: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ShapeParams":
        """Build from a parsed object, keeping unknown keys in ``extras``.

        A nested ``points`` object holding ``x1, y1, x2, y2`` is flattened.
        """
        values: Dict[str, Any] = {}
        extras: Dict[str, Any] = {}
        for key, value in data.items():
            if key in SHAPE_FIELDS:
                values[key] = value
            elif key == "points" and isinstance(value, Mapping):
                for point_key, point_value in value.items():
                    if point_key in SHAPE_FIELDS and point_key not in values:
                        values[point_key] = point_value
                    else:
                        extras.setdefault("points", {})[point_key] = point_value
            else:
                extras[key] = value
        return cls(extras=extras, **values)

    def as_dict(self) -> Dict[str, Any]:
        """Only the fields that were set."""
        out = {f.name: getattr(self, f.name) for f in fields(self) if f.name != "extras"}
        out = {k: v for k, v in out.items() if v is not None}
        out.update(self.extras)
        return out


def quote_bare_keys(text: str) -> str:
    """Put double quotes around every identifier followed by a colon."""
    return _BARE_KEY.sub(r'"\1"\2', text)


def parse_tool_input(raw: str) -> Optional[List[Any]]:
    """Parse tool-argument text into a list of records.

    Returns None when the text is empty or cannot be parsed. A parse that is
    not a list of objects is returned unchanged; checking values is up to the
    handler.
    """
    if raw is None or not raw.strip():
        return None
    body = raw.strip()
    # A lone key/value body such as "x:1, y:2" is one object
    if _STARTS_WITH_KEY.match(body):
        body = "{" + body + "}"
    try:
        data = json.loads(quote_bare_keys(f"[{body}]"))
    except (json.JSONDecodeError, ValueError):
        return None
    return data


def to_shape_params(records: List[Any]) -> List[Any]:
    """Convert parsed objects to ShapeParams; other elements pass through."""
    return [ShapeParams.from_mapping(r) if isinstance(r, dict) else r for r in records]
