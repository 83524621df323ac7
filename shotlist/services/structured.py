"""JSON schemas sent with structured-output requests and strict parsing of the replies.

Parsers never raise on bad model output: they return a failed ``Outcome``
carrying a message that names the offending field.
"""
from __future__ import annotations

import json
import math
from typing import Any, Callable, Dict, List, Optional, TypeVar

from shotlist.types import (
    CharacterDescription,
    Outcome,
    ProductDescription,
    ScriptAnalysisResult,
    ShotDescription,
)

T = TypeVar("T")

SHOT_FIELDS = ["shot_number", "shot_type", "description", "camera_angle", "lens", "movement"]

_NAMED_ITEM_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "description": {"type": "string"},
    },
    "required": ["name", "description"],
    "additionalProperties": False,
}

SHOT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "shot_number": {"type": "integer"},
        "shot_type": {"type": "string"},
        "description": {"type": "string"},
        "camera_angle": {"type": "string"},
        "lens": {"type": "string"},
        "movement": {"type": "string"},
    },
    "required": SHOT_FIELDS,
    "additionalProperties": False,
}

ANALYSIS_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "character_descriptions": {"type": "array", "items": _NAMED_ITEM_SCHEMA},
        "product_descriptions": {"type": "array", "items": _NAMED_ITEM_SCHEMA},
        "shot_list": {"type": "array", "items": SHOT_SCHEMA},
    },
    "required": ["character_descriptions", "product_descriptions", "shot_list"],
    "additionalProperties": False,
}


def response_format(name: str, schema: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": "json_schema",
        "json_schema": {"name": name, "strict": True, "schema": schema},
    }


class _ShapeError(ValueError):
    pass


def _strip_code_fence(text: str) -> str:
    # Some providers wrap JSON mode output in ```json fences.
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


def _require_str(item: Dict[str, Any], key: str, where: str) -> str:
    if key not in item:
        raise _ShapeError(f"{where}: missing required field '{key}'")
    value = item[key]
    if not isinstance(value, str):
        raise _ShapeError(f"{where}: field '{key}' must be a string")
    return value


def _require_object(value: Any, where: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise _ShapeError(f"{where}: expected an object")
    return value


def _require_list(data: Dict[str, Any], key: str) -> List[Any]:
    if key not in data:
        raise _ShapeError(f"missing required field '{key}'")
    value = data[key]
    if not isinstance(value, list):
        raise _ShapeError(f"field '{key}' must be an array")
    return value


def _shot_from_obj(obj: Any, where: str, require_positive: bool = True) -> ShotDescription:
    item = _require_object(obj, where)
    if "shot_number" not in item:
        raise _ShapeError(f"{where}: missing required field 'shot_number'")
    number = item["shot_number"]
    # JSON numbers may arrive as 3.0; booleans are ints in Python and are rejected.
    if isinstance(number, bool) or not isinstance(number, (int, float)):
        raise _ShapeError(f"{where}: field 'shot_number' must be an integer")
    if isinstance(number, float) and (not math.isfinite(number) or not number.is_integer()):
        raise _ShapeError(f"{where}: field 'shot_number' must be an integer")
    if require_positive and number < 1:
        raise _ShapeError(f"{where}: field 'shot_number' must be positive")
    return ShotDescription(
        shot_number=int(number),
        shot_type=_require_str(item, "shot_type", where),
        description=_require_str(item, "description", where),
        camera_angle=_require_str(item, "camera_angle", where),
        lens=_require_str(item, "lens", where),
        movement=_require_str(item, "movement", where),
    )


def _parse(text: Optional[str], build: Callable[[Any], T], label: str) -> Outcome[T]:
    if not text or not text.strip():
        return Outcome.failure(f"{label}: model returned an empty response")
    try:
        data = json.loads(_strip_code_fence(text))
    except json.JSONDecodeError as e:
        return Outcome.failure(f"{label}: response is not valid JSON ({e})")
    try:
        return Outcome.success(build(data))
    except _ShapeError as e:
        return Outcome.failure(f"{label}: {e}")


def _named_items(obj: Dict[str, Any], key: str, cls: Callable[..., T]) -> List[T]:
    items: List[T] = []
    for i, raw in enumerate(_require_list(obj, key)):
        where = f"{key}[{i}]"
        item = _require_object(raw, where)
        items.append(cls(name=_require_str(item, "name", where), description=_require_str(item, "description", where)))
    return items


def _build_analysis(data: Any) -> ScriptAnalysisResult:
    obj = _require_object(data, "analysis")
    characters = _named_items(obj, "character_descriptions", CharacterDescription)
    products = _named_items(obj, "product_descriptions", ProductDescription)
    shots = [_shot_from_obj(s, f"shot_list[{i}]") for i, s in enumerate(_require_list(obj, "shot_list"))]
    return ScriptAnalysisResult(
        character_descriptions=characters,
        product_descriptions=products,
        shot_list=shots,
    )


def parse_analysis_output(text: Optional[str]) -> Outcome[ScriptAnalysisResult]:
    return _parse(text, _build_analysis, "Script analysis")


def parse_shot_output(text: Optional[str]) -> Outcome[ShotDescription]:
    return _parse(text, lambda data: _shot_from_obj(data, "shot", require_positive=False), "Next shot")
