#!/usr/bin/env python3
"""
timeline_json.py — Frame Timeline <-> JSON

Writes an extracted timeline as JSON so it can be inspected or hand-edited,
and reads such a file back into frames for curve encoding.

Key principles:
- Field values stay strings, exactly as extraction keeps them; numbers are
  only checked when curves are encoded
- JSON input is checked against a draft-07 schema before any frame is built
- Record lists and record fields may be omitted ([] and "" respectively,
  same as a missing XML attribute)
"""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from jsonschema.validators import Draft7Validator

from xml2fcv.errors import ReasonCodes, TimelineSchemaError
from xml2fcv.timeline import PARAM_ELEMENTS, Frame


def _record_schema(field_names: Sequence[str]) -> Dict[str, Any]:
    return {
        "type": "array",
        "items": {
            "type": "object",
            "properties": {name: {"type": "string"} for name in field_names},
            "additionalProperties": False,
        },
    }


def get_timeline_json_schema() -> Dict[str, Any]:
    """Return JSON Schema (draft-07) for timeline JSON."""
    frame_props: Dict[str, Any] = {"no": {"type": "string"}}
    for _, frame_attr, attr_map in PARAM_ELEMENTS.values():
        frame_props[frame_attr] = _record_schema(list(attr_map.values()))

    return {
        "type": "object",
        "properties": {
            "source": {"type": "string"},
            "frames": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": frame_props,
                    "required": ["no"],
                    "additionalProperties": False,
                },
            },
        },
        "required": ["frames"],
        "additionalProperties": False,
    }


def timeline_to_json(frames: Sequence[Frame], source: Optional[str] = None) -> Dict[str, Any]:
    data: Dict[str, Any] = {"frames": [asdict(frame) for frame in frames]}
    if source is not None:
        data["source"] = source
    return data


def frames_from_json(data: Any) -> List[Frame]:
    """
    Build the frame timeline from parsed timeline JSON.

    Raises:
        TimelineSchemaError: If `data` does not match the timeline schema;
            the message lists every violation with its JSON path
    """
    validator = Draft7Validator(get_timeline_json_schema())
    violations = sorted(
        validator.iter_errors(data),
        key=lambda err: [str(p) for p in err.absolute_path],
    )
    if violations:
        details = "; ".join(
            f"{'/'.join(str(p) for p in err.absolute_path) or '<root>'}: {err.message}"
            for err in violations
        )
        raise TimelineSchemaError(f"Invalid timeline JSON: {details}")

    frames = []
    for item in data["frames"]:
        frame = Frame(no=item["no"])
        for record_type, frame_attr, _ in PARAM_ELEMENTS.values():
            records = [record_type(**rec) for rec in item.get(frame_attr, [])]
            setattr(frame, frame_attr, records)
        frames.append(frame)
    return frames


def loads_timeline_json(text: str) -> Dict[str, Any]:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise TimelineSchemaError(f"Not JSON: {e}", ReasonCodes.TIMELINE_NOT_JSON) from e


def write_timeline_json(data: Dict[str, Any], output_path: str) -> None:
    Path(output_path).write_text(json.dumps(data, indent=2), encoding="utf-8")
