#!/usr/bin/env python3
"""
timeline.py — Camera XML → Frame Timeline

Scans a camera post-process XML document and returns the ordered list of
frames with their parameter records.

Key principles:
- Single forward scan over the start/end event stream
- Scope tracked with three nested flags (frame > setting > param), not a
  tag stack; the XML parser itself rejects overlapping or mismatched tags
- <setting>/<param> blocks outside a frame are ignored
- Permissive extraction: every attribute is kept as the raw string, missing
  attributes become "" and are only checked when a curve is encoded
- Timeline order is document order; frame numbers are never sorted or
  de-duplicated
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Dict, List

from xml2fcv.errors import TimelineParseError, TimelineStructureError

logger = logging.getLogger(__name__)


@dataclass
class GenericParam:
    name: str = ""
    value: str = ""


@dataclass
class Glare:
    threshold: str = ""
    subtraction_color: str = ""
    composition_intensity: str = ""


@dataclass
class SoftFocus:
    intensity: str = ""


@dataclass
class DepthOfField:
    focus_distance: str = ""
    near_distance: str = ""
    far_distance: str = ""
    blur_max_far: str = ""
    blur_edge: str = ""


@dataclass
class Frame:
    """One <frame> of the timeline. Duplicate records are kept in order."""

    no: str = ""
    p_gp: List[GenericParam] = field(default_factory=list)
    p_glare: List[Glare] = field(default_factory=list)
    p_softfocus: List[SoftFocus] = field(default_factory=list)
    p_dof: List[DepthOfField] = field(default_factory=list)


# element tag -> (record type, Frame attribute, {xml attribute: record field})
PARAM_ELEMENTS: Dict[str, tuple] = {
    "p_gp": (GenericParam, "p_gp", {
        "name": "name",
        "value": "value",
    }),
    "p_glare": (Glare, "p_glare", {
        "threshold": "threshold",
        "subtractionColor": "subtraction_color",
        "compositionIntensity": "composition_intensity",
    }),
    "p_softfocus": (SoftFocus, "p_softfocus", {
        "intensity": "intensity",
    }),
    "p_dof": (DepthOfField, "p_dof", {
        "focusDistance": "focus_distance",
        "nearDistance": "near_distance",
        "farDistance": "far_distance",
        "blurMaxFar": "blur_max_far",
        "blurEdge": "blur_edge",
    }),
}


def _decode_record(tag: str, attrib: Dict[str, str]):
    """Build the typed record for a parameter element from its attributes."""
    record_type, _, attr_map = PARAM_ELEMENTS[tag]
    record = record_type()
    for xml_name, field_name in attr_map.items():
        if xml_name in attrib:
            setattr(record, field_name, attrib[xml_name])
    return record


def extract_frame_timeline(xml_text: str) -> List[Frame]:
    """
    Extract the per-frame parameter timeline from camera XML.

    A Frame is appended the moment a <frame> start tag is seen. A <setting>
    only opens a scope inside a frame, and a <param> only inside a setting.
    Parameter elements (p_gp, p_glare, p_softfocus, p_dof) are only read
    inside that <param> scope and are attached to the most recently opened
    frame. Both <p_x/> and <p_x></p_x> forms are read.

    Args:
        xml_text: Whole XML document as text

    Returns:
        Frames in document order

    Raises:
        TimelineParseError: If the document is not well-formed XML
        TimelineStructureError: If a parameter element is read before any
            frame exists
    """
    parser = ET.XMLPullParser(events=("start", "end"))

    inside_frame = False
    inside_setting = False
    inside_param = False
    frames: List[Frame] = []

    try:
        parser.feed(xml_text)
        parser.close()
    except ET.ParseError as e:
        raise TimelineParseError(f"Malformed XML: {e}") from e

    for event, elem in parser.read_events():
        tag = elem.tag

        if event == "start":
            if tag == "frame":
                inside_frame = True
                frames.append(Frame(no=elem.get("no", "")))
                logger.debug(f"Frame #{len(frames)} no={frames[-1].no!r}")
            elif tag == "setting" and inside_frame:
                inside_setting = True
            elif tag == "param" and inside_setting:
                inside_param = True
            elif tag in PARAM_ELEMENTS and inside_param:
                if not frames:
                    raise TimelineStructureError(
                        f"<{tag}> found outside of any <frame> "
                        f"(setting={inside_setting}, param={inside_param})"
                    )
                record = _decode_record(tag, elem.attrib)
                getattr(frames[-1], PARAM_ELEMENTS[tag][1]).append(record)
                logger.debug(f"  {tag}: {record}")

        else:
            if tag == "param":
                inside_param = False
            elif tag == "setting":
                inside_setting = False
            elif tag == "frame":
                inside_frame = False

    logger.info(f"Extracted {len(frames)} frames")
    return frames
