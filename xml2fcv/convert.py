#!/usr/bin/env python3
"""
convert.py — Camera XML → .fcv.xfbin

Entry point for the conversion pipeline:

    XML text → frame timeline → fcv curve chunks → XFBIN pages → file

A timeline written with --dump-timeline (and possibly hand-edited) can be
encoded instead of an XML file with --from-timeline.

The run is all-or-nothing: any read, parse or data error stops the
conversion before the output file is written.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from xml2fcv.curves import build_curve_pages
from xml2fcv.errors import ReasonCodes, TimelineParseError, UsageError, Xml2FcvError
from xml2fcv.timeline import Frame, extract_frame_timeline
from xml2fcv.timeline_json import (
    frames_from_json,
    loads_timeline_json,
    timeline_to_json,
    write_timeline_json,
)
from xml2fcv.xfbin import Xfbin, write_xfbin

logger = logging.getLogger(__name__)

OUTPUT_SUFFIX = ".fcv.xfbin"


def _read_input(path: str) -> str:
    src = Path(path)
    if not src.is_file():
        raise UsageError(f"Input file not found: {path}", ReasonCodes.INPUT_NOT_FOUND)

    logger.info(f"Reading {src}")
    try:
        return src.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as e:
        raise TimelineParseError(f"{src} is not UTF-8 text: {e}", ReasonCodes.NOT_UTF8) from e
    except OSError as e:
        raise UsageError(f"Cannot read {src}: {e}", ReasonCodes.INPUT_UNREADABLE) from e


def _write_curves(frames: List[Frame], basename: str, out_path: Optional[str]) -> Path:
    xfbin = Xfbin(pages=build_curve_pages(frames, basename))
    out = out_path or f"{basename}{OUTPUT_SUFFIX}"
    try:
        return write_xfbin(xfbin, out)
    except OSError as e:
        raise UsageError(f"Cannot write {out}: {e}", ReasonCodes.OUTPUT_UNWRITABLE) from e


def convert_xml_text(xml_text: str, basename: str) -> Xfbin:
    """Run extraction and curve encoding on an in-memory document."""
    frames = extract_frame_timeline(xml_text)
    return Xfbin(pages=build_curve_pages(frames, basename))


def convert_xml_file(
    xml_path: str,
    out_path: Optional[str] = None,
    dump_timeline: Optional[str] = None,
) -> Path:
    """
    Convert a camera XML file to an fcv XFBIN.

    Args:
        xml_path: Input path, must end in .xml
        out_path: Output path (default: <stem>.fcv.xfbin in the working directory)
        dump_timeline: Optional path for the extracted timeline as JSON

    Returns:
        Path of the written XFBIN

    Raises:
        UsageError: If the input is not a readable .xml file, or the output
            cannot be written
        TimelineParseError / TimelineStructureError: If the XML cannot be read
        CurveDataError: If a used value cannot be parsed
    """
    if not xml_path.endswith(".xml"):
        raise UsageError(f"File is not an xml file: {xml_path}")

    xml_text = _read_input(xml_path)
    frames = extract_frame_timeline(xml_text)

    src_name = Path(xml_path).name
    if dump_timeline:
        try:
            write_timeline_json(timeline_to_json(frames, source=src_name), dump_timeline)
        except OSError as e:
            raise UsageError(f"Cannot write {dump_timeline}: {e}", ReasonCodes.OUTPUT_UNWRITABLE) from e
        logger.info(f"Timeline JSON written to {dump_timeline}")

    return _write_curves(frames, Path(xml_path).stem, out_path)


def convert_timeline_file(json_path: str, out_path: Optional[str] = None) -> Path:
    """
    Encode curves from a timeline JSON file.

    Chunk names come from the JSON's "source" (the XML it was dumped from),
    so an unedited dump converts to the same bytes as the XML itself.

    Raises:
        UsageError: If the input cannot be read or the output written
        TimelineSchemaError: If the JSON is invalid or breaks the schema
        CurveDataError: If a used value cannot be parsed
    """
    data = loads_timeline_json(_read_input(json_path))
    frames = frames_from_json(data)
    logger.info(f"Loaded {len(frames)} frames from {json_path}")

    basename = Path(data.get("source") or json_path).stem
    return _write_curves(frames, basename, out_path)


def _cli(argv: Optional[list] = None) -> int:
    """CLI harness for converting camera XML to .fcv.xfbin."""
    parser = argparse.ArgumentParser(
        description="Convert camera post-process XML to an fcv XFBIN."
    )
    parser.add_argument("xml", nargs="?", help="Path to camera XML file (.xml)")
    parser.add_argument("-o", "--out", help=f"Output path (default: <name>{OUTPUT_SUFFIX})")
    parser.add_argument("--dump-timeline", metavar="JSON", help="Also write the extracted timeline as JSON")
    parser.add_argument(
        "--from-timeline",
        metavar="JSON",
        help="Encode curves from a timeline JSON (as written by --dump-timeline) instead of XML",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    if args.from_timeline:
        if args.xml or args.dump_timeline:
            parser.error("--from-timeline cannot be combined with an xml file or --dump-timeline")
    elif args.xml is None:
        parser.error("the following arguments are required: xml")
    elif not args.xml.endswith(".xml"):
        parser.error(f"File is not an xml file: {args.xml}")

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.INFO)

    try:
        if args.from_timeline:
            out = convert_timeline_file(args.from_timeline, args.out)
        else:
            out = convert_xml_file(args.xml, args.out, args.dump_timeline)
    except Xml2FcvError as e:
        logger.error(f"Failed: {e}")
        raise SystemExit(1) from e

    logger.info(f"Converted {args.from_timeline or args.xml} -> {out}")
    return 0


if __name__ == "__main__":
    raise SystemExit(_cli())
