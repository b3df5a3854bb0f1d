#!/usr/bin/env python3
"""
curves.py — Frame Timeline → fcv Curve Chunks

Builds one nuccChunkBinary per curve kind from the extracted timeline.

Payload layout (CRLF line endings, trailing comma on every data line):

    FCURVE_TYPE_<KIND>,
    FCURVE_INTERPOLATION_CONSTRAINT,
    <record count>,
    <frame no // 100>,<field>,...,<field>,

Key principles:
- A data-driven curve is emitted only if at least one frame qualifies
  (absence, never an empty curve)
- Only the first record of a kind per frame is used
- Numbers are parsed as binary32 and written with 6 decimals
- Any unparsable number or frame index aborts the whole conversion
"""

from __future__ import annotations

import logging
import math
import re
import struct
from decimal import Decimal
from fractions import Fraction
from typing import Callable, List, Optional, Sequence

from xml2fcv.errors import CurveDataError, ReasonCodes
from xml2fcv.timeline import Frame
from xml2fcv.xfbin import NuccBinary, NuccStructInfo, XfbinPage

logger = logging.getLogger(__name__)

FCV_VERSION = 121
INTERPOLATION = "FCURVE_INTERPOLATION_CONSTRAINT"
BRIGHT_RATE_PARAM = "bgbout"

ZRANGE_RECORD = "1,1.000000,9000000.000000"
BCADJUSTMENTS_RECORD = "0,0.00000,1.250000"

_FLOAT_RE = re.compile(
    r"[+-]?(?:inf|infinity|nan|(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:e[+-]?[0-9]+)?)",
    re.IGNORECASE,
)
_UINT_RE = re.compile(r"\+?[0-9]+")
_U32_MAX = 0xFFFFFFFF

_F32_MAX_BITS = 0x7F7FFFFF
# Halfway between the largest binary32 and 2**128; at or above rounds to inf
_F32_OVERFLOW = Fraction(2**128 - 2**103)


# --------------------------- Field formatting ---------------------------


def _f32_bits(value: float) -> int:
    return struct.unpack(">I", struct.pack(">f", value))[0]


def _f32_from_bits(bits: int) -> float:
    return struct.unpack(">f", struct.pack(">I", bits))[0]


def parse_float32(text: str) -> float:
    """
    Parse `text` as an IEEE-754 binary32 value (returned as a Python float).

    The decimal is rounded once, straight to the nearest binary32 (ties to
    even); going through a double first would round twice.
    """
    if not _FLOAT_RE.fullmatch(text):
        raise CurveDataError(
            f"Not a floating point number: {text!r}", ReasonCodes.INVALID_FLOAT
        )
    negative = text.startswith("-")
    if text.lstrip("+-").lower() in ("inf", "infinity", "nan"):
        return float(text)

    dec = Decimal(text)
    if dec.is_zero() or dec.adjusted() < -46:
        return -0.0 if negative else 0.0
    if dec.adjusted() > 38:
        return -math.inf if negative else math.inf

    exact = abs(Fraction(dec))
    if exact >= _F32_OVERFLOW:
        return -math.inf if negative else math.inf

    # The double approximation lands within one binary32 step of the answer
    bits = _f32_bits(float(exact))
    candidates = [b for b in (bits - 1, bits, bits + 1) if 0 <= b <= _F32_MAX_BITS]
    best = min(
        candidates,
        key=lambda b: (abs(Fraction(_f32_from_bits(b)) - exact), b & 1),
    )
    value = _f32_from_bits(best)
    return -value if negative else value


def format_fixed(value: float) -> str:
    """6 decimals, right-padded with '0' to at least 8 characters."""
    if math.isnan(value):
        return "NaN".ljust(8, "0")
    return f"{value:.6f}".ljust(8, "0")


def format_field(text: str) -> str:
    return format_fixed(parse_float32(text))


def frame_key(no: str) -> int:
    """Rescale a hundredths frame counter to a curve key frame."""
    if not _UINT_RE.fullmatch(no) or int(no) > _U32_MAX:
        raise CurveDataError(
            f"Frame index is not an unsigned 32-bit integer: {no!r}",
            ReasonCodes.INVALID_FRAME_INDEX,
        )
    return int(no) // 100


def format_record(no: str, fields: Sequence[str]) -> str:
    parts = [str(frame_key(no))] + [format_field(f) for f in fields]
    return ",".join(parts) + ",\r\n"


def curve_header(kind: str, count: int) -> str:
    return f"{kind},\r\n{INTERPOLATION},\r\n{count},\r\n"


# --------------------------- Chunk construction ---------------------------


def make_fcv_chunk(basename: str, suffix: str, data: str) -> NuccBinary:
    """Wrap one curve payload as a nuccChunkBinary."""
    struct_info = NuccStructInfo(
        chunk_name=f"{basename}_{suffix}",
        chunk_type=NuccBinary.CHUNK_TYPE,
        filepath=f"Z:/anm/{basename}/fcv/{basename}_{suffix}.fcv",
    )
    return NuccBinary(struct_info=struct_info, version=FCV_VERSION, data=data.encode("utf-8"))


def _encode_curve(
    kind: str,
    suffix: str,
    frames: Sequence[Frame],
    select: Callable[[Frame], Optional[List[str]]],
    basename: str,
) -> Optional[NuccBinary]:
    rows = []
    for frame in frames:
        fields = select(frame)
        if fields is not None:
            rows.append((frame.no, fields))

    if not rows:
        logger.debug(f"{kind}: no qualifying frames, skipped")
        return None

    data = curve_header(kind, len(rows))
    for no, fields in rows:
        data += format_record(no, fields)

    logger.info(f"{basename}_{suffix}: {len(rows)} records")
    return make_fcv_chunk(basename, suffix, data)


def create_glare_fcv(frames: Sequence[Frame], basename: str) -> Optional[NuccBinary]:
    def select(frame: Frame) -> Optional[List[str]]:
        if not frame.p_glare:
            return None
        g = frame.p_glare[0]
        return [g.threshold, g.subtraction_color, g.composition_intensity]

    return _encode_curve("FCURVE_TYPE_GLARE", "glare", frames, select, basename)


def create_softfocus_fcv(frames: Sequence[Frame], basename: str) -> Optional[NuccBinary]:
    def select(frame: Frame) -> Optional[List[str]]:
        if not frame.p_softfocus:
            return None
        return [frame.p_softfocus[0].intensity]

    return _encode_curve("FCURVE_TYPE_SOFTFOCUS", "softfocus", frames, select, basename)


def create_dof_fcv(frames: Sequence[Frame], basename: str) -> Optional[NuccBinary]:
    def select(frame: Frame) -> Optional[List[str]]:
        if not frame.p_dof:
            return None
        d = frame.p_dof[0]
        return [d.focus_distance, d.near_distance, d.far_distance, d.blur_max_far, d.blur_edge]

    return _encode_curve("FCURVE_TYPE_DOF", "dof", frames, select, basename)


def create_bright_rate_fcv(frames: Sequence[Frame], basename: str) -> Optional[NuccBinary]:
    """Brightness rate comes from the first `bgbout` gp; only its first comma field is used."""

    def select(frame: Frame) -> Optional[List[str]]:
        for gp in frame.p_gp:
            if gp.name == BRIGHT_RATE_PARAM:
                return [gp.value.split(",")[0]]
        return None

    return _encode_curve("FCURVE_TYPE_BRIGHT_RATE", "bright_rate", frames, select, basename)


def create_zrange_fcv(frames: Sequence[Frame], basename: str) -> Optional[NuccBinary]:
    data = curve_header("FCURVE_TYPE_ZRANGE", 1) + ZRANGE_RECORD + "\r\n"
    return make_fcv_chunk(basename, "zrange", data)


def create_bcadjustments_fcv(frames: Sequence[Frame], basename: str) -> Optional[NuccBinary]:
    data = curve_header("FCURVE_TYPE_BCADJUSTMENTS", 1) + BCADJUSTMENTS_RECORD + "\r\n"
    return make_fcv_chunk(basename, "bcadjustments", data)


# Page order in the output container
CURVE_EMITTERS = (
    create_glare_fcv,
    create_softfocus_fcv,
    create_dof_fcv,
    create_bright_rate_fcv,
    create_zrange_fcv,
    create_bcadjustments_fcv,
)


def build_curve_pages(frames: Sequence[Frame], basename: str) -> List[XfbinPage]:
    """
    Run every curve emitter over the timeline and wrap each chunk in its own page.

    Args:
        frames: Extracted timeline (read only)
        basename: Input file stem, used for chunk names and paths

    Returns:
        Pages in the order glare, softfocus, dof, bright_rate, zrange,
        bcadjustments, skipping data curves with no qualifying frame

    Raises:
        CurveDataError: If any used number or frame index cannot be parsed
    """
    pages = []
    for emit in CURVE_EMITTERS:
        chunk = emit(frames, basename)
        if chunk is not None:
            pages.append(XfbinPage(structs=[chunk]))
    return pages
