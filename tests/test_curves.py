from __future__ import annotations

import pytest

from xml2fcv.curves import (
    build_curve_pages,
    create_bcadjustments_fcv,
    create_bright_rate_fcv,
    create_dof_fcv,
    create_glare_fcv,
    create_softfocus_fcv,
    create_zrange_fcv,
    format_field,
    format_fixed,
    frame_key,
)
from xml2fcv.errors import CurveDataError, ReasonCodes
from xml2fcv.timeline import DepthOfField, Frame, GenericParam, Glare, SoftFocus

HEADER = "FCURVE_INTERPOLATION_CONSTRAINT,\r\n"


def _names(pages) -> list[str]:
    return [page.structs[0].struct_info.chunk_name for page in pages]


# --------------------------- formatting ---------------------------


@pytest.mark.parametrize(
    "value, expected",
    [
        (1.5, "1.500000"),
        (123456789.25, "123456789.250000"),
        (0.0, "0.000000"),
        (-0.5, "-0.500000"),
        (float("inf"), "inf00000"),
        (float("nan"), "NaN00000"),
    ],
)
def test_format_fixed(value: float, expected: str) -> None:
    assert format_fixed(value) == expected


@pytest.mark.parametrize(
    "text, expected",
    [
        ("0.8", "0.800000"),
        (".5", "0.500000"),
        ("+2", "2.000000"),
        ("1e3", "1000.000000"),
        ("123456789.25", "123456792.000000"),  # binary32 rounding
        ("1e39", "inf00000"),
        ("-1e-50", "-0.000000"),
        ("16777217", "16777216.000000"),  # tie, rounds to even
        ("16777217.000000001", "16777218.000000"),  # just above the tie
        ("340282356779733661637539395458142568448", "inf00000"),  # halfway past the largest binary32
        ("340282356779733661637539395458142568447", "340282346638528859811704183484516925440.000000"),
    ],
)
def test_format_field_parses_binary32(text: str, expected: str) -> None:
    assert format_field(text) == expected


@pytest.mark.parametrize("text", ["", "abc", " 1", "1 ", "1_0", "0x10", "1,5"])
def test_format_field_rejects_non_numbers(text: str) -> None:
    with pytest.raises(CurveDataError) as exc:
        format_field(text)
    assert exc.value.code == ReasonCodes.INVALID_FLOAT


@pytest.mark.parametrize("no, key", [("250", 2), ("99", 0), ("0", 0), ("100", 1), ("+1000", 10), ("4294967295", 42949672)])
def test_frame_key_rescales_by_100(no: str, key: int) -> None:
    assert frame_key(no) == key


@pytest.mark.parametrize("no", ["", "-1", "1.5", "4294967296", " 100", "1_000"])
def test_frame_key_rejects_non_u32(no: str) -> None:
    with pytest.raises(CurveDataError) as exc:
        frame_key(no)
    assert exc.value.code == ReasonCodes.INVALID_FRAME_INDEX


# --------------------------- emitters ---------------------------


def test_glare_uses_first_record_only() -> None:
    frames = [
        Frame(no="250", p_glare=[Glare("0.5", "1", "2"), Glare("9", "9", "9")]),
        Frame(no="300"),
    ]
    chunk = create_glare_fcv(frames, "cam")
    assert chunk.data == (
        b"FCURVE_TYPE_GLARE,\r\n" + HEADER.encode() + b"1,\r\n"
        b"2,0.500000,1.000000,2.000000,\r\n"
    )


def test_chunk_descriptor() -> None:
    chunk = create_softfocus_fcv([Frame(no="0", p_softfocus=[SoftFocus("1")])], "ev01")
    assert chunk.struct_info.chunk_name == "ev01_softfocus"
    assert chunk.struct_info.chunk_type == "nuccChunkBinary"
    assert chunk.struct_info.filepath == "Z:/anm/ev01/fcv/ev01_softfocus.fcv"
    assert chunk.version == 121


def test_dof_record_layout() -> None:
    frames = [Frame(no="1200", p_dof=[DepthOfField("120", "10", "500", "0.5", "2")])]
    chunk = create_dof_fcv(frames, "cam")
    assert chunk.data.decode().endswith("12,120.000000,10.000000,500.000000,0.500000,2.000000,\r\n")


def test_bright_rate_end_to_end_payload() -> None:
    frames = [Frame(no="100", p_gp=[GenericParam("bgbout", "0.75,ignored")])]
    chunk = create_bright_rate_fcv(frames, "cam")
    assert chunk.data == (
        b"FCURVE_TYPE_BRIGHT_RATE,\r\nFCURVE_INTERPOLATION_CONSTRAINT,\r\n1,\r\n1,0.750000,\r\n"
    )


def test_bright_rate_needs_exact_name() -> None:
    frames = [Frame(no="100", p_gp=[GenericParam("bgbout2", "1"), GenericParam("BGBOUT", "1")])]
    assert create_bright_rate_fcv(frames, "cam") is None


def test_bright_rate_counts_only_bgbout_frames() -> None:
    frames = [
        Frame(no="0", p_gp=[GenericParam("fade", "1")]),
        Frame(no="100", p_gp=[GenericParam("fade", "x"), GenericParam("bgbout", "2"), GenericParam("bgbout", "3")]),
    ]
    data = create_bright_rate_fcv(frames, "cam").data.decode()
    assert data.split("\r\n")[2] == "1,"
    assert data.endswith("1,2.000000,\r\n")


def test_data_curves_absent_without_qualifying_frames() -> None:
    frames = [Frame(no="0", p_gp=[GenericParam("fade", "1")])]
    assert create_glare_fcv(frames, "cam") is None
    assert create_softfocus_fcv(frames, "cam") is None
    assert create_dof_fcv(frames, "cam") is None
    assert create_bright_rate_fcv(frames, "cam") is None


def test_constant_curves() -> None:
    assert create_zrange_fcv([], "cam").data == (
        b"FCURVE_TYPE_ZRANGE,\r\n" + HEADER.encode() + b"1,\r\n1,1.000000,9000000.000000\r\n"
    )
    assert create_bcadjustments_fcv([], "cam").data == (
        b"FCURVE_TYPE_BCADJUSTMENTS,\r\n" + HEADER.encode() + b"1,\r\n0,0.00000,1.250000\r\n"
    )


def test_missing_attribute_fails_at_encode_time() -> None:
    frames = [Frame(no="0", p_glare=[Glare("0.5", "", "1")])]
    with pytest.raises(CurveDataError):
        create_glare_fcv(frames, "cam")


def test_unparsable_index_fails_only_for_used_frames() -> None:
    frames = [Frame(no="", p_softfocus=[SoftFocus("1")])]
    with pytest.raises(CurveDataError):
        create_softfocus_fcv(frames, "cam")
    assert create_glare_fcv(frames, "cam") is None


# --------------------------- pages ---------------------------


def test_zero_frames_give_two_constant_pages() -> None:
    pages = build_curve_pages([], "cam")
    assert _names(pages) == ["cam_zrange", "cam_bcadjustments"]


def test_page_order_and_one_chunk_per_page() -> None:
    frames = [
        Frame(no="0", p_gp=[GenericParam("bgbout", "1")], p_dof=[DepthOfField("1", "1", "1", "1", "1")]),
        Frame(no="100", p_softfocus=[SoftFocus("1")], p_glare=[Glare("1", "1", "1")]),
    ]
    pages = build_curve_pages(frames, "cam")
    assert all(len(page.structs) == 1 for page in pages)
    assert _names(pages) == [
        "cam_glare",
        "cam_softfocus",
        "cam_dof",
        "cam_bright_rate",
        "cam_zrange",
        "cam_bcadjustments",
    ]


def test_data_error_aborts_page_build() -> None:
    frames = [Frame(no="0", p_dof=[DepthOfField("x", "1", "1", "1", "1")])]
    with pytest.raises(CurveDataError):
        build_curve_pages(frames, "cam")
