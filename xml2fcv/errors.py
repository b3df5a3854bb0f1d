"""
Error types for the xml2fcv pipeline.

Every failure is fatal: the converter is single-shot and never recovers,
so each error carries a reason code that the CLI reports before exiting.
"""

from __future__ import annotations

from typing import Optional


class ReasonCodes:
    """Reason codes for conversion failures."""

    # Input / usage
    NOT_AN_XML_FILE = "FCV-USAGE-001"
    INPUT_NOT_FOUND = "FCV-USAGE-002"
    INPUT_UNREADABLE = "FCV-USAGE-003"
    OUTPUT_UNWRITABLE = "FCV-USAGE-004"

    # Extraction
    MALFORMED_XML = "FCV-PARSE-001"
    PARAM_OUTSIDE_FRAME = "FCV-PARSE-002"
    NOT_UTF8 = "FCV-PARSE-003"

    # Encoding
    INVALID_FLOAT = "FCV-DATA-001"
    INVALID_FRAME_INDEX = "FCV-DATA-002"

    # Timeline JSON
    TIMELINE_SCHEMA = "FCV-SCHEMA-001"
    TIMELINE_NOT_JSON = "FCV-SCHEMA-002"


class Xml2FcvError(ValueError):
    """Base class for all conversion errors."""

    code = "FCV-ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        if code is not None:
            self.code = code

    def __str__(self) -> str:
        return f"[{self.code}] {super().__str__()}"


class UsageError(Xml2FcvError):
    code = ReasonCodes.NOT_AN_XML_FILE


class TimelineParseError(Xml2FcvError):
    code = ReasonCodes.MALFORMED_XML


class TimelineStructureError(Xml2FcvError):
    code = ReasonCodes.PARAM_OUTSIDE_FRAME


class CurveDataError(Xml2FcvError):
    code = ReasonCodes.INVALID_FLOAT


class TimelineSchemaError(Xml2FcvError):
    code = ReasonCodes.TIMELINE_SCHEMA
