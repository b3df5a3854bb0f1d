#!/usr/bin/env python3
"""
xfbin.py — Minimal XFBIN (NUCC) container writer

Holds an ordered list of pages, each with one or more chunk structs, and
serializes them to the big-endian NUCC layout:

    file header   "NUCC", version, padding, chunk table size, min page size
    chunk table   counts/sizes, type/path/name string tables (NUL-terminated,
                  4-byte aligned), chunk maps, page-local map indices
    pages         nuccChunkNull, the page's chunks, nuccChunkPage

Only writing is supported; chunk payloads are opaque bytes.
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Tuple, Union

logger = logging.getLogger(__name__)

NUCC_MAGIC = b"NUCC"
NUCC_VERSION = 121
MIN_PAGE_SIZE = 3

CHUNK_NULL = "nuccChunkNull"
CHUNK_PAGE = "nuccChunkPage"
CHUNK_BINARY = "nuccChunkBinary"


@dataclass
class NuccStructInfo:
    chunk_name: str
    chunk_type: str
    filepath: str

    def as_map(self) -> Tuple[str, str, str]:
        return (self.chunk_type, self.filepath, self.chunk_name)


@dataclass
class NuccBinary:
    """Opaque binary chunk (nuccChunkBinary)."""

    CHUNK_TYPE = CHUNK_BINARY

    struct_info: NuccStructInfo
    version: int = NUCC_VERSION
    data: bytes = b""

    def payload(self) -> bytes:
        return self.data


@dataclass
class XfbinPage:
    structs: List[NuccBinary] = field(default_factory=list)


@dataclass
class Xfbin:
    pages: List[XfbinPage] = field(default_factory=list)

    def to_bytes(self) -> bytes:
        return _XfbinWriter(self).build()


def _pack_strings(strings: List[str]) -> bytes:
    return b"".join(s.encode("utf-8") + b"\x00" for s in strings)


def _chunk(data: bytes, map_index: int, version: int) -> bytes:
    return struct.pack(">IIHH", len(data), map_index, version, 0) + data


class _XfbinWriter:
    def __init__(self, xfbin: Xfbin):
        self.xfbin = xfbin
        self.types: List[str] = []
        self.paths: List[str] = []
        self.names: List[str] = []
        self.maps: List[Tuple[int, int, int]] = []
        self.map_lookup: Dict[Tuple[str, str, str], int] = {}
        self.map_indices: List[int] = []

    def _intern(self, table: List[str], value: str) -> int:
        if value not in table:
            table.append(value)
        return table.index(value)

    def _map(self, chunk_type: str, filepath: str, name: str) -> int:
        key = (chunk_type, filepath, name)
        if key not in self.map_lookup:
            self.map_lookup[key] = len(self.maps)
            self.maps.append((
                self._intern(self.types, chunk_type),
                self._intern(self.paths, filepath),
                self._intern(self.names, name),
            ))
        return self.map_lookup[key]

    def _page_bytes(self, page: XfbinPage) -> bytes:
        # Page-local map list: null, each struct, then the page chunk
        local: List[int] = [self._map(CHUNK_NULL, "", "")]
        body = _chunk(b"", 0, NUCC_VERSION)

        for nucc_struct in page.structs:
            local.append(self._map(*nucc_struct.struct_info.as_map()))
            body += _chunk(nucc_struct.payload(), len(local) - 1, nucc_struct.version)

        page_path = page.structs[0].struct_info.filepath if page.structs else ""
        local.append(self._map(CHUNK_PAGE, page_path, "Page0"))
        body += _chunk(struct.pack(">II", len(local), 0), len(local) - 1, NUCC_VERSION)

        self.map_indices.extend(local)
        return body

    def _chunk_table(self) -> bytes:
        type_bytes = _pack_strings(self.types)
        path_bytes = _pack_strings(self.paths)
        name_bytes = _pack_strings(self.names)

        table = struct.pack(
            ">10I",
            len(self.types), len(type_bytes),
            len(self.paths), len(path_bytes),
            len(self.names), len(name_bytes),
            len(self.maps), len(self.maps) * 12,
            len(self.map_indices), 0,
        )
        table += type_bytes + path_bytes + name_bytes
        table += b"\x00" * (-len(table) % 4)
        for m in self.maps:
            table += struct.pack(">III", *m)
        for index in self.map_indices:
            table += struct.pack(">I", index)
        return table

    def build(self) -> bytes:
        pages = b"".join(self._page_bytes(page) for page in self.xfbin.pages)
        table = self._chunk_table()
        header = NUCC_MAGIC + struct.pack(
            ">I8xIIHH", NUCC_VERSION, len(table), MIN_PAGE_SIZE, NUCC_VERSION, 0
        )
        return header + table + pages


def write_xfbin(xfbin: Xfbin, path: Union[str, Path]) -> Path:
    """Serialize `xfbin` and write it to `path`."""
    out = Path(path)
    data = xfbin.to_bytes()
    out.write_bytes(data)
    logger.info(f"Wrote {len(xfbin.pages)} pages ({len(data)} bytes) to {out}")
    return out
