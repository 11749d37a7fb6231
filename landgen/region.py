"""Anvil region header decoding: which of the 32x32 chunk slots hold data."""

from __future__ import annotations

import logging
import re
import struct
from pathlib import Path
from typing import Iterator, List, NamedTuple, Optional, Tuple

LOG = logging.getLogger("landgen.region")

SECTOR_BYTES = 4096
REGION_SIZE = 32
SLOT_COUNT = REGION_SIZE * REGION_SIZE
LOCATION_TABLE_BYTES = SLOT_COUNT * 4

_REGION_NAME_RE = re.compile(r"^r\.(-?\d+)\.(-?\d+)\.([A-Za-z0-9]+)$")


class ChunkPos(NamedTuple):
    x: int
    z: int


class RegionPos(NamedTuple):
    x: int
    z: int


def region_filename(region: Tuple[int, int], ext: str = "mca") -> str:
    rx, rz = region
    return f"r.{rx}.{rz}.{ext}"


def parse_region_filename(name: str) -> Tuple[RegionPos, str]:
    m = _REGION_NAME_RE.match(name)
    if not m:
        raise ValueError(f"not a region file name: {name!r}")
    return RegionPos(int(m.group(1)), int(m.group(2))), m.group(3)


def slot_index(local: Tuple[int, int]) -> int:
    x, z = local
    if not (0 <= x < REGION_SIZE and 0 <= z < REGION_SIZE):
        raise ValueError(f"local chunk coordinate out of range: {local}")
    return x + z * REGION_SIZE


def slot_coords(index: int) -> ChunkPos:
    if not 0 <= index < SLOT_COUNT:
        raise ValueError(f"slot index out of range: {index}")
    return ChunkPos(index % REGION_SIZE, index // REGION_SIZE)


def chunk_to_region(chunk: Tuple[int, int]) -> Tuple[RegionPos, ChunkPos]:
    """Split a world chunk coordinate into its region and the slot inside it."""
    cx, cz = chunk
    return RegionPos(cx >> 5, cz >> 5), ChunkPos(cx & 31, cz & 31)


def decode_header(header: bytes) -> Iterator[ChunkPos]:
    """Yield the local coordinates of every populated slot in a location table.

    Each entry is a big-endian u32: sector offset in the upper 24 bits and
    sector count in the low 8. An offset of 0 marks an empty slot.
    """
    if len(header) < LOCATION_TABLE_BYTES:
        return
    for i, entry in enumerate(struct.unpack(f">{SLOT_COUNT}I", header[:LOCATION_TABLE_BYTES])):
        if entry >> 8:
            yield slot_coords(i)


class RegionChunks:
    """Re-iterable view of the populated slots of one region file.

    The header is read on first iteration. A missing, short or unreadable
    file yields nothing; read failures are reported to ``log`` as warnings.
    """

    def __init__(self, path: Path, *, log: Optional[logging.Logger] = None) -> None:
        self.path = path
        self._log = log or LOG
        self._header: Optional[bytes] = None

    def _load(self) -> bytes:
        if self._header is None:
            self._header = self._read_header()
        return self._header

    def _read_header(self) -> bytes:
        if not self.path.exists():
            return b""
        try:
            with self.path.open("rb") as f:
                return f.read(LOCATION_TABLE_BYTES)
        except OSError as exc:
            self._log.warning("Could not open region file %s, assuming it contains no chunks: %s", self.path, exc)
            return b""

    def __iter__(self) -> Iterator[ChunkPos]:
        return decode_header(self._load())

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __contains__(self, local: object) -> bool:
        try:
            idx = slot_index(local)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return False
        header = self._load()
        if len(header) < LOCATION_TABLE_BYTES:
            return False
        (entry,) = struct.unpack_from(">I", header, idx * 4)
        return bool(entry >> 8)

    def to_list(self) -> List[ChunkPos]:
        return list(self)

    def __repr__(self) -> str:
        return f"RegionChunks({str(self.path)!r})"
