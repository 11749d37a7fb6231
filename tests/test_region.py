from __future__ import annotations

import logging
import struct
from pathlib import Path

import pytest

from conftest import region_bytes
from landgen.region import (
    ChunkPos,
    RegionChunks,
    RegionPos,
    chunk_to_region,
    decode_header,
    parse_region_filename,
    region_filename,
    slot_coords,
    slot_index,
)


def test_single_entry_header_reports_one_slot():
    entries = [0] * 1024
    entries[1] = 0x00000105
    header = struct.pack(">1024I", *entries)
    assert list(decode_header(header)) == [(1, 0)]


def test_sector_count_alone_does_not_mark_slot():
    entries = [0] * 1024
    entries[5] = 0x000000FF
    assert list(decode_header(struct.pack(">1024I", *entries))) == []


def test_short_header_yields_nothing():
    assert list(decode_header(b"\x00\x00\x01\x01" * 10)) == []


def test_slot_mapping_is_row_major_by_z():
    assert slot_index((31, 0)) == 31
    assert slot_index((0, 1)) == 32
    assert slot_coords(1023) == ChunkPos(31, 31)
    for i in (0, 1, 33, 500, 1023):
        assert slot_index(slot_coords(i)) == i


@pytest.mark.parametrize("bad", [(32, 0), (0, -1), (-1, 5)])
def test_slot_index_rejects_out_of_range(bad):
    with pytest.raises(ValueError):
        slot_index(bad)


def test_region_filename_roundtrip():
    assert region_filename((-1, 2)) == "r.-1.2.mca"
    assert parse_region_filename("r.-1.2.mca") == (RegionPos(-1, 2), "mca")
    with pytest.raises(ValueError):
        parse_region_filename("r.1.mca")


def test_chunk_to_region_handles_negative_chunks():
    assert chunk_to_region((-1, 33)) == (RegionPos(-1, 1), ChunkPos(31, 1))
    assert chunk_to_region((0, 0)) == (RegionPos(0, 0), ChunkPos(0, 0))


def test_region_chunks_reads_file_and_is_restartable(tmp_path: Path):
    path = tmp_path / "r.0.0.mca"
    path.write_bytes(region_bytes([(0, 0), (3, 4), (31, 31)]))
    chunks = RegionChunks(path)

    first = list(chunks)
    second = list(chunks)
    assert first == second == [ChunkPos(0, 0), ChunkPos(3, 4), ChunkPos(31, 31)]
    assert len(chunks) == 3
    assert (3, 4) in chunks
    assert (4, 3) not in chunks
    assert "nope" not in chunks


def test_missing_region_file_is_empty(tmp_path: Path):
    assert list(RegionChunks(tmp_path / "r.9.9.mca")) == []


def test_truncated_region_file_is_empty(tmp_path: Path):
    path = tmp_path / "r.0.0.mca"
    path.write_bytes(b"\x00\x00\x02\x01" * 100)
    assert RegionChunks(path).to_list() == []


def test_unreadable_region_is_a_warning(tmp_path: Path, caplog: pytest.LogCaptureFixture):
    # A directory where the file should be makes open() fail.
    path = tmp_path / "r.0.0.mca"
    path.mkdir()
    sink = logging.getLogger("test.region")
    with caplog.at_level(logging.WARNING, logger="test.region"):
        assert list(RegionChunks(path, log=sink)) == []
    assert any("assuming it contains no chunks" in r.getMessage() for r in caplog.records)
