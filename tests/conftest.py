from __future__ import annotations

import struct
import sys
from pathlib import Path
from typing import Dict, Iterable, Tuple

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from landgen import nbt  # noqa: E402


def level_tree(**data_overrides: nbt.Tag) -> nbt.Tag:
    data: Dict[str, nbt.Tag] = {
        "DataVersion": nbt.int_tag(3955),
        "LevelName": nbt.string_tag("Test World"),
        "SpawnX": nbt.int_tag(0),
        "SpawnY": nbt.int_tag(0),
        "SpawnZ": nbt.int_tag(0),
        "SpawnAngle": nbt.Tag(nbt.TAG_FLOAT, 0.5),
        "Time": nbt.long_tag(123456789),
        "hardcore": nbt.byte_tag(0),
        "ServerBrands": nbt.Tag(nbt.TAG_LIST, (nbt.string_tag("vanilla"),), nbt.TAG_STRING),
    }
    data.update(data_overrides)
    return nbt.compound_tag({"Data": nbt.compound_tag(data)})


def write_level(world: Path, tree: nbt.Tag, *, gzipped: bool = True) -> Path:
    path = world / "level.dat"
    path.write_bytes(nbt.dumps(nbt.NBTRoot("", tree, gzipped)))
    return path


def region_bytes(populated: Iterable[Tuple[int, int]], *, sectors: int = 2) -> bytes:
    entries = [0] * 1024
    for n, (x, z) in enumerate(populated):
        entries[x + z * 32] = ((n + 2) << 8) | 1
    return struct.pack(">1024I", *entries) + b"\x00" * 4096 * (sectors - 1)


@pytest.fixture()
def world(tmp_path: Path) -> Path:
    root = tmp_path / "world"
    root.mkdir()
    write_level(root, level_tree())
    return root
