"""A world folder opened for reversible modification.

Every file touched through :class:`WorldSession` is backed up first, so
``reset_changes()`` brings the world back to the state it had when the
session was opened.
"""

from __future__ import annotations

import enum
import logging
from pathlib import Path
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple, Union

from . import nbt
from .backup import BackupHandler, atomic_write_bytes
from .grid import generate_spawnpoints
from .region import ChunkPos, RegionChunks, RegionPos, region_filename
from .settings import SessionSettings

LOG = logging.getLogger("landgen.world")

LEVEL_FILE = "level.dat"
FORCED_CHUNKS_FILE = Path("data") / "chunks.dat"
SPAWN_PATH = ("Data",)
SPAWN_Y = 64
_I32_MIN = -(1 << 31)
_I32_MAX = (1 << 31) - 1


class Dimension(enum.Enum):
    OVERWORLD = "overworld"
    NETHER = "nether"
    END = "end"


DIMENSION_PATHS: Dict[Dimension, Path] = {
    Dimension.OVERWORLD: Path("."),
    Dimension.NETHER: Path("DIM-1"),
    Dimension.END: Path("DIM1"),
}


class SpawnPoint(NamedTuple):
    x: int
    y: int
    z: int


class WorldFormatError(RuntimeError):
    """Raised when level.dat does not have the expected layout."""


class RestoreError(RuntimeError):
    def __init__(self, failures: Sequence[Tuple[Path, BaseException]]) -> None:
        self.failures = list(failures)
        details = "; ".join(f"{path}: {exc}" for path, exc in self.failures)
        super().__init__(f"Failed to restore {len(self.failures)} file(s): {details}")


def pack_chunk(chunk: Tuple[int, int]) -> int:
    # z in the high half, x in the low half.
    x, z = chunk
    if not (_I32_MIN <= x <= _I32_MAX and _I32_MIN <= z <= _I32_MAX):
        raise ValueError(f"chunk coordinate does not fit in 32 bits: {chunk}")
    return (z << 32) | (x & 0xFFFFFFFF)


def unpack_chunk(value: int) -> ChunkPos:
    x = value & 0xFFFFFFFF
    if x >= 1 << 31:
        x -= 1 << 32
    return ChunkPos(x, value >> 32)


def spawn_in_chunk(chunk: Tuple[int, int]) -> SpawnPoint:
    cx, cz = chunk
    return SpawnPoint(cx * 16 + 7, SPAWN_Y, cz * 16 + 8)


class WorldSession:
    def __init__(
        self,
        world: Union[str, Path],
        settings: Optional[SessionSettings] = None,
        *,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.world = Path(world)
        self.settings = settings or SessionSettings()
        self._log = log or LOG

        def handler(path: Path, role: str) -> BackupHandler:
            return BackupHandler(
                path,
                role=role,
                suffix=self.settings.backup_suffix,
                resume=self.settings.resume,
                log=self._log,
            )

        self.level = handler(self.world / LEVEL_FILE, "level")
        self.chunks: Dict[Dimension, BackupHandler] = {
            dim: handler(self.dimension_path(dim) / FORCED_CHUNKS_FILE, f"{dim.value} forced chunks")
            for dim in Dimension
        }

    def __enter__(self) -> "WorldSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self.settings.reset_on_exit:
            self.reset_changes()

    @property
    def tracked(self) -> List[BackupHandler]:
        return [self.level, *self.chunks.values()]

    def dimension_path(self, dimension: Dimension) -> Path:
        return self.world / DIMENSION_PATHS[dimension]

    def reset_changes(self) -> None:
        """Restore every tracked file, then report all failures together."""
        failures: List[Tuple[Path, BaseException]] = []
        for handler in self.tracked:
            try:
                handler.restore()
            except OSError as exc:
                self._log.error("Could not restore %s: %s", handler.file, exc)
                failures.append((handler.file, exc))
        if failures:
            raise RestoreError(failures)

    def commit(self) -> None:
        """Keep all changes and delete the backups."""
        for handler in self.tracked:
            handler.discard()

    def set_forced_chunks(self, chunks: Iterable[Tuple[int, int]], dimension: Dimension = Dimension.OVERWORLD) -> None:
        forced = nbt.long_array_tag(pack_chunk(c) for c in chunks)
        handler = self.chunks[dimension]
        handler.backup()
        self._log.debug("Forcing %d chunks in %s", len(forced.value), dimension.value)
        root = nbt.NBTRoot(
            name="",
            tag=nbt.compound_tag({"data": nbt.compound_tag({"Forced": forced})}),
        )
        atomic_write_bytes(handler.file, nbt.dumps(root))

    def forced_chunks(self, dimension: Dimension = Dimension.OVERWORLD) -> List[ChunkPos]:
        path = self.chunks[dimension].file
        if not path.exists():
            return []
        root = self._read(path)
        try:
            data = nbt.get_path(root.tag, ("data",))
        except nbt.MalformedTreeError as exc:
            raise WorldFormatError(f"Invalid forced chunks format in {path}: {exc}") from exc
        forced = data.value.get("Forced")
        if forced is None:
            return []
        if forced.type != nbt.TAG_LONG_ARRAY:
            raise WorldFormatError(f"Invalid forced chunks format in {path}: Forced is not a long array")
        return [unpack_chunk(v) for v in forced.value]

    def set_spawn(self, point: Union[ChunkPos, SpawnPoint, Tuple[int, ...]]) -> SpawnPoint:
        """Move the world spawn to a block position, or into a chunk for 2D input."""
        if len(point) == 2:
            xyz = spawn_in_chunk(point)  # type: ignore[arg-type]
        else:
            xyz = SpawnPoint(*point)
        self._log.debug("Setting spawn to %s", xyz)
        path = self.level.file
        root = self._read(path)
        updates = {
            "SpawnX": nbt.int_tag(xyz.x),
            "SpawnY": nbt.int_tag(xyz.y),
            "SpawnZ": nbt.int_tag(xyz.z),
        }
        try:
            tag = nbt.with_updated_leaves(root.tag, SPAWN_PATH, updates)
        except nbt.MalformedTreeError as exc:
            raise WorldFormatError(f"Invalid level format in {path}: {exc}") from exc
        self.level.backup()
        atomic_write_bytes(path, nbt.dumps(nbt.NBTRoot(root.name, tag, root.gzipped)))
        return xyz

    def spawn(self) -> SpawnPoint:
        path = self.level.file
        root = self._read(path)
        try:
            data = nbt.get_path(root.tag, SPAWN_PATH)
        except nbt.MalformedTreeError as exc:
            raise WorldFormatError(f"Invalid level format in {path}: {exc}") from exc
        coords = [data.value.get(k) for k in ("SpawnX", "SpawnY", "SpawnZ")]
        if any(c is None or c.type != nbt.TAG_INT for c in coords):
            raise WorldFormatError(f"Invalid level format in {path}: missing SpawnX/SpawnY/SpawnZ")
        return SpawnPoint(*(c.value for c in coords))

    def region_path(self, region: Tuple[int, int], dimension: Dimension = Dimension.OVERWORLD) -> Path:
        return self.dimension_path(dimension) / "region" / region_filename(region, self.settings.region_ext)

    def available_chunks(
        self, region: Tuple[int, int], dimension: Dimension = Dimension.OVERWORLD
    ) -> RegionChunks:
        """Populated chunk slots of a region file, relative to the region's origin."""
        return RegionChunks(self.region_path(RegionPos(*region), dimension), log=self._log)

    def available_chunks_at(
        self, region_x: int, region_z: int, dimension: Dimension = Dimension.OVERWORLD
    ) -> List[ChunkPos]:
        return self.available_chunks(RegionPos(region_x, region_z), dimension).to_list()

    @staticmethod
    def generate_spawnpoints(
        start_x: int, start_z: int, width: int, height: int, increment: int = 25
    ) -> List[ChunkPos]:
        return generate_spawnpoints(start_x, start_z, width, height, increment)

    def _read(self, path: Path) -> nbt.NBTRoot:
        with path.open("rb") as f:
            try:
                return nbt.read_root(f)
            except nbt.NBTError as exc:
                raise WorldFormatError(f"Invalid NBT in {path}: {exc}") from exc
