"""Reversible edits of Minecraft world folders for pre-generation runs."""

from .backup import BackupConflictError, BackupHandler
from .grid import generate_spawnpoints, linear_spawnpoints
from .region import ChunkPos, RegionChunks, RegionPos
from .settings import SessionSettings
from .world import (
    DIMENSION_PATHS,
    Dimension,
    RestoreError,
    SpawnPoint,
    WorldFormatError,
    WorldSession,
    pack_chunk,
    unpack_chunk,
)

__version__ = "0.1.0"

__all__ = [
    "BackupConflictError",
    "BackupHandler",
    "ChunkPos",
    "DIMENSION_PATHS",
    "Dimension",
    "RegionChunks",
    "RegionPos",
    "RestoreError",
    "SessionSettings",
    "SpawnPoint",
    "WorldFormatError",
    "WorldSession",
    "generate_spawnpoints",
    "linear_spawnpoints",
    "pack_chunk",
    "unpack_chunk",
]
