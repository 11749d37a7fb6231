from __future__ import annotations

import logging
from typing import List, Optional

from .region import ChunkPos

LOG = logging.getLogger("landgen.grid")


def linear_spawnpoints(start: int, length: int, max_step: int) -> List[int]:
    """Evenly spaced points from ``start`` to ``start + length``, at most ``max_step`` apart.

    Uses ``ceil(length / max_step)`` intervals; each point is rounded to the
    nearest integer (halves round up) so the last one lands on ``start + length``.
    """
    if max_step <= 0:
        raise ValueError(f"Step must be positive, got {max_step}")
    if length < 0:
        raise ValueError(f"Length must not be negative, got {length}")
    steps = -(-length // max_step)
    if steps == 0:
        return [start]
    # round(length * k / steps) in integer arithmetic.
    return [start + (2 * length * k + steps) // (2 * steps) for k in range(steps + 1)]


def generate_spawnpoints(
    start_x: int,
    start_z: int,
    width: int,
    height: int,
    increment: int = 25,
    *,
    log: Optional[logging.Logger] = None,
) -> List[ChunkPos]:
    """Grid of chunk coordinates whose spawn areas cover a rectangle of chunks.

    ``increment`` is the largest allowed distance between two neighbouring
    points. The server generates 25 chunks around each spawn point, so 25 is
    the natural choice; odd values keep the grid centred.
    """
    log = log or LOG
    if increment <= 0:
        raise ValueError(f"Increment must be positive, got {increment}")
    if width < increment or height < increment:
        raise ValueError(
            f"Width and height must both be at least {increment}, but are {width} and {height}"
        )
    margin = increment // 2
    x_points = linear_spawnpoints(start_x + margin, width - increment, increment)
    log.debug("X grid: %s", x_points)
    z_points = linear_spawnpoints(start_z + margin, height - increment, increment)
    log.debug("Z grid: %s", z_points)
    return [ChunkPos(x, z) for x in x_points for z in z_points]
