"""Command line entry point for reversible world edits.

Examples:
  landgen spawn --world ./data/world --chunk 3 5
  landgen forceload --world ./data/world --dimension nether 0,0 1,0 -1,2
  landgen chunks --world ./data/world 0 -1
  landgen grid -100 -100 200 200 --increment 25
  landgen reset --world ./data/world
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from pydantic import ValidationError

from .backup import BackupConflictError
from .region import ChunkPos, RegionPos
from .settings import SessionSettings
from .world import Dimension, RestoreError, SpawnPoint, WorldFormatError, WorldSession

LOG = logging.getLogger("landgen")


def _parse_chunk(raw: str) -> ChunkPos:
    try:
        x, z = (int(part) for part in raw.split(","))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected X,Z chunk coordinates, got {raw!r}") from exc
    return ChunkPos(x, z)


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="landgen", description="Reversible edits of a Minecraft world folder.")
    sub = ap.add_subparsers(dest="command", required=True)

    def world_cmd(name: str, help_text: str) -> argparse.ArgumentParser:
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--world", required=True, help="World folder (contains level.dat)")
        p.add_argument("--resume", action="store_true", help="Adopt backups left by an earlier session")
        return p

    p = world_cmd("spawn", "Move the world spawn")
    where = p.add_mutually_exclusive_group(required=True)
    where.add_argument("--chunk", nargs=2, type=int, metavar=("X", "Z"), help="Chunk to spawn in")
    where.add_argument("--block", nargs=3, type=int, metavar=("X", "Y", "Z"), help="Exact block position")

    p = world_cmd("forceload", "Replace the force-loaded chunks of a dimension")
    p.add_argument("--dimension", choices=[d.value for d in Dimension], default=Dimension.OVERWORLD.value)
    p.add_argument("chunks", nargs="*", type=_parse_chunk, metavar="X,Z")

    p = world_cmd("chunks", "List populated chunks of a region file")
    p.add_argument("--dimension", choices=[d.value for d in Dimension], default=Dimension.OVERWORLD.value)
    p.add_argument("region_x", type=int)
    p.add_argument("region_z", type=int)

    world_cmd("reset", "Restore every file backed up by an earlier session")
    world_cmd("commit", "Keep the changes of an earlier session and drop its backups")

    p = sub.add_parser("grid", help="Print spawn points covering a rectangle of chunks")
    p.add_argument("start_x", type=int)
    p.add_argument("start_z", type=int)
    p.add_argument("width", type=int)
    p.add_argument("height", type=int)
    p.add_argument("--increment", type=int, default=25, help="Max chunks between spawn points (default: 25)")
    return ap


def _run(args: argparse.Namespace, settings: SessionSettings) -> int:
    LOG.debug("Running %s with %s", args.command, settings)
    if args.command == "grid":
        for pos in WorldSession.generate_spawnpoints(args.start_x, args.start_z, args.width, args.height, args.increment):
            print(f"{pos.x} {pos.z}")
        return 0

    world = Path(args.world)
    if not world.is_dir():
        print(f"Missing world folder: {world}", file=sys.stderr)
        return 2

    # Only spawn and forceload start new backups.
    resume = args.resume or args.command in {"chunks", "reset", "commit"}
    session = WorldSession(world, settings.model_copy(update={"resume": resume}))

    if args.command == "spawn":
        point = ChunkPos(*args.chunk) if args.chunk else SpawnPoint(*args.block)
        xyz = session.set_spawn(point)
        print(f"spawn: {xyz.x} {xyz.y} {xyz.z}")
    elif args.command == "forceload":
        session.set_forced_chunks(args.chunks, Dimension(args.dimension))
        print(f"forced: {len(args.chunks)}")
    elif args.command == "chunks":
        region = RegionPos(args.region_x, args.region_z)
        for pos in session.available_chunks(region, Dimension(args.dimension)):
            print(f"{pos.x} {pos.z}")
    elif args.command == "reset":
        session.reset_changes()
    elif args.command == "commit":
        session.commit()
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(list(argv) if argv is not None else None)
    try:
        settings = SessionSettings.from_env()
    except ValidationError as exc:
        print(f"ERROR: invalid LANDGEN_* environment: {exc}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    try:
        return _run(args, settings)
    except ValueError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2
    except BackupConflictError as exc:
        print(f"ERROR: {exc} (use --resume to continue that session)", file=sys.stderr)
        return 1
    except (WorldFormatError, RestoreError, OSError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
