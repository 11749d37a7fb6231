from __future__ import annotations

import contextlib
import hashlib
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Union

LOG = logging.getLogger("landgen.backup")

DEFAULT_BACKUP_SUFFIX = ".landgen-bak"
ABSENT_MARKER_SUFFIX = ".absent"
_CHUNK_SIZE = 1 << 16


class BackupConflictError(FileExistsError):
    """A backup from an earlier, unfinished session is still on disk."""


def atomic_write_bytes(path: Path, data: bytes, *, mode_from: Optional[Path] = None) -> None:
    """Write ``data`` to ``path`` through a sibling temp file and ``os.replace``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        if mode_from is None and path.exists():
            mode_from = path
        if mode_from is not None:
            shutil.copymode(mode_from, tmp)
        else:
            os.chmod(tmp, 0o666 & ~_current_umask())
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp)
        raise


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


def _atomic_copy(src: Path, dst: Path) -> None:
    atomic_write_bytes(dst, src.read_bytes(), mode_from=src)


def file_digest(path: Path) -> str:
    h = hashlib.md5()
    with path.open("rb") as f:
        for block in iter(lambda: f.read(_CHUNK_SIZE), b""):
            h.update(block)
    return h.hexdigest()


class BackupHandler:
    """Keeps a pristine copy of one file for the length of a session.

    ``backup()`` is idempotent until ``restore()`` or ``discard()`` runs.
    A file that did not exist at backup time is recorded with an empty
    marker next to it and is deleted again on restore.
    """

    def __init__(
        self,
        file: Union[str, Path],
        *,
        role: str = "",
        suffix: str = DEFAULT_BACKUP_SUFFIX,
        resume: bool = False,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.file = Path(file)
        self.role = role or self.file.name
        self.backup_file = self.file.with_name(self.file.name + suffix)
        self.absent_marker = self.file.with_name(self.file.name + suffix + ABSENT_MARKER_SUFFIX)
        self._log = log or LOG
        self._backed_up = False

        stale = [p for p in (self.backup_file, self.absent_marker) if p.exists()]
        if stale:
            if not resume:
                raise BackupConflictError(
                    f"Stale backup found for {self.role}: {stale[0]}. "
                    "Restore or discard it before starting a new session."
                )
            self._log.info("Resuming from existing backup %s", stale[0])
            self._backed_up = True

    @property
    def backed_up(self) -> bool:
        return self._backed_up

    @property
    def was_missing(self) -> bool:
        return self._backed_up and self.absent_marker.exists()

    def backup(self) -> None:
        if self._backed_up:
            return
        if not self.file.exists():
            self._log.debug("%s does not exist yet, restore will delete it", self.file)
            atomic_write_bytes(self.absent_marker, b"")
        else:
            self._log.info("Backing up %s to %s", self.file, self.backup_file)
            _atomic_copy(self.file, self.backup_file)
        self._backed_up = True

    def restore(self) -> None:
        if not self._backed_up:
            return
        if self.absent_marker.exists():
            self._log.info("Removing %s, it did not exist before this session", self.file)
            with contextlib.suppress(FileNotFoundError):
                self.file.unlink()
            self.absent_marker.unlink()
        else:
            self._log.info("Restoring %s from %s", self.file, self.backup_file)
            _atomic_copy(self.backup_file, self.file)
            self.backup_file.unlink()
        self._backed_up = False

    def discard(self) -> None:
        """Drop the backup and keep the current content of the file."""
        if not self._backed_up:
            return
        for p in (self.backup_file, self.absent_marker):
            with contextlib.suppress(FileNotFoundError):
                p.unlink()
        self._backed_up = False

    def is_modified(self) -> bool:
        if not self._backed_up:
            return False
        if self.absent_marker.exists():
            return self.file.exists()
        if not self.file.exists():
            return True
        return file_digest(self.file) != file_digest(self.backup_file)

    def __repr__(self) -> str:
        return f"BackupHandler({str(self.file)!r}, backed_up={self._backed_up})"
