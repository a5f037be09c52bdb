"""Filesystem access used by checkout.

:class:`FileSystem` is the local-disk implementation. Anything passed to
:class:`~gitcheckout.repo.Repo` as ``fs`` only needs the same methods.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from dulwich.file import GitFile

from .objects import hash_file


class FileSystem:
    """Thin wrapper over :mod:`os` with git-checkout friendly semantics."""

    def read(self, path: str) -> bytes:
        with open(path, "rb") as f:
            return f.read()

    def write(self, path: str, data: bytes, *, mode: int | None = None) -> None:
        """Write *data* to *path*, creating parent directories.

        Whatever currently occupies *path* (file, symlink or directory)
        is removed first. *mode*, when given, is applied with ``chmod``.
        """
        out = Path(path)
        self._clear(out)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_bytes(data)
        if mode is not None:
            os.chmod(path, mode)

    def write_locked(self, path: str, data: bytes) -> None:
        """Replace *path* with *data* through git's ``<path>.lock`` protocol.

        Raises :class:`dulwich.file.FileLocked` if the lock file already
        exists; the existing lock is left alone.
        """
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with GitFile(path, "wb") as f:
            f.write(data)

    def writelink(self, path: str, target: bytes | str) -> None:
        """Create a symlink at *path* pointing to *target*."""
        if isinstance(target, bytes):
            target = os.fsdecode(target)
        out = Path(path)
        self._clear(out)
        out.parent.mkdir(parents=True, exist_ok=True)
        os.symlink(target, path)

    def readlink(self, path: str) -> str:
        return os.readlink(path)

    def rm(self, path: str, *, missing_ok: bool = False) -> None:
        try:
            os.unlink(path)
        except FileNotFoundError:
            if not missing_ok:
                raise

    def rmdir(self, path: str) -> None:
        os.rmdir(path)

    def mkdir(self, path: str) -> None:
        os.makedirs(path, exist_ok=True)

    def lstat(self, path: str) -> os.stat_result:
        return os.lstat(path)

    def readdir(self, path: str) -> list[str]:
        return os.listdir(path)

    def exists(self, path: str) -> bool:
        return os.path.lexists(path)

    def hash_blob(self, path: str) -> str:
        """Git blob id of the file (or symlink target) at *path*."""
        return hash_file(path)

    def _clear(self, out: Path) -> None:
        if out.is_dir() and not out.is_symlink():
            shutil.rmtree(out)
        elif out.is_symlink() or out.exists():
            out.unlink()


def prune_empty_parents(fs: FileSystem, path: str, stop_at: str) -> None:
    """Remove now-empty directories above *path*, up to (not including) *stop_at*."""
    stop = os.path.abspath(stop_at)
    parent = os.path.dirname(os.path.abspath(path))
    while parent != stop and parent.startswith(stop + os.sep):
        try:
            if fs.readdir(parent):
                return
            fs.rmdir(parent)
        except OSError:
            return
        parent = os.path.dirname(parent)
