"""Staging index and its scoped, exclusive lock.

All access to the on-disk index goes through :class:`IndexManager`::

    manager = IndexManager(gitdir)
    with manager.locked() as index:
        index.insert("a.txt", oid, os.lstat(path))

The index is read when the lock is taken and written back when the block
exits normally. The lock is released on every exit path.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import NamedTuple, TypeVar

from dulwich.index import ConflictedIndexEntry, Index, IndexEntry, index_entry_from_stat

from ._lock import GitdirLock

T = TypeVar("T")


class IndexRecord(NamedTuple):
    """One path in the staging index."""

    path: str
    oid: str
    mode: int
    stat: IndexEntry


def _unconflicted(entry: IndexEntry | ConflictedIndexEntry) -> IndexEntry | None:
    if isinstance(entry, ConflictedIndexEntry):
        return entry.this or entry.other or entry.ancestor
    return entry


class StagingIndex:
    """Unique-by-path, path-ordered collection of index entries.

    Serialized in git's binary index format by :mod:`dulwich.index`.
    """

    def __init__(self, path: str | os.PathLike[str]):
        self.path = os.fspath(path)
        self._index = Index(self.path, read=True)

    def __repr__(self) -> str:
        return f"StagingIndex({self.path!r}, len={len(self)})"

    def __len__(self) -> int:
        return len(self._index)

    def __contains__(self, path: str) -> bool:
        return os.fsencode(path) in self._index

    def __iter__(self) -> Iterator[str]:
        for name in sorted(self._index.paths()):
            yield os.fsdecode(name)

    def get(self, path: str) -> IndexRecord | None:
        try:
            raw = self._index[os.fsencode(path)]
        except KeyError:
            return None
        entry = _unconflicted(raw)
        if entry is None:
            return None
        return IndexRecord(path, entry.sha.decode("ascii"), entry.mode, entry)

    def entries(self) -> list[IndexRecord]:
        result = []
        for path in self:
            record = self.get(path)
            if record is not None:
                result.append(record)
        return result

    def insert(self, path: str, oid: str, stat: os.stat_result, mode: int | None = None) -> None:
        """Record *path* at blob *oid* using *stat* for the cached metadata.

        *mode* overrides the git filemode derived from ``stat.st_mode``.
        """
        self._index[os.fsencode(path)] = index_entry_from_stat(
            stat, oid.encode("ascii"), mode,
        )

    def remove(self, path: str) -> None:
        del self._index[os.fsencode(path)]

    def clear(self) -> None:
        self._index.clear()

    def write(self) -> None:
        self._index.write()


class IndexManager:
    """Serialize every read-modify-write of a repository's index."""

    def __init__(self, gitdir: str | os.PathLike[str], path: str | os.PathLike[str] | None = None):
        self.gitdir = os.fspath(gitdir)
        self.path = os.fspath(path) if path is not None else os.path.join(self.gitdir, "index")
        self.lock = GitdirLock(self.gitdir)

    def __repr__(self) -> str:
        return f"IndexManager({self.path!r})"

    @contextmanager
    def locked(self) -> Iterator[StagingIndex]:
        """Lock, load, yield the index, and persist it if the block succeeds.

        Concurrent acquirers (threads or processes) block until release;
        the holding thread may call :meth:`read` or nest another block.
        """
        with self.lock:
            index = StagingIndex(self.path)
            yield index
            index.write()

    def acquire(self, fn: Callable[[StagingIndex], T]) -> T:
        """Run ``fn(index)`` while holding the lock; return its result."""
        with self.locked() as index:
            return fn(index)

    def read(self) -> StagingIndex:
        """Return a snapshot of the index, loaded under the lock, not persisted."""
        with self.lock:
            return StagingIndex(self.path)
