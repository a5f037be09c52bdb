"""Per-source tree walkers: working directory, staging index, git tree.

Each walker hands out :class:`WalkerEntry` objects for paths and lists
the children of directory entries. Entries start with only the cheap
facts (existence, type, mode) and load the rest on demand::

    entry = walker.entry("src/main.py")
    entry.populate_hash()     # stat first, then hash; each loaded once
    entry.oid

A path that a source does not have is an entry with ``exists=False``,
never an error.
"""

from __future__ import annotations

import os
import stat as statmod
from enum import IntEnum
from typing import TYPE_CHECKING

from ._types import (
    GIT_FILEMODE_BLOB,
    GIT_FILEMODE_BLOB_EXECUTABLE,
    GIT_FILEMODE_LINK,
    GIT_FILEMODE_TREE,
    ObjectType,
    TreeEntry,
)

if TYPE_CHECKING:
    from .fs import FileSystem
    from .index import StagingIndex
    from .objects import ObjectStore
    from .refs import RefResolver

ROOT = "."


def join_path(parent: str, name: str) -> str:
    """Join a repo-style path; the root is ``"."``."""
    return name if parent == ROOT else f"{parent}/{name}"


def _basename(path: str) -> str:
    return path.rsplit("/", 1)[-1]


class Populated(IntEnum):
    """How much of a :class:`WalkerEntry` has been loaded."""
    NONE = 0
    STAT = 1
    HASH = 2
    CONTENT = 3


class WalkerEntry:
    """One source's view of one path.

    Attributes:
        fullpath: Repo-style path (``"."`` for the root).
        basename: Last path segment.
        exists: Whether the source has anything at this path.
        type: :class:`ObjectType` (``TREE`` for directories) or ``None``.
        mode: Git filemode or ``None``.
        stat: Source-specific stat data (``os.stat_result`` or index entry).
        oid: Blob/tree id once hashed.
        content: Blob bytes once loaded.
        populated: :class:`Populated` stage reached so far.
    """

    __slots__ = ("_walker", "fullpath", "basename", "exists", "type", "mode",
                 "stat", "oid", "content", "populated")

    def __init__(
        self,
        walker: Walker | None,
        fullpath: str,
        *,
        exists: bool = True,
        type: ObjectType | None = None,
        mode: int | None = None,
        stat=None,
        oid: str | None = None,
        populated: Populated = Populated.NONE,
    ):
        self._walker = walker
        self.fullpath = fullpath
        self.basename = _basename(fullpath)
        self.exists = exists
        self.type = type
        self.mode = mode
        self.stat = stat
        self.oid = oid
        self.content: bytes | None = None
        self.populated = populated

    @classmethod
    def absent(cls, fullpath: str) -> WalkerEntry:
        return cls(None, fullpath, exists=False, populated=Populated.CONTENT)

    def __repr__(self) -> str:
        if not self.exists:
            return f"WalkerEntry({self.fullpath!r}, absent)"
        return f"WalkerEntry({self.fullpath!r}, {self.type}, {self.mode:o})"

    @property
    def is_dir(self) -> bool:
        return self.exists and self.type == ObjectType.TREE

    def populate_stat(self) -> None:
        if self.populated < Populated.STAT:
            self._walker._load_stat(self)
            self.populated = Populated.STAT

    def populate_hash(self) -> None:
        self.populate_stat()
        if self.populated < Populated.HASH:
            if self.type != ObjectType.TREE:
                self._walker._load_hash(self)
            self.populated = Populated.HASH

    def populate_content(self) -> None:
        self.populate_hash()
        if self.populated < Populated.CONTENT:
            if self.type == ObjectType.BLOB:
                self._walker._load_content(self)
            self.populated = Populated.CONTENT


class Walker:
    """Capability contract shared by the three sources."""

    def entry(self, path: str) -> WalkerEntry:
        raise NotImplementedError

    def readdir(self, entry: WalkerEntry) -> list[str]:
        """Child names of the directory *entry*."""
        raise NotImplementedError

    def _load_stat(self, entry: WalkerEntry) -> None:
        pass

    def _load_hash(self, entry: WalkerEntry) -> None:
        pass

    def _load_content(self, entry: WalkerEntry) -> None:
        pass


# ---------------------------------------------------------------------------
# Working directory
# ---------------------------------------------------------------------------

def _mode_from_stat(st: os.stat_result) -> int | None:
    """Git filemode for a stat result, ``None`` for unsupported file kinds."""
    if statmod.S_ISDIR(st.st_mode):
        return GIT_FILEMODE_TREE
    if statmod.S_ISLNK(st.st_mode):
        return GIT_FILEMODE_LINK
    if statmod.S_ISREG(st.st_mode):
        if st.st_mode & statmod.S_IXUSR:
            return GIT_FILEMODE_BLOB_EXECUTABLE
        return GIT_FILEMODE_BLOB
    return None


class WorkdirWalker(Walker):
    """The files on disk under *dir*; ``.git`` is never listed."""

    def __init__(self, fs: FileSystem, dir: str):
        self.fs = fs
        self.dir = os.fspath(dir)

    def __repr__(self) -> str:
        return f"WorkdirWalker({self.dir!r})"

    def abspath(self, path: str) -> str:
        if path == ROOT:
            return self.dir
        return os.path.join(self.dir, *path.split("/"))

    def entry(self, path: str) -> WalkerEntry:
        try:
            st = self.fs.lstat(self.abspath(path))
        except (FileNotFoundError, NotADirectoryError):
            return WalkerEntry.absent(path)
        mode = _mode_from_stat(st)
        if mode is None:
            return WalkerEntry.absent(path)
        return WalkerEntry(
            self, path, type=ObjectType.from_filemode(mode), mode=mode,
            stat=st, populated=Populated.STAT,
        )

    def readdir(self, entry: WalkerEntry) -> list[str]:
        names = self.fs.readdir(self.abspath(entry.fullpath))
        if entry.fullpath == ROOT:
            names = [n for n in names if n != ".git"]
        return names

    def _load_hash(self, entry: WalkerEntry) -> None:
        entry.oid = self.fs.hash_blob(self.abspath(entry.fullpath))

    def _load_content(self, entry: WalkerEntry) -> None:
        full = self.abspath(entry.fullpath)
        if entry.mode == GIT_FILEMODE_LINK:
            entry.content = os.fsencode(self.fs.readlink(full))
        else:
            entry.content = self.fs.read(full)


# ---------------------------------------------------------------------------
# Staging index
# ---------------------------------------------------------------------------

class IndexWalker(Walker):
    """Paths recorded in the staging index; directories are implied."""

    def __init__(self, index: StagingIndex, objects: ObjectStore):
        self.objects = objects
        self._records = {r.path: r for r in index.entries()}
        self._dirs: dict[str, set[str]] = {ROOT: set()}
        for path in self._records:
            parent = ROOT
            for name in path.split("/"):
                self._dirs.setdefault(parent, set()).add(name)
                parent = join_path(parent, name)

    def __repr__(self) -> str:
        return f"IndexWalker(len={len(self._records)})"

    def entry(self, path: str) -> WalkerEntry:
        record = self._records.get(path)
        if record is not None:
            return WalkerEntry(
                self, path, type=ObjectType.from_filemode(record.mode),
                mode=record.mode, stat=record.stat, oid=record.oid,
                populated=Populated.HASH,
            )
        if path in self._dirs:
            return WalkerEntry(self, path, type=ObjectType.TREE,
                               mode=GIT_FILEMODE_TREE, populated=Populated.HASH)
        return WalkerEntry.absent(path)

    def readdir(self, entry: WalkerEntry) -> list[str]:
        return list(self._dirs.get(entry.fullpath, ()))

    def _load_content(self, entry: WalkerEntry) -> None:
        entry.content = self.objects.read_blob(entry.oid)


# ---------------------------------------------------------------------------
# Git tree
# ---------------------------------------------------------------------------

class TreeWalker(Walker):
    """The tree of a commit, tag or tree id; ``None`` walks an empty tree.

    Trees are decoded one directory at a time as the walk reaches them.
    """

    def __init__(self, objects: ObjectStore, oid: str | None):
        self.objects = objects
        self.oid = oid
        self._tree_oids: dict[str, str] = {}
        if oid is not None:
            self._tree_oids[ROOT] = objects.read_commit_tree(oid)
        self._listings: dict[str, dict[str, TreeEntry]] = {}

    def __repr__(self) -> str:
        return f"TreeWalker({self.oid!r})"

    @classmethod
    def for_ref(cls, objects: ObjectStore, refs: RefResolver, ref: str) -> TreeWalker:
        return cls(objects, refs.resolve(ref))

    def _listing(self, dirpath: str) -> dict[str, TreeEntry]:
        listing = self._listings.get(dirpath)
        if listing is None:
            tree_oid = self._tree_oids.get(dirpath)
            if tree_oid is None:
                # parents not visited yet; resolving the entry records its tree
                if dirpath == ROOT or not self.entry(dirpath).is_dir:
                    return {}
                tree_oid = self._tree_oids[dirpath]
            listing = {e.name: e for e in self.objects.read_tree(tree_oid)}
            self._listings[dirpath] = listing
        return listing

    def entry(self, path: str) -> WalkerEntry:
        if path == ROOT:
            if ROOT not in self._tree_oids:
                return WalkerEntry.absent(path)
            return WalkerEntry(self, path, type=ObjectType.TREE, mode=GIT_FILEMODE_TREE,
                               oid=self._tree_oids[ROOT], populated=Populated.HASH)
        parent, _, name = path.rpartition("/")
        te = self._listing(parent or ROOT).get(name)
        if te is None:
            return WalkerEntry.absent(path)
        otype = ObjectType.from_filemode(te.mode)
        if otype == ObjectType.TREE:
            self._tree_oids[path] = te.oid
        return WalkerEntry(self, path, type=otype, mode=te.mode, oid=te.oid,
                           populated=Populated.HASH)

    def readdir(self, entry: WalkerEntry) -> list[str]:
        return list(self._listing(entry.fullpath))

    def _load_content(self, entry: WalkerEntry) -> None:
        entry.content = self.objects.read_blob(entry.oid)
