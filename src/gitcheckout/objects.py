"""Object store reader: content-addressed access to git objects.

Wraps dulwich's :class:`~dulwich.object_store.DiskObjectStore`, which
handles both loose (zlib) objects and pack files, and adds the checkout
layer's error types and type assertions on top.
"""

from __future__ import annotations

import hashlib
import os
import time
from collections.abc import Iterable
from pathlib import Path

from dulwich.object_store import DiskObjectStore
from dulwich.objects import Blob, Commit, ShaFile, Tag, Tree, valid_hexsha

from ._types import GitObject, ObjectType, TreeEntry
from .exceptions import ObjectNotFound, TypeMismatch

_TYPE_BY_NUM = {
    1: ObjectType.COMMIT,
    2: ObjectType.TREE,
    3: ObjectType.BLOB,
    4: ObjectType.TAG,
}

# Annotated tags may point at other tags
_MAX_PEEL = 50

_HASH_CHUNK_SIZE = 65536

DEFAULT_IDENTITY = b"gitcheckout <gitcheckout@localhost>"


# ---------------------------------------------------------------------------
# Hashing
# ---------------------------------------------------------------------------

def _blob_hasher(size: int) -> hashlib._Hash:
    """Return a SHA-1 hasher pre-loaded with the git blob header.

    Git blob OID = SHA-1(``blob <size>\\0`` + content).
    """
    return hashlib.sha1(f"blob {size}\0".encode())


def blob_oid(data: bytes) -> str:
    """Return the git blob id of *data*."""
    h = _blob_hasher(len(data))
    h.update(data)
    return h.hexdigest()


def hash_file(path: str | os.PathLike[str]) -> str:
    """Compute the git blob id of a file on disk by streaming through SHA-1.

    Symlinks hash their target string. Regular files are streamed in
    chunks to avoid loading entire contents into memory.
    """
    full = Path(path)
    if full.is_symlink():
        return blob_oid(os.fsencode(os.readlink(full)))
    size = full.stat().st_size
    h = _blob_hasher(size)
    with open(full, "rb") as f:
        while True:
            chunk = f.read(_HASH_CHUNK_SIZE)
            if not chunk:
                break
            h.update(chunk)
    return h.hexdigest()


# ---------------------------------------------------------------------------
# ObjectStore
# ---------------------------------------------------------------------------

class ObjectStore:
    """Read (and, for seeding repositories, write) objects under ``objects/``."""

    def __init__(self, path: str | os.PathLike[str]):
        self.path = os.fspath(path)
        self._store = DiskObjectStore(self.path)

    def __repr__(self) -> str:
        return f"ObjectStore({self.path!r})"

    @classmethod
    def init(cls, path: str | os.PathLike[str]) -> ObjectStore:
        """Create an empty object directory at *path* and open it."""
        os.makedirs(path, exist_ok=True)
        DiskObjectStore.init(os.fspath(path))
        return cls(path)

    def _load(self, oid: str) -> ShaFile:
        if not isinstance(oid, str) or not valid_hexsha(oid):
            raise ObjectNotFound(str(oid))
        try:
            return self._store[oid.encode("ascii")]
        except KeyError:
            raise ObjectNotFound(oid) from None

    def contains(self, oid: str) -> bool:
        if not valid_hexsha(oid):
            return False
        return oid.encode("ascii") in self._store

    def read(self, oid: str, expected: ObjectType | str | None = None) -> GitObject:
        """Return the object *oid* as ``GitObject(type, content)``.

        Raises:
            ObjectNotFound: If *oid* is in neither loose nor packed storage.
            TypeMismatch: If *expected* is given and the stored type differs.
        """
        obj = self._load(oid)
        otype = _TYPE_BY_NUM[obj.type_num]
        if expected is not None and otype != ObjectType(expected):
            raise TypeMismatch(oid, str(ObjectType(expected)), str(otype))
        return GitObject(otype, obj.as_raw_string())

    def read_blob(self, oid: str) -> bytes:
        return self.read(oid, ObjectType.BLOB).content

    def read_tree(self, oid: str) -> list[TreeEntry]:
        """Decode tree *oid* into its entries, in stored order."""
        obj = self._load(oid)
        if not isinstance(obj, Tree):
            raise TypeMismatch(oid, "tree", str(_TYPE_BY_NUM[obj.type_num]))
        return [
            TreeEntry(os.fsdecode(entry.path), entry.mode, entry.sha.decode("ascii"))
            for entry in obj.iteritems()
        ]

    def _peel(self, oid: str) -> tuple[str, ShaFile]:
        """Follow annotated tags from *oid* to the first non-tag object."""
        for _ in range(_MAX_PEEL):
            obj = self._load(oid)
            if not isinstance(obj, Tag):
                return oid, obj
            oid = obj.object[1].decode("ascii")
        raise TypeMismatch(oid, "commit", "tag")

    def peel_commit(self, oid: str) -> str:
        """Return the commit id *oid* refers to, peeling annotated tags."""
        oid, obj = self._peel(oid)
        if not isinstance(obj, Commit):
            raise TypeMismatch(oid, "commit", str(_TYPE_BY_NUM[obj.type_num]))
        return oid

    def read_commit_tree(self, oid: str) -> str:
        """Return the root tree id of commit *oid*, peeling annotated tags.

        A tree id is returned unchanged.
        """
        oid, obj = self._peel(oid)
        if isinstance(obj, Commit):
            return obj.tree.decode("ascii")
        if isinstance(obj, Tree):
            return oid
        raise TypeMismatch(oid, "commit", str(_TYPE_BY_NUM[obj.type_num]))

    # -- writers (repository seeding) ---------------------------------------

    def add_blob(self, data: bytes) -> str:
        blob = Blob.from_string(data)
        self._store.add_object(blob)
        return blob.id.decode("ascii")

    def add_tree(self, entries: Iterable[tuple[str, int, str]]) -> str:
        """Store a tree built from ``(name, mode, oid)`` triples."""
        tree = Tree()
        for name, mode, oid in entries:
            tree.add(os.fsencode(name), mode, oid.encode("ascii"))
        self._store.add_object(tree)
        return tree.id.decode("ascii")

    def add_commit(
        self,
        tree_oid: str,
        parents: Iterable[str] = (),
        message: str = "",
        *,
        identity: bytes = DEFAULT_IDENTITY,
        timestamp: int | None = None,
    ) -> str:
        c = Commit()
        c.tree = tree_oid.encode("ascii")
        c.parents = [p.encode("ascii") for p in parents]
        c.author = c.committer = identity
        now = int(time.time()) if timestamp is None else timestamp
        c.author_time = c.commit_time = now
        c.author_timezone = c.commit_timezone = 0
        msg = message.encode()
        if not msg.endswith(b"\n"):
            msg += b"\n"
        c.message = msg
        c.encoding = b"UTF-8"
        self._store.add_object(c)
        return c.id.decode("ascii")
