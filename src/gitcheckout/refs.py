"""Ref resolution: loose refs, packed-refs and symbolic indirection.

Nothing is cached between calls; other processes may move refs at any
time, so every lookup re-reads the ref store.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterator

from dulwich.file import FileLocked
from dulwich.refs import (
    check_ref_format,
    read_packed_refs,
    read_packed_refs_with_peeled,
)

from .exceptions import InvalidRefName, MaxDepthExceeded, RefLocked, RefNotFound
from .fs import FileSystem

logger = logging.getLogger(__name__)

DEFAULT_DEPTH = 5
SYMREF_PREFIX = "ref: "
LOCAL_BRANCH_PREFIX = "refs/heads/"
TAG_PREFIX = "refs/tags/"
REMOTE_PREFIX = "refs/remotes/"

# Files in the git directory that are never refs
GIT_FILES = frozenset({"config", "description", "index", "shallow", "commondir"})

_ABBREV_PREFIXES = (LOCAL_BRANCH_PREFIX, TAG_PREFIX, REMOTE_PREFIX)
_OID_RE = re.compile(r"^[0-9a-f]{40}$")


def is_oid(value: str) -> bool:
    """Return True if *value* is a full 40-char lowercase hex object id."""
    return bool(_OID_RE.match(value))


def refpaths(ref: str) -> list[str]:
    """Candidate full names for *ref*, in lookup precedence order."""
    return [
        ref,
        f"refs/{ref}",
        f"{TAG_PREFIX}{ref}",
        f"{LOCAL_BRANCH_PREFIX}{ref}",
        f"{REMOTE_PREFIX}{ref}",
        f"{REMOTE_PREFIX}{ref}/HEAD",
    ]


def validate_ref_name(name: str) -> None:
    """Reject names git would not accept as a ref."""
    if name != "HEAD" and not check_ref_format(name.encode("utf-8")):
        raise InvalidRefName(name)


class RefResolver:
    """Read and write refs under a git directory.

    Loose refs are read and written through *fs*.
    """

    def __init__(self, gitdir: str | os.PathLike[str], fs: FileSystem | None = None):
        self.gitdir = os.fspath(gitdir)
        self.fs = fs if fs is not None else FileSystem()

    def __repr__(self) -> str:
        return f"RefResolver({self.gitdir!r})"

    # -- raw storage ----------------------------------------------------------

    def _ref_file(self, name: str) -> str:
        return os.path.join(self.gitdir, *name.split("/"))

    def _read_loose(self, name: str) -> str | None:
        if name in GIT_FILES:
            return None
        path = self._ref_file(name)
        try:
            value = self.fs.read(path).decode("utf-8").strip()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            return None
        return value or None

    def packed_refs(self) -> dict[str, str]:
        """Return the ``packed-refs`` table as ``{name: oid}``."""
        path = os.path.join(self.gitdir, "packed-refs")
        try:
            f = open(path, "rb")
        except FileNotFoundError:
            return {}
        with f:
            first = f.readline()
            if first.startswith(b"# pack-refs") and b" peeled" in first:
                return {
                    name.decode("utf-8"): sha.decode("ascii")
                    for sha, name, _peeled in read_packed_refs_with_peeled(f)
                }
            f.seek(0)
            return {
                name.decode("utf-8"): sha.decode("ascii")
                for sha, name in read_packed_refs(f)
            }

    def _read_raw(self, name: str, packed: dict[str, str]) -> str | None:
        return self._read_loose(name) or packed.get(name)

    # -- resolution -----------------------------------------------------------

    def resolve(self, ref: str, depth: int = DEFAULT_DEPTH) -> str:
        """Resolve *ref* to a 40-hex object id.

        Each symbolic indirection consumes one unit of *depth*.

        Raises:
            RefNotFound: If no candidate name exists.
            MaxDepthExceeded: If the symbolic chain outlives *depth*.
        """
        if ref.startswith(SYMREF_PREFIX):
            ref = ref[len(SYMREF_PREFIX):]
        if is_oid(ref):
            return ref
        packed = self.packed_refs()
        for candidate in refpaths(ref):
            value = self._read_raw(candidate, packed)
            if value is None:
                continue
            if value.startswith(SYMREF_PREFIX):
                if depth <= 0:
                    raise MaxDepthExceeded(ref, depth)
                target = value[len(SYMREF_PREFIX):]
                logger.debug("%s -> %s", candidate, target)
                return self.resolve(target, depth - 1)
            if not is_oid(value):
                raise RefNotFound(ref)
            return value
        raise RefNotFound(ref)

    def resolve_symbolic(self, ref: str, depth: int = DEFAULT_DEPTH) -> str:
        """Follow symbolic indirections from *ref* and return the final ref name.

        The final ref need not exist (an unborn branch); a ref holding an
        object id is returned as-is.
        """
        packed = self.packed_refs()
        name = ref
        for _ in range(depth + 1):
            value = self._read_raw(name, packed)
            if value is None or not value.startswith(SYMREF_PREFIX):
                return name
            name = value[len(SYMREF_PREFIX):]
        raise MaxDepthExceeded(ref, depth)

    def resolve_or_none(self, ref: str, depth: int = DEFAULT_DEPTH) -> str | None:
        try:
            return self.resolve(ref, depth)
        except RefNotFound:
            return None

    def exists(self, fullname: str) -> bool:
        return self._read_raw(fullname, self.packed_refs()) is not None

    def expand(self, ref: str) -> str:
        """Return the full name *ref* refers to (e.g. ``main`` → ``refs/heads/main``)."""
        if is_oid(ref):
            return ref
        packed = self.packed_refs()
        for candidate in refpaths(ref):
            if self._read_raw(candidate, packed) is not None:
                return candidate
        raise RefNotFound(ref)

    @staticmethod
    def abbrev(ref: str) -> str:
        """Shorten a full ref name: ``refs/heads/main`` → ``main``."""
        for prefix in _ABBREV_PREFIXES:
            if ref.startswith(prefix):
                short = ref[len(prefix):]
                if prefix == REMOTE_PREFIX and short.endswith("/HEAD"):
                    return short[: -len("/HEAD")]
                return short
        return ref

    def list_refs(self, prefix: str = "refs/") -> list[str]:
        """Return all full ref names under *prefix*, loose and packed, sorted."""
        names = {n for n in self.packed_refs() if n.startswith(prefix)}
        names.update(self._iter_loose(prefix))
        return sorted(names)

    def _iter_loose(self, prefix: str) -> Iterator[str]:
        base = os.path.join(self.gitdir, "refs")
        for dirpath, _dirnames, filenames in os.walk(base):
            for fname in filenames:
                full = os.path.join(dirpath, fname)
                name = os.path.relpath(full, self.gitdir).replace(os.sep, "/")
                if name.startswith(prefix):
                    yield name

    # -- writers --------------------------------------------------------------

    def _write(self, name: str, content: str) -> None:
        try:
            self.fs.write_locked(self._ref_file(name), content.encode("utf-8"))
        except FileLocked:
            raise RefLocked(name) from None
        logger.debug("Updated %s", name)

    def write_ref(self, fullname: str, oid: str) -> None:
        """Point *fullname* at *oid* (``<oid>\\n`` loose file)."""
        validate_ref_name(fullname)
        if not is_oid(oid):
            raise ValueError(f"Invalid object id: {oid!r}")
        self._write(fullname, oid + "\n")

    def write_symbolic_ref(self, name: str, target: str) -> None:
        """Make *name* a symbolic ref to *target* (``ref: <target>\\n``)."""
        validate_ref_name(name)
        validate_ref_name(target)
        self._write(name, f"{SYMREF_PREFIX}{target}\n")
