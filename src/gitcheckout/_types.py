"""Data structures shared by the walkers and the checkout planner."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple

GIT_FILEMODE_TREE = 0o040000
GIT_FILEMODE_BLOB = 0o100644
GIT_FILEMODE_BLOB_EXECUTABLE = 0o100755
GIT_FILEMODE_LINK = 0o120000
GIT_FILEMODE_COMMIT = 0o160000


class ObjectType(str, Enum):
    """Git object kinds: ``BLOB``, ``TREE``, ``COMMIT``, ``TAG``."""
    BLOB = "blob"
    TREE = "tree"
    COMMIT = "commit"
    TAG = "tag"

    def __str__(self) -> str:          # noqa: D105
        return self.value

    @classmethod
    def from_filemode(cls, mode: int) -> ObjectType:
        """Return the kind of object a tree entry with *mode* points at."""
        if mode == GIT_FILEMODE_TREE:
            return cls.TREE
        if mode == GIT_FILEMODE_COMMIT:
            return cls.COMMIT
        return cls.BLOB


class TreeEntry(NamedTuple):
    """One decoded line of a git tree object."""

    name: str
    mode: int
    oid: str


@dataclass(frozen=True)
class GitObject:
    """A raw object read from the object store."""
    type: ObjectType
    content: bytes


class OpKind(str, Enum):
    """Kind of queued checkout operation: ``WRITE`` or ``UNLINK``."""
    WRITE = "write"
    UNLINK = "unlink"

    def __str__(self) -> str:          # noqa: D105
        return self.value


@dataclass
class Operation:
    """A queued change to the working directory.

    Attributes:
        op: :class:`OpKind` value.
        filepath: Path relative to the working directory (forward slashes).
        oid: Blob id to write (``WRITE`` only).
        mode: Git filemode to write with (``WRITE`` only).
    """
    op: OpKind
    filepath: str
    oid: str | None = None
    mode: int | None = None

    def to_dict(self) -> dict:
        return {"op": str(self.op), "filepath": self.filepath,
                "oid": self.oid, "mode": self.mode}

    @classmethod
    def from_dict(cls, data: dict) -> Operation:
        return cls(OpKind(data["op"]), data["filepath"], data.get("oid"), data.get("mode"))


@dataclass
class Conflict:
    """A path whose local and incoming changes cannot be reconciled.

    Attributes:
        filepath: The conflicting path.
        message: Human-readable explanation.
    """
    filepath: str
    message: str


@dataclass
class CheckoutResult:
    """Result of planning (and possibly applying) a checkout.

    Attributes:
        ref: The ref that was requested.
        oid: Commit id the ref resolved to.
        operations: Planned writes and unlinks, in walk order.
        conflicts: Paths that blocked the checkout.
        applied: ``True`` once the plan has been written to disk.
    """
    ref: str
    oid: str | None = None
    operations: list[Operation] = field(default_factory=list)
    conflicts: list[Conflict] = field(default_factory=list)
    applied: bool = False

    @property
    def ok(self) -> bool:
        """``True`` if no conflicts were found."""
        return not self.conflicts

    @property
    def writes(self) -> list[Operation]:
        return [o for o in self.operations if o.op == OpKind.WRITE]

    @property
    def unlinks(self) -> list[Operation]:
        return [o for o in self.operations if o.op == OpKind.UNLINK]
