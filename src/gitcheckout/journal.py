"""Write-ahead record of an in-progress checkout.

Applying a checkout plan is not transactional. The journal lets a later
caller see that a checkout was interrupted, which ref it was moving to,
and which operations had already been applied. Format: one JSON object
per line in ``<gitdir>/CHECKOUT_JOURNAL``::

    {"event": "begin", "ref": "feature", "oid": "...", "operations": [...]}
    {"event": "applied", "operation": {...}}
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field

from ._types import Operation

JOURNAL_NAME = "CHECKOUT_JOURNAL"


@dataclass
class JournalState:
    """What an interrupted checkout left behind.

    Attributes:
        ref: Requested ref.
        oid: Commit being checked out.
        operations: The full plan.
        applied: Operations that completed before the interruption.
    """
    ref: str
    oid: str
    operations: list[Operation] = field(default_factory=list)
    applied: list[Operation] = field(default_factory=list)

    @property
    def pending(self) -> list[Operation]:
        done = {(o.op, o.filepath) for o in self.applied}
        return [o for o in self.operations if (o.op, o.filepath) not in done]


class CheckoutJournal:
    def __init__(self, gitdir: str | os.PathLike[str]):
        self.path = os.path.join(os.fspath(gitdir), JOURNAL_NAME)

    def __repr__(self) -> str:
        return f"CheckoutJournal({self.path!r})"

    def _append(self, record: dict, *, mode: str = "a") -> None:
        with open(self.path, mode, encoding="utf-8") as f:
            f.write(json.dumps(record, sort_keys=True) + "\n")
            f.flush()
            os.fsync(f.fileno())

    def begin(self, ref: str, oid: str, operations: list[Operation]) -> None:
        """Start a new journal, replacing any previous one."""
        self._append({
            "event": "begin",
            "ref": ref,
            "oid": oid,
            "operations": [o.to_dict() for o in operations],
        }, mode="w")

    def applied(self, operation: Operation) -> None:
        self._append({"event": "applied", "operation": operation.to_dict()})

    def clear(self) -> None:
        try:
            os.unlink(self.path)
        except FileNotFoundError:
            pass

    def read(self) -> JournalState | None:
        """Return the interrupted checkout's state, or ``None`` if there is none.

        A torn final line (crash mid-write) is ignored.
        """
        try:
            with open(self.path, encoding="utf-8") as f:
                lines = f.read().splitlines()
        except FileNotFoundError:
            return None
        state: JournalState | None = None
        for line in lines:
            try:
                record = json.loads(line)
            except json.JSONDecodeError:
                break
            if record.get("event") == "begin":
                state = JournalState(
                    record["ref"], record["oid"],
                    [Operation.from_dict(o) for o in record["operations"]],
                )
            elif record.get("event") == "applied" and state is not None:
                state.applied.append(Operation.from_dict(record["operation"]))
        return state
