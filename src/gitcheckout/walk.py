"""N-way synchronized walk over several tree sources.

:func:`walk` visits the union of paths from all sources in one
deterministic order and hands the callback one entry per source::

    def show(entries):
        workdir, head = entries
        return workdir.fullpath if workdir.exists != head.exists else None

    walk([WorkdirWalker(fs, dir), TreeWalker(objects, oid)], show)

Siblings are ordered the way git orders tree entries (a directory sorts
as ``name/``), so the files of a walk come out in index order. Descent
into directories happens here and nowhere else: a path is descended
into when any source reports it as a directory.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Sequence
from typing import Any

from .walkers import ROOT, Walker, WalkerEntry, join_path


class _Skip:
    def __repr__(self) -> str:
        return "SKIP"


SKIP: Any = _Skip()
"""Return from the callback to stop descent below the current path."""


def _sort_key(name: str, entries: Sequence[WalkerEntry]) -> bytes:
    key = os.fsencode(name)
    if any(e.is_dir for e in entries):
        key += b"/"
    return key


def walk(
    sources: Sequence[Walker],
    map_fn: Callable[[list[WalkerEntry]], Any],
) -> list:
    """Walk *sources* in lockstep, calling ``map_fn(entries)`` for every path.

    Args:
        sources: The walkers to visit; ``entries`` has the same order.
        map_fn: Called once per path below the root. ``None`` results are
            dropped; :data:`SKIP` prunes the subtree.

    Returns:
        The non-``None`` callback results in visit order.
    """
    results: list = []
    roots = [src.entry(ROOT) for src in sources]
    _walk_dir(sources, ROOT, roots, map_fn, results)
    return results


def _walk_dir(
    sources: Sequence[Walker],
    dirpath: str,
    parents: list[WalkerEntry],
    map_fn: Callable[[list[WalkerEntry]], Any],
    results: list,
) -> None:
    listings: list[set[str]] = []
    for src, parent in zip(sources, parents):
        listings.append(set(src.readdir(parent)) if parent.is_dir else set())

    rows: list[tuple[bytes, list[WalkerEntry]]] = []
    for name in set().union(*listings):
        path = join_path(dirpath, name)
        entries = [
            src.entry(path) if name in listing else WalkerEntry.absent(path)
            for src, listing in zip(sources, listings)
        ]
        rows.append((_sort_key(name, entries), entries))
    rows.sort(key=lambda row: row[0])

    for _key, entries in rows:
        result = map_fn(entries)
        if result is SKIP:
            continue
        if result is not None:
            results.append(result)
        if any(e.is_dir for e in entries):
            _walk_dir(sources, entries[0].fullpath, entries, map_fn, results)
