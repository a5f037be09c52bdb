"""Checkout: switch the working directory and index to another ref.

Works in two phases. :func:`plan_checkout` walks the working directory,
the index, the current commit and the target commit together and
classifies every path into nothing-to-do, a write, an unlink, or a
conflict. Only when no path conflicts does :func:`apply_checkout` touch
the disk: unlinks, then writes, then a full rebuild of the index from
the target tree, then HEAD.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ._types import (
    GIT_FILEMODE_BLOB,
    GIT_FILEMODE_BLOB_EXECUTABLE,
    GIT_FILEMODE_LINK,
    CheckoutResult,
    Conflict,
    ObjectType,
    Operation,
    OpKind,
)
from .exceptions import (
    CommitNotFetched,
    InternalFail,
    MissingRequiredParameter,
    NotImplementedFail,
    ObjectNotFound,
    RefNotFound,
    TypeMismatch,
    tag_caller,
)
from .fs import prune_empty_parents
from .index import StagingIndex
from .refs import LOCAL_BRANCH_PREFIX, validate_ref_name
from .walk import SKIP, walk
from .walkers import IndexWalker, TreeWalker, WalkerEntry, WorkdirWalker

if TYPE_CHECKING:
    from .fs import FileSystem
    from .repo import Repo

logger = logging.getLogger(__name__)

__all__ = ["checkout", "current_branch", "plan_checkout", "apply_checkout"]


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def _type_changed(*entries: WalkerEntry) -> bool:
    """True if the present entries disagree on directory vs. file."""
    kinds = {e.is_dir for e in entries if e.exists}
    return len(kinds) > 1


def _classify(
    result: CheckoutResult,
    workdir: WalkerEntry,
    stage: WalkerEntry,
    head: WalkerEntry,
    next: WalkerEntry,
):
    """Decide what to do with one path. Appends to *result*; never touches disk."""
    ref = result.ref
    path = workdir.fullpath

    # Untracked on both sides
    if not head.exists and not next.exists:
        return None

    if _type_changed(workdir, head, next):
        result.conflicts.append(Conflict(
            path,
            f"{path} changes between a file and a directory when checking out "
            f"{ref}, which is not supported. Move it aside before checking out {ref}.",
        ))
        return SKIP

    if ObjectType.COMMIT in (head.type, next.type):
        logger.warning("%s: %s", path, NotImplementedFail("submodules"))
        return SKIP

    # Directories are reconciled through their contents
    if head.is_dir or next.is_dir:
        return None

    # Deleted upstream
    if head.exists and not next.exists:
        if not workdir.exists:
            return None
        workdir.populate_hash()
        if workdir.oid == head.oid:
            return _queue(result, Operation(OpKind.UNLINK, path))
        result.conflicts.append(Conflict(
            path,
            f"Your file {path} has local changes but has been deleted in {ref}. "
            f"Commit or stash your changes before checking out {ref}.",
        ))
        return None

    # Added upstream
    if not head.exists and next.exists:
        if not workdir.exists:
            return _queue(result, Operation(OpKind.WRITE, path, next.oid, next.mode))
        workdir.populate_hash()
        if workdir.oid == next.oid:
            return None
        result.conflicts.append(Conflict(
            path,
            f"You added file {path} but a different file with the same name was "
            f"added in {ref}. Commit or stash your changes before checking out {ref}.",
        ))
        return None

    # Present on both sides
    if head.oid == next.oid:
        return None
    local_oid = None
    if workdir.exists:
        workdir.populate_hash()
        local_oid = workdir.oid
    if local_oid == next.oid:
        return None
    if local_oid == head.oid:
        return _queue(result, Operation(OpKind.WRITE, path, next.oid, next.mode))
    result.conflicts.append(Conflict(
        path,
        f"Your file {path} has local changes but has been changed in {ref}. "
        f"Commit or stash your changes before checking out {ref}.",
    ))
    return None


def _queue(result: CheckoutResult, op: Operation) -> None:
    logger.debug("queue %s %s", op.op, op.filepath)
    result.operations.append(op)


def plan_checkout(repo: Repo, ref: str, oid: str, head_oid: str | None) -> CheckoutResult:
    """Classify every path for a move from *head_oid* to *oid*.

    Nothing on disk is modified. The returned result holds either the
    operations to perform or every conflict found (not just the first).
    """
    result = CheckoutResult(ref=ref, oid=oid)
    sources = [
        WorkdirWalker(repo.fs, repo.dir),
        IndexWalker(repo.index.read(), repo.objects),
        TreeWalker(repo.objects, head_oid),
        TreeWalker(repo.objects, oid),
    ]
    walk(sources, lambda entries: _classify(result, *entries))
    if result.conflicts:
        result.operations.clear()
    return result


# ---------------------------------------------------------------------------
# Apply
# ---------------------------------------------------------------------------

def _write_file(fs: FileSystem, full: str, content: bytes, mode: int, oid: str) -> None:
    if mode == GIT_FILEMODE_BLOB:
        fs.write(full, content)
    elif mode == GIT_FILEMODE_BLOB_EXECUTABLE:
        fs.write(full, content, mode=0o755)
    elif mode == GIT_FILEMODE_LINK:
        fs.writelink(full, content)
    else:
        raise InternalFail(f'Invalid mode "{mode:o}" detected in blob {oid}')


def _materialize(repo: Repo, index: StagingIndex, next: WalkerEntry, workdir: WalkerEntry):
    """Make *workdir* match *next* and record it in *index*."""
    if not next.exists:
        return None
    full = repo.workdir_path(next.fullpath)
    if next.type == ObjectType.TREE:
        if not workdir.is_dir:
            repo.fs.mkdir(full)
        return None
    if next.type == ObjectType.COMMIT:
        logger.warning("%s: %s", next.fullpath, NotImplementedFail("submodules"))
        return SKIP
    if next.type == ObjectType.BLOB:
        current = workdir.exists and workdir.mode == next.mode
        if current:
            workdir.populate_hash()
            current = workdir.oid == next.oid
        if not current:
            next.populate_content()
            _write_file(repo.fs, full, next.content, next.mode, next.oid)
        index.insert(next.fullpath, next.oid, repo.fs.lstat(full), mode=next.mode)
        return next.fullpath
    raise TypeMismatch(next.oid, "blob", str(next.type), next.fullpath)


def apply_checkout(repo: Repo, result: CheckoutResult, fullref: str) -> None:
    """Carry out a conflict-free plan and point HEAD at *fullref*.

    Runs under the index lock. Unlinks go first, then writes; then the
    index is rebuilt from scratch by materializing the whole target tree.
    A failure part-way leaves the journal behind (see
    :meth:`Repo.interrupted_checkout`); nothing is rolled back.
    """
    if result.conflicts:
        raise InternalFail("Refusing to apply a checkout plan with conflicts")
    fs = repo.fs
    with repo.index.locked() as index:
        repo.journal.begin(result.ref, result.oid, result.operations)
        for op in result.unlinks:
            full = repo.workdir_path(op.filepath)
            fs.rm(full, missing_ok=True)
            prune_empty_parents(fs, full, repo.dir)
            repo.journal.applied(op)
        for op in result.writes:
            obj = repo.objects.read(op.oid)
            if obj.type != ObjectType.BLOB:
                raise TypeMismatch(op.oid, "blob", str(obj.type), op.filepath)
            _write_file(fs, repo.workdir_path(op.filepath), obj.content, op.mode, op.oid)
            repo.journal.applied(op)

        # TODO: only rewrite index entries whose stat or oid changed
        # instead of rebuilding the whole index.
        index.clear()
        walk(
            [TreeWalker(repo.objects, result.oid), WorkdirWalker(fs, repo.dir)],
            lambda entries: _materialize(repo, index, *entries),
        )

        if fullref.startswith(LOCAL_BRANCH_PREFIX):
            repo.refs.write_symbolic_ref("HEAD", fullref)
        else:
            repo.refs.write_ref("HEAD", result.oid)
    repo.journal.clear()
    result.applied = True


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def _create_tracking_branch(repo: Repo, ref: str, remote: str) -> str:
    """Create ``refs/heads/<ref>`` from ``<remote>/<ref>`` and configure tracking."""
    remote_ref = f"{remote}/{ref}"
    try:
        oid = repo.refs.resolve(remote_ref)
    except RefNotFound:
        raise RefNotFound(ref) from None
    branch = f"{LOCAL_BRANCH_PREFIX}{ref}"
    validate_ref_name(branch)
    repo.config.set(f"branch.{ref}.remote", remote)
    repo.config.set(f"branch.{ref}.merge", branch)
    repo.refs.write_ref(branch, oid)
    logger.info("Created branch %s tracking %s", ref, remote_ref)
    return oid


@tag_caller("gitcheckout.checkout")
def checkout(
    repo: Repo,
    ref: str | None = None,
    *,
    remote: str = "origin",
    dry_run: bool = False,
) -> CheckoutResult:
    """Check out *ref* into the working directory.

    If *ref* does not exist locally but ``<remote>/<ref>`` does, a local
    branch tracking it is created first.

    Args:
        repo: The repository.
        ref: Branch, tag, or commit id to check out.
        remote: Remote to look for a same-named branch on.
        dry_run: Plan only; no refs, config or files are written.

    Returns:
        A :class:`CheckoutResult`. When ``result.conflicts`` is non-empty
        nothing was modified.

    Raises:
        MissingRequiredParameter: If *ref* is not given.
        RefNotFound: If neither *ref* nor ``<remote>/<ref>`` exist.
        CommitNotFetched: If the target commit is missing locally.
    """
    if not ref:
        raise MissingRequiredParameter("checkout", "ref")

    refs = repo.refs
    oid = refs.resolve_or_none(ref)
    if oid is None:
        if dry_run:
            try:
                oid = refs.resolve(f"{remote}/{ref}")
            except RefNotFound:
                raise RefNotFound(ref) from None
            fullref = f"{LOCAL_BRANCH_PREFIX}{ref}"
        else:
            oid = _create_tracking_branch(repo, ref, remote)
            fullref = refs.expand(ref)
    else:
        fullref = refs.expand(ref)

    head_oid = refs.resolve_or_none("HEAD")

    stale = repo.journal.read()
    if stale is not None:
        logger.warning(
            "Previous checkout of %s was interrupted with %d operation(s) pending",
            stale.ref, len(stale.pending),
        )

    logger.info("Checking out %s (%s)", ref, oid)
    try:
        commit = repo.objects.peel_commit(oid)
        result = plan_checkout(repo, ref, commit, head_oid)
        if result.conflicts:
            logger.info("Checkout of %s blocked by %d conflict(s)", ref, len(result.conflicts))
            return result
        if dry_run:
            return result
        apply_checkout(repo, result, fullref)
    except ObjectNotFound as err:
        if err.oid == oid and not isinstance(err, CommitNotFetched):
            raise CommitNotFetched(ref, oid) from err
        raise
    logger.info(
        "Checked out %s: %d write(s), %d unlink(s)",
        ref, len(result.writes), len(result.unlinks),
    )
    return result


@tag_caller("gitcheckout.current_branch")
def current_branch(repo: Repo, fullname: bool = False) -> str | None:
    """Return the branch HEAD points to, or ``None`` if HEAD is detached.

    ``fullname=True`` gives ``refs/heads/main``; otherwise ``main``.
    A detached HEAD yields ``None`` rather than its commit id; use
    ``repo.refs.resolve("HEAD")`` for the id.
    """
    if not repo.refs.exists("HEAD"):
        raise RefNotFound("HEAD")
    name = repo.refs.resolve_symbolic("HEAD", depth=2)
    if name == "HEAD":
        return None
    if fullname:
        return name
    return repo.refs.abbrev(name)
