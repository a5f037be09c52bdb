"""Repo: a working directory plus its git directory.

Everything checkout needs (filesystem, object store, refs, config,
index) is built here from explicit arguments; pass ``fs`` to substitute
the filesystem implementation.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

from .config import GitConfig
from .fs import FileSystem
from .index import IndexManager
from .journal import CheckoutJournal, JournalState
from .objects import ObjectStore
from .refs import LOCAL_BRANCH_PREFIX, RefResolver

if TYPE_CHECKING:
    from ._types import CheckoutResult


class Repo:
    """A non-bare git repository."""

    def __init__(
        self,
        dir: str | os.PathLike[str],
        gitdir: str | os.PathLike[str] | None = None,
        *,
        fs: FileSystem | None = None,
    ):
        self.dir = os.path.abspath(os.fspath(dir))
        self.gitdir = os.path.abspath(os.fspath(gitdir)) if gitdir is not None \
            else os.path.join(self.dir, ".git")
        self.fs = fs if fs is not None else FileSystem()
        self.objects = ObjectStore(os.path.join(self.gitdir, "objects"))
        self.refs = RefResolver(self.gitdir, self.fs)
        self.config = GitConfig(os.path.join(self.gitdir, "config"))
        self.index = IndexManager(self.gitdir)
        self.journal = CheckoutJournal(self.gitdir)

    def __repr__(self) -> str:
        return f"Repo({self.dir!r})"

    @classmethod
    def open(
        cls,
        dir: str | os.PathLike[str],
        gitdir: str | os.PathLike[str] | None = None,
        *,
        fs: FileSystem | None = None,
    ) -> Repo:
        """Open an existing repository.

        Raises:
            FileNotFoundError: If the git directory does not exist.
        """
        git_path = Path(gitdir) if gitdir is not None else Path(dir) / ".git"
        if not (git_path / "objects").is_dir():
            raise FileNotFoundError(f"Repository not found: {git_path}")
        return cls(dir, gitdir, fs=fs)

    @classmethod
    def init(
        cls,
        dir: str | os.PathLike[str],
        *,
        branch: str = "main",
        fs: FileSystem | None = None,
    ) -> Repo:
        """Create an empty repository whose HEAD points at unborn *branch*.

        An existing repository at *dir* is opened instead.
        """
        git_path = Path(dir) / ".git"
        if (git_path / "objects").is_dir():
            return cls(dir, fs=fs)
        for sub in ("refs/heads", "refs/tags"):
            (git_path / sub).mkdir(parents=True, exist_ok=True)
        ObjectStore.init(git_path / "objects")
        repo = cls(dir, fs=fs)
        repo.refs.write_symbolic_ref("HEAD", f"{LOCAL_BRANCH_PREFIX}{branch}")
        repo.config.set("core.repositoryformatversion", 0)
        repo.config.set("core.filemode", True)
        repo.config.set("core.bare", False)
        return repo

    def workdir_path(self, path: str) -> str:
        """Absolute on-disk path for repo-style *path*."""
        return os.path.join(self.dir, *path.split("/"))

    def checkout(self, ref: str | None, *, remote: str = "origin", dry_run: bool = False) -> CheckoutResult:
        """Check out *ref*; see :func:`gitcheckout.checkout.checkout`."""
        from .checkout import checkout
        return checkout(self, ref, remote=remote, dry_run=dry_run)

    def current_branch(self, fullname: bool = False) -> str | None:
        """Branch HEAD points to; see :func:`gitcheckout.checkout.current_branch`."""
        from .checkout import current_branch
        return current_branch(self, fullname=fullname)

    def interrupted_checkout(self) -> JournalState | None:
        """State left by a checkout that failed while applying, if any."""
        return self.journal.read()
