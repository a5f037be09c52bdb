"""Shared fixtures for gitcheckout tests."""

import pytest
from click.testing import CliRunner

from gitcheckout import Repo
from gitcheckout._types import GIT_FILEMODE_BLOB, GIT_FILEMODE_COMMIT, GIT_FILEMODE_TREE


def build_tree(objects, files):
    """Store nested trees for *files* and return the root tree id.

    *files* maps repo paths to ``bytes`` or ``(bytes, mode)``. A
    ``(oid, 0o160000)`` value records a submodule entry.
    """
    subdirs = {}
    entries = []
    for path, value in files.items():
        name, _, rest = path.partition("/")
        if rest:
            subdirs.setdefault(name, {})[rest] = value
            continue
        data, mode = value if isinstance(value, tuple) else (value, GIT_FILEMODE_BLOB)
        if mode == GIT_FILEMODE_COMMIT:
            entries.append((name, mode, data))
        else:
            entries.append((name, mode, objects.add_blob(data)))
    for name, sub in subdirs.items():
        entries.append((name, GIT_FILEMODE_TREE, build_tree(objects, sub)))
    return objects.add_tree(entries)


@pytest.fixture
def repo(tmp_path):
    """An empty repository whose HEAD points at unborn 'main'."""
    return Repo.init(tmp_path / "work")


@pytest.fixture
def commit(repo):
    """Return ``make(files, branch=None, parents=())`` that stores a commit."""
    def make(files, branch=None, parents=(), message="test"):
        tree = build_tree(repo.objects, files)
        oid = repo.objects.add_commit(tree, parents, message, timestamp=1700000000)
        if branch is not None:
            repo.refs.write_ref(f"refs/heads/{branch}", oid)
        return oid
    return make


@pytest.fixture
def two_branches(repo, commit):
    """'main' checked out; 'feature' edits a.txt, drops b.txt and adds c/d.txt.

    Returns ``(main_oid, feature_oid)``.
    """
    main_oid = commit({
        "a.txt": b"one\n",
        "b.txt": b"bee\n",
        "lib/util.py": b"util\n",
    }, branch="main")
    feature_oid = commit({
        "a.txt": b"two\n",
        "lib/util.py": b"util\n",
        "c/d.txt": b"dee\n",
    }, branch="feature", parents=[main_oid])
    result = repo.checkout("main")
    assert result.ok and result.applied
    return main_oid, feature_oid


# ---------------------------------------------------------------------------
# CLI fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def runner():
    return CliRunner()
