"""Tests for the workdir, index and tree walkers."""

import os

import pytest

from gitcheckout import ObjectType
from gitcheckout._types import (
    GIT_FILEMODE_BLOB,
    GIT_FILEMODE_BLOB_EXECUTABLE,
    GIT_FILEMODE_LINK,
    GIT_FILEMODE_TREE,
)
from gitcheckout.fs import FileSystem
from gitcheckout.objects import blob_oid
from gitcheckout.walkers import (
    ROOT,
    IndexWalker,
    Populated,
    TreeWalker,
    WalkerEntry,
    WorkdirWalker,
)

from conftest import build_tree


class _CountingFS(FileSystem):
    def __init__(self):
        self.hashed = []

    def hash_blob(self, path):
        self.hashed.append(path)
        return super().hash_blob(path)


@pytest.fixture
def workdir(tmp_path):
    d = tmp_path / "wd"
    d.mkdir()
    (d / "file.txt").write_bytes(b"data\n")
    (d / "run.sh").write_bytes(b"#!/bin/sh\n")
    os.chmod(d / "run.sh", 0o755)
    (d / "sub").mkdir()
    os.symlink("file.txt", d / "link")
    (d / ".git").mkdir()
    return d


class TestWorkdirWalker:
    def test_entry_starts_with_stat(self, workdir):
        w = WorkdirWalker(FileSystem(), str(workdir))
        e = w.entry("file.txt")
        assert e.exists
        assert e.type == ObjectType.BLOB
        assert e.mode == GIT_FILEMODE_BLOB
        assert e.populated == Populated.STAT
        assert e.stat.st_size == 5
        assert e.oid is None

    def test_hash_loaded_once(self, workdir):
        fs = _CountingFS()
        e = WorkdirWalker(fs, str(workdir)).entry("file.txt")
        e.populate_hash()
        e.populate_hash()
        e.populate_content()
        assert e.oid == blob_oid(b"data\n")
        assert e.content == b"data\n"
        assert e.populated == Populated.CONTENT
        assert len(fs.hashed) == 1

    def test_modes(self, workdir):
        w = WorkdirWalker(FileSystem(), str(workdir))
        assert w.entry("run.sh").mode == GIT_FILEMODE_BLOB_EXECUTABLE
        assert w.entry("sub").mode == GIT_FILEMODE_TREE
        assert w.entry("sub").is_dir
        link = w.entry("link")
        assert link.mode == GIT_FILEMODE_LINK
        link.populate_content()
        assert link.content == b"file.txt"
        assert link.oid == blob_oid(b"file.txt")

    def test_missing_is_absent(self, workdir):
        w = WorkdirWalker(FileSystem(), str(workdir))
        assert not w.entry("nope").exists
        assert not w.entry("file.txt/below").exists

    def test_readdir_hides_git(self, workdir):
        w = WorkdirWalker(FileSystem(), str(workdir))
        names = sorted(w.readdir(w.entry(ROOT)))
        assert names == ["file.txt", "link", "run.sh", "sub"]

    def test_directory_hash_skipped(self, workdir):
        fs = _CountingFS()
        e = WorkdirWalker(fs, str(workdir)).entry("sub")
        e.populate_hash()
        assert fs.hashed == []


class TestIndexWalker:
    def test_implied_directories(self, repo):
        oid = repo.objects.add_blob(b"x")
        st = os.lstat(repo.gitdir)
        with repo.index.locked() as index:
            index.insert("src/pkg/mod.py", oid, st, mode=GIT_FILEMODE_BLOB)
            index.insert("top.txt", oid, st, mode=GIT_FILEMODE_BLOB)
        w = IndexWalker(repo.index.read(), repo.objects)

        root = w.entry(ROOT)
        assert root.is_dir
        assert sorted(w.readdir(root)) == ["src", "top.txt"]
        src = w.entry("src")
        assert src.is_dir
        assert w.readdir(src) == ["pkg"]

        mod = w.entry("src/pkg/mod.py")
        assert mod.oid == oid
        assert mod.populated == Populated.HASH
        mod.populate_content()
        assert mod.content == b"x"

        assert not w.entry("src/other").exists


class TestTreeWalker:
    def test_entries(self, repo):
        tree = build_tree(repo.objects, {
            "a.txt": b"A",
            "bin/tool": (b"T", GIT_FILEMODE_BLOB_EXECUTABLE),
        })
        c = repo.objects.add_commit(tree)
        w = TreeWalker(repo.objects, c)

        root = w.entry(ROOT)
        assert root.oid == tree
        assert sorted(w.readdir(root)) == ["a.txt", "bin"]

        a = w.entry("a.txt")
        assert a.oid == blob_oid(b"A")
        assert a.populated == Populated.HASH
        a.populate_content()
        assert a.content == b"A"

        tool = w.entry("bin/tool")
        assert tool.mode == GIT_FILEMODE_BLOB_EXECUTABLE
        assert not w.entry("bin/missing").exists

    def test_lazy_listing(self, repo):
        tree = build_tree(repo.objects, {"d/e/f": b"x"})
        w = TreeWalker(repo.objects, tree)
        assert w._listings == {}
        w.readdir(w.entry(ROOT))
        assert list(w._listings) == [ROOT]

    def test_deep_entry_without_parents(self, repo):
        tree = build_tree(repo.objects, {"a/b/c.txt": b"C", "a/f": b"F"})
        w = TreeWalker(repo.objects, tree)
        c = w.entry("a/b/c.txt")
        assert c.exists
        assert c.oid == blob_oid(b"C")
        assert not w.entry("a/f/x").exists
        assert not w.entry("q/r").exists

    def test_for_ref(self, repo, commit):
        oid = commit({"a": b"1"}, branch="main")
        w = TreeWalker.for_ref(repo.objects, repo.refs, "main")
        assert w.oid == oid
        assert w.entry("a").exists

    def test_none_is_empty(self, repo):
        w = TreeWalker(repo.objects, None)
        assert not w.entry(ROOT).exists
        assert not w.entry("anything").exists


class TestAbsent:
    def test_absent_entry(self):
        e = WalkerEntry.absent("x/y")
        assert not e.exists
        assert e.basename == "y"
        assert not e.is_dir
        e.populate_content()
        assert e.oid is None
