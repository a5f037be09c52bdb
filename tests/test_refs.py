"""Tests for ref resolution and ref writing."""

import os

import pytest

from gitcheckout import InvalidRefName, MaxDepthExceeded, RefLocked, RefNotFound
from gitcheckout.fs import FileSystem
from gitcheckout.refs import RefResolver, refpaths, validate_ref_name

OID_A = "a" * 40
OID_B = "b" * 40
OID_C = "c" * 40


def _put(gitdir, name, content):
    path = os.path.join(gitdir, *name.split("/"))
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w") as f:
        f.write(content)


@pytest.fixture
def gitdir(tmp_path):
    d = tmp_path / ".git"
    (d / "refs" / "heads").mkdir(parents=True)
    (d / "refs" / "tags").mkdir()
    return str(d)


@pytest.fixture
def refs(gitdir):
    return RefResolver(gitdir)


class TestRefpaths:
    def test_order(self):
        assert refpaths("main") == [
            "main",
            "refs/main",
            "refs/tags/main",
            "refs/heads/main",
            "refs/remotes/main",
            "refs/remotes/main/HEAD",
        ]


class TestResolve:
    def test_oid_passthrough(self, refs):
        assert refs.resolve(OID_A) == OID_A

    def test_branch(self, refs, gitdir):
        _put(gitdir, "refs/heads/main", OID_A + "\n")
        assert refs.resolve("main") == OID_A
        assert refs.resolve("refs/heads/main") == OID_A
        assert refs.resolve("heads/main") == OID_A

    def test_tag_beats_branch(self, refs, gitdir):
        _put(gitdir, "refs/heads/v1", OID_A + "\n")
        _put(gitdir, "refs/tags/v1", OID_B + "\n")
        assert refs.resolve("v1") == OID_B

    def test_symbolic_head(self, refs, gitdir):
        _put(gitdir, "refs/heads/main", OID_A + "\n")
        _put(gitdir, "HEAD", "ref: refs/heads/main\n")
        assert refs.resolve("HEAD") == OID_A

    def test_symref_string(self, refs, gitdir):
        _put(gitdir, "refs/heads/main", OID_A + "\n")
        assert refs.resolve("ref: refs/heads/main") == OID_A

    def test_remote_head(self, refs, gitdir):
        _put(gitdir, "refs/remotes/origin/main", OID_C + "\n")
        _put(gitdir, "refs/remotes/origin/HEAD", "ref: refs/remotes/origin/main\n")
        assert refs.resolve("origin") == OID_C
        assert refs.resolve("origin/main") == OID_C

    def test_missing(self, refs):
        with pytest.raises(RefNotFound) as exc:
            refs.resolve("nope")
        assert exc.value.ref == "nope"

    def test_unborn_branch(self, refs, gitdir):
        _put(gitdir, "HEAD", "ref: refs/heads/main\n")
        with pytest.raises(RefNotFound):
            refs.resolve("HEAD")
        assert refs.resolve_or_none("HEAD") is None

    def test_garbage_value(self, refs, gitdir):
        _put(gitdir, "refs/heads/bad", "not an oid\n")
        with pytest.raises(RefNotFound):
            refs.resolve("bad")

    def test_idempotent(self, refs, gitdir):
        _put(gitdir, "refs/heads/main", OID_A + "\n")
        _put(gitdir, "HEAD", "ref: refs/heads/main\n")
        first = refs.resolve("HEAD")
        assert refs.resolve(first) == first
        assert refs.resolve("HEAD") == first


class TestDepth:
    def test_chain_within_depth(self, refs, gitdir):
        _put(gitdir, "refs/heads/main", OID_A + "\n")
        _put(gitdir, "refs/heads/l1", "ref: refs/heads/main\n")
        _put(gitdir, "refs/heads/l2", "ref: refs/heads/l1\n")
        assert refs.resolve("l2", depth=2) == OID_A

    def test_chain_too_long(self, refs, gitdir):
        _put(gitdir, "refs/heads/main", OID_A + "\n")
        _put(gitdir, "refs/heads/l1", "ref: refs/heads/main\n")
        _put(gitdir, "refs/heads/l2", "ref: refs/heads/l1\n")
        with pytest.raises(MaxDepthExceeded):
            refs.resolve("l2", depth=1)

    def test_cycle(self, refs, gitdir):
        _put(gitdir, "refs/heads/x", "ref: refs/heads/y\n")
        _put(gitdir, "refs/heads/y", "ref: refs/heads/x\n")
        with pytest.raises(MaxDepthExceeded):
            refs.resolve("x")

    def test_resolve_symbolic_cycle(self, refs, gitdir):
        _put(gitdir, "refs/heads/x", "ref: refs/heads/y\n")
        _put(gitdir, "refs/heads/y", "ref: refs/heads/x\n")
        with pytest.raises(MaxDepthExceeded):
            refs.resolve_symbolic("refs/heads/x")


class TestPackedRefs:
    def test_plain(self, refs, gitdir):
        _put(gitdir, "packed-refs", f"{OID_A} refs/heads/main\n{OID_B} refs/tags/v1\n")
        assert refs.packed_refs() == {"refs/heads/main": OID_A, "refs/tags/v1": OID_B}
        assert refs.resolve("main") == OID_A
        assert refs.resolve("v1") == OID_B

    def test_peeled_header(self, refs, gitdir):
        _put(gitdir, "packed-refs",
             "# pack-refs with: peeled fully-peeled sorted \n"
             f"{OID_B} refs/tags/v1\n"
             f"^{OID_C}\n"
             f"{OID_A} refs/heads/main\n")
        assert refs.resolve("v1") == OID_B
        assert refs.resolve("main") == OID_A

    def test_loose_overrides_packed(self, refs, gitdir):
        _put(gitdir, "packed-refs", f"{OID_A} refs/heads/main\n")
        _put(gitdir, "refs/heads/main", OID_B + "\n")
        assert refs.resolve("main") == OID_B

    def test_list_refs_merges(self, refs, gitdir):
        _put(gitdir, "packed-refs", f"{OID_A} refs/heads/main\n")
        _put(gitdir, "refs/heads/dev", OID_B + "\n")
        _put(gitdir, "refs/tags/v1", OID_C + "\n")
        assert refs.list_refs("refs/heads/") == ["refs/heads/dev", "refs/heads/main"]
        assert refs.list_refs() == ["refs/heads/dev", "refs/heads/main", "refs/tags/v1"]


class TestExpandAbbrev:
    def test_expand(self, refs, gitdir):
        _put(gitdir, "refs/heads/main", OID_A + "\n")
        _put(gitdir, "refs/tags/v1", OID_B + "\n")
        assert refs.expand("main") == "refs/heads/main"
        assert refs.expand("v1") == "refs/tags/v1"
        assert refs.expand(OID_C) == OID_C

    def test_expand_missing(self, refs):
        with pytest.raises(RefNotFound):
            refs.expand("nope")

    @pytest.mark.parametrize("full, short", [
        ("refs/heads/main", "main"),
        ("refs/tags/v1.0", "v1.0"),
        ("refs/remotes/origin/dev", "origin/dev"),
        ("refs/remotes/origin/HEAD", "origin"),
        ("HEAD", "HEAD"),
    ])
    def test_abbrev(self, full, short):
        assert RefResolver.abbrev(full) == short

    def test_resolve_symbolic(self, refs, gitdir):
        _put(gitdir, "HEAD", "ref: refs/heads/main\n")
        assert refs.resolve_symbolic("HEAD") == "refs/heads/main"
        _put(gitdir, "HEAD", OID_A + "\n")
        assert refs.resolve_symbolic("HEAD") == "HEAD"


class TestWrite:
    def test_write_ref(self, refs, gitdir):
        refs.write_ref("refs/heads/feature/x", OID_A)
        with open(os.path.join(gitdir, "refs", "heads", "feature", "x")) as f:
            assert f.read() == OID_A + "\n"
        assert refs.exists("refs/heads/feature/x")

    def test_write_symbolic(self, refs, gitdir):
        refs.write_symbolic_ref("HEAD", "refs/heads/dev")
        with open(os.path.join(gitdir, "HEAD")) as f:
            assert f.read() == "ref: refs/heads/dev\n"

    def test_no_lock_file_left(self, refs, gitdir):
        refs.write_ref("refs/heads/main", OID_A)
        assert not os.path.exists(os.path.join(gitdir, "refs", "heads", "main.lock"))

    def test_held_lock_refused(self, refs, gitdir):
        refs.write_ref("refs/heads/feature", OID_A)
        lock = os.path.join(gitdir, "refs", "heads", "feature.lock")
        with open(lock, "w") as f:
            f.write(OID_C + "\n")
        with pytest.raises(RefLocked) as exc:
            refs.write_ref("refs/heads/feature", OID_B)
        assert exc.value.ref == "refs/heads/feature"
        assert refs.resolve("refs/heads/feature") == OID_A
        with open(lock) as f:
            assert f.read() == OID_C + "\n"

    def test_writes_through_fs(self, gitdir):
        class RecordingFS(FileSystem):
            def __init__(self):
                self.written = []

            def write_locked(self, path, data):
                self.written.append((os.path.relpath(path, gitdir), data))
                super().write_locked(path, data)

        fs = RecordingFS()
        refs = RefResolver(gitdir, fs)
        refs.write_ref("refs/heads/main", OID_A)
        refs.write_symbolic_ref("HEAD", "refs/heads/main")
        assert fs.written == [
            (os.path.join("refs", "heads", "main"), (OID_A + "\n").encode()),
            ("HEAD", b"ref: refs/heads/main\n"),
        ]
        assert refs.resolve("HEAD") == OID_A

    def test_invalid_oid(self, refs):
        with pytest.raises(ValueError):
            refs.write_ref("refs/heads/main", "xyz")

    @pytest.mark.parametrize("name", [
        "refs/heads/bad..name",
        "refs/heads/has space",
        "refs/heads/ends.lock",
        "nosep",
    ])
    def test_invalid_names(self, refs, name):
        with pytest.raises(InvalidRefName):
            refs.write_ref(name, OID_A)

    def test_head_is_valid(self):
        validate_ref_name("HEAD")
