"""Tests for the checkout journal."""

import pytest

from gitcheckout._types import GIT_FILEMODE_BLOB, Operation, OpKind
from gitcheckout.journal import JOURNAL_NAME, CheckoutJournal

OID = "a" * 40


@pytest.fixture
def journal(tmp_path):
    return CheckoutJournal(tmp_path)


def _plan():
    return [
        Operation(OpKind.UNLINK, "old.txt"),
        Operation(OpKind.WRITE, "new.txt", OID, GIT_FILEMODE_BLOB),
    ]


class TestJournal:
    def test_none_by_default(self, journal):
        assert journal.read() is None

    def test_begin_and_applied(self, journal):
        journal.begin("feature", OID, _plan())
        journal.applied(_plan()[0])
        state = journal.read()
        assert state.ref == "feature"
        assert state.oid == OID
        assert state.operations == _plan()
        assert state.applied == [_plan()[0]]
        assert state.pending == [_plan()[1]]

    def test_begin_replaces(self, journal):
        journal.begin("one", OID, _plan())
        journal.applied(_plan()[0])
        journal.begin("two", OID, [])
        state = journal.read()
        assert state.ref == "two"
        assert state.applied == []

    def test_torn_line_ignored(self, journal, tmp_path):
        journal.begin("feature", OID, _plan())
        with open(tmp_path / JOURNAL_NAME, "a") as f:
            f.write('{"event": "appl')
        state = journal.read()
        assert state.applied == []
        assert len(state.pending) == 2

    def test_clear(self, journal):
        journal.begin("feature", OID, _plan())
        journal.clear()
        assert journal.read() is None
        journal.clear()
