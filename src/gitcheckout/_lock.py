"""Exclusive git-directory lock guarding the staging index.

Threads of one process are serialized by a shared ``RLock`` per git
directory; processes by an OS lock on ``<gitdir>/gitcheckout.lock``.
The holding thread may acquire again (nested ``with`` blocks); the OS
lock is taken on the outermost acquisition only.
"""

from __future__ import annotations

import os
import threading

LOCK_NAME = "gitcheckout.lock"


class _LockState:
    __slots__ = ("rlock", "depth", "fd")

    def __init__(self):
        self.rlock = threading.RLock()
        self.depth = 0
        self.fd: int | None = None


_states: dict[str, _LockState] = {}
_states_guard = threading.Lock()


def _state_for(gitdir: str) -> _LockState:
    key = os.path.normcase(os.path.realpath(gitdir))
    with _states_guard:
        state = _states.get(key)
        if state is None:
            state = _states[key] = _LockState()
        return state


try:
    import fcntl

    def _os_lock(path: str) -> int:
        fd = os.open(path, os.O_CREAT | os.O_RDWR | getattr(os, "O_CLOEXEC", 0))
        try:
            fcntl.flock(fd, fcntl.LOCK_EX)
        except BaseException:
            os.close(fd)
            raise
        return fd

    def _os_unlock(fd: int) -> None:
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)

except ImportError:
    import msvcrt

    def _os_lock(path: str) -> int:
        fd = os.open(path, os.O_CREAT | os.O_RDWR)
        os.set_inheritable(fd, False)
        try:
            msvcrt.locking(fd, msvcrt.LK_LOCK, 1)
        except BaseException:
            os.close(fd)
            raise
        return fd

    def _os_unlock(fd: int) -> None:
        try:
            msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)
        finally:
            os.close(fd)


class GitdirLock:
    """Exclusive lock on a git directory; blocks until available.

    Usable as a context manager::

        with GitdirLock(gitdir):
            ...
    """

    def __init__(self, gitdir: str | os.PathLike[str]):
        self.gitdir = os.fspath(gitdir)
        self.path = os.path.join(self.gitdir, LOCK_NAME)
        self._state = _state_for(self.gitdir)

    def __repr__(self) -> str:
        return f"GitdirLock({self.gitdir!r}, depth={self._state.depth})"

    def acquire(self) -> None:
        state = self._state
        state.rlock.acquire()
        if state.depth == 0:
            try:
                state.fd = _os_lock(self.path)
            except BaseException:
                state.rlock.release()
                raise
        state.depth += 1

    def release(self) -> None:
        state = self._state
        state.depth -= 1
        try:
            if state.depth == 0:
                fd, state.fd = state.fd, None
                _os_unlock(fd)
        finally:
            state.rlock.release()

    def __enter__(self) -> GitdirLock:
        self.acquire()
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()
