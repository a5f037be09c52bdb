"""Exceptions for gitcheckout.

Every error raised out of a top-level operation carries a ``caller``
attribute naming that operation (see :func:`tag_caller`).
"""

from __future__ import annotations

import functools
from collections.abc import Callable
from typing import TypeVar

_F = TypeVar("_F", bound=Callable)


class GitCheckoutError(Exception):
    """Base class for all gitcheckout errors."""

    caller: str | None = None


class MissingRequiredParameter(GitCheckoutError):
    """A required argument was not supplied by the caller."""

    def __init__(self, function: str, parameter: str):
        self.function = function
        self.parameter = parameter
        super().__init__(f"{function}: missing required parameter {parameter!r}")


class RefNotFound(GitCheckoutError):
    """No loose or packed ref matches the requested name."""

    def __init__(self, ref: str):
        self.ref = ref
        super().__init__(f"Could not find ref {ref!r}")


class MaxDepthExceeded(GitCheckoutError):
    """A symbolic ref chain is longer than the allowed depth (or cyclic)."""

    def __init__(self, ref: str, depth: int):
        self.ref = ref
        self.depth = depth
        super().__init__(f"Symbolic ref {ref!r} exceeds maximum depth {depth}")


class InvalidRefName(GitCheckoutError, ValueError):
    """A ref name fails git's ref-format rules."""

    def __init__(self, ref: str):
        self.ref = ref
        super().__init__(f"Invalid ref name {ref!r}")


class RefLocked(GitCheckoutError):
    """Another writer holds the lock file of a ref."""

    def __init__(self, ref: str):
        self.ref = ref
        super().__init__(f"Unable to update ref {ref!r}: another writer holds its lock")


class ObjectNotFound(GitCheckoutError):
    """The object is absent from both loose and packed storage."""

    def __init__(self, oid: str):
        self.oid = oid
        super().__init__(f"Object {oid} not found")


class CommitNotFetched(ObjectNotFound):
    """The checkout target commit is missing locally.

    Usually means the ref was updated without fetching its objects.
    """

    def __init__(self, ref: str, oid: str):
        super().__init__(oid)
        self.ref = ref
        self.args = (
            f"Failed to checkout {ref!r} because commit {oid} is not available "
            "locally. Do a fetch first.",
        )


class TypeMismatch(GitCheckoutError):
    """An object was found but is not of the expected type."""

    def __init__(self, oid: str, expected: str, actual: str, path: str | None = None):
        self.oid = oid
        self.expected = expected
        self.actual = actual
        self.path = path
        where = f" at {path!r}" if path else ""
        super().__init__(f"Object {oid}{where} is a {actual}, expected {expected}")


class NotImplementedFail(GitCheckoutError):
    """Feature not supported yet (e.g. submodules)."""

    def __init__(self, thing: str):
        self.thing = thing
        super().__init__(f"No support for {thing} yet")


class InternalFail(GitCheckoutError):
    """A state believed to be unreachable was reached."""


def tag_caller(name: str) -> Callable[[_F], _F]:
    """Decorator: stamp ``caller = name`` on any exception escaping *fn*.

    Nested operations re-stamp on the way out, so the outermost
    operation's name is what the caller sees.
    """
    def decorate(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except Exception as err:
                try:
                    err.caller = name
                except AttributeError:
                    pass
                raise
        return wrapper
    return decorate
