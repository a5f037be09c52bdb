import logging

from .repo import Repo
from .checkout import checkout, current_branch, plan_checkout, apply_checkout
from ._types import CheckoutResult, Conflict, Operation, OpKind, ObjectType, GitObject, TreeEntry
from .exceptions import (
    GitCheckoutError, MissingRequiredParameter, RefNotFound, MaxDepthExceeded,
    InvalidRefName, RefLocked, ObjectNotFound, CommitNotFetched, TypeMismatch,
    NotImplementedFail, InternalFail,
)
from .walk import walk, SKIP
from .walkers import WalkerEntry, WorkdirWalker, IndexWalker, TreeWalker

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "Repo", "checkout", "current_branch", "plan_checkout", "apply_checkout",
    "CheckoutResult", "Conflict", "Operation", "OpKind", "ObjectType", "GitObject", "TreeEntry",
    "GitCheckoutError", "MissingRequiredParameter", "RefNotFound", "MaxDepthExceeded",
    "InvalidRefName", "RefLocked", "ObjectNotFound", "CommitNotFetched", "TypeMismatch",
    "NotImplementedFail", "InternalFail",
    "walk", "SKIP", "WalkerEntry", "WorkdirWalker", "IndexWalker", "TreeWalker",
]
