"""Outcome of comparing a desired record with the remote one."""

from enum import Enum


class Decision(str, Enum):
    """What was (or, in a dry run, would be) done with one record."""

    CREATE = "create"
    UPDATE = "update"
    SKIP = "skip"
    DELETE = "delete"
    MISSING = "missing"
