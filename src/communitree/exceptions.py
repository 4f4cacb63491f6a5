"""CommuniTree exception types."""

from __future__ import annotations


class CommunitreeError(Exception):
    """Base class for engine errors."""


class StorageError(CommunitreeError):
    """Raised by a key-value medium that cannot read or write."""


class UnknownTrustActionError(CommunitreeError, KeyError):
    """Trust action key that is not in the points table."""

    def __init__(self, action: object) -> None:
        self.action = action
        super().__init__(f"Unknown trust action: {action!r}")

    def __str__(self) -> str:
        return self.args[0]


class NoActiveUserError(CommunitreeError):
    """A user-scoped operation was called without an active user."""


class RepairError(CommunitreeError):
    """A single consistency repair failed."""

    def __init__(self, issue: object, cause: BaseException) -> None:
        self.issue = issue
        self.cause = cause
        super().__init__(f"Failed to repair {issue!r}: {cause}")
