"""
Exception hierarchy for the drive core.

Every error carries a human-readable message plus optional structured
context, which the API layer and the logs both use.
"""

from __future__ import annotations

from typing import Any


class DriveError(Exception):
    """Base exception for all drive errors.

    Attributes:
        message: Human-readable error message.
        context: Optional structured context for logging/debugging.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class NotFound(DriveError):
    """A referenced catalog entry or blob does not exist."""


class UnsupportedType(DriveError):
    """The file extension is not on the allow-list.

    Context includes:
        - name: The rejected file name
        - allowed: The configured extensions
    """


class IOFault(DriveError):
    """The underlying blob or catalog storage failed to read or write."""


class CatalogCorrupt(DriveError):
    """The catalog snapshot could not be parsed.

    Raised internally by the catalog store and recovered from by treating
    the catalog as empty.
    """


class AuthenticationFailed(DriveError):
    """Username and password did not match a catalog user."""
