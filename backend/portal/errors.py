"""
Error taxonomy shared by repositories, use cases and web adapters.

Authorization keeps using the builtin `PermissionError`. Rows that are missing
or not visible raise `NotFound`, a `LookupError` subclass, so a stray
`KeyError` from a bug is never mistaken for a 404.
"""
from __future__ import annotations


class ValidationFailed(ValueError):
    """Input rejected before any network call. Carries the first violation only."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(code)
        self.code = code
        self.message = message


class NotFound(LookupError):
    """Row missing or not visible to the caller."""


class ConflictError(Exception):
    """A uniqueness invariant refused the write (e.g. duplicate application)."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class ServiceUnavailable(RuntimeError):
    """Datastore or identity provider could not be reached. Not retried."""


class InvalidCredentials(Exception):
    """Sign-in rejected by the identity provider."""


__all__ = ["ConflictError", "InvalidCredentials", "NotFound", "ServiceUnavailable", "ValidationFailed"]
