"""Error taxonomy for the CRD-backed key-value store.

Every error raised by the store derives from `StorageError` so callers can
catch the whole family at once. Errors that have a natural builtin
counterpart also derive from it (`NotFoundError` is a `KeyError`,
`InvalidConfigError` and `InvalidKeyError` are `ValueError`s) so code that
treats storage backends generically keeps working.
"""
from __future__ import annotations
from typing import Optional


class StorageError(Exception):
    """Base class for all store errors."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message

    def with_context(self, context: str) -> "StorageError":
        """Return an error of the same kind with `context` prepended."""
        err = _copy_error(self)
        err.message = f"{context}: {self.message}" if self.message else context
        err.args = (err.message,)
        return err


class InvalidConfigError(StorageError, ValueError):
    pass


class InvalidKeyError(StorageError, ValueError):
    pass


class NotFoundError(StorageError, KeyError):
    def __str__(self) -> str:
        # KeyError would repr() the message
        return self.message


class AlreadyExistsError(StorageError):
    pass


class ConflictError(StorageError):
    pass


class BackendError(StorageError):
    def __init__(self, message: str = "", status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CancelledError(StorageError):
    pass


class DeadlineExceededError(CancelledError):
    pass


def _copy_error(err: StorageError) -> StorageError:
    clone = err.__class__.__new__(err.__class__)
    clone.__dict__.update(err.__dict__)
    clone.__cause__ = err.__cause__
    return clone
