"""Storage error taxonomy.

Backend-library exceptions never leave the storage layer: backends and the
proxy translate them into one of these types and chain the original.
"""

from __future__ import annotations


class StorageError(Exception):
    """Base exception for document storage operations.

    Attributes:
        message: Human-readable error message.
        key: Canonical path associated with the operation (if applicable).
    """

    def __init__(self, message: str, *, key: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.key = key

    def __str__(self) -> str:
        if self.key:
            return f"{self.message} key={self.key}"
        return self.message


class NotFoundError(StorageError):
    """No backend holds an object under the requested path."""

    def __init__(self, message: str = "Document not found", *, key: str | None = None) -> None:
        super().__init__(message, key=key)


class BackendUnavailableError(StorageError):
    """A backend could not complete the operation (network, I/O, throttling)."""

    def __init__(
        self,
        message: str = "Storage backend unavailable",
        *,
        key: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, key=key)
        self.cause = cause


class InvalidReferenceError(StorageError):
    """Path components are malformed or a stored reference cannot be parsed."""

    def __init__(self, message: str = "Invalid document reference", *, key: str | None = None) -> None:
        super().__init__(message, key=key)


class PermissionDeniedError(StorageError):
    """Credential issuance or an authorized read was refused."""

    def __init__(self, message: str = "Permission denied", *, key: str | None = None) -> None:
        super().__init__(message, key=key)
