"""
Error taxonomy for image_vault.

Every public operation either returns a normalized value or raises exactly
one of the errors below. Errors raised by this package are never re-wrapped;
only foreign errors coming out of the remote store client are classified.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ImageVaultError(Exception):
    """Base error for image_vault."""

    code = "IMAGE_VAULT_ERROR"

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        original: BaseException | None = None,
    ) -> None:
        self.message = message
        self.context = dict(context or {})
        self.original = original
        super().__init__(message)


class ValidationError(ImageVaultError):
    """Malformed input. Raised before any remote call is made."""

    code = "VALIDATION_ERROR"


class ConfigurationError(ImageVaultError):
    """Missing or invalid credentials/configuration."""

    code = "CONFIGURATION_ERROR"


class NotFoundError(ImageVaultError):
    """Remote resource does not exist."""

    code = "NOT_FOUND"

    def __init__(self, key: str, original: BaseException | None = None) -> None:
        self.key = key
        super().__init__(f"Resource not found: {key}", {"public_id": key}, original)


class UploadError(ImageVaultError):
    """Upload of a new image failed."""

    code = "UPLOAD_ERROR"


class ReplaceError(ImageVaultError):
    """Replacing the bytes of an existing image failed."""

    code = "REPLACE_ERROR"


class DeleteError(ImageVaultError):
    """Deleting an image failed."""

    code = "DELETE_ERROR"


class FetchFailure(str, Enum):
    """Sub-cause of a FetchError."""

    NETWORK = "network"
    AUTH = "auth"
    SERVER = "server"
    PAYLOAD = "payload"
    UNKNOWN = "unknown"


class FetchError(ImageVaultError):
    """Fetching or listing images failed."""

    code = "FETCH_ERROR"

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        original: BaseException | None = None,
        *,
        failure: FetchFailure = FetchFailure.UNKNOWN,
    ) -> None:
        self.failure = failure
        super().__init__(message, context, original)


class MutationError(ImageVaultError):
    """
    Identity-changing operation failed.

    Carries both keys. ``collision`` is True when the target key was already
    taken on the remote store.
    """

    code = "MUTATION_ERROR"

    def __init__(
        self,
        message: str,
        source_key: str,
        target_key: str,
        original: BaseException | None = None,
        *,
        collision: bool = False,
    ) -> None:
        self.source_key = source_key
        self.target_key = target_key
        self.collision = collision
        super().__init__(
            message,
            {"public_id": source_key, "target_public_id": target_key},
            original,
        )


class RenameError(MutationError):
    """Rename or prefix change failed."""

    code = "RENAME_ERROR"


class RelocateError(MutationError):
    """Move to another folder failed."""

    code = "RELOCATE_ERROR"
