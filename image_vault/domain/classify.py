"""
Remote error classification.

Maps foreign errors raised by the store client onto the image_vault
taxonomy. Callers re-raise image_vault errors untouched and only pass
foreign exceptions in here. Nothing in this module retries.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from image_vault.core.errors import (
    FetchError,
    FetchFailure,
    ImageVaultError,
    MutationError,
    NotFoundError,
)

NETWORK_ERROR_CODES = frozenset({"ETIMEDOUT", "ECONNREFUSED", "ECONNRESET", "EAI_AGAIN"})

_ALREADY_EXISTS = re.compile(r"already[ _]exists", re.IGNORECASE)


def _error_payload(error: BaseException) -> Mapping[str, Any]:
    payload = getattr(error, "error", None)
    return payload if isinstance(payload, Mapping) else {}


def http_status_of(error: BaseException) -> int | None:
    """HTTP status carried by a client error, if any."""
    for value in (getattr(error, "http_code", None), _error_payload(error).get("http_code")):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def message_of(error: BaseException) -> str:
    nested = _error_payload(error).get("message")
    if isinstance(nested, str) and nested:
        return nested
    return str(error)


def is_network_error(error: BaseException) -> bool:
    """True for timeouts, refused/reset connections and DNS failures."""
    if isinstance(error, (TimeoutError, ConnectionError)):
        return True
    return getattr(error, "code", None) in NETWORK_ERROR_CODES


def classify_fetch_error(
    error: BaseException,
    context: dict[str, Any],
    *,
    key: str | None = None,
) -> ImageVaultError:
    """
    Classify a failed fetch or listing call.

    Returns NotFoundError for a 404 when ``key`` is given, otherwise a
    FetchError with the matching failure sub-cause.
    """
    status = http_status_of(error)

    if status == 404 and key is not None:
        return NotFoundError(key, error)

    if is_network_error(error):
        return FetchError(
            "Network error while fetching image.", context, error, failure=FetchFailure.NETWORK
        )

    if status in (401, 403):
        return FetchError(
            "Authentication error while fetching image.",
            context,
            error,
            failure=FetchFailure.AUTH,
        )

    if status is not None and status >= 500:
        return FetchError(
            "The image store failed to serve the request.",
            context,
            error,
            failure=FetchFailure.SERVER,
        )

    return FetchError(
        message_of(error) or "Error while fetching image.", context, error
    )


def classify_mutation_error(
    error: BaseException,
    error_cls: type[MutationError],
    source_key: str,
    target_key: str,
) -> ImageVaultError:
    """
    Classify a failed remote rename.

    404 means the source vanished. 409 or an "already exists" message is a
    target collision.
    """
    status = http_status_of(error)

    if status == 404:
        return NotFoundError(source_key, error)

    if status == 409 or _ALREADY_EXISTS.search(message_of(error)):
        return error_cls(
            "The target public id already exists.",
            source_key,
            target_key,
            error,
            collision=True,
        )

    return error_cls(
        message_of(error) or "Error while changing the image identity.",
        source_key,
        target_key,
        error,
    )


def classify_operation_error(
    error: BaseException,
    error_cls: type[ImageVaultError],
    default_message: str,
    context: dict[str, Any],
) -> ImageVaultError:
    """Wrap a failed upload/replace/delete call in ``error_cls``."""
    return error_cls(message_of(error) or default_message, context, error)
