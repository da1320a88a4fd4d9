"""
Delivery URL parsing.

Recovers the public id from a store-hosted URL such as::

    https://res.cloudinary.com/demo/image/upload/w_400,h_300/v1700000000/products/photo.jpg

Everything up to the upload marker is store routing. After it come any
number of transformation segments with an optional version segment among
them, and then the asset path ``folder/file_name.format``.
"""

from __future__ import annotations

import re
from urllib.parse import unquote, urlparse

from image_vault.core.entities import UrlIdentity
from image_vault.core.errors import ValidationError
from image_vault.rules.models import UrlRules

_VERSION = re.compile(r"v\d+")

# Transformation parameter names understood by the store.
_TRANSFORMATION_KEYS = frozenset(
    {
        "a", "ac", "af", "ar", "b", "bl", "bo", "br", "c", "co", "cs", "d",
        "dl", "dn", "dpr", "du", "e", "eo", "f", "fl", "fn", "fps", "g", "h",
        "if", "ki", "l", "o", "p", "pg", "q", "r", "so", "sp", "t", "u", "vc",
        "vs", "w", "x", "y", "z",
    }
)
_TOKEN = re.compile(r"(\$?[a-z0-9]+)_[^,]+")


def _is_transformation(segment: str) -> bool:
    """True for segments like ``w_400,h_300,c_fill``."""
    for token in segment.split(","):
        match = _TOKEN.fullmatch(token)
        if not match:
            return False
        key = match.group(1)
        if not key.startswith("$") and key not in _TRANSFORMATION_KEYS:
            return False
    return True


def _host_allowed(host: str, suffix: str) -> bool:
    return host == suffix or host.endswith(f".{suffix}")


def parse_public_id_from_url(url: str, rules: UrlRules | None = None) -> UrlIdentity:
    """
    Extract the public id and its parts from a delivery URL.

    Args:
        url: Full delivery URL. Surrounding whitespace is ignored.
        rules: Host and marker configuration (defaults apply when None).

    Returns:
        UrlIdentity; ``folder`` and ``format`` are '' when absent.

    Raises:
        ValidationError: If the URL is blank, unparseable, not hosted on the
            store's domain, lacks the upload marker, or has no asset path.
    """
    rules = rules or UrlRules()

    if not isinstance(url, str) or not url.strip():
        raise ValidationError("The URL is required.")

    text = url.strip()
    try:
        parsed = urlparse(text)
        host = (parsed.hostname or "").lower()
    except ValueError as err:
        raise ValidationError("The URL is not valid.", {"url": text}, err) from err

    if parsed.scheme not in ("http", "https") or not host:
        raise ValidationError("The URL is not valid.", {"url": text})

    if not _host_allowed(host, rules.host_suffix):
        raise ValidationError("The URL does not belong to the image store.", {"url": text})

    marker_at = parsed.path.find(rules.upload_marker)
    if marker_at == -1:
        raise ValidationError(
            f"The URL does not contain '{rules.upload_marker}'.", {"url": text}
        )

    remainder = parsed.path[marker_at + len(rules.upload_marker) :]
    segments = [unquote(part) for part in remainder.split("/") if part]

    # Transformations may sit on either side of the version segment.
    version_seen = False
    while segments:
        head = segments[0]
        if not version_seen and _VERSION.fullmatch(head):
            version_seen = True
        elif not _is_transformation(head):
            break
        segments.pop(0)

    if not segments:
        raise ValidationError("The URL does not contain a public id.", {"url": text})

    folder = "/".join(segments[:-1])
    stem, dot, extension = segments[-1].rpartition(".")
    if dot and stem:
        file_name, file_format = stem, extension
    else:
        file_name, file_format = segments[-1], ""

    public_id = f"{folder}/{file_name}" if folder else file_name
    return UrlIdentity(
        public_id=public_id,
        folder=folder,
        file_name=file_name,
        format=file_format,
    )
