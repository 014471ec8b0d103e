"""Helpers for building and normalizing public media URLs."""

from __future__ import annotations

import posixpath
from urllib.parse import unquote, urlsplit


def base_path_of(public_base: str) -> str:
    """Return the path component of ``public_base`` without trailing slash."""
    parts = urlsplit(public_base.strip())
    if parts.scheme and parts.netloc:
        return parts.path.rstrip("/")
    return public_base.strip().rstrip("/")


def build_public_url(public_base: str, root_relative: str) -> str:
    """Join the configured public base with a root-relative path."""
    return f"{public_base.rstrip('/')}/{root_relative.lstrip('/')}"


def normalize_public_url(url: str | None, public_base: str) -> str | None:
    """Reduce ``url`` to a path under the public base, or ``None``.

    Absolute URLs are cut down to their path, a missing leading slash is
    added, and a bare ``/themes/...`` path gets the base path prefixed. Paths
    that are not already in normal form (``.``, ``..``, ``//``, percent escapes,
    backslashes) are rejected.
    The case of the path is preserved; callers compare with ``casefold()``.
    """
    if url is None:
        return None
    value = url.strip()
    if not value:
        return None

    parts = urlsplit(value)
    if parts.scheme and parts.netloc:
        value = parts.path
    else:
        value = parts.path or value

    if not value.startswith("/"):
        value = "/" + value
    if "\\" in value or posixpath.normpath(unquote(value)) != value:
        return None

    base_path = base_path_of(public_base)
    if not base_path:
        return value

    prefix = base_path + "/"
    if not value.casefold().startswith(prefix.casefold()):
        if value.casefold().startswith("/themes/"):
            value = base_path + value
        else:
            return None
    return value


def root_relative_path(url: str | None, public_base: str) -> str | None:
    """Strip the public base from ``url``: ``/media/themes/x`` -> ``themes/x``."""
    normalized = normalize_public_url(url, public_base)
    if normalized is None:
        return None
    base_path = base_path_of(public_base)
    return normalized[len(base_path):].lstrip("/")

