"""Theme file storage under ``{root}/themes``."""

from __future__ import annotations

import logging
import os
import shutil
import uuid
from dataclasses import dataclass, field
from pathlib import Path

from ..config import StoragePaths
from ..uploads.uploads_errors import PathTraversalError
from .public_media_links import build_public_url, root_relative_path


def resolve_inside_root(root: Path | str, root_relative: str) -> Path:
    """Canonicalize ``root / root_relative``, following existing symlinks.

    Raises :class:`PathTraversalError` when the result is not strictly inside
    ``root``.
    """
    if not root_relative or os.path.isabs(root_relative) or "\\" in root_relative:
        raise PathTraversalError(f"invalid storage path: {root_relative!r}")
    full_root = os.path.realpath(os.fspath(root))
    candidate = os.path.realpath(os.path.join(full_root, root_relative))
    if os.path.commonpath([full_root, candidate]) != full_root or candidate == full_root:
        raise PathTraversalError(f"path escapes storage root: {root_relative!r}")
    return Path(candidate)


def theme_relative_path(theme_id: str, relative: str = "") -> str:
    """``themes/{theme_id}/{relative}`` with a clean separator."""
    base = f"themes/{theme_id}"
    return f"{base}/{relative.lstrip('/')}" if relative else base


@dataclass(slots=True)
class ThemeFileStore:
    """Create, move and delete theme files below the storage root."""

    paths: StoragePaths
    log: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def resolve(self, root_relative: str) -> Path:
        return resolve_inside_root(self.paths.root, root_relative)

    def public_url(self, root_relative: str) -> str:
        return build_public_url(self.paths.public_base, root_relative)

    def path_for_url(self, url: str | None) -> Path | None:
        """Physical path behind a public URL, or ``None`` when it is foreign."""
        relative = root_relative_path(url, self.paths.public_base)
        if not relative:
            return None
        try:
            return self.resolve(relative)
        except PathTraversalError:
            self.log.warning("storage.url.outside_root", extra={"url": url})
            return None

    def write_bytes(self, root_relative: str, data: bytes) -> Path:
        """Write ``data`` atomically; an existing file at the target is replaced."""
        target = self.resolve(root_relative)
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp = target.with_name(f".{target.name}.{uuid.uuid4().hex}.tmp")
        try:
            tmp.write_bytes(data)
            os.replace(tmp, target)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise
        return target

    def move(self, source: Path, destination: Path) -> None:
        """Move ``source`` onto ``destination``, replacing what is there."""
        destination.parent.mkdir(parents=True, exist_ok=True)
        if destination.exists():
            destination.unlink()
        shutil.move(os.fspath(source), os.fspath(destination))

    def delete_file(self, path: Path) -> bool:
        """Delete a single file; a missing file is not an error."""
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True

    def delete_url(self, url: str | None) -> bool:
        """Delete the file behind ``url`` only when it lives under the public base."""
        path = self.path_for_url(url)
        if path is None:
            return False
        return self.delete_file(path)

    def remove_tree(self, root_relative: str) -> bool:
        """Recursively delete a directory below the root."""
        directory = self.resolve(root_relative)
        if not directory.exists():
            return False
        shutil.rmtree(directory)
        return True
