"""Domain-specific exceptions for the upload staging pipeline."""

from __future__ import annotations

from ..exceptions import AppError


class UploadError(AppError):
    """Base class for upload-related errors."""


class InvalidSlotKeyError(UploadError):
    """Raised when a slot key is empty, too long or outside the grammar."""


class SessionNotFoundError(UploadError):
    """Raised when a session is missing, owned by someone else or closed."""


class InvalidImageError(UploadError):
    """Raised when bytes cannot be decoded as an image."""


class UnsupportedMediaError(UploadError):
    """Raised when Content-Type is not an image type."""


class PayloadTooLargeError(UploadError):
    """Raised when uploaded file exceeds configured limits."""


class UploadReadError(UploadError):
    """Raised when streaming the upload fails."""


class SlotMismatchError(UploadError):
    """Raised when declared URLs disagree with what the session recorded.

    ``errors`` maps every offending slot key to a message.
    """

    def __init__(self, errors: dict[str, str]) -> None:
        super().__init__(f"{len(errors)} slot(s) failed validation")
        self.errors = dict(errors)


class PathTraversalError(UploadError):
    """Raised when a computed path resolves outside the storage root."""


class PromotionSourceMissingError(UploadError):
    """Raised when a staged file is absent at promotion time."""


class SelfPromotionError(RuntimeError):
    """Raised when promotion is asked to move a session onto itself."""
