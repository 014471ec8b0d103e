"""Exceptions raised by theme commit and lookup flows."""

from __future__ import annotations

from ..exceptions import AppError


class ThemeError(AppError):
    """Base class for theme errors."""


class ThemeValidationError(ThemeError):
    """Collected field errors of a theme payload."""

    def __init__(self, errors: dict[str, str]) -> None:
        super().__init__(f"{len(errors)} field(s) failed validation")
        self.errors = dict(errors)


class ThemeNotFoundError(ThemeError):
    pass


class ThemeAccessDeniedError(ThemeError):
    pass


class ThemeAlreadyExistsError(ThemeError):
    pass


class ThemeNotReadyError(ThemeError):
    """The theme has fewer cards than a game needs."""
