from __future__ import annotations

from enum import Enum


class ErrorCategory(str, Enum):
    """Classification for error logging and report failures."""

    CONFIGURATION = "configuration"
    GENERATOR = "generator"
    FORMATTER = "formatter"
    STORAGE = "storage"
    TIMEOUT = "timeout"


class ScrubError(Exception):
    """Base class for every error raised by rowscrub."""

    category = ErrorCategory.FORMATTER


class ConfigurationError(ScrubError):
    """The scrub configuration cannot be turned into formatters."""

    category = ErrorCategory.CONFIGURATION


class AmbiguousTableSpecError(ConfigurationError):
    """A table declared both a whole-record formatter and field formatters."""


class UnresolvableTypeError(ConfigurationError):
    """A formatter type name could not be imported or is not callable."""


class UnknownGeneratorError(ScrubError):
    """The generator has no capability with the requested name."""

    category = ErrorCategory.GENERATOR


class FormatterError(ScrubError):
    """A formatter produced a result of the wrong shape."""


class StorageError(ScrubError):
    """A storage operation failed or timed out."""

    category = ErrorCategory.STORAGE

    def __init__(self, message: str, *, timed_out: bool = False) -> None:
        super().__init__(message)
        self.timed_out = timed_out
        if timed_out:
            self.category = ErrorCategory.TIMEOUT


def categorize(exc: BaseException) -> ErrorCategory:
    """Return the category used when reporting ``exc``."""
    if isinstance(exc, ScrubError):
        return exc.category
    return ErrorCategory.FORMATTER
