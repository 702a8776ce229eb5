"""Error classification for Skillbook operations."""

from __future__ import annotations

import tarfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

import httpx


class ErrorCategory(Enum):
    """Categories of errors with different user-facing handling."""
    INVALID_INPUT = "invalid_input"            # Malformed document, manifest or changelog
    NOT_FOUND = "not_found"                    # Missing skill, file or backup
    NETWORK_ERROR = "network_error"            # Connection/HTTP issues during update
    TIMEOUT = "timeout"                        # Request timed out
    PERMISSION_DENIED = "permission_denied"    # File/resource access denied
    UNKNOWN = "unknown"                        # Unclassified error


DEFAULT_MESSAGES: dict[ErrorCategory, str] = {
    ErrorCategory.INVALID_INPUT: "Invalid library content.",
    ErrorCategory.NOT_FOUND: "Requested item was not found.",
    ErrorCategory.NETWORK_ERROR: "Network error while contacting the update server.",
    ErrorCategory.TIMEOUT: "Request timed out.",
    ErrorCategory.PERMISSION_DENIED: "Permission denied for this operation.",
    ErrorCategory.UNKNOWN: "An unexpected error occurred.",
}


@dataclass
class ClassifiedError:
    """An error with its category and a message fit for the user."""
    category: ErrorCategory
    original_error: Exception
    message: str

    @property
    def user_message(self) -> str:
        return f"{DEFAULT_MESSAGES[self.category]} {self.message}".strip()


class SkillbookError(Exception):
    """Base exception for Skillbook-specific errors."""

    def __init__(self, message: str, category: ErrorCategory = ErrorCategory.UNKNOWN):
        super().__init__(message)
        self.message = message
        self.category = category


class SkillParseError(SkillbookError, ValueError):
    """A skill or stack document could not be parsed."""

    def __init__(self, message: str, path: Optional[Path] = None):
        if path is not None:
            message = f"{path}: {message}"
        super().__init__(message, ErrorCategory.INVALID_INPUT)
        self.path = path


class ManifestError(SkillbookError, ValueError):
    """version.json is missing fields or malformed."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCategory.INVALID_INPUT)


class ChangelogError(SkillbookError, ValueError):
    """CHANGELOG.md could not be read or written."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCategory.INVALID_INPUT)


class SkillNotFoundError(SkillbookError, KeyError):
    """No document registered under the given name."""

    def __init__(self, name: str):
        super().__init__(f"Skill not found: {name}", ErrorCategory.NOT_FOUND)
        self.name = name

    def __str__(self) -> str:
        return self.message


class UpdateError(SkillbookError):
    """Library update failed."""

    def __init__(self, message: str, category: ErrorCategory = ErrorCategory.NETWORK_ERROR):
        super().__init__(message, category)


def classify_error(error: Exception) -> ClassifiedError:
    """
    Classify an exception raised while working on a library.

    Args:
        error: The exception to classify

    Returns:
        ClassifiedError with category and message
    """
    if isinstance(error, SkillbookError):
        return ClassifiedError(error.category, error, error.message)

    if isinstance(error, httpx.TimeoutException):
        return ClassifiedError(ErrorCategory.TIMEOUT, error, str(error))

    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        category = ErrorCategory.NOT_FOUND if status == 404 else ErrorCategory.NETWORK_ERROR
        return ClassifiedError(category, error, f"HTTP {status} from {error.request.url}")

    if isinstance(error, httpx.HTTPError):
        return ClassifiedError(ErrorCategory.NETWORK_ERROR, error, str(error))

    if isinstance(error, PermissionError):
        return ClassifiedError(ErrorCategory.PERMISSION_DENIED, error, str(error))

    if isinstance(error, FileNotFoundError):
        return ClassifiedError(ErrorCategory.NOT_FOUND, error, str(error))

    if isinstance(error, (tarfile.TarError, ValueError)):
        return ClassifiedError(ErrorCategory.INVALID_INPUT, error, str(error))

    return ClassifiedError(ErrorCategory.UNKNOWN, error, str(error))
