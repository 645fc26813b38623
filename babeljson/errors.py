"""Error definitions for the babeljson translator."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class FailureKind(Enum):
    """Classifies translation service failures for the retry driver."""

    NETWORK = auto()
    STATUS = auto()
    MALFORMED = auto()
    LENGTH = auto()


class BabelJsonError(Exception):
    """Base exception for all custom errors."""


class ConfigurationError(BabelJsonError):
    """Raised when settings are invalid or missing."""


class TranslationProviderConfigurationError(ConfigurationError):
    """Raised when the translation provider is misconfigured."""


class UnsupportedFileTypeError(BabelJsonError):
    """Raised when a given file extension is not supported."""


class OverwriteRefusedError(BabelJsonError):
    """Raised when attempting to overwrite an output without consent."""


class DocumentParseError(BabelJsonError):
    """Raised when the input document is not well-formed JSON."""


class StructuralInvariantError(BabelJsonError):
    """Raised when a collected path no longer resolves against the tree."""


class CountMismatchError(BabelJsonError):
    """Raised when translated results and inputs disagree in number."""


class TranslationServiceError(BabelJsonError):
    """Raised when the translation service fails or answers unusably."""

    def __init__(self, message: str, kind: FailureKind = FailureKind.MALFORMED) -> None:
        super().__init__(message)
        self.kind = kind


@dataclass
class BatchFailure:
    """Stores context for one failed batch attempt."""

    kind: FailureKind
    message: str
    attempt: int
    details: Optional[str] = None

    @classmethod
    def from_error(cls, error: TranslationServiceError, attempt: int) -> "BatchFailure":
        return cls(kind=error.kind, message=str(error), attempt=attempt)
