"""
Error taxonomy for the conversion engine.

Adapters raise ParseError / RenderError and never rewrap. The conversion
engine and the storage reconciler add context (format pair, version) by
raising a ConversionError or StorageError from the adapter error.

Retry policy is carried on the class: storage errors are transient and
retryable except for corrupt records, everything else requires the caller
to change content, hints or format tags.
"""

from typing import Any, Dict, Optional


class EngineError(Exception):
    """Base class for all engine errors."""
    retryable = False


class ParseError(ValueError):
    """Source bytes are malformed for the claimed format."""

    def __init__(self, format_name: str, reason: str):
        self.format = format_name
        self.reason = reason
        super().__init__(f"{format_name}: {reason}")


class RenderError(ValueError):
    """Document cannot satisfy the target format's mandatory fields."""

    def __init__(self, format_name: str, reason: str):
        self.format = format_name
        self.reason = reason
        super().__init__(f"{format_name}: {reason}")


class ConversionError(EngineError):
    """A conversion or resolution failed; carries the format pair and version."""

    def __init__(self, reason: str, source_format: Optional[str] = None,
                 target_format: Optional[str] = None,
                 version_ref: Optional[str] = None):
        self.reason = reason
        self.source_format = str(source_format) if source_format else None
        self.target_format = str(target_format) if target_format else None
        self.version_ref = str(version_ref) if version_ref else None
        super().__init__(self._describe())

    def _describe(self) -> str:
        parts = []
        if self.version_ref:
            parts.append(self.version_ref)
        if self.source_format or self.target_format:
            parts.append(f"{self.source_format or '?'} -> {self.target_format or '?'}")
        prefix = f"[{' '.join(parts)}] " if parts else ''
        return f"{prefix}{self.reason}"

    def to_report(self) -> Dict[str, Any]:
        """
        User-facing failure report.

        The quality score is reported as unavailable (None), never as zero.
        """
        return {
            'error': type(self).__name__,
            'reason': self.reason,
            'sourceFormat': self.source_format,
            'targetFormat': self.target_format,
            'versionRef': self.version_ref,
            'retryable': self.retryable,
            'qualityScore': None,
        }


class SourceUnparsable(ConversionError):
    """The source adapter rejected the input."""


class TargetUnrenderable(ConversionError):
    """The target adapter could not render the document with the given hints."""


class UnknownSourceFormat(ConversionError):
    """Format inference failed for a legacy archive; needs an explicit format tag."""


class UnsupportedFormat(ConversionError):
    """The requested format tag is not one of the supported formats."""


class StorageError(EngineError):
    """Transient storage failure; callers may retry with backoff."""
    retryable = True

    def __init__(self, message: str, key: Optional[str] = None):
        self.key = key
        super().__init__(message)

    def to_report(self) -> Dict[str, Any]:
        return {
            'error': type(self).__name__,
            'reason': str(self),
            'key': self.key,
            'retryable': self.retryable,
            'qualityScore': None,
        }


class StorageTimeout(StorageError):
    """A blob fetch exceeded the caller's deadline."""


class StorageUnavailable(StorageError):
    """The storage backend could not serve the request."""


class BlobNotFound(StorageUnavailable):
    """Referenced blob does not exist."""


class ArtifactNotFound(StorageUnavailable):
    """No artifact record exists for the version."""


class ArtifactCorrupt(StorageError):
    """A stored record cannot be decoded, or a record cannot be encoded for storage."""
    retryable = False


class ArtifactExists(EngineError):
    """A version already has an artifact record; records are created once."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Artifact record already exists for {key}")
