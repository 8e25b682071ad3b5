"""
Core of the canonical conversion engine: the canonical document model,
the error taxonomy, the format adapter contract, the format registry and
engine settings.
"""

from core.canonical_models import (
    CANONICAL_FIELDS,
    CanonicalDocument,
    CanonicalExample,
    CanonicalPersona,
    CanonicalRule,
    ContextSection,
    ExampleLabel,
    FieldMapping,
    Format,
    PackageMetadata,
    Priority,
)
from core.errors import (
    ArtifactExists,
    ArtifactNotFound,
    BlobNotFound,
    ConversionError,
    EngineError,
    ParseError,
    RenderError,
    SourceUnparsable,
    StorageError,
    StorageTimeout,
    StorageUnavailable,
    TargetUnrenderable,
    UnknownSourceFormat,
    UnsupportedFormat,
)

__all__ = [
    'CANONICAL_FIELDS',
    'ArtifactExists',
    'ArtifactNotFound',
    'BlobNotFound',
    'CanonicalDocument',
    'CanonicalExample',
    'CanonicalPersona',
    'CanonicalRule',
    'ContextSection',
    'ConversionError',
    'EngineError',
    'ExampleLabel',
    'FieldMapping',
    'Format',
    'PackageMetadata',
    'ParseError',
    'Priority',
    'RenderError',
    'SourceUnparsable',
    'StorageError',
    'StorageTimeout',
    'StorageUnavailable',
    'TargetUnrenderable',
    'UnknownSourceFormat',
    'UnsupportedFormat',
]
