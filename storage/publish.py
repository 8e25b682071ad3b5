"""
Publish-time record creation.

Every version gets its single StoredArtifact record here, either as a
canonical document or as a legacy archive blob.
"""

import logging
from typing import Optional, Union

from core.canonical_models import CanonicalDocument, Format
from storage.artifacts import CanonicalArtifact, LegacyArchive, VersionRef
from storage.backends import ArtifactCatalog, BlobStore

logger = logging.getLogger(__name__)


def publish_canonical(catalog: ArtifactCatalog, ref: Union[VersionRef, str],
                      document: CanonicalDocument) -> CanonicalArtifact:
    """
    Store a version as a canonical document.

    Raises:
        ArtifactExists: If the version already has a record.
        ValueError: If the document has no source format.
    """
    if document.source_format is None:
        raise ValueError("Canonical documents must record their source format")
    ref = VersionRef.parse(ref)
    artifact = CanonicalArtifact.now(document)
    catalog.create_artifact_record(ref, artifact)
    logger.info("Published %s as canonical (%s)", ref, document.source_format)
    return artifact


def publish_legacy_archive(catalog: ArtifactCatalog, blobs: BlobStore,
                           ref: Union[VersionRef, str], data: bytes,
                           discovered_format: Optional[Union[Format, str]] = None,
                           content_type: str = 'application/gzip') -> LegacyArchive:
    """
    Store a version as an opaque archive blob.

    Raises:
        ArtifactExists: If the version already has a record.
    """
    ref = VersionRef.parse(ref)
    fmt = Format.parse(discovered_format) if discovered_format is not None else None
    blob_ref = blobs.put_blob(data, content_type)
    artifact = LegacyArchive(blob_ref, fmt, content_type)
    catalog.create_artifact_record(ref, artifact)
    logger.info("Published %s as legacy archive %s", ref, blob_ref)
    return artifact
