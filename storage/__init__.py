"""
Artifact storage: version records, blob stores and catalogs, legacy
archive extraction, the reconciler and the migration batch driver.
"""

from storage.artifacts import CanonicalArtifact, LegacyArchive, StoredArtifact, VersionRef
from storage.backends import (
    ArtifactCatalog,
    BlobStore,
    InMemoryArtifactCatalog,
    InMemoryBlobStore,
    JsonFileCatalog,
    LocalBlobStore,
)
from storage.migration import BatchReport, ItemOutcome, MigrationDriver, MigrationItem
from storage.publish import publish_canonical, publish_legacy_archive
from storage.reconciler import Resolution, ResolutionStatus, StorageReconciler

__all__ = [
    'ArtifactCatalog',
    'BatchReport',
    'BlobStore',
    'CanonicalArtifact',
    'InMemoryArtifactCatalog',
    'InMemoryBlobStore',
    'ItemOutcome',
    'JsonFileCatalog',
    'LegacyArchive',
    'LocalBlobStore',
    'MigrationDriver',
    'MigrationItem',
    'Resolution',
    'ResolutionStatus',
    'StorageReconciler',
    'StoredArtifact',
    'VersionRef',
    'publish_canonical',
    'publish_legacy_archive',
]
