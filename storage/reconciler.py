"""
Storage reconciler.

Resolves the canonical document for a package version. Canonical records
are returned directly; legacy archives are fetched, unpacked, parsed with
the adapter for their (recorded or inferred) format and, when persistence
is requested, upgraded in place with a compare-and-set on the catalog.

The reconciler never locks a record. Concurrent resolvers of one version
race on the CAS: the winner's document becomes the record and losers
return that document instead of their own.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from adapters import default_registry
from core.canonical_models import CanonicalDocument
from core.config import EngineSettings
from core.errors import (
    ParseError,
    SourceUnparsable,
    StorageTimeout,
    UnknownSourceFormat,
    UnsupportedFormat,
)
from core.registry import FormatRegistry
from storage.archive import extract_archive, infer_format
from storage.artifacts import CanonicalArtifact, LegacyArchive, VersionRef
from storage.backends import ArtifactCatalog, BlobStore

logger = logging.getLogger(__name__)


class ResolutionStatus(str, Enum):
    CANONICAL = "canonical"
    EXTRACTED = "extracted"
    UPGRADED = "upgraded"
    CONCURRENT_UPGRADE_LOST = "concurrent-upgrade-lost"


@dataclass
class Resolution:
    """Document resolved for a version and how it was obtained."""
    ref: VersionRef
    document: CanonicalDocument
    status: ResolutionStatus

    @property
    def persisted(self) -> bool:
        """True when the version is canonical in storage after this call."""
        return self.status != ResolutionStatus.EXTRACTED


def fill_from_ref(document: CanonicalDocument, ref: VersionRef):
    """Fill name, version and author the archive content left empty."""
    metadata = document.metadata
    if not metadata.name:
        metadata.name = ref.package_name
    if not metadata.version:
        metadata.version = ref.version
    # The scope may be a user or an organization; either way it is the publisher.
    if not metadata.author and ref.scope:
        metadata.author = ref.scope


class StorageReconciler:
    """Resolves canonical documents over canonical and legacy storage."""

    def __init__(self, catalog: ArtifactCatalog, blobs: BlobStore,
                 settings: Optional[EngineSettings] = None,
                 registry: Optional[FormatRegistry] = None):
        self.catalog = catalog
        self.blobs = blobs
        self.settings = settings or EngineSettings()
        self.registry = registry or default_registry()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()

    def close(self):
        """Stop the blob fetch pool, if one was started."""
        with self._executor_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=False)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def resolve(self, ref: Union[VersionRef, str], force_persist: bool = False,
                timeout: Optional[float] = None) -> CanonicalDocument:
        """Canonical document for a version. See resolve_detailed."""
        return self.resolve_detailed(ref, force_persist, timeout).document

    def resolve_detailed(self, ref: Union[VersionRef, str], force_persist: bool = False,
                         timeout: Optional[float] = None, dry_run: bool = False) -> Resolution:
        """
        Resolve a version and report how the document was obtained.

        Args:
            ref: Version to resolve
            force_persist: Upgrade a legacy record even if lazy migration is off
            timeout: Deadline in seconds for the blob fetch (settings default)
            dry_run: Extract and parse but never write

        Raises:
            ArtifactNotFound: If the version has no record
            StorageTimeout: If the blob fetch misses the deadline
            StorageUnavailable: If the blob is missing or unreadable
            UnknownSourceFormat: If the archive's format cannot be inferred
            SourceUnparsable: If the archive content does not parse
        """
        ref = VersionRef.parse(ref)
        artifact = self.catalog.get_artifact_record(ref)

        if isinstance(artifact, CanonicalArtifact):
            logger.debug("Serving canonical document for %s", ref)
            return Resolution(ref, artifact.document, ResolutionStatus.CANONICAL)

        document = self._extract(ref, artifact, timeout)
        persist = (force_persist or self.settings.lazy_migration) and not dry_run
        if not persist:
            return Resolution(ref, document, ResolutionStatus.EXTRACTED)

        if self.catalog.cas_update_artifact_record(ref, artifact, CanonicalArtifact.now(document)):
            logger.info("Upgraded %s to canonical storage", ref)
            return Resolution(ref, document, ResolutionStatus.UPGRADED)

        current = self.catalog.get_artifact_record(ref)
        if isinstance(current, CanonicalArtifact):
            logger.warning("Concurrent upgrade of %s won by another writer; using its document", ref)
            return Resolution(ref, current.document, ResolutionStatus.CONCURRENT_UPGRADE_LOST)

        logger.warning("Record for %s changed during upgrade; serving extracted document", ref)
        return Resolution(ref, document, ResolutionStatus.EXTRACTED)

    def migration_status(self, ref: Union[VersionRef, str]) -> str:
        """'canonical' or 'legacy-archive' for a version."""
        return self.catalog.get_artifact_record(VersionRef.parse(ref)).kind

    def _blob_pool(self) -> ThreadPoolExecutor:
        # Canonical reads never fetch blobs, so the pool starts on first use.
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=self.settings.blob_workers,
                                                    thread_name_prefix='blob-fetch')
            return self._executor

    def _fetch_blob(self, blob_ref: str, timeout: Optional[float]) -> bytes:
        deadline = timeout if timeout is not None else self.settings.blob_timeout_seconds
        future = self._blob_pool().submit(self.blobs.get_blob, blob_ref)
        try:
            return future.result(timeout=deadline)
        except FutureTimeout as e:
            future.cancel()
            raise StorageTimeout(f"Blob fetch exceeded {deadline}s: {blob_ref}", key=blob_ref) from e

    def _extract(self, ref: VersionRef, artifact: LegacyArchive,
                 timeout: Optional[float]) -> CanonicalDocument:
        logger.info("Extracting %s from legacy archive %s", ref, artifact.blob_ref)
        data = self._fetch_blob(artifact.blob_ref, timeout)

        try:
            archive = extract_archive(data)
        except ParseError as err:
            raise SourceUnparsable(err.reason, artifact.discovered_format,
                                   version_ref=ref) from err

        inferred = infer_format(archive, self.registry, artifact.discovered_format)
        if inferred is None:
            raise UnknownSourceFormat("Could not infer source format from archive; "
                                      "an explicit format tag is required", version_ref=ref)
        fmt, content = inferred

        adapter = self.registry.get_adapter(fmt)
        if adapter is None:
            raise UnsupportedFormat(f"No adapter registered for {fmt.value}",
                                    source_format=fmt, version_ref=ref)
        try:
            document = adapter.parse(content)
        except ParseError as err:
            raise SourceUnparsable(err.reason, fmt, version_ref=ref) from err

        fill_from_ref(document, ref)
        return document
