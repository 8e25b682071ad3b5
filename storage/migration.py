"""
Migration batch driver.

Walks package versions and upgrades legacy archives to canonical storage
through the reconciler with forced persistence. Each item is reported on
its own; a failing item never aborts its siblings. Re-running a batch is
safe: versions migrated by an earlier run come back as skipped.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union

from core.config import EngineSettings
from core.errors import ArtifactCorrupt, ConversionError, StorageError
from storage.artifacts import CanonicalArtifact, LegacyArchive, VersionRef
from storage.backends import ArtifactCatalog
from storage.reconciler import ResolutionStatus, StorageReconciler

logger = logging.getLogger(__name__)


class ItemOutcome(str, Enum):
    MIGRATED = "migrated"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class MigrationItem:
    ref: VersionRef
    outcome: ItemOutcome
    reason: Optional[str] = None
    error: Optional[str] = None
    retryable: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'ref': str(self.ref),
            'outcome': self.outcome.value,
            'reason': self.reason,
            'error': self.error,
            'retryable': self.retryable,
        }


@dataclass
class BatchReport:
    migrated: int = 0
    failed: int = 0
    skipped: int = 0
    items: List[MigrationItem] = field(default_factory=list)
    dry_run: bool = False

    @property
    def total(self) -> int:
        return len(self.items)

    @classmethod
    def from_items(cls, items: Iterable[MigrationItem], dry_run: bool = False) -> "BatchReport":
        report = cls(items=sorted(items, key=lambda item: item.ref.key), dry_run=dry_run)
        for item in report.items:
            if item.outcome == ItemOutcome.MIGRATED:
                report.migrated += 1
            elif item.outcome == ItemOutcome.FAILED:
                report.failed += 1
            else:
                report.skipped += 1
        return report

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total': self.total,
            'migrated': self.migrated,
            'failed': self.failed,
            'skipped': self.skipped,
            'dryRun': self.dry_run,
            'items': [item.to_dict() for item in self.items],
        }


class MigrationDriver:
    """Upgrades legacy archives to canonical documents in batches."""

    def __init__(self, reconciler: StorageReconciler, catalog: Optional[ArtifactCatalog] = None,
                 settings: Optional[EngineSettings] = None):
        self.reconciler = reconciler
        self.catalog = catalog or reconciler.catalog
        self.settings = settings or reconciler.settings

    def migrate_batch(self, refs: Iterable[Union[VersionRef, str]],
                      dry_run: bool = False) -> BatchReport:
        """
        Migrate the given versions.

        Args:
            refs: Versions to migrate
            dry_run: Resolve and parse without writing

        Returns:
            BatchReport with counts and per-item outcomes sorted by version key
        """
        refs = [VersionRef.parse(ref) for ref in refs]
        logger.info("Starting batch migration of %d versions (dry_run=%s)", len(refs), dry_run)
        if not refs:
            return BatchReport(dry_run=dry_run)

        workers = min(self.settings.migration_concurrency, len(refs))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix='migrate') as executor:
            items = list(executor.map(lambda ref: self.migrate_one(ref, dry_run), refs))

        report = BatchReport.from_items(items, dry_run)
        logger.info("Batch migration finished: %d migrated, %d failed, %d skipped",
                    report.migrated, report.failed, report.skipped)
        return report

    def migrate_one(self, ref: Union[VersionRef, str], dry_run: bool = False) -> MigrationItem:
        """Migrate one version. Never raises for engine errors; they become failed items."""
        ref = VersionRef.parse(ref)
        try:
            if isinstance(self.catalog.get_artifact_record(ref), CanonicalArtifact):
                return MigrationItem(ref, ItemOutcome.SKIPPED, "already canonical")

            resolution = self.reconciler.resolve_detailed(ref, force_persist=True, dry_run=dry_run)
        except ConversionError as err:
            logger.error("Migration of %s failed: %s", ref, err)
            return MigrationItem(ref, ItemOutcome.FAILED, err.reason, type(err).__name__,
                                 err.retryable)
        except StorageError as err:
            logger.error("Migration of %s failed on storage: %s", ref, err)
            return MigrationItem(ref, ItemOutcome.FAILED, str(err), type(err).__name__,
                                 err.retryable)

        status = resolution.status
        if status == ResolutionStatus.UPGRADED:
            return MigrationItem(ref, ItemOutcome.MIGRATED)
        if status == ResolutionStatus.EXTRACTED and dry_run:
            return MigrationItem(ref, ItemOutcome.MIGRATED, "dry run; not persisted")
        if status == ResolutionStatus.CANONICAL:
            return MigrationItem(ref, ItemOutcome.SKIPPED, "already canonical")
        if status == ResolutionStatus.CONCURRENT_UPGRADE_LOST:
            return MigrationItem(ref, ItemOutcome.SKIPPED, "migrated concurrently by another writer")
        return MigrationItem(ref, ItemOutcome.FAILED, "record changed during upgrade",
                             retryable=True)

    def migrate_catalog(self, limit: int = 100, offset: int = 0,
                        dry_run: bool = False) -> BatchReport:
        """Migrate a page of the catalog's versions (backfill)."""
        refs = self.catalog.list_versions()[offset:offset + limit]
        return self.migrate_batch(refs, dry_run)

    def estimate_pending(self) -> int:
        """Number of versions still stored as legacy archives."""
        pending = 0
        for ref in self.catalog.list_versions():
            try:
                record = self.catalog.get_artifact_record(ref)
            except ArtifactCorrupt as err:
                logger.warning("Not counting %s: %s", ref, err)
                continue
            if isinstance(record, LegacyArchive):
                pending += 1
        return pending
