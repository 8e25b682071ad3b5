"""
Registry-facing operations: fetch a version in a requested format, and
report whether a conversion is worthwhile before fetching anything.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from core.canonical_models import Format
from core.errors import ConversionError
from conversion.compatibility import coerce_format, compatibility
from conversion.engine import ConversionEngine, ConversionResult, HintsArg
from storage.artifacts import VersionRef
from storage.reconciler import StorageReconciler

logger = logging.getLogger(__name__)


@dataclass
class FetchedPackage:
    """A version rendered in the requested format."""
    ref: VersionRef
    path: str
    content_type: str
    result: ConversionResult

    @property
    def content(self) -> bytes:
        return self.result.document


def report_compatibility(source: Union[Format, str], target: Union[Format, str]) -> Dict[str, Any]:
    """Compatibility report for a format pair. No storage access."""
    return compatibility(source, target).to_dict()


class PackageService:
    """Serves package versions in any supported format."""

    def __init__(self, reconciler: StorageReconciler, engine: Optional[ConversionEngine] = None):
        self.reconciler = reconciler
        self.engine = engine or ConversionEngine(reconciler.registry)

    def close(self):
        self.reconciler.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def fetch_as_format(self, ref: Union[VersionRef, str], fmt: Union[Format, str],
                        hints: HintsArg = None, timeout: Optional[float] = None) -> FetchedPackage:
        """
        Resolve a version and render it in fmt.

        Raises:
            ConversionError: With the version attached, if resolution or
                rendering fails
            StorageError: If storage fails (retryable)
        """
        ref = VersionRef.parse(ref)
        fmt = coerce_format(fmt)
        document = self.reconciler.resolve(ref, timeout=timeout)
        try:
            result = self.engine.convert_document(document, fmt, hints)
        except ConversionError as err:
            raise type(err)(err.reason, err.source_format, err.target_format, str(ref)) from err

        adapter = self.engine.adapter(fmt)
        logger.debug("Fetched %s as %s (score %d)", ref, fmt, result.quality_score)
        return FetchedPackage(
            ref=ref,
            path=adapter.suggested_path(document),
            content_type=adapter.CONTENT_TYPE,
            result=result,
        )
