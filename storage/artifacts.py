"""
Stored artifact records.

A package version has exactly one StoredArtifact record, which is either
the canonical document itself or a pointer to the legacy archive blob the
version was published as. Records are serialized to self-describing JSON
dicts tagged with `kind`.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import total_ordering
from typing import Any, ClassVar, Dict, Optional, Union

from core.canonical_models import CanonicalDocument, Format

CANONICAL_KIND = 'canonical'
LEGACY_KIND = 'legacy-archive'

_REF_RE = re.compile(r'^(?:@([^/@\s]+)/)?([^/@\s]+)@([^/@\s]+)$')


@total_ordering
@dataclass(frozen=True)
class VersionRef:
    """Identifies one version of a package: @scope/name@version."""
    scope: Optional[str]
    name: str
    version: str

    @classmethod
    def parse(cls, value: Union["VersionRef", str]) -> "VersionRef":
        """
        Parse "@scope/name@1.0.0" or "name@1.0.0".

        Raises:
            ValueError: If the string is not a version reference.
        """
        if isinstance(value, cls):
            return value
        match = _REF_RE.match(str(value).strip())
        if not match:
            raise ValueError(f"Invalid version reference: {value!r}")
        scope, name, version = match.groups()
        return cls(scope, name, version)

    @property
    def package_name(self) -> str:
        return f"@{self.scope}/{self.name}" if self.scope else self.name

    @property
    def key(self) -> str:
        """Stable storage key, one per (scope, name, version)."""
        return f"packages/{self.package_name}/{self.version}"

    def __str__(self) -> str:
        return f"{self.package_name}@{self.version}"

    def __lt__(self, other: "VersionRef") -> bool:
        if not isinstance(other, VersionRef):
            return NotImplemented
        return self.key < other.key


@dataclass(frozen=True)
class CanonicalArtifact:
    """Version stored as a canonical document."""
    document: CanonicalDocument
    stored_at: datetime

    kind: ClassVar[str] = CANONICAL_KIND

    @classmethod
    def now(cls, document: CanonicalDocument) -> "CanonicalArtifact":
        return cls(document, datetime.now(timezone.utc))


@dataclass(frozen=True)
class LegacyArchive:
    """Version stored only as the opaque archive it was published as."""
    blob_ref: str
    discovered_format: Optional[Format] = None
    content_type: str = 'application/gzip'

    kind: ClassVar[str] = LEGACY_KIND


StoredArtifact = Union[CanonicalArtifact, LegacyArchive]


def artifact_to_record(artifact: StoredArtifact) -> Dict[str, Any]:
    """Serialize an artifact to a JSON-safe record."""
    if isinstance(artifact, CanonicalArtifact):
        return {
            'kind': CANONICAL_KIND,
            'storedAt': artifact.stored_at.isoformat(),
            'document': artifact.document.to_dict(),
        }
    if isinstance(artifact, LegacyArchive):
        return {
            'kind': LEGACY_KIND,
            'blobRef': artifact.blob_ref,
            'discoveredFormat': artifact.discovered_format.value if artifact.discovered_format else None,
            'contentType': artifact.content_type,
        }
    raise TypeError(f"Not a stored artifact: {artifact!r}")


def artifact_from_record(record: Dict[str, Any]) -> StoredArtifact:
    """
    Rebuild an artifact from its record.

    Raises:
        ValueError: If the record kind is unknown or the document is invalid.
    """
    kind = record.get('kind')
    if kind == CANONICAL_KIND:
        return CanonicalArtifact(
            document=CanonicalDocument.from_dict(record['document']),
            stored_at=datetime.fromisoformat(record['storedAt']),
        )
    if kind == LEGACY_KIND:
        discovered = record.get('discoveredFormat')
        return LegacyArchive(
            blob_ref=record['blobRef'],
            discovered_format=Format.parse(discovered) if discovered else None,
            content_type=record.get('contentType') or 'application/gzip',
        )
    raise ValueError(f"Unknown artifact kind: {kind!r}")
