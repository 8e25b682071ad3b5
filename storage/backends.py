"""
Storage collaborators: the blob store and the artifact catalog.

The engine only needs key -> blob get/put and a catalog of artifact
records with an atomic compare-and-set. In-memory implementations back the
tests; the local-directory implementations persist to disk with atomic
file replacement so a reader never sees a partial write.
"""

import hashlib
import json
import logging
import os
import sys
import tempfile
import threading
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, List, Union

from core.errors import (
    ArtifactCorrupt,
    ArtifactExists,
    ArtifactNotFound,
    BlobNotFound,
    StorageTimeout,
    StorageUnavailable,
)
from storage.artifacts import (
    CanonicalArtifact,
    StoredArtifact,
    VersionRef,
    artifact_from_record,
    artifact_to_record,
)

logger = logging.getLogger(__name__)

if sys.platform == 'win32':
    import msvcrt
else:
    import fcntl

LOCK_TIMEOUT_SECONDS = 5.0


def blob_ref_for(data: bytes) -> str:
    """Content address of a blob."""
    return f"sha256:{hashlib.sha256(data).hexdigest()}"


def _atomic_write(path: Path, data: bytes):
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix='.tmp-')
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


@contextmanager
def _file_lock(path: Path, timeout: float = LOCK_TIMEOUT_SECONDS):
    """Exclusive lock on a sidecar lock file, shared by every process and catalog instance."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handle = open(path, 'a+b')
    except OSError as e:
        raise StorageUnavailable(f"Failed to open lock file {path}: {e}", key=str(path)) from e
    with handle:
        if sys.platform == 'win32':
            deadline = time.monotonic() + timeout
            while True:
                try:
                    handle.seek(0)
                    msvcrt.locking(handle.fileno(), msvcrt.LK_NBLCK, 1)
                    break
                except OSError:
                    if time.monotonic() > deadline:
                        raise StorageTimeout(f"Could not lock {path}", key=str(path))
                    time.sleep(0.01)
            try:
                yield
            finally:
                handle.seek(0)
                msvcrt.locking(handle.fileno(), msvcrt.LK_UNLCK, 1)
        else:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)


def _decode_record(ref: VersionRef, record: Any) -> StoredArtifact:
    try:
        return artifact_from_record(record)
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raise ArtifactCorrupt(f"Corrupt artifact record for {ref}: {e}", key=ref.key) from e


# Blob stores

class BlobStore(ABC):
    """Key -> bytes service. Writes are atomic and durable."""

    @abstractmethod
    def get_blob(self, ref: str) -> bytes:
        """
        Fetch a blob.

        Raises:
            BlobNotFound: If no blob exists for ref.
        """

    @abstractmethod
    def put_blob(self, data: bytes, content_type: str = 'application/octet-stream') -> str:
        """Store a blob and return its ref."""


class InMemoryBlobStore(BlobStore):

    def __init__(self):
        self._blobs: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def get_blob(self, ref: str) -> bytes:
        with self._lock:
            if ref not in self._blobs:
                raise BlobNotFound(f"Blob not found: {ref}", key=ref)
            return self._blobs[ref]

    def put_blob(self, data: bytes, content_type: str = 'application/octet-stream') -> str:
        ref = blob_ref_for(data)
        with self._lock:
            self._blobs[ref] = bytes(data)
        return ref

    def delete_blob(self, ref: str):
        with self._lock:
            self._blobs.pop(ref, None)


class LocalBlobStore(BlobStore):
    """Blobs as files under root, sharded by the first two hex digits."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def _path(self, ref: str) -> Path:
        algo, _, digest = ref.partition(':')
        if algo != 'sha256' or not digest or not all(c in '0123456789abcdef' for c in digest):
            raise BlobNotFound(f"Malformed blob ref: {ref}", key=ref)
        return self.root / digest[:2] / digest

    def get_blob(self, ref: str) -> bytes:
        path = self._path(ref)
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            raise BlobNotFound(f"Blob not found: {ref}", key=ref) from e
        except OSError as e:
            raise StorageUnavailable(f"Failed to read blob {ref}: {e}", key=ref) from e

    def put_blob(self, data: bytes, content_type: str = 'application/octet-stream') -> str:
        ref = blob_ref_for(data)
        path = self._path(ref)
        if not path.exists():
            try:
                _atomic_write(path, data)
            except OSError as e:
                raise StorageUnavailable(f"Failed to write blob {ref}: {e}", key=ref) from e
        return ref


# Artifact catalogs

class ArtifactCatalog(ABC):
    """
    One StoredArtifact record per version.

    Records are created once and afterwards only replaced through
    cas_update_artifact_record, which accepts canonical artifacts only so a
    canonical version can never revert to a legacy archive.
    """

    @abstractmethod
    def get_artifact_record(self, ref: VersionRef) -> StoredArtifact:
        """
        Raises:
            ArtifactNotFound: If the version has no record.
            ArtifactCorrupt: If the stored record cannot be decoded.
        """

    @abstractmethod
    def cas_update_artifact_record(self, ref: VersionRef, expected_old: StoredArtifact,
                                   new: CanonicalArtifact) -> bool:
        """Replace the record with new only if it still equals expected_old."""

    @abstractmethod
    def create_artifact_record(self, ref: VersionRef, artifact: StoredArtifact):
        """
        Raises:
            ArtifactExists: If the version already has a record.
        """

    @abstractmethod
    def list_versions(self) -> List[VersionRef]:
        """All versions with a record, sorted by key."""

    @staticmethod
    def _check_upgrade(new: StoredArtifact):
        if not isinstance(new, CanonicalArtifact):
            raise ValueError("Artifact records can only be replaced by canonical artifacts")


class InMemoryArtifactCatalog(ArtifactCatalog):
    """Catalog held in a dict of serialized records."""

    def __init__(self):
        self._records: Dict[VersionRef, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get_artifact_record(self, ref: VersionRef) -> StoredArtifact:
        with self._lock:
            record = self._records.get(ref)
        if record is None:
            raise ArtifactNotFound(f"No artifact record for {ref}", key=ref.key)
        return _decode_record(ref, record)

    def cas_update_artifact_record(self, ref: VersionRef, expected_old: StoredArtifact,
                                   new: CanonicalArtifact) -> bool:
        self._check_upgrade(new)
        expected, replacement = artifact_to_record(expected_old), artifact_to_record(new)
        with self._lock:
            if self._records.get(ref) != expected:
                return False
            self._records[ref] = replacement
            return True

    def create_artifact_record(self, ref: VersionRef, artifact: StoredArtifact):
        record = artifact_to_record(artifact)
        with self._lock:
            if ref in self._records:
                raise ArtifactExists(ref.key)
            self._records[ref] = record

    def list_versions(self) -> List[VersionRef]:
        with self._lock:
            return sorted(self._records)


class JsonFileCatalog(ArtifactCatalog):
    """
    Catalog with one JSON file per version key under root.

    Layout: <root>/packages/@scope/name/<version>.json holding
    {"ref": "@scope/name@1.0.0", "artifact": {...record...}}.
    Updates write a temporary file and os.replace it. The compare and the
    replace happen under an exclusive lock on <version>.json.lock, so
    separate catalog instances and processes sharing root serialize too.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def _path(self, ref: VersionRef) -> Path:
        return self.root / f"{ref.key}.json"

    def _lock(self, ref: VersionRef):
        return _file_lock(self.root / f"{ref.key}.json.lock")

    def _read(self, ref: VersionRef):
        path = self._path(ref)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)['artifact']
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageUnavailable(f"Failed to read artifact record {path}: {e}",
                                     key=ref.key) from e
        except (ValueError, KeyError, TypeError) as e:
            raise ArtifactCorrupt(f"Corrupt artifact record {path}: {e}", key=ref.key) from e

    def _write(self, ref: VersionRef, record: Dict[str, Any]):
        try:
            payload = json.dumps({'ref': str(ref), 'artifact': record}, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise ArtifactCorrupt(f"Artifact record for {ref} is not JSON serializable: {e}",
                                  key=ref.key) from e
        try:
            _atomic_write(self._path(ref), payload.encode('utf-8'))
        except OSError as e:
            raise StorageUnavailable(f"Failed to write artifact record for {ref}: {e}",
                                     key=ref.key) from e

    def get_artifact_record(self, ref: VersionRef) -> StoredArtifact:
        record = self._read(ref)
        if record is None:
            raise ArtifactNotFound(f"No artifact record for {ref}", key=ref.key)
        return _decode_record(ref, record)

    def cas_update_artifact_record(self, ref: VersionRef, expected_old: StoredArtifact,
                                   new: CanonicalArtifact) -> bool:
        self._check_upgrade(new)
        expected, replacement = artifact_to_record(expected_old), artifact_to_record(new)
        with self._lock(ref):
            if self._read(ref) != expected:
                return False
            self._write(ref, replacement)
            return True

    def create_artifact_record(self, ref: VersionRef, artifact: StoredArtifact):
        record = artifact_to_record(artifact)
        with self._lock(ref):
            if self._path(ref).exists():
                raise ArtifactExists(ref.key)
            self._write(ref, record)

    def list_versions(self) -> List[VersionRef]:
        refs = []
        for path in self.root.rglob('*.json'):
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    refs.append(VersionRef.parse(json.load(f)['ref']))
            except (OSError, ValueError, KeyError, TypeError) as e:
                logger.warning("Skipping unreadable artifact record %s: %s", path, e)
        return sorted(refs)
