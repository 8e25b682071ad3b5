"""
Legacy archive extraction and source-format inference.

Legacy versions were published as gzip tarballs (older ones as a single
gzipped file). Extraction keeps the text files, skips manifests and
licenses, and picks the content file whose format can be identified.
"""

import gzip
import io
import json
import logging
import tarfile
import zlib
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Dict, List, Optional, Tuple

from core.canonical_models import Format
from core.errors import ParseError
from core.registry import FormatRegistry
from adapters.ruler import has_package_header

logger = logging.getLogger(__name__)

ARCHIVE_FORMAT = 'archive'
MANIFEST_FILES = ('prpm.json', 'package.json')
EXCLUDED_FILES = MANIFEST_FILES + ('LICENSE', 'LICENSE.txt', 'LICENSE.md')
TEXT_SUFFIXES = ('', '.md', '.mdc', '.txt', '.markdown')
SINGLE_FILE_NAME = 'content'
GZIP_MAGIC = b'\x1f\x8b'


@dataclass
class ExtractedArchive:
    """Files from a legacy archive, keyed by normalized relative path."""
    files: Dict[str, bytes]

    def manifest(self) -> Optional[dict]:
        """First readable manifest, or None."""
        for path, data in self.files.items():
            if PurePosixPath(path).name not in MANIFEST_FILES:
                continue
            try:
                manifest = json.loads(data.decode('utf-8'))
            except (UnicodeDecodeError, ValueError):
                logger.debug("Ignoring unreadable manifest %s", path)
                continue
            if isinstance(manifest, dict):
                return manifest
        return None

    def content_files(self) -> List[Tuple[str, bytes]]:
        """Text files that may hold package content, in archive order."""
        result = []
        for path, data in self.files.items():
            name = PurePosixPath(path).name
            if name in EXCLUDED_FILES:
                continue
            suffix = PurePosixPath(name).suffix.lower()
            if suffix in TEXT_SUFFIXES and data.strip():
                result.append((path, data))
        return result


def _normalize(name: str) -> str:
    parts = [p for p in PurePosixPath(name).parts if p not in ('.', '/')]
    # npm-style tarballs wrap everything in package/
    if len(parts) > 1 and parts[0] == 'package':
        parts = parts[1:]
    return '/'.join(parts)


def extract_archive(data: bytes) -> ExtractedArchive:
    """
    Unpack a legacy archive blob.

    Accepts a gzip tarball, a plain tarball, or a (possibly gzipped)
    single file.

    Raises:
        ParseError: If the blob cannot be decompressed or unpacked.
    """
    raw = data
    if data[:2] == GZIP_MAGIC:
        try:
            raw = gzip.decompress(data)
        except (OSError, EOFError, zlib.error) as e:
            raise ParseError(ARCHIVE_FORMAT, f"Failed to decompress archive: {e}") from e

    try:
        tar = tarfile.open(fileobj=io.BytesIO(raw), mode='r:')
    except tarfile.ReadError:
        return ExtractedArchive({SINGLE_FILE_NAME: raw})

    files: Dict[str, bytes] = {}
    try:
        with tar:
            for member in tar.getmembers():
                if not member.isfile():
                    continue
                handle = tar.extractfile(member)
                if handle is None:
                    continue
                path = _normalize(member.name)
                if path and '..' not in path.split('/'):
                    files[path] = handle.read()
    except (tarfile.TarError, OSError) as e:
        raise ParseError(ARCHIVE_FORMAT, f"Failed to extract archive: {e}") from e
    return ExtractedArchive(files)


def infer_format(archive: ExtractedArchive, registry: FormatRegistry,
                 explicit: Optional[Format] = None) -> Optional[Tuple[Format, bytes]]:
    """
    Determine the source format and the content file to parse.

    Order: explicit format, manifest "format" field, file-path detection
    through the registry, Ruler package header. Returns None when nothing
    identifies the format.
    """
    candidates = archive.content_files()
    if not candidates:
        return None

    declared = explicit
    if declared is None:
        manifest = archive.manifest() or {}
        try:
            declared = Format.parse(manifest['format']) if manifest.get('format') else None
        except ValueError:
            logger.debug("Manifest declares unsupported format %r", manifest.get('format'))

    if declared is not None:
        adapter = registry.get_adapter(declared)
        for path, data in candidates:
            if adapter is not None and adapter.can_handle(PurePosixPath(path)):
                return declared, data
        return declared, candidates[0][1]

    for path, data in candidates:
        adapter = registry.detect_format(PurePosixPath(path))
        if adapter is not None:
            return Format.parse(adapter.format_name), data

    for path, data in candidates:
        if has_package_header(data.decode('utf-8', errors='replace')):
            return Format.RULER, data

    return None
