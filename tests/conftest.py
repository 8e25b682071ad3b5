"""Shared fixtures."""

import io
import tarfile
from pathlib import Path

import pytest

from core.canonical_models import (
    CanonicalDocument,
    CanonicalExample,
    CanonicalPersona,
    CanonicalRule,
    ContextSection,
    ExampleLabel,
    Format,
    PackageMetadata,
    Priority,
)

FIXTURES = Path(__file__).parent / 'fixtures'


@pytest.fixture
def fixtures_dir():
    """Directory holding sample files for every format."""
    return FIXTURES


@pytest.fixture
def rich_document():
    """Document populating every canonical field."""
    return CanonicalDocument(
        metadata=PackageMetadata(
            name='react-rules',
            version='1.0.0',
            description='React conventions',
            author='acme',
            tags=['react', 'frontend'],
        ),
        instructions=['Follow these rules when writing React components.'],
        rules=[
            CanonicalRule('Use hooks', Priority.HIGH, 'Hooks compose'),
            CanonicalRule('Avoid class components'),
        ],
        examples=[
            CanonicalExample('const [a, setA] = useState(0)', 'a stateful value', ExampleLabel.GOOD),
        ],
        persona=CanonicalPersona('a React expert', 'concise', ['react', 'typescript']),
        tools=['Read', 'Bash'],
        context=[ContextSection('Notes', 'Keep components small.')],
        source_format=Format.CLAUDE,
    )


def build_archive(files, compress=True):
    """Pack {path: text} into a (gzip) tarball."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode='w:gz' if compress else 'w') as tar:
        for path, content in files.items():
            data = content.encode('utf-8') if isinstance(content, str) else content
            info = tarfile.TarInfo(name=path)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


@pytest.fixture
def make_archive():
    """Factory for legacy archive blobs."""
    return build_archive
