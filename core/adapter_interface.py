"""
Format adapter interface.

Every supported format implements FormatAdapter. An adapter is a pure
transformer between the format's bytes and a CanonicalDocument:

- parse() is total over any input: malformed content raises ParseError,
  never anything else.
- render() is a pure function of (document, options). Fields the format
  cannot express are dropped silently; the conversion engine reports drops
  using the adapter's FIELD_MAPPINGS table, so adapters carry no scoring
  logic of their own.
- FIELD_MAPPINGS declares, for every canonical field, whether the format
  MAPS, DEGRADES or DROPS it.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, ClassVar, Dict, Optional, Union

from core.canonical_models import CANONICAL_FIELDS, CanonicalDocument, FieldMapping, Format
from core.errors import ParseError


class FormatAdapter(ABC):
    """Abstract base for format adapters."""

    FORMAT: ClassVar[Format]
    FIELD_MAPPINGS: ClassVar[Dict[str, FieldMapping]] = {}
    CONTENT_TYPE: ClassVar[str] = 'text/plain'

    @property
    def format_name(self) -> str:
        """Unique identifier for this format."""
        return self.FORMAT.value

    @property
    @abstractmethod
    def file_extension(self) -> str:
        """Primary file extension for this format."""

    @abstractmethod
    def can_handle(self, file_path: Path) -> bool:
        """Check if a file path looks like this format's on-disk layout."""

    @abstractmethod
    def parse(self, content: Union[bytes, str]) -> CanonicalDocument:
        """
        Convert format bytes to a canonical document.

        Raises:
            ParseError: If the content is malformed for this format.
        """

    @abstractmethod
    def render(self, document: CanonicalDocument,
               options: Optional[Dict[str, Any]] = None) -> bytes:
        """
        Convert a canonical document to format bytes.

        Raises:
            RenderError: If the options are invalid or the document cannot
                satisfy a mandatory field of the format.
        """

    def suggested_path(self, document: CanonicalDocument) -> str:
        """Conventional install path for a rendered document."""
        return f"{document.metadata.name or 'package'}{self.file_extension}"

    @classmethod
    def mapping_for(cls, field_name: str) -> FieldMapping:
        """Mapping policy for one canonical field (MAPS when undeclared)."""
        return cls.FIELD_MAPPINGS.get(field_name, FieldMapping.MAPS)

    @classmethod
    def field_mappings(cls) -> Dict[str, FieldMapping]:
        """Complete mapping table over all canonical fields."""
        return {name: cls.mapping_for(name) for name in CANONICAL_FIELDS}

    def read(self, file_path: Path) -> CanonicalDocument:
        """Read file and convert to canonical."""
        with open(file_path, 'rb') as f:
            content = f.read()
        return self.parse(content)

    def write(self, document: CanonicalDocument, file_path: Path,
              options: Optional[Dict[str, Any]] = None):
        """Write canonical document to file in this format."""
        content = self.render(document, options)
        with open(file_path, 'wb') as f:
            f.write(content)

    def _decode(self, content: Union[bytes, str]) -> str:
        """Decode input to text with normalized line endings."""
        if isinstance(content, bytes):
            try:
                content = content.decode('utf-8')
            except UnicodeDecodeError as e:
                raise ParseError(self.format_name, f"Content is not valid UTF-8: {e}")
        if content.startswith('\ufeff'):
            content = content[1:]
        return content.replace('\r\n', '\n').replace('\r', '\n')
