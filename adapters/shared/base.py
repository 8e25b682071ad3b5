"""
Base class for the markdown-based adapters.

Subclasses describe their format declaratively (FORMAT, FIELD_MAPPINGS,
BODY_STYLE, HINTS, NATIVE_KEYS) and override the hooks for whatever their
envelope does differently. Parsing and rendering of the shared body grammar
happens here.
"""

import re
from pathlib import Path
from typing import Any, ClassVar, Dict, Optional, Tuple, Type, Union

from core.adapter_interface import FormatAdapter
from core.canonical_models import CanonicalDocument
from adapters.shared.frontmatter import (
    envelope_from_metadata,
    join_frontmatter,
    metadata_from_envelope,
    own_extensions,
    split_frontmatter,
)
from adapters.shared.hints import FormatHints, NoHints, validate_hints
from adapters.shared.markdown_body import UNTITLED, BodyStyle, parse_body, render_body

HEADING_KEY = 'heading'


def slugify(name: str) -> str:
    """File-system friendly base name for a package name like @scope/pkg."""
    base = name.rsplit('/', 1)[-1]
    slug = re.sub(r'[^a-z0-9]+', '-', base.lower()).strip('-')
    return slug or 'package'


class MarkdownAdapter(FormatAdapter):
    """Markdown body with a YAML frontmatter envelope."""

    BODY_STYLE: ClassVar[BodyStyle] = BodyStyle()
    HINTS: ClassVar[Type[FormatHints]] = NoHints
    # Native envelope keys in render order; other native keys follow.
    NATIVE_KEYS: ClassVar[Tuple[str, ...]] = ()
    # Envelope keys that map to canonical fields instead of extensions.
    CONSUMED_KEYS: ClassVar[Tuple[str, ...]] = ()
    REQUIRE_ENVELOPE: ClassVar[bool] = False
    CONTENT_TYPE: ClassVar[str] = 'text/markdown'
    PATH_TEMPLATE: ClassVar[str] = '{slug}.md'

    @property
    def file_extension(self) -> str:
        return '.md'

    def suggested_path(self, document: CanonicalDocument) -> str:
        """Conventional install path for a rendered document."""
        return self.PATH_TEMPLATE.format(slug=slugify(document.metadata.name))

    # Parsing

    def parse(self, content: Union[bytes, str]) -> CanonicalDocument:
        text = self._decode(content)
        envelope, body = self._split_envelope(text)
        envelope = envelope or {}

        metadata = metadata_from_envelope(envelope, self.format_name, self.CONSUMED_KEYS)
        parsed = parse_body(body, self.BODY_STYLE)
        if parsed.title and parsed.title != (metadata.name or UNTITLED):
            metadata.extensions[f"{self.format_name}.{HEADING_KEY}"] = parsed.title

        document = CanonicalDocument(
            metadata=metadata,
            instructions=parsed.instructions,
            rules=parsed.rules,
            examples=parsed.examples,
            persona=parsed.persona,
            context=parsed.context,
            source_format=self.FORMAT,
            tools=self._parse_consumed(envelope),
        )
        self._post_parse(document)
        return document

    def _split_envelope(self, text: str) -> Tuple[Optional[Dict[str, Any]], str]:
        return split_frontmatter(text, self.format_name, required=self.REQUIRE_ENVELOPE)

    def _parse_consumed(self, envelope: Dict[str, Any]) -> list:
        """Tools carried by the envelope (only formats that map tools override this)."""
        return []

    def _post_parse(self, document: CanonicalDocument):
        """Format-specific normalization and checks; raise ParseError."""

    # Rendering

    def render(self, document: CanonicalDocument,
               options: Optional[Dict[str, Any]] = None) -> bytes:
        hints = validate_hints(self.HINTS, options, self.format_name)
        native = own_extensions(document.metadata, self.format_name, exclude=(HEADING_KEY,))
        native.update(self._native_fields(document, hints, native))
        envelope = envelope_from_metadata(document.metadata, self.format_name,
                                          self._order_native(native))
        body = render_body(document, self.BODY_STYLE, self._title(document, hints))
        return self._join_envelope(envelope, body).encode('utf-8')

    def _native_fields(self, document: CanonicalDocument, hints: FormatHints,
                       current: Dict[str, Any]) -> Dict[str, Any]:
        """Native envelope values derived from hints; override per format."""
        return {}

    def _title(self, document: CanonicalDocument, hints: FormatHints) -> Optional[str]:
        return document.get_metadata(f"{self.format_name}.{HEADING_KEY}") or document.metadata.name

    def _order_native(self, native: Dict[str, Any]) -> Dict[str, Any]:
        ordered = {key: native[key] for key in self.NATIVE_KEYS if key in native}
        ordered.update((key, value) for key, value in native.items() if key not in ordered)
        return ordered

    def _join_envelope(self, envelope: Dict[str, Any], body: str) -> str:
        return join_frontmatter(envelope, body)

    @staticmethod
    def _path_parts(file_path: Path) -> Tuple[str, ...]:
        return tuple(part.lower() for part in Path(file_path).parts)
