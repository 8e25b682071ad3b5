"""
Kiro format adapter.

Kiro steering files live in .kiro/steering/ and always carry frontmatter
with an inclusion mode:

---
inclusion: always | fileMatch | manual
fileMatchPattern: "components/**/*.tsx"   # required for fileMatch
---
# Domain title

Steering instructions...

The title heading doubles as the steering domain; the `domain` hint
overrides it. Without hints, inclusion defaults to `always`.
"""

from pathlib import Path
from typing import Any, Dict, Optional

from core.canonical_models import CanonicalDocument, FieldMapping, Format
from core.errors import ParseError, RenderError
from adapters.shared.base import MarkdownAdapter
from adapters.shared.hints import KiroHints
from adapters.shared.markdown_body import BodyStyle

INCLUSION_MODES = ('always', 'fileMatch', 'manual')
DEFAULT_INCLUSION = 'always'


class KiroAdapter(MarkdownAdapter):
    """Adapter for Kiro steering files."""

    FORMAT = Format.KIRO
    FIELD_MAPPINGS = {
        'metadata': FieldMapping.MAPS,
        'instructions': FieldMapping.MAPS,
        'rules': FieldMapping.MAPS,
        'rules.priority': FieldMapping.MAPS,
        'rules.rationale': FieldMapping.MAPS,
        'examples': FieldMapping.MAPS,
        'examples.label': FieldMapping.MAPS,
        'persona': FieldMapping.DEGRADES,
        'tools': FieldMapping.DROPS,
        'context': FieldMapping.MAPS,
    }
    BODY_STYLE = BodyStyle(persona='prose')
    HINTS = KiroHints
    NATIVE_KEYS = ('inclusion', 'fileMatchPattern')
    REQUIRE_ENVELOPE = True
    PATH_TEMPLATE = '.kiro/steering/{slug}.md'

    def can_handle(self, file_path: Path) -> bool:
        parts = self._path_parts(file_path)
        return '.kiro' in parts[:-1] and parts[-1].endswith('.md')

    def _post_parse(self, document: CanonicalDocument):
        inclusion = document.get_metadata('kiro.inclusion')
        if inclusion is not None and inclusion not in INCLUSION_MODES:
            raise ParseError(self.format_name,
                             f"Invalid inclusion mode {inclusion!r} (expected one of {', '.join(INCLUSION_MODES)})")

    def _native_fields(self, document: CanonicalDocument, hints: KiroHints,
                       current: Dict[str, Any]) -> Dict[str, Any]:
        inclusion = hints.inclusion or current.get('inclusion') or DEFAULT_INCLUSION
        if inclusion not in INCLUSION_MODES:
            raise RenderError(self.format_name, f"Invalid inclusion mode {inclusion!r}")

        pattern = hints.file_match_pattern or current.get('fileMatchPattern')
        if inclusion == 'fileMatch' and not pattern:
            raise RenderError(self.format_name, "fileMatch inclusion mode requires fileMatchPattern")

        return {
            'inclusion': inclusion,
            'fileMatchPattern': pattern if inclusion == 'fileMatch' else None,
        }

    def _title(self, document: CanonicalDocument, hints: KiroHints) -> Optional[str]:
        return hints.domain or super()._title(document, hints)
