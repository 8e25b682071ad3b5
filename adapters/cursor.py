"""
Cursor format adapter.

Cursor project rules live in .cursor/rules/*.mdc: markdown with optional
YAML frontmatter controlling when the rule is attached.

File format:
---
description: When to apply this rule
globs: src/**/*.tsx
alwaysApply: false
---
# Rule title

Instructions...

Legacy single-file rules (.cursorrules) are the same markdown without
frontmatter.

Cursor has no tool concept, and a persona becomes a plain "Role" section.
"""

from pathlib import Path
from typing import Any, Dict

from core.canonical_models import CanonicalDocument, FieldMapping, Format
from adapters.shared.base import MarkdownAdapter
from adapters.shared.hints import CursorHints
from adapters.shared.markdown_body import BodyStyle


class CursorAdapter(MarkdownAdapter):
    """Adapter for Cursor .mdc rules."""

    FORMAT = Format.CURSOR
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
    HINTS = CursorHints
    NATIVE_KEYS = ('globs', 'alwaysApply')
    PATH_TEMPLATE = '.cursor/rules/{slug}.mdc'

    @property
    def file_extension(self) -> str:
        return ".mdc"

    def can_handle(self, file_path: Path) -> bool:
        name = Path(file_path).name.lower()
        return name.endswith('.mdc') or name == '.cursorrules'

    def _native_fields(self, document: CanonicalDocument, hints: CursorHints,
                       current: Dict[str, Any]) -> Dict[str, Any]:
        fields = {}
        if hints.globs is not None:
            fields['globs'] = hints.globs
        if hints.always_apply is not None:
            fields['alwaysApply'] = hints.always_apply
        return fields
