"""
Continue format adapter.

Continue rules live in .continue/rules/ as markdown with YAML frontmatter:

---
name: Rule name
description: When the rule applies
globs: "**/*.py"
alwaysApply: false
invokable: true      # prompts usable as slash commands
---

The module is named continue_ because `continue` is a Python keyword.
"""

from pathlib import Path
from typing import Any, Dict

from core.canonical_models import CanonicalDocument, FieldMapping, Format
from adapters.shared.base import MarkdownAdapter
from adapters.shared.hints import ContinueHints
from adapters.shared.markdown_body import BodyStyle


class ContinueAdapter(MarkdownAdapter):
    """Adapter for Continue rules and prompts."""

    FORMAT = Format.CONTINUE
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
    HINTS = ContinueHints
    NATIVE_KEYS = ('globs', 'alwaysApply', 'invokable')
    PATH_TEMPLATE = '.continue/rules/{slug}.md'

    def can_handle(self, file_path: Path) -> bool:
        parts = self._path_parts(file_path)
        return '.continue' in parts[:-1] and parts[-1].endswith('.md')

    def _native_fields(self, document: CanonicalDocument, hints: ContinueHints,
                       current: Dict[str, Any]) -> Dict[str, Any]:
        fields = {}
        if hints.globs is not None:
            fields['globs'] = hints.globs
        if hints.always_apply is not None:
            fields['alwaysApply'] = hints.always_apply
        if hints.invokable is not None:
            fields['invokable'] = hints.invokable
        return fields
