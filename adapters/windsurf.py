"""
Windsurf format adapter.

Windsurf rules (.windsurfrules, .windsurf/rules/*.md) are plain markdown
with no frontmatter. Package metadata rides in a leading HTML comment that
holds YAML, which Windsurf ignores:

<!--
name: react-best-practices
version: 1.0.0
-->

# react-best-practices
...

Rule priorities are folded into the rule text; example labels and tools
are dropped.
"""

from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from core.canonical_models import FieldMapping, Format
from adapters.shared.base import MarkdownAdapter
from adapters.shared.frontmatter import join_comment_header, split_comment_header
from adapters.shared.markdown_body import BodyStyle


class WindsurfAdapter(MarkdownAdapter):
    """Adapter for Windsurf rules."""

    FORMAT = Format.WINDSURF
    FIELD_MAPPINGS = {
        'metadata': FieldMapping.MAPS,
        'instructions': FieldMapping.MAPS,
        'rules': FieldMapping.MAPS,
        'rules.priority': FieldMapping.DEGRADES,
        'rules.rationale': FieldMapping.MAPS,
        'examples': FieldMapping.MAPS,
        'examples.label': FieldMapping.DROPS,
        'persona': FieldMapping.DEGRADES,
        'tools': FieldMapping.DROPS,
        'context': FieldMapping.MAPS,
    }
    BODY_STYLE = BodyStyle(priority='inline', example_labels=False, persona='prose')
    PATH_TEMPLATE = '.windsurf/rules/{slug}.md'

    def can_handle(self, file_path: Path) -> bool:
        parts = self._path_parts(file_path)
        if parts[-1] == '.windsurfrules':
            return True
        return '.windsurf' in parts[:-1] and parts[-1].endswith('.md')

    def _split_envelope(self, text: str) -> Tuple[Optional[Dict[str, Any]], str]:
        return split_comment_header(text, self.format_name)

    def _join_envelope(self, envelope: Dict[str, Any], body: str) -> str:
        return join_comment_header(envelope, body)
