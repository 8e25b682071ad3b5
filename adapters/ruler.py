"""
Ruler format adapter.

Ruler concatenates plain markdown files from .ruler/ and distributes them
to every agent it supports. Files carry no frontmatter; the package is
identified by HTML comment header lines:

<!-- Package: @acme/react-rules -->
<!-- Version: 1.0.0 -->
<!-- Author: acme -->
<!-- Description: React conventions -->
<!-- Tags: react, frontend -->
<!-- Extensions: {"cursor.globs": "src/**"} -->

Ruler's simple rule format has no rationale, example labels, persona or
tools. Priorities are folded into the rule text and examples become a
plain "Usage Examples" section.
"""

import json
import re
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from core.canonical_models import FieldMapping, Format
from core.errors import ParseError
from adapters.shared.base import MarkdownAdapter
from adapters.shared.markdown_body import BodyStyle

HEADER_RE = re.compile(r'^<!--\s*([A-Za-z][A-Za-z ]*?):\s?(.*?)\s*-->$')
PACKAGE_MARKER_RE = re.compile(r'^\s*<!--\s*Package:', re.MULTILINE)

# Header label -> envelope key, in render order.
HEADER_KEYS = (
    ('Package', 'name'),
    ('Version', 'version'),
    ('Author', 'author'),
    ('Description', 'description'),
    ('Tags', 'tags'),
)
EXTENSIONS_LABEL = 'Extensions'


def has_package_header(text: str) -> bool:
    """True when text carries a Ruler package header."""
    return bool(PACKAGE_MARKER_RE.search(text))


class RulerAdapter(MarkdownAdapter):
    """Adapter for Ruler .ruler/*.md files."""

    FORMAT = Format.RULER
    FIELD_MAPPINGS = {
        'metadata': FieldMapping.MAPS,
        'instructions': FieldMapping.MAPS,
        'rules': FieldMapping.MAPS,
        'rules.priority': FieldMapping.DEGRADES,
        'rules.rationale': FieldMapping.DROPS,
        'examples': FieldMapping.DEGRADES,
        'examples.label': FieldMapping.DROPS,
        'persona': FieldMapping.DROPS,
        'tools': FieldMapping.DROPS,
        'context': FieldMapping.MAPS,
    }
    BODY_STYLE = BodyStyle(priority='inline', rationale='none', examples='prose',
                           example_labels=False, persona='none')
    PATH_TEMPLATE = '.ruler/{slug}.md'

    def can_handle(self, file_path: Path) -> bool:
        parts = self._path_parts(file_path)
        return '.ruler' in parts[:-1] and parts[-1].endswith('.md')

    def _split_envelope(self, text: str) -> Tuple[Optional[Dict[str, Any]], str]:
        labels = {label: key for label, key in HEADER_KEYS}
        envelope: Dict[str, Any] = {}
        lines = text.split('\n')
        consumed = 0

        for line in lines:
            match = HEADER_RE.match(line.strip())
            if not match:
                break
            label, value = match.group(1).strip(), match.group(2)
            consumed += 1
            if label == EXTENSIONS_LABEL:
                try:
                    extensions = json.loads(value)
                except json.JSONDecodeError as e:
                    raise ParseError(self.format_name, f"Invalid extensions header: {e}")
                if not isinstance(extensions, dict):
                    raise ParseError(self.format_name, "Extensions header must be a JSON object")
                envelope['extensions'] = extensions
            elif label in labels:
                envelope[labels[label]] = value
            else:
                envelope[label.lower().replace(' ', '_')] = value

        if not consumed:
            return None, text
        return envelope, '\n'.join(lines[consumed:])

    def _join_envelope(self, envelope: Dict[str, Any], body: str) -> str:
        lines = [f"<!-- Package: {self._header_value(envelope.get('name', ''))} -->"]
        for label, key in HEADER_KEYS[1:]:
            value = envelope.get(key)
            if key == 'tags' and value:
                value = ', '.join(value)
            if value:
                lines.append(f"<!-- {label}: {self._header_value(value)} -->")

        known = {key for _, key in HEADER_KEYS} | {'extensions'}
        for key, value in envelope.items():
            if key not in known and value is not None:
                label = key.replace('_', ' ').title()
                lines.append(f"<!-- {label}: {self._header_value(value)} -->")

        if envelope.get('extensions'):
            payload = json.dumps(envelope['extensions'], ensure_ascii=False, sort_keys=True)
            payload = payload.replace('>', '\\u003e')
            lines.append(f"<!-- {EXTENSIONS_LABEL}: {payload} -->")

        header = '\n'.join(lines) + '\n'
        return f"{header}\n{body}" if body else header

    @staticmethod
    def _header_value(value: Any) -> str:
        return ' '.join(str(value).replace('--', '- -').split())
