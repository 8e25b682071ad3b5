"""
GitHub Copilot format adapter.

Copilot reads custom instructions from:
- Repository-wide: .github/copilot-instructions.md
- Path-specific: .github/instructions/NAME.instructions.md (applyTo glob)
- Custom agents: .github/agents/NAME.agent.md

Instructions are natural-language markdown; frontmatter carries applyTo
for path-specific files. Copilot has no notion of rule priority or of
good/bad example labels, so priorities are folded into the rule text and
labels are dropped.
"""

from pathlib import Path
from typing import Any, Dict

from core.canonical_models import CanonicalDocument, FieldMapping, Format
from adapters.shared.base import MarkdownAdapter
from adapters.shared.hints import CopilotHints
from adapters.shared.markdown_body import BodyStyle


class CopilotAdapter(MarkdownAdapter):
    """Adapter for GitHub Copilot instruction files."""

    FORMAT = Format.COPILOT
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
    HINTS = CopilotHints
    NATIVE_KEYS = ('applyTo',)
    PATH_TEMPLATE = '.github/instructions/{slug}.instructions.md'

    @property
    def file_extension(self) -> str:
        return ".instructions.md"

    def can_handle(self, file_path: Path) -> bool:
        name = Path(file_path).name.lower()
        return (name == 'copilot-instructions.md' or
                name.endswith('.instructions.md') or
                name.endswith('.agent.md'))

    def _native_fields(self, document: CanonicalDocument, hints: CopilotHints,
                       current: Dict[str, Any]) -> Dict[str, Any]:
        if hints.apply_to is not None:
            return {'applyTo': hints.apply_to}
        return {}
