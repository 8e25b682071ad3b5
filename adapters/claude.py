"""
Claude Code format adapter.

Claude Code stores agents and skills as Markdown files with YAML frontmatter in:
- User-level: ~/.claude/agents/
- Project-level: .claude/agents/, .claude/skills/<name>/SKILL.md

File format:
---
name: agent-name
description: Agent description
tools: Read, Grep, Glob, Bash  # Comma-separated string
model: sonnet|opus|haiku|inherit
permissionMode: (optional, Claude-specific)
---
Agent instructions in markdown...

This adapter:
- Parses YAML frontmatter + markdown body
- Normalizes tools from comma-separated string to list
- Preserves Claude-specific fields (permissionMode, skills) as extensions
- Uses short model names (sonnet, opus, haiku) as canonical form
- Is the only format that expresses tools and a structured persona
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

from core.canonical_models import CanonicalDocument, FieldMapping, Format
from core.errors import RenderError
from adapters.shared.base import MarkdownAdapter
from adapters.shared.hints import ClaudeHints
from adapters.shared.markdown_body import BodyStyle


class ClaudeAdapter(MarkdownAdapter):
    """
    Adapter for Claude Code agent format.

    Handles bidirectional conversion between Claude's .md format and
    the canonical document.
    """

    FORMAT = Format.CLAUDE
    FIELD_MAPPINGS = {
        'metadata': FieldMapping.MAPS,
        'instructions': FieldMapping.MAPS,
        'rules': FieldMapping.MAPS,
        'rules.priority': FieldMapping.MAPS,
        'rules.rationale': FieldMapping.MAPS,
        'examples': FieldMapping.MAPS,
        'examples.label': FieldMapping.MAPS,
        'persona': FieldMapping.MAPS,
        'tools': FieldMapping.MAPS,
        'context': FieldMapping.MAPS,
    }
    BODY_STYLE = BodyStyle(title=False)
    HINTS = ClaudeHints
    NATIVE_KEYS = ('tools', 'model')
    CONSUMED_KEYS = ('tools',)
    REQUIRE_ENVELOPE = True
    PATH_TEMPLATE = '.claude/agents/{slug}.md'

    def can_handle(self, file_path: Path) -> bool:
        """Claude files are .md files under a .claude directory."""
        parts = self._path_parts(file_path)
        return '.claude' in parts[:-1] and parts[-1].endswith('.md')

    def _parse_consumed(self, envelope: Dict[str, Any]) -> List[str]:
        return self._parse_tools(envelope.get('tools'))

    def _post_parse(self, document: CanonicalDocument):
        if document.has_metadata('claude.model'):
            document.add_metadata('claude.model', self._normalize_model(document.get_metadata('claude.model')))

    def _native_fields(self, document: CanonicalDocument, hints: ClaudeHints,
                       current: Dict[str, Any]) -> Dict[str, Any]:
        if not document.metadata.name:
            raise RenderError(self.format_name, "Claude agents require a name")

        tools = hints.tools if hints.tools is not None else document.tools
        return {
            # Tools as comma-separated string
            'tools': ', '.join(tools) if tools else None,
            'model': hints.model or self._normalize_model(current.get('model')),
        }

    def _parse_tools(self, tools_value: Any) -> List[str]:
        """
        Parse tools from comma-separated string or list.

        Args:
            tools_value: Either string "tool1, tool2" or list ["tool1", "tool2"]

        Returns:
            List of tool names
        """
        if isinstance(tools_value, str):
            return [t.strip() for t in tools_value.split(',') if t.strip()]
        elif isinstance(tools_value, list):
            return [str(t).strip() for t in tools_value if str(t).strip()]
        return []

    def _normalize_model(self, model: Optional[str]) -> Optional[str]:
        """
        Normalize model name to canonical form.

        Claude already uses short names (sonnet, opus, haiku) which
        are the canonical form, so just lowercase and return.
        """
        if not model:
            return None
        return str(model).lower()
