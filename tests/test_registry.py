"""
Unit tests for format registry.

Tests cover:
- Adapter registration and unregistration
- Adapter lookup by format tag
- Format detection from file paths
- The closed set of formats
- Error handling for edge cases
"""

import pytest
from pathlib import Path

from core.canonical_models import Format
from core.registry import FormatRegistry
from adapters import ADAPTER_TYPES, ClaudeAdapter, CopilotAdapter, default_registry


class TestFormatRegistry:
    """Tests for FormatRegistry."""

    @pytest.fixture
    def registry(self):
        """Create FormatRegistry with some adapters."""
        registry = FormatRegistry()
        registry.register(ClaudeAdapter())
        registry.register(CopilotAdapter())
        return registry

    def test_register_adapter(self):
        """Test registering an adapter."""
        registry = FormatRegistry()
        registry.register(ClaudeAdapter())
        assert 'claude' in registry.list_formats()
        assert registry.get_adapter('claude') is not None

    def test_register_duplicate_raises_error(self, registry):
        """Test that registering duplicate format raises error."""
        with pytest.raises(ValueError, match="already registered"):
            registry.register(ClaudeAdapter())

    def test_get_adapter(self, registry):
        """Test retrieving adapter by name or enum."""
        adapter = registry.get_adapter('claude')
        assert adapter is not None
        assert adapter.format_name == 'claude'

        assert registry.get_adapter(Format.COPILOT).format_name == 'copilot'
        assert registry.get_adapter(' Copilot ').format_name == 'copilot'

    def test_get_nonexistent_adapter(self, registry):
        """Test retrieving unknown or unregistered adapter returns None."""
        assert registry.get_adapter('nonexistent') is None
        assert registry.get_adapter('kiro') is None

    def test_detect_format(self):
        """Test auto-detecting format from file path."""
        registry = default_registry()
        cases = {
            '.cursor/rules/react.mdc': 'cursor',
            '.cursorrules': 'cursor',
            '.claude/agents/planner.md': 'claude',
            '.claude/skills/review/SKILL.md': 'claude',
            '.kiro/steering/testing.md': 'kiro',
            '.github/copilot-instructions.md': 'copilot',
            '.github/instructions/react.instructions.md': 'copilot',
            '.github/agents/reviewer.agent.md': 'copilot',
            '.continue/rules/style.md': 'continue',
            '.windsurfrules': 'windsurf',
            '.windsurf/rules/style.md': 'windsurf',
            '.ruler/react.md': 'ruler',
        }
        for path, expected in cases.items():
            adapter = registry.detect_format(Path(path))
            assert adapter is not None, path
            assert adapter.format_name == expected, path

    def test_detect_format_no_match(self):
        """Test that detecting unknown format returns None."""
        registry = default_registry()
        assert registry.detect_format(Path('README.md')) is None
        assert registry.detect_format(Path('script.py')) is None
        assert registry.detect_format(Path('config.json')) is None

    def test_list_formats(self, registry):
        """Test listing all registered formats."""
        assert registry.list_formats() == ['claude', 'copilot']

    def test_list_formats_empty(self):
        """Test listing formats for empty registry."""
        registry = FormatRegistry()
        assert registry.list_formats() == []
        assert registry.missing_formats() == list(Format)

    def test_unregister_adapter(self, registry):
        """Test unregistering an adapter."""
        registry.unregister('claude')

        assert 'claude' not in registry.list_formats()
        assert registry.get_adapter('claude') is None
        assert 'copilot' in registry.list_formats()

    def test_unregister_nonexistent(self, registry):
        """Test unregistering non-existent format doesn't raise error."""
        registry.unregister('nonexistent')
        registry.unregister('kiro')

        assert registry.list_formats() == ['claude', 'copilot']


class TestClosedFormatSet:
    """Tests for the closed format tag set."""

    def test_default_registry_covers_every_format(self):
        """Test that the default registry has an adapter for every tag."""
        registry = default_registry()
        assert registry.missing_formats() == []
        assert sorted(registry.list_formats()) == sorted(f.value for f in Format)

    def test_adapter_types_match_tags(self):
        """Test that each adapter class declares the tag it is registered under."""
        for fmt, adapter_type in ADAPTER_TYPES.items():
            assert adapter_type.FORMAT is fmt
            assert adapter_type().format_name == fmt.value

    def test_format_parse(self):
        """Test parsing format tags."""
        assert Format.parse('cursor') is Format.CURSOR
        assert Format.parse(' RULER ') is Format.RULER
        assert Format.parse(Format.KIRO) is Format.KIRO
        assert str(Format.CONTINUE) == 'continue'

    def test_format_parse_unknown(self):
        """Test that unknown tags are rejected."""
        with pytest.raises(ValueError, match="Unknown format"):
            Format.parse('aider')
        with pytest.raises(ValueError):
            Format.parse(None)
