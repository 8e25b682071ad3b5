"""
Unit tests for format adapters.

Tests cover:
- Parsing each format's sample file into the canonical document
- Rendering canonical documents into each format
- Identity fixed point (render -> parse -> render is byte-stable)
- Field mapping tables and how DEGRADE fields are folded into text
- Conversion hints and their validation
- ParseError / RenderError for malformed input
"""

import json
from pathlib import Path

import pytest

from core.canonical_models import (
    CANONICAL_FIELDS,
    CanonicalDocument,
    CanonicalExample,
    FieldMapping,
    Format,
    PackageMetadata,
    Priority,
)
from core.errors import ParseError, RenderError
from adapters import (
    ADAPTER_TYPES,
    ClaudeAdapter,
    ContinueAdapter,
    CopilotAdapter,
    CursorAdapter,
    KiroAdapter,
    RulerAdapter,
    WindsurfAdapter,
)

FIXTURES = Path(__file__).parent / 'fixtures'


class TestAllAdapters:
    """Properties every adapter must satisfy."""

    @pytest.fixture(params=list(Format), ids=lambda f: f.value)
    def adapter(self, request):
        """One adapter per supported format."""
        return ADAPTER_TYPES[request.param]()

    def test_identity_fixed_point(self, adapter, rich_document):
        """Test render(parse(render(doc))) == render(doc)."""
        first = adapter.render(rich_document)
        second = adapter.render(adapter.parse(first))
        assert second == first

    def test_render_is_deterministic(self, adapter, rich_document):
        """Test identical inputs produce identical bytes."""
        assert adapter.render(rich_document) == adapter.render(rich_document)

    def test_render_ends_with_newline(self, adapter, rich_document):
        """Test rendered output is UTF-8 with a trailing newline."""
        output = adapter.render(rich_document)
        assert isinstance(output, bytes)
        assert output.decode('utf-8').endswith('\n')

    def test_metadata_always_preserved(self, adapter, rich_document):
        """Test metadata survives every format."""
        parsed = adapter.parse(adapter.render(rich_document))
        assert parsed.metadata.name == 'react-rules'
        assert parsed.metadata.version == '1.0.0'
        assert parsed.metadata.description == 'React conventions'
        assert parsed.metadata.author == 'acme'
        assert parsed.metadata.tags == ['react', 'frontend']

    def test_maps_fields_survive(self, adapter, rich_document):
        """Test fields the format MAPS come back unchanged."""
        parsed = adapter.parse(adapter.render(rich_document))
        mappings = adapter.field_mappings()
        assert parsed.instructions == rich_document.instructions
        assert [r.text for r in parsed.rules][1:] == ['Avoid class components']
        if mappings['rules.priority'] == FieldMapping.MAPS:
            assert parsed.rules[0].priority is Priority.HIGH
            assert parsed.rules[0].text == 'Use hooks'
        if mappings['rules.rationale'] == FieldMapping.MAPS:
            assert parsed.rules[0].rationale == 'Hooks compose'
        if mappings['examples'] == FieldMapping.MAPS:
            assert [e.input for e in parsed.examples] == [e.input for e in rich_document.examples]
        if mappings['persona'] == FieldMapping.MAPS:
            assert parsed.persona == rich_document.persona
        if mappings['tools'] == FieldMapping.MAPS:
            assert parsed.tools == rich_document.tools
        assert parsed.context[-1].title == 'Notes'
        assert parsed.context[-1].body == 'Keep components small.'

    def test_dropped_fields_absent(self, adapter, rich_document):
        """Test fields the format DROPS or DEGRADES are not structured on reparse."""
        parsed = adapter.parse(adapter.render(rich_document))
        mappings = adapter.field_mappings()
        if mappings['tools'] == FieldMapping.DROPS:
            assert parsed.tools == []
        if mappings['persona'] != FieldMapping.MAPS:
            assert parsed.persona is None
        if mappings['rules.priority'] != FieldMapping.MAPS:
            assert all(rule.priority is None for rule in parsed.rules)

    def test_parse_sets_source_format(self, adapter, rich_document):
        """Test parsed documents record their provenance."""
        parsed = adapter.parse(adapter.render(rich_document))
        assert parsed.source_format is adapter.FORMAT

    def test_field_mappings_complete(self, adapter):
        """Test every adapter declares every canonical field."""
        assert set(type(adapter).FIELD_MAPPINGS) == set(CANONICAL_FIELDS)
        assert adapter.mapping_for('metadata') == FieldMapping.MAPS

    def test_invalid_utf8_is_parse_error(self, adapter):
        """Test undecodable bytes raise ParseError, never anything else."""
        with pytest.raises(ParseError) as exc_info:
            adapter.parse(b'\xff\xfe\xfa')
        assert exc_info.value.format == adapter.format_name

    def test_empty_document_renders(self, adapter):
        """Test render is total over a minimal document."""
        doc = CanonicalDocument(metadata=PackageMetadata(name='empty'))
        first = adapter.render(doc)
        assert adapter.render(adapter.parse(first)) == first

    def test_fenced_headings_not_split(self, adapter):
        """Test headings inside code fences stay in the example."""
        doc = CanonicalDocument(
            metadata=PackageMetadata(name='fences'),
            instructions=['Intro.'],
            examples=[CanonicalExample('## not a heading\n```js\nx\n```', 'ok')],
        )
        first = adapter.render(doc)
        parsed = adapter.parse(first)
        assert adapter.render(parsed) == first
        assert '## not a heading' in first.decode('utf-8')
        assert [section.title for section in parsed.context] in ([], ['Usage Examples'])


class TestClaudeAdapter:
    """Tests for ClaudeAdapter."""

    @pytest.fixture
    def adapter(self):
        """Create ClaudeAdapter instance."""
        return ClaudeAdapter()

    @pytest.fixture
    def sample_path(self):
        return FIXTURES / 'claude' / 'code-reviewer.md'

    def test_format_properties(self, adapter):
        """Test adapter properties."""
        assert adapter.format_name == "claude"
        assert adapter.file_extension == ".md"

    def test_can_handle(self, adapter):
        """Test file detection."""
        assert adapter.can_handle(Path(".claude/agents/planner.md")) is True
        assert adapter.can_handle(Path("/home/u/.claude/skills/x/SKILL.md")) is True
        assert adapter.can_handle(Path("agent.md")) is False
        assert adapter.can_handle(Path(".claude/settings.json")) is False

    def test_read(self, adapter, sample_path):
        """Test reading a Claude agent file."""
        doc = adapter.read(sample_path)
        assert doc.metadata.name == 'code-reviewer'
        assert doc.metadata.description == 'Reviews pull requests'
        assert doc.tools == ['Read', 'Grep', 'Bash']
        assert doc.get_metadata('claude.model') == 'sonnet'
        assert doc.get_metadata('claude.permissionMode') == 'ask'
        assert doc.instructions == ['Review the diff for correctness.']
        assert doc.persona.role == 'a senior reviewer'
        assert doc.persona.style == 'direct'
        assert doc.persona.expertise == ['python', 'security']
        assert doc.rules[0].text == 'Flag missing tests'
        assert doc.rules[0].priority is Priority.MEDIUM
        assert doc.source_format is Format.CLAUDE

    def test_round_trip_normalizes_model(self, adapter, sample_path):
        """Test a round trip only lowercases the model name."""
        content = sample_path.read_text(encoding='utf-8')
        output = adapter.render(adapter.parse(content)).decode('utf-8')
        assert output == content.replace('model: Sonnet', 'model: sonnet')

    def test_hints_override(self, adapter, rich_document):
        """Test model and tools hints."""
        output = adapter.render(rich_document, {'model': 'Opus', 'tools': 'Read, Write'})
        text = output.decode('utf-8')
        assert 'model: opus\n' in text
        assert 'tools: Read, Write\n' in text

    def test_invalid_hint_is_render_error(self, adapter, rich_document):
        """Test unknown hint keys are rejected."""
        with pytest.raises(RenderError, match="Invalid conversion hints"):
            adapter.render(rich_document, {'colour': 'blue'})

    def test_name_is_mandatory(self, adapter):
        """Test rendering without a name fails."""
        with pytest.raises(RenderError, match="require a name"):
            adapter.render(CanonicalDocument(instructions=['x']))

    def test_missing_frontmatter(self, adapter):
        """Test that content without frontmatter is rejected."""
        with pytest.raises(ParseError, match="No YAML frontmatter found"):
            adapter.parse("Just instructions.\n")

    def test_invalid_yaml(self, adapter):
        """Test that malformed YAML is a ParseError."""
        with pytest.raises(ParseError, match="Failed to parse YAML"):
            adapter.parse("---\nname: [unclosed\n---\nbody\n")

    def test_non_mapping_frontmatter(self, adapter):
        """Test that list frontmatter is rejected."""
        with pytest.raises(ParseError, match="mapping"):
            adapter.parse("---\n- a\n- b\n---\nbody\n")

    def test_parse_tools_list(self, adapter):
        """Test tools given as a YAML list."""
        doc = adapter.parse("---\nname: a\ntools: [Read, Read, Bash]\n---\n")
        assert doc.tools == ['Read', 'Bash']

    def test_crlf_and_bom(self, adapter, sample_path):
        """Test Windows line endings and a BOM parse like plain LF."""
        content = sample_path.read_text(encoding='utf-8')
        windows = ('\ufeff' + content.replace('\n', '\r\n')).encode('utf-8')
        assert adapter.parse(windows) == adapter.parse(content)

    def test_suggested_path(self, adapter, rich_document):
        """Test conventional install path."""
        assert adapter.suggested_path(rich_document) == '.claude/agents/react-rules.md'


class TestCursorAdapter:
    """Tests for CursorAdapter."""

    @pytest.fixture
    def adapter(self):
        return CursorAdapter()

    @pytest.fixture
    def sample_content(self):
        return (FIXTURES / 'cursor' / 'react.mdc').read_text(encoding='utf-8')

    def test_format_properties(self, adapter):
        """Test adapter properties."""
        assert adapter.format_name == "cursor"
        assert adapter.file_extension == ".mdc"
        assert adapter.mapping_for('persona') == FieldMapping.DEGRADES
        assert adapter.mapping_for('tools') == FieldMapping.DROPS

    def test_can_handle(self, adapter):
        """Test file detection."""
        assert adapter.can_handle(Path(".cursor/rules/react.mdc"))
        assert adapter.can_handle(Path(".cursorrules"))
        assert not adapter.can_handle(Path("react.md"))

    def test_parse(self, adapter, sample_content):
        """Test parsing a Cursor rule."""
        doc = adapter.parse(sample_content)
        assert doc.metadata.description == 'React conventions'
        assert doc.get_metadata('cursor.globs') == 'src/**/*.tsx'
        assert doc.get_metadata('cursor.alwaysApply') is False
        assert doc.get_metadata('cursor.heading') == 'React Rules'
        assert doc.instructions == ['Follow these rules when writing React components.']
        assert [(r.text, r.priority, r.rationale) for r in doc.rules] == [
            ('Use hooks', Priority.HIGH, 'Hooks compose'),
            ('Avoid class components', None, None),
        ]
        assert doc.examples[0].input == 'const [a, setA] = useState(0)'
        assert doc.examples[0].output == 'a stateful value'
        assert doc.examples[0].label.value == 'good'
        assert doc.context[0].title == 'Notes'

    def test_round_trip(self, adapter, sample_content):
        """Test a hand-written rule survives a round trip."""
        output = adapter.render(adapter.parse(sample_content)).decode('utf-8')
        assert output == sample_content.replace('---\n# React', '---\n\n# React')

    def test_frontmatter_optional(self, adapter):
        """Test legacy .cursorrules content without frontmatter."""
        doc = adapter.parse("# Rules\n\nBe concise.\n")
        assert doc.instructions == ['Be concise.']
        assert doc.get_metadata('cursor.heading') == 'Rules'

    def test_persona_folded_into_role_section(self, adapter, rich_document):
        """Test persona degrades into prose and tools are dropped."""
        text = adapter.render(rich_document).decode('utf-8')
        assert "## Role\n\nYou are a React expert. Style: concise. Expertise: react, typescript.\n" in text
        assert '## Persona' not in text
        assert 'Bash' not in text

    def test_hints(self, adapter, rich_document):
        """Test globs and alwaysApply hints."""
        output = adapter.render(rich_document, {'globs': ['src/**', 'lib/**'], 'alwaysApply': True})
        doc = adapter.parse(output)
        assert doc.get_metadata('cursor.globs') == ['src/**', 'lib/**']
        assert doc.get_metadata('cursor.alwaysApply') is True

    def test_foreign_extensions_nested(self, adapter, rich_document):
        """Test other formats' extensions travel under 'extensions'."""
        rich_document.add_metadata('claude.model', 'opus')
        rich_document.add_metadata('cursor.globs', '*.ts')
        text = adapter.render(rich_document).decode('utf-8')
        assert "globs: '*.ts'\n" in text
        assert "extensions:\n  claude.model: opus\n" in text
        assert adapter.parse(text).get_metadata('claude.model') == 'opus'

    def test_date_values_stay_text(self, adapter):
        """Test date-like frontmatter values parse as strings and render unchanged."""
        content = ("---\ndescription: Dated rules\ncreated: 2024-01-01\n"
                   "reviewed: 2024-02-03 10:00:00\n---\n\n# React Rules\n\n## Rules\n\n- Use hooks\n")
        doc = adapter.parse(content)
        assert doc.get_metadata('cursor.created') == '2024-01-01'
        assert isinstance(doc.get_metadata('cursor.reviewed'), str)
        json.dumps(doc.to_dict())
        assert adapter.render(doc).decode('utf-8') == content

    def test_quoted_scalars_keep_their_quotes(self, adapter):
        """Test author quoting survives a round trip."""
        content = ("---\ndescription: 'React conventions'\nglobs: \"src/**/*.tsx\"\n"
                   "alwaysApply: false\n---\n\n# React Rules\n\n## Rules\n\n- Use hooks\n")
        doc = adapter.parse(content)
        assert doc.metadata.description == 'React conventions'
        assert doc.get_metadata('cursor.globs') == 'src/**/*.tsx'
        assert adapter.render(doc).decode('utf-8') == content


class TestKiroAdapter:
    """Tests for KiroAdapter."""

    @pytest.fixture
    def adapter(self):
        return KiroAdapter()

    def test_read(self, adapter):
        """Test reading a Kiro steering file."""
        doc = adapter.read(FIXTURES / 'kiro' / 'testing.md')
        assert doc.get_metadata('kiro.inclusion') == 'fileMatch'
        assert doc.get_metadata('kiro.fileMatchPattern') == '**/*.test.ts'
        assert doc.get_metadata('kiro.heading') == 'Testing Standards'
        assert doc.rules[0].rationale == 'Bugs hide there'

    def test_round_trip_keeps_inclusion(self, adapter):
        """Test inclusion mode survives a round trip."""
        doc = adapter.parse(adapter.render(adapter.read(FIXTURES / 'kiro' / 'testing.md')))
        assert doc.get_metadata('kiro.inclusion') == 'fileMatch'
        assert doc.get_metadata('kiro.fileMatchPattern') == '**/*.test.ts'

    def test_default_inclusion(self, adapter, rich_document):
        """Test inclusion defaults to always."""
        text = adapter.render(rich_document).decode('utf-8')
        assert 'inclusion: always\n' in text
        assert 'fileMatchPattern' not in text

    def test_file_match_hints(self, adapter, rich_document):
        """Test fileMatch inclusion with a pattern and a domain title."""
        output = adapter.render(rich_document, {
            'inclusion': 'fileMatch',
            'fileMatchPattern': 'src/**/*.tsx',
            'domain': 'Frontend',
        })
        doc = adapter.parse(output)
        assert doc.get_metadata('kiro.inclusion') == 'fileMatch'
        assert doc.get_metadata('kiro.fileMatchPattern') == 'src/**/*.tsx'
        assert doc.get_metadata('kiro.heading') == 'Frontend'

    def test_file_match_requires_pattern(self, adapter, rich_document):
        """Test fileMatch without a pattern cannot be rendered."""
        with pytest.raises(RenderError, match="fileMatchPattern"):
            adapter.render(rich_document, {'inclusion': 'fileMatch'})

    def test_invalid_inclusion_hint(self, adapter, rich_document):
        """Test unknown inclusion modes are rejected."""
        with pytest.raises(RenderError):
            adapter.render(rich_document, {'inclusion': 'sometimes'})

    def test_invalid_inclusion_in_source(self, adapter):
        """Test parsing an unknown inclusion mode fails."""
        with pytest.raises(ParseError, match="Invalid inclusion mode"):
            adapter.parse("---\ninclusion: sometimes\n---\n\n# X\n")

    def test_frontmatter_required(self, adapter):
        """Test steering files must have frontmatter."""
        with pytest.raises(ParseError):
            adapter.parse("# Steering\n\nNo frontmatter.\n")


class TestCopilotAdapter:
    """Tests for CopilotAdapter."""

    @pytest.fixture
    def adapter(self):
        return CopilotAdapter()

    def test_format_properties(self, adapter):
        """Test adapter properties."""
        assert adapter.format_name == "copilot"
        assert adapter.file_extension == ".instructions.md"

    def test_can_handle(self, adapter):
        """Test file detection."""
        assert adapter.can_handle(Path(".github/copilot-instructions.md"))
        assert adapter.can_handle(Path(".github/instructions/py.instructions.md"))
        assert adapter.can_handle(Path(".github/agents/reviewer.agent.md"))
        assert not adapter.can_handle(Path("agent.md"))

    def test_read(self, adapter):
        """Test priorities stay part of the rule text."""
        doc = adapter.read(FIXTURES / 'copilot' / 'python.instructions.md')
        assert doc.get_metadata('copilot.applyTo') == '**/*.py'
        assert doc.rules[0].text == 'Prefer dataclasses (medium priority)'
        assert doc.rules[0].priority is None

    def test_priority_folded_and_labels_dropped(self, adapter, rich_document):
        """Test DEGRADE and DROP rendering."""
        text = adapter.render(rich_document).decode('utf-8')
        assert "- Use hooks (high priority)\n  - Rationale: Hooks compose\n" in text
        assert "### Example 1\n" in text
        assert "(good)" not in text
        assert "## Role\n" in text

    def test_apply_to_hint(self, adapter, rich_document):
        """Test applyTo hint."""
        doc = adapter.parse(adapter.render(rich_document, {'applyTo': 'src/**'}))
        assert doc.get_metadata('copilot.applyTo') == 'src/**'


class TestContinueAdapter:
    """Tests for ContinueAdapter."""

    @pytest.fixture
    def adapter(self):
        return ContinueAdapter()

    def test_read(self, adapter):
        """Test reading a Continue rule."""
        doc = adapter.read(FIXTURES / 'continue' / 'style.md')
        assert doc.metadata.name == 'style-guide'
        assert not doc.has_metadata('continue.heading')
        assert doc.get_metadata('continue.globs') == '**/*.go'
        assert doc.get_metadata('continue.alwaysApply') is False
        assert doc.get_metadata('continue.invokable') is True
        assert doc.instructions == ['Run gofmt before committing.']

    def test_hints(self, adapter, rich_document):
        """Test Continue hints."""
        doc = adapter.parse(adapter.render(rich_document, {'invokable': True, 'globs': '*.py'}))
        assert doc.get_metadata('continue.invokable') is True
        assert doc.get_metadata('continue.globs') == '*.py'

    def test_suggested_path(self, adapter, rich_document):
        """Test conventional install path."""
        rich_document.metadata.name = '@acme/React Rules'
        assert adapter.suggested_path(rich_document) == '.continue/rules/react-rules.md'


class TestWindsurfAdapter:
    """Tests for WindsurfAdapter."""

    @pytest.fixture
    def adapter(self):
        return WindsurfAdapter()

    def test_plain_rules_file_round_trip(self, adapter):
        """Test a plain .windsurfrules file is a fixed point."""
        content = (FIXTURES / 'windsurf' / '.windsurfrules').read_text(encoding='utf-8')
        doc = adapter.parse(content)
        assert doc.get_metadata('windsurf.heading') == 'Project Rules'
        assert doc.rules[0].text == 'Prefer const (high priority)'
        assert adapter.render(doc).decode('utf-8') == content

    def test_metadata_comment(self, adapter, rich_document):
        """Test metadata rides in a leading HTML comment."""
        text = adapter.render(rich_document).decode('utf-8')
        assert text.startswith("<!--\nname: react-rules\n")
        assert "-->\n\n# react-rules\n" in text
        assert "- Use hooks (high priority)\n" in text

    def test_prose_comment_is_body(self, adapter):
        """Test a leading comment that is not metadata stays in the body."""
        doc = adapter.parse("<!--\nGenerated file: do not edit: really\n-->\n\nBe nice.\n")
        assert doc.metadata.name == ''
        assert 'Be nice.' in doc.instructions

    def test_no_hints_accepted(self, adapter, rich_document):
        """Test Windsurf takes no hints."""
        with pytest.raises(RenderError):
            adapter.render(rich_document, {'globs': '*'})


class TestRulerAdapter:
    """Tests for RulerAdapter."""

    @pytest.fixture
    def adapter(self):
        return RulerAdapter()

    @pytest.fixture
    def sample_content(self):
        return (FIXTURES / 'ruler' / 'react.md').read_text(encoding='utf-8')

    def test_parse_header(self, adapter, sample_content):
        """Test package header comments become metadata."""
        doc = adapter.parse(sample_content)
        assert doc.metadata.name == '@acme/react-rules'
        assert doc.metadata.version == '1.0.0'
        assert doc.metadata.author == 'acme'
        assert doc.metadata.tags == ['react', 'frontend']
        assert doc.instructions == ['Use functional components.']

    def test_round_trip(self, adapter, sample_content):
        """Test a Ruler file is a fixed point."""
        assert adapter.render(adapter.parse(sample_content)).decode('utf-8') == sample_content

    def test_lossy_rendering(self, adapter, rich_document):
        """Test rationale, persona and tools are dropped; examples become prose."""
        text = adapter.render(rich_document).decode('utf-8')
        assert text.startswith("<!-- Package: react-rules -->\n<!-- Version: 1.0.0 -->\n")
        assert "<!-- Description: React conventions -->\n" in text
        assert "- Use hooks (high priority)\n- Avoid class components\n" in text
        assert "Rationale" not in text
        assert "Persona" not in text and "## Role" not in text
        assert "## Usage Examples\n\n**Input:**\n" in text

    def test_extensions_header(self, adapter, rich_document):
        """Test extensions survive as a JSON header."""
        rich_document.add_metadata('cursor.globs', 'src/**')
        rich_document.add_metadata('kiro.note', 'a -> b')
        text = adapter.render(rich_document).decode('utf-8')
        assert '\\u003e' in text
        doc = adapter.parse(text)
        assert doc.get_metadata('cursor.globs') == 'src/**'
        assert doc.get_metadata('kiro.note') == 'a -> b'

    def test_invalid_extensions_header(self, adapter):
        """Test malformed extension JSON is a ParseError."""
        with pytest.raises(ParseError, match="extensions"):
            adapter.parse("<!-- Package: x -->\n<!-- Extensions: {oops -->\n\nBody.\n")

    def test_headerless_markdown(self, adapter):
        """Test plain markdown without a header still parses."""
        doc = adapter.parse("# Rules\n\nBe kind.\n")
        assert doc.metadata.name == ''
        assert doc.instructions == ['Be kind.']
