"""
Shared markdown body grammar.

Every markdown-based format lays out its body the same way:

    # Title

    Instruction paragraph.

    ## Persona
    - Role: ...

    ## Rules
    - Rule text
      - Priority: high
      - Rationale: ...

    ## Examples
    ### Example 1 (good)
    Input: / Output: fenced blocks

    ## Any Other Heading
    Free text, kept as a context section.

Formats differ only in which structured parts they can express; that is
captured by BodyStyle. A part the style cannot express is folded into
prose on render, and the same prose is read back as plain text on parse,
so render(parse(render(doc))) is byte-stable for every style.

Headings inside fenced code are never treated as section boundaries.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from core.canonical_models import (
    CanonicalDocument,
    CanonicalExample,
    CanonicalPersona,
    CanonicalRule,
    ContextSection,
    ExampleLabel,
    Priority,
)

UNTITLED = 'Untitled'

PERSONA_HEADING = 'Persona'
PERSONA_PROSE_HEADING = 'Role'
RULES_HEADING = 'Rules'
EXAMPLES_HEADING = 'Examples'
EXAMPLES_PROSE_HEADING = 'Usage Examples'

_FENCE_RE = re.compile(r'^(`{3,}|~{3,})')
_EXAMPLE_HEADING_RE = re.compile(r'^Example \d+$')
_LABELLED_EXAMPLE_HEADING_RE = re.compile(r'^Example \d+(?: \((good|bad)\))?$')


@dataclass(frozen=True)
class BodyStyle:
    """
    Which structured parts a format can express.

    priority: 'field' (sub-bullet), 'inline' (folded into rule text) or 'none'
    rationale: 'field' or 'none'
    examples: 'structured', 'prose' (folded into a context section) or 'none'
    persona: 'section', 'prose' (folded into a context section) or 'none'
    """
    title: bool = True
    priority: str = 'field'
    rationale: str = 'field'
    examples: str = 'structured'
    example_labels: bool = True
    persona: str = 'section'


@dataclass
class ParsedBody:
    title: Optional[str] = None
    instructions: List[str] = field(default_factory=list)
    rules: List[CanonicalRule] = field(default_factory=list)
    examples: List[CanonicalExample] = field(default_factory=list)
    persona: Optional[CanonicalPersona] = None
    context: List[ContextSection] = field(default_factory=list)


# Rendering

def _fence(text: str) -> str:
    """Wrap text in a backtick fence longer than any run inside it."""
    longest = max((len(run) for run in re.findall(r'`+', text)), default=0)
    marker = '`' * max(3, longest + 1)
    return f"{marker}\n{text}\n{marker}"


def _single_line(text: str) -> str:
    return ' '.join(text.split())


def _render_rule(rule: CanonicalRule, style: BodyStyle) -> str:
    lines = [line.rstrip() for line in rule.text.strip().split('\n') if line.strip()]
    if not lines:
        lines = ['']
    if rule.priority and style.priority == 'inline':
        lines[-1] = f"{lines[-1]} ({rule.priority.value} priority)"

    out = [f"- {lines[0]}"]
    out.extend(f"  {line}" for line in lines[1:])
    if rule.priority and style.priority == 'field':
        out.append(f"  - Priority: {rule.priority.value}")
    if rule.rationale and style.rationale == 'field':
        out.append(f"  - Rationale: {_single_line(rule.rationale)}")
    return '\n'.join(out)


def _render_example(index: int, example: CanonicalExample, style: BodyStyle) -> str:
    heading = f"### Example {index}"
    if style.example_labels and example.label:
        heading += f" ({example.label.value})"
    return '\n\n'.join([
        heading,
        'Input:',
        _fence(example.input.strip('\n')),
        'Output:',
        _fence(example.output.strip('\n')),
    ])


def _render_example_prose(example: CanonicalExample) -> str:
    return '\n\n'.join([
        '**Input:**',
        _fence(example.input.strip('\n')),
        '**Output:**',
        _fence(example.output.strip('\n')),
    ])


def _render_persona(persona: CanonicalPersona) -> str:
    lines = [f"- Role: {_single_line(persona.role)}"]
    if persona.style:
        lines.append(f"- Style: {_single_line(persona.style)}")
    if persona.expertise:
        lines.append(f"- Expertise: {', '.join(persona.expertise)}")
    return f"## {PERSONA_HEADING}\n\n" + '\n'.join(lines)


def _render_persona_prose(persona: CanonicalPersona) -> str:
    sentence = f"You are {_single_line(persona.role)}."
    if persona.style:
        sentence += f" Style: {_single_line(persona.style)}."
    if persona.expertise:
        sentence += f" Expertise: {', '.join(persona.expertise)}."
    return f"## {PERSONA_PROSE_HEADING}\n\n{sentence}"


def render_body(document: CanonicalDocument, style: BodyStyle,
                title: Optional[str] = None) -> str:
    """Render the markdown body of a document for the given style."""
    blocks: List[str] = []

    if style.title:
        blocks.append(f"# {_single_line(title or document.metadata.name) or UNTITLED}")

    blocks.extend(block.strip() for block in document.instructions if block.strip())

    if document.persona and style.persona == 'section':
        blocks.append(_render_persona(document.persona))

    if document.rules:
        items = '\n'.join(_render_rule(rule, style) for rule in document.rules)
        blocks.append(f"## {RULES_HEADING}\n\n{items}")

    if document.examples:
        if style.examples == 'structured':
            blocks.append(f"## {EXAMPLES_HEADING}")
            blocks.extend(_render_example(i, example, style)
                          for i, example in enumerate(document.examples, 1))
        elif style.examples == 'prose':
            blocks.append(f"## {EXAMPLES_PROSE_HEADING}")
            blocks.extend(_render_example_prose(example) for example in document.examples)

    # Folded persona reads back as a context section, so it renders where context goes.
    if document.persona and style.persona == 'prose':
        blocks.append(_render_persona_prose(document.persona))

    for section in document.context:
        body = section.body.strip('\n')
        heading = f"## {_single_line(section.title)}"
        blocks.append(f"{heading}\n\n{body}" if body.strip() else heading)

    if not blocks:
        return ''
    return '\n\n'.join(blocks) + '\n'


# Parsing

def _split_headings(lines: List[str], prefix: str) -> Tuple[List[str], List[Tuple[str, List[str]]]]:
    """
    Split lines on headings starting with prefix, ignoring fenced code.

    Returns the lines before the first heading and (title, lines) pairs.
    """
    preamble: List[str] = []
    sections: List[Tuple[str, List[str]]] = []
    current = preamble
    fence: Optional[str] = None

    for line in lines:
        stripped = line.strip()
        if fence is not None:
            if stripped and set(stripped) == {fence[0]} and len(stripped) >= len(fence):
                fence = None
            current.append(line)
            continue
        match = _FENCE_RE.match(stripped)
        if match:
            fence = match.group(1)
            current.append(line)
            continue
        if line.startswith(prefix):
            body: List[str] = []
            sections.append((line[len(prefix):].strip(), body))
            current = body
            continue
        current.append(line)

    return preamble, sections


def _paragraphs(lines: List[str]) -> List[str]:
    """Split lines into blank-line separated blocks, keeping fences whole."""
    blocks: List[str] = []
    current: List[str] = []
    fence: Optional[str] = None

    for line in lines:
        stripped = line.strip()
        if fence is not None:
            current.append(line)
            if stripped and set(stripped) == {fence[0]} and len(stripped) >= len(fence):
                fence = None
            continue
        match = _FENCE_RE.match(stripped)
        if match:
            fence = match.group(1)
            current.append(line)
            continue
        if not stripped:
            if current:
                blocks.append('\n'.join(current).strip())
                current = []
            continue
        current.append(line.rstrip())

    if current:
        blocks.append('\n'.join(current).strip())
    return [block for block in blocks if block]


def _parse_rules(lines: List[str], style: BodyStyle) -> Optional[List[CanonicalRule]]:
    """Parse a rules list; None if the section is not a plain rule list."""
    rules: List[CanonicalRule] = []
    texts: List[List[str]] = []

    for line in lines:
        if not line.strip():
            continue
        if line.startswith('- '):
            rules.append(CanonicalRule(text=''))
            texts.append([line[2:].rstrip()])
            continue
        if not rules or not line.startswith('  '):
            return None
        sub = line[2:].rstrip()
        if style.priority == 'field' and sub.startswith('- Priority: '):
            value = sub[len('- Priority: '):].strip().lower()
            try:
                rules[-1].priority = Priority(value)
            except ValueError:
                return None
        elif style.rationale == 'field' and sub.startswith('- Rationale: '):
            rules[-1].rationale = sub[len('- Rationale: '):].strip()
        else:
            texts[-1].append(sub)

    for rule, text in zip(rules, texts):
        rule.text = '\n'.join(text).strip()
    return rules or None


def _parse_fenced(lines: List[str], start: int) -> Tuple[Optional[str], int]:
    """Read one fenced block starting at or after start; returns (text, next index)."""
    i = start
    while i < len(lines) and not lines[i].strip():
        i += 1
    if i >= len(lines):
        return None, i
    match = _FENCE_RE.match(lines[i].strip())
    if not match or lines[i].strip() != match.group(1):
        return None, i
    marker = match.group(1)
    content: List[str] = []
    i += 1
    while i < len(lines):
        if lines[i].strip() == marker:
            return '\n'.join(content), i + 1
        content.append(lines[i])
        i += 1
    return None, i


def _parse_example(heading: str, lines: List[str], style: BodyStyle) -> Optional[CanonicalExample]:
    pattern = _LABELLED_EXAMPLE_HEADING_RE if style.example_labels else _EXAMPLE_HEADING_RE
    match = pattern.match(heading)
    if not match:
        return None
    label = match.group(1) if style.example_labels else None

    i = 0
    values = []
    for marker in ('Input:', 'Output:'):
        while i < len(lines) and not lines[i].strip():
            i += 1
        if i >= len(lines) or lines[i].strip() != marker:
            return None
        text, i = _parse_fenced(lines, i + 1)
        if text is None:
            return None
        values.append(text)
    if any(line.strip() for line in lines[i:]):
        return None

    return CanonicalExample(
        input=values[0],
        output=values[1],
        label=ExampleLabel(label) if label else None,
    )


def _parse_examples(lines: List[str], style: BodyStyle) -> Optional[List[CanonicalExample]]:
    preamble, blocks = _split_headings(lines, '### ')
    if any(line.strip() for line in preamble) or not blocks:
        return None
    examples = []
    for heading, body in blocks:
        example = _parse_example(heading, body, style)
        if example is None:
            return None
        examples.append(example)
    return examples


def _parse_persona(lines: List[str]) -> Optional[CanonicalPersona]:
    values = {}
    for line in lines:
        if not line.strip():
            continue
        match = re.match(r'^- (Role|Style|Expertise): (.*)$', line.rstrip())
        if not match or match.group(1) in values:
            return None
        values[match.group(1)] = match.group(2).strip()
    if not values.get('Role'):
        return None
    expertise = [item.strip() for item in values.get('Expertise', '').split(',')]
    return CanonicalPersona(
        role=values['Role'],
        style=values.get('Style') or None,
        expertise=[item for item in expertise if item],
    )


def parse_body(body: str, style: BodyStyle) -> ParsedBody:
    """Parse a markdown body written in the given style."""
    result = ParsedBody()
    lines = body.split('\n')
    preamble, sections = _split_headings(lines, '## ')

    blocks = _paragraphs(preamble)
    if style.title and blocks and blocks[0].startswith('# '):
        first, _, rest = blocks[0].partition('\n')
        result.title = first[2:].strip()
        blocks[0] = rest.strip()
    result.instructions = [block for block in blocks if block]

    for heading, section_lines in sections:
        if heading == PERSONA_HEADING and style.persona == 'section' and result.persona is None:
            persona = _parse_persona(section_lines)
            if persona is not None:
                result.persona = persona
                continue
        if heading == RULES_HEADING:
            rules = _parse_rules(section_lines, style)
            if rules is not None:
                result.rules.extend(rules)
                continue
        if heading == EXAMPLES_HEADING and style.examples == 'structured':
            examples = _parse_examples(section_lines, style)
            if examples is not None:
                result.examples.extend(examples)
                continue
        text = '\n'.join(line.rstrip() for line in section_lines).strip('\n')
        result.context.append(ContextSection(title=heading, body=text))

    return result
