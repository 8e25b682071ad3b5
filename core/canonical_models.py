"""
Canonical data models for package conversion.

The canonical document is the format-independent representation of one
package version. Every format adapter parses into it and renders out of it,
so it is the only shape the conversion engine and the storage layer need to
understand.

Field names in the stored (dict) form match the published document schema:
metadata, instructions, rules, examples, persona, tools, context,
sourceFormat.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional


CANONICAL_SCHEMA_VERSION = "1.0"


class Format(str, Enum):
    """Closed set of supported on-disk formats."""
    CURSOR = "cursor"
    CLAUDE = "claude"
    KIRO = "kiro"
    COPILOT = "copilot"
    CONTINUE = "continue"
    WINDSURF = "windsurf"
    RULER = "ruler"

    @classmethod
    def parse(cls, value: Any) -> "Format":
        """Coerce a Format or its string value into a Format."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise ValueError(f"Unknown format: {value!r}")

    def __str__(self) -> str:
        return self.value


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ExampleLabel(str, Enum):
    GOOD = "good"
    BAD = "bad"


class FieldMapping(str, Enum):
    """How a format expresses one canonical field."""
    MAPS = "maps"
    DEGRADES = "degrades"
    DROPS = "drops"


# Canonical fields tracked by the field-mapping tables, in report order.
CANONICAL_FIELDS = (
    'metadata',
    'instructions',
    'rules',
    'rules.priority',
    'rules.rationale',
    'examples',
    'examples.label',
    'persona',
    'tools',
    'context',
)


def _unique(values: Iterable[str]) -> List[str]:
    """Deduplicate while keeping first-seen order."""
    seen = set()
    result = []
    for value in values:
        value = str(value).strip()
        if value and value not in seen:
            seen.add(value)
            result.append(value)
    return result


@dataclass
class PackageMetadata:
    """Package metadata. Always preserved by every format."""
    name: str = ''
    version: str = ''
    description: str = ''
    author: str = ''
    tags: List[str] = field(default_factory=list)
    extensions: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.tags = _unique(self.tags or [])
        self.extensions = dict(self.extensions or {})

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'version': self.version,
            'description': self.description,
            'author': self.author,
            'tags': list(self.tags),
            'extensions': dict(self.extensions),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PackageMetadata":
        return cls(
            name=data.get('name') or '',
            version=str(data.get('version') or ''),
            description=data.get('description') or '',
            author=data.get('author') or '',
            tags=data.get('tags') or [],
            extensions=data.get('extensions') or {},
        )


@dataclass
class CanonicalRule:
    text: str
    priority: Optional[Priority] = None
    rationale: Optional[str] = None

    def __post_init__(self):
        if self.priority is not None and not isinstance(self.priority, Priority):
            self.priority = Priority(str(self.priority).lower())

    def to_dict(self) -> Dict[str, Any]:
        return {
            'text': self.text,
            'priority': self.priority.value if self.priority else None,
            'rationale': self.rationale,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CanonicalRule":
        return cls(
            text=data['text'],
            priority=data.get('priority'),
            rationale=data.get('rationale'),
        )


@dataclass
class CanonicalExample:
    input: str
    output: str
    label: Optional[ExampleLabel] = None

    def __post_init__(self):
        if self.label is not None and not isinstance(self.label, ExampleLabel):
            self.label = ExampleLabel(str(self.label).lower())

    def to_dict(self) -> Dict[str, Any]:
        return {
            'input': self.input,
            'output': self.output,
            'label': self.label.value if self.label else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CanonicalExample":
        return cls(
            input=data['input'],
            output=data['output'],
            label=data.get('label'),
        )


@dataclass
class CanonicalPersona:
    role: str
    style: Optional[str] = None
    expertise: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.expertise = _unique(self.expertise or [])

    def to_dict(self) -> Dict[str, Any]:
        return {
            'role': self.role,
            'style': self.style,
            'expertise': list(self.expertise),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CanonicalPersona":
        return cls(
            role=data['role'],
            style=data.get('style'),
            expertise=data.get('expertise') or [],
        )


@dataclass
class ContextSection:
    """Named free-text section for content with no structured home."""
    title: str
    body: str

    def to_dict(self) -> Dict[str, Any]:
        return {'title': self.title, 'body': self.body}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContextSection":
        return cls(title=data['title'], body=data.get('body') or '')


@dataclass
class CanonicalDocument:
    """
    Universal representation of one package version.

    tools and metadata.tags behave as sets: duplicates are removed but the
    first-seen order is kept so rendering stays deterministic.
    source_format records provenance and cannot be reassigned once set.
    """
    metadata: PackageMetadata = field(default_factory=PackageMetadata)
    instructions: List[str] = field(default_factory=list)
    rules: List[CanonicalRule] = field(default_factory=list)
    examples: List[CanonicalExample] = field(default_factory=list)
    persona: Optional[CanonicalPersona] = None
    tools: List[str] = field(default_factory=list)
    context: List[ContextSection] = field(default_factory=list)
    source_format: Optional[Format] = None

    def __post_init__(self):
        self.tools = _unique(self.tools or [])
        if self.source_format is not None:
            object.__setattr__(self, 'source_format', Format.parse(self.source_format))

    def __setattr__(self, name, value):
        if name == 'source_format' and 'source_format' in self.__dict__:
            raise AttributeError("source_format is immutable after creation")
        super().__setattr__(name, value)

    # Metadata extension helpers

    def add_metadata(self, key: str, value: Any):
        """Store a format-specific value in the metadata extension map."""
        self.metadata.extensions[key] = value

    def get_metadata(self, key: str, default: Any = None) -> Any:
        return self.metadata.extensions.get(key, default)

    def has_metadata(self, key: str) -> bool:
        return key in self.metadata.extensions

    # Serialization

    def to_dict(self) -> Dict[str, Any]:
        """Self-describing structured form used for canonical storage."""
        return {
            'format': 'canonical',
            'schemaVersion': CANONICAL_SCHEMA_VERSION,
            'metadata': self.metadata.to_dict(),
            'instructions': list(self.instructions),
            'rules': [rule.to_dict() for rule in self.rules],
            'examples': [example.to_dict() for example in self.examples],
            'persona': self.persona.to_dict() if self.persona else None,
            'tools': list(self.tools),
            'context': [section.to_dict() for section in self.context],
            'sourceFormat': self.source_format.value if self.source_format else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CanonicalDocument":
        """
        Rebuild a document from its stored form.

        Raises:
            ValueError: If the data is not a canonical document or uses an
                unsupported schema version.
        """
        if not isinstance(data, dict) or data.get('format') != 'canonical':
            raise ValueError("Not a canonical document")
        if data.get('schemaVersion') != CANONICAL_SCHEMA_VERSION:
            raise ValueError(f"Unsupported canonical schema version: {data.get('schemaVersion')!r}")

        persona = data.get('persona')
        return cls(
            metadata=PackageMetadata.from_dict(data.get('metadata') or {}),
            instructions=list(data.get('instructions') or []),
            rules=[CanonicalRule.from_dict(r) for r in data.get('rules') or []],
            examples=[CanonicalExample.from_dict(e) for e in data.get('examples') or []],
            persona=CanonicalPersona.from_dict(persona) if persona else None,
            tools=data.get('tools') or [],
            context=[ContextSection.from_dict(c) for c in data.get('context') or []],
            source_format=data.get('sourceFormat'),
        )
