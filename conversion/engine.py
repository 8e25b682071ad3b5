"""
Conversion engine.

Orchestrates render(parse(src), hints) for any pair of supported formats
and reports, field by field, what the target format could not carry.
Adapters know nothing about scoring: the engine compares the populated
fields of the parsed document with the pair's field-mapping table.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from adapters import default_registry
from core.adapter_interface import FormatAdapter
from core.canonical_models import CANONICAL_FIELDS, CanonicalDocument, FieldMapping, Format
from core.errors import (
    ParseError,
    RenderError,
    SourceUnparsable,
    TargetUnrenderable,
    UnsupportedFormat,
)
from core.registry import FormatRegistry
from conversion.compatibility import coerce_format, compatibility, pair_mappings

logger = logging.getLogger(__name__)

DEGRADE_PENALTY = 5
DROP_PENALTY = 10


class Severity(str, Enum):
    INFO = "info"
    WARN = "warn"


@dataclass(frozen=True)
class ConversionWarning:
    field: str
    message: str
    severity: Severity

    def to_dict(self) -> Dict[str, str]:
        return {'field': self.field, 'message': self.message, 'severity': self.severity.value}


@dataclass
class ConversionResult:
    """Outcome of one conversion. Never persisted; only document may be stored."""
    document: bytes
    quality_score: int
    warnings: List[ConversionWarning] = field(default_factory=list)
    source_format: Optional[Format] = None
    target_format: Optional[Format] = None

    @property
    def lossy(self) -> bool:
        return bool(self.warnings)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'document': self.document.decode('utf-8'),
            'qualityScore': self.quality_score,
            'warnings': [w.to_dict() for w in self.warnings],
            'lossy': self.lossy,
            'sourceFormat': self.source_format.value if self.source_format else None,
            'targetFormat': self.target_format.value if self.target_format else None,
        }


class ConversionHints:
    """
    Per-format rendering options supplied by the package author.

    Example:
        ConversionHints({'claude': {'model': 'sonnet'},
                         'kiro': {'inclusion': 'fileMatch', 'fileMatchPattern': '*.ts'}})
    """

    def __init__(self, options: Optional[Mapping[Union[Format, str], Mapping[str, Any]]] = None):
        self._options: Dict[Format, Dict[str, Any]] = {}
        for fmt, values in (options or {}).items():
            self._options[coerce_format(fmt)] = dict(values or {})

    def for_format(self, fmt: Union[Format, str]) -> Optional[Dict[str, Any]]:
        """Options for one format, or None when the author gave none."""
        options = self._options.get(coerce_format(fmt))
        return dict(options) if options is not None else None

    def __bool__(self) -> bool:
        return bool(self._options)

    def __repr__(self) -> str:
        return f"ConversionHints({ {k.value: v for k, v in self._options.items()} })"


HintsArg = Union[ConversionHints, Mapping[str, Any], None]


def populated_fields(document: CanonicalDocument) -> Dict[str, List[str]]:
    """
    Instances of each canonical field that carry a value in the document.

    Keys are canonical field names; values are the concrete paths used in
    warnings, e.g. {'rules.priority': ['rules[0].priority']}.
    """
    found: Dict[str, List[str]] = {name: [] for name in CANONICAL_FIELDS}
    metadata = document.metadata
    if any([metadata.name, metadata.version, metadata.description,
            metadata.author, metadata.tags, metadata.extensions]):
        found['metadata'].append('metadata')
    if document.instructions:
        found['instructions'].append('instructions')
    if document.rules:
        found['rules'].append('rules')
    for i, rule in enumerate(document.rules):
        if rule.priority is not None:
            found['rules.priority'].append(f"rules[{i}].priority")
        if rule.rationale:
            found['rules.rationale'].append(f"rules[{i}].rationale")
    if document.examples:
        found['examples'].append('examples')
    for i, example in enumerate(document.examples):
        if example.label is not None:
            found['examples.label'].append(f"examples[{i}].label")
    if document.persona is not None:
        found['persona'].append('persona')
    if document.tools:
        found['tools'].append('tools')
    if document.context:
        found['context'].append('context')
    return found


def _warning(path: str, mapping: FieldMapping, target: Format) -> ConversionWarning:
    if mapping == FieldMapping.DEGRADES:
        return ConversionWarning(path, f"{target.value} has no {path} field; folded into text",
                                 Severity.INFO)
    return ConversionWarning(path, f"{target.value} cannot express {path}; dropped",
                             Severity.WARN)


def assess(document: CanonicalDocument, source: Format,
           target: Format) -> Tuple[int, List[ConversionWarning]]:
    """
    Quality score and warnings for rendering document into target.

    The base score comes from the compatibility matrix. Each distinct
    degraded field costs 5 points and each distinct dropped field costs 10,
    counting only fields the document actually populates.
    """
    mappings = pair_mappings(source, target)
    score = compatibility(source, target).score
    warnings: List[ConversionWarning] = []

    for name, paths in populated_fields(document).items():
        mapping = mappings[name]
        if not paths or mapping == FieldMapping.MAPS:
            continue
        score -= DEGRADE_PENALTY if mapping == FieldMapping.DEGRADES else DROP_PENALTY
        warnings.extend(_warning(path, mapping, target) for path in paths)

    return max(score, 0), warnings


class ConversionEngine:
    """Converts package content between formats through the canonical document."""

    def __init__(self, registry: Optional[FormatRegistry] = None):
        self.registry = registry or default_registry()

    def adapter(self, fmt: Union[Format, str]) -> FormatAdapter:
        """
        Adapter for a format tag.

        Raises:
            UnsupportedFormat: If the tag is unknown or has no adapter.
        """
        fmt = coerce_format(fmt)
        adapter = self.registry.get_adapter(fmt)
        if adapter is None:
            raise UnsupportedFormat(f"No adapter registered for {fmt.value}", target_format=fmt)
        return adapter

    def parse(self, src: Union[bytes, str], src_format: Union[Format, str],
              dst_format: Optional[Union[Format, str]] = None) -> CanonicalDocument:
        """
        Parse source bytes into a canonical document.

        Raises:
            SourceUnparsable: If the source adapter rejects the content.
        """
        adapter = self.adapter(src_format)
        try:
            return adapter.parse(src)
        except ParseError as err:
            raise SourceUnparsable(err.reason, adapter.format_name, dst_format) from err

    def convert(self, src: Union[bytes, str], src_format: Union[Format, str],
                dst_format: Union[Format, str], hints: HintsArg = None) -> ConversionResult:
        """
        Convert content from one format to another.

        Args:
            src: Source content (bytes or text)
            src_format: Format the source is written in
            dst_format: Format to render
            hints: ConversionHints, or a plain options mapping for the target

        Returns:
            ConversionResult with the rendered bytes, score and warnings

        Raises:
            UnsupportedFormat: If either format tag is unknown
            SourceUnparsable: If the source cannot be parsed
            TargetUnrenderable: If the target cannot be rendered
        """
        src_format, dst_format = coerce_format(src_format), coerce_format(dst_format)
        document = self.parse(src, src_format, dst_format)
        return self._render(document, src_format, dst_format, hints)

    def convert_document(self, document: CanonicalDocument, dst_format: Union[Format, str],
                         hints: HintsArg = None) -> ConversionResult:
        """Render an already parsed document, scored from its source format."""
        dst_format = coerce_format(dst_format)
        if document.source_format is None:
            raise UnsupportedFormat("Document has no source format to score against",
                                    target_format=dst_format)
        return self._render(document, document.source_format, dst_format, hints)

    def _render(self, document: CanonicalDocument, src_format: Format,
                dst_format: Format, hints: HintsArg) -> ConversionResult:
        adapter = self.adapter(dst_format)
        options = self._options(hints, dst_format)
        try:
            output = adapter.render(document, options)
        except RenderError as err:
            raise TargetUnrenderable(err.reason, src_format, dst_format) from err

        score, warnings = assess(document, src_format, dst_format)
        for warning in warnings:
            if warning.severity == Severity.WARN:
                logger.warning("%s -> %s: %s", src_format, dst_format, warning.message)
        logger.debug("Converted %s -> %s (score %d, %d warnings)",
                     src_format, dst_format, score, len(warnings))

        return ConversionResult(
            document=output,
            quality_score=score,
            warnings=warnings,
            source_format=src_format,
            target_format=dst_format,
        )

    @staticmethod
    def _options(hints: HintsArg, dst_format: Format) -> Optional[Dict[str, Any]]:
        if hints is None:
            return None
        if isinstance(hints, ConversionHints):
            return hints.for_format(dst_format)
        return dict(hints)
