"""
Static compatibility matrix.

Base quality scores for every (from, to) pair of supported formats, plus
the canonical fields a pair is known to lose. Answering a compatibility
query never touches storage or parses content; it only reads this table
and the adapters' declarative field-mapping tables.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Tuple, Union

from adapters import ADAPTER_TYPES
from core.canonical_models import CANONICAL_FIELDS, FieldMapping, Format
from core.errors import UnsupportedFormat

IDENTITY_SCORE = 100

C, CL, K, CP, CN, W, R = (
    Format.CURSOR, Format.CLAUDE, Format.KIRO, Format.COPILOT,
    Format.CONTINUE, Format.WINDSURF, Format.RULER,
)

BASE_SCORES: Dict[Tuple[Format, Format], int] = {
    (C, C): 100, (C, CL): 85, (C, K): 75, (C, CP): 80, (C, CN): 90, (C, W): 95, (C, R): 85,
    (CL, C): 80, (CL, CL): 100, (CL, K): 90, (CL, CP): 75, (CL, CN): 85, (CL, W): 80, (CL, R): 75,
    (K, C): 70, (K, CL): 85, (K, K): 100, (K, CP): 75, (K, CN): 75, (K, W): 75, (K, R): 75,
    (CP, C): 75, (CP, CL): 75, (CP, K): 75, (CP, CP): 100, (CP, CN): 75, (CP, W): 75, (CP, R): 75,
    (CN, C): 75, (CN, CL): 75, (CN, K): 75, (CN, CP): 75, (CN, CN): 100, (CN, W): 75, (CN, R): 75,
    (W, C): 75, (W, CL): 75, (W, K): 75, (W, CP): 75, (W, CN): 75, (W, W): 100, (W, R): 75,
    (R, C): 75, (R, CL): 75, (R, K): 75, (R, CP): 75, (R, CN): 75, (R, W): 75, (R, R): 100,
}

assert set(BASE_SCORES) == {(a, b) for a in Format for b in Format}, \
    "compatibility matrix must cover every format pair"
assert all(BASE_SCORES[(f, f)] == IDENTITY_SCORE for f in Format)
assert all(score < IDENTITY_SCORE for (a, b), score in BASE_SCORES.items() if a != b)


@dataclass(frozen=True)
class Compatibility:
    """Result of a compatibility query for one format pair."""
    source_format: Format
    target_format: Format
    score: int
    known_lossy_fields: List[str] = field(default_factory=list)

    @property
    def lossy(self) -> bool:
        return bool(self.known_lossy_fields)

    def to_dict(self) -> dict:
        return {
            'from': self.source_format.value,
            'to': self.target_format.value,
            'score': self.score,
            'knownLossyFields': list(self.known_lossy_fields),
            'lossy': self.lossy,
        }


def coerce_format(value: Union[Format, str]) -> Format:
    """Parse a format tag, raising UnsupportedFormat for unknown tags."""
    try:
        return Format.parse(value)
    except ValueError as e:
        raise UnsupportedFormat(f"Unsupported format: {value!r}") from e


def pair_mappings(source: Format, target: Format) -> Dict[str, FieldMapping]:
    """
    Effective mapping of every canonical field for a conversion.

    Identity conversions map everything. Otherwise the target decides: a
    field is lost exactly when the target cannot express it.
    """
    if source == target:
        return {name: FieldMapping.MAPS for name in CANONICAL_FIELDS}
    return ADAPTER_TYPES[target].field_mappings()


def compatibility(source: Union[Format, str], target: Union[Format, str]) -> Compatibility:
    """
    Base score and known lossy fields for converting source to target.

    Raises:
        UnsupportedFormat: If either tag is not a supported format.
    """
    source, target = coerce_format(source), coerce_format(target)
    source_mappings = ADAPTER_TYPES[source].field_mappings()
    lossy = [
        name for name, mapping in pair_mappings(source, target).items()
        if mapping != FieldMapping.MAPS and source_mappings[name] != FieldMapping.DROPS
    ]
    return Compatibility(source, target, BASE_SCORES[(source, target)], lossy)


def compatibility_matrix() -> Dict[str, Dict[str, int]]:
    """Full score table keyed by format name, for reporting."""
    return {
        source.value: {target.value: BASE_SCORES[(source, target)] for target in Format}
        for source in Format
    }
