"""
YAML envelope helpers shared by the markdown adapters.

Metadata is never lossy: every format carries name, version, description,
author, tags and the extension map in its envelope. Envelope keys that are
not core metadata belong to the format itself and are stored as extensions
named "<format>.<key>", so they come back as native keys when the document
is rendered to the same format. Extensions owned by other formats travel
under an "extensions" mapping.
"""

import re
from typing import Any, Dict, Iterable, Optional, Tuple

import yaml

from core.canonical_models import PackageMetadata
from core.errors import ParseError

CORE_KEYS = ('name', 'description', 'version', 'author', 'tags')
EXTENSIONS_KEY = 'extensions'

_FRONTMATTER_RE = re.compile(r'^---[ \t]*\n(?:(.*?)\n)?---[ \t]*(?:\n(.*))?$', re.DOTALL)
_COMMENT_RE = re.compile(r'^<!--[ \t]*\n(?:(.*?)\n)?-->[ \t]*(?:\n(.*))?$', re.DOTALL)

_TIMESTAMP_TAG = 'tag:yaml.org,2002:timestamp'
_STR_TAG = 'tag:yaml.org,2002:str'


def _without_timestamps(resolvers):
    return {
        first: [(tag, regexp) for tag, regexp in entries if tag != _TIMESTAMP_TAG]
        for first, entries in resolvers.items()
    }


class QuotedStr(str):
    """String scalar the author wrote quoted; rendered back with the same quotes."""
    style = '"'


class EnvelopeLoader(yaml.SafeLoader):
    """SafeLoader that keeps dates as text and remembers quoted scalars."""


class EnvelopeDumper(yaml.SafeDumper):
    """SafeDumper matching EnvelopeLoader: date-like text stays plain."""


# Envelope values end up in stored JSON, so dates and times stay strings.
EnvelopeLoader.yaml_implicit_resolvers = _without_timestamps(yaml.SafeLoader.yaml_implicit_resolvers)
EnvelopeDumper.yaml_implicit_resolvers = _without_timestamps(yaml.SafeDumper.yaml_implicit_resolvers)


def _construct_str(loader: EnvelopeLoader, node: yaml.ScalarNode) -> str:
    value = loader.construct_scalar(node)
    if node.style in ('"', "'"):
        quoted = QuotedStr(value)
        quoted.style = node.style
        return quoted
    return value


def _represent_quoted(dumper: EnvelopeDumper, data: QuotedStr) -> yaml.ScalarNode:
    return dumper.represent_scalar(_STR_TAG, str(data), style=data.style)


EnvelopeLoader.add_constructor(_STR_TAG, _construct_str)
EnvelopeDumper.add_representer(QuotedStr, _represent_quoted)


def load_yaml(yaml_content: Optional[str]) -> Any:
    """Load envelope YAML; raises yaml.YAMLError."""
    return yaml.load(yaml_content or '', Loader=EnvelopeLoader)


def _load_mapping(yaml_content: Optional[str], format_name: str) -> Dict[str, Any]:
    try:
        data = load_yaml(yaml_content)
    except yaml.YAMLError as e:
        raise ParseError(format_name, f"Failed to parse YAML frontmatter: {e}")
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ParseError(format_name, "YAML frontmatter must be a mapping")
    return data


def split_frontmatter(content: str, format_name: str,
                      required: bool = False) -> Tuple[Optional[Dict[str, Any]], str]:
    """
    Split '---' delimited YAML frontmatter from the markdown body.

    Returns (None, content) when there is no frontmatter and it is optional.

    Raises:
        ParseError: If frontmatter is required but missing, is not valid
            YAML, or is not a mapping.
    """
    match = _FRONTMATTER_RE.match(content)
    if not match:
        if required:
            raise ParseError(format_name, "No YAML frontmatter found")
        return None, content
    yaml_content, body = match.groups()
    return _load_mapping(yaml_content, format_name), (body or '')


def split_comment_header(content: str, format_name: str) -> Tuple[Optional[Dict[str, Any]], str]:
    """
    Split a leading HTML comment that holds YAML metadata.

    A leading comment whose text is not a YAML mapping is ordinary body
    content and is left in place.
    """
    match = _COMMENT_RE.match(content)
    if not match:
        return None, content
    yaml_content, body = match.groups()
    try:
        data = load_yaml(yaml_content)
    except yaml.YAMLError:
        return None, content
    if not isinstance(data, dict):
        return None, content
    return data, (body or '')


def dump_yaml(data: Dict[str, Any]) -> str:
    """Deterministic block-style YAML dump."""
    if not data:
        return ''
    return yaml.dump(data, Dumper=EnvelopeDumper, default_flow_style=False, sort_keys=False,
                     allow_unicode=True, width=4096)


def join_frontmatter(data: Dict[str, Any], body: str) -> str:
    """Combine frontmatter and body."""
    result = f"---\n{dump_yaml(data)}---\n"
    if body:
        result += f"\n{body}"
    return result


def join_comment_header(data: Dict[str, Any], body: str) -> str:
    """Combine an HTML comment metadata header and body."""
    if not data:
        return body
    result = f"<!--\n{dump_yaml(data)}-->\n"
    if body:
        result += f"\n{body}"
    return result


def _text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return str(value) if value else ''


def _parse_tags(value: Any) -> list:
    if isinstance(value, str):
        return [t.strip() for t in value.split(',') if t.strip()]
    if isinstance(value, list):
        return [t if isinstance(t, str) else str(t) for t in value]
    return []


def metadata_from_envelope(data: Dict[str, Any], format_name: str,
                           consumed: Iterable[str] = ()) -> PackageMetadata:
    """
    Build package metadata from envelope keys.

    Keys listed in consumed map to other canonical fields and are skipped.

    Raises:
        ParseError: If the extensions key is not a mapping.
    """
    extensions = data.get(EXTENSIONS_KEY) or {}
    if not isinstance(extensions, dict):
        raise ParseError(format_name, "'extensions' must be a mapping")

    skip = set(CORE_KEYS) | {EXTENSIONS_KEY} | set(consumed)
    metadata = PackageMetadata(
        name=_text(data.get('name')),
        version=_text(data.get('version')),
        description=_text(data.get('description')),
        author=_text(data.get('author')),
        tags=_parse_tags(data.get('tags')),
        extensions=dict(extensions),
    )
    for key, value in data.items():
        if key not in skip:
            metadata.extensions[f"{format_name}.{key}"] = value
    return metadata


def own_extensions(metadata: PackageMetadata, format_name: str,
                   exclude: Iterable[str] = ()) -> Dict[str, Any]:
    """Extensions owned by a format, with the format prefix removed."""
    prefix = f"{format_name}."
    excluded = set(exclude)
    return {
        key[len(prefix):]: value
        for key, value in metadata.extensions.items()
        if key.startswith(prefix) and key[len(prefix):] not in excluded
    }


def envelope_from_metadata(metadata: PackageMetadata, format_name: str,
                           native: Dict[str, Any]) -> Dict[str, Any]:
    """
    Build envelope keys: core metadata, then native keys, then foreign extensions.

    Empty core values and None native values are omitted.
    """
    data: Dict[str, Any] = {}
    for key in CORE_KEYS:
        value = getattr(metadata, key)
        if value:
            data[key] = list(value) if key == 'tags' else value

    for key, value in native.items():
        if value is not None and key not in data:
            data[key] = value

    prefix = f"{format_name}."
    foreign = {key: value for key, value in metadata.extensions.items()
               if not key.startswith(prefix)}
    if foreign:
        data[EXTENSIONS_KEY] = foreign
    return data
