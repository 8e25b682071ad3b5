"""
Format adapters for converting between assistant-specific formats and the
canonical document.

Each adapter knows how to:
- Parse the format's bytes into a CanonicalDocument
- Render a CanonicalDocument back into the format
- Declare, per canonical field, whether the format MAPS, DEGRADES or DROPS it
- Preserve format-specific fields as metadata extensions

Available adapters:
- CursorAdapter: Cursor rules (.cursor/rules/*.mdc)
- ClaudeAdapter: Claude Code agents and skills (.claude/**/*.md)
- KiroAdapter: Kiro steering files (.kiro/steering/*.md)
- CopilotAdapter: GitHub Copilot instructions (.github/**/*.instructions.md)
- ContinueAdapter: Continue rules (.continue/rules/*.md)
- WindsurfAdapter: Windsurf rules (.windsurfrules, .windsurf/rules/*.md)
- RulerAdapter: Ruler rules (.ruler/*.md)

Adding a format means extending core.canonical_models.Format, adding an
adapter here and a row and column to the compatibility matrix.
"""

from typing import Dict, Type

from core.adapter_interface import FormatAdapter
from core.canonical_models import Format
from core.registry import FormatRegistry

from .claude import ClaudeAdapter
from .continue_ import ContinueAdapter
from .copilot import CopilotAdapter
from .cursor import CursorAdapter
from .kiro import KiroAdapter
from .ruler import RulerAdapter
from .windsurf import WindsurfAdapter

# Closed lookup table from format tag to adapter class.
ADAPTER_TYPES: Dict[Format, Type[FormatAdapter]] = {
    Format.CURSOR: CursorAdapter,
    Format.CLAUDE: ClaudeAdapter,
    Format.KIRO: KiroAdapter,
    Format.COPILOT: CopilotAdapter,
    Format.CONTINUE: ContinueAdapter,
    Format.WINDSURF: WindsurfAdapter,
    Format.RULER: RulerAdapter,
}

assert set(ADAPTER_TYPES) == set(Format), "every format needs an adapter"


def default_registry() -> FormatRegistry:
    """
    Build a registry with one adapter per supported format.

    Returns:
        FormatRegistry with all adapters registered
    """
    registry = FormatRegistry()
    for adapter_type in ADAPTER_TYPES.values():
        registry.register(adapter_type())
    return registry


__all__ = [
    'ADAPTER_TYPES',
    'ClaudeAdapter',
    'ContinueAdapter',
    'CopilotAdapter',
    'CursorAdapter',
    'KiroAdapter',
    'RulerAdapter',
    'WindsurfAdapter',
    'default_registry',
]
