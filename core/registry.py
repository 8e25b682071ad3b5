"""
Format registry.

Lookup table from format tag to adapter. The set of formats is closed: only
members of the Format enum can be registered, so the compatibility matrix
can always be checked against every registered format.
"""

from pathlib import Path
from typing import Dict, List, Optional, Union

from core.adapter_interface import FormatAdapter
from core.canonical_models import Format


class FormatRegistry:
    """Registry of format adapters keyed by format tag."""

    def __init__(self):
        self._adapters: Dict[Format, FormatAdapter] = {}

    def register(self, adapter: FormatAdapter):
        """
        Register an adapter.

        Raises:
            ValueError: If the adapter's format is already registered or is
                not a supported format tag.
        """
        fmt = Format.parse(adapter.format_name)
        if fmt in self._adapters:
            raise ValueError(f"Format '{fmt.value}' already registered")
        self._adapters[fmt] = adapter

    def unregister(self, format_name: Union[Format, str]):
        """Remove an adapter. Unknown names are ignored."""
        try:
            fmt = Format.parse(format_name)
        except ValueError:
            return
        self._adapters.pop(fmt, None)

    def get_adapter(self, format_name: Union[Format, str]) -> Optional[FormatAdapter]:
        """Return the adapter for a format, or None if not registered."""
        try:
            fmt = Format.parse(format_name)
        except ValueError:
            return None
        return self._adapters.get(fmt)

    def detect_format(self, file_path: Path) -> Optional[FormatAdapter]:
        """
        Auto-detect a format from a file path.

        Adapters are asked in registration order; the first that claims the
        path wins.
        """
        for adapter in self._adapters.values():
            if adapter.can_handle(file_path):
                return adapter
        return None

    def list_formats(self) -> List[str]:
        return [fmt.value for fmt in self._adapters]

    def missing_formats(self) -> List[Format]:
        """Supported formats that have no registered adapter."""
        return [fmt for fmt in Format if fmt not in self._adapters]
