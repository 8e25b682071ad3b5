"""
Conversion between formats: the compatibility matrix, the conversion
engine and the registry-facing package service.
"""

from conversion.compatibility import Compatibility, compatibility, compatibility_matrix
from conversion.engine import (
    ConversionEngine,
    ConversionHints,
    ConversionResult,
    ConversionWarning,
    Severity,
)
from conversion.service import FetchedPackage, PackageService, report_compatibility

__all__ = [
    'Compatibility',
    'ConversionEngine',
    'ConversionHints',
    'ConversionResult',
    'ConversionWarning',
    'FetchedPackage',
    'PackageService',
    'Severity',
    'compatibility',
    'compatibility_matrix',
    'report_compatibility',
]
