"""
Utilities Module

Common utilities shared by the detector, descriptor and matcher modules.
"""

from .naming import normalize_type_name, resolve_type_name

__all__ = [
    'normalize_type_name',
    'resolve_type_name'
]
