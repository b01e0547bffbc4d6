"""Core engine layer for gitresolve.

This module turns raw records into typed objects and provides the typed
reference lookups the repository facade is built on.
"""

from gitresolve.core.builder import ObjectBuilder, parse_signature
from gitresolve.core.references import ReferenceManager
from gitresolve.core.resolver import ObjectResolver

__all__ = [
    "ObjectBuilder",
    "ObjectResolver",
    "ReferenceManager",
    "parse_signature",
]
