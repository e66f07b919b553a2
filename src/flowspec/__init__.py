"""
flowspec - compiler for narrative/flow specification files.

Separates type declarations from flow statements, keeps declarations
sorted, builds the canonical model and reads/writes its JSON schema
document.
"""

from __future__ import annotations

from ._version import get_version

# Re-export commonly used types for convenience
from .core import ir
from .core.errors import FlowSpecError, ParseError, SchemaError, ValidationError

__version__ = get_version()

__all__ = [
    "__version__",
    "ir",
    "FlowSpecError",
    "ParseError",
    "SchemaError",
    "ValidationError",
]
