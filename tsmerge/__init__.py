"""
tsmerge: compose module classes into a base TypeScript class.

Pipeline: `parser` extracts a declaration model per unit, `imports` unions
the shared library's symbols, `composer` merges the classes and `printer`
emits the composed unit. `pipeline.compose_units` runs all four.
"""

from .config import ComposeOptions
from .errors import ComposeError, CompositionError, EmitError, ParseError
from .pipeline import Composition, SourceText, compose_units, merge_modules_into_base

__all__ = [
    "ComposeOptions",
    "ComposeError",
    "CompositionError",
    "Composition",
    "EmitError",
    "ParseError",
    "SourceText",
    "compose_units",
    "merge_modules_into_base",
]
