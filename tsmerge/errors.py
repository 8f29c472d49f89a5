from __future__ import annotations

from typing import Optional


class ComposeError(Exception):
    """Base class for every failure surfaced by a composition call."""


class ParseError(ComposeError):
    """
    A source unit is not well-formed.

    Carries the unit name and a best-effort 1-based line/column of the
    offending token so callers can point at the input.
    """

    def __init__(
        self,
        unit: str,
        message: str,
        *,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ) -> None:
        self.unit = unit
        self.message = message
        self.line = line
        self.column = column
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.line is None or self.line < 1:
            return f"{self.unit}: {self.message}"
        return f"{self.unit}:{self.line}:{self.column}: {self.message}"


class CompositionError(ComposeError):
    pass


class EmitError(ComposeError):
    """The merged model violates an emission invariant (internal error)."""
