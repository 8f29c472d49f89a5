"""
Boundary to the external compiler that builds the composed unit.

Nothing here compiles anything: a Toolchain implementation receives the
emitted text under a virtual file name (so it never has to exist on disk)
and reports an artifact handle or diagnostics. Diagnostics are passed back
to the caller as-is.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Protocol

from .pipeline import Composition


@dataclass(frozen=True)
class Diagnostic:
    file: Optional[str]
    # 1-based; None when the compiler gave no position.
    line: Optional[int]
    column: Optional[int]
    message: str
    severity: str = "error"

    def format(self) -> str:
        if self.file is None:
            return self.message
        if self.line is None:
            return f"{self.file}: {self.message}"
        return f"{self.file} ({self.line},{self.column or 1}): {self.message}"


@dataclass
class CompileResult:
    artifact: Any = None
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.artifact is not None and not any(d.severity == "error" for d in self.diagnostics)


class Toolchain(Protocol):
    def compile(self, virtual_sources: Mapping[str, str]) -> CompileResult:
        """Compile the given `{file name: source text}` units."""
        ...


def virtual_file_name(result_name: str) -> str:
    """`ScryptDynamicContractDemo` -> `scryptDynamicContractDemo.ts`."""
    if not result_name:
        raise ValueError("result name must not be empty")
    return result_name[0].lower() + result_name[1:] + ".ts"


def compile_composition(composition: Composition, toolchain: Toolchain) -> CompileResult:
    name = virtual_file_name(composition.merged.name)
    return toolchain.compile({name: composition.text})
