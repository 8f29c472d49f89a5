from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence, Set, Tuple

from .ast import ImportSpec, OpaqueStmt, SourceUnit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconciledImports:
    shared: ImportSpec
    # Base statements that are not folded into `shared`, in source order.
    passthrough: Tuple[OpaqueStmt, ...]


def reconcile_imports(base: SourceUnit, modules: Sequence[SourceUnit], library: str) -> ReconciledImports:
    """
    Union the shared library's named symbols across base and modules.

    Only the base unit's other top-level statements survive; module units
    contribute their shared-library symbols and nothing else here.
    """
    symbols: Set[str] = set()
    for unit in (base, *modules):
        spec = unit.import_of(library)
        if spec is not None:
            symbols.update(spec.symbols)
    logger.debug("reconciled %d symbol(s) from %s across %d unit(s)", len(symbols), library, len(modules) + 1)
    return ReconciledImports(
        shared=ImportSpec(library=library, symbols=frozenset(symbols)),
        passthrough=base.statements,
    )
