from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Tuple

from .ast import ClassDef, SourceUnit, TypeAliasDecl
from .composer import compose_class
from .config import ComposeOptions
from .imports import ReconciledImports, reconcile_imports
from .parser import parse_unit
from .printer import format_unit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceText:
    name: str
    text: str

    @classmethod
    def from_path(cls, path: Path | str) -> "SourceText":
        path = Path(path)
        return cls(name=str(path), text=path.read_text(encoding="utf-8"))


@dataclass(frozen=True)
class Composition:
    base: SourceUnit
    modules: Tuple[SourceUnit, ...]
    merged: ClassDef
    imports: ReconciledImports
    type_aliases: Tuple[TypeAliasDecl, ...]
    text: str


def compose_units(
    base: SourceText,
    modules: Sequence[SourceText],
    result_name: str,
    options: Optional[ComposeOptions] = None,
) -> Composition:
    """
    Run the whole composition: parse every unit, reconcile the shared
    imports, merge the classes, and emit the resulting source text.

    Any ParseError, CompositionError or EmitError propagates unchanged.
    """
    options = options or ComposeOptions()
    base_unit = parse_unit(base.text, name=base.name, library=options.library)
    module_units = tuple(parse_unit(m.text, name=m.name, library=options.library) for m in modules)

    if len(base_unit.classes) > 1:
        logger.warning(
            "%s declares %d classes; composing into %s only",
            base.name,
            len(base_unit.classes),
            base_unit.classes[0].name,
        )
    base_class = base_unit.classes[0] if base_unit.classes else None
    module_classes = [cls for unit in module_units for cls in unit.classes]

    merged = compose_class(base_class, module_classes, result_name, any_type=options.any_type)
    reconciled = reconcile_imports(base_unit, module_units, options.library)
    aliases = base_unit.type_aliases + tuple(alias for unit in module_units for alias in unit.type_aliases)
    text = format_unit(reconciled, aliases, merged, options)
    logger.info("composed %s from %s and %d module unit(s)", result_name, base.name, len(module_units))
    return Composition(
        base=base_unit,
        modules=module_units,
        merged=merged,
        imports=reconciled,
        type_aliases=aliases,
        text=text,
    )


def merge_modules_into_base(
    base: SourceText,
    modules: Sequence[SourceText],
    result_name: str,
    options: Optional[ComposeOptions] = None,
) -> str:
    return compose_units(base, modules, result_name, options).text
