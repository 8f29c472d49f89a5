from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional, Tuple


@dataclass(frozen=True)
class Located:
    line: int
    column: int


@dataclass(frozen=True)
class TypeExpr:
    """Opaque type expression, kept as its source text."""

    text: str


@dataclass(frozen=True)
class Decorator:
    name: str
    # Text between the parentheses; None for a bare `@name`.
    args: Optional[str] = None


class Stmt:
    loc: Optional[Located]


@dataclass(frozen=True)
class SuperCall(Stmt):
    """`super(...arguments)`: forwards every constructor argument."""

    loc: Optional[Located] = field(default=None, compare=False)


@dataclass(frozen=True)
class FieldAssign(Stmt):
    """`this.<field> = <value>` where value is a plain identifier."""

    field: str
    value: str
    loc: Optional[Located] = field(default=None, compare=False)


@dataclass(frozen=True)
class OpaqueStmt(Stmt):
    text: str
    loc: Optional[Located] = field(default=None, compare=False)


@dataclass(frozen=True)
class Block:
    statements: Tuple[Stmt, ...] = ()


@dataclass(frozen=True)
class ImportSpec:
    library: str
    symbols: FrozenSet[str] = frozenset()

    def sorted_symbols(self) -> List[str]:
        return sorted(self.symbols)


@dataclass(frozen=True)
class PropertyDecl:
    name: str
    type_expr: Optional[TypeExpr]
    is_mutable_state: bool = False
    decorators: Tuple[Decorator, ...] = ()
    modifiers: Tuple[str, ...] = ()
    # "?" or "!" after the name.
    marker: Optional[str] = None
    initializer: Optional[str] = None
    loc: Optional[Located] = field(default=None, compare=False)


@dataclass(frozen=True)
class Param:
    name: str
    type_expr: Optional[TypeExpr]
    modifiers: Tuple[str, ...] = ()
    optional: bool = False
    rest: bool = False
    default: Optional[str] = None


@dataclass(frozen=True)
class ConstructorDecl:
    params: Tuple[Param, ...]
    body: Optional[Block]
    modifiers: Tuple[str, ...] = ()
    loc: Optional[Located] = field(default=None, compare=False)


_VISIBILITY = ("public", "protected", "private")


@dataclass(frozen=True)
class MethodDecl:
    name: str
    params: Tuple[Param, ...]
    return_type: Optional[TypeExpr]
    # None for an overload or abstract signature.
    body: Optional[Block]
    decorators: Tuple[Decorator, ...] = ()
    modifiers: Tuple[str, ...] = ()
    type_params: Optional[str] = None
    loc: Optional[Located] = field(default=None, compare=False)

    @property
    def visibility(self) -> Optional[str]:
        return next((mod for mod in self.modifiers if mod in _VISIBILITY), None)


@dataclass(frozen=True)
class HeritageClause:
    extends: Optional[TypeExpr] = None
    implements: Tuple[TypeExpr, ...] = ()


@dataclass(frozen=True)
class ClassDef:
    name: str
    heritage: Optional[HeritageClause]
    properties: Tuple[PropertyDecl, ...]
    constructor: Optional[ConstructorDecl]
    methods: Tuple[MethodDecl, ...]
    type_params: Optional[str] = None
    exported: bool = False
    default_export: bool = False
    abstract: bool = False
    loc: Optional[Located] = field(default=None, compare=False)


@dataclass(frozen=True)
class TypeAliasDecl:
    name: str
    definition: TypeExpr
    type_params: Optional[str] = None
    exported: bool = False
    loc: Optional[Located] = field(default=None, compare=False)


@dataclass(frozen=True)
class SourceUnit:
    name: str
    imports: Tuple[ImportSpec, ...]
    statements: Tuple[OpaqueStmt, ...]
    classes: Tuple[ClassDef, ...]
    type_aliases: Tuple[TypeAliasDecl, ...]

    def import_of(self, library: str) -> Optional[ImportSpec]:
        return next((spec for spec in self.imports if spec.library == library), None)
