from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from .ast import (
    Block,
    ClassDef,
    ConstructorDecl,
    FieldAssign,
    MethodDecl,
    Param,
    PropertyDecl,
    Stmt,
    SuperCall,
    TypeExpr,
)
from .config import DEFAULT_ANY_TYPE
from .errors import CompositionError

logger = logging.getLogger(__name__)


def compose_class(
    base: Optional[ClassDef],
    modules: Sequence[ClassDef],
    result_name: str,
    any_type: str = DEFAULT_ANY_TYPE,
) -> ClassDef:
    """
    Fold module classes into the base class.

    The merged class is named `result_name` and keeps the base heritage and
    class flags. Members are ordered: merged properties, one synthesized
    constructor, then base methods followed by each module's methods.

    Raises CompositionError when there are no module classes or no base.
    """
    if not modules:
        raise CompositionError("no module classes")
    if base is None:
        raise CompositionError("no base class")

    properties = merge_properties(base, modules)
    params = synthesize_params(properties, any_type)
    constructor = ConstructorDecl(
        params=params,
        body=Block(statements=synthesize_body(base, properties)),
        modifiers=base.constructor.modifiers if base.constructor is not None else (),
    )
    methods = merge_methods(base, modules)
    logger.debug(
        "composed %s from %s + %d module(s): %d properties, %d methods",
        result_name,
        base.name,
        len(modules),
        len(properties),
        len(methods),
    )
    return ClassDef(
        name=result_name,
        heritage=base.heritage,
        properties=properties,
        constructor=constructor,
        methods=methods,
        type_params=base.type_params,
        exported=base.exported,
        default_export=base.default_export,
        abstract=base.abstract,
    )


def merge_properties(base: ClassDef, modules: Sequence[ClassDef]) -> Tuple[PropertyDecl, ...]:
    """Base properties then module properties; first declaration of a name wins."""
    merged: Dict[str, PropertyDecl] = {}
    for cls in (base, *modules):
        for prop in cls.properties:
            if prop.name in merged:
                logger.debug("dropping duplicate property %s from %s", prop.name, cls.name)
                continue
            merged[prop.name] = prop
    return tuple(merged.values())


def synthesize_params(properties: Sequence[PropertyDecl], any_type: str = DEFAULT_ANY_TYPE) -> Tuple[Param, ...]:
    fallback = TypeExpr(any_type)
    return tuple(Param(name=prop.name, type_expr=prop.type_expr or fallback) for prop in properties)


def synthesize_body(base: ClassDef, properties: Sequence[PropertyDecl]) -> Tuple[Stmt, ...]:
    """
    Constructor body of the merged class.

    Of an existing non-empty base constructor body only the
    `super(...arguments)` calls are kept; everything else is dropped. With no
    base constructor (or an empty one) a single super call is synthesized.
    One `this.<p> = <p>` assignment per merged property follows.
    """
    original = _base_statements(base)
    statements: List[Stmt]
    if original:
        statements = [stmt for stmt in original if isinstance(stmt, SuperCall)]
        dropped = len(original) - len(statements)
        if dropped:
            logger.warning("dropping %d non-super statement(s) from %s constructor", dropped, base.name)
        if not statements:
            logger.warning("%s constructor has no super(...arguments) call; merged constructor has none", base.name)
    else:
        statements = [SuperCall()]
    statements.extend(FieldAssign(field=prop.name, value=prop.name) for prop in properties)
    return tuple(statements)


def merge_methods(base: ClassDef, modules: Sequence[ClassDef]) -> Tuple[MethodDecl, ...]:
    methods: List[MethodDecl] = []
    seen: Dict[str, str] = {}
    for cls in (base, *modules):
        for method in cls.methods:
            if method.name in seen:
                # Kept: the compiler reports the clash.
                logger.debug("method %s of %s duplicates one from %s", method.name, cls.name, seen[method.name])
            else:
                seen[method.name] = cls.name
            methods.append(method)
    return tuple(methods)


def _base_statements(base: ClassDef) -> Tuple[Stmt, ...]:
    ctor = base.constructor
    if ctor is None or ctor.body is None:
        return ()
    return ctor.body.statements
