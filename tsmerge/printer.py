from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from .ast import (
    Block,
    ClassDef,
    ConstructorDecl,
    Decorator,
    FieldAssign,
    HeritageClause,
    ImportSpec,
    MethodDecl,
    OpaqueStmt,
    Param,
    PropertyDecl,
    Stmt,
    SuperCall,
    TypeAliasDecl,
)
from .config import ComposeOptions
from .errors import EmitError
from .imports import ReconciledImports
from .parser import template_lines


def _indent_tail(text: str, prefix: str) -> str:
    """
    Indent every line of `text` after the first by `prefix`.

    Lines that continue a template literal are string content and stay as
    they are.
    """
    lines = text.split("\n")
    keep = template_lines(text)
    tail = [
        prefix + line if line and idx not in keep else line
        for idx, line in enumerate(lines[1:], start=1)
    ]
    return "\n".join([lines[0]] + tail)


def _indent_all(text: str, prefix: str) -> str:
    return prefix + _indent_tail(text, prefix)


def format_import(spec: ImportSpec, quote: str = "'") -> str:
    symbols = spec.sorted_symbols()
    if any(not name.strip() for name in symbols):
        raise EmitError(f"empty symbol name in import from {spec.library}")
    names = ", ".join(symbols)
    clause = f"{{ {names} }}" if names else "{}"
    return f"import {clause} from {quote}{spec.library}{quote};"


def format_stmt(stmt: Stmt) -> str:
    if isinstance(stmt, SuperCall):
        return "super(...arguments);"
    if isinstance(stmt, FieldAssign):
        return f"this.{stmt.field} = {stmt.value};"
    if isinstance(stmt, OpaqueStmt):
        # Always terminated, or a next line opening with `[` or `(` would
        # continue this statement.
        return f"{stmt.text};"
    raise EmitError(f"cannot emit statement of kind {type(stmt).__name__}")


def format_block(block: Optional[Block], prefix: str, indent: str) -> str:
    """Body in braces; `prefix` is the indentation of the owning member."""
    if block is None:
        return ";"
    if not block.statements:
        return " {}"
    inner = prefix + indent
    lines = [" {"]
    for stmt in block.statements:
        lines.append(_indent_all(format_stmt(stmt), inner))
    lines.append(f"{prefix}}}")
    return "\n".join(lines)


def format_decorator(dec: Decorator) -> str:
    if dec.args is None:
        return f"@{dec.name}"
    return f"@{dec.name}({dec.args})"


def format_param(param: Param, prefix: str = "") -> str:
    parts = list(param.modifiers)
    name = f"...{param.name}" if param.rest else param.name
    if param.optional:
        name += "?"
    if param.type_expr is not None:
        name += f": {_indent_tail(param.type_expr.text, prefix)}"
    if param.default is not None:
        name += f" = {_indent_tail(param.default, prefix)}"
    parts.append(name)
    return " ".join(parts)


def format_params(params: Sequence[Param], prefix: str = "") -> str:
    return ", ".join(format_param(p, prefix) for p in params)


def _member_head(decorators: Iterable[Decorator], modifiers: Sequence[str], prefix: str) -> List[str]:
    lines = [prefix + format_decorator(dec) for dec in decorators]
    lines.append(prefix + "".join(f"{mod} " for mod in modifiers))
    return lines


def format_property(prop: PropertyDecl, prefix: str) -> str:
    lines = _member_head(prop.decorators, prop.modifiers, prefix)
    text = prop.name + (prop.marker or "")
    if prop.type_expr is not None:
        text += f": {_indent_tail(prop.type_expr.text, prefix)}"
    if prop.initializer is not None:
        text += f" = {_indent_tail(prop.initializer, prefix)}"
    lines[-1] += text + ";"
    return "\n".join(lines)


def format_constructor(ctor: ConstructorDecl, prefix: str, indent: str) -> str:
    lines = _member_head((), ctor.modifiers, prefix)
    lines[-1] += f"constructor({format_params(ctor.params, prefix)})" + format_block(ctor.body, prefix, indent)
    return "\n".join(lines)


def format_method(method: MethodDecl, prefix: str, indent: str) -> str:
    lines = _member_head(method.decorators, method.modifiers, prefix)
    sig = method.name + (method.type_params or "") + f"({format_params(method.params, prefix)})"
    if method.return_type is not None:
        sig += f": {_indent_tail(method.return_type.text, prefix)}"
    lines[-1] += sig + format_block(method.body, prefix, indent)
    return "\n".join(lines)


def format_heritage(heritage: Optional[HeritageClause]) -> str:
    if heritage is None:
        return ""
    text = ""
    if heritage.extends is not None:
        text += f" extends {heritage.extends.text}"
    if heritage.implements:
        text += " implements " + ", ".join(t.text for t in heritage.implements)
    return text


def format_class(cls: ClassDef, indent: str = "    ") -> str:
    if not cls.name.strip():
        raise EmitError("merged class has an empty identifier")
    if cls.constructor is not None:
        _check_alignment(cls)
    head = ""
    if cls.exported:
        head += "export "
        if cls.default_export:
            head += "default "
    if cls.abstract:
        head += "abstract "
    head += f"class {cls.name}{cls.type_params or ''}{format_heritage(cls.heritage)} {{"
    members: List[str] = [format_property(prop, indent) for prop in cls.properties]
    if cls.constructor is not None:
        members.append(format_constructor(cls.constructor, indent, indent))
    members.extend(format_method(method, indent, indent) for method in cls.methods)
    if not members:
        return head + "\n}"
    return head + "\n" + "\n\n".join(members) + "\n}"


def _check_alignment(cls: ClassDef) -> None:
    params = [p.name for p in cls.constructor.params]
    props = [p.name for p in cls.properties]
    if params != props:
        raise EmitError(f"constructor parameters {params} do not match properties {props} of {cls.name}")


def format_type_alias(alias: TypeAliasDecl) -> str:
    head = "export type" if alias.exported else "type"
    return f"{head} {alias.name}{alias.type_params or ''} = {alias.definition.text};"


def format_unit(
    reconciled: ReconciledImports,
    type_aliases: Sequence[TypeAliasDecl],
    merged: ClassDef,
    options: ComposeOptions,
) -> str:
    """
    Emit the composed unit: shared import, base pass-through statements,
    type aliases, then the merged class. Sections are separated by a blank
    line.
    """
    sections = [format_import(reconciled.shared, options.quote)]
    if reconciled.passthrough:
        sections.append("\n".join(format_stmt(stmt) for stmt in reconciled.passthrough))
    if type_aliases:
        sections.append("\n".join(format_type_alias(alias) for alias in type_aliases))
    sections.append(format_class(merged, options.indent))
    return "\n\n".join(sections) + "\n"
