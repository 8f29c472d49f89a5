from __future__ import annotations

import ast
import re
from pathlib import Path
from typing import Dict, FrozenSet, Iterator, List, Optional, Set, Tuple

from lark import Lark, Token, Tree
from lark.exceptions import UnexpectedCharacters, UnexpectedInput, UnexpectedToken

from .ast import (
    Block,
    ClassDef,
    ConstructorDecl,
    Decorator,
    FieldAssign,
    HeritageClause,
    ImportSpec,
    Located,
    MethodDecl,
    OpaqueStmt,
    Param,
    PropertyDecl,
    SourceUnit,
    Stmt,
    SuperCall,
    TypeAliasDecl,
    TypeExpr,
)
from .config import DEFAULT_LIBRARY
from .errors import ParseError

_GRAMMAR_PATH = Path(__file__).with_name("grammar.lark")
_GRAMMAR_SRC = _GRAMMAR_PATH.read_text()

_IDENT = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")
_SUPER_FORWARD = ["super", "(", "...", "arguments", ")"]


class _LineState:
    def __init__(self) -> None:
        self.paren_depth = 0
        self.bracket_depth = 0
        self.can_terminate = False

    def update(self, token: Token) -> None:
        ttype = token.type
        if ttype == "LPAR":
            self.paren_depth += 1
        elif ttype == "RPAR" and self.paren_depth:
            self.paren_depth -= 1
        elif ttype == "LSQB":
            self.bracket_depth += 1
        elif ttype == "RSQB" and self.bracket_depth:
            self.bracket_depth -= 1
        self.can_terminate = TerminatorInserter.is_terminable(token)

    def should_terminate(self) -> bool:
        return self.paren_depth == 0 and self.bracket_depth == 0 and self.can_terminate


class TerminatorInserter:
    """
    Turns newlines into statement terminators.

    A newline terminates when the previous token can end an expression and we
    are not inside `()` / `[]`. The terminator is held back for one token so a
    continuation line (`.foo()`, `| B`, `else`, a `{` after a signature) joins
    the previous one. A terminator is also implied before `}` and at end of
    input. State is per `process` call so one parser can serve concurrent
    parses.
    """

    always_accept = ("NEWLINE", "SEMI")

    TERMINABLE = {
        "NAME",
        "NUMBER",
        "STRING",
        "TEMPLATE",
        "RPAR",
        "RSQB",
        "RBRACE",
        "GT",
        "BANG",
        "TYPE",
        "FROM",
        "AS",
        "DEFAULT",
        "CONSTRUCTOR",
    }
    TERMINABLE_OPS = {"++", "--"}

    CONTINUATION = {"DOT", "QDOT", "VBAR", "AMP", "LBRACE"}
    CONTINUATION_OPS = {"||", "&&", "??"}
    CONTINUATION_WORDS = {"else", "catch", "finally"}

    def process(self, stream: Iterator[Token]) -> Iterator[Token]:
        state = _LineState()
        pending: Optional[Token] = None
        last: Optional[Token] = None
        for token in stream:
            ttype = token.type
            if ttype == "NEWLINE":
                if pending is None and state.should_terminate():
                    pending = Token.new_borrow_pos("_TERMINATOR", token.value, token)
                state.can_terminate = False
                continue
            if ttype == "SEMI":
                pending = None
                yield Token.new_borrow_pos("_TERMINATOR", token.value, token)
                state.can_terminate = False
                continue
            if pending is not None:
                if not self._continues_line(token):
                    yield pending
                pending = None
            if ttype == "RBRACE" and state.should_terminate():
                yield Token.new_borrow_pos("_TERMINATOR", "", token)
            pieces = _split_closing_angles(token)
            yield from pieces
            state.update(pieces[-1])
            last = pieces[-1]
        if pending is not None:
            yield pending
        elif last is not None and state.should_terminate():
            yield Token.new_borrow_pos("_TERMINATOR", "", last)

    @classmethod
    def is_terminable(cls, token: Token) -> bool:
        if token.type == "OP":
            return token.value in cls.TERMINABLE_OPS
        return token.type in cls.TERMINABLE

    def _continues_line(self, token: Token) -> bool:
        if token.type in self.CONTINUATION:
            return True
        if token.type == "OP":
            return token.value in self.CONTINUATION_OPS
        return token.type == "NAME" and token.value in self.CONTINUATION_WORDS


def _split_closing_angles(token: Token) -> List[Token]:
    # `Array<Array<T>>`: the lexer has no context, so `>>` / `>>>` arrive as one
    # operator. Statement bodies are opaque, so splitting is harmless there.
    if token.type != "OP" or token.value not in (">>", ">>>"):
        return [token]
    return [
        Token(
            "GT",
            ">",
            token.start_pos + idx,
            token.line,
            token.column + idx,
            token.line,
            token.column + idx + 1,
            token.start_pos + idx + 1,
        )
        for idx in range(len(token.value))
    ]


_PARSER = Lark(
    _GRAMMAR_SRC,
    parser="lalr",
    lexer="basic",
    start="program",
    propagate_positions=True,
    maybe_placeholders=False,
    postlex=TerminatorInserter(),
)


def parse_unit(source: str, name: str = "<unit>", library: str = DEFAULT_LIBRARY) -> SourceUnit:
    """
    Parse one TypeScript source unit into its declaration model.

    Imports of `library` made of named bindings only are folded into the
    unit's ImportSpec for that library; every other top-level statement that
    is neither a class nor a type alias is kept verbatim, in order.
    """
    try:
        tree = _PARSER.parse(source)
    except UnexpectedInput as exc:
        line = exc.line if isinstance(exc.line, int) else None
        column = exc.column if isinstance(exc.column, int) else None
        raise ParseError(name, _describe(exc), line=line, column=column) from exc
    return _UnitBuilder(source, name, library).build(tree)


def _describe(exc: UnexpectedInput) -> str:
    if isinstance(exc, UnexpectedCharacters):
        return f"unexpected character {exc.char!r}"
    if isinstance(exc, UnexpectedToken):
        token = exc.token
        if token.type == "$END":
            return "unexpected end of input"
        if token.type == "_TERMINATOR":
            return "unexpected end of statement"
        return f"unexpected token {token.value!r}"
    return "unexpected end of input"


class _UnitBuilder:
    def __init__(self, source: str, unit: str, library: str) -> None:
        self.source = source
        self.unit = unit
        self.library = library

    def build(self, tree: Tree) -> SourceUnit:
        imports: Dict[str, Set[str]] = {}
        statements: List[OpaqueStmt] = []
        classes: List[ClassDef] = []
        aliases: List[TypeAliasDecl] = []
        for child in tree.children:
            if not isinstance(child, Tree):
                continue
            kind = _name(child)
            if kind == "import_decl":
                library, symbols, named_only = self._build_import(child)
                shared = library == self.library
                bucket = imports.setdefault(library, set())
                if shared and named_only:
                    bucket.update(symbols)
                    continue
                if not shared:
                    bucket.update(symbols)
                statements.append(self._opaque(child))
            elif kind == "class_decl":
                classes.append(self._build_class(child))
            elif kind == "type_alias":
                aliases.append(self._build_type_alias(child))
            elif kind in ("import_equals", "other_stmt"):
                statements.append(self._opaque(child))
            else:
                raise self._error(child, f"unexpected top-level node {kind}")
        return SourceUnit(
            name=self.unit,
            imports=tuple(ImportSpec(library=lib, symbols=frozenset(names)) for lib, names in imports.items()),
            statements=tuple(statements),
            classes=tuple(classes),
            type_aliases=tuple(aliases),
        )

    # ---- imports

    def _build_import(self, tree: Tree) -> Tuple[str, Set[str], bool]:
        string_token = next(
            child for child in reversed(tree.children) if isinstance(child, Token) and child.type == "STRING"
        )
        library = ast.literal_eval(string_token.value)
        clause = _child(tree, "import_clause")
        if clause is None:
            return library, set(), True
        symbols: Set[str] = set()
        named_only = True
        for part in clause.children:
            if not isinstance(part, Tree):
                continue
            if _name(part) == "named_imports":
                for spec in part.children:
                    if isinstance(spec, Tree) and _name(spec) == "import_spec":
                        symbols.add(_build_import_spec(spec))
            else:
                named_only = False
        return library, symbols, named_only

    # ---- classes

    def _build_class(self, tree: Tree) -> ClassDef:
        tokens = [child for child in tree.children if isinstance(child, Token)]
        types = {tok.type for tok in tokens}
        name_token = next(tok for tok in tokens if tok.type == "NAME")
        heritage_node = _child(tree, "heritage")
        type_params_node = _child(tree, "type_params")
        body = _child(tree, "class_body")
        properties: List[PropertyDecl] = []
        methods: List[MethodDecl] = []
        constructors: List[ConstructorDecl] = []
        for member in body.children:
            if not isinstance(member, Tree) or _name(member) != "member":
                continue
            decorators = self._build_decorators(_child(member, "decorators"))
            modifiers = _build_modifiers(_child(member, "modifiers"))
            core = member.children[-1]
            kind = _name(core)
            if kind == "property":
                properties.append(self._build_property(core, decorators, modifiers))
            elif kind == "constructor":
                constructors.append(self._build_constructor(core, modifiers))
            elif kind == "method":
                methods.append(self._build_method(core, decorators, modifiers))
            else:
                raise self._error(core, f"unexpected class member {kind}")
        return ClassDef(
            name=name_token.value,
            heritage=self._build_heritage(heritage_node) if heritage_node is not None else None,
            properties=tuple(properties),
            constructor=_pick_constructor(constructors),
            methods=tuple(methods),
            type_params=self._text(type_params_node) if type_params_node is not None else None,
            exported="EXPORT" in types,
            default_export="DEFAULT" in types,
            abstract="ABSTRACT" in types,
            loc=_loc_from_token(tokens[0]),
        )

    def _build_heritage(self, tree: Tree) -> HeritageClause:
        extends = _child(tree, "type_ref")
        implements = _child(tree, "implements_clause")
        implemented: Tuple[TypeExpr, ...] = ()
        if implements is not None:
            implemented = tuple(
                TypeExpr(self._text(ref))
                for ref in implements.children
                if isinstance(ref, Tree) and _name(ref) == "type_ref"
            )
        return HeritageClause(
            extends=TypeExpr(self._text(extends)) if extends is not None else None,
            implements=implemented,
        )

    def _build_decorators(self, tree: Optional[Tree]) -> Tuple[Decorator, ...]:
        if tree is None:
            return ()
        result: List[Decorator] = []
        for node in tree.children:
            parts = [tok.value for tok in node.children if isinstance(tok, Token) and tok.type == "NAME"]
            args_node = _child(node, "paren_group")
            args = self._text(args_node)[1:-1].strip() if args_node is not None else None
            result.append(Decorator(name=".".join(parts), args=args))
        return tuple(result)

    def _build_property(
        self,
        tree: Tree,
        decorators: Tuple[Decorator, ...],
        modifiers: Tuple[str, ...],
    ) -> PropertyDecl:
        name_node = _child(tree, "member_name")
        marker = next(
            (tok.value for tok in tree.children if isinstance(tok, Token) and tok.type in ("QMARK", "BANG")),
            None,
        )
        type_node = _child(tree, "type_expr")
        init_node = _child(tree, "initializer")
        return PropertyDecl(
            name=_member_name(name_node),
            type_expr=TypeExpr(self._text(type_node)) if type_node is not None else None,
            is_mutable_state=any(dec.args == "true" for dec in decorators),
            decorators=decorators,
            modifiers=modifiers,
            marker=marker,
            initializer=self._text(init_node) if init_node is not None else None,
            loc=_loc_from_token(name_node.children[0]),
        )

    def _build_constructor(self, tree: Tree, modifiers: Tuple[str, ...]) -> ConstructorDecl:
        ctor_token = tree.children[0]
        block = _child(tree, "block")
        return ConstructorDecl(
            params=self._build_params(_child(tree, "params")),
            body=self._build_block(block) if block is not None else None,
            modifiers=modifiers,
            loc=_loc_from_token(ctor_token),
        )

    def _build_method(
        self,
        tree: Tree,
        decorators: Tuple[Decorator, ...],
        modifiers: Tuple[str, ...],
    ) -> MethodDecl:
        name_node = _child(tree, "member_name")
        type_params_node = _child(tree, "type_params")
        return_node = _child(tree, "type_expr")
        block = _child(tree, "block")
        return MethodDecl(
            name=_member_name(name_node),
            params=self._build_params(_child(tree, "params")),
            return_type=TypeExpr(self._text(return_node)) if return_node is not None else None,
            body=self._build_block(block) if block is not None else None,
            decorators=decorators,
            modifiers=modifiers,
            type_params=self._text(type_params_node) if type_params_node is not None else None,
            loc=_loc_from_token(name_node.children[0]),
        )

    def _build_params(self, tree: Optional[Tree]) -> Tuple[Param, ...]:
        if tree is None:
            return ()
        return tuple(self._build_param(node) for node in tree.children if isinstance(node, Tree))

    def _build_param(self, tree: Tree) -> Param:
        tokens = [child for child in tree.children if isinstance(child, Token)]
        type_node = _child(tree, "type_expr")
        default_node = _child(tree, "param_default")
        return Param(
            name=_member_name(_child(tree, "member_name")),
            type_expr=TypeExpr(self._text(type_node)) if type_node is not None else None,
            modifiers=_build_modifiers(_child(tree, "modifiers")),
            optional=any(tok.type == "QMARK" for tok in tokens),
            rest=any(tok.type == "ELLIPSIS" for tok in tokens),
            default=self._text(default_node) if default_node is not None else None,
        )

    # ---- statements

    def _build_block(self, tree: Tree) -> Block:
        statements: List[Stmt] = []
        for child in tree.children:
            if isinstance(child, Tree) and _name(child) == "stmt":
                statements.append(self._build_stmt(child))
        return Block(statements=tuple(statements))

    def _build_stmt(self, tree: Tree) -> Stmt:
        tokens = _tokens(tree)
        loc = _loc_from_token(tokens[0])
        values = [tok.value for tok in tokens]
        if values == _SUPER_FORWARD:
            return SuperCall(loc=loc)
        if (
            len(tokens) == 5
            and values[0] == "this"
            and tokens[1].type == "DOT"
            and tokens[3].type == "EQUAL"
            and _IDENT.match(values[2])
            and _IDENT.match(values[4])
        ):
            return FieldAssign(field=values[2], value=values[4], loc=loc)
        return OpaqueStmt(text=self._text(tree), loc=loc)

    def _opaque(self, tree: Tree) -> OpaqueStmt:
        return OpaqueStmt(text=self._text(tree), loc=_loc_from_token(_tokens(tree)[0]))

    # ---- type aliases

    def _build_type_alias(self, tree: Tree) -> TypeAliasDecl:
        tokens = [child for child in tree.children if isinstance(child, Token)]
        name_token = next(tok for tok in tokens if tok.type == "NAME")
        type_params_node = _child(tree, "type_params")
        return TypeAliasDecl(
            name=name_token.value,
            definition=TypeExpr(self._text(_child(tree, "type_expr"))),
            type_params=self._text(type_params_node) if type_params_node is not None else None,
            exported=any(tok.type == "EXPORT" for tok in tokens),
            loc=_loc_from_token(tokens[0]),
        )

    # ---- source text

    def _text(self, tree: Tree) -> str:
        """Source text of `tree`, continuation lines dedented to its first line."""
        tokens = _tokens(tree)
        start = min(tok.start_pos for tok in tokens)
        end = max(tok.end_pos for tok in tokens)
        line_start = self.source.rfind("\n", 0, start) + 1
        head = self.source[line_start:start]
        indent = head[: len(head) - len(head.lstrip(" \t"))]
        text = self.source[start:end]
        spans = [(tok.start_pos - start, tok.end_pos - start) for tok in tokens if tok.type == "TEMPLATE"]
        return _dedent_tail(text, indent, _lines_inside(text, spans))

    def _error(self, tree: Tree, message: str) -> ParseError:
        tokens = _tokens(tree)
        if not tokens:
            return ParseError(self.unit, message)
        return ParseError(self.unit, message, line=tokens[0].line, column=tokens[0].column)


def template_lines(text: str) -> FrozenSet[int]:
    """
    Indices of the lines of `text` that begin inside a template literal.

    Those lines are part of a string value; dedenting, re-indenting or
    stripping them would change it.
    """
    if "`" not in text:
        return frozenset()
    spans = [(tok.start_pos, tok.end_pos) for tok in _PARSER.lex(text) if tok.type == "TEMPLATE"]
    return _lines_inside(text, spans)


def _lines_inside(text: str, spans: List[Tuple[int, int]]) -> FrozenSet[int]:
    inside: Set[int] = set()
    for idx, match in enumerate(re.finditer("\n", text), start=1):
        pos = match.start()
        if any(start < pos < end for start, end in spans):
            inside.add(idx)
    return frozenset(inside)


def _dedent_tail(text: str, indent: str, keep: FrozenSet[int] = frozenset()) -> str:
    """Dedent continuation lines by `indent`; lines in `keep` are left verbatim."""
    lines = text.split("\n")
    out = []
    for idx, line in enumerate(lines):
        if idx and idx not in keep:
            if indent and line.startswith(indent):
                line = line[len(indent):]
            elif indent:
                line = line.lstrip(" \t")
        if idx + 1 not in keep:
            line = line.rstrip()
        out.append(line)
    return "\n".join(out)


def _build_import_spec(tree: Tree) -> str:
    names = [tok.value for tok in tree.children if isinstance(tok, Token) and tok.type != "AS"]
    if len(names) == 2:
        return f"{names[0]} as {names[1]}"
    return names[0]


def _build_modifiers(tree: Optional[Tree]) -> Tuple[str, ...]:
    if tree is None:
        return ()
    return tuple(node.children[0].value for node in tree.children if isinstance(node, Tree))


def _member_name(tree: Tree) -> str:
    return tree.children[0].value


def _pick_constructor(constructors: List[ConstructorDecl]) -> Optional[ConstructorDecl]:
    # Overload signatures have no body; the implementation is the one that does.
    for ctor in constructors:
        if ctor.body is not None:
            return ctor
    return constructors[0] if constructors else None


def _child(tree: Tree, name: str) -> Optional[Tree]:
    return next((child for child in tree.children if isinstance(child, Tree) and _name(child) == name), None)


def _tokens(tree: Tree) -> List[Token]:
    return list(tree.scan_values(lambda value: isinstance(value, Token)))


def _loc_from_token(token: Token) -> Located:
    return Located(line=token.line, column=token.column)


def _name(node: Tree | Token) -> str:
    if isinstance(node, Tree):
        data = node.data
        if isinstance(data, Token):
            return data.value
        return data
    if isinstance(node, Token):
        return node.type
    return str(node)
