"""Type parser"""

from __future__ import annotations

from typing import TypeVar, cast

from declcheck import nodes
from declcheck.lex import (
    Colon,
    Eof,
    IntLit,
    Keyword,
    LexError,
    Name,
    QuotedName,
    StrLit,
    SymbolLit,
    Token,
    lex,
)
from declcheck.nodes import Argument, Block, Signature, TypeParam
from declcheck.types import (
    BASE_TYPE_NAMES,
    LITERAL_BOOL,
    LITERAL_INT,
    LITERAL_STR,
    LITERAL_SYMBOL,
    AnyType,
    BaseType,
    LiteralType,
    ProcType,
    RecordType,
    SingletonType,
    TupleType,
    Type,
    UnboundType,
    UnionType,
    make_optional,
)

T = TypeVar("T", bound=Token)


class TypeParseError(Exception):
    def __init__(self, token: Token, index: int, message: str | None = None) -> None:
        super().__init__()
        self.token = token
        self.index = index
        self.message = message

    def reason(self) -> str:
        """Return a human-readable description of the error."""
        if self.message:
            return self.message
        return unexpected_token_message(self.token)


class MalformedSignature(Exception):
    """A declaration line that matches no production of the catalogue grammar.

    Carries the offending line, its number and a human-readable reason.
    """

    def __init__(self, line: int, text: str, reason: str) -> None:
        super().__init__(f"line {line}: {reason}")
        self.line = line
        self.text = text
        self.reason = reason


def unexpected_token_message(tok: Token) -> str:
    if isinstance(tok, LexError):
        if tok.message:
            return tok.message
        return f'Invalid character "{tok.string}"'
    elif isinstance(tok, Eof):
        return "Unexpected end of declaration"
    return f'Unexpected "{tok.string}"'


# Tokens that may start a method type (after 'def name:' or '|')
METHOD_TYPE_START = ("(", "[", "->", "?", "{")


class TypeParser:
    def __init__(self, tok: list[Token], ind: int = 0) -> None:
        self.tok = tok
        self.ind = ind

    def index(self) -> int:
        return self.ind

    # Types

    def parse_type(self) -> Type:
        """Parse a type, which may be a union (A | B)."""
        first = self.current_token()
        items = [self.parse_optional_type()]
        while self.current_token_str() == "|":
            self.skip()
            items.append(self.parse_optional_type())
        if self.current_token_str() == "&":
            raise self.parse_error("Intersection types are not supported")
        if len(items) == 1:
            return items[0]
        union = UnionType(items, first.line, first.column)
        if len(union.items) < 2:
            raise TypeParseError(
                first, self.ind, "Union must have at least two distinct alternatives"
            )
        return union

    def parse_optional_type(self) -> Type:
        """Parse a type with any number of '?' suffixes (T? is T | nil)."""
        typ = self.parse_simple_type()
        while self.current_token_str() == "?":
            tok = self.skip()
            typ = make_optional(typ)
            if len(typ.items) < 2:
                raise TypeParseError(tok, self.ind, "Optional of nil is not a valid type")
        return typ

    def parse_simple_type(self) -> Type:
        t = self.current_token()
        if t.string == "(":
            return self.parse_parens()
        elif isinstance(t, Name) or t.string == "::":
            return self.parse_named_type()
        elif isinstance(t, Keyword):
            return self.parse_keyword_type()
        elif isinstance(t, IntLit):
            self.skip()
            return LiteralType(int(t.string.replace("_", "")), LITERAL_INT, t.line, t.column)
        elif isinstance(t, StrLit):
            self.skip()
            return LiteralType(t.parsed(), LITERAL_STR, t.line, t.column)
        elif isinstance(t, SymbolLit):
            self.skip()
            return LiteralType(t.parsed(), LITERAL_SYMBOL, t.line, t.column)
        elif t.string == "[":
            return self.parse_tuple_type()
        elif t.string == "{":
            return self.parse_record_type()
        elif t.string == "^":
            return self.parse_proc_type()
        else:
            raise self.parse_error()

    def parse_parens(self) -> Type:
        self.expect("(")
        typ = self.parse_type()
        self.expect(")")
        return typ

    def parse_keyword_type(self) -> Type:
        t = self.skip()
        if t.string == "untyped":
            return AnyType(t.line, t.column)
        elif t.string in ("true", "false"):
            return LiteralType(t.string == "true", LITERAL_BOOL, t.line, t.column)
        elif t.string == "singleton":
            self.expect("(")
            item = self.parse_named_type()
            self.expect(")")
            if item.args:
                raise self.parse_error("singleton() takes a type name without arguments")
            return SingletonType(item, t.line, t.column)
        elif t.string in BASE_TYPE_NAMES:
            return BaseType(t.string, t.line, t.column)
        else:
            raise TypeParseError(t, self.ind - 1)

    def parse_type_name(self) -> tuple[str, bool, Token]:
        """Parse a possibly qualified name such as IO, ::IO or IO::Buffer.

        Return (name, is absolute, first token).
        """
        first = self.current_token()
        absolute = False
        if first.string == "::":
            self.skip()
            absolute = True
        name = self.expect_type(Name).string
        while self.current_token_str() == "::" and isinstance(self.next_token(), Name):
            self.skip()
            name += "::" + self.expect_type(Name).string
        return name, absolute, first

    def parse_named_type(self) -> UnboundType:
        name, absolute, first = self.parse_type_name()
        args: list[Type] = []
        if self.current_token_str() == "[":
            self.skip()
            args = self.parse_type_list("]")
            if not args:
                raise self.parse_error("Empty type argument list")
            self.expect("]")
        return UnboundType(name, args, first.line, first.column, absolute=absolute)

    def parse_type_list(self, end: str) -> list[Type]:
        """Parse zero or more comma-separated types up to (not including) end."""
        items: list[Type] = []
        while self.current_token_str() != end:
            items.append(self.parse_type())
            if self.current_token_str() != ",":
                break
            self.skip()
        return items

    def parse_tuple_type(self) -> Type:
        lbracket = self.expect("[")
        items = self.parse_type_list("]")
        self.expect("]")
        return TupleType(items, lbracket.line, lbracket.column)

    def parse_record_type(self) -> Type:
        lbrace = self.expect("{")
        items: dict[str, Type] = {}
        required: set[str] = set()
        while self.current_token_str() != "}":
            optional = False
            if self.current_token_str() == "?":
                self.skip()
                optional = True
            key = self.current_token()
            if not isinstance(key, (Name, Keyword)) or not isinstance(self.next_token(), Colon):
                raise self.parse_error("Expected a record key")
            self.skip()
            self.skip()
            if key.string in items:
                raise TypeParseError(key, self.ind, f'Duplicate record key "{key.string}"')
            items[key.string] = self.parse_type()
            if not optional:
                required.add(key.string)
            if self.current_token_str() != ",":
                break
            self.skip()
        self.expect("}")
        return RecordType(items, required, lbrace.line, lbrace.column)

    def parse_proc_type(self) -> Type:
        caret = self.expect("^")
        args: list[Argument] = []
        if self.current_token_str() == "(":
            args = self.parse_params()
        block = self.parse_block()
        self.expect("->")
        ret_type = self.parse_optional_type()
        return ProcType(args, ret_type, block, caret.line, caret.column)

    # Parameters

    def parse_params(self) -> list[Argument]:
        """Parse a parenthesized parameter list and validate its ordering."""
        self.expect("(")
        args: list[Argument] = []
        while self.current_token_str() != ")":
            args.append(self.parse_param())
            if self.current_token_str() != ",":
                break
            self.skip()
        rparen = self.expect(")")
        self.check_params(args, rparen)
        return args

    def parse_param(self) -> Argument:
        t = self.current_token()
        s = t.string
        if s == "?" and self.is_keyword_param(self.ind + 1):
            self.skip()
            name = self.skip().string
            self.skip()
            return Argument(name, self.parse_type(), nodes.ARG_NAMED_OPT, t.line, t.column)
        elif self.is_keyword_param(self.ind):
            name = self.skip().string
            self.skip()
            return Argument(name, self.parse_type(), nodes.ARG_NAMED, t.line, t.column)
        kind = nodes.ARG_POS
        if s == "?":
            kind = nodes.ARG_OPT
            self.skip()
        elif s == "*":
            kind = nodes.ARG_STAR
            self.skip()
        elif s == "**":
            kind = nodes.ARG_STAR2
            self.skip()
        typ = self.parse_type()
        name = None
        if isinstance(self.current_token(), (Name, Keyword, QuotedName)):
            name = self.skip().string
        return Argument(name, typ, kind, t.line, t.column)

    def is_keyword_param(self, i: int) -> bool:
        return (
            i + 1 < len(self.tok)
            and isinstance(self.tok[i], (Name, Keyword))
            and isinstance(self.tok[i + 1], Colon)
        )

    def check_params(self, args: list[Argument], tok: Token) -> None:
        """Validate the order of parameter kinds and the uniqueness of names."""
        seen_optional = False
        seen_star = False
        seen_keyword = False
        seen_star2 = False
        names: set[str] = set()
        for arg in args:
            if seen_star2:
                raise TypeParseError(tok, self.ind, "Keyword rest parameter must be last")
            if arg.kind == nodes.ARG_POS:
                if seen_keyword:
                    raise TypeParseError(
                        tok, self.ind, "Positional parameter after keyword parameter"
                    )
                if seen_optional or seen_star:
                    raise TypeParseError(
                        tok, self.ind, "Required parameter after optional or rest parameter"
                    )
            elif arg.kind == nodes.ARG_OPT:
                if seen_keyword:
                    raise TypeParseError(
                        tok, self.ind, "Positional parameter after keyword parameter"
                    )
                if seen_star:
                    raise TypeParseError(tok, self.ind, "Optional parameter after rest parameter")
                seen_optional = True
            elif arg.kind == nodes.ARG_STAR:
                if seen_keyword:
                    raise TypeParseError(
                        tok, self.ind, "Positional parameter after keyword parameter"
                    )
                if seen_star:
                    raise TypeParseError(tok, self.ind, "Multiple rest parameters")
                seen_star = True
            elif arg.kind == nodes.ARG_STAR2:
                seen_star2 = True
            else:
                seen_keyword = True
            if arg.name is not None:
                if arg.name in names:
                    raise TypeParseError(tok, self.ind, f'Duplicate parameter name "{arg.name}"')
                names.add(arg.name)

    def parse_block(self) -> Block | None:
        """Parse an optional block type, such as ?{ (String line) -> void }."""
        optional = False
        if self.current_token_str() == "?" and self.next_token_str() == "{":
            self.skip()
            optional = True
        elif self.current_token_str() != "{":
            return None
        lbrace = self.expect("{")
        args: list[Argument] = []
        if self.current_token_str() == "(":
            args = self.parse_params()
        self.expect("->")
        ret_type = self.parse_optional_type()
        self.expect("}")
        return Block(args, ret_type, optional, lbrace.line)

    # Type parameters

    def parse_type_params(self) -> list[TypeParam]:
        """Parse [unchecked out T < Bound = Default, ...]."""
        self.expect("[")
        params: list[TypeParam] = []
        while True:
            params.append(self.parse_type_param())
            if self.current_token_str() != ",":
                break
            self.skip()
        self.expect("]")
        names: set[str] = set()
        seen_default = False
        for p in params:
            if p.name in names:
                raise self.parse_error(f'Duplicate type parameter "{p.name}"')
            names.add(p.name)
            if p.default is not None:
                seen_default = True
            elif seen_default:
                raise self.parse_error(
                    f'Type parameter "{p.name}" without a default follows one with a default'
                )
        return params

    def parse_type_param(self) -> TypeParam:
        first = self.current_token()
        unchecked = False
        variance = nodes.INVARIANT
        if first.string == "unchecked" and isinstance(self.next_token(), Name):
            self.skip()
            unchecked = True
        if self.current_token_str() in ("in", "out") and isinstance(self.next_token(), Name):
            variance = nodes.CONTRAVARIANT if self.skip().string == "in" else nodes.COVARIANT
        name = self.expect_type(Name).string
        upper_bound = None
        default = None
        if self.current_token_str() == "<":
            self.skip()
            upper_bound = self.parse_type()
        if self.current_token_str() == "=":
            self.skip()
            default = self.parse_type()
        return TypeParam(name, variance, upper_bound, default, unchecked, first.line)

    # Method types

    def parse_method_type(self) -> Signature:
        """Parse [U] (params) ?{ block } -> R."""
        first = self.current_token()
        type_params: list[TypeParam] = []
        if first.string == "[":
            type_params = self.parse_type_params()
        args: list[Argument] = []
        if self.current_token_str() == "(":
            args = self.parse_params()
        block = self.parse_block()
        self.expect("->")
        ret_type = self.parse_optional_type()
        if self.current_token_str() == "&":
            raise self.parse_error("Intersection types are not supported")
        return Signature(args, ret_type, type_params, block, first.line)

    def parse_method_types(self) -> tuple[list[Signature], bool]:
        """Parse one or more method types separated by '|'.

        A trailing '| ...' marks the declaration as an explicit overload of an
        earlier one. Return (variants, explicit overload).
        """
        variants: list[Signature] = []
        overload = False
        if self.current_token_str() == "...":
            self.skip()
            return variants, True
        while True:
            variants.append(self.parse_method_type())
            if self.current_token_str() != "|":
                break
            self.skip()
            if self.current_token_str() == "...":
                self.skip()
                overload = True
                break
            if self.current_token_str() not in METHOD_TYPE_START:
                raise self.parse_error("Union return types must be written in parentheses")
        return variants, overload

    # Helpers

    def expect_eof(self) -> None:
        if not isinstance(self.current_token(), Eof):
            raise self.parse_error()

    def skip(self) -> Token:
        self.ind += 1
        return self.tok[self.ind - 1]

    def expect(self, string: str) -> Token:
        if self.tok[self.ind].string == string:
            self.ind += 1
            return self.tok[self.ind - 1]
        else:
            raise self.parse_error()

    def expect_type(self, typ: type[T]) -> T:
        if isinstance(self.current_token(), typ):
            self.ind += 1
            return cast(T, self.tok[self.ind - 1])
        else:
            raise self.parse_error()

    def current_token(self) -> Token:
        return self.tok[self.ind]

    def next_token(self) -> Token | None:
        if self.ind + 1 >= len(self.tok):
            return None
        return self.tok[self.ind + 1]

    def current_token_str(self) -> str:
        return self.current_token().string

    def next_token_str(self) -> str:
        t = self.next_token()
        return t.string if t is not None else ""

    def parse_error(self, message: str | None = None) -> TypeParseError:
        return TypeParseError(self.tok[self.ind], self.ind, message=message)


def parse_str_as_type(typestr: str, line: int = 1) -> Type:
    """Parse a type represented as a string.

    Raise TypeParseError on parse error.
    """
    tokens = lex(typestr.strip(), line)
    p = TypeParser(tokens)
    result = p.parse_type()
    p.expect_eof()
    return result


def parse_signature(text: str, line: int = 1) -> tuple[list[Signature], bool]:
    """Parse the method types of a method declaration (the text after 'name:').

    Return (variants, explicit overload). Raise TypeParseError on parse error.
    """
    tokens = lex(text, line)
    p = TypeParser(tokens)
    result = p.parse_method_types()
    p.expect_eof()
    return result


def parse_type(text: str) -> Type:
    """Parse a bare type expression such as 'Array[String]?'.

    Raise MalformedSignature if the text is not a valid type.
    """
    try:
        return parse_str_as_type(text)
    except TypeParseError as e:
        raise MalformedSignature(e.token.line, text, e.reason()) from None
