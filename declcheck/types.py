"""Classes for representing type expressions of a catalogue."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Final, TypeVar, Union

from typing_extensions import TypeAlias as _TypeAlias

from declcheck.nodes import Context
from declcheck.type_visitor import TypeVisitor

if TYPE_CHECKING:
    from declcheck.nodes import Argument, Block


T = TypeVar("T")

# Names of the base types. They are reserved words and never refer to a
# declared type.
BASE_TYPE_NAMES: Final = frozenset(
    ["void", "nil", "bool", "boolish", "top", "bot", "self", "instance", "class"]
)

LiteralValue: _TypeAlias = Union[int, str, bool]

# Kinds of literal types
LITERAL_INT: Final = "int"
LITERAL_STR: Final = "str"
LITERAL_SYMBOL: Final = "symbol"
LITERAL_BOOL: Final = "bool"


class Type(Context):
    """Abstract base class for all type expressions."""

    __slots__ = ()

    def accept(self, visitor: TypeVisitor[T]) -> T:
        raise RuntimeError("Not implemented", type(self))

    def __repr__(self) -> str:
        return self.accept(TypeStrVisitor())

    def __str__(self) -> str:
        return self.accept(TypeStrVisitor())


class UnboundType(Type):
    """A reference to a named type, optionally instantiated with type arguments.

    The name is not resolved; the consistency checker binds it later. Names
    written with a leading '::' are absolute and resolve from the top level.
    """

    __slots__ = ("name", "args", "absolute")

    def __init__(
        self,
        name: str,
        args: Sequence[Type] | None = None,
        line: int = -1,
        column: int = -1,
        absolute: bool = False,
    ) -> None:
        super().__init__(line, column)
        if not args:
            args = []
        self.name = name
        self.args = tuple(args)
        self.absolute = absolute

    @property
    def is_generic(self) -> bool:
        return bool(self.args)

    def accept(self, visitor: TypeVisitor[T]) -> T:
        return visitor.visit_unbound_type(self)

    def __hash__(self) -> int:
        return hash((self.name, self.args, self.absolute))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UnboundType):
            return NotImplemented
        return (
            self.name == other.name
            and self.args == other.args
            and self.absolute == other.absolute
        )


class AnyType(Type):
    """The 'untyped' marker. It is compatible with every type."""

    __slots__ = ()

    def accept(self, visitor: TypeVisitor[T]) -> T:
        return visitor.visit_any(self)

    def __hash__(self) -> int:
        return hash(AnyType)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, AnyType)


class BaseType(Type):
    """A built-in type denoted by a reserved word, such as void, nil or self."""

    __slots__ = ("name",)

    def __init__(self, name: str, line: int = -1, column: int = -1) -> None:
        super().__init__(line, column)
        assert name in BASE_TYPE_NAMES, name
        self.name = name

    def accept(self, visitor: TypeVisitor[T]) -> T:
        return visitor.visit_base_type(self)

    def __hash__(self) -> int:
        return hash(("BaseType", self.name))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BaseType):
            return NotImplemented
        return self.name == other.name


def NilType(line: int = -1, column: int = -1) -> BaseType:
    return BaseType("nil", line, column)


class LiteralType(Type):
    """A literal type such as 1, "r+", :read or true."""

    __slots__ = ("value", "kind")

    def __init__(self, value: LiteralValue, kind: str, line: int = -1, column: int = -1) -> None:
        super().__init__(line, column)
        self.value = value
        self.kind = kind

    def accept(self, visitor: TypeVisitor[T]) -> T:
        return visitor.visit_literal_type(self)

    def __hash__(self) -> int:
        return hash((self.value, self.kind))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LiteralType):
            return NotImplemented
        return self.kind == other.kind and self.value == other.value


class UnionType(Type):
    """The union type A | B | ... (at least two distinct alternatives)."""

    __slots__ = ("items",)

    def __init__(self, items: Sequence[Type], line: int = -1, column: int = -1) -> None:
        super().__init__(line, column)
        self.items = remove_duplicate_items(flatten_nested_unions(items))

    @property
    def is_optional(self) -> bool:
        """Is this the shorthand T? (that is, T | nil)?"""
        return len(self.items) == 2 and any(is_nil(item) for item in self.items)

    def optional_item(self) -> Type:
        """Return T of a union T | nil."""
        assert self.is_optional
        return [item for item in self.items if not is_nil(item)][0]

    def accept(self, visitor: TypeVisitor[T]) -> T:
        return visitor.visit_union_type(self)

    def __hash__(self) -> int:
        return hash(frozenset(self.items))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UnionType):
            return NotImplemented
        return frozenset(self.items) == frozenset(other.items)


class TupleType(Type):
    """The tuple type [A, B, ...]."""

    __slots__ = ("items",)

    def __init__(self, items: Sequence[Type], line: int = -1, column: int = -1) -> None:
        super().__init__(line, column)
        self.items = tuple(items)

    def accept(self, visitor: TypeVisitor[T]) -> T:
        return visitor.visit_tuple_type(self)

    def __hash__(self) -> int:
        return hash(("TupleType", self.items))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TupleType):
            return NotImplemented
        return self.items == other.items


class RecordType(Type):
    """The record type { key: A, ?other: B }.

    Keys prefixed with '?' in the text may be omitted; they are not in
    required_keys.
    """

    __slots__ = ("items", "required_keys")

    def __init__(
        self,
        items: dict[str, Type],
        required_keys: set[str] | None = None,
        line: int = -1,
        column: int = -1,
    ) -> None:
        super().__init__(line, column)
        self.items = items
        self.required_keys = set(items) if required_keys is None else required_keys

    def accept(self, visitor: TypeVisitor[T]) -> T:
        return visitor.visit_record_type(self)

    def __hash__(self) -> int:
        return hash((frozenset(self.items.items()), frozenset(self.required_keys)))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RecordType):
            return NotImplemented
        return self.items == other.items and self.required_keys == other.required_keys


class ProcType(Type):
    """The proc type ^(A, B) ?{ (C) -> D } -> R."""

    __slots__ = ("args", "ret_type", "block")

    def __init__(
        self,
        args: Sequence[Argument],
        ret_type: Type,
        block: Block | None = None,
        line: int = -1,
        column: int = -1,
    ) -> None:
        super().__init__(line, column)
        self.args = tuple(args)
        self.ret_type = ret_type
        self.block = block

    def accept(self, visitor: TypeVisitor[T]) -> T:
        return visitor.visit_proc_type(self)

    def __hash__(self) -> int:
        return hash((self.args, self.ret_type, self.block))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ProcType):
            return NotImplemented
        return (
            self.args == other.args
            and self.ret_type == other.ret_type
            and self.block == other.block
        )


class SingletonType(Type):
    """The type singleton(Name) of the class object of a named type."""

    __slots__ = ("item",)

    def __init__(self, item: UnboundType, line: int = -1, column: int = -1) -> None:
        super().__init__(line, column)
        self.item = item

    def accept(self, visitor: TypeVisitor[T]) -> T:
        return visitor.visit_singleton_type(self)

    def __hash__(self) -> int:
        return hash(("SingletonType", self.item))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SingletonType):
            return NotImplemented
        return self.item == other.item


def flatten_nested_unions(types: Iterable[Type]) -> list[Type]:
    """Flatten nested unions in a type list."""
    flat_items: list[Type] = []
    for tp in types:
        if isinstance(tp, UnionType):
            flat_items.extend(flatten_nested_unions(tp.items))
        else:
            flat_items.append(tp)
    return flat_items


def remove_duplicate_items(types: list[Type]) -> list[Type]:
    """Remove repeated alternatives, keeping the first occurrence of each."""
    seen: set[Type] = set()
    result = []
    for tp in types:
        if tp not in seen:
            seen.add(tp)
            result.append(tp)
    return result


def is_nil(t: Type) -> bool:
    return isinstance(t, BaseType) and t.name == "nil"


def make_optional(t: Type) -> UnionType:
    return UnionType([t, NilType(t.line, t.column)], t.line, t.column)


def format_type(t: Type) -> str:
    """Format a type in catalogue syntax."""
    return t.accept(TypeStrVisitor())


def format_return_type(t: Type) -> str:
    """Format a type that appears after '->'.

    A return type cannot be a bare union, since '|' after a return type starts
    another overload variant; such unions are wrapped in parentheses.
    """
    s = format_type(t)
    if isinstance(t, UnionType) and not t.is_optional:
        return f"({s})"
    return s


def quote_string(s: str) -> str:
    """Return a double-quoted string literal with the value s."""
    escaped = s.replace("\\", "\\\\").replace('"', '\\"')
    escaped = escaped.replace("\n", "\\n").replace("\t", "\\t").replace("\r", "\\r")
    return f'"{escaped}"'


class TypeStrVisitor(TypeVisitor[str]):
    """Visitor for formatting types back into catalogue syntax.

    The result parses back into an equal type. Original formatting and
    comments are not preserved.

    Notes:
     - Represent a union T | nil as T?.
     - Wrap proc types in parentheses where they would swallow a suffix.
    """

    def visit_unbound_type(self, t: UnboundType) -> str:
        s = "::" + t.name if t.absolute else t.name
        if t.args:
            s += f"[{self.list_str(t.args)}]"
        return s

    def visit_any(self, t: AnyType) -> str:
        return "untyped"

    def visit_base_type(self, t: BaseType) -> str:
        return t.name

    def visit_literal_type(self, t: LiteralType) -> str:
        if t.kind == LITERAL_BOOL:
            return "true" if t.value else "false"
        elif t.kind == LITERAL_INT:
            return str(t.value)
        elif t.kind == LITERAL_SYMBOL:
            assert isinstance(t.value, str)
            if is_plain_symbol(t.value):
                return ":" + t.value
            return ":" + quote_string(t.value)
        else:
            assert isinstance(t.value, str)
            return quote_string(t.value)

    def visit_union_type(self, t: UnionType) -> str:
        if t.is_optional:
            item = t.optional_item()
            s = item.accept(self)
            if isinstance(item, ProcType):
                s = f"({s})"
            return s + "?"
        items = []
        for item in t.items:
            s = item.accept(self)
            if isinstance(item, ProcType):
                s = f"({s})"
            items.append(s)
        return " | ".join(items)

    def visit_tuple_type(self, t: TupleType) -> str:
        return f"[{self.list_str(t.items)}]"

    def visit_record_type(self, t: RecordType) -> str:
        items = []
        for key, typ in t.items.items():
            prefix = "" if key in t.required_keys else "?"
            items.append(f"{prefix}{key}: {typ.accept(self)}")
        return "{ " + ", ".join(items) + " }"

    def visit_proc_type(self, t: ProcType) -> str:
        s = f"^({format_args(t.args)})"
        if t.block is not None:
            s += " " + format_block(t.block)
        return f"{s} -> {format_return_type(t.ret_type)}"

    def visit_singleton_type(self, t: SingletonType) -> str:
        return f"singleton({t.item.accept(self)})"

    def list_str(self, a: Iterable[Type]) -> str:
        """Convert items of an array to strings (pretty-print types)
        and join the results with commas.
        """
        return ", ".join(t.accept(self) for t in a)


def is_plain_symbol(name: str) -> bool:
    """Can the symbol be written without quotes (as in :read or :write_nonblock)?"""
    if not name or not (name[0].isalpha() or name[0] == "_"):
        return False
    body = name[:-1] if name[-1] in "?!=" else name
    return all(c.isalnum() or c == "_" for c in body) and body.isascii()


def format_args(args: Iterable[Argument]) -> str:
    """Format a parameter list (without the surrounding parentheses)."""
    from declcheck.nodes import ARG_NAMED, ARG_NAMED_OPT, ARG_OPT, ARG_STAR, ARG_STAR2

    prefixes = {ARG_OPT: "?", ARG_STAR: "*", ARG_STAR2: "**"}
    items = []
    for arg in args:
        typ = format_type(arg.type)
        if isinstance(arg.type, ProcType):
            typ = f"({typ})"
        if arg.kind == ARG_NAMED:
            items.append(f"{arg.name}: {typ}")
        elif arg.kind == ARG_NAMED_OPT:
            items.append(f"?{arg.name}: {typ}")
        else:
            s = prefixes.get(arg.kind, "") + typ
            if arg.name is not None:
                s += " " + arg.name
            items.append(s)
    return ", ".join(items)


def format_block(block: Block) -> str:
    """Format a block type such as ?{ (String line) -> void }."""
    prefix = "?" if block.optional else ""
    return f"{prefix}{{ ({format_args(block.args)}) -> {format_return_type(block.ret_type)} }}"
