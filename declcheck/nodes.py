"""Parse tree and model nodes of a declaration catalogue."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final, TypeVar

if TYPE_CHECKING:
    from declcheck.types import Type, UnboundType
    from declcheck.visitor import NodeVisitor

T = TypeVar("T")


class Context:
    """Base type for objects that are valid as error message locations."""

    __slots__ = ("line", "column")

    def __init__(self, line: int = -1, column: int = -1) -> None:
        self.line = line
        self.column = column

    def set_line(self, target: Context | int, column: int | None = None) -> None:
        """If target is a node, pull line (and column) information
        into this node. If column is specified, this will override any column
        information coming from a node.
        """
        if isinstance(target, int):
            self.line = target
        else:
            self.line = target.line
            self.column = target.column

        if column is not None:
            self.column = column


# Member kinds
INSTANCE: Final = "instance"
SINGLETON: Final = "singleton"  # Class-level (static) method
CONSTANT: Final = "constant"

member_kinds: Final = (INSTANCE, SINGLETON, CONSTANT)

# Kinds of type declarations
CLASS: Final = "class"
MODULE: Final = "module"
INTERFACE: Final = "interface"

# Kinds of mixin declarations
INCLUDE: Final = "include"
EXTEND: Final = "extend"
PREPEND: Final = "prepend"

# Positional, required parameter
ARG_POS: Final = 0
# Positional, optional parameter (?T name)
ARG_OPT: Final = 1
# Rest parameter (*T name)
ARG_STAR: Final = 2
# Required keyword parameter (name: T)
ARG_NAMED: Final = 3
# Optional keyword parameter (?name: T)
ARG_NAMED_OPT: Final = 4
# Keyword rest parameter (**T name)
ARG_STAR2: Final = 5

arg_kind_names: Final = {
    ARG_POS: "required",
    ARG_OPT: "optional",
    ARG_STAR: "rest",
    ARG_NAMED: "keyword",
    ARG_NAMED_OPT: "optional keyword",
    ARG_STAR2: "keyword rest",
}

# Type parameter variances
INVARIANT: Final = 0
COVARIANT: Final = 1
CONTRAVARIANT: Final = 2


class Argument(Context):
    """A single parameter of a method, block or proc type."""

    __slots__ = ("name", "type", "kind")

    def __init__(
        self, name: str | None, type: Type, kind: int, line: int = -1, column: int = -1
    ) -> None:
        super().__init__(line, column)
        self.name = name
        self.type = type
        self.kind = kind

    @property
    def optional(self) -> bool:
        return self.kind in (ARG_OPT, ARG_NAMED_OPT, ARG_STAR, ARG_STAR2)

    @property
    def variadic(self) -> bool:
        return self.kind in (ARG_STAR, ARG_STAR2)

    @property
    def keyword_only(self) -> bool:
        return self.kind in (ARG_NAMED, ARG_NAMED_OPT, ARG_STAR2)

    @property
    def positional(self) -> bool:
        return self.kind in (ARG_POS, ARG_OPT, ARG_STAR)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Argument):
            return NotImplemented
        return self.name == other.name and self.type == other.type and self.kind == other.kind

    def __hash__(self) -> int:
        return hash((self.name, self.type, self.kind))

    def __repr__(self) -> str:
        return f"Argument({self.name!r}, {self.type}, {arg_kind_names[self.kind]})"


class Block(Context):
    """The block type of a method, as in ?{ (String line) -> void }."""

    __slots__ = ("args", "ret_type", "optional")

    def __init__(
        self, args: list[Argument], ret_type: Type, optional: bool = False, line: int = -1
    ) -> None:
        super().__init__(line)
        self.args = args
        self.ret_type = ret_type
        self.optional = optional

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Block):
            return NotImplemented
        return (
            self.args == other.args
            and self.ret_type == other.ret_type
            and self.optional == other.optional
        )

    def __hash__(self) -> int:
        return hash((tuple(self.args), self.ret_type, self.optional))


class TypeParam(Context):
    """A type parameter of a generic type, alias or method, such as 'out T < Bound'."""

    __slots__ = ("name", "variance", "upper_bound", "default", "unchecked")

    def __init__(
        self,
        name: str,
        variance: int = INVARIANT,
        upper_bound: Type | None = None,
        default: Type | None = None,
        unchecked: bool = False,
        line: int = -1,
    ) -> None:
        super().__init__(line)
        self.name = name
        self.variance = variance
        self.upper_bound = upper_bound
        self.default = default
        self.unchecked = unchecked

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TypeParam):
            return NotImplemented
        return (
            self.name == other.name
            and self.variance == other.variance
            and self.upper_bound == other.upper_bound
            and self.default == other.default
            and self.unchecked == other.unchecked
        )

    def __hash__(self) -> int:
        return hash((self.name, self.variance))


class Signature(Context):
    """One call signature (overload variant) of a method."""

    __slots__ = ("type_params", "args", "block", "ret_type")

    def __init__(
        self,
        args: list[Argument],
        ret_type: Type,
        type_params: list[TypeParam] | None = None,
        block: Block | None = None,
        line: int = -1,
    ) -> None:
        super().__init__(line)
        self.type_params = type_params or []
        self.args = args
        self.block = block
        self.ret_type = ret_type

    def arg_names(self) -> list[str | None]:
        return [arg.name for arg in self.args]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Signature):
            return NotImplemented
        return (
            self.type_params == other.type_params
            and self.args == other.args
            and self.block == other.block
            and self.ret_type == other.ret_type
        )

    def __hash__(self) -> int:
        return hash((tuple(self.args), self.ret_type))

    def __repr__(self) -> str:
        from declcheck.printer import format_signature

        return f"Signature({format_signature(self)})"


class Member:
    """A named operation of a type in the catalogue: a method or a constant.

    Methods have one or more overload variants, kept in declaration order.
    Constants have a type and no variants.
    """

    __slots__ = ("name", "kind", "variants", "type", "lines", "owner", "alias_of")

    def __init__(
        self,
        name: str,
        kind: str,
        variants: list[Signature] | None = None,
        type: Type | None = None,
        lines: list[int] | None = None,
        owner: str = "",
        alias_of: str | None = None,
    ) -> None:
        self.name = name
        self.kind = kind
        self.variants = variants or []
        self.type = type
        self.lines = lines or []
        # Fully qualified name of the type the member belongs to
        self.owner = owner
        # For 'alias new old' members, the name of the aliased member
        self.alias_of = alias_of

    @property
    def line(self) -> int:
        return self.lines[0] if self.lines else -1

    @property
    def args(self) -> list[Argument]:
        """Parameters of the first overload variant."""
        return self.variants[0].args if self.variants else []

    @property
    def ret_type(self) -> Type | None:
        """Return type of the first overload variant."""
        return self.variants[0].ret_type if self.variants else None

    @property
    def fullname(self) -> str:
        sep = "#" if self.kind == INSTANCE else "."
        if self.kind == CONSTANT:
            sep = "::"
        return f"{self.owner}{sep}{self.name}" if self.owner else self.name

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Member):
            return NotImplemented
        return (
            self.name == other.name
            and self.kind == other.kind
            and self.variants == other.variants
            and self.type == other.type
            and self.alias_of == other.alias_of
        )

    def __hash__(self) -> int:
        return hash((self.name, self.kind))

    def __repr__(self) -> str:
        return f"Member({self.fullname}, {self.kind}, variants={len(self.variants)})"


# Parse tree nodes


class Node(Context):
    """Common base class for all parse tree nodes."""

    __slots__ = ()

    def accept(self, visitor: NodeVisitor[T]) -> T:
        raise RuntimeError("Not implemented")


class CatalogueFile(Node):
    """The parse tree of an entire catalogue file."""

    __slots__ = ("path", "defs")

    def __init__(self, path: str, defs: list[Node]) -> None:
        super().__init__(1)
        self.path = path
        self.defs = defs

    def accept(self, visitor: NodeVisitor[T]) -> T:
        return visitor.visit_catalogue_file(self)


class TypeDecl(Node):
    """class/module/interface Name[...] ... end"""

    __slots__ = ("kind", "name", "type_params", "super_type", "self_types", "defs", "end_line")

    def __init__(
        self,
        kind: str,
        name: str,
        type_params: list[TypeParam] | None = None,
        super_type: UnboundType | None = None,
        self_types: list[UnboundType] | None = None,
        line: int = -1,
    ) -> None:
        super().__init__(line)
        self.kind = kind
        # Name as written, possibly qualified (as in IO::Buffer) or absolute
        self.name = name
        self.type_params = type_params or []
        self.super_type = super_type
        self.self_types = self_types or []
        self.defs: list[Node] = []
        self.end_line = -1

    def accept(self, visitor: NodeVisitor[T]) -> T:
        return visitor.visit_type_decl(self)


class MemberDecl(Node):
    """def name: signature | signature ...

    A 'def self?.name' declaration (a module function) declares both an
    instance and a singleton method.
    """

    __slots__ = ("name", "kind", "variants", "lines", "overload", "module_function")

    def __init__(
        self,
        name: str,
        kind: str,
        variants: list[Signature],
        line: int = -1,
        overload: bool = False,
        module_function: bool = False,
    ) -> None:
        super().__init__(line)
        self.name = name
        self.kind = kind
        self.variants = variants
        # Declaration line of each variant
        self.lines = [v.line for v in variants]
        # Explicitly marked as extending an earlier declaration
        self.overload = overload
        self.module_function = module_function

    def kinds(self) -> list[str]:
        if self.module_function:
            return [INSTANCE, SINGLETON]
        return [self.kind]

    def accept(self, visitor: NodeVisitor[T]) -> T:
        return visitor.visit_member_decl(self)


class ConstantDecl(Node):
    """NAME: Type, or Owner::NAME: Type"""

    __slots__ = ("name", "type")

    def __init__(self, name: str, type: Type, line: int = -1) -> None:
        super().__init__(line)
        self.name = name
        self.type = type

    def accept(self, visitor: NodeVisitor[T]) -> T:
        return visitor.visit_constant_decl(self)


class MixinDecl(Node):
    """include/extend/prepend Name[Args]"""

    __slots__ = ("kind", "type")

    def __init__(self, kind: str, type: UnboundType, line: int = -1) -> None:
        super().__init__(line)
        self.kind = kind
        self.type = type

    def accept(self, visitor: NodeVisitor[T]) -> T:
        return visitor.visit_mixin_decl(self)


class AliasDecl(Node):
    """alias new_name old_name (or alias self.new self.old)"""

    __slots__ = ("new_name", "old_name", "kind")

    def __init__(self, new_name: str, old_name: str, kind: str, line: int = -1) -> None:
        super().__init__(line)
        self.new_name = new_name
        self.old_name = old_name
        self.kind = kind

    def accept(self, visitor: NodeVisitor[T]) -> T:
        return visitor.visit_alias_decl(self)


class TypeAliasDecl(Node):
    """type name[T] = Type"""

    __slots__ = ("name", "type_params", "target")

    def __init__(
        self, name: str, type_params: list[TypeParam], target: Type, line: int = -1
    ) -> None:
        super().__init__(line)
        self.name = name
        self.type_params = type_params
        self.target = target

    def accept(self, visitor: NodeVisitor[T]) -> T:
        return visitor.visit_type_alias_decl(self)


class IvarDecl(Node):
    """@name: Type, or self.@name: Type for a class instance variable"""

    __slots__ = ("name", "type", "singleton")

    def __init__(self, name: str, type: Type, singleton: bool = False, line: int = -1) -> None:
        super().__init__(line)
        self.name = name
        self.type = type
        self.singleton = singleton

    def accept(self, visitor: NodeVisitor[T]) -> T:
        return visitor.visit_ivar_decl(self)
