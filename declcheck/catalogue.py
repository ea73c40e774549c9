"""The type catalogue and the builder that populates it from parse trees.

The builder consumes the declarations of one file in order. Re-opening a
type merges its members; declaring the same member twice without an
overload marker is reported as a conflicting declaration.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Final

from declcheck import message_registry, nodes
from declcheck.errors import Errors
from declcheck.message_registry import ErrorMessage
from declcheck.nodes import (
    AliasDecl,
    CatalogueFile,
    ConstantDecl,
    IvarDecl,
    Member,
    MemberDecl,
    MixinDecl,
    TypeAliasDecl,
    TypeDecl,
    TypeParam,
)
from declcheck.types import Type, UnboundType
from declcheck.visitor import NodeVisitor

member_kind_descriptions: Final = {
    nodes.INSTANCE: "instance method",
    nodes.SINGLETON: "singleton method",
    nodes.CONSTANT: "constant",
}


class FrozenCatalogueError(RuntimeError):
    """Raised on an attempt to modify a catalogue after it has been checked."""


def join_name(namespace: str, name: str) -> str:
    """Qualify name with namespace; a name starting with '::' is absolute."""
    if name.startswith("::"):
        return name[2:]
    if not namespace:
        return name
    return f"{namespace}::{name}"


def enclosing_namespaces(fullname: str) -> list[str]:
    """Return the namespaces a name inside fullname is looked up in, innermost first.

    For A::B this is ['A::B', 'A', ''].
    """
    parts = fullname.split("::") if fullname else []
    return ["::".join(parts[:i]) for i in range(len(parts), -1, -1)]


class TypeInfo:
    """The combined declarations of one class, module or interface.

    A type may be declared in several blocks of a file; each block adds to
    the same TypeInfo. A type that only appears as the owner of a qualified
    constant (as IO in 'IO::SEEK_SET: Integer') is implicit until a block
    declares it.
    """

    def __init__(self, fullname: str, kind: str, line: int = -1, implicit: bool = False) -> None:
        self.fullname = fullname
        self.kind = kind
        self.type_params: list[TypeParam] = []
        self.super_type: UnboundType | None = None
        self.self_types: list[UnboundType] = []
        # (include|extend|prepend, type, line)
        self.mixins: list[tuple[str, UnboundType, int]] = []
        # Members keyed by (name, kind), in declaration order
        self.members: dict[tuple[str, str], Member] = {}
        # Instance variables keyed by name ('self.@x' for class instance variables)
        self.ivars: dict[str, IvarDecl] = {}
        # Header line of every block declaring this type
        self.lines: list[int] = [line] if line > 0 else []
        self.implicit = implicit
        # References to this type as written in qualified constant names, with
        # the namespace and line of each
        self.implicit_refs: list[tuple[UnboundType, str, int]] = []
        self._frozen = False

    @property
    def name(self) -> str:
        return self.fullname.split("::")[-1]

    @property
    def line(self) -> int:
        return self.lines[0] if self.lines else -1

    @property
    def namespace(self) -> str:
        """The namespace enclosing this type."""
        return "::".join(self.fullname.split("::")[:-1])

    @property
    def arity(self) -> tuple[int, int]:
        """Return the (minimum, maximum) number of type arguments.

        Type parameters with a default may be omitted.
        """
        required = len([p for p in self.type_params if p.default is None])
        return required, len(self.type_params)

    def get_member(self, name: str, kind: str) -> Member | None:
        return self.members.get((name, kind))

    def add_member(self, member: Member) -> None:
        self.check_not_frozen()
        self.members[(member.name, member.kind)] = member

    def add_mixin(self, kind: str, typ: UnboundType, line: int) -> None:
        self.check_not_frozen()
        self.mixins.append((kind, typ, line))

    def add_ivar(self, key: str, decl: IvarDecl) -> None:
        self.check_not_frozen()
        self.ivars[key] = decl

    def methods(self) -> Iterator[Member]:
        for member in self.members.values():
            if member.kind != nodes.CONSTANT:
                yield member

    def constants(self) -> Iterator[Member]:
        for member in self.members.values():
            if member.kind == nodes.CONSTANT:
                yield member

    def check_not_frozen(self) -> None:
        if self._frozen:
            raise FrozenCatalogueError(f'Cannot modify "{self.fullname}": catalogue is frozen')

    def freeze(self) -> None:
        self._frozen = True

    def __repr__(self) -> str:
        return f"TypeInfo({self.kind} {self.fullname or '<toplevel>'})"


class TypeAliasInfo:
    """A type alias 'type name[T] = target' and the namespace it is declared in."""

    def __init__(
        self,
        fullname: str,
        type_params: list[TypeParam],
        target: Type,
        namespace: str,
        line: int,
    ) -> None:
        self.fullname = fullname
        self.type_params = type_params
        self.target = target
        self.namespace = namespace
        self.line = line

    @property
    def arity(self) -> tuple[int, int]:
        required = len([p for p in self.type_params if p.default is None])
        return required, len(self.type_params)


class TypeCatalogue:
    """The model of one catalogue file: declared types and type aliases.

    Constants declared outside any block belong to the root namespace. The
    catalogue is frozen once it has been checked.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        # Types keyed by fully qualified name, in declaration order
        self.types: dict[str, TypeInfo] = {}
        self.aliases: dict[str, TypeAliasInfo] = {}
        self.root = TypeInfo("", nodes.MODULE, implicit=True)
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def lookup(self, fullname: str) -> TypeInfo | None:
        """Look up a declared (not implicit) type by its fully qualified name."""
        info = self.types.get(fullname)
        if info is None or info.implicit:
            return None
        return info

    def lookup_alias(self, fullname: str) -> TypeAliasInfo | None:
        return self.aliases.get(fullname)

    def get_or_create(self, fullname: str, kind: str, line: int, implicit: bool) -> TypeInfo:
        if not fullname:
            return self.root
        info = self.types.get(fullname)
        if info is None:
            self.check_not_frozen()
            info = TypeInfo(fullname, kind, line, implicit=implicit)
            self.types[fullname] = info
        return info

    def add_alias(self, alias: TypeAliasInfo) -> None:
        self.check_not_frozen()
        self.aliases[alias.fullname] = alias

    def all_types(self) -> Iterator[TypeInfo]:
        """Iterate over the root namespace and every type, declared or implicit."""
        yield self.root
        yield from self.types.values()

    def members(self) -> Iterator[Member]:
        for info in self.all_types():
            yield from info.members.values()

    def check_not_frozen(self) -> None:
        if self._frozen:
            raise FrozenCatalogueError(f"Catalogue {self.path} is frozen")

    def freeze(self) -> None:
        self._frozen = True
        for info in self.all_types():
            info.freeze()


class CatalogueBuilder(NodeVisitor[None]):
    """Insert the declarations of a parse tree into a TypeCatalogue."""

    def __init__(self, errors: Errors, catalogue: TypeCatalogue | None = None) -> None:
        self.errors = errors
        self.catalogue: TypeCatalogue | None = catalogue
        # Types of the enclosing blocks, innermost last
        self.scope: list[TypeInfo] = []

    def build(self, tree: CatalogueFile) -> TypeCatalogue:
        if self.catalogue is None:
            self.catalogue = TypeCatalogue(tree.path)
        tree.accept(self)
        return self.catalogue

    @property
    def cat(self) -> TypeCatalogue:
        assert self.catalogue is not None
        return self.catalogue

    def current(self) -> TypeInfo:
        return self.scope[-1] if self.scope else self.cat.root

    def fail(self, msg: ErrorMessage, line: int, related_line: int) -> None:
        self.errors.report(
            line,
            None,
            msg.value,
            code=msg.code,
            related_lines=[related_line] if related_line > 0 else None,
        )

    def visit_catalogue_file(self, o: CatalogueFile, /) -> None:
        for d in o.defs:
            d.accept(self)

    def visit_type_decl(self, o: TypeDecl, /) -> None:
        fullname = join_name(self.current().fullname, o.name)
        existing = self.cat.types.get(fullname)
        info = self.cat.get_or_create(fullname, o.kind, o.line, implicit=False)
        if existing is None:
            info.type_params = o.type_params
        elif info.implicit:
            info.implicit = False
            info.kind = o.kind
            info.type_params = o.type_params
            info.lines.append(o.line)
        else:
            self.merge_type_decl(info, o)
        if o.super_type is not None and info.super_type is None:
            info.super_type = o.super_type
        info.self_types.extend(o.self_types)
        self.scope.append(info)
        for d in o.defs:
            d.accept(self)
        self.scope.pop()

    def merge_type_decl(self, info: TypeInfo, o: TypeDecl) -> None:
        """Check a block that re-opens a type against its earlier declaration."""
        previous = info.line
        if o.kind != info.kind:
            msg = message_registry.CONFLICTING_TYPE_KIND.format(
                info.fullname, describe_type_kind(o.kind), describe_type_kind(info.kind), previous
            )
            self.fail(msg, o.line, previous)
        if (
            o.super_type is not None
            and info.super_type is not None
            and o.super_type != info.super_type
        ):
            self.fail(
                message_registry.CONFLICTING_SUPERCLASS.format(info.fullname, previous),
                o.line,
                previous,
            )
        if len(o.type_params) != len(info.type_params):
            self.fail(
                message_registry.CONFLICTING_TYPE_PARAMS.format(info.fullname, previous),
                o.line,
                previous,
            )
        info.lines.append(o.line)

    def visit_member_decl(self, o: MemberDecl, /) -> None:
        info = self.current()
        for kind in o.kinds():
            existing = info.get_member(o.name, kind)
            if existing is None:
                member = Member(
                    o.name, kind, list(o.variants), lines=list(o.lines), owner=info.fullname
                )
                info.add_member(member)
            elif o.overload and existing.alias_of is None:
                existing.variants.extend(o.variants)
                existing.lines.extend(o.lines)
            else:
                self.report_conflict(info, existing, o.line)

    def visit_alias_decl(self, o: AliasDecl, /) -> None:
        info = self.current()
        existing = info.get_member(o.new_name, o.kind)
        if existing is not None:
            self.report_conflict(info, existing, o.line)
            return
        info.add_member(
            Member(o.new_name, o.kind, lines=[o.line], owner=info.fullname, alias_of=o.old_name)
        )

    def visit_constant_decl(self, o: ConstantDecl, /) -> None:
        namespace = self.current().fullname
        owner_name, _, name = o.name.rpartition("::")
        if owner_name:
            owner_ref = UnboundType(
                owner_name.lstrip(":"), line=o.line, absolute=owner_name.startswith("::")
            )
            fullname = join_name(namespace, owner_name)
            info = self.cat.get_or_create(fullname, nodes.MODULE, -1, implicit=True)
            if info.implicit:
                info.implicit_refs.append((owner_ref, namespace, o.line))
        else:
            info = self.current()
        existing = info.get_member(name, nodes.CONSTANT)
        if existing is not None:
            self.report_conflict(info, existing, o.line)
            return
        info.add_member(
            Member(name, nodes.CONSTANT, type=o.type, lines=[o.line], owner=info.fullname)
        )

    def visit_mixin_decl(self, o: MixinDecl, /) -> None:
        self.current().add_mixin(o.kind, o.type, o.line)

    def visit_type_alias_decl(self, o: TypeAliasDecl, /) -> None:
        namespace = self.current().fullname
        fullname = join_name(namespace, o.name)
        existing = self.cat.lookup_alias(fullname)
        if existing is not None:
            self.fail(
                message_registry.CONFLICTING_TYPE_ALIAS.format(fullname, existing.line),
                o.line,
                existing.line,
            )
            return
        self.cat.add_alias(TypeAliasInfo(fullname, o.type_params, o.target, namespace, o.line))

    def visit_ivar_decl(self, o: IvarDecl, /) -> None:
        info = self.current()
        key = "self." + o.name if o.singleton else o.name
        existing = info.ivars.get(key)
        if existing is not None:
            self.fail(
                message_registry.CONFLICTING_IVAR.format(key, info.fullname, existing.line),
                o.line,
                existing.line,
            )
            return
        info.add_ivar(key, o)

    def report_conflict(self, info: TypeInfo, existing: Member, line: int) -> None:
        self.fail(
            message_registry.CONFLICTING_MEMBER.format(
                member_kind_descriptions[existing.kind],
                existing.name,
                info.fullname or "<toplevel>",
                existing.line,
            ),
            line,
            existing.line,
        )


def describe_type_kind(kind: str) -> str:
    return "an interface" if kind == nodes.INTERFACE else f"a {kind}"


def build_catalogue(tree: CatalogueFile, errors: Errors) -> TypeCatalogue:
    """Build the catalogue of a parsed file, reporting conflicts to errors."""
    errors.set_file(tree.path)
    return CatalogueBuilder(errors).build(tree)
