"""Format catalogue model objects back into catalogue syntax.

The output parses back into equal model objects. Original formatting and
comments are not preserved.
"""

from __future__ import annotations

from declcheck import nodes
from declcheck.catalogue import TypeAliasInfo, TypeCatalogue, TypeInfo
from declcheck.nodes import Member, Signature, TypeParam
from declcheck.types import format_args, format_block, format_return_type, format_type


def format_type_param(p: TypeParam) -> str:
    s = p.name
    if p.variance == nodes.COVARIANT:
        s = "out " + s
    elif p.variance == nodes.CONTRAVARIANT:
        s = "in " + s
    if p.unchecked:
        s = "unchecked " + s
    if p.upper_bound is not None:
        s += " < " + format_type(p.upper_bound)
    if p.default is not None:
        s += " = " + format_type(p.default)
    return s


def format_type_params(params: list[TypeParam]) -> str:
    if not params:
        return ""
    return "[" + ", ".join(format_type_param(p) for p in params) + "]"


def format_signature(sig: Signature) -> str:
    """Format a method type such as [T] (T x, ?Integer n) { (T) -> void } -> T."""
    parts = []
    if sig.type_params:
        parts.append(format_type_params(sig.type_params))
    parts.append(f"({format_args(sig.args)})")
    if sig.block is not None:
        parts.append(format_block(sig.block))
    parts.append("-> " + format_return_type(sig.ret_type))
    return " ".join(parts)


def format_member(member: Member) -> list[str]:
    """Format a member as declaration lines, one per overload variant."""
    if member.kind == nodes.CONSTANT:
        assert member.type is not None
        return [f"{member.name}: {format_type(member.type)}"]
    prefix = "self." if member.kind == nodes.SINGLETON else ""
    if member.alias_of is not None:
        return [f"alias {prefix}{member.name} {prefix}{member.alias_of}"]
    head = f"def {prefix}{member.name}: "
    lines = []
    for i, sig in enumerate(member.variants):
        if i == 0:
            lines.append(head + format_signature(sig))
        else:
            lines.append(" " * (len(head) - 2) + "| " + format_signature(sig))
    return lines


class CataloguePrinter:
    """Convert a type catalogue into catalogue source text.

    Every type is printed as a separate top-level block under its fully
    qualified name. Implicit owners of qualified constants get no block;
    their constants are printed with qualified names.
    """

    def __init__(self) -> None:
        self.result: list[str] = []
        self.indent = 0

    def output(self) -> str:
        return "".join(self.result)

    def line(self, s: str) -> None:
        self.result.append("  " * self.indent + s + "\n")

    def visit_catalogue(self, cat: TypeCatalogue) -> str:
        aliases_by_namespace: dict[str, list[TypeAliasInfo]] = {}
        for alias in cat.aliases.values():
            owner = alias.namespace if cat.lookup(alias.namespace) is not None else ""
            aliases_by_namespace.setdefault(owner, []).append(alias)

        for alias in aliases_by_namespace.get("", []):
            self.visit_type_alias(alias, qualified=True)
        for member in cat.root.members.values():
            self.member(member)
        for info in cat.types.values():
            if info.implicit:
                for member in info.constants():
                    self.line(f"{info.fullname}::" + format_member(member)[0])
                continue
            self.visit_type_info(info, aliases_by_namespace.get(info.fullname, []))
        return self.output()

    def visit_type_info(self, info: TypeInfo, aliases: list[TypeAliasInfo]) -> None:
        header = f"{info.kind} {info.fullname}{format_type_params(info.type_params)}"
        if info.super_type is not None:
            header += " < " + format_type(info.super_type)
        if info.self_types:
            header += " : " + ", ".join(format_type(t) for t in info.self_types)
        if self.result:
            self.result.append("\n")
        self.line(header)
        self.indent += 1
        for kind, typ, _ in info.mixins:
            self.line(f"{kind} {format_type(typ)}")
        for alias in aliases:
            self.visit_type_alias(alias, qualified=False)
        for key, ivar in info.ivars.items():
            self.line(f"{key}: {format_type(ivar.type)}")
        for member in info.members.values():
            self.member(member)
        self.indent -= 1
        self.line("end")

    def visit_type_alias(self, alias: TypeAliasInfo, qualified: bool) -> None:
        name = alias.fullname if qualified else alias.fullname.split("::")[-1]
        params = format_type_params(alias.type_params)
        self.line(f"type {name}{params} = {format_type(alias.target)}")

    def member(self, member: Member) -> None:
        for s in format_member(member):
            self.line(s)


def format_catalogue(cat: TypeCatalogue) -> str:
    """Return the catalogue source text of a whole catalogue."""
    return CataloguePrinter().visit_catalogue(cat)
