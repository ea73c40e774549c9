"""The consistency checker.

Resolve every type reference of a completed catalogue and verify the number
of type arguments of generic instantiations. Findings are accumulated over
the whole catalogue; the catalogue is frozen after the check.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Final, NamedTuple

from declcheck import message_registry, nodes
from declcheck.catalogue import (
    TypeAliasInfo,
    TypeCatalogue,
    TypeInfo,
    enclosing_namespaces,
    join_name,
)
from declcheck.errors import SEVERITY_NOTE, ErrorWatcher, Errors, Finding
from declcheck.message_registry import ErrorMessage
from declcheck.nodes import Member, Signature, TypeParam
from declcheck.options import Options
from declcheck.type_visitor import TypeTraverserVisitor
from declcheck.types import SingletonType, Type, UnboundType
from declcheck.util import plural_s

# Where a name was found
SOURCE_CATALOGUE: Final = "catalogue"
SOURCE_ALIAS: Final = "alias"
SOURCE_EXTERNAL: Final = "external"


class Binding(NamedTuple):
    """A resolved type name."""

    fullname: str
    # (minimum, maximum) number of type arguments; None if not known
    arity: tuple[int, int] | None
    source: str
    info: TypeInfo | None = None


class ConsistencyChecker:
    """Check that the references of a catalogue resolve.

    Names resolve lexically: a relative name is tried in the namespace it
    appears in, then in each enclosing namespace out to the top level. A name
    resolves to a type or type alias of the catalogue, or to an entry of the
    external type table. Type parameters in scope resolve to themselves.
    """

    def __init__(
        self,
        catalogue: TypeCatalogue,
        external_types: Mapping[str, int | None],
        errors: Errors,
        options: Options,
    ) -> None:
        self.catalogue = catalogue
        self.external_types = external_types
        self.errors = errors
        self.options = options
        # (line, message) pairs already reported
        self.reported: set[tuple[int, str]] = set()

    def check(self) -> list[Finding]:
        """Check the whole catalogue and return the findings, in line order."""
        self.errors.set_file(self.catalogue.path)
        with ErrorWatcher(self.errors) as watcher:
            for info in self.catalogue.all_types():
                self.check_type_info(info)
            for alias in self.catalogue.aliases.values():
                self.check_type_alias(alias)
        self.catalogue.freeze()
        return watcher.findings()

    # Name resolution

    def lookup_type(
        self, name: str, absolute: bool, namespaces: Iterable[str]
    ) -> Binding | None:
        """Resolve a type name, trying the given namespaces in order."""
        candidates = [name] if absolute else [join_name(ns, name) for ns in namespaces]
        for fullname in candidates:
            info = self.catalogue.lookup(fullname)
            if info is not None:
                return Binding(fullname, info.arity, SOURCE_CATALOGUE, info)
            alias = self.catalogue.lookup_alias(fullname)
            if alias is not None:
                return Binding(fullname, alias.arity, SOURCE_ALIAS)
            if fullname in self.external_types:
                arity = self.external_types[fullname]
                return Binding(
                    fullname, None if arity is None else (arity, arity), SOURCE_EXTERNAL
                )
        return None

    # Catalogue traversal

    def check_type_info(self, info: TypeInfo) -> None:
        namespaces = enclosing_namespaces(info.fullname)
        outer = enclosing_namespaces(info.namespace)
        type_vars = {p.name for p in info.type_params}
        if info.implicit:
            for ref, namespace, line in info.implicit_refs:
                self.analyze(ref, enclosing_namespaces(namespace), set(), line)
        self.check_type_params(info.type_params, namespaces, type_vars, info.line)
        if info.super_type is not None:
            self.analyze(info.super_type, outer, type_vars, info.line)
        for self_type in info.self_types:
            self.analyze(self_type, outer, type_vars, info.line)
        for _, mixin, line in info.mixins:
            self.analyze(mixin, namespaces, type_vars, line)
        for member in info.members.values():
            if member.alias_of is not None:
                self.check_method_alias(info, member)
            elif member.kind == nodes.CONSTANT:
                assert member.type is not None
                self.analyze(member.type, namespaces, set(), member.line)
            else:
                # Type parameters of a generic type are not in scope in its singleton methods.
                scope = type_vars if member.kind == nodes.INSTANCE else set()
                for variant in member.variants:
                    self.check_signature(variant, namespaces, scope, member.line)
        for ivar in info.ivars.values():
            scope = set() if ivar.singleton else type_vars
            self.analyze(ivar.type, namespaces, scope, ivar.line)

    def check_signature(
        self, sig: Signature, namespaces: list[str], type_vars: set[str], line: int
    ) -> None:
        line = sig.line if sig.line > 0 else line
        type_vars = type_vars | {p.name for p in sig.type_params}
        self.check_type_params(sig.type_params, namespaces, type_vars, line)
        analyzer = TypeReferenceAnalyzer(self, namespaces, type_vars, line)
        analyzer.traverse_args(sig.args)
        if sig.block is not None:
            analyzer.traverse_block(sig.block)
        sig.ret_type.accept(analyzer)

    def check_type_params(
        self, params: list[TypeParam], namespaces: list[str], type_vars: set[str], line: int
    ) -> None:
        for p in params:
            if p.upper_bound is not None:
                self.analyze(p.upper_bound, namespaces, type_vars, line)
            if p.default is not None:
                self.analyze(p.default, namespaces, type_vars, line)

    def check_type_alias(self, alias: TypeAliasInfo) -> None:
        namespaces = enclosing_namespaces(alias.namespace)
        type_vars = {p.name for p in alias.type_params}
        self.check_type_params(alias.type_params, namespaces, type_vars, alias.line)
        self.analyze(alias.target, namespaces, type_vars, alias.line)

    def check_method_alias(self, info: TypeInfo, member: Member) -> None:
        """Check that the target of 'alias new old' is a method of the type.

        The target may be inherited. If an ancestor is declared outside the
        catalogue its methods are unknown, and the check is skipped.
        """
        assert member.alias_of is not None
        if self.may_have_method(info, member.alias_of, member.kind, set()):
            return
        self.fail(
            message_registry.ALIAS_TARGET_NOT_DEFINED.format(member.alias_of, info.fullname),
            member.line,
        )

    def may_have_method(self, info: TypeInfo, name: str, kind: str, seen: set[str]) -> bool:
        if info.fullname in seen:
            return False
        seen.add(info.fullname)
        if info.get_member(name, kind) is not None:
            return True
        ancestors: list[UnboundType] = []
        if info.kind == nodes.CLASS:
            ancestors.append(info.super_type or UnboundType("Object", absolute=True))
        mixin_kind = nodes.INCLUDE if kind == nodes.INSTANCE else nodes.EXTEND
        ancestors.extend(t for k, t, _ in info.mixins if k in (mixin_kind, nodes.PREPEND))
        if kind == nodes.INSTANCE:
            ancestors.extend(info.self_types)
        namespaces = enclosing_namespaces(info.fullname)
        for ref in ancestors:
            binding = self.lookup_type(ref.name, ref.absolute, namespaces)
            if binding is None or binding.info is None:
                # Declared elsewhere (or unresolved); its methods are unknown.
                return True
            if self.may_have_method(binding.info, name, kind, seen):
                return True
        return False

    def analyze(self, typ: Type, namespaces: list[str], type_vars: set[str], line: int) -> None:
        typ.accept(TypeReferenceAnalyzer(self, namespaces, type_vars, line))

    # Reporting

    def fail(self, msg: ErrorMessage, line: int) -> None:
        if (line, msg.value) in self.reported:
            return
        self.reported.add((line, msg.value))
        self.errors.report(line, None, msg.value, code=msg.code)

    def note(self, msg: ErrorMessage, line: int) -> None:
        if not self.options.warn_unverified_arity or (line, msg.value) in self.reported:
            return
        self.reported.add((line, msg.value))
        self.errors.report(line, None, msg.value, code=msg.code, severity=SEVERITY_NOTE)


def format_arity(arity: tuple[int, int]) -> str:
    """Format an expected number of type arguments, e.g. '1 to 2 type arguments'."""
    low, high = arity
    if high == 0:
        return "no type arguments"
    elif low == high:
        return f"{high} type argument{plural_s(high)}"
    return f"{low} to {high} type arguments"


class TypeReferenceAnalyzer(TypeTraverserVisitor):
    """Resolve the names of one type expression and check their type arguments."""

    def __init__(
        self,
        checker: ConsistencyChecker,
        namespaces: list[str],
        type_vars: set[str],
        line: int,
    ) -> None:
        self.checker = checker
        self.namespaces = namespaces
        self.type_vars = type_vars
        self.line = line

    def visit_unbound_type(self, t: UnboundType, /) -> None:
        line = t.line if t.line > 0 else self.line
        written = "::" + t.name if t.absolute else t.name
        if not t.absolute and t.name in self.type_vars:
            if t.args:
                self.checker.fail(
                    message_registry.WRONG_TYPE_ARG_COUNT.format(
                        written, "no type arguments", len(t.args)
                    ),
                    line,
                )
        else:
            binding = self.checker.lookup_type(t.name, t.absolute, self.namespaces)
            if binding is None:
                self.checker.fail(message_registry.NAME_NOT_DEFINED.format(written), line)
                if t.args:
                    self.checker.note(
                        message_registry.UNVERIFIED_TYPE_ARG_COUNT.format(written), line
                    )
            elif t.args:
                self.check_arity(t, written, binding, line)
        super().visit_unbound_type(t)

    def check_arity(self, t: UnboundType, written: str, binding: Binding, line: int) -> None:
        if binding.arity is None:
            self.checker.note(message_registry.UNVERIFIED_TYPE_ARG_COUNT.format(written), line)
            return
        low, high = binding.arity
        if not low <= len(t.args) <= high:
            self.checker.fail(
                message_registry.WRONG_TYPE_ARG_COUNT.format(
                    written, format_arity(binding.arity), len(t.args)
                ),
                line,
            )

    def visit_singleton_type(self, t: SingletonType, /) -> None:
        item = t.item
        line = item.line if item.line > 0 else self.line
        if self.checker.lookup_type(item.name, item.absolute, self.namespaces) is None:
            written = "::" + item.name if item.absolute else item.name
            self.checker.fail(message_registry.NAME_NOT_DEFINED.format(written), line)


def check_catalogue(
    catalogue: TypeCatalogue,
    external_types: Mapping[str, int | None],
    errors: Errors,
    options: Options,
) -> list[Finding]:
    """Check a catalogue and freeze it; return the check findings."""
    return ConsistencyChecker(catalogue, external_types, errors, options).check()
