"""Generic parse tree node visitor"""

from __future__ import annotations

from typing import TYPE_CHECKING, Generic, TypeVar

from mypy_extensions import trait

if TYPE_CHECKING:
    # break import cycle only needed for type checking
    import declcheck.nodes

T = TypeVar("T")


@trait
class NodeVisitor(Generic[T]):
    """Empty base class for parse tree node visitors.

    The T type argument specifies the return type of the visit
    methods. As all methods defined here return None by default,
    subclasses do not always need to override all the methods.
    """

    def visit_catalogue_file(self, o: declcheck.nodes.CatalogueFile, /) -> T:
        return None  # type: ignore[return-value]

    def visit_type_decl(self, o: declcheck.nodes.TypeDecl, /) -> T:
        return None  # type: ignore[return-value]

    def visit_member_decl(self, o: declcheck.nodes.MemberDecl, /) -> T:
        return None  # type: ignore[return-value]

    def visit_constant_decl(self, o: declcheck.nodes.ConstantDecl, /) -> T:
        return None  # type: ignore[return-value]

    def visit_mixin_decl(self, o: declcheck.nodes.MixinDecl, /) -> T:
        return None  # type: ignore[return-value]

    def visit_alias_decl(self, o: declcheck.nodes.AliasDecl, /) -> T:
        return None  # type: ignore[return-value]

    def visit_type_alias_decl(self, o: declcheck.nodes.TypeAliasDecl, /) -> T:
        return None  # type: ignore[return-value]

    def visit_ivar_decl(self, o: declcheck.nodes.IvarDecl, /) -> T:
        return None  # type: ignore[return-value]
