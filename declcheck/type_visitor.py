"""Type visitor classes.

This module defines the type visitors that are intended to be
subclassed by other code. They are kept apart from declcheck.types so
that the type classes can refer to them without an import cycle.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Generic, TypeVar

from mypy_extensions import trait

if TYPE_CHECKING:
    from declcheck.nodes import Argument, Block
    from declcheck.types import (
        AnyType,
        BaseType,
        LiteralType,
        ProcType,
        RecordType,
        SingletonType,
        TupleType,
        UnboundType,
        UnionType,
    )

T = TypeVar("T")


@trait
class TypeVisitor(Generic[T]):
    """Visitor class for types (Type subclasses).

    The parameter T is the return type of the visit methods.
    """

    @abstractmethod
    def visit_unbound_type(self, t: UnboundType, /) -> T:
        pass

    @abstractmethod
    def visit_any(self, t: AnyType, /) -> T:
        pass

    @abstractmethod
    def visit_base_type(self, t: BaseType, /) -> T:
        pass

    @abstractmethod
    def visit_literal_type(self, t: LiteralType, /) -> T:
        pass

    @abstractmethod
    def visit_union_type(self, t: UnionType, /) -> T:
        pass

    @abstractmethod
    def visit_tuple_type(self, t: TupleType, /) -> T:
        pass

    @abstractmethod
    def visit_record_type(self, t: RecordType, /) -> T:
        pass

    @abstractmethod
    def visit_proc_type(self, t: ProcType, /) -> T:
        pass

    @abstractmethod
    def visit_singleton_type(self, t: SingletonType, /) -> T:
        pass


@trait
class TypeTraverserVisitor(TypeVisitor[None]):
    """Visitor that traverses all components of a type"""

    # Atomic types

    def visit_any(self, t: AnyType, /) -> None:
        pass

    def visit_base_type(self, t: BaseType, /) -> None:
        pass

    def visit_literal_type(self, t: LiteralType, /) -> None:
        pass

    # Composite types

    def visit_unbound_type(self, t: UnboundType, /) -> None:
        for arg in t.args:
            arg.accept(self)

    def visit_union_type(self, t: UnionType, /) -> None:
        for item in t.items:
            item.accept(self)

    def visit_tuple_type(self, t: TupleType, /) -> None:
        for item in t.items:
            item.accept(self)

    def visit_record_type(self, t: RecordType, /) -> None:
        for item in t.items.values():
            item.accept(self)

    def visit_proc_type(self, t: ProcType, /) -> None:
        self.traverse_args(t.args)
        if t.block is not None:
            self.traverse_block(t.block)
        t.ret_type.accept(self)

    def visit_singleton_type(self, t: SingletonType, /) -> None:
        t.item.accept(self)

    # Helpers

    def traverse_args(self, args: tuple[Argument, ...] | list[Argument]) -> None:
        for arg in args:
            arg.type.accept(self)

    def traverse_block(self, block: Block) -> None:
        self.traverse_args(block.args)
        block.ret_type.accept(self)
