"""Test cases for the catalogue model and the catalogue builder."""

from __future__ import annotations

import unittest

from declcheck import nodes
from declcheck.catalogue import (
    FrozenCatalogueError,
    TypeCatalogue,
    build_catalogue,
    enclosing_namespaces,
    join_name,
)
from declcheck.checker import check_catalogue
from declcheck.defaults import BUILTIN_TYPES
from declcheck.errors import Errors
from declcheck.nodes import Member
from declcheck.options import Options
from declcheck.parse import parse
from declcheck.printer import format_catalogue
from declcheck.types import UnboundType


def build(source: str) -> tuple[TypeCatalogue, Errors]:
    errors = Errors(Options())
    tree = parse(source, "main.rbs", errors)
    return build_catalogue(tree, errors), errors


class NameSuite(unittest.TestCase):
    def test_join_name(self) -> None:
        assert join_name("", "IO") == "IO"
        assert join_name("IO", "Buffer") == "IO::Buffer"
        assert join_name("IO", "::File") == "File"
        assert join_name("A::B", "C::D") == "A::B::C::D"

    def test_enclosing_namespaces(self) -> None:
        assert enclosing_namespaces("") == [""]
        assert enclosing_namespaces("IO") == ["IO", ""]
        assert enclosing_namespaces("A::B") == ["A::B", "A", ""]


class CatalogueBuilderSuite(unittest.TestCase):
    def test_empty_catalogue(self) -> None:
        cat, errors = build("")
        assert cat.types == {}
        assert list(cat.members()) == []
        assert not errors.is_errors()

    def test_member_structure(self) -> None:
        cat, errors = build("class Foo\n  def foo: (Integer a) -> String\nend\n")
        assert not errors.is_errors()
        info = cat.lookup("Foo")
        assert info is not None
        assert info.kind == nodes.CLASS
        member = info.get_member("foo", nodes.INSTANCE)
        assert member is not None
        assert member.fullname == "Foo#foo"
        assert len(member.variants) == 1
        assert [arg.name for arg in member.args] == ["a"]
        assert member.args[0].kind == nodes.ARG_POS
        assert member.args[0].type == UnboundType("Integer")
        assert member.ret_type == UnboundType("String")

    def test_stacked_overloads(self) -> None:
        cat, errors = build(
            "class IO\n"
            "  def read: () -> String\n"
            "  def read: (Integer length) -> String?\n"
            "end\n"
        )
        assert not errors.is_errors()
        info = cat.lookup("IO")
        assert info is not None
        assert list(info.members) == [("read", nodes.INSTANCE)]
        read = info.members[("read", nodes.INSTANCE)]
        assert [len(v.args) for v in read.variants] == [0, 1]
        assert read.lines == [2, 3]

    def test_duplicate_member_is_conflict(self) -> None:
        cat, errors = build(
            "class IO\n"
            "  def read: () -> String\n"
            "  def write: (String s) -> Integer\n"
            "  def read: (Integer n) -> String\n"
            "end\n"
        )
        findings = errors.findings()
        assert len(findings) == 1
        finding = findings[0]
        assert finding.kind == "ConflictingDeclaration"
        assert finding.line == 4
        assert finding.lines == [2, 4]
        assert finding.message == (
            'Conflicting declaration of instance method "read" in "IO" '
            "(previously declared on line 2)"
        )
        read = cat.types["IO"].members[("read", nodes.INSTANCE)]
        assert len(read.variants) == 1

    def test_explicit_overload(self) -> None:
        cat, errors = build(
            "class IO\n"
            "  def read: () -> String\n"
            "  def write: (String s) -> Integer\n"
            "  overload def read: (Integer n) -> String\n"
            "  def read: (Integer n, String buf) -> String | ...\n"
            "end\n"
        )
        assert not errors.is_errors()
        read = cat.types["IO"].members[("read", nodes.INSTANCE)]
        assert len(read.variants) == 3
        assert read.lines == [2, 4, 5]

    def test_instance_and_singleton_do_not_conflict(self) -> None:
        cat, errors = build(
            "class IO\n"
            "  def self.open: (String path) -> IO\n"
            "  def open: () -> void\n"
            "end\n"
        )
        assert not errors.is_errors()
        info = cat.types["IO"]
        assert info.members[("open", nodes.SINGLETON)].fullname == "IO.open"
        assert info.members[("open", nodes.INSTANCE)].fullname == "IO#open"

    def test_module_function_declares_both_kinds(self) -> None:
        cat, errors = build("module Kernel\n  def self?.puts: (*untyped) -> nil\nend\n")
        assert not errors.is_errors()
        info = cat.types["Kernel"]
        assert sorted(info.members) == [
            ("puts", nodes.INSTANCE),
            ("puts", nodes.SINGLETON),
        ]

    def test_reopen_merges_members(self) -> None:
        cat, errors = build(
            "class Foo\n"
            "  def a: () -> void\n"
            "end\n"
            "class Foo\n"
            "  def b: () -> void\n"
            "end\n"
        )
        assert not errors.is_errors()
        info = cat.types["Foo"]
        assert [m.name for m in info.methods()] == ["a", "b"]
        assert info.lines == [1, 4]

    def test_reopen_with_different_kind(self) -> None:
        _, errors = build("class Foo\nend\nmodule Foo\nend\n")
        assert [f.message for f in errors.findings()] == [
            '"Foo" is declared as a module but was previously declared as a class on line 1'
        ]

    def test_reopen_with_different_superclass(self) -> None:
        _, errors = build("class Foo < Integer\nend\nclass Foo < String\nend\nclass Foo\nend\n")
        assert [(f.line, f.message) for f in errors.findings()] == [
            (3, 'Superclass of "Foo" conflicts with declaration on line 1')
        ]

    def test_qualified_constant_declared_twice(self) -> None:
        cat, errors = build("IO::SEEK_SET: Integer\nIO::SEEK_SET: String\n")
        findings = errors.findings()
        assert len(findings) == 1
        assert findings[0].kind == "ConflictingDeclaration"
        assert findings[0].lines == [1, 2]
        assert cat.lookup("IO") is None
        assert cat.types["IO"].implicit
        constant = cat.types["IO"].members[("SEEK_SET", nodes.CONSTANT)]
        assert constant.fullname == "IO::SEEK_SET"
        assert constant.type == UnboundType("Integer")

    def test_implicit_owner_declared_later(self) -> None:
        cat, errors = build("IO::SEEK_SET: Integer\nclass IO\n  SEEK_END: Integer\nend\n")
        assert not errors.is_errors()
        info = cat.lookup("IO")
        assert info is not None
        assert info.kind == nodes.CLASS
        assert [c.name for c in info.constants()] == ["SEEK_SET", "SEEK_END"]

    def test_nested_types(self) -> None:
        cat, errors = build(
            "class A\n"
            "  class B\n"
            "    C: Integer\n"
            "  end\n"
            "end\n"
            "class A::D\n"
            "end\n"
        )
        assert not errors.is_errors()
        assert list(cat.types) == ["A", "A::B", "A::D"]
        b = cat.types["A::B"]
        assert b.name == "B"
        assert b.namespace == "A"
        assert list(b.constants())[0].fullname == "A::B::C"

    def test_root_constants(self) -> None:
        cat, errors = build("VERSION: String\n")
        assert not errors.is_errors()
        assert [m.fullname for m in cat.root.members.values()] == ["VERSION"]

    def test_type_params_and_arity(self) -> None:
        cat, _ = build("class Foo[A, B = Integer]\nend\nclass Bar\nend\n")
        assert cat.types["Foo"].arity == (1, 2)
        assert cat.types["Bar"].arity == (0, 0)

    def test_instance_variables(self) -> None:
        cat, errors = build(
            "class Foo\n  @x: Integer\n  self.@y: String\n  @x: String\nend\n"
        )
        assert list(cat.types["Foo"].ivars) == ["@x", "self.@y"]
        assert [(f.line, f.related_lines) for f in errors.findings()] == [(4, [2])]

    def test_type_aliases(self) -> None:
        cat, errors = build("type buffer = String?\nclass IO\n  type mode = :r | :w\nend\n")
        assert not errors.is_errors()
        assert list(cat.aliases) == ["buffer", "IO::mode"]
        assert cat.aliases["IO::mode"].namespace == "IO"

    def test_method_alias(self) -> None:
        cat, _ = build("class Foo\n  def each: () -> void\n  alias each_line each\nend\n")
        member = cat.types["Foo"].members[("each_line", nodes.INSTANCE)]
        assert member.alias_of == "each"
        assert member.variants == []

    def test_attributes(self) -> None:
        cat, errors = build("class Foo\n  attr_accessor lineno: Integer\nend\n")
        assert not errors.is_errors()
        info = cat.types["Foo"]
        assert list(info.members) == [
            ("lineno", nodes.INSTANCE),
            ("lineno=", nodes.INSTANCE),
        ]
        writer = info.members[("lineno=", nodes.INSTANCE)]
        assert writer.args[0].name == "lineno"
        assert writer.ret_type == UnboundType("Integer")

    def test_freeze(self) -> None:
        cat, errors = build("class Foo\nend\n")
        assert not cat.frozen
        check_catalogue(cat, BUILTIN_TYPES, errors, Options())
        assert cat.frozen
        info = cat.types["Foo"]
        with self.assertRaises(FrozenCatalogueError):
            info.add_member(Member("foo", nodes.INSTANCE))
        with self.assertRaises(FrozenCatalogueError):
            cat.get_or_create("Bar", nodes.CLASS, 1, implicit=False)
        # Lookups still work on a frozen catalogue.
        assert cat.get_or_create("Foo", nodes.CLASS, 1, implicit=False) is info


class PrinterSuite(unittest.TestCase):
    def test_reparse_gives_equal_members(self) -> None:
        source = (
            "module Kernel\n"
            "  def self?.puts: (*untyped) -> nil\n"
            "end\n"
            "class IO[T] < Object\n"
            "  include Enumerable[String]\n"
            "  SEEK_SET: Integer\n"
            "  @lineno: Integer\n"
            "  def read: () -> String\n"
            "          | (Integer length, ?String outbuf) -> String?\n"
            "  def each: [U] (?sep: String) { (String line) -> U } -> self\n"
            "  def mode: () -> (:r | :w | \"r+\")\n"
            "  def self.open: (path: String, **untyped opts) ?{ (IO) -> void } -> IO\n"
            "  alias each_line each\n"
            "end\n"
        )
        cat, errors = build(source)
        assert not errors.is_errors()
        cat2, errors2 = build(format_catalogue(cat))
        assert not errors2.is_errors()
        assert list(cat2.types) == list(cat.types)
        for name, info in cat.types.items():
            info2 = cat2.types[name]
            assert list(info2.members.values()) == list(info.members.values()), name
            assert info2.type_params == info.type_params
            assert info2.super_type == info.super_type
        assert format_catalogue(cat2) == format_catalogue(cat)
