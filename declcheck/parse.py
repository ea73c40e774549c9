"""Parser for declaration catalogues.

A catalogue is processed one logical line at a time. A logical line spans
several physical lines while brackets are open. Each logical line is one
declaration: a block header, 'end', a member, a constant and so on.

A line that matches no declaration form is reported as a malformed
signature and skipped. Only input whose block structure cannot be read
(an unterminated block or bracket, or an 'end' with no open block) stops
the parse, by raising UnrecoverableInput.
"""

from __future__ import annotations

import re
from typing import Final, Union

from typing_extensions import TypeAlias as _TypeAlias

from declcheck import message_registry, nodes
from declcheck.errors import Errors, UnrecoverableInput
from declcheck.lex import Colon, lex, open_brackets, strip_comment
from declcheck.message_registry import ErrorMessage
from declcheck.nodes import (
    AliasDecl,
    Argument,
    CatalogueFile,
    ConstantDecl,
    IvarDecl,
    MemberDecl,
    MixinDecl,
    Node,
    Signature,
    TypeAliasDecl,
    TypeDecl,
)
from declcheck.options import Options
from declcheck.parsetype import (
    MalformedSignature,
    TypeParseError,
    TypeParser,
    parse_signature,
    parse_str_as_type,
)

# Method names: operators, backquoted names and identifiers (with ? ! = suffixes)
METHOD_NAME: Final = (
    r"\[\]=?|<=>|===?|=~|!~|!=|!|<<|>>|<=|>=|<|>|\+@|-@|\+|-|\*\*|\*|/|%|&|\||\^|~"
    r"|`[^`]+`|[A-Za-z_][A-Za-z0-9_]*[?!=]?"
)
IDENTIFIER: Final = r"[A-Za-z_][A-Za-z0-9_]*"

ANNOTATION_RE: Final = re.compile(r"%a(\{[^}]*\}|\[[^\]]*\]|\([^)]*\)|<[^>]*>|\|[^|]*\|)\s*")
VISIBILITY_RE: Final = re.compile(r"(public|private)(\s+|$)")
HEADER_RE: Final = re.compile(r"(?P<kind>class|module|interface)\s+(?P<rest>.+)", re.S)
DEF_RE: Final = re.compile(
    r"(?P<overload>overload\s+)?def\s+(?P<self>self\??\.)?"
    rf"(?P<name>{METHOD_NAME})\s*:(?P<rest>.*)",
    re.S,
)
CONTINUATION_RE: Final = re.compile(r"\|(?P<rest>.*)", re.S)
CONSTANT_RE: Final = re.compile(
    r"(?P<name>(::)?[A-Z][A-Za-z0-9_]*(::[A-Z][A-Za-z0-9_]*)*)\s*:(?P<rest>.+)", re.S
)
MIXIN_RE: Final = re.compile(r"(?P<kind>include|extend|prepend)\s+(?P<rest>.+)", re.S)
ATTR_RE: Final = re.compile(
    rf"attr_(?P<kind>reader|writer|accessor)\s+(?P<self>self\.)?(?P<name>{IDENTIFIER})"
    r"\s*(\((?P<ivar>@?[A-Za-z0-9_]*)\))?\s*:(?P<rest>.+)",
    re.S,
)
ALIAS_RE: Final = re.compile(
    rf"alias\s+(?P<self1>self\.)?(?P<new>{METHOD_NAME})"
    rf"\s+(?P<self2>self\.)?(?P<old>{METHOD_NAME})"
)
TYPE_ALIAS_RE: Final = re.compile(r"type\s+(?P<rest>.+)", re.S)
IVAR_RE: Final = re.compile(rf"(?P<self>self\.)?(?P<name>@{IDENTIFIER})\s*:(?P<rest>.+)", re.S)


class Continuation:
    """'| signature' line that adds overload variants to the preceding method."""

    def __init__(self, variants: list[Signature], overload: bool, line: int) -> None:
        self.variants = variants
        self.overload = overload
        self.line = line


class Attributes:
    """attr_reader/attr_writer/attr_accessor line, as the methods it declares."""

    def __init__(self, members: list[MemberDecl], line: int) -> None:
        self.members = members
        self.line = line


class End:
    """'end' line that closes the innermost block."""

    def __init__(self, line: int) -> None:
        self.line = line


Declaration: _TypeAlias = Union[Node, Continuation, Attributes, End]


def parse(
    source: str, fnam: str, errors: Errors | None = None, options: Options | None = None
) -> CatalogueFile:
    """Parse a catalogue file.

    Malformed declarations are reported to errors; raise UnrecoverableInput
    if the block structure cannot be read.
    """
    if options is None:
        options = Options()
    if errors is None:
        errors = Errors(options)
    errors.set_file(fnam)
    return Parser(fnam, errors).parse(source)


def logical_lines(source: str, fnam: str) -> list[tuple[str, int]]:
    """Split source into logical lines with their first line numbers.

    Comments and blank lines are dropped. Raise UnrecoverableInput if a
    bracket is still open at the end of the file.
    """
    result = []
    pending: list[str] = []
    start = 0
    for i, raw in enumerate(source.splitlines(), 1):
        line = strip_comment(raw)
        if not pending:
            if not line.strip():
                continue
            start = i
        pending.append(line)
        text = "\n".join(pending)
        if open_brackets(text):
            continue
        result.append((text.strip(), start))
        pending = []
    if pending:
        bracket = open_brackets("\n".join(pending))[-1]
        raise UnrecoverableInput(
            fnam,
            start + bracket.line - 1,
            message_registry.UNTERMINATED_BRACKET.format(bracket.string).value,
        )
    return result


class Parser:
    def __init__(self, fnam: str, errors: Errors) -> None:
        self.fnam = fnam
        self.errors = errors
        # Open blocks, innermost last
        self.blocks: list[TypeDecl] = []

    def parse(self, source: str) -> CatalogueFile:
        tree = CatalogueFile(self.fnam, [])
        for text, line in logical_lines(source, self.fnam):
            try:
                decl = parse_declaration(text, line)
            except MalformedSignature as err:
                self.fail_malformed(text, err.reason, line)
                m = HEADER_RE.match(text)
                if m is not None:
                    # Keep track of the block so that its 'end' matches; the
                    # block itself is left out of the tree.
                    name = m.group("rest").split()[0]
                    self.blocks.append(TypeDecl(m.group("kind"), name, line=line))
                continue
            if decl is not None:
                self.add_declaration(tree, decl, text)
        if self.blocks:
            block = self.blocks[-1]
            raise UnrecoverableInput(
                self.fnam,
                block.line,
                message_registry.UNTERMINATED_BLOCK.format(block.kind, block.name).value,
            )
        return tree

    def add_declaration(self, tree: CatalogueFile, decl: Declaration, text: str) -> None:
        defs = self.blocks[-1].defs if self.blocks else tree.defs
        prev = defs[-1] if defs else None
        if isinstance(decl, End):
            if not self.blocks:
                raise UnrecoverableInput(
                    self.fnam, decl.line, message_registry.UNEXPECTED_END.value
                )
            self.blocks.pop().end_line = decl.line
        elif isinstance(decl, TypeDecl):
            defs.append(decl)
            self.blocks.append(decl)
        elif isinstance(decl, Continuation):
            if not isinstance(prev, MemberDecl):
                msg = message_registry.CONTINUATION_WITHOUT_METHOD
                self.fail_malformed(text, msg.value, decl.line)
                return
            prev.variants.extend(decl.variants)
            prev.lines.extend(v.line for v in decl.variants)
            prev.overload = prev.overload or decl.overload
        elif not self.blocks and not isinstance(decl, (ConstantDecl, TypeAliasDecl)):
            msg = message_registry.DECLARATION_OUTSIDE_TYPE.format(describe(decl))
            self.fail_malformed(text, msg.value, decl.line)
        elif isinstance(decl, Attributes):
            defs.extend(decl.members)
        elif isinstance(decl, MemberDecl) and is_adjacent_overload(prev, decl):
            assert isinstance(prev, MemberDecl)
            prev.variants.extend(decl.variants)
            prev.lines.extend(decl.lines)
        else:
            assert isinstance(decl, Node)
            defs.append(decl)

    def fail(self, msg: ErrorMessage, line: int) -> None:
        self.errors.report(line, None, msg.value, code=msg.code)

    def fail_malformed(self, text: str, reason: str, line: int) -> None:
        self.fail(message_registry.MALFORMED_DECLARATION.format(snippet(text), reason), line)


def is_adjacent_overload(prev: Node | None, decl: MemberDecl) -> bool:
    """Does decl directly follow a declaration of the same method?

    Stacked 'def' lines for the same name and kind form one member with
    several overload variants.
    """
    return (
        isinstance(prev, MemberDecl)
        and not decl.overload
        and prev.name == decl.name
        and prev.kind == decl.kind
        and prev.module_function == decl.module_function
    )


def describe(decl: Declaration) -> str:
    if isinstance(decl, (MemberDecl, Attributes)):
        return "Method"
    elif isinstance(decl, MixinDecl):
        return "Mixin"
    elif isinstance(decl, AliasDecl):
        return "Alias"
    elif isinstance(decl, IvarDecl):
        return "Instance variable"
    return "Declaration"


def snippet(text: str) -> str:
    """Return the first line of a declaration, shortened for messages."""
    lines = text.strip().splitlines()
    first = lines[0].strip() if lines else ""
    if len(first) > 60:
        return first[:57].rstrip() + "..."
    elif len(lines) > 1:
        return first + " ..."
    return first


def parse_declaration(text: str, line: int = 1) -> Declaration | None:
    """Parse one logical declaration line.

    Return None for lines that declare nothing (visibility markers). Raise
    MalformedSignature if the line matches no declaration form.
    """
    if "\n" not in text:
        text = strip_comment(text)
    text = text.strip()
    while True:
        m = ANNOTATION_RE.match(text)
        if m is None:
            break
        text = text[m.end() :]
    m = VISIBILITY_RE.match(text)
    if m is not None:
        text = text[m.end() :]
        if not text:
            return None
    try:
        return parse_declaration_text(text, line)
    except TypeParseError as e:
        raise MalformedSignature(line, text, e.reason()) from None


def parse_declaration_text(text: str, line: int) -> Declaration:
    if text == "end":
        return End(line)
    m = HEADER_RE.fullmatch(text)
    if m is not None:
        return parse_type_header(m.group("kind"), m.group("rest"), line)
    m = DEF_RE.fullmatch(text)
    if m is not None:
        variants, overload = parse_signature(m.group("rest"), line)
        prefix = m.group("self") or ""
        return MemberDecl(
            m.group("name"),
            nodes.SINGLETON if prefix == "self." else nodes.INSTANCE,
            variants,
            line,
            overload=overload or bool(m.group("overload")),
            module_function=prefix == "self?.",
        )
    m = CONTINUATION_RE.fullmatch(text)
    if m is not None:
        variants, overload = parse_signature(m.group("rest"), line)
        return Continuation(variants, overload, line)
    m = ATTR_RE.fullmatch(text)
    if m is not None:
        return parse_attribute(m, line)
    m = ALIAS_RE.fullmatch(text)
    if m is not None:
        if bool(m.group("self1")) != bool(m.group("self2")):
            raise MalformedSignature(line, text, "Alias must relate two methods of the same kind")
        kind = nodes.SINGLETON if m.group("self1") else nodes.INSTANCE
        return AliasDecl(m.group("new"), m.group("old"), kind, line)
    m = MIXIN_RE.fullmatch(text)
    if m is not None:
        p = TypeParser(lex(m.group("rest"), line))
        typ = p.parse_named_type()
        p.expect_eof()
        return MixinDecl(m.group("kind"), typ, line)
    m = TYPE_ALIAS_RE.fullmatch(text)
    if m is not None:
        return parse_type_alias(m.group("rest"), line)
    m = IVAR_RE.fullmatch(text)
    if m is not None:
        typ = parse_str_as_type(m.group("rest"), line)
        return IvarDecl(m.group("name"), typ, singleton=bool(m.group("self")), line=line)
    m = CONSTANT_RE.fullmatch(text)
    if m is not None:
        return ConstantDecl(m.group("name"), parse_str_as_type(m.group("rest"), line), line)
    raise MalformedSignature(line, text, message_registry.UNRECOGNIZED_DECLARATION.value)


def parse_type_header(kind: str, rest: str, line: int) -> TypeDecl:
    """Parse the rest of 'class Name[T] < Super', 'module Name : Self' or 'interface _Name'."""
    p = TypeParser(lex(rest, line))
    name, absolute, first = p.parse_type_name()
    base = name.split("::")[-1]
    if kind == nodes.INTERFACE and not base.startswith("_"):
        raise TypeParseError(first, 0, f'Interface name "{name}" must start with "_"')
    if kind != nodes.INTERFACE and not base[0].isupper():
        raise TypeParseError(first, 0, f'{kind.capitalize()} name "{name}" must be capitalized')
    type_params = []
    if p.current_token_str() == "[":
        type_params = p.parse_type_params()
    decl = TypeDecl(kind, "::" + name if absolute else name, type_params, line=line)
    if kind == nodes.CLASS and p.current_token_str() == "<":
        p.skip()
        decl.super_type = p.parse_named_type()
    elif kind == nodes.MODULE and isinstance(p.current_token(), Colon):
        p.skip()
        decl.self_types.append(p.parse_named_type())
        while p.current_token_str() == ",":
            p.skip()
            decl.self_types.append(p.parse_named_type())
    p.expect_eof()
    return decl


def parse_type_alias(rest: str, line: int) -> TypeAliasDecl:
    """Parse the rest of 'type name[T] = Type'."""
    p = TypeParser(lex(rest, line))
    name, absolute, first = p.parse_type_name()
    base = name.split("::")[-1]
    if not (base[0].islower() or base[0] == "_"):
        raise TypeParseError(
            first, 0, f'Type alias name "{name}" must start with a lowercase letter'
        )
    type_params = []
    if p.current_token_str() == "[":
        type_params = p.parse_type_params()
    p.expect("=")
    target = p.parse_type()
    p.expect_eof()
    return TypeAliasDecl("::" + name if absolute else name, type_params, target, line)


def parse_attribute(m: re.Match[str], line: int) -> Attributes:
    """Translate an attribute declaration into reader and writer methods.

    'attr_accessor name: T' declares 'name: () -> T' and 'name=: (T name) -> T'.
    """
    typ = parse_str_as_type(m.group("rest"), line)
    kind = nodes.SINGLETON if m.group("self") else nodes.INSTANCE
    name = m.group("name")
    members = []
    if m.group("kind") in ("reader", "accessor"):
        members.append(MemberDecl(name, kind, [Signature([], typ, line=line)], line))
    if m.group("kind") in ("writer", "accessor"):
        arg = Argument(name, typ, nodes.ARG_POS, line)
        members.append(MemberDecl(name + "=", kind, [Signature([arg], typ, line=line)], line))
    return Attributes(members, line)
