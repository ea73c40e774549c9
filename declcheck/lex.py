"""Lexical analyzer for declaration catalogues.

Translate the text of one logical declaration line into a list of tokens.
A logical line may span several physical lines while brackets are open.

This module can be run as a script (lex.py FILE).
"""

from __future__ import annotations

import re
from typing import Callable, Final

from declcheck.util import short_type


class Token:
    """Base class for all tokens."""

    def __init__(self, string: str, pre: str = "") -> None:
        """Initialize a token.

        Arguments:
          string: Token string in declaration text
          pre:    Space, comments etc. before token
        """

        self.string = string
        self.pre = pre
        self.line = 0
        self.column = 0

    def __repr__(self) -> str:
        """The representation is of form 'Keyword(  void)'."""
        t = short_type(self)
        return t + "(" + self.fix(self.pre) + self.fix(self.string) + ")"

    def rep(self) -> str:
        return self.pre + self.string

    def fix(self, s: str) -> str:
        """Replace common non-printable chars with escape sequences.

        Do not use repr() since we don't want do duplicate backslashes.
        """
        return s.replace("\n", "\\n").replace("\t", "\\t").replace("\r", "\\r")


# Token classes


class Eof(Token):
    """End of declaration"""


class Keyword(Token):
    """Reserved word that denotes a base type or a literal.

    Examples: void, untyped, self, true.
    """


class Name(Token):
    """An alphanumeric identifier (type name, parameter name or type variable)"""


class QuotedName(Token):
    """A backquoted parameter name, e.g. `type`"""


class IntLit(Token):
    """Integer literal"""


class StrLit(Token):
    """String literal"""

    def parsed(self) -> str:
        """Return the parsed contents of the literal."""
        return _parse_str_literal(self.string)


class SymbolLit(Token):
    """Symbol literal, e.g. :read or :"r+" """

    def parsed(self) -> str:
        """Return the symbol name without the leading colon."""
        s = self.string[1:]
        if s.startswith(('"', "'")):
            return _parse_str_literal(s)
        return s


class Punct(Token):
    """Punctuator (e.g. comma, '(' or '->')"""


class Colon(Token):
    """Colon that follows a keyword name, as in 'name: Type'"""


class LexError(Token):
    """Lexer error token"""

    def __init__(self, string: str, type: int, message: str | None = None) -> None:
        """Initialize token.

        The type argument is one of the error types below.
        """
        super().__init__(string)
        self.type = type
        self.message = message

    def __str__(self) -> str:
        if self.message:
            return f"LexError({self.message})"
        else:
            return super().__str__()


# Lexer error types
UNTERMINATED_STRING_LITERAL: Final = 1
INVALID_CHARACTER: Final = 2
UNTERMINATED_QUOTED_NAME: Final = 3

# Reserved words of the type language
keywords: Final = frozenset(
    [
        "void",
        "untyped",
        "nil",
        "bool",
        "boolish",
        "top",
        "bot",
        "self",
        "instance",
        "class",
        "singleton",
        "true",
        "false",
    ]
)

# List of regular expressions that match punctuator tokens; the longest match wins
punctuators: Final = [
    re.compile(r"::|->|\*\*|\.\.\."),
    re.compile(r"[()\[\]{},|&?*^<=.]"),
]

# Map single-character string escape sequences to corresponding characters.
escape_map: Final = {
    "a": "\x07",
    "b": "\x08",
    "f": "\x0c",
    "n": "\x0a",
    "r": "\x0d",
    "t": "\x09",
    "v": "\x0b",
    "s": " ",
    "e": "\x1b",
    '"': '"',
    "'": "'",
    "\\": "\\",
}

# Matches an escape sequence in a string, e.g. \n or \x4F.
escape_re: Final = re.compile(r"\\([abfnrtvse'\"\\]|x[0-9a-fA-F]{2}|u[0-9a-fA-F]{4})")


def _parse_str_literal(string: str) -> str:
    """Translate escape sequences in str literal to the corresponding chars.

    Single-quoted literals only support \\' and \\\\.
    """
    quote = string[0]
    s = string[1:-1]
    if quote == "'":
        return s.replace("\\'", "'").replace("\\\\", "\\")
    return escape_re.sub(escape_repl, s)


def escape_repl(m: re.Match[str]) -> str:
    """Translate a string escape sequence, e.g. \\t -> the tab character."""
    seq = m.group(1)
    if len(seq) == 1:
        return escape_map[seq]
    return chr(int(seq[1:], 16))


def lex(string: str, first_line: int = 1) -> list[Token]:
    """Analyze string, and return an array of token objects.

    The last token is always Eof.
    """
    lexer = Lexer()
    lexer.lex(string, first_line)
    return lexer.tok


def open_brackets(string: str) -> list[Token]:
    """Return the brackets of string that are still open at its end."""
    lexer = Lexer()
    lexer.lex(string, 1)
    return lexer.open_brackets


def strip_comment(line: str) -> str:
    """Remove a '#' comment from one physical line, respecting string literals."""
    quote = ""
    i = 0
    while i < len(line):
        c = line[i]
        if quote:
            if c == "\\":
                i += 1
            elif c == quote:
                quote = ""
        elif c in "\"'":
            quote = c
        elif c == "#":
            return line[:i].rstrip()
        i += 1
    return line.rstrip()


class Lexer:
    """Lexical analyzer."""

    i = 0  # Current string index (into s)
    s = ""  # The string being analyzed
    line = 0  # Current line number
    line_start = 0  # Index of the first character of the current line
    pre_whitespace = ""  # Whitespace and comments before the next token

    # Generated tokens
    tok: list[Token]

    # Table from character to lexer method. E.g. entry at '0'
    # contains the method lex_number().
    map: dict[str, Callable[[], None]]

    # Open ('s, ['s and {'s without matching closing bracket.
    open_brackets: list[Token]

    def __init__(self) -> None:
        self.map = {}
        self.tok = []
        self.open_brackets = []
        # Fill in the map from valid characters to relevant lexer methods.
        for seq, method in [
            ("ABCDEFGHIJKLMNOPQRSTUVWXYZ", self.lex_name),
            ("abcdefghijklmnopqrstuvwxyz_", self.lex_name),
            ("0123456789", self.lex_number),
            ("-", self.lex_minus),
            (" \t\x0c", self.lex_space),
            ("\r\n", self.lex_newline),
            ('"', self.lex_str),
            ("`", self.lex_quoted_name),
            ("'", self.lex_str),
            (":", self.lex_colon),
            ("#", self.lex_comment),
            ("([{", self.lex_open_bracket),
            (")]}", self.lex_close_bracket),
            (",|&?*^<=.", self.lex_misc),
        ]:
            for c in seq:
                self.map[c] = method

    def lex(self, text: str, first_line: int) -> None:
        """Lexically analyze a string, storing the tokens at the tok list."""
        self.i = 0
        self.line = first_line
        self.line_start = 0
        self.s = text

        # Use some local variables as a simple optimization.
        map = self.map
        default = self.unknown_character

        # Lex the text. Repeatedly call the lexer method for the current char.
        while self.i < len(text):
            # Dispatch to the relevant lexer method. This will consume some
            # characters in the text, add a token to self.tok and increment
            # self.i.
            map.get(text[self.i], default)()

        self.add_token(Eof(""))

    name_exp = re.compile(r"[a-zA-Z_][a-zA-Z0-9_]*")

    def lex_name(self) -> None:
        """Analyse a name or a reserved word."""
        s = self.match(self.name_exp)
        if s in keywords:
            self.add_token(Keyword(s))
        else:
            self.add_token(Name(s))

    number_exp = re.compile(r"-?[0-9][0-9_]*")

    def lex_number(self) -> None:
        self.add_token(IntLit(self.match(self.number_exp)))

    def lex_minus(self) -> None:
        """Analyse '->' or a negative integer literal."""
        if self.s.startswith("->", self.i):
            self.add_token(Punct("->"))
        elif self.match(self.number_exp):
            self.lex_number()
        else:
            self.add_token(LexError("-", INVALID_CHARACTER))

    str_exp = re.compile(r""""([^"\\\n\r]|\\.)*"|'([^'\\\n\r]|\\.)*'""")

    def lex_str(self) -> None:
        s = self.match(self.str_exp)
        if s:
            self.add_token(StrLit(s))
        else:
            # Unterminated string literal.
            s = self.match(re.compile(r"[^\n\r]*"))
            self.add_token(LexError(s, UNTERMINATED_STRING_LITERAL, "Unterminated string literal"))

    quoted_name_exp = re.compile(r"`[^`\n\r]+`")

    def lex_quoted_name(self) -> None:
        s = self.match(self.quoted_name_exp)
        if s:
            self.add_token(QuotedName(s))
        else:
            s = self.match(re.compile(r"`[^\n\r]*"))
            self.add_token(LexError(s, UNTERMINATED_QUOTED_NAME, "Unterminated quoted name"))

    symbol_exp = re.compile(
        r""":([a-zA-Z_][a-zA-Z0-9_]*[?!=]?|"([^"\\\n\r]|\\.)*"|'([^'\\\n\r]|\\.)*'|"""
        r"""\[\]=?|<=>|===?|=~|!~|!=|!|<<|>>|<=|>=|<|>|[-+]@?|\*\*?|/|%|&|\||\^|~)"""
    )

    def lex_colon(self) -> None:
        """Analyse '::', a keyword colon or a symbol literal.

        A colon directly after a name (no whitespace between) separates a
        keyword from its type, as in 'name: Type'. Otherwise a colon followed
        by an identifier starts a symbol literal.
        """
        if self.s.startswith("::", self.i):
            self.add_token(Punct("::"))
            return
        last = self.tok[-1] if self.tok else None
        if isinstance(last, (Name, Keyword)) and self.pre_whitespace == "":
            self.add_token(Colon(":"))
            return
        s = self.match(self.symbol_exp)
        if s:
            self.add_token(SymbolLit(s))
        else:
            self.add_token(Colon(":"))

    comment_exp = re.compile(r"#[^\n\r]*")

    def lex_comment(self) -> None:
        """Analyze a comment."""
        s = self.match(self.comment_exp)
        self.add_pre_whitespace(s)

    space_exp = re.compile(r"[ \t\x0c]*")

    def lex_space(self) -> None:
        """Analyze a run of whitespace characters.

        Only store them in self.pre_whitespace.
        """
        s = self.match(self.space_exp)
        self.add_pre_whitespace(s)

    newline_exp = re.compile(r"\r\n|\r|\n")

    def lex_newline(self) -> None:
        s = self.match(self.newline_exp)
        self.add_pre_whitespace(s)
        self.line += 1
        self.line_start = self.i

    def lex_open_bracket(self) -> None:
        tok = Punct(self.s[self.i])
        self.add_token(tok)
        self.open_brackets.append(tok)

    open_bracket: Final = {")": "(", "]": "[", "}": "{"}

    def lex_close_bracket(self) -> None:
        s = self.s[self.i]
        if self.open_brackets and self.open_bracket[s] == self.open_brackets[-1].string:
            self.open_brackets.pop()
        self.add_token(Punct(s))

    def lex_misc(self) -> None:
        """Analyze a punctuator."""
        s = ""
        for regexp in punctuators:
            s2 = self.match(regexp)
            if len(s2) > len(s):
                s = s2
        if s == "":
            # Could not match any token; report an invalid character.
            self.add_token(LexError(self.s[self.i], INVALID_CHARACTER))
        else:
            self.add_token(Punct(s))

    def unknown_character(self) -> None:
        """Report an unknown character as a lexical analysis error."""
        self.add_token(LexError(self.s[self.i], INVALID_CHARACTER))

    # Utility methods

    def match(self, pattern: re.Pattern[str]) -> str:
        """Try to match a regular expression at current location.

        If the argument regexp is matched at the current location,
        return the matched string; otherwise return the empty string.
        """
        m = pattern.match(self.s, self.i)
        if m is not None:
            return m.group(0)
        else:
            return ""

    def add_pre_whitespace(self, s: str) -> None:
        """Record whitespace and comments before the next token.

        The accumulated whitespace/comments will be stored in the next token
        and then it will be cleared.
        """
        self.pre_whitespace += s
        self.i += len(s)

    def add_token(self, tok: Token) -> None:
        """Store a token.

        Update its line number and record preceding whitespace
        characters and comments.
        """
        if tok.string == "" and not isinstance(tok, (Eof, LexError)):
            raise ValueError("Empty token")
        tok.pre = self.pre_whitespace
        tok.line = self.line
        tok.column = self.i - self.line_start
        self.tok.append(tok)
        self.i += len(tok.string)
        self.pre_whitespace = ""


if __name__ == "__main__":
    # Lexically analyze a file and dump the tokens to stdout.
    import sys

    if len(sys.argv) != 2:
        print("Usage: lex.py FILE", file=sys.stderr)
        sys.exit(2)
    with open(sys.argv[1], encoding="utf-8") as f:
        for t in lex(f.read()):
            print(t)
