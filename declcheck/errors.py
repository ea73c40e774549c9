from __future__ import annotations

import os.path
import sys
import traceback
from typing import Callable, Final, NoReturn, TextIO

from declcheck import errorcodes as codes
from declcheck.error_formatter import OUTPUT_CHOICES, ErrorFormatter
from declcheck.errorcodes import ErrorCode
from declcheck.options import Options
from declcheck.version import __version__ as declcheck_version

SEVERITY_ERROR: Final = "error"
SEVERITY_NOTE: Final = "note"


class ErrorInfo:
    """Representation of a single finding."""

    # The path to the catalogue file that was the source of this finding.
    file = ""

    # The line number related to this finding within file.
    line = 0  # -1 if unknown

    # The column number related to this finding within file.
    column = 0  # -1 if unknown

    # Either 'error' or 'note'
    severity = ""

    # The message.
    message = ""

    # The error code.
    code: ErrorCode | None = None

    # Other lines involved in the finding, e.g. the first of two conflicting declarations.
    related_lines: list[int]

    # Do not remove duplicate copies of this message.
    allow_dups = False

    def __init__(
        self,
        file: str,
        line: int,
        column: int,
        severity: str,
        message: str,
        code: ErrorCode | None,
        related_lines: list[int] | None = None,
        allow_dups: bool = False,
    ) -> None:
        self.file = file
        self.line = line
        self.column = column
        self.severity = severity
        self.message = message
        self.code = code
        self.related_lines = related_lines or []
        self.allow_dups = allow_dups


class Finding:
    """A finding as exposed to callers and output formatters."""

    def __init__(
        self,
        file_path: str,
        line: int,
        column: int,
        message: str,
        errorcode: ErrorCode | None,
        severity: str,
        related_lines: list[int],
    ) -> None:
        self.file_path = file_path
        self.line = line
        self.column = column
        self.message = message
        self.errorcode = errorcode
        self.severity = severity
        self.related_lines = related_lines

    @property
    def kind(self) -> str | None:
        return self.errorcode.kind if self.errorcode is not None else None

    @property
    def lines(self) -> list[int]:
        """All line numbers involved in this finding, in ascending order."""
        return sorted({self.line, *self.related_lines})

    def serialize(self) -> dict[str, object]:
        return {
            "file": self.file_path,
            "line": self.line,
            "column": self.column,
            "kind": self.kind,
            "code": None if self.errorcode is None else self.errorcode.code,
            "severity": self.severity,
            "message": self.message,
            "related_lines": list(self.related_lines),
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Finding):
            return NotImplemented
        return self.serialize() == other.serialize()

    def __hash__(self) -> int:
        return hash((self.file_path, self.line, self.column, self.message, self.severity))

    def __repr__(self) -> str:
        return f"Finding({self.kind}, {self.file_path}:{self.line}, {self.message!r})"


class ErrorWatcher:
    """Context manager that can be used to keep track of new findings recorded
    around a given operation.

    Errors maintain a stack of such watchers. Every watcher on the stack sees
    each new finding, unless it is filtered out by a watcher above it.
    """

    def __init__(
        self, errors: Errors, *, filter_errors: bool | Callable[[str, ErrorInfo], bool] = False
    ) -> None:
        self.errors = errors
        self._filter = filter_errors
        self._seen: list[ErrorInfo] = []

    def __enter__(self) -> ErrorWatcher:
        self.errors._watchers.append(self)
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> bool:
        assert self == self.errors._watchers.pop()
        return False

    def on_error(self, file: str, info: ErrorInfo) -> bool:
        """Handler called when a new finding is recorded.

        Return True to filter out the finding, preventing it from being seen by other
        ErrorWatchers further down the stack and from being recorded by Errors.
        """
        self._seen.append(info)
        if isinstance(self._filter, bool):
            return self._filter
        elif callable(self._filter):
            return self._filter(file, info)
        else:
            raise AssertionError(f"invalid error filter: {type(self._filter)}")

    def has_new_errors(self) -> bool:
        return any(info.severity == SEVERITY_ERROR for info in self._seen)

    def findings(self) -> list[Finding]:
        return [to_finding(info) for info in sort_messages(self._seen)]


class Errors:
    """Container for findings.

    This class generates and keeps track of the findings of every catalogue
    file processed, in the order the files were processed.
    """

    # Map from files to generated findings.
    error_info_map: dict[str, list[ErrorInfo]]

    # Files that we have reported the messages for.
    flushed_files: set[str]

    # Path to current file.
    file: str = ""

    def __init__(self, options: Options) -> None:
        self.options = options
        self.show_error_codes = options.show_error_codes
        # Alternative output format (such as JSON lines); None for plain text
        self.error_formatter: ErrorFormatter | None = OUTPUT_CHOICES.get(options.output)
        self._watchers: list[ErrorWatcher] = []
        self.initialize()

    def initialize(self) -> None:
        self.error_info_map = {}
        self.flushed_files = set()

    def set_file(self, file: str) -> None:
        """Set the path of the current file."""
        self.file = file
        self.error_info_map.setdefault(file, [])

    def report(
        self,
        line: int,
        column: int | None,
        message: str,
        code: ErrorCode | None = None,
        *,
        severity: str = SEVERITY_ERROR,
        file: str | None = None,
        related_lines: list[int] | None = None,
        allow_dups: bool = False,
    ) -> None:
        """Report message at the given line of the current file.

        Args:
            line: line number of the finding
            column: column number of the finding
            message: message to report
            code: error code
            severity: 'error' or 'note'
            file: if non-None, override current file as context
            related_lines: other lines involved in the finding
            allow_dups: if True, allow duplicate copies of this message
        """
        if column is None:
            column = -1
        if file is None:
            file = self.file
        info = ErrorInfo(
            file,
            line,
            column,
            severity,
            message,
            code,
            related_lines=related_lines,
            allow_dups=allow_dups,
        )
        self.add_error_info(info)

    def _filter_error(self, file: str, info: ErrorInfo) -> bool:
        """Process ErrorWatcher stack from top to bottom, stopping early if a
        watcher filters the finding out."""
        i = len(self._watchers)
        while i > 0:
            i -= 1
            w = self._watchers[i]
            if w.on_error(file, info):
                return True
        return False

    def add_error_info(self, info: ErrorInfo) -> None:
        file = info.file
        assert file not in self.flushed_files
        if info.code is not None and not self.is_error_code_enabled(info.code):
            return
        if self._filter_error(file, info):
            return
        self.error_info_map.setdefault(file, []).append(info)

    def is_error_code_enabled(self, error_code: ErrorCode) -> bool:
        if error_code is codes.UNRECOVERABLE_INPUT:
            return True
        if error_code.code in self.options.disabled_error_codes:
            return False
        elif error_code.code in self.options.enabled_error_codes:
            return True
        else:
            return error_code.default_enabled

    def num_messages(self) -> int:
        """Return the number of generated messages."""
        return sum(len(x) for x in self.error_info_map.values())

    def is_errors(self) -> bool:
        """Are there any generated errors (notes don't count)?"""
        return any(
            info.severity == SEVERITY_ERROR
            for infos in self.error_info_map.values()
            for info in infos
        )

    def merge(self, other: Errors) -> None:
        """Append the findings recorded by another Errors object (one file each)."""
        for file, infos in other.error_info_map.items():
            self.error_info_map.setdefault(file, []).extend(infos)

    def format_messages(self, error_info: list[ErrorInfo]) -> list[str]:
        """Return a string list that represents the finding messages.

        Use a form suitable for displaying to the user.
        """
        if self.error_formatter is not None:
            return [
                self.error_formatter.report_error(to_finding(info))
                for info in self.render_messages(error_info)
            ]
        a: list[str] = []
        for info in self.render_messages(error_info):
            srcloc = info.file
            if info.line >= 0:
                srcloc = f"{srcloc}:{info.line}"
            s = f"{srcloc}: {info.severity}: {info.message}"
            if self.show_error_codes and info.code and info.severity != SEVERITY_NOTE:
                s = f"{s}  [{info.code.code}]"
            a.append(s)
        return a

    def file_messages(self, path: str) -> list[str]:
        """Return a string list of new finding messages from a given file.

        Use a form suitable for displaying to the user.
        """
        if path not in self.error_info_map:
            return []
        self.flushed_files.add(path)
        return self.format_messages(self.error_info_map[path])

    def new_messages(self) -> list[str]:
        """Return a string list of new finding messages.

        Use a form suitable for displaying to the user.
        Finding messages are only returned once.
        """
        msgs = []
        for path in self.error_info_map.keys():
            if path not in self.flushed_files:
                msgs.extend(self.file_messages(path))
        return msgs

    def render_messages(self, errors: list[ErrorInfo]) -> list[ErrorInfo]:
        return remove_duplicates(sort_messages(errors))

    def findings(self, file: str | None = None) -> list[Finding]:
        """Return findings as structured data, per file in processing order."""
        if file is not None:
            files = [file] if file in self.error_info_map else []
        else:
            files = list(self.error_info_map)
        result = []
        for path in files:
            infos = self.render_messages(self.error_info_map[path])
            result.extend(to_finding(info) for info in infos)
        return result

    def messages_by_file(self) -> dict[str, list[str]]:
        return {path: self.format_messages(infos) for path, infos in self.error_info_map.items()}


def sort_messages(errors: list[ErrorInfo]) -> list[ErrorInfo]:
    """Sort an array of findings by line, keeping the order of equal lines.

    Phases report in their own order; the sort restores file order.
    """
    return sorted(errors, key=lambda e: (e.line, e.column))


def remove_duplicates(errors: list[ErrorInfo]) -> list[ErrorInfo]:
    """Remove duplicates from a sorted findings list."""
    res: list[ErrorInfo] = []
    seen: set[tuple[int, str, str]] = set()
    for info in errors:
        key = (info.line, info.severity, info.message)
        if key in seen and not info.allow_dups:
            continue
        seen.add(key)
        res.append(info)
    return res


def to_finding(info: ErrorInfo) -> Finding:
    return Finding(
        info.file,
        info.line,
        info.column,
        info.message,
        info.code,
        info.severity,
        list(info.related_lines),
    )


class CompileError(Exception):
    """Exception raised when validation cannot continue.

    CompileErrors carry all of the messages that have not been reported
    out by error streaming.
    """

    messages: list[str]
    use_stdout = False

    def __init__(self, messages: list[str], use_stdout: bool = False) -> None:
        super().__init__("\n".join(messages))
        self.messages = messages
        self.use_stdout = use_stdout


class UnrecoverableInput(CompileError):
    """The block structure of a catalogue file cannot be read.

    This aborts the run immediately; it is never accumulated like other findings.
    """

    def __init__(self, path: str, line: int, reason: str) -> None:
        self.path = path
        self.line = line
        self.reason = reason
        srcloc = f"{path}:{line}" if line >= 0 else path
        super().__init__([f"{srcloc}: error: {reason}  [{codes.UNRECOVERABLE_INPUT.code}]"])


def report_internal_error(
    err: Exception,
    file: str | None,
    line: int,
    errors: Errors,
    options: Options,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
) -> NoReturn:
    """Report internal error and exit.

    This optionally shows a traceback.
    """
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr
    # Dump out findings so far, they often provide a clue.
    # But catch unexpected errors rendering them.
    try:
        for msg in errors.new_messages():
            print(msg, file=stdout)
    except Exception as e:
        print("Failed to dump findings:", repr(e), file=stderr)

    # Compute file:line prefix for official-looking error messages.
    if file:
        if line:
            prefix = f"{os.path.normpath(file)}:{line}: "
        else:
            prefix = f"{os.path.normpath(file)}: "
    else:
        prefix = ""

    print(f"{prefix}error: INTERNAL ERROR -- please report a bug", file=stderr)
    print(f"version: {declcheck_version}", file=stderr)

    if options.raise_exceptions:
        raise err
    if not options.show_traceback:
        print(
            f"{prefix}note: please use --show-traceback to print a traceback "
            "when reporting a bug",
            file=stderr,
        )
    else:
        tb = traceback.extract_stack()[:-2]
        tb2 = traceback.extract_tb(sys.exc_info()[2])
        print("Traceback (most recent call last):", file=stderr)
        for s in traceback.format_list(tb + tb2):
            print(s.rstrip("\n"), file=stderr)
        print(f"{type(err).__name__}: {err}", file=stderr)

    # Exit.  The caller has nothing more to say.
    # We use exit code 2 to signal that this is no ordinary error.
    raise SystemExit(2)
