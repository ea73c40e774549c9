"""declcheck catalogue validator command line tool."""

from __future__ import annotations

import argparse
import os
import sys
import time
from collections.abc import Sequence
from typing import Any, Final, NoReturn, TextIO

from declcheck import build, defaults, util
from declcheck.config_parser import check_jobs, parse_config_file
from declcheck.error_formatter import OUTPUT_CHOICES
from declcheck.errorcodes import error_codes
from declcheck.errors import CompileError, UnrecoverableInput
from declcheck.externals import ExternalTypesError, external_type_table
from declcheck.find_sources import InvalidSourceList, create_source_list
from declcheck.options import Options
from declcheck.printer import format_catalogue
from declcheck.util import plural_s
from declcheck.version import __version__

# Exit status when the run was aborted (unrecoverable input, usage error)
EXIT_BLOCKED: Final = 2


def main(
    args: list[str] | None = None,
    stdout: TextIO = sys.stdout,
    stderr: TextIO = sys.stderr,
) -> None:
    """Main entry point to the catalogue validator.

    Args:
        args: Custom command-line arguments.  If not given, sys.argv[1:] will
            be used.
        stdout: Stream for the report.
        stderr: Stream for fatal errors, warnings and log messages.
    """
    code = run(sys.argv[1:] if args is None else args, stdout, stderr)
    if code:
        sys.exit(code)


def run(args: list[str], stdout: TextIO, stderr: TextIO) -> int:
    """Validate the catalogues named on the command line; return the exit status."""
    t0 = time.time()
    sources, options = process_options(args, stdout=stdout, stderr=stderr)

    try:
        external_types = external_type_table(options)
    except ExternalTypesError as err:
        stderr.write(f"{err}\n")
        return EXIT_BLOCKED

    messages_by_file: dict[str, list[str]] = {}

    def flush_errors(filename: str | None, new_messages: list[str], serious: bool) -> None:
        if filename is not None:
            messages_by_file.setdefault(filename, []).extend(new_messages)
        f = stderr if serious else stdout
        try:
            for msg in new_messages:
                f.write(msg + "\n")
            f.flush()
        except BrokenPipeError:
            sys.exit(EXIT_BLOCKED)

    serious = False
    res = None
    try:
        res = build.build(sources, options, external_types, flush_errors, stderr=stderr)
    except CompileError as e:
        serious = True
        if isinstance(e, UnrecoverableInput):
            messages_by_file.setdefault(e.path, []).extend(e.messages)

    if options.warn_unused_configs and options.unused_configs:
        print(
            "Warning: unused option(s) in {}: {}".format(
                options.config_file, ", ".join(sorted(options.unused_configs))
            ),
            file=stderr,
        )

    if options.junit_xml:
        t1 = time.time()
        util.write_junit_xml(t1 - t0, serious, messages_by_file, options.junit_xml)

    if res is None:
        return EXIT_BLOCKED

    if options.print_catalogue:
        for result in res.files.values():
            stdout.write(f"# {result.path}\n")
            stdout.write(format_catalogue(result.catalogue))
        stdout.flush()

    n_errors = len([f for f in res.findings if f.severity == "error"])
    if options.error_summary and options.output == "text":
        n_sources = len(sources)
        if n_errors:
            n_files = len({f.file_path for f in res.findings if f.severity == "error"})
            stdout.write(
                f"Found {n_errors} error{plural_s(n_errors)} in {n_files} "
                f"file{plural_s(n_files)} "
                f"(checked {n_sources} catalogue file{plural_s(n_sources)})\n"
            )
        else:
            stdout.write(
                f"Success: no issues found in {n_sources} "
                f"catalogue file{plural_s(n_sources)}\n"
            )
        stdout.flush()

    return 1 if n_errors else 0


# Make the help output a little less jarring.
HEADER: Final = """declcheck [-h] [-v] [-V] [--config-file CONFIG_FILE] [more options...]
                 files [files ...]"""


DESCRIPTION: Final = """
declcheck validates declaration catalogues: files that describe the classes,
modules and interfaces of a library and the signatures of their members. It
reports malformed declarations, conflicting declarations, references to
undeclared types and generic instantiations with the wrong number of type
arguments.
"""


FOOTER: Final = """Environment variables:
  Define XDG_CONFIG_HOME to override the user config file location."""


class AugmentedHelpFormatter(argparse.RawDescriptionHelpFormatter):
    def __init__(self, prog: str) -> None:
        super().__init__(prog=prog, max_help_position=28)

    def _fill_text(self, text: str, width: int, indent: str) -> str:
        if "\n" in text:
            # Assume we want to manually format the text
            return super()._fill_text(text, width, indent)
        else:
            # Assume we want argparse to manage wrapping, indenting, and
            # formatting the text for us.
            return argparse.HelpFormatter._fill_text(self, text, width, indent)


# Define pairs of flag prefixes with inverse meaning.
flag_prefix_pairs: Final = [("show", "hide")]
flag_prefix_map: Final[dict[str, str]] = {}
for a, b in flag_prefix_pairs:
    flag_prefix_map[a] = b
    flag_prefix_map[b] = a


def invert_flag_name(flag: str) -> str:
    split = flag[2:].split("-", 1)
    if len(split) == 2:
        prefix, rest = split
        if prefix in flag_prefix_map:
            return f"--{flag_prefix_map[prefix]}-{rest}"
        elif prefix == "no":
            return f"--{rest}"

    return f"--no-{flag[2:]}"


class CapturableArgumentParser(argparse.ArgumentParser):
    """Override ArgumentParser methods that use sys.stdout/sys.stderr directly.

    This is needed because hijacking sys.std* is not thread-safe,
    yet output must be captured to properly support declcheck.api.run.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self.stdout = kwargs.pop("stdout", sys.stdout)
        self.stderr = kwargs.pop("stderr", sys.stderr)
        super().__init__(*args, **kwargs)

    def print_usage(self, file: TextIO | None = None) -> None:
        if file is None:
            file = self.stdout
        self._print_message(self.format_usage(), file)

    def print_help(self, file: TextIO | None = None) -> None:
        if file is None:
            file = self.stdout
        self._print_message(self.format_help(), file)

    def _print_message(self, message: str, file: TextIO | None = None) -> None:
        if message:
            if file is None:
                file = self.stderr
            file.write(message)

    def exit(self, status: int = 0, message: str | None = None) -> NoReturn:
        if message:
            self._print_message(message, self.stderr)
        sys.exit(status)

    def error(self, message: str) -> NoReturn:
        """error(message: string)

        Prints a usage message incorporating the message to stderr and
        exits.
        """
        self.print_usage(self.stderr)
        args = {"prog": self.prog, "message": message}
        self.exit(EXIT_BLOCKED, "%(prog)s: error: %(message)s\n" % args)


class CapturableVersionAction(argparse.Action):
    """Supplement CapturableArgumentParser to handle --version."""

    def __init__(
        self,
        option_strings: Sequence[str],
        version: str,
        dest: str = argparse.SUPPRESS,
        default: str = argparse.SUPPRESS,
        help: str = "show program's version number and exit",
        stdout: TextIO | None = None,
    ) -> None:
        super().__init__(
            option_strings=option_strings, dest=dest, default=default, nargs=0, help=help
        )
        self.version = version
        self.stdout = stdout or sys.stdout

    def __call__(
        self,
        parser: argparse.ArgumentParser,
        namespace: argparse.Namespace,
        values: str | Sequence[Any] | None,
        option_string: str | None = None,
    ) -> NoReturn:
        formatter = parser._get_formatter()
        formatter.add_text(self.version)
        parser._print_message(formatter.format_help(), self.stdout)
        parser.exit()


def process_options(
    args: list[str],
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
    require_targets: bool = True,
) -> tuple[list[build.BuildSource], Options]:
    """Parse command line arguments.

    Config file settings are read first, so that the command line overrides
    them.
    """
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr

    parser = CapturableArgumentParser(
        prog="declcheck",
        usage=HEADER,
        description=DESCRIPTION,
        epilog=FOOTER,
        fromfile_prefix_chars="@",
        formatter_class=AugmentedHelpFormatter,
        add_help=False,
        stdout=stdout,
        stderr=stderr,
    )

    def add_invertible_flag(
        flag: str,
        *,
        inverse: str | None = None,
        default: bool,
        dest: str | None = None,
        help: str,
        group: argparse._ActionsContainer | None = None,
    ) -> None:
        if inverse is None:
            inverse = invert_flag_name(flag)
        if group is None:
            group = parser

        if help is not argparse.SUPPRESS:
            help += f" (inverse: {inverse})"

        arg = group.add_argument(
            flag, action="store_false" if default else "store_true", dest=dest, help=help
        )
        dest = arg.dest
        group.add_argument(
            inverse,
            action="store_true" if default else "store_false",
            dest=dest,
            help=argparse.SUPPRESS,
        )

    # Unless otherwise specified, arguments will be parsed directly onto an
    # Options object.  Options that require further processing should have
    # their `dest` prefixed with `special-opts:`, which will cause them to be
    # parsed into the separate special_opts namespace object.

    general_group = parser.add_argument_group(title="Optional arguments")
    general_group.add_argument(
        "-h", "--help", action="help", help="Show this help message and exit"
    )
    general_group.add_argument(
        "-v", "--verbose", action="count", dest="verbosity", help="More verbose messages"
    )
    general_group.add_argument(
        "-V",
        "--version",
        action=CapturableVersionAction,
        version="%(prog)s " + __version__,
        help="Show program's version number and exit",
        stdout=stdout,
    )

    config_group = parser.add_argument_group(
        title="Config file",
        description="Use a config file instead of command line arguments. "
        "This is useful if you are using many flags.",
    )
    config_group.add_argument(
        "--config-file",
        help="Configuration file, must have a [declcheck] section "
        "(defaults to {})".format(", ".join(defaults.CONFIG_FILES)),
    )
    add_invertible_flag(
        "--warn-unused-configs",
        default=False,
        help="Warn about unrecognized options in the config file",
        group=config_group,
    )

    types_group = parser.add_argument_group(
        title="External types",
        description="Configure the types that catalogues may refer to without declaring them.",
    )
    types_group.add_argument(
        "--external-types",
        metavar="FILE",
        help="Table of external type names and their number of type arguments "
        "(TOML [types] table or JSON object)",
    )
    add_invertible_flag(
        "--no-builtin-types",
        default=True,
        dest="builtin_types",
        help="Don't use the built-in table of core types",
        group=types_group,
    )

    check_group = parser.add_argument_group(title="Checks")
    add_invertible_flag(
        "--no-warn-unverified-arity",
        default=True,
        dest="warn_unverified_arity",
        help="Don't note generic instantiations whose number of type arguments "
        "cannot be verified",
        group=check_group,
    )
    check_group.add_argument(
        "--disable-error-code",
        metavar="NAME",
        action="append",
        default=[],
        dest="special-opts:disable_error_code",
        help="Disable a specific error code",
    )
    check_group.add_argument(
        "--enable-error-code",
        metavar="NAME",
        action="append",
        default=[],
        dest="special-opts:enable_error_code",
        help="Enable a specific error code",
    )

    report_group = parser.add_argument_group(title="Report generation")
    report_group.add_argument(
        "-O",
        "--output",
        metavar="FORMAT",
        choices=["text", *OUTPUT_CHOICES],
        help="Set a custom output format ({})".format(", ".join(["text", *OUTPUT_CHOICES])),
    )
    report_group.add_argument(
        "--junit-xml", metavar="PATH", help="Write a JUnit XML test result document to PATH"
    )
    add_invertible_flag(
        "--hide-error-codes",
        default=True,
        dest="show_error_codes",
        help="Hide error codes in error messages",
        group=report_group,
    )
    add_invertible_flag(
        "--no-error-summary",
        default=True,
        dest="error_summary",
        help="Don't print a summary line after the findings",
        group=report_group,
    )
    report_group.add_argument(
        "--print-catalogue",
        action="store_true",
        help="Print the catalogue of each file, as read, after the findings",
    )

    build_group = parser.add_argument_group(title="Build")
    build_group.add_argument(
        "-j",
        "--jobs",
        type=check_jobs,
        metavar="N",
        help="Validate up to N catalogue files in parallel",
    )

    internals_group = parser.add_argument_group(title="Advanced options")
    internals_group.add_argument(
        "--show-traceback", "--tb", action="store_true", help="Show traceback on fatal error"
    )
    internals_group.add_argument(
        "--raise-exceptions", action="store_true", help="Raise exception on fatal error"
    )

    code_group = parser.add_argument_group(title="Running code")
    code_group.add_argument(
        metavar="files",
        nargs="*",
        dest="special-opts:files",
        help="Validate given catalogue files or directories",
    )

    # Parse arguments once into a dummy namespace so we can get the
    # filename for the config file.
    dummy = argparse.Namespace()
    parser.parse_args(args, dummy)
    config_file = dummy.config_file
    if config_file is not None and not os.path.exists(config_file):
        parser.error(f"Cannot find config file '{config_file}'")

    # Parse config file first, so command line can override.
    options = Options()
    parse_config_file(options, config_file, stderr)

    # Parse command line for real, using a split namespace.
    special_opts = argparse.Namespace()
    parser.parse_args(args, SplitNamespace(options, special_opts, "special-opts:"))

    # Process error codes given on the command line; they override the config file.
    disabled = set(special_opts.disable_error_code)
    enabled = set(special_opts.enable_error_code)
    invalid = sorted(c for c in disabled | enabled if c not in error_codes)
    if invalid:
        parser.error(f"Invalid error code(s): {', '.join(invalid)}")
    options.disabled_error_codes = (options.disabled_error_codes - enabled) | disabled
    options.enabled_error_codes = (options.enabled_error_codes - disabled) | enabled
    options.process_error_codes()

    if require_targets and not special_opts.files:
        parser.error("Missing target files or directories.")

    try:
        targets = create_source_list(special_opts.files)
    except InvalidSourceList as e:
        parser.error(str(e))
    return targets, options


class SplitNamespace(argparse.Namespace):
    def __init__(self, standard_namespace: object, alt_namespace: object, alt_prefix: str) -> None:
        self.__dict__["_standard_namespace"] = standard_namespace
        self.__dict__["_alt_namespace"] = alt_namespace
        self.__dict__["_alt_prefix"] = alt_prefix

    def _get(self) -> tuple[Any, Any]:
        return (self._standard_namespace, self._alt_namespace)

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith(self._alt_prefix):
            setattr(self._alt_namespace, name[len(self._alt_prefix) :], value)
        else:
            setattr(self._standard_namespace, name, value)

    def __getattr__(self, name: str) -> Any:
        if name.startswith(self._alt_prefix):
            return getattr(self._alt_namespace, name[len(self._alt_prefix) :])
        else:
            return getattr(self._standard_namespace, name)
