"""Tests for the catalogue parser."""

from __future__ import annotations

from declcheck.catalogue import build_catalogue
from declcheck.errors import CompileError, Errors
from declcheck.options import Options
from declcheck.parse import parse
from declcheck.printer import format_catalogue
from declcheck.test.data import MAIN_FILE, DataDrivenTestCase, DataSuite
from declcheck.test.helpers import assert_string_arrays_equal


class ParserSuite(DataSuite):
    required_out_section = True
    files = ["parse.test"]

    def run_case(self, testcase: DataDrivenTestCase) -> None:
        test_parser(testcase)


def test_parser(testcase: DataDrivenTestCase) -> None:
    """Parse a catalogue and print it back.

    The expected output holds the parse findings followed by the catalogue
    as printed. The printed catalogue must parse back into itself.
    """
    options = Options()
    options.show_error_codes = False
    errors = Errors(options)

    try:
        tree = parse("\n".join(testcase.input), MAIN_FILE, errors, options)
        printed = format_catalogue(build_catalogue(tree, errors))
        a = errors.new_messages() + printed.splitlines()
    except CompileError as e:
        printed = None
        a = e.messages
    assert_string_arrays_equal(
        testcase.output, a, f"Invalid parser output ({testcase.file}, line {testcase.line})"
    )

    if printed is not None:
        errors = Errors(options)
        reprinted = format_catalogue(build_catalogue(parse(printed, MAIN_FILE, errors), errors))
        assert_string_arrays_equal(
            printed.splitlines(),
            errors.new_messages() + reprinted.splitlines(),
            f"Printed catalogue does not parse back ({testcase.file}, line {testcase.line})",
        )


class ParseErrorSuite(DataSuite):
    files = ["parse-errors.test"]

    def run_case(self, testcase: DataDrivenTestCase) -> None:
        test_parse_error(testcase)


def test_parse_error(testcase: DataDrivenTestCase) -> None:
    options = Options()
    options.show_error_codes = False
    errors = Errors(options)
    try:
        parse("\n".join(testcase.input), MAIN_FILE, errors, options)
        a = errors.new_messages()
    except CompileError as e:
        a = errors.new_messages() + e.messages
    assert_string_arrays_equal(
        testcase.output, a, f"Invalid compiler output ({testcase.file}, line {testcase.line})"
    )
