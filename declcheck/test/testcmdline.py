"""Test cases for the command line.

Each case runs declcheck in a temporary directory that holds the files of
the case, with the arguments given on the first line of the case:

  # cmd: declcheck <options>
"""

from __future__ import annotations

import re

from declcheck import api
from declcheck.test.data import DataDrivenTestCase, DataSuite
from declcheck.test.helpers import assert_string_arrays_equal
from declcheck.version import __version__

# Files containing test case descriptions.
cmdline_files = ["cmdline.test"]


class CmdlineSuite(DataSuite):
    files = cmdline_files
    required_out_section = True

    def run_case(self, testcase: DataDrivenTestCase) -> None:
        test_cmdline(testcase)


def test_cmdline(testcase: DataDrivenTestCase) -> None:
    assert testcase.old_cwd is not None, "test was not properly set up"
    args = parse_args(testcase.input[0])
    out, err, result = api.run(args)
    # Split output into lines.
    output = normalize_output(err.splitlines() + out.splitlines())
    if result:
        output.append(f"== Return code: {result}")
    assert_string_arrays_equal(
        testcase.output, output, f"Invalid output ({testcase.file}, line {testcase.line})"
    )


def parse_args(line: str) -> list[str]:
    """Parse the first line of the program for the command line.

    This should have the form

      # cmd: declcheck <options>

    For example:

      # cmd: declcheck --output json lib/
    """
    m = re.match("# cmd: declcheck(.*)$", line)
    if not m:
        return []  # No args; declcheck will spit out an error.
    return m.group(1).split()


def normalize_output(lines: list[str]) -> list[str]:
    return [line.rstrip().replace(__version__, "$VERSION") for line in lines]
