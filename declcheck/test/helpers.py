from __future__ import annotations

import os
import re
import shlex
import sys

import pytest

from declcheck.main import process_options
from declcheck.options import Options
from declcheck.test.data import DataDrivenTestCase

# AssertStringArraysEqual displays special line alignment helper messages if
# the first different line has at least this many characters,
MIN_LINE_LENGTH_FOR_ALIGNMENT = 5


def assert_string_arrays_equal(expected: list[str], actual: list[str], msg: str) -> None:
    """Assert that two string arrays are equal.

    Display any differences in a human-readable form.
    """
    actual = clean_up(actual)
    if actual == expected:
        return

    num_skip_start = num_skipped_prefix_lines(expected, actual)
    num_skip_end = num_skipped_suffix_lines(expected, actual)

    sys.stderr.write("Expected:\n")

    # If omit some lines at the beginning, indicate it by displaying a line
    # with '...'.
    if num_skip_start > 0:
        sys.stderr.write("  ...\n")

    # Keep track of the first different line.
    first_diff = -1

    # Display only this many first characters of identical lines.
    width = 75

    for i in range(num_skip_start, len(expected) - num_skip_end):
        if i >= len(actual) or expected[i] != actual[i]:
            if first_diff < 0:
                first_diff = i
            sys.stderr.write(f"  {expected[i]:<45} (diff)")
        else:
            e = expected[i]
            sys.stderr.write("  " + e[:width])
            if len(e) > width:
                sys.stderr.write("...")
        sys.stderr.write("\n")
    if num_skip_end > 0:
        sys.stderr.write("  ...\n")

    sys.stderr.write("Actual:\n")

    if num_skip_start > 0:
        sys.stderr.write("  ...\n")

    for j in range(num_skip_start, len(actual) - num_skip_end):
        if j >= len(expected) or expected[j] != actual[j]:
            sys.stderr.write(f"  {actual[j]:<45} (diff)")
        else:
            a = actual[j]
            sys.stderr.write("  " + a[:width])
            if len(a) > width:
                sys.stderr.write("...")
        sys.stderr.write("\n")
    if not actual:
        sys.stderr.write("  (empty)\n")
    if num_skip_end > 0:
        sys.stderr.write("  ...\n")

    sys.stderr.write("\n")

    if 0 <= first_diff < len(actual) and (
        len(expected[first_diff]) >= MIN_LINE_LENGTH_FOR_ALIGNMENT
        or len(actual[first_diff]) >= MIN_LINE_LENGTH_FOR_ALIGNMENT
    ):
        # Display message that helps visualize the differences between two
        # long lines.
        show_align_message(expected[first_diff], actual[first_diff])

    pytest.fail(msg, pytrace=False)


def show_align_message(s1: str, s2: str) -> None:
    """Align s1 and s2 so that the their first difference is highlighted.

    For example, if s1 is 'foobar' and s2 is 'fobar', display the
    following lines:

      E: foobar
      A: fobar
           ^

    If s1 and s2 are long, only display a fragment of the strings around the
    first difference. If s1 is very short, do nothing.
    """

    # Seeing what went wrong is trivial even without alignment if the expected
    # string is very short. In this case do nothing to simplify output.
    if len(s1) < 4:
        return

    maxw = 72  # Maximum number of characters shown

    sys.stderr.write("Alignment of first line difference:\n")

    trunc = False
    while s1[:30] == s2[:30]:
        s1 = s1[10:]
        s2 = s2[10:]
        trunc = True

    if trunc:
        s1 = "..." + s1
        s2 = "..." + s2

    max_len = max(len(s1), len(s2))
    extra = ""
    if max_len > maxw:
        extra = "..."

    # Write a chunk of both lines, aligned.
    sys.stderr.write(f"  E: {s1[:maxw]}{extra}\n")
    sys.stderr.write(f"  A: {s2[:maxw]}{extra}\n")
    # Write an indicator character under the different columns.
    sys.stderr.write("     ")
    for j in range(min(maxw, max(len(s1), len(s2)))):
        if s1[j : j + 1] != s2[j : j + 1]:
            sys.stderr.write("^")  # Difference
            break
        else:
            sys.stderr.write(" ")  # Equal
    sys.stderr.write("\n")


def clean_up(a: list[str]) -> list[str]:
    """Remove trailing spaces and carriage returns from all strings in a."""
    res = []
    for s in a:
        # Ignore spaces at end of line.
        s = re.sub(" +$", "", s)
        res.append(re.sub("\\r$", "", s))
    return res


def num_skipped_prefix_lines(a1: list[str], a2: list[str]) -> int:
    num_eq = 0
    while num_eq < min(len(a1), len(a2)) and a1[num_eq] == a2[num_eq]:
        num_eq += 1
    return max(0, num_eq - 4)


def num_skipped_suffix_lines(a1: list[str], a2: list[str]) -> int:
    num_eq = 0
    while num_eq < min(len(a1), len(a2)) and a1[-num_eq - 1] == a2[-num_eq - 1]:
        num_eq += 1
    return max(0, num_eq - 4)


def parse_options(program_text: str, testcase: DataDrivenTestCase) -> Options:
    """Parse comments like '# flags: --foo' in a test case."""
    m = re.search("# flags: (.*)$", program_text, flags=re.MULTILINE)
    if m:
        flag_list = shlex.split(m.group(1))
        _, options = process_options(flag_list, require_targets=False)
    else:
        options = Options()
    # Test cases show findings without error codes unless they ask for them.
    if "--show-error-codes" not in (m.group(1) if m else ""):
        options.show_error_codes = False
    return options


def find_test_files(pattern: str, exclude: list[str] | None = None) -> list[str]:
    from declcheck.test.config import test_data_prefix

    return [
        name
        for name in sorted(os.listdir(test_data_prefix))
        if re.fullmatch(pattern.replace(".", r"\.").replace("*", ".*"), name)
        and (not exclude or name not in exclude)
    ]
