"""Utility functions with no non-trivial dependencies."""

from __future__ import annotations

import os
from typing import Final


class DecodeError(Exception):
    """Exception raised when a catalogue file cannot be decoded as UTF-8."""


def short_type(obj: object) -> str:
    """Return the last component of the type name of an object.

    If obj is None, return 'nil'. For example, if obj is 1, return 'int'.
    """
    if obj is None:
        return "nil"
    t = str(type(obj))
    return t.split(".")[-1].rstrip("'>")


def plural_s(s: int | list[object]) -> str:
    count = s if isinstance(s, int) else len(s)
    if count != 1:
        return "s"
    else:
        return ""


def decode_catalogue_text(source: bytes) -> str:
    """Decode the contents of a catalogue file.

    Catalogues are always UTF-8; a byte order mark is stripped.
    """
    if source.startswith(b"\xef\xbb\xbf"):
        source = source[3:]
    try:
        return source.decode("utf-8")
    except UnicodeDecodeError as err:
        raise DecodeError(str(err)) from err


def read_catalogue_file(path: str) -> str:
    with open(path, "rb") as f:
        source = f.read()
    return decode_catalogue_text(source)


PASS_TEMPLATE: Final = """<?xml version="1.0" encoding="utf-8"?>
<testsuite errors="0" failures="0" name="declcheck" skips="0" tests="{tests}" time="{time:.3f}">
{cases}</testsuite>
"""

CASE_PASS_TEMPLATE: Final = """  <testcase classname="declcheck" file="{file}" line="1" name="{name}" time="{time:.3f}">
  </testcase>
"""

FAIL_TEMPLATE: Final = """<?xml version="1.0" encoding="utf-8"?>
<testsuite errors="{errors}" failures="{failures}" name="declcheck" skips="0" tests="{tests}" time="{time:.3f}">
{cases}</testsuite>
"""

CASE_FAIL_TEMPLATE: Final = """  <testcase classname="declcheck" file="{file}" line="1" name="{name}" time="{time:.3f}">
    <failure message="declcheck produced messages">{text}</failure>
  </testcase>
"""

CASE_ERROR_TEMPLATE: Final = """  <testcase classname="declcheck" file="{file}" line="1" name="{name}" time="{time:.3f}">
    <error message="declcheck produced errors">{text}</error>
  </testcase>
"""


def write_junit_xml(
    dt: float, serious: bool, messages_by_file: dict[str, list[str]], path: str
) -> None:
    """Write a JUnit XML report with one test case per catalogue file.

    A file with messages is a failure; if serious is true (an unrecoverable
    input stopped the run), files with messages are reported as errors.
    """
    from xml.sax.saxutils import escape, quoteattr

    cases = []
    failures = 0
    for file, messages in messages_by_file.items():
        name = quoteattr(file)[1:-1]
        if not messages:
            cases.append(CASE_PASS_TEMPLATE.format(file=name, name=name, time=dt))
            continue
        failures += 1
        template = CASE_ERROR_TEMPLATE if serious else CASE_FAIL_TEMPLATE
        cases.append(
            template.format(file=name, name=name, text=escape("\n".join(messages)), time=dt)
        )
    if not failures:
        xml = PASS_TEMPLATE.format(tests=len(cases), time=dt, cases="".join(cases))
    else:
        xml = FAIL_TEMPLATE.format(
            errors=failures if serious else 0,
            failures=0 if serious else failures,
            tests=len(cases),
            time=dt,
            cases="".join(cases),
        )

    # checks for a directory structure in path and creates folders if needed
    xml_dirs = os.path.dirname(os.path.abspath(path))
    if not os.path.isdir(xml_dirs):
        os.makedirs(xml_dirs)

    with open(path, "wb") as f:
        f.write(xml.encode("utf-8"))
