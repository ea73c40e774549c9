"""Consistency checker test cases"""

from __future__ import annotations

from declcheck import build
from declcheck.build import BuildSource
from declcheck.errors import CompileError
from declcheck.test.data import DataDrivenTestCase, DataSuite
from declcheck.test.helpers import assert_string_arrays_equal, find_test_files, parse_options

# List of files that contain test case descriptions.
typecheck_files = find_test_files(pattern="check-*.test")


class TypeCheckSuite(DataSuite):
    files = typecheck_files

    def run_case(self, testcase: DataDrivenTestCase) -> None:
        options = parse_options("\n".join(testcase.input), testcase)
        sources = [BuildSource(path) for path, _ in testcase.files if path.endswith(".rbs")]

        messages: list[str] = []

        def flush_errors(filename: str | None, new_messages: list[str], serious: bool) -> None:
            messages.extend(new_messages)

        try:
            res = build.build(sources, options, flush_errors=flush_errors)
        except CompileError:
            # The messages of a fatal error were passed to flush_errors.
            res = None

        assert_string_arrays_equal(
            testcase.output,
            messages,
            f"Unexpected findings ({testcase.file}, line {testcase.line})",
        )
        if res is not None:
            assert res.is_clean() == (not any(": error: " in m for m in messages))
            for result in res.files.values():
                assert result.catalogue.frozen
