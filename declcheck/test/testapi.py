from __future__ import annotations

import os
import shutil
import sys
import tempfile
import unittest
from io import StringIO

import declcheck.api
from declcheck.version import __version__


class APISuite(unittest.TestCase):
    def setUp(self) -> None:
        self.sys_stdout = sys.stdout
        self.sys_stderr = sys.stderr
        sys.stdout = self.stdout = StringIO()
        sys.stderr = self.stderr = StringIO()
        self.tmpdir = tempfile.mkdtemp()
        self.tmp_path = os.path.join(self.tmpdir, "foo.rbs")
        with open(self.tmp_path, "w", encoding="utf-8") as f:
            f.write("class Foo\n  def foo: () -> Bar\nend\n")

    def tearDown(self) -> None:
        sys.stdout = self.sys_stdout
        sys.stderr = self.sys_stderr
        assert self.stdout.getvalue() == ""
        assert self.stderr.getvalue() == ""
        shutil.rmtree(self.tmpdir)

    def test_capture_bad_opt(self) -> None:
        """stderr should be captured when a bad option is passed."""
        _, stderr, status = declcheck.api.run(["--some-bad-option"])
        assert isinstance(stderr, str)
        assert "unrecognized arguments: --some-bad-option" in stderr
        assert status == 2

    def test_capture_empty(self) -> None:
        """stderr should be captured when no files are given."""
        _, stderr, status = declcheck.api.run([])
        assert isinstance(stderr, str)
        assert stderr != ""
        assert status == 2

    def test_capture_help(self) -> None:
        """stdout should be captured when --help is passed."""
        stdout, _, status = declcheck.api.run(["--help"])
        assert stdout.startswith("usage: declcheck")
        assert status == 0

    def test_capture_version(self) -> None:
        """stdout should be captured when --version is passed."""
        stdout, _, status = declcheck.api.run(["--version"])
        assert stdout == f"declcheck {__version__}\n"
        assert status == 0

    def test_capture_report(self) -> None:
        """The report goes to stdout and sets the exit status."""
        stdout, stderr, status = declcheck.api.run(["--hide-error-codes", self.tmp_path])
        assert stdout.splitlines() == [
            f'{self.tmp_path}:2: error: Name "Bar" is not defined',
            "Found 1 error in 1 file (checked 1 catalogue file)",
        ]
        assert stderr == ""
        assert status == 1
