from __future__ import annotations

import os
import shutil
import tempfile
import unittest

import pytest

from declcheck.build import BuildSource
from declcheck.find_sources import InvalidSourceList, create_source_list


def normalise_path(path: str) -> str:
    path = os.path.splitdrive(path)[1]
    path = path.replace(os.sep, "/")
    return path


def paths(sources: list[BuildSource]) -> list[str]:
    return [normalise_path(s.path) for s in sources]


class SourceFinderSuite(unittest.TestCase):
    def setUp(self) -> None:
        self.tempdir = tempfile.mkdtemp()
        self.oldcwd = os.getcwd()
        os.chdir(self.tempdir)

    def tearDown(self) -> None:
        os.chdir(self.oldcwd)
        shutil.rmtree(self.tempdir)

    def touch(self, path: str) -> None:
        dirname = os.path.dirname(path)
        if dirname:
            os.makedirs(dirname, exist_ok=True)
        with open(path, "w", encoding="utf-8"):
            pass

    def test_files_are_taken_as_given(self) -> None:
        self.touch("b.rbs")
        self.touch("a.txt")
        assert paths(create_source_list(["b.rbs", "a.txt"])) == ["b.rbs", "a.txt"]

    def test_directory_is_searched_in_sorted_order(self) -> None:
        self.touch("lib/b.rbs")
        self.touch("lib/a/z.rbs")
        self.touch("lib/a.rbs")
        self.touch("lib/notes.txt")
        self.touch("lib/.hidden/x.rbs")
        assert paths(create_source_list(["lib"])) == ["lib/a/z.rbs", "lib/a.rbs", "lib/b.rbs"]

    def test_duplicates_are_dropped(self) -> None:
        self.touch("lib/a.rbs")
        self.touch("lib/b.rbs")
        sources = create_source_list(["lib/b.rbs", "lib", "./lib/a.rbs"])
        assert paths(sources) == ["lib/b.rbs", "lib/a.rbs"]

    def test_missing_file(self) -> None:
        with pytest.raises(InvalidSourceList, match="can't read file 'missing.rbs'"):
            create_source_list(["missing.rbs"])

    def test_empty_directory(self) -> None:
        os.mkdir("empty")
        with pytest.raises(InvalidSourceList, match="no catalogue files in directory 'empty'"):
            create_source_list(["empty"])
        assert create_source_list(["empty"], allow_empty_dir=True) == []
