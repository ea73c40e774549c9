from __future__ import annotations

import os
import tempfile
import unittest
import xml.etree.ElementTree as ET

from declcheck.util import DecodeError, decode_catalogue_text, write_junit_xml


class DecodeSuite(unittest.TestCase):
    def test_byte_order_mark(self) -> None:
        assert decode_catalogue_text(b"\xef\xbb\xbfclass Foo\n") == "class Foo\n"

    def test_invalid_utf8(self) -> None:
        with self.assertRaises(DecodeError):
            decode_catalogue_text(b"class \xff\n")


class JUnitXmlSuite(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmpdir.name, "reports", "junit.xml")

    def tearDown(self) -> None:
        self.tmpdir.cleanup()

    def write(self, serious: bool, messages_by_file: dict[str, list[str]]) -> ET.Element:
        write_junit_xml(1.23, serious, messages_by_file, self.path)
        return ET.parse(self.path).getroot()

    def test_all_files_pass(self) -> None:
        root = self.write(False, {"a.rbs": [], "b.rbs": []})
        assert root.attrib["tests"] == "2"
        assert root.attrib["failures"] == "0"
        assert root.attrib["time"] == "1.230"
        assert [case.attrib["name"] for case in root] == ["a.rbs", "b.rbs"]
        assert all(len(case) == 0 for case in root)

    def test_failures(self) -> None:
        root = self.write(
            False,
            {
                "a.rbs": ['a.rbs:2: error: Name "Bar" is not defined', "a.rbs:3: error: <oops>"],
                "b.rbs": [],
            },
        )
        assert root.attrib["failures"] == "1"
        assert root.attrib["errors"] == "0"
        failing, passing = list(root)
        [failure] = list(failing)
        assert failure.tag == "failure"
        assert failure.text == 'a.rbs:2: error: Name "Bar" is not defined\na.rbs:3: error: <oops>'
        assert len(passing) == 0

    def test_unrecoverable_input_is_an_error(self) -> None:
        message = 'b.rbs:1: error: Unexpected "end" with no open block  [unrecoverable-input]'
        root = self.write(True, {"b.rbs": [message]})
        assert root.attrib["errors"] == "1"
        assert root.attrib["failures"] == "0"
        [case] = list(root)
        [error] = list(case)
        assert error.tag == "error"
        assert error.text == message
