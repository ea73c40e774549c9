"""Facilities to validate a set of catalogue files.

The function build() is the main interface to this module. Each file is
parsed, built into a TypeCatalogue and checked; files are independent of
each other and may be validated in parallel. Findings are merged in input
order.
"""

from __future__ import annotations

import sys
import time
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, TextIO

from declcheck import message_registry
from declcheck.catalogue import TypeCatalogue, build_catalogue
from declcheck.checker import check_catalogue
from declcheck.errors import (
    CompileError,
    Errors,
    Finding,
    UnrecoverableInput,
    report_internal_error,
)
from declcheck.externals import external_type_table
from declcheck.nodes import CatalogueFile
from declcheck.options import Options
from declcheck.parse import parse
from declcheck.util import DecodeError, plural_s, read_catalogue_file


class BuildSource:
    """A catalogue file to validate, optionally with its text already in memory."""

    def __init__(self, path: str, text: str | None = None) -> None:
        self.path = path
        self.text = text

    def __repr__(self) -> str:
        return f"BuildSource(path={self.path!r}, has_text={self.text is not None})"


class FileResult:
    """The outcome of validating one file."""

    def __init__(
        self, path: str, tree: CatalogueFile, catalogue: TypeCatalogue, findings: list[Finding]
    ) -> None:
        self.path = path
        self.tree = tree
        self.catalogue = catalogue
        self.findings = findings


class BuildResult:
    """The result of a successful build.

    Attributes:
      manager:  The build manager.
      files:    Dictionary from file path to its FileResult, in input order.
      findings: All findings, file by file in input order.
      errors:   List of formatted finding messages.
    """

    def __init__(self, manager: BuildManager, files: dict[str, FileResult]) -> None:
        self.manager = manager
        self.files = files
        self.findings = manager.errors.findings()
        self.errors = [
            msg for msgs in manager.errors.messages_by_file().values() for msg in msgs
        ]

    def is_clean(self) -> bool:
        """Is the report free of errors (notes don't count)?"""
        return not self.manager.errors.is_errors()


def build(
    sources: list[BuildSource],
    options: Options,
    external_types: Mapping[str, int | None] | None = None,
    flush_errors: Callable[[str | None, list[str], bool], None] | None = None,
    stderr: TextIO | None = None,
) -> BuildResult:
    """Validate a list of catalogue files.

    Return BuildResult if every file could be read, even if it has findings;
    otherwise raise CompileError (UnrecoverableInput for a file whose block
    structure cannot be read).

    If a flush_errors callback is provided, the messages of each file are
    passed to it as soon as they are available. The final call to
    flush_errors for a serious error has is_serious set to True.

    Args:
      sources: list of files to validate
      options: build options
      external_types: table of types declared outside the catalogues; by default
        it is derived from options
      flush_errors: optional function to flush messages after each file
      stderr: stream for log and trace messages
    """

    def default_flush_errors(
        filename: str | None, new_messages: list[str], is_serious: bool
    ) -> None:
        pass

    flush_errors = flush_errors or default_flush_errors
    if external_types is None:
        external_types = external_type_table(options)
    manager = BuildManager(options, external_types, flush_errors, stderr or sys.stderr)
    try:
        return manager.build(sources)
    except CompileError as e:
        # Report the messages of the files done so far before the fatal one.
        flush_errors(None, manager.errors.new_messages() + e.messages, True)
        raise


class BuildManager:
    """This class holds shared state for validating a set of files.

    Attributes:
      options:        Build options
      external_types: Table of types declared outside the catalogues
      errors:         Findings of all files processed so far, in input order
      flush_errors:   Function to report the messages of a finished file
    """

    def __init__(
        self,
        options: Options,
        external_types: Mapping[str, int | None],
        flush_errors: Callable[[str | None, list[str], bool], None],
        stderr: TextIO,
    ) -> None:
        self.start_time = time.time()
        self.options = options
        self.external_types = external_types
        self.flush_errors = flush_errors
        self.stderr = stderr
        self.errors = Errors(options)

    def build(self, sources: list[BuildSource]) -> BuildResult:
        jobs = max(1, self.options.jobs)
        self.log(
            f"Validating {len(sources)} file{plural_s(len(sources))} "
            f"with {jobs} job{plural_s(jobs)}"
        )
        files: dict[str, FileResult] = {}
        if jobs > 1 and len(sources) > 1:
            with ThreadPoolExecutor(max_workers=jobs) as executor:
                # map() yields results in input order; the first failure propagates.
                for result, errors in executor.map(self.process_file, sources):
                    self.add_file_result(files, result, errors)
        else:
            for source in sources:
                result, errors = self.process_file(source)
                self.add_file_result(files, result, errors)
        self.log(
            f"Build finished in {time.time() - self.start_time:.3f} seconds with "
            f"{self.errors.num_messages()} finding{plural_s(self.errors.num_messages())}"
        )
        return BuildResult(self, files)

    def add_file_result(
        self, files: dict[str, FileResult], result: FileResult, errors: Errors
    ) -> None:
        files[result.path] = result
        self.errors.merge(errors)
        self.flush_errors(result.path, self.errors.file_messages(result.path), False)

    def process_file(self, source: BuildSource) -> tuple[FileResult, Errors]:
        """Parse, build and check one file.

        Each file gets its own Errors so that files can be processed in
        parallel; the caller merges them.
        """
        path = source.path
        errors = Errors(self.options)
        errors.set_file(path)
        text = source.text if source.text is not None else self.read_source(path)

        try:
            t0 = time.time()
            tree = parse(text, path, errors, self.options)
            t1 = time.time()
            self.trace(f"{path}: parsed {len(tree.defs)} declarations in {t1 - t0:.3f}s")
            catalogue = build_catalogue(tree, errors)
            t2 = time.time()
            self.trace(f"{path}: built {len(catalogue.types)} types in {t2 - t1:.3f}s")
            check_catalogue(catalogue, self.external_types, errors, self.options)
            self.trace(f"{path}: checked in {time.time() - t2:.3f}s")
        except CompileError:
            raise
        except Exception as err:
            report_internal_error(err, path, 0, errors, self.options, stderr=self.stderr)

        findings = errors.findings(path)
        self.log(f"Processed {path} ({len(findings)} finding{plural_s(len(findings))})")
        return FileResult(path, tree, catalogue, findings), errors

    def read_source(self, path: str) -> str:
        try:
            return read_catalogue_file(path)
        except DecodeError as err:
            raise UnrecoverableInput(
                path, -1, message_registry.UNDECODABLE_INPUT.format(err).value
            ) from err
        except OSError as err:
            raise CompileError([f"declcheck: can't read file '{path}': {err.strerror}"]) from err

    def log(self, *message: str) -> None:
        if self.options.verbosity >= 1:
            print("LOG: ", *message, file=self.stderr)
            self.stderr.flush()

    def trace(self, *message: str) -> None:
        if self.options.verbosity >= 2:
            print("TRACE:", *message, file=self.stderr)
            self.stderr.flush()
