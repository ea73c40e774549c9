"""Routines for finding the catalogue files that declcheck will validate"""

from __future__ import annotations

import os
from collections.abc import Sequence

from declcheck.build import BuildSource
from declcheck.defaults import CATALOGUE_EXTENSIONS


class InvalidSourceList(Exception):
    """Exception indicating a problem in the list of files given to declcheck."""


def create_source_list(paths: Sequence[str], allow_empty_dir: bool = False) -> list[BuildSource]:
    """From a list of catalogue files/directories, makes a list of BuildSources.

    Files are taken as given, whatever their extension. Directories are
    searched recursively for catalogue files, in sorted order. Duplicates
    are dropped, keeping the first occurrence.

    Raises InvalidSourceList on errors.
    """
    sources: list[BuildSource] = []
    seen: set[str] = set()
    for path in paths:
        path = os.path.normpath(path)
        if os.path.isdir(path):
            sub_sources = find_sources_in_dir(path)
            if not sub_sources and not allow_empty_dir:
                raise InvalidSourceList(f"There are no catalogue files in directory '{path}'")
            found = sub_sources
        elif os.path.isfile(path):
            found = [BuildSource(path)]
        else:
            raise InvalidSourceList(f"can't read file '{path}': No such file or directory")
        for source in found:
            if source.path not in seen:
                seen.add(source.path)
                sources.append(source)
    return sources


def find_sources_in_dir(path: str) -> list[BuildSource]:
    sources = []
    for name in sorted(os.listdir(path)):
        # Skip hidden files and directories such as .git
        if name.startswith("."):
            continue
        subpath = os.path.join(path, name)
        if os.path.isdir(subpath):
            sources.extend(find_sources_in_dir(subpath))
        elif name.endswith(CATALOGUE_EXTENSIONS):
            sources.append(BuildSource(subpath))
    return sources
