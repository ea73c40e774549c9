"""The table of types declared outside the catalogue.

Names in this table resolve without a declaration in the catalogue. Each
entry maps a fully qualified type name to its number of type arguments, or
to None if that number is not known.
"""

from __future__ import annotations

import json
import os
import sys
from collections.abc import Mapping

from declcheck import defaults
from declcheck.options import Options

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

# Arity value meaning "unknown" in TOML tables, which have no null
UNKNOWN_ARITY = "?"


class ExternalTypesError(Exception):
    """The external type table cannot be read."""


def load_external_types(path: str) -> dict[str, int | None]:
    """Read an external type table from a TOML or JSON file.

    TOML files hold a [types] table; JSON files hold an object, optionally
    under a "types" key.
    """
    try:
        if os.path.splitext(path)[1] == ".json":
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        else:
            with open(path, "rb") as f:
                data = tomllib.load(f)
    except OSError as err:
        msg = f"Cannot read external type table {path}: {err.strerror}"
        raise ExternalTypesError(msg) from err
    except (ValueError, tomllib.TOMLDecodeError) as err:
        raise ExternalTypesError(f"{path}: {err}") from err
    if isinstance(data, dict) and isinstance(data.get("types"), dict):
        data = data["types"]
    if not isinstance(data, dict):
        raise ExternalTypesError(f"{path}: expected a table of type names")
    return parse_external_types(data, path)


def parse_external_types(data: Mapping[str, object], path: str) -> dict[str, int | None]:
    result: dict[str, int | None] = {}
    for name, arity in data.items():
        if arity is None or arity == UNKNOWN_ARITY:
            result[name.lstrip(":")] = None
        elif isinstance(arity, int) and not isinstance(arity, bool) and arity >= 0:
            result[name.lstrip(":")] = arity
        else:
            raise ExternalTypesError(
                f'{path}: invalid arity {arity!r} for "{name}" '
                f'(expected a non-negative integer or "{UNKNOWN_ARITY}")'
            )
    return result


def external_type_table(options: Options) -> dict[str, int | None]:
    """Return the external type table selected by options.

    The built-in table of core types is used unless disabled; entries read
    from options.external_types override it.
    """
    table: dict[str, int | None] = {}
    if options.builtin_types:
        table.update(defaults.BUILTIN_TYPES)
    if options.external_types:
        table.update(load_external_types(options.external_types))
    return table
