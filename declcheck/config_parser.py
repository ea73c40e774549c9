from __future__ import annotations

import argparse
import configparser
import os
import sys
from collections.abc import Mapping, MutableMapping
from typing import Any, Callable, Final, TextIO

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from declcheck import defaults
from declcheck.error_formatter import OUTPUT_CHOICES
from declcheck.errorcodes import error_codes
from declcheck.options import CONFIG_OPTIONS, Options

_INI_PARSER_CALLABLE = Callable[[Any], object]


def expand_path(path: str) -> str:
    """Expand the user home directory and any environment variables contained within
    the provided path.
    """

    return os.path.expandvars(os.path.expanduser(path))


def check_output(choice: str) -> str:
    choices = ["text", *OUTPUT_CHOICES]
    if choice not in choices:
        raise argparse.ArgumentTypeError(
            "invalid choice '{}' (choose from {})".format(
                choice, ", ".join(f"'{x}'" for x in choices)
            )
        )
    return choice


def check_error_codes(codes: list[str]) -> set[str]:
    invalid = sorted(c for c in codes if c not in error_codes)
    if invalid:
        raise argparse.ArgumentTypeError(f"Invalid error code(s): {', '.join(invalid)}")
    return set(codes)


def split_commas(value: str) -> list[str]:
    items = [p.strip() for p in value.split(",")]
    return [p for p in items if p]


def check_jobs(value: object) -> int:
    try:
        jobs = int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        raise argparse.ArgumentTypeError(f"invalid number of jobs '{value}'") from None
    if jobs < 1:
        raise argparse.ArgumentTypeError(f"number of jobs must be at least 1, not {jobs}")
    return jobs


# For most options, the type of the default value set in options.py is
# sufficient, and we don't have to do anything here.  This table
# exists to specify types for values initialized to None or container
# types.
ini_config_types: Final[dict[str, _INI_PARSER_CALLABLE]] = {
    "external_types": expand_path,
    "junit_xml": expand_path,
    "output": check_output,
    "jobs": check_jobs,
    "disable_error_code": lambda s: check_error_codes(split_commas(s)),
    "enable_error_code": lambda s: check_error_codes(split_commas(s)),
}

# Reuse the ini_config_types and overwrite the diff
toml_config_types: Final[dict[str, _INI_PARSER_CALLABLE]] = ini_config_types.copy()
toml_config_types.update(
    {
        "disable_error_code": lambda s: check_error_codes(
            split_commas(s) if isinstance(s, str) else [str(p).strip() for p in s]
        ),
        "enable_error_code": lambda s: check_error_codes(
            split_commas(s) if isinstance(s, str) else [str(p).strip() for p in s]
        ),
    }
)

# Config keys whose values are stored under a different Options attribute
option_destinations: Final = {
    "disable_error_code": "disabled_error_codes",
    "enable_error_code": "enabled_error_codes",
}


def parse_config_file(
    options: Options, filename: str | None, stderr: TextIO | None = None
) -> None:
    """Parse a config file into an Options object.

    Errors are written to stderr but are not fatal.

    If filename is None, fall back to default config files.
    """
    stderr = stderr or sys.stderr

    if filename is not None:
        config_files: tuple[str, ...] = (filename,)
        if not os.path.exists(expand_path(filename)):
            print(f"{filename}: No such file or directory", file=stderr)
    else:
        config_files = tuple(defaults.CONFIG_FILES)

    for name in config_files:
        config_file = expand_path(name)
        if not os.path.exists(config_file):
            continue
        explicit = filename is not None
        if config_file.endswith(".toml"):
            parsed = parse_toml_config_file(options, config_file, stderr, explicit=explicit)
        else:
            parsed = parse_ini_config_file(options, config_file, stderr, explicit=explicit)
        if parsed:
            break
    options.process_error_codes()


def parse_toml_config_file(
    options: Options, filename: str, stderr: TextIO, *, explicit: bool
) -> bool:
    try:
        with open(filename, "rb") as f:
            table: MutableMapping[str, Any] = tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as err:
        print(f"{filename}: {err}", file=stderr)
        return False

    tool = table.get("tool")
    if not isinstance(tool, dict) or "declcheck" not in tool:
        if explicit:
            print(f"{filename}: No 'tool.declcheck' table in config file", file=stderr)
        return False
    options.config_file = filename
    section = tool["declcheck"]
    if not isinstance(section, dict):
        print(f"{filename}: [tool.declcheck] must be a table", file=stderr)
        return False
    updates = parse_section(f"{filename}: [tool.declcheck]: ", options, section, stderr, toml=True)
    for k, v in updates.items():
        setattr(options, k, v)
    return True


def parse_ini_config_file(
    options: Options, filename: str, stderr: TextIO, *, explicit: bool
) -> bool:
    parser = configparser.RawConfigParser()
    try:
        parser.read(filename)
    except configparser.Error as err:
        print(f"{filename}: {err}", file=stderr)
        return False

    if "declcheck" not in parser:
        if explicit or os.path.basename(filename) not in defaults.SHARED_CONFIG_FILES:
            print(f"{filename}: No [declcheck] section in config file", file=stderr)
        return False
    options.config_file = filename
    prefix = f"{filename}: [declcheck]: "
    updates = parse_section(prefix, options, parser["declcheck"], stderr, toml=False)
    for k, v in updates.items():
        setattr(options, k, v)
    return True


def parse_section(
    prefix: str,
    template: Options,
    section: Mapping[str, Any],
    stderr: TextIO = sys.stderr,
    *,
    toml: bool,
) -> dict[str, object]:
    """Parse one section of a config file.

    Returns a dict of option values encountered, keyed by Options attribute.
    Unrecognized keys are reported and recorded in template.unused_configs.
    """
    config_types = toml_config_types if toml else ini_config_types
    results: dict[str, object] = {}
    for key in section:
        invert = False
        options_key = key
        if key not in CONFIG_OPTIONS:
            if key.startswith("no_") and key[3:] in CONFIG_OPTIONS:
                options_key = key[3:]
                invert = True
            else:
                print(f"{prefix}Unrecognized option: {key} = {section[key]}", file=stderr)
                template.unused_configs.add(key)
                continue
        ct: Any = config_types.get(options_key)
        if ct is None:
            ct = type(getattr(template, options_key))
        try:
            if ct is bool:
                v = parse_bool(section, key, toml)
                if invert:
                    v = not v
            elif invert:
                print(f"{prefix}Can not invert non-boolean key {options_key}", file=stderr)
                continue
            else:
                v = ct(section[key])
        except (argparse.ArgumentTypeError, ValueError) as err:
            print(f"{prefix}{key}: {err}", file=stderr)
            continue
        results[option_destinations.get(options_key, options_key)] = v
    return results


def parse_bool(section: Mapping[str, Any], key: str, toml: bool) -> bool:
    value = section[key]
    if toml:
        if not isinstance(value, bool):
            raise ValueError(f"Not a boolean: {value!r}")
        return value
    assert isinstance(section, configparser.SectionProxy)
    result = section.getboolean(key)
    assert result is not None
    return result
