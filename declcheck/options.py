from __future__ import annotations

import pprint
from typing import Final

# Options that may be set from a config file, with their types.
CONFIG_OPTIONS: Final = {
    "external_types",
    "builtin_types",
    "warn_unverified_arity",
    "disable_error_code",
    "enable_error_code",
    "output",
    "junit_xml",
    "jobs",
    "show_error_codes",
    "error_summary",
    "show_traceback",
    "verbosity",
    "warn_unused_configs",
}


class Options:
    """Options collected from flags and config files."""

    def __init__(self) -> None:
        # -- input options --
        # Extra table of externally known types (TOML or JSON file)
        self.external_types: str | None = None
        # Use the built-in table of core type names
        self.builtin_types = True

        # -- check options --
        # Emit a note for generic instantiations whose arity is unknown
        self.warn_unverified_arity = True
        # Error codes (as strings) to enable or disable
        self.enabled_error_codes: set[str] = set()
        self.disabled_error_codes: set[str] = set()

        # -- build options --
        # Number of catalogue files validated in parallel
        self.jobs = 1

        # -- output options --
        self.output = "text"  # text|json|github
        self.junit_xml: str | None = None
        self.show_error_codes = True
        self.error_summary = True
        self.print_catalogue = False
        self.verbosity = 0  # More verbose messages (for troubleshooting)

        # -- development options --
        self.show_traceback = False
        # Don't catch internal exceptions; useful for tests
        self.raise_exceptions = False

        # Config file that the options were read from, if any
        self.config_file: str | None = None
        # Config keys that were not understood
        self.unused_configs: set[str] = set()
        self.warn_unused_configs = False

    def process_error_codes(self) -> None:
        """Normalize enabled/disabled code sets: an explicitly enabled code wins."""
        self.disabled_error_codes -= self.enabled_error_codes

    def snapshot(self) -> dict[str, object]:
        """Produce a comparable snapshot of this Option"""
        return dict(self.__dict__)

    def __repr__(self) -> str:
        return f"Options({pprint.pformat(self.snapshot())})"
