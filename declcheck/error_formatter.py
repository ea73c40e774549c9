"""Defines the different custom formats in which declcheck can output."""

import json
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from declcheck.errors import Finding


class ErrorFormatter(ABC):
    """Base class to define how findings are formatted before being printed."""

    @abstractmethod
    def report_error(self, error: "Finding") -> str:
        raise NotImplementedError


class JSONFormatter(ErrorFormatter):
    """Formatter for basic JSON output format."""

    def report_error(self, error: "Finding") -> str:
        """Prints out the findings as simple, static JSON lines."""
        return json.dumps(error.serialize())


class GitHubFormatter(ErrorFormatter):
    """Formatter for GitHub Actions output format."""

    def report_error(self, error: "Finding") -> str:
        """Prints out the findings as GitHub Actions annotations."""
        command = "error" if error.severity == "error" else "notice"
        title = "declcheck"
        if error.errorcode is not None:
            title = f"declcheck ({error.errorcode.code})"

        message = f"{error.message}."
        if error.related_lines:
            message += "%0A%0ASee also line"
            message += "s " if len(error.related_lines) > 1 else " "
            message += ", ".join(str(line) for line in error.related_lines)

        return (
            f"::{command} "
            f"file={error.file_path},"
            f"line={error.line},"
            f"col={max(error.column, 0)},"
            f"title={title}"
            f"::{message}"
        )


OUTPUT_CHOICES = {"json": JSONFormatter(), "github": GitHubFormatter()}
