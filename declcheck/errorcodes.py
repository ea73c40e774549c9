"""Classification of possible findings declcheck can report.

These can be used for filtering specific findings.
"""

from __future__ import annotations

from typing import Final

# All created error codes are implicitly stored in this dict.
error_codes: dict[str, ErrorCode] = {}


class ErrorCode:
    def __init__(
        self, code: str, kind: str, description: str, category: str, default_enabled: bool = True
    ) -> None:
        self.code = code
        # Finding kind as exposed in structured reports, e.g. "UnresolvedReference".
        self.kind = kind
        self.description = description
        self.category = category
        self.default_enabled = default_enabled
        error_codes[code] = self

    def __str__(self) -> str:
        return f"<ErrorCode {self.code}>"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ErrorCode):
            return False
        return self.code == other.code

    def __hash__(self) -> int:
        return hash((self.code,))


MALFORMED_SIGNATURE: Final = ErrorCode(
    "malformed-signature",
    "MalformedSignature",
    "Check that every declaration line matches the catalogue grammar",
    "Parse",
)
CONFLICTING_DECLARATION: Final = ErrorCode(
    "conflicting-declaration",
    "ConflictingDeclaration",
    "Check that members and types are not declared twice",
    "Build",
)
UNRESOLVED_REFERENCE: Final = ErrorCode(
    "unresolved-reference",
    "UnresolvedReference",
    "Check that every referenced type name is declared or known",
    "Check",
)
ARITY_MISMATCH: Final = ErrorCode(
    "arity-mismatch",
    "ArityMismatch",
    "Check the number of type arguments of generic instantiations",
    "Check",
)
UNVERIFIED_ARITY: Final = ErrorCode(
    "unverified-arity",
    "UnverifiedArity",
    "Note generic instantiations whose arity cannot be verified",
    "Check",
)

# Blocking error, cannot be disabled.
UNRECOVERABLE_INPUT: Final = ErrorCode(
    "unrecoverable-input",
    "UnrecoverableInput",
    "Report input whose block structure cannot be read",
    "Parse",
)
