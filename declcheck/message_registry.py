"""Message constants for generating findings.

Literal messages should be defined as constants in this module so they won't get out of sync
if used in more than one place, and so that they can be easily introspected.
"""

from __future__ import annotations

from typing import Final, NamedTuple

from declcheck import errorcodes as codes


class ErrorMessage(NamedTuple):
    value: str
    code: codes.ErrorCode | None = None

    def format(self, *args: object, **kwargs: object) -> ErrorMessage:
        return ErrorMessage(self.value.format(*args, **kwargs), code=self.code)


# Parse phase
UNRECOGNIZED_DECLARATION: Final = ErrorMessage(
    "Unrecognized declaration", codes.MALFORMED_SIGNATURE
)
MALFORMED_DECLARATION: Final = ErrorMessage(
    'Malformed declaration "{}": {}', codes.MALFORMED_SIGNATURE
)
CONTINUATION_WITHOUT_METHOD: Final = ErrorMessage(
    "Overload continuation without a preceding method declaration", codes.MALFORMED_SIGNATURE
)
DECLARATION_OUTSIDE_TYPE: Final = ErrorMessage(
    "{} must be declared inside a class, module or interface", codes.MALFORMED_SIGNATURE
)
UNTERMINATED_BLOCK: Final = ErrorMessage(
    'Unterminated block "{} {}" (missing "end")', codes.UNRECOVERABLE_INPUT
)
UNEXPECTED_END: Final = ErrorMessage(
    'Unexpected "end" with no open block', codes.UNRECOVERABLE_INPUT
)
UNTERMINATED_BRACKET: Final = ErrorMessage(
    'Unterminated bracket "{}" at end of file', codes.UNRECOVERABLE_INPUT
)
UNDECODABLE_INPUT: Final = ErrorMessage("Cannot decode file: {}", codes.UNRECOVERABLE_INPUT)

# Build phase
CONFLICTING_MEMBER: Final = ErrorMessage(
    'Conflicting declaration of {} "{}" in "{}" (previously declared on line {})',
    codes.CONFLICTING_DECLARATION,
)
CONFLICTING_TYPE_KIND: Final = ErrorMessage(
    '"{}" is declared as {} but was previously declared as {} on line {}',
    codes.CONFLICTING_DECLARATION,
)
CONFLICTING_SUPERCLASS: Final = ErrorMessage(
    'Superclass of "{}" conflicts with declaration on line {}', codes.CONFLICTING_DECLARATION
)
CONFLICTING_TYPE_PARAMS: Final = ErrorMessage(
    'Type parameters of "{}" conflict with declaration on line {}', codes.CONFLICTING_DECLARATION
)
CONFLICTING_TYPE_ALIAS: Final = ErrorMessage(
    'Conflicting declaration of type alias "{}" (previously declared on line {})',
    codes.CONFLICTING_DECLARATION,
)
CONFLICTING_IVAR: Final = ErrorMessage(
    'Conflicting declaration of instance variable "{}" in "{}" (previously declared on line {})',
    codes.CONFLICTING_DECLARATION,
)

# Check phase
NAME_NOT_DEFINED: Final = ErrorMessage('Name "{}" is not defined', codes.UNRESOLVED_REFERENCE)
ALIAS_TARGET_NOT_DEFINED: Final = ErrorMessage(
    'Alias target "{}" is not a member of "{}"', codes.UNRESOLVED_REFERENCE
)
WRONG_TYPE_ARG_COUNT: Final = ErrorMessage(
    '"{}" expects {}, but {} given', codes.ARITY_MISMATCH
)
UNVERIFIED_TYPE_ARG_COUNT: Final = ErrorMessage(
    'Cannot verify the number of type arguments for "{}"', codes.UNVERIFIED_ARITY
)
