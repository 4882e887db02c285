"""Input validation for multi-line editing."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class ValidationKind(enum.Enum):
    """Outcome of validating the current input."""

    INCOMPLETE = "incomplete"
    INVALID = "invalid"
    VALID = "valid"


@dataclass(frozen=True)
class ValidationResult:
    """A validation outcome with an optional message to show the user."""

    kind: ValidationKind
    message: str | None = None

    def is_valid(self) -> bool:
        return self.kind is ValidationKind.VALID

    def has_message(self) -> bool:
        return self.kind in (ValidationKind.VALID, ValidationKind.INVALID) and (
            self.message is not None
        )


class ValidationContext:
    """Gives a validator access to the user's input."""

    def __init__(self, text: str) -> None:
        self._text = text

    def input(self) -> str:
        """Return the user input."""
        return self._text


class Validator:
    """Decides whether the current input may be accepted."""

    def validate(self, ctx: ValidationContext) -> ValidationResult:
        """Accept any input by default."""
        return ValidationResult(ValidationKind.VALID)

    def validate_while_typing(self) -> bool:
        """Whether to validate on every keystroke rather than on Enter."""
        return False


class MatchingBracketValidator(Validator):
    """Rejects unbalanced brackets; unclosed ones mean the input is incomplete."""

    def validate(self, ctx: ValidationContext) -> ValidationResult:
        return validate_brackets(ctx.input())


_PAIRS = {")": "(", "]": "[", "}": "{"}


def validate_brackets(text: str) -> ValidationResult:
    """Check that (), [] and {} in `text` are properly nested."""
    stack: list[str] = []
    for c in text:
        if c in "([{":
            stack.append(c)
        elif c in _PAIRS:
            if not stack:
                return ValidationResult(
                    ValidationKind.INVALID,
                    f"Mismatched brackets: {c!r} is unpaired",
                )
            wanted = stack.pop()
            if wanted != _PAIRS[c]:
                return ValidationResult(
                    ValidationKind.INVALID,
                    f"Mismatched brackets: {wanted!r} is not properly closed",
                )
    if stack:
        return ValidationResult(ValidationKind.INCOMPLETE)
    return ValidationResult(ValidationKind.VALID)