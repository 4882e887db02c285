import pytest

from lineedit.validate import (
    MatchingBracketValidator,
    ValidationContext,
    ValidationKind,
    ValidationResult,
    Validator,
    validate_brackets,
)


@pytest.mark.parametrize("text", ["", "abc", "(a[b]{c})", "f(x) + g[y]"])
def test_balanced_is_valid(text):
    result = validate_brackets(text)
    assert result.kind is ValidationKind.VALID
    assert result.message is None
    assert result.is_valid()
    assert not result.has_message()


@pytest.mark.parametrize("text", ["(", "[{", "(a[b]"])
def test_unclosed_is_incomplete(text):
    result = validate_brackets(text)
    assert result.kind is ValidationKind.INCOMPLETE
    assert not result.is_valid()
    assert not result.has_message()


def test_mismatched_closing():
    result = validate_brackets("(]")
    assert result.kind is ValidationKind.INVALID
    assert result.message == "Mismatched brackets: '(' is not properly closed"
    assert result.has_message()


def test_unpaired_closing():
    result = validate_brackets("a)")
    assert result.kind is ValidationKind.INVALID
    assert result.message == "Mismatched brackets: ')' is unpaired"


def test_default_validator_accepts_anything():
    validator = Validator()
    result = validator.validate(ValidationContext("(("))
    assert result.is_valid()
    assert validator.validate_while_typing() is False


def test_context_input():
    assert ValidationContext("hello").input() == "hello"


def test_matching_bracket_validator():
    validator = MatchingBracketValidator()
    assert validator.validate(ValidationContext("{x}")).is_valid()
    assert validator.validate(ValidationContext("{x")).kind is ValidationKind.INCOMPLETE
    assert validator.validate(ValidationContext("}")).kind is ValidationKind.INVALID


def test_has_message_with_valid_message():
    assert ValidationResult(ValidationKind.VALID, "ok").has_message()
    assert not ValidationResult(ValidationKind.INCOMPLETE, "ignored").has_message()