import pytest

from sanitizer import FORBIDDEN_CHAR_REPLACEMENT, normalize_path, sanitize

_SAMPLES = [
    "Plain Title",
    "What is 1/2 of A\\B?",
    "Graphs: A Survey; Part #2",
    'He said "hi" & left [again] {twice} <now> | *star* ~tilde~ $5 100% @home ^up \'q\' !',
    "a//b///c",
    "/leading and trailing/",
    "non\u00a0breaking",
    "Greek question mark \u037e here",
    "",
]


@pytest.mark.parametrize("text", _SAMPLES)
def test_sanitize_is_idempotent(text: str) -> None:
    once = sanitize(text)
    assert sanitize(once) == once


@pytest.mark.parametrize("text", _SAMPLES)
def test_no_forbidden_character_survives(text: str) -> None:
    result = sanitize(text)
    assert not any(char in result for char in FORBIDDEN_CHAR_REPLACEMENT)


def test_sanitize_uses_look_alike_substitutes() -> None:
    assert sanitize("A/B: C?") == "A⁄B﹕ C﹖"


def test_plain_title_is_unchanged() -> None:
    assert sanitize("Deep Learning for Graphs.") == "Deep Learning for Graphs."


def test_normalize_path_collapses_separators() -> None:
    assert normalize_path("/Conference//ICF\\2021/") == "Conference/ICF/2021"


def test_normalize_path_replaces_non_breaking_spaces() -> None:
    assert normalize_path("Jane\u00a0Doe") == "Jane Doe"
