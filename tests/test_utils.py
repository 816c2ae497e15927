import pytest

from sitefacts.config import ContentRules
from sitefacts.errors import ValidationError
from sitefacts.utils import (
    count_sentences,
    generate_id,
    is_valid_content,
    is_valid_url,
    normalize_newlines,
    normalize_url,
    truncate_string,
)

GOOD_TEXT = "Acme makes robots for warehouses. They are safe and fast to deploy!"


@pytest.mark.parametrize("raw,expected", [
    ("example.com", "https://example.com"),
    ("www.example.com/about", "https://www.example.com/about"),
    ("https://example.com", "https://example.com"),
    ("http://example.com", "http://example.com"),
    ("HTTPS://Example.com", "HTTPS://Example.com"),
    ("  example.com  ", "https://example.com"),
])
def test_normalize_url(raw, expected):
    assert normalize_url(raw) == expected


@pytest.mark.parametrize("raw", ["example.com", "https://example.com/team", "http://a.b"])
def test_normalize_url_is_idempotent(raw):
    once = normalize_url(raw)
    assert normalize_url(once) == once


@pytest.mark.parametrize("bad", ["", "   ", None, 42])
def test_normalize_url_rejects_invalid_input(bad):
    with pytest.raises(ValidationError):
        normalize_url(bad)


def test_valid_content_accepts_normal_text():
    assert is_valid_content(GOOD_TEXT)


def test_valid_content_rejects_short_text():
    assert not is_valid_content("Too short. Really.")


def test_valid_content_rejects_long_text():
    rules = ContentRules(max_length=60)
    assert not is_valid_content(GOOD_TEXT, rules)


@pytest.mark.parametrize("indicator", ["Loading...", "Please wait", "Loading"])
def test_valid_content_rejects_loading_indicators(indicator):
    assert not is_valid_content(f"{GOOD_TEXT} {indicator}")


def test_valid_content_requires_two_sentences():
    text = "Acme makes robots for warehouses and ships them all over the world"
    assert count_sentences(text) == 1
    assert not is_valid_content(text)


def test_valid_content_handles_non_string():
    assert not is_valid_content(None)
    assert not is_valid_content(123)


def test_count_sentences_ignores_punctuation_runs():
    assert count_sentences("Hello!!! How are you?? Fine...") == 3


def test_is_valid_url():
    assert is_valid_url("https://example.com/about")
    assert not is_valid_url("example.com")
    assert not is_valid_url(None)


def test_normalize_newlines():
    assert normalize_newlines("a\r\nb\rc\n") == "a\nb\nc\n"
    with pytest.raises(ValidationError):
        normalize_newlines("")


def test_truncate_string():
    assert truncate_string("abcdef", 3) == "abc..."
    assert truncate_string("abc", 3) == "abc"
    with pytest.raises(ValidationError):
        truncate_string("abc", -1)


def test_generate_id_is_unique():
    assert generate_id() != generate_id()
