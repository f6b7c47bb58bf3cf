"""Tests for the HN text sanitizer."""

import re

import pytest

from hn_slackbot.text import TRUNCATION_MARKER, clean_and_limit_text

TAG = re.compile(r"<[^>]*>")

SAMPLES = [
    "<p>Hello <b>world</b></p>",
    "Plain text with   lots\n\nof   whitespace",
    '<a href="https://example.com" rel="nofollow">link</a> and more',
    "I&#x27;d say <i>maybe</i>.<p>Second paragraph<pre><code>x = 1</code></pre>",
    "a" * 1200,
    "<p>" + "word " * 300 + "</p>",
]


class TestCleanAndLimitText:
    """Test cases for clean_and_limit_text."""

    @pytest.mark.parametrize("value", ["", None])
    def test_empty_input_returns_empty_string(self, value):
        assert clean_and_limit_text(value) == ""

    def test_strips_tags_and_collapses_whitespace(self):
        result = clean_and_limit_text("<p>Hello <b>world</b></p>\n\n<p>Again</p>")
        assert result == "Hello world Again"

    def test_paragraph_tags_do_not_join_words(self):
        assert clean_and_limit_text("first<p>second") == "first second"

    def test_entities_are_left_untouched(self):
        assert clean_and_limit_text("I&#x27;m here") == "I&#x27;m here"

    def test_short_text_is_not_truncated(self):
        assert clean_and_limit_text("short", max_chars=10) == "short"

    def test_text_at_limit_is_not_truncated(self):
        assert clean_and_limit_text("x" * 10, max_chars=10) == "x" * 10

    def test_long_text_is_truncated_with_marker(self):
        result = clean_and_limit_text("x" * 20, max_chars=10)
        assert result == "x" * 10 + TRUNCATION_MARKER

    def test_default_limit_is_500(self):
        result = clean_and_limit_text("y" * 600)
        assert len(result) == 500 + len(TRUNCATION_MARKER)

    def test_only_tags_yields_empty_string(self):
        assert clean_and_limit_text("<p></p><br/>") == ""

    @pytest.mark.parametrize("value", SAMPLES)
    @pytest.mark.parametrize("max_chars", [10, 300, 500])
    def test_output_has_no_tags_and_respects_limit(self, value, max_chars):
        result = clean_and_limit_text(value, max_chars)
        assert TAG.search(result) is None
        assert len(result) <= max_chars + len(TRUNCATION_MARKER)

    @pytest.mark.parametrize("value", SAMPLES)
    def test_idempotent_below_limit(self, value):
        once = clean_and_limit_text(value, max_chars=5000)
        assert clean_and_limit_text(once, max_chars=5000) == once
