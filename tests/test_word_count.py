"""Tests for word_count.py markdown cleaning and counting."""

from __future__ import annotations

import pytest

from word_count import clean_markdown, count_words


# ── clean_markdown ──────────────────────────


class TestCleanMarkdown:
    def test_documented_example(self):
        text = "# Title\n\nHello **world**, this is *markdown*."
        assert clean_markdown(text) == "Title Hello world, this is markdown."

    def test_removes_fenced_code_blocks(self):
        text = "before\n```python\nx = 1\nprint(x)\n```\nafter"
        assert clean_markdown(text) == "before after"

    def test_removes_tilde_fences(self):
        text = "before\n~~~\ncode here\n~~~\nafter"
        assert clean_markdown(text) == "before after"

    def test_unclosed_fence_runs_to_end(self):
        assert clean_markdown("intro\n```\nnever closed") == "intro"

    def test_removes_inline_code(self):
        assert clean_markdown("run `make test` now") == "run now"

    def test_removes_images(self):
        assert clean_markdown("see ![diagram](img/a.png) here") == "see here"

    def test_keeps_link_text(self):
        assert clean_markdown("read [the docs](https://x.y/z) first") == "read the docs first"

    def test_strips_list_and_quote_prefixes(self):
        text = "- one\n* two\n+ three\n1. four\n> five"
        assert clean_markdown(text) == "one two three four five"

    def test_strips_strikethrough(self):
        assert clean_markdown("~~old~~ new") == "old new"

    def test_collapses_whitespace(self):
        assert clean_markdown("a   b\n\n\tc") == "a b c"

    def test_non_string_returns_empty(self):
        assert clean_markdown(None) == ""
        assert clean_markdown(42) == ""

    @pytest.mark.parametrize(
        "text",
        [
            "# Title\n\nHello **world**",
            "*# nested* heading",
            "> - quoted list item",
            "plain words only",
        ],
    )
    def test_idempotent(self, text):
        once = clean_markdown(text)
        assert clean_markdown(once) == once


# ── count_words ─────────────────────────────


class TestCountWords:
    def test_documented_example(self):
        assert count_words("# Title\n\nHello **world**, this is *markdown*.") == 6

    def test_empty_string(self):
        assert count_words("") == 0

    def test_whitespace_only(self):
        assert count_words("   \n\t ") == 0

    def test_non_string_is_zero(self):
        assert count_words(b"bytes are not text") == 0
        assert count_words(None) == 0

    def test_code_does_not_count(self):
        assert count_words("one two\n```\nthree four five\n```") == 2

    def test_plain_text(self):
        assert count_words("the quick brown fox") == 4
