"""Tests for @copyTo / @generatedFrom parsing."""

from funcsync.sync.annotations import (
    get_copy_to,
    get_generated_from,
    parse_tags,
    rewrite_copy_to,
)
from funcsync.sync.models import Annotation

DOC = """/**
 * Adds two numbers.
 * @param a first
 * @copyTo lib/b.js , lib/c.js
 */"""


class TestGetCopyTo:
    def test_multiple_destinations_are_split_and_trimmed(self):
        assert get_copy_to(DOC) == ["lib/b.js", "lib/c.js"]

    def test_absent_tag_returns_none(self):
        assert get_copy_to("/**\n * Nothing here.\n */") is None

    def test_single_line_comment_close_is_cut(self):
        assert get_copy_to("/** @copyTo other.js */") == ["other.js"]

    def test_tag_at_end_of_text(self):
        assert get_copy_to("@copyTo a.js,b.js") == ["a.js", "b.js"]

    def test_empty_fragments_are_dropped(self):
        assert get_copy_to("/**\n * @copyTo a.js,, \n */") == ["a.js"]

    def test_tag_without_destinations(self):
        assert get_copy_to("/**\n * @copyTo\n */") == []

    def test_longer_tag_name_does_not_match(self):
        assert get_copy_to("/**\n * @copyToAll a.js\n */") is None


class TestParseTags:
    def test_block_tags_in_order(self):
        tags = parse_tags(DOC)
        assert [tag.tag for tag in tags] == ["param", "copyTo"]
        assert tags[1].fragments == ("lib/b.js", "lib/c.js")

    def test_single_line_comment(self):
        assert parse_tags("/** @generatedFrom /web/a.js */") == (
            Annotation(tag="generatedFrom", fragments=("/web/a.js",)),
        )

    def test_prose_is_ignored(self):
        assert parse_tags("/**\n * Just prose, no tags.\n */") == ()


class TestGetGeneratedFrom:
    def test_returns_first_fragment(self):
        tags = parse_tags("/**\n * @generatedFrom /web/src/a.js\n */")
        assert get_generated_from(tags) == "/web/src/a.js"

    def test_missing_tag(self):
        assert get_generated_from(parse_tags(DOC)) is None

    def test_tag_without_value(self):
        assert get_generated_from(parse_tags("/**\n * @generatedFrom\n */")) is None


class TestRewriteCopyTo:
    def test_copy_to_becomes_generated_from(self):
        rewritten = rewrite_copy_to(DOC, "/web/src/a.js")

        assert "@copyTo" not in rewritten
        assert " * @generatedFrom /web/src/a.js\n" in rewritten
        assert rewritten.startswith("/**\n * Adds two numbers.\n * @param a first\n")
        assert rewritten.endswith(" */")

    def test_single_line_comment_keeps_close(self):
        assert rewrite_copy_to("/** @copyTo b.js */", "/p/a.js") == "/** @generatedFrom /p/a.js */"

    def test_text_without_tag_is_unchanged(self):
        text = "/**\n * Plain.\n */"
        assert rewrite_copy_to(text, "/p/a.js") == text

    def test_crlf_line_ending_is_kept(self):
        text = "/**\r\n * @copyTo b.js\r\n */"
        assert rewrite_copy_to(text, "/p/a.js") == "/**\r\n * @generatedFrom /p/a.js\r\n */"

    def test_crlf_single_line_comment(self):
        assert rewrite_copy_to("/** @copyTo b.js */\r", "/p/a.js") == "/** @generatedFrom /p/a.js */\r"
