"""Tests for tree-sitter parsing and copy-on-write edits."""

import pytest

from funcsync.sync.exceptions import ParseFailure

SOURCE = b"""var counter = 0;

/**
 * Adds two numbers.
 * @copyTo lib/b.js
 */
function add(a, b) {
  return a + b;
}

// plain comment
function noop() {}

/** @generatedFrom /web/src/util.js */
export function greet(name) {
  return "hi " + name;
}
"""


class TestParse:
    def test_top_level_functions_in_order(self, model):
        unit = model.parse(SOURCE, "/web/src/a.js")

        assert [f.name for f in unit.functions] == ["add", "noop", "greet"]
        assert unit.language == "javascript"

    def test_doc_comment_is_attached(self, model):
        add, noop, greet = model.parse(SOURCE, "/web/src/a.js").functions

        assert add.doc is not None
        assert add.doc.text.startswith("/**")
        assert add.doc.end_line == 6
        assert [tag.tag for tag in add.doc.tags] == ["copyTo"]

        # line comments are not documentation
        assert noop.doc is None

        assert greet.doc.tags[0].fragments == ("/web/src/util.js",)

    def test_arity_and_lines(self, model):
        add, noop, greet = model.parse(SOURCE, "/web/src/a.js").functions

        assert (add.arity, noop.arity, greet.arity) == (2, 0, 1)
        assert add.start_line == 7

    def test_exported_function_spans_export_statement(self, model):
        unit = model.parse(SOURCE, "/web/src/a.js")
        greet = unit.functions[2]

        assert greet.node_type == "export_statement"
        assert unit.body_text(greet).startswith("export function greet(name)")

    def test_nested_functions_are_not_top_level(self, model):
        unit = model.parse(b"function outer() {\n  function inner() {}\n}\n", "/web/a.js")
        assert [f.name for f in unit.functions] == ["outer"]

    def test_syntax_error_raises_parse_failure(self, model):
        with pytest.raises(ParseFailure) as exc_info:
            model.parse(b"function broken( {\n", "/web/a.js")
        assert exc_info.value.path == "/web/a.js"

    def test_unsupported_file_raises_parse_failure(self, model):
        with pytest.raises(ParseFailure):
            model.parse(b"def f(): pass\n", "/web/a.py")

    def test_typescript(self, model):
        unit = model.parse(
            b"/** @copyTo b.ts */\nexport function greet(name: string): string {\n  return name;\n}\n",
            "/web/a.ts",
        )
        assert unit.language == "typescript"
        assert [(f.name, f.arity) for f in unit.functions] == [("greet", 1)]


class TestEdits:
    def test_remove_function_drops_doc_and_following_whitespace(self, model):
        unit = model.parse(SOURCE, "/web/src/a.js")
        edited = model.remove_function(unit, unit.functions[0])

        assert [f.name for f in edited.functions] == ["noop", "greet"]
        assert edited.text.startswith("var counter = 0;\n\n// plain comment\nfunction noop() {}")
        assert "Adds two numbers" not in edited.text

    def test_edits_do_not_mutate_original(self, model):
        unit = model.parse(SOURCE, "/web/src/a.js")
        model.remove_function(unit, unit.functions[0])

        assert unit.source == SOURCE
        assert len(unit.functions) == 3

    def test_remove_last_function_leaves_single_newline(self, model):
        unit = model.parse(b"var x = 1;\n\nfunction f() {}\n\n\n", "/web/a.js")
        edited = model.remove_function(unit, unit.functions[0])
        assert edited.text == "var x = 1;\n"

    def test_remove_only_function_leaves_empty_file(self, model):
        unit = model.parse(b"/** doc */\nfunction f() {}\n", "/web/a.js")
        assert model.remove_function(unit, unit.functions[0]).text == ""

    def test_append_separates_with_blank_line(self, model):
        unit = model.parse(b"var x = 1;\n\n\n", "/web/a.js")
        edited = model.append_function(unit, "function f() {}")

        assert edited.text == "var x = 1;\n\nfunction f() {}\n"
        assert [f.name for f in edited.functions] == ["f"]

    def test_append_to_empty_file(self, model):
        unit = model.parse(b"", "/web/a.js")
        assert model.append_function(unit, "function f() {}").text == "function f() {}\n"

    def test_remove_then_append_is_stable(self, model):
        text = b"var x = 1;\n\n/**\n * @generatedFrom /web/a.js\n */\nfunction f() {}\n"
        unit = model.parse(text, "/web/b.js")
        function = unit.functions[0]

        edited = model.append_function(
            model.remove_function(unit, function), unit.function_text(function)
        )
        assert edited.source == text
        assert model.serialize(edited) == text.decode("utf-8")
