"""Tests for function identity strategies."""

import pytest

from funcsync.sync.matcher import FunctionMatcher, NameArityKey, NameKey, get_function_key
from funcsync.sync.models import FunctionUnit


def make_function(name, arity=0, start=0):
    return FunctionUnit(
        name=name,
        arity=arity,
        node_type="function_declaration",
        start_byte=start,
        end_byte=start + 10,
        start_line=1,
    )


def test_name_match_is_exact_and_case_sensitive():
    functions = [make_function("Add"), make_function("add", start=20)]

    match = FunctionMatcher().find(functions, make_function("add"))

    assert match is functions[1]
    assert FunctionMatcher().find(functions, make_function("ad")) is None


def test_first_match_wins():
    functions = [make_function("add", start=0), make_function("add", start=50)]

    assert FunctionMatcher().find(functions, make_function("add")).start_byte == 0


def test_name_arity_key_distinguishes_parameter_count():
    functions = [make_function("add", arity=1), make_function("add", arity=2, start=30)]
    matcher = FunctionMatcher(NameArityKey())

    assert matcher.find(functions, make_function("add", arity=2)).start_byte == 30
    assert matcher.find(functions, make_function("add", arity=3)) is None


def test_get_function_key():
    assert isinstance(get_function_key("name"), NameKey)
    assert isinstance(get_function_key("name_arity"), NameArityKey)
    with pytest.raises(ValueError):
        get_function_key("content_hash")
