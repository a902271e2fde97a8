"""Tests for rendering options into mysqlsh literals."""

import ast

from mysqlsh_cluster.options import Options, format_options, quote


def test_empty_options_render_empty_dict():
    assert str(Options()) == "{}"
    assert format_options({}) == "{}"


def test_options_render_sorted_python_literal():
    options = Options(memberSslMode="REQUIRED", ipWhitelist="10.0.0.0/8", force=True)
    assert str(options) == "{'force': True, 'ipWhitelist': '10.0.0.0/8', 'memberSslMode': 'REQUIRED'}"


def test_rendered_options_round_trip():
    options = Options(
        label="node's \"primary\"",
        path="C:\\data\nnext",
        exitStateAction="ABORT_SERVER",
        autoRejoinTries=3,
        weight=0.5,
        interactive=False,
    )
    assert ast.literal_eval(str(options)) == dict(options)


def test_none_values_are_omitted():
    assert format_options({"password": None, "force": False}) == "{'force': False}"


def test_quote_escapes_quotes_and_backslashes():
    assert quote("it's") == "'it\\'s'"
    assert ast.literal_eval(quote("a\\'b\"c\td")) == "a\\'b\"c\td"


def test_non_finite_floats_render_as_float_calls():
    rendered = format_options({"a": float("inf"), "b": float("-inf"), "c": float("nan")})
    assert rendered == "{'a': float('inf'), 'b': float('-inf'), 'c': float('nan')}"
