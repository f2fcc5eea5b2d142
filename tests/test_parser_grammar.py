from __future__ import annotations

import sys

import pytest
from lark import Token, Tree

from fnlang.tree import Call, Constant, ParamRef
from fnlang.utils import recursion_headroom
from tests.support.harness import (
    Arity,
    EmptyExpression,
    Environment,
    InvalidName,
    MalformedParameterList,
    MissingEquals,
    ParseError,
    Parser,
    PathologicallyDeepNesting,
    UnbalancedParens,
    UnparsableSpan,
    UnrecognizedOperator,
    define_env,
)


def _parse(source: str, params=()):
    return Parser(Environment()).parse_expression(source, params)


def _const(value: float) -> Tree:
    return Tree("const", [Token("NUMBER", repr(value))])


def _op(symbol: str, *children: Tree) -> Tree:
    return Tree("op", [Token("SYMBOL", symbol), *children])


# ---------- tree shapes ----------

SHAPE_CASES = [
    pytest.param("1+2*3", _op("+", _const(1.0), _op("*", _const(2.0), _const(3.0))), id="mul-binds-tighter"),
    pytest.param("2-3-4", _op("-", _op("-", _const(2.0), _const(3.0)), _const(4.0)), id="minus-left-assoc"),
    pytest.param("2^3^2", _op("^", _op("^", _const(2.0), _const(3.0)), _const(2.0)), id="pow-left-assoc"),
    pytest.param("-3-2", _op("-", _op("-", _const(3.0)), _const(2.0)), id="leading-negate"),
    pytest.param("3*-2", _op("*", _const(3.0), _op("-", _const(2.0))), id="negate-after-operator"),
    pytest.param("-2^2", _op("^", _op("-", _const(2.0)), _const(2.0)), id="negate-binds-before-pow"),
    pytest.param("((7))", _const(7.0), id="redundant-parens"),
    pytest.param("(1+2)*3", _op("*", _op("+", _const(1.0), _const(2.0)), _const(3.0)), id="grouping"),
]


@pytest.mark.parametrize("source, expected", SHAPE_CASES)
def test_tree_shapes(source: str, expected: Tree) -> None:
    assert _parse(source).to_tree() == expected


def test_parameters_become_positional_refs() -> None:
    node = _parse("b", ["a", "b"])

    assert isinstance(node, ParamRef)
    assert node.index == 1


def test_unknown_name_becomes_unresolved_call() -> None:
    node = _parse("foo")

    assert isinstance(node, Call)
    assert node.name == "foo"
    assert node.children == []
    assert node.resolved is None


def test_named_call_collects_arguments() -> None:
    node = _parse("max(x, min(1, 2), 3)", ["x"])

    assert isinstance(node, Call)
    assert node.name == "max"
    assert len(node.children) == 3
    assert isinstance(node.children[0], ParamRef)
    assert isinstance(node.children[1], Call) and node.children[1].name == "min"
    assert isinstance(node.children[2], Constant)


def test_operator_calls_are_prebound() -> None:
    node = _parse("1+x", ["x"])

    assert isinstance(node, Call)
    assert node.fixed
    assert node.resolved is not None


# ---------- statements ----------

def test_definition_records_exact_arity(env: Environment) -> None:
    env.define("f(a, b, c) = a + b + c; k = 4")

    assert env.get_function("f").arity == Arity.exact(3)
    assert env.get_function("k").arity == Arity.exact(0)


def test_empty_parameter_list_declares_zero_parameters(env: Environment) -> None:
    env.define("f() = 2")

    assert env.get_function("f").arity == Arity.exact(0)
    assert env.call("f", []) == 2.0


def test_empty_statements_are_skipped(env: Environment) -> None:
    env.define(";a = 1;; b = 2;")

    assert env.call("a", []) == 1.0
    assert env.call("b", []) == 2.0


def test_failed_batch_keeps_earlier_statements(env: Environment) -> None:
    with pytest.raises(EmptyExpression):
        env.define("a = 1; b = ; c = 3")

    assert env.has("a")
    assert not env.has("b")
    assert not env.has("c")


def test_statements_may_span_lines() -> None:
    env = define_env("sq(x) =\n  x * x;\ncube(x) = sq(x) * x")

    assert env.call("cube", [3]) == 27.0


# ---------- errors ----------

ERROR_CASES = [
    pytest.param("f(x) x+1", MissingEquals, id="missing-equals"),
    pytest.param("=3", InvalidName, id="empty-name"),
    pytest.param("3=4", InvalidName, id="numeric-name"),
    pytest.param("f x = 1", MalformedParameterList, id="missing-open-paren"),
    pytest.param("f(x = 1", MalformedParameterList, id="missing-close-paren"),
    pytest.param("f(x y)=1", MalformedParameterList, id="missing-comma"),
    pytest.param("f(1)=1", MalformedParameterList, id="numeric-parameter"),
    pytest.param("f(,)=1", MalformedParameterList, id="comma-without-parameter"),
    pytest.param("f=", EmptyExpression, id="empty-body"),
    pytest.param("f=()", EmptyExpression, id="empty-parens"),
    pytest.param("f=1+", EmptyExpression, id="nothing-after-operator"),
    pytest.param("f=*2", EmptyExpression, id="nothing-before-operator"),
    pytest.param("f=foo()", EmptyExpression, id="call-without-arguments"),
    pytest.param("f=max(1,,2)", EmptyExpression, id="empty-argument"),
    pytest.param("f=(1", UnbalancedParens, id="unclosed-paren"),
    pytest.param("f=1)", UnbalancedParens, id="stray-close-paren"),
    pytest.param("f=g(1)(2)", UnbalancedParens, id="chained-call"),
    pytest.param("f=1,2", UnrecognizedOperator, id="top-level-comma"),
    pytest.param("f=1#2", UnrecognizedOperator, id="unknown-operator"),
    pytest.param("f=a=b", UnrecognizedOperator, id="second-equals"),
    pytest.param("f=#", UnparsableSpan, id="lone-symbol"),
    pytest.param("f=2 3", UnparsableSpan, id="juxtaposed-numbers"),
    pytest.param("f=3(4)", UnparsableSpan, id="number-called"),
    pytest.param("f=--1", UnparsableSpan, id="double-negate"),
]


@pytest.mark.parametrize("source, exc", ERROR_CASES)
def test_parse_errors(source: str, exc: type) -> None:
    with pytest.raises(exc):
        define_env(source)


def test_every_parse_error_is_a_parse_error() -> None:
    for param in ERROR_CASES:
        assert issubclass(param.values[1], ParseError)


def test_error_message_names_token_position() -> None:
    with pytest.raises(EmptyExpression) as exc_info:
        define_env("f=1+")

    assert str(exc_info.value) == "Expected something after the operator: + at line 1, col 4"
    assert str(exc_info.value.token) == "+"


def test_error_message_quotes_source_span() -> None:
    with pytest.raises(UnparsableSpan) as exc_info:
        define_env("f(x) = x  y")

    assert "Cannot parse this portion of the expression: x  y" in str(exc_info.value)


def test_empty_body_message_quotes_preceding_text() -> None:
    with pytest.raises(EmptyExpression) as exc_info:
        define_env("g(x) =")

    assert "Empty expression following 'g(x) ='" in str(exc_info.value)


# ---------- depth guard ----------

def test_nesting_at_the_limit_parses(env: Environment) -> None:
    depth = 10000
    env.define("f=" + "(" * depth + "1" + ")" * depth)

    assert env.call("f", []) == 1.0


def test_nesting_past_the_limit_is_rejected(env: Environment) -> None:
    depth = 10001

    with pytest.raises(PathologicallyDeepNesting):
        env.define("f=" + "(" * depth + "1" + ")" * depth)

    assert not env.has("f")


def test_deep_call_nesting_parses_and_evaluates(env: Environment) -> None:
    depth = 1500
    env.define("f(x)=" + "abs(" * depth + "x" + ")" * depth)

    assert env.call("f", [-2]) == 2.0


def test_long_operator_chain_parses_and_evaluates(env: Environment) -> None:
    env.define("f(x)=" + "+".join(["x"] * 600))

    assert env.call("f", [1.0]) == 600.0
    assert env.evaluate("f(0.5)") == 300.0


def test_deep_bodies_survive_redefinition_and_rendering(env: Environment) -> None:
    env.define("g(x)=x; f(x)=" + "g(" * 1500 + "x" + ")" * 1500)
    env.define("g(x)=x+1")

    assert env.call("f", [1]) == 1501.0

    with recursion_headroom():
        assert env.get_function("f").root.to_tree().data == "call"


def test_recursion_limit_is_restored(env: Environment) -> None:
    before = sys.getrecursionlimit()

    env.define("f(x)=" + "+".join(["x"] * 600))
    env.call("f", [1])

    assert sys.getrecursionlimit() == before
