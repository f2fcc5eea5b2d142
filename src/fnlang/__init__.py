"""fnlang: define named math functions in text, then evaluate them."""

from .lexer import LexError, Lexer, tokenize
from .parser import (
    EmptyExpression,
    InvalidName,
    MalformedParameterList,
    MissingEquals,
    ParseError,
    Parser,
    PathologicallyDeepNesting,
    UnbalancedParens,
    UnparsableSpan,
    UnrecognizedOperator,
)
from .runtime import Environment
from .types import Arity, ArityMismatch, EvalError, Function, RecursionTooDeep, UndefinedIdentifier

__all__ = [
    "Arity",
    "ArityMismatch",
    "EmptyExpression",
    "Environment",
    "EvalError",
    "Function",
    "InvalidName",
    "LexError",
    "Lexer",
    "MalformedParameterList",
    "MissingEquals",
    "ParseError",
    "Parser",
    "PathologicallyDeepNesting",
    "RecursionTooDeep",
    "UnbalancedParens",
    "UndefinedIdentifier",
    "UnparsableSpan",
    "UnrecognizedOperator",
    "tokenize",
]
