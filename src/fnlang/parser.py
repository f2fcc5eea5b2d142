"""
Parser for fnlang

Turns ``name(p1, p2) = body; ...`` source into syntax trees and installs them
into an Environment.

Strategy:
- Statements: split the token stream on ';', find the first '=' for the header
- Bodies: precedence by rescan. Each token window is scanned once at paren
  depth 0 for its lowest-precedence operator, split there, and each side is
  parsed the same way. Among equal-lowest candidates the right-most wins,
  which makes every binary operator (including '^') left-associative.
- Names in a body that are not parameters become unresolved calls, bound
  lazily at evaluation time
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

from lark import Token

from .lexer import tokenize
from .token_types import is_digit, is_ident, is_name_char, is_number, is_symbol
from .tree import BINARY_OPERATORS, NEGATE, Call, Constant, ParamRef, SyntaxNode
from .types import Arity
from .utils import MAX_DEPTH, recursion_headroom

if TYPE_CHECKING:
    from .runtime import Environment

logger = logging.getLogger(__name__)

UNARY_MINUS_PRECEDENCE = 16

PRECEDENCE: Dict[str, int] = {
    '^': 12,
    '*': 8,
    '/': 8,
    '%': 8,
    '+': 4,
    '-': 4,
}

# ============================================================================
# Errors
# ============================================================================

class ParseError(Exception):
    """Parse error with position info"""
    def __init__(self, message: str, token: Optional[Token] = None):
        self.message = message
        self.token = token
        super().__init__(
            f"{message} at line {token.line}, col {token.column}" if token is not None else message
        )

class UnbalancedParens(ParseError):
    pass

class MissingEquals(ParseError):
    pass

class InvalidName(ParseError):
    pass

class EmptyExpression(ParseError):
    pass

class MalformedParameterList(ParseError):
    pass

class UnrecognizedOperator(ParseError):
    pass

class PathologicallyDeepNesting(ParseError):
    pass

class UnparsableSpan(ParseError):
    pass

def _ends_operand(tok: Token) -> bool:
    """True when a '-' after ``tok`` is binary rather than a negation."""
    c = tok.value[0]
    return is_digit(c) or is_name_char(c) or c == ')' or c == '.'

def _atof(text: str) -> float:
    """Value of the longest numeric prefix of ``text``; 0.0 when there is none (``.``, ``.e5``)."""
    for end in range(len(text), 0, -1):
        try:
            return float(text[:end])
        except ValueError:
            continue

    return 0.0

# ============================================================================
# Parser
# ============================================================================

class Parser:
    """
    Parses definitions into ``env``.

    Windows over ``self.tokens`` are half-open ``[start, end)`` ranges.
    """

    def __init__(self, env: Environment):
        self.env = env
        self.source = ""
        self.tokens: List[Token] = []
        self.closers: Dict[int, int] = {}

    def load(self, source: str) -> None:
        self.source = source
        self.tokens = tokenize(source)

        # Index of the ')' closing each '('; unmatched parens have no entry.
        self.closers = {}
        opened: List[int] = []
        for i, tok in enumerate(self.tokens):
            if is_symbol(tok, '('):
                opened.append(i)
            elif is_symbol(tok, ')') and opened:
                self.closers[opened.pop()] = i

    # ========================================================================
    # Top-Level Parsing
    # ========================================================================

    def add(self, source: str) -> None:
        """
        Parse every ';'-separated definition in ``source``.

        Each definition is installed as soon as it parses, so a failure leaves
        the earlier statements of the same batch defined.
        """
        self.load(source)
        start = 0

        for i, tok in enumerate(self.tokens):
            if is_symbol(tok, ';'):
                self.parse_statement(start, i)
                start = i + 1

        self.parse_statement(start, len(self.tokens))

    def parse_expression(self, source: str, params: Sequence[str] = ()) -> SyntaxNode:
        """Parse a lone body over ``params`` without installing anything."""
        self.load(source)
        return self.parse_guarded(list(params), 0, len(self.tokens), None)

    def parse_statement(self, start: int, end: int) -> Optional[SyntaxNode]:
        """Parse ``name[(params)] = body``; empty statements are skipped."""
        if start >= end:
            return None

        eq = start
        while eq < end and not is_symbol(self.tokens[eq], '='):
            eq += 1

        if eq >= end:
            raise MissingEquals("All functions must contain an '='", self.tokens[start])

        if eq == start:
            raise InvalidName("All functions must have a name", self.tokens[start])

        name_tok = self.tokens[start]
        if not is_ident(name_tok):
            raise InvalidName(
                f"Expected a function name to start with a letter or '_', got '{name_tok.value}'",
                name_tok,
            )

        params: List[str] = []
        if eq > start + 1:
            params = self.parse_params(name_tok, start + 1, eq)

        root = self.parse_guarded(params, eq + 1, end, name_tok)
        self.env.add_function(name_tok.value, root, Arity.exact(len(params)))
        logger.debug("parsed %s(%s)", name_tok.value, ", ".join(params))
        return root

    def parse_params(self, name_tok: Token, start: int, end: int) -> List[str]:
        """Parse ``( p1, p2, ... )`` occupying ``[start, end)``; a trailing comma is tolerated."""
        if not is_symbol(self.tokens[start], '('):
            raise MalformedParameterList(f"Expected a '(' after {name_tok.value}", self.tokens[start])

        if end - start < 2 or not is_symbol(self.tokens[end - 1], ')'):
            raise MalformedParameterList("Expected a ')' before the '='", self.tokens[end - 1])

        params: List[str] = []
        i = start + 1
        stop = end - 1

        while i < stop:
            tok = self.tokens[i]
            if not is_ident(tok):
                raise MalformedParameterList(
                    "Expected a parameter name to start with a letter or '_'", tok
                )
            params.append(tok.value)
            i += 1

            if i < stop:
                if not is_symbol(self.tokens[i], ','):
                    raise MalformedParameterList(
                        "Expected a comma between parameter names", self.tokens[i]
                    )
                i += 1

        return params

    def parse_guarded(self, params: List[str], start: int, end: int, anchor: Optional[Token]) -> SyntaxNode:
        try:
            with recursion_headroom():
                return self.parse_body(params, start, end, 0)
        except RecursionError:
            raise PathologicallyDeepNesting(
                "Pathologically deep nesting: expression is too deep to parse", anchor
            ) from None

    # ========================================================================
    # Expressions
    # ========================================================================

    def parse_body(self, params: List[str], start: int, end: int, depth: int) -> SyntaxNode:
        self.check_depth(depth, start)

        if start >= end:
            raise EmptyExpression(
                f"Empty expression following '{self.text_before(start)}'",
                self.tokens[start - 1] if start > 0 else None,
            )

        # Strip enclosing parens in a loop so deep nesting costs no stack.
        while self.encloses(start, end):
            start += 1
            end -= 1
            depth += 1
            self.check_depth(depth, start)

            if start >= end:
                raise EmptyExpression(
                    f"Empty expression following '{self.text_before(start)}'",
                    self.tokens[start - 1],
                )

        if end - start == 1:
            return self.parse_atom(params, self.tokens[start])

        index = self.find_operator(start, end)
        if index is not None:
            return self.parse_operator(params, start, end, index, depth + 1)

        # Named function: name ( arg, arg, ... )
        name_tok = self.tokens[start]
        if (end - start < 3
                or not is_ident(name_tok)
                or not is_symbol(self.tokens[start + 1], '(')
                or not is_symbol(self.tokens[end - 1], ')')):
            raise UnparsableSpan(
                f"Cannot parse this portion of the expression: {self.span_text(start, end)}",
                name_tok,
            )

        call = Call(name_tok.value)
        self.parse_arguments(params, call, start + 2, end - 1, depth + 1)
        return call

    def parse_atom(self, params: List[str], tok: Token) -> SyntaxNode:
        if is_ident(tok):
            for i, param in enumerate(params):
                if param == tok.value:
                    return ParamRef(i, param)

            # A constant or other parameterless function, bound at evaluation.
            return Call(tok.value)

        if is_number(tok):
            return Constant(_atof(tok.value))

        raise UnparsableSpan(f"Cannot parse symbol: {tok.value}", tok)

    def find_operator(self, start: int, end: int) -> Optional[int]:
        """Index of the lowest-precedence depth-0 operator (right-most on ties)."""
        priority = 100
        index = None
        nests = 0

        for i in range(start, end):
            tok = self.tokens[i]

            if is_symbol(tok, '('):
                nests += 1
            elif is_symbol(tok, ')'):
                nests -= 1
                if nests < 0:
                    raise UnbalancedParens("Unbalanced parentheses: unmatched ')'", tok)
            elif nests == 0 and not is_ident(tok) and not is_number(tok):
                c = tok.value
                if c == '-' and (i == start or not _ends_operand(self.tokens[i - 1])):
                    prec = UNARY_MINUS_PRECEDENCE
                elif c in PRECEDENCE:
                    prec = PRECEDENCE[c]
                else:
                    raise UnrecognizedOperator(f"Unrecognized operator: {c}", tok)

                if prec <= priority:
                    priority = prec
                    index = i

        if nests != 0:
            raise UnbalancedParens("Unbalanced parentheses: missing ')'", self.tokens[start])

        return index

    def parse_operator(self, params: List[str], start: int, end: int, index: int, depth: int) -> SyntaxNode:
        op_tok = self.tokens[index]
        left = self.parse_body(params, start, index, depth) if index > start else None
        right = self.parse_body(params, index + 1, end, depth) if index < end - 1 else None

        if left is None:
            if right is not None and op_tok.value == '-':
                return Call.bound(NEGATE, [right])
            raise EmptyExpression(f"Expected something before the operator: {op_tok.value}", op_tok)

        if right is None:
            raise EmptyExpression(f"Expected something after the operator: {op_tok.value}", op_tok)

        return Call.bound(BINARY_OPERATORS[op_tok.value], [left, right])

    def parse_arguments(self, params: List[str], call: Call, start: int, end: int, depth: int) -> None:
        """Split ``[start, end)`` on depth-0 commas, one child per argument."""
        arg_start = start
        nests = 0

        for i in range(start, end):
            tok = self.tokens[i]

            if is_symbol(tok, '('):
                nests += 1
            elif is_symbol(tok, ')'):
                nests -= 1
                if nests < 0:
                    raise UnbalancedParens("Unbalanced parentheses: unmatched ')'", tok)
            elif nests == 0 and is_symbol(tok, ','):
                call.add_child(self.parse_body(params, arg_start, i, depth))
                arg_start = i + 1

        call.add_child(self.parse_body(params, arg_start, end, depth))

    # ========================================================================
    # Utilities
    # ========================================================================

    def check_depth(self, depth: int, start: int) -> None:
        if depth > MAX_DEPTH:
            anchor = self.tokens[start] if start < len(self.tokens) else None
            raise PathologicallyDeepNesting("Pathologically deep nesting", anchor)

    def encloses(self, start: int, end: int) -> bool:
        """True when the '(' at ``start`` is closed by the ')' at ``end - 1``."""
        if end - start < 2:
            return False

        return self.closers.get(start) == end - 1

    def span_text(self, start: int, end: int) -> str:
        return self.source[self.tokens[start].start_pos:self.tokens[end - 1].end_pos]

    def text_before(self, start: int) -> str:
        if start < len(self.tokens):
            return self.source[:self.tokens[start].start_pos].strip()
        return self.source.strip()
