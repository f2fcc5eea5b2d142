"""
Token Types for fnlang

Shared between lexer, parser and the REPL highlighter to avoid circular
dependencies. Tokens themselves are ``lark.Token`` instances whose ``type`` is
the name of one of the ``TT`` members.
"""

from enum import Enum, auto
from typing import Optional

from lark import Token


class TT(Enum):
    """Token kinds"""

    IDENT = auto()
    NUMBER = auto()
    SYMBOL = auto()


# Symbols that carry meaning in the grammar. Anything else lexes fine and is
# rejected by the parser.
OPERATOR_SYMBOLS = frozenset("+-*/%^")
PUNCTUATION_SYMBOLS = frozenset("(),;=")


def is_name_char(c: str) -> bool:
    """ASCII letter or underscore (digits may follow, but never lead)."""
    return ('a' <= c <= 'z') or ('A' <= c <= 'Z') or c == '_'


def is_digit(c: str) -> bool:
    return '0' <= c <= '9'


def is_separator(c: str) -> bool:
    return c <= ' '


def is_ident(tok: Token) -> bool:
    return tok.type == TT.IDENT.name


def is_number(tok: Token) -> bool:
    return tok.type == TT.NUMBER.name


def is_symbol(tok: Token, text: Optional[str] = None) -> bool:
    if tok.type != TT.SYMBOL.name:
        return False
    return text is None or tok.value == text
