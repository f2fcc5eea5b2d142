"""
Lexer for fnlang

Tokenizes function definitions into a flat stream of ``lark.Token``.

Features:
- Single left-to-right pass, one token per ``next()`` call
- Position tracking (offset, line, column) for error spans
- Total over its input: unknown characters become one-character symbols
"""

from typing import List, Optional

from lark import Token

from .token_types import TT, is_digit, is_name_char, is_separator

# ============================================================================
# Lexer Implementation
# ============================================================================

class Lexer:
    """
    fnlang lexer.

    Three token kinds:
    - IDENT: letter or '_' followed by letters, digits, '_'
    - NUMBER: digits with at most one '.' and at most one 'e' exponent marker
    - SYMBOL: any other single character
    Characters at or below space separate tokens and are never emitted.
    """

    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self.line = 1
        self.column = 1

    # ========================================================================
    # Main Tokenization
    # ========================================================================

    def next(self) -> Optional[Token]:
        """Scan the next token, or return None once the input is exhausted"""
        self.skip_separators()

        if self.pos >= len(self.source):
            return None

        ch = self.peek()

        if is_name_char(ch):
            return self.scan_identifier()

        if is_digit(ch) or ch == '.':
            return self.scan_number()

        start, line, column = self.pos, self.line, self.column
        self.advance()
        return self.emit(TT.SYMBOL, start, line, column)

    def tokenize(self) -> List[Token]:
        """Tokenize the remaining source, return token list"""
        tokens = []

        while True:
            tok = self.next()
            if tok is None:
                return tokens
            tokens.append(tok)

    # ========================================================================
    # Token Scanners
    # ========================================================================

    def scan_identifier(self) -> Token:
        start, line, column = self.pos, self.line, self.column
        self.advance()

        while is_name_char(self.peek()) or is_digit(self.peek()):
            self.advance()

        return self.emit(TT.IDENT, start, line, column)

    def scan_number(self) -> Token:
        """
        Scan number literal.

        A leading '.' counts as the decimal point. A second '.' or a '.'
        after the exponent ends the number, and 'e' is only taken when a digit
        follows it (so "2e" is the number "2" then the identifier "e").
        """
        start, line, column = self.pos, self.line, self.column
        decimals = 1 if self.peek() == '.' else 0
        exponents = 0
        self.advance()

        while self.pos < len(self.source):
            ch = self.peek()
            if is_digit(ch):
                self.advance()
            elif ch == '.' and decimals == 0 and exponents == 0:
                decimals += 1
                self.advance()
            elif ch == 'e' and exponents == 0 and is_digit(self.peek(1)):
                exponents += 1
                self.advance()
            else:
                break

        return self.emit(TT.NUMBER, start, line, column)

    # ========================================================================
    # Utilities
    # ========================================================================

    def peek(self, offset: int = 0) -> str:
        """Look ahead at character"""
        idx = self.pos + offset
        if idx < len(self.source):
            return self.source[idx]
        return '\0'

    def advance(self) -> str:
        ch = self.source[self.pos]
        self.pos += 1

        if ch == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1

        return ch

    def skip_separators(self) -> None:
        while self.pos < len(self.source) and is_separator(self.peek()):
            self.advance()

    def emit(self, kind: TT, start: int, line: int, column: int) -> Token:
        return Token(
            kind.name,
            self.source[start:self.pos],
            start_pos=start,
            line=line,
            column=column,
            end_line=self.line,
            end_column=self.column,
            end_pos=self.pos,
        )

class LexError(Exception):
    """Lexical analysis error (the lexer is total, so nothing raises this yet)"""
    pass


def tokenize(source: str) -> List[Token]:
    """Convenience function to tokenize source"""
    return Lexer(source).tokenize()
