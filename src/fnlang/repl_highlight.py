"""prompt_toolkit lexer for live fnlang syntax highlighting in the REPL."""

from __future__ import annotations

from typing import Callable, Collection

from prompt_toolkit.document import Document
from prompt_toolkit.formatted_text import StyleAndTextTuples
from prompt_toolkit.lexers import Lexer

from .lexer import Lexer as FnLexer
from .token_types import OPERATOR_SYMBOLS, PUNCTUATION_SYMBOLS, is_ident, is_number

# Map highlight groups → prompt_toolkit style strings.
GROUP_STYLE = {
    "number": "ansimagenta",
    "identifier": "",
    "function": "bold ansiyellow",
    "operator": "",
    "punctuation": "",
    "error": "bold ansired",
}


def _group(tok, known: Collection[str]) -> str:
    if is_number(tok):
        return "number"

    if is_ident(tok):
        return "function" if tok.value in known else "identifier"

    if tok.value in OPERATOR_SYMBOLS:
        return "operator"

    if tok.value in PUNCTUATION_SYMBOLS:
        return "punctuation"

    return "error"


def _highlight_line(line: str, known: Collection[str]) -> StyleAndTextTuples:
    result: StyleAndTextTuples = []
    pos = 0

    for tok in FnLexer(line).tokenize():
        if tok.start_pos > pos:
            result.append(("", line[pos:tok.start_pos]))

        result.append((GROUP_STYLE[_group(tok, known)], tok.value))
        pos = tok.end_pos

    if pos < len(line):
        result.append(("", line[pos:]))

    return result if result else [("", line)]


class FnLangLexer(Lexer):
    """prompt_toolkit Lexer that highlights fnlang source using the fnlang lexer.

    ``known`` is consulted on every render, so names defined during the session
    light up as soon as they exist.
    """

    def __init__(self, known: Callable[[], Collection[str]] = lambda: ()):
        self.known = known

    def lex_document(self, document: Document) -> Callable[[int], StyleAndTextTuples]:
        lines = document.lines
        known = self.known()

        # Pre-compute highlights for all lines.
        cache: dict[int, StyleAndTextTuples] = {}

        def get_line(lineno: int) -> StyleAndTextTuples:
            if lineno not in cache:
                if lineno < len(lines):
                    cache[lineno] = _highlight_line(lines[lineno], known)
                else:
                    cache[lineno] = [("", "")]

            return cache[lineno]

        return get_line
