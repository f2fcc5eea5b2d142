from __future__ import annotations

import sys
import traceback
from pathlib import Path
from typing import List, Optional, Sequence

from .parser import ParseError
from .runtime import Environment
from .types import EvalError
from .utils import configure_logging, debug_py_trace_enabled, format_number, recursion_headroom

USAGE = "usage: fnlang [-f FILE]... [-d SOURCE]... [-e EXPR] [--tree NAME] [NAME [ARG...]]"

def run(source: str, name: Optional[str] = None, params: Sequence[float] = ()) -> Optional[float]:
    """Define ``source`` in a fresh environment and optionally call ``name``."""
    env = Environment()
    env.define(source)

    if name is None:
        return None

    return env.call(name, params)

def _load_source(arg: str) -> str:
    """
    Resolve a --file argument into source text.
    - "-" => read stdin.
    - Otherwise read the file at that path.
    """

    if arg == "-":
        data = sys.stdin.read()
        if not data:
            raise SystemExit("No input provided on stdin")
        return data

    candidate = Path(arg)
    if not candidate.exists():
        raise SystemExit(f"No such file: {arg}")

    return candidate.read_text(encoding="utf-8")

def _parse_number(token: str) -> float:
    try:
        return float(token)
    except ValueError:
        raise SystemExit(f"Expected a numeric argument, got {token!r}") from None

def main(argv: Optional[List[str]] = None) -> None:
    args = sys.argv[1:] if argv is None else argv
    configure_logging()

    if not args:
        from .repl import repl
        repl()
        return

    sources: List[str] = []
    tree_names: List[str] = []
    expressions: List[str] = []
    positional: List[str] = []
    it = iter(args)

    for token in it:
        if positional:
            # Everything after the function name is an argument, '-1.5' included.
            positional.append(token)
            continue

        if token in ("-f", "--file", "-d", "--define", "-e", "--eval", "--tree"):
            try:
                value = next(it)
            except StopIteration:
                raise SystemExit(f"{token} flag requires a value\n{USAGE}") from None

            if token in ("-f", "--file"):
                sources.append(_load_source(value))
            elif token in ("-d", "--define"):
                sources.append(value)
            elif token in ("-e", "--eval"):
                expressions.append(value)
            else:
                tree_names.append(value)
            continue

        if token in ("-h", "--help"):
            print(USAGE)
            return

        if token.startswith("-") and len(token) > 1:
            raise SystemExit(f"Unknown flag: {token}\n{USAGE}")

        positional.append(token)

    env = Environment()

    try:
        for source in sources:
            env.define(source)

        for name in tree_names:
            with recursion_headroom():
                print(env.get_function(name).root.to_tree().pretty(), end="")

        for expression in expressions:
            print(format_number(env.evaluate(expression)))

        if positional:
            name, *rest = positional
            print(format_number(env.call(name, [_parse_number(tok) for tok in rest])))
    except (ParseError, EvalError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        if debug_py_trace_enabled():
            traceback.print_exc()
        raise SystemExit(1) from None

if __name__ == "__main__":
    main()
