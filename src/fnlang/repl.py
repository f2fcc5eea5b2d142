"""Interactive REPL for fnlang, powered by prompt_toolkit."""

from __future__ import annotations

import re
import sys
import traceback
from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.shortcuts import clear

from .lexer import tokenize
from .parser import ParseError
from .repl_highlight import FnLangLexer
from .runtime import Environment
from .token_types import is_symbol
from .types import EvalError, arity_names
from .utils import (
    configure_logging, debug_py_trace_enabled, format_number, recursion_headroom, set_debug_py_trace,
)

# Zero-width and invisible characters to strip from input.
_INVISIBLE_RE = re.compile("[\u200b\u200c\u200d\ufeff\u00a0\r]")

# Slash commands: name => (description, argument_hint).
_SLASH_CMDS = {
    "/clear": ("Clear the terminal screen", ""),
    "/list": ("List defined functions with their arity", ""),
    "/tree": ("Show the syntax tree of a function", "NAME"),
    "/py-traceback": ("Toggle Python traceback on errors", "[on|off]"),
    "/reset": ("Reset the REPL environment", ""),
}


class _SlashCompleter(Completer):
    """Autocomplete slash commands on the primary prompt."""

    def get_completions(self, document, complete_event):
        text = document.text_before_cursor
        if not text.startswith("/"):
            return

        for cmd, (desc, hint) in _SLASH_CMDS.items():
            if cmd.startswith(text):
                yield Completion(
                    cmd,
                    start_position=-len(text),
                    display_meta=desc,
                )


def _handle_slash(line: str, env_box: list[Environment]) -> bool:
    """Handle slash commands. Returns True if the line was a command."""
    stripped = line.strip()
    if not stripped.startswith("/"):
        return False

    parts = stripped.split(None, 1)
    cmd = parts[0]
    arg = parts[1].strip() if len(parts) > 1 else ""

    if cmd == "/clear":
        clear()
        return True

    if cmd == "/list":
        for label in arity_names(env_box[0].functions):
            print(label)
        return True

    if cmd == "/tree":
        if not arg:
            print("Usage: /tree NAME", file=sys.stderr)
            return True

        fn = env_box[0].get_function_no_throw(arg)
        if fn is None:
            print(f"Error: No identifier named \"{arg}\" is currently defined", file=sys.stderr)
            return True

        with recursion_headroom():
            print(fn.root.to_tree().pretty(), end="")
        return True

    if cmd == "/py-traceback":
        if arg.lower() in ("on", "1", "true", "yes"):
            set_debug_py_trace(True)
        elif arg.lower() in ("off", "0", "false", "no"):
            set_debug_py_trace(False)
        elif arg == "":
            set_debug_py_trace(not debug_py_trace_enabled())
        else:
            print("Usage: /py-traceback [on|off]", file=sys.stderr)
            return True

        state = "on" if debug_py_trace_enabled() else "off"
        print(f"Python traceback: {state}")
        return True

    if cmd == "/reset":
        env_box[0] = Environment()
        print("Environment reset.")
        return True

    print(f"Unknown command: {cmd}", file=sys.stderr)
    return True


def _normalize(text: str) -> str:
    """Strip invisible characters from input."""
    return _INVISIBLE_RE.sub("", text)


def _is_definition(text: str) -> bool:
    """Definitions contain an '=' token; anything else is an expression."""
    return any(is_symbol(tok, "=") for tok in tokenize(text))


def repl_eval(text: str, env: Environment) -> str | None:
    """Define or evaluate one input. Returns the text to echo, if any."""
    if _is_definition(text):
        env.define(text)
        return None

    return format_number(env.evaluate(text))


def repl() -> None:
    """Interactive read-eval-print loop with prompt_toolkit."""
    configure_logging()
    # Use a mutable box so /reset can swap the environment.
    env_box: list[Environment] = [Environment()]

    session: PromptSession[str] = PromptSession(
        history=InMemoryHistory(),
        lexer=FnLangLexer(lambda: env_box[0].functions),
        completer=_SlashCompleter(),
        complete_while_typing=True,
    )

    print("fnlang repl (Ctrl-D to exit, / for commands)")

    while True:
        try:
            text = session.prompt(">>> ")
        except EOFError:
            print()
            break
        except KeyboardInterrupt:
            print("KeyboardInterrupt")
            continue

        text = _normalize(text)
        if not text.strip():
            continue

        # Slash command?
        if _handle_slash(text, env_box):
            continue

        try:
            output = repl_eval(text, env_box[0])
        except (ParseError, EvalError) as exc:
            print(f"Error: {exc}", file=sys.stderr)
            if debug_py_trace_enabled():
                print("\nPython traceback:", file=sys.stderr)
                print("".join(traceback.format_tb(exc.__traceback__)), file=sys.stderr, end="")
            continue

        if output is not None:
            print(output)
