from __future__ import annotations

import logging
import os
import sys
from contextlib import contextmanager
from typing import Iterator

_TRUTHY = ("1", "true", "yes", "on")

DEBUG_PY_TRACE_VAR = "FNLANG_DEBUG_PY_TRACE"
LOG_LEVEL_VAR = "FNLANG_LOG_LEVEL"

# Deepest paren, operator or call nesting accepted in a definition body.
MAX_DEPTH = 10000

# Parsing and evaluating one nesting level takes up to three interpreter frames.
RECURSION_LIMIT = 4 * MAX_DEPTH + 1000


def debug_py_trace_enabled() -> bool:
    """Whether the CLI and REPL should print Python tracebacks after errors."""
    return os.environ.get(DEBUG_PY_TRACE_VAR, "").strip().lower() in _TRUTHY


def set_debug_py_trace(enabled: bool) -> None:
    if enabled:
        os.environ[DEBUG_PY_TRACE_VAR] = "1"
    else:
        os.environ.pop(DEBUG_PY_TRACE_VAR, None)


def log_level() -> int:
    name = os.environ.get(LOG_LEVEL_VAR, "WARNING").strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.WARNING


def configure_logging() -> None:
    """Stderr logging for the command-line entry points; the library never calls this."""
    logging.basicConfig(
        level=log_level(),
        format="[fnlang] [%(levelname)s] %(name)s: %(message)s",
    )


def format_number(value: float) -> str:
    if value.is_integer() and abs(value) < 1e16:
        return str(int(value))
    return repr(value)


@contextmanager
def recursion_headroom(limit: int = RECURSION_LIMIT) -> Iterator[None]:
    """Raise the interpreter recursion limit to at least ``limit`` for the block."""
    previous = sys.getrecursionlimit()

    if previous < limit:
        sys.setrecursionlimit(limit)

    try:
        yield
    finally:
        sys.setrecursionlimit(previous)
