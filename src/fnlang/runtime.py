from __future__ import annotations

import importlib
import logging
from typing import Dict, List, Optional, Sequence, Union

from .parser import Parser
from .tree import Builtin, Constant, SyntaxNode
from .types import (
    Arity, Function, BuiltinFunction, BuiltinFn, Builtins,
    EvalError, UndefinedIdentifier, ArityMismatch, RecursionTooDeep,
)
from .utils import recursion_headroom

logger = logging.getLogger(__name__)

_STDLIB_INITIALIZED = False

def init_stdlib() -> None:
    """Load stdlib modules (idempotent) so register_builtin hooks run."""
    global _STDLIB_INITIALIZED

    if _STDLIB_INITIALIZED:
        return

    importlib.import_module("fnlang.stdlib")
    _STDLIB_INITIALIZED = True

def register_builtin(name: str, *, arity: Union[int, Arity] = 1):
    if isinstance(arity, int):
        arity = Arity.exact(arity)

    def dec(fn: BuiltinFn):
        Builtins.functions[name] = BuiltinFunction(fn=fn, arity=arity)
        return fn

    return dec

def register_constant(name: str, value: float) -> None:
    Builtins.constants[name] = value

class Environment:
    """
    Function registry: name -> Function.

    Seeded with the registered built-ins. Definitions may reference names that
    do not exist yet; call sites resolve lazily and are unbound again whenever
    the name they point at is redefined.
    """

    def __init__(self) -> None:
        init_stdlib()
        self.functions: Dict[str, Function] = {}

        for name, value in Builtins.constants.items():
            self.add_function(name, Constant(value), Arity.exact(0))

        for name, std in Builtins.functions.items():
            self.add_function(name, Builtin(name, std.fn), std.arity)

    # ---------------- Public API ----------------

    def define(self, source: str) -> None:
        """Parse ``;``-separated definitions and install each one as it is parsed."""
        Parser(self).add(source)

    def call(self, name: str, params: Sequence[float]) -> float:
        fn = self.get_function(name)

        if not fn.arity.accepts(len(params)):
            raise ArityMismatch(name, fn.arity, len(params))

        try:
            return fn.call([float(p) for p in params], self)
        except RecursionError:
            raise RecursionTooDeep(name) from None

    def evaluate(self, expression: str) -> float:
        """Evaluate a parameterless expression against the current definitions."""
        root = Parser(self).parse_expression(expression)

        try:
            return Function("<expr>", root, Arity.exact(0)).call([], self)
        except RecursionError:
            raise RecursionTooDeep(expression.strip()) from None

    def has(self, name: str) -> bool:
        return name in self.functions

    def names(self) -> List[str]:
        return sorted(self.functions)

    # ---------------- Registry ----------------

    def add_function(self, name: str, root: SyntaxNode, arity: Arity) -> Function:
        if name in self.functions:
            self.on_override(name)

            # Includes the entry being replaced: a recursive definition caches itself.
            with recursion_headroom():
                for fn in self.functions.values():
                    fn.root.unlink(name)

        fn = Function(name, root, arity)
        self.functions[name] = fn
        logger.debug("defined %s with %s parameter(s)", name, arity)
        return fn

    def on_override(self, name: str) -> None:
        """Hook run before an existing definition is replaced."""
        logger.debug("redefining %s", name)

    def get_function_no_throw(self, name: str) -> Optional[Function]:
        return self.functions.get(name)

    def get_function(self, name: str) -> Function:
        fn = self.get_function_no_throw(name)

        if fn is None:
            raise UndefinedIdentifier(name)

        return fn

__all__ = [
    "Environment", "EvalError", "UndefinedIdentifier", "ArityMismatch",
    "RecursionTooDeep", "init_stdlib", "register_builtin", "register_constant",
]
