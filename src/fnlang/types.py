from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, List, Sequence

import numpy as np
from typing_extensions import TypeAlias

from .utils import recursion_headroom

if TYPE_CHECKING:
    from .runtime import Environment
    from .tree import SyntaxNode

# ---------- Function model ----------

@dataclass(frozen=True)
class Arity:
    """Parameter-count contract: exactly ``count`` or, if variadic, at least ``count``."""
    count: int
    variadic: bool = False

    @classmethod
    def exact(cls, count: int) -> Arity:
        return cls(count)

    @classmethod
    def at_least(cls, count: int) -> Arity:
        return cls(count, variadic=True)

    def accepts(self, count: int) -> bool:
        if self.variadic:
            return count >= self.count
        return count == self.count

    def __str__(self) -> str:
        if self.variadic:
            return f"at least {self.count}"
        return str(self.count)

@dataclass
class Function:
    name: str
    root: 'SyntaxNode'
    arity: Arity

    def call(self, params: Sequence[float], env: 'Environment') -> float:
        # Native double semantics: 1/0 is inf and log(-1) is nan, not an exception.
        with recursion_headroom(), np.errstate(all="ignore"):
            return float(self.root.eval(params, env))

    def __repr__(self) -> str:
        return f"<fn {self.name}/{self.arity}>"

BuiltinFn: TypeAlias = Callable[[Sequence[float]], float]

@dataclass(frozen=True)
class BuiltinFunction:
    fn: BuiltinFn
    arity: Arity

class Builtins:
    functions: Dict[str, BuiltinFunction] = {}
    constants: Dict[str, float] = {}

# ---------- Exceptions ----------

class EvalError(Exception):
    pass

class UndefinedIdentifier(EvalError):
    def __init__(self, name: str):
        super().__init__(f'No identifier named "{name}" is currently defined')
        self.name = name

class ArityMismatch(EvalError):
    def __init__(self, name: str, expected: Arity, got: int):
        super().__init__(
            f"The function {name} expects {expected} parameter(s); got {got}"
        )
        self.name = name
        self.expected = expected
        self.got = got

class RecursionTooDeep(EvalError):
    """Evaluation exhausted the interpreter stack (a definition calls itself)."""
    def __init__(self, name: str):
        super().__init__(f"Recursion too deep while evaluating {name}")
        self.name = name

def arity_names(functions: Dict[str, Function]) -> List[str]:
    """Render ``name/arity`` labels, sorted by name."""
    return [f"{name}/{fn.arity}" for name, fn in sorted(functions.items())]
