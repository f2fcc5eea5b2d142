"""Built-in constants and functions registered via fnlang.runtime."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np
from scipy import special

from .runtime import register_builtin, register_constant
from .types import Arity

register_constant("e", math.e)
register_constant("pi", math.pi)

# One-argument functions that map straight onto a ufunc.
_UNARY = {
    "abs": np.abs,
    "acos": np.arccos,
    "asin": np.arcsin,
    "atan": np.arctan,
    "ceil": np.ceil,
    "cos": np.cos,
    "cosh": np.cosh,
    "floor": np.floor,
    "gamma": special.gamma,
    "lgamma": special.gammaln,
    "log": np.log,
    "sin": np.sin,
    "sinh": np.sinh,
    "sqrt": np.sqrt,
    "tan": np.tan,
    "tanh": np.tanh,
}

# Only registered when the numeric backend provides them.
_OPTIONAL_UNARY = (
    ("acosh", np, "arccosh"),
    ("asinh", np, "arcsinh"),
    ("atanh", np, "arctanh"),
    ("erf", special, "erf"),
)

def _unary(ufunc):
    def apply(params: Sequence[float]) -> float:
        return ufunc(params[0])

    return apply

for _name, _ufunc in _UNARY.items():
    register_builtin(_name)(_unary(_ufunc))

for _name, _module, _attr in _OPTIONAL_UNARY:
    _ufunc = getattr(_module, _attr, None)
    if _ufunc is not None:
        register_builtin(_name)(_unary(_ufunc))

@register_builtin("normal")
def std_normal(params: Sequence[float]) -> float:
    x = params[0]
    return 0.39894228 * np.exp(-0.5 * x * x)

@register_builtin("sign")
def std_sign(params: Sequence[float]) -> float:
    return 1.0 if params[0] >= 0 else -1.0

@register_builtin("ifzero", arity=3)
def std_ifzero(params: Sequence[float]) -> float:
    # Coarse test: anything within half a unit of zero counts.
    return params[1] if abs(params[0]) < 0.5 else params[2]

@register_builtin("ifnegative", arity=3)
def std_ifnegative(params: Sequence[float]) -> float:
    return params[1] if params[0] < 0 else params[2]

@register_builtin("logexp", arity=2)
def std_logexp(params: Sequence[float]) -> float:
    """Soft exponential: log-like for beta < 0, identity at 0, exp-like for beta > 0."""
    x, beta = params[0], params[1]

    if beta < 0:
        return -np.log(1.0 - beta * (x + beta)) / beta

    if beta == 0:
        return x

    return (np.exp(beta * x) - 1.0) / beta + beta

@register_builtin("max", arity=Arity.at_least(1))
def std_max(params: Sequence[float]) -> float:
    best = params[0]

    for value in params[1:]:
        if best < value:
            best = value

    return best

@register_builtin("min", arity=Arity.at_least(1))
def std_min(params: Sequence[float]) -> float:
    best = params[0]

    for value in params[1:]:
        if value < best:
            best = value

    return best
