"""Syntax tree node variants and their evaluation.

Every definition body is a tree of these nodes. ``Call`` covers operators,
built-ins and user functions alike; its ``resolved`` slot caches the callee
root so the registry is consulted once per call site until the callee is
redefined. ``to_tree`` renders a node as a ``lark.Tree`` for inspection.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

import numpy as np
from lark import Token, Tree

from .types import ArityMismatch, BuiltinFn

if TYPE_CHECKING:
    from .runtime import Environment

logger = logging.getLogger(__name__)


class SyntaxNode:
    __slots__ = ()

    def eval(self, params: Sequence[float], env: Environment) -> float:
        raise NotImplementedError

    def unlink(self, name: str) -> None:
        """Drop cached resolutions of ``name`` anywhere below this node."""

    def to_tree(self) -> Tree:
        raise NotImplementedError


class Constant(SyntaxNode):
    __slots__ = ('value',)

    def __init__(self, value: float):
        self.value = value

    def eval(self, params: Sequence[float], env: Environment) -> float:
        return self.value

    def to_tree(self) -> Tree:
        return Tree('const', [Token('NUMBER', repr(self.value))])

    def __repr__(self) -> str:
        return f'Constant({self.value!r})'


class ParamRef(SyntaxNode):
    """Position in the parameter vector of the function being evaluated."""
    __slots__ = ('index', 'name')

    def __init__(self, index: int, name: Optional[str] = None):
        self.index = index
        self.name = name

    def eval(self, params: Sequence[float], env: Environment) -> float:
        return params[self.index]

    def to_tree(self) -> Tree:
        label = self.name if self.name is not None else f'${self.index}'
        return Tree('param', [Token('IDENT', label), Token('INDEX', str(self.index))])

    def __repr__(self) -> str:
        return f'ParamRef({self.index})'


class Builtin(SyntaxNode):
    """Native callback applied to the parameter vector it is handed."""
    __slots__ = ('name', 'fn')

    def __init__(self, name: str, fn: BuiltinFn):
        self.name = name
        self.fn = fn

    def eval(self, params: Sequence[float], env: Environment) -> float:
        return self.fn(params)

    def to_tree(self) -> Tree:
        return Tree('builtin', [Token('IDENT', self.name)])

    def __repr__(self) -> str:
        return f'Builtin({self.name!r})'


class Call(SyntaxNode):
    __slots__ = ('name', 'children', 'resolved', 'fixed')

    def __init__(self, name: str, children: Optional[List[SyntaxNode]] = None):
        self.name = name
        self.children: List[SyntaxNode] = children if children is not None else []
        self.resolved: Optional[SyntaxNode] = None
        self.fixed = False

    @classmethod
    def bound(cls, target: Builtin, children: List[SyntaxNode]) -> Call:
        """Call pre-resolved to an operator; never looked up or unlinked by name."""
        call = cls(target.name, children)
        call.resolved = target
        call.fixed = True
        return call

    def add_child(self, child: SyntaxNode) -> None:
        self.children.append(child)

    def eval(self, params: Sequence[float], env: Environment) -> float:
        # ``params`` belong to the enclosing function; the children's results
        # become the callee's parameter vector.
        args = [child.eval(params, env) for child in self.children]
        target = self.resolved

        if target is None:
            fn = env.get_function(self.name)

            if not fn.arity.accepts(len(args)):
                raise ArityMismatch(self.name, fn.arity, len(args))

            logger.debug("resolved call site %s -> %r", self.name, fn)
            target = self.resolved = fn.root

        return target.eval(args, env)

    def unlink(self, name: str) -> None:
        for child in self.children:
            child.unlink(name)

        if not self.fixed and self.name == name:
            self.resolved = None

    def to_tree(self) -> Tree:
        label = 'op' if self.fixed else 'call'
        kind = 'SYMBOL' if self.fixed else 'IDENT'
        return Tree(label, [Token(kind, self.name)] + [ch.to_tree() for ch in self.children])

    def __repr__(self) -> str:
        return f'Call({self.name!r}, {self.children!r})'


# ---------- Operators ----------
# Not registered by name; the parser binds arithmetic calls to these directly.

NEGATE = Builtin('-', lambda p: np.negative(p[0]))

BINARY_OPERATORS: Dict[str, Builtin] = {
    '+': Builtin('+', lambda p: np.add(p[0], p[1])),
    '-': Builtin('-', lambda p: np.subtract(p[0], p[1])),
    '*': Builtin('*', lambda p: np.multiply(p[0], p[1])),
    '/': Builtin('/', lambda p: np.divide(p[0], p[1])),
    '%': Builtin('%', lambda p: np.fmod(p[0], p[1])),
    '^': Builtin('^', lambda p: np.power(p[0], p[1])),
}
