"""Abstract Syntax Tree (AST) definitions for confex expressions.

A source text is parsed once into a tree of these nodes. Nodes are frozen
and hold tuples rather than lists, so one tree can be shared by any number
of evaluations running side by side.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple, Union


@dataclass(frozen=True)
class Node:
    """Base class for all AST nodes."""
    pass


@dataclass(frozen=True)
class Literal(Node):
    value: Any  # str, int, float or bool


@dataclass(frozen=True)
class StringTemplate(Node):
    # literal text (str) and embedded expressions (Node), in source order
    segments: Tuple[Union[str, Node], ...]


@dataclass(frozen=True)
class Ident(Node):
    name: str


@dataclass(frozen=True)
class Binding:
    name: str
    expr: Node


@dataclass(frozen=True)
class Let(Node):
    bindings: Tuple[Binding, ...]
    body: Node


@dataclass(frozen=True)
class Lambda(Node):
    params: Tuple[str, ...]
    body: Node


@dataclass(frozen=True)
class Apply(Node):
    callee: Node
    args: Tuple[Node, ...]


@dataclass(frozen=True)
class MapLit(Node):
    # keys are plain strings or StringTemplate nodes
    entries: Tuple[Tuple[Union[str, Node], Node], ...]


@dataclass(frozen=True)
class ListLit(Node):
    elements: Tuple[Node, ...]


@dataclass(frozen=True)
class Member(Node):
    target: Node
    name: str


@dataclass(frozen=True)
class MethodCall(Node):
    target: Node
    name: str
    args: Tuple[Node, ...]


@dataclass(frozen=True)
class Index(Node):
    target: Node
    index: Node


@dataclass(frozen=True)
class BinaryOp(Node):
    op: str
    left: Node
    right: Node


@dataclass(frozen=True)
class UnaryOp(Node):
    op: str
    operand: Node


@dataclass(frozen=True)
class Conditional(Node):
    condition: Node
    then_branch: Node
    else_branch: Node
