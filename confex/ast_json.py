"""JSON serialization/deserialization for confex ASTs.

This module converts between AST dataclasses and plain Python dict/list
structures suitable for JSON encoding. Every node becomes an object with a
`type` field naming its class; tuples become lists. Map literal entries are
encoded as `[key, value]` pairs so that their order survives.
"""

from __future__ import annotations

from dataclasses import fields, is_dataclass
from typing import Any, Dict

from . import ast as ast_nodes
from .ast import Binding, MapLit, Node

_NODE_TYPES: Dict[str, type] = {
    cls.__name__: cls
    for cls in vars(ast_nodes).values()
    if isinstance(cls, type) and is_dataclass(cls) and (issubclass(cls, Node) or cls is Binding)
}


def ast_to_obj(node: Any) -> Any:
    # Primitives
    if node is None or isinstance(node, (int, float, str, bool)):
        return node
    if isinstance(node, tuple):
        return [ast_to_obj(item) for item in node]
    if isinstance(node, MapLit):
        return {
            "type": "MapLit",
            "entries": [[ast_to_obj(k), ast_to_obj(v)] for k, v in node.entries],
        }
    if is_dataclass(node):
        obj: Dict[str, Any] = {"type": type(node).__name__}
        for f in fields(node):
            obj[f.name] = ast_to_obj(getattr(node, f.name))
        return obj
    raise TypeError(f"cannot serialize {type(node).__name__}")


def ast_from_obj(obj: Any) -> Any:
    if obj is None or isinstance(obj, (int, float, str, bool)):
        return obj
    if isinstance(obj, list):
        return tuple(ast_from_obj(item) for item in obj)
    if not isinstance(obj, dict) or "type" not in obj:
        raise ValueError(f"malformed AST object: {obj!r}")
    node_type = obj["type"]
    if node_type == "MapLit":
        return MapLit(tuple((ast_from_obj(k), ast_from_obj(v)) for k, v in obj["entries"]))
    cls = _NODE_TYPES.get(node_type)
    if cls is None:
        raise ValueError(f"unknown AST node type {node_type!r}")
    kwargs = {f.name: ast_from_obj(obj[f.name]) for f in fields(cls)}
    return cls(**kwargs)
