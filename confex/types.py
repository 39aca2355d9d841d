"""Value definitions and helpers for confex.

Evaluating an expression produces a tree of values: strings, numbers and
booleans are plain Python objects, lists and maps are wrapped in frozen
containers, and functions are closures over the environment in which they
were created. None of these is ever modified after construction.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Tuple, TYPE_CHECKING

from .builtin_function import BuiltinFunction
from .errors import TypeMismatchError

if TYPE_CHECKING:
    from .ast import Node
    from .environment import Environment


@dataclass(frozen=True, eq=False)
class ListVal:
    """An ordered, immutable sequence of values."""
    items: Tuple[Any, ...] = ()

    def __init__(self, items: Iterable[Any] = ()):
        object.__setattr__(self, 'items', tuple(items))

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ListVal):
            return NotImplemented
        return values_equal(self, other)

    __hash__ = None

    def __repr__(self) -> str:
        return f"List({list(self.items)!r})"


@dataclass(frozen=True, eq=False)
class MapVal:
    """A string-keyed map that remembers declaration order.

    The entries are exposed through a read-only mapping proxy so that a map
    handed out to one consumer can never be altered by another.
    """
    entries: Mapping[str, Any]

    def __init__(self, entries: Mapping[str, Any] | Iterable[Tuple[str, Any]] = ()):
        object.__setattr__(self, 'entries', MappingProxyType(dict(entries)))

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, key: str) -> bool:
        return key in self.entries

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MapVal):
            return NotImplemented
        return values_equal(self, other)

    __hash__ = None

    def __repr__(self) -> str:
        return f"Map({dict(self.entries)!r})"


@dataclass(frozen=True, eq=False)
class Closure:
    """A lambda together with the environment captured at its definition."""
    params: Tuple[str, ...]
    body: 'Node'
    env: 'Environment'

    def __repr__(self) -> str:
        return f"<lambda ({', '.join(self.params)})>"


def type_name(value: Any) -> str:
    """Return the confex type name of a runtime value."""
    # bool first: it is a subclass of int
    if isinstance(value, bool):
        return 'Boolean'
    if isinstance(value, (int, float)):
        return 'Number'
    if isinstance(value, str):
        return 'String'
    if isinstance(value, ListVal):
        return 'List'
    if isinstance(value, MapVal):
        return 'Map'
    if isinstance(value, (Closure, BuiltinFunction)):
        return 'Function'
    return type(value).__name__


def to_string(value: Any) -> str:
    """Render a scalar in its canonical text form.

    Used by string interpolation. Booleans render as `true`/`false` and
    integers in plain decimal; composite values are shown in a debug format.
    """
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, str):
        return value
    if isinstance(value, ListVal):
        return '[' + ', '.join(to_string(item) for item in value.items) + ']'
    if isinstance(value, MapVal):
        entries = ', '.join(f"{k}: {to_string(v)}" for k, v in value.entries.items())
        return '{' + entries + '}'
    return repr(value)


def to_plain(value: Any) -> Any:
    """Convert a value tree into plain dicts, lists and scalars.

    This is the hand-off point to external serializers (JSON, YAML).
    Functions have no declarative equivalent and are rejected.
    """
    if isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, ListVal):
        return [to_plain(item) for item in value.items]
    if isinstance(value, MapVal):
        return {k: to_plain(v) for k, v in value.entries.items()}
    raise TypeMismatchError('String, Number, Boolean, List or Map', type_name(value), 'cannot serialize')


def from_plain(obj: Any) -> Any:
    """Build a value tree from parsed JSON/YAML data.

    Values that already belong to the tree are passed through unchanged.
    """
    if isinstance(obj, (str, bool, int, float, ListVal, MapVal, Closure, BuiltinFunction)):
        return obj
    if isinstance(obj, (list, tuple)):
        return ListVal(from_plain(item) for item in obj)
    if isinstance(obj, dict):
        entries: Dict[str, Any] = {}
        for key, item in obj.items():
            entries[str(key)] = from_plain(item)
        return MapVal(entries)
    raise TypeMismatchError('String, Number, Boolean, List or Map', type(obj).__name__, 'cannot convert')


def values_equal(a: Any, b: Any) -> bool:
    """Structural equality that keeps Booleans apart from Numbers.

    Functions are only equal to themselves.
    """
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if type_name(a) != type_name(b):
        return False
    if isinstance(a, ListVal):
        return len(a) == len(b) and all(values_equal(x, y) for x, y in zip(a.items, b.items))
    if isinstance(a, MapVal):
        if a.entries.keys() != b.entries.keys():
            return False
        return all(values_equal(a.entries[k], b.entries[k]) for k in a.entries)
    if isinstance(a, (Closure, BuiltinFunction)):
        return a is b
    return a == b
