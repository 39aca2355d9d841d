from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional

from confex.errors import UnboundName


class Environment:
    """A frame of name bindings chained to its enclosing frame.

    Frames are never modified once built. `extend` and `extend_many` return
    a new child frame, so a closure holding on to an environment always sees
    the same bindings no matter what happens elsewhere.
    """
    __slots__ = ('parent', 'values')

    def __init__(self, values: Optional[Mapping[str, Any]] = None, parent: Optional['Environment'] = None):
        self.parent = parent
        self.values: Mapping[str, Any] = MappingProxyType(dict(values or {}))

    def lookup(self, name: str) -> Any:
        env = self
        while env is not None:
            if name in env.values:
                return env.values[name]
            env = env.parent
        raise UnboundName(name)

    def extend(self, name: str, value: Any) -> 'Environment':
        return Environment({name: value}, parent=self)

    def extend_many(self, bindings: Mapping[str, Any]) -> 'Environment':
        return Environment(bindings, parent=self)

    def __contains__(self, name: str) -> bool:
        env = self
        while env is not None:
            if name in env.values:
                return True
            env = env.parent
        return False

    def names(self) -> Iterator[str]:
        """Yield every visible name once, innermost binding first."""
        seen = set()
        env = self
        while env is not None:
            for name in env.values:
                if name not in seen:
                    seen.add(name)
                    yield name
            env = env.parent

    def depth(self) -> int:
        count = 0
        env = self.parent
        while env is not None:
            count += 1
            env = env.parent
        return count
