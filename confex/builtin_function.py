from dataclasses import dataclass
from typing import Any, Callable, List, Optional


@dataclass(frozen=True, eq=False)
class BuiltinFunction:
    """A function implemented in Python and exposed in the root environment.

    `fn` receives the interpreter (so it can apply closures passed as
    arguments), the evaluated argument list and the current nesting depth.
    An `arity` of None means the function is variadic.
    """
    name: str
    arity: Optional[int]
    fn: Callable[[Any, List[Any], int], Any]

    def __repr__(self) -> str:
        return f"<builtin {self.name}>"
