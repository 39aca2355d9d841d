from typing import Any, Iterable, Optional, Tuple


class EvalError(Exception):
    """Base exception for every confex failure.

    `name` identifies the error kind, `message` is the human readable
    description. Evaluation stops at the first error raised.
    """
    name = 'EvalError'

    def __init__(self, message: str):
        super().__init__(f"{self.name}: {message}")
        self.message = message


class LexError(EvalError):
    name = 'LexError'

    def __init__(self, position: Tuple[int, int], char: str):
        super().__init__(f"unexpected character {char!r} at {position[0]}:{position[1]}")
        self.position = position
        self.char = char


class ParseError(EvalError):
    name = 'ParseError'

    def __init__(self, position: Optional[Tuple[int, int]], expected: Iterable[str], found: str):
        self.position = position
        self.expected = tuple(sorted(expected))
        self.found = found
        where = f"{position[0]}:{position[1]}" if position else 'end of input'
        super().__init__(f"expected one of {list(self.expected)} at {where}, got {found}")


class UnboundName(EvalError):
    name = 'UnboundName'

    def __init__(self, name: str):
        super().__init__(f"undefined variable {name}")
        self.unbound = name


class NotCallableError(EvalError):
    name = 'NotCallableError'

    def __init__(self, kind: str):
        super().__init__(f"value of type {kind} is not callable")
        self.kind = kind


class ArityError(EvalError):
    name = 'ArityError'

    def __init__(self, expected: int, got: int, callee: str = 'function'):
        super().__init__(f"{callee} expects {expected} arguments, got {got}")
        self.expected = expected
        self.got = got


class DuplicateKeyError(EvalError):
    name = 'DuplicateKeyError'

    def __init__(self, key: str):
        super().__init__(f"duplicate key {key!r} in map literal")
        self.key = key


class MissingKeyError(EvalError):
    name = 'MissingKeyError'

    def __init__(self, key: str):
        super().__init__(f"key {key!r} not found")
        self.key = key


class ListIndexError(EvalError):
    name = 'IndexError'

    def __init__(self, index: int, length: int):
        super().__init__(f"list index {index} out of range for length {length}")
        self.index = index
        self.length = length


class NoSuchMethodError(EvalError):
    name = 'NoSuchMethodError'

    def __init__(self, method_name: str, receiver: str = ''):
        suffix = f" on {receiver}" if receiver else ''
        super().__init__(f"no method {method_name}(){suffix}")
        self.method_name = method_name


class InterpolationTypeError(EvalError):
    name = 'InterpolationTypeError'

    def __init__(self, value_kind: str):
        super().__init__(f"cannot interpolate a value of type {value_kind}")
        self.value_kind = value_kind


class RecursionLimitExceeded(EvalError):
    name = 'RecursionLimitExceeded'

    def __init__(self, limit: int):
        super().__init__(f"evaluation nested deeper than {limit} levels")
        self.limit = limit


class TypeMismatchError(EvalError):
    name = 'TypeError'

    def __init__(self, expected: str, got: str, context: str = ''):
        prefix = f"{context}: " if context else ''
        super().__init__(f"{prefix}expected {expected}, got {got}")
        self.expected = expected
        self.got = got


class DivisionByZeroError(EvalError):
    name = 'DivisionByZeroError'

    def __init__(self, op: str = '/'):
        super().__init__(f"division by zero in {op!r}")


class DecodeError(EvalError):
    name = 'DecodeError'

    def __init__(self, fmt: str, detail: Any):
        super().__init__(f"cannot parse {fmt}: {detail}")
        self.format = fmt
