"""Built-in methods available on String values.

Each method takes the receiver and the already evaluated argument list and
returns a new value; the receiver itself is never changed.
"""

import json
import textwrap
from typing import Any, Callable, Dict, List

import yaml

from confex.errors import ArityError, DecodeError, NoSuchMethodError, TypeMismatchError
from confex.types import ListVal, from_plain, type_name

StringMethod = Callable[[str, List[Any]], Any]


def _expect_args(name: str, args: List[Any], count: int):
    if len(args) != count:
        raise ArityError(count, len(args), f"'{name}'")


def _string_arg(name: str, args: List[Any]) -> str:
    _expect_args(name, args, 1)
    if not isinstance(args[0], str):
        raise TypeMismatchError('String', type_name(args[0]), name)
    return args[0]


def unindent(s: str, args: List[Any]) -> str:
    """Strip the leading whitespace common to all non-blank lines.

    Lines holding only whitespace become empty and do not take part in
    computing the common prefix.
    """
    _expect_args('unindent', args, 0)
    return textwrap.dedent(s)


def trim(s: str, args: List[Any]) -> str:
    _expect_args('trim', args, 0)
    return s.strip()


def contains(s: str, args: List[Any]) -> bool:
    return _string_arg('contains', args) in s


def starts_with(s: str, args: List[Any]) -> bool:
    return s.startswith(_string_arg('starts_with', args))


def ends_with(s: str, args: List[Any]) -> bool:
    return s.endswith(_string_arg('ends_with', args))


def lines(s: str, args: List[Any]) -> ListVal:
    _expect_args('lines', args, 0)
    return ListVal(s.splitlines())


def _structured(fmt: str, data: Any) -> Any:
    if not isinstance(data, (dict, list)):
        raise DecodeError(fmt, f"top level must be a mapping or a sequence, got {type(data).__name__}")
    try:
        return from_plain(data)
    except TypeMismatchError as e:
        raise DecodeError(fmt, e.message) from None


def parse_json(s: str, args: List[Any]) -> Any:
    _expect_args('parse_json', args, 0)
    try:
        data = json.loads(s)
    except json.JSONDecodeError as e:
        raise DecodeError('JSON', e) from None
    return _structured('JSON', data)


def parse_yaml(s: str, args: List[Any]) -> Any:
    _expect_args('parse_yaml', args, 0)
    try:
        data = yaml.safe_load(s)
    except yaml.YAMLError as e:
        raise DecodeError('YAML', e) from None
    return _structured('YAML', data)


STRING_METHODS: Dict[str, StringMethod] = {
    'unindent': unindent,
    'trim': trim,
    'contains': contains,
    'starts_with': starts_with,
    'ends_with': ends_with,
    'lines': lines,
    'parse_json': parse_json,
    'parse_yaml': parse_yaml,
}


def call_string_method(receiver: str, name: str, args: List[Any]) -> Any:
    method = STRING_METHODS.get(name)
    if method is None:
        raise NoSuchMethodError(name, 'String')
    return method(receiver, args)
