# confex language package
# This package provides the parser and evaluator for confex expressions.
from .errors import EvalError
from .interpreter import Interpreter, evaluate, evaluate_file
from .parser import parse_expression
from .types import Closure, ListVal, MapVal, to_plain

__all__ = [
    'evaluate',
    'evaluate_file',
    'parse_expression',
    'Interpreter',
    'EvalError',
    'Closure',
    'ListVal',
    'MapVal',
    'to_plain',
]
