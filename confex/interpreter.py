"""Evaluator for confex expressions.

`Interpreter.evaluate` walks an AST produced by `confex.parser` and returns
the value it denotes. Evaluation is a pure function of the node and the
environment: nothing is mutated, nothing is read from the outside world,
and the same inputs always give the same value or the same error.

The nesting depth is threaded through every recursive call rather than kept
on the interpreter, so one interpreter (and one parsed tree) can serve any
number of evaluations at once.
"""

from __future__ import annotations

import math
import sys
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, TextIO

from .ast import (
    Node, Literal, StringTemplate, Ident, Let, Lambda, Apply, MapLit,
    ListLit, Member, MethodCall, Index, BinaryOp, UnaryOp, Conditional,
)
from .builtin_function import BuiltinFunction
from .environment import Environment
from .errors import (
    UnboundName, NotCallableError, ArityError, DuplicateKeyError,
    MissingKeyError, ListIndexError, NoSuchMethodError, InterpolationTypeError,
    RecursionLimitExceeded, TypeMismatchError, DivisionByZeroError,
)
from .parser import parse_expression
from .std import populate_root_environment
from .std.strings import call_string_method
from .types import Closure, ListVal, MapVal, from_plain, to_string, type_name, values_equal

DEFAULT_MAX_DEPTH = 200


class Interpreter:
    """Core evaluator for confex ASTs."""
    def __init__(self, debug_level: int = 0, debug_file: Optional[str] = None,
                 max_depth: int = DEFAULT_MAX_DEPTH):
        self.debug_level = debug_level
        self.max_depth = max_depth
        self.debug_fp: Optional[TextIO] = open(debug_file, 'w', encoding='utf-8') if debug_file and debug_level > 0 else None
        self.root_env = populate_root_environment()

    def debug(self, msg: str):
        if self.debug_level > 0:
            if self.debug_fp:
                self.debug_fp.write(msg + '\n')
                self.debug_fp.flush()
            else:
                print(msg, file=sys.stderr)

    def close(self):
        if self.debug_fp:
            self.debug_fp.close()
            self.debug_fp = None

    # Public API
    def run(self, expr: Node, arguments: Optional[Mapping[str, Any]] = None) -> Any:
        """Evaluate a parsed expression with the given top-level arguments.

        The arguments are visible as names throughout the expression. When
        the expression itself denotes a function and arguments were given,
        the function is applied to them, matching parameters by name.
        """
        env = self.root_env
        if arguments is not None:
            arguments = {name: from_plain(value) for name, value in arguments.items()}
            env = env.extend_many(arguments)
        if self.debug_level >= 1:
            self.debug(f"evaluate with arguments {sorted(arguments or {})}")
        if self.debug_level >= 2:
            self.debug(f"visible names: {', '.join(env.names())}")
        try:
            value = self.evaluate(expr, env)
            if arguments is not None and isinstance(value, Closure):
                missing = [p for p in value.params if p not in arguments]
                if missing:
                    raise UnboundName(missing[0])
                value = self.call_function(value, [arguments[p] for p in value.params], 0)
        except RecursionError:
            raise RecursionLimitExceeded(self.max_depth) from None
        return value

    def enter(self, depth: int) -> int:
        """Count one more level of let/function nesting."""
        depth += 1
        if depth > self.max_depth:
            raise RecursionLimitExceeded(self.max_depth)
        return depth

    def evaluate(self, node: Node, env: Environment, depth: int = 0) -> Any:
        if isinstance(node, Literal):
            return node.value
        if isinstance(node, Ident):
            return env.lookup(node.name)
        if isinstance(node, StringTemplate):
            return self.render_template(node, env, depth)
        if isinstance(node, Let):
            depth = self.enter(depth)
            # Bindings are sequential: each sees only the ones before it.
            for binding in node.bindings:
                value = self.evaluate(binding.expr, env, depth)
                if self.debug_level >= 2:
                    self.debug(f"bind {binding.name} = {to_string(value)}")
                env = env.extend(binding.name, value)
            return self.evaluate(node.body, env, depth)
        if isinstance(node, Lambda):
            return Closure(node.params, node.body, env)
        if isinstance(node, Apply):
            func = self.evaluate(node.callee, env, depth)
            if not isinstance(func, (Closure, BuiltinFunction)):
                raise NotCallableError(type_name(func))
            args = [self.evaluate(arg, env, depth) for arg in node.args]
            return self.call_function(func, args, depth)
        if isinstance(node, MapLit):
            entries: Dict[str, Any] = {}
            for key_node, value_node in node.entries:
                key = key_node if isinstance(key_node, str) else self.evaluate(key_node, env, depth)
                if key in entries:
                    raise DuplicateKeyError(key)
                entries[key] = self.evaluate(value_node, env, depth)
            return MapVal(entries)
        if isinstance(node, ListLit):
            return ListVal(self.evaluate(el, env, depth) for el in node.elements)
        if isinstance(node, Index):
            target = self.evaluate(node.target, env, depth)
            index = self.evaluate(node.index, env, depth)
            return self.index_value(target, index)
        if isinstance(node, Member):
            target = self.evaluate(node.target, env, depth)
            if isinstance(target, MapVal):
                return self.index_value(target, node.name)
            raise TypeMismatchError('Map', type_name(target), f"cannot access member {node.name!r}")
        if isinstance(node, MethodCall):
            target = self.evaluate(node.target, env, depth)
            args = [self.evaluate(arg, env, depth) for arg in node.args]
            if isinstance(target, str):
                return call_string_method(target, node.name, args)
            if isinstance(target, MapVal) and node.name in target.entries:
                func = target.entries[node.name]
                if not isinstance(func, (Closure, BuiltinFunction)):
                    raise NotCallableError(type_name(func))
                return self.call_function(func, args, depth)
            raise NoSuchMethodError(node.name, type_name(target))
        if isinstance(node, UnaryOp):
            operand = self.evaluate(node.operand, env, depth)
            if node.op == 'not':
                return not self.expect_bool(operand, 'not')
            if node.op == '-':
                if isinstance(operand, bool) or not isinstance(operand, (int, float)):
                    raise TypeMismatchError('Number', type_name(operand), 'unary -')
                return -operand
            raise NotImplementedError(f"unsupported unary operator {node.op}")
        if isinstance(node, BinaryOp):
            left = self.evaluate(node.left, env, depth)
            # and/or short-circuit
            if node.op == 'and':
                if not self.expect_bool(left, 'and'):
                    return False
                return self.expect_bool(self.evaluate(node.right, env, depth), 'and')
            if node.op == 'or':
                if self.expect_bool(left, 'or'):
                    return True
                return self.expect_bool(self.evaluate(node.right, env, depth), 'or')
            right = self.evaluate(node.right, env, depth)
            return self.apply_binary_op(node.op, left, right)
        if isinstance(node, Conditional):
            cond = self.expect_bool(self.evaluate(node.condition, env, depth), 'if')
            if self.debug_level >= 3:
                self.debug(f"if condition -> {to_string(cond)}")
            branch = node.then_branch if cond else node.else_branch
            return self.evaluate(branch, env, depth)
        raise NotImplementedError(f"evaluate: unexpected node type {type(node)}")

    def render_template(self, node: StringTemplate, env: Environment, depth: int) -> str:
        parts: List[str] = []
        for segment in node.segments:
            if isinstance(segment, str):
                parts.append(segment)
                continue
            value = self.evaluate(segment, env, depth)
            if not isinstance(value, (str, int, float)):
                raise InterpolationTypeError(type_name(value))
            parts.append(to_string(value))
        return ''.join(parts)

    def index_value(self, target: Any, index: Any) -> Any:
        if isinstance(target, MapVal):
            if not isinstance(index, str):
                raise TypeMismatchError('String', type_name(index), 'map key')
            if index not in target.entries:
                raise MissingKeyError(index)
            return target.entries[index]
        if isinstance(target, ListVal):
            if isinstance(index, bool) or not isinstance(index, int):
                raise TypeMismatchError('integer Number', type_name(index), 'list index')
            if index < 0 or index >= len(target.items):
                raise ListIndexError(index, len(target.items))
            return target.items[index]
        raise TypeMismatchError('Map or List', type_name(target), 'cannot index')

    def call_function(self, func: Any, args: List[Any], depth: int) -> Any:
        if isinstance(func, BuiltinFunction):
            # arity None means variadic
            if func.arity is not None and len(args) != func.arity:
                raise ArityError(func.arity, len(args), func.name)
            if self.debug_level >= 3:
                self.debug(f"call {func.name} with {len(args)} arguments")
            return func.fn(self, args, depth)
        if isinstance(func, Closure):
            if len(args) != len(func.params):
                raise ArityError(len(func.params), len(args))
            depth = self.enter(depth)
            call_env = func.env.extend_many(dict(zip(func.params, args)))
            if self.debug_level >= 3:
                self.debug(f"apply {func!r} to {', '.join(to_string(a) for a in args)}"
                           f" (depth {depth}, scope {call_env.depth()})")
            return self.evaluate(func.body, call_env, depth)
        raise NotCallableError(type_name(func))

    def expect_bool(self, value: Any, context: str) -> bool:
        if not isinstance(value, bool):
            raise TypeMismatchError('Boolean', type_name(value), context)
        return value

    def apply_binary_op(self, op: str, a: Any, b: Any) -> Any:
        if op == '==':
            return self.equal_values(a, b)
        if op == '!=':
            return not self.equal_values(a, b)
        if op == '+':
            if isinstance(a, str) and isinstance(b, str):
                return a + b
            if isinstance(a, ListVal) and isinstance(b, ListVal):
                return ListVal(a.items + b.items)
        if op in ('<', '>', '<=', '>='):
            if not ((is_number(a) and is_number(b)) or (isinstance(a, str) and isinstance(b, str))):
                raise TypeMismatchError('two Numbers or two Strings', f"{type_name(a)} and {type_name(b)}", op)
            if op == '<':
                return a < b
            if op == '>':
                return a > b
            if op == '<=':
                return a <= b
            return a >= b
        if not (is_number(a) and is_number(b)):
            raise TypeMismatchError('Number', f"{type_name(a)} and {type_name(b)}", op)
        if op == '+':
            return a + b
        if op == '-':
            return a - b
        if op == '*':
            return a * b
        if op == '/':
            if b == 0:
                raise DivisionByZeroError(op)
            if isinstance(a, int) and isinstance(b, int):
                return truncated_div(a, b)
            return a / b
        if op == '%':
            if b == 0:
                raise DivisionByZeroError(op)
            # the remainder takes the sign of the dividend, matching `/`
            if isinstance(a, int) and isinstance(b, int):
                return a - b * truncated_div(a, b)
            return math.fmod(a, b)
        raise NotImplementedError(f"unsupported binary operator {op}")

    def equal_values(self, a: Any, b: Any) -> bool:
        return values_equal(a, b)


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def truncated_div(a: int, b: int) -> int:
    """Integer division rounding toward zero."""
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b >= 0) else -q


def evaluate(source: str, arguments: Optional[Mapping[str, Any]] = None, *,
             debug_level: int = 0, debug_file: Optional[str] = None,
             max_depth: int = DEFAULT_MAX_DEPTH) -> Any:
    """Parse and evaluate confex source text.

    Returns the resulting value tree or raises an `EvalError` subclass.
    """
    expr = parse_expression(source)
    interpreter = Interpreter(debug_level=debug_level, debug_file=debug_file, max_depth=max_depth)
    try:
        return interpreter.run(expr, arguments)
    finally:
        interpreter.close()


def evaluate_file(file_path: str, arguments: Optional[Mapping[str, Any]] = None, **options) -> Any:
    """Read a confex source file and evaluate it."""
    source = Path(file_path).read_text(encoding='utf-8')
    return evaluate(source, arguments, **options)
