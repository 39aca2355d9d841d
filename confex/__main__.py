"""CLI entry point for the confex evaluator.

Usage:
    python -m confex [-v|-vv|-vvv] [--arg NAME=VALUE ...] [--format json|yaml] <source_file>
    python -m confex [-v...] --emit-ast <source_file>
    python -m confex [-v...] [--arg NAME=VALUE ...] --ast <ast_json_file>

Options:
  -v            Increase debug verbosity (can be repeated)
  --arg         Bind NAME to the string VALUE for the evaluation
  --format      Render the result as JSON (default) or YAML
  --emit-ast    Parse the given source file and emit an AST JSON file
  --ast         Evaluate a previously emitted AST JSON file

Debug information goes to stderr, or to the file named by --debug-file,
when verbosity is greater than zero. The rendered value is written to
stdout.
"""

import argparse
import json
import sys
from pathlib import Path

import yaml

from .ast_json import ast_to_obj, ast_from_obj
from .errors import EvalError
from .interpreter import Interpreter
from .parser import parse_expression
from .types import to_plain


def parse_arguments(pairs: list[str]) -> dict[str, str]:
    arguments: dict[str, str] = {}
    for pair in pairs:
        name, sep, value = pair.partition('=')
        if not sep or not name:
            raise ValueError(f"--arg expects NAME=VALUE, got {pair!r}")
        arguments[name] = value
    return arguments


def render(value, fmt: str) -> str:
    plain = to_plain(value)
    if fmt == 'yaml':
        return yaml.safe_dump(plain, sort_keys=False, default_flow_style=False)
    return json.dumps(plain, ensure_ascii=False, indent=2)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="confex expression evaluator")
    parser.add_argument('-v', action='count', default=0, help='increase debug verbosity (can be repeated)')
    parser.add_argument('--debug-file', metavar='PATH', help='write debug output to PATH instead of stderr')
    parser.add_argument('--arg', action='append', default=[], metavar='NAME=VALUE', help='bind a top-level argument')
    parser.add_argument('--format', choices=('json', 'yaml'), default='json', help='output format')
    group = parser.add_mutually_exclusive_group()
    group.add_argument('--emit-ast', metavar='SOURCE_FILE', help='emit AST JSON for the given source file')
    group.add_argument('--ast', metavar='AST_JSON_FILE', help='evaluate AST from a JSON file')
    parser.add_argument('source', nargs='?', help='confex source file to evaluate')
    args = parser.parse_args(argv)

    try:
        arguments = parse_arguments(args.arg)
    except ValueError as e:
        parser.error(str(e))

    # Emit AST mode
    if args.emit_ast:
        source_file = Path(args.emit_ast)
        if not source_file.exists():
            print(f"Error: file {source_file} not found", file=sys.stderr)
            sys.exit(1)
        try:
            expr = parse_expression(source_file.read_text(encoding='utf-8'))
        except EvalError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        out_path = source_file.with_name(source_file.name + '.ast.json')
        with open(out_path, 'w', encoding='utf-8') as out:
            json.dump(ast_to_obj(expr), out, ensure_ascii=False, indent=2)
        print(str(out_path))
        return

    # Evaluate from AST JSON
    if args.ast:
        ast_path = Path(args.ast)
        if not ast_path.exists():
            print(f"Error: file {ast_path} not found", file=sys.stderr)
            sys.exit(1)
        with open(ast_path, 'r', encoding='utf-8') as f:
            expr = ast_from_obj(json.load(f))
    else:
        if not args.source:
            parser.error('missing source file; or use --emit-ast/--ast')
        source_file = Path(args.source)
        if not source_file.exists():
            print(f"Error: file {source_file} not found", file=sys.stderr)
            sys.exit(1)
        try:
            expr = parse_expression(source_file.read_text(encoding='utf-8'))
        except EvalError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)

    interpreter = Interpreter(debug_level=args.v, debug_file=args.debug_file)
    try:
        print(render(interpreter.run(expr, arguments), args.format))
    except EvalError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        interpreter.close()


if __name__ == '__main__':
    main()
