"""Parser for confex expressions.

The source text is handed to a Lark LALR parser configured with the grammar
below; the resulting parse tree is turned into the immutable AST of
`confex.ast` by `ASTTransformer`.

Two lexical forms need more than a plain terminal:

* **Lambda heads.** `(a, b) =>` and a parenthesised expression `(a)` share a
  prefix that an LALR(1) parser cannot tell apart, so the whole head,
  arrow included, is lexed as a single `LAMBDA_HEAD` token.

* **String interpolation.** `"..."` and `\"\"\"...\"\"\"` may contain
  `${expr}` spans. The lexer only recognises the string as a whole; the
  transformer splits it into literal text and embedded expressions and
  parses each embedded expression with the same grammar.

Map keys are lexed together with their colon (`runs-on:`) so that keys may
contain dashes without clashing with identifiers or subtraction.

The `parse_expression` function is the public entry point.
"""

from __future__ import annotations

import re
import sys
from typing import List, Optional, Tuple, Union

from lark import Lark, Token, Transformer
from lark.exceptions import UnexpectedCharacters, UnexpectedEOF, UnexpectedToken, VisitError

from .ast import (
    Node, Literal, StringTemplate, Ident, Binding, Let, Lambda, Apply,
    MapLit, ListLit, Member, MethodCall, Index, BinaryOp, UnaryOp, Conditional,
)
from .errors import EvalError, LexError, ParseError, RecursionLimitExceeded


CONFEX_GRAMMAR = r"""
    ?expr: let_expr
         | lambda_expr
         | if_expr
         | or_expr

    let_expr: "let" binding+ "in" expr
    binding: NAME "=" expr
    lambda_expr: LAMBDA_HEAD expr
    if_expr: "if" expr "then" expr "else" expr

    ?or_expr: and_expr
            | or_expr "or" and_expr      -> logic_or
    ?and_expr: not_expr
             | and_expr "and" not_expr   -> logic_and
    ?not_expr: comparison
             | "not" not_expr            -> logic_not
    ?comparison: sum
               | sum COMP_OP sum         -> compare
    ?sum: product
        | sum "+" product                -> add
        | sum "-" product                -> sub
    ?product: unary
            | product "*" unary          -> mul
            | product "/" unary          -> div
            | product "%" unary          -> mod
    ?unary: postfix
          | "-" unary                    -> neg

    ?postfix: primary
            | postfix "." NAME           -> member
            | postfix "(" [args] ")"     -> apply
            | postfix "[" expr "]"       -> index
    args: expr ("," expr)* ","?

    ?primary: NUMBER                     -> number
            | "true"                     -> true
            | "false"                    -> false
            | STRING                     -> string
            | BLOCK_STRING               -> string
            | NAME                       -> identifier
            | map_lit
            | list_lit
            | "(" expr ")"

    map_lit: "{" (entry ","?)* "}"
    entry: KEY expr
         | STRING ":" expr
    list_lit: "[" [expr ("," expr)* ","?] "]"

    // Tokens
    LAMBDA_HEAD.2: /\(\s*(?:[A-Za-z_][A-Za-z0-9_]*(?:\s*,\s*[A-Za-z_][A-Za-z0-9_]*)*\s*,?)?\s*\)\s*=>/
    KEY.2: /[A-Za-z_][A-Za-z0-9_\-]*\s*:/
    NAME: /[A-Za-z_][A-Za-z0-9_]*/
    NUMBER: /\d+(\.\d+)?/
    BLOCK_STRING.3: /\"\"\"(?:[^"$]|"(?!"")|\$(?!\{)|\$\{[^}]*\})*\"\"\"/
    STRING.2: /"(?:[^"\\$\n]|\\.|\$(?!\{)|\$\{[^}\n]*\})*"/
    COMP_OP: "==" | "!=" | "<=" | ">=" | "<" | ">"

    %import common.WS
    %ignore WS

    // Comments
    LINE_COMMENT: /(\/\/|#)[^\n]*/
    %ignore LINE_COMMENT
"""


CONFEX_PARSER = Lark(
    CONFEX_GRAMMAR,
    start='expr',
    parser='lalr',
    lexer='basic',
    propagate_positions=True,
    maybe_placeholders=False,
)


_NAME_RE = re.compile(r'[A-Za-z_][A-Za-z0-9_]*')

_ESCAPES = {'n': '\n', 't': '\t', 'r': '\r', '"': '"', '\\': '\\', '$': '$'}


def _position(token: Token) -> Tuple[int, int]:
    return (token.line or 1, token.column or 1)


class ASTTransformer(Transformer):
    """Transforms the raw parse tree into an AST."""

    def let_expr(self, items):
        *bindings, body = items
        return Let(bindings=tuple(bindings), body=body)

    def binding(self, items):
        return Binding(name=str(items[0]), expr=items[1])

    def lambda_expr(self, items):
        head, body = items
        params = tuple(_NAME_RE.findall(head.value))
        seen = set()
        for name in params:
            if name in seen:
                raise ParseError(_position(head), ['distinct parameter name'], name)
            seen.add(name)
        return Lambda(params=params, body=body)

    def if_expr(self, items):
        condition, then_branch, else_branch = items
        return Conditional(condition, then_branch, else_branch)

    # Operators
    def logic_or(self, items):
        return BinaryOp('or', items[0], items[1])

    def logic_and(self, items):
        return BinaryOp('and', items[0], items[1])

    def logic_not(self, items):
        return UnaryOp('not', items[0])

    def compare(self, items):
        left, op, right = items
        return BinaryOp(str(op), left, right)

    def add(self, items):
        return BinaryOp('+', items[0], items[1])

    def sub(self, items):
        return BinaryOp('-', items[0], items[1])

    def mul(self, items):
        return BinaryOp('*', items[0], items[1])

    def div(self, items):
        return BinaryOp('/', items[0], items[1])

    def mod(self, items):
        return BinaryOp('%', items[0], items[1])

    def neg(self, items):
        return UnaryOp('-', items[0])

    # Postfix forms
    def member(self, items):
        return Member(target=items[0], name=str(items[1]))

    def apply(self, items):
        callee = items[0]
        args = items[1] if len(items) > 1 else ()
        # receiver.name(args) is a method call, not a call of a member value
        if isinstance(callee, Member):
            return MethodCall(target=callee.target, name=callee.name, args=args)
        return Apply(callee=callee, args=args)

    def index(self, items):
        return Index(target=items[0], index=items[1])

    def args(self, items):
        return tuple(items)

    # Atoms
    def number(self, items):
        text = items[0].value
        if '.' in text:
            return Literal(float(text))
        return Literal(int(text))

    def true(self, items):
        return Literal(True)

    def false(self, items):
        return Literal(False)

    def string(self, items):
        return parse_string_token(items[0])

    def identifier(self, items):
        return Ident(str(items[0]))

    def map_lit(self, items):
        return MapLit(entries=tuple(items))

    def entry(self, items):
        key_token, value = items
        if key_token.type == 'KEY':
            # strip the trailing colon lexed with the key
            return (key_token.value[:-1].rstrip(), value)
        key = parse_string_token(key_token)
        if isinstance(key, Literal):
            return (key.value, value)
        return (key, value)

    def list_lit(self, items):
        return ListLit(elements=tuple(items))


def parse_string_token(token: Token) -> Node:
    """Turn a STRING or BLOCK_STRING token into a Literal or StringTemplate.

    Single-line strings honour backslash escapes; block strings keep their
    body verbatim. Both may embed `${expr}` spans.
    """
    raw = token.value
    if raw.startswith('"""'):
        body, escapes = raw[3:-3], False
    else:
        body, escapes = raw[1:-1], True

    segments: List[Union[str, Node]] = []
    buf: List[str] = []
    i = 0
    length = len(body)
    while i < length:
        c = body[i]
        if escapes and c == '\\' and i + 1 < length:
            nxt = body[i + 1]
            buf.append(_ESCAPES.get(nxt, '\\' + nxt))
            i += 2
            continue
        if c == '$' and body.startswith('${', i):
            end = body.find('}', i + 2)
            if end < 0:
                raise LexError(_position(token), '$')
            if buf:
                segments.append(''.join(buf))
                buf = []
            segments.append(_parse_fragment(body[i + 2:end], token))
            i = end + 1
            continue
        buf.append(c)
        i += 1
    if buf:
        segments.append(''.join(buf))

    if all(isinstance(s, str) for s in segments):
        return Literal(''.join(segments))
    return StringTemplate(tuple(segments))


def _parse_fragment(text: str, token: Token) -> Node:
    """Parse the expression inside a `${...}` span.

    Errors are reported at the position of the enclosing string.
    """
    if not text.strip():
        raise ParseError(_position(token), ['expression'], 'empty interpolation')
    try:
        return _parse(text)
    except LexError as e:
        raise LexError(_position(token), e.char) from None
    except ParseError as e:
        raise ParseError(_position(token), e.expected, e.found) from None


def _parse(source: str) -> Node:
    try:
        tree = CONFEX_PARSER.parse(source)
    except UnexpectedCharacters as e:
        raise LexError((e.line, e.column), e.char) from None
    except UnexpectedToken as e:
        if e.token.type == '$END':
            found = 'end of input'
        else:
            found = f"{e.token.type} {e.token.value!r}"
        raise ParseError(_error_position(e), e.expected, found) from None
    except UnexpectedEOF as e:
        raise ParseError(None, e.expected, 'end of input') from None
    except RecursionError:
        raise RecursionLimitExceeded(sys.getrecursionlimit()) from None
    try:
        return ASTTransformer().transform(tree)
    except RecursionError:
        # the transformer recurses once per level of the parse tree
        raise RecursionLimitExceeded(sys.getrecursionlimit()) from None
    except VisitError as e:
        if isinstance(e.orig_exc, EvalError):
            raise e.orig_exc from None
        if isinstance(e.orig_exc, RecursionError):
            raise RecursionLimitExceeded(sys.getrecursionlimit()) from None
        raise


def _error_position(e) -> Optional[Tuple[int, int]]:
    line = getattr(e, 'line', None)
    column = getattr(e, 'column', None)
    if not line or line < 0:
        return None
    return (line, column)


def parse_expression(source: str) -> Node:
    """Parse confex source text into an AST.

    Lexical problems raise `LexError`, grammatical ones `ParseError`; the
    parser stops at the first malformed construct.
    """
    return _parse(source)
