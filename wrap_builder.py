# -*- coding: utf-8 -*-
"""
Wrap Builder
Builds the instrumented replacements: an immediately-invoked lambda that logs
and returns its argument, and the statement form used after bindings.
"""

import ast
from typing import List, Optional

from config import DEFAULT_CONFIG, HashpConfig
from label_generator import LABEL, render_source
from marker_scanner import SOURCE

VALUE_PARAM = 'value'


def _log_function(config: HashpConfig) -> ast.expr:
    # Dotted names such as `logger.debug` are allowed
    return ast.parse(config.log_function, mode='eval').body


def build_log_call(label: str, value: ast.expr, config: HashpConfig = DEFAULT_CONFIG) -> ast.Call:
    """`print('#p <label> => ', <value>)` as an expression."""
    return ast.Call(
        func=_log_function(config),
        args=[ast.Constant(value=config.message_for(label)), value],
        keywords=[],
    )


def build_diagnostic(label: str, value: ast.expr, config: HashpConfig = DEFAULT_CONFIG) -> ast.Expr:
    """Statement form of the diagnostic, inserted next to a binding."""
    return ast.Expr(value=build_log_call(label, value, config))


def build_wrap(expr: ast.expr, label: str, config: HashpConfig = DEFAULT_CONFIG,
               source: Optional[str] = None) -> ast.Call:
    """
    Wrap an expression so it is evaluated once, logged, and passed through.

    Produces::

        (lambda value: (print('#p <label> => ', value), value)[1])(<expr>)

    The expression is the call argument, so it is evaluated in the caller's
    scope exactly once; `await` and `yield` inside it keep working.

    `source` is how the wrapped expression read in the user's code; enclosing
    labels print it in place of the wrap. It defaults to the reprinted `expr`,
    which differs from `label` wherever the label is a key or target name.
    """
    param = ast.Name(id=VALUE_PARAM, ctx=ast.Load())
    body = ast.Subscript(
        value=ast.Tuple(
            elts=[build_log_call(label, param, config), ast.Name(id=VALUE_PARAM, ctx=ast.Load())],
            ctx=ast.Load(),
        ),
        slice=ast.Constant(value=1),
        ctx=ast.Load(),
    )
    func = ast.Lambda(
        args=ast.arguments(
            posonlyargs=[],
            args=[ast.arg(arg=VALUE_PARAM, annotation=None)],
            vararg=None,
            kwonlyargs=[],
            kw_defaults=[],
            kwarg=None,
            defaults=[],
        ),
        body=body,
    )
    wrapped = ast.Call(func=func, args=[expr], keywords=[])
    setattr(wrapped, LABEL, label)
    setattr(wrapped, SOURCE, render_source(expr) if source is None else source)
    return ast.copy_location(wrapped, expr)


def build_inline_diagnostics(entries: List[ast.Call], body: ast.expr) -> ast.expr:
    """
    Prefix an expression with log calls, keeping its value:
    `(print(...), print(...), <body>)[-1]`.
    """
    if not entries:
        return body
    return ast.Subscript(
        value=ast.Tuple(elts=[*entries, body], ctx=ast.Load()),
        slice=ast.UnaryOp(op=ast.USub(), operand=ast.Constant(value=1)),
        ctx=ast.Load(),
    )


def wrapped_label(node: ast.AST):
    """Label of an instrumented construct, or None for plain nodes."""
    return getattr(node, LABEL, None)
