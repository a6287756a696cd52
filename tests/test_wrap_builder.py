# -*- coding: utf-8 -*-
import ast

from config import HashpConfig
from wrap_builder import (build_diagnostic, build_inline_diagnostics, build_log_call, build_wrap,
                          wrapped_label)


def name(identifier):
    return ast.Name(id=identifier, ctx=ast.Load())


def test_wrap_shape():
    wrapped = build_wrap(name('x'), 'x')
    assert ast.unparse(wrapped) == "(lambda value: (print('#p x => ', value), value)[1])(x)"
    assert wrapped_label(wrapped) == 'x'
    assert wrapped_label(name('x')) is None


def test_wrap_evaluates_once_and_passes_value_through(capsys):
    calls = []

    def counter():
        calls.append(1)
        return 42

    expr = ast.parse("counter()", mode='eval').body
    tree = ast.fix_missing_locations(ast.Expression(body=build_wrap(expr, 'counter()')))
    result = eval(compile(tree, '<wrap>', 'eval'), {'counter': counter})

    assert result == 42
    assert calls == [1]
    assert capsys.readouterr().out == '#p counter() =>  42\n'


def test_log_function_is_configurable():
    config = HashpConfig(log_function='logger.debug')
    diagnostic = build_diagnostic('x', name('x'), config)
    assert ast.unparse(diagnostic) == "logger.debug('#p x => ', x)"


def test_inline_diagnostics_keep_the_body_value():
    entries = [build_log_call('a', name('a'))]
    assert ast.unparse(build_inline_diagnostics(entries, name('a'))) == "(print('#p a => ', a), a)[-1]"


def test_inline_diagnostics_without_entries_return_body():
    body = name('a')
    assert build_inline_diagnostics([], body) is body
