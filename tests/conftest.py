# -*- coding: utf-8 -*-
import pytest

from rewriter import instrument_code


@pytest.fixture
def run(capsys):
    """Instrument `code`, execute it, and return (namespace, printed lines)."""

    def _run(code: str):
        instrumented = instrument_code(code)
        namespace = {'__name__': '__instrumented__'}
        exec(compile(instrumented, '<instrumented>', 'exec'), namespace)
        return namespace, capsys.readouterr().out.splitlines()

    return _run
