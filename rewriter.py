# -*- coding: utf-8 -*-
"""
Marker Rewriter
Turns `#p`-annotated Python source into source that prints a label and the
runtime value at every marked position.

Pipeline:
    raw text -> MarkerPreprocessor -> ast.parse -> MarkerScanner
             -> HashpRewriter (post-order, dispatching to PositionHandlers)
             -> ast.unparse
"""

import ast
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from config import DEFAULT_CONFIG, HashpConfig
from marker_preprocessor import MarkerPreprocessor, MarkerSyntaxError
from marker_scanner import CALL_FORM, MARKED, MarkerScanner
from position_handlers import PositionHandlers
from rewrite_context import RewriteReport, UniqueNames


# ==================== TRAVERSAL DRIVER ====================

class HashpRewriter(ast.NodeTransformer):
    """
    Single post-order pass over a scanned tree.

    Children are rewritten before their parent's handler runs, so an enclosing
    marker always sees nested markers already resolved. `generic_visit`
    re-reads each field after every replacement, so handlers may swap nodes or
    splice statement lists freely. Replacements are never visited again.
    """

    def __init__(self, handlers: PositionHandlers):
        self.handlers = handlers
        self._parents: List[ast.AST] = []

    def visit(self, node: ast.AST):
        self._parents.append(node)
        try:
            self.generic_visit(node)
        finally:
            self._parents.pop()

        handler = self.handlers.handler_for(node)
        if handler is None:
            return node
        return handler(node, self._parents)

    def rewrite(self, tree: ast.Module) -> ast.Module:
        tree = self.visit(tree)
        self._sweep_unhandled(tree)
        return ast.fix_missing_locations(tree)

    def _sweep_unhandled(self, tree: ast.AST):
        """Markers no handler claimed stay renamed, uninstrumented, and get reported."""
        report = self.handlers.report
        for node in ast.walk(tree):
            if getattr(node, MARKED, False):
                setattr(node, MARKED, False)
                report.record_degraded(_display_name(node), node)
            if getattr(node, CALL_FORM, False):
                raise MarkerSyntaxError("unresolved marked expression",
                                        getattr(node, 'lineno', None))


def _display_name(node: ast.AST) -> str:
    for attr in ('id', 'arg', 'attr'):
        value = getattr(node, attr, None)
        if isinstance(value, str):
            return value
    return ast.unparse(node)


# ==================== PUBLIC API ====================

@dataclass
class RewriteResult:
    code: str
    report: RewriteReport = field(default_factory=RewriteReport)


def rewrite_source(code: str, config: Optional[HashpConfig] = None) -> RewriteResult:
    """
    Instrument marked source and describe what was done.

    Args:
        code: Python source containing zero or more `#p` markers
        config: Marker/prefix/log-function settings (defaults when omitted)

    Returns:
        RewriteResult with the instrumented source and a RewriteReport

    Raises:
        MarkerSyntaxError: the marked source does not parse, or a marker
            attaches to nothing that can be named or wrapped
    """
    config = config or DEFAULT_CONFIG
    preprocessor = MarkerPreprocessor(config)
    source = preprocessor.process(code)

    try:
        tree = ast.parse(source.text)
    except SyntaxError as e:
        raise preprocessor.to_syntax_error(source, e) from e

    scanner = MarkerScanner(config)
    scanner.visit(tree)
    report = RewriteReport(markers_found=scanner.marked)
    for name, owner in scanner.renamed:
        report.record_degraded(name, owner)

    handlers = PositionHandlers(config, UniqueNames.from_tree(tree), report)
    tree = HashpRewriter(handlers).rewrite(tree)

    return RewriteResult(code=ast.unparse(tree), report=report)


def instrument_code(code: str, config: Optional[HashpConfig] = None) -> str:
    """
    Convenience function returning only the instrumented source.

    Example:
        >>> print(instrument_code("#p count = 1"))
        count = 1
        print('#p count => ', count)
    """
    return rewrite_source(code, config).code


def validate_output(code: str, config: Optional[HashpConfig] = None) -> Dict[str, bool]:
    """
    Sanity checks on instrumented output.

    Reprinted code carries no comments, so a surviving marker could only sit
    in an identifier; the diagnostics themselves are string constants.
    """
    config = config or DEFAULT_CONFIG
    try:
        tree = ast.parse(code)
    except SyntaxError:
        return {
            "no_syntax_errors": False,
            "no_reserved_prefix": config.debug_prefix not in code,
            "has_diagnostics": False,
        }

    names = []
    messages = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Name):
            names.append(node.id)
        elif isinstance(node, ast.arg):
            names.append(node.arg)
        elif isinstance(node, ast.Attribute):
            names.append(node.attr)
        elif isinstance(node, ast.Constant) and isinstance(node.value, str):
            messages.append(node.value)

    diagnostic = re.compile(re.escape(config.marker) + r' .* => $', re.S)
    return {
        "no_syntax_errors": True,
        "no_reserved_prefix": not any(name.startswith(config.debug_prefix) for name in names),
        "has_diagnostics": any(diagnostic.match(message) for message in messages),
    }
