# -*- coding: utf-8 -*-
"""
Label Generator
Produces the text shown between the marker and `=>` in every diagnostic.
"""

import ast
import copy

from config import DEFAULT_CONFIG, HashpConfig
from marker_scanner import SOURCE, is_call_form

# Set on every instrumented construct by the wrap builder
LABEL = 'hashp_label'


class _SourceRenderer(ast.NodeTransformer):
    """
    Puts the user's spelling back: instrumented constructs and marked
    literals become verbatim names holding the source they replaced.
    """

    def visit(self, node):
        source = getattr(node, SOURCE, None)
        if source is not None:
            return ast.Name(id=source, ctx=ast.Load())
        return super().visit(node)


def render_source(node: ast.AST) -> str:
    """Reprint a subtree as it read before instrumentation, markers stripped."""
    rendered = _SourceRenderer().visit(copy.deepcopy(node))
    return ast.unparse(ast.fix_missing_locations(rendered))


def label_for(node: ast.AST, config: HashpConfig = DEFAULT_CONFIG) -> str:
    """
    Label for a marked node.

    Simple names give their (stripped) name and literals their spelling. A
    call-form gives the reprinted call without its callee, so `#p (a + b)` is
    labelled `(a + b)`. Any other node gives its reprinted source. Nested
    markers have already been resolved by the time this runs and show up as
    the source they wrapped.
    """
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.arg):
        return node.arg
    if isinstance(node, ast.keyword):
        return node.arg or ''

    if is_call_form(node):
        if not node.args and not node.keywords:
            return config.empty_call_label
        bare = copy.copy(node)
        bare.func = ast.Name(id='', ctx=ast.Load())
        return render_source(bare)

    return render_source(node)
