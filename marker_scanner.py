# -*- coding: utf-8 -*-
"""
Marker Scanner Module
Pre-pass that moves the marker out of identifier text and onto the tree.

After preprocessing, a marked name reads `__debug_count`. The scanner strips
the prefix from every name that carries it and flags the node instead, so
later stages never look at name spelling again:

- hashp_marked     on Name / Constant / arg / keyword / Attribute
- hashp_call_form  on Call nodes whose callee is the bare prefix
- hashp_source     on marked literals: their spelling in the user's code

Names in positions that can only be renamed (def, import, except, global,
match captures) are collected in `renamed` so they can be reported.
"""

import ast
import keyword
from typing import List, Optional, Tuple

from config import DEFAULT_CONFIG, HashpConfig
from marker_preprocessor import MarkerSyntaxError

MARKED = 'hashp_marked'
CALL_FORM = 'hashp_call_form'
SOURCE = 'hashp_source'


# ==================== FLAG HELPERS ====================

def is_marked(node: Optional[ast.AST]) -> bool:
    return node is not None and getattr(node, MARKED, False)


def is_call_form(node: Optional[ast.AST]) -> bool:
    return isinstance(node, ast.Call) and getattr(node, CALL_FORM, False)


def mark(node: ast.AST) -> ast.AST:
    setattr(node, MARKED, True)
    return node


def consume_marker(node: ast.AST) -> bool:
    """Clear the flag; returns whether the node was marked."""
    if getattr(node, MARKED, False):
        setattr(node, MARKED, False)
        return True
    return False


def consume_call_form(node: ast.AST) -> bool:
    if getattr(node, CALL_FORM, False):
        setattr(node, CALL_FORM, False)
        return True
    return False


# ==================== SCANNER ====================

class MarkerScanner(ast.NodeTransformer):
    """Strips the reserved prefix from names and flags the owning nodes."""

    def __init__(self, config: HashpConfig = DEFAULT_CONFIG):
        self.prefix = config.debug_prefix
        self.marked = 0
        self.renamed: List[Tuple[str, ast.AST]] = []

    def _strip(self, name: Optional[str]) -> Optional[str]:
        if name and name.startswith(self.prefix):
            return name[len(self.prefix):]
        return None

    def _rename(self, name: Optional[str], node: ast.AST) -> Optional[str]:
        """Rename-only positions: function/class/import names and similar."""
        stripped = self._strip(name)
        if stripped:
            self.marked += 1
            self.renamed.append((stripped, node))
            return stripped
        return name

    def _unattached(self, node: ast.AST) -> MarkerSyntaxError:
        return MarkerSyntaxError(
            "marker must precede a name, a number or a parenthesized expression",
            getattr(node, 'lineno', None),
            getattr(node, 'col_offset', -1) + 1,
        )

    # ----- names and literals -----

    def visit_Name(self, node: ast.Name):
        stripped = self._strip(node.id)
        if stripped is None:
            return node
        if not stripped:
            raise self._unattached(node)

        self.marked += 1
        if stripped.isidentifier() and not keyword.iskeyword(stripped):
            node.id = stripped
            return mark(node)

        # `#p 4` lexes as the identifier `__debug_4`
        if not isinstance(node.ctx, ast.Load):
            raise self._unattached(node)
        try:
            value = ast.literal_eval(stripped)
        except (ValueError, SyntaxError):
            raise self._unattached(node) from None
        constant = ast.copy_location(ast.Constant(value=value), node)
        setattr(constant, SOURCE, stripped)
        return mark(constant)

    def visit_Constant(self, node: ast.Constant):
        # `#p "age"` arrives as the implicit concatenation "__debug_" "age"
        if isinstance(node.value, str):
            stripped = self._strip(node.value)
            if stripped is not None:
                self.marked += 1
                node.value = stripped
                setattr(node, SOURCE, repr(stripped))
                return mark(node)
        return node

    def visit_JoinedStr(self, node: ast.JoinedStr):
        """Literal parts of an f-string cannot be wrapped; rename only."""
        for part in node.values:
            if isinstance(part, ast.Constant) and isinstance(part.value, str):
                stripped = self._strip(part.value)
                if stripped is not None:
                    self.marked += 1
                    self.renamed.append((stripped, node))
                    part.value = stripped
            else:
                self.visit(part)
        return node

    def visit_Call(self, node: ast.Call):
        if isinstance(node.func, ast.Name) and node.func.id == self.prefix:
            setattr(node, CALL_FORM, True)
            self.marked += 1
            node.args = [self.visit(arg) for arg in node.args]
            node.keywords = [self.visit(kw) for kw in node.keywords]
            return node
        return self.generic_visit(node)

    def visit_Attribute(self, node: ast.Attribute):
        self.generic_visit(node)
        stripped = self._strip(node.attr)
        if stripped is not None:
            if not stripped:
                raise self._unattached(node)
            self.marked += 1
            node.attr = stripped
            mark(node)
        return node

    def visit_arg(self, node: ast.arg):
        self.generic_visit(node)
        stripped = self._strip(node.arg)
        if stripped:
            self.marked += 1
            node.arg = stripped
            mark(node)
        return node

    def visit_keyword(self, node: ast.keyword):
        self.generic_visit(node)
        stripped = self._strip(node.arg)
        if stripped:
            self.marked += 1
            node.arg = stripped
            mark(node)
        return node

    # ----- rename-only positions -----

    def visit_FunctionDef(self, node):
        node.name = self._rename(node.name, node)
        return self.generic_visit(node)

    visit_AsyncFunctionDef = visit_FunctionDef
    visit_ClassDef = visit_FunctionDef

    def visit_Import(self, node):
        # aliases only carry positions from 3.10 on
        for alias in node.names:
            alias.name = self._rename(alias.name, node)
            alias.asname = self._rename(alias.asname, node)
        return node

    visit_ImportFrom = visit_Import

    def visit_Global(self, node):
        node.names = [self._rename(name, node) for name in node.names]
        return node

    visit_Nonlocal = visit_Global

    def visit_ExceptHandler(self, node: ast.ExceptHandler):
        node.name = self._rename(node.name, node)
        return self.generic_visit(node)

    def visit_MatchAs(self, node):
        node.name = self._rename(node.name, node)
        return self.generic_visit(node)

    visit_MatchStar = visit_MatchAs

    def visit_MatchMapping(self, node):
        node.rest = self._rename(node.rest, node)
        return self.generic_visit(node)


def scan_markers(tree: ast.AST, config: HashpConfig = DEFAULT_CONFIG) -> int:
    """Flag every marked node in `tree` in place; returns the marker count."""
    scanner = MarkerScanner(config)
    scanner.visit(tree)
    return scanner.marked
