# -*- coding: utf-8 -*-
"""
Position Handlers
One rule set per syntactic position a marker can occupy. Every handler runs
after the node's children have been rewritten, receives the node plus its
ancestors (nearest last), and returns the node, a replacement node, or, for
statements, a list of statements.
"""

import ast
import copy
from typing import Callable, Dict, List, Optional, Sequence

from config import DEFAULT_CONFIG, HashpConfig
from label_generator import label_for, render_source
from marker_preprocessor import MarkerSyntaxError
from marker_scanner import consume_call_form, consume_marker, is_call_form, is_marked
from rewrite_context import RewriteReport, UniqueNames
from skip_context import should_skip_wrapping
from wrap_builder import build_diagnostic, build_inline_diagnostics, build_log_call, build_wrap

Handler = Callable[[ast.AST, Sequence[ast.AST]], object]


def _has_docstring(body: List[ast.stmt]) -> bool:
    return (bool(body) and isinstance(body[0], ast.Expr)
            and isinstance(body[0].value, ast.Constant)
            and isinstance(body[0].value.value, str))


def _as_load(target: ast.expr) -> ast.expr:
    """Read-back expression for a binding target."""
    if isinstance(target, ast.Name):
        return ast.Name(id=target.id, ctx=ast.Load())
    reader = copy.deepcopy(target)
    reader.ctx = ast.Load()
    return reader


class PositionHandlers:
    """Registry of position rules keyed by AST node class."""

    def __init__(self, config: HashpConfig = DEFAULT_CONFIG,
                 names: Optional[UniqueNames] = None,
                 report: Optional[RewriteReport] = None):
        self.config = config
        self.names = names or UniqueNames()
        self.report = report or RewriteReport()

        self._table: Dict[type, Handler] = {
            ast.Name: self.handle_identifier,
            ast.Constant: self.handle_identifier,
            ast.Attribute: self.handle_member,
            ast.Call: self.handle_call,
            ast.Dict: self.handle_object,
            ast.List: self.handle_array,
            ast.Tuple: self.handle_array,
            ast.Set: self.handle_array,
            ast.Assign: self.handle_assign,
            ast.AnnAssign: self.handle_annotated,
            ast.AugAssign: self.handle_augmented,
            ast.NamedExpr: self.handle_named_expr,
            ast.FunctionDef: self.handle_function,
            ast.AsyncFunctionDef: self.handle_function,
            ast.Lambda: self.handle_lambda,
            ast.Return: self.handle_return,
            ast.For: self.handle_block_target,
            ast.AsyncFor: self.handle_block_target,
            ast.With: self.handle_block_target,
            ast.AsyncWith: self.handle_block_target,
        }

    def handler_for(self, node: ast.AST) -> Optional[Handler]:
        return self._table.get(type(node))

    # ==================== BUILDING BLOCKS ====================

    def _wrap(self, expr: ast.expr, label: str, kind: str, origin: Optional[ast.AST] = None,
              source: Optional[str] = None) -> ast.Call:
        self.report.record(kind, label, origin or expr)
        return build_wrap(expr, label, self.config, source)

    def _diagnostic(self, label: str, value: ast.expr, kind: str, origin: ast.AST) -> ast.Expr:
        self.report.record(kind, label, origin)
        return ast.copy_location(build_diagnostic(label, value, self.config), origin)

    def _binding_diagnostics(self, target: ast.expr, kind: str) -> List[ast.Expr]:
        """Diagnostics for every marked name bound by `target`, in pattern order."""
        if isinstance(target, (ast.Tuple, ast.List)):
            found: List[ast.Expr] = []
            for element in target.elts:
                found.extend(self._binding_diagnostics(element, kind))
            return found
        if isinstance(target, ast.Starred):
            return self._binding_diagnostics(target.value, kind)
        if isinstance(target, (ast.Name, ast.Attribute)) and consume_marker(target):
            label = target.id if isinstance(target, ast.Name) else render_source(target)
            return [self._diagnostic(label, _as_load(target), kind, target)]
        return []

    @staticmethod
    def _pattern_has_marks(target: ast.expr) -> bool:
        if not isinstance(target, (ast.Tuple, ast.List)):
            return False
        return any(is_marked(node) for node in ast.walk(target) if node is not target)

    # ==================== IDENTIFIER / MEMBER ====================

    def handle_identifier(self, node: ast.expr, parents: Sequence[ast.AST]):
        """Bare marked reference: rename and wrap unless the position forbids it."""
        if not is_marked(node) or should_skip_wrapping(node, parents):
            return node
        consume_marker(node)
        return self._wrap(node, label_for(node, self.config), 'identifier')

    def handle_member(self, node: ast.Attribute, parents: Sequence[ast.AST]):
        """
        `obj.#p attr` wraps the whole access. A marked object (`#p obj.attr`,
        `#p values[i]`) has already gone through handle_identifier.
        """
        if not is_marked(node) or should_skip_wrapping(node, parents):
            return node
        consume_marker(node)
        return self._wrap(node, label_for(node, self.config), 'member')

    # ==================== CALLS ====================

    def handle_call(self, node: ast.Call, parents: Sequence[ast.AST]):
        if is_call_form(node):
            return self._resolve_call_form(node)

        # `#p compute(x)`: the call target is renamed, never instrumented
        consume_marker(node.func)

        for kw in node.keywords:
            if consume_marker(kw):
                kw.value = self._wrap(kw.value, label_for(kw, self.config), 'object property', kw)
        return node

    def _resolve_call_form(self, node: ast.Call) -> ast.Call:
        """`#p (expr)` lexes as `__debug_(expr)`; swap the call for a wrap of expr."""
        if node.keywords:
            raise MarkerSyntaxError("marked expression cannot take keyword arguments",
                                    node.lineno, node.col_offset + 1)

        if not node.args:
            consume_call_form(node)
            empty = ast.copy_location(ast.Constant(value=None), node)
            return self._wrap(empty, self.config.empty_call_label, 'call form', node, source='()')

        label = label_for(node, self.config)
        consume_call_form(node)

        if len(node.args) == 1 and not isinstance(node.args[0], ast.Starred):
            value = node.args[0]
        else:
            # `#p (a, b)` reads as a tuple
            value = ast.copy_location(ast.Tuple(elts=node.args, ctx=ast.Load()), node)
        return self._wrap(value, label, 'call form', node, source=label)

    # ==================== OBJECT PROPERTY / ARRAY ====================

    def handle_object(self, node: ast.Dict, parents: Sequence[ast.AST]):
        """`{#p "age": 3}`: key unmarked, value wrapped under the key's text."""
        for index, key in enumerate(node.keys):
            if key is not None and consume_marker(key):
                if isinstance(key, ast.Constant) and isinstance(key.value, str):
                    label = key.value
                else:
                    label = label_for(key, self.config)
                node.values[index] = self._wrap(node.values[index], label, 'object property', key)
        return node

    def handle_array(self, node: ast.expr, parents: Sequence[ast.AST]):
        """Marked list/tuple/set elements; for `*#p arr` only the argument is wrapped."""
        if not isinstance(getattr(node, 'ctx', ast.Load()), ast.Load):
            return node

        for index, element in enumerate(node.elts):
            if isinstance(element, ast.Starred):
                if consume_marker(element.value):
                    label = label_for(element.value, self.config)
                    element.value = self._wrap(element.value, label, 'spread')
            elif consume_marker(element):
                node.elts[index] = self._wrap(element, label_for(element, self.config), 'array element')
        return node

    # ==================== DECLARATORS / PATTERNS / CLASS FIELDS ====================

    def handle_assign(self, node: ast.Assign, parents: Sequence[ast.AST]):
        if parents and isinstance(parents[-1], ast.ClassDef):
            return self._class_field(node, node.targets)

        if any(self._pattern_has_marks(target) for target in node.targets):
            return self._rewrite_pattern(node)

        diagnostics: List[ast.Expr] = []
        for target in node.targets:
            diagnostics.extend(self._binding_diagnostics(target, 'declarator'))
        return [node, *diagnostics] if diagnostics else node

    def handle_annotated(self, node: ast.AnnAssign, parents: Sequence[ast.AST]):
        if parents and isinstance(parents[-1], ast.ClassDef):
            return self._class_field(node, [node.target])

        if not is_marked(node.target):
            return node
        if node.value is None:
            # Declared but unbound: log a placeholder
            consume_marker(node.target)
            label = label_for(node.target, self.config)
            placeholder = ast.Constant(value=None)
            return [node, self._diagnostic(label, placeholder, 'declarator', node.target)]
        return [node, *self._binding_diagnostics(node.target, 'declarator')]

    def handle_augmented(self, node: ast.AugAssign, parents: Sequence[ast.AST]):
        diagnostics = self._binding_diagnostics(node.target, 'declarator')
        return [node, *diagnostics] if diagnostics else node

    def handle_named_expr(self, node: ast.NamedExpr, parents: Sequence[ast.AST]):
        if consume_marker(node.target):
            node.value = self._wrap(node.value, node.target.id, 'declarator', node.target)
        return node

    def _class_field(self, node, targets: List[ast.expr]):
        """`#p count = 17` in a class body: the initializer is wrapped in place."""
        labels = [target.id for target in targets
                  if isinstance(target, ast.Name) and consume_marker(target)]

        if node.value is not None:
            for label in labels:
                node.value = self._wrap(node.value, label, 'class field', node)

        # Attribute and pattern targets in class bodies are logged after the statement
        diagnostics: List[ast.Expr] = []
        for target in targets:
            diagnostics.extend(self._binding_diagnostics(target, 'class field'))
        return [node, *diagnostics] if diagnostics else node

    def _rewrite_pattern(self, node: ast.Assign) -> List[ast.stmt]:
        """
        `#p x, y = expr` becomes::

            _temp = expr
            x, y = _temp
            print('#p x => ', x)

        The value is evaluated once, every original binding survives, and only
        marked names get a diagnostic.
        """
        temp = self.names.generate(self.config.temp_name)
        statements: List[ast.stmt] = [
            ast.copy_location(ast.Assign(targets=[ast.Name(id=temp, ctx=ast.Store())],
                                         value=node.value), node)
        ]
        for target in node.targets:
            statements.append(ast.copy_location(
                ast.Assign(targets=[target], value=ast.Name(id=temp, ctx=ast.Load())), node))
        for target in node.targets:
            statements.extend(self._binding_diagnostics(target, 'pattern'))
        return statements

    # ==================== FUNCTIONS ====================

    @staticmethod
    def _parameters(args: ast.arguments) -> List[ast.arg]:
        params = [*args.posonlyargs, *args.args]
        if args.vararg is not None:
            params.append(args.vararg)
        params.extend(args.kwonlyargs)
        if args.kwarg is not None:
            params.append(args.kwarg)
        return params

    def handle_function(self, node, parents: Sequence[ast.AST]):
        """Marked parameters are logged at the top of the body, after any docstring."""
        diagnostics = [
            self._diagnostic(param.arg, ast.Name(id=param.arg, ctx=ast.Load()), 'parameter', param)
            for param in self._parameters(node.args) if consume_marker(param)
        ]
        if diagnostics:
            start = 1 if _has_docstring(node.body) else 0
            node.body[start:start] = diagnostics
        return node

    def handle_lambda(self, node: ast.Lambda, parents: Sequence[ast.AST]):
        """Lambdas have no statement body, so parameter logs are sequenced inline."""
        entries = []
        for param in self._parameters(node.args):
            if consume_marker(param):
                self.report.record('parameter', param.arg, param)
                entries.append(build_log_call(param.arg, ast.Name(id=param.arg, ctx=ast.Load()),
                                              self.config))
        node.body = build_inline_diagnostics(entries, node.body)
        return node

    def handle_return(self, node: ast.Return, parents: Sequence[ast.AST]):
        if node.value is not None and consume_marker(node.value):
            node.value = self._wrap(node.value, label_for(node.value, self.config), 'return', node)
        return node

    # ==================== LOOPS / WITH ====================

    def handle_block_target(self, node, parents: Sequence[ast.AST]):
        """`for #p i in ...` / `with ... as #p fh`: logged at the top of the block."""
        if isinstance(node, (ast.For, ast.AsyncFor)):
            targets, kind = [node.target], 'loop target'
        else:
            targets = [item.optional_vars for item in node.items if item.optional_vars is not None]
            kind = 'with target'

        diagnostics: List[ast.Expr] = []
        for target in targets:
            diagnostics.extend(self._binding_diagnostics(target, kind))
        node.body[0:0] = diagnostics
        return node
