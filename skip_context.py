# -*- coding: utf-8 -*-
"""
Skip-Context Resolver
Decides when a marked name must be renamed only instead of wrapped, either
because wrapping would produce an invalid tree or because a more specific
position handler owns that slot.
"""

import ast
from typing import Callable, List, Optional, Sequence, Tuple

ARRAY_NODES = (ast.List, ast.Tuple, ast.Set)

Rule = Tuple[type, Callable[[ast.AST, ast.AST, Sequence[ast.AST]], bool], str]


def _is_dict_key(node, parent, parents) -> bool:
    return any(key is node for key in parent.keys)


def _is_array_element(node, parent, parents) -> bool:
    return True


def _is_array_spread(node, parent, parents) -> bool:
    return len(parents) > 1 and isinstance(parents[-2], ARRAY_NODES)


def _is_return_value(node, parent, parents) -> bool:
    return parent.value is node


def _is_callee(node, parent, parents) -> bool:
    return parent.func is node


SKIP_RULES: List[Rule] = [
    (ast.Dict, _is_dict_key, 'object property key'),
    (ast.List, _is_array_element, 'array element'),
    (ast.Tuple, _is_array_element, 'array element'),
    (ast.Set, _is_array_element, 'array element'),
    (ast.Starred, _is_array_spread, 'array spread'),
    (ast.Return, _is_return_value, 'return statement'),
    (ast.Call, _is_callee, 'call target'),
]


def skip_reason(node: ast.AST, parents: Sequence[ast.AST]) -> Optional[str]:
    """
    Why `node` must not be wrapped in place, or None when wrapping is fine.

    Args:
        node: Marked Name/Constant about to be instrumented
        parents: Ancestors of `node`, nearest last
    """
    # Declarators, class fields, patterns and loop targets all bind in store context
    ctx = getattr(node, 'ctx', None)
    if ctx is not None and not isinstance(ctx, ast.Load):
        return 'binding target'

    if not parents:
        return None
    parent = parents[-1]

    for parent_type, applies, reason in SKIP_RULES:
        if isinstance(parent, parent_type) and applies(node, parent, parents):
            return reason
    return None


def should_skip_wrapping(node: ast.AST, parents: Sequence[ast.AST]) -> bool:
    return skip_reason(node, parents) is not None
