# -*- coding: utf-8 -*-
"""
Per-pass state for one rewrite: the unique-name table used for temporaries
and the report of what was instrumented.
"""

import ast
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set


@dataclass(frozen=True)
class InstrumentationPoint:
    kind: str
    label: str
    line: Optional[int] = None


@dataclass(frozen=True)
class DegradedMarker:
    """Marker in a context with no handler: renamed, not instrumented."""
    name: str
    line: Optional[int] = None


@dataclass
class RewriteReport:
    markers_found: int = 0
    points: List[InstrumentationPoint] = field(default_factory=list)
    degraded: List[DegradedMarker] = field(default_factory=list)

    def record(self, kind: str, label: str, node: Optional[ast.AST] = None):
        self.points.append(InstrumentationPoint(kind, label, getattr(node, 'lineno', None)))

    def record_degraded(self, name: str, node: Optional[ast.AST] = None):
        self.degraded.append(DegradedMarker(name, getattr(node, 'lineno', None)))

    @property
    def labels(self) -> List[str]:
        return [point.label for point in self.points]

    def to_dict(self) -> Dict:
        return {
            'markers_found': self.markers_found,
            'instrumented': [
                {'kind': p.kind, 'label': p.label, 'line': p.line} for p in self.points
            ],
            'degraded': [{'name': d.name, 'line': d.line} for d in self.degraded],
        }


class UniqueNames:
    """
    Hands out identifiers that collide with nothing bound or referenced in the
    module: `_temp`, `_temp2`, `_temp3`, ...
    """

    def __init__(self, taken: Optional[Set[str]] = None):
        self.taken: Set[str] = set(taken or ())

    @classmethod
    def from_tree(cls, tree: ast.AST) -> 'UniqueNames':
        taken: Set[str] = set()
        for node in ast.walk(tree):
            if isinstance(node, ast.Name):
                taken.add(node.id)
            elif isinstance(node, ast.arg):
                taken.add(node.arg)
            elif isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
                taken.add(node.name)
            elif isinstance(node, ast.alias):
                taken.add((node.asname or node.name).split('.')[0])
            elif isinstance(node, (ast.Global, ast.Nonlocal)):
                taken.update(node.names)
            elif isinstance(node, ast.ExceptHandler) and node.name:
                taken.add(node.name)
        return cls(taken)

    def generate(self, hint: str = 'temp') -> str:
        base = '_' + hint.lstrip('_')
        candidate = base
        counter = 1
        while candidate in self.taken:
            counter += 1
            candidate = f"{base}{counter}"
        self.taken.add(candidate)
        return candidate
