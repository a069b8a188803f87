"""
AST шаблонов: закрытый набор узлов инструкций, выражений и вспомогательных
узлов, обход и свёртка констант.
"""

from __future__ import annotations

from .base import (
    NODE_REGISTRY,
    EvalContext,
    Expr,
    Helper,
    Impossible,
    Node,
    Stmt,
    concrete_nodes,
    missing_handlers,
)
from .expressions import (
    Add,
    And,
    Await,
    BinExpr,
    Call,
    Compare,
    Concat,
    CondExpr,
    Const,
    ContextReference,
    DerivedContextReference,
    Dict,
    Div,
    EnvironmentAttribute,
    Filter,
    FloorDiv,
    Getattr,
    Getitem,
    List,
    MarkSafe,
    MarkSafeIfAutoescape,
    Mod,
    Mul,
    Name,
    Neg,
    Not,
    NSRef,
    Or,
    Pos,
    Pow,
    Slice,
    Sub,
    TemplateData,
    Test,
    Tuple,
    UnaryExpr,
)
from .helpers import Keyword, Operand, Pair, Signature
from .optimizer import optimize
from .statements import (
    Assign,
    AssignBlock,
    Block,
    Break,
    CallBlock,
    Continue,
    Do,
    Export,
    Extends,
    FilterBlock,
    For,
    FromImport,
    If,
    Import,
    Include,
    Macro,
    Namespace,
    Output,
    Scope,
    ScopedEvalContextModifier,
    Spaceless,
    Template,
    Trans,
    With,
)
from .visitor import NodeTransformer, NodeVisitor, Traversal, iter_nodes, walk

__all__ = [
    "NODE_REGISTRY", "EvalContext", "Expr", "Helper", "Impossible", "Node", "Stmt",
    "concrete_nodes", "missing_handlers",
    # выражения
    "Add", "And", "Await", "BinExpr", "Call", "Compare", "Concat", "CondExpr", "Const",
    "ContextReference", "DerivedContextReference", "Dict", "Div", "EnvironmentAttribute",
    "Filter", "FloorDiv", "Getattr", "Getitem", "List", "MarkSafe", "MarkSafeIfAutoescape",
    "Mod", "Mul", "Name", "Neg", "Not", "NSRef", "Or", "Pos", "Pow", "Slice", "Sub",
    "TemplateData", "Test", "Tuple", "UnaryExpr",
    # вспомогательные
    "Keyword", "Operand", "Pair", "Signature",
    # инструкции
    "Assign", "AssignBlock", "Block", "Break", "CallBlock", "Continue", "Do", "Export",
    "Extends", "FilterBlock", "For", "FromImport", "If", "Import", "Include", "Macro",
    "Namespace", "Output", "Scope", "ScopedEvalContextModifier", "Spaceless", "Template",
    "Trans", "With",
    # обход
    "NodeTransformer", "NodeVisitor", "Traversal", "iter_nodes", "walk", "optimize",
]
