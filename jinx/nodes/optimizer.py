"""
Свёртка констант.

Заменяет выражения со статически известным значением на ``Const``.
Сворачиваются только неизменяемые значения: список или словарь,
созданный один раз при компиляции, разделялся бы между рендерами.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from .base import EvalContext, Expr, Impossible, Node
from .expressions import Const, TemplateData
from .statements import ScopedEvalContextModifier
from .visitor import NodeTransformer

logger = logging.getLogger(__name__)

_FOLDABLE_SCALARS = (bool, int, float, complex, str, type(None))


def is_foldable(value: Any) -> bool:
    """Можно ли безопасно хранить значение в дереве как константу."""
    if isinstance(value, _FOLDABLE_SCALARS):
        return True
    if isinstance(value, tuple):
        return all(is_foldable(item) for item in value)
    return False


class Optimizer(NodeTransformer):
    """Сворачивает константные выражения, учитывая области ``autoescape``."""

    def __init__(self, environment: Any = None):
        self.environment = environment
        self.folded = 0

    def generic_visit(self, node: Node, eval_ctx: EvalContext) -> Node:  # type: ignore[override]
        if isinstance(node, Expr) and not isinstance(node, (Const, TemplateData)):
            try:
                value = node.as_const(eval_ctx)
            except Impossible:
                pass
            else:
                if is_foldable(value):
                    self.folded += 1
                    return Const(value, lineno=node.lineno, column=node.column)
        return super().generic_visit(node, eval_ctx)

    def visit_ScopedEvalContextModifier(self, node: ScopedEvalContextModifier, eval_ctx: EvalContext) -> Node:
        old = eval_ctx.save()
        try:
            for keyword in node.options:
                try:
                    setattr(eval_ctx, keyword.key, keyword.value.as_const(eval_ctx))
                except Impossible:
                    eval_ctx.volatile = True
            return super().generic_visit(node, eval_ctx)
        finally:
            eval_ctx.revert(old)


def optimize(node: Node, environment: Any = None, template_name: Optional[str] = None) -> Node:
    """
    Возвращает дерево со свёрнутыми константами.

    Args:
        node: Корень дерева
        environment: Окружение (для начального значения autoescape)
        template_name: Имя шаблона (для политики autoescape по расширению)
    """
    optimizer = Optimizer(environment)
    result = optimizer.visit(node, EvalContext(environment, template_name))
    logger.debug(f"Folded {optimizer.folded} constant expressions in {template_name or '<string>'}")
    return result


__all__ = ["Optimizer", "optimize", "is_foldable"]
