"""
Вспомогательные узлы: элементы словарей, именованные аргументы,
операнды сравнений и сигнатуры макросов.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from .base import EvalContext, Expr, Helper, get_eval_context


@dataclass(frozen=True, eq=False)
class Pair(Helper):
    """Пара ключ/значение в литерале словаря."""
    key: Expr
    value: Expr

    def as_const(self, eval_ctx: Optional[EvalContext] = None) -> Tuple[Any, Any]:
        eval_ctx = get_eval_context(eval_ctx)
        return self.key.as_const(eval_ctx), self.value.as_const(eval_ctx)


@dataclass(frozen=True, eq=False)
class Keyword(Helper):
    """Именованный аргумент вызова ``key=value``."""
    key: str
    value: Expr

    def as_const(self, eval_ctx: Optional[EvalContext] = None) -> Tuple[str, Any]:
        eval_ctx = get_eval_context(eval_ctx)
        return self.key, self.value.as_const(eval_ctx)


@dataclass(frozen=True, eq=False)
class Operand(Helper):
    """Звено цепочки сравнения: оператор ("eq", "lt", "in", ...) и правый операнд."""
    op: str
    expr: Expr


@dataclass(frozen=True, eq=False)
class Signature(Helper):
    """
    Сигнатура макроса или call-блока.

    Порядок: позиционные (с необязательными значениями по умолчанию) →
    только-именованные → ``*varargs`` → ``**kwargs``.
    ``defaults`` выравниваются по концу ``args``; ``kwonly_defaults``
    параллельны ``kwonly`` (None - обязательный параметр).
    """
    args: List[Expr] = field(default_factory=list)
    defaults: List[Expr] = field(default_factory=list)
    kwonly: List[Expr] = field(default_factory=list)
    kwonly_defaults: List[Optional[Expr]] = field(default_factory=list)
    varargs: Optional[str] = None
    kwargs: Optional[str] = None

    @property
    def arg_names(self) -> List[str]:
        return [arg.name for arg in self.args]  # type: ignore[attr-defined]

    @property
    def kwonly_names(self) -> List[str]:
        return [arg.name for arg in self.kwonly]  # type: ignore[attr-defined]

    def declared_names(self) -> List[str]:
        names = self.arg_names + self.kwonly_names
        if self.varargs:
            names.append(self.varargs)
        if self.kwargs:
            names.append(self.kwargs)
        return names


__all__ = ["Pair", "Keyword", "Operand", "Signature"]
