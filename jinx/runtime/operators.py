"""
Семантика операторов шаблонного языка.

Вместо разрозненных проверок в местах вызова используется одна явная
таблица приведения: для каждого оператора перечислены допустимые пары
видов операндов. Пары встроенных видов, которых нет в таблице, дают
``TypeError`` с понятным сообщением. Неопределённые значения и
пользовательские объекты делегируют операции собственным методам Python.
"""

from __future__ import annotations

import numbers
import operator
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Tuple

from ..utils import type_name
from .undefined import Undefined


class OperandKind(Enum):
    """Виды операндов в таблице приведения."""
    NUMBER = "number"
    STRING = "string"
    SEQUENCE = "sequence"
    MAPPING = "mapping"
    NONE = "none"
    UNDEFINED = "undefined"
    OTHER = "other"


def classify(value: Any) -> OperandKind:
    if isinstance(value, Undefined):
        return OperandKind.UNDEFINED
    if value is None:
        return OperandKind.NONE
    if isinstance(value, str):
        return OperandKind.STRING
    if isinstance(value, numbers.Number):
        return OperandKind.NUMBER
    if isinstance(value, (list, tuple)):
        return OperandKind.SEQUENCE
    if isinstance(value, dict):
        return OperandKind.MAPPING
    return OperandKind.OTHER


# Виды, операции над которыми определяет сам объект
_DELEGATED: FrozenSet[OperandKind] = frozenset({OperandKind.UNDEFINED, OperandKind.OTHER})

N, S, Q = OperandKind.NUMBER, OperandKind.STRING, OperandKind.SEQUENCE
_ALL_KINDS = tuple(OperandKind)

BINARY_FUNCTIONS: Dict[str, Callable[[Any, Any], Any]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
    "//": operator.floordiv,
    "%": operator.mod,
    "**": operator.pow,
}

# Допустимые сочетания видов для арифметики
ARITHMETIC_TABLE: Dict[str, FrozenSet[Tuple[OperandKind, OperandKind]]] = {
    "+": frozenset({(N, N), (S, S), (Q, Q)}),
    "-": frozenset({(N, N)}),
    "*": frozenset({(N, N), (S, N), (N, S), (Q, N), (N, Q)}),
    "/": frozenset({(N, N)}),
    "//": frozenset({(N, N)}),
    # строковое форматирование "%s" % value
    "%": frozenset({(N, N)} | {(S, kind) for kind in _ALL_KINDS if kind is not OperandKind.UNDEFINED}),
    "**": frozenset({(N, N)}),
}

COMPARE_FUNCTIONS: Dict[str, Callable[[Any, Any], Any]] = {
    "eq": operator.eq,
    "ne": operator.ne,
    "lt": operator.lt,
    "lteq": operator.le,
    "gt": operator.gt,
    "gteq": operator.ge,
    "in": lambda a, b: a in b,
    "notin": lambda a, b: a not in b,
}

COMPARE_SYMBOLS: Dict[str, str] = {
    "eq": "==", "ne": "!=", "lt": "<", "lteq": "<=", "gt": ">", "gteq": ">=",
    "in": "in", "notin": "not in",
}

# Упорядочивание определено только для однородных встроенных видов
ORDERING_TABLE: FrozenSet[Tuple[OperandKind, OperandKind]] = frozenset({(N, N), (S, S), (Q, Q)})

UNARY_FUNCTIONS: Dict[str, Callable[[Any], Any]] = {
    "-": operator.neg,
    "+": operator.pos,
}


def binary_op(op: str, left: Any, right: Any) -> Any:
    """
    Применяет арифметический оператор с учётом таблицы приведения.

    Raises:
        TypeError: Для недопустимого сочетания видов операндов
        ZeroDivisionError: При делении на ноль
    """
    func = BINARY_FUNCTIONS[op]
    lk, rk = classify(left), classify(right)
    if lk in _DELEGATED or rk in _DELEGATED or (lk, rk) in ARITHMETIC_TABLE[op]:
        return func(left, right)
    raise TypeError(f"unsupported operand types for {op}: {type_name(left)!r} and {type_name(right)!r}")


def compare_op(op: str, left: Any, right: Any) -> Any:
    """
    Применяет оператор сравнения.

    Равенство и проверка вхождения определены для любых значений;
    упорядочивание требует однородных операндов.
    """
    func = COMPARE_FUNCTIONS[op]
    if op in ("lt", "lteq", "gt", "gteq"):
        lk, rk = classify(left), classify(right)
        if not (lk in _DELEGATED or rk in _DELEGATED or (lk, rk) in ORDERING_TABLE):
            raise TypeError(
                f"'{COMPARE_SYMBOLS[op]}' not supported between instances of "
                f"{type_name(left)!r} and {type_name(right)!r}"
            )
    return func(left, right)


def unary_op(op: str, value: Any) -> Any:
    """Унарные ``+`` и ``-`` определены только для чисел."""
    kind = classify(value)
    if kind is OperandKind.NUMBER or kind in _DELEGATED:
        return UNARY_FUNCTIONS[op](value)
    raise TypeError(f"bad operand type for unary {op}: {type_name(value)!r}")


__all__ = [
    "OperandKind",
    "classify",
    "binary_op",
    "compare_op",
    "unary_op",
    "ARITHMETIC_TABLE",
    "ORDERING_TABLE",
    "COMPARE_SYMBOLS",
]
