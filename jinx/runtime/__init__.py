"""
Исполнение шаблонов: контекст, интерпретатор AST и объекты времени
выполнения.

Пакет намеренно не импортирует интерпретатор при загрузке: модули узлов
используют ``runtime.markup`` и ``runtime.operators`` для свёртки констант.
"""

from __future__ import annotations

from .undefined import (
    ChainableUndefined,
    DebugUndefined,
    StrictUndefined,
    Undefined,
    is_undefined,
)

__all__ = [
    "Undefined",
    "ChainableUndefined",
    "DebugUndefined",
    "StrictUndefined",
    "is_undefined",
]
