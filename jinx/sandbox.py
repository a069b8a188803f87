"""
Политика безопасности для недоверенных шаблонов.

Политика - набор проверок «да/нет» и лимитов. Счётчики (глубина,
память, объём вывода, время) хранятся в состоянии рендеринга, поэтому
один экземпляр политики можно разделять между окружениями и потоками.
Запрет превращается интерпретатором в ``SecurityError``.
"""

from __future__ import annotations

import types
from dataclasses import dataclass
from typing import Any, FrozenSet, Optional, Protocol

# Атрибуты, открывающие доступ к интерпретатору
UNSAFE_GENERATOR_ATTRIBUTES = frozenset({"gi_frame", "gi_code"})
UNSAFE_COROUTINE_ATTRIBUTES = frozenset({"cr_frame", "cr_code"})
UNSAFE_ASYNC_GENERATOR_ATTRIBUTES = frozenset({"ag_code", "ag_frame"})

# Методы, изменяющие встроенные изменяемые коллекции
MUTATING_METHODS = {
    list: frozenset({"append", "clear", "extend", "insert", "pop", "remove", "reverse", "sort"}),
    dict: frozenset({"clear", "pop", "popitem", "setdefault", "update"}),
    set: frozenset({"add", "clear", "difference_update", "discard", "intersection_update", "pop", "remove", "symmetric_difference_update", "update"}),
}


def is_internal_attribute(obj: Any, attr: str) -> bool:
    """
    Является ли атрибут внутренним (доступ к нему из шаблона опасен).

    Приватные имена (``_x``), кадры и код функций, генераторов и корутин,
    ``mro`` типов считаются внутренними.
    """
    if attr.startswith("_"):
        return True
    if isinstance(obj, type):
        return attr == "mro"
    if isinstance(obj, (types.CodeType, types.TracebackType, types.FrameType)):
        return True
    if isinstance(obj, types.GeneratorType):
        return attr in UNSAFE_GENERATOR_ATTRIBUTES
    if isinstance(obj, types.CoroutineType):
        return attr in UNSAFE_COROUTINE_ATTRIBUTES
    if isinstance(obj, types.AsyncGeneratorType):
        return attr in UNSAFE_ASYNC_GENERATOR_ATTRIBUTES
    return False


def modifies_known_mutable(obj: Any, attr: str) -> bool:
    """Изменяет ли метод ``attr`` встроенную коллекцию ``obj``."""
    for typespec, unsafe in MUTATING_METHODS.items():
        if isinstance(obj, typespec):
            return attr in unsafe
    return False


class SecurityPolicy(Protocol):
    """Контракт политики, который проверяет интерпретатор."""

    def filter_allowed(self, name: str) -> bool: ...

    def function_allowed(self, name: str) -> bool: ...

    def attribute_allowed(self, obj: Any, attr: str) -> bool: ...

    def method_call_allowed(self, obj: Any, name: str) -> bool: ...

    def recursion_ok(self, depth: int) -> bool: ...

    def memory_ok(self, used: int, delta: int) -> bool: ...

    def output_ok(self, written: int, delta: int) -> bool: ...

    def time_ok(self, elapsed: float) -> bool: ...


@dataclass
class SandboxPolicy:
    """
    Политика песочницы.

    Фильтры и функции проверяются по спискам: в режиме белого списка
    разрешено только перечисленное в ``allowed_*``, иначе запрещено
    перечисленное в ``blocked_*``. Лимиты ``None`` не ограничены.

    Args:
        allowed_filters: Разрешённые фильтры (режим белого списка)
        blocked_filters: Запрещённые фильтры
        filter_whitelist: Включить режим белого списка для фильтров
        allowed_functions: Разрешённые глобальные функции
        blocked_functions: Запрещённые глобальные функции
        function_whitelist: Режим белого списка для функций
        blocked_attributes: Имена атрибутов, запрещённые для любого объекта
        allow_private_attributes: Разрешить внутренние атрибуты (``_x``, кадры)
        allow_method_calls: Разрешить вызов методов объектов
        immutable: Запретить методы, изменяющие встроенные коллекции
        max_recursion_depth: Максимальная глубина вызовов
        max_memory_items: Максимум материализованных элементов
        max_output_size: Максимальный объём вывода в символах
        max_execution_time: Максимальное время рендеринга в секундах
    """
    allowed_filters: FrozenSet[str] = frozenset()
    blocked_filters: FrozenSet[str] = frozenset()
    filter_whitelist: bool = False
    allowed_functions: FrozenSet[str] = frozenset()
    blocked_functions: FrozenSet[str] = frozenset()
    function_whitelist: bool = False
    blocked_attributes: FrozenSet[str] = frozenset()
    allow_private_attributes: bool = False
    allow_method_calls: bool = True
    immutable: bool = False
    max_recursion_depth: Optional[int] = None
    max_memory_items: Optional[int] = None
    max_output_size: Optional[int] = None
    max_execution_time: Optional[float] = None

    # ---------------- Пресеты ----------------

    @classmethod
    def restricted(cls) -> "SandboxPolicy":
        """Строгая политика для полностью недоверенных шаблонов."""
        return cls(
            blocked_filters=frozenset({"pprint", "random", "shuffle"}),
            blocked_functions=frozenset({"lipsum"}),
            immutable=True,
            max_recursion_depth=50,
            max_memory_items=100_000,
            max_output_size=1_000_000,
            max_execution_time=5.0,
        )

    @classmethod
    def development(cls) -> "SandboxPolicy":
        """Мягкая политика: только запрет внутренних атрибутов."""
        return cls()

    # ---------------- Проверки ----------------

    def filter_allowed(self, name: str) -> bool:
        if self.filter_whitelist:
            return name in self.allowed_filters
        return name not in self.blocked_filters

    def function_allowed(self, name: str) -> bool:
        if self.function_whitelist:
            return name in self.allowed_functions
        return name not in self.blocked_functions

    def attribute_allowed(self, obj: Any, attr: str) -> bool:
        if attr in self.blocked_attributes:
            return False
        if not self.allow_private_attributes and is_internal_attribute(obj, attr):
            return False
        return True

    def method_call_allowed(self, obj: Any, name: str) -> bool:
        if not self.allow_method_calls:
            return False
        if self.immutable and modifies_known_mutable(obj, name):
            return False
        return True

    def recursion_ok(self, depth: int) -> bool:
        return self.max_recursion_depth is None or depth <= self.max_recursion_depth

    def memory_ok(self, used: int, delta: int) -> bool:
        return self.max_memory_items is None or used + delta <= self.max_memory_items

    def output_ok(self, written: int, delta: int) -> bool:
        return self.max_output_size is None or written + delta <= self.max_output_size

    def time_ok(self, elapsed: float) -> bool:
        return self.max_execution_time is None or elapsed <= self.max_execution_time


__all__ = [
    "SecurityPolicy",
    "SandboxPolicy",
    "is_internal_attribute",
    "modifies_known_mutable",
]
