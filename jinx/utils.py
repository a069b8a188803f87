"""Общие вспомогательные функции и маркеры для фильтров, тестов и глобальных функций."""

from __future__ import annotations

import enum
from typing import Any, Callable, Optional, TypeVar

F = TypeVar("F", bound=Callable[..., Any])


class _MissingType:
    def __repr__(self) -> str:
        return "missing"

    def __reduce__(self) -> str:
        return "missing"


# Отсутствующее значение (отличается от None)
missing: Any = _MissingType()


# ---------------------------------------------------------------------------
# Маркеры передачи контекста в вызываемые объекты
# ---------------------------------------------------------------------------

class PassArg(enum.Enum):
    """Что передаётся первым аргументом помеченной функции."""
    context = enum.auto()
    eval_context = enum.auto()
    environment = enum.auto()

    @classmethod
    def from_obj(cls, obj: Any) -> Optional["PassArg"]:
        if hasattr(obj, "jinx_pass_arg"):
            return obj.jinx_pass_arg  # type: ignore[no-any-return]
        return None


def pass_context(f: F) -> F:
    """Первым аргументом функции передаётся активный контекст рендеринга."""
    f.jinx_pass_arg = PassArg.context  # type: ignore[attr-defined]
    return f


def pass_eval_context(f: F) -> F:
    """Первым аргументом функции передаётся контекст вычисления (autoescape и т.п.)."""
    f.jinx_pass_arg = PassArg.eval_context  # type: ignore[attr-defined]
    return f


def pass_environment(f: F) -> F:
    """Первым аргументом функции передаётся окружение."""
    f.jinx_pass_arg = PassArg.environment  # type: ignore[attr-defined]
    return f


# ---------------------------------------------------------------------------
# Описание объектов для сообщений
# ---------------------------------------------------------------------------

def object_type_repr(obj: Any) -> str:
    """Короткое имя типа объекта для сообщений об ошибках."""
    if obj is None:
        return "None"
    if obj is Ellipsis:
        return "Ellipsis"
    cls = type(obj)
    if cls.__module__ == "builtins":
        return f"{cls.__name__} object"
    return f"{cls.__module__}.{cls.__name__} object"


def type_name(obj: Any) -> str:
    return type(obj).__name__


__all__ = [
    "missing",
    "PassArg",
    "pass_context",
    "pass_eval_context",
    "pass_environment",
    "object_type_repr",
    "type_name",
]
