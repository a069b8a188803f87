"""
Состояние одного рендеринга.

Счётчики глубины вызовов, расхода памяти, объёма вывода и время старта
живут здесь, а не в политике безопасности: одну политику можно
разделять между окружениями и потоками, а состояние принадлежит
ровно одному вызову ``render``.
"""

from __future__ import annotations

import logging
import sys
import threading
import time
from contextlib import contextmanager
from enum import Enum
from typing import Any, Iterator, Optional

from ..errors import RecursionLimitError, SecurityError

logger = logging.getLogger(__name__)

# Кадров интерпретатора Python на один уровень вызова шаблона
_FRAMES_PER_CALL = 60
_STACK_MARGIN = 1000
_STACK_CEILING = 50000

_stack_lock = threading.Lock()
_stack_holders = 0
_saved_recursion_limit: Optional[int] = None


def _reserve_python_stack(max_depth: int) -> None:
    """
    Поднимает лимит рекурсии Python так, чтобы ``max_depth`` уровней
    вложенных вызовов шаблона помещались в стек.

    Лимит процесса общий для всех потоков: исходное значение
    восстанавливает последний завершившийся рендеринг.
    """
    global _stack_holders, _saved_recursion_limit
    required = min(max_depth * _FRAMES_PER_CALL + _STACK_MARGIN, _STACK_CEILING)
    with _stack_lock:
        if _stack_holders == 0:
            _saved_recursion_limit = sys.getrecursionlimit()
        _stack_holders += 1
        if sys.getrecursionlimit() < required:
            logger.debug(f"Raising Python recursion limit to {required} for call depth {max_depth}")
            sys.setrecursionlimit(required)


def _release_python_stack() -> None:
    global _stack_holders, _saved_recursion_limit
    with _stack_lock:
        _stack_holders -= 1
        if _stack_holders == 0 and _saved_recursion_limit is not None:
            sys.setrecursionlimit(_saved_recursion_limit)
            _saved_recursion_limit = None


class LoopSignal(Enum):
    """Результат выполнения инструкции, меняющий ход ближайшего цикла."""
    BREAK = "break"
    CONTINUE = "continue"


class RenderState:
    """
    Счётчики и проверки ресурсов на время одного рендеринга.

    Args:
        policy: Политика безопасности (None - всё разрешено)
        max_depth: Максимальная глубина вызовов макросов, рекурсивных
            циклов и включений
    """

    def __init__(self, policy: Any = None, max_depth: int = 100):
        self.policy = policy
        self.max_depth = max_depth
        self.depth = 0
        self.memory_used = 0
        self.output_written = 0
        self.started = time.monotonic()

    # ---------------- Глубина вызовов ----------------

    def enter_call(self, what: str) -> None:
        """
        Учитывает вход в макрос, рекурсивный цикл или включение.

        Raises:
            RecursionLimitError: Превышена максимальная глубина
            SecurityError: Политика запретила глубину или время выполнения
        """
        if self.depth >= self.max_depth:
            raise RecursionLimitError(
                f"Maximum recursion depth of {self.max_depth} exceeded while calling {what}"
            )
        if self.policy is not None and not self.policy.recursion_ok(self.depth + 1):
            self.deny(f"recursion depth {self.depth + 1} is not allowed while calling {what}")
        self.check_time()
        self.depth += 1
        # Самый внешний вызов резервирует стек на всю допустимую глубину
        if self.depth == 1:
            _reserve_python_stack(self.max_depth)

    def exit_call(self) -> None:
        self.depth -= 1
        if self.depth == 0:
            _release_python_stack()

    @contextmanager
    def call(self, what: str) -> Iterator[None]:
        self.enter_call(what)
        try:
            yield
        finally:
            self.exit_call()

    # ---------------- Ресурсы ----------------

    def elapsed(self) -> float:
        return time.monotonic() - self.started

    def check_time(self) -> None:
        if self.policy is not None and not self.policy.time_ok(self.elapsed()):
            self.deny(f"render time limit exceeded after {self.elapsed():.3f}s")

    def charge_memory(self, delta: int) -> None:
        """Учитывает материализацию ``delta`` элементов (списки циклов, range)."""
        if self.policy is not None and not self.policy.memory_ok(self.memory_used, delta):
            self.deny(f"memory limit exceeded: {self.memory_used} + {delta} items")
        self.memory_used += delta

    def charge_output(self, delta: int) -> None:
        """Учитывает ``delta`` символов, отправленных в итоговый вывод."""
        if self.policy is not None and not self.policy.output_ok(self.output_written, delta):
            self.deny(f"output limit exceeded: {self.output_written} + {delta} characters")
        self.output_written += delta

    # ---------------- Разрешения ----------------

    def check_filter(self, name: str) -> None:
        if self.policy is not None and not self.policy.filter_allowed(name):
            self.deny(f"filter {name!r} is not allowed")

    def check_function(self, name: str) -> None:
        if self.policy is not None and not self.policy.function_allowed(name):
            self.deny(f"function {name!r} is not allowed")

    def check_attribute(self, obj: Any, attr: str) -> None:
        if self.policy is not None and not self.policy.attribute_allowed(obj, attr):
            self.deny(f"access to attribute {attr!r} of {type(obj).__name__!r} object is not allowed")

    def check_method_call(self, obj: Any, name: str) -> None:
        if self.policy is not None and not self.policy.method_call_allowed(obj, name):
            self.deny(f"calling method {name!r} of {type(obj).__name__!r} object is not allowed")

    def deny(self, message: str, lineno: Optional[int] = None) -> None:
        logger.warning(f"Security policy denied operation: {message}")
        raise SecurityError(message, lineno)


__all__ = ["LoopSignal", "RenderState"]
