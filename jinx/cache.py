"""
Кэш скомпилированных шаблонов.

Окружение спрашивает у кэша только «есть ли шаблон с таким именем»;
проверка устаревания выполняется окружением по времени модификации,
которое сообщает загрузчик.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Any, List, Optional, Protocol

logger = logging.getLogger(__name__)


class TemplateCache(Protocol):
    """Контракт кэша шаблонов."""

    def get(self, name: str) -> Optional[Any]: ...

    def put(self, name: str, template: Any) -> None: ...

    def invalidate(self, name: str) -> None: ...

    def clear(self) -> None: ...


class LRUTemplateCache:
    """
    Потокобезопасный LRU-кэш фиксированной ёмкости.

    Args:
        capacity: Максимальное число шаблонов; 0 - кэширование выключено
    """

    def __init__(self, capacity: int = 400):
        if capacity < 0:
            raise ValueError(f"capacity must be >= 0, got {capacity}")
        self.capacity = capacity
        self._items: "OrderedDict[str, Any]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, name: str) -> Optional[Any]:
        with self._lock:
            try:
                template = self._items.pop(name)
            except KeyError:
                logger.debug(f"Template cache miss: {name!r}")
                return None
            self._items[name] = template
            logger.debug(f"Template cache hit: {name!r}")
            return template

    def put(self, name: str, template: Any) -> None:
        if self.capacity == 0:
            return
        with self._lock:
            self._items.pop(name, None)
            self._items[name] = template
            while len(self._items) > self.capacity:
                evicted, _ = self._items.popitem(last=False)
                logger.debug(f"Template cache evicted: {evicted!r}")

    def invalidate(self, name: str) -> None:
        with self._lock:
            self._items.pop(name, None)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def keys(self) -> List[str]:
        """Имена в порядке от давно использованных к недавним."""
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._items


__all__ = ["TemplateCache", "LRUTemplateCache"]
