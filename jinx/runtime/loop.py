"""
Переменная ``loop`` внутри ``{% for %}``.
"""

from __future__ import annotations

from typing import Any, Callable, Iterator, List, Optional, Tuple

from ..utils import missing


class LoopContext:
    """
    Метаданные текущей итерации цикла.

    Элементы материализуются заранее (после фильтра ``if``), поэтому
    ``length``, ``last`` и ``nextitem`` известны без просмотра вперёд.

    Args:
        items: Элементы цикла после фильтрации
        undefined: Класс неопределённого значения окружения
        recurse: Функция рекурсивного рендеринга для ``recursive`` циклов
        depth0: Глубина рекурсии (с 0)
    """

    def __init__(
        self,
        items: List[Any],
        undefined: Callable[..., Any],
        recurse: Optional[Callable[[Any], Any]] = None,
        depth0: int = 0,
    ):
        self._items = items
        self._undefined = undefined
        self._recurse = recurse
        self.index0 = -1
        self.depth0 = depth0
        self._last_changed_value: Any = missing

    def __iter__(self) -> Iterator[Tuple[Any, "LoopContext"]]:
        for i, item in enumerate(self._items):
            self.index0 = i
            yield item, self

    @property
    def length(self) -> int:
        return len(self._items)

    def __len__(self) -> int:
        return self.length

    @property
    def index(self) -> int:
        return self.index0 + 1

    @property
    def revindex0(self) -> int:
        return self.length - self.index

    @property
    def revindex(self) -> int:
        return self.length - self.index0

    @property
    def first(self) -> bool:
        return self.index0 == 0

    @property
    def last(self) -> bool:
        return self.index0 == self.length - 1

    @property
    def depth(self) -> int:
        return self.depth0 + 1

    @property
    def previtem(self) -> Any:
        if self.first:
            return self._undefined("there is no previous item")
        return self._items[self.index0 - 1]

    @property
    def nextitem(self) -> Any:
        if self.last:
            return self._undefined("there is no next item")
        return self._items[self.index0 + 1]

    def cycle(self, *args: Any) -> Any:
        """Возвращает значение из ``args`` по номеру текущей итерации."""
        if not args:
            raise TypeError("no items for cycling given")
        return args[self.index0 % len(args)]

    def changed(self, *value: Any) -> bool:
        """True, если значение отличается от переданного на прошлой итерации."""
        if self._last_changed_value != value:
            self._last_changed_value = value
            return True
        return False

    def __call__(self, iterable: Any) -> Any:
        if self._recurse is None:
            raise TypeError("The loop must have the 'recursive' marker to be called recursively.")
        return self._recurse(iterable, self.depth0 + 1)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.index}/{self.length}>"


__all__ = ["LoopContext"]
