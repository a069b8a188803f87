"""
Объекты, доступные шаблонам: пространство имён, циклический перебор,
разделитель и модуль импортированного шаблона.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, Optional

from markupsafe import Markup


class Namespace:
    """
    Изменяемый набор атрибутов: ``{% set ns.x = 1 %}`` разрешено даже
    там, где переприсваивание имени не видно снаружи области.
    """

    def __init__(*args: Any, **kwargs: Any) -> None:  # noqa: N805
        self, args = args[0], args[1:]
        self.__attrs = dict(*args, **kwargs)

    def __getattribute__(self, name: str) -> Any:
        if name in {"_Namespace__attrs", "__class__"}:
            return object.__getattribute__(self, name)
        try:
            return self.__attrs[name]
        except KeyError:
            raise AttributeError(name) from None

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "_Namespace__attrs":
            object.__setattr__(self, name, value)
        else:
            self.__attrs[name] = value

    def __setitem__(self, name: str, value: Any) -> None:
        self.__attrs[name] = value

    def __contains__(self, name: str) -> bool:
        return name in self.__attrs

    def __repr__(self) -> str:
        return f"<Namespace {self.__attrs!r}>"


def namespace_attrs(ns: Namespace) -> Dict[str, Any]:
    """Атрибуты пространства имён в виде словаря."""
    return object.__getattribute__(ns, "_Namespace__attrs")  # type: ignore[no-any-return]


class Cycler:
    """Бесконечно перебирает значения: ``cycler("odd", "even").next()``."""

    def __init__(self, *items: Any):
        if not items:
            raise RuntimeError("at least one item has to be provided")
        self.items = items
        self.pos = 0

    def reset(self) -> None:
        self.pos = 0

    @property
    def current(self) -> Any:
        return self.items[self.pos]

    def next(self) -> Any:
        rv = self.current
        self.pos = (self.pos + 1) % len(self.items)
        return rv

    __next__ = next


class Joiner:
    """Возвращает пустую строку при первом вызове и разделитель при последующих."""

    def __init__(self, sep: str = ", "):
        self.sep = sep
        self.used = False

    def __call__(self) -> str:
        if not self.used:
            self.used = True
            return ""
        return self.sep


class TemplateModule:
    """
    Шаблон, импортированный как модуль: экспортированные имена доступны
    как атрибуты, строковое представление - отрендеренное тело.
    """

    def __init__(self, name: Optional[str], exports: Dict[str, Any], body: str):
        self.__name__ = name
        self._exports = dict(exports)
        self._body = body
        self.__dict__.update(self._exports)

    def exported(self) -> Dict[str, Any]:
        return dict(self._exports)

    def __iter__(self) -> Iterator[str]:
        return iter(self._exports)

    def __html__(self) -> Markup:
        return Markup(self._body)

    def __str__(self) -> str:
        return self._body

    def __repr__(self) -> str:
        name = f"memory:{id(self):x}" if self.__name__ is None else repr(self.__name__)
        return f"<{type(self).__name__} {name}>"


__all__ = ["Namespace", "namespace_attrs", "Cycler", "Joiner", "TemplateModule"]
