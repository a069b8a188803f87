"""
Автоэкранирование поверх markupsafe.

Безопасные строки представлены ``markupsafe.Markup``; всё остальное
при включённом автоэкранировании проходит через ``escape``.
"""

from __future__ import annotations

from typing import Any, Callable, Collection, Iterable, Optional

from markupsafe import Markup, escape, soft_str


def markup_join(seq: Iterable[Any]) -> str:
    """
    Склеивает значения; если среди них есть безопасная разметка,
    остальные части экранируются и результат - Markup.
    """
    buf = []
    iterator = map(soft_str, seq)
    for arg in iterator:
        buf.append(arg)
        if hasattr(arg, "__html__"):
            return Markup("").join(_chain(buf, iterator))
    return "".join(buf)


def _chain(first: Iterable[Any], rest: Iterable[Any]) -> Iterable[Any]:
    yield from first
    yield from rest


def str_join(seq: Iterable[Any]) -> str:
    """Склеивает строковые представления без экранирования."""
    return "".join(map(str, seq))


def to_output(value: Any, autoescape: bool) -> str:
    """Строковое представление значения для вывода с учётом автоэкранирования."""
    if autoescape:
        return escape(value)
    return str(value)


def select_autoescape(
    enabled_extensions: Collection[str] = ("html", "htm", "xml"),
    disabled_extensions: Collection[str] = (),
    default_for_string: bool = True,
    default: bool = False,
) -> Callable[[Optional[str]], bool]:
    """
    Строит политику автоэкранирования по расширению имени шаблона.

    Args:
        enabled_extensions: Расширения, для которых экранирование включено
        disabled_extensions: Расширения, для которых оно выключено
        default_for_string: Значение для шаблонов без имени (``from_string``)
        default: Значение для прочих имён

    Returns:
        Функция ``name -> bool`` для параметра ``autoescape`` окружения
    """
    enabled_patterns = tuple(f".{x.lstrip('.').lower()}" for x in enabled_extensions)
    disabled_patterns = tuple(f".{x.lstrip('.').lower()}" for x in disabled_extensions)

    def autoescape(template_name: Optional[str]) -> bool:
        if template_name is None:
            return default_for_string
        template_name = template_name.lower()
        if template_name.endswith(enabled_patterns):
            return True
        if template_name.endswith(disabled_patterns):
            return False
        return default

    return autoescape


__all__ = ["Markup", "escape", "markup_join", "str_join", "to_output", "select_autoescape"]
