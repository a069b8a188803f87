"""
Интернационализация: контракт переводов и глобальные функции
``_``, ``gettext``, ``ngettext``, ``pgettext``, ``npgettext``.

Переводы - внешний объект с интерфейсом ``gettext.NullTranslations``.
По умолчанию установлены нулевые переводы: строки возвращаются как есть.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional, Protocol

from markupsafe import Markup

from .utils import pass_context


class Translations(Protocol):
    """Минимальный интерфейс каталога переводов."""

    def gettext(self, message: str) -> str: ...

    def ngettext(self, singular: str, plural: str, n: int) -> str: ...

    def pgettext(self, context: str, message: str) -> str: ...

    def npgettext(self, context: str, singular: str, plural: str, n: int) -> str: ...


class NullTranslations:
    """Переводы по умолчанию: единственное/множественное число по ``n``."""

    def gettext(self, message: str) -> str:
        return message

    def ngettext(self, singular: str, plural: str, n: int) -> str:
        return singular if n == 1 else plural

    def pgettext(self, context: str, message: str) -> str:
        return message

    def npgettext(self, context: str, singular: str, plural: str, n: int) -> str:
        return singular if n == 1 else plural


class CallableTranslations:
    """
    Переводы из отдельных функций (``install_gettext_callables``).

    Отсутствующие ``pgettext``/``npgettext`` сводятся к версиям без контекста.
    """

    def __init__(
        self,
        gettext: Callable[[str], str],
        ngettext: Callable[[str, str, int], str],
        pgettext: Optional[Callable[[str, str], str]] = None,
        npgettext: Optional[Callable[[str, str, str, int], str]] = None,
    ):
        self._gettext = gettext
        self._ngettext = ngettext
        self._pgettext = pgettext
        self._npgettext = npgettext

    def gettext(self, message: str) -> str:
        return self._gettext(message)

    def ngettext(self, singular: str, plural: str, n: int) -> str:
        return self._ngettext(singular, plural, n)

    def pgettext(self, context: str, message: str) -> str:
        if self._pgettext is None:
            return self._gettext(message)
        return self._pgettext(context, message)

    def npgettext(self, context: str, singular: str, plural: str, n: int) -> str:
        if self._npgettext is None:
            return self._ngettext(singular, plural, n)
        return self._npgettext(context, singular, plural, n)


def _finish(context: Any, rv: str, variables: Dict[str, Any]) -> str:
    """Автоэкранирование и подстановка ``%(name)s`` после перевода."""
    if context.eval_ctx.autoescape:
        rv = Markup(rv)
    if variables:
        rv = rv % variables
    return rv


@pass_context
def gettext(__context: Any, __string: str, **variables: Any) -> str:
    rv = __context.environment.translations.gettext(__string)
    return _finish(__context, rv, variables)


@pass_context
def ngettext(__context: Any, __singular: str, __plural: str, __num: int, **variables: Any) -> str:
    variables.setdefault("num", __num)
    rv = __context.environment.translations.ngettext(__singular, __plural, __num)
    return _finish(__context, rv, variables)


@pass_context
def pgettext(__context: Any, __msgctxt: str, __string: str, **variables: Any) -> str:
    rv = __context.environment.translations.pgettext(__msgctxt, __string)
    return _finish(__context, rv, variables)


@pass_context
def npgettext(__context: Any, __msgctxt: str, __singular: str, __plural: str, __num: int, **variables: Any) -> str:
    variables.setdefault("num", __num)
    rv = __context.environment.translations.npgettext(__msgctxt, __singular, __plural, __num)
    return _finish(__context, rv, variables)


I18N_GLOBALS: Dict[str, Callable[..., str]] = {
    "_": gettext,
    "gettext": gettext,
    "ngettext": ngettext,
    "pgettext": pgettext,
    "npgettext": npgettext,
}


__all__ = [
    "Translations",
    "NullTranslations",
    "CallableTranslations",
    "I18N_GLOBALS",
    "gettext",
    "ngettext",
    "pgettext",
    "npgettext",
]
