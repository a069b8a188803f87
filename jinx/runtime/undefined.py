"""
Политики неопределённых значений.

Обращение к несуществующей переменной, атрибуту или элементу возвращает
объект Undefined. Класс, выбранный в окружении, определяет, какие операции
над ним допустимы: ``Undefined`` отображается пустой строкой и ведёт себя
как пустая последовательность, ``StrictUndefined`` падает при любом
использовании.
"""

from __future__ import annotations

from typing import Any, Iterator, NoReturn, Optional, Type

from ..errors import UndefinedError
from ..utils import missing, object_type_repr


class Undefined:
    """
    Нестрогое неопределённое значение.

    Рендерится как пустая строка, итерируется как пустая последовательность,
    ложно в булевом контексте. Доступ к атрибутам, вызов и арифметика
    завершаются ошибкой ``UndefinedError``.
    """

    __slots__ = ("_undefined_hint", "_undefined_obj", "_undefined_name", "_undefined_exception")

    def __init__(
        self,
        hint: Optional[str] = None,
        obj: Any = missing,
        name: Optional[Any] = None,
        exc: Type[UndefinedError] = UndefinedError,
    ):
        self._undefined_hint = hint
        self._undefined_obj = obj
        self._undefined_name = name
        self._undefined_exception = exc

    @property
    def _undefined_message(self) -> str:
        if self._undefined_hint:
            return self._undefined_hint
        if self._undefined_obj is missing:
            return f"{self._undefined_name!r} is undefined"
        if not isinstance(self._undefined_name, str):
            return f"{object_type_repr(self._undefined_obj)} has no element {self._undefined_name!r}"
        return f"{object_type_repr(self._undefined_obj)!r} has no attribute {self._undefined_name!r}"

    def _fail_with_undefined_error(self, *args: Any, **kwargs: Any) -> NoReturn:
        raise self._undefined_exception(self._undefined_message)

    def __getattr__(self, name: str) -> Any:
        if name[:2] == "__":
            raise AttributeError(name)
        return self._fail_with_undefined_error()

    __add__ = __radd__ = __sub__ = __rsub__ = _fail_with_undefined_error
    __mul__ = __rmul__ = __div__ = __rdiv__ = _fail_with_undefined_error
    __truediv__ = __rtruediv__ = _fail_with_undefined_error
    __floordiv__ = __rfloordiv__ = _fail_with_undefined_error
    __mod__ = __rmod__ = _fail_with_undefined_error
    __pos__ = __neg__ = _fail_with_undefined_error
    __call__ = __getitem__ = _fail_with_undefined_error
    __lt__ = __le__ = __gt__ = __ge__ = _fail_with_undefined_error
    __int__ = __float__ = __complex__ = _fail_with_undefined_error
    __pow__ = __rpow__ = _fail_with_undefined_error

    def __eq__(self, other: Any) -> bool:
        return type(self) is type(other)

    def __ne__(self, other: Any) -> bool:
        return not self.__eq__(other)

    def __hash__(self) -> int:
        return id(type(self))

    def __str__(self) -> str:
        return ""

    def __len__(self) -> int:
        return 0

    def __iter__(self) -> Iterator[Any]:
        yield from ()

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "Undefined"


class ChainableUndefined(Undefined):
    """
    Неопределённое значение, допускающее цепочки ``a.b.c`` и ``a['b']``
    без ошибки; ошибка возникает только при реальном использовании.
    """

    __slots__ = ()

    def __html__(self) -> str:
        return str(self)

    def __getattr__(self, name: str) -> "ChainableUndefined":
        if name[:2] == "__":
            raise AttributeError(name)
        return self

    def __getitem__(self, key: Any) -> "ChainableUndefined":  # type: ignore[override]
        return self


class DebugUndefined(Undefined):
    """Рендерится в исходную запись, чтобы пропуски было видно в выводе."""

    __slots__ = ()

    def __str__(self) -> str:
        if self._undefined_hint:
            message = f"undefined value printed: {self._undefined_hint}"
        elif self._undefined_obj is missing:
            message = str(self._undefined_name)
        else:
            message = f"no such element: {object_type_repr(self._undefined_obj)}[{self._undefined_name!r}]"
        return f"{{{{ {message} }}}}"


class StrictUndefined(Undefined):
    """Любое использование (вывод, итерация, проверка истинности) - ошибка."""

    __slots__ = ()

    __iter__ = __str__ = __len__ = Undefined._fail_with_undefined_error
    __eq__ = __ne__ = __bool__ = __hash__ = Undefined._fail_with_undefined_error
    __contains__ = Undefined._fail_with_undefined_error


UNDEFINED_POLICIES = {
    "default": Undefined,
    "lenient": Undefined,
    "chainable": ChainableUndefined,
    "debug": DebugUndefined,
    "strict": StrictUndefined,
}


def is_undefined(obj: Any) -> bool:
    """Проверяет, является ли объект неопределённым значением."""
    return isinstance(obj, Undefined)


__all__ = [
    "Undefined",
    "ChainableUndefined",
    "DebugUndefined",
    "StrictUndefined",
    "UNDEFINED_POLICIES",
    "is_undefined",
]
