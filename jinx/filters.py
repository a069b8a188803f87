"""
Встроенные фильтры.

Фильтр - вызываемый объект ``f(value, *args, **kwargs)``. Фильтрам,
которым нужны окружение, контекст вычисления или контекст рендеринга,
они передаются первым аргументом через декораторы из ``jinx.utils``.
"""

from __future__ import annotations

import json
import math
import random as random_module
import re
import textwrap
from collections import abc
from itertools import chain, groupby as itertools_groupby
from pprint import pformat
from typing import Any, Callable, Dict, Iterable, Iterator, List, NamedTuple, Optional, Tuple, Union
from urllib.parse import quote, quote_plus

from markupsafe import Markup, escape, soft_str

from .errors import FilterArgumentError
from .runtime.undefined import Undefined, is_undefined
from .utils import pass_context, pass_environment, pass_eval_context

_WORD_RE = re.compile(r"\w+")
_WORD_BEGINNING_RE = re.compile(r"([-\s({\[<]+)")
_XMLATTR_KEY_RE = re.compile(r"[\s/>=]")
_URL_RE = re.compile(r"^((?:https?://|www\.)[\w.-]+?(?:\.[a-z]{2,})?(?::\d+)?(?:/[^\s<>\"']*)?)([.,:;!?)]*)$", re.IGNORECASE)
_EMAIL_RE = re.compile(r"^([\w.+-]+@[\w-]+(?:\.[\w-]+)+)([.,:;!?)]*)$")


# ---------------------------------------------------------------------------
# Вспомогательные функции
# ---------------------------------------------------------------------------

def _ignore_case(value: Any) -> Any:
    if isinstance(value, str):
        return value.lower()
    return value


def _split_path(attribute: Union[str, int, None]) -> List[Union[str, int]]:
    if attribute is None:
        return []
    if isinstance(attribute, str):
        return [int(part) if part.isdigit() else part for part in attribute.split(".")]
    return [attribute]


def make_attrgetter(
    context: Any,
    attribute: Union[str, int, None],
    postprocess: Optional[Callable[[Any], Any]] = None,
    default: Any = None,
) -> Callable[[Any], Any]:
    """
    Функция, извлекающая из объекта значение по пути ``"a.b.0"``.

    Каждый шаг пути выполняется через ``environment.getitem``, поэтому
    словари и объекты обрабатываются единообразно. Строковые шаги
    проходят ту же проверку политики, что и ``obj.attr`` в шаблоне.
    """
    environment = context.environment
    parts = _split_path(attribute)

    def attrgetter(item: Any) -> Any:
        for part in parts:
            if isinstance(part, str):
                context.state.check_attribute(item, part)
            item = environment.getitem(item, part)
            if default is not None and is_undefined(item):
                item = default
        if postprocess is not None:
            item = postprocess(item)
        return item

    return attrgetter


def make_multi_attrgetter(
    context: Any,
    attribute: Union[str, int, None],
    postprocess: Optional[Callable[[Any], Any]] = None,
) -> Callable[[Any], List[Any]]:
    """Как ``make_attrgetter``, но для списка путей через запятую."""
    if isinstance(attribute, str):
        split: List[Union[str, int, None]] = list(attribute.split(","))
    else:
        split = [attribute]
    getters = [make_attrgetter(context, part.strip() if isinstance(part, str) else part, postprocess) for part in split]

    def attrgetter(item: Any) -> List[Any]:
        return [getter(item) for getter in getters]

    return attrgetter


def _prepare_select_or_reject(
    context: Any, args: Tuple[Any, ...], kwargs: Dict[str, Any], modfunc: Callable[[Any], Any], lookup_attr: bool
) -> Callable[[Any], Any]:
    if lookup_attr:
        if not args:
            raise FilterArgumentError("Missing parameter for attribute name")
        transfunc = make_attrgetter(context, args[0])
        off = 1
    else:
        off = 0

        def transfunc(x: Any) -> Any:
            return x

    try:
        name = args[off]
        args = args[1 + off:]

        def func(item: Any) -> Any:
            return context.environment.call_test(name, item, args, kwargs, context)

    except LookupError:
        func = bool

    return lambda item: modfunc(func(transfunc(item)))


def _select_or_reject(
    context: Any, value: Iterable[Any], args: Tuple[Any, ...], kwargs: Dict[str, Any], modfunc: Callable[[Any], Any], lookup_attr: bool
) -> Iterator[Any]:
    if value:
        func = _prepare_select_or_reject(context, args, kwargs, modfunc, lookup_attr)
        for item in value:
            if func(item):
                yield item


# ---------------------------------------------------------------------------
# Строки
# ---------------------------------------------------------------------------

def do_upper(s: str) -> str:
    return soft_str(s).upper()


def do_lower(s: str) -> str:
    return soft_str(s).lower()


def do_capitalize(s: str) -> str:
    return soft_str(s).capitalize()


def do_title(s: str) -> str:
    """Первая буква каждого слова - заглавная, остальные - строчные."""
    return "".join(
        [item[0].upper() + item[1:].lower() for item in _WORD_BEGINNING_RE.split(soft_str(s)) if item]
    )


def do_trim(value: str, chars: Optional[str] = None) -> str:
    return soft_str(value).strip(chars)


def do_ltrim(value: str, chars: Optional[str] = None) -> str:
    return soft_str(value).lstrip(chars)


def do_rtrim(value: str, chars: Optional[str] = None) -> str:
    return soft_str(value).rstrip(chars)


def do_striptags(value: Any) -> str:
    """Удаляет SGML/XML-теги и схлопывает пробелы."""
    if hasattr(value, "__html__"):
        value = value.__html__()
    return Markup(str(value)).striptags()


@pass_eval_context
def do_replace(eval_ctx: Any, s: str, old: str, new: str, count: Optional[int] = None) -> str:
    """
    Заменяет вхождения подстроки. При автоэкранировании небезопасные
    аргументы экранируются.
    """
    if count is None:
        count = -1
    if not eval_ctx.autoescape:
        return str(s).replace(str(old), str(new), count)
    if hasattr(old, "__html__") or hasattr(new, "__html__") and not hasattr(s, "__html__"):
        s = escape(s)
    else:
        s = soft_str(s)
    return s.replace(soft_str(old), soft_str(new), count)


@pass_environment
def do_truncate(env: Any, s: str, length: int = 255, killwords: bool = False, end: str = "...", leeway: Optional[int] = None) -> str:
    """
    Обрезает строку до ``length`` символов, добавляя ``end``.

    Строки, превышающие длину не более чем на ``leeway`` символов,
    не обрезаются. Без ``killwords`` обрезка идёт по границе слова.
    """
    if leeway is None:
        leeway = getattr(env, "truncate_leeway", 5)
    if length < len(end):
        raise FilterArgumentError(f"expected length >= {len(end)}, got {length}")
    if leeway < 0:
        raise FilterArgumentError(f"expected leeway >= 0, got {leeway}")
    if len(s) <= length + leeway:
        return s
    if killwords:
        return s[: length - len(end)] + end
    result = s[: length - len(end)].rsplit(" ", 1)[0]
    return result + end


def do_wordcount(s: str) -> int:
    return len(_WORD_RE.findall(soft_str(s)))


def do_center(value: str, width: int = 80) -> str:
    return soft_str(value).center(width)


def do_indent(s: str, width: Union[int, str] = 4, first: bool = False, blank: bool = False) -> str:
    """
    Отступ для каждой строки, кроме первой (если не ``first``) и пустых
    (если не ``blank``).
    """
    if isinstance(width, str):
        indention = width
    else:
        indention = " " * width
    newline = "\n"
    if isinstance(s, Markup) and not isinstance(indention, Markup):
        indention = Markup(indention)
        newline = Markup(newline)
    s += newline
    if blank:
        rv = (newline + indention).join(s.splitlines())
    else:
        lines = s.splitlines()
        rv = lines.pop(0)
        if lines:
            rv += newline + newline.join(indention + line if line else line for line in lines)
    if first:
        rv = indention + rv
    return rv


@pass_environment
def do_wordwrap(
    environment: Any,
    s: str,
    width: int = 79,
    break_long_words: bool = True,
    wrapstring: Optional[str] = None,
    break_on_hyphens: bool = True,
) -> str:
    """Переносит текст по ширине, сохраняя существующие переводы строк."""
    if width <= 0:
        raise FilterArgumentError(f"width must be positive, got {width}")
    if wrapstring is None:
        wrapstring = environment.newline_sequence
    return wrapstring.join(
        [
            wrapstring.join(
                textwrap.wrap(
                    line,
                    width=width,
                    expand_tabs=False,
                    replace_whitespace=False,
                    break_long_words=break_long_words,
                    break_on_hyphens=break_on_hyphens,
                )
            )
            for line in s.splitlines()
        ]
    )


def do_format(value: str, *args: Any, **kwargs: Any) -> str:
    """Форматирование в стиле ``%``: позиционные или именованные аргументы, не оба сразу."""
    if args and kwargs:
        raise FilterArgumentError("can't handle positional and keyword arguments at the same time")
    return soft_str(value) % (kwargs or args)


def do_string(value: Any) -> str:
    return soft_str(value)


# ---------------------------------------------------------------------------
# Экранирование и сериализация
# ---------------------------------------------------------------------------

def do_escape(value: Any) -> Markup:
    return escape(value)


def do_forceescape(value: Any) -> Markup:
    """Экранирует даже безопасную разметку."""
    if hasattr(value, "__html__"):
        value = value.__html__()
    return escape(str(value))


@pass_eval_context
def do_safe(eval_ctx: Any, value: Any) -> Markup:
    return Markup(value)


def do_escapejs(value: Any) -> str:
    """Экранирует строку для вставки в JavaScript-литерал."""
    rv = []
    for char in str(value):
        code = ord(char)
        if char in "\\'\"<>&=-;" or code < 32 or char in "\u2028\u2029":
            rv.append(f"\\u{code:04X}")
        else:
            rv.append(char)
    return "".join(rv)


def do_urlencode(value: Union[str, Dict[str, Any], Iterable[Tuple[str, Any]]]) -> str:
    """
    Кодирует строку для URL или словарь/пары - как query string.
    """
    if isinstance(value, str) or not isinstance(value, abc.Iterable):
        return quote(str(value), safe="/")
    if isinstance(value, dict):
        items: Iterable[Tuple[str, Any]] = value.items()
    else:
        items = iter(value)
    return "&".join(f"{quote_plus(str(k), safe='/')}={quote_plus(str(v), safe='/')}" for k, v in items)


@pass_eval_context
def do_urlize(
    eval_ctx: Any,
    value: str,
    trim_url_limit: Optional[int] = None,
    nofollow: bool = False,
    target: Optional[str] = None,
    rel: Optional[str] = None,
) -> str:
    """Превращает URL и адреса почты в тексте в ссылки."""
    rel_parts = set((rel or "").split())
    if nofollow:
        rel_parts.add("nofollow")
    rel_attr = f' rel="{escape(" ".join(sorted(rel_parts)))}"' if rel_parts else ""
    target_attr = f' target="{escape(target)}"' if target else ""

    def trim(url: str) -> str:
        if trim_url_limit is not None and len(url) > trim_url_limit:
            return url[:trim_url_limit] + "..."
        return url

    words = re.split(r"(\s+)", str(escape(value)))
    for i, word in enumerate(words):
        match = _URL_RE.match(word)
        if match:
            url, tail = match.groups()
            href = url if url.lower().startswith("http") else f"https://{url}"
            words[i] = f'<a href="{href}"{rel_attr}{target_attr}>{trim(url)}</a>{tail}'
            continue
        match = _EMAIL_RE.match(word)
        if match:
            address, tail = match.groups()
            words[i] = f'<a href="mailto:{address}">{address}</a>{tail}'
    rv = "".join(words)
    if eval_ctx.autoescape:
        return Markup(rv)
    return rv


@pass_eval_context
def do_xmlattr(eval_ctx: Any, d: Dict[str, Any], autospace: bool = True) -> str:
    """
    Строит строку XML/HTML-атрибутов из словаря. Значения None и
    неопределённые пропускаются.

    Raises:
        FilterArgumentError: Ключ содержит пробел, ``/``, ``>`` или ``=``
    """
    items = []
    for key, value in d.items():
        if value is None or is_undefined(value):
            continue
        if _XMLATTR_KEY_RE.search(key) is not None:
            raise FilterArgumentError(f"Invalid character in attribute name: {key!r}")
        items.append(f'{escape(key)}="{escape(value)}"')
    rv = " ".join(items)
    if autospace and rv:
        rv = " " + rv
    if eval_ctx.autoescape:
        return Markup(rv)
    return rv


def do_pprint(value: Any) -> str:
    return pformat(value)


@pass_environment
def do_tojson(environment: Any, value: Any, indent: Optional[int] = None) -> Markup:
    """
    Сериализует значение в JSON, безопасный для вставки в HTML
    (``<``, ``>``, ``&`` и ``'`` заменяются escape-последовательностями).
    """
    dumps = getattr(environment, "json_dumps", None) or json.dumps
    kwargs: Dict[str, Any] = {"sort_keys": True}
    if indent is not None:
        kwargs["indent"] = indent
    rv = (
        dumps(value, **kwargs)
        .replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
        .replace("'", "\\u0027")
    )
    return Markup(rv)


def do_fromjson(value: str) -> Any:
    return json.loads(value)


# ---------------------------------------------------------------------------
# Числа
# ---------------------------------------------------------------------------

def do_int(value: Any, default: int = 0, base: int = 10) -> int:
    """Преобразует в целое; строки понимают префиксы ``0x``, ``0o``, ``0b``."""
    try:
        if isinstance(value, str):
            return int(value, base)
        return int(value)
    except (TypeError, ValueError):
        try:
            return int(float(value))
        except (TypeError, ValueError, OverflowError):
            return default


def do_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def do_abs(value: Any) -> Any:
    return abs(value)


def do_round(value: float, precision: int = 0, method: str = "common") -> float:
    """
    Округление: ``common`` - как встроенный ``round``, ``ceil`` - вверх,
    ``floor`` - вниз.
    """
    if method not in {"common", "ceil", "floor"}:
        raise FilterArgumentError("method must be common, ceil or floor")
    if method == "common":
        return round(value, precision)
    func = getattr(math, method)
    return float(func(value * (10 ** precision)) / (10 ** precision))


def do_floatformat(value: Any, precision: Union[int, str, None] = None) -> str:
    """
    Форматирует число с фиксированной точностью. Положительная точность
    отбрасывает хвостовые нули, строка ``"-N"`` их сохраняет.
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        return soft_str(value)
    trim = True
    digits: Optional[int] = None
    if isinstance(precision, str):
        if precision.startswith("-"):
            trim = False
            precision = precision[1:]
        digits = int(precision) if precision else None
    elif isinstance(precision, int):
        digits = precision
    if digits is None or digits < 0:
        return repr(number) if not number.is_integer() else str(int(number))
    rv = f"{number:.{digits}f}"
    if trim and "." in rv:
        rv = rv.rstrip("0").rstrip(".")
    return rv


def do_filesizeformat(value: Union[str, float, int], binary: bool = False) -> str:
    """Размер в байтах в человекочитаемом виде (kB/MB или KiB/MiB)."""
    bytes_ = float(value)
    base = 1024 if binary else 1000
    prefixes = [
        ("KiB" if binary else "kB"),
        ("MiB" if binary else "MB"),
        ("GiB" if binary else "GB"),
        ("TiB" if binary else "TB"),
        ("PiB" if binary else "PB"),
        ("EiB" if binary else "EB"),
        ("ZiB" if binary else "ZB"),
        ("YiB" if binary else "YB"),
    ]
    if bytes_ == 1:
        return "1 Byte"
    if bytes_ < base:
        return f"{int(bytes_)} Bytes"
    unit = base
    prefix = prefixes[-1]
    for i, prefix in enumerate(prefixes):
        unit = base ** (i + 2)
        if bytes_ < unit:
            break
    return f"{base * bytes_ / unit:.1f} {prefix}"


# ---------------------------------------------------------------------------
# Значения по умолчанию
# ---------------------------------------------------------------------------

def do_default(value: Any, default_value: Any = "", boolean: bool = False) -> Any:
    """
    Значение по умолчанию для неопределённой переменной (или для любого
    ложного значения при ``boolean=True``).
    """
    if isinstance(value, Undefined) or (boolean and not value):
        return default_value
    return value


def do_do(value: Any) -> str:
    """Вычисляет значение ради побочного эффекта, ничего не выводит."""
    return ""


# ---------------------------------------------------------------------------
# Последовательности
# ---------------------------------------------------------------------------

def do_length(obj: Any) -> int:
    try:
        return len(obj)
    except TypeError:
        return len(list(obj))


def do_count(obj: Any) -> int:
    return do_length(obj)


def do_list(value: Any) -> List[Any]:
    """Строка разбивается на символы, словарь - на ключи."""
    return list(value)


@pass_environment
def do_first(environment: Any, seq: Iterable[Any]) -> Any:
    for item in seq:
        return item
    return environment.undefined("No first item, sequence was empty.")


@pass_environment
def do_last(environment: Any, seq: Any) -> Any:
    try:
        return next(iter(reversed(seq)))
    except StopIteration:
        return environment.undefined("No last item, sequence was empty.")


def do_reverse(value: Any) -> Any:
    if isinstance(value, str):
        return value[::-1]
    try:
        return reversed(value)
    except TypeError:
        rv = list(value)
        rv.reverse()
        return rv


@pass_context
def do_join(context: Any, value: Iterable[Any], d: str = "", attribute: Union[str, int, None] = None) -> str:
    """
    Склеивает элементы через разделитель. При автоэкранировании
    небезопасные элементы экранируются, результат - Markup.
    """
    if attribute is not None:
        value = map(make_attrgetter(context, attribute), value)
    if not context.eval_ctx.autoescape:
        return str(d).join(map(str, value))
    if not hasattr(d, "__html__"):
        items = list(value)
        do_escape_all = False
        for idx, item in enumerate(items):
            if hasattr(item, "__html__"):
                do_escape_all = True
            else:
                items[idx] = str(item)
        sep = escape(d) if do_escape_all else str(d)
        return sep.join(items)
    return soft_str(d).join(map(soft_str, value))


@pass_context
def do_sort(
    context: Any,
    value: Iterable[Any],
    reverse: bool = False,
    case_sensitive: bool = False,
    attribute: Union[str, int, None] = None,
) -> List[Any]:
    """Сортирует последовательность; ``attribute`` может перечислять пути через запятую."""
    key_func = make_multi_attrgetter(context, attribute, postprocess=_ignore_case if not case_sensitive else None)
    return sorted(value, key=key_func, reverse=reverse)


def _dictsort(value: Dict[Any, Any], case_sensitive: bool, by: str, reverse: bool) -> List[Tuple[Any, Any]]:
    if by == "key":
        pos = 0
    elif by == "value":
        pos = 1
    else:
        raise FilterArgumentError('You can only sort by either "key" or "value"')

    def sort_func(item: Tuple[Any, Any]) -> Any:
        value = item[pos]
        if not case_sensitive:
            value = _ignore_case(value)
        return value

    return sorted(value.items(), key=sort_func, reverse=reverse)


def do_dictsort(value: Dict[Any, Any], case_sensitive: bool = False, by: str = "key", reverse: bool = False) -> List[Tuple[Any, Any]]:
    """Пары словаря, отсортированные по ключу или по значению."""
    return _dictsort(value, case_sensitive, by, reverse)


def do_dictsortcasesensitive(value: Dict[Any, Any], by: str = "key", reverse: bool = False) -> List[Tuple[Any, Any]]:
    return _dictsort(value, True, by, reverse)


def do_dictsortreversed(value: Dict[Any, Any], case_sensitive: bool = False, by: str = "key") -> List[Tuple[Any, Any]]:
    return _dictsort(value, case_sensitive, by, True)


@pass_context
def do_unique(
    context: Any, value: Iterable[Any], case_sensitive: bool = False, attribute: Union[str, int, None] = None
) -> Iterator[Any]:
    """Уникальные элементы в порядке первого появления."""
    getter = make_attrgetter(context, attribute, postprocess=_ignore_case if not case_sensitive else None)
    seen = set()
    for item in value:
        key = getter(item)
        if key not in seen:
            seen.add(key)
            yield item


def _min_or_max(context: Any, value: Iterable[Any], func: Callable[..., Any], case_sensitive: bool, attribute: Any) -> Any:
    it = iter(value)
    try:
        first = next(it)
    except StopIteration:
        return context.environment.undefined("No aggregated item, sequence was empty.")
    key_func = make_attrgetter(context, attribute, postprocess=_ignore_case if not case_sensitive else None)
    return func(chain([first], it), key=key_func)


@pass_context
def do_min(context: Any, value: Iterable[Any], case_sensitive: bool = False, attribute: Union[str, int, None] = None) -> Any:
    return _min_or_max(context, value, min, case_sensitive, attribute)


@pass_context
def do_max(context: Any, value: Iterable[Any], case_sensitive: bool = False, attribute: Union[str, int, None] = None) -> Any:
    return _min_or_max(context, value, max, case_sensitive, attribute)


@pass_context
def do_sum(context: Any, iterable: Iterable[Any], attribute: Union[str, int, None] = None, start: Any = 0) -> Any:
    if attribute is not None:
        iterable = map(make_attrgetter(context, attribute), iterable)
    return sum(iterable, start)


def do_slice(value: Iterable[Any], slices: int, fill_with: Any = None) -> Iterator[List[Any]]:
    """Делит последовательность на ``slices`` столбцов."""
    seq = list(value)
    length = len(seq)
    items_per_slice = length // slices
    slices_with_extra = length % slices
    offset = 0
    for slice_number in range(slices):
        start = offset + slice_number * items_per_slice
        if slice_number < slices_with_extra:
            offset += 1
        end = offset + (slice_number + 1) * items_per_slice
        tmp = seq[start:end]
        if fill_with is not None and slice_number >= slices_with_extra:
            tmp.append(fill_with)
        yield tmp


def do_batch(value: Iterable[Any], linecount: int, fill_with: Any = None) -> Iterator[List[Any]]:
    """Делит последовательность на строки по ``linecount`` элементов."""
    if linecount <= 0:
        raise FilterArgumentError(f"batch size must be positive, got {linecount}")
    tmp: List[Any] = []
    for item in value:
        if len(tmp) == linecount:
            yield tmp
            tmp = []
        tmp.append(item)
    if tmp:
        if fill_with is not None and len(tmp) < linecount:
            tmp += [fill_with] * (linecount - len(tmp))
        yield tmp


class _GroupTuple(NamedTuple):
    grouper: Any
    list: List[Any]

    def __repr__(self) -> str:
        return tuple.__repr__(self)

    def __str__(self) -> str:
        return tuple.__str__(self)


@pass_context
def do_groupby(
    context: Any,
    value: Iterable[Any],
    attribute: Union[str, int],
    default: Any = None,
    case_sensitive: bool = False,
) -> List[_GroupTuple]:
    """
    Группирует элементы по атрибуту. Возвращает пары ``(grouper, list)``,
    отсортированные по ключу группы.
    """
    expr = make_attrgetter(context, attribute, postprocess=_ignore_case if not case_sensitive else None, default=default)
    out = [
        _GroupTuple(key, list(values))
        for key, values in itertools_groupby(sorted(value, key=expr), expr)
    ]
    if not case_sensitive:
        output_key = make_attrgetter(context, attribute, default=default)
        out = [_GroupTuple(output_key(group.list[0]), group.list) for group in out]
    return out


def do_items(value: Any) -> Iterator[Tuple[Any, Any]]:
    """Пары ``(ключ, значение)`` отображения; неопределённое - пусто."""
    if is_undefined(value):
        return
    if not isinstance(value, abc.Mapping):
        raise TypeError("Can only get item pairs from a mapping.")
    yield from value.items()


@pass_context
def do_random(context: Any, seq: Any) -> Any:
    try:
        return random_module.choice(seq)
    except IndexError:
        return context.environment.undefined("No random item, sequence was empty.")


def do_shuffle(value: Iterable[Any]) -> List[Any]:
    rv = list(value)
    random_module.shuffle(rv)
    return rv


# ---------------------------------------------------------------------------
# Функциональные фильтры
# ---------------------------------------------------------------------------

@pass_context
def do_attr(context: Any, obj: Any, name: str) -> Any:
    """Атрибут объекта (без обращения к элементам)."""
    name = str(name)
    context.state.check_attribute(obj, name)
    try:
        return getattr(obj, name)
    except AttributeError:
        return context.environment.undefined(obj=obj, name=name)


@pass_context
def do_map(context: Any, value: Iterable[Any], *args: Any, **kwargs: Any) -> Iterator[Any]:
    """
    Применяет фильтр к каждому элементу или извлекает атрибут:
    ``users|map(attribute="name")``, ``names|map("upper")``.
    """
    if value is None or is_undefined(value):
        return
    if not args and "attribute" in kwargs:
        attribute = kwargs.pop("attribute")
        default = kwargs.pop("default", None)
        if kwargs:
            raise FilterArgumentError(f"Unexpected keyword argument {next(iter(kwargs))!r}")
        func = make_attrgetter(context, attribute, default=default)
    else:
        try:
            name = args[0]
            args = args[1:]
        except IndexError:
            raise FilterArgumentError("map requires a filter argument") from None

        def func(item: Any) -> Any:
            return context.environment.call_filter(name, item, args, kwargs, context)

    for item in value:
        yield func(item)


@pass_context
def do_select(context: Any, value: Iterable[Any], *args: Any, **kwargs: Any) -> Iterator[Any]:
    return _select_or_reject(context, value, args, kwargs, lambda x: x, False)


@pass_context
def do_reject(context: Any, value: Iterable[Any], *args: Any, **kwargs: Any) -> Iterator[Any]:
    return _select_or_reject(context, value, args, kwargs, lambda x: not x, False)


@pass_context
def do_selectattr(context: Any, value: Iterable[Any], *args: Any, **kwargs: Any) -> Iterator[Any]:
    return _select_or_reject(context, value, args, kwargs, lambda x: x, True)


@pass_context
def do_rejectattr(context: Any, value: Iterable[Any], *args: Any, **kwargs: Any) -> Iterator[Any]:
    return _select_or_reject(context, value, args, kwargs, lambda x: not x, True)


# ---------------------------------------------------------------------------
# Реестр
# ---------------------------------------------------------------------------

FILTERS: Dict[str, Callable[..., Any]] = {
    "abs": do_abs,
    "attr": do_attr,
    "batch": do_batch,
    "capitalize": do_capitalize,
    "center": do_center,
    "count": do_count,
    "d": do_default,
    "default": do_default,
    "dictsort": do_dictsort,
    "dictsortcasesensitive": do_dictsortcasesensitive,
    "dictsortreversed": do_dictsortreversed,
    "do": do_do,
    "e": do_escape,
    "escape": do_escape,
    "escapejs": do_escapejs,
    "filesizeformat": do_filesizeformat,
    "first": do_first,
    "float": do_float,
    "floatformat": do_floatformat,
    "forceescape": do_forceescape,
    "format": do_format,
    "fromjson": do_fromjson,
    "groupby": do_groupby,
    "indent": do_indent,
    "int": do_int,
    "items": do_items,
    "join": do_join,
    "last": do_last,
    "length": do_length,
    "list": do_list,
    "lower": do_lower,
    "ltrim": do_ltrim,
    "map": do_map,
    "max": do_max,
    "min": do_min,
    "pprint": do_pprint,
    "random": do_random,
    "reject": do_reject,
    "rejectattr": do_rejectattr,
    "replace": do_replace,
    "reverse": do_reverse,
    "round": do_round,
    "rtrim": do_rtrim,
    "safe": do_safe,
    "select": do_select,
    "selectattr": do_selectattr,
    "shuffle": do_shuffle,
    "slice": do_slice,
    "sort": do_sort,
    "string": do_string,
    "striptags": do_striptags,
    "strip": do_trim,
    "sum": do_sum,
    "title": do_title,
    "tojson": do_tojson,
    "trim": do_trim,
    "truncate": do_truncate,
    "unique": do_unique,
    "upper": do_upper,
    "urlencode": do_urlencode,
    "urlize": do_urlize,
    "wordcount": do_wordcount,
    "wordwrap": do_wordwrap,
    "xmlattr": do_xmlattr,
}


__all__ = ["FILTERS", "make_attrgetter", "make_multi_attrgetter"]
