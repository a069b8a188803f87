"""
Встроенные тесты (``value is name(args)``).
"""

from __future__ import annotations

import math
import operator
import re
from collections import abc
from numbers import Number
from typing import Any, Callable, Dict

from .runtime.objects import TemplateModule
from .runtime.undefined import Undefined
from .utils import pass_environment


def test_odd(value: int) -> bool:
    return value % 2 == 1


def test_even(value: int) -> bool:
    return value % 2 == 0


def test_divisibleby(value: int, num: int) -> bool:
    return value % num == 0


def test_defined(value: Any) -> bool:
    return not isinstance(value, Undefined)


def test_undefined(value: Any) -> bool:
    return isinstance(value, Undefined)


@pass_environment
def test_filter(env: Any, value: str) -> bool:
    """Зарегистрирован ли фильтр с таким именем."""
    return value in env.filters


@pass_environment
def test_test(env: Any, value: str) -> bool:
    """Зарегистрирован ли тест с таким именем."""
    return value in env.tests


def test_none(value: Any) -> bool:
    return value is None


def test_boolean(value: Any) -> bool:
    return value is True or value is False


def test_false(value: Any) -> bool:
    return value is False


def test_true(value: Any) -> bool:
    return value is True


def test_integer(value: Any) -> bool:
    return isinstance(value, int) and value is not True and value is not False


def test_float(value: Any) -> bool:
    return isinstance(value, float)


def test_lower(value: str) -> bool:
    return str(value).islower()


def test_upper(value: str) -> bool:
    return str(value).isupper()


def test_string(value: Any) -> bool:
    return isinstance(value, str)


def test_mapping(value: Any) -> bool:
    return isinstance(value, abc.Mapping)


def test_number(value: Any) -> bool:
    return isinstance(value, Number)


def test_sequence(value: Any) -> bool:
    """Поддерживает ли значение ``len`` и ``[]``."""
    try:
        len(value)
        value.__getitem__  # noqa: B018
    except Exception:
        return False
    return True


def test_list(value: Any) -> bool:
    return isinstance(value, list)


def test_tuple(value: Any) -> bool:
    return isinstance(value, tuple)


def test_dict(value: Any) -> bool:
    return isinstance(value, dict)


def test_sameas(value: Any, other: Any) -> bool:
    return value is other


def test_iterable(value: Any) -> bool:
    try:
        iter(value)
    except TypeError:
        return False
    return True


def test_escaped(value: Any) -> bool:
    return hasattr(value, "__html__")


def test_module(value: Any) -> bool:
    """Импортированный шаблон (``{% import ... as m %}``)."""
    return isinstance(value, TemplateModule)


def test_in(value: Any, seq: Any) -> bool:
    return value in seq


def test_matching(value: Any, pattern: str) -> bool:
    return re.match(pattern, str(value)) is not None


def test_search(value: Any, pattern: str) -> bool:
    return re.search(pattern, str(value)) is not None


def test_startingwith(value: Any, *prefixes: str) -> bool:
    return str(value).startswith(tuple(str(p) for p in prefixes))


def test_endingwith(value: Any, *suffixes: str) -> bool:
    return str(value).endswith(tuple(str(s) for s in suffixes))


def test_containing(value: Any, part: Any) -> bool:
    return str(part) in str(value)


def test_infinite(value: Any) -> bool:
    return isinstance(value, (int, float)) and math.isinf(value)


def test_nan(value: Any) -> bool:
    return isinstance(value, (int, float)) and math.isnan(value)


def test_finite(value: Any) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value)


TESTS: Dict[str, Callable[..., bool]] = {
    "odd": test_odd,
    "even": test_even,
    "divisibleby": test_divisibleby,
    "defined": test_defined,
    "undefined": test_undefined,
    "filter": test_filter,
    "test": test_test,
    "none": test_none,
    "boolean": test_boolean,
    "false": test_false,
    "true": test_true,
    "integer": test_integer,
    "float": test_float,
    "lower": test_lower,
    "upper": test_upper,
    "string": test_string,
    "mapping": test_mapping,
    "number": test_number,
    "sequence": test_sequence,
    "iterable": test_iterable,
    "callable": callable,
    "sameas": test_sameas,
    "escaped": test_escaped,
    "module": test_module,
    "list": test_list,
    "tuple": test_tuple,
    "dict": test_dict,
    "in": test_in,
    "matching": test_matching,
    "search": test_search,
    "startingwith": test_startingwith,
    "endingwith": test_endingwith,
    "containing": test_containing,
    "infinite": test_infinite,
    "nan": test_nan,
    "finite": test_finite,
    "==": operator.eq,
    "eq": operator.eq,
    "equalto": operator.eq,
    "!=": operator.ne,
    "ne": operator.ne,
    ">": operator.gt,
    "gt": operator.gt,
    "greaterthan": operator.gt,
    ">=": operator.ge,
    "ge": operator.ge,
    "<": operator.lt,
    "lt": operator.lt,
    "lessthan": operator.lt,
    "<=": operator.le,
    "le": operator.le,
}


__all__ = ["TESTS"]
