"""
Типизированная загрузка сырых данных YAML в dataclass-модели.

Значения проверяются по аннотациям полей; ошибка сообщает путь поля
(``$.sandbox.max_output_size``). При установленной переменной
``JINX_TYPED_DEBUG`` каждый шаг пишется в лог ``jinx.config.typed``.
"""

from __future__ import annotations

import dataclasses
import logging
import os
import sys
import typing as t
from dataclasses import fields, is_dataclass
from enum import Enum
from types import UnionType
from typing import Any, get_args, get_origin

# -------------------- Logging setup --------------------

_LOG = logging.getLogger("jinx.config.typed")

if os.environ.get("JINX_TYPED_DEBUG"):
    _LOG.setLevel(logging.DEBUG)
    if not _LOG.handlers:
        _handler = logging.StreamHandler()
        _handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        _LOG.addHandler(_handler)

# -------------------- Public error --------------------


class ConfigLoadError(ValueError):
    """Ошибка загрузки конфигурации с указанием пути поля."""


# -------------------- Helpers --------------------


def _type_name(tp: Any) -> str:
    return getattr(tp, "__name__", str(tp))


def _err(path: str, msg: str) -> ConfigLoadError:
    _LOG.debug("RAISE at %s: %s", path, msg)
    return ConfigLoadError(f"{path}: {msg}")


def _strip_annotated(tp: Any) -> Any:
    if get_origin(tp) is t.Annotated:
        args = get_args(tp)
        return args[0] if args else Any
    return tp


def _is_optional(tp: Any) -> bool:
    tp = _strip_annotated(tp)
    return get_origin(tp) in (t.Union, UnionType) and type(None) in get_args(tp)


def _coerce_literal(val: Any, tp: Any, path: str) -> Any:
    allowed = get_args(tp)
    if val in allowed:
        return val
    raise _err(path, f"expected one of {list(allowed)}, got {val!r}")


def _coerce_enum(val: Any, tp: Any, path: str) -> Any:
    if isinstance(val, tp):
        return val
    if isinstance(val, str) and val in tp.__members__:
        return tp[val]
    try:
        return tp(val)
    except ValueError:
        allowed = [m.value for m in tp]
        raise _err(path, f"expected {_type_name(tp)} (one of {allowed}), got {val!r}") from None


def _coerce_union(val: Any, tp: Any, path: str) -> Any:
    variants = get_args(tp)
    _LOG.debug("Union at %s: variants=%s, val=%r", path, [_type_name(a) for a in variants], val)
    errs: list[str] = []
    for sub in variants:
        # NoneType подходит только для None
        if sub is type(None):
            if val is None:
                return None
            continue
        try:
            return load_typed(sub, val, path=path)
        except ConfigLoadError as e:
            errs.append(str(e))
    raise _err(path, " | ".join(errs) or f"no variant of {_type_name(tp)} matched")


def _coerce_mapping(val: Any, tp: Any, path: str) -> Any:
    if not isinstance(val, dict):
        raise _err(path, f"expected mapping, got {type(val).__name__}")
    kt, vt = get_args(tp) or (Any, Any)
    out: dict[Any, Any] = {}
    for k, v in val.items():
        key = load_typed(kt, k, path=f"{path}.<key>")
        out[key] = load_typed(vt, v, path=f"{path}.{key}")
    return out


def _coerce_sequence(val: Any, tp: Any, path: str) -> Any:
    origin = get_origin(tp)
    if not isinstance(val, (list, tuple, set)):
        raise _err(path, f"expected list, got {type(val).__name__}")
    args = get_args(tp)
    # Tuple[X, ...] и List[X] разбираются одинаково
    et = args[0] if args else Any
    items = [load_typed(et, v, path=f"{path}[{i}]") for i, v in enumerate(val)]
    if origin in (tuple, t.Tuple):
        return tuple(items)
    if origin in (set, t.Set, frozenset, t.FrozenSet):
        return frozenset(items) if origin in (frozenset, t.FrozenSet) else set(items)
    return items


def _type_hints(tp: Any) -> dict[str, Any]:
    module = sys.modules.get(tp.__module__)
    gns = dict(vars(module)) if module is not None else {}
    return t.get_type_hints(tp, globalns=gns, include_extras=True)


def _coerce_dataclass(val: Any, tp: Any, path: str) -> Any:
    _LOG.debug("Dataclass at %s: %s", path, _type_name(tp))
    if val is None:
        val = {}
    if not isinstance(val, dict):
        raise _err(path, f"expected mapping for {_type_name(tp)}, got {type(val).__name__}")
    hints = _type_hints(tp)
    fld_map = {f.name: f for f in fields(tp) if f.init}
    extras = set(val) - set(fld_map)
    if extras:
        raise _err(path, f"unknown key(s): {sorted(extras)}")
    kwargs: dict[str, Any] = {}
    for name, f in fld_map.items():
        sub_path = f"{path}.{name}"
        ftype = hints.get(name, f.type)
        if name in val:
            kwargs[name] = load_typed(ftype, val[name], path=sub_path)
        elif f.default is not dataclasses.MISSING or f.default_factory is not dataclasses.MISSING:
            continue
        elif _is_optional(ftype):
            kwargs[name] = None
        else:
            raise _err(sub_path, "required field missing")
    return tp(**kwargs)


# -------------------- Entry point --------------------


def load_typed(tp: Any, val: Any, *, path: str = "$") -> Any:
    """
    Рекурсивно приводит сырое значение к типу ``tp``.

    Поддерживаются dataclass, Literal, Union/Optional, Dict, List, Tuple,
    Set, Enum и примитивы. ``bool`` не принимается там, где ожидается
    число.

    Raises:
        ConfigLoadError: Значение не соответствует типу
    """
    tp = _strip_annotated(tp)
    origin = get_origin(tp)
    _LOG.debug("load_typed: path=%s, tp=%s, val-type=%s", path, _type_name(tp), type(val).__name__)

    if tp is Any or tp is object:
        return val
    if isinstance(tp, type) and is_dataclass(tp):
        return _coerce_dataclass(val, tp, path)
    if origin is t.Literal:
        return _coerce_literal(val, tp, path)
    if origin in (t.Union, UnionType):
        return _coerce_union(val, tp, path)
    if origin in (dict, t.Dict):
        return _coerce_mapping(val, tp, path)
    if origin in (list, t.List, tuple, t.Tuple, set, t.Set, frozenset, t.FrozenSet):
        return _coerce_sequence(val, tp, path)
    if isinstance(tp, type) and issubclass(tp, Enum):
        return _coerce_enum(val, tp, path)
    if tp is type(None):
        if val is None:
            return None
        raise _err(path, f"expected null, got {type(val).__name__}")
    if tp is float:
        if isinstance(val, bool) or not isinstance(val, (int, float)):
            raise _err(path, f"expected float, got {type(val).__name__}")
        return float(val)
    if tp is int:
        if isinstance(val, bool) or not isinstance(val, int):
            raise _err(path, f"expected int, got {type(val).__name__}")
        return val
    if tp in (str, bool):
        if not isinstance(val, tp):
            raise _err(path, f"expected {_type_name(tp)}, got {type(val).__name__}")
        return val
    raise _err(path, f"unsupported type {_type_name(tp)}")


__all__ = ["ConfigLoadError", "load_typed"]
