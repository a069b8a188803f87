"""
Узлы инструкций.

Инструкция либо производит вывод, либо меняет область видимости,
либо управляет потоком выполнения. Порядок элементов в списках ``body``
совпадает с порядком в исходнике и является порядком вывода.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .base import Node, Stmt
from .expressions import Call, Expr, Filter
from .helpers import Keyword, Signature


@dataclass(frozen=True, eq=False)
class Template(Stmt):
    """Корневой узел шаблона."""
    body: List[Node]


@dataclass(frozen=True, eq=False)
class Output(Stmt):
    """Вывод последовательности выражений (текст шаблона и ``{{ }}``)."""
    nodes: List[Expr]


@dataclass(frozen=True, eq=False)
class Extends(Stmt):
    """Наследование от шаблона; имя родителя - строковая константа."""
    template: Expr


@dataclass(frozen=True, eq=False)
class For(Stmt):
    """
    Цикл ``for target in iter [if test] [recursive]``.

    ``else_`` выполняется, если не было ни одной итерации.
    """
    target: Expr
    iter: Expr
    body: List[Node]
    else_: List[Node] = field(default_factory=list)
    test: Optional[Expr] = None
    recursive: bool = False
    is_async: bool = False


@dataclass(frozen=True, eq=False)
class If(Stmt):
    test: Expr
    body: List[Node]
    elif_: List["If"] = field(default_factory=list)
    else_: List[Node] = field(default_factory=list)


@dataclass(frozen=True, eq=False)
class Macro(Stmt):
    name: str
    signature: Signature
    body: List[Node]


@dataclass(frozen=True, eq=False)
class CallBlock(Stmt):
    """``{% call(sig) macro(args) %}body{% endcall %}``: тело доступно макросу как ``caller``."""
    call: Call
    signature: Signature
    body: List[Node]


@dataclass(frozen=True, eq=False)
class FilterBlock(Stmt):
    """Применяет фильтр к отрендеренному телу."""
    body: List[Node]
    filter: Filter


@dataclass(frozen=True, eq=False)
class With(Stmt):
    """Новая область видимости с набором присваиваний."""
    targets: List[Expr]
    values: List[Expr]
    body: List[Node]
    is_async: bool = False


@dataclass(frozen=True, eq=False)
class Namespace(Stmt):
    """
    ``{% namespace ns [= value] %}body{% endnamespace %}``: присваивания
    и макросы тела становятся атрибутами объекта пространства имён.
    """
    name: str
    value: Optional[Expr]
    body: List[Node]


@dataclass(frozen=True, eq=False)
class Export(Stmt):
    """Явный список имён, видимых при импорте шаблона как модуля."""
    names: List[str]


@dataclass(frozen=True, eq=False)
class Assign(Stmt):
    target: Expr
    node: Expr


@dataclass(frozen=True, eq=False)
class AssignBlock(Stmt):
    """``{% set x %}...{% endset %}``, опционально с фильтром."""
    target: Expr
    filter: Optional[Filter]
    body: List[Node]


@dataclass(frozen=True, eq=False)
class Block(Stmt):
    """Переопределяемый именованный блок."""
    name: str
    body: List[Node]
    scoped: bool = False
    required: bool = False


@dataclass(frozen=True, eq=False)
class Include(Stmt):
    template: Expr
    with_context: bool = True
    ignore_missing: bool = False


@dataclass(frozen=True, eq=False)
class Import(Stmt):
    """``{% import "x" as name %}``."""
    template: Expr
    target: str
    with_context: bool = False


@dataclass(frozen=True, eq=False)
class FromImport(Stmt):
    """``{% from "x" import a, b as c %}``; ``names`` - пары (имя, псевдоним)."""
    template: Expr
    names: List[Tuple[str, Optional[str]]]
    with_context: bool = False


@dataclass(frozen=True, eq=False)
class Trans(Stmt):
    """
    Переводимый фрагмент. ``singular``/``plural`` - строки с
    подстановками ``%(name)s``; ``variables`` - привязки имён;
    ``count_name`` - имя переменной, задающей число для ``ngettext``.
    """
    singular: str
    plural: Optional[str] = None
    variables: List[Keyword] = field(default_factory=list)
    count_name: Optional[str] = None
    context: Optional[str] = None
    trimmed: bool = False


@dataclass(frozen=True, eq=False)
class Break(Stmt):
    pass


@dataclass(frozen=True, eq=False)
class Continue(Stmt):
    pass


@dataclass(frozen=True, eq=False)
class Do(Stmt):
    """Вычисляет выражение ради побочного эффекта."""
    node: Expr


@dataclass(frozen=True, eq=False)
class Spaceless(Stmt):
    """Удаляет пробелы между тегами в отрендеренном теле."""
    body: List[Node]


@dataclass(frozen=True, eq=False)
class Scope(Stmt):
    """Изолированная область видимости без присваиваний."""
    body: List[Node]


@dataclass(frozen=True, eq=False)
class ScopedEvalContextModifier(Stmt):
    """Изменяет контекст вычисления (``autoescape``) на время тела."""
    options: List[Keyword]
    body: List[Node]


__all__ = [
    "Template",
    "Output",
    "Extends",
    "For",
    "If",
    "Macro",
    "CallBlock",
    "FilterBlock",
    "With",
    "Namespace",
    "Export",
    "Assign",
    "AssignBlock",
    "Block",
    "Include",
    "Import",
    "FromImport",
    "Trans",
    "Break",
    "Continue",
    "Do",
    "Spaceless",
    "Scope",
    "ScopedEvalContextModifier",
]
