"""
Узлы выражений.

Каждое выражение при вычислении даёт ровно одно значение (возможно,
неопределённое). ``as_const`` возвращает статически известное значение
или возбуждает ``Impossible``, если нужно состояние времени выполнения:
обращения к переменным, фильтры, тесты, вызовы, доступ к атрибутам и элементам.
"""

from __future__ import annotations

import typing as t
from dataclasses import dataclass, field

from markupsafe import Markup

from ..runtime.markup import markup_join, str_join
from ..runtime.operators import binary_op, compare_op, unary_op
from .base import EvalContext, Expr, Impossible, get_eval_context
from .helpers import Keyword, Operand, Pair

# Имена, которые нельзя использовать как цели присваивания
_CONSTANT_NAMES = frozenset({"true", "false", "none", "True", "False", "None"})


@dataclass(frozen=True, eq=False)
class Const(Expr):
    """Литерал: строка, число, булево значение или None."""
    value: t.Any

    def as_const(self, eval_ctx: t.Optional[EvalContext] = None) -> t.Any:
        return self.value


@dataclass(frozen=True, eq=False)
class TemplateData(Expr):
    """Текст шаблона вне конструкций."""
    data: str

    def as_const(self, eval_ctx: t.Optional[EvalContext] = None) -> str:
        eval_ctx = get_eval_context(eval_ctx)
        if eval_ctx.volatile:
            raise Impossible()
        if eval_ctx.autoescape:
            return Markup(self.data)
        return self.data


@dataclass(frozen=True, eq=False)
class Name(Expr):
    """
    Обращение к переменной. ``ctx``: "load" - чтение, "store" - цель
    присваивания, "param" - параметр макроса.
    """
    name: str
    ctx: str = "load"

    def can_assign(self) -> bool:
        return self.name not in _CONSTANT_NAMES


@dataclass(frozen=True, eq=False)
class NSRef(Expr):
    """Цель присваивания ``namespace.attr``."""
    name: str
    attr: str

    def can_assign(self) -> bool:
        return True


@dataclass(frozen=True, eq=False)
class Tuple(Expr):
    """Кортеж; в контексте "store" - распаковка при присваивании."""
    items: t.List[Expr]
    ctx: str = "load"

    def as_const(self, eval_ctx: t.Optional[EvalContext] = None) -> t.Tuple[t.Any, ...]:
        eval_ctx = get_eval_context(eval_ctx)
        return tuple(item.as_const(eval_ctx) for item in self.items)

    def can_assign(self) -> bool:
        return all(item.can_assign() for item in self.items)


@dataclass(frozen=True, eq=False)
class List(Expr):
    items: t.List[Expr]

    def as_const(self, eval_ctx: t.Optional[EvalContext] = None) -> t.List[t.Any]:
        eval_ctx = get_eval_context(eval_ctx)
        return [item.as_const(eval_ctx) for item in self.items]


@dataclass(frozen=True, eq=False)
class Dict(Expr):
    items: t.List[Pair]

    def as_const(self, eval_ctx: t.Optional[EvalContext] = None) -> t.Dict[t.Any, t.Any]:
        eval_ctx = get_eval_context(eval_ctx)
        return dict(item.as_const(eval_ctx) for item in self.items)


# ---------------------------------------------------------------------------
# Бинарные и унарные операторы
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class BinExpr(Expr):
    """Бинарный оператор; символ задаётся атрибутом класса ``operator``."""
    left: Expr
    right: Expr

    abstract = True
    operator = ""

    def as_const(self, eval_ctx: t.Optional[EvalContext] = None) -> t.Any:
        eval_ctx = get_eval_context(eval_ctx)
        left = self.left.as_const(eval_ctx)
        right = self.right.as_const(eval_ctx)
        try:
            return binary_op(self.operator, left, right)
        except Exception as e:
            raise Impossible() from e


class Add(BinExpr):
    operator = "+"


class Sub(BinExpr):
    operator = "-"


class Mul(BinExpr):
    operator = "*"


class Div(BinExpr):
    operator = "/"


class FloorDiv(BinExpr):
    operator = "//"


class Mod(BinExpr):
    operator = "%"


class Pow(BinExpr):
    operator = "**"


class And(BinExpr):
    """Логическое «и» с коротким замыканием; значение - один из операндов."""
    operator = "and"

    def as_const(self, eval_ctx: t.Optional[EvalContext] = None) -> t.Any:
        eval_ctx = get_eval_context(eval_ctx)
        return self.left.as_const(eval_ctx) and self.right.as_const(eval_ctx)


class Or(BinExpr):
    operator = "or"

    def as_const(self, eval_ctx: t.Optional[EvalContext] = None) -> t.Any:
        eval_ctx = get_eval_context(eval_ctx)
        return self.left.as_const(eval_ctx) or self.right.as_const(eval_ctx)


@dataclass(frozen=True, eq=False)
class UnaryExpr(Expr):
    node: Expr

    abstract = True
    operator = ""

    def as_const(self, eval_ctx: t.Optional[EvalContext] = None) -> t.Any:
        eval_ctx = get_eval_context(eval_ctx)
        value = self.node.as_const(eval_ctx)
        try:
            return unary_op(self.operator, value)
        except Exception as e:
            raise Impossible() from e


class Not(UnaryExpr):
    operator = "not"

    def as_const(self, eval_ctx: t.Optional[EvalContext] = None) -> t.Any:
        eval_ctx = get_eval_context(eval_ctx)
        return not self.node.as_const(eval_ctx)


class Neg(UnaryExpr):
    operator = "-"


class Pos(UnaryExpr):
    operator = "+"


# ---------------------------------------------------------------------------
# Доступ, вызовы, фильтры и тесты
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class Call(Expr):
    """Вызов ``node(args, kwargs, *dyn_args, **dyn_kwargs)``."""
    node: Expr
    args: t.List[Expr] = field(default_factory=list)
    kwargs: t.List[Keyword] = field(default_factory=list)
    dyn_args: t.Optional[Expr] = None
    dyn_kwargs: t.Optional[Expr] = None


@dataclass(frozen=True, eq=False)
class Getattr(Expr):
    """Доступ к атрибуту ``node.attr`` (с откатом на доступ по ключу)."""
    node: Expr
    attr: str
    ctx: str = "load"


@dataclass(frozen=True, eq=False)
class Getitem(Expr):
    """Доступ по ключу ``node[arg]`` (с откатом на атрибут для строковых ключей)."""
    node: Expr
    arg: Expr
    ctx: str = "load"


@dataclass(frozen=True, eq=False)
class Slice(Expr):
    start: t.Optional[Expr] = None
    stop: t.Optional[Expr] = None
    step: t.Optional[Expr] = None

    def as_const(self, eval_ctx: t.Optional[EvalContext] = None) -> slice:
        eval_ctx = get_eval_context(eval_ctx)

        def const(part: t.Optional[Expr]) -> t.Any:
            return None if part is None else part.as_const(eval_ctx)

        return slice(const(self.start), const(self.stop), const(self.step))


@dataclass(frozen=True, eq=False)
class Concat(Expr):
    """Строковая конкатенация ``a ~ b ~ c``."""
    nodes: t.List[Expr]

    def as_const(self, eval_ctx: t.Optional[EvalContext] = None) -> str:
        eval_ctx = get_eval_context(eval_ctx)
        if eval_ctx.volatile:
            raise Impossible()
        values = [node.as_const(eval_ctx) for node in self.nodes]
        return markup_join(values) if eval_ctx.autoescape else str_join(values)


@dataclass(frozen=True, eq=False)
class Compare(Expr):
    """Цепочка сравнений ``expr op1 a op2 b`` ≡ ``expr op1 a and a op2 b``."""
    expr: Expr
    ops: t.List[Operand]

    def as_const(self, eval_ctx: t.Optional[EvalContext] = None) -> t.Any:
        eval_ctx = get_eval_context(eval_ctx)
        result = value = self.expr.as_const(eval_ctx)
        try:
            for operand in self.ops:
                new_value = operand.expr.as_const(eval_ctx)
                result = compare_op(operand.op, value, new_value)
                if not result:
                    return False
                value = new_value
        except Impossible:
            raise
        except Exception as e:
            raise Impossible() from e
        return result


@dataclass(frozen=True, eq=False)
class CondExpr(Expr):
    """``expr1 if test else expr2``; без ``else`` ложная ветка даёт undefined."""
    test: Expr
    expr1: Expr
    expr2: t.Optional[Expr] = None

    def as_const(self, eval_ctx: t.Optional[EvalContext] = None) -> t.Any:
        eval_ctx = get_eval_context(eval_ctx)
        if self.test.as_const(eval_ctx):
            return self.expr1.as_const(eval_ctx)
        if self.expr2 is None:
            raise Impossible()
        return self.expr2.as_const(eval_ctx)


@dataclass(frozen=True, eq=False)
class _FilterTestCommon(Expr):
    node: t.Optional[Expr]
    name: str
    args: t.List[Expr] = field(default_factory=list)
    kwargs: t.List[Keyword] = field(default_factory=list)
    dyn_args: t.Optional[Expr] = None
    dyn_kwargs: t.Optional[Expr] = None

    abstract = True


class Filter(_FilterTestCommon):
    """
    Применение фильтра ``node|name(args)``. ``node`` равен None
    внутри ``{% filter %}``: тогда фильтруется отрендеренное тело.
    """


class Test(_FilterTestCommon):
    """Применение теста ``node is name(args)``."""


@dataclass(frozen=True, eq=False)
class Await(Expr):
    """``await node``; выполняется синхронно."""
    node: Expr


# ---------------------------------------------------------------------------
# Маркеры безопасности и ссылки на контекст
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class MarkSafe(Expr):
    """Помечает значение как безопасную разметку."""
    expr: Expr

    def as_const(self, eval_ctx: t.Optional[EvalContext] = None) -> Markup:
        eval_ctx = get_eval_context(eval_ctx)
        return Markup(self.expr.as_const(eval_ctx))


@dataclass(frozen=True, eq=False)
class MarkSafeIfAutoescape(Expr):
    """Помечает значение безопасным, только если автоэкранирование включено."""
    expr: Expr

    def as_const(self, eval_ctx: t.Optional[EvalContext] = None) -> t.Any:
        eval_ctx = get_eval_context(eval_ctx)
        if eval_ctx.volatile:
            raise Impossible()
        value = self.expr.as_const(eval_ctx)
        if eval_ctx.autoescape:
            return Markup(value)
        return value


@dataclass(frozen=True, eq=False)
class ContextReference(Expr):
    """Текущий контекст рендеринга как значение."""


@dataclass(frozen=True, eq=False)
class DerivedContextReference(Expr):
    """Текущий контекст вместе с локальными переменными фреймов."""


@dataclass(frozen=True, eq=False)
class EnvironmentAttribute(Expr):
    """Атрибут окружения, например ``autoescape``."""
    name: str


__all__ = [
    "Const",
    "TemplateData",
    "Name",
    "NSRef",
    "Tuple",
    "List",
    "Dict",
    "BinExpr",
    "Add",
    "Sub",
    "Mul",
    "Div",
    "FloorDiv",
    "Mod",
    "Pow",
    "And",
    "Or",
    "UnaryExpr",
    "Not",
    "Neg",
    "Pos",
    "Call",
    "Getattr",
    "Getitem",
    "Slice",
    "Concat",
    "Compare",
    "CondExpr",
    "Filter",
    "Test",
    "Await",
    "MarkSafe",
    "MarkSafeIfAutoescape",
    "ContextReference",
    "DerivedContextReference",
    "EnvironmentAttribute",
]
