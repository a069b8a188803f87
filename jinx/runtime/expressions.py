"""
Вычисление выражений.

Каждый обработчик ``eval_<Узел>`` получает узел и контекст и возвращает
ровно одно значение. Фильтры, тесты и глобальные функции ищутся в
реестрах окружения в момент вызова.
"""

from __future__ import annotations

import inspect
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from markupsafe import Markup

from .. import nodes
from ..errors import FilterArgumentError, TemplateRuntimeError
from ..utils import missing
from .context import Context
from .markup import markup_join, str_join, to_output
from .objects import Namespace
from .operators import binary_op, compare_op, unary_op

# Исключения Python, которые превращаются в ошибку фильтра
FILTER_ERRORS = (TypeError, ValueError, LookupError, AttributeError)


def resolve_awaitable(value: Any) -> Any:
    """
    Дожидается awaitable синхронно, не приостанавливая рендеринг.

    Raises:
        TemplateRuntimeError: Если awaitable действительно приостанавливается
    """
    if not inspect.isawaitable(value):
        return value
    iterator = value.__await__()
    try:
        iterator.send(None)
    except StopIteration as stop:
        return stop.value
    close = getattr(iterator, "close", None)
    if close is not None:
        close()
    raise TemplateRuntimeError(
        "Awaitable suspended: asynchronous I/O is not supported by the synchronous renderer",
        kind="type",
    )


def iterate_async(obj: Any) -> Iterator[Any]:
    """Перебирает асинхронный итератор синхронно."""
    ait = obj.__aiter__()
    while True:
        try:
            yield resolve_awaitable(ait.__anext__())
        except StopAsyncIteration:
            return


class ExpressionEvaluatorMixin:
    """Обработчики узлов-выражений."""

    environment: Any

    # Заполняется в Evaluator.__init__
    _expr_table: Dict[type, Any]

    # Предоставляется Evaluator
    evaluate: Callable[..., Any]

    # ---------------- Литералы и имена ----------------

    def eval_Const(self, node: nodes.Const, ctx: Context) -> Any:
        return node.value

    def eval_TemplateData(self, node: nodes.TemplateData, ctx: Context) -> Any:
        if ctx.eval_ctx.autoescape:
            return Markup(node.data)
        return node.data

    def eval_Name(self, node: nodes.Name, ctx: Context) -> Any:
        return ctx.resolve(node.name)

    def eval_NSRef(self, node: nodes.NSRef, ctx: Context) -> Any:
        return self.environment.getattr(ctx.resolve(node.name), node.attr)

    def eval_Tuple(self, node: nodes.Tuple, ctx: Context) -> Any:
        return tuple(self.evaluate(item, ctx) for item in node.items)

    def eval_List(self, node: nodes.List, ctx: Context) -> Any:
        return [self.evaluate(item, ctx) for item in node.items]

    def eval_Dict(self, node: nodes.Dict, ctx: Context) -> Any:
        return {self.evaluate(pair.key, ctx): self.evaluate(pair.value, ctx) for pair in node.items}

    # ---------------- Операторы ----------------

    def eval_BinExpr(self, node: nodes.BinExpr, ctx: Context) -> Any:
        left = self.evaluate(node.left, ctx)
        right = self.evaluate(node.right, ctx)
        return binary_op(node.operator, left, right)

    def eval_And(self, node: nodes.And, ctx: Context) -> Any:
        left = self.evaluate(node.left, ctx)
        if not left:
            return left
        return self.evaluate(node.right, ctx)

    def eval_Or(self, node: nodes.Or, ctx: Context) -> Any:
        left = self.evaluate(node.left, ctx)
        if left:
            return left
        return self.evaluate(node.right, ctx)

    def eval_Not(self, node: nodes.Not, ctx: Context) -> Any:
        return not self.evaluate(node.node, ctx)

    def eval_UnaryExpr(self, node: nodes.UnaryExpr, ctx: Context) -> Any:
        return unary_op(node.operator, self.evaluate(node.node, ctx))

    def eval_Concat(self, node: nodes.Concat, ctx: Context) -> Any:
        values = [self.evaluate(child, ctx) for child in node.nodes]
        if ctx.eval_ctx.autoescape:
            return markup_join(values)
        return str_join(values)

    def eval_Compare(self, node: nodes.Compare, ctx: Context) -> Any:
        value = self.evaluate(node.expr, ctx)
        result: Any = True
        for operand in node.ops:
            right = self.evaluate(operand.expr, ctx)
            result = compare_op(operand.op, value, right)
            if not result:
                return False
            value = right
        return result

    def eval_CondExpr(self, node: nodes.CondExpr, ctx: Context) -> Any:
        if self.evaluate(node.test, ctx):
            return self.evaluate(node.expr1, ctx)
        if node.expr2 is None:
            return self.environment.undefined(
                f"the inline if-expression on line {node.lineno} evaluated to false and no else section was defined."
            )
        return self.evaluate(node.expr2, ctx)

    # ---------------- Доступ к данным ----------------

    def eval_Getattr(self, node: nodes.Getattr, ctx: Context) -> Any:
        obj = self.evaluate(node.node, ctx)
        ctx.state.check_attribute(obj, node.attr)
        return self.environment.getattr(obj, node.attr)

    def eval_Getitem(self, node: nodes.Getitem, ctx: Context) -> Any:
        obj = self.evaluate(node.node, ctx)
        key = self.evaluate(node.arg, ctx)
        if isinstance(key, str):
            ctx.state.check_attribute(obj, key)
        return self.environment.getitem(obj, key)

    def eval_Slice(self, node: nodes.Slice, ctx: Context) -> Any:
        def part(expr: Optional[nodes.Expr]) -> Any:
            return None if expr is None else self.evaluate(expr, ctx)

        return slice(part(node.start), part(node.stop), part(node.step))

    # ---------------- Вызовы ----------------

    def call_arguments(self, node: Any, ctx: Context) -> Tuple[List[Any], Dict[str, Any]]:
        """Вычисляет позиционные и именованные аргументы вызова, включая ``*``/``**``."""
        args = [self.evaluate(arg, ctx) for arg in node.args]
        kwargs = {kw.key: self.evaluate(kw.value, ctx) for kw in node.kwargs}
        if node.dyn_args is not None:
            args.extend(self.evaluate(node.dyn_args, ctx))
        if node.dyn_kwargs is not None:
            for key, value in dict(self.evaluate(node.dyn_kwargs, ctx)).items():
                if key in kwargs:
                    raise TypeError(f"got multiple values for keyword argument {key!r}")
                kwargs[key] = value
        return args, kwargs

    def eval_Call(self, node: nodes.Call, ctx: Context, extra_kwargs: Optional[Dict[str, Any]] = None) -> Any:
        target = node.node
        if isinstance(target, nodes.Getattr):
            obj = self.evaluate(target.node, ctx)
            ctx.state.check_attribute(obj, target.attr)
            func = self.environment.getattr(obj, target.attr)
            ctx.state.check_method_call(obj, target.attr)
        else:
            func = self.evaluate(target, ctx)
            if isinstance(target, nodes.Name):
                ctx.state.check_function(target.name)
        args, kwargs = self.call_arguments(node, ctx)
        if extra_kwargs:
            kwargs.update(extra_kwargs)
        return ctx.call(func, *args, **kwargs)

    # ---------------- Фильтры и тесты ----------------

    def _filter_input(self, expr: Optional[nodes.Expr], ctx: Context, base: Any) -> Any:
        if expr is None:
            return base
        if isinstance(expr, nodes.Filter) and base is not missing:
            return self.eval_filter(expr, ctx, base)
        return self.evaluate(expr, ctx)

    def eval_filter(self, node: nodes.Filter, ctx: Context, base: Any = missing) -> Any:
        """
        Применяет фильтр. ``base`` - значение, подставляемое вместо
        отсутствующего операнда (тело ``{% filter %}`` и ``{% set %}``).

        Raises:
            FilterArgumentError: Неизвестный фильтр или ошибка при его вызове
        """
        func = self.environment.filters.get(node.name)
        if func is None:
            raise FilterArgumentError(f"No filter named {node.name!r}.", node.lineno, node.column)
        ctx.state.check_filter(node.name)
        value = self._filter_input(node.node, ctx, base)
        args, kwargs = self.call_arguments(node, ctx)
        try:
            return ctx.call(func, value, *args, **kwargs)
        except FILTER_ERRORS as e:
            raise FilterArgumentError(f"Filter {node.name!r} failed: {e}", node.lineno, node.column) from e

    def eval_Filter(self, node: nodes.Filter, ctx: Context) -> Any:
        return self.eval_filter(node, ctx)

    def eval_Test(self, node: nodes.Test, ctx: Context) -> Any:
        func = self.environment.tests.get(node.name)
        if func is None:
            raise FilterArgumentError(f"No test named {node.name!r}.", node.lineno, node.column)
        value = self.evaluate(node.node, ctx) if node.node is not None else None
        args, kwargs = self.call_arguments(node, ctx)
        try:
            return ctx.call(func, value, *args, **kwargs)
        except FILTER_ERRORS as e:
            raise FilterArgumentError(f"Test {node.name!r} failed: {e}", node.lineno, node.column) from e

    # ---------------- Прочее ----------------

    def eval_Await(self, node: nodes.Await, ctx: Context) -> Any:
        return resolve_awaitable(self.evaluate(node.node, ctx))

    def eval_MarkSafe(self, node: nodes.MarkSafe, ctx: Context) -> Any:
        return Markup(self.evaluate(node.expr, ctx))

    def eval_MarkSafeIfAutoescape(self, node: nodes.MarkSafeIfAutoescape, ctx: Context) -> Any:
        value = self.evaluate(node.expr, ctx)
        if ctx.eval_ctx.autoescape:
            return Markup(value)
        return value

    def eval_ContextReference(self, node: nodes.ContextReference, ctx: Context) -> Any:
        return ctx

    def eval_DerivedContextReference(self, node: nodes.DerivedContextReference, ctx: Context) -> Any:
        return ctx.derive(list(ctx.frames))

    def eval_EnvironmentAttribute(self, node: nodes.EnvironmentAttribute, ctx: Context) -> Any:
        return getattr(self.environment, node.name)

    # ---------------- Вывод ----------------

    def render_value(self, value: Any, ctx: Context) -> str:
        """Строка для вывода ``{{ }}``: ``finalize`` и автоэкранирование."""
        finalize = self.environment.finalize
        if finalize is not None:
            value = ctx.call(finalize, value)
        return to_output(value, ctx.eval_ctx.autoescape)

    def assign(self, target: nodes.Expr, value: Any, ctx: Context) -> None:
        """
        Связывает значение с целью присваивания.

        Raises:
            TemplateRuntimeError: Присваивание атрибута не-пространству имён
            ValueError: Несовпадение числа элементов при распаковке
        """
        if isinstance(target, nodes.Name):
            ctx.set(target.name, value)
        elif isinstance(target, nodes.Tuple):
            values = list(value)
            if len(values) != len(target.items):
                raise ValueError(
                    f"cannot unpack {len(values)} value(s) into {len(target.items)} target(s)"
                )
            for item, item_value in zip(target.items, values):
                self.assign(item, item_value, ctx)
        elif isinstance(target, nodes.NSRef):
            ns = ctx.resolve(target.name)
            if not isinstance(ns, Namespace):
                raise TemplateRuntimeError(
                    f"Cannot assign attribute {target.attr!r} on non-namespace object {target.name!r}",
                    target.lineno,
                    target.column,
                    kind="type",
                )
            ns[target.attr] = value
        else:
            raise TemplateRuntimeError(f"Can't assign to {type(target).__name__}", target.lineno, target.column)


__all__ = ["ExpressionEvaluatorMixin", "resolve_awaitable", "iterate_async", "FILTER_ERRORS"]
