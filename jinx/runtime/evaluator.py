"""
Интерпретатор AST.

Инструкции исполняются обработчиками ``exec_<Узел>``. Обработчики,
производящие вывод, - генераторы строк; их возвращаемое значение
(``LoopSignal`` или None) сообщает ближайшему циклу о ``break`` и
``continue``. Остальные обработчики - обычные функции.

Таблицы диспетчеризации строятся по реестру узлов и проверяются на
полноту при импорте: у каждого конкретного узла инструкции и выражения
есть обработчик.
"""

from __future__ import annotations

import inspect
import logging
import re
from typing import Any, Callable, Dict, Generator, Iterator, List, Optional, Tuple, Type

from markupsafe import Markup

from .. import nodes
from ..errors import (
    RecursionLimitError,
    TemplateError,
    TemplateNotFound,
    TemplateRuntimeError,
)
from ..nodes.base import EvalContext, concrete_nodes, missing_handlers
from .context import Context
from .expressions import ExpressionEvaluatorMixin, iterate_async
from .inheritance import BlockReference, TemplateReference, check_chain, extend_chains
from .loop import LoopContext
from .macro import Macro
from .markup import to_output
from .objects import Namespace, TemplateModule
from .state import LoopSignal
from .undefined import is_undefined

logger = logging.getLogger(__name__)

Chunks = Generator[str, None, Optional[LoopSignal]]

# Ошибки Python, которые превращаются в TemplateRuntimeError с позицией узла
WRAPPED_ERRORS = (ArithmeticError, LookupError, TypeError, ValueError, AttributeError)

_SPACELESS_RE = re.compile(r">\s+<")


def error_kind(exc: BaseException) -> str:
    if isinstance(exc, ArithmeticError):
        return "arithmetic"
    if isinstance(exc, LookupError):
        return "lookup"
    return "type"


def _handler_table(owner: Any, family: str, prefix: str) -> Dict[Type[nodes.Node], Callable[..., Any]]:
    """Класс узла → метод обработчика; ищется по MRO (``eval_BinExpr`` для ``Add``)."""
    table: Dict[Type[nodes.Node], Callable[..., Any]] = {}
    for cls in concrete_nodes(family):
        for klass in cls.__mro__:
            handler = getattr(owner, f"{prefix}{klass.__name__}", None)
            if handler is not None:
                table[cls] = handler
                break
    return table


class Evaluator(ExpressionEvaluatorMixin):
    """
    Исполняет скомпилированные шаблоны окружения.

    Не хранит состояния между рендерингами: всё изменяемое живёт в
    ``Context`` и ``RenderState``.
    """

    def __init__(self, environment: Any):
        self.environment = environment
        self._expr_table = _handler_table(self, "expr", "eval_")
        self._stmt_table: Dict[Type[nodes.Node], Tuple[Callable[..., Any], bool]] = {
            cls: (handler, inspect.isgeneratorfunction(handler))
            for cls, handler in _handler_table(self, "stmt", "exec_").items()
        }

    # ---------------- Диспетчеризация ----------------

    def evaluate(self, node: nodes.Expr, ctx: Context) -> Any:
        """
        Вычисляет выражение.

        Raises:
            TemplateRuntimeError: С позицией самого внутреннего узла, на котором
                возникла ошибка
        """
        handler = self._expr_table.get(type(node))
        if handler is None:
            raise TemplateRuntimeError(f"Cannot evaluate node {type(node).__name__}", node.lineno, node.column, ctx.name)
        try:
            return handler(node, ctx)
        except TemplateRuntimeError as e:
            e.locate(node.lineno, node.column, ctx.name)
            raise
        except TemplateError:
            raise
        except RecursionError as e:
            raise RecursionLimitError(
                "Maximum recursion depth exceeded (Python stack exhausted)", node.lineno, node.column, ctx.name
            ) from e
        except WRAPPED_ERRORS as e:
            raise TemplateRuntimeError(
                f"{type(e).__name__}: {e}", node.lineno, node.column, ctx.name, kind=error_kind(e)
            ) from e

    def execute(self, node: nodes.Node, ctx: Context) -> Chunks:
        """Исполняет инструкцию, порождая строки вывода."""
        entry = self._stmt_table.get(type(node))
        if entry is None:
            raise TemplateRuntimeError(f"Cannot execute node {type(node).__name__}", node.lineno, node.column, ctx.name)
        handler, streaming = entry
        try:
            if streaming:
                return (yield from handler(node, ctx))
            return handler(node, ctx)  # type: ignore[no-any-return]
        except TemplateRuntimeError as e:
            e.locate(node.lineno, node.column, ctx.name)
            raise
        except TemplateError:
            raise
        except RecursionError as e:
            raise RecursionLimitError(
                "Maximum recursion depth exceeded (Python stack exhausted)", node.lineno, node.column, ctx.name
            ) from e
        except WRAPPED_ERRORS as e:
            raise TemplateRuntimeError(
                f"{type(e).__name__}: {e}", node.lineno, node.column, ctx.name, kind=error_kind(e)
            ) from e

    def execute_body(self, body: List[nodes.Node], ctx: Context) -> Chunks:
        for node in body:
            signal = yield from self.execute(node, ctx)
            if signal is not None:
                return signal
        return None

    def execute_body_output(self, body: List[nodes.Node], ctx: Context) -> Iterator[str]:
        """Вывод тела без сигналов цикла (тела макросов, блоков, присваиваний)."""
        yield from self.execute_body(body, ctx)

    def render_body(self, body: List[nodes.Node], ctx: Context) -> str:
        """Рендерит тело в отдельном фрейме в строку (Markup при автоэкранировании)."""
        with ctx.scope():
            rv = "".join(self.execute_body_output(body, ctx))
        if ctx.eval_ctx.autoescape:
            return Markup(rv)
        return rv

    # ---------------- Точки входа ----------------

    def root_render(self, template: Any, ctx: Context) -> Iterator[str]:
        """
        Рендерит шаблон целиком, следуя цепочке ``extends``.

        После ``{% extends %}`` вывод верхнего уровня дочернего шаблона
        подавляется целиком, включая ``include`` и ``call``, а присваивания,
        импорты и макросы продолжают выполняться; затем рендерится родитель
        с тем же контекстом.
        """
        ctx.parent["self"] = TemplateReference(lambda name: self._block_reference(ctx, name, 0))
        current = template
        while True:
            for chunk in self.execute_body_output(current.root.body, ctx):
                if ctx.parent_template is None:
                    yield chunk
            parent = ctx.parent_template
            if parent is None:
                return
            ctx.parent_template = None
            ctx.name = parent.name
            ctx.eval_ctx = EvalContext(self.environment, parent.name)
            current = parent

    def render_block(self, template: Any, ctx: Context, name: str) -> Iterator[str]:
        """
        Рендерит один блок с учётом родителей шаблона.

        Raises:
            TemplateRuntimeError: Если блока нет в иерархии
        """
        chain = ctx.inheritance_chain
        if not chain:
            chain.append(template.name or "<string>")
        current = template
        while current.parent_name is not None:
            parent_name = self.environment.join_path(current.parent_name, current.name)
            check_chain(chain, parent_name)
            chain.append(parent_name)
            current = self.environment.get_template(parent_name)
            extend_chains(ctx.blocks, current.name, current.blocks)
        if name not in ctx.blocks:
            raise TemplateRuntimeError(f"Template {template.name!r} has no block {name!r}", name=template.name, kind="lookup")
        ctx.parent["self"] = TemplateReference(lambda block: self._block_reference(ctx, block, 0))
        yield from self.render_block_level(ctx, name, 0, ctx.frames[:1])

    def make_module(self, template: Any, ctx: Context) -> TemplateModule:
        """Исполняет шаблон и собирает экспортированные имена."""
        body = "".join(self.root_render(template, ctx))
        return TemplateModule(template.name, ctx.exported_vars(), body)

    # ---------------- Блоки ----------------

    def _block_reference(self, ctx: Context, name: str, level: int, frames: Optional[List[Dict[str, Any]]] = None) -> Any:
        chain = ctx.blocks.get(name)
        if not chain or level >= len(chain):
            if level:
                return self.environment.undefined(f"there is no parent block called {name!r}.", name="super")
            return self.environment.undefined(f"there is no block called {name!r}.", name=name)
        base = frames if frames is not None else ctx.frames[:1]
        return BlockReference(
            name,
            level,
            lambda lvl: self.render_block_level(ctx, name, lvl, base),
            ctx.eval_ctx.autoescape,
        )

    def render_block_level(self, ctx: Context, name: str, level: int, frames: List[Dict[str, Any]]) -> Iterator[str]:
        """Рендерит определение блока уровня ``level`` (0 - самое производное)."""
        ref = ctx.blocks[name][level]
        if ref.node.required:
            raise TemplateRuntimeError(f"Required block {name!r} not found", ref.node.lineno, ref.node.column, ref.template_name, kind="inheritance")
        eval_ctx = EvalContext(self.environment, ref.template_name)
        block_ctx = ctx.derive(list(frames), name=ref.template_name, eval_ctx=eval_ctx)
        block_ctx.push({"super": self._block_reference(ctx, name, level + 1, frames)})
        yield from self.execute_body_output(ref.node.body, block_ctx)

    # ---------------- Вывод и управление ----------------

    def exec_Template(self, node: nodes.Template, ctx: Context) -> Chunks:
        return (yield from self.execute_body(node.body, ctx))

    def exec_Output(self, node: nodes.Output, ctx: Context) -> Iterator[str]:
        if ctx.parent_template is not None:
            return
        for child in node.nodes:
            if isinstance(child, nodes.TemplateData):
                yield child.data
                continue
            value = self.evaluate(child, ctx)
            try:
                text = self.render_value(value, ctx)
            except TemplateRuntimeError as e:
                # StrictUndefined падает только при выводе
                e.locate(child.lineno, child.column, ctx.name)
                raise
            yield text

    def exec_If(self, node: nodes.If, ctx: Context) -> Chunks:
        if self.evaluate(node.test, ctx):
            return (yield from self.execute_body(node.body, ctx))
        for branch in node.elif_:
            if self.evaluate(branch.test, ctx):
                return (yield from self.execute_body(branch.body, ctx))
        return (yield from self.execute_body(node.else_, ctx))

    def exec_For(self, node: nodes.For, ctx: Context) -> Chunks:
        iterable = self.evaluate(node.iter, ctx)
        return (yield from self._run_loop(node, ctx, iterable, 0))

    def _loop_items(self, node: nodes.For, ctx: Context, iterable: Any) -> List[Any]:
        if node.is_async and hasattr(iterable, "__aiter__") and not hasattr(iterable, "__iter__"):
            source: Any = iterate_async(iterable)
        elif is_undefined(iterable):
            source = iter(iterable)
        else:
            source = iterable
        if node.test is None:
            items = list(source)
        else:
            items = []
            for item in source:
                with ctx.scope():
                    self.assign(node.target, item, ctx)
                    if self.evaluate(node.test, ctx):
                        items.append(item)
        ctx.state.charge_memory(len(items))
        return items

    def _run_loop(self, node: nodes.For, ctx: Context, iterable: Any, depth0: int) -> Chunks:
        items = self._loop_items(node, ctx, iterable)
        recurse = None
        if node.recursive:
            def recurse(sub_iterable: Any, sub_depth0: int) -> str:
                with ctx.state.call("recursive loop"):
                    rv = "".join(self._run_loop_output(node, ctx, sub_iterable, sub_depth0))
                return Markup(rv) if ctx.eval_ctx.autoescape else rv

        loop = LoopContext(items, self.environment.undefined, recurse, depth0)
        for item, _ in loop:
            ctx.state.check_time()
            with ctx.scope({"loop": loop}):
                self.assign(node.target, item, ctx)
                signal = yield from self.execute_body(node.body, ctx)
            if signal is LoopSignal.BREAK:
                break
        if not items and node.else_:
            with ctx.scope():
                return (yield from self.execute_body(node.else_, ctx))
        return None

    def _run_loop_output(self, node: nodes.For, ctx: Context, iterable: Any, depth0: int) -> Iterator[str]:
        yield from self._run_loop(node, ctx, iterable, depth0)

    def exec_Break(self, node: nodes.Break, ctx: Context) -> LoopSignal:
        return LoopSignal.BREAK

    def exec_Continue(self, node: nodes.Continue, ctx: Context) -> LoopSignal:
        return LoopSignal.CONTINUE

    def exec_Do(self, node: nodes.Do, ctx: Context) -> None:
        self.evaluate(node.node, ctx)

    # ---------------- Области видимости и присваивания ----------------

    def exec_Assign(self, node: nodes.Assign, ctx: Context) -> None:
        self.assign(node.target, self.evaluate(node.node, ctx), ctx)

    def exec_AssignBlock(self, node: nodes.AssignBlock, ctx: Context) -> None:
        value: Any = self.render_body(node.body, ctx)
        if node.filter is not None:
            value = self.eval_filter(node.filter, ctx, value)
        self.assign(node.target, value, ctx)

    def exec_With(self, node: nodes.With, ctx: Context) -> Chunks:
        values = [self.evaluate(value, ctx) for value in node.values]
        with ctx.scope():
            for target, value in zip(node.targets, values):
                self.assign(target, value, ctx)
            return (yield from self.execute_body(node.body, ctx))

    def exec_Scope(self, node: nodes.Scope, ctx: Context) -> Chunks:
        with ctx.scope():
            return (yield from self.execute_body(node.body, ctx))

    def exec_ScopedEvalContextModifier(self, node: nodes.ScopedEvalContextModifier, ctx: Context) -> Chunks:
        old = ctx.eval_ctx.save()
        try:
            for option in node.options:
                setattr(ctx.eval_ctx, option.key, self.evaluate(option.value, ctx))
            with ctx.scope():
                return (yield from self.execute_body(node.body, ctx))
        finally:
            ctx.eval_ctx.revert(old)

    def exec_Namespace(self, node: nodes.Namespace, ctx: Context) -> Chunks:
        initial = self.evaluate(node.value, ctx) if node.value is not None else None
        if isinstance(initial, Namespace):
            ns = initial
        elif initial is None:
            ns = Namespace()
        else:
            ns = Namespace(initial)
        ctx.set(node.name, ns)
        with ctx.scope() as frame:
            signal = yield from self.execute_body(node.body, ctx)
        for key, value in frame.items():
            ns[key] = value
        return signal

    def exec_Export(self, node: nodes.Export, ctx: Context) -> None:
        if ctx.exports is None:
            ctx.exports = []
        ctx.exports.extend(name for name in node.names if name not in ctx.exports)

    def exec_Spaceless(self, node: nodes.Spaceless, ctx: Context) -> Iterator[str]:
        text = self.render_body(node.body, ctx)
        rv = _SPACELESS_RE.sub("><", str(text)).strip()
        yield Markup(rv) if isinstance(text, Markup) else rv

    def exec_FilterBlock(self, node: nodes.FilterBlock, ctx: Context) -> Iterator[str]:
        body = self.render_body(node.body, ctx)
        yield to_output(self.eval_filter(node.filter, ctx, body), ctx.eval_ctx.autoescape)

    # ---------------- Макросы ----------------

    def exec_Macro(self, node: nodes.Macro, ctx: Context) -> None:
        ctx.set(node.name, Macro(self, node.name, node.signature, node.body, ctx))

    def exec_CallBlock(self, node: nodes.CallBlock, ctx: Context) -> Iterator[str]:
        caller = Macro(self, "caller", node.signature, node.body, ctx)
        rv = self.eval_Call(node.call, ctx, extra_kwargs={"caller": caller})
        yield to_output(rv, ctx.eval_ctx.autoescape)

    # ---------------- Наследование ----------------

    def exec_Extends(self, node: nodes.Extends, ctx: Context) -> None:
        name = self.environment.join_path(self.evaluate(node.template, ctx), ctx.name)
        chain = ctx.inheritance_chain
        if not chain:
            chain.append(ctx.name or "<string>")
        check_chain(chain, name)
        parent = self.environment.get_template(name)
        chain.append(parent.name)
        extend_chains(ctx.blocks, parent.name, parent.blocks)
        ctx.parent_template = parent

    def exec_Block(self, node: nodes.Block, ctx: Context) -> Iterator[str]:
        if ctx.parent_template is not None:
            return
        chain = ctx.blocks.get(node.name)
        scoped = node.scoped or bool(chain and chain[0].node.scoped)
        frames = list(ctx.frames) if scoped else ctx.frames[:1]
        if not chain:
            extend_chains(ctx.blocks, ctx.name, {node.name: node})
        yield from self.render_block_level(ctx, node.name, 0, frames)

    # ---------------- Включения и импорт ----------------

    def _load(self, template: Any, ctx: Context) -> Any:
        if hasattr(template, "root") and hasattr(template, "new_context"):
            return template
        if isinstance(template, (list, tuple)):
            return self.environment.select_template(template, parent=ctx.name)
        return self.environment.get_template(template, parent=ctx.name)

    def exec_Include(self, node: nodes.Include, ctx: Context) -> Iterator[str]:
        try:
            template = self._load(self.evaluate(node.template, ctx), ctx)
        except TemplateNotFound:
            if node.ignore_missing:
                return
            raise
        variables = ctx.get_all() if node.with_context else {}
        variables.pop("self", None)
        include_ctx = template.new_context(variables, state=ctx.state)
        with ctx.state.call(f"include {template.name!r}"):
            yield from self.root_render(template, include_ctx)

    def _import_module(self, template_expr: nodes.Expr, with_context: bool, ctx: Context) -> TemplateModule:
        template = self._load(self.evaluate(template_expr, ctx), ctx)
        variables = ctx.get_all() if with_context else {}
        variables.pop("self", None)
        module_ctx = template.new_context(variables, state=ctx.state)
        with ctx.state.call(f"import {template.name!r}"):
            return self.make_module(template, module_ctx)

    def exec_Import(self, node: nodes.Import, ctx: Context) -> None:
        ctx.set(node.target, self._import_module(node.template, node.with_context, ctx))

    def exec_FromImport(self, node: nodes.FromImport, ctx: Context) -> None:
        module = self._import_module(node.template, node.with_context, ctx)
        exported = module.exported()
        for name, alias in node.names:
            if name in exported:
                value = exported[name]
            else:
                value = self.environment.undefined(
                    f"the template {module.__name__!r} does not export the requested name {name!r}",
                    name=name,
                )
            ctx.set(alias or name, value)

    # ---------------- Перевод ----------------

    def exec_Trans(self, node: nodes.Trans, ctx: Context) -> Iterator[str]:
        values = {kw.key: self.evaluate(kw.value, ctx) for kw in node.variables}
        translations = self.environment.translations
        if node.plural is not None and node.count_name is not None:
            count = values[node.count_name]
            if node.context is not None:
                rv = translations.npgettext(node.context, node.singular, node.plural, count)
            else:
                rv = translations.ngettext(node.singular, node.plural, count)
        elif node.context is not None:
            rv = translations.pgettext(node.context, node.singular)
        else:
            rv = translations.gettext(node.singular)
        if ctx.eval_ctx.autoescape:
            rv = Markup(rv)
        if values:
            rv = rv % values
        yield rv


_MISSING_EXPR = missing_handlers(_handler_table(Evaluator, "expr", "eval_"), "expr")
_MISSING_STMT = missing_handlers(_handler_table(Evaluator, "stmt", "exec_"), "stmt")
if _MISSING_EXPR or _MISSING_STMT:
    raise RuntimeError(f"Evaluator has no handlers for: {', '.join(_MISSING_EXPR + _MISSING_STMT)}")


__all__ = ["Evaluator", "WRAPPED_ERRORS", "error_kind"]
