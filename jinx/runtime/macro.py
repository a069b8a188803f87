"""
Макросы: привязка аргументов к сигнатуре и вызов.

Правила привязки:
- позиционные аргументы заполняют объявленные позиционные параметры;
- недостающие берут значения по умолчанию (вычисляются при вызове
  во фрейме, где уже связаны предыдущие параметры), а без значения по
  умолчанию становятся неопределёнными;
- именованные аргументы связываются с позиционными и только-именованными
  параметрами; обязательный только-именованный параметр без значения - ошибка;
- лишние позиционные попадают в ``*varargs``, лишние именованные - в
  ``**kwargs``; если сборщик не объявлен и тело не ссылается на
  ``varargs``/``kwargs``, это ошибка.
"""

from __future__ import annotations

from typing import Any, Dict, List, Set, Tuple

from markupsafe import Markup

from .. import nodes
from ..errors import MacroArgumentError


def referenced_names(body: List[nodes.Node]) -> Set[str]:
    """Имена, читаемые в теле (для неявных ``varargs``, ``kwargs``, ``caller``)."""
    names: Set[str] = set()
    for node in body:
        if isinstance(node, nodes.Name) and node.ctx == "load":
            names.add(node.name)
        for child in node.find_all(nodes.Name):
            if child.ctx == "load":
                names.add(child.name)
    return names


class Macro:
    """
    Скомпилированный макрос, замкнутый на фреймы места определения.

    Args:
        evaluator: Интерпретатор, исполняющий тело
        name: Имя макроса (``caller`` для тела call-блока)
        signature: Сигнатура
        body: Тело
        context: Контекст в точке определения
    """

    def __init__(self, evaluator: Any, name: str, signature: nodes.Signature, body: List[nodes.Node], context: Any):
        self._evaluator = evaluator
        self._signature = signature
        self._body = body
        self._context = context
        self._frames = list(context.frames)
        self.name = name

        declared = set(signature.declared_names())
        used = referenced_names(body)
        self.arguments: Tuple[str, ...] = tuple(signature.arg_names + signature.kwonly_names)
        self.catch_varargs = signature.varargs is not None or ("varargs" in used and "varargs" not in declared)
        self.catch_kwargs = signature.kwargs is not None or ("kwargs" in used and "kwargs" not in declared)
        self.caller = "caller" in used and "caller" not in declared
        self._varargs_name = signature.varargs or "varargs"
        self._kwargs_name = signature.kwargs or "kwargs"

    # ---------------- Привязка ----------------

    def _bind(self, args: Tuple[Any, ...], kwargs: Dict[str, Any], ctx: Any) -> None:
        sig = self._signature
        frame = ctx.frames[-1]
        evaluator = self._evaluator
        undefined = ctx.environment.undefined
        kwargs = dict(kwargs)

        first_default = len(sig.args) - len(sig.defaults)
        for i, name in enumerate(sig.arg_names):
            if i < len(args):
                if name in kwargs:
                    raise MacroArgumentError(f"macro {self.name!r} got multiple values for argument {name!r}")
                frame[name] = args[i]
            elif name in kwargs:
                frame[name] = kwargs.pop(name)
            elif i >= first_default:
                frame[name] = evaluator.evaluate(sig.defaults[i - first_default], ctx)
            else:
                frame[name] = undefined(f"parameter {name!r} was not provided", name=name)

        for name, default in zip(sig.kwonly_names, sig.kwonly_defaults):
            if name in kwargs:
                frame[name] = kwargs.pop(name)
            elif default is not None:
                frame[name] = evaluator.evaluate(default, ctx)
            else:
                raise MacroArgumentError(f"macro {self.name!r} missing required keyword-only argument {name!r}")

        if self.caller:
            if "caller" in kwargs:
                frame["caller"] = kwargs.pop("caller")
            else:
                frame["caller"] = undefined("No caller defined", name="caller")

        extra = args[len(sig.args):]
        if self.catch_varargs:
            frame[self._varargs_name] = tuple(extra)
        elif extra:
            raise MacroArgumentError(
                f"macro {self.name!r} takes not more than {len(sig.args)} positional argument(s), got {len(args)}"
            )

        if self.catch_kwargs:
            frame[self._kwargs_name] = kwargs
        elif kwargs:
            raise MacroArgumentError(f"macro {self.name!r} takes no keyword argument {next(iter(kwargs))!r}")

    # ---------------- Вызов ----------------

    def __call__(self, *args: Any, **kwargs: Any) -> str:
        state = self._context.state
        with state.call(f"macro {self.name!r}"):
            ctx = self._context.derive([*self._frames, {}])
            self._bind(args, kwargs, ctx)
            rv = "".join(self._evaluator.execute_body_output(self._body, ctx))
        if ctx.eval_ctx.autoescape:
            return Markup(rv)
        return rv

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


__all__ = ["Macro", "referenced_names"]
