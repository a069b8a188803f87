"""
Контекст рендеринга: стек фреймов переменных поверх глобальных
значений и переменных вызова.

Фреймы образуют строгий стек: ``for``, ``with``, вызовы макросов и
блоки добавляют фрейм при входе и снимают его при выходе (в том числе
при ``break`` и ошибках). ``set`` пишет во внутренний фрейм.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from ..nodes.base import EvalContext
from ..utils import PassArg, missing
from .state import RenderState


class Context:
    """
    Область видимости одного рендеринга.

    Производные контексты (макросы, блоки) разделяют с исходным
    окружение, глобальные переменные, таблицу блоков и состояние
    рендеринга, но имеют свой список фреймов.

    Args:
        environment: Окружение
        parent: Глобальные переменные и переменные вызова (только чтение)
        name: Имя шаблона, которому принадлежит исполняемый код
        blocks: Имя блока → цепочка определений (самое производное первым)
        state: Состояние рендеринга
        eval_ctx: Контекст вычисления (autoescape)
        frames: Начальные фреймы; по умолчанию один пустой корневой фрейм
    """

    def __init__(
        self,
        environment: Any,
        parent: Dict[str, Any],
        name: Optional[str],
        blocks: Dict[str, List[Any]],
        state: RenderState,
        eval_ctx: EvalContext,
        frames: Optional[List[Dict[str, Any]]] = None,
    ):
        self.environment = environment
        self.parent = parent
        self.name = name
        self.blocks = blocks
        self.state = state
        self.eval_ctx = eval_ctx
        self.frames: List[Dict[str, Any]] = frames if frames is not None else [{}]
        # Родительский шаблон после выполнения {% extends %}
        self.parent_template: Any = None
        # Явный список экспорта ({% export %}); None - экспортируются все имена
        self.exports: Optional[List[str]] = None
        # Имена шаблонов иерархии наследования, начиная с самого производного
        self.inheritance_chain: List[str] = []

    # ---------------- Разрешение имён ----------------

    def resolve_or_missing(self, key: str) -> Any:
        for frame in reversed(self.frames):
            if key in frame:
                return frame[key]
        return self.parent.get(key, missing)

    def resolve(self, key: str) -> Any:
        """Значение имени или неопределённое значение окружения."""
        rv = self.resolve_or_missing(key)
        if rv is missing:
            return self.environment.undefined(name=key)
        return rv

    def get(self, key: str, default: Any = None) -> Any:
        rv = self.resolve_or_missing(key)
        return default if rv is missing else rv

    def __contains__(self, key: str) -> bool:
        return self.resolve_or_missing(key) is not missing

    def __getitem__(self, key: str) -> Any:
        rv = self.resolve_or_missing(key)
        if rv is missing:
            raise KeyError(key)
        return rv

    def get_all(self) -> Dict[str, Any]:
        """Все видимые переменные (внутренние фреймы перекрывают внешние)."""
        result = dict(self.parent)
        for frame in self.frames:
            result.update(frame)
        return result

    # ---------------- Фреймы ----------------

    def set(self, key: str, value: Any) -> None:
        self.frames[-1][key] = value

    @property
    def root(self) -> Dict[str, Any]:
        """Фрейм верхнего уровня шаблона."""
        return self.frames[0]

    def push(self, frame: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        frame = frame if frame is not None else {}
        self.frames.append(frame)
        return frame

    def pop(self) -> Dict[str, Any]:
        return self.frames.pop()

    @contextmanager
    def scope(self, frame: Optional[Dict[str, Any]] = None) -> Iterator[Dict[str, Any]]:
        """Фрейм на время блока ``with``; снимается и при исключении."""
        depth = len(self.frames)
        pushed = self.push(frame)
        try:
            yield pushed
        finally:
            del self.frames[depth:]

    def derive(
        self,
        frames: List[Dict[str, Any]],
        name: Any = missing,
        eval_ctx: Optional[EvalContext] = None,
    ) -> "Context":
        """Контекст с другим набором фреймов (макрос, блок)."""
        return Context(
            self.environment,
            self.parent,
            self.name if name is missing else name,
            self.blocks,
            self.state,
            eval_ctx if eval_ctx is not None else self.eval_ctx,
            frames,
        )

    # ---------------- Модули ----------------

    def exported_vars(self) -> Dict[str, Any]:
        """Имена, видимые при импорте шаблона как модуля."""
        if self.exports is not None:
            return {key: self.resolve(key) for key in self.exports}
        return {key: value for key, value in self.root.items() if not key.startswith("_")}

    # ---------------- Вызовы ----------------

    def call(self, func: Any, *args: Any, **kwargs: Any) -> Any:
        """
        Вызывает функцию, передавая контекст, контекст вычисления или
        окружение, если функция помечена соответствующим декоратором.
        """
        pass_arg = PassArg.from_obj(func)
        if pass_arg is PassArg.context:
            args = (self, *args)
        elif pass_arg is PassArg.eval_context:
            args = (self.eval_ctx, *args)
        elif pass_arg is PassArg.environment:
            args = (self.environment, *args)
        return func(*args, **kwargs)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name or '<string>'} frames={len(self.frames)}>"


__all__ = ["Context"]
