"""
Базовые классы AST шаблонов.

Узлы - неизменяемые dataclass'ы с позицией (``lineno``, ``column``).
Все конкретные классы регистрируются при объявлении, что позволяет
проверять полноту таблиц диспетчеризации (интерпретатор, оптимизатор)
при импорте, а не во время рендеринга.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field, fields
from typing import Any, ClassVar, Dict, Iterable, Iterator, List, Optional, Tuple, Type, TypeVar

_NodeT = TypeVar("_NodeT", bound="Node")

# Имя класса → класс для всех конкретных узлов
NODE_REGISTRY: Dict[str, Type["Node"]] = {}

_POSITION_FIELDS = ("lineno", "column")


class Impossible(Exception):
    """Значение узла нельзя вычислить без состояния времени выполнения."""


class EvalContext:
    """
    Контекст вычисления: флаги, которые могут меняться во время выполнения
    (``autoescape``) и признак ``volatile``, запрещающий свёртку констант,
    когда значение флага на этапе компиляции неизвестно.
    """

    def __init__(self, environment: Any = None, template_name: Optional[str] = None, autoescape: Optional[bool] = None):
        self.environment = environment
        if autoescape is None:
            policy = getattr(environment, "autoescape", False)
            autoescape = policy(template_name) if callable(policy) else bool(policy)
        self.autoescape = autoescape
        self.volatile = False

    def save(self) -> Dict[str, Any]:
        return self.__dict__.copy()

    def revert(self, old: Dict[str, Any]) -> None:
        self.__dict__.clear()
        self.__dict__.update(old)


def get_eval_context(ctx: Optional[EvalContext]) -> EvalContext:
    return ctx if ctx is not None else EvalContext()


@dataclass(frozen=True, eq=False)
class Node:
    """
    Базовый узел AST.

    Подклассы, помеченные ``abstract = True``, не регистрируются.
    ``family`` - одно из "stmt", "expr", "helper".
    """
    lineno: int = field(default=1, kw_only=True)
    column: int = field(default=1, kw_only=True)

    abstract = True
    family: ClassVar[str] = "node"

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if not cls.__dict__.get("abstract", False):
            NODE_REGISTRY[cls.__name__] = cls

    # ---------------- Обход ----------------

    @classmethod
    def field_names(cls) -> Tuple[str, ...]:
        cached = cls.__dict__.get("_field_cache")
        if cached is None:
            cached = tuple(f.name for f in fields(cls) if f.name not in _POSITION_FIELDS)
            setattr(cls, "_field_cache", cached)
        return cached

    def iter_fields(self) -> Iterator[Tuple[str, Any]]:
        """Пары (имя поля, значение) без позиционных полей."""
        for name in self.field_names():
            yield name, getattr(self, name)

    def iter_child_nodes(self) -> Iterator["Node"]:
        """Непосредственные дочерние узлы в порядке полей."""
        for _name, value in self.iter_fields():
            yield from _nodes_in(value)

    def find(self, node_type: Type[_NodeT]) -> Optional[_NodeT]:
        """Первый узел заданного типа в поддереве (без самого узла)."""
        for result in self.find_all(node_type):
            return result
        return None

    def find_all(self, node_type: Any) -> Iterator[Any]:
        """Все узлы заданного типа (или кортежа типов) в поддереве, в глубину."""
        for child in self.iter_child_nodes():
            if isinstance(child, node_type):
                yield child
            yield from child.find_all(node_type)

    # ---------------- Модификация при построении ----------------

    def set_ctx(self: _NodeT, ctx: str) -> _NodeT:
        """
        Проставляет контекст ("load", "store", "param") всем узлам поддерева,
        у которых есть поле ``ctx``. Используется парсером, когда выражение,
        разобранное как значение, становится целью присваивания.
        """
        todo = deque([self])
        while todo:
            node = todo.popleft()
            if "ctx" in node.field_names():
                object.__setattr__(node, "ctx", ctx)
            todo.extend(node.iter_child_nodes())
        return self

    # ---------------- Отладка ----------------

    def dump(self) -> str:
        """Компактное текстовое представление поддерева."""
        return _dump(self)


def _nodes_in(value: Any) -> Iterator[Node]:
    if isinstance(value, Node):
        yield value
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from _nodes_in(item)


def _dump(value: Any) -> str:
    if isinstance(value, Node):
        args = ", ".join(f"{name}={_dump(v)}" for name, v in value.iter_fields())
        return f"{type(value).__name__}({args})"
    if isinstance(value, list):
        return "[" + ", ".join(_dump(v) for v in value) + "]"
    if isinstance(value, tuple):
        inner = ", ".join(_dump(v) for v in value)
        return f"({inner},)" if len(value) == 1 else f"({inner})"
    return repr(value)


class Stmt(Node):
    """Узел инструкции."""
    abstract = True
    family = "stmt"


class Expr(Node):
    """Узел выражения."""
    abstract = True
    family = "expr"

    def as_const(self, eval_ctx: Optional[EvalContext] = None) -> Any:
        """
        Значение выражения, если оно известно статически.

        Raises:
            Impossible: Если для вычисления нужно состояние времени выполнения
        """
        raise Impossible()

    def can_assign(self) -> bool:
        return False


class Helper(Node):
    """Вспомогательный узел, встречается только внутри других узлов."""
    abstract = True
    family = "helper"


def concrete_nodes(family: Optional[str] = None) -> List[Type[Node]]:
    """Все зарегистрированные конкретные классы узлов (опционально одного семейства)."""
    return [cls for cls in NODE_REGISTRY.values() if family is None or cls.family == family]


def missing_handlers(table: Iterable[Type[Node]], family: str) -> List[str]:
    """
    Имена конкретных узлов семейства, для которых в таблице нет обработчика.

    Используется для проверки полноты диспетчеризации при импорте.
    """
    handled = set(table)
    return sorted(cls.__name__ for cls in concrete_nodes(family) if cls not in handled)


__all__ = [
    "NODE_REGISTRY",
    "Impossible",
    "EvalContext",
    "get_eval_context",
    "Node",
    "Stmt",
    "Expr",
    "Helper",
    "concrete_nodes",
    "missing_handlers",
]
