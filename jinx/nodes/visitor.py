"""
Обход AST: посетитель с диспетчеризацией ``visit_<ИмяКласса>``,
преобразователь, строящий новые (неизменяемые) узлы, и простой
обход в глубину с возможностью досрочной остановки.
"""

from __future__ import annotations

import dataclasses
from enum import Enum
from typing import Any, Callable, Iterator, List, Optional

from .base import Node


class Traversal(Enum):
    """Решение обработчика при обходе ``walk``."""
    CONTINUE = "continue"
    SKIP = "skip"      # не заходить в потомков узла
    STOP = "stop"      # прекратить обход целиком


def walk(node: Node, callback: Callable[[Node], Optional[Traversal]]) -> bool:
    """
    Обходит дерево в глубину (сначала узел, потом потомки).

    Args:
        node: Корень обхода
        callback: Вызывается для каждого узла; None равносилен CONTINUE

    Returns:
        True, если обход был остановлен досрочно
    """
    decision = callback(node) or Traversal.CONTINUE
    if decision is Traversal.STOP:
        return True
    if decision is Traversal.SKIP:
        return False
    for child in node.iter_child_nodes():
        if walk(child, callback):
            return True
    return False


def iter_nodes(node: Node) -> Iterator[Node]:
    """Все узлы дерева, включая корень, в порядке обхода в глубину."""
    yield node
    for child in node.iter_child_nodes():
        yield from iter_nodes(child)


class NodeVisitor:
    """
    Посетитель узлов. Для узла класса ``Foo`` вызывается ``visit_Foo``,
    если он определён, иначе ``generic_visit``, который обходит потомков.
    """

    def get_visitor(self, node: Node) -> Optional[Callable[..., Any]]:
        return getattr(self, f"visit_{type(node).__name__}", None)

    def visit(self, node: Node, *args: Any, **kwargs: Any) -> Any:
        f = self.get_visitor(node)
        if f is not None:
            return f(node, *args, **kwargs)
        return self.generic_visit(node, *args, **kwargs)

    def generic_visit(self, node: Node, *args: Any, **kwargs: Any) -> Any:
        for child in node.iter_child_nodes():
            self.visit(child, *args, **kwargs)


class NodeTransformer(NodeVisitor):
    """
    Посетитель, возвращающий узел-замену.

    Обработчик может вернуть тот же узел, новый узел, None (удалить из
    списка) или список узлов (развернуть на месте). Поскольку узлы
    неизменяемы, изменённые родители пересоздаются через ``dataclasses.replace``.
    """

    def generic_visit(self, node: Node, *args: Any, **kwargs: Any) -> Any:
        changes = {}
        for name, value in node.iter_fields():
            if isinstance(value, list):
                new_values: List[Any] = []
                changed = False
                for item in value:
                    if not isinstance(item, Node):
                        new_values.append(item)
                        continue
                    new = self.visit(item, *args, **kwargs)
                    if new is None:
                        changed = True
                    elif isinstance(new, list):
                        changed = True
                        new_values.extend(new)
                    else:
                        changed = changed or new is not item
                        new_values.append(new)
                if changed:
                    changes[name] = new_values
            elif isinstance(value, Node):
                new = self.visit(value, *args, **kwargs)
                if new is not value:
                    changes[name] = new
        if changes:
            return dataclasses.replace(node, **changes)
        return node

    def visit_list(self, node: Node, *args: Any, **kwargs: Any) -> List[Node]:
        """Как ``visit``, но всегда возвращает список."""
        rv = self.visit(node, *args, **kwargs)
        if rv is None:
            return []
        if not isinstance(rv, list):
            return [rv]
        return rv


__all__ = ["Traversal", "walk", "iter_nodes", "NodeVisitor", "NodeTransformer"]
