"""
Наследование шаблонов: цепочки определений блоков, ``super()`` и ``self``.

Для каждого имени блока контекст хранит список определений, самое
производное - первым. ``super()`` внутри блока уровня ``i`` рендерит
определение уровня ``i + 1``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional

from markupsafe import Markup

from .. import nodes
from ..errors import CircularInheritanceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlockRef:
    """Определение блока в конкретном шаблоне иерархии."""
    name: str
    node: nodes.Block
    template_name: Optional[str]


def collect_blocks(root: nodes.Template) -> Dict[str, nodes.Block]:
    """Все блоки шаблона, включая вложенные, по именам."""
    return {block.name: block for block in root.find_all(nodes.Block)}


def parent_name(root: nodes.Template) -> Optional[str]:
    """Имя родительского шаблона из ``{% extends %}`` верхнего уровня."""
    for node in root.body:
        if isinstance(node, nodes.Extends):
            try:
                value = node.template.as_const()
            except nodes.Impossible:
                # Родитель вычисляется только при рендеринге
                return None
            return value if isinstance(value, str) else None
    return None


def own_block_chains(template_name: Optional[str], blocks: Dict[str, nodes.Block]) -> Dict[str, List[BlockRef]]:
    """Начальная таблица цепочек: только блоки самого шаблона."""
    return {name: [BlockRef(name, block, template_name)] for name, block in blocks.items()}


def extend_chains(chains: Dict[str, List[BlockRef]], template_name: Optional[str], blocks: Dict[str, nodes.Block]) -> None:
    """Добавляет определения родителя в конец цепочек."""
    for name, block in blocks.items():
        chains.setdefault(name, []).append(BlockRef(name, block, template_name))


def check_chain(chain: List[str], name: str) -> None:
    """
    Проверяет, что шаблон ещё не встречался в цепочке наследования.

    Raises:
        CircularInheritanceError: С полной цепочкой, замкнутой на ``name``
    """
    if name in chain:
        raise CircularInheritanceError([*chain, name])
    logger.debug(f"Inheritance chain: {' -> '.join([*chain, name])}")


class BlockReference:
    """
    Вызываемая ссылка на определение блока заданного уровня.

    Используется как ``super()`` и как ``self.<block>()``.
    """

    def __init__(self, name: str, level: int, render: Callable[[int], Iterator[str]], autoescape: bool):
        self.name = name
        self._level = level
        self._render = render
        self._autoescape = autoescape

    def __call__(self) -> str:
        rv = "".join(self._render(self._level))
        if self._autoescape:
            return Markup(rv)
        return rv

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r} level={self._level}>"


class TemplateReference:
    """Значение ``self``: блоки текущей иерархии как вызываемые атрибуты."""

    def __init__(self, factory: Callable[[str], Any]):
        self._factory = factory

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__"):
            raise AttributeError(name)
        return self._factory(name)

    def __getitem__(self, name: str) -> Any:
        return self._factory(name)

    def __repr__(self) -> str:
        return f"<{type(self).__name__}>"


__all__ = [
    "BlockRef",
    "BlockReference",
    "TemplateReference",
    "collect_blocks",
    "parent_name",
    "own_block_chains",
    "extend_chains",
    "check_chain",
]
