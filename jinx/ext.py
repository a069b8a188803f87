"""
Расширения: пользовательские теги и дополнительные фильтры, тесты и
глобальные функции.

Расширение объявляет имена тегов в ``tags`` и реализует ``parse``:
парсер передаёт ему управление, когда встречает такой тег (текущий
токен - имя тега), и вставляет возвращённые узлы в AST.
"""

from __future__ import annotations

import logging
from pprint import pformat
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Dict, FrozenSet, List, Sequence, Type, Union

from . import nodes
from .utils import pass_context

if TYPE_CHECKING:
    from .parser import Parser

logger = logging.getLogger(__name__)


@pass_context
def _debug_info(context: Any) -> str:
    result = {
        "context": context.get_all(),
        "filters": sorted(context.environment.filters),
        "tests": sorted(context.environment.tests),
    }
    return pformat(result, depth=3, compact=True)


class Extension:
    """
    Базовый класс расширения.

    Экземпляр создаётся окружением и привязан к нему (``self.environment``).
    """

    # Имена тегов, которые обрабатывает ``parse``
    tags: ClassVar[FrozenSet[str]] = frozenset()
    # Порядок применения при нескольких расширениях
    priority: ClassVar[int] = 100

    filters: ClassVar[Dict[str, Callable[..., Any]]] = {}
    tests: ClassVar[Dict[str, Callable[..., Any]]] = {}
    globals: ClassVar[Dict[str, Any]] = {}

    def __init__(self, environment: Any):
        self.environment = environment

    @property
    def identifier(self) -> str:
        cls = type(self)
        return f"{cls.__module__}.{cls.__name__}"

    def parse(self, parser: "Parser") -> Union[nodes.Node, List[nodes.Node]]:
        """Разбирает тег; вызывается, когда текущий токен - имя тега."""
        raise NotImplementedError()


class DebugExtension(Extension):
    """
    ``{% debug %}`` выводит видимые переменные, фильтры и тесты.
    """

    tags = frozenset({"debug"})
    globals = {"_debug_info": _debug_info}

    def parse(self, parser: "Parser") -> nodes.Node:
        token = next(parser.stream)
        pos = {"lineno": token.line, "column": token.column}
        call = nodes.Call(nodes.Name("_debug_info", "load", **pos), **pos)
        return nodes.Output([call], **pos)


def load_extensions(environment: Any, extensions: Sequence[Union[str, Type[Extension]]]) -> Dict[str, Extension]:
    """
    Создаёт экземпляры расширений; строки импортируются как ``module.Class``.

    Raises:
        ImportError: Не удалось импортировать расширение по имени
    """
    result: Dict[str, Extension] = {}
    for extension in extensions:
        if isinstance(extension, str):
            extension = import_string(extension)
        instance = extension(environment)
        result[instance.identifier] = instance
        logger.debug(f"Loaded extension {instance.identifier} (tags: {sorted(instance.tags)})")
    return result


def import_string(import_name: str) -> Any:
    """Импортирует объект по пути ``package.module.Name`` или ``package.module:Name``."""
    if ":" in import_name:
        module, obj = import_name.split(":", 1)
    elif "." in import_name:
        module, _, obj = import_name.rpartition(".")
    else:
        return __import__(import_name)
    return getattr(__import__(module, None, None, [obj]), obj)


debug = DebugExtension


__all__ = ["Extension", "DebugExtension", "load_extensions", "import_string"]
