"""
Загрузчики шаблонов: имя → исходный текст и время модификации.

Загрузчик вызывается только при компиляции шаблона (верхний уровень,
``extends``, ``import``, ``include``); во время одного рендеринга
однажды полученный шаблон повторно не запрашивается.
"""

from __future__ import annotations

import logging
import os
import posixpath
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import pathspec

from .errors import TemplateNotFound

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TemplateSource:
    """Результат загрузки: исходник, имя файла и время модификации (если известно)."""
    source: str
    filename: Optional[str] = None
    mtime: Optional[float] = None


def split_template_path(template: str) -> List[str]:
    """
    Разбивает имя шаблона на сегменты пути.

    Raises:
        TemplateNotFound: Если имя выходит за пределы корня (``..``)
    """
    pieces = []
    for piece in template.split("/"):
        if os.path.sep in piece or (os.path.altsep and os.path.altsep in piece) or piece == os.path.pardir:
            raise TemplateNotFound(template)
        if piece and piece != ".":
            pieces.append(piece)
    return pieces


class BaseLoader:
    """
    Базовый загрузчик.

    Подклассы реализуют ``get_source``; ``get_mtime`` по умолчанию берёт
    время из ``get_source``, а ``list_templates`` не поддерживается.
    """

    def get_source(self, environment: Any, name: str) -> TemplateSource:
        """
        Raises:
            TemplateNotFound: Шаблон не найден
        """
        raise TemplateNotFound(name)

    def get_mtime(self, environment: Any, name: str) -> Optional[float]:
        """Текущее время модификации шаблона (None - неизвестно или удалён)."""
        try:
            return self.get_source(environment, name).mtime
        except TemplateNotFound:
            return None

    def list_templates(self) -> List[str]:
        raise TypeError("this loader cannot iterate over all templates")


class DictLoader(BaseLoader):
    """Шаблоны из словаря ``имя → исходник``."""

    def __init__(self, mapping: Mapping[str, str]):
        self.mapping = mapping

    def get_source(self, environment: Any, name: str) -> TemplateSource:
        if name in self.mapping:
            return TemplateSource(self.mapping[name], None, None)
        raise TemplateNotFound(name)

    def list_templates(self) -> List[str]:
        return sorted(self.mapping)


class FunctionLoader(BaseLoader):
    """
    Шаблоны из функции ``name -> str | TemplateSource | (source, filename, mtime) | None``.
    """

    def __init__(self, load_func: Callable[[str], Any]):
        self.load_func = load_func

    def get_source(self, environment: Any, name: str) -> TemplateSource:
        rv = self.load_func(name)
        if rv is None:
            raise TemplateNotFound(name)
        if isinstance(rv, TemplateSource):
            return rv
        if isinstance(rv, str):
            return TemplateSource(rv, None, None)
        source, filename, mtime = rv
        return TemplateSource(source, filename, mtime)


class FileSystemLoader(BaseLoader):
    """
    Шаблоны из каталогов файловой системы.

    Args:
        searchpath: Каталог или список каталогов, просматриваемых по порядку
        encoding: Кодировка файлов
        followlinks: Следовать символическим ссылкам при ``list_templates``
        ignore: Шаблоны в стиле .gitignore для файлов, которые не считаются
            шаблонами (не загружаются и не перечисляются)
    """

    def __init__(
        self,
        searchpath: Union[str, os.PathLike, Sequence[Union[str, os.PathLike]]],
        encoding: str = "utf-8",
        followlinks: bool = False,
        ignore: Optional[Iterable[str]] = None,
    ):
        if not isinstance(searchpath, Iterable) or isinstance(searchpath, str):
            searchpath = [searchpath]
        self.searchpath = [os.fspath(p) for p in searchpath]
        self.encoding = encoding
        self.followlinks = followlinks
        patterns = list(ignore or [])
        self.ignore_spec: Optional[pathspec.PathSpec] = (
            pathspec.PathSpec.from_lines("gitwildmatch", patterns) if patterns else None
        )

    def _ignored(self, name: str) -> bool:
        return self.ignore_spec is not None and self.ignore_spec.match_file(name)

    def _resolve(self, name: str) -> Optional[Path]:
        pieces = split_template_path(name)
        if self._ignored("/".join(pieces)):
            return None
        for searchpath in self.searchpath:
            root = Path(searchpath).resolve()
            candidate = root.joinpath(*pieces)
            if not candidate.is_file():
                continue
            # Символическая ссылка не должна выводить за пределы корня
            try:
                candidate.resolve().relative_to(root)
            except ValueError:
                logger.warning(f"Template {name!r} resolves outside of search path {searchpath!r}")
                continue
            return candidate
        return None

    def get_source(self, environment: Any, name: str) -> TemplateSource:
        path = self._resolve(name)
        if path is None:
            logger.debug(f"Template {name!r} not found in {self.searchpath}")
            raise TemplateNotFound(name, f"{name!r} not found in search path: {', '.join(map(repr, self.searchpath))}")
        source = path.read_text(encoding=self.encoding)
        logger.debug(f"Loaded template {name!r} from {path}")
        return TemplateSource(source, os.path.normpath(path), path.stat().st_mtime)

    def get_mtime(self, environment: Any, name: str) -> Optional[float]:
        try:
            path = self._resolve(name)
        except TemplateNotFound:
            return None
        if path is None:
            return None
        return path.stat().st_mtime

    def list_templates(self) -> List[str]:
        found = set()
        for searchpath in self.searchpath:
            for dirpath, _, filenames in os.walk(searchpath, followlinks=self.followlinks):
                for filename in filenames:
                    rel = os.path.relpath(os.path.join(dirpath, filename), searchpath)
                    template = rel.replace(os.path.sep, "/").lstrip("/")
                    if template.startswith("./"):
                        template = template[2:]
                    if not self._ignored(template):
                        found.add(template)
        return sorted(found)


class PrefixLoader(BaseLoader):
    """
    Делегирует загрузку по префиксу имени: ``"app/index.html"`` →
    загрузчик ``"app"``, имя ``"index.html"``.
    """

    def __init__(self, mapping: Mapping[str, BaseLoader], delimiter: str = "/"):
        self.mapping = mapping
        self.delimiter = delimiter

    def get_loader(self, template: str) -> Tuple[BaseLoader, str]:
        try:
            prefix, name = template.split(self.delimiter, 1)
            loader = self.mapping[prefix]
        except (ValueError, KeyError) as e:
            raise TemplateNotFound(template) from e
        return loader, name

    def get_source(self, environment: Any, name: str) -> TemplateSource:
        loader, local_name = self.get_loader(name)
        try:
            return loader.get_source(environment, local_name)
        except TemplateNotFound as e:
            raise TemplateNotFound(name) from e

    def get_mtime(self, environment: Any, name: str) -> Optional[float]:
        try:
            loader, local_name = self.get_loader(name)
        except TemplateNotFound:
            return None
        return loader.get_mtime(environment, local_name)

    def list_templates(self) -> List[str]:
        result = []
        for prefix, loader in self.mapping.items():
            for template in loader.list_templates():
                result.append(prefix + self.delimiter + template)
        return result


class ChoiceLoader(BaseLoader):
    """Пробует загрузчики по очереди до первого успеха."""

    def __init__(self, loaders: Sequence[BaseLoader]):
        self.loaders = list(loaders)

    def get_source(self, environment: Any, name: str) -> TemplateSource:
        for loader in self.loaders:
            try:
                return loader.get_source(environment, name)
            except TemplateNotFound:
                pass
        raise TemplateNotFound(name)

    def get_mtime(self, environment: Any, name: str) -> Optional[float]:
        for loader in self.loaders:
            try:
                return loader.get_source(environment, name).mtime
            except TemplateNotFound:
                pass
        return None

    def list_templates(self) -> List[str]:
        found = set()
        for loader in self.loaders:
            found.update(loader.list_templates())
        return sorted(found)


def join_relative(template: str, parent: str) -> str:
    """Имя ``./x``/``../x`` относительно каталога родительского шаблона."""
    if not template.startswith(("./", "../")):
        return template
    base = posixpath.dirname(parent)
    return posixpath.normpath(posixpath.join(base, template))


__all__ = [
    "TemplateSource",
    "BaseLoader",
    "DictLoader",
    "FunctionLoader",
    "FileSystemLoader",
    "PrefixLoader",
    "ChoiceLoader",
    "split_template_path",
    "join_relative",
]
