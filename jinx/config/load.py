from __future__ import annotations

import dataclasses
import logging
from pathlib import Path

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .model import EnvironmentConfig
from .typed import ConfigLoadError, load_typed

logger = logging.getLogger(__name__)

_yaml = YAML(typ="safe")


def _read_yaml_map(path: Path) -> dict:
    """Читает YAML файл и возвращает словарь (пустой файл - пустой словарь)."""
    try:
        raw = _yaml.load(path.read_text(encoding="utf-8")) or {}
    except YAMLError as e:
        raise ConfigLoadError(f"{path}: invalid YAML: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigLoadError(f"{path}: YAML must be a mapping")
    return raw


def load_config(path: Path) -> EnvironmentConfig:
    """
    Загружает настройки окружения из YAML файла.

    Относительные пути ``search_path`` разрешаются от каталога файла.

    Raises:
        FileNotFoundError: Файла нет
        ConfigLoadError: Неверный YAML, неизвестные ключи или типы значений
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")
    cfg = load_typed(EnvironmentConfig, _read_yaml_map(path), path="$")
    base = path.resolve().parent
    search_path = [str((base / p).resolve()) for p in cfg.search_path]
    logger.debug(f"Loaded config {path} (search path: {search_path})")
    return dataclasses.replace(cfg, search_path=search_path)


__all__ = ["load_config"]
