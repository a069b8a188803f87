from pathlib import Path

import pytest

from jinx import Environment, FileSystemLoader, StrictUndefined

from tests.infrastructure.file_utils import write_templates


@pytest.fixture
def env() -> Environment:
    """Окружение с настройками по умолчанию."""
    return Environment()


@pytest.fixture
def strict_env() -> Environment:
    """Окружение, в котором обращение к неопределённой переменной - ошибка."""
    return Environment(undefined=StrictUndefined)


@pytest.fixture
def templates_dir(tmp_path: Path) -> Path:
    """Каталог с небольшим набором шаблонов для загрузчиков и CLI."""
    root = tmp_path / "templates"
    write_templates(root, {
        "base.html": "<title>{% block title %}Base{% endblock %}</title>\n{% block body %}{% endblock %}\n",
        "page.html": "{% extends 'base.html' %}{% block title %}{{ title }}{% endblock %}"
                     "{% block body %}{% include 'parts/item.html' %}{% endblock %}",
        "parts/item.html": "<li>{{ item|default('none') }}</li>",
        "macros.html": "{% macro greet(name) %}Hi {{ name }}{% endmacro %}",
    })
    return root


@pytest.fixture
def fs_env(templates_dir: Path) -> Environment:
    """Окружение над ``templates_dir``."""
    return Environment(loader=FileSystemLoader(templates_dir))
