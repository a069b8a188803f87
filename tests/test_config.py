"""
Тесты загрузки конфигурации окружения из YAML.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

from jinx import SecurityError, StrictUndefined, Undefined
from jinx.config import ConfigLoadError, SandboxConfig, load_config, load_typed
from tests.infrastructure import write_templates, write_text_file


@pytest.fixture
def project(tmp_path: Path) -> Path:
    write_templates(tmp_path / "templates", {
        "hello.html": "Hello {{ name }}",
        "notes.bak": "ignored",
    })
    return tmp_path


def write_config(root: Path, text: str) -> Path:
    return write_text_file(root / "jinx.yaml", text)


class TestLoadConfig:
    """Чтение файла настроек."""

    def test_defaults_for_empty_file(self, project):
        cfg = load_config(write_config(project, ""))
        assert cfg.undefined == "default"
        assert cfg.search_path == [str(project.resolve())]

    def test_search_path_relative_to_file(self, project, monkeypatch, tmp_path):
        path = write_config(project, "search_path: [templates]")
        monkeypatch.chdir(tmp_path.parent)
        cfg = load_config(path)
        assert cfg.search_path == [str((project / "templates").resolve())]
        assert cfg.create_environment().get_template("hello.html").render(name="A") == "Hello A"

    def test_full_config(self, project):
        path = write_config(project, """
            search_path: [templates]
            ignore: ["*.bak"]
            undefined: strict
            autoescape: [html]
            cache_size: 10
            syntax:
              trim_blocks: true
              variable_start_string: "[["
              variable_end_string: "]]"
            sandbox:
              blocked_filters: [upper]
              max_output_size: 1000
        """)
        cfg = load_config(path)
        assert cfg.syntax.trim_blocks is True
        assert cfg.autoescape == ["html"]
        assert isinstance(cfg.sandbox, SandboxConfig)

        env = cfg.create_environment()
        assert env.undefined is StrictUndefined
        assert env.list_templates() == ["hello.html"]
        assert env.from_string("[[ 1 + 1 ]]").render() == "2"
        assert env.policy.blocked_filters == frozenset({"upper"})
        assert env.policy.max_output_size == 1000
        with pytest.raises(SecurityError):
            env.from_string("[[ 'a'|upper ]]").render()

    def test_overrides(self, project):
        cfg = load_config(write_config(project, "undefined: strict"))
        env = cfg.create_environment(undefined=Undefined)
        assert env.from_string("{{ missing }}").render() == ""

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            load_config(tmp_path / "nope.yaml")

    @pytest.mark.parametrize("text, message", [
        ("foo: 1", "unknown key\\(s\\): \\['foo'\\]"),
        ("cache_size: big", "\\$.cache_size: expected int, got str"),
        ("max_recursion_depth: true", "\\$.max_recursion_depth: expected int, got bool"),
        ("undefined: loose", "\\$.undefined: expected one of"),
        ("syntax: {trim_blocks: 1}", "\\$.syntax.trim_blocks: expected bool, got int"),
        ("sandbox: {max_execution_time: fast}", "\\$.sandbox.max_execution_time"),
        ("search_path: templates", "\\$.search_path: expected list, got str"),
        ("- a\n- b", "YAML must be a mapping"),
        ("a: [1", "invalid YAML"),
    ])
    def test_invalid(self, project, text, message):
        path = project / "bad.yaml"
        path.write_text(text, encoding="utf-8")
        with pytest.raises(ConfigLoadError, match=message):
            load_config(path)


class Color(Enum):
    RED = "red"
    BLUE = "blue"


@dataclass
class Inner:
    size: int
    label: Optional[str] = None


@dataclass
class Outer:
    inner: Inner
    tags: List[str] = field(default_factory=list)
    pair: Tuple[int, ...] = ()
    scores: Dict[str, float] = field(default_factory=dict)
    color: Color = Color.RED


class TestLoadTyped:
    """Приведение сырых данных к dataclass-моделям."""

    def test_nested(self):
        value = load_typed(Outer, {
            "inner": {"size": 2},
            "tags": ["a"],
            "pair": [1, 2],
            "scores": {"x": 1},
            "color": "BLUE",
        })
        assert value == Outer(Inner(2, None), ["a"], (1, 2), {"x": 1.0}, Color.BLUE)

    def test_enum_by_value(self):
        assert load_typed(Color, "red") is Color.RED

    def test_required_field(self):
        with pytest.raises(ConfigLoadError, match="\\$.inner.size: required field missing"):
            load_typed(Outer, {"inner": {}})

    def test_error_path_in_sequence(self):
        with pytest.raises(ConfigLoadError, match="\\$.tags\\[1\\]: expected str, got int"):
            load_typed(Outer, {"inner": {"size": 1}, "tags": ["a", 2]})

    def test_bad_enum(self):
        with pytest.raises(ConfigLoadError, match="expected Color"):
            load_typed(Color, "green")
