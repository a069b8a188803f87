"""
Тесты загрузчиков шаблонов.
"""

from __future__ import annotations

import pytest

from jinx import (
    ChoiceLoader,
    DictLoader,
    Environment,
    FileSystemLoader,
    FunctionLoader,
    PrefixLoader,
    TemplateNotFound,
    TemplateSource,
)
from jinx.loaders import join_relative, split_template_path
from tests.infrastructure import write_templates


class TestDictAndFunctionLoaders:
    """Загрузчики в памяти."""

    def test_dict_loader(self, env):
        loader = DictLoader({"b.html": "B", "a.html": "A"})
        assert loader.get_source(env, "a.html") == TemplateSource("A", None, None)
        assert loader.list_templates() == ["a.html", "b.html"]
        with pytest.raises(TemplateNotFound, match="Template not found: c.html"):
            loader.get_source(env, "c.html")

    def test_dict_loader_has_no_mtime(self, env):
        assert DictLoader({"a": "x"}).get_mtime(env, "a") is None

    def test_function_loader_return_forms(self, env):
        sources = {
            "str": "plain",
            "tuple": ("from tuple", "t.html", 1.0),
            "source": TemplateSource("ready", "r.html", 2.0),
        }
        loader = FunctionLoader(sources.get)
        assert loader.get_source(env, "str").source == "plain"
        assert loader.get_source(env, "tuple") == TemplateSource("from tuple", "t.html", 1.0)
        assert loader.get_source(env, "source").mtime == 2.0
        assert loader.get_mtime(env, "tuple") == 1.0
        with pytest.raises(TemplateNotFound):
            loader.get_source(env, "missing")

    def test_function_loader_cannot_list(self):
        with pytest.raises(TypeError, match="cannot iterate"):
            FunctionLoader(lambda name: None).list_templates()


class TestFileSystemLoader:
    """Загрузка из каталогов."""

    def test_render_hierarchy(self, fs_env):
        rv = fs_env.get_template("page.html").render(title="T", item="x")
        assert rv == "<title>T</title>\n<li>x</li>"

    def test_source_metadata(self, fs_env, templates_dir):
        loaded = fs_env.loader.get_source(fs_env, "parts/item.html")
        assert loaded.filename.endswith("item.html")
        assert loaded.mtime == (templates_dir / "parts" / "item.html").stat().st_mtime

    def test_list_templates(self, fs_env):
        assert fs_env.loader.list_templates() == ["base.html", "macros.html", "page.html", "parts/item.html"]

    def test_missing_template(self, fs_env):
        with pytest.raises(TemplateNotFound, match="'nope.html' not found in search path") as ei:
            fs_env.get_template("nope.html")
        assert ei.value.name == "nope.html"

    def test_parent_directory_rejected(self, fs_env):
        with pytest.raises(TemplateNotFound):
            fs_env.get_template("../templates/base.html")

    def test_first_search_path_wins(self, tmp_path):
        first = write_templates(tmp_path / "first", {"a.html": "first"})
        second = write_templates(tmp_path / "second", {"a.html": "second", "b.html": "only second"})
        env = Environment(loader=FileSystemLoader([first, second]))
        assert env.get_template("a.html").render() == "first"
        assert env.get_template("b.html").render() == "only second"
        assert env.list_templates() == ["a.html", "b.html"]

    def test_ignore_patterns(self, templates_dir):
        loader = FileSystemLoader(templates_dir, ignore=["parts/", "macros.*"])
        env = Environment(loader=loader)
        assert loader.list_templates() == ["base.html", "page.html"]
        with pytest.raises(TemplateNotFound):
            env.get_template("parts/item.html")
        assert loader.get_mtime(env, "macros.html") is None

    def test_encoding(self, tmp_path):
        (tmp_path / "latin.txt").write_bytes("caf\xe9".encode("latin-1"))
        env = Environment(loader=FileSystemLoader(tmp_path, encoding="latin-1"))
        assert env.get_template("latin.txt").render() == "café"


class TestCompositeLoaders:
    """PrefixLoader и ChoiceLoader."""

    def test_prefix_loader(self, env):
        loader = PrefixLoader({
            "app": DictLoader({"index.html": "app index"}),
            "lib": DictLoader({"x.html": "lib x"}),
        })
        assert loader.get_source(env, "app/index.html").source == "app index"
        assert loader.list_templates() == ["app/index.html", "lib/x.html"]
        for name in ("other/index.html", "app/missing.html", "noprefix"):
            with pytest.raises(TemplateNotFound):
                loader.get_source(env, name)

    def test_prefix_loader_delimiter(self, env):
        loader = PrefixLoader({"app": DictLoader({"a": "A"})}, delimiter=":")
        assert loader.get_source(env, "app:a").source == "A"

    def test_choice_loader(self, env):
        loader = ChoiceLoader([
            DictLoader({"a": "first a"}),
            DictLoader({"a": "second a", "b": "second b"}),
        ])
        assert loader.get_source(env, "a").source == "first a"
        assert loader.get_source(env, "b").source == "second b"
        assert loader.list_templates() == ["a", "b"]
        with pytest.raises(TemplateNotFound):
            loader.get_source(env, "c")


class TestTemplatePaths:
    """Разбор и склейка имён."""

    def test_split(self):
        assert split_template_path("a/./b//c.html") == ["a", "b", "c.html"]
        with pytest.raises(TemplateNotFound):
            split_template_path("a/../b")

    @pytest.mark.parametrize("template, parent, expected", [
        ("./b.html", "dir/a.html", "dir/b.html"),
        ("../c.html", "dir/sub/a.html", "dir/c.html"),
        ("plain.html", "dir/a.html", "plain.html"),
    ])
    def test_join_relative(self, template, parent, expected):
        assert join_relative(template, parent) == expected
