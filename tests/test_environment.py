"""
Тесты окружения: компиляция, загрузка, реестры и модули шаблонов.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from jinx import (
    DictLoader,
    Environment,
    Markup,
    TemplateNotFound,
    TemplatesNotFound,
    TemplateSyntaxError,
    UndefinedError,
    StrictUndefined,
)


@pytest.fixture
def dict_env() -> Environment:
    return Environment(loader=DictLoader({
        "a.html": "A {{ x }}",
        "b.txt": "B {{ x }}",
        "bad.html": "line\n{% if %}",
        "sub/c.html": "C",
    }))


class TestCompilation:
    """Компиляция из строк."""

    def test_from_string(self, env):
        template = env.from_string("{{ a }}-{{ b }}")
        assert template.name is None
        assert template.render(a=1, b=2) == "1-2"
        assert template.render({"a": 3}, b=4) == "3-4"
        assert repr(template).startswith("<Template memory:")

    def test_template_globals(self, env):
        env.add_global("site", "jinx")
        template = env.from_string("{{ site }}/{{ page }}", globals={"page": "home"})
        assert template.render() == "jinx/home"
        # переменные вызова перекрывают глобальные значения
        assert template.render(page="about") == "jinx/about"

    def test_syntax_error_carries_source_and_name(self, dict_env):
        with pytest.raises(TemplateSyntaxError) as ei:
            dict_env.get_template("bad.html")
        assert ei.value.name == "bad.html"
        assert ei.value.lineno == 2
        assert ei.value.source == "line\n{% if %}"
        assert "template 'bad.html', line 2" in str(ei.value)

    def test_optimized_flag(self):
        plain = Environment(optimized=False).from_string("{{ 1 + 2 }}")
        folded = Environment().from_string("{{ 1 + 2 }}")
        assert plain.render() == folded.render() == "3"
        assert "Const(value=3)" in folded.root.dump()
        assert "Add(" in plain.root.dump()

    def test_max_recursion_depth_validated(self):
        with pytest.raises(ValueError, match="max_recursion_depth must be >= 1"):
            Environment(max_recursion_depth=0)

    def test_finalize(self):
        env = Environment(finalize=lambda v: "" if v is None else v)
        assert env.from_string("[{{ none }}|{{ 1 }}]").render() == "[|1]"

    def test_concurrent_renders(self, env):
        template = env.from_string("{% for i in range(n) %}{{ i }}{% endfor %}")
        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(lambda n: template.render(n=n), range(20)))
        assert results == ["".join(str(i) for i in range(n)) for n in range(20)]


class TestLoading:
    """Загрузка по именам."""

    def test_no_loader(self, env):
        with pytest.raises(TypeError, match="no loader"):
            env.get_template("a.html")

    def test_get_template_passthrough(self, dict_env):
        template = dict_env.get_template("a.html")
        assert dict_env.get_template(template) is template

    def test_get_template_undefined_name(self):
        env = Environment(loader=DictLoader({}), undefined=StrictUndefined)
        with pytest.raises(UndefinedError):
            env.get_template(env.undefined(name="tpl"))

    def test_relative_to_parent(self, dict_env):
        assert dict_env.get_template("./c.html", parent="sub/x.html").render() == "C"

    def test_call_globals_do_not_stick_to_cache(self, dict_env):
        assert dict_env.get_template("a.html", globals={"x": 1}).render() == "A 1"
        assert dict_env.get_template("a.html").render() == "A "
        assert dict_env.get_template("a.html", globals={"x": 2}).render() == "A 2"
        # первая загрузка тоже кэширует шаблон без значений вызова
        assert dict_env.get_template("b.txt", globals={"x": 3}).render() == "B 3"
        assert dict_env.get_template("b.txt").render() == "B "

    def test_call_globals_share_compiled_template(self, dict_env):
        plain = dict_env.get_template("a.html")
        scoped = dict_env.get_template("a.html", globals={"x": 1})
        assert scoped is not plain
        assert scoped.root is plain.root
        assert "x" not in plain.globals

    def test_select_template(self, dict_env):
        assert dict_env.select_template(["missing.html", "b.txt"]).name == "b.txt"
        with pytest.raises(TemplatesNotFound, match="missing.html, other.html") as ei:
            dict_env.select_template(["missing.html", "other.html"])
        assert ei.value.templates == ["missing.html", "other.html"]
        assert isinstance(ei.value, TemplateNotFound)

    def test_select_empty_list(self, dict_env):
        with pytest.raises(TemplatesNotFound, match="empty list"):
            dict_env.select_template([])

    def test_get_or_select(self, dict_env):
        assert dict_env.get_or_select_template("a.html").name == "a.html"
        assert dict_env.get_or_select_template(["nope", "a.html"]).name == "a.html"

    def test_list_templates(self, dict_env):
        assert dict_env.list_templates(extensions=["html"]) == ["a.html", "bad.html", "sub/c.html"]
        assert dict_env.list_templates(filter_func=lambda n: "/" in n) == ["sub/c.html"]
        with pytest.raises(TypeError, match="either extensions or filter_func"):
            dict_env.list_templates(extensions=["html"], filter_func=bool)


class TestAutoescapePolicy:
    """Выбор автоэкранирования по имени шаблона."""

    def test_extension_list(self):
        env = Environment(autoescape=["html"], loader=DictLoader({"a.html": "{{ x }}", "a.txt": "{{ x }}"}))
        assert env.get_template("a.html").render(x="<b>") == "&lt;b&gt;"
        assert env.get_template("a.txt").render(x="<b>") == "<b>"
        assert env.from_string("{{ x }}").render(x="<b>") == "<b>"

    def test_callable(self):
        env = Environment(autoescape=lambda name: name is None)
        assert env.from_string("{{ x }}").render(x="&") == "&amp;"

    def test_markup_is_not_escaped_twice(self):
        env = Environment(autoescape=True)
        assert env.from_string("{{ x }}{{ y }}").render(x=Markup("<i>"), y="<i>") == "<i>&lt;i&gt;"


class TestRegistries:
    """Фильтры, тесты и глобальные функции."""

    def test_add_test(self, env):
        env.add_test("palindrome", lambda s: s == s[::-1])
        assert env.from_string("{{ 'abba' is palindrome }}").render() == "True"

    def test_call_test(self, env):
        assert env.call_test("odd", 3) is True

    def test_environment_isolation(self):
        first = Environment()
        first.add_filter("x", lambda v: v)
        assert "x" not in Environment().filters


class TestModules:
    """Шаблон как модуль."""

    def test_module_exports(self, fs_env):
        module = fs_env.get_template("macros.html").module
        assert module.greet("Bo") == "Hi Bo"
        assert list(module) == ["greet"]
        assert fs_env.get_template("macros.html").module is module

    def test_make_module_with_vars(self, env):
        module = env.from_string("{% set label = prefix ~ '!' %}body").make_module({"prefix": "p"})
        assert module.label == "p!"
        assert str(module) == "body"

    def test_render_block(self, fs_env):
        assert fs_env.get_template("page.html").render_block("title", title="Hi") == "Hi"
