"""
Тесты наследования и включения шаблонов.
"""

from __future__ import annotations

import pytest

from jinx import (
    CircularInheritanceError,
    TemplateNotFound,
    TemplateRuntimeError,
    TemplatesNotFound,
)
from tests.infrastructure import make_env, render_named


class TestExtends:
    """``extends``, ``block`` и ``super()``."""

    def test_super_chain(self):
        templates = {
            "base.html": "<title>{% block title %}A{% endblock %}</title>",
            "page.html": "{% extends 'base.html' %}{% block title %}{{ super() }}B{% endblock %}",
        }
        assert render_named(templates, "page.html") == "<title>AB</title>"

    def test_three_levels(self):
        templates = {
            "a": "[{% block x %}a{% endblock %}]",
            "b": "{% extends 'a' %}{% block x %}b{{ super() }}{% endblock %}",
            "c": "{% extends 'b' %}{% block x %}c{{ super() }}{% endblock %}",
        }
        assert render_named(templates, "c") == "[cba]"

    def test_child_output_outside_blocks_ignored(self):
        templates = {
            "base": "{% block body %}{% endblock %}",
            "child": "{% extends 'base' %}ignored{% block body %}kept{% endblock %}ignored",
        }
        assert render_named(templates, "child") == "kept"

    def test_child_include_after_extends_ignored(self):
        templates = {
            "base": "[{% block c %}A{% endblock %}]",
            "inc": "LEAK",
            "child": "{% extends 'base' %}{% include 'inc' %}{% block c %}B{% endblock %}",
        }
        assert render_named(templates, "child") == "[B]"

    def test_child_call_block_after_extends_ignored(self):
        templates = {
            "base": "[{% block c %}A{% endblock %}]",
            "child": (
                "{% extends 'base' %}"
                "{% macro m() %}({{ caller() }}){% endmacro %}"
                "{% call m() %}LEAK{% endcall %}"
                "{% block c %}B{% endblock %}"
            ),
        }
        assert render_named(templates, "child") == "[B]"

    def test_child_output_inside_statements_after_extends_ignored(self):
        templates = {
            "base": "[{% block c %}A{% endblock %}]",
            "child": (
                "{% extends 'base' %}"
                "{% for i in range(2) %}LEAK{{ i }}{% endfor %}"
                "{% if true %}LEAK{% endif %}"
                "{% with x = 1 %}LEAK{{ x }}{% endwith %}"
            ),
        }
        assert render_named(templates, "child") == "[A]"

    def test_child_side_effects_after_extends_kept(self):
        templates = {
            "base": "[{% block c %}{% endblock %}]",
            "inc": "{% set ignored = 1 %}LEAK",
            "child": (
                "{% extends 'base' %}"
                "{% include 'inc' %}"
                "{% set ns = namespace(n=0) %}{% for i in range(3) %}{% set ns.n = ns.n + i %}{% endfor %}"
                "{% block c %}{{ ns.n }}{% endblock %}"
            ),
        }
        assert render_named(templates, "child") == "[3]"

    def test_child_assignments_visible_in_blocks(self):
        templates = {
            "base": "{% block body %}{% endblock %}",
            "child": "{% extends 'base' %}{% set who = 'child' %}{% block body %}{{ who }}{% endblock %}",
        }
        assert render_named(templates, "child") == "child"

    def test_nested_blocks(self):
        templates = {
            "base": "{% block outer %}({% block inner %}i{% endblock %}){% endblock %}",
            "child": "{% extends 'base' %}{% block inner %}I{% endblock %}",
        }
        assert render_named(templates, "child") == "(I)"

    def test_self_reference(self):
        templates = {
            "base": "{% block title %}T{% endblock %}|{{ self.title() }}",
            "child": "{% extends 'base' %}{% block title %}C{% endblock %}",
        }
        assert render_named(templates, "child") == "C|C"

    def test_scoped_block_sees_loop_variable(self):
        templates = {
            "base": (
                "{% for i in [1, 2] %}{% block plain %}[{{ i }}]{% endblock %}{% endfor %}"
                "{% for i in [1, 2] %}{% block scoped_one scoped %}<{{ i }}>{% endblock %}{% endfor %}"
            ),
        }
        assert render_named(templates, "base") == "[][]<1><2>"

    def test_relative_parent(self):
        templates = {
            "layouts/base.html": "<{% block b %}{% endblock %}>",
            "layouts/page.html": "{% extends './base.html' %}{% block b %}p{% endblock %}",
        }
        assert render_named(templates, "layouts/page.html") == "<p>"

    def test_circular_inheritance(self):
        templates = {
            "a": "{% extends 'b' %}",
            "b": "{% extends 'a' %}",
        }
        with pytest.raises(CircularInheritanceError, match="a -> b -> a") as ei:
            render_named(templates, "a")
        assert ei.value.kind == "inheritance"

    def test_self_extension(self):
        with pytest.raises(CircularInheritanceError, match="me -> me"):
            render_named({"me": "{% extends 'me' %}"}, "me")

    def test_required_block_not_overridden(self):
        templates = {
            "base": "{% block content required %}{% endblock %}",
            "child": "{% extends 'base' %}",
            "good": "{% extends 'base' %}{% block content %}ok{% endblock %}",
        }
        with pytest.raises(TemplateRuntimeError, match="Required block 'content' not found"):
            render_named(templates, "child")
        assert render_named(templates, "good") == "ok"

    def test_missing_parent(self):
        with pytest.raises(TemplateNotFound, match="nowhere"):
            render_named({"child": "{% extends 'nowhere' %}"}, "child")

    def test_template_metadata(self):
        env = make_env({"base": "{% block a %}{% block b %}{% endblock %}{% endblock %}", "child": "{% extends 'base' %}"})
        assert sorted(env.get_template("base").blocks) == ["a", "b"]
        assert env.get_template("child").parent_name == "base"
        assert env.get_template("base").parent_name is None


class TestRenderBlock:
    """Рендеринг отдельного блока."""

    TEMPLATES = {
        "base": "{% block title %}Base{% endblock %}{% block body %}{% endblock %}",
        "child": "{% extends 'base' %}{% block title %}{{ super() }}+{{ who }}{% endblock %}",
    }

    def test_block_from_child(self):
        env = make_env(self.TEMPLATES)
        assert env.get_template("child").render_block("title", who="x") == "Base+x"

    def test_inherited_block(self):
        env = make_env(self.TEMPLATES)
        assert env.get_template("child").render_block("body") == ""

    def test_missing_block(self):
        env = make_env(self.TEMPLATES)
        with pytest.raises(TemplateRuntimeError, match="Template 'child' has no block 'footer'"):
            env.get_template("child").render_block("footer")


class TestInclude:
    """``include``."""

    def test_include_with_context(self):
        templates = {"item": "<{{ x }}>", "page": "{% for x in [1, 2] %}{% include 'item' %}{% endfor %}"}
        assert render_named(templates, "page") == "<1><2>"

    def test_include_without_context(self):
        templates = {"item": "<{{ x }}>", "page": "{% set x = 1 %}{% include 'item' without context %}"}
        assert render_named(templates, "page") == "<>"

    def test_include_sees_render_variables_without_context(self):
        templates = {"item": "<{{ x }}>", "page": "{% include 'item' without context %}"}
        assert render_named(templates, "page", {"x": 5}) == "<>"

    def test_ignore_missing(self):
        templates = {"page": "a{% include 'nope' ignore missing %}b"}
        assert render_named(templates, "page") == "ab"

    def test_missing_include(self):
        with pytest.raises(TemplateNotFound):
            render_named({"page": "{% include 'nope' %}"}, "page")

    def test_include_first_existing(self):
        templates = {"b": "B", "page": "{% include ['a', 'b'] %}"}
        assert render_named(templates, "page") == "B"

    def test_include_none_existing(self):
        with pytest.raises(TemplatesNotFound):
            render_named({"page": "{% include ['a', 'b'] %}"}, "page")

    def test_recursive_include_limited(self):
        templates = {"loop": "x{% include 'loop' %}"}
        with pytest.raises(TemplateRuntimeError, match="Maximum recursion depth of 5"):
            render_named(templates, "loop", max_recursion_depth=5)
