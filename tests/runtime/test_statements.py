"""
Тесты инструкций: условия, циклы, присваивания, области видимости.
"""

from __future__ import annotations

import pytest

from jinx import TemplateRuntimeError
from tests.infrastructure import render


class TestIf:
    """Ветвление."""

    @pytest.mark.parametrize("value, expected", [(1, "one"), (2, "two"), (3, "other")])
    def test_elif_chain(self, value, expected):
        source = "{% if x == 1 %}one{% elif x == 2 %}two{% else %}other{% endif %}"
        assert render(source, {"x": value}) == expected

    def test_undefined_is_false(self):
        assert render("{% if missing %}yes{% else %}no{% endif %}") == "no"

    def test_set_inside_if_is_visible_after(self):
        assert render("{% if true %}{% set x = 5 %}{% endif %}{{ x }}") == "5"


class TestFor:
    """Циклы и переменная ``loop``."""

    def test_simple_loop(self):
        assert render("{% for i in items %}{{ i }},{% endfor %}", {"items": [1, 2, 3]}) == "1,2,3,"

    def test_else_on_empty(self):
        assert render("{% for i in [] %}x{% else %}empty{% endfor %}") == "empty"

    def test_else_on_undefined(self):
        assert render("{% for i in nothing %}x{% else %}empty{% endfor %}") == "empty"

    def test_loop_metadata(self):
        source = (
            "{% for c in 'abc' %}"
            "{{ loop.index }}{{ loop.index0 }}{{ loop.revindex }}{{ loop.revindex0 }}"
            "{{ loop.first|int }}{{ loop.last|int }}{{ loop.length }};"
            "{% endfor %}"
        )
        assert render(source) == "1032103;2121003;3210013;"

    def test_prev_and_next_item(self):
        source = "{% for i in [1, 2, 3] %}[{{ loop.previtem }}|{{ loop.nextitem }}]{% endfor %}"
        assert render(source) == "[|2][1|3][2|]"

    def test_cycle_and_changed(self):
        source = (
            "{% for i in [1, 1, 2] %}"
            "{{ loop.cycle('a', 'b') }}{% if loop.changed(i) %}!{% endif %}"
            "{% endfor %}"
        )
        assert render(source) == "a!ba!"

    def test_filter_applies_before_metadata(self):
        source = "{% for i in range(10) if i is odd %}{{ loop.index }}:{{ i }} {% endfor %}"
        assert render(source) == "1:1 2:3 3:5 4:7 5:9 "

    def test_tuple_unpacking(self):
        source = "{% for k, v in data|dictsort %}{{ k }}={{ v }};{% endfor %}"
        assert render(source, {"data": {"b": 2, "a": 1}}) == "a=1;b=2;"

    def test_unpack_mismatch(self):
        with pytest.raises(TemplateRuntimeError, match="cannot unpack"):
            render("{% for a, b in [(1, 2, 3)] %}{% endfor %}")

    def test_loop_variables_do_not_leak(self):
        source = "{% for i in [1] %}{% set inner = 'x' %}{% endfor %}[{{ i }}{{ inner }}]"
        assert render(source) == "[]"

    def test_break_and_continue(self):
        source = (
            "{% for i in range(10) %}"
            "{% if i == 5 %}{% break %}{% endif %}"
            "{% if i is even %}{% continue %}{% endif %}"
            "{{ i }}"
            "{% endfor %}"
        )
        assert render(source) == "13"

    def test_nested_loop_depth(self):
        source = (
            "{% for row in rows recursive %}"
            "{{ loop.depth }}{{ row.name }}"
            "{% if row.children %}({{ loop(row.children) }}){% endif %}"
            "{% endfor %}"
        )
        rows = [{"name": "a", "children": [{"name": "b", "children": []}]}, {"name": "c"}]
        assert render(source, {"rows": rows}) == "1a(2b)1c"

    def test_loop_call_requires_recursive(self):
        with pytest.raises(TemplateRuntimeError, match="recursive"):
            render("{% for i in [1] %}{{ loop([]) }}{% endfor %}")


class TestAssignments:
    """``set``, ``with`` и пространства имён."""

    def test_set_tuple(self):
        assert render("{% set a, b = 1, 2 %}{{ b }}{{ a }}") == "21"

    def test_block_set_with_filter(self):
        assert render("{% set greeting | upper %}  hi {{ name }} {% endset %}[{{ greeting }}]", {"name": "x"}) == "[  HI X ]"

    def test_with_scope(self):
        source = "{% with a = 1, b = 2 %}{{ a + b }}{% endwith %}[{{ a }}]"
        assert render(source) == "3[]"

    def test_namespace_assignment_from_loop(self):
        source = (
            "{% set ns = namespace(total=0) %}"
            "{% for i in [1, 2, 3] %}{% set ns.total = ns.total + i %}{% endfor %}"
            "{{ ns.total }}"
        )
        assert render(source) == "6"

    def test_namespace_block(self):
        source = "{% namespace cfg %}{% set debug = true %}{% endnamespace %}{{ cfg.debug }}"
        assert render(source) == "True"

    def test_assign_attribute_on_plain_object(self):
        with pytest.raises(TemplateRuntimeError, match="non-namespace"):
            render("{% set d = {} %}{% set d.x = 1 %}")

    def test_do_discards_result(self):
        source = "{% set items = [] %}{% do items.append(1) %}{{ items }}"
        assert render(source) == "[1]"


class TestOtherStatements:
    """Фильтр-блок, spaceless, raw, комментарии, autoescape."""

    def test_filter_block(self):
        assert render("{% filter upper|replace('A', '4') %}abc{% endfilter %}") == "4BC"

    def test_spaceless(self):
        source = "{% spaceless %}<ul>\n  <li>x</li>\n</ul>{% endspaceless %}"
        assert render(source) == "<ul><li>x</li></ul>"

    def test_raw(self):
        assert render("{% raw %}{% if %}{{ x }}{% endraw %}") == "{% if %}{{ x }}"

    def test_comment(self):
        assert render("a{# {{ x }} #}b") == "ab"

    def test_autoescape_block(self):
        source = "{{ v }}|{% autoescape true %}{{ v }}{% endautoescape %}|{{ v }}"
        assert render(source, {"v": "<b>"}) == "<b>|&lt;b&gt;|<b>"

    def test_whitespace_control_end_to_end(self):
        source = "<ul>\n{% for i in [1, 2] %}\n  <li>{{ i }}</li>\n{% endfor %}\n</ul>"
        assert render(source, trim_blocks=True, lstrip_blocks=True) == "<ul>\n  <li>1</li>\n  <li>2</li>\n</ul>"
