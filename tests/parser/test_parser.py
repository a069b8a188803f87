"""
Тесты парсера: форма AST, приоритеты операторов и синтаксические ошибки.
"""

from __future__ import annotations

import pytest

from jinx import Environment, TemplateAssertionError, TemplateSyntaxError
from jinx import nodes


@pytest.fixture
def env() -> Environment:
    return Environment()


def expr(env: Environment, source: str) -> nodes.Expr:
    """Единственное выражение из ``{{ source }}``."""
    root = env.parse("{{ " + source + " }}")
    (output,) = root.body
    assert isinstance(output, nodes.Output)
    (node,) = output.nodes
    return node


class TestOutputShape:
    """Текст и ``{{ }}`` собираются в узлы Output."""

    def test_text_and_variable(self, env):
        root = env.parse("Hello {{ name }}!")
        assert isinstance(root, nodes.Template)
        (output,) = root.body
        data, name, tail = output.nodes
        assert isinstance(data, nodes.TemplateData) and data.data == "Hello "
        assert isinstance(name, nodes.Name) and name.name == "name" and name.ctx == "load"
        assert isinstance(tail, nodes.TemplateData) and tail.data == "!"

    def test_statement_splits_output(self, env):
        root = env.parse("a{% if x %}b{% endif %}c")
        assert [type(n).__name__ for n in root.body] == ["Output", "If", "Output"]

    def test_positions(self, env):
        root = env.parse("line\n  {{ value }}")
        name = root.find(nodes.Name)
        assert (name.lineno, name.column) == (2, 6)

    def test_dump_is_readable(self, env):
        dumped = env.parse("{{ x }}").dump()
        assert dumped == "Template(body=[Output(nodes=[Name(name='x', ctx='load')])])"


class TestPrecedence:
    """Приоритеты и ассоциативность операторов."""

    def test_mul_binds_tighter_than_add(self, env):
        node = expr(env, "1 + 2 * 3")
        assert isinstance(node, nodes.Add)
        assert isinstance(node.left, nodes.Const) and node.left.value == 1
        assert isinstance(node.right, nodes.Mul)

    def test_left_associative_sub(self, env):
        node = expr(env, "10 - 4 - 3")
        assert isinstance(node, nodes.Sub)
        assert isinstance(node.left, nodes.Sub)

    def test_pow_right_associative(self, env):
        node = expr(env, "2 ** 3 ** 2")
        assert isinstance(node, nodes.Pow)
        assert isinstance(node.right, nodes.Pow)

    def test_concat_between_add_and_mul(self, env):
        node = expr(env, "a + b ~ c * d")
        assert isinstance(node, nodes.Add)
        assert isinstance(node.right, nodes.Concat)
        assert isinstance(node.right.nodes[1], nodes.Mul)

    def test_not_and_or(self, env):
        node = expr(env, "not a and b or c")
        assert isinstance(node, nodes.Or)
        assert isinstance(node.left, nodes.And)
        assert isinstance(node.left.left, nodes.Not)

    def test_filter_binds_to_primary(self, env):
        node = expr(env, "a + b|upper")
        assert isinstance(node, nodes.Add)
        assert isinstance(node.right, nodes.Filter) and node.right.name == "upper"

    def test_chained_comparison(self, env):
        node = expr(env, "1 < x <= 3")
        assert isinstance(node, nodes.Compare)
        assert [op.op for op in node.ops] == ["lt", "lteq"]

    def test_not_in(self, env):
        node = expr(env, "a not in b")
        assert [op.op for op in node.ops] == ["notin"]

    def test_negated_test(self, env):
        node = expr(env, "x is not divisibleby 3")
        assert isinstance(node, nodes.Not)
        assert isinstance(node.node, nodes.Test) and node.node.name == "divisibleby"

    def test_conditional_expression(self, env):
        node = expr(env, "a if cond else b")
        assert isinstance(node, nodes.CondExpr)
        assert node.test.name == "cond"


class TestLiterals:
    """Литералы и составные значения."""

    def test_constants(self, env):
        node = expr(env, "[1, 'two', 3.0, true, none]")
        assert isinstance(node, nodes.List)
        assert [item.value for item in node.items] == [1, "two", 3.0, True, None]

    def test_adjacent_strings_joined(self, env):
        node = expr(env, "'a' 'b'")
        assert node.value == "ab"

    def test_dict_literal(self, env):
        node = expr(env, "{'a': 1, 'b': x}")
        assert isinstance(node, nodes.Dict)
        assert [pair.key.value for pair in node.items] == ["a", "b"]

    def test_tuple_in_parentheses(self, env):
        node = expr(env, "(1, 2)")
        assert isinstance(node, nodes.Tuple) and len(node.items) == 2

    def test_slice(self, env):
        node = expr(env, "items[1:-1]")
        assert isinstance(node, nodes.Getitem)
        assert isinstance(node.arg, nodes.Slice)
        assert node.arg.step is None

    def test_call_arguments(self, env):
        node = expr(env, "f(1, key=2, *rest, **opts)")
        assert isinstance(node, nodes.Call)
        assert len(node.args) == 1
        assert [kw.key for kw in node.kwargs] == ["key"]
        assert node.dyn_args.name == "rest"
        assert node.dyn_kwargs.name == "opts"


class TestStatements:
    """Разбор инструкций."""

    def test_for_with_else_and_filter(self, env):
        root = env.parse("{% for a, b in items if a recursive %}x{% else %}y{% endfor %}")
        (loop,) = root.body
        assert isinstance(loop, nodes.For)
        assert isinstance(loop.target, nodes.Tuple) and loop.target.ctx == "store"
        assert loop.test is not None
        assert loop.recursive is True
        assert loop.else_

    def test_if_elif_else(self, env):
        root = env.parse("{% if a %}1{% elif b %}2{% elif c %}3{% else %}4{% endif %}")
        (node,) = root.body
        assert len(node.elif_) == 2
        assert node.else_

    def test_macro_signature(self, env):
        root = env.parse("{% macro m(a, b=1, *, c, d=2, **rest) %}{% endmacro %}")
        (macro,) = root.body
        sig = macro.signature
        assert sig.arg_names == ["a", "b"]
        assert sig.kwonly_names == ["c", "d"]
        assert sig.kwargs == "rest"

    def test_set_forms(self, env):
        root = env.parse("{% set a, b = 1, 2 %}{% set ns.x = 3 %}{% set body | trim %} t {% endset %}")
        assign, ns_assign, block = root.body
        assert isinstance(assign, nodes.Assign) and isinstance(assign.target, nodes.Tuple)
        assert isinstance(ns_assign.target, nodes.NSRef)
        assert isinstance(block, nodes.AssignBlock) and block.filter.name == "trim"

    def test_block_and_extends(self, env):
        root = env.parse("{% extends 'base.html' %}{% block title scoped %}T{% endblock title %}")
        extends, block = root.body
        assert isinstance(extends, nodes.Extends)
        assert block.name == "title" and block.scoped

    def test_include_flags(self, env):
        root = env.parse("{% include 'x' ignore missing without context %}")
        (node,) = root.body
        assert node.ignore_missing and not node.with_context

    def test_from_import(self, env):
        root = env.parse("{% from 'forms.html' import field, label as lbl with context %}")
        (node,) = root.body
        assert node.names == [("field", None), ("label", "lbl")]
        assert node.with_context

    def test_raw_becomes_text(self, env):
        root = env.parse("{% raw %}{{ x }}{% endraw %}")
        (output,) = root.body
        assert output.nodes[0].data == "{{ x }}"

    def test_comments_dropped(self, env):
        root = env.parse("a{# note #}b")
        (output,) = root.body
        assert [n.data for n in output.nodes] == ["a", "b"]


class TestSyntaxErrors:
    """Синтаксические ошибки с позицией и понятным сообщением."""

    def test_unknown_tag(self, env):
        with pytest.raises(TemplateSyntaxError, match="Encountered unknown tag 'frobnicate'") as ei:
            env.parse("\n{% frobnicate %}")
        assert ei.value.lineno == 2

    def test_unclosed_block(self, env):
        with pytest.raises(TemplateSyntaxError, match="Unexpected end of template") as ei:
            env.parse("{% if x %}never closed")
        assert "endif" in str(ei.value)

    def test_nesting_mistake(self, env):
        with pytest.raises(TemplateSyntaxError, match="nesting mistake"):
            env.parse("{% for x in y %}{% if x %}{% endfor %}{% endif %}")

    def test_stray_end_tag(self, env):
        with pytest.raises(TemplateSyntaxError, match="no open block"):
            env.parse("{% endif %}")

    def test_break_outside_loop(self, env):
        with pytest.raises(TemplateSyntaxError, match="'break' outside of a loop"):
            env.parse("{% break %}")

    def test_duplicate_block(self, env):
        with pytest.raises(TemplateAssertionError, match="defined twice"):
            env.parse("{% block a %}{% endblock %}{% block a %}{% endblock %}")

    def test_non_default_after_default(self, env):
        with pytest.raises(TemplateAssertionError, match="Non-default argument follows default argument"):
            env.parse("{% macro m(a=1, b) %}{% endmacro %}")

    def test_assign_to_constant(self, env):
        with pytest.raises(TemplateSyntaxError, match="Can't assign"):
            env.parse("{% set true = 1 %}")

    def test_loop_variable_target(self, env):
        with pytest.raises(TemplateAssertionError, match="special loop variable"):
            env.parse("{% for loop in items %}{% endfor %}")

    def test_repeated_keyword(self, env):
        with pytest.raises(TemplateAssertionError, match="repeated"):
            env.parse("{{ f(a=1, a=2) }}")

    def test_dynamic_extends_rejected(self, env):
        with pytest.raises(TemplateAssertionError, match="string literal"):
            env.parse("{% extends parent %}")

    def test_error_carries_source(self, env):
        source = "{{ 1 + }}"
        with pytest.raises(TemplateSyntaxError) as ei:
            env.parse(source)
        assert ei.value.source == source

    def test_async_requires_option(self, env):
        with pytest.raises(TemplateSyntaxError, match="enable_async"):
            env.parse("{% async for x in y %}{% endfor %}")
        Environment(enable_async=True).parse("{% async for x in y %}{% endfor %}")
