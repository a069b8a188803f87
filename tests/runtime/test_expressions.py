"""
Тесты вычисления выражений: арифметика, сравнения, доступ к данным,
вызовы и ошибки времени выполнения.
"""

from __future__ import annotations

import pytest

from jinx import Environment, StrictUndefined, TemplateRuntimeError, TemplateSyntaxError, UndefinedError
from tests.infrastructure import render


class TestArithmetic:
    """Арифметические операторы и таблица приведения."""

    @pytest.mark.parametrize("source, expected", [
        ("1 + 2 * 3", "7"),
        ("(1 + 2) * 3", "9"),
        ("7 / 2", "3.5"),
        ("7 // 2", "3"),
        ("7 % 3", "1"),
        ("2 ** 3 ** 2", "512"),
        ("-x + +x", "0"),
        ("'ab' * 2", "abab"),
        ("[1] + [2]", "[1, 2]"),
        ("'%s-%d' % ('a', 3)", "a-3"),
    ])
    def test_operators(self, source, expected):
        assert render("{{ " + source + " }}", {"x": 4}) == expected

    def test_string_minus_int(self):
        with pytest.raises(TemplateRuntimeError, match="unsupported operand types for -: 'str' and 'int'") as ei:
            render("{{ s - 1 }}", {"s": "a"})
        assert ei.value.kind == "type"

    def test_string_plus_int(self):
        with pytest.raises(TemplateRuntimeError, match="unsupported operand types for \\+"):
            render("{{ s + 1 }}", {"s": "a"})

    def test_division_by_zero(self):
        with pytest.raises(TemplateRuntimeError, match="ZeroDivisionError: division by zero") as ei:
            render("{{ 1 / zero }}", {"zero": 0})
        assert ei.value.kind == "arithmetic"
        assert ei.value.lineno == 1

    def test_error_position(self):
        with pytest.raises(TemplateRuntimeError) as ei:
            render("ok\n\n  {{ 10 // n }}", {"n": 0})
        assert ei.value.lineno == 3
        assert ei.value.column == 6

    def test_unary_minus_on_string(self):
        with pytest.raises(TemplateRuntimeError, match="bad operand type for unary -"):
            render("{{ -s }}", {"s": "a"})

    def test_concat_converts_to_string(self):
        assert render("{{ 1 ~ 'a' ~ none }}") == "1aNone"


class TestComparisonsAndLogic:
    """Сравнения, ``in``, логические операторы и условные выражения."""

    @pytest.mark.parametrize("source, expected", [
        ("1 < 2 < 3", "True"),
        ("1 < 3 < 2", "False"),
        ("'a' == 'a'", "True"),
        ("1 != 1.0", "False"),
        ("'b' in 'abc'", "True"),
        ("3 not in [1, 2]", "True"),
        ("none or 'fallback'", "fallback"),
        ("0 and boom", "0"),
        ("not ''", "True"),
    ])
    def test_expressions(self, source, expected):
        assert render("{{ " + source + " }}") == expected

    def test_ordering_mixed_types(self):
        with pytest.raises(TemplateRuntimeError, match="'<' not supported between instances of 'int' and 'str'"):
            render("{{ a < b }}", {"a": 1, "b": "x"})

    def test_conditional_expression(self):
        assert render("{{ 'yes' if flag else 'no' }}", {"flag": True}) == "yes"
        assert render("{{ 'yes' if flag }}", {"flag": False}) == ""

    def test_conditional_without_else_strict(self):
        with pytest.raises(UndefinedError, match="evaluated to false"):
            render("{{ 'yes' if flag }}", {"flag": False}, undefined=StrictUndefined)


class TestDataAccess:
    """Атрибуты, элементы и срезы."""

    def test_attribute_falls_back_to_item(self):
        assert render("{{ user.name }}", {"user": {"name": "Ann"}}) == "Ann"

    def test_item_falls_back_to_attribute(self):
        class User:
            name = "Bob"

        assert render("{{ user['name'] }}", {"user": User()}) == "Bob"

    def test_missing_attribute_is_undefined(self):
        assert render("[{{ user.age }}]", {"user": {}}) == "[]"

    def test_indexing_and_slicing(self):
        data = {"items": [10, 20, 30, 40]}
        assert render("{{ items[0] }} {{ items[-1] }} {{ items[1:3] }} {{ items[::2] }}", data) == "10 40 [20, 30] [10, 30]"

    def test_dict_literal_access(self):
        assert render("{{ {'a': {'b': 3}}.a.b }}") == "3"


class TestCalls:
    """Вызовы функций и методов."""

    def test_method_call(self):
        assert render("{{ ', '.join(items) }}", {"items": ["a", "b"]}) == "a, b"

    def test_star_arguments(self):
        def f(*args, **kwargs):
            return f"{args}{sorted(kwargs.items())}"

        source = "{{ f(1, *rest, k=2, **extra) }}"
        assert render(source, {"f": f, "rest": [2], "extra": {"z": 3}}) == "(1, 2)[('k', 2), ('z', 3)]"

    def test_duplicate_dynamic_keyword(self):
        with pytest.raises(TemplateRuntimeError, match="multiple values for keyword argument 'k'"):
            render("{{ f(k=1, **extra) }}", {"f": dict, "extra": {"k": 2}})

    def test_calling_undefined(self):
        with pytest.raises(UndefinedError, match="'nothing' is undefined"):
            render("{{ nothing() }}")

    def test_globals_available(self):
        source = "{% set c = cycler('a', 'b') %}{{ c.next() }}{{ c.next() }}{{ c.next() }}{{ c.current }}"
        assert render(source) == "abab"

    def test_joiner(self):
        source = "{% set sep = joiner('|') %}{% for i in [1, 2, 3] %}{{ sep() }}{{ i }}{% endfor %}"
        assert render(source) == "1|2|3"

    def test_dict_global(self):
        assert render("{{ dict(a=1)|dictsort }}") == "[('a', 1)]"


class TestFinalize:
    """``finalize`` применяется к каждому результату ``{{ }}``."""

    def test_finalize_none(self):
        env = Environment(finalize=lambda v: "" if v is None else v)
        assert env.from_string("[{{ none }}][{{ 0 }}]").render() == "[][0]"


class TestCompileExpression:
    """Выражения вне шаблонов."""

    def test_value_returned(self):
        expr = Environment().compile_expression("a * 2 + b")
        assert expr(a=3, b=1) == 7

    def test_undefined_to_none(self):
        env = Environment()
        assert env.compile_expression("missing")() is None
        assert env.compile_expression("missing", undefined_to_none=False)() is not None

    def test_chunk_after_expression(self):
        with pytest.raises(TemplateSyntaxError, match="chunk after expression"):
            Environment().compile_expression("a b")
