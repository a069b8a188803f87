"""
Тесты политик неопределённых значений.
"""

from __future__ import annotations

import pytest

from jinx import (
    ChainableUndefined,
    DebugUndefined,
    StrictUndefined,
    Undefined,
    UndefinedError,
    is_undefined,
)
from tests.infrastructure import render


class TestDefaultUndefined:
    """Нестрогое поведение по умолчанию."""

    def test_renders_empty(self):
        assert render("[{{ missing }}]") == "[]"

    def test_iterates_empty_and_falsy(self):
        assert render("{% for x in missing %}x{% endfor %}{{ missing|length }}{{ 'y' if not missing }}") == "0y"

    def test_attribute_of_undefined_fails(self):
        with pytest.raises(UndefinedError, match="'missing' is undefined") as ei:
            render("{{ missing.attr }}")
        assert ei.value.kind == "undefined"

    def test_arithmetic_fails(self):
        with pytest.raises(UndefinedError):
            render("{{ missing + 1 }}")

    def test_missing_key_message(self):
        with pytest.raises(UndefinedError, match="'dict object' has no attribute 'y'"):
            render("{{ d.y.z }}", {"d": {}})

    def test_default_filter(self):
        assert render("{{ missing|default('fallback') }}") == "fallback"
        assert render("{{ ''|default('fallback', true) }}") == "fallback"
        assert render("{{ ''|d('fallback') }}") == ""

    def test_defined_tests(self):
        assert render("{{ missing is defined }}/{{ missing is undefined }}") == "False/True"

    def test_equality(self):
        assert Undefined() == Undefined()
        assert Undefined() != ChainableUndefined()
        assert is_undefined(Undefined(name="x"))


class TestStrictUndefined:
    """Любое использование - ошибка."""

    @pytest.mark.parametrize("source", [
        "{{ missing }}",
        "{% for x in missing %}{% endfor %}",
        "{% if missing %}{% endif %}",
        "{{ missing == 1 }}",
        "{{ missing|length }}",
    ])
    def test_any_use_fails(self, source):
        with pytest.raises(UndefinedError, match="'missing' is undefined"):
            render(source, undefined=StrictUndefined)

    def test_defined_test_still_works(self):
        assert render("{{ missing is defined }}", undefined=StrictUndefined) == "False"

    def test_default_filter_still_works(self):
        assert render("{{ missing|default('ok') }}", undefined=StrictUndefined) == "ok"

    def test_error_has_position(self, strict_env):
        with pytest.raises(UndefinedError) as ei:
            strict_env.from_string("line one\n{{ missing }}").render()
        assert ei.value.lineno == 2


class TestChainableUndefined:
    """Цепочки обращений без ошибки."""

    def test_chain_renders_empty(self):
        assert render("[{{ a.b.c }}][{{ a['b'].c }}]", undefined=ChainableUndefined) == "[][]"

    def test_chain_with_default(self):
        assert render("{{ user.profile.name|default('anon') }}", undefined=ChainableUndefined) == "anon"


class TestDebugUndefined:
    """Пропуски видны в выводе."""

    def test_name_is_shown(self):
        assert render("{{ missing }}", undefined=DebugUndefined) == "{{ missing }}"

    def test_missing_element_is_shown(self):
        assert render("{{ d.key }}", {"d": {}}, undefined=DebugUndefined) == "{{ no such element: dict object['key'] }}"
