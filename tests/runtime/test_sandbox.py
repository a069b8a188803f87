"""
Тесты песочницы: разрешения и лимиты ресурсов.
"""

from __future__ import annotations

import logging

import pytest

from jinx import Environment, SandboxPolicy, SecurityError
from jinx.sandbox import is_internal_attribute, modifies_known_mutable
from tests.infrastructure import render


def sandboxed(source: str, variables=None, **policy_options) -> str:
    return render(source, variables, policy=SandboxPolicy(**policy_options))


class TestPermissions:
    """Фильтры, функции, атрибуты и методы."""

    def test_blocked_filter(self):
        with pytest.raises(SecurityError, match="filter 'upper' is not allowed") as ei:
            sandboxed("{{ 'a'|upper }}", blocked_filters=frozenset({"upper"}))
        assert ei.value.kind == "security"

    def test_filter_whitelist(self):
        assert sandboxed("{{ 'a'|upper }}", filter_whitelist=True, allowed_filters=frozenset({"upper"})) == "A"
        with pytest.raises(SecurityError, match="filter 'lower' is not allowed"):
            sandboxed("{{ 'a'|lower }}", filter_whitelist=True, allowed_filters=frozenset({"upper"}))

    def test_filter_called_through_map(self):
        with pytest.raises(SecurityError, match="filter 'upper' is not allowed"):
            sandboxed("{{ ['a']|map('upper')|list }}", blocked_filters=frozenset({"upper"}))

    def test_blocked_function(self):
        with pytest.raises(SecurityError, match="function 'lipsum' is not allowed"):
            sandboxed("{{ lipsum() }}", blocked_functions=frozenset({"lipsum"}))

    def test_function_whitelist(self):
        assert sandboxed("{{ range(3)|list }}", function_whitelist=True, allowed_functions=frozenset({"range"})) == "[0, 1, 2]"
        with pytest.raises(SecurityError, match="function 'dict' is not allowed"):
            sandboxed("{{ dict() }}", function_whitelist=True, allowed_functions=frozenset({"range"}))

    def test_private_attribute(self):
        with pytest.raises(SecurityError, match="access to attribute '__class__' of 'str' object is not allowed"):
            sandboxed("{{ ''.__class__ }}")

    def test_private_item_access(self):
        with pytest.raises(SecurityError, match="'_secret'"):
            sandboxed("{{ obj['_secret'] }}", {"obj": {"_secret": 1}})

    def test_private_attributes_can_be_allowed(self):
        assert sandboxed("{{ obj._x }}", {"obj": {"_x": 1}}, allow_private_attributes=True) == "1"

    def test_attr_filter_checked(self):
        with pytest.raises(SecurityError, match="access to attribute '__class__' of 'str' object is not allowed"):
            sandboxed("{{ ''|attr('__class__') }}")

    def test_map_attribute_checked(self):
        with pytest.raises(SecurityError, match="'__class__'"):
            sandboxed("{{ ['']|map(attribute='__class__')|list }}")

    def test_attribute_path_checked_at_every_step(self):
        with pytest.raises(SecurityError, match="'__class__'"):
            sandboxed("{{ items|map(attribute='name.__class__')|list }}", {"items": [{"name": "a"}]})

    @pytest.mark.parametrize("source", [
        "{{ items|sort(attribute='_key')|list }}",
        "{{ items|groupby('_key')|list }}",
        "{{ items|selectattr('_key')|list }}",
        "{{ items|rejectattr('_key')|list }}",
        "{{ items|unique(attribute='_key')|list }}",
        "{{ items|min(attribute='_key') }}",
        "{{ items|max(attribute='_key') }}",
        "{{ items|sum(attribute='_key') }}",
        "{{ items|join(',', attribute='_key') }}",
    ])
    def test_filters_with_attribute_argument_checked(self, source):
        with pytest.raises(SecurityError, match="'_key'"):
            sandboxed(source, {"items": [{"_key": 2}, {"_key": 1}]})

    def test_public_attribute_arguments_allowed(self):
        users = [{"name": "b", "age": 2}, {"name": "a", "age": 1}]
        source = "{{ users|sort(attribute='name')|map(attribute='age')|join(',') }}|{{ users|sum(attribute='age') }}"
        assert sandboxed(source, {"users": users}) == "1,2|3"

    def test_blocked_attribute_name(self):
        with pytest.raises(SecurityError, match="'password'"):
            sandboxed("{{ user.password }}", {"user": {"password": "x"}}, blocked_attributes=frozenset({"password"}))

    def test_method_calls_disabled(self):
        with pytest.raises(SecurityError, match="calling method 'upper' of 'str' object is not allowed"):
            sandboxed("{{ 'a'.upper() }}", allow_method_calls=False)

    def test_immutable_collections(self):
        with pytest.raises(SecurityError, match="calling method 'append' of 'list' object is not allowed"):
            sandboxed("{% set items = [] %}{% do items.append(1) %}", immutable=True)
        assert sandboxed("{{ [1, 2].index(2) }}", immutable=True) == "1"

    def test_denial_is_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="jinx"):
            with pytest.raises(SecurityError):
                sandboxed("{{ 'a'|upper }}", blocked_filters=frozenset({"upper"}))
        assert "Security policy denied operation" in caplog.text


class TestLimits:
    """Лимиты ресурсов."""

    def test_recursion_depth(self):
        source = "{% macro r(n) %}{{ r(n + 1) }}{% endmacro %}{{ r(0) }}"
        with pytest.raises(SecurityError, match="recursion depth 4 is not allowed while calling macro 'r'"):
            sandboxed(source, max_recursion_depth=3)

    def test_memory_limit_range(self):
        with pytest.raises(SecurityError, match="memory limit exceeded: 0 \\+ 1000 items"):
            sandboxed("{{ range(1000)|length }}", max_memory_items=100)

    def test_memory_limit_loops(self):
        source = "{% for i in items %}{% endfor %}{% for i in items %}{% endfor %}"
        assert sandboxed(source, {"items": [1, 2, 3]}, max_memory_items=6) == ""
        with pytest.raises(SecurityError, match="memory limit exceeded: 3 \\+ 3 items"):
            sandboxed(source, {"items": [1, 2, 3]}, max_memory_items=5)

    def test_output_limit(self):
        assert sandboxed("hello", max_output_size=5) == "hello"
        with pytest.raises(SecurityError, match="output limit exceeded"):
            sandboxed("hello world", max_output_size=5)

    def test_time_limit(self):
        with pytest.raises(SecurityError, match="render time limit exceeded"):
            sandboxed("{% for i in [1, 2] %}{{ i }}{% endfor %}", max_execution_time=-1.0)

    def test_restricted_preset(self):
        env = Environment(policy=SandboxPolicy.restricted())
        assert env.from_string("{{ [3, 1]|sort|join(',') }}").render() == "1,3"
        with pytest.raises(SecurityError):
            env.from_string("{{ [1]|shuffle }}").render()

    def test_policy_shared_between_renders(self):
        env = Environment(policy=SandboxPolicy(max_memory_items=10))
        template = env.from_string("{% for i in range(4) %}{% endfor %}")
        assert template.render() == ""
        assert template.render() == ""


class TestHelpers:
    """Вспомогательные проверки."""

    def test_internal_attributes(self):
        def gen():
            yield 1

        assert is_internal_attribute(object(), "_x")
        assert is_internal_attribute(str, "mro")
        assert is_internal_attribute(gen(), "gi_frame")
        assert not is_internal_attribute("x", "upper")

    def test_mutating_methods(self):
        assert modifies_known_mutable([], "append")
        assert modifies_known_mutable({}, "update")
        assert not modifies_known_mutable([], "index")
        assert not modifies_known_mutable("x", "replace")
