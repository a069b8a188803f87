"""
Тесты расширений.
"""

from __future__ import annotations

import logging

import pytest

from jinx import Environment, Extension, TemplateSyntaxError, nodes
from jinx.ext import DebugExtension, import_string


class ShoutExtension(Extension):
    """``{% shout expr %}`` выводит выражение в верхнем регистре."""

    tags = frozenset({"shout"})
    filters = {"exclaim": lambda v: f"{v}!"}

    def parse(self, parser):
        token = next(parser.stream)
        pos = {"lineno": token.line, "column": token.column}
        expr = parser.parse_expression()
        upper = nodes.Filter(expr, "upper", **pos)
        return nodes.Output([upper], **pos)


class LoudShoutExtension(ShoutExtension):
    priority = 10

    def parse(self, parser):
        next(parser.stream)
        return nodes.Output([nodes.TemplateData("LOUD")], lineno=1, column=1)


class TestExtensions:
    """Регистрация и теги расширений."""

    def test_custom_tag(self):
        env = Environment(extensions=[ShoutExtension])
        assert env.from_string("{% shout name %}").render(name="hi") == "HI"

    def test_registers_filters(self):
        env = Environment(extensions=[ShoutExtension])
        assert env.from_string("{{ 'x'|exclaim }}").render() == "x!"

    def test_unknown_tag_without_extension(self):
        with pytest.raises(TemplateSyntaxError, match="shout"):
            Environment().from_string("{% shout name %}")

    def test_load_by_import_path(self):
        env = Environment(extensions=["jinx.ext.debug"])
        assert "jinx.ext.DebugExtension" in env.extensions
        rv = env.from_string("{% debug %}").render(answer=42)
        assert "'answer': 42" in rv
        assert "'filters'" in rv

    def test_import_string(self):
        assert import_string("jinx.ext:DebugExtension") is DebugExtension
        assert import_string("jinx.ext.DebugExtension") is DebugExtension
        with pytest.raises(ImportError):
            import_string("jinx.no_such_module.Thing")

    def test_tag_override_warning(self, caplog):
        env = Environment(extensions=[ShoutExtension])
        with caplog.at_level(logging.WARNING, logger="jinx"):
            env.add_extension(LoudShoutExtension)
        assert "overrides tag 'shout'" in caplog.text
        assert [type(e) for e in env.iter_extensions()] == [LoudShoutExtension, ShoutExtension]
