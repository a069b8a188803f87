"""
Тесты переводимых блоков и функций gettext.
"""

from __future__ import annotations

import pytest

from jinx import Environment, TemplateSyntaxError
from tests.infrastructure import render


class BracketTranslations:
    """Каталог, оборачивающий строки в скобки."""

    def gettext(self, message):
        return f"[{message}]"

    def ngettext(self, singular, plural, n):
        return f"[{singular if n == 1 else plural}]"

    def pgettext(self, context, message):
        return f"{context}:{message}"

    def npgettext(self, context, singular, plural, n):
        return f"{context}:{singular if n == 1 else plural}"


class TestTransBlock:
    """Инструкция trans."""

    def test_plain_text(self):
        assert render("{% trans %}Hello{% endtrans %}") == "Hello"

    def test_variables_from_context(self):
        assert render("{% trans %}Hello {{ user }}!{% endtrans %}", {"user": "Bob"}) == "Hello Bob!"

    def test_declared_variables(self):
        assert render("{% trans who=user|upper %}Hi {{ who }}{% endtrans %}", {"user": "ann"}) == "Hi ANN"

    def test_percent_without_variables(self):
        assert render("{% trans %}100%{% endtrans %}") == "100%"

    def test_percent_with_variables(self):
        assert render("{% trans n=5 %}{{ n }}%{% endtrans %}") == "5%"

    def test_pluralize(self):
        source = (
            "{% trans count=items|length %}{{ count }} item"
            "{% pluralize %}{{ count }} items{% endtrans %}"
        )
        assert render(source, {"items": [1]}) == "1 item"
        assert render(source, {"items": [1, 2, 3]}) == "3 items"

    def test_pluralize_explicit_name(self):
        source = "{% trans a=1, b=2 %}{{ a }}/{{ b }} one{% pluralize b %}{{ a }}/{{ b }} many{% endtrans %}"
        assert render(source) == "1/2 many"

    def test_trimmed(self):
        source = "{% trans trimmed %}\n  Hello\n    world\n{% endtrans %}"
        assert render(source) == "Hello world"

    def test_trimmed_by_default(self):
        source = "{% trans %}\n  a\n  b\n{% endtrans %}"
        assert render(source, i18n_trimmed=True) == "a b"
        assert render("{% trans notrimmed %} a\n b {% endtrans %}", i18n_trimmed=True) == " a\n b "

    def test_autoescape(self):
        rv = render("{% trans %}<b>{{ v }}</b>{% endtrans %}", {"v": "<i>"}, autoescape=True)
        assert rv == "<b>&lt;i&gt;</b>"

    def test_translations_applied(self):
        env = Environment(translations=BracketTranslations())
        assert env.from_string("{% trans %}hello {{ x }}{% endtrans %}").render(x="y") == "[hello y]"
        source = '{% trans context "menu" %}Open{% endtrans %}'
        assert env.from_string(source).render() == "menu:Open"


class TestTransErrors:
    """Синтаксические ошибки trans."""

    @pytest.mark.parametrize("source, message", [
        ("{% trans %}{% if x %}{% endif %}{% endtrans %}", "Control structures in translatable sections"),
        ("{% trans a=1 %}x{% pluralize b %}y{% endtrans %}", "Unknown variable 'b' for pluralization"),
        ("{% trans %}a{% pluralize %}b{% pluralize %}c{% endtrans %}", "only one pluralize"),
        ("{% trans %}{{ a.b }}{% endtrans %}", "Expected token"),
        ("{% trans %}never closed", "endtrans"),
    ])
    def test_invalid(self, source, message):
        with pytest.raises(TemplateSyntaxError, match=message):
            render(source)

    def test_defined_twice(self):
        with pytest.raises(TemplateSyntaxError, match="defined twice"):
            render("{% trans a=1, a=2 %}{{ a }}{% endtrans %}")


class TestGettextGlobals:
    """Глобальные функции _, gettext, ngettext."""

    def test_gettext(self):
        assert render("{{ _('Hello %(name)s', name='x') }}") == "Hello x"
        assert render("{{ gettext('Plain') }}") == "Plain"

    def test_ngettext_sets_num(self):
        assert render("{{ ngettext('%(num)d apple', '%(num)d apples', 3) }}") == "3 apples"
        assert render("{{ ngettext('%(num)d apple', '%(num)d apples', 1) }}") == "1 apple"

    def test_pgettext(self):
        env = Environment(translations=BracketTranslations())
        assert env.from_string("{{ pgettext('ctx', 'msg') }}").render() == "ctx:msg"
        assert env.from_string("{{ npgettext('ctx', 'a', 'b', 2) }}").render() == "ctx:b"

    def test_autoescape_keeps_translation_markup(self):
        assert render("{{ _('<b>%(x)s</b>', x='<i>') }}", autoescape=True) == "<b>&lt;i&gt;</b>"

    def test_install_gettext_callables(self):
        env = Environment()
        env.install_gettext_callables(lambda s: f"[{s}]", lambda s, p, n: f"[{s if n == 1 else p}]")
        assert env.from_string("{{ _('a') }}").render() == "[a]"
        assert env.from_string("{{ ngettext('x', 'xs', 2) }}").render() == "[xs]"
        # без pgettext используется gettext
        assert env.from_string("{{ pgettext('c', 'a') }}").render() == "[a]"
        env.uninstall_gettext_translations()
        assert env.from_string("{{ _('a') }}").render() == "a"

    def test_install_gettext_translations(self):
        env = Environment()
        env.install_gettext_translations(BracketTranslations())
        assert env.from_string("{% trans %}x{% endtrans %}").render() == "[x]"
