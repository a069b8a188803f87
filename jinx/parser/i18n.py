"""
Разбор переводимых блоков ``{% trans %}`` / ``{% blocktrans %}``.

Заголовок: ``[context "ctx"] [name[=expr] [as alias], ...] [trimmed|notrimmed]``.
Первая объявленная переменная задаёт число для множественной формы.
Тело может содержать только текст и ``{{ name }}``; ``{% pluralize [name] %}``
отделяет множественную форму.
"""

from __future__ import annotations

import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from .. import nodes
from ..errors import TemplateAssertionError
from ..lexer.tokens import TokenStream, TokenType
from .expressions import pos

_WS_RE = re.compile(r"\s*\n\s*")


def trim_whitespace(text: str) -> str:
    """Схлопывает пробелы вокруг переводов строк в один пробел."""
    return _WS_RE.sub(" ", text.strip())


class TransParserMixin:
    """Разбор инструкции ``trans``."""

    stream: TokenStream
    environment: Any
    fail: Callable[..., Any]
    fail_eof: Callable[..., Any]
    parse_expression: Callable[..., nodes.Expr]

    def parse_trans(self) -> nodes.Trans:
        token = next(self.stream)
        end_tag = "end" + token.value
        context: Optional[str] = None
        variables: Dict[str, nodes.Expr] = {}
        count_name: Optional[str] = None
        trimmed: Optional[bool] = None

        if self.stream.current.test_name("context") and self.stream.look().type is TokenType.STRING:
            next(self.stream)
            context = next(self.stream).value

        while self.stream.current.type is not TokenType.BLOCK_END:
            if variables:
                self.stream.expect(TokenType.OPERATOR, ",")
            # висячая запятая: {% trans a, %}
            if self.stream.current.type is TokenType.BLOCK_END:
                break
            name_token = self.stream.expect(TokenType.NAME)
            name = name_token.value
            if trimmed is None and name in ("trimmed", "notrimmed"):
                trimmed = name == "trimmed"
                continue
            if name in variables:
                self.fail(
                    f"Translatable variable {name!r} defined twice",
                    name_token,
                    exc=TemplateAssertionError,
                )
            value: nodes.Expr
            if self.stream.skip_if(TokenType.OPERATOR, "="):
                value = self.parse_expression()
            else:
                value = nodes.Name(name, "load", **pos(name_token))
            variables[name] = value
            if count_name is None:
                count_name = name
            if self.stream.skip_if(TokenType.NAME, "as"):
                alias_token = self.stream.expect(TokenType.NAME)
                if alias_token.value in variables:
                    self.fail(
                        f"Translatable variable {alias_token.value!r} defined twice",
                        alias_token,
                        exc=TemplateAssertionError,
                    )
                variables[alias_token.value] = value
                if count_name == name:
                    count_name = alias_token.value

        self.stream.expect(TokenType.BLOCK_END)

        referenced, singular = self._parse_trans_body(end_tag, allow_pluralize=True)
        plural: Optional[str] = None
        have_plural = False
        if self.stream.current.test_name("pluralize"):
            have_plural = True
            next(self.stream)
            if self.stream.current.type is not TokenType.BLOCK_END:
                count_token = self.stream.expect(TokenType.NAME)
                if count_token.value not in variables:
                    self.fail(f"Unknown variable {count_token.value!r} for pluralization", count_token)
                count_name = count_token.value
            self.stream.expect(TokenType.BLOCK_END)
            plural_names, plural = self._parse_trans_body(end_tag, allow_pluralize=False)
            referenced.extend(plural_names)
        next(self.stream)  # endtrans

        # имена из тела, не объявленные в заголовке, берутся из контекста
        for name in referenced:
            if name not in variables:
                variables[name] = nodes.Name(name, "load", **pos(token))

        if have_plural:
            if count_name is None:
                self.fail("'pluralize' requires a count variable", token)
        else:
            count_name = None

        if trimmed is None:
            trimmed = bool(getattr(self.environment, "i18n_trimmed", False))
        if trimmed:
            singular = trim_whitespace(singular)
            if plural is not None:
                plural = trim_whitespace(plural)

        # без подстановок строка форматироваться не будет
        if not variables:
            singular = singular.replace("%%", "%")
            if plural is not None:
                plural = plural.replace("%%", "%")

        keywords = [nodes.Keyword(k, v, lineno=v.lineno, column=v.column) for k, v in variables.items()]
        return nodes.Trans(singular, plural, keywords, count_name, context, trimmed, **pos(token))

    def _parse_trans_body(self, end_tag: str, allow_pluralize: bool) -> Tuple[List[str], str]:
        referenced: List[str] = []
        buf: List[str] = []
        while True:
            current = self.stream.current
            if current.type is TokenType.DATA:
                buf.append(current.value.replace("%", "%%"))
                next(self.stream)
            elif current.type is TokenType.VARIABLE_BEGIN:
                next(self.stream)
                name = self.stream.expect(TokenType.NAME).value
                referenced.append(name)
                buf.append(f"%({name})s")
                self.stream.expect(TokenType.VARIABLE_END)
            elif current.type is TokenType.BLOCK_BEGIN:
                next(self.stream)
                tag = self.stream.current
                if tag.test_name(end_tag):
                    break
                if tag.test_name("pluralize"):
                    if allow_pluralize:
                        break
                    self.fail("A translatable section can have only one pluralize section", tag)
                self.fail(
                    f"Control structures in translatable sections are not allowed; saw {tag.describe()!r}",
                    tag,
                )
            elif current.type is TokenType.EOF:
                self.fail_eof((end_tag,))
            else:
                self.fail(f"Unexpected {current.describe()!r} in translatable section", current)
        return referenced, "".join(buf)


__all__ = ["TransParserMixin", "trim_whitespace"]
