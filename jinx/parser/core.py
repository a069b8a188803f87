"""
Парсер шаблонов: превращает поток токенов в дерево ``nodes.Template``.

Класс ``Parser`` собирается из примесей (выражения, инструкции,
переводимые блоки); здесь - управление потоком разбора, стек
ожидаемых закрывающих тегов и построение сообщений об ошибках.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, NoReturn, Optional, Set, Tuple, Type, Union

from .. import nodes
from ..errors import TemplateSyntaxError
from ..lexer.lexer import LexerState
from ..lexer.tokens import Token, TokenType
from .expressions import ExpressionParserMixin, pos
from .i18n import TransParserMixin
from .statements import StatementParserMixin

logger = logging.getLogger(__name__)

# Ключевые слова инструкций → имя метода разбора
STATEMENT_HANDLERS: Dict[str, str] = {
    "for": "parse_for",
    "if": "parse_if",
    "block": "parse_block",
    "extends": "parse_extends",
    "print": "parse_print",
    "macro": "parse_macro",
    "include": "parse_include",
    "from": "parse_from",
    "import": "parse_import",
    "set": "parse_set",
    "with": "parse_with",
    "autoescape": "parse_autoescape",
    "call": "parse_call_block",
    "filter": "parse_filter_block",
    "do": "parse_do",
    "break": "parse_break",
    "continue": "parse_continue",
    "namespace": "parse_namespace",
    "export": "parse_export",
    "spaceless": "parse_spaceless",
    "async": "parse_async",
    "trans": "parse_trans",
    "blocktrans": "parse_trans",
}

Where = Union[Token, nodes.Node, int, None]


class Parser(TransParserMixin, StatementParserMixin, ExpressionParserMixin):
    """
    Разбирает исходник одного шаблона.

    Экземпляр одноразовый: ``parse()`` вызывается один раз.

    Args:
        environment: Окружение (лексер, расширения, флаги синтаксиса)
        source: Исходный текст шаблона
        name: Имя шаблона для сообщений об ошибках
        filename: Имя файла для сообщений об ошибках
        state: Начальное состояние лексера (для разбора отдельных выражений)
    """

    def __init__(
        self,
        environment: Any,
        source: str,
        name: Optional[str] = None,
        filename: Optional[str] = None,
        state: LexerState = LexerState.ROOT,
    ):
        self.environment = environment
        self.stream = environment.lexer.tokenize(source, name, filename, state)
        self.name = name
        self.filename = filename
        self.closed = False
        self.extensions: Dict[str, Callable[["Parser"], Any]] = {}
        for extension in getattr(environment, "iter_extensions", lambda: [])():
            for tag in extension.tags:
                self.extensions[tag] = extension.parse
        self._tag_stack: List[str] = []
        self._end_token_stack: List[Tuple[str, ...]] = []
        self._block_names: Set[str] = set()
        self._loop_depth = 0
        self._extends_seen = False

    # ---------------- Ошибки ----------------

    def fail(
        self,
        msg: str,
        where: Where = None,
        exc: Type[TemplateSyntaxError] = TemplateSyntaxError,
    ) -> NoReturn:
        """
        Бросает синтаксическую ошибку с позицией.

        Args:
            msg: Сообщение
            where: Токен, узел или номер строки; по умолчанию текущий токен
            exc: Класс исключения
        """
        if where is None:
            where = self.stream.current
        if isinstance(where, Token):
            lineno, column = where.line, where.column
        elif isinstance(where, nodes.Node):
            lineno, column = where.lineno, where.column
        else:
            lineno, column = where, None
        raise exc(msg, lineno, column, self.name, self.filename)

    def _fail_ut_eof(self, name: Optional[str], end_token_stack: List[Tuple[str, ...]], where: Where) -> NoReturn:
        expected: Set[str] = set()
        for exprs in end_token_stack:
            expected.update(exprs)
        currently_looking: Optional[str] = None
        if end_token_stack:
            currently_looking = " or ".join(repr(expr) for expr in end_token_stack[-1])

        if name is None:
            message = ["Unexpected end of template."]
        else:
            message = [f"Encountered unknown tag {name!r}."]

        if currently_looking:
            if name is not None and name in expected:
                message.append(
                    "You probably made a nesting mistake. The engine is expecting this tag,"
                    f" but currently looking for {currently_looking}."
                )
            else:
                message.append(f"The innermost block that needs to be closed is {self._tag_stack[-1]!r}.")
            message.append(f"Expected end of statement: {currently_looking}.")
        elif name is not None and name.startswith("end"):
            message.append(f"There is no open block that {name!r} could close.")

        self.fail(" ".join(message), where)

    def fail_unknown_tag(self, name: str, where: Where = None) -> NoReturn:
        """Неизвестный тег: сообщение учитывает стек открытых блоков."""
        self._fail_ut_eof(name, self._end_token_stack, where)

    def fail_eof(self, end_tokens: Optional[Tuple[str, ...]] = None, where: Where = None) -> NoReturn:
        """Неожиданный конец шаблона внутри незакрытого блока."""
        stack = list(self._end_token_stack)
        if end_tokens is not None:
            stack.append(end_tokens)
        self._fail_ut_eof(None, stack, where)

    # ---------------- Управление разбором ----------------

    def is_tuple_end(self, extra_end_rules: Optional[Tuple[str, ...]] = None) -> bool:
        """Стоит ли поток на токене, завершающем кортеж."""
        current = self.stream.current
        if current.type in (TokenType.VARIABLE_END, TokenType.BLOCK_END, TokenType.EOF):
            return True
        if current.test_op(")"):
            return True
        if extra_end_rules is not None:
            return current.test_name(*extra_end_rules)
        return False

    def parse_statement(self) -> Union[nodes.Node, List[nodes.Node]]:
        """Разбирает одну инструкцию ``{% ... %}`` (текущий токен - её имя)."""
        token = self.stream.current
        if token.type is not TokenType.NAME:
            self.fail("Tag name expected", token)
        self._tag_stack.append(token.value)
        pop_tag = True
        try:
            handler = STATEMENT_HANDLERS.get(token.value)
            if handler is not None:
                return getattr(self, handler)()  # type: ignore[no-any-return]
            extension = self.extensions.get(token.value)
            if extension is not None:
                return extension(self)  # type: ignore[no-any-return]
            # неизвестный тег: из стека он сейчас будет снят, а для
            # сообщения об ошибке стек нужен без него
            self._tag_stack.pop()
            pop_tag = False
            self.fail_unknown_tag(token.value, token)
        finally:
            if pop_tag:
                self._tag_stack.pop()

    def parse_statements(self, end_tokens: Tuple[str, ...], drop_needle: bool = False) -> List[nodes.Node]:
        """
        Разбирает инструкции до одного из закрывающих тегов.

        Args:
            end_tokens: Имена тегов, завершающих разбор
            drop_needle: Пропустить найденный закрывающий тег

        Returns:
            Список узлов тела
        """
        # двоеточие после имени допускается для строчных инструкций
        self.stream.skip_if(TokenType.OPERATOR, ":")
        self.stream.expect(TokenType.BLOCK_END)
        result = self.subparse(end_tokens)

        if self.stream.current.type is TokenType.EOF:
            self.fail_eof(end_tokens)

        if drop_needle:
            next(self.stream)
        return result

    def subparse(self, end_tokens: Optional[Tuple[str, ...]] = None) -> List[nodes.Node]:
        """
        Основной цикл: собирает текст и ``{{ }}`` в узлы ``Output``,
        инструкции разбирает через ``parse_statement``.
        """
        body: List[nodes.Node] = []
        data_buffer: List[nodes.Expr] = []

        def flush_data() -> None:
            if data_buffer:
                first = data_buffer[0]
                body.append(nodes.Output(data_buffer[:], lineno=first.lineno, column=first.column))
                del data_buffer[:]

        if end_tokens is not None:
            self._end_token_stack.append(end_tokens)
        try:
            while self.stream:
                token = self.stream.current
                if token.type is TokenType.DATA:
                    if token.value:
                        data_buffer.append(nodes.TemplateData(token.value, **pos(token)))
                    next(self.stream)
                elif token.type is TokenType.VARIABLE_BEGIN:
                    next(self.stream)
                    data_buffer.append(self.parse_tuple(with_condexpr=True))
                    self.stream.expect(TokenType.VARIABLE_END)
                elif token.type is TokenType.BLOCK_BEGIN:
                    flush_data()
                    next(self.stream)
                    if end_tokens is not None and self.stream.current.test_name(*end_tokens):
                        return body
                    rv = self.parse_statement()
                    if isinstance(rv, list):
                        body.extend(rv)
                    else:
                        body.append(rv)
                    self.stream.expect(TokenType.BLOCK_END)
                else:
                    self.fail(f"Unexpected {token.describe()!r}", token)
            flush_data()
        finally:
            if end_tokens is not None:
                self._end_token_stack.pop()
        return body

    def parse(self) -> nodes.Template:
        """Разбирает весь шаблон."""
        body = self.subparse()
        self.closed = True
        logger.debug(f"Parsed template {self.name or '<string>'}: {len(body)} top-level nodes")
        return nodes.Template(body, lineno=1, column=1)


__all__ = ["Parser", "STATEMENT_HANDLERS"]
