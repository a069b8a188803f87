"""
Типы токенов и поток токенов для лексера шаблонов.

Сырые токены (``Lexer.tokeniter``) сохраняют исходный текст дословно,
включая пробелы, комментарии и ограничители. Поток для парсера
(``TokenStream``) строится из «обёрнутых» токенов: пробелы и комментарии
отброшены, литералы преобразованы в значения Python.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Deque, Iterable, Iterator, Optional

from ..errors import TemplateSyntaxError


class TokenType(Enum):
    """Типы токенов."""
    # Текст вне конструкций
    DATA = "data"
    WHITESPACE = "whitespace"

    # Ограничители
    VARIABLE_BEGIN = "variable_begin"
    VARIABLE_END = "variable_end"
    BLOCK_BEGIN = "block_begin"
    BLOCK_END = "block_end"
    COMMENT_BEGIN = "comment_begin"
    COMMENT = "comment"
    COMMENT_END = "comment_end"
    RAW_BEGIN = "raw_begin"
    RAW_END = "raw_end"
    LINESTATEMENT_BEGIN = "linestatement_begin"
    LINESTATEMENT_END = "linestatement_end"
    LINECOMMENT_BEGIN = "linecomment_begin"
    LINECOMMENT = "linecomment"
    LINECOMMENT_END = "linecomment_end"

    # Содержимое выражений
    NAME = "name"
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    OPERATOR = "operator"

    EOF = "eof"


# Токены, которые не доходят до парсера
IGNORED_TYPES = frozenset({
    TokenType.WHITESPACE,
    TokenType.COMMENT_BEGIN,
    TokenType.COMMENT,
    TokenType.COMMENT_END,
    TokenType.LINECOMMENT_BEGIN,
    TokenType.LINECOMMENT,
    TokenType.LINECOMMENT_END,
    TokenType.RAW_BEGIN,
    TokenType.RAW_END,
})

# Человекочитаемые описания для сообщений об ошибках
_DESCRIPTIONS = {
    TokenType.VARIABLE_BEGIN: "begin of print statement",
    TokenType.VARIABLE_END: "end of print statement",
    TokenType.BLOCK_BEGIN: "begin of statement block",
    TokenType.BLOCK_END: "end of statement block",
    TokenType.COMMENT_BEGIN: "begin of comment",
    TokenType.COMMENT_END: "end of comment",
    TokenType.LINESTATEMENT_BEGIN: "begin of line statement",
    TokenType.LINESTATEMENT_END: "end of line statement",
    TokenType.DATA: "template data / text",
    TokenType.EOF: "end of template",
}


@dataclass(frozen=True)
class Token:
    """
    Токен с позиционной информацией.

    Attributes:
        type: Тип токена
        value: Значение (исходный текст для сырых токенов, значение Python для обёрнутых)
        position: Смещение от начала исходника
        line: Номер строки (с 1)
        column: Номер колонки (с 1)
    """
    type: TokenType
    value: Any
    position: int
    line: int
    column: int

    def test(self, type: TokenType, value: Any = None) -> bool:
        """Проверяет тип и, если задано, значение токена."""
        if self.type is not type:
            return False
        return value is None or self.value == value

    def test_name(self, *names: str) -> bool:
        """Проверяет, что токен является именем из перечисленных."""
        return self.type is TokenType.NAME and self.value in names

    def test_op(self, *ops: str) -> bool:
        """Проверяет, что токен является одним из операторов."""
        return self.type is TokenType.OPERATOR and self.value in ops

    def describe(self) -> str:
        """Описание токена для сообщений об ошибках."""
        if self.type in (TokenType.NAME, TokenType.OPERATOR):
            return repr(self.value) if self.type is TokenType.OPERATOR else str(self.value)
        return _DESCRIPTIONS.get(self.type, self.type.value)

    def __repr__(self) -> str:
        return f"Token({self.type.value}, {self.value!r}, {self.line}:{self.column})"


def describe_type(type: TokenType) -> str:
    return _DESCRIPTIONS.get(type, type.value)


class TokenStream:
    """
    Поток обёрнутых токенов с просмотром вперёд.

    ``current`` всегда указывает на текущий токен; после исчерпания
    источника текущим остаётся EOF.
    """

    def __init__(self, tokens: Iterable[Token], name: Optional[str] = None, filename: Optional[str] = None):
        self._iter: Iterator[Token] = iter(tokens)
        self._pushed: Deque[Token] = deque()
        self.name = name
        self.filename = filename
        self.closed = False
        self.current = Token(TokenType.EOF, "", 0, 1, 1)
        next(self)

    def __iter__(self) -> Iterator[Token]:
        while not self.eos:
            yield next(self)

    def __bool__(self) -> bool:
        return bool(self._pushed) or self.current.type is not TokenType.EOF

    @property
    def eos(self) -> bool:
        """Достигнут ли конец потока."""
        return not self

    def push(self, token: Token) -> None:
        """Возвращает токен в поток (будет выдан после текущего)."""
        self._pushed.append(token)

    def look(self) -> Token:
        """Возвращает следующий токен без продвижения."""
        return self.peek(1)

    def peek(self, n: int = 1) -> Token:
        """
        Возвращает токен на ``n`` позиций впереди текущего без продвижения.

        Args:
            n: Смещение (1 = следующий токен)
        """
        while len(self._pushed) < n:
            token = self._pull()
            if token is None:
                return self._eof_token()
            self._pushed.append(token)
        return self._pushed[n - 1]

    def skip(self, n: int = 1) -> None:
        for _ in range(n):
            next(self)

    def next_if(self, type: TokenType, value: Any = None) -> Optional[Token]:
        """Продвигается, если текущий токен совпадает; возвращает его."""
        if self.current.test(type, value):
            return next(self)
        return None

    def skip_if(self, type: TokenType, value: Any = None) -> bool:
        return self.next_if(type, value) is not None

    def __next__(self) -> Token:
        rv = self.current
        if self._pushed:
            self.current = self._pushed.popleft()
        elif self.current.type is not TokenType.EOF or not self.closed:
            token = self._pull()
            self.current = token if token is not None else self._eof_token()
        return rv

    def _pull(self) -> Optional[Token]:
        if self.closed:
            return None
        try:
            return next(self._iter)
        except StopIteration:
            self.closed = True
            return None

    def _eof_token(self) -> Token:
        cur = self.current
        return Token(TokenType.EOF, "", cur.position, cur.line, cur.column)

    def expect(self, type: TokenType, value: Any = None) -> Token:
        """
        Требует токен заданного типа (и значения) и продвигается.

        Raises:
            TemplateSyntaxError: Если текущий токен не совпадает
        """
        if not self.current.test(type, value):
            expected = repr(value) if value is not None else describe_type(type)
            if self.current.type is TokenType.EOF:
                raise TemplateSyntaxError(
                    f"Unexpected end of template, expected {expected}.",
                    self.current.line, self.current.column, self.name, self.filename,
                )
            raise TemplateSyntaxError(
                f"Expected token {expected}, got {self.current.describe()!r}",
                self.current.line, self.current.column, self.name, self.filename,
            )
        return next(self)


__all__ = ["TokenType", "Token", "TokenStream", "IGNORED_TYPES", "describe_type"]
