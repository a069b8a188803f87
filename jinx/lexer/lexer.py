"""
Лексический анализатор шаблонов.

Реализован как явный конечный автомат без регулярных выражений:
состояния ROOT, VARIABLE, BLOCK, COMMENT, RAW, LINE_STATEMENT, LINE_COMMENT
плюс стек балансировки скобок внутри выражений. Позиция (строка/колонка)
отслеживается при каждом продвижении, поэтому сообщения об ошибках точны.

Два уровня вывода:
  * ``tokeniter`` - сырые токены, конкатенация значений которых
    восстанавливает исходник (за вычетом отброшенного финального перевода строки);
  * ``tokenize`` - поток для парсера: без пробелов и комментариев,
    с преобразованными литералами и нормализованными переводами строк.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, List, Optional, Tuple

from ..errors import LexerError
from .tokens import IGNORED_TYPES, Token, TokenStream, TokenType

logger = logging.getLogger(__name__)


class LexerState(Enum):
    """Состояния автомата лексера."""
    ROOT = "root"
    VARIABLE = "variable"
    BLOCK = "block"
    COMMENT = "comment"
    RAW = "raw"
    LINE_STATEMENT = "line_statement"
    LINE_COMMENT = "line_comment"


# Операторы в порядке убывания длины (побеждает самое длинное совпадение)
OPERATORS: Tuple[str, ...] = (
    "//", "**", "==", "!=", ">=", "<=",
    "+", "-", "*", "/", "%", "~", "[", "]", "(", ")",
    ">", "<", "=", ".", ":", "|", ",", ";", "{", "}",
)

_CLOSERS = {"(": ")", "[": "]", "{": "}"}

_DIGITS = "0123456789"
_PREFIXED_DIGITS = {
    "b": "01_",
    "o": "01234567_",
    "x": "0123456789abcdefABCDEF_",
}

_SIMPLE_ESCAPES = {
    "n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "v": "\v",
    "a": "\a", "0": "\0", "\\": "\\", "'": "'", '"': '"',
}
_HEX_ESCAPES = {"x": 2, "u": 4, "U": 8}

NEWLINE_SEQUENCES = ("\n", "\r\n", "\r")


@dataclass(frozen=True)
class LexerConfig:
    """
    Настройки синтаксиса, которые лексер обязан соблюдать.

    Raises:
        ValueError: При пустых или совпадающих открывающих ограничителях
    """
    block_start_string: str = "{%"
    block_end_string: str = "%}"
    variable_start_string: str = "{{"
    variable_end_string: str = "}}"
    comment_start_string: str = "{#"
    comment_end_string: str = "#}"
    line_statement_prefix: Optional[str] = None
    line_comment_prefix: Optional[str] = None
    trim_blocks: bool = False
    lstrip_blocks: bool = False
    newline_sequence: str = "\n"
    keep_trailing_newline: bool = False

    def __post_init__(self) -> None:
        delimiters = {
            "block_start_string": self.block_start_string,
            "block_end_string": self.block_end_string,
            "variable_start_string": self.variable_start_string,
            "variable_end_string": self.variable_end_string,
            "comment_start_string": self.comment_start_string,
            "comment_end_string": self.comment_end_string,
        }
        for key, value in delimiters.items():
            if not value:
                raise ValueError(f"{key} must not be empty")
        starts = [self.block_start_string, self.variable_start_string, self.comment_start_string]
        if len(set(starts)) != len(starts):
            raise ValueError("block, variable and comment start strings must be different")
        if self.newline_sequence not in NEWLINE_SEQUENCES:
            raise ValueError(f"newline_sequence must be one of {NEWLINE_SEQUENCES!r}")
        for key in ("line_statement_prefix", "line_comment_prefix"):
            if getattr(self, key) == "":
                raise ValueError(f"{key} must be None or a non-empty string")


@dataclass(frozen=True)
class _Marker:
    """Найденное начало конструкции в корневом состоянии."""
    kind: LexerState
    start: int      # где начинается токен (для строчных префиксов - начало отступа)
    at: int         # где начинается сам ограничитель/префикс
    delimiter: str


def normalize_newlines(text: str, sequence: str) -> str:
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    if sequence != "\n":
        text = text.replace("\n", sequence)
    return text


def parse_number(text: str, is_float: bool) -> object:
    """
    Преобразует числовой литерал в значение Python.

    Разделители ``_`` допускаются только между цифрами.

    Raises:
        ValueError: Если литерал некорректен
    """
    if "__" in text or text.endswith("_"):
        raise ValueError(text)
    for bad in ("_.", "._", "_e", "_E", "e_", "E_", "+_", "-_"):
        if bad in text:
            raise ValueError(text)
    if is_float:
        return float(text.replace("_", ""))
    if len(text) > 1 and text[0] == "0" and text[1] in "bBoOxX":
        return int(text, 0)
    return int(text.replace("_", ""), 10)


class Lexer:
    """
    Лексер шаблонов для заданной конфигурации синтаксиса.

    Экземпляр не хранит состояния между вызовами и может использоваться
    из разных потоков одновременно.
    """

    def __init__(self, config: Optional[LexerConfig] = None):
        self.config = config or LexerConfig()

    def tokeniter(
        self,
        source: str,
        name: Optional[str] = None,
        filename: Optional[str] = None,
        state: LexerState = LexerState.ROOT,
    ) -> Iterator[Token]:
        """
        Порождает сырые токены исходника.

        Args:
            source: Исходный текст шаблона
            name: Имя шаблона (для сообщений об ошибках)
            filename: Имя файла (для сообщений об ошибках)
            state: Начальное состояние (ROOT, VARIABLE или BLOCK)

        Raises:
            LexerError: При ошибке на уровне символов
        """
        source = self._prepare_source(source)
        scanner = _Scanner(self.config, source, name, filename)
        count = 0
        for token in scanner.run(state):
            count += 1
            yield token
        logger.debug(f"Lexed template {name or '<string>'} into {count} raw tokens")

    def tokenize(
        self,
        source: str,
        name: Optional[str] = None,
        filename: Optional[str] = None,
        state: LexerState = LexerState.ROOT,
    ) -> TokenStream:
        """
        Токенизирует исходник в поток для парсера.

        Returns:
            Поток обёрнутых токенов
        """
        return TokenStream(self.wrap(self.tokeniter(source, name, filename, state), name, filename), name, filename)

    def wrap(self, tokens: Iterable[Token], name: Optional[str] = None, filename: Optional[str] = None) -> Iterator[Token]:
        """
        Превращает сырые токены в токены для парсера.

        Отбрасывает пробелы и комментарии, приводит строчные инструкции
        к обычным блокам, вычисляет значения литералов.
        """
        newline = self.config.newline_sequence
        for token in tokens:
            tp = token.type
            if tp in IGNORED_TYPES:
                continue
            value: object = token.value
            if tp is TokenType.LINESTATEMENT_BEGIN:
                tp = TokenType.BLOCK_BEGIN
            elif tp is TokenType.LINESTATEMENT_END:
                tp = TokenType.BLOCK_END
            elif tp is TokenType.DATA:
                value = normalize_newlines(token.value, newline)
            elif tp is TokenType.STRING:
                value = normalize_newlines(_unescape(token, name, filename), newline)
            elif tp in (TokenType.INTEGER, TokenType.FLOAT):
                value = parse_number(token.value, tp is TokenType.FLOAT)
            yield Token(tp, value, token.position, token.line, token.column)

    def _prepare_source(self, source: str) -> str:
        # Один завершающий перевод строки отбрасывается, если не запрошено иное
        if not self.config.keep_trailing_newline:
            if source.endswith("\r\n"):
                return source[:-2]
            if source.endswith(("\n", "\r")):
                return source[:-1]
        return source


def _unescape(token: Token, name: Optional[str], filename: Optional[str]) -> str:
    body = token.value[1:-1]
    out: List[str] = []
    i = 0
    n = len(body)
    while i < n:
        ch = body[i]
        if ch != "\\" or i + 1 >= n:
            out.append(ch)
            i += 1
            continue
        nxt = body[i + 1]
        if nxt in _SIMPLE_ESCAPES:
            out.append(_SIMPLE_ESCAPES[nxt])
            i += 2
            continue
        width = _HEX_ESCAPES.get(nxt)
        if width is not None:
            digits = body[i + 2:i + 2 + width]
            try:
                if len(digits) != width:
                    raise ValueError(digits)
                out.append(chr(int(digits, 16)))
            except ValueError:
                raise LexerError(
                    f"Invalid escape sequence '\\{nxt}{digits}' in string literal",
                    token.line, token.column, name, filename,
                ) from None
            i += 2 + width
            continue
        # Неизвестная последовательность сохраняется как есть
        out.append("\\" + nxt)
        i += 2
    return "".join(out)


class _Scanner:
    """
    Один проход лексера по исходнику.

    Держит текущую позицию, стек состояний и кэш ближайших вхождений
    ограничителей, чтобы не сканировать исходник заново на каждом шаге.
    """

    def __init__(self, config: LexerConfig, source: str, name: Optional[str], filename: Optional[str]):
        self.config = config
        self.source = source
        self.length = len(source)
        self.name = name
        self.filename = filename

        self.pos = 0
        self.line = 1
        self.column = 1

        self.state_stack: List[LexerState] = []
        self._pending: List[Token] = []
        self._last_significant: Optional[Token] = None

        self._delimiters: List[Tuple[LexerState, str]] = [
            (LexerState.BLOCK, config.block_start_string),
            (LexerState.VARIABLE, config.variable_start_string),
            (LexerState.COMMENT, config.comment_start_string),
        ]
        self._line_prefixes: List[Tuple[LexerState, str]] = []
        if config.line_statement_prefix:
            self._line_prefixes.append((LexerState.LINE_STATEMENT, config.line_statement_prefix))
        if config.line_comment_prefix:
            self._line_prefixes.append((LexerState.LINE_COMMENT, config.line_comment_prefix))
        self._found: dict = {}

    # ---------------- Общие утилиты ----------------

    def _error(self, message: str, line: Optional[int] = None, column: Optional[int] = None) -> LexerError:
        return LexerError(
            message,
            self.line if line is None else line,
            self.column if column is None else column,
            self.name,
            self.filename,
        )

    def _emit(self, type: TokenType, text: str) -> Token:
        """Создаёт токен в текущей позиции и продвигается на длину текста."""
        token = Token(type, text, self.pos, self.line, self.column)
        self._pending.append(token)
        self._advance(text)
        if type is not TokenType.WHITESPACE:
            self._last_significant = token
        return token

    def _advance(self, text: str) -> None:
        i = 0
        n = len(text)
        while i < n:
            ch = text[i]
            if ch == "\n" or ch == "\r":
                if ch == "\r" and i + 1 < n and text[i + 1] == "\n":
                    i += 1
                self.line += 1
                self.column = 1
            else:
                self.column += 1
            i += 1
        self.pos += n

    def _drain(self) -> List[Token]:
        out, self._pending = self._pending, []
        return out

    def _line_starting(self, pos: int) -> bool:
        return pos == 0 or self.source[pos - 1] in "\r\n"

    # ---------------- Главный цикл ----------------

    def run(self, state: LexerState) -> Iterator[Token]:
        if state is LexerState.ROOT:
            yield from self._lex_root()
        elif state in (LexerState.VARIABLE, LexerState.BLOCK):
            # Выражение без ограничителей: конец ввода закрывает его неявно
            self._lex_expression(state, implicit_close=True, begin=(self.line, self.column))
            yield from self._drain()
        else:
            raise ValueError(f"Cannot start lexing in state {state.value}")

    def _lex_root(self) -> Iterator[Token]:
        src = self.source
        while self.pos < self.length:
            marker = self._find_next_marker()
            if marker is None:
                self._emit(TokenType.DATA, src[self.pos:])
                yield from self._drain()
                break

            self._emit_data_before(marker)
            self.state_stack.append(marker.kind)

            if marker.kind is LexerState.BLOCK:
                raw = self._match_raw_open(marker.at)
                if raw is not None:
                    self.state_stack[-1] = LexerState.RAW
                    self._lex_raw(raw[0], raw[1])
                else:
                    begin = (self.line, self.column)
                    self._emit(TokenType.BLOCK_BEGIN, self._begin_text(marker))
                    self._lex_expression(LexerState.BLOCK, implicit_close=False, begin=begin)
            elif marker.kind is LexerState.VARIABLE:
                begin = (self.line, self.column)
                self._emit(TokenType.VARIABLE_BEGIN, self._begin_text(marker))
                self._lex_expression(LexerState.VARIABLE, implicit_close=False, begin=begin)
            elif marker.kind is LexerState.COMMENT:
                self._lex_comment(marker)
            elif marker.kind is LexerState.LINE_STATEMENT:
                self._emit(TokenType.LINESTATEMENT_BEGIN, marker.delimiter)
                self._lex_expression(LexerState.LINE_STATEMENT, implicit_close=True, begin=(self.line, self.column))
            else:
                self._lex_line_comment(marker)

            self.state_stack.pop()
            yield from self._drain()

    # ---------------- Поиск конструкций ----------------

    def _find_next_marker(self) -> Optional[_Marker]:
        best: Optional[_Marker] = None

        def better(candidate: _Marker) -> bool:
            if best is None:
                return True
            if candidate.start != best.start:
                return candidate.start < best.start
            return len(candidate.delimiter) > len(best.delimiter)

        for kind, delimiter in self._delimiters:
            at = self._find_cached(kind, delimiter)
            if at >= 0:
                candidate = _Marker(kind, at, at, delimiter)
                if better(candidate):
                    best = candidate

        for kind, prefix in self._line_prefixes:
            found = self._find_line_prefix_cached(kind, prefix)
            if found is not None:
                candidate = _Marker(kind, found[0], found[1], prefix)
                if better(candidate):
                    best = candidate
        return best

    def _find_cached(self, kind: LexerState, delimiter: str) -> int:
        cached = self._found.get(kind)
        if cached is not None and (cached < 0 or cached >= self.pos):
            return cached
        at = self.source.find(delimiter, self.pos)
        self._found[kind] = at
        return at

    def _find_line_prefix_cached(self, kind: LexerState, prefix: str) -> Optional[Tuple[int, int]]:
        cached = self._found.get(kind, ())
        if cached is None or (cached and cached[0] >= self.pos):
            return cached
        found = self._find_line_prefix(prefix)
        self._found[kind] = found
        return found

    def _find_line_prefix(self, prefix: str) -> Optional[Tuple[int, int]]:
        """
        Ищет префикс строчной конструкции, перед которым на строке
        только пробелы/табы и нет других конструкций.

        Returns:
            Пара (начало отступа, позиция префикса) или None
        """
        src = self.source
        search_from = self.pos
        while True:
            at = src.find(prefix, search_from)
            if at < 0:
                return None
            line_start = at
            while line_start > 0 and src[line_start - 1] in " \t":
                line_start -= 1
            if line_start >= self.pos and self._line_starting(line_start):
                return line_start, at
            search_from = at + 1

    def _begin_text(self, marker: _Marker) -> str:
        end = marker.at + len(marker.delimiter)
        if self.source.startswith(("-", "+"), end):
            end += 1
        return self.source[marker.at:end]

    def _sign_after(self, marker: _Marker) -> Optional[str]:
        end = marker.at + len(marker.delimiter)
        if self.source.startswith(("-", "+"), end):
            return self.source[end]
        return None

    def _emit_data_before(self, marker: _Marker) -> None:
        """
        Выдаёт текст перед конструкцией, применяя управление пробелами
        с левой стороны ограничителя.
        """
        text = self.source[self.pos:marker.start]
        stripped_ws = ""
        if marker.kind in (LexerState.BLOCK, LexerState.VARIABLE, LexerState.COMMENT):
            sign = self._sign_after(marker)
            if sign == "-":
                kept = text.rstrip()
                stripped_ws = text[len(kept):]
                text = kept
            elif sign is None and marker.kind is not LexerState.VARIABLE and self.config.lstrip_blocks:
                l_pos = max(text.rfind("\n"), text.rfind("\r")) + 1
                if l_pos > 0 or self._line_starting(self.pos):
                    tail = text[l_pos:]
                    if tail and not tail.strip(" \t"):
                        stripped_ws = tail
                        text = text[:l_pos]
        if text:
            self._emit(TokenType.DATA, text)
        if stripped_ws:
            self._emit(TokenType.WHITESPACE, stripped_ws)
        if marker.start < marker.at:
            # отступ перед строчным префиксом
            self._emit(TokenType.WHITESPACE, self.source[marker.start:marker.at])

    def _after_tag(self, sign: Optional[str], trim: bool) -> None:
        """Управление пробелами справа от закрывающего ограничителя."""
        src = self.source
        if sign == "-":
            end = self.pos
            while end < self.length and src[end].isspace():
                end += 1
            if end > self.pos:
                self._emit(TokenType.WHITESPACE, src[self.pos:end])
        elif sign != "+" and trim and self.config.trim_blocks:
            if src.startswith("\r\n", self.pos):
                self._emit(TokenType.WHITESPACE, "\r\n")
            elif src.startswith(("\n", "\r"), self.pos):
                self._emit(TokenType.WHITESPACE, src[self.pos])

    # ---------------- Комментарии и raw ----------------

    def _lex_comment(self, marker: _Marker) -> None:
        begin_line, begin_column = self.line, self.column
        self._emit(TokenType.COMMENT_BEGIN, self._begin_text(marker))
        end_string = self.config.comment_end_string
        end = self.source.find(end_string, self.pos)
        if end < 0:
            raise self._error("Missing end of comment tag", begin_line, begin_column)
        body = self.source[self.pos:end]
        sign = None
        if body.endswith(("-", "+")):
            sign = body[-1]
            body = body[:-1]
        if body:
            self._emit(TokenType.COMMENT, body)
        self._emit(TokenType.COMMENT_END, (sign or "") + end_string)
        self._after_tag(sign, trim=True)

    def _skip_spaces(self, pos: int) -> int:
        while pos < self.length and self.source[pos] in " \t\r\n":
            pos += 1
        return pos

    def _match_word(self, pos: int, words: Tuple[str, ...]) -> Optional[str]:
        for word in words:
            if self.source.startswith(word, pos):
                after = pos + len(word)
                if after >= self.length or not (self.source[after].isalnum() or self.source[after] == "_"):
                    return word
        return None

    def _match_tag(self, at: int, words: Tuple[str, ...]) -> Optional[Tuple[int, str, Optional[str]]]:
        """
        Сопоставляет тег вида ``{%[-+] word [-+]%}``.

        Returns:
            (позиция после тега, слово, знак перед закрывающим ограничителем) или None
        """
        cfg = self.config
        pos = at + len(cfg.block_start_string)
        if self.source.startswith(("-", "+"), pos):
            pos += 1
        pos = self._skip_spaces(pos)
        word = self._match_word(pos, words)
        if word is None:
            return None
        pos = self._skip_spaces(pos + len(word))
        sign = None
        if self.source.startswith(("-", "+"), pos):
            sign = self.source[pos]
            pos += 1
        if not self.source.startswith(cfg.block_end_string, pos):
            return None
        return pos + len(cfg.block_end_string), word, sign

    def _match_raw_open(self, at: int) -> Optional[Tuple[int, str]]:
        matched = self._match_tag(at, ("raw", "verbatim"))
        if matched is None:
            return None
        return matched[0], matched[1]

    def _lex_raw(self, open_end: int, keyword: str) -> None:
        """
        Содержимое raw/verbatim выдаётся одним текстовым токеном дословно,
        знаки управления пробелами влияют только на текст снаружи тегов.
        """
        begin_line, begin_column = self.line, self.column
        self._emit(TokenType.RAW_BEGIN, self.source[self.pos:open_end])
        closing = "end" + keyword
        search_from = self.pos
        while True:
            at = self.source.find(self.config.block_start_string, search_from)
            if at < 0:
                raise self._error(f"Missing end of raw directive ('{closing}')", begin_line, begin_column)
            matched = self._match_tag(at, (closing,))
            if matched is not None:
                break
            search_from = at + 1
        close_end, _word, sign = matched
        if at > self.pos:
            self._emit(TokenType.DATA, self.source[self.pos:at])
        self._emit(TokenType.RAW_END, self.source[at:close_end])
        self._after_tag(sign, trim=True)

    def _lex_line_comment(self, marker: _Marker) -> None:
        self._emit(TokenType.LINECOMMENT_BEGIN, marker.delimiter)
        end = self.pos
        while end < self.length and self.source[end] not in "\r\n":
            end += 1
        if end > self.pos:
            self._emit(TokenType.LINECOMMENT, self.source[self.pos:end])
        # перевод строки остаётся в тексте
        self._emit(TokenType.LINECOMMENT_END, "")

    # ---------------- Выражения ----------------

    def _lex_expression(self, state: LexerState, implicit_close: bool, begin: Tuple[int, int]) -> None:
        """
        Сканирует содержимое ``{{ }}``, ``{% %}`` или строчной инструкции
        до закрывающего ограничителя.
        """
        cfg = self.config
        src = self.source
        balance: List[Tuple[str, int, int]] = []

        if state is LexerState.VARIABLE:
            end_string = cfg.variable_end_string
            end_type = TokenType.VARIABLE_END
            signs: Tuple[str, ...] = ("-", "")
        elif state is LexerState.BLOCK:
            end_string = cfg.block_end_string
            end_type = TokenType.BLOCK_END
            signs = ("-", "+", "")
        else:
            end_string = ""
            end_type = TokenType.LINESTATEMENT_END
            signs = ()

        self._last_significant = None
        while True:
            if self.pos >= self.length:
                if balance:
                    opener, line, column = balance[-1]
                    raise self._error(f"Unclosed '{opener}' (missing '{_CLOSERS[opener]}')", line, column)
                if state is LexerState.LINE_STATEMENT:
                    self._emit(end_type, "")
                    return
                if implicit_close:
                    return
                if state is LexerState.VARIABLE:
                    message = f"Missing end of print statement ('{end_string}')"
                else:
                    message = f"Missing end of block statement ('{end_string}')"
                raise self._error(message, begin[0], begin[1])

            ch = src[self.pos]

            if not balance:
                if state is LexerState.LINE_STATEMENT and ch in "\r\n":
                    newline = "\r\n" if src.startswith("\r\n", self.pos) else ch
                    self._emit(end_type, newline)
                    return
                closed = False
                for sign in signs:
                    if src.startswith(sign + end_string, self.pos):
                        self._emit(end_type, sign + end_string)
                        self._after_tag(sign or None, trim=state is LexerState.BLOCK)
                        closed = True
                        break
                if closed:
                    return

            if ch.isspace():
                end = self.pos
                line_mode = state is LexerState.LINE_STATEMENT and not balance
                while end < self.length and src[end].isspace():
                    if line_mode and src[end] in "\r\n":
                        break
                    end += 1
                self._emit(TokenType.WHITESPACE, src[self.pos:end])
                continue

            if ch.isalpha() or ch == "_":
                self._lex_name()
            elif ch in _DIGITS:
                self._lex_number()
            elif ch in "'\"":
                self._lex_string(ch)
            else:
                self._lex_operator(balance)

    def _lex_name(self) -> None:
        src = self.source
        end = self.pos + 1
        while end < self.length and (src[end].isalnum() or src[end] == "_"):
            end += 1
        word = src[self.pos:end]
        if not word.isidentifier():
            raise self._error(f"Invalid character in identifier {word!r}")
        self._emit(TokenType.NAME, word)

    def _scan(self, pos: int, allowed: str) -> int:
        while pos < self.length and self.source[pos] in allowed:
            pos += 1
        return pos

    def _lex_number(self) -> None:
        src = self.source
        start = self.pos
        is_float = False
        prefix = src[start + 1:start + 2].lower() if src[start] == "0" else ""
        if prefix in _PREFIXED_DIGITS:
            end = self._scan(start + 2, _PREFIXED_DIGITS[prefix])
        else:
            end = self._scan(start, _DIGITS + "_")
            last = self._last_significant
            after_dot = last is not None and last.type is TokenType.OPERATOR and last.value == "."
            # после точки (foo.0.1) дробные литералы не распознаются
            if not after_dot:
                if src.startswith(".", end) and end + 1 < self.length and src[end + 1] in _DIGITS:
                    end = self._scan(end + 1, _DIGITS + "_")
                    is_float = True
                if end < self.length and src[end] in "eE":
                    exp = end + 1
                    if exp < self.length and src[exp] in "+-":
                        exp += 1
                    if exp < self.length and src[exp] in _DIGITS:
                        end = self._scan(exp, _DIGITS + "_")
                        is_float = True
        text = src[start:end]
        try:
            parse_number(text, is_float)
        except ValueError:
            raise self._error(f"Invalid numeric literal {text!r}") from None
        self._emit(TokenType.FLOAT if is_float else TokenType.INTEGER, text)

    def _lex_string(self, quote: str) -> None:
        src = self.source
        end = self.pos + 1
        while end < self.length:
            ch = src[end]
            if ch == "\\":
                end += 2
                continue
            if ch == quote:
                break
            end += 1
        if end >= self.length:
            raise self._error("Unterminated string literal")
        self._emit(TokenType.STRING, src[self.pos:end + 1])

    def _lex_operator(self, balance: List[Tuple[str, int, int]]) -> None:
        src = self.source
        for op in OPERATORS:
            if src.startswith(op, self.pos):
                break
        else:
            raise self._error(f"Unexpected character {src[self.pos]!r}")

        if op in _CLOSERS:
            balance.append((op, self.line, self.column))
        elif op in (")", "]", "}"):
            if not balance:
                raise self._error(f"Unexpected '{op}'")
            expected = _CLOSERS[balance[-1][0]]
            if op != expected:
                raise self._error(f"Unexpected '{op}', expected '{expected}'")
            balance.pop()
        self._emit(TokenType.OPERATOR, op)


__all__ = ["Lexer", "LexerConfig", "LexerState", "OPERATORS", "normalize_newlines", "parse_number"]
