"""
Разбор выражений рекурсивным спуском.

Грамматика (от низшего приоритета к высшему):
expression  → condexpr
condexpr    → or ("if" or ["else" condexpr])*
or          → and ("or" and)*
and         → not ("and" not)*
not         → "not" not | compare
compare     → math1 (("=="|"!="|"<"|"<="|">"|">="|"in"|"not" "in") math1)*
math1       → concat (("+"|"-") concat)*
concat      → math2 ("~" math2)*
math2       → pow (("*"|"/"|"//"|"%") pow)*
pow         → unary ["**" pow]
unary       → ("-"|"+") unary | "await" unary | primary postfix* filter_expr*
postfix     → "." NAME | "." INTEGER | "[" subscript "]" | "(" call_args ")"
filter_expr → "|" NAME call_args? | "is" ["not"] NAME test_args | "(" call_args ")"
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional, Tuple, Union

from .. import nodes
from ..errors import TemplateAssertionError
from ..lexer.tokens import Token, TokenStream, TokenType

_COMPARE_OPERATORS = {
    "==": "eq",
    "!=": "ne",
    "<": "lt",
    "<=": "lteq",
    ">": "gt",
    ">=": "gteq",
}

_MATH1 = {"+": nodes.Add, "-": nodes.Sub}
_MATH2 = {"*": nodes.Mul, "/": nodes.Div, "//": nodes.FloorDiv, "%": nodes.Mod}

# Токены, с которых может начинаться аргумент теста без скобок
_TEST_ARG_TYPES = (TokenType.NAME, TokenType.STRING, TokenType.INTEGER, TokenType.FLOAT)

CallArgs = Tuple[List[nodes.Expr], List[nodes.Keyword], Optional[nodes.Expr], Optional[nodes.Expr]]


def pos(token: Token) -> dict:
    """Позиционные аргументы узла по токену."""
    return {"lineno": token.line, "column": token.column}


class ExpressionParserMixin:
    """Методы разбора выражений; состояние потока хранит основной класс парсера."""

    stream: TokenStream
    environment: Any

    # Определяются в основном классе
    fail: Callable[..., Any]
    is_tuple_end: Callable[..., bool]

    def parse_expression(self, with_condexpr: bool = True) -> nodes.Expr:
        """Разбирает выражение; без ``with_condexpr`` тернарный оператор не допускается."""
        if with_condexpr:
            return self.parse_condexpr()
        return self.parse_or()

    def parse_condexpr(self) -> nodes.Expr:
        start = self.stream.current
        expr1 = self.parse_or()
        while self.stream.skip_if(TokenType.NAME, "if"):
            expr2 = self.parse_or()
            expr3: Optional[nodes.Expr] = None
            if self.stream.skip_if(TokenType.NAME, "else"):
                expr3 = self.parse_condexpr()
            expr1 = nodes.CondExpr(expr2, expr1, expr3, **pos(start))
            start = self.stream.current
        return expr1

    def parse_or(self) -> nodes.Expr:
        start = self.stream.current
        left = self.parse_and()
        while self.stream.skip_if(TokenType.NAME, "or"):
            right = self.parse_and()
            left = nodes.Or(left, right, **pos(start))
        return left

    def parse_and(self) -> nodes.Expr:
        start = self.stream.current
        left = self.parse_not()
        while self.stream.skip_if(TokenType.NAME, "and"):
            right = self.parse_not()
            left = nodes.And(left, right, **pos(start))
        return left

    def parse_not(self) -> nodes.Expr:
        token = self.stream.current
        if token.test_name("not"):
            next(self.stream)
            return nodes.Not(self.parse_not(), **pos(token))
        return self.parse_compare()

    def parse_compare(self) -> nodes.Expr:
        start = self.stream.current
        expr = self.parse_math1()
        ops: List[nodes.Operand] = []
        while True:
            token = self.stream.current
            if token.type is TokenType.OPERATOR and token.value in _COMPARE_OPERATORS:
                next(self.stream)
                ops.append(nodes.Operand(_COMPARE_OPERATORS[token.value], self.parse_math1(), **pos(token)))
            elif self.stream.skip_if(TokenType.NAME, "in"):
                ops.append(nodes.Operand("in", self.parse_math1(), **pos(token)))
            elif token.test_name("not") and self.stream.look().test_name("in"):
                self.stream.skip(2)
                ops.append(nodes.Operand("notin", self.parse_math1(), **pos(token)))
            else:
                break
        if not ops:
            return expr
        return nodes.Compare(expr, ops, **pos(start))

    def parse_math1(self) -> nodes.Expr:
        start = self.stream.current
        left = self.parse_concat()
        while self.stream.current.test_op(*_MATH1):
            cls = _MATH1[next(self.stream).value]
            right = self.parse_concat()
            left = cls(left, right, **pos(start))
        return left

    def parse_concat(self) -> nodes.Expr:
        start = self.stream.current
        args = [self.parse_math2()]
        while self.stream.skip_if(TokenType.OPERATOR, "~"):
            args.append(self.parse_math2())
        if len(args) == 1:
            return args[0]
        return nodes.Concat(args, **pos(start))

    def parse_math2(self) -> nodes.Expr:
        start = self.stream.current
        left = self.parse_pow()
        while self.stream.current.test_op(*_MATH2):
            cls = _MATH2[next(self.stream).value]
            right = self.parse_pow()
            left = cls(left, right, **pos(start))
        return left

    def parse_pow(self) -> nodes.Expr:
        start = self.stream.current
        left = self.parse_unary()
        if self.stream.skip_if(TokenType.OPERATOR, "**"):
            # правая ассоциативность: 2 ** 3 ** 2 == 2 ** 9
            right = self.parse_pow()
            return nodes.Pow(left, right, **pos(start))
        return left

    def parse_unary(self, with_filter: bool = True) -> nodes.Expr:
        token = self.stream.current
        node: nodes.Expr
        if token.test_op("-"):
            next(self.stream)
            node = nodes.Neg(self.parse_unary(False), **pos(token))
        elif token.test_op("+"):
            next(self.stream)
            node = nodes.Pos(self.parse_unary(False), **pos(token))
        elif token.test_name("await") and self._starts_operand(self.stream.look()):
            if not self.environment.enable_async:
                self.fail("'await' expressions require the environment option enable_async=True", token)
            next(self.stream)
            node = nodes.Await(self.parse_unary(False), **pos(token))
        else:
            node = self.parse_primary()
        node = self.parse_postfix(node)
        if with_filter:
            node = self.parse_filter_expr(node)
        return node

    @staticmethod
    def _starts_operand(token: Token) -> bool:
        if token.type in _TEST_ARG_TYPES:
            return not token.test_name("if", "else", "and", "or", "is", "in", "not")
        return token.test_op("(", "[", "{")

    def parse_primary(self) -> nodes.Expr:
        token = self.stream.current
        node: nodes.Expr
        if token.type is TokenType.NAME:
            if token.value in ("true", "false", "True", "False"):
                node = nodes.Const(token.value in ("true", "True"), **pos(token))
            elif token.value in ("none", "None"):
                node = nodes.Const(None, **pos(token))
            else:
                node = nodes.Name(token.value, "load", **pos(token))
            next(self.stream)
        elif token.type is TokenType.STRING:
            next(self.stream)
            buf = [token.value]
            # соседние строковые литералы склеиваются
            while self.stream.current.type is TokenType.STRING:
                buf.append(next(self.stream).value)
            node = nodes.Const("".join(buf), **pos(token))
        elif token.type in (TokenType.INTEGER, TokenType.FLOAT):
            next(self.stream)
            node = nodes.Const(token.value, **pos(token))
        elif token.test_op("("):
            next(self.stream)
            node = self.parse_tuple(explicit_parentheses=True)
            self.stream.expect(TokenType.OPERATOR, ")")
        elif token.test_op("["):
            node = self.parse_list()
        elif token.test_op("{"):
            node = self.parse_dict()
        else:
            self.fail(f"Unexpected {token.describe()!r}", token)
        return node

    def parse_tuple(
        self,
        simplified: bool = False,
        with_condexpr: bool = True,
        extra_end_rules: Optional[Tuple[str, ...]] = None,
        explicit_parentheses: bool = False,
    ) -> nodes.Expr:
        """
        Разбирает выражение или кортеж через запятую без скобок.

        Кортеж создаётся, только если после запятой следует второй элемент:
        одиночная завершающая запятая кортеж не образует. Пустой кортеж
        допустим только в явных скобках ``()``.

        Args:
            simplified: Разбирать только имена и литералы (цели присваивания)
            with_condexpr: Допускать тернарный оператор в элементах
            extra_end_rules: Имена, завершающие кортеж (например, ``in`` в for)
            explicit_parentheses: Разбор вызван открывающей скобкой
        """
        start = self.stream.current
        if simplified:
            parse: Callable[[], nodes.Expr] = self.parse_primary
        else:
            def parse() -> nodes.Expr:
                return self.parse_expression(with_condexpr=with_condexpr)

        args: List[nodes.Expr] = []
        is_tuple = False
        while True:
            if args:
                self.stream.expect(TokenType.OPERATOR, ",")
            if self.is_tuple_end(extra_end_rules):
                break
            args.append(parse())
            if len(args) > 1:
                is_tuple = True
            if not self.stream.current.test_op(","):
                break

        if not is_tuple:
            if args:
                return args[0]
            if not explicit_parentheses:
                self.fail(f"Expected an expression, got {self.stream.current.describe()!r}")
        return nodes.Tuple(args, "load", **pos(start))

    def parse_list(self) -> nodes.List:
        token = self.stream.expect(TokenType.OPERATOR, "[")
        items: List[nodes.Expr] = []
        while not self.stream.current.test_op("]"):
            if items:
                self.stream.expect(TokenType.OPERATOR, ",")
            if self.stream.current.test_op("]"):
                break
            items.append(self.parse_expression())
        self.stream.expect(TokenType.OPERATOR, "]")
        return nodes.List(items, **pos(token))

    def parse_dict(self) -> nodes.Dict:
        token = self.stream.expect(TokenType.OPERATOR, "{")
        items: List[nodes.Pair] = []
        while not self.stream.current.test_op("}"):
            if items:
                self.stream.expect(TokenType.OPERATOR, ",")
            if self.stream.current.test_op("}"):
                break
            key = self.parse_expression()
            self.stream.expect(TokenType.OPERATOR, ":")
            value = self.parse_expression()
            items.append(nodes.Pair(key, value, lineno=key.lineno, column=key.column))
        self.stream.expect(TokenType.OPERATOR, "}")
        return nodes.Dict(items, **pos(token))

    # ---------------- Постфиксные операции ----------------

    def parse_postfix(self, node: nodes.Expr) -> nodes.Expr:
        while True:
            current = self.stream.current
            if current.test_op(".", "["):
                node = self.parse_subscript(node)
            elif current.test_op("("):
                node = self.parse_call(node)
            else:
                break
        return node

    def parse_filter_expr(self, node: nodes.Expr) -> nodes.Expr:
        while True:
            current = self.stream.current
            if current.test_op("|"):
                node = self.parse_filter(node)  # type: ignore[assignment]
            elif current.test_name("is"):
                node = self.parse_test(node)
            elif current.test_op("("):
                # вызов результата фильтра: foo|attr("bar")()
                node = self.parse_call(node)
            else:
                break
        return node

    def parse_subscript(self, node: nodes.Expr) -> nodes.Expr:
        token = next(self.stream)
        if token.test_op("."):
            attr_token = self.stream.current
            next(self.stream)
            if attr_token.type is TokenType.NAME:
                return nodes.Getattr(node, attr_token.value, "load", **pos(token))
            if attr_token.type is not TokenType.INTEGER:
                self.fail("Expected name or number after '.'", attr_token)
            return nodes.Getitem(node, nodes.Const(attr_token.value, **pos(attr_token)), "load", **pos(token))

        args: List[nodes.Expr] = []
        while not self.stream.current.test_op("]"):
            if args:
                self.stream.expect(TokenType.OPERATOR, ",")
            args.append(self.parse_subscribed())
        self.stream.expect(TokenType.OPERATOR, "]")
        if len(args) == 1:
            arg = args[0]
        else:
            arg = nodes.Tuple(args, "load", **pos(token))
        return nodes.Getitem(node, arg, "load", **pos(token))

    def parse_subscribed(self) -> nodes.Expr:
        """Индекс или срез ``start:stop:step`` внутри ``[]``."""
        token = self.stream.current
        args: List[Optional[nodes.Expr]] = []
        if token.test_op(":"):
            next(self.stream)
            args.append(None)
        else:
            node = self.parse_expression()
            if not self.stream.current.test_op(":"):
                return node
            next(self.stream)
            args.append(node)

        if self.stream.current.test_op(":"):
            args.append(None)
        elif not self.stream.current.test_op("]", ","):
            args.append(self.parse_expression())
        else:
            args.append(None)

        if self.stream.current.test_op(":"):
            next(self.stream)
            if not self.stream.current.test_op("]", ","):
                args.append(self.parse_expression())
            else:
                args.append(None)
        else:
            args.append(None)
        return nodes.Slice(args[0], args[1], args[2], **pos(token))

    def parse_call_args(self) -> CallArgs:
        token = self.stream.expect(TokenType.OPERATOR, "(")
        args: List[nodes.Expr] = []
        kwargs: List[nodes.Keyword] = []
        dyn_args: Optional[nodes.Expr] = None
        dyn_kwargs: Optional[nodes.Expr] = None
        require_comma = False

        def ensure(expr: bool) -> None:
            if not expr:
                self.fail("Invalid syntax for function call expression", token)

        while not self.stream.current.test_op(")"):
            if require_comma:
                self.stream.expect(TokenType.OPERATOR, ",")
                # допускается завершающая запятая
                if self.stream.current.test_op(")"):
                    break

            current = self.stream.current
            if current.test_op("*"):
                ensure(dyn_args is None and dyn_kwargs is None)
                next(self.stream)
                dyn_args = self.parse_expression()
            elif current.test_op("**"):
                ensure(dyn_kwargs is None)
                next(self.stream)
                dyn_kwargs = self.parse_expression()
            elif current.type is TokenType.NAME and self.stream.look().test_op("="):
                ensure(dyn_kwargs is None)
                key = current.value
                self.stream.skip(2)
                value = self.parse_expression()
                if any(kw.key == key for kw in kwargs):
                    self.fail(f"Keyword argument {key!r} repeated", current, exc=TemplateAssertionError)
                kwargs.append(nodes.Keyword(key, value, **pos(current)))
            else:
                ensure(dyn_args is None and dyn_kwargs is None and not kwargs)
                args.append(self.parse_expression())
            require_comma = True

        self.stream.expect(TokenType.OPERATOR, ")")
        return args, kwargs, dyn_args, dyn_kwargs

    def parse_call(self, node: nodes.Expr) -> nodes.Call:
        token = self.stream.current
        args, kwargs, dyn_args, dyn_kwargs = self.parse_call_args()
        return nodes.Call(node, args, kwargs, dyn_args, dyn_kwargs, **pos(token))

    def _parse_dotted_name(self) -> Tuple[Token, str]:
        token = self.stream.expect(TokenType.NAME)
        name = token.value
        while self.stream.current.test_op("."):
            next(self.stream)
            name += "." + self.stream.expect(TokenType.NAME).value
        return token, name

    def parse_filter(self, node: Optional[nodes.Expr], start_inline: bool = False) -> Optional[nodes.Expr]:
        """
        Разбирает цепочку ``|name(args)``. При ``start_inline`` первый
        фильтр идёт без ``|`` (``{% filter upper %}``, ``{% set x | trim %}``).
        """
        while self.stream.current.test_op("|") or start_inline:
            if not start_inline:
                next(self.stream)
            token, name = self._parse_dotted_name()
            if self.stream.current.test_op("("):
                args, kwargs, dyn_args, dyn_kwargs = self.parse_call_args()
            else:
                args, kwargs, dyn_args, dyn_kwargs = [], [], None, None
            node = nodes.Filter(node, name, args, kwargs, dyn_args, dyn_kwargs, **pos(token))
            start_inline = False
        return node

    def parse_test(self, node: nodes.Expr) -> nodes.Expr:
        token = next(self.stream)
        negated = self.stream.skip_if(TokenType.NAME, "not")
        _name_token, name = self._parse_dotted_name()
        current = self.stream.current
        args: List[nodes.Expr]
        kwargs: List[nodes.Keyword] = []
        dyn_args = dyn_kwargs = None
        if current.test_op("("):
            args, kwargs, dyn_args, dyn_kwargs = self.parse_call_args()
        elif (current.type in _TEST_ARG_TYPES or current.test_op("[", "{")) and not current.test_name(
            "else", "or", "and", "if"
        ):
            if current.test_name("is"):
                self.fail("You cannot chain multiple tests with is", current)
            arg_node = self.parse_primary()
            arg_node = self.parse_postfix(arg_node)
            args = [arg_node]
        else:
            args = []
        result: nodes.Expr = nodes.Test(node, name, args, kwargs, dyn_args, dyn_kwargs, **pos(token))
        if negated:
            result = nodes.Not(result, **pos(token))
        return result

    # ---------------- Цели присваивания ----------------

    def parse_assign_target(
        self,
        with_tuple: bool = True,
        name_only: bool = False,
        extra_end_rules: Optional[Tuple[str, ...]] = None,
        with_namespace: bool = False,
    ) -> Union[nodes.Name, nodes.NSRef, nodes.Tuple, nodes.Expr]:
        """
        Разбирает цель присваивания: имя, кортеж имён или ``ns.attr``.

        Raises:
            TemplateSyntaxError: Если выражение нельзя использовать как цель
        """
        target: nodes.Expr
        if name_only:
            token = self.stream.expect(TokenType.NAME)
            target = nodes.Name(token.value, "store", **pos(token))
        else:
            if with_namespace and self.stream.look().test_op("."):
                token = self.stream.expect(TokenType.NAME)
                next(self.stream)
                attr = self.stream.expect(TokenType.NAME)
                target = nodes.NSRef(token.value, attr.value, **pos(token))
            elif with_tuple:
                target = self.parse_tuple(simplified=True, extra_end_rules=extra_end_rules)
            else:
                target = self.parse_primary()
            target.set_ctx("store")
        if not target.can_assign():
            self.fail(f"Can't assign to {type(target).__name__.lower()!r}", target)
        return target


__all__ = ["ExpressionParserMixin", "pos"]
