"""
Разбор инструкций ``{% ... %}``.

Каждый метод вызывается, когда текущий токен - имя тега, и возвращает
узел (или список узлов). Закрывающий ``%}`` потребляет основной цикл.
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional, Set, Tuple

from .. import nodes
from ..errors import TemplateAssertionError, TemplateSyntaxError
from ..lexer.tokens import Token, TokenStream, TokenType
from .expressions import pos


class StatementParserMixin:
    """Методы разбора инструкций."""

    stream: TokenStream
    environment: Any
    _tag_stack: List[str]
    _block_names: Set[str]
    _loop_depth: int
    _extends_seen: bool

    # Определяются в основном классе и примеси выражений
    fail: Callable[..., Any]
    parse_statements: Callable[..., List[nodes.Node]]
    parse_expression: Callable[..., nodes.Expr]
    parse_tuple: Callable[..., nodes.Expr]
    parse_assign_target: Callable[..., Any]
    parse_filter: Callable[..., Optional[nodes.Expr]]

    # ---------------- Циклы и условия ----------------

    def parse_for(self, is_async: bool = False) -> nodes.For:
        token = self.stream.expect(TokenType.NAME, "for")
        target = self.parse_assign_target(extra_end_rules=("in",))
        if any(isinstance(n, nodes.Name) and n.name == "loop" for n in [target, *target.find_all(nodes.Name)]):
            self.fail("Can't assign to special loop variable in for-loop target", target, exc=TemplateAssertionError)
        self.stream.expect(TokenType.NAME, "in")
        iter_node = self.parse_tuple(with_condexpr=False, extra_end_rules=("recursive",))
        test: Optional[nodes.Expr] = None
        if self.stream.skip_if(TokenType.NAME, "if"):
            test = self.parse_expression()
        recursive = self.stream.skip_if(TokenType.NAME, "recursive")

        self._loop_depth += 1
        try:
            body = self.parse_statements(("endfor", "else"))
        finally:
            self._loop_depth -= 1
        else_: List[nodes.Node] = []
        if next(self.stream).value == "else":
            else_ = self.parse_statements(("endfor",), drop_needle=True)
        return nodes.For(target, iter_node, body, else_, test, recursive, is_async, **pos(token))

    def parse_if(self) -> nodes.If:
        token = self.stream.expect(TokenType.NAME, "if")
        test = self.parse_tuple(with_condexpr=False)
        body = self.parse_statements(("elif", "else", "endif"))
        elif_: List[nodes.If] = []
        else_: List[nodes.Node] = []
        while True:
            branch = next(self.stream)
            if branch.test_name("elif"):
                elif_test = self.parse_tuple(with_condexpr=False)
                elif_body = self.parse_statements(("elif", "else", "endif"))
                elif_.append(nodes.If(elif_test, elif_body, **pos(branch)))
                continue
            if branch.test_name("else"):
                else_ = self.parse_statements(("endif",), drop_needle=True)
            break
        return nodes.If(test, body, elif_, else_, **pos(token))

    def parse_break(self) -> nodes.Break:
        token = next(self.stream)
        if not self._loop_depth:
            self.fail("'break' outside of a loop", token)
        return nodes.Break(**pos(token))

    def parse_continue(self) -> nodes.Continue:
        token = next(self.stream)
        if not self._loop_depth:
            self.fail("'continue' outside of a loop", token)
        return nodes.Continue(**pos(token))

    # ---------------- Наследование ----------------

    def parse_block(self) -> nodes.Block:
        token = next(self.stream)
        name_token = self.stream.expect(TokenType.NAME)
        name = name_token.value
        if self.stream.current.test_op("-"):
            self.fail("Block names may not contain hyphens, use an underscore instead", self.stream.current)

        scoped = required = False
        while True:
            modifier = self.stream.current
            if modifier.test_name("scoped", "required"):
                if (scoped if modifier.value == "scoped" else required):
                    self.fail(f"Duplicate block modifier {modifier.value!r}", modifier)
                if modifier.value == "scoped":
                    scoped = True
                else:
                    required = True
                next(self.stream)
            else:
                break

        if name in self._block_names:
            self.fail(f"Block {name!r} defined twice", name_token, exc=TemplateAssertionError)
        self._block_names.add(name)

        depth, self._loop_depth = self._loop_depth, 0
        try:
            body = self.parse_statements(("endblock",), drop_needle=True)
        finally:
            self._loop_depth = depth

        if required and not _is_blank(body):
            self.fail("Required blocks can only contain comments or whitespace", token)

        self.stream.skip_if(TokenType.NAME, name)
        return nodes.Block(name, body, scoped, required, **pos(token))

    def parse_extends(self) -> nodes.Extends:
        token = next(self.stream)
        if len(self._tag_stack) > 1:
            self.fail("'extends' must be a top-level statement", token, exc=TemplateAssertionError)
        if self._extends_seen:
            self.fail("A template may extend only one parent", token, exc=TemplateAssertionError)
        self._extends_seen = True
        template = self.parse_expression()
        try:
            parent = template.as_const()
        except nodes.Impossible:
            parent = None
        if not isinstance(parent, str):
            self.fail("Parent template name must be a string literal", template, exc=TemplateAssertionError)
        return nodes.Extends(template, **pos(token))

    # ---------------- Включение и импорт ----------------

    def parse_import_context(self, default: bool) -> bool:
        """Разбирает необязательное ``with context`` / ``without context``."""
        current = self.stream.current
        if current.test_name("with", "without") and self.stream.look().test_name("context"):
            with_context = next(self.stream).value == "with"
            self.stream.skip()
            return with_context
        return default

    def parse_include(self) -> nodes.Include:
        token = next(self.stream)
        template = self.parse_expression()
        ignore_missing = False
        if self.stream.current.test_name("ignore") and self.stream.look().test_name("missing"):
            ignore_missing = True
            self.stream.skip(2)
        with_context = self.parse_import_context(True)
        return nodes.Include(template, with_context, ignore_missing, **pos(token))

    def parse_import(self) -> nodes.Import:
        token = next(self.stream)
        template = self.parse_expression()
        self.stream.expect(TokenType.NAME, "as")
        target = self.parse_assign_target(name_only=True).name
        with_context = self.parse_import_context(False)
        return nodes.Import(template, target, with_context, **pos(token))

    def parse_from(self) -> nodes.FromImport:
        token = next(self.stream)
        template = self.parse_expression()
        self.stream.expect(TokenType.NAME, "import")
        names: List[Tuple[str, Optional[str]]] = []
        with_context = False

        def parse_context() -> bool:
            nonlocal with_context
            current = self.stream.current
            if current.test_name("with", "without") and self.stream.look().test_name("context"):
                with_context = current.value == "with"
                self.stream.skip(2)
                return True
            return False

        while True:
            if names:
                self.stream.expect(TokenType.OPERATOR, ",")
            if self.stream.current.type is not TokenType.NAME:
                self.stream.expect(TokenType.NAME)
            if parse_context():
                break
            target = self.parse_assign_target(name_only=True)
            if target.name.startswith("_"):
                self.fail(
                    "Names starting with an underline can not be imported",
                    target,
                    exc=TemplateAssertionError,
                )
            if self.stream.skip_if(TokenType.NAME, "as"):
                alias = self.parse_assign_target(name_only=True)
                names.append((target.name, alias.name))
            else:
                names.append((target.name, None))
            if parse_context() or not self.stream.current.test_op(","):
                break
        return nodes.FromImport(template, names, with_context, **pos(token))

    # ---------------- Макросы и вызовы ----------------

    def parse_signature(self) -> nodes.Signature:
        """
        Разбирает сигнатуру ``(a, b=1, *, c, d=2, *rest, **opts)``.

        Raises:
            TemplateAssertionError: Аргумент без значения по умолчанию после
                аргумента со значением или повторное имя параметра
        """
        start = self.stream.expect(TokenType.OPERATOR, "(")
        args: List[nodes.Expr] = []
        defaults: List[nodes.Expr] = []
        kwonly: List[nodes.Expr] = []
        kwonly_defaults: List[Optional[nodes.Expr]] = []
        varargs: Optional[str] = None
        kwargs: Optional[str] = None
        bare_star = False
        seen: Set[str] = set()

        def declare(name_token: Token) -> str:
            name = name_token.value
            if name in seen:
                self.fail(f"Duplicate argument {name!r} in signature", name_token, exc=TemplateAssertionError)
            seen.add(name)
            return name

        first = True
        while not self.stream.current.test_op(")"):
            if not first:
                self.stream.expect(TokenType.OPERATOR, ",")
                if self.stream.current.test_op(")"):
                    break
            first = False
            if kwargs is not None:
                self.fail("'**' parameter must be the last one", self.stream.current)

            current = self.stream.current
            if current.test_op("**"):
                next(self.stream)
                kwargs = declare(self.stream.expect(TokenType.NAME))
            elif current.test_op("*"):
                next(self.stream)
                if self.stream.current.type is TokenType.NAME:
                    if varargs is not None:
                        self.fail("Only one '*' collector is allowed", current)
                    varargs = declare(next(self.stream))
                else:
                    if bare_star or varargs is not None:
                        self.fail("Keyword-only marker '*' must come before the '*' collector", current)
                    bare_star = True
            else:
                # после *args остаются только именованные параметры
                if varargs is not None:
                    bare_star = True
                arg_token = self.stream.expect(TokenType.NAME)
                arg = nodes.Name(declare(arg_token), "param", **pos(arg_token))
                default: Optional[nodes.Expr] = None
                if self.stream.skip_if(TokenType.OPERATOR, "="):
                    default = self.parse_expression()
                if bare_star:
                    kwonly.append(arg)
                    kwonly_defaults.append(default)
                else:
                    if default is not None:
                        defaults.append(default)
                    elif defaults:
                        self.fail(
                            "Non-default argument follows default argument",
                            arg_token,
                            exc=TemplateAssertionError,
                        )
                    args.append(arg)
        self.stream.expect(TokenType.OPERATOR, ")")
        return nodes.Signature(args, defaults, kwonly, kwonly_defaults, varargs, kwargs, **pos(start))

    def _parse_function_body(self, end: str) -> List[nodes.Node]:
        # break/continue не пересекают границу макроса
        depth, self._loop_depth = self._loop_depth, 0
        try:
            return self.parse_statements((end,), drop_needle=True)
        finally:
            self._loop_depth = depth

    def parse_macro(self) -> nodes.Macro:
        token = next(self.stream)
        name = self.parse_assign_target(name_only=True).name
        signature = self.parse_signature()
        body = self._parse_function_body("endmacro")
        self.stream.skip_if(TokenType.NAME, name)
        return nodes.Macro(name, signature, body, **pos(token))

    def parse_call_block(self) -> nodes.CallBlock:
        token = next(self.stream)
        if self.stream.current.test_op("("):
            signature = self.parse_signature()
        else:
            signature = nodes.Signature(**pos(token))
        call_node = self.parse_expression()
        if not isinstance(call_node, nodes.Call):
            self.fail("Expected a call expression in 'call' block", token)
        body = self._parse_function_body("endcall")
        return nodes.CallBlock(call_node, signature, body, **pos(token))

    def parse_filter_block(self) -> nodes.FilterBlock:
        token = next(self.stream)
        filter_node = self.parse_filter(None, start_inline=True)
        body = self.parse_statements(("endfilter",), drop_needle=True)
        return nodes.FilterBlock(body, filter_node, **pos(token))

    # ---------------- Области видимости и присваивания ----------------

    def parse_set(self) -> nodes.Node:
        token = next(self.stream)
        target = self.parse_assign_target(with_namespace=True)
        if self.stream.skip_if(TokenType.OPERATOR, "="):
            expr = self.parse_tuple()
            return nodes.Assign(target, expr, **pos(token))
        filter_node = self.parse_filter(None)
        body = self.parse_statements(("endset",), drop_needle=True)
        return nodes.AssignBlock(target, filter_node, body, **pos(token))

    def parse_with(self, is_async: bool = False) -> nodes.With:
        token = self.stream.expect(TokenType.NAME, "with")
        targets: List[nodes.Expr] = []
        values: List[nodes.Expr] = []
        while self.stream.current.type is not TokenType.BLOCK_END:
            if targets:
                self.stream.expect(TokenType.OPERATOR, ",")
            target = self.parse_assign_target()
            target.set_ctx("param")
            targets.append(target)
            self.stream.expect(TokenType.OPERATOR, "=")
            values.append(self.parse_expression())
        body = self.parse_statements(("endwith",), drop_needle=True)
        return nodes.With(targets, values, body, is_async, **pos(token))

    def parse_autoescape(self) -> nodes.ScopedEvalContextModifier:
        token = next(self.stream)
        value = self.parse_expression()
        option = nodes.Keyword("autoescape", value, **pos(token))
        body = self.parse_statements(("endautoescape",), drop_needle=True)
        return nodes.ScopedEvalContextModifier([option], body, **pos(token))

    def parse_namespace(self) -> nodes.Namespace:
        token = next(self.stream)
        name = self.parse_assign_target(name_only=True).name
        value: Optional[nodes.Expr] = None
        if self.stream.skip_if(TokenType.OPERATOR, "="):
            value = self.parse_expression()
        body = self.parse_statements(("endnamespace",), drop_needle=True)
        return nodes.Namespace(name, value, body, **pos(token))

    def parse_export(self) -> nodes.Export:
        token = next(self.stream)
        names: List[str] = []
        while self.stream.current.type is not TokenType.BLOCK_END:
            if names:
                self.stream.expect(TokenType.OPERATOR, ",")
            name_token = self.stream.expect(TokenType.NAME)
            if name_token.value in names:
                self.fail(f"Name {name_token.value!r} exported twice", name_token, exc=TemplateAssertionError)
            names.append(name_token.value)
        if not names:
            self.fail("'export' requires at least one name", token)
        return nodes.Export(names, **pos(token))

    # ---------------- Прочее ----------------

    def parse_print(self) -> nodes.Output:
        token = next(self.stream)
        items: List[nodes.Expr] = []
        while self.stream.current.type is not TokenType.BLOCK_END:
            if items:
                self.stream.expect(TokenType.OPERATOR, ",")
            items.append(self.parse_expression())
        return nodes.Output(items, **pos(token))

    def parse_do(self) -> nodes.Do:
        token = next(self.stream)
        return nodes.Do(self.parse_tuple(), **pos(token))

    def parse_spaceless(self) -> nodes.Spaceless:
        token = next(self.stream)
        body = self.parse_statements(("endspaceless",), drop_needle=True)
        return nodes.Spaceless(body, **pos(token))

    def parse_async(self) -> nodes.Node:
        token = next(self.stream)
        if not self.environment.enable_async:
            self.fail("'async' statements require the environment option enable_async=True", token)
        current = self.stream.current
        if current.test_name("for"):
            return self.parse_for(is_async=True)
        if current.test_name("with"):
            return self.parse_with(is_async=True)
        self.fail("Expected 'for' or 'with' after 'async'", current, exc=TemplateSyntaxError)


def _is_blank(body: List[nodes.Node]) -> bool:
    """Тело состоит только из пробельного текста."""
    for node in body:
        if not isinstance(node, nodes.Output):
            return False
        for child in node.nodes:
            if not isinstance(child, nodes.TemplateData) or child.data.strip():
                return False
    return True


__all__ = ["StatementParserMixin"]
