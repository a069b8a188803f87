"""
Окружение шаблонов и скомпилированный шаблон.

Окружение хранит настройки синтаксиса, реестры фильтров, тестов и
глобальных значений, загрузчик и кэш. Шаблон - неизменяемое после
компиляции AST плюс точки входа рендеринга; один шаблон можно
рендерить параллельно, так как всё изменяемое живёт в контексте и
состоянии конкретного вызова.
"""

from __future__ import annotations

import logging
from collections import ChainMap
from typing import (
    IO,
    Any,
    Callable,
    Collection,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    MutableMapping,
    Optional,
    Sequence,
    Type,
    Union,
)

from . import nodes
from .cache import LRUTemplateCache, TemplateCache
from .defaults import DEFAULT_GLOBALS
from .errors import (
    FilterArgumentError,
    TemplateNotFound,
    TemplateRuntimeError,
    TemplatesNotFound,
    TemplateSyntaxError,
    UndefinedError,
)
from .ext import Extension, load_extensions
from .filters import FILTERS
from .i18n import CallableTranslations, NullTranslations, Translations
from .lexer import Lexer, LexerConfig, LexerState, Token
from .loaders import BaseLoader, join_relative
from .nodes.base import EvalContext
from .nodes.optimizer import optimize
from .parser import Parser
from .runtime.context import Context
from .runtime.evaluator import Evaluator
from .runtime.inheritance import collect_blocks, own_block_chains, parent_name
from .runtime.markup import select_autoescape
from .runtime.objects import TemplateModule
from .runtime.output import TemplateStream, write_buffered
from .runtime.state import RenderState
from .runtime.undefined import Undefined, is_undefined
from .tests import TESTS
from .utils import PassArg, missing

logger = logging.getLogger(__name__)

AutoescapePolicy = Union[bool, Collection[str], Callable[[Optional[str]], bool]]


def _autoescape_policy(autoescape: AutoescapePolicy) -> Union[bool, Callable[[Optional[str]], bool]]:
    """Список расширений превращается в политику ``select_autoescape``."""
    if isinstance(autoescape, bool) or callable(autoescape):
        return autoescape
    return select_autoescape(enabled_extensions=list(autoescape), default_for_string=False)


class Environment:
    """
    Центральный объект: настройки, реестры, загрузка и компиляция шаблонов.

    Реестры (``filters``, ``tests``, ``globals``) заполняются до первого
    рендеринга и дальше только читаются.

    Args:
        block_start_string: Начало инструкции (``{%``)
        block_end_string: Конец инструкции (``%}``)
        variable_start_string: Начало вывода (``{{``)
        variable_end_string: Конец вывода (``}}``)
        comment_start_string: Начало комментария (``{#``)
        comment_end_string: Конец комментария (``#}``)
        line_statement_prefix: Префикс строчных инструкций
        line_comment_prefix: Префикс строчных комментариев
        trim_blocks: Удалять перевод строки после тега инструкции
        lstrip_blocks: Удалять пробелы перед тегом инструкции в начале строки
        newline_sequence: Перевод строки в выводе
        keep_trailing_newline: Сохранять завершающий перевод строки
        extensions: Классы расширений или пути импорта
        optimized: Сворачивать константы после разбора
        undefined: Класс неопределённых значений
        finalize: Функция, применяемая к каждому результату ``{{ }}``
        autoescape: Флаг, список расширений файлов или функция ``name -> bool``
        loader: Загрузчик шаблонов
        cache: Кэш скомпилированных шаблонов
        cache_size: Ёмкость кэша по умолчанию (если ``cache`` не задан)
        auto_reload: Проверять устаревание шаблонов в кэше
        enable_async: Разрешить асинхронные формы синтаксиса
        max_recursion_depth: Максимальная глубина вызовов при рендеринге
        policy: Политика безопасности
        translations: Источник переводов
        i18n_trimmed: Значение ``trimmed`` для ``{% trans %}`` по умолчанию
    """

    def __init__(
        self,
        block_start_string: str = "{%",
        block_end_string: str = "%}",
        variable_start_string: str = "{{",
        variable_end_string: str = "}}",
        comment_start_string: str = "{#",
        comment_end_string: str = "#}",
        line_statement_prefix: Optional[str] = None,
        line_comment_prefix: Optional[str] = None,
        trim_blocks: bool = False,
        lstrip_blocks: bool = False,
        newline_sequence: str = "\n",
        keep_trailing_newline: bool = False,
        extensions: Sequence[Union[str, Type[Extension]]] = (),
        optimized: bool = True,
        undefined: Type[Undefined] = Undefined,
        finalize: Optional[Callable[..., Any]] = None,
        autoescape: AutoescapePolicy = False,
        loader: Optional[BaseLoader] = None,
        cache: Optional[TemplateCache] = None,
        cache_size: int = 400,
        auto_reload: bool = True,
        enable_async: bool = False,
        max_recursion_depth: int = 100,
        policy: Any = None,
        translations: Optional[Translations] = None,
        i18n_trimmed: bool = False,
    ):
        self.lexer_config = LexerConfig(
            block_start_string=block_start_string,
            block_end_string=block_end_string,
            variable_start_string=variable_start_string,
            variable_end_string=variable_end_string,
            comment_start_string=comment_start_string,
            comment_end_string=comment_end_string,
            line_statement_prefix=line_statement_prefix,
            line_comment_prefix=line_comment_prefix,
            trim_blocks=trim_blocks,
            lstrip_blocks=lstrip_blocks,
            newline_sequence=newline_sequence,
            keep_trailing_newline=keep_trailing_newline,
        )
        self.lexer = Lexer(self.lexer_config)

        if max_recursion_depth < 1:
            raise ValueError(f"max_recursion_depth must be >= 1, got {max_recursion_depth}")

        self.optimized = optimized
        self.undefined = undefined
        self.finalize = finalize
        self.autoescape = _autoescape_policy(autoescape)
        self.loader = loader
        self.cache: TemplateCache = cache if cache is not None else LRUTemplateCache(cache_size)
        self.auto_reload = auto_reload
        self.enable_async = enable_async
        self.max_recursion_depth = max_recursion_depth
        self.policy = policy
        self.translations: Translations = translations if translations is not None else NullTranslations()
        self.i18n_trimmed = i18n_trimmed

        self.filters: Dict[str, Callable[..., Any]] = dict(FILTERS)
        self.tests: Dict[str, Callable[..., Any]] = dict(TESTS)
        self.globals: Dict[str, Any] = dict(DEFAULT_GLOBALS)

        self.extensions: Dict[str, Extension] = {}
        for extension in extensions:
            self.add_extension(extension)

        self.evaluator = Evaluator(self)

    @property
    def newline_sequence(self) -> str:
        return self.lexer_config.newline_sequence

    # ---------------- Реестры ----------------

    def add_extension(self, extension: Union[str, Type[Extension]]) -> Extension:
        """
        Регистрирует расширение: его теги, фильтры, тесты и глобальные значения.

        Тег, уже занятый другим расширением, переходит к новому (с предупреждением).
        """
        (instance,) = load_extensions(self, [extension]).values()
        for other in self.extensions.values():
            for tag in other.tags & instance.tags:
                logger.warning(f"Extension {instance.identifier} overrides tag {tag!r} of {other.identifier}")
        self.extensions[instance.identifier] = instance
        self.filters.update(instance.filters)
        self.tests.update(instance.tests)
        self.globals.update(instance.globals)
        return instance

    def iter_extensions(self) -> Iterator[Extension]:
        """Расширения в порядке приоритета (при равном - в порядке регистрации)."""
        return iter(sorted(self.extensions.values(), key=lambda x: x.priority))

    def add_filter(self, name: str, func: Callable[..., Any]) -> None:
        self.filters[name] = func

    def add_test(self, name: str, func: Callable[..., Any]) -> None:
        self.tests[name] = func

    def add_global(self, name: str, value: Any) -> None:
        self.globals[name] = value

    # ---------------- Переводы ----------------

    def install_gettext_translations(self, translations: Translations) -> None:
        """Подключает объект переводов (например, ``gettext.GNUTranslations``)."""
        self.translations = translations

    def install_gettext_callables(
        self,
        gettext: Callable[[str], str],
        ngettext: Callable[[str, str, int], str],
        pgettext: Optional[Callable[[str, str], str]] = None,
        npgettext: Optional[Callable[[str, str, str, int], str]] = None,
    ) -> None:
        self.translations = CallableTranslations(gettext, ngettext, pgettext, npgettext)

    def uninstall_gettext_translations(self) -> None:
        self.translations = NullTranslations()

    # ---------------- Доступ к данным ----------------

    def getitem(self, obj: Any, argument: Any) -> Any:
        """Элемент объекта, а при его отсутствии - атрибут (для строковых ключей)."""
        try:
            return obj[argument]
        except (AttributeError, TypeError, LookupError):
            if isinstance(argument, str):
                try:
                    return getattr(obj, argument)
                except AttributeError:
                    pass
            return self.undefined(obj=obj, name=argument)

    def getattr(self, obj: Any, attribute: str) -> Any:
        """Атрибут объекта, а при его отсутствии - элемент."""
        try:
            return getattr(obj, attribute)
        except AttributeError:
            try:
                return obj[attribute]
            except (TypeError, LookupError, AttributeError):
                return self.undefined(obj=obj, name=attribute)

    def call_filter(
        self,
        name: str,
        value: Any,
        args: Optional[Sequence[Any]] = None,
        kwargs: Optional[Mapping[str, Any]] = None,
        context: Optional[Context] = None,
        eval_ctx: Optional[EvalContext] = None,
    ) -> Any:
        """
        Вызывает фильтр так же, как это делает интерпретатор.

        Raises:
            FilterArgumentError: Фильтр не зарегистрирован
            SecurityError: Политика запретила фильтр
        """
        if context is not None:
            context.state.check_filter(name)
        return self._call_registered(self.filters, "filter", name, value, args, kwargs, context, eval_ctx)

    def call_test(
        self,
        name: str,
        value: Any,
        args: Optional[Sequence[Any]] = None,
        kwargs: Optional[Mapping[str, Any]] = None,
        context: Optional[Context] = None,
        eval_ctx: Optional[EvalContext] = None,
    ) -> bool:
        """
        Вызывает тест так же, как это делает интерпретатор.

        Raises:
            FilterArgumentError: Тест не зарегистрирован
        """
        return bool(self._call_registered(self.tests, "test", name, value, args, kwargs, context, eval_ctx))

    def _call_registered(
        self,
        registry: Mapping[str, Callable[..., Any]],
        kind: str,
        name: str,
        value: Any,
        args: Optional[Sequence[Any]],
        kwargs: Optional[Mapping[str, Any]],
        context: Optional[Context],
        eval_ctx: Optional[EvalContext],
    ) -> Any:
        func = registry.get(name)
        if func is None:
            raise FilterArgumentError(f"No {kind} named {name!r}.")
        call_args = [value, *(args or ())]
        pass_arg = PassArg.from_obj(func)
        if pass_arg is PassArg.context:
            if context is None:
                raise TemplateRuntimeError(f"Attempted to invoke a context {kind} without context.")
            call_args.insert(0, context)
        elif pass_arg is PassArg.eval_context:
            if eval_ctx is None:
                eval_ctx = context.eval_ctx if context is not None else EvalContext(self)
            call_args.insert(0, eval_ctx)
        elif pass_arg is PassArg.environment:
            call_args.insert(0, self)
        return func(*call_args, **(kwargs or {}))

    # ---------------- Компиляция ----------------

    def lex(self, source: str, name: Optional[str] = None, filename: Optional[str] = None) -> Iterator[Token]:
        """
        Сырые токены исходника, включая текст, пробелы и комментарии.

        Конкатенация значений токенов восстанавливает исходник, если не
        использовались знаки управления пробелами.
        """
        return self.lexer.tokeniter(source, name, filename)

    def parse(self, source: str, name: Optional[str] = None, filename: Optional[str] = None) -> nodes.Template:
        """
        Разбирает исходник в AST без свёртки констант.

        Raises:
            TemplateSyntaxError: Ошибка лексера или парсера
        """
        try:
            return Parser(self, source, name, filename).parse()
        except TemplateSyntaxError as e:
            e.source = source
            raise

    def compile(
        self,
        source: Union[str, nodes.Template],
        name: Optional[str] = None,
        filename: Optional[str] = None,
        globals: Optional[MutableMapping[str, Any]] = None,
    ) -> "Template":
        """
        Компилирует исходник (или готовое AST) в шаблон.

        Raises:
            TemplateSyntaxError: Ошибка лексера или парсера
        """
        root = self.parse(source, name, filename) if isinstance(source, str) else source
        if self.optimized:
            root = optimize(root, self, name)  # type: ignore[assignment]
        logger.debug(f"Compiled template {name or '<string>'}")
        return Template(self, root, name, filename, self.make_globals(globals))  # type: ignore[arg-type]

    def compile_expression(self, source: str, undefined_to_none: bool = True) -> "TemplateExpression":
        """
        Компилирует одиночное выражение в вызываемый объект.

        Raises:
            TemplateSyntaxError: Ошибка разбора или лишний текст после выражения
        """
        parser = Parser(self, source, state=LexerState.VARIABLE)
        try:
            expr = parser.parse_expression()
            if not parser.stream.eos:
                parser.fail("chunk after expression")
        except TemplateSyntaxError as e:
            e.source = source
            raise
        pos = {"lineno": 1, "column": 1}
        body = [nodes.Assign(nodes.Name("result", "store", **pos), expr, **pos)]
        template = self.compile(nodes.Template(body, **pos))
        return TemplateExpression(template, undefined_to_none)

    def from_string(self, source: Union[str, nodes.Template], globals: Optional[MutableMapping[str, Any]] = None) -> "Template":
        """Шаблон из строки (без имени и загрузчика)."""
        return self.compile(source, globals=globals)

    def make_globals(self, d: Optional[MutableMapping[str, Any]]) -> MutableMapping[str, Any]:
        """Глобальные значения шаблона поверх глобальных значений окружения."""
        return ChainMap(d if d is not None else {}, self.globals)

    # ---------------- Загрузка ----------------

    def join_path(self, template: str, parent: Optional[str]) -> str:
        """Имя шаблона с учётом ``./``/``../`` относительно родителя."""
        if parent is None or not isinstance(template, str):
            return template
        return join_relative(template, parent)

    def get_template(
        self,
        name: Union[str, "Template", Undefined],
        parent: Optional[str] = None,
        globals: Optional[MutableMapping[str, Any]] = None,
    ) -> "Template":
        """
        Загружает шаблон через загрузчик и кэш.

        Raises:
            TemplateNotFound: Загрузчик не нашёл шаблон
            UndefinedError: Вместо имени передано неопределённое значение
        """
        if isinstance(name, Template):
            return name
        if is_undefined(name):
            name._fail_with_undefined_error()  # type: ignore[union-attr]
        if parent is not None:
            name = self.join_path(name, parent)  # type: ignore[arg-type]
        return self._load_template(name, globals)  # type: ignore[arg-type]

    def select_template(
        self,
        names: Iterable[Union[str, "Template", Undefined]],
        parent: Optional[str] = None,
        globals: Optional[MutableMapping[str, Any]] = None,
    ) -> "Template":
        """
        Первый найденный шаблон из списка имён.

        Raises:
            TemplatesNotFound: Ни один шаблон не найден (или список пуст)
        """
        names = list(names)
        if not names:
            raise TemplatesNotFound(message="Tried to select from an empty list of templates.")
        for name in names:
            if isinstance(name, Template):
                return name
            if is_undefined(name):
                continue
            if parent is not None:
                name = self.join_path(name, parent)  # type: ignore[arg-type]
            try:
                return self._load_template(name, globals)  # type: ignore[arg-type]
            except (TemplateNotFound, UndefinedError):
                pass
        raise TemplatesNotFound(names)

    def get_or_select_template(
        self,
        template_name_or_list: Union[str, "Template", Sequence[Union[str, "Template"]]],
        parent: Optional[str] = None,
        globals: Optional[MutableMapping[str, Any]] = None,
    ) -> "Template":
        if isinstance(template_name_or_list, (str, Undefined, Template)):
            return self.get_template(template_name_or_list, parent, globals)
        return self.select_template(template_name_or_list, parent, globals)

    def list_templates(
        self,
        extensions: Optional[Collection[str]] = None,
        filter_func: Optional[Callable[[str], bool]] = None,
    ) -> List[str]:
        """
        Имена шаблонов загрузчика, отфильтрованные по расширению или функции.

        Raises:
            TypeError: Загрузчик не задан или не умеет перечислять шаблоны
        """
        if self.loader is None:
            raise TypeError("no loader for this environment specified")
        names = self.loader.list_templates()
        if extensions is not None:
            if filter_func is not None:
                raise TypeError("either extensions or filter_func can be passed, but not both")
            suffixes = tuple(f".{x.lstrip('.')}" for x in extensions)
            return [name for name in names if name.endswith(suffixes)]
        if filter_func is not None:
            return [name for name in names if filter_func(name)]
        return names

    def clear_cache(self) -> None:
        self.cache.clear()

    def _load_template(self, name: str, globals: Optional[MutableMapping[str, Any]]) -> "Template":
        if self.loader is None:
            raise TypeError("no loader for this environment specified")
        cached = self.cache.get(name)
        if cached is not None:
            if not self.auto_reload or self._is_fresh(cached):
                return self._with_globals(cached, globals)
            logger.debug(f"Template {name!r} is stale, reloading")
            self.cache.invalidate(name)
        loaded = self.loader.get_source(self, name)
        template = self.compile(loaded.source, name, loaded.filename)
        template.mtime = loaded.mtime
        if loaded.mtime is not None:
            template.uptodate = lambda: self.loader.get_mtime(self, name) == loaded.mtime  # type: ignore[union-attr]
        self.cache.put(name, template)
        return self._with_globals(template, globals)

    def _with_globals(self, template: "Template", globals: Optional[MutableMapping[str, Any]]) -> "Template":
        """
        Шаблон из кэша с глобальными значениями одного вызова.

        Закэшированный экземпляр не меняется: значения вызова видит только
        возвращённая копия, разделяющая с ним AST.
        """
        if not globals:
            return template
        view = Template(self, template.root, template.name, template.filename, self.make_globals(globals))
        view.mtime = template.mtime
        view.uptodate = template.uptodate
        return view

    def _is_fresh(self, template: "Template") -> bool:
        """Шаблон и закэшированные родители его цепочки ``extends`` не изменились."""
        if not template.is_up_to_date():
            return False
        seen = {template.name}
        current = template
        while current.parent_name is not None:
            name = self.join_path(current.parent_name, current.name)
            if name in seen:
                break
            seen.add(name)
            parent = self.cache.get(name)
            if parent is None:
                break
            if not parent.is_up_to_date():
                logger.debug(f"Parent template {name!r} of {template.name!r} changed")
                return False
            current = parent
        return True


class Template:
    """
    Скомпилированный шаблон.

    Attributes:
        environment: Окружение, которым шаблон скомпилирован
        root: Корень AST
        name: Имя шаблона (None для ``from_string``)
        filename: Имя файла, если известно
        globals: Глобальные значения шаблона
        blocks: Блоки шаблона по именам
        parent_name: Имя родителя из статического ``{% extends %}``
        mtime: Время модификации исходника при загрузке
    """

    def __init__(
        self,
        environment: Environment,
        root: nodes.Template,
        name: Optional[str] = None,
        filename: Optional[str] = None,
        globals: Optional[MutableMapping[str, Any]] = None,
    ):
        self.environment = environment
        self.root = root
        self.name = name
        self.filename = filename
        self.globals: MutableMapping[str, Any] = globals if globals is not None else environment.make_globals(None)
        self.blocks = collect_blocks(root)
        self.parent_name = parent_name(root)
        self.mtime: Optional[float] = None
        self.uptodate: Optional[Callable[[], bool]] = None
        self._module: Optional[TemplateModule] = None

    def is_up_to_date(self) -> bool:
        return self.uptodate is None or self.uptodate()

    # ---------------- Контекст ----------------

    def new_context(
        self,
        vars: Optional[Mapping[str, Any]] = None,
        shared: bool = False,
        locals: Optional[Mapping[str, Any]] = None,
        state: Optional[RenderState] = None,
    ) -> Context:
        """
        Новый контекст рендеринга.

        Args:
            vars: Переменные вызова
            shared: Использовать только ``vars``, без глобальных значений
            locals: Дополнительные значения поверх ``vars``
            state: Состояние рендеринга (разделяется с включающим шаблоном)
        """
        parent: Dict[str, Any] = dict(vars or {}) if shared else {**self.globals, **(vars or {})}
        if locals:
            parent.update((k, v) for k, v in locals.items() if v is not missing)
        if state is None:
            state = RenderState(self.environment.policy, self.environment.max_recursion_depth)
        return Context(
            self.environment,
            parent,
            self.name,
            own_block_chains(self.name, self.blocks),
            state,
            EvalContext(self.environment, self.name),
        )

    # ---------------- Рендеринг ----------------

    def render(self, *args: Any, **kwargs: Any) -> str:
        """
        Рендерит шаблон в строку. Аргументы - как у ``dict``.

        Raises:
            TemplateRuntimeError: Ошибка при вычислении
        """
        return "".join(self.generate(*args, **kwargs))

    def generate(self, *args: Any, **kwargs: Any) -> Iterator[str]:
        """Рендерит шаблон по частям."""
        ctx = self.new_context(dict(*args, **kwargs))
        return self._charged(self.environment.evaluator.root_render(self, ctx), ctx.state)

    def render_to(self, sink: IO[str], *args: Any, buffered: bool = True, **kwargs: Any) -> int:
        """
        Рендерит шаблон в поток и возвращает число записанных символов.

        При ``buffered=True`` в поток попадает только полностью готовый
        результат: ошибка рендеринга не оставляет в нём частичного вывода.
        """
        chunks = self.generate(*args, **kwargs)
        if buffered:
            return write_buffered(chunks, sink)
        written = 0
        for chunk in chunks:
            sink.write(chunk)
            written += len(chunk)
        return written

    def stream(self, *args: Any, **kwargs: Any) -> TemplateStream:
        return TemplateStream(self.generate(*args, **kwargs))

    def render_block(self, name: str, *args: Any, **kwargs: Any) -> str:
        """
        Рендерит один блок (с учётом родителей шаблона).

        Raises:
            TemplateRuntimeError: Блока нет в иерархии
        """
        ctx = self.new_context(dict(*args, **kwargs))
        chunks = self.environment.evaluator.render_block(self, ctx, name)
        return "".join(self._charged(chunks, ctx.state))

    @staticmethod
    def _charged(chunks: Iterator[str], state: RenderState) -> Iterator[str]:
        for chunk in chunks:
            state.charge_output(len(chunk))
            yield chunk

    # ---------------- Модули ----------------

    def make_module(
        self,
        vars: Optional[Mapping[str, Any]] = None,
        shared: bool = False,
        locals: Optional[Mapping[str, Any]] = None,
    ) -> TemplateModule:
        """Исполняет шаблон и возвращает его экспортированные имена как модуль."""
        ctx = self.new_context(vars, shared, locals)
        return self.environment.evaluator.make_module(self, ctx)

    @property
    def module(self) -> TemplateModule:
        """Модуль шаблона без переменных (кэшируется)."""
        if self._module is None:
            self._module = self.make_module()
        return self._module

    def __repr__(self) -> str:
        name = repr(self.name) if self.name is not None else "memory:" + hex(id(self))
        return f"<{type(self).__name__} {name}>"


class TemplateExpression:
    """
    Результат ``Environment.compile_expression``: вызывается с переменными
    и возвращает значение выражения.
    """

    def __init__(self, template: Template, undefined_to_none: bool):
        self._template = template
        self._undefined_to_none = undefined_to_none

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        ctx = self._template.new_context(dict(*args, **kwargs))
        for _ in self._template.environment.evaluator.root_render(self._template, ctx):
            pass
        rv = ctx.root.get("result")
        if self._undefined_to_none and is_undefined(rv):
            return None
        return rv


__all__ = ["Environment", "Template", "TemplateExpression"]
