from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Type, Union

from ..environment import Environment
from ..loaders import FileSystemLoader
from ..runtime.undefined import ChainableUndefined, DebugUndefined, StrictUndefined, Undefined
from ..sandbox import SandboxPolicy

UndefinedName = Literal["default", "strict", "chainable", "debug"]

UNDEFINED_POLICIES: Dict[str, Type[Undefined]] = {
    "default": Undefined,
    "strict": StrictUndefined,
    "chainable": ChainableUndefined,
    "debug": DebugUndefined,
}


@dataclass
class SyntaxConfig:
    """Ограничители и управление пробелами."""
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
    newline_sequence: Literal["\n", "\r\n", "\r"] = "\n"
    keep_trailing_newline: bool = False


@dataclass
class SandboxConfig:
    """Секция ``sandbox``: поля ``SandboxPolicy``."""
    allowed_filters: List[str] = field(default_factory=list)
    blocked_filters: List[str] = field(default_factory=list)
    filter_whitelist: bool = False
    allowed_functions: List[str] = field(default_factory=list)
    blocked_functions: List[str] = field(default_factory=list)
    function_whitelist: bool = False
    blocked_attributes: List[str] = field(default_factory=list)
    allow_private_attributes: bool = False
    allow_method_calls: bool = True
    immutable: bool = False
    max_recursion_depth: Optional[int] = None
    max_memory_items: Optional[int] = None
    max_output_size: Optional[int] = None
    max_execution_time: Optional[float] = None

    def to_policy(self) -> SandboxPolicy:
        return SandboxPolicy(
            allowed_filters=frozenset(self.allowed_filters),
            blocked_filters=frozenset(self.blocked_filters),
            filter_whitelist=self.filter_whitelist,
            allowed_functions=frozenset(self.allowed_functions),
            blocked_functions=frozenset(self.blocked_functions),
            function_whitelist=self.function_whitelist,
            blocked_attributes=frozenset(self.blocked_attributes),
            allow_private_attributes=self.allow_private_attributes,
            allow_method_calls=self.allow_method_calls,
            immutable=self.immutable,
            max_recursion_depth=self.max_recursion_depth,
            max_memory_items=self.max_memory_items,
            max_output_size=self.max_output_size,
            max_execution_time=self.max_execution_time,
        )


@dataclass
class EnvironmentConfig:
    """
    Настройки окружения из файла конфигурации.

    ``search_path`` после загрузки из файла содержит абсолютные пути
    (относительные разрешаются от каталога файла конфигурации).
    """
    search_path: List[str] = field(default_factory=lambda: ["."])
    encoding: str = "utf-8"
    ignore: List[str] = field(default_factory=list)
    syntax: SyntaxConfig = field(default_factory=SyntaxConfig)
    autoescape: Union[bool, List[str]] = False
    undefined: UndefinedName = "default"
    optimized: bool = True
    auto_reload: bool = True
    cache_size: int = 400
    enable_async: bool = False
    max_recursion_depth: int = 100
    i18n_trimmed: bool = False
    extensions: List[str] = field(default_factory=list)
    sandbox: Optional[SandboxConfig] = None

    def create_environment(self, **overrides: object) -> Environment:
        """
        Окружение с ``FileSystemLoader`` над ``search_path``.

        Args:
            overrides: Параметры ``Environment``, заменяющие значения из конфигурации
        """
        syntax = self.syntax
        options: Dict[str, object] = {
            "block_start_string": syntax.block_start_string,
            "block_end_string": syntax.block_end_string,
            "variable_start_string": syntax.variable_start_string,
            "variable_end_string": syntax.variable_end_string,
            "comment_start_string": syntax.comment_start_string,
            "comment_end_string": syntax.comment_end_string,
            "line_statement_prefix": syntax.line_statement_prefix,
            "line_comment_prefix": syntax.line_comment_prefix,
            "trim_blocks": syntax.trim_blocks,
            "lstrip_blocks": syntax.lstrip_blocks,
            "newline_sequence": syntax.newline_sequence,
            "keep_trailing_newline": syntax.keep_trailing_newline,
            "loader": FileSystemLoader(self.search_path, encoding=self.encoding, ignore=self.ignore),
            "autoescape": self.autoescape,
            "undefined": UNDEFINED_POLICIES[self.undefined],
            "optimized": self.optimized,
            "auto_reload": self.auto_reload,
            "cache_size": self.cache_size,
            "enable_async": self.enable_async,
            "max_recursion_depth": self.max_recursion_depth,
            "i18n_trimmed": self.i18n_trimmed,
            "extensions": list(self.extensions),
            "policy": self.sandbox.to_policy() if self.sandbox is not None else None,
        }
        options.update(overrides)
        return Environment(**options)  # type: ignore[arg-type]


__all__ = ["EnvironmentConfig", "SyntaxConfig", "SandboxConfig", "UNDEFINED_POLICIES"]
