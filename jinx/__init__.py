"""
jinx: шаблонизатор в стиле Jinja (лексер → парсер → AST → интерпретатор).
"""

from __future__ import annotations

from .cache import LRUTemplateCache, TemplateCache
from .environment import Environment, Template, TemplateExpression
from .errors import (
    CircularInheritanceError,
    FilterArgumentError,
    LexerError,
    MacroArgumentError,
    RecursionLimitError,
    SecurityError,
    TemplateAssertionError,
    TemplateError,
    TemplateNotFound,
    TemplateRuntimeError,
    TemplatesNotFound,
    TemplateSyntaxError,
    UndefinedError,
)
from .ext import Extension
from .loaders import (
    BaseLoader,
    ChoiceLoader,
    DictLoader,
    FileSystemLoader,
    FunctionLoader,
    PrefixLoader,
    TemplateSource,
)
from .runtime.markup import Markup, escape, select_autoescape
from .runtime.undefined import ChainableUndefined, DebugUndefined, StrictUndefined, Undefined, is_undefined
from .sandbox import SandboxPolicy, SecurityPolicy
from .utils import pass_context, pass_environment, pass_eval_context

__all__ = [
    "Environment",
    "Template",
    "TemplateExpression",
    "TemplateCache",
    "LRUTemplateCache",
    "BaseLoader",
    "DictLoader",
    "FunctionLoader",
    "FileSystemLoader",
    "PrefixLoader",
    "ChoiceLoader",
    "TemplateSource",
    "Extension",
    "SandboxPolicy",
    "SecurityPolicy",
    "Undefined",
    "ChainableUndefined",
    "DebugUndefined",
    "StrictUndefined",
    "is_undefined",
    "Markup",
    "escape",
    "select_autoescape",
    "pass_context",
    "pass_eval_context",
    "pass_environment",
    "TemplateError",
    "TemplateSyntaxError",
    "LexerError",
    "TemplateAssertionError",
    "TemplateNotFound",
    "TemplatesNotFound",
    "TemplateRuntimeError",
    "UndefinedError",
    "FilterArgumentError",
    "MacroArgumentError",
    "RecursionLimitError",
    "CircularInheritanceError",
    "SecurityError",
]
