"""
Парсер шаблонов: поток токенов → AST.
"""

from __future__ import annotations

from .core import STATEMENT_HANDLERS, Parser
from .i18n import trim_whitespace

__all__ = ["Parser", "STATEMENT_HANDLERS", "trim_whitespace"]
