"""
Лексер шаблонов: конечный автомат, типы токенов и поток токенов.
"""

from __future__ import annotations

from .lexer import Lexer, LexerConfig, LexerState
from .tokens import Token, TokenStream, TokenType

__all__ = [
    "Lexer",
    "LexerConfig",
    "LexerState",
    "Token",
    "TokenStream",
    "TokenType",
]
