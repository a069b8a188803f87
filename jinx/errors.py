"""
Exception hierarchy for the template engine.

Every failure the engine reports to its caller inherits from TemplateError.
Syntax-level errors carry the position in the source; runtime errors carry
the position of the innermost node that was being evaluated plus a short
``kind`` tag that groups related failures (undefined, arithmetic, security ...).

Programming errors inside the engine itself are NOT wrapped, they propagate
with their original tracebacks.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Union


class TemplateError(Exception):
    """
    Base class for all errors raised by the template engine.
    """

    def __init__(self, message: Optional[str] = None):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message or ""


def _location(lineno: Optional[int], column: Optional[int], name: Optional[str]) -> str:
    parts: List[str] = []
    if name:
        parts.append(f"template '{name}'")
    if lineno is not None:
        where = f"line {lineno}"
        if column is not None:
            where += f", column {column}"
        parts.append(where)
    return f" ({', '.join(parts)})" if parts else ""


class TemplateSyntaxError(TemplateError):
    """
    The template source could not be tokenized or parsed.
    """

    def __init__(
        self,
        message: str,
        lineno: int,
        column: Optional[int] = None,
        name: Optional[str] = None,
        filename: Optional[str] = None,
    ):
        super().__init__(message)
        self.lineno = lineno
        self.column = column
        self.name = name
        self.filename = filename
        self.source: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.message}{_location(self.lineno, self.column, self.name or self.filename)}"

    def __reduce__(self):  # type: ignore[override]
        return self.__class__, (self.message, self.lineno, self.column, self.name, self.filename)


class LexerError(TemplateSyntaxError):
    """
    Malformed source at the character level: unterminated construct,
    unexpected character, unbalanced brackets, invalid identifier.
    """


class TemplateAssertionError(TemplateSyntaxError):
    """
    The source is grammatically valid but violates a semantic rule
    checked while parsing (duplicate bindings, argument ordering,
    restricted import names, misplaced statements).
    """


class TemplateNotFound(TemplateError, LookupError):
    """
    A loader could not resolve a template name.
    """

    def __init__(self, name: Optional[str], message: Optional[str] = None):
        if message is None:
            message = f"Template not found: {name}"
        super().__init__(message)
        self.name = name
        self.templates: List[str] = [name] if name is not None else []


class TemplatesNotFound(TemplateNotFound):
    """
    None of the candidate names passed to a template selection resolved.
    """

    def __init__(self, names: Sequence[Union[str, object]] = (), message: Optional[str] = None):
        names_list = [str(n) for n in names]
        if message is None:
            message = "None of the templates given were found: " + ", ".join(names_list)
        super().__init__(names_list[-1] if names_list else None, message)
        self.templates = names_list


class TemplateRuntimeError(TemplateError):
    """
    A failure while evaluating a compiled template.

    ``kind`` groups failures: "undefined", "type", "arithmetic", "lookup",
    "filter", "binding", "recursion", "inheritance", "security", "template".
    """

    default_kind = "template"

    def __init__(
        self,
        message: Optional[str] = None,
        lineno: Optional[int] = None,
        column: Optional[int] = None,
        name: Optional[str] = None,
        kind: Optional[str] = None,
    ):
        super().__init__(message)
        self.lineno = lineno
        self.column = column
        self.name = name
        self.kind = kind or self.default_kind

    def locate(self, lineno: Optional[int], column: Optional[int], name: Optional[str]) -> "TemplateRuntimeError":
        """Attach a position unless one is already known; returns self."""
        if self.lineno is None and lineno is not None:
            self.lineno = lineno
            self.column = column
        if self.name is None:
            self.name = name
        return self

    def __str__(self) -> str:
        return f"{self.message or ''}{_location(self.lineno, self.column, self.name)}"


class UndefinedError(TemplateRuntimeError):
    """An undefined value was used in a way the undefined policy forbids."""

    default_kind = "undefined"


class FilterArgumentError(TemplateRuntimeError):
    """A filter, test or global was called with bad arguments or is unknown."""

    default_kind = "filter"


class MacroArgumentError(TemplateRuntimeError):
    """Call-site arguments could not be bound to a macro signature."""

    default_kind = "binding"


class RecursionLimitError(TemplateRuntimeError):
    """The configured maximum call depth was exceeded."""

    default_kind = "recursion"


class CircularInheritanceError(TemplateRuntimeError):
    """An ``extends`` chain refers back to one of its own members."""

    default_kind = "inheritance"

    def __init__(self, chain: Sequence[str]):
        self.chain = list(chain)
        super().__init__("Circular template inheritance: " + " -> ".join(self.chain))


class SecurityError(TemplateRuntimeError):
    """The security policy denied an operation."""

    default_kind = "security"


__all__ = [
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
