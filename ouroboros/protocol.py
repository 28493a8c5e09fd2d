"""
Collaborator boundary between the pipeline and the compiler it bootstraps.

The pipeline never interprets forms. It only moves them from ``read_form``
to ``compile_toplevel`` and strings the results together.
"""
from typing import Any, Protocol, Tuple, Union

from ouroboros.environment import Environment


class EndOfInput:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "EOF"

    def __reduce__(self):
        return (EndOfInput, ())


EOF = EndOfInput()

ReadResult = Union[Tuple[Any, int], EndOfInput]


class Compiler(Protocol):
    def read_form(self, text: str, cursor: int) -> ReadResult:
        """Return ``(form, next_cursor)`` or ``EOF``."""

    def compile_toplevel(self, form: Any, environment: Environment) -> str:
        """Compile one top-level form, possibly mutating ``environment``."""

    def compile_expression(self, form: Any, environment: Environment) -> str:
        """Compile a form in expression position (used for evaluate-on-load payloads)."""

    def make_environment(self) -> Environment:
        ...
