"""
Error taxonomy for the bootstrap pipeline.

Every error is fatal to the run that raised it. Nothing here is retried.
"""
from typing import Any, Optional


class OuroborosError(Exception):
    """Base class for every failure raised by the pipeline."""


class BuildIOError(OuroborosError):
    """A source could not be read or an artifact could not be written."""

    def __init__(self, path, reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{self.path}: {reason}")


class ManifestError(OuroborosError):
    """Malformed manifest entry or unsupported build mode."""


class CompileError(OuroborosError):
    """
    The compiler rejected a unit.

    Carries the unit name and, when known, the offending form and the
    line/column where it starts.
    """

    def __init__(
        self,
        unit: str,
        message: str,
        form: Any = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ):
        self.unit = unit
        self.message = message
        self.form = form
        self.line = line
        self.column = column
        super().__init__(self._describe())

    def _describe(self) -> str:
        where = self.unit
        if self.line is not None:
            where += f":{self.line}"
            if self.column is not None:
                where += f":{self.column}"
        text = f"{where}: {self.message}"
        if self.form is not None:
            shown = repr(self.form)
            if len(shown) > 80:
                shown = shown[:77] + "..."
            text += f" (in form {shown})"
        return text


class HostBootstrapError(CompileError):
    """The host image loaded but does not expose a usable compiler."""


class EnvironmentFrozenError(OuroborosError):
    """Attempt to mutate or re-serialize a frozen compile-time environment."""


class MetadataError(OuroborosError):
    """Project metadata (version key) missing or unreadable."""
