"""
Cross Compiler driver.

A loop around the two collaborator operations: read the next top-level form,
compile it against the environment, keep the non-empty output. The first
failure aborts the unit.
"""
import logging
from pathlib import Path
from typing import List, Tuple

from ouroboros.environment import Environment
from ouroboros.errors import CompileError
from ouroboros.loader import load
from ouroboros.protocol import EOF, Compiler

logger = logging.getLogger("ouroboros.cross")


def location(text: str, cursor: int) -> Tuple[int, int]:
    """1-based line and column of ``cursor`` in ``text``."""
    cursor = max(0, min(cursor, len(text)))
    line = text.count("\n", 0, cursor) + 1
    column = cursor - (text.rfind("\n", 0, cursor) + 1) + 1
    return line, column


def _form_start(text: str, cursor: int) -> int:
    # Reports point at the form, not at the whitespace before it.
    while cursor < len(text) and text[cursor].isspace():
        cursor += 1
    return cursor


def compile_unit(text: str, environment: Environment, compiler: Compiler, unit: str = "<unknown>") -> str:
    """
    Compile every top-level form of ``text`` in order.

    Raises:
        CompileError: if reading or compiling any form fails.
    """
    output: List[str] = []
    cursor = 0
    forms = 0

    while True:
        try:
            result = compiler.read_form(text, cursor)
        except CompileError:
            raise
        except Exception as e:
            line, column = location(text, _form_start(text, cursor))
            raise CompileError(unit, f"read failed: {e}", line=line, column=column) from e

        if result is EOF:
            break
        form, next_cursor = result
        if next_cursor <= cursor:
            line, column = location(text, cursor)
            raise CompileError(unit, "reader did not advance", form=form, line=line, column=column)

        try:
            emitted = compiler.compile_toplevel(form, environment)
        except CompileError:
            raise
        except Exception as e:
            line, column = location(text, _form_start(text, cursor))
            raise CompileError(unit, str(e) or type(e).__name__, form=form, line=line, column=column) from e

        if emitted:
            output.append(emitted)
        forms += 1
        cursor = next_cursor

    logger.debug(f"Compiled {unit}: {forms} forms, {len(output)} emitted")
    return "".join(output)


def compile_file(path, environment: Environment, compiler: Compiler, unit: str = None) -> str:
    """Load ``path`` and cross-compile it."""
    path = Path(path)
    return compile_unit(load(path), environment, compiler, unit or str(path))
