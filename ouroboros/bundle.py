"""
Bundle Assembler.

Every artifact has the same shell: an optional interpreter line, a fixed
preamble that opens the module function, the emitted fragments, and a fixed
trailer that calls it with the shared ``values`` and ``internals`` tables.
"""
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable

from ouroboros.config import settings
from ouroboros.errors import BuildIOError

logger = logging.getLogger("ouroboros.bundle")

PREAMBLE = (
    "var OUROBOROS = (function (root) {\n"
    "  root.OUROBOROS = root.OUROBOROS || {values: {}, internals: {literals: {}}};\n"
    "  return root.OUROBOROS;\n"
    "})(typeof globalThis !== 'undefined' ? globalThis : this);\n"
    "if (typeof module !== 'undefined' && module.exports) { module.exports = OUROBOROS; }\n"
    "(function (values, internals) {\n"
    "'use strict';\n"
)

TRAILER = "})(OUROBOROS.values, OUROBOROS.internals);\n"


def render(outputs: Iterable[str], shebang: bool = False, interpreter: str = None) -> str:
    parts = []
    if shebang:
        parts.append(f"#!{interpreter or settings.INTERPRETER}\n")
    parts.append(PREAMBLE)
    parts.extend(outputs)
    parts.append(TRAILER)
    return "".join(parts)


def assemble(outputs: Iterable[str], target_path, shebang: bool = False, interpreter: str = None) -> Path:
    """
    Write a finished artifact, replacing any file at ``target_path``.

    The text goes to a temporary sibling first and is renamed into place, so
    readers never see a half-written artifact.

    Raises:
        BuildIOError: if the artifact cannot be written.
    """
    target_path = Path(target_path)
    text = render(outputs, shebang=shebang, interpreter=interpreter)

    tmp_name = None
    try:
        target_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{target_path.name}.", dir=str(target_path.parent))
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(text)
        os.chmod(tmp_name, 0o755 if shebang else 0o644)
        os.replace(tmp_name, target_path)
    except OSError as e:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise BuildIOError(target_path, f"cannot write artifact: {e}") from e

    logger.info(f"Wrote {target_path} ({len(text)} chars)")
    return target_path
