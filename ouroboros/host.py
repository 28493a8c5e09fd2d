"""
Host Bootstrap Phase.

Host units are Python sources. Each one is compiled with the builtin
``compile`` and executed into a single shared module, the host image, in
manifest order, so a unit can use every name defined by the units before it.
The finished image must expose the collaborator entry points.
"""
import logging
import sys
import types
from pathlib import Path
from typing import Any, Callable, List, Optional

from ouroboros.config import settings
from ouroboros.environment import Environment
from ouroboros.errors import CompileError, HostBootstrapError
from ouroboros.loader import load
from ouroboros.manifest import Manifest, Mode, source_paths
from ouroboros.protocol import ReadResult

logger = logging.getLogger("ouroboros.host")

IMAGE_NAME = "ouroboros_host_image"
REQUIRED_ENTRY_POINTS = ("read_form", "compile_toplevel", "compile_expression")


class HostCompiler:
    """The compiler produced by the host phase, handed explicitly to the target phase."""

    def __init__(self, image: types.ModuleType, units: List[Path]):
        self.image = image
        self.units = list(units)
        missing = [name for name in REQUIRED_ENTRY_POINTS if not callable(getattr(image, name, None))]
        if missing:
            raise HostBootstrapError(
                image.__name__,
                f"host image does not define {', '.join(missing)}",
            )
        self._read_form: Callable = image.read_form
        self._compile_toplevel: Callable = image.compile_toplevel
        self._compile_expression: Callable = image.compile_expression
        self._make_environment: Optional[Callable] = getattr(image, "make_environment", None)

    def read_form(self, text: str, cursor: int) -> ReadResult:
        return self._read_form(text, cursor)

    def compile_toplevel(self, form: Any, environment: Environment) -> str:
        return self._compile_toplevel(form, environment)

    def compile_expression(self, form: Any, environment: Environment) -> str:
        return self._compile_expression(form, environment)

    def make_environment(self) -> Environment:
        if self._make_environment is None:
            return Environment()
        return self._make_environment()

    def __repr__(self):
        return f"<HostCompiler {self.image.__name__} units={len(self.units)}>"


def load_unit(image: types.ModuleType, path: Path):
    """Natively compile one host unit and execute it into ``image``."""
    source = load(path)
    try:
        code = compile(source, str(path), "exec")
    except SyntaxError as e:
        raise CompileError(str(path), f"syntax error: {e.msg}", line=e.lineno, column=e.offset) from e

    image.__file__ = str(path)
    try:
        exec(code, image.__dict__)
    except Exception as e:
        raise CompileError(str(path), f"failed to load: {type(e).__name__}: {e}") from e


def bootstrap_host(
    manifest: Manifest,
    root=None,
    suffix: str = None,
    image_name: str = IMAGE_NAME,
) -> HostCompiler:
    """
    Load every host unit of ``manifest`` into a fresh image.

    Stops at the first failure; units already executed are not unloaded.

    Raises:
        BuildIOError: a unit could not be read.
        CompileError: a unit failed to compile or execute.
        HostBootstrapError: the image lacks a collaborator entry point.
    """
    root = Path(root if root is not None else settings.SOURCE_ROOT)
    suffix = suffix or settings.HOST_SUFFIX

    image = types.ModuleType(image_name)
    # Registered up front: dataclasses and typing resolve names through sys.modules.
    sys.modules[image_name] = image

    units = source_paths(manifest, Mode.HOST, root, suffix)
    logger.info(f"Host phase: loading {len(units)} units from {root}")
    for path in units:
        logger.debug(f"  + host unit {path}")
        load_unit(image, path)

    compiler = HostCompiler(image, units)
    logger.info("Host phase complete")
    return compiler
