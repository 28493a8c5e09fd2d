"""
Target Bootstrap Phase.

Cross-compiles the target units in manifest order against one fresh
environment, then the entry unit, which must see every binding.
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from ouroboros.config import settings
from ouroboros.cross import compile_file
from ouroboros.environment import Environment
from ouroboros.manifest import Manifest, Mode, resolve, unit_path
from ouroboros.protocol import Compiler

logger = logging.getLogger("ouroboros.target")

CONFIGURED_ENTRY = object()


@dataclass
class TargetBuild:
    output: str
    environment: Environment
    units: List[str] = field(default_factory=list)


def plan_units(manifest: Manifest, entry: Optional[str] = None) -> List[str]:
    """Target unit stems in compilation order, entry unit last."""
    units = resolve(manifest, Mode.TARGET)
    if entry is None:
        return units
    return [stem for stem in units if stem != entry] + [entry]


def bootstrap_target(
    manifest: Manifest,
    compiler: Compiler,
    root=None,
    suffix: str = None,
    entry: Optional[str] = CONFIGURED_ENTRY,
) -> TargetBuild:
    """
    Produce the target implementation as emitted text.

    ``entry`` defaults to the configured entry unit; pass ``None`` to compile
    the manifest strictly as declared.

    Raises:
        BuildIOError, CompileError: from the first unit that fails. Later
        units are never processed.
    """
    root = Path(root if root is not None else settings.SOURCE_ROOT)
    suffix = suffix or settings.TARGET_SUFFIX
    if entry is CONFIGURED_ENTRY:
        entry = settings.ENTRY_UNIT

    environment = compiler.make_environment()
    units = plan_units(manifest, entry)
    logger.info(f"Target phase: cross-compiling {len(units)} units")

    output: List[str] = []
    for stem in units:
        path = unit_path(root, stem, suffix)
        logger.debug(f"  + target unit {stem}")
        output.append(compile_file(path, environment, compiler, unit=stem))

    logger.info(
        f"Target phase complete: {len(environment)} bindings, counters {environment.counters.as_dict()}"
    )
    return TargetBuild("".join(output), environment, units)
