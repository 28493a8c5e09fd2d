"""
Manifest Resolver.

A manifest is an ordered tree of compilation units. Leaves carry a mode tag
(host, target or both); directories prefix their name onto every descendant.
Declaration order is compilation order, so resolution never reorders.
"""
import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, List, Sequence, Tuple, Union

from ouroboros.errors import ManifestError
from ouroboros.loader import load


class Mode(str, Enum):
    HOST = "host"
    TARGET = "target"
    BOTH = "both"


BUILD_MODES = (Mode.HOST, Mode.TARGET)


@dataclass(frozen=True)
class Leaf:
    name: str
    mode: Mode

    def qualifies(self, mode: Mode) -> bool:
        return self.mode is mode or self.mode is Mode.BOTH


@dataclass(frozen=True)
class Dir:
    name: str
    children: Tuple["Node", ...]


Node = Union[Leaf, Dir]
Manifest = Tuple[Node, ...]


def _check_name(name: Any, scope: str) -> str:
    if not isinstance(name, str) or not name:
        raise ManifestError(f"{scope}: entry name must be a non-empty string, got {name!r}")
    if "/" in name or "\\" in name or name in (".", ".."):
        raise ManifestError(f"{scope}: entry name {name!r} must be a single path component")
    return name


def parse_manifest(raw: Sequence[Any], scope: str = "<root>") -> Manifest:
    """
    Convert the nested-list manifest literal into a typed tree.

    Each entry is ``[name, tag]`` for a leaf or ``[name, [entries...]]`` for a
    directory.

    Raises:
        ManifestError: on a malformed entry, unknown tag or duplicate name.
    """
    if not isinstance(raw, (list, tuple)):
        raise ManifestError(f"{scope}: manifest must be a list, got {type(raw).__name__}")

    nodes: List[Node] = []
    seen = set()
    for entry in raw:
        if not isinstance(entry, (list, tuple)) or len(entry) != 2:
            raise ManifestError(f"{scope}: entry must be a [name, tag] pair, got {entry!r}")
        name = _check_name(entry[0], scope)
        if name in seen:
            raise ManifestError(f"{scope}: duplicate entry {name!r}")
        seen.add(name)

        body = entry[1]
        if isinstance(body, (list, tuple)):
            child_scope = name if scope == "<root>" else f"{scope}/{name}"
            nodes.append(Dir(name, parse_manifest(body, child_scope)))
        else:
            try:
                mode = Mode(body)
            except (ValueError, TypeError):
                raise ManifestError(f"{scope}: entry {name!r} has unknown tag {body!r}") from None
            nodes.append(Leaf(name, mode))
    return tuple(nodes)


def load_manifest(path) -> Manifest:
    """Read and parse a JSON manifest file."""
    text = load(path)
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise ManifestError(f"{path}: invalid manifest JSON: {e}") from e
    return parse_manifest(raw)


def _build_mode(mode: Union[Mode, str]) -> Mode:
    try:
        mode = Mode(mode)
    except (ValueError, TypeError):
        raise ManifestError(f"Unknown build mode: {mode!r}") from None
    if mode not in BUILD_MODES:
        raise ManifestError(f"Build mode must be host or target, not {mode.value!r}")
    return mode


def resolve(manifest: Manifest, mode: Union[Mode, str]) -> List[str]:
    """
    Return the unit stems needed for ``mode``, depth-first in declaration order.

    >>> resolve(parse_manifest([["a", "target"], ["b", [["c", "host"]]]]), "host")
    ['b/c']
    """
    mode = _build_mode(mode)
    units: List[str] = []

    def walk(nodes: Manifest, prefix: str):
        for node in nodes:
            if isinstance(node, Dir):
                walk(node.children, f"{prefix}{node.name}/")
            elif node.qualifies(mode):
                units.append(f"{prefix}{node.name}")

    walk(manifest, "")
    return units


def unit_path(root, stem: str, suffix: str) -> Path:
    *dirs, name = stem.split("/")
    return Path(root).joinpath(*dirs, name + suffix)


def source_paths(manifest: Manifest, mode: Union[Mode, str], root, suffix: str) -> List[Path]:
    """Map resolved unit stems onto files under ``root`` with ``suffix``."""
    return [unit_path(root, stem, suffix) for stem in resolve(manifest, mode)]
