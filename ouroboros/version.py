"""Project version, read from the ``version = "..."`` key of the metadata file."""
import json
import re

from ouroboros.errors import MetadataError
from ouroboros.loader import load

VERSION_RE = re.compile(r'^\s*version\s*=\s*"([^"]*)"', re.MULTILINE)


def read_version(path) -> str:
    """
    Return the quoted value of the first ``version`` key in ``path``.

    Raises:
        BuildIOError: the file cannot be read.
        MetadataError: no version key.
    """
    match = VERSION_RE.search(load(path))
    if match is None:
        raise MetadataError(f"{path}: no version key found")
    return match.group(1)


def version_fragment(version: str) -> str:
    return f"internals.version = {json.dumps(version)};\n"
