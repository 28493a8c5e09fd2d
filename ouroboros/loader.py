"""Text Source Loader: whole-file reads, no streaming."""
import logging

from ouroboros.errors import BuildIOError

logger = logging.getLogger("ouroboros.loader")


def load(path) -> str:
    """
    Read ``path`` fully into memory as UTF-8 text.

    Raises:
        BuildIOError: if the file cannot be opened or decoded.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise BuildIOError(path, f"cannot read source: {e}") from e
    logger.debug(f"Loaded {path} ({len(text)} chars)")
    return text
