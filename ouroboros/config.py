"""
Pipeline configuration.

Values come from the environment (``OUROBOROS_*``) or a local ``.env`` file,
falling back to the defaults below, which point at the ``meta/`` tree shipped
next to this package.
"""
from pathlib import Path
from typing import List

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

REPO_ROOT = Path(__file__).resolve().parent.parent


class FrontendSpec(BaseModel):
    """A REPL front-end bundle built after the primary artifact."""

    name: str
    source: str
    artifact: str
    shebang: bool = False


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="OUROBOROS_",
        env_file=".env",
        extra="ignore",
    )

    # Compiler sources
    SOURCE_ROOT: Path = REPO_ROOT / "meta"
    MANIFEST_FILE: str = "manifest.json"
    HOST_SUFFIX: str = ".py"
    TARGET_SUFFIX: str = ".lisp"
    ENTRY_UNIT: str = "toplevel"

    # Artifacts
    OUTPUT_DIR: Path = REPO_ROOT / "dist"
    PRIMARY_ARTIFACT: str = "ouroboros.js"
    PRIMARY_SHEBANG: bool = False
    INTERPRETER: str = "/usr/bin/env node"
    TEST_SUITE_DIR: str = "suite"
    TEST_ARTIFACT: str = "tests.js"
    FRONTENDS: List[FrontendSpec] = [
        FrontendSpec(name="repl-node", source="repl/node.lisp", artifact="repl-node.js", shebang=True),
        FrontendSpec(name="repl-web", source="repl/web.lisp", artifact="repl-web.js"),
    ]

    # Metadata
    VERSION_FILE: Path = REPO_ROOT / "pyproject.toml"
    LOG_LEVEL: str = "INFO"

    @property
    def manifest_path(self) -> Path:
        return Path(self.SOURCE_ROOT) / self.MANIFEST_FILE


settings = Settings()
