"""
conftest.py: shared fixtures for the Ouroboros bootstrap suite.

1. FakeCompiler: a line-oriented stand-in for the compiler collaborator, so
   pipeline tests don't depend on the Lisp kernel.
2. host_compiler: the real host image bootstrapped from meta/, built once.
3. ENV CLEANUP: snapshot and restore OUROBOROS_* variables around each test.
"""
import os
from pathlib import Path

import pytest

from ouroboros.environment import Environment
from ouroboros.host import bootstrap_host
from ouroboros.manifest import load_manifest
from ouroboros.protocol import EOF

REPO_ROOT = Path(__file__).resolve().parent.parent
META_ROOT = REPO_ROOT / "meta"


class FakeCompiler:
    """
    One form per non-blank line:

        emit TEXT   -> "TEXT\\n"
        empty       -> ""
        bind NAME   -> binds NAME as a value, emits nothing
        macro NAME  -> binds NAME as a macro with a form payload
        fail        -> raises ValueError
    """

    def __init__(self):
        self.compiled = []

    def read_form(self, text, cursor):
        while cursor < len(text):
            end = text.find("\n", cursor)
            if end == -1:
                end = len(text)
            line = text[cursor:end].strip()
            if line:
                return line, end + 1 if end < len(text) else end
            cursor = end + 1
        return EOF

    def compile_toplevel(self, form, environment):
        self.compiled.append(form)
        op, _, arg = form.partition(" ")
        if op == "emit":
            return arg + "\n"
        if op == "empty":
            return ""
        if op == "bind":
            environment.bind(arg, "value", {"access": f"values[{arg!r}]"})
            environment.counters.next_variable()
            return ""
        if op == "macro":
            environment.bind(arg, "macro", ["lambda", ["x"], "x"])
            return ""
        if op == "fail":
            raise ValueError("refusing to compile")
        raise ValueError(f"unknown fake form {form!r}")

    def compile_expression(self, form, environment):
        environment.counters.next_variable()
        return f"function () {{ return {form!r}; }}"

    def make_environment(self):
        return Environment()


@pytest.fixture
def fake_compiler():
    return FakeCompiler()


@pytest.fixture(scope="session")
def meta_root():
    return META_ROOT


@pytest.fixture(scope="session")
def kernel_manifest():
    return load_manifest(META_ROOT / "manifest.json")


@pytest.fixture(scope="session")
def host_compiler(kernel_manifest):
    return bootstrap_host(kernel_manifest, META_ROOT, ".py")


@pytest.fixture
def kernel(host_compiler):
    """The host image namespace (Symbol, intern, read_form, ...)."""
    return host_compiler.image


@pytest.fixture
def write_units(tmp_path):
    """Write {relative path: text} under tmp_path and return the root."""

    def _write(files, root=None):
        root = Path(root or tmp_path)
        for rel, text in files.items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        return root

    return _write


# ─── Environment Variable Safety ────────────────────────────────────────────

@pytest.fixture(autouse=True)
def _clean_env_vars():
    """Snapshot and restore OUROBOROS_* environment variables after each test."""
    saved = {k: v for k, v in os.environ.items() if k.startswith("OUROBOROS_")}

    yield

    for key in [k for k in os.environ if k.startswith("OUROBOROS_")]:
        if key not in saved:
            os.environ.pop(key, None)
    os.environ.update(saved)
