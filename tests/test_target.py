"""
Target Bootstrap Phase Tests
"""
import pytest

from ouroboros.errors import CompileError
from ouroboros.manifest import parse_manifest
from ouroboros.pipeline import build_primary
from ouroboros.config import Settings
from ouroboros.target import bootstrap_target, plan_units

FIVE_UNITS = [["u1", "target"], ["u2", "target"], ["u3", "target"], ["u4", "target"], ["u5", "target"]]


def test_units_concatenated_in_manifest_order(write_units, fake_compiler):
    root = write_units({
        "a.lisp": "emit a();",
        "lib/b.lisp": "bind b\nemit b();",
        "host_only.lisp": "fail",
    })
    manifest = parse_manifest([["a", "target"], ["host_only", "host"], ["lib", [["b", "both"]]]])

    build = bootstrap_target(manifest, fake_compiler, root, ".lisp", entry=None)

    assert build.output == "a();\nb();\n"
    assert build.units == ["a", "lib/b"]
    assert list(build.environment) == ["b"]
    assert not build.environment.frozen


def test_entry_unit_compiled_last(write_units, fake_compiler):
    root = write_units({
        "boot.lisp": "emit boot",
        "toplevel.lisp": "emit repl",
        "late.lisp": "emit late",
    })
    manifest = parse_manifest([["boot", "target"], ["toplevel", "target"], ["late", "target"]])

    build = bootstrap_target(manifest, fake_compiler, root, ".lisp", entry="toplevel")

    assert build.units == ["boot", "late", "toplevel"]
    assert build.output == "boot\nlate\nrepl\n"


def test_entry_unit_outside_manifest_still_compiled(write_units, fake_compiler):
    root = write_units({"boot.lisp": "emit boot", "toplevel.lisp": "emit repl"})
    build = bootstrap_target(parse_manifest([["boot", "target"]]), fake_compiler, root, ".lisp", entry="toplevel")
    assert build.output.endswith("repl\n")


def test_plan_units():
    manifest = parse_manifest([["toplevel", "target"], ["x", "target"]])
    assert plan_units(manifest, "toplevel") == ["x", "toplevel"]
    assert plan_units(manifest, None) == ["toplevel", "x"]


def test_third_of_five_fails(write_units, fake_compiler):
    root = write_units({
        "u1.lisp": "emit one",
        "u2.lisp": "emit two",
        "u3.lisp": "emit three\nfail",
        "u4.lisp": "emit four",
        "u5.lisp": "emit five",
    })
    with pytest.raises(CompileError) as info:
        bootstrap_target(parse_manifest(FIVE_UNITS), fake_compiler, root, ".lisp", entry=None)

    assert info.value.unit == "u3"
    assert info.value.line == 2
    assert fake_compiler.compiled == ["emit one", "emit two", "emit three", "fail"]


def test_third_of_five_fails_leaves_no_artifact(write_units, tmp_path, monkeypatch, fake_compiler):
    root = write_units({
        "manifest.json": '[["u1", "target"], ["u2", "target"], ["u3", "target"], ["u4", "target"], ["u5", "target"]]',
        "u1.lisp": "emit one",
        "u2.lisp": "emit two",
        "u3.lisp": "fail",
        "u4.lisp": "emit four",
        "u5.lisp": "emit five",
        "pyproject.toml": 'version = "9.9.9"\n',
    }, tmp_path / "src")
    out = tmp_path / "dist"
    config = Settings(SOURCE_ROOT=root, OUTPUT_DIR=out, VERSION_FILE=root / "pyproject.toml", ENTRY_UNIT="")
    monkeypatch.setattr("ouroboros.pipeline.bootstrap_host", lambda *args, **kwargs: fake_compiler)

    with pytest.raises(CompileError):
        build_primary(config)

    assert not (out / config.PRIMARY_ARTIFACT).exists()
    assert "emit four" not in fake_compiler.compiled
    assert "emit five" not in fake_compiler.compiled
