"""
Bootstrap pipeline.

    host phase -> target phase -> serialize environment -> primary artifact
                                                        -> auxiliary bundles

Everything up to the primary artifact is fatal on the first error. Each
auxiliary bundle (test bundle, REPL front-ends) fails on its own without
stopping the others.
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from ouroboros.bundle import assemble
from ouroboros.config import Settings, settings as default_settings
from ouroboros.cross import compile_file
from ouroboros.environment import Environment
from ouroboros.errors import OuroborosError
from ouroboros.host import HostCompiler, bootstrap_host
from ouroboros.manifest import load_manifest
from ouroboros.protocol import Compiler
from ouroboros.serializer import counter_fragment, serialize
from ouroboros.target import bootstrap_target
from ouroboros.version import read_version, version_fragment

logger = logging.getLogger("ouroboros.pipeline")


@dataclass
class BundleSpec:
    name: str
    sources: List[Path]
    artifact: Path
    shebang: bool = False


@dataclass
class BundleResult:
    name: str
    path: Optional[Path] = None
    error: Optional[str] = None
    environment: Optional[Environment] = field(default=None, repr=False)

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BuildReport:
    version: str
    primary: Path
    compiler: HostCompiler
    environment: Environment
    bundles: List[BundleResult] = field(default_factory=list)

    @property
    def failed(self) -> List[BundleResult]:
        return [b for b in self.bundles if not b.ok]


def build_primary(config: Settings) -> BuildReport:
    """Run both bootstrap phases and write the primary runtime artifact."""
    version = read_version(config.VERSION_FILE)
    logger.info(f"Bootstrapping version {version}")

    manifest = load_manifest(config.manifest_path)
    compiler = bootstrap_host(manifest, config.SOURCE_ROOT, config.HOST_SUFFIX)
    build = bootstrap_target(
        manifest,
        compiler,
        config.SOURCE_ROOT,
        config.TARGET_SUFFIX,
        entry=config.ENTRY_UNIT or None,
    )
    environment_code = serialize(build.environment, compiler)

    primary = assemble(
        [build.output, environment_code, version_fragment(version)],
        Path(config.OUTPUT_DIR) / config.PRIMARY_ARTIFACT,
        shebang=config.PRIMARY_SHEBANG,
        interpreter=config.INTERPRETER,
    )
    return BuildReport(version, primary, compiler, build.environment)


def build_bundle(spec: BundleSpec, compiler: Compiler, environment: Environment, interpreter: str = None) -> BundleResult:
    """
    Cross-compile ``spec.sources`` against a copy of ``environment`` and
    assemble them, closing with the counters the bundle ended on.

    On success the result carries that copy, so the next bundle continues
    numbering after this one. Failures are reported, not raised.
    """
    scratch = environment.snapshot()
    try:
        outputs = [compile_file(path, scratch, compiler) for path in spec.sources]
        outputs.append(counter_fragment(scratch.counters, monotonic=True))
        path = assemble(outputs, spec.artifact, shebang=spec.shebang, interpreter=interpreter)
    except OuroborosError as e:
        logger.error(f"Bundle {spec.name} failed: {e}")
        return BundleResult(spec.name, error=str(e))
    return BundleResult(spec.name, path=path, environment=scratch)


def auxiliary_bundles(config: Settings) -> List[BundleSpec]:
    """The test bundle followed by the configured REPL front-ends."""
    root = Path(config.SOURCE_ROOT)
    out = Path(config.OUTPUT_DIR)
    specs = []

    suite = root / config.TEST_SUITE_DIR
    if suite.is_dir():
        sources = sorted(suite.glob(f"*{config.TARGET_SUFFIX}"))
        specs.append(BundleSpec("tests", sources, out / config.TEST_ARTIFACT))

    for frontend in config.FRONTENDS:
        specs.append(BundleSpec(frontend.name, [root / frontend.source], out / frontend.artifact, frontend.shebang))
    return specs


def compile_application(config: Settings = None, auxiliary: bool = True) -> BuildReport:
    """
    Build the primary artifact and, unless ``auxiliary`` is false, every
    auxiliary bundle.

    Raises:
        OuroborosError: anything that prevents the primary artifact.
    """
    config = config or default_settings
    report = build_primary(config)
    if auxiliary:
        # Bundles see only the primary artifact's bindings but share one
        # numbering sequence, continuing after the last bundle that was written.
        environment = report.environment
        for spec in auxiliary_bundles(config):
            result = build_bundle(spec, report.compiler, environment, config.INTERPRETER)
            report.bundles.append(result)
            if result.ok:
                environment = Environment(report.environment.bindings, result.environment.counters)

    failed = len(report.failed)
    logger.info(f"Build complete: {report.primary}, {len(report.bundles) - failed} bundles ok, {failed} failed")
    return report
