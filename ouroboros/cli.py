"""Command-line wrapper: ``ouroboros-build`` / ``python -m ouroboros``."""
import argparse
import logging
import sys

from ouroboros.config import Settings
from ouroboros.errors import OuroborosError
from ouroboros.pipeline import compile_application

logger = logging.getLogger("ouroboros")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="ouroboros-build",
        description="Bootstrap the compiler and emit its runtime, test and REPL bundles.",
    )
    parser.add_argument("--source-root", help="directory holding manifest.json and the compiler units")
    parser.add_argument("--output-dir", help="directory for the emitted artifacts")
    parser.add_argument("--no-aux", action="store_true", help="only build the primary artifact")
    parser.add_argument("-v", "--verbose", action="store_true", help="log every unit")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    overrides = {}
    if args.source_root:
        overrides["SOURCE_ROOT"] = args.source_root
    if args.output_dir:
        overrides["OUTPUT_DIR"] = args.output_dir
    config = Settings(**overrides)

    level = logging.DEBUG if args.verbose else getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        report = compile_application(config, auxiliary=not args.no_aux)
    except OuroborosError as e:
        logger.error(f"Bootstrap failed: {e}")
        return 1

    print(f"Build Complete. The Ouroboros is ready: {report.primary}")
    for bundle in report.bundles:
        status = bundle.path if bundle.ok else f"FAILED ({bundle.error})"
        print(f"  + {bundle.name}: {status}")
    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(main())
