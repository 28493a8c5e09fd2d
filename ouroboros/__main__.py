"""
Ouroboros bootstrap entry point.

Checks the interpreter and dependencies before importing the pipeline, so a
missing package is reported plainly instead of as a cascade of import errors.
"""
import sys

# ─── Version Gate ─────────────────────────────────────────────────────────────
if sys.version_info < (3, 9):
    print(f"Error: Ouroboros requires Python 3.9 or newer (you have {sys.version}).")
    sys.exit(1)

# ─── Dependency Gate ──────────────────────────────────────────────────────────
_missing_deps = []
for _dep in ["lark", "pydantic", "pydantic_settings"]:
    try:
        __import__(_dep)
    except ImportError:
        _missing_deps.append(_dep)

if _missing_deps:
    print(f"Error: Missing required dependencies: {', '.join(_missing_deps)}")
    print()
    print("Fix: Run this command from the repository root:")
    print()
    print("    pip install -e .")
    print()
    sys.exit(1)

from ouroboros.cli import main  # noqa: E402

sys.exit(main())
