#!/usr/bin/env python3
"""Entry-point script for the flutterbuild step."""
from __future__ import annotations

from pathlib import Path
import sys

# Add project root to path to allow importing core
_ROOT = Path(__file__).resolve().parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from flutterbuild.src.cli import main as cli_main  # noqa: E402


def main() -> int:
    """Delegate to the flutterbuild CLI entry point."""
    return cli_main(sys.argv[1:])


if __name__ == "__main__":  # pragma: no cover - exercised via integration tests
    raise SystemExit(main())
