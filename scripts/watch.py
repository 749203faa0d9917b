#!/usr/bin/env python3
"""CLI: Watch a Go source tree and regenerate its PlantUML class diagram."""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the package is importable when running as a script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from gouml.cli import main

if __name__ == "__main__":
    sys.exit(main())
