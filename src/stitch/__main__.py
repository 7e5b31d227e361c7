"""Package entry point.

This module enables running the project with:

    python -m stitch ...
"""

from __future__ import annotations

from stitch.cli import run

if __name__ == "__main__":
    run()
