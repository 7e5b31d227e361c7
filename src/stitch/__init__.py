"""stitch - build orchestrator for bundling engines."""

__version__ = "0.4.0"
