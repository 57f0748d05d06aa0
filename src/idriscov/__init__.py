"""idris2-coverage: pragmatic branch coverage for Idris2 programs."""

__version__ = "0.1.0"
