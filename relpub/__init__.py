"""relpub: publish per-platform release binaries for a version tag."""

__version__ = "0.1.0"
