"""Platform abstraction layer."""

from .process import (
    ProcessError,
    run,
    run_streamed,
)

__all__ = [
    "ProcessError",
    "run",
    "run_streamed",
]
