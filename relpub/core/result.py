"""Result type for explicit error handling.

Every collaborator call (git, cargo, gh) can fail for reasons the publisher must
report per platform, so fallible functions return ``Ok(value)`` or
``Err(error)`` instead of raising.

Usage:
    match parse_ref("refs/tags/v1.2.3"):
        case Ok(trigger):
            print(trigger.tag)
        case Err(mismatch):
            print(f"skipping: {mismatch.ref}")
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Ok[T]:
    """Successful result holding ``value``."""

    value: T

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err[E]:
    """Failed result holding ``error``."""

    error: E

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


type Result[T, E] = Ok[T] | Err[E]
