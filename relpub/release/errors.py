"""Error types for a publish run.

Each failure carries the platform it belongs to so a partial release can be
reported per target. ``TriggerMismatch`` is not a failure: it means the pushed
ref is not a release tag and nothing runs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from relpub.release.matrix import Platform

__all__ = [
    "BuildFailed",
    "CheckoutFailed",
    "PublishError",
    "StoreError",
    "TriggerMismatch",
    "UnknownPlatform",
    "UploadFailed",
]


@dataclass(frozen=True, slots=True)
class TriggerMismatch:
    ref: str
    reason: str

    def pretty(self) -> str:
        return f"{self.ref}: {self.reason}"


@dataclass(frozen=True, slots=True)
class UnknownPlatform:
    label: str
    available: tuple[str, ...]

    def pretty(self) -> str:
        return f"unknown platform: {self.label} (available: {', '.join(self.available)})"


@dataclass(frozen=True, slots=True)
class CheckoutFailed:
    platform: Platform
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        return _with_hint(f"[{self.platform}] checkout failed: {self.message}", self.hint)


@dataclass(frozen=True, slots=True)
class BuildFailed:
    platform: Platform
    message: str
    returncode: int | None = None
    hint: str | None = None

    def pretty(self) -> str:
        text = f"[{self.platform}] build failed: {self.message}"
        if self.returncode is not None:
            text += f" (exit {self.returncode})"
        return _with_hint(text, self.hint)


@dataclass(frozen=True, slots=True)
class UploadFailed:
    platform: Platform
    message: str
    attempts: int = 1
    hint: str | None = None

    def pretty(self) -> str:
        text = f"[{self.platform}] upload failed: {self.message}"
        if self.attempts > 1:
            text += f" (after {self.attempts} attempts)"
        return _with_hint(text, self.hint)


@dataclass(frozen=True, slots=True)
class StoreError:
    """Failure reported by a release store.

    Attributes:
        message: What the store was doing.
        detail: Raw error text from the transport, if any.
        transient: True for timeouts, resets and 5xx/429 answers worth retrying.
    """

    message: str
    detail: str | None = None
    transient: bool = False

    def pretty(self) -> str:
        return _with_hint(self.message, self.detail)


PublishError = CheckoutFailed | BuildFailed | UploadFailed


def _with_hint(text: str, hint: str | None) -> str:
    if hint:
        return f"{text} (hint: {hint})"
    return text
