"""Release trigger: decide whether a pushed ref starts a publish run.

A release fires only for tags shaped ``v<major>.<minor>.<patch>``; branches,
pre-release suffixes and partial versions are ignored.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from relpub.core.result import Err, Ok, Result
from relpub.release.errors import TriggerMismatch

__all__ = ["TAG_REF_PREFIX", "ReleaseTrigger", "parse_ref"]

TAG_REF_PREFIX = "refs/tags/"

_TAG_RE = re.compile(r"v([0-9]+)\.([0-9]+)\.([0-9]+)")


@dataclass(frozen=True, slots=True)
class ReleaseTrigger:
    """A version tag that triggers a release.

    ``tag`` is kept exactly as pushed (``v01.2.3`` stays ``v01.2.3``) since the
    release store is addressed by it.
    """

    tag: str
    major: int
    minor: int
    patch: int


def parse_ref(ref: str) -> Result[ReleaseTrigger, TriggerMismatch]:
    """Parse a pushed ref (``refs/tags/v1.2.3``) or a bare tag (``v1.2.3``)."""
    name = ref
    if name.startswith("refs/"):
        if not name.startswith(TAG_REF_PREFIX):
            return Err(TriggerMismatch(ref=ref, reason="not a tag ref"))
        name = name[len(TAG_REF_PREFIX) :]

    m = _TAG_RE.fullmatch(name)
    if m is None:
        return Err(TriggerMismatch(ref=ref, reason="tag does not match v<major>.<minor>.<patch>"))
    return Ok(ReleaseTrigger(name, int(m.group(1)), int(m.group(2)), int(m.group(3))))