"""Release publishing.

- trigger: which pushed refs start a release
- matrix: the static platform table and asset naming
- checkout / builder / store: adapters for git, cargo and gh
- publisher: per-platform orchestration and reporting
"""

from __future__ import annotations
