from __future__ import annotations

from relpub.core.config import Config


def repo_name_from_slug(repo: str) -> str | None:
    """``owner/widget`` -> ``widget``; None if ``repo`` is not an owner/name slug."""
    parts = repo.strip().split("/")
    if len(parts) != 2 or not all(parts):
        return None
    return parts[1]


def resolve_repo_name(*, name: str | None, repo: str | None, config: Config) -> str | None:
    """Asset base name: --name, then config, then the name part of the repo slug."""
    if name:
        return name
    if config.release.name:
        return config.release.name
    slug = repo or config.release.repo
    if slug:
        return repo_name_from_slug(slug)
    return None
