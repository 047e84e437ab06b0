"""Helper utilities for constructing temporary workspaces in tests."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Mapping

from servicemap.discovery import RepoDiscoverer
from servicemap.models import DiscoveredRepo


class WorkspaceBuilder:
    """Utility for writing sibling repos into a throwaway workspace and rediscovering them."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "workspace"
        self.root.mkdir()

    def write(self, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries relative to the workspace root."""
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            normalised = textwrap.dedent(content).lstrip("\n")
            path.write_text(normalised, encoding="utf-8")

    def repo(self, name: str, files: Mapping[str, str]) -> Path:
        """Write files under ``<root>/<name>`` and return the repo path."""
        self.write({f"{name}/{relative}": content for relative, content in files.items()})
        return self.root / name

    def discover(self) -> list[DiscoveredRepo]:
        """Return the repos currently discoverable under the workspace."""
        return RepoDiscoverer().discover(self.root)

    def get(self, repo_id: str) -> DiscoveredRepo:
        for repo in self.discover():
            if repo.id == repo_id:
                return repo
        raise KeyError(repo_id)

    def path(self) -> Path:
        """Return the workspace root path."""
        return self.root


__all__ = ["WorkspaceBuilder"]
