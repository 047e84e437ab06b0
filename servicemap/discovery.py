"""Workspace repository discovery and variant classification."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from .config import DEFAULT_CACHE_DIR, DEFAULT_SQL_REPOS
from .extractors import discover_extractors
from .extractors.base import RouteExtractor
from .logging import get_logger
from .models import DiscoveredRepo, RepoVariant
from .utils import humanize_dir_name, load_java_dependencies, load_package_json, node_dependencies, read_text

EXCLUDED_DIRS = frozenset(
    {
        "node_modules",
        ".git",
        "dist",
        "build",
        "out",
        ".next",
        ".cursor",
        "coverage",
        ".vscode",
        "docs",
        "k8s",
        "scripts",
        DEFAULT_CACHE_DIR,
    }
)

_NEST_PACKAGES = ("@nestjs/core", "@nestjs/common")
_FRONT_PACKAGES = ("react", "react-dom", "vue", "@angular/core", "next", "svelte", "preact", "solid-js")
_FRONT_MARKERS = (
    "src/routes/routePaths.ts",
    "src/routes/routePaths.js",
    "pages",
    "app",
    "src/app",
    "src/pages",
)
_SPRING_DESCRIPTORS = ("build.gradle.kts", "build.gradle", "pom.xml")
_SPRING_BOOT_MARKER = "org.springframework.boot"

_CONTROLLER_PATHS = {
    RepoVariant.NEST: "src/controllers",
    RepoVariant.EXPRESS: "src",
    RepoVariant.SPRING: "src/main/kotlin",
}


# ---------------------------------------------------------------------------
# Detectors
# ---------------------------------------------------------------------------


def detect_nest(path: Path) -> bool:
    deps = node_dependencies(load_package_json(path))
    if any(name in deps for name in _NEST_PACKAGES):
        return True
    return (path / "nest-cli.json").is_file()


def detect_express(path: Path) -> bool:
    if detect_nest(path):
        return False
    return "express" in node_dependencies(load_package_json(path))


def detect_spring(path: Path) -> bool:
    if any("spring-boot" in dep for dep in load_java_dependencies(path)):
        return True
    for name in _SPRING_DESCRIPTORS:
        text = read_text(path / name)
        if text and _SPRING_BOOT_MARKER in text:
            return True
    return False


def detect_go(path: Path) -> bool:
    return (path / "go.mod").is_file() or (path / "main.go").is_file() or (path / "cmd").is_dir()


def detect_front(path: Path) -> bool:
    deps = node_dependencies(load_package_json(path))
    if not any(name in deps for name in _FRONT_PACKAGES):
        return False
    return any((path / marker).exists() for marker in _FRONT_MARKERS)


def is_sql_repo(name: str, sql_repo_names: Iterable[str]) -> bool:
    return name in set(sql_repo_names) or name.endswith("-sql")


def classify(path: Path, sql_repo_names: Iterable[str] = DEFAULT_SQL_REPOS) -> Optional[RepoVariant]:
    """Return the first matching variant for ``path`` or None when unrecognized."""
    if is_sql_repo(path.name, sql_repo_names):
        return RepoVariant.SQL
    if detect_nest(path):
        return RepoVariant.NEST
    if detect_express(path):
        return RepoVariant.EXPRESS
    if detect_spring(path):
        return RepoVariant.SPRING
    if detect_go(path):
        return RepoVariant.GO
    if detect_front(path):
        return RepoVariant.FRONT
    return None


# ---------------------------------------------------------------------------
# Discoverer
# ---------------------------------------------------------------------------


class RepoDiscoverer:
    """Lists the immediate subdirectories of a workspace that look like repos."""

    def __init__(
        self,
        exclude_dirs: Optional[Sequence[str]] = None,
        sql_repo_names: Optional[Sequence[str]] = None,
        extractors: Optional[Dict[RepoVariant, RouteExtractor]] = None,
    ) -> None:
        self.exclude_dirs = set(EXCLUDED_DIRS) | set(exclude_dirs or ())
        self.sql_repo_names = list(sql_repo_names) if sql_repo_names is not None else list(DEFAULT_SQL_REPOS)
        self.extractors = extractors if extractors is not None else discover_extractors()
        self.logger = get_logger("discovery")

    def discover(self, workspace_root: Path) -> List[DiscoveredRepo]:
        root = Path(workspace_root).expanduser().resolve()
        if not root.is_dir():
            self.logger.debug("Workspace root %s does not exist", root)
            return []

        repos: List[DiscoveredRepo] = []
        root_repo = self._root_front_repo(root)
        if root_repo is not None:
            repos.append(root_repo)

        try:
            children = sorted(root.iterdir(), key=lambda entry: entry.name)
        except OSError:
            self.logger.debug("Could not list workspace %s", root, exc_info=True)
            children = []

        for child in children:
            if not child.is_dir() or child.name.startswith(".") or child.name in self.exclude_dirs:
                continue
            variant = classify(child, self.sql_repo_names)
            if variant is None:
                self.logger.debug("Skipping unrecognized directory %s", child.name)
                continue
            repos.append(self._build(child, variant))

        repos.sort(key=lambda repo: repo.id)
        self.logger.debug("Discovered %s repos under %s", len(repos), root)
        return repos

    def _root_front_repo(self, root: Path) -> Optional[DiscoveredRepo]:
        if not detect_front(root):
            return None
        return self._build(root, RepoVariant.FRONT)

    def _build(self, path: Path, variant: RepoVariant) -> DiscoveredRepo:
        description = None
        if variant in (RepoVariant.NEST, RepoVariant.EXPRESS, RepoVariant.FRONT):
            value = load_package_json(path).get("description")
            description = value if isinstance(value, str) and value.strip() else None
        return DiscoveredRepo(
            id=path.name,
            name=humanize_dir_name(path.name),
            variant=variant,
            path=path,
            controllers_path=_CONTROLLER_PATHS.get(variant, ""),
            description=description,
            extractor=self.extractors.get(variant),
        )


def discover_repos(workspace_root: Path, **kwargs: object) -> List[DiscoveredRepo]:
    """Convenience wrapper around :class:`RepoDiscoverer`."""
    return RepoDiscoverer(**kwargs).discover(workspace_root)  # type: ignore[arg-type]


__all__ = [
    "EXCLUDED_DIRS",
    "RepoDiscoverer",
    "classify",
    "detect_express",
    "detect_front",
    "detect_go",
    "detect_nest",
    "detect_spring",
    "discover_repos",
    "is_sql_repo",
]
