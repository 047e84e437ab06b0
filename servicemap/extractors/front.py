"""Front-end route table extraction (route-path map plus layout-wrapped pages)."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..logging import get_logger
from ..models import DiscoveredRepo, RepoVariant, RouteInfo
from ..utils import find_matching_delimiter, read_text, relative_posix
from .base import RouteExtractor

ROUTE_PATHS_FILES = ("src/routes/routePaths.ts", "src/routes/routePaths.js")
ROUTES_FILES = ("src/routes/Routes.tsx", "src/routes/Routes.jsx", "src/routes/index.tsx")
COMPONENT_SUFFIXES = (".tsx", ".ts", ".jsx", ".js", "/index.tsx", "/index.jsx")

_PATH_ENTRY = re.compile(r"""(\w+)\s*:\s*(['"`])([^'"`]+)\2""")
_ROUTE_BLOCK = re.compile(r"\{\s*path\s*:\s*routes\.(\w+)")
_WITH_LAYOUT = re.compile(r"withLayout\s*\(\s*(\w+)\s*\)")
_DEFAULT_IMPORT = re.compile(r"""import\s+(\w+)\s+from\s+['"](\.{1,2}/[^'"]+)['"]""")
_SOURCE_EXTENSION = re.compile(r"\.(?:tsx?|jsx?)$")


@dataclass(frozen=True)
class FrontRoute:
    """A navigable front-end route and the page component rendering it."""

    path: str
    route_key: str
    component_name: str
    source_path: str


def extract_front_routes(repo_path: Path, workspace_root: Path) -> List[FrontRoute]:
    """Return routes whose key resolves in the route-path map."""
    path_map: Dict[str, str] = {}
    for relative in ROUTE_PATHS_FILES:
        text = read_text(repo_path / relative)
        if text:
            path_map = _path_map(text)
            break
    if not path_map:
        return []

    routes_file: Optional[Path] = None
    routes_text: Optional[str] = None
    for relative in ROUTES_FILES:
        routes_text = read_text(repo_path / relative)
        if routes_text:
            routes_file = repo_path / relative
            break
    if routes_file is None or not routes_text:
        return []

    imports = _component_imports(routes_text, routes_file.parent, repo_path)
    results: List[FrontRoute] = []
    for route_key, component in _route_components(routes_text):
        route_path = path_map.get(route_key)
        if not route_path:
            continue
        component_file = imports.get(component) or repo_path / "src" / "pages" / f"{component}.tsx"
        results.append(
            FrontRoute(
                path=route_path,
                route_key=route_key,
                component_name=component,
                source_path=relative_posix(component_file, workspace_root, repo_path),
            )
        )
    return results


class FrontRouteExtractor(RouteExtractor):
    """Exposes front-end routes through the common extractor interface."""

    variant = RepoVariant.FRONT

    def __init__(self) -> None:
        self.logger = get_logger("extractors.front")

    def extract(self, repo: DiscoveredRepo, workspace_root: Path) -> List[RouteInfo]:
        routes = extract_front_routes(repo.path, workspace_root)
        self.logger.debug("Found %s front routes in %s", len(routes), repo.id)
        return [
            RouteInfo(
                method="GET",
                full_path=route.path,
                file_path=route.source_path,
                handler_name=route.component_name,
            )
            for route in routes
        ]


def _path_map(text: str) -> Dict[str, str]:
    mapping: Dict[str, str] = {}
    for match in _PATH_ENTRY.finditer(text):
        mapping[match.group(1)] = match.group(3).strip()
    return mapping


def _route_components(text: str) -> List[Tuple[str, str]]:
    """Return ``(route_key, component)`` for ``{ path: routes.x, element: withLayout(C) }``."""
    pairs: List[Tuple[str, str]] = []
    for match in _ROUTE_BLOCK.finditer(text):
        close_index = find_matching_delimiter(text, match.start())
        if close_index == -1:
            continue
        layout = _WITH_LAYOUT.search(text, match.end(), close_index)
        if layout:
            pairs.append((match.group(1), layout.group(1)))
    return pairs


def _component_imports(text: str, from_dir: Path, repo_path: Path) -> Dict[str, Path]:
    imports: Dict[str, Path] = {}
    for match in _DEFAULT_IMPORT.finditer(text):
        imports[match.group(1)] = resolve_source_module(from_dir, match.group(2))
    return imports


def resolve_source_module(from_dir: Path, module: str) -> Path:
    """Resolve a relative import to an existing source file, defaulting to ``.tsx``."""
    base = Path(os.path.normpath(from_dir / module))
    if _SOURCE_EXTENSION.search(base.name) and base.is_file():
        return base
    for suffix in COMPONENT_SUFFIXES:
        candidate = Path(f"{base}{suffix}")
        if candidate.is_file():
            return candidate
    return Path(f"{_SOURCE_EXTENSION.sub('', str(base))}.tsx")


__all__ = ["FrontRoute", "FrontRouteExtractor", "extract_front_routes", "resolve_source_module"]
