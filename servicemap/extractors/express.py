"""Route extraction for Express-style router registrations."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..logging import get_logger
from ..models import DiscoveredRepo, RepoVariant, RouteInfo
from ..utils import find_matching_delimiter, iter_files, line_of, read_text, relative_posix, split_top_level
from .base import RouteExtractor, dedupe_routes, join_paths, string_literal

_SOURCE_SUFFIXES = (".js", ".ts", ".mjs", ".cjs")
_RESOLVE_SUFFIXES = ("", ".js", ".ts", ".mjs", ".cjs", "/index.js", "/index.ts")
_VERBS = "get|post|put|patch|delete|all"

_VERB_CALL = re.compile(rf"\b([A-Za-z_$][\w$]*)\s*\.\s*({_VERBS})\s*\(")
_ROUTE_CALL = re.compile(r"\b([A-Za-z_$][\w$]*)\s*\.\s*route\s*\(")
_CHAINED_VERB = re.compile(rf"\s*\.\s*({_VERBS})\s*\(")
_USE_CALL = re.compile(r"\b([A-Za-z_$][\w$]*)\s*\.\s*use\s*\(")
_IMPORT_DEFAULT = re.compile(r"""import\s+([A-Za-z_$][\w$]*)\s+from\s+['"](\.{1,2}/[^'"]+)['"]""")
_REQUIRE = re.compile(
    r"""(?:const|let|var)\s+([A-Za-z_$][\w$]*)\s*=\s*require\s*\(\s*['"](\.{1,2}/[^'"]+)['"]\s*\)"""
)
_HANDLER_NAME = re.compile(r"^[A-Za-z_$][\w$]*(?:\.[A-Za-z_$][\w$]*)*$")
_CLIENT_BINDING = re.compile(
    r"\b(?:const|let|var)\s+([A-Za-z_$][\w$]*)\s*=\s*(?:axios\s*\.\s*create|createAxiosInstance)\s*\("
)

_RECEIVERS = {"app", "router", "server", "routes"}


def _is_router_receiver(name: str) -> bool:
    return name in _RECEIVERS or name.endswith(("Router", "router", "Routes"))


class ExpressRouteExtractor(RouteExtractor):
    """Collects ``app.get('/x', handler)`` style registrations."""

    variant = RepoVariant.EXPRESS

    def __init__(self) -> None:
        self.logger = get_logger("extractors.express")

    def extract(self, repo: DiscoveredRepo, workspace_root: Path) -> List[RouteInfo]:
        search_root = repo.controllers_root
        if not search_root.is_dir():
            search_root = repo.path
        sources: Dict[Path, str] = {}
        for path in iter_files(search_root, _SOURCE_SUFFIXES):
            if path.name.endswith(".d.ts"):
                continue
            text = read_text(path)
            if text is None:
                self.logger.debug("Skipping unreadable source %s", path)
                continue
            sources[path] = text

        file_prefixes = self._mounted_file_prefixes(sources)
        routes: List[RouteInfo] = []
        for path, text in sources.items():
            rel_path = relative_posix(path, workspace_root, repo.path)
            local_prefixes = _local_mount_prefixes(text)
            file_prefix = file_prefixes.get(path, "")
            for receiver, method, route_path, index, handler in _registrations(text):
                prefix = join_paths(file_prefix, local_prefixes.get(receiver, ""))
                routes.append(
                    RouteInfo(
                        method=method,
                        full_path=join_paths(prefix, route_path),
                        file_path=rel_path,
                        line=line_of(text, index),
                        handler_name=handler,
                    )
                )
        return dedupe_routes(routes)

    def _mounted_file_prefixes(self, sources: Dict[Path, str]) -> Dict[Path, str]:
        prefixes: Dict[Path, str] = {}
        for path, text in sources.items():
            imports = _relative_imports(text)
            for prefix, target in _mounts(text):
                module = imports.get(target)
                if module is None:
                    continue
                resolved = _resolve_module(path.parent, module)
                if resolved is None:
                    self.logger.debug("Could not resolve router module %s from %s", module, path)
                    continue
                prefixes.setdefault(resolved, prefix)
        return prefixes


def _call_arguments(text: str, open_index: int) -> Tuple[List[str], int]:
    close_index = find_matching_delimiter(text, open_index)
    if close_index == -1:
        return [], -1
    return split_top_level(text[open_index + 1 : close_index]), close_index


def _handler_from(arguments: List[str]) -> Optional[str]:
    if len(arguments) < 2:
        return None
    candidate = arguments[-1].strip()
    return candidate if _HANDLER_NAME.match(candidate) else None


def _registrations(text: str) -> List[Tuple[str, str, str, int, Optional[str]]]:
    """Return ``(receiver, method, path, index, handler)`` for each route."""
    found: List[Tuple[str, str, str, int, Optional[str]]] = []
    clients = set(_CLIENT_BINDING.findall(text))
    for match in _VERB_CALL.finditer(text):
        receiver = match.group(1)
        if receiver in clients or not _is_router_receiver(receiver):
            continue
        arguments, _ = _call_arguments(text, match.end() - 1)
        if not arguments:
            continue
        route_path = string_literal(arguments[0])
        if route_path is None or not route_path.startswith(("/", "*")):
            continue
        found.append(
            (receiver, match.group(2).upper(), route_path, match.start(), _handler_from(arguments))
        )

    for match in _ROUTE_CALL.finditer(text):
        receiver = match.group(1)
        if receiver in clients:
            continue
        arguments, close_index = _call_arguments(text, match.end() - 1)
        if not arguments or close_index == -1:
            continue
        route_path = string_literal(arguments[0])
        if route_path is None or not route_path.startswith(("/", "*")):
            continue
        cursor = close_index + 1
        while True:
            chained = _CHAINED_VERB.match(text, cursor)
            if not chained:
                break
            chain_args, chain_close = _call_arguments(text, chained.end() - 1)
            if chain_close == -1:
                break
            handler = chain_args[-1].strip() if chain_args else None
            if handler is not None and not _HANDLER_NAME.match(handler):
                handler = None
            found.append(
                (receiver, chained.group(1).upper(), route_path, chained.start(), handler)
            )
            cursor = chain_close + 1

    found.sort(key=lambda item: item[3])
    return found


def _mounts(text: str) -> List[Tuple[str, str]]:
    """Return ``(prefix, router_name)`` pairs from ``x.use('/p', router)`` calls."""
    mounts: List[Tuple[str, str]] = []
    for match in _USE_CALL.finditer(text):
        arguments, _ = _call_arguments(text, match.end() - 1)
        if len(arguments) < 2:
            continue
        prefix = string_literal(arguments[0])
        target = arguments[-1].strip()
        if prefix is None or not _HANDLER_NAME.match(target):
            continue
        mounts.append((prefix, target))
    return mounts


def _local_mount_prefixes(text: str) -> Dict[str, str]:
    prefixes: Dict[str, str] = {}
    for prefix, target in _mounts(text):
        prefixes.setdefault(target, prefix)
    return prefixes


def _relative_imports(text: str) -> Dict[str, str]:
    imports: Dict[str, str] = {}
    for pattern in (_IMPORT_DEFAULT, _REQUIRE):
        for match in pattern.finditer(text):
            imports.setdefault(match.group(1), match.group(2))
    return imports


def _resolve_module(base_dir: Path, module: str) -> Optional[Path]:
    for suffix in _RESOLVE_SUFFIXES:
        candidate = Path(os.path.normpath(base_dir / f"{module}{suffix}"))
        if candidate.is_file():
            return candidate
    return None


__all__ = ["ExpressRouteExtractor"]
