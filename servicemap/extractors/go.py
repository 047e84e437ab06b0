"""Route extraction for Go HTTP routers (chi, echo, gin, gorilla/mux, net/http)."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from ..logging import get_logger
from ..models import DiscoveredRepo, RepoVariant, RouteInfo
from ..utils import find_matching_delimiter, iter_files, line_of, read_text, relative_posix, split_top_level
from .base import RouteExtractor, dedupe_routes, join_paths, string_literal

SEARCH_DIRS = ("", "cmd", "internal", "pkg", "api")
MAX_PATH_LENGTH = 400

_VERB_CALL = re.compile(
    r"\b([A-Za-z_]\w*)\s*\.\s*(Get|Post|Put|Patch|Delete|Options|Head|"
    r"GET|POST|PUT|PATCH|DELETE|OPTIONS|HEAD)\s*\("
)
_HANDLE_CALL = re.compile(r"\b([A-Za-z_]\w*)\s*\.\s*(HandleFunc|Handle)\s*\(")
_METHODS_CALL = re.compile(r"\.\s*Methods\s*\(")
_ROUTE_BLOCK = re.compile(r"\.\s*Route\s*\(")
_GROUP_ASSIGN = re.compile(r"\b([A-Za-z_]\w*)\s*:?=\s*([A-Za-z_]\w*)\s*\.\s*Group\s*\(")
_SUBROUTER_ASSIGN = re.compile(
    r"\b([A-Za-z_]\w*)\s*:?=\s*([A-Za-z_]\w*)\s*\.\s*PathPrefix\s*\(([^)]*)\)\s*\.\s*Subrouter\s*\(\s*\)"
)
_METHOD_CONSTANT = re.compile(r"^http\.Method(Get|Post|Put|Patch|Delete|Options|Head)$")
_PATTERN_WITH_METHOD = re.compile(r"^(GET|POST|PUT|PATCH|DELETE|OPTIONS|HEAD)\s+(/\S*)$")
_HANDLER_NAME = re.compile(r"^[A-Za-z_]\w*(?:\.[A-Za-z_]\w*)*$")


class GoRouteExtractor(RouteExtractor):
    """Extracts routes from router registrations in ``.go`` sources."""

    variant = RepoVariant.GO

    def __init__(self) -> None:
        self.logger = get_logger("extractors.go")

    def extract(self, repo: DiscoveredRepo, workspace_root: Path) -> List[RouteInfo]:
        routes: List[RouteInfo] = []
        visited: Set[Path] = set()
        for sub_dir in SEARCH_DIRS:
            directory = repo.path / sub_dir if sub_dir else repo.path
            for path in iter_files(directory, (".go",)):
                if path in visited or path.name.endswith("_test.go"):
                    continue
                visited.add(path)
                text = read_text(path)
                if text is None:
                    self.logger.debug("Skipping unreadable source %s", path)
                    continue
                rel_path = relative_posix(path, workspace_root, repo.path)
                routes.extend(_routes_from_text(text, rel_path))
        return dedupe_routes(routes)


def _routes_from_text(text: str, rel_path: str) -> List[RouteInfo]:
    spans = _route_spans(text)
    variables = _variable_prefixes(text)
    found: List[Tuple[int, str, str, Optional[str]]] = []

    for match in _VERB_CALL.finditer(text):
        arguments = _arguments(text, match.end() - 1)
        if not arguments:
            continue
        path = string_literal(arguments[0])
        if path is None or not path.startswith("/"):
            continue
        prefix = join_paths(_span_prefix(spans, match.start()), variables.get(match.group(1), ""))
        found.append((match.start(), match.group(2).upper(), join_paths(prefix, path), _handler(arguments)))

    handles = list(_HANDLE_CALL.finditer(text))
    for position, match in enumerate(handles):
        open_index = match.end() - 1
        close_index = find_matching_delimiter(text, open_index)
        if close_index == -1:
            continue
        arguments = split_top_level(text[open_index + 1 : close_index])
        pattern = string_literal(arguments[0]) if arguments else None
        if pattern is None:
            continue
        pattern = pattern.strip()
        methods: List[str] = []
        explicit = _PATTERN_WITH_METHOD.match(pattern)
        if explicit:
            methods = [explicit.group(1)]
            pattern = explicit.group(2)
        if not pattern.startswith("/"):
            continue
        if not methods:
            limit = handles[position + 1].start() if position + 1 < len(handles) else len(text)
            methods = _chained_methods(text, close_index + 1, limit) or ["GET"]
        prefix = join_paths(_span_prefix(spans, match.start()), variables.get(match.group(1), ""))
        for method in methods:
            found.append((match.start(), method, join_paths(prefix, pattern), _handler(arguments)))

    found.sort(key=lambda item: item[0])
    return [
        RouteInfo(
            method=method,
            full_path=full_path,
            file_path=rel_path,
            line=line_of(text, index),
            handler_name=handler,
        )
        for index, method, full_path, handler in found
        if len(full_path) <= MAX_PATH_LENGTH
    ]


def _arguments(text: str, open_index: int) -> List[str]:
    close_index = find_matching_delimiter(text, open_index)
    if close_index == -1:
        return []
    return split_top_level(text[open_index + 1 : close_index])


def _handler(arguments: List[str]) -> Optional[str]:
    if len(arguments) < 2:
        return None
    candidate = arguments[1].strip()
    return candidate if _HANDLER_NAME.match(candidate) else None


def _chained_methods(text: str, start: int, limit: int) -> List[str]:
    """Return verbs from the first ``.Methods(...)`` between ``start`` and ``limit``."""
    match = _METHODS_CALL.search(text, start, limit)
    if not match:
        return []
    arguments = _arguments(text, match.end() - 1)
    methods: List[str] = []
    for argument in arguments:
        literal = string_literal(argument)
        if literal is not None:
            methods.append(literal.strip().upper())
            continue
        constant = _METHOD_CONSTANT.match(argument.strip())
        if constant:
            methods.append(constant.group(1).upper())
    return [method for method in methods if method]


def _route_spans(text: str) -> List[Tuple[int, int, str]]:
    """Return ``(start, end, prefix)`` for each chi ``Route("/p", func...)`` block."""
    spans: List[Tuple[int, int, str]] = []
    for match in _ROUTE_BLOCK.finditer(text):
        open_index = match.end() - 1
        close_index = find_matching_delimiter(text, open_index)
        if close_index == -1:
            continue
        arguments = split_top_level(text[open_index + 1 : close_index])
        prefix = string_literal(arguments[0]) if arguments else None
        if prefix is None or not prefix.startswith("/"):
            continue
        spans.append((open_index, close_index, prefix))
    return spans


def _span_prefix(spans: List[Tuple[int, int, str]], index: int) -> str:
    prefix = ""
    for start, end, span_prefix in spans:
        if start < index < end:
            prefix = join_paths(prefix, span_prefix)
    return prefix


def _variable_prefixes(text: str) -> Dict[str, str]:
    """Map router variables created by ``Group`` or ``PathPrefix`` to their prefix."""
    parents: Dict[str, Tuple[str, str]] = {}
    for match in _GROUP_ASSIGN.finditer(text):
        arguments = _arguments(text, match.end() - 1)
        prefix = string_literal(arguments[0]) if arguments else None
        if prefix is not None:
            parents.setdefault(match.group(1), (match.group(2), prefix))
    for match in _SUBROUTER_ASSIGN.finditer(text):
        prefix = string_literal(match.group(3))
        if prefix is not None:
            parents.setdefault(match.group(1), (match.group(2), prefix))

    resolved: Dict[str, str] = {}

    def _resolve(name: str, seen: Set[str]) -> str:
        if name in resolved:
            return resolved[name]
        if name not in parents or name in seen:
            return ""
        parent, prefix = parents[name]
        value = join_paths(_resolve(parent, seen | {name}), prefix)
        resolved[name] = value
        return value

    for name in parents:
        _resolve(name, set())
    return resolved


__all__ = ["GoRouteExtractor", "MAX_PATH_LENGTH", "SEARCH_DIRS"]
