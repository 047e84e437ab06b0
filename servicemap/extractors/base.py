"""Base class and path helpers for route extractors."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import ClassVar, Dict, Iterable, List, Tuple

from ..models import DiscoveredRepo, RepoVariant, RouteInfo
from ..utils import find_matching_delimiter

_REPEATED_SLASHES = re.compile(r"/{2,}")


class RouteExtractor(ABC):
    """Contract for extractors that list the HTTP routes a repo exposes."""

    variant: ClassVar[RepoVariant]

    @abstractmethod
    def extract(self, repo: DiscoveredRepo, workspace_root: Path) -> List[RouteInfo]:
        """Return routes declared in ``repo``; unreadable files contribute nothing."""


def normalize_path(path: str) -> str:
    """Return a canonical endpoint path, keeping ``:param`` segments as written."""
    result = (path or "").strip()
    if not result:
        return "/"
    if not result.startswith("/"):
        result = "/" + result
    result = _REPEATED_SLASHES.sub("/", result)
    if len(result) > 1 and result.endswith("/"):
        result = result[:-1]
    return result or "/"


def join_paths(prefix: str, route: str) -> str:
    """Combine class-level and method-level paths."""
    prefix_norm = normalize_path(prefix) if prefix and prefix.strip() else ""
    route_norm = normalize_path(route)
    if not prefix_norm or prefix_norm == "/":
        return route_norm
    if route_norm == "/":
        return prefix_norm
    return normalize_path(f"{prefix_norm}{route_norm}")


def dedupe_routes(routes: Iterable[RouteInfo]) -> List[RouteInfo]:
    """Drop repeated (method, path) pairs, keeping the first declaration."""
    seen: Dict[Tuple[str, str], RouteInfo] = {}
    for route in routes:
        if route.key not in seen:
            seen[route.key] = route
    return list(seen.values())


_GENERIC = re.compile(r"^([\w.]+)\s*<(.*)>$", re.DOTALL)
_STRING_LITERAL = re.compile(r"""^(['"`])((?:(?!\1).)*)\1$""", re.DOTALL)


def unwrap_generic(type_name: str | None, wrappers: Iterable[str]) -> str | None:
    """Strip wrapper generics such as ``Promise<T>`` down to ``T``."""
    if not type_name:
        return None
    allowed = set(wrappers)
    current = " ".join(type_name.split())
    while True:
        match = _GENERIC.match(current)
        if not match or match.group(1).split(".")[-1] not in allowed:
            break
        current = match.group(2).strip()
    return current or None


def string_literal(expression: str) -> str | None:
    """Return the contents of a single quoted literal expression, else None."""
    match = _STRING_LITERAL.match(expression.strip())
    if not match:
        return None
    return match.group(2)


_ANNOTATION_NAME = re.compile(r"\s*@[\w$.]+\s*")
_TYPE_NAME = re.compile(r"[A-Za-z_$][\w$.]*")


def skip_annotations(text: str, index: int) -> int:
    """Return the index just past any ``@Name(...)`` annotations at ``index``."""
    while True:
        match = _ANNOTATION_NAME.match(text, index)
        if not match:
            return index
        index = match.end()
        if index < len(text) and text[index] == "(":
            close_index = find_matching_delimiter(text, index)
            if close_index == -1:
                return len(text)
            index = close_index + 1


def read_type(text: str, index: int) -> str | None:
    """Read a type expression such as ``List<Foo>[]`` or ``Foo?`` at ``index``."""
    name = _TYPE_NAME.match(text, index)
    if not name:
        return None
    end = name.end()
    if end < len(text) and text[end] == "<":
        close_index = find_matching_delimiter(text, end)
        if close_index == -1:
            return name.group(0)
        end = close_index + 1
    while text.startswith("[]", end):
        end += 2
    if text.startswith("?", end):
        end += 1
    return text[index:end]


__all__ = [
    "RouteExtractor",
    "dedupe_routes",
    "join_paths",
    "normalize_path",
    "read_type",
    "skip_annotations",
    "string_literal",
    "unwrap_generic",
]
