"""Route extraction for Nest-style decorated controllers."""

from __future__ import annotations

import re
from pathlib import Path
from typing import List, Optional, Tuple

from ..logging import get_logger
from ..models import DiscoveredRepo, RepoVariant, RouteInfo
from ..utils import find_matching_delimiter, iter_files, line_of, read_text, relative_posix
from .base import (
    RouteExtractor,
    join_paths,
    read_type,
    skip_annotations,
    string_literal,
    unwrap_generic,
)

_CONTROLLER_SUFFIX = ".controller.ts"
_SIGNATURE_WINDOW = 800

_CONTROLLER_DECORATOR = re.compile(r"@Controller\s*\(")
_METHOD_DECORATOR = re.compile(r"@(Get|Post|Put|Patch|Delete)\s*\(")
_OBJECT_PATH = re.compile(r"""\bpath\s*:\s*(['"`])([^'"`]*)\1""")
_SIGNATURE = re.compile(
    r"\s*(?:(?:public|private|protected|static|async)\s+)*([A-Za-z_$][\w$]*)\s*(?:<[^>(]*>\s*)?\("
)
_BODY_DECORATOR = re.compile(r"@Body\s*\(")
_PARAM_TYPE = re.compile(r"\s*(?:readonly\s+)?[\w$]+\s*\??\s*:\s*")
_RETURN_ANNOTATION = re.compile(r"\s*:\s*")

_RESPONSE_WRAPPERS = ("Promise", "Observable")


class NestRouteExtractor(RouteExtractor):
    """Reads ``@Controller`` / ``@Get``-style decorators from controller files."""

    variant = RepoVariant.NEST

    def __init__(self) -> None:
        self.logger = get_logger("extractors.nest")

    def extract(self, repo: DiscoveredRepo, workspace_root: Path) -> List[RouteInfo]:
        search_root = repo.controllers_root
        if not search_root.is_dir():
            search_root = repo.path / "src"
        routes: List[RouteInfo] = []
        for path in iter_files(search_root, (_CONTROLLER_SUFFIX,)):
            text = read_text(path)
            if text is None:
                self.logger.debug("Skipping unreadable controller %s", path)
                continue
            rel_path = relative_posix(path, workspace_root, repo.path)
            routes.extend(self._routes_from_text(text, rel_path))
        return routes

    def _routes_from_text(self, text: str, rel_path: str) -> List[RouteInfo]:
        controllers = _controller_bases(text)
        routes: List[RouteInfo] = []
        for match in _METHOD_DECORATOR.finditer(text):
            open_index = match.end() - 1
            close_index = find_matching_delimiter(text, open_index)
            if close_index == -1:
                continue
            sub_path = _decorator_path(text[open_index + 1 : close_index])
            if sub_path is None:
                continue
            base = ""
            for start, controller_base in controllers:
                if start < match.start():
                    base = controller_base
            window = text[close_index + 1 : close_index + 1 + _SIGNATURE_WINDOW]
            handler, body_type, response_type = _parse_signature(window)
            routes.append(
                RouteInfo(
                    method=match.group(1).upper(),
                    full_path=join_paths(base, sub_path),
                    file_path=rel_path,
                    line=line_of(text, match.start()),
                    request_body_type=body_type,
                    response_type=response_type,
                    handler_name=handler,
                )
            )
        return routes


def _controller_bases(text: str) -> List[Tuple[int, str]]:
    bases: List[Tuple[int, str]] = []
    for match in _CONTROLLER_DECORATOR.finditer(text):
        open_index = match.end() - 1
        close_index = find_matching_delimiter(text, open_index)
        if close_index == -1:
            continue
        base = _decorator_path(text[open_index + 1 : close_index])
        bases.append((match.start(), base or ""))
    return bases


def _decorator_path(arguments: str) -> Optional[str]:
    """Return the route path carried by decorator arguments.

    An empty argument list means the parent path; non-literal arguments
    cannot be resolved and yield None.
    """
    stripped = arguments.strip()
    if not stripped:
        return ""
    literal = string_literal(stripped)
    if literal is not None:
        return literal.strip()
    if stripped.startswith("{"):
        match = _OBJECT_PATH.search(stripped)
        return match.group(2).strip() if match else ""
    if stripped.startswith("["):
        inner = stripped[1:-1].split(",")[0] if stripped.endswith("]") else ""
        literal = string_literal(inner)
        return literal.strip() if literal is not None else None
    return None


def _parse_signature(window: str) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    start = skip_annotations(window, 0)
    signature = _SIGNATURE.match(window, start)
    if not signature:
        return None, None, None
    handler = signature.group(1)
    open_index = signature.end() - 1
    close_index = find_matching_delimiter(window, open_index)
    if close_index == -1:
        return handler, _body_type(window[open_index + 1 :]), None
    params = window[open_index + 1 : close_index]
    return handler, _body_type(params), _return_type(window, close_index + 1)


def _body_type(params: str) -> Optional[str]:
    decorator = _BODY_DECORATOR.search(params)
    if not decorator:
        return None
    close_index = find_matching_delimiter(params, decorator.end() - 1)
    if close_index == -1:
        return None
    annotation = _PARAM_TYPE.match(params, close_index + 1)
    if not annotation:
        return None
    return read_type(params, annotation.end())


def _return_type(text: str, index: int) -> Optional[str]:
    annotation = _RETURN_ANNOTATION.match(text, index)
    if not annotation:
        return None
    raw = read_type(text, annotation.end())
    return unwrap_generic(raw, _RESPONSE_WRAPPERS)


__all__ = ["NestRouteExtractor"]
