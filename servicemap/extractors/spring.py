"""Route extraction for Spring MVC / WebFlux controllers (Kotlin and Java)."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..logging import get_logger
from ..models import DiscoveredRepo, RepoVariant, RouteInfo
from ..utils import find_matching_delimiter, iter_files, line_of, read_text, relative_posix, split_top_level
from .base import RouteExtractor, join_paths, read_type, skip_annotations, unwrap_generic

SOURCE_DIRS = ("src/main/kotlin", "src/main/java")
SOURCE_SUFFIXES = (".kt", ".java")
_SIGNATURE_WINDOW = 400

_CONTROLLER = re.compile(r"@(?:Rest)?Controller\b")
_MAPPING = re.compile(r"@(Get|Post|Put|Patch|Delete|Request)Mapping\b")
_CLASS_DECLARATION = re.compile(
    r"\s*(?:(?:public|private|protected|internal|open|abstract|final|data)\s+)*class\b"
)
_NAMED_ARGUMENT = re.compile(r"^(\w+)\s*=\s*(.*)$", re.DOTALL)
_QUOTED = re.compile(r'"([^"]*)"')
_REQUEST_METHOD = re.compile(r"RequestMethod\.(GET|POST|PUT|PATCH|DELETE)")
_KOTLIN_FUN = re.compile(
    r"\s*(?:(?:public|private|protected|internal|override|open|suspend|final)\s+)*"
    r"fun\s+(?:<[^>]*>\s*)?([A-Za-z_]\w*)\s*\("
)
_JAVA_MODIFIERS = re.compile(r"\s*(?:(?:public|private|protected|static|final|synchronized)\s+)*(?:<[^>]*>\s*)?")
_JAVA_NAME = re.compile(r"\s+([A-Za-z_]\w*)\s*\(")
_REQUEST_BODY = re.compile(r"@RequestBody\b")
_KOTLIN_PARAM = re.compile(r"\s*(?:(?:val|var)\s+)?[A-Za-z_]\w*\s*:\s*")
_JAVA_FINAL = re.compile(r"\s*(?:final\s+)?")
_RETURN_ANNOTATION = re.compile(r"\s*:\s*")

_RESPONSE_WRAPPERS = ("ResponseEntity", "Mono", "Flux", "Optional", "CompletableFuture", "Deferred")
_NO_CONTENT_TYPES = ("void", "Void", "Unit")


class SpringRouteExtractor(RouteExtractor):
    """Reads ``@RequestMapping`` and ``@GetMapping``-style annotations."""

    variant = RepoVariant.SPRING

    def __init__(self) -> None:
        self.logger = get_logger("extractors.spring")

    def extract(self, repo: DiscoveredRepo, workspace_root: Path) -> List[RouteInfo]:
        routes: List[RouteInfo] = []
        for source_dir in SOURCE_DIRS:
            for path in iter_files(repo.path / source_dir, SOURCE_SUFFIXES):
                text = read_text(path)
                if text is None:
                    self.logger.debug("Skipping unreadable source %s", path)
                    continue
                if not _CONTROLLER.search(text):
                    continue
                rel_path = relative_posix(path, workspace_root, repo.path)
                routes.extend(_routes_from_text(text, rel_path))
        return routes


def _routes_from_text(text: str, rel_path: str) -> List[RouteInfo]:
    routes: List[RouteInfo] = []
    controllers = _controller_classes(text)
    bases: Dict[int, str] = {}
    base = ""
    for match in _MAPPING.finditer(text):
        kind = match.group(1)
        arguments = ""
        end = match.end()
        if end < len(text) and text[end:].lstrip().startswith("("):
            open_index = text.index("(", end)
            close_index = find_matching_delimiter(text, open_index)
            if close_index == -1:
                continue
            arguments = text[open_index + 1 : close_index]
            end = close_index + 1

        if kind == "Request" and _is_class_level(text, end):
            base = _annotation_path(arguments) or ""
            bases[skip_annotations(text, end)] = base
            continue
        owner = max((start for start in controllers if start < match.start()), default=None)
        if owner is not None:
            base = bases.get(owner, "")

        route_path = _annotation_path(arguments)
        if route_path is None:
            continue
        if kind == "Request":
            method_match = _REQUEST_METHOD.search(arguments)
            method = method_match.group(1) if method_match else "GET"
        else:
            method = kind.upper()

        handler, body_type, response_type = _parse_signature(text, end)
        routes.append(
            RouteInfo(
                method=method,
                full_path=join_paths(base, route_path),
                file_path=rel_path,
                line=line_of(text, match.start()),
                request_body_type=body_type,
                response_type=response_type,
                handler_name=handler,
            )
        )
    return routes


def _is_class_level(text: str, index: int) -> bool:
    return bool(_CLASS_DECLARATION.match(text, skip_annotations(text, index)))


def _controller_classes(text: str) -> List[int]:
    """Offsets of the class declarations carrying a controller annotation."""
    starts: List[int] = []
    for match in _CONTROLLER.finditer(text):
        index = match.end()
        if text.startswith("(", index):
            close_index = find_matching_delimiter(text, index)
            if close_index == -1:
                continue
            index = close_index + 1
        start = skip_annotations(text, index)
        if _CLASS_DECLARATION.match(text, start) and start not in starts:
            starts.append(start)
    return starts


def _annotation_path(arguments: str) -> Optional[str]:
    """Return the first path from mapping arguments.

    Missing or path-less arguments map to the base path; a path given by a
    constant cannot be resolved and yields None.
    """
    for part in split_top_level(arguments):
        named = _NAMED_ARGUMENT.match(part)
        if named:
            if named.group(1) not in ("value", "path"):
                continue
            expression = named.group(2)
        else:
            expression = part
        quoted = _QUOTED.search(expression)
        return quoted.group(1).strip() if quoted else None
    return ""


def _parse_signature(
    text: str, index: int
) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    start = skip_annotations(text, index)
    if start - index > _SIGNATURE_WINDOW:
        return None, None, None

    kotlin = _KOTLIN_FUN.match(text, start)
    if kotlin:
        open_index = kotlin.end() - 1
        close_index = find_matching_delimiter(text, open_index)
        if close_index == -1:
            return kotlin.group(1), None, None
        params = text[open_index + 1 : close_index]
        returned = None
        annotation = _RETURN_ANNOTATION.match(text, close_index + 1)
        if annotation:
            returned = read_type(text, annotation.end())
        return kotlin.group(1), _kotlin_body_type(params), _response_type(returned)

    modifiers = _JAVA_MODIFIERS.match(text, start)
    type_start = modifiers.end() if modifiers else start
    returned = read_type(text, type_start)
    if returned is None:
        return None, None, None
    name = _JAVA_NAME.match(text, type_start + len(returned))
    if not name:
        return None, None, None
    open_index = name.end() - 1
    close_index = find_matching_delimiter(text, open_index)
    body_type = None
    if close_index != -1:
        body_type = _java_body_type(text[open_index + 1 : close_index])
    return name.group(1), body_type, _response_type(returned)


def _body_parameter_start(params: str) -> Optional[int]:
    annotation = _REQUEST_BODY.search(params)
    if not annotation:
        return None
    index = annotation.end()
    if params[index:].lstrip().startswith("("):
        open_index = params.index("(", index)
        close_index = find_matching_delimiter(params, open_index)
        if close_index == -1:
            return None
        index = close_index + 1
    return skip_annotations(params, index)


def _kotlin_body_type(params: str) -> Optional[str]:
    start = _body_parameter_start(params)
    if start is None:
        return None
    declaration = _KOTLIN_PARAM.match(params, start)
    if not declaration:
        return None
    return _strip_nullable(read_type(params, declaration.end()))


def _java_body_type(params: str) -> Optional[str]:
    start = _body_parameter_start(params)
    if start is None:
        return None
    modifier = _JAVA_FINAL.match(params, start)
    return read_type(params, modifier.end() if modifier else start)


def _response_type(raw: Optional[str]) -> Optional[str]:
    current = _strip_nullable(raw)
    if current is None:
        return None
    unwrapped = _strip_nullable(unwrap_generic(current, _RESPONSE_WRAPPERS))
    return None if unwrapped in _NO_CONTENT_TYPES else unwrapped


def _strip_nullable(type_name: Optional[str]) -> Optional[str]:
    if not type_name:
        return None
    return type_name.rstrip("?").strip() or None


__all__ = ["SOURCE_DIRS", "SOURCE_SUFFIXES", "SpringRouteExtractor"]
