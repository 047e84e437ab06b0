"""Front-end API usage: service endpoints, per-file usage, response types and per-route endpoints."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from ..utils import (
    find_matching_delimiter,
    iter_files,
    line_of,
    read_text,
    relative_posix,
    split_top_level,
)
from .base import normalize_path, string_literal
from .front import FrontRoute, resolve_source_module

SERVICE_SUFFIXES = (".ts", ".tsx")
USAGE_SUFFIXES = (".ts", ".tsx", ".js", ".jsx")
SCHEMA_DIRS = ("src/services", "src/types", "src/api", "src/models")

_EXPORTED_ASYNC = re.compile(
    r"\bexport\s+(?:const\s+([A-Za-z_$][\w$]*)\s*=\s*async\b|async\s+function\s+([A-Za-z_$][\w$]*))"
)
_HTTP_CALL = re.compile(
    r"\b(?:secure(Get|Post|Put|Patch|Delete)|axios\s*\.\s*(get|post|put|patch|delete))\s*(?:<[^>()]*>\s*)?\("
)
_URL_ASSIGNMENT = re.compile(r"\b(?:const|let)\s+url\s*=\s*([^;]+);", re.DOTALL)
_API_URLS = re.compile(r"\b(?:const|let)\s+apiUrls\s*=\s*\{")
_API_URL_ENTRY = re.compile(r"""(\w+)\s*:\s*(['"`])([^'"`]+)\2""")
_API_URL_REF = re.compile(r"^apiUrls\.(\w+)$")
_INTERPOLATION = re.compile(r"\$\{([^}]*)\}")
_IDENTIFIER = re.compile(r"^[A-Za-z_$][\w$]*(?:\.[A-Za-z_$][\w$]*)*$")
_PARAM_NAME = re.compile(r"^(?:\.\.\.)?([A-Za-z_$][\w$]*)")
_BASE_NAME = re.compile(r"url|base|host", re.IGNORECASE)

_SERVICE_IMPORT = re.compile(
    r"""import\s+(?:\{[^}]*\}|[A-Za-z_$][\w$]*|\*\s+as\s+[A-Za-z_$][\w$]*)\s+from\s+['"][^'"]*/services/([^'"/]+)['"]"""
)
_API_FRAGMENT = re.compile(r"""['"`](/(?:api|v\d+)/[^'"`\s]*)['"`]""")
_RELATIVE_IMPORT = re.compile(r"""import\s+(?:\{[^}]*\}|[A-Za-z_$][\w$]*)\s+from\s+['"](\.{1,2}/[^'"]+)['"]""")

_INTERFACE = re.compile(r"\bexport\s+interface\s+([A-Za-z_$][\w$]*)(?:\s*<[^>{]*>)?(?:\s+extends\s+[^{]+)?\s*\{")
_TYPE_ALIAS = re.compile(r"\bexport\s+type\s+([A-Za-z_$][\w$]*)(?:\s*<[^>=]*>)?\s*=\s*\{")
_PROPERTY = re.compile(r"^(?:readonly\s+)?([A-Za-z_$][\w$]*)\s*\??\s*:\s*(.+)$")


@dataclass(frozen=True)
class ServiceEndpoint:
    """An exported front-end service function and the endpoint it calls."""

    service_name: str
    method_name: str
    http_method: str
    path_pattern: str
    source_path: str
    param_names: Tuple[str, ...] = ()


@dataclass(frozen=True)
class EndpointUsage:
    """A source file that imports a service module or references an API path."""

    source_path: str
    service_name: Optional[str] = None
    path_fragment: Optional[str] = None
    invoked_methods: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ResponseSchema:
    """An exported interface or object type with its first-level properties."""

    type_name: str
    source_path: str
    properties: Tuple[Tuple[str, str], ...] = ()
    line: Optional[int] = None


@dataclass(frozen=True)
class RouteEndpoints:
    """Endpoints reachable from one front-end route's page and direct imports."""

    path: str
    route_key: str
    component_name: str
    source_path: str
    endpoints: Tuple[ServiceEndpoint, ...] = field(default_factory=tuple)


# ---------------------------------------------------------------------------
# Service endpoints
# ---------------------------------------------------------------------------


def extract_service_endpoints(repo_path: Path, workspace_root: Path) -> List[ServiceEndpoint]:
    """Map each exported async function in ``src/services`` to the endpoint it calls."""
    services_dir = repo_path / "src" / "services"
    results: List[ServiceEndpoint] = []
    if not services_dir.is_dir():
        return results
    for path in sorted(services_dir.iterdir()):
        if not path.is_file() or not path.name.endswith(SERVICE_SUFFIXES) or path.name.endswith(".d.ts"):
            continue
        text = read_text(path)
        if not text:
            continue
        service_name = _strip_extension(path.name)
        source_path = relative_posix(path, workspace_root, repo_path)
        api_urls = _api_urls(text)
        for name, params, body in _exported_functions(text):
            call = _HTTP_CALL.search(body)
            if not call:
                continue
            http_method = (call.group(1) or call.group(2)).upper()
            expression = _url_expression(body, call)
            if expression is None:
                continue
            pattern = url_expression_to_pattern(expression, api_urls)
            if pattern == "/":
                continue
            results.append(
                ServiceEndpoint(
                    service_name=service_name,
                    method_name=name,
                    http_method=http_method,
                    path_pattern=pattern,
                    source_path=source_path,
                    param_names=tuple(_param_names(params)),
                )
            )
    return results


def _exported_functions(text: str) -> List[Tuple[str, str, str]]:
    """Return ``(name, params, body)`` for exported async functions."""
    functions: List[Tuple[str, str, str]] = []
    for match in _EXPORTED_ASYNC.finditer(text):
        name = match.group(1) or match.group(2)
        params_open = text.find("(", match.end())
        if params_open == -1:
            continue
        params_close = find_matching_delimiter(text, params_open)
        if params_close == -1:
            continue
        body_open = text.find("{", params_close)
        if body_open == -1:
            continue
        body_close = find_matching_delimiter(text, body_open)
        if body_close == -1:
            continue
        functions.append((name, text[params_open + 1 : params_close], text[body_open + 1 : body_close]))
    return functions


def _api_urls(text: str) -> Dict[str, str]:
    match = _API_URLS.search(text)
    if not match:
        return {}
    close_index = find_matching_delimiter(text, match.end() - 1)
    if close_index == -1:
        return {}
    block = text[match.end() : close_index]
    return {entry.group(1): entry.group(3).strip() for entry in _API_URL_ENTRY.finditer(block)}


def _url_expression(body: str, call: "re.Match[str]") -> Optional[str]:
    assignment = _URL_ASSIGNMENT.search(body)
    if assignment:
        return assignment.group(1).strip()
    close_index = find_matching_delimiter(body, call.end() - 1)
    if close_index == -1:
        return None
    arguments = split_top_level(body[call.end() : close_index])
    return arguments[0] if arguments else None


def url_expression_to_pattern(expression: str, api_urls: Mapping[str, str]) -> str:
    """Turn a URL expression into a path pattern with ``:name`` placeholders.

    Literals and ``apiUrls.key`` entries contribute their text, template
    interpolations and bare identifiers become ``:name``. A leading variable
    naming a base URL or host is dropped.
    """
    pieces: List[str] = []
    for position, part in enumerate(split_top_level(expression.strip(), "+")):
        part = part.strip()
        if not part:
            continue
        api_ref = _API_URL_REF.match(part)
        if api_ref:
            pieces.append(api_urls.get(api_ref.group(1), ""))
            continue
        if part.startswith("`") and part.endswith("`") and len(part) >= 2:
            pieces.append(_template_to_pattern(part[1:-1], api_urls, leading=position == 0))
            continue
        literal = string_literal(part)
        if literal is not None:
            pieces.append(literal)
            continue
        if _IDENTIFIER.match(part) and part not in ("undefined", "null"):
            name = part.split(".")[-1]
            if position == 0 and _BASE_NAME.search(name):
                continue
            pieces.append(f"/:{name}")

    joined = "/".join(piece.split("?")[0].strip("/") for piece in pieces)
    return normalize_path(joined)


def _template_to_pattern(template: str, api_urls: Mapping[str, str], *, leading: bool) -> str:
    def _replace(match: "re.Match[str]") -> str:
        inner = match.group(1).strip()
        api_ref = _API_URL_REF.match(inner)
        if api_ref:
            return api_urls.get(api_ref.group(1), "")
        if leading and match.start() == 0 and _BASE_NAME.search(inner):
            return ""
        if _IDENTIFIER.match(inner):
            return f":{inner.split('.')[-1]}"
        return ":param"

    return _INTERPOLATION.sub(_replace, template)


def _param_names(params: str) -> List[str]:
    names: List[str] = []
    for part in split_top_level(params):
        match = _PARAM_NAME.match(part.strip())
        if match:
            names.append(match.group(1))
    return names


def _strip_extension(name: str) -> str:
    return re.sub(r"\.(?:tsx?|jsx?)$", "", name)


# ---------------------------------------------------------------------------
# Endpoint usage
# ---------------------------------------------------------------------------


def extract_endpoint_usage(
    repo_path: Path,
    workspace_root: Path,
    service_methods: Optional[Mapping[str, Iterable[str]]] = None,
) -> List[EndpointUsage]:
    """Record service imports, API path literals and invoked service methods per file."""
    results: List[EndpointUsage] = []
    for path in iter_files(repo_path / "src", USAGE_SUFFIXES):
        if path.name.endswith(".d.ts"):
            continue
        text = read_text(path)
        if not text:
            continue
        services = _unique(_strip_extension(match.group(1)) for match in _SERVICE_IMPORT.finditer(text))
        fragments = _unique(
            _INTERPOLATION.sub(":param", match.group(1).split("?")[0]) for match in _API_FRAGMENT.finditer(text)
        )
        if not services and not fragments:
            continue
        source_path = relative_posix(path, workspace_root, repo_path)
        for service in services:
            methods = (service_methods or {}).get(service, ())
            invoked = tuple(
                name for name in sorted(set(methods)) if re.search(rf"\b{re.escape(name)}\s*\(", text)
            )
            results.append(EndpointUsage(source_path=source_path, service_name=service, invoked_methods=invoked))
        for fragment in fragments:
            results.append(EndpointUsage(source_path=source_path, path_fragment=fragment))
    return results


def _unique(values: Iterable[str]) -> List[str]:
    seen: List[str] = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return seen


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


def extract_response_schemas(repo_path: Path, workspace_root: Path) -> List[ResponseSchema]:
    """Collect exported interfaces and object type aliases from type-bearing folders."""
    if not (repo_path / "src").is_dir():
        return []
    scan_dirs = [repo_path / name for name in SCHEMA_DIRS if (repo_path / name).is_dir()]
    if not scan_dirs:
        scan_dirs = [repo_path / "src"]

    results: List[ResponseSchema] = []
    seen: Set[Path] = set()
    for directory in scan_dirs:
        for path in iter_files(directory, SERVICE_SUFFIXES):
            if path in seen:
                continue
            seen.add(path)
            text = read_text(path)
            if not text:
                continue
            source_path = relative_posix(path, workspace_root, repo_path)
            results.extend(_schemas_from_text(text, source_path))
    return results


def _schemas_from_text(text: str, source_path: str) -> List[ResponseSchema]:
    found: List[Tuple[int, ResponseSchema]] = []
    for pattern in (_INTERFACE, _TYPE_ALIAS):
        for match in pattern.finditer(text):
            open_index = match.end() - 1
            close_index = find_matching_delimiter(text, open_index)
            if close_index == -1:
                continue
            found.append(
                (
                    match.start(),
                    ResponseSchema(
                        type_name=match.group(1),
                        source_path=source_path,
                        properties=tuple(_first_level_properties(text[open_index + 1 : close_index])),
                        line=line_of(text, match.start()),
                    ),
                )
            )
    found.sort(key=lambda item: item[0])
    return [schema for _, schema in found]


def _first_level_properties(block: str) -> List[Tuple[str, str]]:
    properties: List[Tuple[str, str]] = []
    depth = 0
    for line in block.splitlines():
        if depth == 0:
            stripped = line.strip()
            if stripped and not stripped.startswith(("//", "*", "/*")):
                match = _PROPERTY.match(stripped)
                if match:
                    properties.append((match.group(1), _simplify_type(match.group(2))))
        depth += line.count("{") - line.count("}")
        depth = max(depth, 0)
    return properties


def _simplify_type(raw: str) -> str:
    type_text = raw.strip().rstrip(";,").strip()
    if type_text.startswith("{"):
        return "object"
    if "{" in type_text:
        type_text = type_text.split("{")[0].strip() or "object"
    if type_text.endswith("[]"):
        type_text = type_text[:-2]
    return " ".join(type_text.split())


# ---------------------------------------------------------------------------
# Route endpoints
# ---------------------------------------------------------------------------


def build_route_endpoints(
    repo_path: Path,
    workspace_root: Path,
    routes: Iterable[FrontRoute],
    usages: Iterable[EndpointUsage],
    endpoints: Iterable[ServiceEndpoint],
) -> List[RouteEndpoints]:
    """Resolve the endpoints each route uses through its page and directly imported components."""
    by_service_method: Dict[Tuple[str, str], ServiceEndpoint] = {}
    by_method: Dict[str, ServiceEndpoint] = {}
    for endpoint in endpoints:
        by_service_method.setdefault((endpoint.service_name, endpoint.method_name), endpoint)
        by_method.setdefault(endpoint.method_name, endpoint)

    usages_by_file: Dict[str, List[EndpointUsage]] = {}
    for usage in usages:
        usages_by_file.setdefault(usage.source_path, []).append(usage)

    results: List[RouteEndpoints] = []
    for route in routes:
        files = [route.source_path]
        page = _absolute_source(route.source_path, repo_path, workspace_root)
        text = read_text(page)
        if text:
            for match in _RELATIVE_IMPORT.finditer(text):
                target = resolve_source_module(page.parent, match.group(1))
                rel_path = relative_posix(target, workspace_root, repo_path)
                if rel_path not in files:
                    files.append(rel_path)

        resolved: Dict[str, ServiceEndpoint] = {}
        for file_path in files:
            for usage in usages_by_file.get(file_path, []):
                for method_name in usage.invoked_methods:
                    endpoint = by_service_method.get((usage.service_name or "", method_name))
                    if endpoint is None:
                        endpoint = by_method.get(method_name)
                    if endpoint is not None and method_name not in resolved:
                        resolved[method_name] = endpoint
        results.append(
            RouteEndpoints(
                path=route.path,
                route_key=route.route_key,
                component_name=route.component_name,
                source_path=route.source_path,
                endpoints=tuple(resolved.values()),
            )
        )
    return results


def _absolute_source(source_path: str, repo_path: Path, workspace_root: Path) -> Path:
    candidate = workspace_root / source_path
    if candidate.is_file():
        return candidate
    return repo_path / source_path


__all__ = [
    "EndpointUsage",
    "ResponseSchema",
    "RouteEndpoints",
    "ServiceEndpoint",
    "build_route_endpoints",
    "extract_endpoint_usage",
    "extract_response_schemas",
    "extract_service_endpoints",
    "url_expression_to_pattern",
]
