"""Outbound call detection for Spring RestTemplate / WebClient clients."""

from __future__ import annotations

import re
from pathlib import Path
from typing import List, Optional, Sequence, Set, Tuple

from ..logging import get_logger
from ..models import DiscoveredRepo, OutboundCall, OutboundMapping, PathSpec
from ..utils import find_matching_delimiter, iter_files, read_text, relative_posix, split_top_level
from .core import MatchPolicy, OutboundScanner, is_valid_call_path, resolve_config_key

SOURCE_DIRS = ("src/main/kotlin", "src/main/java")
SOURCE_SUFFIXES = (".kt", ".java")

_CLIENT_MARKERS = ("RestTemplate", "WebClient")
_VALUE_KEY = re.compile(r"""@Value\s*\(\s*["']\\?\$\{([^}:]+)(?::[^}]*)?\}\s*["']\s*\)""")
_BASE_KEY_HINTS = ("url", "host", "base")
_REST_CALL = re.compile(
    r"\.\s*(getForObject|getForEntity|postForObject|postForEntity|put|delete|exchange)\s*(?:<[^>()]*>\s*)?\("
)
_WEBCLIENT_CALL = re.compile(r"\.\s*(get|post|put|patch|delete)\s*\(\s*\)\s*\.\s*uri\s*\(")
_HTTP_METHOD = re.compile(r"HttpMethod\s*\.\s*(GET|POST|PUT|PATCH|DELETE)")
_STRING = re.compile(r'"((?:[^"\\]|\\.)*)"')
_TEMPLATE_REF = re.compile(r"\$\{([^}]*)\}|\$([A-Za-z_]\w*)")
_URL_ORIGIN = re.compile(r"^[a-zA-Z][\w+.-]*://[^/]*")

_REST_METHODS = {
    "getForObject": "GET",
    "getForEntity": "GET",
    "postForObject": "POST",
    "postForEntity": "POST",
    "put": "PUT",
    "delete": "DELETE",
}


class SpringClientScanner(OutboundScanner):
    """Finds RestTemplate / WebClient calls behind an ``@Value`` base URL."""

    def __init__(self, policy: MatchPolicy = MatchPolicy.FIRST_MATCH) -> None:
        super().__init__(policy)
        self.logger = get_logger("outbound.spring")

    def scan(
        self,
        repo: DiscoveredRepo,
        workspace_root: Path,
        repo_ids: Sequence[str],
    ) -> List[OutboundMapping]:
        mappings: List[OutboundMapping] = []
        for source_dir in SOURCE_DIRS:
            for path in iter_files(repo.path / source_dir, SOURCE_SUFFIXES):
                text = read_text(path)
                if text is None:
                    self.logger.debug("Skipping unreadable source %s", path)
                    continue
                if not any(marker in text for marker in _CLIENT_MARKERS):
                    continue
                resolved = self._base_key(text, repo.id, repo_ids)
                if resolved is None:
                    continue
                key, to_service = resolved
                calls = extract_calls(text)
                if not calls:
                    continue
                mappings.append(
                    OutboundMapping(
                        from_repo=repo.id,
                        to_service=to_service,
                        env_var=key,
                        file_path=relative_posix(path, workspace_root, repo.path),
                        calls=calls,
                    )
                )
        return mappings

    def _base_key(self, text: str, repo_id: str, repo_ids: Sequence[str]) -> Optional[Tuple[str, str]]:
        for match in _VALUE_KEY.finditer(text):
            key = match.group(1).strip()
            if not any(hint in key.lower() for hint in _BASE_KEY_HINTS):
                continue
            service = resolve_config_key(key, repo_ids, self.policy)
            if service and service != repo_id:
                return key, service
        return None


def extract_calls(text: str) -> List[OutboundCall]:
    """Return RestTemplate and WebClient calls with a resolvable literal path."""
    found: List[Tuple[int, OutboundCall]] = []
    for match in _REST_CALL.finditer(text):
        arguments = _arguments(text, match.end() - 1)
        if not arguments:
            continue
        name = match.group(1)
        if name == "exchange":
            verb = _HTTP_METHOD.search(" ".join(arguments[1:]))
            if not verb:
                continue
            method = verb.group(1)
        else:
            method = _REST_METHODS[name]
        path = path_from_expression(arguments[0])
        if path is not None:
            found.append((match.start(), OutboundCall(method=method, path=PathSpec.of_literal(path))))

    for match in _WEBCLIENT_CALL.finditer(text):
        arguments = _arguments(text, match.end() - 1)
        if not arguments:
            continue
        path = path_from_expression(arguments[0])
        if path is not None:
            found.append(
                (match.start(), OutboundCall(method=match.group(1).upper(), path=PathSpec.of_literal(path)))
            )

    found.sort(key=lambda item: item[0])
    calls: List[OutboundCall] = []
    seen: Set[Tuple[str, str]] = set()
    for _, call in found:
        if call.key not in seen:
            seen.add(call.key)
            calls.append(call)
    return calls


def _arguments(text: str, open_index: int) -> List[str]:
    close_index = find_matching_delimiter(text, open_index)
    if close_index == -1:
        return []
    return split_top_level(text[open_index + 1 : close_index])


def path_from_expression(expression: str) -> Optional[str]:
    """Read the request path from a URL argument such as ``baseUrl + "/users/" + id``.

    String pieces are concatenated; a leading template reference or origin
    (the base URL) is dropped and later references become ``{name}``.
    """
    pieces: List[str] = []
    for part in split_top_level(expression, "+"):
        part = part.strip()
        literal = _STRING.fullmatch(part)
        if literal:
            pieces.append(literal.group(1))
        elif pieces and re.fullmatch(r"[A-Za-z_][\w.]*", part):
            pieces.append("{" + part.split(".")[-1] + "}")
    if not pieces:
        return None
    raw = "".join(pieces)
    leading = _TEMPLATE_REF.match(raw)
    if leading:
        raw = raw[leading.end() :]
    raw = _URL_ORIGIN.sub("", raw)

    def _placeholder(match: "re.Match[str]") -> str:
        name = (match.group(1) or match.group(2) or "").strip()
        return "{" + name.split(".")[-1] + "}"

    path = _TEMPLATE_REF.sub(_placeholder, raw).split("?")[0].strip()
    if not path.startswith("/") or not is_valid_call_path(path):
        return None
    return path


__all__ = ["SpringClientScanner", "extract_calls", "path_from_expression"]
