"""Outbound call detection for axios-style HTTP clients in TS/JS services."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set, Tuple

from ..logging import get_logger
from ..models import DiscoveredRepo, OutboundCall, OutboundMapping, PathSpec
from ..utils import find_matching_delimiter, iter_files, read_text, relative_posix, split_top_level
from .core import MatchPolicy, OutboundScanner, env_to_service_id, is_valid_call_path

SOURCE_SUFFIXES = (".ts", ".js")

_CONFIG_GET = r"""(?:this\.)?config(?:Service)?\.get\s*(?:<[^>()]*>)?\s*\(\s*['"]([^'"]+)['"]"""
_BASE_URL = re.compile(
    r"(?:createAxiosInstance|axios\s*\.\s*create)\s*\(\s*\{[^}]*?baseURL\s*:\s*"
    rf"(?:{_CONFIG_GET}|process\.env\.([A-Za-z_]\w*))"
)
_PATH_VARIABLE = re.compile(rf"(?:this\.)?(\w+)\s*=\s*{_CONFIG_GET}")
_CLIENT_CALL = re.compile(
    r"(?:\bthis\s*\.\s*(?:axiosInstance|httpService|http)|\baxiosInstance|\bhttpService|\baxios)"
    r"\s*\.\s*(get|post|put|patch|delete)\s*(?:<[^>()]*>\s*)?\("
)
_PATH_IDENTIFIER = re.compile(r"^(?:this\.)?(path\w*)$")
_QUOTED = re.compile(r"""^(['"])((?:(?!\1).)*)\1$""", re.DOTALL)
_INTERPOLATION = re.compile(r"\$\{[^}]*\}")
_REPEATED_SLASHES = re.compile(r"/{2,}")


class AxiosCallScanner(OutboundScanner):
    """Finds ``axiosInstance.get('/x')``-style calls behind a configured base URL."""

    def __init__(self, policy: MatchPolicy = MatchPolicy.FIRST_MATCH) -> None:
        super().__init__(policy)
        self.logger = get_logger("outbound.axios")

    def scan(
        self,
        repo: DiscoveredRepo,
        workspace_root: Path,
        repo_ids: Sequence[str],
    ) -> List[OutboundMapping]:
        mappings: List[OutboundMapping] = []
        for path in iter_files(repo.path / "src", SOURCE_SUFFIXES):
            if path.name.endswith(".d.ts"):
                continue
            text = read_text(path)
            if text is None:
                self.logger.debug("Skipping unreadable source %s", path)
                continue
            base = base_url_key(text)
            if base is None:
                continue
            to_service = env_to_service_id(base, repo_ids, self.policy)
            if to_service is None or to_service == repo.id:
                continue
            calls = extract_calls(text)
            if not calls:
                continue
            mappings.append(
                OutboundMapping(
                    from_repo=repo.id,
                    to_service=to_service,
                    env_var=base,
                    file_path=relative_posix(path, workspace_root, repo.path),
                    calls=calls,
                )
            )
        return mappings


def base_url_key(text: str) -> Optional[str]:
    """Return the config key or env var feeding the client's ``baseURL``."""
    match = _BASE_URL.search(text)
    if not match:
        return None
    return match.group(1) or match.group(2)


def path_variables(text: str) -> Dict[str, str]:
    """Map fields assigned from ``config.get('KEY')`` to their key."""
    return {match.group(1): match.group(2) for match in _PATH_VARIABLE.finditer(text)}


def extract_calls(text: str) -> List[OutboundCall]:
    """Return the file's client calls, deduped on (method, literal-or-key)."""
    variables = path_variables(text)
    calls: List[OutboundCall] = []
    seen: Set[Tuple[str, str]] = set()
    for match in _CLIENT_CALL.finditer(text):
        open_index = match.end() - 1
        close_index = find_matching_delimiter(text, open_index)
        if close_index == -1:
            continue
        arguments = split_top_level(text[open_index + 1 : close_index])
        if not arguments:
            continue
        spec = _path_spec(arguments[0], variables)
        if spec is None:
            continue
        call = OutboundCall(method=match.group(1).upper(), path=spec)
        if call.key in seen:
            continue
        seen.add(call.key)
        calls.append(call)
    return calls


def _path_spec(argument: str, variables: Dict[str, str]) -> Optional[PathSpec]:
    argument = argument.strip()
    quoted = _QUOTED.match(argument)
    if quoted:
        literal = quoted.group(2).strip()
        return PathSpec.of_literal(literal) if is_valid_call_path(literal) else None
    if len(argument) >= 2 and argument[0] == argument[-1] == "`":
        literal = _REPEATED_SLASHES.sub("/", _INTERPOLATION.sub("", argument[1:-1])).strip()
        return PathSpec.of_literal(literal) if is_valid_call_path(literal) else None
    identifier = _PATH_IDENTIFIER.match(argument)
    if identifier:
        name = identifier.group(1)
        key = variables.get(name, name)
        return PathSpec.of_key(key) if is_valid_call_path(key) else None
    return None


__all__ = ["AxiosCallScanner", "base_url_key", "extract_calls", "path_variables"]
