"""Environment variable collection across env files and source code."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable, List, Set

from ..utils import iter_files, read_text

ENV_FILES = (".env.example", ".env.sample", ".env.dev", ".env.desa")

_ENV_LINE = re.compile(r"^\s*(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*=", re.MULTILINE)
_NODE_PATTERNS = (
    re.compile(r"\bprocess\.env\.([A-Za-z_][A-Za-z0-9_]*)"),
    re.compile(r"""\bconfig(?:Service)?\s*\.\s*get\s*(?:<[^>()]*>\s*)?\(\s*['"]([^'"]+)['"]"""),
    re.compile(r"\bimport\.meta\.env\.([A-Za-z_][A-Za-z0-9_]*)"),
)
_JVM_PATTERNS = (re.compile(r"""System\.getenv\s*\(\s*"([^"]+)"\s*\)"""),)
_RESOURCE_PLACEHOLDER = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::[^}]*)?\}")
_GO_PATTERNS = (re.compile(r"""os\.(?:Getenv|LookupEnv)\s*\(\s*"([^"]+)"\s*\)"""),)

_RESOURCE_NAME = re.compile(r"^application.*\.(?:ya?ml|properties)$")


def env_from_files(repo_path: Path) -> List[str]:
    """Return names declared in the repo's example env files."""
    names: List[str] = []
    for name in ENV_FILES:
        text = read_text(repo_path / name)
        if text is None:
            continue
        names.extend(match.group(1) for match in _ENV_LINE.finditer(text))
    return names


def env_from_code(repo_path: Path) -> List[str]:
    """Return names read through env/config lookups in source and resource files."""
    names: Set[str] = set()
    _scan(names, iter_files(repo_path / "src", (".ts", ".js", ".tsx", ".jsx")), _NODE_PATTERNS)
    _scan(names, iter_files(repo_path / "src" / "main", (".kt", ".java")), _JVM_PATTERNS)
    _scan(names, iter_files(repo_path, (".go",)), _GO_PATTERNS)

    resources = repo_path / "src" / "main" / "resources"
    if resources.is_dir():
        candidates = (path for path in sorted(resources.iterdir()) if _RESOURCE_NAME.match(path.name))
        _scan(names, candidates, (_RESOURCE_PLACEHOLDER,))
    return sorted(names)


def collect_env_vars(repo_path: Path) -> List[str]:
    """Return the sorted, unique env var names a repo declares or reads."""
    return sorted(set(env_from_files(repo_path)) | set(env_from_code(repo_path)))


def _scan(names: Set[str], paths: Iterable[Path], patterns: Iterable[re.Pattern[str]]) -> None:
    compiled = tuple(patterns)
    for path in paths:
        text = read_text(path)
        if not text:
            continue
        for pattern in compiled:
            names.update(match.group(1).strip() for match in pattern.finditer(text))


__all__ = ["ENV_FILES", "collect_env_vars", "env_from_code", "env_from_files"]
