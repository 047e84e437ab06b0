"""Configuration references that name another workspace service."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Set, Tuple

from ..logging import get_logger
from ..models import DiscoveredRepo
from ..utils import iter_files, line_of, read_text, relative_posix
from .core import MatchPolicy, env_to_service_id, resolve_config_key

_NODE_SUFFIXES = (".ts", ".js", ".mjs", ".cjs")
_JVM_SUFFIXES = (".kt", ".java")

_NODE_CONFIG = re.compile(r"""\bconfig(?:Service)?\s*\.\s*get\s*(?:<[^>()]*>\s*)?\(\s*['"]([^'"]+)['"]""")
_NODE_ENV = re.compile(r"\bprocess\.env\.([A-Za-z_]\w*)")
_JVM_VALUE = re.compile(r"""@Value\s*\(\s*["']\\?\$\{([^}:]+)(?::[^}]*)?\}\s*["']\s*\)""")
_JVM_GETENV = re.compile(r"""System\.getenv\s*\(\s*"([^"]+)"\s*\)""")
_GO_GETENV = re.compile(r"""os\.(?:Getenv|LookupEnv)\s*\(\s*"([^"]+)"\s*\)""")
_HTTP_CALL = re.compile(
    r"""\.\s*(get|post|put|patch|delete)\s*(?:<[^>()]*>\s*)?\(\s*(['"`])(/[^'"`\s]*)\2""",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class ServiceReference:
    """A config or env lookup in ``from_repo`` that resolves to ``to_service``."""

    from_repo: str
    to_service: str
    key: str
    file_path: str
    line: int
    method: Optional[str] = None
    path: Optional[str] = None


Resolver = Callable[[str, Sequence[str], MatchPolicy], Optional[str]]


class ServiceReferenceScanner:
    """Collects env/config references that resolve to another discovered repo."""

    def __init__(self, policy: MatchPolicy = MatchPolicy.FIRST_MATCH) -> None:
        self.policy = policy
        self.logger = get_logger("outbound.references")

    def scan(
        self,
        repo: DiscoveredRepo,
        workspace_root: Path,
        repo_ids: Sequence[str],
    ) -> List[ServiceReference]:
        rules: List[Tuple[Path, Sequence[str], Sequence[Tuple[re.Pattern[str], Resolver]]]] = [
            (
                repo.path / "src",
                _NODE_SUFFIXES,
                ((_NODE_CONFIG, env_to_service_id), (_NODE_ENV, env_to_service_id)),
            ),
            (
                repo.path / "src" / "main",
                _JVM_SUFFIXES,
                ((_JVM_VALUE, resolve_config_key), (_JVM_GETENV, env_to_service_id)),
            ),
            (repo.path, (".go",), ((_GO_GETENV, env_to_service_id),)),
        ]

        references: List[ServiceReference] = []
        seen: Set[Tuple[str, str, str]] = set()
        for directory, suffixes, patterns in rules:
            for path in iter_files(directory, suffixes):
                if path.name.endswith(("_test.go", ".d.ts")):
                    continue
                text = read_text(path)
                if text is None:
                    self.logger.debug("Skipping unreadable source %s", path)
                    continue
                rel_path = relative_posix(path, workspace_root, repo.path)
                first_call = _HTTP_CALL.search(text)
                method = first_call.group(1).upper() if first_call else None
                call_path = first_call.group(3) if first_call else None
                for pattern, resolver in patterns:
                    for match in pattern.finditer(text):
                        key = match.group(1).strip()
                        service = resolver(key, repo_ids, self.policy)
                        if not service or service == repo.id:
                            continue
                        identity = (service, key, rel_path)
                        if identity in seen:
                            continue
                        seen.add(identity)
                        references.append(
                            ServiceReference(
                                from_repo=repo.id,
                                to_service=service,
                                key=key,
                                file_path=rel_path,
                                line=line_of(text, match.start()),
                                method=method,
                                path=call_path,
                            )
                        )
        return references


__all__ = ["ServiceReference", "ServiceReferenceScanner"]
