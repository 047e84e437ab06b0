"""Service-id resolution from configuration keys and the outbound scanner contract."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence

from ..models import DiscoveredRepo, OutboundMapping

MAX_CALL_PATH_LENGTH = 300

# Stripped in sequence, so ``X_SERVICE_HOST`` keeps ``-service`` in its hint.
_SERVICE_SUFFIXES = ("_HOST", "_URL", "_SERVICE_HOST")


class MatchPolicy(str, Enum):
    """Tie-break used when several repo ids contain (or are contained by) a hint."""

    FIRST_MATCH = "first_match"
    PREFER_EXACT = "prefer_exact"


def _squash(value: str) -> str:
    return value.lower().replace("-", "")


def env_to_service_id(
    key: str,
    repo_ids: Sequence[str],
    policy: MatchPolicy = MatchPolicy.FIRST_MATCH,
) -> Optional[str]:
    """Map an env var such as ``USER_SERVICE_URL`` to a repo id, or None.

    Ids are compared with hyphens removed, in either containment direction,
    and scanned in the order given (discovery order).
    """
    upper = key.strip().upper()
    if not upper.endswith(_SERVICE_SUFFIXES):
        return None
    for suffix in _SERVICE_SUFFIXES:
        if upper.endswith(suffix):
            upper = upper[: -len(suffix)]

    hint = upper.replace("_", "-").lower()
    if len(hint) < 2:
        return None
    hint_norm = _squash(hint)
    if not hint_norm:
        return None

    first: Optional[str] = None
    for repo_id in repo_ids:
        id_norm = _squash(repo_id)
        if not id_norm:
            continue
        if id_norm in hint_norm or hint_norm in id_norm:
            if policy is MatchPolicy.FIRST_MATCH:
                return repo_id
            if id_norm == hint_norm:
                return repo_id
            if first is None:
                first = repo_id
    return first


def config_key_to_env_hint(key: str) -> str:
    """Turn a dotted config key (``app.user-service.url``) into an env-style hint."""
    hint = key.strip().replace(".", "_").replace("-", "_").upper()
    if hint.endswith("_URL") or hint.endswith("_HOST"):
        return hint
    return f"{hint}_URL"


def resolve_config_key(
    key: str,
    repo_ids: Sequence[str],
    policy: MatchPolicy = MatchPolicy.FIRST_MATCH,
) -> Optional[str]:
    """Resolve a config key through its env hint, then through its last segment."""
    resolved = env_to_service_id(config_key_to_env_hint(key), repo_ids, policy)
    if resolved:
        return resolved
    last = key.strip().split(".")[-1]
    if last and last != key.strip():
        return env_to_service_id(f"{last.replace('-', '_').upper()}_URL", repo_ids, policy)
    return None


def is_valid_call_path(path: str) -> bool:
    return 0 < len(path) < MAX_CALL_PATH_LENGTH


class OutboundScanner(ABC):
    """Contract for scanners that find HTTP calls a repo makes to other repos."""

    def __init__(self, policy: MatchPolicy = MatchPolicy.FIRST_MATCH) -> None:
        self.policy = policy

    @abstractmethod
    def scan(
        self,
        repo: DiscoveredRepo,
        workspace_root: Path,
        repo_ids: Sequence[str],
    ) -> List[OutboundMapping]:
        """Return mappings for files whose client resolves to another repo."""


__all__ = [
    "MAX_CALL_PATH_LENGTH",
    "MatchPolicy",
    "OutboundScanner",
    "config_key_to_env_hint",
    "env_to_service_id",
    "is_valid_call_path",
    "resolve_config_key",
]
