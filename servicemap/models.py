"""Core data models shared across servicemap components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from .extractors.base import RouteExtractor


class RepoVariant(str, Enum):
    """Technology classification assigned to a repo at discovery time."""

    SQL = "sql"
    NEST = "nest"
    EXPRESS = "express"
    SPRING = "spring"
    GO = "go"
    FRONT = "front"
    OTHER = "other"

    @property
    def is_http_service(self) -> bool:
        return self in _HTTP_SERVICE_VARIANTS


_HTTP_SERVICE_VARIANTS = frozenset(
    {RepoVariant.NEST, RepoVariant.EXPRESS, RepoVariant.SPRING, RepoVariant.GO}
)


class FactKind(str, Enum):
    """Kinds of facts held by the fact store."""

    CONTRACT = "contract"
    DEPENDENCY = "dependency"
    ENDPOINT_MAPPING = "endpoint_mapping"
    ENV_CONFIG = "env_config"
    GLOSSARY = "glossary"
    CONVENTION = "convention"
    DB_TABLE = "db_table"
    CHANGELOG = "changelog"
    REPO_SUMMARY = "repo_summary"
    DOC = "doc"
    ADR = "adr"
    README = "readme"
    FRONT_ROUTE = "front_route"
    FRONT_ENDPOINT_USAGE = "front_endpoint_usage"
    SERVICE_ENDPOINT = "service_endpoint"
    ROUTE_ENDPOINTS = "route_endpoints"
    RESPONSE_SCHEMA = "response_schema"


@dataclass(frozen=True)
class DiscoveredRepo:
    """A workspace subdirectory classified into a variant."""

    id: str
    name: str
    variant: RepoVariant
    path: Path
    controllers_path: str = ""
    description: Optional[str] = None
    extractor: Optional["RouteExtractor"] = field(default=None, compare=False, repr=False)

    @property
    def controllers_root(self) -> Path:
        return self.path / self.controllers_path if self.controllers_path else self.path


@dataclass(frozen=True)
class RouteInfo:
    """One HTTP endpoint declaration found in a repo's source tree."""

    method: str
    full_path: str
    file_path: str
    line: Optional[int] = None
    request_body_type: Optional[str] = None
    response_type: Optional[str] = None
    handler_name: Optional[str] = None

    @property
    def key(self) -> Tuple[str, str]:
        return (self.method, self.full_path)


@dataclass(frozen=True)
class PathSpec:
    """Either a literal path or a symbolic path key read from configuration."""

    literal: Optional[str] = None
    path_key: Optional[str] = None

    def __post_init__(self) -> None:
        has_literal = bool(self.literal)
        has_key = bool(self.path_key)
        if has_literal == has_key:
            raise ValueError("PathSpec requires exactly one non-empty literal or path_key")

    @classmethod
    def of_literal(cls, literal: str) -> "PathSpec":
        return cls(literal=literal)

    @classmethod
    def of_key(cls, path_key: str) -> "PathSpec":
        return cls(path_key=path_key)

    @property
    def is_literal(self) -> bool:
        return bool(self.literal)

    @property
    def display(self) -> str:
        if self.literal:
            return self.literal
        return f"[{self.path_key}]"

    @property
    def dedupe_key(self) -> str:
        return self.literal if self.literal else str(self.path_key)

    def to_dict(self) -> Dict[str, str]:
        if self.literal:
            return {"literal": self.literal}
        return {"pathKey": str(self.path_key)}

    @classmethod
    def from_dict(cls, payload: object) -> Optional["PathSpec"]:
        if not isinstance(payload, dict):
            return None
        literal = payload.get("literal")
        path_key = payload.get("pathKey")
        if isinstance(literal, str) and literal:
            return cls(literal=literal)
        if isinstance(path_key, str) and path_key:
            return cls(path_key=path_key)
        return None


@dataclass(frozen=True)
class OutboundCall:
    """HTTP method plus the path a client call targets."""

    method: str
    path: PathSpec

    @property
    def key(self) -> Tuple[str, str]:
        return (self.method, self.path.dedupe_key)

    @property
    def display(self) -> str:
        return f"{self.method} {self.path.display}"

    def to_dict(self) -> Dict[str, Any]:
        return {"method": self.method, "path": self.path.to_dict()}

    @classmethod
    def from_dict(cls, payload: object) -> Optional["OutboundCall"]:
        if not isinstance(payload, dict):
            return None
        method = payload.get("method")
        path = PathSpec.from_dict(payload.get("path"))
        if not isinstance(method, str) or path is None:
            return None
        return cls(method=method, path=path)


@dataclass
class OutboundMapping:
    """Calls one source file makes to a resolved downstream service."""

    from_repo: str
    to_service: str
    env_var: str
    file_path: str
    calls: List[OutboundCall] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.to_service == self.from_repo:
            raise ValueError(f"Outbound mapping from {self.from_repo} cannot target itself")


@dataclass
class FactEntry:
    """Uniform record for every extracted piece of knowledge."""

    id: str
    kind: FactKind
    source: str
    source_path: str
    title: str
    content: str
    full_content: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    references: List[str] = field(default_factory=list)
    line: Optional[int] = None
    meta: Optional[Dict[str, Any]] = None
    embedding: Optional[List[float]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "source": self.source,
            "sourcePath": self.source_path,
            "title": self.title,
            "content": self.content,
            "fullContent": self.full_content,
            "tags": list(self.tags),
            "references": list(self.references),
            "line": self.line,
            "meta": self.meta,
            "embedding": list(self.embedding) if self.embedding is not None else None,
        }

    @classmethod
    def from_dict(cls, payload: object) -> Optional["FactEntry"]:
        if not isinstance(payload, dict):
            return None
        try:
            kind = FactKind(payload.get("kind"))
        except ValueError:
            return None
        strings = [payload.get(key) for key in ("id", "source", "sourcePath", "title", "content")]
        if not all(isinstance(value, str) for value in strings):
            return None
        tags = payload.get("tags", [])
        references = payload.get("references", [])
        if not _is_str_list(tags) or not _is_str_list(references):
            return None
        full_content = payload.get("fullContent")
        if full_content is not None and not isinstance(full_content, str):
            return None
        line = payload.get("line")
        if line is not None and (not isinstance(line, int) or isinstance(line, bool)):
            return None
        meta = payload.get("meta")
        if meta is not None and not isinstance(meta, dict):
            return None
        embedding = payload.get("embedding")
        if embedding is not None:
            if not isinstance(embedding, list) or not all(
                isinstance(value, (int, float)) and not isinstance(value, bool) for value in embedding
            ):
                return None
            embedding = [float(value) for value in embedding]
        entry_id, source, source_path, title, content = strings
        return cls(
            id=entry_id,
            kind=kind,
            source=source,
            source_path=source_path,
            title=title,
            content=content,
            full_content=full_content,
            tags=list(tags),
            references=list(references),
            line=line,
            meta=meta,
            embedding=embedding,
        )


def _is_str_list(value: object) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


__all__ = [
    "DiscoveredRepo",
    "FactEntry",
    "FactKind",
    "OutboundCall",
    "OutboundMapping",
    "PathSpec",
    "RepoVariant",
    "RouteInfo",
]
