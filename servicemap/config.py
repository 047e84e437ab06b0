"""Configuration loading for servicemap (.servicemap.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

CONFIG_FILENAME = ".servicemap.yml"
DEFAULT_CACHE_DIR = ".servicemap"
DEFAULT_SQL_REPOS = ("sql", "db", "database", "moor-sql")
_POLICIES = {"first_match", "prefer_exact"}


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class EmbeddingConfig:
    """Optional embedding computation settings."""

    enabled: bool = False
    dimension: int = 384
    batch_size: int = 8


@dataclass
class ExtractorConfig:
    """Route extractor enablement."""

    enabled: List[str] = field(default_factory=list)


@dataclass
class WorkspaceConfig:
    """Represents the settings defined in .servicemap.yml."""

    root: Path
    exclude_dirs: List[str] = field(default_factory=list)
    sql_repos: List[str] = field(default_factory=lambda: list(DEFAULT_SQL_REPOS))
    cache_dir: str = DEFAULT_CACHE_DIR
    extractors: ExtractorConfig = field(default_factory=ExtractorConfig)
    match_policy: str = "first_match"
    embeddings: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    search_limit: int = 20

    @property
    def cache_path(self) -> Path:
        return self.root / self.cache_dir / "index.json"


def load_config(config_path: Path) -> WorkspaceConfig:
    """Load configuration from disk, falling back to defaults when absent."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return WorkspaceConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    config = WorkspaceConfig(root=root)
    config.exclude_dirs = _as_str_list(data.get("exclude_dirs"))

    if "sql_repos" in data:
        config.sql_repos = _as_str_list(data.get("sql_repos"))

    cache_dir = _as_str(data.get("cache_dir"))
    if cache_dir:
        if Path(cache_dir).is_absolute() or ".." in Path(cache_dir).parts:
            raise ConfigError("cache_dir must be a relative path inside the workspace")
        config.cache_dir = cache_dir

    extractor_data = _as_dict(data.get("extractors"))
    if extractor_data:
        config.extractors.enabled = _as_str_list(extractor_data.get("enabled"))

    resolution_data = _as_dict(data.get("resolution"))
    policy = _as_str(resolution_data.get("policy")) if resolution_data else None
    if policy is not None:
        policy = policy.strip().lower()
        if policy not in _POLICIES:
            allowed = ", ".join(sorted(_POLICIES))
            raise ConfigError(f"resolution.policy must be one of: {allowed}")
        config.match_policy = policy

    embedding_data = _as_dict(data.get("embeddings"))
    if embedding_data:
        enabled = _as_bool(embedding_data.get("enabled"))
        dimension = _as_int(embedding_data.get("dimension"))
        batch_size = _as_int(embedding_data.get("batch_size"))
        config.embeddings = EmbeddingConfig(
            enabled=bool(enabled),
            dimension=dimension if dimension and dimension > 0 else 384,
            batch_size=batch_size if batch_size and batch_size > 0 else 8,
        )

    search_data = _as_dict(data.get("search"))
    limit = _as_int(search_data.get("limit")) if search_data else None
    if limit is not None and limit > 0:
        config.search_limit = limit

    return config


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read {path.name}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1", "on"}:
            return True
        if lowered in {"false", "no", "0", "off"}:
            return False
    if isinstance(value, int):
        return value != 0
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "EmbeddingConfig",
    "ExtractorConfig",
    "WorkspaceConfig",
    "load_config",
]
