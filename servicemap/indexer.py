"""Refresh pipeline: discovery, extraction, cache reuse and store swap."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .aggregator import FactAggregator
from .config import WorkspaceConfig, load_config
from .discovery import RepoDiscoverer
from .embeddings import HashingEmbedder, embed_entries
from .extractors import RouteExtractor, discover_extractors
from .logging import get_logger, log_duration
from .models import DiscoveredRepo, FactEntry, RepoVariant
from .outbound import MatchPolicy
from .stores import FactStore, IndexCache


@dataclass(frozen=True)
class RefreshResult:
    """Outcome of the latest refresh."""

    from_cache: bool
    repo_count: int
    entry_count: int


def repo_fingerprints(repos: Sequence[DiscoveredRepo], workspace_root: Path, cache_dir: str) -> Dict[str, int]:
    """Map repo id to directory ``st_mtime_ns``; unreadable repos are left out.

    A repo located at the workspace root uses the newest mtime among its
    top-level entries so that writing the cache does not invalidate it.
    """
    root = Path(workspace_root).resolve()
    cache_name = Path(cache_dir).parts[0] if cache_dir else ""
    fingerprints: Dict[str, int] = {}
    for repo in repos:
        try:
            if repo.path.resolve() == root:
                fingerprints[repo.id] = max(
                    (entry.stat().st_mtime_ns for entry in root.iterdir() if entry.name != cache_name),
                    default=0,
                )
            else:
                fingerprints[repo.id] = repo.path.stat().st_mtime_ns
        except OSError:
            continue
    return fingerprints


class WorkspaceIndexer:
    """Owns the current :class:`FactStore` for one workspace; not reentrant."""

    def __init__(
        self,
        root: Path,
        config: Optional[WorkspaceConfig] = None,
        extractors: Optional[Dict[RepoVariant, RouteExtractor]] = None,
        embedder: Optional[HashingEmbedder] = None,
    ) -> None:
        self.root = Path(root).expanduser().resolve()
        self.config = config or load_config(self.root)
        self.extractors = (
            extractors if extractors is not None else discover_extractors(self.config.extractors.enabled or None)
        )
        if embedder is None and self.config.embeddings.enabled:
            embedder = HashingEmbedder(self.config.embeddings.dimension)
        self.embedder = embedder
        self.cache = IndexCache(self.config.cache_path)
        self.logger = get_logger("indexer")
        self._store = FactStore()
        self.last_refresh: Optional[RefreshResult] = None

    @property
    def store(self) -> FactStore:
        return self._store

    def discover(self) -> List[DiscoveredRepo]:
        discoverer = RepoDiscoverer(
            exclude_dirs=[*self.config.exclude_dirs, self.config.cache_dir],
            sql_repo_names=self.config.sql_repos,
            extractors=self.extractors,
        )
        return discoverer.discover(self.root)

    def refresh(self, force_full: bool = False) -> FactStore:
        """Rebuild the store, reusing the cache when every repo fingerprint matches."""
        self.logger.info("Refreshing %s%s", self.root, " (forced)" if force_full else "")
        repos = self.discover()
        fingerprints = repo_fingerprints(repos, self.root, self.config.cache_dir)

        if not force_full:
            cached = self.cache.load()
            if cached is not None and cached.matches(fingerprints):
                self._swap(FactStore(cached.entries), from_cache=True, repo_count=len(repos))
                return self._store

        with log_duration(self.logger, "Full extraction"):
            entries = self._extract(repos)
        if self.embedder is not None:
            embed_entries(entries, self.embedder, self.config.embeddings.batch_size)
        self._swap(FactStore(entries), from_cache=False, repo_count=len(repos))
        if not self.cache.save(entries, fingerprints):
            self.logger.warning("Could not persist index cache to %s", self.cache.path)
        return self._store

    def _extract(self, repos: Sequence[DiscoveredRepo]) -> List[FactEntry]:
        aggregator = FactAggregator(
            self.root,
            [repo.id for repo in repos],
            policy=MatchPolicy(self.config.match_policy),
        )
        return aggregator.build(repos)

    def _swap(self, store: FactStore, *, from_cache: bool, repo_count: int) -> None:
        self._store = store
        self.last_refresh = RefreshResult(from_cache=from_cache, repo_count=repo_count, entry_count=len(store))
        self.logger.info(
            "Indexed %s facts from %s repos (%s)",
            len(store),
            repo_count,
            "cache hit" if from_cache else "full extraction",
        )


__all__ = ["RefreshResult", "WorkspaceIndexer", "repo_fingerprints"]
