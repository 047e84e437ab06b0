"""On-disk cache of the last full extraction."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..logging import get_logger
from ..models import FactEntry

CACHE_VERSION = 1


@dataclass
class CachePayload:
    """Entries plus the repo fingerprint they were extracted under."""

    indexed_at: str
    repo_mtimes: Dict[str, int] = field(default_factory=dict)
    entries: List[FactEntry] = field(default_factory=list)
    version: int = CACHE_VERSION

    def matches(self, repo_mtimes: Dict[str, int]) -> bool:
        """True when the repo-id sets are equal and every mtime is identical."""
        return self.repo_mtimes == repo_mtimes


class IndexCache:
    """Reads and writes ``{version, indexedAt, repoMTimes, entries}`` JSON."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.logger = get_logger("stores.cache")

    def load(self) -> Optional[CachePayload]:
        """Return the cached payload, or None when absent or malformed in any way."""
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError, json.JSONDecodeError):
            self.logger.debug("Ignoring unreadable cache %s", self.path, exc_info=True)
            return None
        if not isinstance(data, dict) or data.get("version") != CACHE_VERSION:
            return None

        indexed_at = data.get("indexedAt")
        repo_mtimes = data.get("repoMTimes")
        raw_entries = data.get("entries")
        if not isinstance(indexed_at, str) or not isinstance(repo_mtimes, dict) or not isinstance(raw_entries, list):
            return None
        mtimes: Dict[str, int] = {}
        for repo_id, mtime in repo_mtimes.items():
            if not isinstance(mtime, int) or isinstance(mtime, bool):
                return None
            mtimes[repo_id] = mtime

        entries: List[FactEntry] = []
        for raw in raw_entries:
            entry = FactEntry.from_dict(raw)
            if entry is None:
                self.logger.debug("Discarding cache %s: malformed entry", self.path)
                return None
            entries.append(entry)
        return CachePayload(indexed_at=indexed_at, repo_mtimes=mtimes, entries=entries)

    def save(self, entries: Sequence[FactEntry], repo_mtimes: Dict[str, int]) -> bool:
        """Persist atomically; a failed write is logged and reported as False."""
        payload = {
            "version": CACHE_VERSION,
            "indexedAt": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "repoMTimes": dict(repo_mtimes),
            "entries": [entry.to_dict() for entry in entries],
        }
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError:
            self.logger.debug("Could not write cache %s", self.path, exc_info=True)
            try:
                tmp_path.unlink()
            except OSError:
                pass
            return False
        return True


__all__ = ["CACHE_VERSION", "CachePayload", "IndexCache"]
