"""Immutable in-memory fact store with lookups and ranked search."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from ..models import FactEntry, FactKind
from .text import normalize_text, stem_tokens

DEFAULT_SEARCH_LIMIT = 20

# Whole-query substring bonuses.
_EXACT_TITLE = 10
_EXACT_CONTENT = 5
_EXACT_TAGS = 4
_EXACT_SOURCE = 3
_EXACT_REFERENCES = 2
# Per-word and per-stem bonuses.
_WORD_TITLE = 3
_WORD_TAGS = 2
_WORD_CONTENT = 1


@dataclass(frozen=True)
class Caller:
    """One call from ``from_repo`` to ``to_service`` matching a path fragment."""

    from_repo: str
    to_service: str
    method: str
    path: str
    file_paths: Tuple[str, ...] = ()


@dataclass(frozen=True)
class _SearchFields:
    title: str
    content: str
    tags: str
    source: str
    references: str
    title_stems: Set[str]
    tag_stems: Set[str]
    content_stems: Set[str]

    @classmethod
    def of(cls, entry: FactEntry) -> "_SearchFields":
        tags = " ".join(entry.tags)
        return cls(
            title=normalize_text(entry.title),
            content=normalize_text(entry.content),
            tags=normalize_text(tags),
            source=normalize_text(entry.source),
            references=normalize_text(" ".join(entry.references)),
            title_stems=stem_tokens(entry.title),
            tag_stems=stem_tokens(tags),
            content_stems=stem_tokens(entry.content),
        )


class FactStore:
    """A snapshot of fact entries; never mutated after construction."""

    def __init__(self, entries: Iterable[FactEntry] = ()) -> None:
        self._entries: Tuple[FactEntry, ...] = tuple(entries)
        self._by_id: Dict[str, FactEntry] = {}
        for entry in self._entries:
            self._by_id.setdefault(entry.id, entry)
        self._fields: Optional[Tuple[_SearchFields, ...]] = None

    @property
    def entries(self) -> Tuple[FactEntry, ...]:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[FactEntry]:
        return iter(self._entries)

    def get(self, entry_id: str) -> Optional[FactEntry]:
        return self._by_id.get(entry_id)

    # ------------------------------------------------------------------
    # Lookups

    def find_by_identifier(self, identifier: str) -> List[FactEntry]:
        """Entries whose path, source, title or references contain ``identifier``."""
        needle = identifier.lower().replace("\\", "/")
        if not needle:
            return []
        return [
            entry
            for entry in self._entries
            if needle in entry.source_path.lower()
            or needle in entry.source.lower()
            or needle in entry.title.lower()
            or any(needle in reference.lower() for reference in entry.references)
        ]

    def find_by_kind(
        self,
        kind: FactKind,
        *,
        source: Optional[str] = None,
        path_fragment: Optional[str] = None,
        topic: Optional[str] = None,
        table_name: Optional[str] = None,
    ) -> List[FactEntry]:
        """Entries of ``kind`` narrowed by the optional sub-filters."""
        results = [entry for entry in self._entries if entry.kind is kind]
        if source:
            wanted = source.lower()
            results = [entry for entry in results if entry.source.lower() == wanted]
        if path_fragment:
            fragment = path_fragment.lower()
            results = [entry for entry in results if fragment in _path_haystack(entry)]
        if topic:
            needle = topic.lower()
            results = [
                entry
                for entry in results
                if needle in entry.title.lower()
                or needle in entry.content.lower()
                or any(needle in tag.lower() for tag in entry.tags)
            ]
        if table_name:
            needle = table_name.lower()
            results = [
                entry
                for entry in results
                if needle in entry.title.lower() or _meta_str(entry, "tableName").lower() == needle
            ]
        return results

    def find_decisions(self, topic: Optional[str] = None) -> List[FactEntry]:
        return self.find_by_kind(FactKind.ADR, topic=topic)

    def find_repo_summary(self, repo: str) -> Optional[FactEntry]:
        matches = self.find_by_kind(FactKind.REPO_SUMMARY, source=repo)
        return matches[0] if matches else None

    def find_contracts(
        self, service: Optional[str] = None, path_fragment: Optional[str] = None
    ) -> List[FactEntry]:
        return self.find_by_kind(FactKind.CONTRACT, source=service, path_fragment=path_fragment)

    def find_dependencies(
        self, from_repo: Optional[str] = None, to_service: Optional[str] = None
    ) -> List[FactEntry]:
        results = self.find_by_kind(FactKind.DEPENDENCY, source=from_repo)
        if to_service:
            results = [entry for entry in results if _meta_str(entry, "toService").lower() == to_service.lower()]
        return results

    def find_env_config(self, repo: str) -> Optional[FactEntry]:
        matches = self.find_by_kind(FactKind.ENV_CONFIG, source=repo)
        return matches[0] if matches else None

    def find_changelog(self, repo: Optional[str] = None) -> List[FactEntry]:
        return self.find_by_kind(FactKind.CHANGELOG, source=repo)

    def find_glossary(self, term: Optional[str] = None, repo: Optional[str] = None) -> List[FactEntry]:
        results = self.find_by_kind(FactKind.GLOSSARY, source=repo)
        if term:
            needle = term.lower()
            results = [entry for entry in results if needle in entry.title.lower() or needle in entry.content.lower()]
        return results

    def find_db_tables(self, repo: Optional[str] = None, table: Optional[str] = None) -> List[FactEntry]:
        return self.find_by_kind(FactKind.DB_TABLE, source=repo, table_name=table)

    def find_endpoint_mappings(
        self, from_repo: Optional[str] = None, to_service: Optional[str] = None
    ) -> List[FactEntry]:
        results = self.find_by_kind(FactKind.ENDPOINT_MAPPING)
        if from_repo:
            results = [entry for entry in results if from_repo in (entry.source, _meta_str(entry, "fromRepo"))]
        if to_service:
            wanted = to_service.lower()
            results = [entry for entry in results if _meta_str(entry, "toService").lower() == wanted]
        return results

    def callers_of_path(self, fragment: str) -> List[Caller]:
        """Every recorded call whose literal path or path key contains ``fragment``."""
        needle = fragment.strip().lower()
        if not needle:
            return []
        callers: List[Caller] = []
        for entry in self.find_by_kind(FactKind.ENDPOINT_MAPPING):
            meta = entry.meta or {}
            from_repo = _meta_str(entry, "fromRepo") or entry.source
            to_service = _meta_str(entry, "toService")
            file_paths = meta.get("filePaths")
            if not isinstance(file_paths, list):
                file_paths = [entry.source_path]
            calls = meta.get("calls")
            for call in calls if isinstance(calls, list) else []:
                if not isinstance(call, dict) or not isinstance(call.get("path"), dict):
                    continue
                literal = call["path"].get("literal")
                path_key = call["path"].get("pathKey")
                display = literal if isinstance(literal, str) else f"[{path_key}]"
                if needle in display.lower() or (isinstance(path_key, str) and needle in path_key.lower()):
                    callers.append(
                        Caller(
                            from_repo=from_repo,
                            to_service=to_service,
                            method=str(call.get("method", "")),
                            path=display,
                            file_paths=tuple(str(path) for path in file_paths),
                        )
                    )
        return callers

    def count_callers_of_service(self, service: str) -> int:
        """Number of distinct repos with an endpoint mapping into ``service``."""
        return len(
            {_meta_str(entry, "fromRepo") or entry.source for entry in self.find_endpoint_mappings(to_service=service)}
        )

    # ------------------------------------------------------------------
    # Search

    def search(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> List[FactEntry]:
        """Rank entries by substring, word and stem overlap; zero scores are dropped."""
        needle = normalize_text(query).strip()
        if not needle or limit <= 0:
            return []
        words = [word for word in needle.split() if len(word) > 2]
        stems = stem_tokens(query)
        if self._fields is None:
            self._fields = tuple(_SearchFields.of(entry) for entry in self._entries)

        scored: List[Tuple[int, FactEntry]] = []
        for entry, fields in zip(self._entries, self._fields):
            score = _score(fields, needle, words, stems)
            if score > 0:
                scored.append((score, entry))
        scored.sort(key=lambda item: -item[0])
        return [entry for _, entry in scored[:limit]]

    def search_similar(self, vector: Sequence[float], limit: int = DEFAULT_SEARCH_LIMIT) -> List[FactEntry]:
        """Entries carrying embeddings ranked by cosine similarity to ``vector``."""
        query_norm = math.sqrt(sum(value * value for value in vector))
        if not query_norm or limit <= 0:
            return []
        scored: List[Tuple[float, FactEntry]] = []
        for entry in self._entries:
            if not entry.embedding or len(entry.embedding) != len(vector):
                continue
            norm = math.sqrt(sum(value * value for value in entry.embedding))
            if not norm:
                continue
            similarity = sum(a * b for a, b in zip(vector, entry.embedding)) / (query_norm * norm)
            if similarity > 0:
                scored.append((similarity, entry))
        scored.sort(key=lambda item: -item[0])
        return [entry for _, entry in scored[:limit]]


def _score(fields: _SearchFields, needle: str, words: Sequence[str], stems: Set[str]) -> int:
    score = 0
    if needle in fields.title:
        score += _EXACT_TITLE
    if needle in fields.content:
        score += _EXACT_CONTENT
    if needle in fields.tags:
        score += _EXACT_TAGS
    if needle in fields.source:
        score += _EXACT_SOURCE
    if needle in fields.references:
        score += _EXACT_REFERENCES
    for word in words:
        if word in fields.title:
            score += _WORD_TITLE
        if word in fields.tags:
            score += _WORD_TAGS
        if word in fields.content:
            score += _WORD_CONTENT
    for token in stems:
        if token in fields.title_stems:
            score += _WORD_TITLE
        if token in fields.tag_stems:
            score += _WORD_TAGS
        if token in fields.content_stems:
            score += _WORD_CONTENT
    return score


def _meta_str(entry: FactEntry, key: str) -> str:
    value = (entry.meta or {}).get(key)
    return value if isinstance(value, str) else ""


def _path_haystack(entry: FactEntry) -> str:
    parts = [entry.title, entry.source_path]
    for key in ("fullPath", "pathPattern", "path"):
        value = _meta_str(entry, key)
        if value:
            parts.append(value)
    return " ".join(parts).lower()


__all__ = ["Caller", "DEFAULT_SEARCH_LIMIT", "FactStore"]
