"""Markdown documentation indexing: READMEs, docs pages and ADRs."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional, Set

from ..models import DiscoveredRepo, FactKind
from ..utils import read_text, relative_posix

MAX_DOC_BYTES = 500 * 1024
MAX_DOCS_PER_REPO = 100
MAX_CONTENT_CHARS = 8000
FULL_CONTENT_LIMIT = 15000

_TITLE = re.compile(r"^#\s+(.+)$", re.MULTILINE)
_TAG_LINE = re.compile(r"^tags?:\s*(.+)$", re.IGNORECASE | re.MULTILINE)
_ADR_HEADING = re.compile(r"^#\s*ADR[- ]?(\d+)", re.IGNORECASE | re.MULTILINE)
_ADR_REFERENCE = re.compile(r"ADR[- ]?\d+", re.IGNORECASE)
_TICKET_REFERENCE = re.compile(r"#\d+")
_DECISION_NAME = re.compile(r"adr|decision|post[- ]?mortem", re.IGNORECASE)
_ADR_FILE = re.compile(r"^ADR", re.IGNORECASE)


@dataclass(frozen=True)
class Document:
    """A markdown file ready to become a readme/doc/adr fact."""

    kind: FactKind
    source_path: str
    title: str
    content: str
    full_content: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    references: List[str] = field(default_factory=list)


def markdown_title(text: str) -> str:
    match = _TITLE.search(text)
    return match.group(1).strip() if match else ""


def markdown_tags(text: str) -> List[str]:
    """Return tags from a ``tags:`` line plus ``ADR-n`` from an ADR heading."""
    tags: List[str] = []
    tag_line = _TAG_LINE.search(text)
    if tag_line:
        for raw in re.split(r"[\s,]+", tag_line.group(1)):
            cleaned = raw.lstrip("#").strip()
            if cleaned and cleaned not in tags:
                tags.append(cleaned)
    heading = _ADR_HEADING.search(text)
    if heading and f"ADR-{heading.group(1)}" not in tags:
        tags.append(f"ADR-{heading.group(1)}")
    return tags


def markdown_references(text: str) -> List[str]:
    """Return ``ADR-n`` ids (upper-cased) followed by ``#123`` ticket refs."""
    references: List[str] = []
    for match in _ADR_REFERENCE.finditer(text):
        value = re.sub(r"\s", "-", match.group(0).upper())
        if value not in references:
            references.append(value)
    for match in _TICKET_REFERENCE.finditer(text):
        if match.group(0) not in references:
            references.append(match.group(0))
    return references


def index_documents(repo: DiscoveredRepo, workspace_root: Path) -> List[Document]:
    """Index README.md, ``docs/*.md`` and ADR files of one repo, capped per repo."""
    documents: List[Document] = []
    seen: Set[Path] = set()
    for path, kind in _candidates(repo.path):
        if len(documents) >= MAX_DOCS_PER_REPO:
            break
        if path in seen:
            continue
        seen.add(path)
        text = read_text(path, MAX_DOC_BYTES)
        if not text:
            continue
        fallback = f"{repo.id} README" if kind is FactKind.README else path.stem
        documents.append(
            Document(
                kind=kind,
                source_path=relative_posix(path, workspace_root, repo.path),
                title=markdown_title(text) or fallback,
                content=text[:MAX_CONTENT_CHARS],
                full_content=text if len(text) < FULL_CONTENT_LIMIT else None,
                tags=markdown_tags(text),
                references=markdown_references(text),
            )
        )
    return documents


def _candidates(repo_path: Path) -> Iterator[tuple[Path, FactKind]]:
    readme = repo_path / "README.md"
    if readme.is_file():
        yield readme, FactKind.README

    docs_dir = repo_path / "docs"
    for path in _markdown_files(docs_dir):
        yield path, FactKind.ADR if _DECISION_NAME.search(path.name) else FactKind.DOC

    for path in _markdown_files(repo_path):
        if _ADR_FILE.match(path.name):
            yield path, FactKind.ADR
    for path in _markdown_files(docs_dir / "adr"):
        yield path, FactKind.ADR


def _markdown_files(directory: Path) -> List[Path]:
    if not directory.is_dir():
        return []
    try:
        return sorted(path for path in directory.iterdir() if path.is_file() and path.name.endswith(".md"))
    except OSError:
        return []


__all__ = [
    "Document",
    "FULL_CONTENT_LIMIT",
    "MAX_CONTENT_CHARS",
    "MAX_DOCS_PER_REPO",
    "index_documents",
    "markdown_references",
    "markdown_tags",
    "markdown_title",
]
