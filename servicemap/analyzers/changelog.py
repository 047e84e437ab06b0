"""CHANGELOG.md parsing into version blocks."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from ..utils import read_text

MAX_BLOCKS = 20
MAX_BLOCK_CHARS = 1500

_BLOCK_SPLIT = re.compile(r"(?=^##\s+\[?|^#\s+\d+\.\d+\.\d+)", re.MULTILINE)
_VERSION_HEADER = re.compile(r"^##\s+\[?([^\]\n]+)\]?|^#\s+(\d+\.\d+\.\d+)", re.MULTILINE)
_BREAKING = re.compile(r"BREAKING CHANGE:", re.IGNORECASE)
_CONVENTIONAL = re.compile(r"^\s*(?:[-*]\s+)?((?:feat|fix|chore|docs|style|refactor|perf|test)(?:\([^)]+\))?!?:\s*.+)$", re.MULTILINE)


@dataclass(frozen=True)
class ChangelogEntry:
    content: str
    version: Optional[str] = None
    is_breaking: bool = False
    conventional: List[str] = field(default_factory=list)


def extract_changelog(repo_path: Path) -> List[ChangelogEntry]:
    """Split the repo's CHANGELOG.md into at most ``MAX_BLOCKS`` version blocks."""
    text = read_text(repo_path / "CHANGELOG.md")
    if not text:
        return []
    blocks = [block for block in _BLOCK_SPLIT.split(text) if block.strip()]
    entries: List[ChangelogEntry] = []
    for block in blocks[:MAX_BLOCKS]:
        header = _VERSION_HEADER.search(block)
        version = None
        if header:
            version = (header.group(1) or header.group(2) or "").strip() or None
        conventional = [match.group(1).strip() for match in _CONVENTIONAL.finditer(block)]
        entries.append(
            ChangelogEntry(
                content=block[:MAX_BLOCK_CHARS],
                version=version,
                is_breaking=bool(_BREAKING.search(block)) or any("!:" in line for line in conventional),
                conventional=conventional,
            )
        )
    return entries


__all__ = ["ChangelogEntry", "MAX_BLOCKS", "MAX_BLOCK_CHARS", "extract_changelog"]
