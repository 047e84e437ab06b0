"""Detection of cross-cutting API conventions (idempotency keys, guards, roles)."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..utils import iter_files, line_of, read_text, relative_posix

SOURCE_SUFFIXES = (".ts", ".js", ".kt", ".java")


@dataclass(frozen=True)
class ConventionRule:
    name: str
    description: str
    pattern: "re.Pattern[str]"


@dataclass(frozen=True)
class Convention:
    """A convention observed in a repo with its first occurrence and file count."""

    name: str
    description: str
    source_path: str
    line: int
    count: int


RULES: Tuple[ConventionRule, ...] = (
    ConventionRule(
        "idempotency-key",
        "Requests carry an Idempotency-Key header for idempotent operations.",
        re.compile(r"(?:x[-_]?)?idempotency[-_]?key", re.IGNORECASE),
    ),
    ConventionRule(
        "use-guards",
        "Controllers are protected with @UseGuards.",
        re.compile(r"@UseGuards\b"),
    ),
    ConventionRule(
        "roles",
        "Endpoints restrict access with @Roles.",
        re.compile(r"@Roles\b"),
    ),
    ConventionRule(
        "pre-authorize",
        "Endpoints are secured with @PreAuthorize or @Secured.",
        re.compile(r"@(?:PreAuthorize|Secured)\b"),
    ),
)


def extract_conventions(repo_path: Path, workspace_root: Path) -> List[Convention]:
    """Return one entry per rule found under ``src``, in rule order."""
    first_seen: Dict[str, Tuple[str, int]] = {}
    counts: Dict[str, int] = {}
    for path in iter_files(repo_path / "src", SOURCE_SUFFIXES):
        text = read_text(path)
        if not text:
            continue
        rel_path: Optional[str] = None
        for rule in RULES:
            match = rule.pattern.search(text)
            if not match:
                continue
            if rel_path is None:
                rel_path = relative_posix(path, workspace_root, repo_path)
            counts[rule.name] = counts.get(rule.name, 0) + 1
            first_seen.setdefault(rule.name, (rel_path, line_of(text, match.start())))

    return [
        Convention(
            name=rule.name,
            description=rule.description,
            source_path=first_seen[rule.name][0],
            line=first_seen[rule.name][1],
            count=counts[rule.name],
        )
        for rule in RULES
        if rule.name in first_seen
    ]


__all__ = ["Convention", "ConventionRule", "RULES", "extract_conventions"]
