"""Table discovery from SQL DDL scripts."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Set

from ..utils import iter_files, read_text, relative_posix

_NAME = r"""["'`]?(\w+)["'`]?"""
_CREATE_TABLE = re.compile(
    rf"CREATE\s+TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?(?:{_NAME}\.)?{_NAME}",
    re.IGNORECASE,
)
_ALTER_TABLE = re.compile(
    rf"ALTER\s+TABLE\s+(?:IF\s+EXISTS\s+)?(?:ONLY\s+)?(?:{_NAME}\.)?{_NAME}",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class TableInfo:
    table_name: str
    schema: Optional[str]
    file_path: str
    operation: str

    @property
    def qualified_name(self) -> str:
        return f"{self.schema}.{self.table_name}" if self.schema else self.table_name


def extract_tables(repo_path: Path, workspace_root: Path) -> List[TableInfo]:
    """Return CREATE/ALTER TABLE statements, first occurrence per table and operation."""
    tables: List[TableInfo] = []
    seen: Set[str] = set()
    for path in iter_files(repo_path, (".sql", ".SQL")):
        text = read_text(path)
        if not text:
            continue
        rel_path = relative_posix(path, workspace_root, repo_path)
        for operation, pattern, prefix in (("CREATE", _CREATE_TABLE, ""), ("ALTER", _ALTER_TABLE, "alter:")):
            for match in pattern.finditer(text):
                schema, table = match.group(1), match.group(2)
                key = f"{prefix}{schema or 'public'}.{table}"
                if key in seen:
                    continue
                seen.add(key)
                tables.append(TableInfo(table_name=table, schema=schema, file_path=rel_path, operation=operation))
    return tables


__all__ = ["TableInfo", "extract_tables"]
