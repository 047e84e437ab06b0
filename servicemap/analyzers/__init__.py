"""Sub-extractors that feed the fact aggregator."""

from __future__ import annotations

from .changelog import ChangelogEntry, extract_changelog
from .conventions import Convention, extract_conventions
from .db import TableInfo, extract_tables
from .docs import Document, index_documents
from .env import collect_env_vars
from .glossary import GlossaryTerm, glossary_from_routes

__all__ = [
    "ChangelogEntry",
    "Convention",
    "Document",
    "GlossaryTerm",
    "TableInfo",
    "collect_env_vars",
    "extract_changelog",
    "extract_conventions",
    "extract_tables",
    "glossary_from_routes",
    "index_documents",
]
