"""Tests for markdown documentation indexing."""

from __future__ import annotations

from servicemap.analyzers.docs import (
    FULL_CONTENT_LIMIT,
    MAX_CONTENT_CHARS,
    index_documents,
    markdown_references,
    markdown_tags,
    markdown_title,
)
from servicemap.models import DiscoveredRepo, FactKind, RepoVariant

_README = """
# Svc A

tags: billing, #payments
See ADR-3 and adr 4, fixes #12.
"""


def _repo(path) -> DiscoveredRepo:
    return DiscoveredRepo(id="svc-a", name="Svc A", variant=RepoVariant.NEST, path=path)


def test_markdown_helpers() -> None:
    text = _README.lstrip("\n")

    assert markdown_title(text) == "Svc A"
    assert markdown_tags(text) == ["billing", "payments"]
    assert markdown_references(text) == ["ADR-3", "ADR-4", "#12"]
    assert markdown_tags("# ADR 7: Queue retries\n") == ["ADR-7"]
    assert markdown_title("no heading") == ""


def test_index_documents_classifies_readme_docs_and_adrs(workspace_builder) -> None:
    path = workspace_builder.repo(
        "svc-a",
        {
            "README.md": _README,
            "docs/guide.md": "No heading here.\n",
            "docs/decision-log.md": "# Decisions\n",
            "docs/notes.txt": "ignored\n",
            "ADR-001-use-kafka.md": "# ADR 1: Use Kafka\n",
            "docs/adr/0002-db.md": "# ADR-2 Pick Postgres\n",
        },
    )

    documents = index_documents(_repo(path), workspace_builder.path())

    assert [(doc.kind, doc.source_path, doc.title) for doc in documents] == [
        (FactKind.README, "svc-a/README.md", "Svc A"),
        (FactKind.ADR, "svc-a/docs/decision-log.md", "Decisions"),
        (FactKind.DOC, "svc-a/docs/guide.md", "guide"),
        (FactKind.ADR, "svc-a/ADR-001-use-kafka.md", "ADR 1: Use Kafka"),
        (FactKind.ADR, "svc-a/docs/adr/0002-db.md", "ADR-2 Pick Postgres"),
    ]
    readme = documents[0]
    assert readme.tags == ["billing", "payments"]
    assert readme.references == ["ADR-3", "ADR-4", "#12"]
    assert readme.full_content == readme.content
    assert documents[3].tags == ["ADR-1"]


def test_index_documents_truncates_large_files(workspace_builder) -> None:
    body = "word " * (FULL_CONTENT_LIMIT // 5 + 10)
    path = workspace_builder.repo("svc-a", {"README.md": body})

    (readme,) = index_documents(_repo(path), workspace_builder.path())

    assert readme.title == "svc-a README"
    assert len(readme.content) == MAX_CONTENT_CHARS
    assert readme.full_content is None
