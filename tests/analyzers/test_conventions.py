"""Tests for API convention detection."""

from __future__ import annotations

from servicemap.analyzers.conventions import Convention, extract_conventions


def test_conventions_report_first_occurrence_and_file_count(workspace_builder) -> None:
    repo = workspace_builder.repo(
        "svc-a",
        {
            "src/a.controller.ts": """
            @UseGuards(AuthGuard)
            export class PaymentsController {
              @Roles('admin')
              @Post()
              pay(@Headers('Idempotency-Key') key: string) {}
            }
            """,
            "src/b.ts": "const headers = { 'x-idempotency-key': id };\n",
        },
    )

    conventions = extract_conventions(repo, workspace_builder.path())

    assert [(item.name, item.source_path, item.line, item.count) for item in conventions] == [
        ("idempotency-key", "svc-a/src/a.controller.ts", 5, 2),
        ("use-guards", "svc-a/src/a.controller.ts", 1, 1),
        ("roles", "svc-a/src/a.controller.ts", 3, 1),
    ]
    assert conventions[1] == Convention(
        name="use-guards",
        description="Controllers are protected with @UseGuards.",
        source_path="svc-a/src/a.controller.ts",
        line=1,
        count=1,
    )


def test_conventions_detect_spring_security(workspace_builder) -> None:
    repo = workspace_builder.repo(
        "svc-c",
        {"src/main/java/Api.java": '@PreAuthorize("hasRole(\'ADMIN\')")\npublic void purge() {}\n'},
    )

    conventions = extract_conventions(repo, workspace_builder.path())

    assert [item.name for item in conventions] == ["pre-authorize"]


def test_conventions_empty_without_src(workspace_builder) -> None:
    repo = workspace_builder.repo("svc-a", {"index.ts": "@UseGuards(AuthGuard)\n"})

    assert extract_conventions(repo, workspace_builder.path()) == []
