"""Tests for environment variable collection."""

from __future__ import annotations

from servicemap.analyzers.env import collect_env_vars, env_from_code, env_from_files


def test_env_from_files_reads_example_files(workspace_builder) -> None:
    repo = workspace_builder.repo(
        "svc-a",
        {
            ".env.example": "PORT=3000\nexport DB_HOST=localhost\n# COMMENTED=1\n",
            ".env.dev": "PORT=4000\n",
            ".env": "SECRET_ONLY_LOCAL=1\n",
        },
    )

    assert env_from_files(repo) == ["PORT", "DB_HOST", "PORT"]


def test_env_from_code_covers_node_jvm_go_and_resources(workspace_builder) -> None:
    repo = workspace_builder.repo(
        "svc-a",
        {
            "src/main.ts": """
            const secret = process.env.JWT_SECRET;
            const users = this.configService.get<string>('USER_SERVICE_URL');
            const api = import.meta.env.VITE_API;
            """,
            "src/main/kotlin/App.kt": 'val region = System.getenv("KT_REGION")\n',
            "src/main/resources/application.yml": "billing:\n  url: ${BILLING_URL:http://localhost}\n  name: ${spring.application.name}\n",
            "src/main/resources/logback.xml": "<value>${IGNORED_VAR}</value>\n",
            "cmd/server/main.go": 'addr := os.Getenv("LISTEN_ADDR")\n',
        },
    )

    assert env_from_code(repo) == [
        "BILLING_URL",
        "JWT_SECRET",
        "KT_REGION",
        "LISTEN_ADDR",
        "USER_SERVICE_URL",
        "VITE_API",
    ]


def test_collect_env_vars_merges_and_sorts(workspace_builder) -> None:
    repo = workspace_builder.repo(
        "svc-a",
        {
            ".env.example": "PORT=3000\nJWT_SECRET=\n",
            "src/main.ts": "const secret = process.env.JWT_SECRET;\n",
        },
    )

    assert collect_env_vars(repo) == ["JWT_SECRET", "PORT"]


def test_collect_env_vars_empty_repo(workspace_builder) -> None:
    repo = workspace_builder.repo("svc-a", {"README.md": "# Svc A\n"})

    assert collect_env_vars(repo) == []
