"""CLI entrypoints for servicemap commands."""

from __future__ import annotations

import argparse
import os
from dataclasses import replace
from pathlib import Path
from typing import Optional

from .config import ConfigError, load_config
from .embeddings import HashingEmbedder
from .indexer import WorkspaceIndexer
from .logging import configure_logging
from .models import FactKind

_WORKSPACE_ENV = "WORKSPACE_ROOT"
_EMBED_ENV = "SERVICEMAP_EMBED"


def _add_verbose_option(parser: argparse.ArgumentParser, *, suppress_default: bool = False) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS if suppress_default else False,
        help="Increase log verbosity for troubleshooting.",
    )


def _add_path_argument(parser: argparse.ArgumentParser, *, positional: bool) -> None:
    help_text = f"Workspace root (defaults to ${_WORKSPACE_ENV} or the current directory)."
    if positional:
        parser.add_argument("path", nargs="?", default=None, help=help_text)
    else:
        parser.add_argument("--path", default=None, help=help_text)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="servicemap",
        description="Index a multi-service workspace and query the facts it exposes.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    refresh_parser = subparsers.add_parser("refresh", help="Rebuild the fact index, reusing the cache when valid.")
    _add_verbose_option(refresh_parser, suppress_default=True)
    _add_path_argument(refresh_parser, positional=True)
    refresh_parser.add_argument("--force", action="store_true", help="Ignore the cache and extract everything.")
    refresh_parser.add_argument("--embed", action="store_true", help="Compute embeddings for every fact.")

    repos_parser = subparsers.add_parser("repos", help="List discovered repos and their variants.")
    _add_verbose_option(repos_parser, suppress_default=True)
    _add_path_argument(repos_parser, positional=True)

    search_parser = subparsers.add_parser("search", help="Ranked free-text search over the fact index.")
    _add_verbose_option(search_parser, suppress_default=True)
    search_parser.add_argument("query", help="Search text.")
    _add_path_argument(search_parser, positional=False)
    search_parser.add_argument("--limit", type=int, default=None, help="Maximum number of results.")
    search_parser.add_argument(
        "--kind",
        choices=[kind.value for kind in FactKind],
        default=None,
        help="Only return facts of this kind.",
    )

    callers_parser = subparsers.add_parser("callers", help="List client calls whose path contains FRAGMENT.")
    _add_verbose_option(callers_parser, suppress_default=True)
    callers_parser.add_argument("fragment", help="Path fragment or path key to look for.")
    _add_path_argument(callers_parser, positional=False)

    return parser


def _workspace_root(value: Optional[str]) -> Path:
    return Path(value or os.environ.get(_WORKSPACE_ENV) or ".").expanduser().resolve()


def _embedding_requested(args: argparse.Namespace) -> bool:
    flag = os.environ.get(_EMBED_ENV, "").strip().lower()
    return bool(getattr(args, "embed", False)) or flag in {"1", "true"}


def _build_indexer(args: argparse.Namespace) -> WorkspaceIndexer:
    root = _workspace_root(args.path)
    config = load_config(root)
    if _embedding_requested(args):
        config.embeddings = replace(config.embeddings, enabled=True)
        return WorkspaceIndexer(root, config=config, embedder=HashingEmbedder(config.embeddings.dimension))
    return WorkspaceIndexer(root, config=config)


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for servicemap commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), quiet=args.command != "refresh")

    try:
        indexer = _build_indexer(args)
    except ConfigError as exc:
        parser.exit(1, f"{exc}\n")

    try:
        if args.command == "refresh":
            indexer.refresh(force_full=bool(args.force))
            result = indexer.last_refresh
            if result is not None:
                source = "cache" if result.from_cache else "extraction"
                print(f"{result.entry_count} facts from {result.repo_count} repos ({source})")
        elif args.command == "repos":
            for repo in indexer.discover():
                print(f"{repo.id}\t{repo.variant.value}\t{repo.name}")
        elif args.command == "search":
            store = indexer.refresh()
            limit = args.limit if args.limit is not None else indexer.config.search_limit
            if args.kind:
                kind = FactKind(args.kind)
                matches = [entry for entry in store.search(args.query, len(store)) if entry.kind is kind][:limit]
            else:
                matches = store.search(args.query, limit)
            for entry in matches:
                print(f"{entry.kind.value}\t{entry.source}\t{entry.title}\t{entry.source_path}")
        elif args.command == "callers":
            store = indexer.refresh()
            for caller in store.callers_of_path(args.fragment):
                print(f"{caller.from_repo}\t{caller.to_service}\t{caller.method}\t{caller.path}\t{','.join(caller.file_paths)}")
        else:  # pragma: no cover - argparse enforces choices
            parser.exit(1, "Unknown command\n")
    except Exception as exc:  # pragma: no cover - unexpected failure
        parser.exit(1, f"servicemap {args.command} failed: {exc}\nRun with --verbose for more details.\n")


if __name__ == "__main__":  # pragma: no cover
    main()
