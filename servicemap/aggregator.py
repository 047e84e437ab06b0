"""Fact aggregation: turns per-repo extraction results into fact entries."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .analyzers import (
    collect_env_vars,
    extract_changelog,
    extract_conventions,
    extract_tables,
    glossary_from_routes,
    index_documents,
)
from .extractors.front import extract_front_routes
from .extractors.front_usage import (
    ServiceEndpoint,
    build_route_endpoints,
    extract_endpoint_usage,
    extract_response_schemas,
    extract_service_endpoints,
)
from .logging import get_logger
from .models import DiscoveredRepo, FactEntry, FactKind, OutboundCall, OutboundMapping, RepoVariant, RouteInfo
from .outbound import MatchPolicy, OutboundScanner, ServiceReferenceScanner, default_scanners

MAX_SLUG_LENGTH = 150
MAX_MAPPING_CALLS = 100
MAX_LISTED_CALLS = 80
MAX_SUMMARY_ROUTES = 5
MAX_SUMMARY_ENV_VARS = 10

_MANIFESTS = {
    RepoVariant.NEST: ("package.json",),
    RepoVariant.EXPRESS: ("package.json",),
    RepoVariant.FRONT: ("package.json",),
    RepoVariant.SPRING: ("build.gradle.kts", "build.gradle", "pom.xml"),
    RepoVariant.GO: ("go.mod",),
}


def slug(repo: str, suffix: str) -> str:
    """Deterministic fact id: ``repo:suffix`` with slashes turned into colons."""
    return f"{repo}:{suffix}".replace("/", ":")[:MAX_SLUG_LENGTH]


@dataclass
class ServiceEdge:
    """All calls one repo makes to one downstream service."""

    from_repo: str
    to_service: str
    env_var: str
    file_paths: List[str] = field(default_factory=list)
    calls: List[OutboundCall] = field(default_factory=list)

    def meta(self) -> Dict[str, Any]:
        return {
            "fromRepo": self.from_repo,
            "toService": self.to_service,
            "envVar": self.env_var,
            "filePaths": list(self.file_paths),
            "calls": [call.to_dict() for call in self.calls[:MAX_MAPPING_CALLS]],
        }


def merge_outbound_mappings(mappings: Iterable[OutboundMapping]) -> List[ServiceEdge]:
    """Merge per-file mappings into one edge per (from, to), keeping first-seen order."""
    edges: Dict[Tuple[str, str], ServiceEdge] = {}
    seen_calls: Dict[Tuple[str, str], Set[Tuple[str, str]]] = {}
    for mapping in mappings:
        key = (mapping.from_repo, mapping.to_service)
        edge = edges.get(key)
        if edge is None:
            edge = ServiceEdge(mapping.from_repo, mapping.to_service, mapping.env_var)
            edges[key] = edge
            seen_calls[key] = set()
        if mapping.file_path not in edge.file_paths:
            edge.file_paths.append(mapping.file_path)
        for call in mapping.calls:
            if call.key in seen_calls[key]:
                continue
            seen_calls[key].add(call.key)
            edge.calls.append(call)
    return list(edges.values())


def _entry(
    kind: FactKind,
    source: str,
    source_path: str,
    title: str,
    content: str,
    *,
    tags: Optional[List[str]] = None,
    meta: Optional[Dict[str, Any]] = None,
    line: Optional[int] = None,
    entry_id: Optional[str] = None,
) -> FactEntry:
    return FactEntry(
        id=entry_id or slug(source, f"{kind.value}:{title}:{source_path}"),
        kind=kind,
        source=source,
        source_path=source_path,
        title=title,
        content=content,
        tags=tags or [],
        meta=meta,
        line=line,
    )


class FactAggregator:
    """Runs every extractor for a repo and emits uniform fact entries."""

    def __init__(
        self,
        workspace_root: Path,
        repo_ids: Sequence[str],
        policy: MatchPolicy = MatchPolicy.FIRST_MATCH,
        scanners: Optional[Sequence[OutboundScanner]] = None,
    ) -> None:
        self.workspace_root = Path(workspace_root)
        self.repo_ids = list(repo_ids)
        self.policy = policy
        self.scanners = list(scanners) if scanners is not None else default_scanners(policy)
        self.reference_scanner = ServiceReferenceScanner(policy)
        self.logger = get_logger("aggregator")

    def build(self, repos: Iterable[DiscoveredRepo]) -> List[FactEntry]:
        """Collect facts for every repo; a failing repo contributes nothing."""
        entries: List[FactEntry] = []
        for repo in repos:
            try:
                facts = self.collect(repo)
            except Exception as exc:
                self.logger.warning("Skipping facts for %s: %s", repo.id, exc)
                self.logger.debug("Extraction failure for %s", repo.id, exc_info=True)
                continue
            self.logger.debug("Collected %s facts from %s", len(facts), repo.id)
            entries.extend(facts)
        return entries

    def collect(self, repo: DiscoveredRepo) -> List[FactEntry]:
        if repo.variant is RepoVariant.SQL:
            facts = self._sql_facts(repo)
        elif repo.variant.is_http_service:
            facts = self._service_facts(repo)
        elif repo.variant is RepoVariant.FRONT:
            facts = self._front_facts(repo)
        else:
            facts = self._env_facts(repo, collect_env_vars(repo.path)) + self._changelog_facts(repo)
        return facts + self._document_facts(repo)

    # ------------------------------------------------------------------
    # Per-variant emission

    def _sql_facts(self, repo: DiscoveredRepo) -> List[FactEntry]:
        facts: List[FactEntry] = []
        for table in extract_tables(repo.path, self.workspace_root):
            facts.append(
                _entry(
                    FactKind.DB_TABLE,
                    repo.id,
                    table.file_path,
                    table.qualified_name,
                    f"Table {table.table_name} ({table.operation}) in {table.file_path}. Repo: {repo.id}.",
                    tags=[table.operation.lower(), "sql", repo.id],
                    meta={"tableName": table.table_name, "schema": table.schema, "operation": table.operation},
                    entry_id=slug(
                        repo.id, f"db_table:{table.operation}:{table.qualified_name}:{table.file_path}"
                    ),
                )
            )
        return facts + self._changelog_facts(repo)

    def _service_facts(self, repo: DiscoveredRepo) -> List[FactEntry]:
        routes = self._routes(repo)
        env_vars = collect_env_vars(repo.path)
        mappings: List[OutboundMapping] = []
        for scanner in self.scanners:
            mappings.extend(scanner.scan(repo, self.workspace_root, self.repo_ids))
        edges = merge_outbound_mappings(mappings)
        edge_targets = [edge.to_service for edge in edges]
        references = [
            reference
            for reference in self.reference_scanner.scan(repo, self.workspace_root, self.repo_ids)
            if reference.to_service not in edge_targets
        ]

        used: List[str] = []
        for service in edge_targets + [reference.to_service for reference in references]:
            if service not in used:
                used.append(service)

        facts: List[FactEntry] = [self._service_summary(repo, routes, used, env_vars)]
        facts.extend(self._contract_facts(repo, routes))
        for edge in edges:
            facts.append(self._mapping_fact(repo, edge))
        for reference in references:
            request = f"{reference.method} {reference.path or ''}".strip() if reference.method else ""
            facts.append(
                _entry(
                    FactKind.DEPENDENCY,
                    repo.id,
                    reference.file_path,
                    f"{repo.id} → {reference.to_service}",
                    f"{repo.id} calls {reference.to_service} (env: {reference.key}). {request}".strip(),
                    tags=[reference.to_service, "http-client"],
                    meta={
                        "fromRepo": repo.id,
                        "toService": reference.to_service,
                        "envVar": reference.key,
                        "method": reference.method,
                        "pathFragment": reference.path,
                    },
                    line=reference.line,
                    entry_id=slug(
                        repo.id, f"dependency:{reference.to_service}:{reference.key}:{reference.file_path}"
                    ),
                )
            )
        facts.extend(self._env_facts(repo, env_vars))
        for term in glossary_from_routes(repo.id, routes):
            facts.append(
                _entry(
                    FactKind.GLOSSARY,
                    repo.id,
                    term.source_path,
                    term.term,
                    f'Domain term "{term.term}" ({term.kind}) in {repo.id}.',
                    tags=[term.kind, term.term],
                    meta={"kind": term.kind},
                    line=term.line,
                )
            )
        for convention in extract_conventions(repo.path, self.workspace_root):
            facts.append(
                _entry(
                    FactKind.CONVENTION,
                    repo.id,
                    convention.source_path,
                    convention.name,
                    f"{convention.description} Found in {convention.count} file(s).",
                    tags=["convention", convention.name],
                    meta={"count": convention.count},
                    line=convention.line,
                )
            )
        return facts + self._changelog_facts(repo)

    def _front_facts(self, repo: DiscoveredRepo) -> List[FactEntry]:
        routes = extract_front_routes(repo.path, self.workspace_root) if repo.extractor is not None else []
        endpoints = extract_service_endpoints(repo.path, self.workspace_root)
        service_methods: Dict[str, List[str]] = {}
        for endpoint in endpoints:
            service_methods.setdefault(endpoint.service_name, []).append(endpoint.method_name)
        usages = extract_endpoint_usage(repo.path, self.workspace_root, service_methods)
        schemas = extract_response_schemas(repo.path, self.workspace_root)
        route_endpoints = build_route_endpoints(repo.path, self.workspace_root, routes, usages, endpoints)
        env_vars = collect_env_vars(repo.path)

        summary = [repo.description or f"{repo.name} ({repo.variant.value})"]
        if routes:
            listed = ", ".join(route.path for route in routes[:MAX_SUMMARY_ROUTES])
            more = "..." if len(routes) > MAX_SUMMARY_ROUTES else ""
            summary.append(f"Serves {len(routes)} route(s): {listed}{more}.")
        if endpoints:
            summary.append(f"Calls {len(endpoints)} API endpoint(s) through its services.")
        summary.append(self._env_summary(env_vars))
        facts: List[FactEntry] = [
            _entry(
                FactKind.REPO_SUMMARY,
                repo.id,
                self._manifest(repo),
                repo.name,
                " ".join(part for part in summary if part),
                tags=[repo.variant.value],
                meta={"routeCount": len(routes), "endpointCount": len(endpoints), "envVars": env_vars},
            )
        ]

        for route in routes:
            facts.append(
                _entry(
                    FactKind.FRONT_ROUTE,
                    repo.id,
                    route.source_path,
                    route.path,
                    f"{repo.id} route {route.path} renders {route.component_name}.",
                    tags=["route", route.route_key, route.component_name],
                    meta={"path": route.path, "routeKey": route.route_key, "componentName": route.component_name},
                )
            )
        for endpoint in endpoints:
            facts.append(
                _entry(
                    FactKind.SERVICE_ENDPOINT,
                    repo.id,
                    endpoint.source_path,
                    f"{endpoint.service_name}.{endpoint.method_name}",
                    f"{endpoint.service_name}.{endpoint.method_name} calls "
                    f"{endpoint.http_method} {endpoint.path_pattern}.",
                    tags=[endpoint.http_method.lower(), endpoint.service_name, endpoint.method_name],
                    meta=_endpoint_meta(endpoint),
                )
            )
        for usage in usages:
            if usage.service_name:
                title = f"{usage.source_path} uses {usage.service_name}"
                invoked = ", ".join(usage.invoked_methods)
                content = f"{usage.source_path} imports service {usage.service_name}."
                if invoked:
                    content += f" Invokes: {invoked}."
            else:
                title = f"{usage.source_path} references {usage.path_fragment}"
                content = f"{usage.source_path} references API path {usage.path_fragment}."
            facts.append(
                _entry(
                    FactKind.FRONT_ENDPOINT_USAGE,
                    repo.id,
                    usage.source_path,
                    title,
                    content,
                    tags=[value for value in ("endpoint-usage", usage.service_name) if value],
                    meta={
                        "serviceName": usage.service_name,
                        "pathFragment": usage.path_fragment,
                        "invokedMethods": list(usage.invoked_methods),
                    },
                )
            )
        for item in route_endpoints:
            calls = ", ".join(f"{ep.http_method} {ep.path_pattern}" for ep in item.endpoints)
            facts.append(
                _entry(
                    FactKind.ROUTE_ENDPOINTS,
                    repo.id,
                    item.source_path,
                    f"Route {item.path}",
                    f"Route {item.path} ({item.component_name}) uses: {calls or 'no endpoints'}.",
                    tags=["route-endpoints", item.route_key],
                    meta={
                        "path": item.path,
                        "routeKey": item.route_key,
                        "componentName": item.component_name,
                        "endpoints": [_endpoint_meta(ep) for ep in item.endpoints],
                    },
                )
            )
        for schema in schemas:
            fields = ", ".join(f"{name}: {type_name}" for name, type_name in schema.properties)
            facts.append(
                _entry(
                    FactKind.RESPONSE_SCHEMA,
                    repo.id,
                    schema.source_path,
                    schema.type_name,
                    f"Type {schema.type_name} {{ {fields} }}." if fields else f"Type {schema.type_name}.",
                    tags=["schema", schema.type_name],
                    meta={
                        "typeName": schema.type_name,
                        "properties": [{"name": name, "type": type_name} for name, type_name in schema.properties],
                    },
                    line=schema.line,
                )
            )
        return facts + self._env_facts(repo, env_vars) + self._changelog_facts(repo)

    # ------------------------------------------------------------------
    # Shared builders

    def _routes(self, repo: DiscoveredRepo) -> List[RouteInfo]:
        if repo.extractor is None:
            return []
        routes: List[RouteInfo] = []
        seen: Set[Tuple[str, str]] = set()
        for route in repo.extractor.extract(repo, self.workspace_root):
            if route.key in seen:
                continue
            seen.add(route.key)
            routes.append(route)
        return routes

    def _contract_facts(self, repo: DiscoveredRepo, routes: Sequence[RouteInfo]) -> List[FactEntry]:
        facts: List[FactEntry] = []
        for route in routes:
            parts = [f"{repo.id} exposes {route.method} {route.full_path}"]
            if route.request_body_type:
                parts.append(f"Body: {route.request_body_type}")
            if route.response_type:
                parts.append(f"Response: {route.response_type}")
            facts.append(
                _entry(
                    FactKind.CONTRACT,
                    repo.id,
                    route.file_path,
                    f"{route.method} {route.full_path}",
                    ". ".join(parts),
                    tags=[route.method.lower(), *[part for part in route.full_path.split("/") if part]],
                    meta={
                        "method": route.method,
                        "fullPath": route.full_path,
                        "requestBodyType": route.request_body_type,
                        "responseType": route.response_type,
                        "handlerName": route.handler_name,
                    },
                    line=route.line,
                    entry_id=slug(repo.id, f"contract:{route.method}:{route.full_path}"),
                )
            )
        return facts

    def _mapping_fact(self, repo: DiscoveredRepo, edge: ServiceEdge) -> FactEntry:
        listed = ", ".join(call.display for call in edge.calls[:MAX_LISTED_CALLS])
        more = "..." if len(edge.calls) > MAX_LISTED_CALLS else ""
        return _entry(
            FactKind.ENDPOINT_MAPPING,
            repo.id,
            edge.file_paths[0],
            f"{edge.from_repo} → {edge.to_service}",
            f"{edge.from_repo} calls {edge.to_service} (env: {edge.env_var}). Endpoints: {listed}{more}.",
            tags=[edge.to_service, "endpoint-mapping", "http"],
            meta=edge.meta(),
        )

    def _service_summary(
        self,
        repo: DiscoveredRepo,
        routes: Sequence[RouteInfo],
        used: Sequence[str],
        env_vars: Sequence[str],
    ) -> FactEntry:
        parts = [repo.description or f"{repo.name} ({repo.variant.value})"]
        if routes:
            listed = ", ".join(f"{route.method} {route.full_path}" for route in routes[:MAX_SUMMARY_ROUTES])
            more = "..." if len(routes) > MAX_SUMMARY_ROUTES else ""
            parts.append(f"Exposes {len(routes)} route(s): {listed}{more}.")
        if used:
            parts.append(f"Uses: {', '.join(used)}.")
        parts.append(self._env_summary(env_vars))
        return _entry(
            FactKind.REPO_SUMMARY,
            repo.id,
            self._manifest(repo),
            repo.name,
            " ".join(part for part in parts if part),
            tags=[repo.variant.value, *used],
            meta={"routeCount": len(routes), "envVars": list(env_vars), "toServices": list(used)},
        )

    @staticmethod
    def _env_summary(env_vars: Sequence[str]) -> str:
        if not env_vars:
            return ""
        listed = ", ".join(env_vars[:MAX_SUMMARY_ENV_VARS])
        more = "..." if len(env_vars) > MAX_SUMMARY_ENV_VARS else ""
        return f"Env: {listed}{more}."

    def _env_facts(self, repo: DiscoveredRepo, env_vars: Sequence[str]) -> List[FactEntry]:
        if not env_vars:
            return []
        return [
            _entry(
                FactKind.ENV_CONFIG,
                repo.id,
                ".env.example",
                f"Environment variables: {repo.id}",
                f"This service reads: {', '.join(env_vars)}.",
                tags=["config", "env"],
                meta={"vars": list(env_vars)},
            )
        ]

    def _changelog_facts(self, repo: DiscoveredRepo) -> List[FactEntry]:
        facts: List[FactEntry] = []
        for index, block in enumerate(extract_changelog(repo.path)):
            title = block.version or "Changelog"
            facts.append(
                _entry(
                    FactKind.CHANGELOG,
                    repo.id,
                    "CHANGELOG.md",
                    title,
                    block.content,
                    tags=["changelog", *(["breaking"] if block.is_breaking else [])],
                    meta={
                        "version": block.version,
                        "isBreaking": block.is_breaking,
                        "conventional": list(block.conventional),
                    },
                    entry_id=slug(repo.id, f"changelog:{index}:{title}"),
                )
            )
        return facts

    def _document_facts(self, repo: DiscoveredRepo) -> List[FactEntry]:
        facts: List[FactEntry] = []
        for document in index_documents(repo, self.workspace_root):
            entry = _entry(
                document.kind,
                repo.id,
                document.source_path,
                document.title,
                document.content,
                tags=list(document.tags),
                entry_id=slug(repo.id, f"{document.kind.value}:{document.source_path}"),
            )
            entry.full_content = document.full_content
            entry.references = list(document.references)
            facts.append(entry)
        return facts

    @staticmethod
    def _manifest(repo: DiscoveredRepo) -> str:
        candidates = _MANIFESTS.get(repo.variant, ())
        for name in candidates:
            if (repo.path / name).is_file():
                return name
        return candidates[0] if candidates else ""


def _endpoint_meta(endpoint: ServiceEndpoint) -> Dict[str, Any]:
    return {
        "serviceName": endpoint.service_name,
        "methodName": endpoint.method_name,
        "httpMethod": endpoint.http_method,
        "pathPattern": endpoint.path_pattern,
        "paramNames": list(endpoint.param_names),
    }


__all__ = ["FactAggregator", "ServiceEdge", "merge_outbound_mappings", "slug"]
