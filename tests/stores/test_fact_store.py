"""Tests for fact store lookups and ranked search."""

from __future__ import annotations

from servicemap.models import FactEntry, FactKind
from servicemap.stores import Caller, FactStore


def _entry(entry_id: str, kind: FactKind, title: str, content: str = "", **kwargs) -> FactEntry:
    kwargs.setdefault("source", "svc-a")
    kwargs.setdefault("source_path", f"{kwargs['source']}/src/file.ts")
    return FactEntry(id=entry_id, kind=kind, title=title, content=content, **kwargs)


def _mapping(entry_id: str, from_repo: str, to_service: str, calls, file_paths=None) -> FactEntry:
    meta = {"fromRepo": from_repo, "toService": to_service, "envVar": f"{to_service.upper()}_URL", "calls": calls}
    if file_paths is not None:
        meta["filePaths"] = file_paths
    return _entry(
        entry_id,
        FactKind.ENDPOINT_MAPPING,
        f"{from_repo} → {to_service}",
        source=from_repo,
        source_path=f"{from_repo}/src/client.ts",
        meta=meta,
    )


_ORDERS = _entry("orders", FactKind.CONTRACT, "GET /orders/:id", "Returns an order", meta={"fullPath": "/orders/:id"})
_INVOICE_TABLE = _entry(
    "invoices-table",
    FactKind.DB_TABLE,
    "billing.invoices",
    "Table invoices",
    source="db",
    meta={"tableName": "invoices", "schema": "billing"},
)
_BILLING_README = _entry("billing-readme", FactKind.README, "Billing", "Invoices and payments", source="billing")


def test_search_ranks_by_score_and_drops_non_matches() -> None:
    store = FactStore([_ORDERS, _BILLING_README, _INVOICE_TABLE])

    assert store.search("invoices") == [_INVOICE_TABLE, _BILLING_README]


def test_search_keeps_insertion_order_for_ties() -> None:
    first = _entry("first", FactKind.GLOSSARY, "refund", "refund term")
    second = _entry("second", FactKind.GLOSSARY, "refund", "refund term")

    assert FactStore([first, second]).search("refund") == [first, second]
    assert FactStore([second, first]).search("refund") == [second, first]


def test_search_more_matching_fields_rank_higher() -> None:
    title_only = _entry("title-only", FactKind.DOC, "Refund")
    richer = _entry("richer", FactKind.DOC, "Refund", "Refund policy for cancelled orders")

    assert FactStore([title_only, richer]).search("refund") == [richer, title_only]


def test_query_in_title_strictly_raises_rank() -> None:
    plain = _entry("plain", FactKind.DOC, "Invoice schedule", "Runs every billing cycle.")
    boosted = _entry("boosted", FactKind.DOC, "Invoice schedule billing cycle", "Runs every billing cycle.")

    assert FactStore([plain, boosted]).search("billing cycle") == [boosted, plain]
    assert FactStore([boosted, plain]).search("billing cycle") == [boosted, plain]


def test_search_matches_stems_accents_and_tags() -> None:
    accented = _entry("config", FactKind.DOC, "Configuración de pagos")
    tagged = _entry("tagged", FactKind.ADR, "Queue choice", tags=["payments", "ADR-1"])
    store = FactStore([_ORDERS, accented, tagged])

    assert store.search("ordering") == [_ORDERS]
    assert store.search("configuracion") == [accented]
    assert store.search("CONFIGURACIÓN") == [accented]
    assert store.search("payment") == [tagged]


def test_search_respects_limit_and_blank_queries() -> None:
    store = FactStore([_entry(f"e{index}", FactKind.GLOSSARY, "order") for index in range(5)])

    assert len(store.search("order", limit=3)) == 3
    assert store.search("order", limit=0) == []
    assert store.search("   ") == []
    assert FactStore().search("order") == []


def test_search_similar_ranks_positive_cosine_only() -> None:
    east = _entry("east", FactKind.DOC, "east", embedding=[1.0, 0.0])
    north = _entry("north", FactKind.DOC, "north", embedding=[0.0, 1.0])
    west = _entry("west", FactKind.DOC, "west", embedding=[-1.0, 0.0])
    plain = _entry("plain", FactKind.DOC, "plain")
    store = FactStore([plain, west, north, east])

    assert store.search_similar([1.0, 0.1]) == [east, north]
    assert store.search_similar([0.0, 0.0]) == []
    assert store.search_similar([1.0, 0.0, 0.0]) == []


def test_get_and_iteration() -> None:
    duplicate = _entry("orders", FactKind.CONTRACT, "GET /orders/:id (copy)")
    store = FactStore([_ORDERS, duplicate])

    assert len(store) == 2
    assert list(store) == [_ORDERS, duplicate]
    assert store.get("orders") is _ORDERS
    assert store.get("missing") is None


def test_find_by_identifier_checks_paths_titles_and_references() -> None:
    adr = _entry("adr", FactKind.ADR, "Use Kafka", source_path="svc-a/docs/adr/0001.md", references=["ADR-7"])
    store = FactStore([_ORDERS, adr])

    assert store.find_by_identifier("docs\\adr") == [adr]
    assert store.find_by_identifier("adr-7") == [adr]
    assert store.find_by_identifier("/orders/") == [_ORDERS]
    assert store.find_by_identifier("") == []


def test_typed_finders() -> None:
    summary = _entry("summary", FactKind.REPO_SUMMARY, "Svc A", source="svc-a")
    env = _entry("env", FactKind.ENV_CONFIG, "Environment variables: svc-a", "PORT")
    dependency = _entry(
        "dep", FactKind.DEPENDENCY, "svc-a → billing", meta={"toService": "billing", "key": "BILLING_URL"}
    )
    glossary = _entry("term", FactKind.GLOSSARY, "order", "Domain term from svc-a")
    adr = _entry("adr", FactKind.ADR, "Queue choice", "We pick a log", tags=["kafka"])
    changelog = _entry("changes", FactKind.CHANGELOG, "1.0.0", "Initial release", source="billing")
    billing_contract = _entry("billing", FactKind.CONTRACT, "POST /invoices", source="billing")
    store = FactStore(
        [summary, env, dependency, glossary, adr, changelog, _ORDERS, billing_contract, _INVOICE_TABLE]
    )

    assert store.find_repo_summary("SVC-A") is summary
    assert store.find_repo_summary("billing") is None
    assert store.find_env_config("svc-a") is env
    assert store.find_dependencies(to_service="Billing") == [dependency]
    assert store.find_dependencies(from_repo="billing") == []
    assert store.find_glossary("ORD") == [glossary]
    assert store.find_decisions("kafka") == [adr]
    assert store.find_changelog("billing") == [changelog]
    assert store.find_contracts(service="svc-a") == [_ORDERS]
    assert store.find_contracts(path_fragment="/ORDERS") == [_ORDERS]
    assert store.find_contracts() == [_ORDERS, billing_contract]
    assert store.find_db_tables(table="INVOICES") == [_INVOICE_TABLE]
    assert store.find_db_tables(repo="svc-a") == []


def test_callers_of_path_matches_literals_and_keys() -> None:
    from_a = _mapping(
        "a-to-b",
        "svc-a",
        "svc-b",
        [
            {"method": "GET", "path": {"literal": "/users/"}},
            {"method": "GET", "path": {"pathKey": "USER_PROFILE_PATH"}},
        ],
        file_paths=["svc-a/src/a.ts", "svc-a/src/b.ts"],
    )
    from_web = _mapping("web-to-b", "web", "svc-b", [{"method": "POST", "path": {"literal": "/users"}}])
    store = FactStore([from_a, from_web])

    assert store.callers_of_path("/users") == [
        Caller("svc-a", "svc-b", "GET", "/users/", ("svc-a/src/a.ts", "svc-a/src/b.ts")),
        Caller("web", "svc-b", "POST", "/users", ("web/src/client.ts",)),
    ]
    assert store.callers_of_path("profile") == [
        Caller("svc-a", "svc-b", "GET", "[USER_PROFILE_PATH]", ("svc-a/src/a.ts", "svc-a/src/b.ts")),
    ]
    assert store.callers_of_path(" ") == []
    assert store.count_callers_of_service("svc-b") == 2
    assert store.count_callers_of_service("svc-x") == 0
    assert store.find_endpoint_mappings(from_repo="web") == [from_web]
    assert store.find_endpoint_mappings(to_service="SVC-B") == [from_a, from_web]
