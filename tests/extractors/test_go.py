"""Tests for Go router registration extraction."""

from __future__ import annotations

from servicemap.extractors import GoRouteExtractor
from servicemap.models import DiscoveredRepo, RepoVariant

_MAIN = """
package main

func main() {
	r := gin.Default()
	v1 := r.Group("/api/v1")
	v1.GET("/users/:id", getUser)
	v1.POST("/users", createUser)
	r.GET("/health", func(c *gin.Context) {})

	mux := http.NewServeMux()
	mux.HandleFunc("POST /items", createItem)
	mux.HandleFunc("/legacy", legacyHandler)

	router := muxlib.NewRouter()
	api := router.PathPrefix("/api/v2").Subrouter()
	api.HandleFunc("/orders", listOrders).Methods("GET", http.MethodPost)
}
"""

_CHI_ROUTES = """
package httpapi

func Routes(r chi.Router) {
	r.Route("/accounts", func(r chi.Router) {
		r.Get("/", listAccounts)
		r.Post("/{id}/close", closeAccount)
	})
}
"""


def _go_repo(workspace_builder, files) -> DiscoveredRepo:
    path = workspace_builder.repo("svc-d", files)
    return DiscoveredRepo(id="svc-d", name="Svc D", variant=RepoVariant.GO, path=path)


def test_go_extracts_gin_mux_and_net_http_routes(workspace_builder) -> None:
    repo = _go_repo(workspace_builder, {"main.go": _MAIN})

    routes = GoRouteExtractor().extract(repo, workspace_builder.path())

    assert [(route.key, route.handler_name) for route in routes] == [
        (("GET", "/api/v1/users/:id"), "getUser"),
        (("POST", "/api/v1/users"), "createUser"),
        (("GET", "/health"), None),
        (("POST", "/items"), "createItem"),
        (("GET", "/legacy"), "legacyHandler"),
        (("GET", "/api/v2/orders"), "listOrders"),
        (("POST", "/api/v2/orders"), "listOrders"),
    ]
    assert routes[0].file_path == "svc-d/main.go"
    assert routes[0].line == 6


def test_go_applies_chi_route_block_prefix(workspace_builder) -> None:
    repo = _go_repo(workspace_builder, {"internal/httpapi/routes.go": _CHI_ROUTES})

    routes = GoRouteExtractor().extract(repo, workspace_builder.path())

    assert [route.key for route in routes] == [
        ("GET", "/accounts"),
        ("POST", "/accounts/{id}/close"),
    ]


def test_go_skips_test_files_and_scans_each_file_once(workspace_builder) -> None:
    repo = _go_repo(
        workspace_builder,
        {
            "internal/httpapi/routes.go": _CHI_ROUTES,
            "internal/httpapi/routes_test.go": 'r.Get("/only-in-tests", handler)\n',
        },
    )

    routes = GoRouteExtractor().extract(repo, workspace_builder.path())

    assert [route.full_path for route in routes] == ["/accounts", "/accounts/{id}/close"]
