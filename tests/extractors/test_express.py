"""Tests for Express router registration extraction."""

from __future__ import annotations

from servicemap.extractors import ExpressRouteExtractor
from servicemap.models import DiscoveredRepo, RepoVariant

_APP = """
const express = require('express');
const usersRouter = require('./routes/users');

const app = express();
const router = express.Router();

app.use('/api/users', usersRouter);
app.use('/v2', router);
app.get('/health', healthCheck);
router.get('/status', (req, res) => res.json({ ok: true }));
app.get('port');
"""

_USERS = """
const express = require('express');
const controller = require('../controllers/users');

const router = express.Router();

router.get('/', listUsers);
router.post('/:id', async (req, res) => {
  res.sendStatus(204);
});
router.route('/:id/roles').get(controller.listRoles).put(controller.replaceRoles);

module.exports = router;
"""


def _express_repo(workspace_builder, files) -> DiscoveredRepo:
    path = workspace_builder.repo("svc-b", files)
    return DiscoveredRepo(id="svc-b", name="Svc B", variant=RepoVariant.EXPRESS, path=path)


def test_express_resolves_mounted_router_prefixes(workspace_builder) -> None:
    repo = _express_repo(workspace_builder, {"src/app.js": _APP, "src/routes/users.js": _USERS})

    routes = ExpressRouteExtractor().extract(repo, workspace_builder.path())

    assert [route.key for route in routes] == [
        ("GET", "/health"),
        ("GET", "/v2/status"),
        ("GET", "/api/users"),
        ("POST", "/api/users/:id"),
        ("GET", "/api/users/:id/roles"),
        ("PUT", "/api/users/:id/roles"),
    ]
    handlers = {route.key: route.handler_name for route in routes}
    assert handlers[("GET", "/health")] == "healthCheck"
    assert handlers[("GET", "/v2/status")] is None
    assert handlers[("GET", "/api/users")] == "listUsers"
    assert handlers[("POST", "/api/users/:id")] is None
    assert handlers[("GET", "/api/users/:id/roles")] == "controller.listRoles"
    assert handlers[("PUT", "/api/users/:id/roles")] == "controller.replaceRoles"
    assert routes[2].file_path == "svc-b/src/routes/users.js"


def test_express_ignores_unrelated_receivers_and_declarations(workspace_builder) -> None:
    repo = _express_repo(
        workspace_builder,
        {
            "index.ts": """
            import express from 'express';
            const app = express();
            cache.get('/not-a-route');
            app.delete('/items/:id', removeItem);
            """,
            "types.d.ts": "declare const app: { get(path: '/typed'): void };\n",
        },
    )

    routes = ExpressRouteExtractor().extract(repo, workspace_builder.path())

    assert [(route.key, route.handler_name) for route in routes] == [
        (("DELETE", "/items/:id"), "removeItem"),
    ]


def test_express_keeps_first_declaration_of_duplicate_routes(workspace_builder) -> None:
    repo = _express_repo(
        workspace_builder,
        {
            "a.js": "app.get('/ping', first);\n",
            "b.js": "app.get('/ping', second);\n",
        },
    )

    routes = ExpressRouteExtractor().extract(repo, workspace_builder.path())

    assert [(route.key, route.handler_name, route.file_path) for route in routes] == [
        (("GET", "/ping"), "first", "svc-b/a.js"),
    ]


def test_express_skips_http_client_instances(workspace_builder) -> None:
    repo = _express_repo(
        workspace_builder,
        {
            "src/app.js": "app.get('/orders', listOrders);\n",
            "src/clients/users.js": """
            const api = axios.create({ baseURL: process.env.USER_SERVICE_URL });
            const server = createAxiosInstance({ baseURL: process.env.AUTH_URL });
            export const fetchUsers = () => api.get('/users');
            export const login = () => server.post('/login');
            """,
        },
    )

    routes = ExpressRouteExtractor().extract(repo, workspace_builder.path())

    assert [route.key for route in routes] == [("GET", "/orders")]
