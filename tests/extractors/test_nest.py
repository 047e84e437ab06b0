"""Tests for Nest controller route extraction."""

from __future__ import annotations

from servicemap.extractors import NestRouteExtractor
from servicemap.models import DiscoveredRepo, RepoVariant

_CONTROLLER = """
import { Body, Controller, Delete, Get, HttpCode, Param, Post } from '@nestjs/common';

@Controller('v1/widgets')
export class WidgetsController {
  @Get(':id')
  async findOne(@Param('id') id: string): Promise<WidgetDto> {
    return this.service.find(id);
  }

  @Post()
  @HttpCode(201)
  create(@Body() body: CreateWidgetDto): Observable<WidgetDto[]> {
    return this.service.create(body);
  }

  @Delete({ path: 'bulk' })
  removeMany(): void {}

  @Get(dynamicPath)
  dynamic() {}
}
"""


def _nest_repo(workspace_builder, files, controllers_path="src/controllers") -> DiscoveredRepo:
    path = workspace_builder.repo("svc-a", files)
    return DiscoveredRepo(
        id="svc-a",
        name="Svc A",
        variant=RepoVariant.NEST,
        path=path,
        controllers_path=controllers_path,
    )


def test_nest_extracts_decorated_routes(workspace_builder) -> None:
    repo = _nest_repo(workspace_builder, {"src/controllers/widgets.controller.ts": _CONTROLLER})

    routes = NestRouteExtractor().extract(repo, workspace_builder.path())

    assert [route.key for route in routes] == [
        ("GET", "/v1/widgets/:id"),
        ("POST", "/v1/widgets"),
        ("DELETE", "/v1/widgets/bulk"),
    ]
    find_one, create, remove = routes
    assert find_one.handler_name == "findOne"
    assert find_one.response_type == "WidgetDto"
    assert find_one.request_body_type is None
    assert find_one.line == 5
    assert find_one.file_path == "svc-a/src/controllers/widgets.controller.ts"
    assert create.handler_name == "create"
    assert create.request_body_type == "CreateWidgetDto"
    assert create.response_type == "WidgetDto[]"
    assert remove.handler_name == "removeMany"


def test_nest_ignores_non_controller_files(workspace_builder) -> None:
    repo = _nest_repo(
        workspace_builder,
        {
            "src/controllers/widgets.controller.ts": _CONTROLLER,
            "src/controllers/widgets.service.ts": "@Get('/not-a-route')\nhelper() {}\n",
        },
    )

    routes = NestRouteExtractor().extract(repo, workspace_builder.path())

    assert all(route.file_path.endswith(".controller.ts") for route in routes)
    assert ("GET", "/not-a-route") not in [route.key for route in routes]


def test_nest_falls_back_to_src_when_controllers_dir_missing(workspace_builder) -> None:
    repo = _nest_repo(
        workspace_builder,
        {
            "src/modules/health.controller.ts": """
            @Controller()
            export class HealthController {
              @Get('health')
              check() {
                return { ok: true };
              }
            }
            """,
        },
    )

    routes = NestRouteExtractor().extract(repo, workspace_builder.path())

    assert [(route.key, route.handler_name) for route in routes] == [(("GET", "/health"), "check")]


def test_nest_returns_nothing_without_sources(workspace_builder) -> None:
    repo = _nest_repo(workspace_builder, {"package.json": "{}"})

    assert NestRouteExtractor().extract(repo, workspace_builder.path()) == []
