"""Tests for Spring controller route extraction."""

from __future__ import annotations

from servicemap.extractors import SpringRouteExtractor
from servicemap.models import DiscoveredRepo, RepoVariant

_KOTLIN_CONTROLLER = """
package com.example.orders

@RestController
@RequestMapping("/api/v1/orders")
class OrderController(private val service: OrderService) {

    @GetMapping("/{id}")
    fun getOrder(@PathVariable id: String): ResponseEntity<OrderDto> = ResponseEntity.ok(service.find(id))

    @PostMapping
    suspend fun create(@Valid @RequestBody request: CreateOrderRequest): Mono<OrderDto?> = service.create(request)

    @RequestMapping(value = ["/search"], method = [RequestMethod.POST])
    fun search(@RequestBody(required = false) query: SearchQuery?): List<OrderDto> = service.search(query)

    @GetMapping(path = [OrderPaths.EXPORT])
    fun export(): String = ""
}
"""

_JAVA_CONTROLLER = """
package com.example.users;

@RestController
@RequestMapping(path = "/api/users")
public class UserController {

    @GetMapping
    public List<UserDto> list() {
        return service.list();
    }

    @PostMapping("/")
    public ResponseEntity<UserDto> create(@Valid @RequestBody final CreateUserRequest request) {
        return ResponseEntity.ok(service.create(request));
    }

    @DeleteMapping(value = "/{id}")
    @ResponseStatus(HttpStatus.NO_CONTENT)
    public void delete(@PathVariable Long id) {
        service.delete(id);
    }
}
"""

_FEIGN_CLIENT = """
@FeignClient(name = "billing")
interface BillingClient {
    @GetMapping("/invoices")
    fun invoices(): List<Invoice>
}
"""


def _spring_repo(workspace_builder, files) -> DiscoveredRepo:
    path = workspace_builder.repo("svc-c", files)
    return DiscoveredRepo(id="svc-c", name="Svc C", variant=RepoVariant.SPRING, path=path)


def test_spring_extracts_kotlin_controller(workspace_builder) -> None:
    repo = _spring_repo(
        workspace_builder,
        {"src/main/kotlin/com/example/orders/OrderController.kt": _KOTLIN_CONTROLLER},
    )

    routes = SpringRouteExtractor().extract(repo, workspace_builder.path())

    assert [route.key for route in routes] == [
        ("GET", "/api/v1/orders/{id}"),
        ("POST", "/api/v1/orders"),
        ("POST", "/api/v1/orders/search"),
    ]
    get_order, create, search = routes
    assert (get_order.handler_name, get_order.request_body_type, get_order.response_type) == (
        "getOrder",
        None,
        "OrderDto",
    )
    assert (create.handler_name, create.request_body_type, create.response_type) == (
        "create",
        "CreateOrderRequest",
        "OrderDto",
    )
    assert (search.request_body_type, search.response_type) == ("SearchQuery", "List<OrderDto>")
    assert get_order.file_path == "svc-c/src/main/kotlin/com/example/orders/OrderController.kt"


def test_spring_extracts_java_controller(workspace_builder) -> None:
    repo = _spring_repo(
        workspace_builder,
        {"src/main/java/com/example/users/UserController.java": _JAVA_CONTROLLER},
    )

    routes = SpringRouteExtractor().extract(repo, workspace_builder.path())

    assert [route.key for route in routes] == [
        ("GET", "/api/users"),
        ("POST", "/api/users"),
        ("DELETE", "/api/users/{id}"),
    ]
    listing, create, delete = routes
    assert (listing.handler_name, listing.response_type) == ("list", "List<UserDto>")
    assert (create.handler_name, create.request_body_type, create.response_type) == (
        "create",
        "CreateUserRequest",
        "UserDto",
    )
    assert delete.handler_name == "delete"
    assert delete.response_type is None


def test_spring_skips_files_without_controller_annotation(workspace_builder) -> None:
    repo = _spring_repo(
        workspace_builder,
        {
            "src/main/kotlin/com/example/BillingClient.kt": _FEIGN_CLIENT,
            "src/test/kotlin/com/example/OrderControllerTest.kt": _KOTLIN_CONTROLLER,
        },
    )

    assert SpringRouteExtractor().extract(repo, workspace_builder.path()) == []


def test_spring_class_prefix_stays_with_its_controller(workspace_builder) -> None:
    repo = _spring_repo(
        workspace_builder,
        {
            "src/main/kotlin/com/example/Controllers.kt": """
            @RequestMapping("/admin")
            @RestController
            class AdminController {
                @GetMapping("/stats")
                fun stats(): StatsDto = StatsDto()
            }

            @RestController
            class HealthController {
                @GetMapping("/health")
                fun health(): String = "ok"
            }
            """,
        },
    )

    routes = SpringRouteExtractor().extract(repo, workspace_builder.path())

    assert [route.key for route in routes] == [("GET", "/admin/stats"), ("GET", "/health")]
