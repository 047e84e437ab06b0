"""Tests for RestTemplate / WebClient outbound call scanning."""

from __future__ import annotations

import pytest

from servicemap.models import DiscoveredRepo, RepoVariant
from servicemap.outbound import SpringClientScanner
from servicemap.outbound.spring import extract_calls, path_from_expression

_BILLING_CLIENT = """
@Component
class BillingClient(
    private val restTemplate: RestTemplate,
    @Value("\\${clients.billing.base-url}") private val baseUrl: String,
) {
    fun invoice(id: String): Invoice? =
        restTemplate.getForObject("$baseUrl/invoices/$id", Invoice::class.java)

    fun create(request: InvoiceRequest): Invoice? =
        restTemplate.postForObject(baseUrl + "/invoices", request, Invoice::class.java)

    fun cancel(id: String) {
        restTemplate.exchange("$baseUrl/invoices/$id/cancel?force=true", HttpMethod.POST, null, Void::class.java)
    }
}
"""

_INVENTORY_GATEWAY = """
@Service
public class InventoryGateway {
    private final WebClient webClient;

    @Value("${inventory.service.url}")
    private String inventoryUrl;

    public Mono<Stock> stock(String sku) {
        return webClient.get().uri(inventoryUrl + "/stock/" + sku).retrieve().bodyToMono(Stock.class);
    }

    public Mono<Void> reserve(Reservation reservation) {
        return webClient.post().uri("/reservations").bodyValue(reservation).retrieve().bodyToMono(Void.class);
    }
}
"""


@pytest.mark.parametrize(
    ("expression", "expected"),
    [
        ('"http://billing:8080/api/v1/items?x=1"', "/api/v1/items"),
        ('"${props.baseUrl}/orders/${order.id}"', "/orders/{id}"),
        ('baseUrl + "/users/" + user.id', "/users/{id}"),
        ("someVariable", None),
        ('"relative/path"', None),
    ],
)
def test_path_from_expression(expression: str, expected: str | None) -> None:
    assert path_from_expression(expression) == expected


def test_extract_calls_reads_rest_template_methods() -> None:
    calls = extract_calls(_BILLING_CLIENT)

    assert [call.display for call in calls] == [
        "GET /invoices/{id}",
        "POST /invoices",
        "POST /invoices/{id}/cancel",
    ]


def test_extract_calls_skips_exchange_without_method() -> None:
    text = 'restTemplate.exchange("/things", method, null, Thing::class.java)\n'

    assert extract_calls(text) == []


def test_scanner_resolves_value_keys_to_services(workspace_builder) -> None:
    path = workspace_builder.repo(
        "svc-c",
        {
            "src/main/kotlin/com/example/BillingClient.kt": _BILLING_CLIENT,
            "src/main/java/com/example/InventoryGateway.java": _INVENTORY_GATEWAY,
            "src/main/java/com/example/Plain.java": 'class Plain { String url = "/nothing"; }\n',
        },
    )
    repo = DiscoveredRepo(id="svc-c", name="Svc C", variant=RepoVariant.SPRING, path=path)

    mappings = SpringClientScanner().scan(repo, workspace_builder.path(), ["billing", "inventory", "svc-c"])

    assert [(mapping.to_service, mapping.env_var, mapping.file_path) for mapping in mappings] == [
        ("billing", "clients.billing.base-url", "svc-c/src/main/kotlin/com/example/BillingClient.kt"),
        ("inventory", "inventory.service.url", "svc-c/src/main/java/com/example/InventoryGateway.java"),
    ]
    assert [call.display for call in mappings[1].calls] == ["GET /stock/{sku}", "POST /reservations"]
