"""Tests for service-id resolution helpers."""

from __future__ import annotations

import pytest

from servicemap.outbound import (
    MatchPolicy,
    config_key_to_env_hint,
    default_scanners,
    env_to_service_id,
    resolve_config_key,
)
from servicemap.outbound.core import MAX_CALL_PATH_LENGTH, is_valid_call_path

_REPO_IDS = ["ms-user-service", "order-api", "billing"]


@pytest.mark.parametrize(
    ("key", "expected"),
    [
        ("USER_SERVICE_URL", "ms-user-service"),
        ("ORDER_SERVICE_HOST", None),
        ("ORDER_API_HOST", "order-api"),
        ("billing_url", "billing"),
        ("BILLING_HOST", "billing"),
        ("PAYMENTS_URL", None),
        ("DATABASE_NAME", None),
        ("X_URL", None),
    ],
)
def test_env_to_service_id(key: str, expected: str | None) -> None:
    assert env_to_service_id(key, _REPO_IDS) == expected


def test_env_to_service_id_policies_break_ties_differently() -> None:
    repo_ids = ["user-service-legacy", "user-service"]

    assert env_to_service_id("USER_SERVICE_URL", repo_ids) == "user-service-legacy"
    assert env_to_service_id("USER_SERVICE_URL", repo_ids, MatchPolicy.PREFER_EXACT) == "user-service"


def test_service_host_suffix_keeps_service_in_hint() -> None:
    repo_ids = ["user-admin", "user-service"]

    assert env_to_service_id("USER_SERVICE_HOST", repo_ids) == "user-service"
    assert env_to_service_id("USER_HOST", repo_ids) == "user-admin"


def test_prefer_exact_falls_back_to_first_candidate() -> None:
    repo_ids = ["core-billing", "billing-worker"]

    assert env_to_service_id("BILLING_URL", repo_ids, MatchPolicy.PREFER_EXACT) == "core-billing"


def test_config_key_to_env_hint() -> None:
    assert config_key_to_env_hint("app.user-service.url") == "APP_USER_SERVICE_URL"
    assert config_key_to_env_hint("inventory.host") == "INVENTORY_HOST"
    assert config_key_to_env_hint("billing.endpoint") == "BILLING_ENDPOINT_URL"


def test_resolve_config_key_uses_last_segment_as_fallback() -> None:
    assert resolve_config_key("clients.billing.base-url", ["billing"]) == "billing"
    assert resolve_config_key("services.inventory", ["inventory-api"]) == "inventory-api"
    assert resolve_config_key("services.unknown", ["inventory-api"]) is None


def test_is_valid_call_path_bounds_length() -> None:
    assert is_valid_call_path("/users")
    assert not is_valid_call_path("")
    assert not is_valid_call_path("/" + "a" * MAX_CALL_PATH_LENGTH)


def test_default_scanners_share_policy() -> None:
    scanners = default_scanners(MatchPolicy.PREFER_EXACT)

    assert len(scanners) == 2
    assert all(scanner.policy is MatchPolicy.PREFER_EXACT for scanner in scanners)
