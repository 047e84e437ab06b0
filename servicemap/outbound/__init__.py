"""Outbound call scanners and service-id resolution."""

from __future__ import annotations

from .axios import AxiosCallScanner
from .core import (
    MatchPolicy,
    OutboundScanner,
    config_key_to_env_hint,
    env_to_service_id,
    resolve_config_key,
)
from .references import ServiceReference, ServiceReferenceScanner
from .spring import SpringClientScanner


def default_scanners(policy: MatchPolicy = MatchPolicy.FIRST_MATCH) -> list[OutboundScanner]:
    """Return the built-in outbound scanners sharing one match policy."""
    return [AxiosCallScanner(policy), SpringClientScanner(policy)]


__all__ = [
    "AxiosCallScanner",
    "MatchPolicy",
    "OutboundScanner",
    "ServiceReference",
    "ServiceReferenceScanner",
    "SpringClientScanner",
    "config_key_to_env_hint",
    "default_scanners",
    "env_to_service_id",
    "resolve_config_key",
]
