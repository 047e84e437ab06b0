"""Route extractor implementations and discovery utilities."""

from __future__ import annotations

from importlib import metadata
from typing import Callable, Dict, Iterable, Optional, Sequence

from ..models import RepoVariant
from .base import RouteExtractor
from .express import ExpressRouteExtractor
from .front import FrontRouteExtractor
from .go import GoRouteExtractor
from .nest import NestRouteExtractor
from .spring import SpringRouteExtractor

_ENTRY_POINT_GROUP = "servicemap.extractors"

_BUILTIN_FACTORIES: dict[str, Callable[[], RouteExtractor]] = {
    "nest": NestRouteExtractor,
    "express": ExpressRouteExtractor,
    "spring": SpringRouteExtractor,
    "go": GoRouteExtractor,
    "front": FrontRouteExtractor,
}
_ROUTE_VARIANTS = frozenset(
    {RepoVariant.NEST, RepoVariant.EXPRESS, RepoVariant.SPRING, RepoVariant.GO, RepoVariant.FRONT}
)


def discover_extractors(enabled: Sequence[str] | None = None) -> Dict[RepoVariant, RouteExtractor]:
    """Return one extractor per variant, honoring optional enabled names.

    Built-ins register first. An entry point registered under a built-in's
    name is ignored, while a new name claiming a taken variant replaces it.
    """
    wanted = {name.lower() for name in enabled} if enabled is not None else None
    factories: Dict[str, Callable[[], RouteExtractor]] = dict(_BUILTIN_FACTORIES)
    for entry in _iter_entry_points():
        if entry.name.lower() in factories:
            continue
        try:
            loaded = entry.load()
        except Exception as exc:  # pragma: no cover - plugin import failure
            raise RuntimeError(f"Failed to load extractor entry point '{entry.name}': {exc}") from exc
        factories[entry.name.lower()] = lambda obj=loaded: _coerce_extractor(obj)

    if wanted is not None:
        missing = wanted - set(factories)
        if missing:
            raise ValueError(f"Unknown extractors requested: {', '.join(sorted(missing))}")

    extractors: Dict[RepoVariant, RouteExtractor] = {}
    for name, factory in factories.items():
        if wanted is not None and name not in wanted:
            continue
        instance = factory()
        if not isinstance(instance, RouteExtractor):
            raise TypeError(f"Extractor factory for '{name}' did not return a RouteExtractor instance")
        extractors[_route_variant(name, instance)] = instance
    return extractors


def _route_variant(name: str, extractor: RouteExtractor) -> RepoVariant:
    """Validate the variant an extractor claims; only route-bearing variants qualify."""
    variant = getattr(extractor, "variant", None)
    if not isinstance(variant, RepoVariant):
        raise TypeError(f"Extractor '{name}' must declare a RepoVariant, got {variant!r}")
    if variant not in _ROUTE_VARIANTS:
        raise ValueError(f"Extractor '{name}' claims variant '{variant.value}', which exposes no routes")
    return variant


def extractor_for(
    variant: RepoVariant,
    extractors: Optional[Dict[RepoVariant, RouteExtractor]] = None,
) -> Optional[RouteExtractor]:
    """Return the extractor registered for ``variant`` (None for sql/other)."""
    registry = extractors if extractors is not None else discover_extractors()
    return registry.get(variant)


def _coerce_extractor(obj: object) -> RouteExtractor:
    if isinstance(obj, RouteExtractor):
        return obj
    if isinstance(obj, type) and issubclass(obj, RouteExtractor):
        return obj()
    if callable(obj):
        instance = obj()
        if isinstance(instance, RouteExtractor):
            return instance
    raise TypeError("Extractor entry point must be a RouteExtractor subclass or factory")


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    try:
        entry_points = metadata.entry_points()
    except Exception:  # pragma: no cover - broken distribution metadata
        return []

    if hasattr(entry_points, "select"):
        return entry_points.select(group=_ENTRY_POINT_GROUP)  # type: ignore[return-value]

    return entry_points.get(_ENTRY_POINT_GROUP, [])  # type: ignore[return-value]


__all__ = [
    "ExpressRouteExtractor",
    "FrontRouteExtractor",
    "GoRouteExtractor",
    "NestRouteExtractor",
    "RouteExtractor",
    "SpringRouteExtractor",
    "discover_extractors",
    "extractor_for",
]
