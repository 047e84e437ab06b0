"""Domain glossary terms derived from route paths and DTO names."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Set

from ..models import RouteInfo


@dataclass(frozen=True)
class GlossaryTerm:
    term: str
    source: str
    source_path: str
    kind: str
    line: Optional[int] = None


def path_terms(full_path: str) -> List[str]:
    """Return normalized and singular terms for each meaningful path segment."""
    terms: List[str] = []
    for segment in full_path.split("/"):
        if not segment or segment.isdigit() or segment.startswith((":", "{")):
            continue
        normalized = segment.replace("-", " ").replace("_", " ")
        singular = (segment[:-1] if segment.endswith("s") else segment).replace("-", " ").replace("_", " ")
        for term in (normalized, singular):
            if len(term) > 2 and term not in terms:
                terms.append(term)
    return terms


def glossary_from_routes(repo_id: str, routes: Iterable[RouteInfo]) -> List[GlossaryTerm]:
    """Collect route and DTO terms for one repo, each term at most once."""
    terms: List[GlossaryTerm] = []
    seen: Set[str] = set()

    def _add(term: str, kind: str, route: RouteInfo) -> None:
        if term in seen:
            return
        seen.add(term)
        terms.append(GlossaryTerm(term=term, source=repo_id, source_path=route.file_path, kind=kind, line=route.line))

    for route in routes:
        for term in path_terms(route.full_path):
            _add(term, "route", route)
        for type_name in (route.request_body_type, route.response_type):
            if type_name and len(type_name) > 2:
                _add(type_name, "dto", route)
    return terms


__all__ = ["GlossaryTerm", "glossary_from_routes", "path_terms"]
