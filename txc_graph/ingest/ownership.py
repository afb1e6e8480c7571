"""
Pattern Ownership Resolution

Journey patterns carry no direct line reference. Their line is reached
through two hops:

    journey pattern --(route listing | service declaration)--> route --(lineRef)--> line

Pattern -> route claims come from two sources merged in a fixed precedence
order; a later source overrides an earlier one for the same pattern.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from .records import as_list, collection, dig, ref_list, text_of

logger = logging.getLogger(__name__)

Claim = Tuple[str, str]  # (pattern id, route id)


def route_listing_claims(routes: Iterable[Dict[str, Any]]) -> Iterator[Claim]:
    """Pattern -> route claims from each route's list of pattern sections."""
    for route in routes:
        for pattern_id in route.get("patternSectionRefs") or []:
            yield pattern_id, route["id"]


def service_declaration_claims(services: Iterable[Dict[str, Any]]) -> Iterator[Claim]:
    """
    Pattern -> route claims from the journey patterns each service declares
    with an explicit RouteRef. A declared journey pattern claims each section
    it references, or its own id when it references none.
    """
    for service in services:
        for journey_pattern in as_list(dig(service, "StandardService", "JourneyPattern")):
            route_id = text_of(journey_pattern.get("RouteRef"))
            if not route_id:
                continue
            section_ids = ref_list(journey_pattern, "JourneyPatternSectionRefs", "JourneyPatternSectionRef")
            if not section_ids:
                own_id = text_of(journey_pattern.get("id"))
                section_ids = [own_id] if own_id else []
            for pattern_id in section_ids:
                yield pattern_id, route_id


# Lowest precedence first
OWNERSHIP_SOURCES: Tuple[Tuple[str, Callable[..., Iterator[Claim]]], ...] = (
    ("route_listing", route_listing_claims),
    ("service_declaration", service_declaration_claims),
)


def merge_claims(sources: Iterable[Tuple[str, Iterable[Claim]]]) -> Dict[str, str]:
    """
    Merge pattern -> route claims source by source. Within and across
    sources the last claim for a pattern wins.
    """
    ownership: Dict[str, str] = {}
    for source_name, claims in sources:
        overridden = 0
        for pattern_id, route_id in claims:
            previous = ownership.get(pattern_id)
            if previous is not None and previous != route_id:
                overridden += 1
            ownership[pattern_id] = route_id
        if overridden:
            logger.info(f"{source_name}: {overridden} pattern ownership claims overridden")
    return ownership


def build_pattern_ownership(routes: List[Dict[str, Any]], services: List[Dict[str, Any]]) -> Dict[str, str]:
    inputs = {"route_listing": routes, "service_declaration": services}
    return merge_claims((name, claims(inputs[name])) for name, claims in OWNERSHIP_SOURCES)


def build_line_ownership(routes: Iterable[Dict[str, Any]]) -> Dict[str, str]:
    return {route["id"]: route["lineRef"] for route in routes if route.get("lineRef")}


@dataclass
class OwnershipReport:
    resolved: int = 0
    unknown_route: int = 0
    route_without_line: int = 0
    unknown_line: int = 0
    unknown_lines: Set[str] = field(default_factory=set)


def resolve_pattern_lines(
    pattern_ids: Iterable[str],
    pattern_ownership: Dict[str, str],
    line_ownership: Dict[str, str],
    known_lines: Set[str],
    report: Optional[OwnershipReport] = None,
) -> Dict[str, str]:
    """
    Compose pattern -> route -> line for each pattern, skipping patterns whose
    route is unknown, whose route has no line, or whose line is not a known line.
    """
    report = report if report is not None else OwnershipReport()
    pattern_lines: Dict[str, str] = {}

    for pattern_id in pattern_ids:
        route_id = pattern_ownership.get(pattern_id)
        if route_id is None:
            report.unknown_route += 1
            continue
        line_id = line_ownership.get(route_id)
        if line_id is None:
            report.route_without_line += 1
            continue
        if line_id not in known_lines:
            report.unknown_line += 1
            report.unknown_lines.add(line_id)
            continue
        pattern_lines[pattern_id] = line_id
        report.resolved += 1

    if report.unknown_lines:
        logger.warning(f"Routes reference unknown lines: {', '.join(sorted(report.unknown_lines))}")
    return pattern_lines


def resolve_document_ownership(
    document: Dict[str, Any],
    routes: List[Dict[str, Any]],
    pattern_ids: Iterable[str],
    known_lines: Set[str],
) -> Tuple[Dict[str, str], OwnershipReport]:
    """Pattern -> line mapping for a parsed document, given its persisted routes."""
    services = collection(document, "Services", "Service")
    report = OwnershipReport()
    pattern_lines = resolve_pattern_lines(
        pattern_ids,
        build_pattern_ownership(routes, services),
        build_line_ownership(routes),
        known_lines,
        report,
    )
    logger.info(
        f"Resolved lines for {report.resolved} patterns "
        f"(unknown route: {report.unknown_route}, route without line: {report.route_without_line}, "
        f"unknown line: {report.unknown_line})"
    )
    return pattern_lines, report
