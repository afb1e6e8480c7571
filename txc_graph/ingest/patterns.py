"""
Journey Patterns and Routes

Builds one journey pattern per JourneyPatternSection (ordered, deduplicated
stop sequence plus directed timing edges) and expands every route into the
first-seen union of the stop sequences of the sections it is composed from.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from txc_graph.config.config_main import import_config
from .records import as_list, collection, dig, parse_bool, parse_duration, ref_list, text_of

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimingEdge:
    """Directed segment between two stops of a journey pattern."""

    link_id: Optional[str]
    from_stop: Optional[str]
    to_stop: Optional[str]
    direction: str
    run_time: int  # seconds
    route_link_ref: Optional[str] = None

    @property
    def complete(self) -> bool:
        return bool(self.from_stop) and bool(self.to_stop)

    def to_document(self) -> Dict[str, Any]:
        return {
            "linkId": self.link_id,
            "fromStop": self.from_stop,
            "toStop": self.to_stop,
            "direction": self.direction,
            "runTime": self.run_time,
            "routeLinkRef": self.route_link_ref,
        }


@dataclass
class JourneyPattern:
    pattern_id: str
    stop_sequence: List[str] = field(default_factory=list)
    timing_edges: List[TimingEdge] = field(default_factory=list)

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.pattern_id,
            "stopSequence": list(self.stop_sequence),
            "timingLinks": [edge.to_document() for edge in self.timing_edges],
        }


class OrderedStopSet:
    """Insertion-ordered set of stop identifiers."""

    def __init__(self, stops: Iterable[str] = ()):
        self._stops: Dict[str, None] = {}
        self.update(stops)

    def add(self, stop: Optional[str]):
        if stop and stop not in self._stops:
            self._stops[stop] = None

    def update(self, stops: Iterable[str]):
        for stop in stops:
            self.add(stop)

    def __contains__(self, stop) -> bool:
        return stop in self._stops

    def __len__(self) -> int:
        return len(self._stops)

    def to_list(self) -> List[str]:
        return list(self._stops)


# ============================================================================
# JOURNEY PATTERN BUILDER
# ============================================================================

def build_timing_edge(link: Dict[str, Any]) -> TimingEdge:
    return TimingEdge(
        link_id=text_of(link.get("id")),
        from_stop=text_of(dig(link, "From", "StopPointRef")),
        to_stop=text_of(dig(link, "To", "StopPointRef")),
        direction=text_of(link.get("Direction")) or import_config.default_direction,
        run_time=parse_duration(link.get("RunTime")),
        route_link_ref=text_of(link.get("RouteLinkRef")),
    )


def build_journey_pattern(section: Dict[str, Any]) -> Optional[JourneyPattern]:
    """
    Build a journey pattern from one JourneyPatternSection record.

    The stop sequence lists every from/to reference in order of first
    appearance. Edges missing either endpoint are dropped once all links
    have been read.
    """
    pattern_id = text_of(section.get("id"))
    if not pattern_id:
        return None

    stops = OrderedStopSet()
    edges = []
    for link in as_list(section.get("JourneyPatternTimingLink")):
        edge = build_timing_edge(link)
        stops.add(edge.from_stop)
        stops.add(edge.to_stop)
        edges.append(edge)

    return JourneyPattern(
        pattern_id=pattern_id,
        stop_sequence=stops.to_list(),
        timing_edges=[edge for edge in edges if edge.complete],
    )


def build_journey_patterns(document: Dict[str, Any]) -> Dict[str, JourneyPattern]:
    """All journey patterns of the document keyed by section id, in source order."""
    patterns: Dict[str, JourneyPattern] = {}
    for section in collection(document, "JourneyPatternSections", "JourneyPatternSection"):
        pattern = build_journey_pattern(section)
        if pattern is None:
            logger.warning("Skipped journey pattern section without an identifier")
            continue
        if pattern.pattern_id in patterns:
            logger.warning(f"Duplicate journey pattern section {pattern.pattern_id}, keeping first occurrence")
            continue
        patterns[pattern.pattern_id] = pattern
    return patterns


# ============================================================================
# ROUTE EXPANDER
# ============================================================================

def route_pattern_refs(record: Dict[str, Any]) -> List[str]:
    refs = ref_list(dig(record, "Extensions"), "JourneyPatternSectionRefs", "JourneyPatternSectionRef")
    if not refs:
        refs = ref_list(record, "JourneyPatternSectionRefs", "JourneyPatternSectionRef")
    return refs


def expand_stop_sequence(pattern_refs: List[str], patterns: Dict[str, JourneyPattern]) -> List[str]:
    """First-seen union of the referenced patterns' stop sequences. Unknown references are skipped."""
    stops = OrderedStopSet()
    for ref in pattern_refs:
        pattern = patterns.get(ref)
        if pattern is None:
            logger.warning(f"Route references unknown journey pattern section {ref}")
            continue
        stops.update(pattern.stop_sequence)
    return stops.to_list()


def extract_route(record: Dict[str, Any], patterns: Dict[str, JourneyPattern]) -> Optional[Dict[str, Any]]:
    route_id = text_of(record.get("id"))
    if not route_id:
        return None

    extensions = dig(record, "Extensions", default={})
    pattern_refs = route_pattern_refs(record)

    return {
        "id": route_id,
        "description": text_of(record.get("Description")),
        "lineRef": text_of(dig(extensions, "LineRef")),
        "direction": text_of(dig(extensions, "Direction")) or text_of(record.get("Direction")),
        "patternSectionRefs": pattern_refs,
        "stopsSequence": expand_stop_sequence(pattern_refs, patterns),
        "technical": parse_bool(dig(extensions, "Technical")),
        "passengerVisible": parse_bool(dig(extensions, "PassengerVisible"), default=True),
    }


def extract_routes(document: Dict[str, Any], patterns: Dict[str, JourneyPattern]) -> List[Dict[str, Any]]:
    routes = {}
    for record in collection(document, "Routes", "Route"):
        route = extract_route(record, patterns)
        if route is None:
            logger.warning("Skipped route record without an identifier")
            continue
        routes.setdefault(route["id"], route)
    return list(routes.values())
