"""
Stop Annotation

Folds the resolved pattern -> line mapping back onto the stops. For every
(stop, line) pair reachable through a journey pattern the stop gains the
line and one direction record per (direction, next stop) it departs towards.

Each stop/line pair is annotated once per run, from the first pattern (in
pattern order) in which the stop has an outgoing timing edge. Merges are additive set operations, so
applying them again is a no-op.

Known limitation: a stop only gains a line through a pattern in which it has
an outgoing timing edge. A stop that is terminal in every pattern of a line
is not annotated with that line.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Set, Tuple

from tqdm import tqdm

from txc_graph.data.document_store import DocumentStore, UpdateOperation, UpdateResult
from .patterns import JourneyPattern, TimingEdge

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DirectionRecord:
    line: str
    direction: str
    next_stop: str
    sequence: int

    def to_document(self) -> Dict[str, Any]:
        return {
            "line": self.line,
            "direction": self.direction,
            "nextStop": self.next_stop,
            "sequence": self.sequence,
        }


@dataclass(frozen=True)
class StopAnnotation:
    stop_id: str
    line: str
    directions: Tuple[DirectionRecord, ...]

    def to_update(self) -> UpdateOperation:
        return UpdateOperation(
            filter={"id": self.stop_id},
            add_to_set={
                "lines": [self.line],
                "directions": [record.to_document() for record in self.directions],
            },
        )


def departures_by_stop(edges: Iterable[TimingEdge]) -> Dict[str, Dict[str, Dict[str, None]]]:
    """from stop -> direction -> insertion-ordered set of next stops."""
    departures: Dict[str, Dict[str, Dict[str, None]]] = {}
    for edge in edges:
        if not edge.complete or not edge.direction:
            continue
        departures.setdefault(edge.from_stop, {}).setdefault(edge.direction, {})[edge.to_stop] = None
    return departures


def annotate_stops(
    patterns: Iterable[JourneyPattern],
    pattern_lines: Dict[str, str],
) -> List[StopAnnotation]:
    """Direction annotations for every (stop, line) pair, first pattern wins."""
    processed: Set[Tuple[str, str]] = set()
    annotations: List[StopAnnotation] = []

    for pattern in patterns:
        line = pattern_lines.get(pattern.pattern_id)
        if line is None:
            continue

        departures = departures_by_stop(pattern.timing_edges)

        for index, stop_id in enumerate(pattern.stop_sequence):
            key = (stop_id, line)
            if key in processed:
                continue

            records = tuple(
                DirectionRecord(line=line, direction=direction, next_stop=next_stop, sequence=index)
                for direction, next_stops in departures.get(stop_id, {}).items()
                for next_stop in next_stops
            )
            if records:
                processed.add(key)
                annotations.append(StopAnnotation(stop_id=stop_id, line=line, directions=records))

    return annotations


def merge_stop_annotations(
    store: DocumentStore,
    patterns: Dict[str, JourneyPattern],
    pattern_lines: Dict[str, str],
) -> UpdateResult:
    """Apply the annotations to the stops collection as one unordered bulk update."""
    annotations = annotate_stops(
        tqdm(patterns.values(), desc="Annotating stops", unit="pattern", leave=False),
        pattern_lines,
    )
    if not annotations:
        logger.warning("No stop annotations produced")
        return UpdateResult()

    result = store.bulk_update("stops", [annotation.to_update() for annotation in annotations], ordered=False)
    if result.matched < len(annotations):
        logger.warning(f"{len(annotations) - result.matched} annotations matched no stop")
    logger.info(f"Merged {len(annotations)} stop annotations ({result.modified} stops modified)")
    return result
