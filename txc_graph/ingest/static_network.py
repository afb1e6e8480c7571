"""
Static Network Extraction

Maps one nested input record per entity into one flat document:
stops, lines, stop areas and administrative areas. No cross-entity knowledge;
references are copied verbatim and resolved by later stages.
"""

import logging
from typing import Any, Dict, List, Optional

from tqdm import tqdm

from txc_graph.data.document_store import DocumentStore
from .records import as_list, collection, dig, parse_bool, parse_float, text_of

logger = logging.getLogger(__name__)


def _point(longitude, latitude) -> Dict[str, Any]:
    return {
        "type": "Point",
        "coordinates": [parse_float(longitude), parse_float(latitude)],
    }


# ============================================================================
# STOPS
# ============================================================================

def extract_stop(record: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Flatten a StopPoint record. Returns None when it carries no identifier."""
    stop_id = text_of(record.get("id")) or text_of(record.get("AtcoCode"))
    if not stop_id:
        return None

    stop_areas = as_list(dig(record, "StopAreas", "StopAreaRef"))

    return {
        "id": stop_id,
        "name": text_of(dig(record, "Descriptor", "CommonName")),
        "publicCode": text_of(dig(record, "Extensions", "PublicCode")),
        "street": text_of(dig(record, "Descriptor", "Street")),
        "indicator": text_of(dig(record, "Descriptor", "Indicator")),
        "localityRef": text_of(dig(record, "Place", "NptgLocalityRef")),
        "location": _point(
            dig(record, "Place", "Location", "Longitude"),
            dig(record, "Place", "Location", "Latitude"),
        ),
        "bearing": text_of(dig(record, "StopClassification", "OnStreet", "Bus", "MarkedPoint", "Bearing", "CompassPoint")),
        "controlStop": parse_bool(dig(record, "Extensions", "ControlStop")),
        "principalStop": parse_bool(dig(record, "Extensions", "PrincipalStop")),
        "stopAreaRef": text_of(stop_areas[0]) if stop_areas else None,
        "administrativeAreaRef": text_of(record.get("AdministrativeAreaRef")),
        "lines": [],
        "directions": [],
    }


def extract_stops(document: Dict[str, Any]) -> List[Dict[str, Any]]:
    stops = []
    seen = set()
    skipped = 0

    for record in tqdm(collection(document, "StopPoints", "StopPoint"), desc="Extracting stops", unit="stop", leave=False):
        stop = extract_stop(record)
        if stop is None:
            skipped += 1
            continue
        if stop["id"] in seen:
            logger.warning(f"Duplicate stop {stop['id']}, keeping first occurrence")
            continue
        seen.add(stop["id"])
        stops.append(stop)

    if skipped:
        logger.warning(f"Skipped {skipped} stop records without an identifier")
    return stops


# ============================================================================
# LINES
# ============================================================================

def extract_line(record: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    line_id = text_of(record.get("id"))
    if not line_id:
        return None

    return {
        "id": line_id,
        "number": text_of(record.get("LineName")),
        "name": text_of(dig(record, "Extensions", "MarketingName")) or text_of(record.get("Description")),
        "category": {
            "type": text_of(dig(record, "Extensions", "LineType")),
            "mode": text_of(dig(record, "Extensions", "Mode")),
        },
        "color": text_of(dig(record, "Extensions", "LineColour")),
    }


def extract_lines(document: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Lines from the top-level collection and from each service's line list; first occurrence wins."""
    records = collection(document, "Lines", "Line")
    for service in collection(document, "Services", "Service"):
        records.extend(as_list(dig(service, "Lines", "Line")))

    lines = {}
    for record in records:
        line = extract_line(record)
        if line is None:
            logger.warning("Skipped line record without an identifier")
            continue
        lines.setdefault(line["id"], line)
    return list(lines.values())


# ============================================================================
# STOP AREAS / ADMINISTRATIVE AREAS
# ============================================================================

def extract_stop_area(record: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    area_id = text_of(record.get("id")) or text_of(record.get("StopAreaCode"))
    if not area_id:
        return None

    location = dig(record, "Location")
    return {
        "id": area_id,
        "name": text_of(record.get("Name")),
        "type": text_of(record.get("StopAreaType")),
        "administrativeAreaRef": text_of(record.get("AdministrativeAreaRef")),
        "location": _point(dig(location, "Longitude"), dig(location, "Latitude")) if location else None,
    }


def extract_administrative_area(record: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    area_id = text_of(record.get("id")) or text_of(record.get("AdministrativeAreaCode"))
    if not area_id:
        return None

    return {
        "id": area_id,
        "name": text_of(record.get("Name")),
        "shortName": text_of(record.get("ShortName")),
        "atcoAreaCode": text_of(record.get("AtcoAreaCode")),
    }


def _extract_all(records, extractor, label: str) -> List[Dict[str, Any]]:
    documents = {}
    for record in records:
        doc = extractor(record)
        if doc is None:
            logger.warning(f"Skipped {label} record without an identifier")
            continue
        documents.setdefault(doc["id"], doc)
    return list(documents.values())


def extract_stop_areas(document: Dict[str, Any]) -> List[Dict[str, Any]]:
    return _extract_all(collection(document, "StopAreas", "StopArea"), extract_stop_area, "stop area")


def extract_administrative_areas(document: Dict[str, Any]) -> List[Dict[str, Any]]:
    return _extract_all(
        collection(document, "AdministrativeAreas", "AdministrativeArea"),
        extract_administrative_area,
        "administrative area",
    )


# ============================================================================
# INGESTION
# ============================================================================

def ingest_static_network(store: DocumentStore, document: Dict[str, Any], batch_size: int) -> Dict[str, List[Dict[str, Any]]]:
    """
    Extract and insert stops, lines, stop areas and administrative areas.

    Returns:
        Extracted documents keyed by collection name
    """
    extracted = {
        "stops": extract_stops(document),
        "lines": extract_lines(document),
        "stop_areas": extract_stop_areas(document),
        "administrative_areas": extract_administrative_areas(document),
    }

    for name, documents in extracted.items():
        inserted = store.insert_batch(name, documents, batch_size)
        logger.info(f"Inserted {inserted} documents into '{name}'")

    return extracted
