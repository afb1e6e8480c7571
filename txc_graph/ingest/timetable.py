"""
Timetable Extraction

Vehicle journeys (scheduled trips expanded to their ordered stop visits) and
service calendars (operating periods keyed by their date range).
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from tqdm import tqdm

from txc_graph.data.document_store import DocumentStore, DuplicateDocumentError, UpdateOperation
from .records import as_list, collection, dig, parse_duration, ref_list, text_of

logger = logging.getLogger(__name__)


# ============================================================================
# VEHICLE JOURNEYS
# ============================================================================

def stop_visit(side: Optional[Dict[str, Any]], sequence: int) -> Dict[str, Any]:
    return {
        "sequence": sequence,
        "stopRef": text_of(dig(side, "StopPointRef")),
        "timingStatus": text_of(dig(side, "TimingStatus")),
        "activity": text_of(dig(side, "Activity")),
        "dynamicDisplay": text_of(dig(side, "DynamicDestinationDisplay")),
    }


def expand_stop_visits(links: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Ordered stop visits of a trip.

    N timing links describe N + 1 stops: every link contributes its From side,
    and the final link's To side closes the trip.
    """
    visits = [stop_visit(link.get("From"), index + 1) for index, link in enumerate(links)]

    if links:
        last_to = links[-1].get("To")
        if text_of(dig(last_to, "StopPointRef")):
            visits.append(stop_visit(last_to, len(links) + 1))

    return [visit for visit in visits if visit["stopRef"]]


def extract_frequency(record: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    frequency = record.get("Frequency")
    if not isinstance(frequency, dict):
        return None

    interval = frequency.get("Interval")
    if isinstance(interval, dict):
        interval = interval.get("ScheduledFrequency")

    return {
        "endTime": text_of(frequency.get("EndTime")),
        "interval": parse_duration(interval),
    }


def extract_vehicle_journey(record: Dict[str, Any]) -> Dict[str, Any]:
    journey_id = text_of(record.get("VehicleJourneyCode")) or text_of(record.get("id"))
    if not journey_id:
        journey_id = f"generated-{uuid.uuid4().hex}"
        logger.warning(f"Vehicle journey without an identifier, generated {journey_id}")

    links = as_list(record.get("VehicleJourneyTimingLink"))
    stops = expand_stop_visits(links)
    if not stops:
        logger.warning(f"Vehicle journey {journey_id} has no stop visits")

    frequency = extract_frequency(record)
    journey_kind = text_of(dig(record, "Extensions", "JourneyKind"))
    if not journey_kind:
        journey_kind = "frequency" if frequency else "scheduled"

    direction_name = text_of(dig(links[-1], "To", "DynamicDestinationDisplay")) if links else None

    return {
        "id": journey_id,
        "lineRef": text_of(record.get("LineRef")),
        "serviceRef": text_of(record.get("ServiceRef")),
        "journeyPatternRef": text_of(record.get("JourneyPatternRef")),
        "departureTime": text_of(record.get("DepartureTime")),
        "stops": stops,
        "journeyKind": journey_kind,
        "frequency": frequency,
        "directionName": direction_name or "",
    }


def extract_vehicle_journeys(document: Dict[str, Any]) -> List[Dict[str, Any]]:
    journeys = {}
    records = collection(document, "VehicleJourneys", "VehicleJourney")
    for record in tqdm(records, desc="Expanding vehicle journeys", unit="journey", leave=False):
        journey = extract_vehicle_journey(record)
        if journey["id"] in journeys:
            logger.warning(f"Duplicate vehicle journey {journey['id']}, keeping first occurrence")
            continue
        journeys[journey["id"]] = journey
    return list(journeys.values())


# ============================================================================
# SERVICE CALENDARS
# ============================================================================

def calendar_id(start_date: str, end_date: str) -> str:
    """Calendar identifier derived from its operating period."""
    return f"calendar_{start_date}_{end_date}"


def extract_service_calendar(record: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    start_date = text_of(dig(record, "OperatingPeriod", "StartDate")) or text_of(record.get("StartDate"))
    end_date = text_of(dig(record, "OperatingPeriod", "EndDate")) or text_of(record.get("EndDate"))
    if not start_date or not end_date:
        return None

    return {
        "id": calendar_id(start_date, end_date),
        "startDate": start_date,
        "endDate": end_date,
        "operatingDays": ref_list(record, "OperatingDays", "Day"),
        "dayTypes": ref_list(record, "DayTypes", "DayType"),
    }


def extract_service_calendars(document: Dict[str, Any]) -> List[Dict[str, Any]]:
    calendars = []
    for record in collection(document, "ServiceCalendars", "ServiceCalendar"):
        calendar = extract_service_calendar(record)
        if calendar is None:
            logger.warning("Skipped service calendar without a complete operating period")
            continue
        calendars.append(calendar)
    return calendars


def upsert_service_calendars(store: DocumentStore, calendars: List[Dict[str, Any]]) -> Dict[str, int]:
    """
    Insert each calendar, turning an insert that collides with an existing
    period into an update of the stored document.
    """
    stats = {"inserted": 0, "updated": 0}

    for calendar in calendars:
        try:
            store.insert_batch("service_calendars", [calendar], 1)
            stats["inserted"] += 1
        except DuplicateDocumentError:
            fields = {key: value for key, value in calendar.items() if key != "id"}
            store.bulk_update(
                "service_calendars",
                [UpdateOperation(filter={"id": calendar["id"]}, set_fields=fields)],
            )
            stats["updated"] += 1
            logger.info(f"Calendar {calendar['id']} already stored, updated in place")

    return stats
