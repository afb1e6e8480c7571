"""
Document Store Interface

Batch-write abstraction the import pipeline persists through. Every output
collection is a set of JSON-like documents keyed by their ``id`` field.

Operations:
    - clear_collection: remove every document of a collection
    - insert_batch: insert documents in bounded-size chunks
    - bulk_update: apply independent {filter, update} operations
    - find: read documents back (used by stages that depend on prior writes)
    - create_indexes: idempotent creation of the derived query indexes
"""

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional


COLLECTIONS = [
    "stops",
    "lines",
    "stop_areas",
    "administrative_areas",
    "journey_patterns",
    "routes",
    "vehicle_journeys",
    "service_calendars",
]


class DuplicateDocumentError(Exception):
    """Raised when an inserted document's id already exists in the collection."""

    def __init__(self, collection: str, document_id: str):
        super().__init__(f"Document '{document_id}' already exists in '{collection}'")
        self.collection = collection
        self.document_id = document_id


@dataclass
class UpdateOperation:
    """
    One conditional update.

    ``filter`` is a field-equality match. ``set_fields`` overwrites fields;
    ``add_to_set`` appends each value to a list field only when an equal
    value is not already present.
    """

    filter: Dict[str, Any]
    set_fields: Dict[str, Any] = field(default_factory=dict)
    add_to_set: Dict[str, List[Any]] = field(default_factory=dict)


@dataclass
class UpdateResult:
    matched: int = 0
    modified: int = 0


def matches(document: Dict[str, Any], filter: Optional[Dict[str, Any]]) -> bool:
    if not filter:
        return True
    return all(document.get(key) == value for key, value in filter.items())


def apply_update(document: Dict[str, Any], operation: UpdateOperation) -> bool:
    """
    Apply an update to a document in place.

    Returns:
        True if the document changed
    """
    changed = False

    for key, value in operation.set_fields.items():
        if document.get(key) != value:
            document[key] = copy.deepcopy(value)
            changed = True

    for key, values in operation.add_to_set.items():
        current = document.get(key)
        if not isinstance(current, list):
            current = []
            document[key] = current
        for value in values:
            if value not in current:
                current.append(copy.deepcopy(value))
                changed = True

    return changed


def chunked(items: List[Any], size: int) -> Iterator[List[Any]]:
    if size < 1:
        raise ValueError(f"Batch size must be positive, got {size}")
    for start in range(0, len(items), size):
        yield items[start:start + size]


class DocumentStore(ABC):
    """Abstract batch-write interface over the output collections."""

    @abstractmethod
    def clear_collection(self, name: str) -> int:
        """Delete every document of a collection, returning the number removed."""

    @abstractmethod
    def insert_batch(self, name: str, documents: Iterable[Dict[str, Any]], max_batch_size: int = 1000) -> int:
        """Insert documents in chunks of at most ``max_batch_size``."""

    @abstractmethod
    def bulk_update(self, name: str, operations: List[UpdateOperation], ordered: bool = False) -> UpdateResult:
        """Apply independent update operations."""

    @abstractmethod
    def find(self, name: str, filter: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Return the documents of a collection matching ``filter``."""

    @abstractmethod
    def create_indexes(self) -> List[str]:
        """Create the derived indexes if missing, returning their names."""

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
