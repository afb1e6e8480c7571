import copy
import logging
from typing import Any, Dict, Iterable, List, Optional

from txc_graph.data.document_store import (
    COLLECTIONS, DocumentStore, DuplicateDocumentError, UpdateOperation, UpdateResult,
    apply_update, chunked, matches
)

logger = logging.getLogger(__name__)

INDEX_NAMES = [
    "ix_stops_location",
    "ix_stops_lines",
    "ix_routes_line_ref",
    "ix_vehicle_journeys_line_departure",
    "ix_vehicle_journeys_stops",
]


class InMemoryDocumentStore(DocumentStore):
    """Process-local store used for dry runs and tests."""

    def __init__(self):
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = {name: {} for name in COLLECTIONS}
        self.indexes: List[str] = []
        self.batches: Dict[str, List[int]] = {}
        self.closed = False

    def _collection(self, name: str) -> Dict[str, Dict[str, Any]]:
        if name not in self.collections:
            raise KeyError(f"Unknown collection: {name}")
        return self.collections[name]

    def clear_collection(self, name: str) -> int:
        collection = self._collection(name)
        removed = len(collection)
        collection.clear()
        return removed

    def insert_batch(self, name: str, documents: Iterable[Dict[str, Any]], max_batch_size: int = 1000) -> int:
        collection = self._collection(name)
        inserted = 0

        for batch in chunked(list(documents), max_batch_size):
            self.batches.setdefault(name, []).append(len(batch))
            for document in batch:
                document_id = document["id"]
                if document_id in collection:
                    raise DuplicateDocumentError(name, document_id)
                collection[document_id] = copy.deepcopy(document)
                inserted += 1

        return inserted

    def bulk_update(self, name: str, operations: List[UpdateOperation], ordered: bool = False) -> UpdateResult:
        collection = self._collection(name)
        result = UpdateResult()

        for operation in operations:
            targets = [doc for doc in collection.values() if matches(doc, operation.filter)]
            if not targets:
                logger.debug(f"No {name} document matched {operation.filter}")
            for document in targets:
                result.matched += 1
                if apply_update(document, operation):
                    result.modified += 1

        return result

    def find(self, name: str, filter: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        return [copy.deepcopy(doc) for doc in self._collection(name).values() if matches(doc, filter)]

    def create_indexes(self) -> List[str]:
        for index_name in INDEX_NAMES:
            if index_name not in self.indexes:
                self.indexes.append(index_name)
        return list(INDEX_NAMES)

    def close(self):
        self.closed = True
