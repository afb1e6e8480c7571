import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.attributes import flag_modified
from tqdm import tqdm

from txc_graph.data.db_broker import ConnectionBroker
from txc_graph.data.document_store import (
    DocumentStore, DuplicateDocumentError, UpdateOperation, UpdateResult,
    apply_update, chunked, matches
)
from txc_graph.ingest.schema import COLLECTION_MODELS, create_derived_indexes

logger = logging.getLogger(__name__)


class PostgresDocumentStore(DocumentStore):
    """Document store backed by one JSONB table per collection in PostgreSQL/PostGIS."""

    def __init__(self, broker=ConnectionBroker):
        self.broker = broker

    @staticmethod
    def _model(name: str):
        try:
            return COLLECTION_MODELS[name]
        except KeyError:
            raise KeyError(f"Unknown collection: {name}") from None

    def clear_collection(self, name: str) -> int:
        model = self._model(name)
        with self.broker.get_session() as session:
            removed = session.query(model).delete(synchronize_session=False)
        logger.info(f"Cleared {removed} documents from '{name}'")
        return removed

    def insert_batch(self, name: str, documents: Iterable[Dict[str, Any]], max_batch_size: int = 1000) -> int:
        model = self._model(name)
        documents = list(documents)
        inserted = 0

        with self.broker.get_session() as session:
            for batch in tqdm(list(chunked(documents, max_batch_size)), desc=f"Writing {name}", unit="batch", leave=False):
                rows = [model.row_values(document) for document in batch]
                try:
                    with session.begin_nested():
                        session.execute(insert(model), rows)
                except IntegrityError as e:
                    duplicate_id = self._find_duplicate(session, model, batch)
                    raise DuplicateDocumentError(name, duplicate_id) from e
                inserted += len(rows)

        return inserted

    @staticmethod
    def _find_duplicate(session, model, batch) -> str:
        ids = [document["id"] for document in batch]
        existing = session.query(model.id).filter(model.id.in_(ids)).first()
        if existing is not None:
            return existing[0]
        seen = set()
        for document_id in ids:
            if document_id in seen:
                return document_id
            seen.add(document_id)
        return ids[0]

    def bulk_update(self, name: str, operations: List[UpdateOperation], ordered: bool = False) -> UpdateResult:
        model = self._model(name)
        result = UpdateResult()

        with self.broker.get_session() as session:
            for operation in tqdm(operations, desc=f"Updating {name}", unit="op", leave=False):
                for row in self._select(session, model, operation.filter, for_update=True):
                    result.matched += 1
                    document = dict(row.document)
                    if apply_update(document, operation):
                        row.document = document
                        flag_modified(row, "document")
                        result.modified += 1

        return result

    @staticmethod
    def _select(session, model, filter: Optional[Dict[str, Any]], for_update: bool = False):
        query = session.query(model)
        filter = dict(filter or {})
        document_id = filter.pop("id", None)
        if document_id is not None:
            query = query.filter(model.id == document_id)
        if filter:
            query = query.filter(model.document.contains(filter))
        query = query.order_by(model.seq)
        if for_update:
            query = query.with_for_update()
        # JSONB containment is looser than equality for list values
        return [row for row in query.all() if matches(row.document, filter)]

    def find(self, name: str, filter: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        model = self._model(name)
        with self.broker.get_session() as session:
            return [dict(row.document) for row in self._select(session, model, filter)]

    def create_indexes(self) -> List[str]:
        return create_derived_indexes(self.broker.get_engine())

    def close(self):
        self.broker.dispose()
