"""Document store backed by the SQLite documents table."""

from typing import List, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database.document_repo import list_documents, load_document_data, query_documents
from ..errors import FetchError
from ..utils.logging import get_logger
from .base import DocumentSnapshot, DocumentStore, FieldFilter

logger = get_logger(__name__)


class SqliteDocumentStore(DocumentStore):
    """DocumentStore over a SQLAlchemy session (caller owns the session)."""

    def __init__(self, session: Session):
        self.session = session

    def list_children(self, collection_path: str) -> List[DocumentSnapshot]:
        try:
            rows = list_documents(self.session, collection_path)
            return [
                DocumentSnapshot(id=row.doc_id, path=row.path, data=load_document_data(row))
                for row in rows
            ]
        except (SQLAlchemyError, ValueError) as e:
            raise FetchError(f"Failed to list {collection_path}: {e}") from e

    def query(
        self,
        collection: str,
        filters: Sequence[FieldFilter],
        limit: int,
    ) -> List[DocumentSnapshot]:
        try:
            rows = query_documents(
                self.session,
                collection,
                [f.as_tuple() for f in filters],
                limit,
            )
            return [
                DocumentSnapshot(id=row.doc_id, path=row.path, data=load_document_data(row))
                for row in rows
            ]
        except (SQLAlchemyError, ValueError) as e:
            raise FetchError(f"Failed to query {collection}: {e}") from e
