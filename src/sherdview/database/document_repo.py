"""Repository functions for the documents table."""

import json
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..utils.logging import get_logger
from .schema import Document

logger = get_logger(__name__)

_FIELD_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

SUPPORTED_OPS = ("==", "in")


def split_document_path(path: str) -> Tuple[str, str, str, int]:
    """
    Split a document path into (collection_path, collection_id, doc_id, depth).
    
    Raises:
        ValueError: If the path is empty or does not end on a document segment
    """
    segments = [s for s in path.strip("/").split("/") if s]
    if not segments or len(segments) % 2 != 0:
        raise ValueError(f"Not a document path: {path!r}")
    collection_path = "/".join(segments[:-1])
    return collection_path, segments[-2], segments[-1], len(segments)


def save_document(session: Session, path: str, data: Dict[str, Any]) -> Document:
    """
    Insert or replace a document.
    
    Args:
        session: SQLAlchemy session
        path: Full document path ("collection/doc[/collection/doc...]")
        data: Document fields (JSON-serializable; datetimes are stored as ISO strings)
        
    Returns:
        Document row (added to the session, not committed)
    """
    collection_path, collection_id, doc_id, depth = split_document_path(path)
    normalized_path = f"{collection_path}/{doc_id}"
    data_json = json.dumps(data, default=_json_default, sort_keys=True)

    existing = session.query(Document).filter(Document.path == normalized_path).first()
    if existing:
        existing.data_json = data_json
        logger.debug(f"Replaced document: {normalized_path}")
        return existing

    row = Document(
        path=normalized_path,
        collection_path=collection_path,
        collection_id=collection_id,
        doc_id=doc_id,
        depth=depth,
        data_json=data_json,
        created_at_utc=datetime.now(timezone.utc).isoformat(),
    )
    session.add(row)
    logger.debug(f"Created document: {normalized_path}")
    return row


def list_documents(session: Session, collection_path: str) -> List[Document]:
    """List every document directly inside a collection, in document id order."""
    return (
        session.query(Document)
        .filter(Document.collection_path == collection_path.strip("/"))
        .order_by(Document.doc_id.asc())
        .all()
    )


def query_documents(
    session: Session,
    collection: str,
    filters: Sequence[Tuple[str, str, Any]],
    limit: int,
) -> List[Document]:
    """
    Query a top-level collection with AND-combined field predicates.
    
    No ordering is applied; callers sort in memory.
    
    Args:
        session: SQLAlchemy session
        collection: Top-level collection id (e.g. "universal")
        filters: (field, op, value) triples; op is "==" or "in"
        limit: Maximum number of rows
        
    Returns:
        Matching Document rows
        
    Raises:
        ValueError: On an unsupported operator or field name
    """
    query = session.query(Document).filter(Document.collection_path == collection.strip("/"))
    for field, op, value in filters:
        if not _FIELD_NAME.match(field or ""):
            raise ValueError(f"Invalid field name: {field!r}")
        column = func.json_extract(Document.data_json, f"$.{field}")
        if op == "==":
            query = query.filter(column == value)
        elif op == "in":
            query = query.filter(column.in_(list(value)))
        else:
            raise ValueError(f"Unsupported operator: {op!r}")
    return query.limit(limit).all()


def load_document_data(row: Document) -> Dict[str, Any]:
    """Load document fields from JSON.
    
    Raises:
        ValueError: If the stored JSON is not an object
    """
    data = json.loads(row.data_json or "{}")
    if not isinstance(data, dict):
        raise ValueError(f"Document {row.path} does not hold a JSON object")
    return data


def delete_all_documents(session: Session, prefix: Optional[str] = None) -> int:
    """Delete every document (or every document under a path prefix). Returns the row count."""
    query = session.query(Document)
    if prefix:
        prefix = prefix.strip("/")
        query = query.filter((Document.path == prefix) | Document.path.like(f"{prefix}/%"))
    return query.delete(synchronize_session="fetch")


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
