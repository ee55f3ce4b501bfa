"""Data-access collaborators: the DocumentStore contract and its backends."""

from typing import Any, Dict, Optional

from .base import DocumentSnapshot, DocumentStore, FieldFilter, flatten_document_tree, join_path
from .firestore_store import FirestoreRestStore
from .memory_store import InMemoryDocumentStore
from .sqlite_store import SqliteDocumentStore


def create_store(settings: Dict[str, Any], session: Optional[Any] = None) -> DocumentStore:
    """
    Create the store selected by settings["storage"]["backend"].
    
    Args:
        settings: Resolved settings (see config.loader.resolve_settings)
        session: SQLAlchemy session, required for the sqlite backend
        
    Returns:
        DocumentStore instance
        
    Raises:
        ValueError: If the backend is unknown or a sqlite session is missing
    """
    backend = settings["storage"]["backend"]
    if backend == "sqlite":
        if session is None:
            raise ValueError("sqlite backend requires a session")
        return SqliteDocumentStore(session)
    if backend == "firestore":
        fs = settings["firestore"]
        return FirestoreRestStore(
            fs["project_id"],
            fs["database"],
            api_key=fs.get("api_key"),
            access_token=fs.get("access_token"),
            timeout_seconds=fs["timeout_seconds"],
        )
    if backend == "memory":
        return InMemoryDocumentStore()
    raise ValueError(f"Unknown storage backend: {backend}")


__all__ = [
    "DocumentSnapshot",
    "DocumentStore",
    "FieldFilter",
    "FirestoreRestStore",
    "InMemoryDocumentStore",
    "SqliteDocumentStore",
    "create_store",
    "flatten_document_tree",
    "join_path",
]
