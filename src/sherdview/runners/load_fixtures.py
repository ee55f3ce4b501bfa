import json
from pathlib import Path
from typing import Any, Dict

from sqlalchemy.orm import Session

from ..database.document_repo import delete_all_documents, save_document
from ..retrieval.base import flatten_document_tree
from ..utils.logging import get_logger

logger = get_logger(__name__)


def read_fixture(path: Path) -> Dict[str, Any]:
    """Read a nested document-tree fixture (see retrieval.base.flatten_document_tree)."""
    if not path.exists():
        raise FileNotFoundError(f"Fixture not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        tree = json.load(f)
    if not isinstance(tree, dict):
        raise ValueError("Fixture must be a JSON object keyed by collection")
    return tree


def load_fixture_tree(session: Session, tree: Dict[str, Any], reset: bool = False) -> Dict[str, int]:
    """
    Write every document of a fixture tree to the documents table and commit.
    
    Args:
        session: SQLAlchemy session
        tree: Nested fixture tree
        reset: Delete all existing documents first
        
    Returns:
        Counts: {"deleted": int, "documents": int, "collections": int}
    """
    deleted = delete_all_documents(session) if reset else 0
    documents = 0
    collections = set()
    for path, fields in flatten_document_tree(tree):
        save_document(session, path, fields)
        collections.add(path.rsplit("/", 1)[0])
        documents += 1
    session.commit()
    
    counts = {"deleted": deleted, "documents": documents, "collections": len(collections)}
    logger.info(f"Fixture loaded: {counts}")
    return counts
