"""Data-access contract: the two capabilities the core depends on."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, List, Sequence, Tuple

from pydantic import BaseModel, Field, field_validator

FILTER_OPS = ("==", "in")


class DocumentSnapshot(BaseModel):
    """A document as returned by a store: id, full path and plain fields."""

    id: str
    path: str
    data: Dict[str, Any] = Field(default_factory=dict)


class FieldFilter(BaseModel):
    """A single predicate on a document field."""

    field: str
    op: str
    value: Any

    @field_validator("op")
    @classmethod
    def _check_op(cls, value: str) -> str:
        if value not in FILTER_OPS:
            raise ValueError(f"Unsupported operator: {value!r} (expected one of {FILTER_OPS})")
        return value

    def as_tuple(self) -> Tuple[str, str, Any]:
        return (self.field, self.op, self.value)

    def matches(self, data: Dict[str, Any]) -> bool:
        """Evaluate the predicate against plain document fields."""
        actual = data.get(self.field)
        if self.op == "==":
            return actual == self.value
        return actual in list(self.value)


class DocumentStore(ABC):
    """Queryable hierarchical document store.
    
    Implementations raise FetchError for any backend failure.
    """

    @abstractmethod
    def list_children(self, collection_path: str) -> List[DocumentSnapshot]:
        """
        List every document directly inside a collection.
        
        Args:
            collection_path: Collection path, e.g. "projects/P1/studyAreas"
            
        Returns:
            Documents in the store's native order
        """

    @abstractmethod
    def query(
        self,
        collection: str,
        filters: Sequence[FieldFilter],
        limit: int,
    ) -> List[DocumentSnapshot]:
        """
        Query a flat top-level collection.
        
        Args:
            collection: Collection id, e.g. "universal"
            filters: Predicates combined with AND (may be empty)
            limit: Maximum number of documents returned
            
        Returns:
            Matching documents, unordered
        """


def join_path(*segments: str) -> str:
    """Join path segments, ignoring surrounding slashes."""
    return "/".join(s.strip("/") for s in segments if s and s.strip("/"))


def flatten_document_tree(tree: Dict[str, Any], prefix: str = "") -> Iterator[Tuple[str, Dict[str, Any]]]:
    """
    Walk a nested fixture tree and yield (document_path, fields) pairs, parents first.
    
    Tree format::
    
        {
          "<collection>": {
            "<doc_id>": {
              "fields": {...},
              "collections": {"<sub_collection>": {...}}
            }
          }
        }
    
    Raises:
        ValueError: If a collection or document entry is not a mapping
    """
    for collection_id, documents in tree.items():
        if not isinstance(documents, dict):
            raise ValueError(f"Collection '{join_path(prefix, collection_id)}' must be a mapping")
        for doc_id, entry in documents.items():
            if not isinstance(entry, dict):
                raise ValueError(f"Document '{join_path(prefix, collection_id, doc_id)}' must be a mapping")
            path = join_path(prefix, collection_id, str(doc_id))
            yield path, dict(entry.get("fields") or {})
            children = entry.get("collections") or {}
            if children:
                yield from flatten_document_tree(children, prefix=path)
