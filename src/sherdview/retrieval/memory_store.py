"""Dict-backed document store."""

from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..errors import FetchError
from .base import DocumentSnapshot, DocumentStore, FieldFilter, flatten_document_tree, join_path


class InMemoryDocumentStore(DocumentStore):
    """Document store held in memory, in insertion order.
    
    Records every call in ``calls`` so callers can check how many requests
    were issued. Collection paths listed in ``fail_on`` raise FetchError.
    """

    def __init__(self, fail_on: Optional[Iterable[str]] = None):
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.fail_on = {p.strip("/") for p in (fail_on or [])}
        self.calls: List[Tuple[str, str]] = []

    @classmethod
    def from_tree(cls, tree: Dict[str, Any], **kwargs: Any) -> "InMemoryDocumentStore":
        store = cls(**kwargs)
        for path, fields in flatten_document_tree(tree):
            store.put(path, fields)
        return store

    def put(self, path: str, data: Dict[str, Any]) -> None:
        segments = [s for s in path.strip("/").split("/") if s]
        if not segments or len(segments) % 2 != 0:
            raise ValueError(f"Not a document path: {path!r}")
        collection_path = "/".join(segments[:-1])
        self._collections.setdefault(collection_path, {})[segments[-1]] = dict(data)

    @property
    def request_count(self) -> int:
        return len(self.calls)

    def list_children(self, collection_path: str) -> List[DocumentSnapshot]:
        collection_path = collection_path.strip("/")
        self.calls.append(("list_children", collection_path))
        self._maybe_fail(collection_path)
        documents = self._collections.get(collection_path, {})
        return [
            DocumentSnapshot(id=doc_id, path=join_path(collection_path, doc_id), data=dict(data))
            for doc_id, data in documents.items()
        ]

    def query(
        self,
        collection: str,
        filters: Sequence[FieldFilter],
        limit: int,
    ) -> List[DocumentSnapshot]:
        collection = collection.strip("/")
        self.calls.append(("query", collection))
        self._maybe_fail(collection)
        results: List[DocumentSnapshot] = []
        for doc_id, data in self._collections.get(collection, {}).items():
            if len(results) >= limit:
                break
            if all(f.matches(data) for f in filters):
                results.append(DocumentSnapshot(id=doc_id, path=join_path(collection, doc_id), data=dict(data)))
        return results

    def _maybe_fail(self, collection_path: str) -> None:
        if collection_path in self.fail_on:
            raise FetchError(f"Simulated failure listing {collection_path}")
