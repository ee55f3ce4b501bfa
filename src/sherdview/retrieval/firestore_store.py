"""Document store backed by the Firestore REST API (v1)."""

from typing import Any, Dict, List, Optional, Sequence

import requests

from ..errors import FetchError
from ..utils.logging import get_logger
from .base import DocumentSnapshot, DocumentStore, FieldFilter

logger = get_logger(__name__)

FIRESTORE_BASE_URL = "https://firestore.googleapis.com/v1"
LIST_PAGE_SIZE = 300

_OPERATORS = {
    "==": "EQUAL",
    "in": "IN",
}


def decode_value(value: Dict[str, Any]) -> Any:
    """Decode one typed Firestore value into plain Python."""
    if "nullValue" in value:
        return None
    if "stringValue" in value:
        return value["stringValue"]
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        # int64 travels as a JSON string
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "timestampValue" in value:
        return value["timestampValue"]  # ISO 8601; coerced during normalization
    if "referenceValue" in value:
        return value["referenceValue"]
    if "bytesValue" in value:
        return value["bytesValue"]
    if "geoPointValue" in value:
        point = value["geoPointValue"] or {}
        return {"latitude": point.get("latitude", 0.0), "longitude": point.get("longitude", 0.0)}
    if "mapValue" in value:
        return decode_fields((value["mapValue"] or {}).get("fields") or {})
    if "arrayValue" in value:
        return [decode_value(v) for v in (value["arrayValue"] or {}).get("values") or []]
    raise ValueError(f"Unknown Firestore value type: {sorted(value)}")


def decode_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {name: decode_value(v) for name, v in fields.items()}


def encode_value(value: Any) -> Dict[str, Any]:
    """Encode a plain Python filter value as a typed Firestore value."""
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    raise ValueError(f"Cannot encode filter value of type {type(value).__name__}")


def build_structured_query(collection: str, filters: Sequence[FieldFilter], limit: int) -> Dict[str, Any]:
    """Build a runQuery body: AND of field filters, bounded, no orderBy."""
    structured: Dict[str, Any] = {
        "from": [{"collectionId": collection}],
        "limit": limit,
    }
    field_filters = [
        {
            "fieldFilter": {
                "field": {"fieldPath": f.field},
                "op": _OPERATORS[f.op],
                "value": encode_value(list(f.value) if f.op == "in" else f.value),
            }
        }
        for f in filters
    ]
    if len(field_filters) == 1:
        structured["where"] = field_filters[0]
    elif field_filters:
        structured["where"] = {"compositeFilter": {"op": "AND", "filters": field_filters}}
    return {"structuredQuery": structured}


class FirestoreRestStore(DocumentStore):
    """Reads a Firestore database over HTTPS with requests."""

    def __init__(
        self,
        project_id: str,
        database: str = "(default)",
        *,
        api_key: Optional[str] = None,
        access_token: Optional[str] = None,
        timeout_seconds: float = 20,
        base_url: str = FIRESTORE_BASE_URL,
    ):
        if not project_id:
            raise ValueError("Firestore store requires a project_id")
        self.project_id = project_id
        self.database = database
        self.api_key = api_key
        self.access_token = access_token
        self.timeout = timeout_seconds
        self.documents_root = f"projects/{project_id}/databases/{database}/documents"
        self.documents_url = f"{base_url.rstrip('/')}/{self.documents_root}"

    def _get_headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    def _params(self, **extra: Any) -> Dict[str, Any]:
        params = {k: v for k, v in extra.items() if v is not None}
        if self.api_key:
            params["key"] = self.api_key
        return params

    def _snapshot(self, document: Dict[str, Any]) -> DocumentSnapshot:
        name = document.get("name") or ""
        marker = "/documents/"
        path = name.split(marker, 1)[1] if marker in name else name
        doc_id = path.rsplit("/", 1)[-1]
        return DocumentSnapshot(id=doc_id, path=path, data=decode_fields(document.get("fields") or {}))

    def list_children(self, collection_path: str) -> List[DocumentSnapshot]:
        url = f"{self.documents_url}/{collection_path.strip('/')}"
        snapshots: List[DocumentSnapshot] = []
        page_token: Optional[str] = None
        try:
            while True:
                response = requests.get(
                    url,
                    headers=self._get_headers(),
                    params=self._params(pageSize=LIST_PAGE_SIZE, pageToken=page_token),
                    timeout=self.timeout,
                )
                response.raise_for_status()
                payload = response.json() or {}
                snapshots.extend(self._snapshot(doc) for doc in payload.get("documents") or [])
                page_token = payload.get("nextPageToken")
                if not page_token:
                    break
        except requests.RequestException as e:
            raise FetchError(f"Failed to list {collection_path}: {e}") from e
        except (ValueError, TypeError, AttributeError) as e:
            raise FetchError(f"Malformed response listing {collection_path}: {e}") from e
        
        logger.debug(f"Listed {len(snapshots)} documents from {collection_path}")
        return snapshots

    def query(
        self,
        collection: str,
        filters: Sequence[FieldFilter],
        limit: int,
    ) -> List[DocumentSnapshot]:
        try:
            body = build_structured_query(collection, filters, limit)
            response = requests.post(
                f"{self.documents_url}:runQuery",
                headers=self._get_headers(),
                params=self._params(),
                json=body,
                timeout=self.timeout,
            )
            response.raise_for_status()
            results = response.json() or []
            # Entries without "document" only carry readTime/progress info
            snapshots = [self._snapshot(entry["document"]) for entry in results if entry.get("document")]
        except requests.RequestException as e:
            raise FetchError(f"Failed to query {collection}: {e}") from e
        except (ValueError, TypeError, AttributeError, KeyError) as e:
            raise FetchError(f"Malformed response querying {collection}: {e}") from e
        
        logger.debug(f"Query on {collection} returned {len(snapshots)} documents")
        return snapshots
