"""Filtered query engine over the flat universal collection.

The backend only ever sees equality / set-membership predicates and a page
bound. Ordering and statistics are computed in memory over exactly the page
that came back.
"""

from typing import Dict, Iterable, List, Optional, Sequence

from ..errors import FetchError, FilterValidationError
from ..parsing.normalizer import normalize_sherd_record
from ..records.models import (
    UNSPECIFIED_DIAGNOSTIC,
    AggregateStats,
    QueryFilter,
    QueryResult,
    SherdRecord,
)
from ..retrieval.base import DocumentStore, FieldFilter
from ..utils.logging import get_logger

logger = get_logger(__name__)

UNIVERSAL_COLLECTION = "universal"
MAX_PAGE_SIZE = 500
MAX_IN_VALUES = 10  # backend cap on set-membership values

PROJECT_FIELD = "projectId"
DIAGNOSTIC_FIELD = "diagnosticType"


def normalize_project_id(project_id: Optional[str]) -> Optional[str]:
    """
    Return the comparison key for a project id search, or None for "no filter".
    
    Stored ids are canonically upper-case, so the input is upper-cased. It is
    not zero-padded: padding is display-only.
    """
    if project_id is None or not project_id.strip():
        return None
    return project_id.upper()


def build_filters(
    query_filter: QueryFilter,
    max_in_values: int = MAX_IN_VALUES,
) -> List[FieldFilter]:
    """
    Translate a QueryFilter into store predicates.
    
    Raises:
        FilterValidationError: If more diagnostic values are supplied than the
            backend's set-membership operator accepts
    """
    filters: List[FieldFilter] = []
    
    project_key = normalize_project_id(query_filter.project_id)
    if project_key is not None:
        filters.append(FieldFilter(field=PROJECT_FIELD, op="==", value=project_key))
    
    diagnostics = list(query_filter.diagnostics or [])
    if diagnostics:
        if len(diagnostics) > max_in_values:
            raise FilterValidationError(
                f"Cannot filter by more than {max_in_values} diagnostic types at once"
            )
        filters.append(FieldFilter(field=DIAGNOSTIC_FIELD, op="in", value=diagnostics))
    
    return filters


def sort_newest_first(records: Iterable[SherdRecord]) -> List[SherdRecord]:
    """Sort by creation instant, most recent first (stable for ties)."""
    return sorted(records, key=lambda r: r.created_at, reverse=True)


def compute_stats(records: Sequence[SherdRecord]) -> AggregateStats:
    """Count records per project and per diagnostic type; empty input gives all-zero stats."""
    project_counts: Dict[str, int] = {}
    diagnostic_counts: Dict[str, int] = {}
    total_weight = 0.0
    for record in records:
        project_counts[record.project_id] = project_counts.get(record.project_id, 0) + 1
        diagnostic_counts[record.diagnostic_type] = diagnostic_counts.get(record.diagnostic_type, 0) + 1
        total_weight += record.weight
    
    return AggregateStats(
        total_sherds=len(records),
        total_weight=total_weight,
        project_counts=project_counts,
        diagnostic_counts=diagnostic_counts,
    )


def distinct_diagnostics(records: Iterable[SherdRecord]) -> List[str]:
    """
    Diagnostic tags observed in the records, in first-seen order.
    
    The "Unspecified" placeholder is left out: it stands for records with no
    stored tag, which a set-membership filter could never select.
    """
    seen: Dict[str, None] = {}
    for record in records:
        tag = record.diagnostic_type
        if tag and tag != UNSPECIFIED_DIAGNOSTIC and tag not in seen:
            seen[tag] = None
    return list(seen)


class FilteredQueryEngine:
    """Runs one bounded query against the universal collection and derives stats."""

    def __init__(
        self,
        store: DocumentStore,
        *,
        collection: str = UNIVERSAL_COLLECTION,
        page_size: int = MAX_PAGE_SIZE,
        max_in_values: int = MAX_IN_VALUES,
    ):
        self.store = store
        self.collection = collection
        self.page_size = page_size
        self.max_in_values = max_in_values

    def query(self, query_filter: Optional[QueryFilter] = None) -> QueryResult:
        """
        Fetch, normalize, sort and summarize one page of sherd records.
        
        Args:
            query_filter: Optional project id and diagnostic tags; None or an
                empty filter issues the same bounded unconditional fetch
                
        Returns:
            QueryResult with rows newest first, stats over exactly those rows,
            and distinct diagnostic tags in first-seen order
            
        Raises:
            FilterValidationError: Too many diagnostic values (no request issued)
            FetchError: The store failed
        """
        query_filter = query_filter or QueryFilter()
        filters = build_filters(query_filter, self.max_in_values)
        
        logger.debug(
            f"Querying {self.collection} with {len(filters)} filter(s), limit {self.page_size}"
        )
        try:
            snapshots = self.store.query(self.collection, filters, self.page_size)
        except FetchError:
            raise
        except Exception as e:
            raise FetchError(str(e)) from e
        
        if not snapshots:
            return QueryResult()
        
        records = sort_newest_first(normalize_sherd_record(s.id, s.data) for s in snapshots)
        return QueryResult(
            rows=records,
            stats=compute_stats(records),
            distinct_diagnostics=distinct_diagnostics(records),
        )
