"""Universal sherd API: filtered search over the flat collection."""

from typing import Any, Dict, List, Optional, Sequence

from ..query.engine import FilteredQueryEngine
from ..records.models import UNSPECIFIED_DIAGNOSTIC, AggregateStats, QueryFilter, QueryResult, SherdRecord
from ..retrieval.base import DocumentStore
from .models import DiagnosticShare


def engine_from_settings(store: DocumentStore, settings: Optional[Dict[str, Any]] = None) -> FilteredQueryEngine:
    """Build a FilteredQueryEngine using the query section of resolved settings."""
    if not settings:
        return FilteredQueryEngine(store)
    query = settings["query"]
    return FilteredQueryEngine(
        store,
        collection=query["universal_collection"],
        page_size=query["page_size"],
        max_in_values=query["max_in_values"],
    )


def search_sherds(
    store: DocumentStore,
    project_id: Optional[str] = None,
    diagnostics: Optional[Sequence[str]] = None,
    settings: Optional[Dict[str, Any]] = None,
) -> QueryResult:
    """
    Search the universal collection.
    
    Args:
        store: Document store
        project_id: Optional project id (upper-cased before comparison)
        diagnostics: Optional diagnostic tags (at most the configured cap)
        settings: Optional resolved settings
        
    Returns:
        QueryResult (rows newest first, stats, distinct diagnostics)
        
    Raises:
        FilterValidationError: Too many diagnostic tags
        FetchError: Store failure
    """
    query_filter = QueryFilter(project_id=project_id, diagnostics=list(diagnostics or []))
    return engine_from_settings(store, settings).query(query_filter)


def diagnostic_distribution(stats: AggregateStats) -> List[DiagnosticShare]:
    """
    Diagnostic counts as chart bars, largest first.
    
    Percentages are relative to stats.total_sherds; an empty tag is shown
    as "Unspecified".
    """
    if stats.total_sherds <= 0:
        return []
    shares = [
        DiagnosticShare(
            name=name or UNSPECIFIED_DIAGNOSTIC,
            count=count,
            percentage=count / stats.total_sherds * 100,
        )
        for name, count in stats.diagnostic_counts.items()
    ]
    shares.sort(key=lambda s: s.count, reverse=True)
    return shares


def find_sherd(result: QueryResult, sherd_id: str) -> Optional[SherdRecord]:
    """Find a record in a result set by document id or sherd id."""
    for record in result.rows:
        if record.id == sherd_id or (record.sherd_id and record.sherd_id == sherd_id):
            return record
    return None
