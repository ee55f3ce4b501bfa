"""Projects API: catalog and hierarchical project data."""

from typing import List, Optional

from ..aggregation.hierarchy import PROJECTS, HierarchicalAggregator
from ..errors import FetchError
from ..records.models import AggregationResult, ProjectSummary
from ..retrieval.base import DocumentStore
from ..utils.logging import get_logger

logger = get_logger(__name__)


def list_projects(store: DocumentStore) -> List[ProjectSummary]:
    """
    List the projects a user can select.
    
    Args:
        store: Document store
        
    Returns:
        ProjectSummary per project document, display name upper-cased
        
    Raises:
        FetchError: If the projects collection cannot be listed
    """
    try:
        docs = store.list_children(PROJECTS)
    except Exception as e:
        raise FetchError(f"Failed to fetch projects: {e}") from e
    return [ProjectSummary(id=doc.id, project_name=doc.id.upper()) for doc in docs]


def get_project_data(store: DocumentStore, project_id: Optional[str]) -> AggregationResult:
    """
    Flatten one project's tree into table rows with totals.
    
    Raises:
        TreeTraversalError: If any level of the walk fails
    """
    return HierarchicalAggregator(store).aggregate(project_id)
