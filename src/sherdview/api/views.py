"""View controllers: the presentation-facing state for each page.

Each fetch is tagged with a ticket from a RequestTracker. A completion whose
ticket is not the latest dispatched is discarded, so an older response can
never overwrite a newer one. The loading flag is set on dispatch and cleared
exactly once, by the completion of the latest request, whether it succeeded
or failed.

Error policy: a failed fetch clears rows and resets stats, then sets the
error message. Stale data is never shown next to an error banner.
"""

import threading
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..errors import FilterValidationError, SherdViewError
from ..query.engine import build_filters
from ..records.models import AggregateStats, FlatRow, ProjectSummary, QueryFilter, SherdRecord
from ..retrieval.base import DocumentStore
from ..utils.logging import get_logger
from .models import ViewState
from .projects_api import get_project_data, list_projects
from .universal_api import engine_from_settings

logger = get_logger(__name__)

PROJECT_DATA_ERROR = "Failed to fetch project data"
PROJECTS_ERROR = "Failed to fetch projects"


class RequestTracker:
    """Hands out monotonically increasing request tickets."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._latest = 0

    def dispatch(self) -> int:
        with self._lock:
            self._latest += 1
            return self._latest

    def is_current(self, ticket: int) -> bool:
        with self._lock:
            return ticket == self._latest

    @property
    def latest(self) -> int:
        with self._lock:
            return self._latest


class _TrackedView:
    """Shared request bookkeeping for the concrete views."""

    def __init__(self) -> None:
        self.state = ViewState()
        self._tracker = RequestTracker()
        self._state_lock = threading.Lock()

    def _begin_request(self) -> int:
        ticket = self._tracker.dispatch()
        with self._state_lock:
            self.state.loading = True
            self.state.error = None
        return ticket

    def _complete_request(self, ticket: int, *, result: Any = None, error: Optional[str] = None) -> bool:
        """Apply a completion if it belongs to the latest request. Returns False when discarded."""
        with self._state_lock:
            if not self._tracker.is_current(ticket):
                logger.debug(f"Discarding stale response for request {ticket} (latest {self._tracker.latest})")
                return False
            if error is not None:
                self.state.rows = []
                self.state.stats = AggregateStats()
                self._apply_error()
                self.state.error = error
            else:
                self._apply_result(result)
                self.state.error = None
            self.state.loading = False
            return True

    def _apply_result(self, result: Any) -> None:
        raise NotImplementedError

    def _apply_error(self) -> None:
        """Drop view-specific data derived from the last good result."""

    def _run(self, fetch: Callable[[], Any], describe_error: Callable[[SherdViewError], str]) -> bool:
        ticket = self._begin_request()
        try:
            result = fetch()
        except SherdViewError as e:
            logger.error(f"Request {ticket} failed: {e}", exc_info=True)
            return self._complete_request(ticket, error=describe_error(e))
        except Exception:
            self._complete_request(ticket, error="Unexpected error")
            raise
        return self._complete_request(ticket, result=result)

    def _reject(self, message: str) -> None:
        """Report an error raised before dispatch. Rows stay; any in-flight request is superseded."""
        self._tracker.dispatch()
        with self._state_lock:
            self.state.error = message
            self.state.loading = False

    def _reset(self) -> None:
        """Invalidate any in-flight request and return to the empty state."""
        self._tracker.dispatch()
        with self._state_lock:
            self.state = ViewState()


class ProjectDataView(_TrackedView):
    """Project page: pick a project, see its flattened tree and totals."""

    def __init__(self, store: DocumentStore):
        super().__init__()
        self.store = store
        self.projects: List[ProjectSummary] = []
        self.selected_project: str = ""
        self.selected_row: Optional[FlatRow] = None

    def load_projects(self) -> List[ProjectSummary]:
        """Fill the project picker. On failure the list is emptied and the error set."""
        try:
            self.projects = list_projects(self.store)
        except SherdViewError as e:
            logger.error(f"Error fetching projects: {e}", exc_info=True)
            self.projects = []
            with self._state_lock:
                self.state.error = PROJECTS_ERROR
        return self.projects

    def select_root(self, project_id: Optional[str]) -> bool:
        """
        Select a project and aggregate it.
        
        An empty id clears the table without contacting the store.
        
        Returns:
            True if the result was applied to the view state
        """
        self.selected_project = project_id or ""
        self.selected_row = None
        if not self.selected_project:
            self._reset()
            return True
        return self._run(
            lambda: get_project_data(self.store, self.selected_project),
            lambda _e: PROJECT_DATA_ERROR,
        )

    def refresh(self) -> bool:
        return self.select_root(self.selected_project)

    def view_detail(self, row: FlatRow) -> None:
        self.selected_row = row

    def close_detail(self) -> None:
        self.selected_row = None

    def _apply_result(self, result: Any) -> None:
        self.state.rows = list(result.rows)
        self.state.stats = result.stats


class UniversalDataView(_TrackedView):
    """Universal page: project search, diagnostic filters, stats and detail."""

    def __init__(self, store: DocumentStore, settings: Optional[Dict[str, Any]] = None):
        super().__init__()
        self.engine = engine_from_settings(store, settings)
        self.search_project: str = ""
        self.selected_diagnostics: List[str] = []
        self.available_diagnostics: List[str] = []
        self.selected_sherd: Optional[SherdRecord] = None

    @property
    def detail_open(self) -> bool:
        return self.selected_sherd is not None

    def refresh(self) -> bool:
        """Run the query for the current search text and selected diagnostics."""
        query_filter = QueryFilter(
            project_id=self.search_project or None,
            diagnostics=list(self.selected_diagnostics),
        )
        try:
            build_filters(query_filter, self.engine.max_in_values)
        except FilterValidationError as e:
            self._reject(str(e))
            return False
        return self._run(lambda: self.engine.query(query_filter), self._describe_error)

    def search(self, project_id: Optional[str] = None) -> bool:
        if project_id is not None:
            self.search_project = project_id
        return self.refresh()

    def toggle_diagnostic(self, diagnostic: str) -> List[str]:
        if diagnostic in self.selected_diagnostics:
            self.selected_diagnostics = [d for d in self.selected_diagnostics if d != diagnostic]
        else:
            self.selected_diagnostics = [*self.selected_diagnostics, diagnostic]
        return self.selected_diagnostics

    def apply_filters(self, diagnostics: Optional[Sequence[str]] = None) -> bool:
        if diagnostics is not None:
            self.selected_diagnostics = list(diagnostics)
        return self.refresh()

    def clear_filters(self) -> bool:
        self.selected_diagnostics = []
        return self.refresh()

    def clear_all(self) -> bool:
        self.search_project = ""
        self.selected_diagnostics = []
        return self.refresh()

    def view_detail(self, record: SherdRecord) -> None:
        self.selected_sherd = record

    def close_detail(self) -> None:
        self.selected_sherd = None

    def _describe_error(self, error: SherdViewError) -> str:
        if isinstance(error, FilterValidationError):
            return str(error)
        return f"Failed to fetch data: {error}"

    def _apply_result(self, result: Any) -> None:
        self.state.rows = list(result.rows)
        self.state.stats = result.stats
        distinct = list(result.distinct_diagnostics)
        # Keep selected tags toggleable even when the page no longer contains them
        self.available_diagnostics = distinct + [d for d in self.selected_diagnostics if d not in distinct]

    def _apply_error(self) -> None:
        self.available_diagnostics = list(self.selected_diagnostics)
