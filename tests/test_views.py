"""Tests for the view controllers: request ordering, loading and error policy."""

import pytest

from sherdview.api.views import (
    PROJECT_DATA_ERROR,
    PROJECTS_ERROR,
    ProjectDataView,
    RequestTracker,
    UniversalDataView,
)
from sherdview.records.models import AggregateStats, QueryResult
from sherdview.retrieval.memory_store import InMemoryDocumentStore

from conftest import single_branch_tree


def _result(*tags):
    return QueryResult(rows=[], stats=AggregateStats(total_sherds=len(tags)), distinct_diagnostics=list(tags))


def test_request_tracker_only_latest_is_current():
    """Test that dispatching a new ticket supersedes older ones."""
    tracker = RequestTracker()
    first = tracker.dispatch()
    second = tracker.dispatch()

    assert second > first
    assert tracker.is_current(second)
    assert not tracker.is_current(first)
    assert tracker.latest == second


def test_out_of_order_completion_keeps_latest_result():
    """Test that an older response arriving last is discarded."""
    view = UniversalDataView(InMemoryDocumentStore())
    older = view._begin_request()
    newer = view._begin_request()

    assert view._complete_request(newer, result=_result("Rim")) is True
    assert view._complete_request(older, result=_result("Base", "Lid")) is False

    assert view.state.stats.total_sherds == 1
    assert view.available_diagnostics == ["Rim"]
    assert view.state.loading is False


def test_loading_cleared_only_by_latest_request():
    """Test that a stale completion leaves loading set while the latest is in flight."""
    view = UniversalDataView(InMemoryDocumentStore())
    older = view._begin_request()
    newer = view._begin_request()
    assert view.state.loading is True

    view._complete_request(older, result=_result("Base"))
    assert view.state.loading is True
    assert view.state.stats.total_sherds == 0

    view._complete_request(newer, error="Failed to fetch data: boom")
    assert view.state.loading is False
    assert view.state.error == "Failed to fetch data: boom"


def test_stale_error_does_not_clobber_newer_success():
    """Test that an older failure cannot overwrite a newer success."""
    view = UniversalDataView(InMemoryDocumentStore())
    older = view._begin_request()
    newer = view._begin_request()

    view._complete_request(newer, result=_result("Rim"))
    view._complete_request(older, error="Failed to fetch data: timeout")

    assert view.state.error is None
    assert view.state.stats.total_sherds == 1


def test_universal_search_populates_state(diagnostic_store):
    """Test that a search fills rows, stats and available diagnostics."""
    view = UniversalDataView(diagnostic_store)

    assert view.search() is True
    assert len(view.state.rows) == 4
    assert view.state.stats.total_sherds == 4
    assert view.available_diagnostics == ["Rim", "Base"]
    assert view.state.error is None
    assert view.state.loading is False


def test_universal_failure_clears_rows_and_stats(diagnostic_store):
    """Test that a failed fetch empties the table instead of showing stale rows."""
    view = UniversalDataView(diagnostic_store)
    view.search()
    assert view.state.rows

    diagnostic_store.fail_on = {"universal"}
    assert view.search() is True

    assert view.state.rows == []
    assert view.state.stats.total_sherds == 0
    assert view.state.error.startswith("Failed to fetch data: ")
    assert view.state.loading is False


def test_universal_validation_error_keeps_rows_and_skips_request(diagnostic_store):
    """Test that too many diagnostic filters set an error without contacting the store."""
    view = UniversalDataView(diagnostic_store)
    view.search()
    rows_before = list(view.state.rows)
    requests_before = diagnostic_store.request_count

    assert view.apply_filters([f"Type{i}" for i in range(11)]) is False

    assert diagnostic_store.request_count == requests_before
    assert view.state.rows == rows_before
    assert "more than 10" in view.state.error
    assert view.state.loading is False


def test_universal_validation_supersedes_in_flight_request(diagnostic_store):
    """Test that a rejected filter change discards the response of an earlier request."""
    view = UniversalDataView(diagnostic_store)
    in_flight = view._begin_request()
    view.apply_filters([f"Type{i}" for i in range(11)])

    assert view._complete_request(in_flight, result=_result("Rim")) is False
    assert view.state.loading is False


def test_toggle_diagnostic_and_selected_tags_stay_available(diagnostic_store):
    """Test toggling tags and that a selected tag absent from the page stays listed."""
    view = UniversalDataView(diagnostic_store)

    assert view.toggle_diagnostic("Base") == ["Base"]
    assert view.toggle_diagnostic("Handle") == ["Base", "Handle"]
    view.refresh()

    assert [r.id for r in view.state.rows] == ["c"]
    assert view.available_diagnostics == ["Base", "Handle"]

    assert view.toggle_diagnostic("Handle") == ["Base"]


def test_clear_filters_and_clear_all(diagnostic_store):
    """Test that clearing filters re-runs the unfiltered query."""
    view = UniversalDataView(diagnostic_store)
    view.search("p1")
    view.apply_filters(["Rim"])
    assert len(view.state.rows) == 2

    view.clear_filters()
    assert view.selected_diagnostics == []
    assert view.search_project == "p1"
    assert len(view.state.rows) == 2

    view.clear_all()
    assert view.search_project == ""
    assert len(view.state.rows) == 4


def test_universal_detail_open_and_close(diagnostic_store):
    """Test the sherd detail selection."""
    view = UniversalDataView(diagnostic_store)
    view.search()

    view.view_detail(view.state.rows[0])
    assert view.detail_open is True
    assert view.selected_sherd.id == "a"

    view.close_detail()
    assert view.detail_open is False


def test_universal_view_uses_configured_limits():
    """Test that settings drive the engine's cap on diagnostic values."""
    settings = {"query": {"universal_collection": "universal", "page_size": 50, "max_in_values": 2}}
    view = UniversalDataView(InMemoryDocumentStore(), settings)

    assert view.engine.page_size == 50
    assert view.apply_filters(["a", "b", "c"]) is False
    assert "more than 2" in view.state.error


def test_project_view_select_root(scenario_store):
    """Test that selecting a project aggregates its tree."""
    view = ProjectDataView(scenario_store)

    assert view.select_root("P1") is True
    assert len(view.state.rows) == 2
    assert view.state.stats.total_sherds == 3
    assert view.selected_project == "P1"


def test_project_view_empty_selection_resets_without_requests(scenario_store):
    """Test that clearing the selection empties the table with no store calls."""
    view = ProjectDataView(scenario_store)
    view.select_root("P1")
    requests_before = scenario_store.request_count

    view.select_root("")

    assert scenario_store.request_count == requests_before
    assert view.state.rows == []
    assert view.state.stats.total_sherds == 0
    assert view.state.loading is False


def test_project_view_traversal_failure_sets_error_and_clears_rows():
    """Test that a failed walk shows the project error and no partial rows."""
    tree = single_branch_tree({"o1": {"diagnostic": "Rim"}})
    store = InMemoryDocumentStore.from_tree(tree)
    view = ProjectDataView(store)
    view.select_root("P1")
    assert view.state.rows

    store.fail_on = {"projects/P1/studyAreas/SA1/stratUnits"}
    view.refresh()

    assert view.state.rows == []
    assert view.state.stats.total_sherds == 0
    assert view.state.error == PROJECT_DATA_ERROR
    assert view.state.loading is False


def test_project_view_load_projects(scenario_store):
    """Test the project catalog."""
    view = ProjectDataView(scenario_store)
    projects = view.load_projects()

    assert [(p.id, p.project_name) for p in projects] == [("P1", "P1")]


def test_project_view_load_projects_failure():
    """Test that a catalog failure empties the list and sets the error."""
    view = ProjectDataView(InMemoryDocumentStore(fail_on=["projects"]))

    assert view.load_projects() == []
    assert view.state.error == PROJECTS_ERROR


def test_project_view_detail(scenario_store):
    """Test selecting and closing a row detail."""
    view = ProjectDataView(scenario_store)
    view.select_root("P1")

    view.view_detail(view.state.rows[0])
    assert view.selected_row is view.state.rows[0]
    view.close_detail()
    assert view.selected_row is None

    view.view_detail(view.state.rows[0])
    view.select_root("P1")
    assert view.selected_row is None


def test_unexpected_errors_propagate_and_clear_loading():
    """Test that a programming error is re-raised after the view leaves the loading state."""
    class BrokenStore(InMemoryDocumentStore):
        def list_children(self, collection_path):
            return None

    view = ProjectDataView(BrokenStore())
    with pytest.raises(TypeError):
        view.select_root("P1")

    assert view.state.loading is False
    assert view.state.error == "Unexpected error"


def test_universal_failure_resets_available_diagnostics(diagnostic_store):
    """Test that a failed fetch drops the previous page's tags but keeps selected ones."""
    view = UniversalDataView(diagnostic_store)
    view.search()
    assert view.available_diagnostics == ["Rim", "Base"]

    diagnostic_store.fail_on = {"universal"}
    view.toggle_diagnostic("Lid")
    view.refresh()

    assert view.state.error.startswith("Failed to fetch data: ")
    assert view.available_diagnostics == ["Lid"]


def test_project_view_error_leaves_no_stale_stats(scenario_store):
    """Test that a project failure after a success resets the totals."""
    view = ProjectDataView(scenario_store)
    view.select_root("P1")
    assert view.state.stats.total_sherds == 3

    scenario_store.fail_on = {"projects/P1/studyAreas"}
    view.refresh()

    assert view.state.stats == AggregateStats()
