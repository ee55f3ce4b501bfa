"""Hierarchical aggregation over a project's document tree.

Walks projects/{project}/studyAreas/*/stratUnits/*/containers/*/groups/*/objects/*
depth first and flattens every object into one FlatRow, accumulating running
totals during the same walk. Each level is fetched sequentially.
"""

from typing import List, Optional

from ..errors import TreeTraversalError
from ..parsing.normalizer import format_confidence, normalize_object, source_label
from ..records.models import PLACEHOLDER, AggregateStats, AggregationResult, FlatRow
from ..retrieval.base import DocumentSnapshot, DocumentStore, join_path
from ..utils.logging import get_logger

logger = get_logger(__name__)

PROJECTS = "projects"
STUDY_AREAS = "studyAreas"
STRAT_UNITS = "stratUnits"
CONTAINERS = "containers"
GROUPS = "groups"
OBJECTS = "objects"

UNKNOWN_GROUP = "Unknown"


class _Totals:
    """Running totals for one walk."""

    def __init__(self) -> None:
        self.sherds = 0
        self.weight = 0.0
        self.study_areas = 0
        self.containers = 0
        self.diagnostics: dict = {}

    def to_stats(self) -> AggregateStats:
        return AggregateStats(
            total_sherds=self.sherds,
            total_weight=self.weight,
            study_areas=self.study_areas,
            containers=self.containers,
            diagnostic_counts=dict(self.diagnostics),
        )


class HierarchicalAggregator:
    """Flattens one project's five-level tree into table rows plus totals.
    
    Holds no state between calls: every aggregate() re-walks the whole tree.
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    def aggregate(self, root_id: Optional[str]) -> AggregationResult:
        """
        Aggregate every object under a project.
        
        An empty or missing root_id is the "no selection" state and returns
        an empty result without contacting the store.
        
        Args:
            root_id: Project document id
            
        Returns:
            AggregationResult with one FlatRow per object and the walk's totals.
            total_sherds sums object counts, not rows.
            
        Raises:
            TreeTraversalError: If listing any level fails (no partial rows)
        """
        if not root_id:
            return AggregationResult()
        
        rows: List[FlatRow] = []
        totals = _Totals()
        project_path = join_path(PROJECTS, root_id)
        
        study_areas = self._list(join_path(project_path, STUDY_AREAS))
        for study_area in study_areas:
            totals.study_areas += 1
            strat_units = self._list(join_path(study_area.path, STRAT_UNITS))
            for strat_unit in strat_units:
                containers = self._list(join_path(strat_unit.path, CONTAINERS))
                for container in containers:
                    totals.containers += 1
                    groups = self._list(join_path(container.path, GROUPS))
                    for group in groups:
                        group_label = str(group.data.get("label") or UNKNOWN_GROUP)
                        objects = self._list(join_path(group.path, OBJECTS))
                        for doc in objects:
                            rows.append(
                                self._flatten(
                                    doc,
                                    study_area=study_area,
                                    strat_unit=strat_unit,
                                    container=container,
                                    group=group,
                                    group_label=group_label,
                                    totals=totals,
                                )
                            )
        
        logger.debug(
            f"Aggregated project {root_id}: {len(rows)} rows, {totals.sherds} sherds, "
            f"{totals.study_areas} study areas, {totals.containers} containers"
        )
        return AggregationResult(rows=rows, stats=totals.to_stats())

    def _list(self, collection_path: str) -> List[DocumentSnapshot]:
        try:
            return self.store.list_children(collection_path)
        except Exception as e:
            # FetchError from known stores, anything else from custom ones
            raise TreeTraversalError(f"Failed to list {collection_path}: {e}", collection_path) from e

    def _flatten(
        self,
        doc: DocumentSnapshot,
        *,
        study_area: DocumentSnapshot,
        strat_unit: DocumentSnapshot,
        container: DocumentSnapshot,
        group: DocumentSnapshot,
        group_label: str,
        totals: _Totals,
    ) -> FlatRow:
        obj = normalize_object(doc.id, doc.data)
        
        totals.sherds += obj.count
        totals.weight += obj.weight
        totals.diagnostics[obj.diagnostic] = totals.diagnostics.get(obj.diagnostic, 0) + obj.count
        
        return FlatRow(
            id=f"{study_area.id}-{strat_unit.id}-{container.id}-{group.id}-{obj.id}",
            object_id=obj.id,
            study_area=study_area.id,
            strat_unit=strat_unit.id,
            container=container.id,
            group=group_label,
            diagnostic=obj.diagnostic,
            qualification=obj.qualification,
            weight=obj.weight,
            count=obj.count,
            sherd_id=obj.sherd_id or PLACEHOLDER,
            source=source_label(obj),
            confidence=format_confidence(obj.analysis_confidence),
        )
