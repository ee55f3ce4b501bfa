from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, computed_field

UNSPECIFIED_DIAGNOSTIC = "Unspecified"
SOURCE_AI = "AI Analysis"
SOURCE_MANUAL = "Manual Entry"
PLACEHOLDER = "-"


class BoundingBox(BaseModel):
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0


class SherdRecord(BaseModel):
    """One sherd as stored in the flat universal collection.
    
    Always built through parsing.normalizer.normalize_sherd_record, which
    owns the defaulting policy for missing fields.
    """
    id: str
    sherd_id: str = ""
    project_id: str = ""
    study_area_id: str = ""
    strat_unit_id: str = ""
    container_id: str = ""
    object_group_id: str = ""
    diagnostic_type: str = UNSPECIFIED_DIAGNOSTIC
    qualification_type: str = ""
    weight: float = 0.0
    original_image_url: str = ""
    bounding_box: BoundingBox = Field(default_factory=BoundingBox)
    created_at: datetime
    analysis_confidence: Optional[float] = None
    notes: str = ""


class HierarchicalObject(BaseModel):
    """A leaf object document under projects/.../groups/{group}/objects."""
    id: str
    diagnostic: str = UNSPECIFIED_DIAGNOSTIC
    qualification: str = ""
    weight: float = 0.0
    count: int = 1  # one object row can stand for several physical sherds
    sherd_id: Optional[str] = None
    created_from_image: bool = False
    analysis_confidence: Optional[float] = None


class FlatRow(BaseModel):
    """Denormalized table row: a leaf object plus its ancestor path."""
    id: str
    object_id: str
    study_area: str
    strat_unit: str
    container: str
    group: str
    diagnostic: str
    qualification: str
    weight: float
    count: int
    sherd_id: str = PLACEHOLDER
    source: str  # "AI Analysis" | "Manual Entry"
    confidence: str = PLACEHOLDER


class AggregateStats(BaseModel):
    """Statistics derived from one fetch; recomputed from scratch every time.
    
    Which parent counts are meaningful depends on the view: the flat search
    fills project_counts, the hierarchical view fills study_areas/containers.
    """
    total_sherds: int = 0
    total_weight: float = 0.0
    project_counts: Dict[str, int] = Field(default_factory=dict)
    diagnostic_counts: Dict[str, int] = Field(default_factory=dict)
    study_areas: int = 0
    containers: int = 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def projects(self) -> int:
        return len(self.project_counts)


class QueryFilter(BaseModel):
    project_id: Optional[str] = None
    diagnostics: List[str] = Field(default_factory=list)


class QueryResult(BaseModel):
    rows: List[SherdRecord] = Field(default_factory=list)
    stats: AggregateStats = Field(default_factory=AggregateStats)
    distinct_diagnostics: List[str] = Field(default_factory=list)


class AggregationResult(BaseModel):
    rows: List[FlatRow] = Field(default_factory=list)
    stats: AggregateStats = Field(default_factory=AggregateStats)


class ProjectSummary(BaseModel):
    id: str
    project_name: str
