"""Composition DTOs for the API layer.

Thin wrappers over the record models. Do not duplicate record fields here.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, Field

from ..records.models import AggregateStats


class DiagnosticShare(BaseModel):
    """One bar of the diagnostic-type distribution."""
    name: str
    count: int
    percentage: float


class ViewState(BaseModel):
    """What a view renders: rows, stats, error banner and loading gate."""
    rows: List[Any] = Field(default_factory=list)  # FlatRow or SherdRecord, per view
    stats: AggregateStats = Field(default_factory=AggregateStats)
    error: Optional[str] = None
    loading: bool = False
