"""Record normalization: the one place missing fields get their defaults.

Every document coming back from a store passes through here before any
aggregation touches it.
"""

from typing import Any, Dict, Optional

from ..records.models import (
    PLACEHOLDER,
    SOURCE_AI,
    SOURCE_MANUAL,
    UNSPECIFIED_DIAGNOSTIC,
    BoundingBox,
    HierarchicalObject,
    SherdRecord,
)
from ..utils.logging import get_logger
from ..utils.time import EPOCH, coerce_instant

logger = get_logger(__name__)


def _as_str(value: Any, default: str = "") -> str:
    if value is None or value == "":
        return default
    return str(value)


def _as_float(value: Any, default: float = 0.0) -> float:
    if value is None or value == "" or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.debug(f"Non-numeric value {value!r}, using {default}")
        return default
    if number < 0:
        logger.debug(f"Negative value {value!r}, using {default}")
        return default
    return number


def _as_optional_float(value: Any) -> Optional[float]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.debug(f"Non-numeric confidence {value!r}, dropping")
        return None


def normalize_bounding_box(data: Dict[str, Any]) -> BoundingBox:
    """
    Resolve a record's bounding box.
    
    Uses the nested "boundingBox" mapping when present, otherwise the
    top-level x/y/width/height fields. Every coordinate defaults to 0.
    """
    box = data.get("boundingBox")
    source = box if isinstance(box, dict) else data
    return BoundingBox(
        x=_as_float(source.get("x")),
        y=_as_float(source.get("y")),
        width=_as_float(source.get("width")),
        height=_as_float(source.get("height")),
    )


def normalize_sherd_record(doc_id: str, data: Optional[Dict[str, Any]]) -> SherdRecord:
    """
    Build a SherdRecord from a raw universal-collection document.
    
    Defaults:
    - string fields: "" (diagnosticType: "Unspecified")
    - weight: 0
    - boundingBox: all zero (see normalize_bounding_box)
    - createdAt: coerced to a UTC instant; missing or unparseable -> EPOCH
    - analysisConfidence: None when absent
    
    Args:
        doc_id: Document id within the collection
        data: Raw document fields (may be None for an empty document)
        
    Returns:
        Normalized SherdRecord
    """
    data = data or {}
    
    try:
        created_at = coerce_instant(data.get("createdAt"))
    except ValueError as e:
        logger.warning(f"Record {doc_id}: {e}; treating as undated")
        created_at = EPOCH
    
    return SherdRecord(
        id=doc_id,
        sherd_id=_as_str(data.get("sherdId")),
        project_id=_as_str(data.get("projectId")),
        study_area_id=_as_str(data.get("studyAreaId")),
        strat_unit_id=_as_str(data.get("stratUnitId")),
        container_id=_as_str(data.get("containerId")),
        object_group_id=_as_str(data.get("objectGroupId")),
        diagnostic_type=_as_str(data.get("diagnosticType"), UNSPECIFIED_DIAGNOSTIC),
        qualification_type=_as_str(data.get("qualificationType")),
        weight=_as_float(data.get("weight")),
        original_image_url=_as_str(data.get("originalImageUrl")),
        bounding_box=normalize_bounding_box(data),
        created_at=created_at,
        analysis_confidence=_as_optional_float(data.get("analysisConfidence")),
        notes=_as_str(data.get("notes")),
    )


def normalize_object(doc_id: str, data: Optional[Dict[str, Any]]) -> HierarchicalObject:
    """Build a HierarchicalObject from a raw objects-collection document."""
    data = data or {}
    
    count = data.get("count")
    try:
        count = int(count) if count is not None and not isinstance(count, bool) else 1
    except (TypeError, ValueError):
        logger.debug(f"Object {doc_id}: non-integer count {count!r}, using 1")
        count = 1
    if count < 1:
        logger.debug(f"Object {doc_id}: count {count} below 1, using 1")
        count = 1
    
    return HierarchicalObject(
        id=doc_id,
        diagnostic=_as_str(data.get("diagnostic"), UNSPECIFIED_DIAGNOSTIC),
        qualification=_as_str(data.get("qualification")),
        weight=_as_float(data.get("weight")),
        count=count,
        sherd_id=_as_str(data.get("sherd_id")) or None,
        created_from_image=bool(data.get("created_from_image", False)),
        analysis_confidence=_as_optional_float(data.get("analysis_confidence")),
    )


def source_label(obj: HierarchicalObject) -> str:
    """Return "AI Analysis" for objects created by automated analysis, else "Manual Entry"."""
    return SOURCE_AI if obj.created_from_image else SOURCE_MANUAL


def format_confidence(score: Optional[float]) -> str:
    """Format a [0, 1] confidence score as a one-decimal percentage, or the placeholder."""
    if score is None:
        return PLACEHOLDER
    return f"{score * 100:.1f}%"
