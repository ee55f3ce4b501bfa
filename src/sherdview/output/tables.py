"""Table rendering (markdown and JSON).

This module is renderer-only. All query/transform logic lives in the api layer.
"""

import json
from typing import Any, Dict, List, Sequence

from ..api.universal_api import diagnostic_distribution
from ..records.models import AggregationResult, ProjectSummary, QueryResult, SherdRecord
from ..utils.time import EPOCH, utc_now_z

PROJECT_ID_WIDTH = 5


def format_project_id(project_id: str) -> str:
    """Left-pad a project id with zeros for display ("42" -> "00042")."""
    return project_id.rjust(PROJECT_ID_WIDTH, "0")


def format_weight(weight: float) -> str:
    return f"{weight:.2f}g"


def _format_created(record: SherdRecord) -> str:
    if record.created_at == EPOCH:
        return "-"
    return record.created_at.strftime("%Y-%m-%d %H:%M")


def _cell(value: Any) -> str:
    return str(value).replace("|", "\\|").replace("\n", " ")


def _table(headers: Sequence[str], rows: Sequence[Sequence[Any]]) -> List[str]:
    lines = [
        "| " + " | ".join(headers) + " |",
        "|" + "|".join("---" for _ in headers) + "|",
    ]
    for row in rows:
        lines.append("| " + " | ".join(_cell(v) for v in row) + " |")
    return lines


def render_projects_markdown(projects: Sequence[ProjectSummary]) -> str:
    if not projects:
        return "No projects found."
    lines = ["# Projects", ""]
    lines.extend(_table(["ID", "Project"], [(p.id, p.project_name) for p in projects]))
    return "\n".join(lines)


def render_project_markdown(project_id: str, result: AggregationResult) -> str:
    """Render a project's stats cards and flattened sherd table."""
    stats = result.stats
    lines = [f"# Sherd Data for {project_id.upper()} ({len(result.rows)} records)", ""]
    lines.append("## Summary")
    lines.append("")
    lines.append(f"- **Total Sherds:** {stats.total_sherds}")
    lines.append(f"- **Total Weight:** {format_weight(stats.total_weight)}")
    lines.append(f"- **Study Areas:** {stats.study_areas}")
    lines.append(f"- **Containers:** {stats.containers}")
    lines.append("")
    
    if not result.rows:
        lines.append("_No sherd data for this project._")
        return "\n".join(lines)
    
    headers = [
        "Study Area", "Strat Unit", "Container", "Group", "Diagnostic",
        "Qualification", "Weight (g)", "Count", "Sherd ID", "Source", "Confidence",
    ]
    rows = [
        (
            r.study_area, r.strat_unit, r.container, r.group, r.diagnostic,
            r.qualification, f"{r.weight:.2f}", r.count, r.sherd_id, r.source, r.confidence,
        )
        for r in result.rows
    ]
    lines.extend(_table(headers, rows))
    return "\n".join(lines)


def render_universal_markdown(result: QueryResult) -> str:
    """Render search stats, the diagnostic distribution and the sherd table."""
    stats = result.stats
    lines = ["# Universal Sherd Database", ""]
    lines.append(f"- **Total Sherds:** {stats.total_sherds}")
    lines.append(f"- **Projects:** {stats.projects}")
    lines.append("")
    
    distribution = diagnostic_distribution(stats)
    if distribution:
        lines.append("## Diagnostic Type Distribution")
        lines.append("")
        for share in distribution:
            lines.append(f"- {share.name}: {share.count} ({share.percentage:.1f}%)")
        lines.append("")
    
    if not result.rows:
        lines.append("_No sherds found._")
        return "\n".join(lines)
    
    headers = ["ID", "Project", "Study Area", "Strat Unit", "Container", "Diagnostic", "Weight (g)", "Created"]
    rows = [
        (
            r.sherd_id or r.id,
            format_project_id(r.project_id),
            r.study_area_id,
            r.strat_unit_id,
            r.container_id,
            r.diagnostic_type,
            f"{r.weight:.2f}",
            _format_created(r),
        )
        for r in result.rows
    ]
    lines.extend(_table(headers, rows))
    return "\n".join(lines)


def render_sherd_detail(record: SherdRecord) -> str:
    """Render every field of one sherd (the detail view)."""
    box = record.bounding_box
    lines = [f"# Sherd {record.sherd_id or record.id}", ""]
    fields = [
        ("Project", format_project_id(record.project_id)),
        ("Study Area", record.study_area_id),
        ("Strat Unit", record.strat_unit_id),
        ("Container", record.container_id),
        ("Object Group", record.object_group_id),
        ("Diagnostic Type", record.diagnostic_type),
        ("Qualification", record.qualification_type or "-"),
        ("Weight", format_weight(record.weight)),
        ("Bounding Box", f"x={box.x:g}, y={box.y:g}, w={box.width:g}, h={box.height:g}"),
        ("Created", _format_created(record)),
    ]
    if record.analysis_confidence is not None:
        fields.append(("Analysis Confidence", f"{record.analysis_confidence * 100:.1f}%"))
    if record.original_image_url:
        fields.append(("Image", record.original_image_url))
    if record.notes:
        fields.append(("Notes", record.notes))
    for label, value in fields:
        lines.append(f"- **{label}:** {value}")
    return "\n".join(lines)


def render_json(payload: Dict[str, Any]) -> str:
    """Render a JSON-ready read model (model_dump(mode="json")) inside the export envelope."""
    envelope = {
        "export_schema_version": "1",
        "exported_at_utc": utc_now_z(),
        "data": payload,
    }
    return json.dumps(envelope, indent=2, sort_keys=True)
