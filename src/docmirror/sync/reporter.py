"""Sync report formatting functions.

- ``format_sync_report`` -- human-readable summary of a project run.
- ``report_to_json`` -- structured dict for JSON serialisation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ProjectSyncReport, RefSyncResult


def _describe(result: RefSyncResult) -> str:
    return f"{result.ref_type.value} {result.ref}"


# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------


def format_sync_report(report: ProjectSyncReport) -> str:
    """Format a project sync report as human-readable text.

    Sections are only included when they contain at least one result.
    Ignored branches are summarised by count only.

    Args:
        report: The completed sync report.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = [f"Sync report for '{report.project}'"]
    lines.append(f"Started: {report.started_at}")
    if report.completed_at:
        lines.append(f"Completed: {report.completed_at}")
    lines.append("")

    if report.error:
        lines.append(f"Nothing synced: {report.error}")
        return "\n".join(lines)

    if not report.results:
        lines.append("Everything up to date.")
        return "\n".join(lines)

    lines.append(
        f"Processed {len(report.results)} references: "
        f"{len(report.synced)} synced, {len(report.skipped)} skipped, "
        f"{len(report.failed)} failed, {report.pages_written} pages written"
    )
    lines.append("")

    if report.synced:
        lines.append("Synced:")
        for r in report.synced:
            detail = f"{len(r.pages_written)} pages"
            if r.pages_missing:
                detail += f", {len(r.pages_missing)} missing"
            if r.structure_written:
                detail += ", structure.xml"
            lines.append(f"  {_describe(r)} -> {r.destination} ({detail})")
        lines.append("")

    if report.skipped:
        lines.append("Skipped:")
        for r in report.skipped:
            lines.append(f"  {_describe(r)}: {r.error}")
        lines.append("")

    if report.failed:
        lines.append("Failed:")
        for r in report.failed:
            lines.append(f"  {_describe(r)}: {r.error}")
        lines.append("")

    if report.ignored:
        lines.append(f"Ignored: {len(report.ignored)} untracked branches")
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def report_to_json(report: ProjectSyncReport) -> dict:
    """Convert a sync report to a structured dict for JSON serialisation.

    Args:
        report: The sync report.

    Returns:
        Dict with project info, counts, and per-reference details.
    """
    results_list = []
    for r in report.results:
        entry: dict = {
            "ref": r.ref,
            "type": r.ref_type.value,
            "status": r.status.value,
            "destination": r.destination,
            "pages_written": len(r.pages_written),
            "pages_missing": list(r.pages_missing),
            "structure_written": r.structure_written,
            "cache_updated": r.cache_updated,
        }
        if r.error:
            entry["error"] = r.error
        results_list.append(entry)

    data: dict = {
        "project": report.project,
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "counts": {
            "total": len(report.results),
            "synced": len(report.synced),
            "skipped": len(report.skipped),
            "failed": len(report.failed),
            "ignored": len(report.ignored),
            "pages": report.pages_written,
        },
        "results": results_list,
    }
    if report.error:
        data["error"] = report.error
    return data
