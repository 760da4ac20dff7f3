"""Pydantic models for the documentation sync engine.

Defines the data contracts produced by a sync run:

- ``RefType``: whether a reference is a tag or a branch.
- ``RefStatus``: terminal state of one reference.
- ``RefSyncResult``: outcome of syncing one reference.
- ``ProjectSyncReport``: aggregate results for a project run.

All models are frozen (immutable).
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class RefType(str, Enum):
    """Kind of remote reference."""

    TAG = "tag"
    BRANCH = "branch"


class RefStatus(str, Enum):
    """Terminal state of a reference after a sync attempt."""

    SYNCED = "synced"
    SKIPPED = "skipped"
    FAILED = "failed"
    IGNORED = "ignored"


class RefSyncResult(BaseModel):
    """Result of syncing one reference.

    Attributes:
        project: Project slug.
        ref: Tag or branch name.
        ref_type: Tag or branch.
        status: Terminal state.
        destination: Local destination folder, when paths resolved.
        pages_written: Page identifiers written locally.
        pages_missing: Page identifiers listed in the manifest but absent
            (or unreadable) on the remote.
        structure_written: Whether ``structure.xml`` was staged.
        cache_updated: Whether the branch sha was recorded.
        error: Reason for a skip or failure.
    """

    project: str
    ref: str
    ref_type: RefType
    status: RefStatus
    destination: str | None = None
    pages_written: list[str] = []
    pages_missing: list[str] = []
    structure_written: bool = False
    cache_updated: bool = False
    error: str | None = None

    model_config = {"frozen": True}


class ProjectSyncReport(BaseModel):
    """Aggregate report for a project sync run.

    Attributes:
        project: Project slug (or the unresolved handle).
        results: Per-reference results, tags first.
        started_at: ISO 8601 timestamp when the run started.
        completed_at: ISO 8601 timestamp when the run completed.
        error: Why the project could not be synced at all.
    """

    project: str
    results: list[RefSyncResult] = []
    started_at: str
    completed_at: str | None = None
    error: str | None = None

    model_config = {"frozen": True}

    def _with_status(self, status: RefStatus) -> list[RefSyncResult]:
        return [r for r in self.results if r.status == status]

    @property
    def synced(self) -> list[RefSyncResult]:
        return self._with_status(RefStatus.SYNCED)

    @property
    def skipped(self) -> list[RefSyncResult]:
        return self._with_status(RefStatus.SKIPPED)

    @property
    def failed(self) -> list[RefSyncResult]:
        return self._with_status(RefStatus.FAILED)

    @property
    def ignored(self) -> list[RefSyncResult]:
        return self._with_status(RefStatus.IGNORED)

    @property
    def pages_written(self) -> int:
        """Total number of pages written across all references."""
        return sum(len(r.pages_written) for r in self.results)

    def summary(self) -> str:
        """Format a human-readable summary of the run.

        Returns:
            Multi-line summary string with counts by status.
        """
        lines = [f"Sync report for project '{self.project}'"]
        if self.error:
            lines.append(f"  Not synced: {self.error}")
            return "\n".join(lines)
        lines.extend(
            [
                f"  Synced:   {len(self.synced)}",
                f"  Skipped:  {len(self.skipped)}",
                f"  Failed:   {len(self.failed)}",
                f"  Ignored:  {len(self.ignored)}",
                f"  Pages:    {self.pages_written}",
                f"  Total:    {len(self.results)}",
            ]
        )
        return "\n".join(lines)
