"""Project-level sync engine.

``ProjectSynchronizer`` is the entry point of a sync run.  It:

1. Resolves the project handle (a ``Project`` or a slug).
2. Asks the ``ReferenceDiffer`` for unsynced tags and syncs them.
3. Asks the ``ReferenceDiffer`` for unsynced branches and syncs the
   tracked ones.
4. Returns a ``ProjectSyncReport``.

A project that cannot be resolved (unknown slug, GitHub disabled) is not
an error: the report carries the reason and nothing is fetched.

References run on a bounded thread pool.  Tags finish before branches
start.  Tags that share a ``major.minor`` folder are synced by one worker
in ascending version order, so the folder ends up holding the highest
patch release and no two workers write the same destination.  One
reference's failure never cancels another.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path

from docmirror import versions
from docmirror.config import Config
from docmirror.config_schema import UnifiedConfig
from docmirror.core.client import GithubClient
from docmirror.errors import ResolutionError
from docmirror.file_handler import FilesystemWriter, LocalFilesystem
from docmirror.projects import Project, ProjectRegistry
from docmirror.sync.differ import ReferenceDiffer
from docmirror.sync.models import (
    ProjectSyncReport,
    RefStatus,
    RefSyncResult,
    RefType,
)
from docmirror.sync.ref_sync import RefSynchronizer
from docmirror.sync.state import JsonFileCacheStore, SyncCache

logger = logging.getLogger(__name__)


class ProjectSynchronizer:
    """Sync every unsynced reference of a project.

    Args:
        client: GitHub client.
        projects: Registry used to resolve slugs.
        cache: Branch sha cache.
        fs: Local filesystem writer (defaults to the real filesystem).
        max_parallel_refs: Worker count for references.
        max_parallel_pages: Worker count for pages within one reference.
    """

    def __init__(
        self,
        client: GithubClient,
        projects: ProjectRegistry,
        cache: SyncCache,
        fs: FilesystemWriter | None = None,
        max_parallel_refs: int = 4,
        max_parallel_pages: int = 8,
    ) -> None:
        self.client = client
        self.projects = projects
        self.cache = cache
        self.fs = fs or LocalFilesystem()
        self.max_parallel_refs = max_parallel_refs

        self.differ = ReferenceDiffer(client, cache, self.fs)
        self.ref_sync = RefSynchronizer(
            client, cache, self.fs, max_parallel_pages=max_parallel_pages
        )

    @classmethod
    def from_config(
        cls, unified: UnifiedConfig, runtime: Config
    ) -> ProjectSynchronizer:
        """Wire a synchronizer from loaded configuration."""
        return cls(
            client=GithubClient(runtime),
            projects=ProjectRegistry.from_config(unified),
            cache=SyncCache(JsonFileCacheStore(Path(runtime.cache_file))),
            max_parallel_refs=runtime.max_parallel_refs,
            max_parallel_pages=runtime.max_parallel_pages,
        )

    # ------------------------------------------------------------------
    # Project resolution
    # ------------------------------------------------------------------

    def resolve_project(self, project: Project | str) -> Project:
        """Turn a handle into a syncable ``Project``.

        Raises:
            ResolutionError: If the slug is unknown or GitHub sync is
                disabled for the project.
        """
        if not isinstance(project, Project):
            project = self.projects.make(project)

        if not project.is_github:
            raise ResolutionError(
                f"Project '{project.slug}' has GitHub sync disabled"
            )
        return project

    def _try_resolve(self, handle: Project | str) -> Project | None:
        try:
            return self.resolve_project(handle)
        except ResolutionError as exc:
            logger.error("Resolve project failed: %s", exc)
            return None

    # ------------------------------------------------------------------
    # Main entry points
    # ------------------------------------------------------------------

    def sync(self, project: Project | str) -> ProjectSyncReport:
        """Sync all unsynced tags, then all unsynced tracked branches."""
        started_at = datetime.now(timezone.utc).isoformat()
        handle = project.slug if isinstance(project, Project) else str(project)

        try:
            resolved = self.resolve_project(project)
        except ResolutionError as exc:
            logger.error("Resolve project failed: %s", exc)
            return ProjectSyncReport(
                project=handle,
                started_at=started_at,
                completed_at=datetime.now(timezone.utc).isoformat(),
                error=str(exc),
            )

        logger.info("Synchronising project %s", resolved.slug)

        results: list[RefSyncResult] = []

        tags = self.differ.unsynced_tags(resolved)
        results.extend(self._run_tags(resolved, tags))

        branches = self.differ.unsynced_branches(resolved)
        results.extend(self._run_branches(resolved, branches))

        report = ProjectSyncReport(
            project=resolved.slug,
            results=results,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc).isoformat(),
        )
        logger.info(
            "Synchronised project %s: %d synced, %d skipped, %d failed",
            resolved.slug,
            len(report.synced),
            len(report.skipped),
            len(report.failed),
        )
        return report

    def sync_tag(self, project: Project | str, tag: str) -> RefSyncResult | None:
        """Sync one tag.  Returns ``None`` if the project does not resolve."""
        resolved = self._try_resolve(project)
        if resolved is None:
            return None
        return self._run_ref(resolved, tag, RefType.TAG)

    def sync_branch(
        self, project: Project | str, branch: str
    ) -> RefSyncResult | None:
        """Sync one branch if the project tracks it.

        An untracked branch yields an ``IGNORED`` result without any remote
        call.  Returns ``None`` if the project does not resolve.
        """
        resolved = self._try_resolve(project)
        if resolved is None:
            return None
        return self._sync_tracked_branch(resolved, branch)

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def _sync_tracked_branch(self, project: Project, branch: str) -> RefSyncResult:
        if not project.is_tracked_branch(branch):
            logger.debug(
                "Ignoring branch %s of %s: not tracked", branch, project.slug
            )
            return RefSyncResult(
                project=project.slug,
                ref=branch,
                ref_type=RefType.BRANCH,
                status=RefStatus.IGNORED,
                error="branch is not tracked",
            )
        return self._run_ref(project, branch, RefType.BRANCH)

    def _run_ref(
        self, project: Project, ref: str, ref_type: RefType
    ) -> RefSyncResult:
        """Sync one reference.

        Local write errors and unexpected exceptions become a ``FAILED``
        result so sibling references keep running.
        """
        try:
            return self.ref_sync.sync_ref(project, ref, ref_type)
        except OSError as exc:
            logger.error(
                "Aborted %s %s of %s: local write failed: %s",
                ref_type.value,
                ref,
                project.slug,
                exc,
            )
            return RefSyncResult(
                project=project.slug,
                ref=ref,
                ref_type=ref_type,
                status=RefStatus.FAILED,
                error=f"local write failed: {exc}",
            )
        except Exception as exc:
            logger.exception(
                "Error syncing %s %s of %s", ref_type.value, ref, project.slug
            )
            return RefSyncResult(
                project=project.slug,
                ref=ref,
                ref_type=ref_type,
                status=RefStatus.FAILED,
                error=str(exc),
            )

    def _run_tags(self, project: Project, tags: list[str]) -> list[RefSyncResult]:
        # Group by destination folder; keep first-seen group order
        groups: dict[str, list[str]] = {}
        for tag in tags:
            key = versions.short_key(versions.parse(tag))
            groups.setdefault(key, []).append(tag)

        def run_group(group: list[str]) -> list[RefSyncResult]:
            ordered = sorted(group, key=versions.parse)
            return [self._run_ref(project, tag, RefType.TAG) for tag in ordered]

        per_group = self._map(run_group, list(groups.values()))
        by_tag = {r.ref: r for results in per_group for r in results}
        return [by_tag[tag] for tag in tags]

    def _run_branches(
        self, project: Project, branches: list[str]
    ) -> list[RefSyncResult]:
        return self._map(
            lambda branch: self._sync_tracked_branch(project, branch), branches
        )

    def _map(self, func, items: list) -> list:
        """Apply *func* to *items* on the ref pool, preserving order."""
        if not items:
            return []
        workers = min(self.max_parallel_refs, len(items))
        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="refs"
        ) as executor:
            return list(executor.map(func, items))
