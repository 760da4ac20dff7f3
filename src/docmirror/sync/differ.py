"""Decide which tags and branches of a project need syncing.

Tags are immutable: a tag is wanted when its ``major.minor`` folder is not
already present locally, it is not excluded, and it is not older than
``start_at_tag``.

Branches move: a branch is wanted when its head sha differs from the
cached sha, when nothing is cached, or when its local folder is missing.
The folder check makes a deleted output directory heal itself on the next
run even though the cache says the branch is current.
"""

from __future__ import annotations

import logging

from docmirror import versions
from docmirror.core.client import GithubClient
from docmirror.errors import ConfigError, ParseError, RemoteError
from docmirror.file_handler import FilesystemWriter
from docmirror.projects import Project
from docmirror.sync.models import RefType
from docmirror.sync.paths import resolve_paths
from docmirror.sync.state import SyncCache

logger = logging.getLogger(__name__)


class ReferenceDiffer:
    """Compute the unsynced references of a project.

    Args:
        client: GitHub client used for tag and branch listings.
        cache: Branch sha cache.
        fs: Filesystem used to check local destination folders.
    """

    def __init__(
        self,
        client: GithubClient,
        cache: SyncCache,
        fs: FilesystemWriter,
    ) -> None:
        self.client = client
        self.cache = cache
        self.fs = fs

    def unsynced_tags(self, project: Project) -> list[str]:
        """Tags to sync, in the order the remote lists them."""
        gh = project.github
        logger.info("Getting unsynced tags for %s", project.slug)

        local_keys = set(project.version_keys())
        excludes = set(gh.exclude_tags)
        start = versions.parse(gh.start_at_tag) if gh.start_at_tag else None

        try:
            tags = self.client.list_tags(gh.username, gh.repository)
        except RemoteError as exc:
            logger.error(
                "Could not list tags for %s (%s/%s): %s",
                project.slug,
                gh.username,
                gh.repository,
                exc,
            )
            return []

        wanted: list[str] = []
        for tag in tags:
            name = tag["name"]
            try:
                parsed = versions.parse(name)
            except ParseError:
                logger.info(
                    "Skipping tag %s of %s: not a version", name, project.slug
                )
                continue

            if name in excludes:
                reason = "excluded"
            elif versions.short_key(parsed) in local_keys:
                reason = "already synced"
            elif start is not None and versions.compare(parsed, start) < 0:
                reason = f"older than {gh.start_at_tag}"
            else:
                logger.info(
                    "Marking tag %s of %s for synchronisation",
                    name,
                    project.slug,
                )
                wanted.append(name)
                continue

            logger.info("Skipping tag %s of %s: %s", name, project.slug, reason)

        return wanted

    def unsynced_branches(self, project: Project) -> list[str]:
        """Branches whose content changed or whose local folder is missing.

        Returns an empty list when the project tracks no branches.  The
        result is not filtered by the tracked list; ``sync_branch`` does
        that.
        """
        gh = project.github
        logger.info("Getting unsynced branches for %s", project.slug)

        if not gh.branches:
            return []

        try:
            branches = self.client.list_branches(gh.username, gh.repository)
        except RemoteError as exc:
            logger.error(
                "Could not list branches for %s (%s/%s): %s",
                project.slug,
                gh.username,
                gh.repository,
                exc,
            )
            return []

        wanted: list[str] = []
        for branch in branches:
            name = branch["name"]
            sha = branch.get("commit", {}).get("sha")
            cached = self.cache.get(project.slug, name)

            try:
                destination = resolve_paths(
                    project, name, RefType.BRANCH
                ).local_destination
                has_output = self.fs.is_directory(destination)
            except ConfigError:
                has_output = False

            if cached is None or cached != sha or not has_output:
                logger.info(
                    "Marking branch %s of %s for synchronisation "
                    "(cached=%s remote=%s output=%s)",
                    name,
                    project.slug,
                    cached,
                    sha,
                    has_output,
                )
                wanted.append(name)
            else:
                logger.info(
                    "Skipping branch %s of %s: unchanged at %s",
                    name,
                    project.slug,
                    sha,
                )

        return wanted
