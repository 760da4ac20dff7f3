"""Synchronise the documentation of a single tag or branch.

``RefSynchronizer.sync_ref()`` runs a fixed sequence for one reference:

1. Resolve remote and local paths.
2. Check that the docs folder exists at the reference.
3. Fetch ``<docs>/menu.yml`` and extract the page list.
4. Fetch every page and write it below the local destination.
5. Write the manifest itself to ``<destination>/menu.yml``.
6. If API docs are enabled, stage ``structure.xml``.
7. For branches, record the head sha in the sync cache.

Remote problems end the reference (steps 2-3) or skip a single item
(pages, ``structure.xml``).  Local write errors (``OSError``) propagate so
the caller can mark the reference failed; a half-written destination is
never reported as synced, and one this run created is deleted again.
"""

from __future__ import annotations

import base64
import binascii
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path, PurePosixPath

from docmirror.core.client import GithubClient, RepoContent
from docmirror.errors import ConfigError, ParseError, RemoteError
from docmirror.file_handler import FilesystemWriter, is_within
from docmirror.projects import Project
from docmirror.sync.manifest import extract_pages, parse_manifest
from docmirror.sync.models import RefStatus, RefSyncResult, RefType
from docmirror.sync.paths import SyncPaths, resolve_paths
from docmirror.sync.state import SyncCache

logger = logging.getLogger(__name__)

MANIFEST_NAME = "menu.yml"
STRUCTURE_NAME = "structure.xml"


def decode_content(entry: dict) -> bytes:
    """Decode the base64 ``content`` of a contents API entry.

    Raises:
        ParseError: If the content is missing or not valid base64.
    """
    content = entry.get("content")
    if content is None:
        raise ParseError(f"No content in remote entry {entry.get('path')}")
    try:
        return base64.b64decode(content)
    except (binascii.Error, ValueError) as exc:
        raise ParseError(
            f"Could not decode {entry.get('path')}: {exc}"
        ) from exc


class RefSynchronizer:
    """Run the per-reference sync sequence.

    Args:
        client: GitHub client.
        cache: Branch sha cache, written for branches only.
        fs: Local filesystem writer.
        max_parallel_pages: Worker count for page fetches.
    """

    def __init__(
        self,
        client: GithubClient,
        cache: SyncCache,
        fs: FilesystemWriter,
        max_parallel_pages: int = 8,
    ) -> None:
        self.client = client
        self.cache = cache
        self.fs = fs
        self.max_parallel_pages = max_parallel_pages

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    def sync_ref(
        self, project: Project, ref: str, ref_type: RefType
    ) -> RefSyncResult:
        """Synchronise *ref* of *project*.

        Raises:
            OSError: If writing to the local destination fails.
        """
        kind = ref_type.value

        # Step 1: paths
        try:
            paths = resolve_paths(project, ref, ref_type)
        except ConfigError as exc:
            logger.error(
                "Could not resolve paths for %s %s of %s: %s",
                kind,
                ref,
                project.slug,
                exc,
            )
            return self._result(project, ref, ref_type, RefStatus.FAILED, error=str(exc))

        logger.info(
            "Synchronizing docs for %s %s of %s (paths=%s)",
            kind,
            ref,
            project.slug,
            paths.as_dict(),
        )

        gh = project.github
        content = self.client.repo_content(gh.username, gh.repository)

        # Step 2: docs root
        if not content.exists(paths.docs, ref):
            logger.error(
                "Could not synchronize docs for %s %s of %s: no '%s' folder",
                kind,
                ref,
                project.slug,
                paths.docs,
            )
            return self._result(
                project,
                ref,
                ref_type,
                RefStatus.SKIPPED,
                paths=paths,
                error=f"docs folder '{paths.docs}' not found",
            )

        # Step 3: manifest
        try:
            menu_bytes = decode_content(content.show(paths.menu, ref))
            pages = extract_pages(parse_manifest(menu_bytes))
        except (RemoteError, ParseError) as exc:
            logger.error(
                "Could not read %s for %s %s of %s: %s",
                paths.menu,
                kind,
                ref,
                project.slug,
                exc,
            )
            return self._result(
                project, ref, ref_type, RefStatus.FAILED, paths=paths, error=str(exc)
            )

        logger.info(
            "Found %d page(s) in %s for %s %s of %s",
            len(pages),
            paths.menu,
            kind,
            ref,
            project.slug,
        )

        # Steps 4-6 write locally; a destination created here is removed on
        # failure.
        created = not self.fs.is_directory(paths.local_destination)
        try:
            written, missing, structure_written = self._stage(
                project, content, paths, ref, ref_type, pages, menu_bytes
            )
        except OSError:
            if created:
                self._discard(paths.local_destination)
            raise

        # Step 7: branch cache
        cache_updated = False
        if ref_type == RefType.BRANCH:
            cache_updated = self._update_cache(project, ref)

        return self._result(
            project,
            ref,
            ref_type,
            RefStatus.SYNCED,
            paths=paths,
            pages_written=written,
            pages_missing=missing,
            structure_written=structure_written,
            cache_updated=cache_updated,
        )

    def _stage(
        self,
        project: Project,
        content: RepoContent,
        paths: SyncPaths,
        ref: str,
        ref_type: RefType,
        pages: list[str],
        menu_bytes: bytes,
    ) -> tuple[list[str], list[str], bool]:
        # Step 4: pages
        self.fs.make_directory(paths.local_destination, recursive=True)
        written, missing = self._stage_pages(project, content, paths, ref, pages)

        # Step 5: manifest copy
        self.fs.put(paths.local_destination / MANIFEST_NAME, menu_bytes)

        # Step 6: API doc structure
        structure_written = False
        if project.phpdoc_enabled:
            structure_written = self._stage_structure(project, content, paths, ref, ref_type)
        return written, missing, structure_written

    def _discard(self, destination: Path) -> None:
        logger.warning("Removing partially written %s", destination)
        try:
            self.fs.remove_tree(destination)
        except OSError as exc:
            logger.error("Could not remove %s: %s", destination, exc)

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------

    def _stage_pages(
        self,
        project: Project,
        content: RepoContent,
        paths: SyncPaths,
        ref: str,
        pages: list[str],
    ) -> tuple[list[str], list[str]]:
        """Fetch and write *pages*; returns ``(written, missing)``.

        Raises:
            OSError: The first local write failure, after every page has
                been attempted.
        """
        if not pages:
            return [], []

        workers = min(self.max_parallel_pages, len(pages))
        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix=f"pages-{project.slug}"
        ) as executor:
            futures = [
                executor.submit(self._stage_page, project, content, paths, ref, page)
                for page in pages
            ]

        written: list[str] = []
        missing: list[str] = []
        first_error: OSError | None = None
        for page, future in zip(pages, futures):
            try:
                ok = future.result()
            except OSError as exc:
                logger.error(
                    "Could not write page %s for %s of %s: %s",
                    page,
                    ref,
                    project.slug,
                    exc,
                )
                if first_error is None:
                    first_error = exc
                continue
            (written if ok else missing).append(page)

        if first_error is not None:
            raise first_error
        return written, missing

    def _stage_page(
        self,
        project: Project,
        content: RepoContent,
        paths: SyncPaths,
        ref: str,
        page: str,
    ) -> bool:
        """Fetch and write one page.  Returns False if it was skipped."""
        # page ids are relative to the docs folder even with a leading slash
        remote_path = str(PurePosixPath(paths.docs) / f"{page.lstrip('/')}.md")

        if not content.exists(remote_path, ref):
            logger.info(
                "Skipping page %s of %s@%s: not found remotely",
                remote_path,
                project.slug,
                ref,
            )
            return False

        try:
            entry = content.show(remote_path, ref)
            data = decode_content(entry)
        except (RemoteError, ParseError) as exc:
            logger.error(
                "Could not fetch page %s of %s@%s: %s",
                remote_path,
                project.slug,
                ref,
                exc,
            )
            return False

        target = self._local_page_path(paths, entry, remote_path)
        if not is_within(target, paths.local_destination):
            logger.error(
                "Skipping page %s of %s@%s: resolves outside %s",
                remote_path,
                project.slug,
                ref,
                paths.local_destination,
            )
            return False

        self.fs.make_directory(target.parent, recursive=True)
        self.fs.put(target, data)
        logger.debug("Wrote %s (%d bytes)", target, len(data))
        return True

    @staticmethod
    def _local_page_path(paths: SyncPaths, entry: dict, requested: str) -> Path:
        """Mirror the remote file's location below the docs folder."""
        remote = PurePosixPath(entry.get("path") or requested)
        name = entry.get("name") or remote.name
        docs = PurePosixPath(paths.docs.strip("/"))
        try:
            relative_dir = remote.parent.relative_to(docs)
        except ValueError:
            relative_dir = remote.parent
        return paths.local_destination.joinpath(*relative_dir.parts, name)

    # ------------------------------------------------------------------
    # Structure artifact
    # ------------------------------------------------------------------

    def _stage_structure(
        self,
        project: Project,
        content: RepoContent,
        paths: SyncPaths,
        ref: str,
        ref_type: RefType,
    ) -> bool:
        phpdoc = project.config.phpdoc
        xml_path = phpdoc.github_xml_path

        if not content.exists(xml_path, ref):
            logger.error(
                "Could not synchronize API docs for %s %s of %s: "
                "%s not found",
                ref_type.value,
                ref,
                project.slug,
                xml_path,
            )
            return False

        try:
            data = decode_content(content.show(xml_path, ref))
        except (RemoteError, ParseError) as exc:
            logger.error(
                "Could not fetch %s for %s of %s: %s",
                xml_path,
                ref,
                project.slug,
                exc,
            )
            return False

        destination = paths.local_destination.joinpath(
            *PurePosixPath(phpdoc.dir.strip("/")).parts, STRUCTURE_NAME
        )
        logger.info("Writing %s", destination)
        self.fs.make_directory(destination.parent, recursive=True)
        self.fs.put(destination, data)
        return True

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def _update_cache(self, project: Project, branch: str) -> bool:
        gh = project.github
        try:
            data = self.client.get_branch(gh.username, gh.repository, branch)
            sha = data["commit"]["sha"]
        except (RemoteError, KeyError, TypeError) as exc:
            logger.error(
                "Could not record head of branch %s of %s: %s",
                branch,
                project.slug,
                exc,
            )
            return False

        self.cache.set(project.slug, branch, sha)
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _result(
        project: Project,
        ref: str,
        ref_type: RefType,
        status: RefStatus,
        paths: SyncPaths | None = None,
        **fields,
    ) -> RefSyncResult:
        return RefSyncResult(
            project=project.slug,
            ref=ref,
            ref_type=ref_type,
            status=status,
            destination=str(paths.local_destination) if paths else None,
            **fields,
        )
