"""Documentation projects and the registry that builds them from config.

A ``Project`` pairs a slug with its validated ``ProjectConfig`` and a
snapshot of the version folders present under its local root.  The
snapshot is taken once at construction; a sync run never re-scans it, so
folders created during the run do not change which tags are considered
already materialized.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Mapping

from docmirror import versions
from docmirror.config_schema import ProjectConfig, UnifiedConfig
from docmirror.errors import ParseError, ResolutionError

logger = logging.getLogger(__name__)


class PageKind(str, Enum):
    """How a staged page is meant to be rendered downstream."""

    MARKDOWN = "markdown"
    API_DOC = "api_doc"


class Project:
    """One documentation project.

    Args:
        slug: Unique project identifier.
        config: Validated project settings.
    """

    def __init__(self, slug: str, config: ProjectConfig) -> None:
        self.slug = slug
        self.config = config
        self.path = Path(config.path).expanduser().resolve()
        self._versions = self._scan_versions()

    def __repr__(self) -> str:
        return f"Project({self.slug!r})"

    def _scan_versions(self) -> dict[str, Path]:
        if not self.path.is_dir():
            return {}
        return {
            child.name: child
            for child in sorted(self.path.iterdir())
            if child.is_dir()
        }

    # ------------------------------------------------------------------
    # Versions
    # ------------------------------------------------------------------

    @property
    def versions(self) -> Mapping[str, Path]:
        """Local version folder name -> absolute path (snapshot)."""
        return dict(self._versions)

    def version_keys(self) -> list[str]:
        return list(self._versions)

    def sorted_versions(self, mode: str = "desc") -> list[str]:
        """Version folder names in display order.

        Tracked branches come first, in configured order.  Semver folders
        follow, sorted by version.  Anything else comes last, by name.
        """
        branches = self.config.github.branches if self.has_github_branches else []
        keys = [k for k in self._versions if k not in branches]

        numeric: list[str] = []
        other: list[str] = []
        for key in keys:
            try:
                versions.parse(key)
            except ParseError:
                other.append(key)
            else:
                numeric.append(key)

        ordered = versions.sort_descending(numeric)
        if mode != "desc":
            ordered.reverse()

        present_branches = [b for b in branches if b in self._versions]
        return present_branches + ordered + sorted(other)

    @property
    def default_version(self) -> str | None:
        """The version a reader lands on.

        Resolution: configured ``default_version``, then ``master`` when it
        is a tracked branch, then the highest local ``major.minor`` folder.
        """
        if self.config.default_version:
            return self.config.default_version

        if self.has_github_branches and "master" in self.config.github.branches:
            return "master"

        return versions.highest_short_version(self._versions)

    # ------------------------------------------------------------------
    # GitHub
    # ------------------------------------------------------------------

    @property
    def github(self):
        return self.config.github

    @property
    def is_github(self) -> bool:
        return self.config.github.enabled

    @property
    def has_github_branches(self) -> bool:
        return self.is_github and bool(self.config.github.branches)

    def is_tracked_branch(self, branch: str) -> bool:
        return self.has_github_branches and branch in self.config.github.branches

    @property
    def github_url(self) -> str:
        if not self.is_github:
            return "#"
        gh = self.config.github
        return f"https://github.com/{gh.username}/{gh.repository}"

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------

    @property
    def phpdoc_enabled(self) -> bool:
        return self.config.phpdoc is not None and self.config.phpdoc.enabled

    def page_kind(self, page_path: str) -> PageKind:
        """Classify *page_path*: API doc when under ``phpdoc.dir``."""
        if self.phpdoc_enabled:
            api_dir = self.config.phpdoc.dir.strip("/")
            clean = page_path.strip("/")
            if clean == api_dir or clean.startswith(api_dir + "/"):
                return PageKind.API_DOC
        return PageKind.MARKDOWN


class ProjectRegistry:
    """Builds ``Project`` instances from the ``projects`` config section.

    A fresh ``Project`` (and so a fresh version snapshot) is made on every
    ``make()`` call.
    """

    def __init__(self, projects: Mapping[str, ProjectConfig]) -> None:
        self._projects = dict(projects)

    @classmethod
    def from_config(cls, unified: UnifiedConfig) -> ProjectRegistry:
        return cls(unified.projects)

    def has(self, slug: str) -> bool:
        return slug in self._projects

    def slugs(self) -> list[str]:
        return sorted(self._projects)

    def make(self, slug: str) -> Project:
        """Build the project for *slug*.

        Raises:
            ResolutionError: If no project is configured under *slug*.
        """
        if slug not in self._projects:
            raise ResolutionError(f"Project '{slug}' does not exist")
        return Project(slug, self._projects[slug])
