"""Remote sub-paths and local destination for one reference.

Remote paths start from fixed defaults and are overlaid with the
project's ``github.path_bindings``; a binding may override a default
(``docs: documentation``) or add a new key.

The local destination is ``<project path>/<folder>`` where the folder is
the ``major.minor`` short key for tags and the branch name verbatim for
branches.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from types import MappingProxyType
from typing import Mapping

from docmirror import versions
from docmirror.errors import ConfigError, ParseError
from docmirror.projects import Project
from docmirror.sync.models import RefType

DEFAULT_REMOTE_PATHS: Mapping[str, str] = MappingProxyType(
    {
        "docs": "docs",
        "logs": "build/logs",
        "index_md": "docs/index.md",
    }
)


@dataclass(frozen=True)
class SyncPaths:
    """Paths computed for one reference.  Never persisted."""

    remote: Mapping[str, str]
    local_project: Path
    local_destination: Path
    folder: str = field(default="")

    @property
    def docs(self) -> str:
        return self.remote["docs"]

    @property
    def logs(self) -> str:
        return self.remote["logs"]

    @property
    def index_md(self) -> str:
        return self.remote["index_md"]

    @property
    def menu(self) -> str:
        """Remote path of the navigation manifest."""
        return str(PurePosixPath(self.docs) / "menu.yml")

    def as_dict(self) -> dict[str, str]:
        """Flat mapping for log output."""
        flat = dict(self.remote)
        flat["local.project"] = str(self.local_project)
        flat["local.destination"] = str(self.local_destination)
        return flat


def _branch_folder(branch: str) -> str:
    if (
        not branch.strip()
        or "\\" in branch
        or any(part in ("", ".", "..") for part in branch.split("/"))
    ):
        raise ConfigError(f"Branch name '{branch}' cannot be used as a folder")
    return branch


def resolve_paths(project: Project, ref: str, ref_type: RefType) -> SyncPaths:
    """Compute the ``SyncPaths`` for *ref* of *project*.

    Raises:
        ConfigError: If a tag is not a semantic version, or a branch name
            would escape the project folder.
    """
    remote = dict(DEFAULT_REMOTE_PATHS)
    remote.update(project.config.github.path_bindings)

    if ref_type == RefType.TAG:
        try:
            folder = versions.short_key(versions.parse(ref))
        except ParseError as exc:
            raise ConfigError(
                f"Tag '{ref}' of project '{project.slug}' is not a version: {exc}"
            ) from exc
    else:
        folder = _branch_folder(ref)

    return SyncPaths(
        remote=MappingProxyType(remote),
        local_project=project.path,
        local_destination=project.path / folder,
        folder=folder,
    )
