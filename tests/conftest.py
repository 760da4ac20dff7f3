"""Shared pytest fixtures for docmirror tests."""

from __future__ import annotations

import base64
from pathlib import PurePosixPath
from typing import Any

import pytest

from docmirror.config import Config
from docmirror.config_schema import ProjectConfig
from docmirror.core.client import RepoContent
from docmirror.errors import NotFoundError, RemoteError
from docmirror.file_handler import LocalFilesystem
from docmirror.projects import Project
from docmirror.sync.state import MemoryCacheStore, SyncCache

MENU_YML = """\
menu:
  - name: Introduction
    page: intro
  - name: GitHub
    href: https://github.com/acme/widget
  - name: Guides
    icon: fa-book
    children:
      - name: Install
        page: guides/install
"""


class FakeGithubClient:
    """In-memory stand-in for ``GithubClient``.

    ``files`` maps ref -> {path: content}; directories are implied by the
    file paths.  Every call is recorded in ``calls``.
    """

    def __init__(
        self,
        files: dict[str, dict[str, str | bytes]] | None = None,
        tags: list[str] | None = None,
        branches: dict[str, str] | None = None,
        failing_paths: set[str] | None = None,
    ) -> None:
        self.files = files or {}
        self.tags = tags or []
        self.branches = branches or {}
        self.failing_paths = failing_paths or set()
        self.calls: list[tuple[str, ...]] = []
        self.list_error: RemoteError | None = None

    # -- listings -------------------------------------------------------

    def list_tags(self, owner: str, repo: str) -> list[dict]:
        self.calls.append(("list_tags",))
        if self.list_error:
            raise self.list_error
        return [{"name": t, "commit": {"sha": f"sha-{t}"}} for t in self.tags]

    def list_branches(self, owner: str, repo: str) -> list[dict]:
        self.calls.append(("list_branches",))
        if self.list_error:
            raise self.list_error
        return [
            {"name": name, "commit": {"sha": sha}}
            for name, sha in self.branches.items()
        ]

    def get_branch(self, owner: str, repo: str, branch: str) -> dict:
        self.calls.append(("get_branch", branch))
        if branch not in self.branches:
            raise NotFoundError(f"branch {branch}")
        return {"name": branch, "commit": {"sha": self.branches[branch]}}

    # -- contents -------------------------------------------------------

    def get_contents(self, owner: str, repo: str, path: str, ref: str) -> Any:
        clean = path.strip("/")
        self.calls.append(("get_contents", clean, ref))
        if clean in self.failing_paths:
            raise RemoteError(f"Timed out requesting {clean}")

        tree = self.files.get(ref, {})
        if clean in tree:
            raw = tree[clean]
            data = raw.encode("utf-8") if isinstance(raw, str) else raw
            return {
                "type": "file",
                "path": clean,
                "name": PurePosixPath(clean).name,
                "encoding": "base64",
                "content": base64.encodebytes(data).decode("ascii"),
            }
        prefix = clean + "/"
        children = [p for p in tree if p.startswith(prefix)]
        if children:
            return [{"type": "file", "path": p} for p in children]
        raise NotFoundError(f"{clean}@{ref}")

    def repo_content(self, owner: str, repo: str) -> RepoContent:
        return RepoContent(self, owner, repo)  # type: ignore[arg-type]

    # -- helpers --------------------------------------------------------

    def content_fetches(self) -> list[tuple[str, ...]]:
        return [c for c in self.calls if c[0] == "get_contents"]


class RecordingFilesystem:
    """``LocalFilesystem`` wrapper that records writes."""

    def __init__(self) -> None:
        self._fs = LocalFilesystem()
        self.writes: list[str] = []

    def is_directory(self, path):
        return self._fs.is_directory(path)

    def make_directory(self, path, recursive=True):
        self._fs.make_directory(path, recursive)

    def put(self, path, data):
        self.writes.append(str(path))
        return self._fs.put(path, data)

    def remove_tree(self, path):
        self._fs.remove_tree(path)


@pytest.fixture
def mock_config():
    """A runtime Config for client tests."""
    return Config(
        api_url="https://api.github.example.com",
        token="test-token",
        timeout=5.0,
    )


@pytest.fixture
def cache():
    return SyncCache(MemoryCacheStore())


@pytest.fixture
def fs():
    return RecordingFilesystem()


@pytest.fixture
def docs_tree():
    """A typical docs folder for one ref."""
    return {
        "docs/menu.yml": MENU_YML,
        "docs/intro.md": "# Intro\n",
        "docs/guides/install.md": "# Install\n",
        "README.md": "readme",
    }


@pytest.fixture
def make_project(tmp_path):
    """Factory building a GitHub-enabled Project under ``tmp_path``."""

    def _make(
        slug: str = "widget",
        versions: list[str] | None = None,
        github: dict | None = None,
        **config: Any,
    ) -> Project:
        root = tmp_path / slug
        root.mkdir(parents=True, exist_ok=True)
        for version in versions or []:
            (root / version).mkdir(parents=True, exist_ok=True)

        gh = {
            "enabled": True,
            "username": "acme",
            "repository": slug,
        }
        gh.update(github or {})
        project_config = ProjectConfig(path=str(root), github=gh, **config)
        return Project(slug, project_config)

    return _make


@pytest.fixture
def fake_github():
    """Factory for ``FakeGithubClient`` instances."""
    return FakeGithubClient
