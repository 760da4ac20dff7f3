"""Tests for sync/engine.py -- ProjectSynchronizer end to end.

Uses the in-memory FakeGithubClient and the real local filesystem under
tmp_path, so every test exercises differ, ref_sync, paths, manifest and
cache together.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from docmirror.config import Config
from docmirror.config_schema import ProjectConfig, UnifiedConfig
from docmirror.core.client import GithubClient
from docmirror.projects import ProjectRegistry
from docmirror.sync.engine import ProjectSynchronizer
from docmirror.sync.models import RefStatus, RefType
from docmirror.sync.state import JsonFileCacheStore, MemoryCacheStore, SyncCache


class CountingStore(MemoryCacheStore):
    def __init__(self):
        super().__init__()
        self.writes = 0

    def set_forever(self, key, value):
        self.writes += 1
        super().set_forever(key, value)


def menu_tree(body: str) -> dict[str, str]:
    return {
        "docs/menu.yml": "menu:\n  - Intro: intro\n",
        "docs/intro.md": body,
    }


@pytest.fixture
def store():
    return CountingStore()


@pytest.fixture
def synchronizer_for(store, fs):
    """Build a ProjectSynchronizer over a single project."""

    def _build(client, project, **kwargs):
        registry = ProjectRegistry({project.slug: project.config})
        return ProjectSynchronizer(
            client, registry, SyncCache(store), fs=fs, **kwargs
        )

    return _build


# ---------------------------------------------------------------------------
# Full runs
# ---------------------------------------------------------------------------


class TestSync:
    def test_tags_then_tracked_branches(self, fake_github, make_project, synchronizer_for):
        client = fake_github(
            files={
                "v1.0.0": menu_tree("one"),
                "v1.1.0": menu_tree("one-one"),
                "master": menu_tree("head"),
            },
            tags=["v1.1.0", "v1.0.0"],
            branches={"master": "abc"},
        )
        project = make_project(github={"branches": ["master"]})

        report = synchronizer_for(client, project).sync(project)

        assert report.error is None
        assert [(r.ref, r.ref_type) for r in report.results] == [
            ("v1.1.0", RefType.TAG),
            ("v1.0.0", RefType.TAG),
            ("master", RefType.BRANCH),
        ]
        assert len(report.synced) == 3
        assert report.pages_written == 3
        assert (project.path / "1.0" / "intro.md").read_text() == "one"
        assert (project.path / "1.1" / "intro.md").read_text() == "one-one"
        assert (project.path / "master" / "intro.md").read_text() == "head"
        assert report.completed_at is not None

    def test_rerun_without_remote_changes_does_nothing(
        self, fake_github, make_project, synchronizer_for, store
    ):
        client = fake_github(
            files={"v1.0.0": menu_tree("one"), "master": menu_tree("head")},
            tags=["v1.0.0"],
            branches={"master": "abc"},
        )
        project = make_project(github={"branches": ["master"]})
        synchronizer = synchronizer_for(client, project)

        synchronizer.sync(project.slug)
        client.calls.clear()
        writes_before = store.writes

        report = synchronizer.sync(project.slug)

        assert report.results == []
        assert client.content_fetches() == []
        assert store.writes == writes_before

    def test_moved_branch_is_resynced(self, fake_github, make_project, synchronizer_for):
        client = fake_github(
            files={"master": menu_tree("old")}, branches={"master": "aaa"}
        )
        project = make_project(github={"branches": ["master"]})
        synchronizer = synchronizer_for(client, project)
        synchronizer.sync(project.slug)

        client.files["master"] = menu_tree("new")
        client.branches["master"] = "bbb"
        report = synchronizer.sync(project.slug)

        assert [r.ref for r in report.synced] == ["master"]
        assert (project.path / "master" / "intro.md").read_text() == "new"
        assert synchronizer.cache.get(project.slug, "master") == "bbb"

    def test_deleted_branch_folder_is_restored(self, fake_github, make_project, synchronizer_for):
        client = fake_github(files={"master": menu_tree("x")}, branches={"master": "aaa"})
        project = make_project(github={"branches": ["master"]})
        synchronizer = synchronizer_for(client, project)
        synchronizer.sync(project.slug)

        for f in (project.path / "master").iterdir():
            f.unlink()
        (project.path / "master").rmdir()

        report = synchronizer.sync(project.slug)
        assert [r.ref for r in report.synced] == ["master"]
        assert (project.path / "master" / "intro.md").exists()

    def test_patch_releases_highest_wins(self, fake_github, make_project, synchronizer_for):
        client = fake_github(
            files={
                "v1.2.0": menu_tree("1.2.0"),
                "v1.2.3": menu_tree("1.2.3"),
                "v1.2.1": menu_tree("1.2.1"),
            },
            tags=["v1.2.3", "v1.2.0", "v1.2.1"],
        )
        project = make_project()

        report = synchronizer_for(client, project, max_parallel_refs=4).sync(project)

        assert [r.ref for r in report.results] == ["v1.2.3", "v1.2.0", "v1.2.1"]
        assert all(r.status == RefStatus.SYNCED for r in report.results)
        assert (project.path / "1.2" / "intro.md").read_text() == "1.2.3"

    def test_untracked_branches_ignored_without_fetch(
        self, fake_github, make_project, synchronizer_for
    ):
        client = fake_github(
            files={"master": menu_tree("m"), "feature": menu_tree("f")},
            branches={"master": "aaa", "feature": "fff"},
        )
        project = make_project(github={"branches": ["master"]})

        report = synchronizer_for(client, project).sync(project)

        assert [r.ref for r in report.synced] == ["master"]
        assert [r.ref for r in report.ignored] == ["feature"]
        assert not any(c[2] == "feature" for c in client.content_fetches())
        assert not (project.path / "feature").exists()

    def test_partial_failures_do_not_stop_siblings(
        self, fake_github, make_project, synchronizer_for
    ):
        client = fake_github(
            files={
                "v1.0.0": {"README.md": "no docs"},
                "v2.0.0": {"docs/menu.yml": "menu: {{broken"},
                "v3.0.0": menu_tree("three"),
            },
            tags=["v1.0.0", "v2.0.0", "v3.0.0"],
        )
        project = make_project()

        report = synchronizer_for(client, project).sync(project)

        statuses = {r.ref: r.status for r in report.results}
        assert statuses == {
            "v1.0.0": RefStatus.SKIPPED,
            "v2.0.0": RefStatus.FAILED,
            "v3.0.0": RefStatus.SYNCED,
        }
        assert not (project.path / "1.0").exists()
        assert (project.path / "3.0" / "intro.md").exists()

    def test_local_write_failure_marks_ref_failed(
        self, fake_github, make_project, synchronizer_for, fs
    ):
        client = fake_github(files={"v1.0.0": menu_tree("x")}, tags=["v1.0.0"])
        project = make_project()
        synchronizer = synchronizer_for(client, project)

        with patch.object(fs, "put", side_effect=OSError("disk full")):
            report = synchronizer.sync(project)

        assert [r.status for r in report.results] == [RefStatus.FAILED]
        assert "local write failed" in report.results[0].error

    def test_failed_tag_write_is_retried_next_run(
        self, fake_github, make_project, synchronizer_for, fs
    ):
        client = fake_github(
            files={"v1.2.0": menu_tree("x")}, tags=["v1.2.0"]
        )
        project = make_project()
        synchronizer = synchronizer_for(client, project)

        with patch.object(fs, "put", side_effect=PermissionError("read-only")):
            report = synchronizer.sync(project)

        assert [r.ref for r in report.failed] == ["v1.2.0"]
        assert not (project.path / "1.2").exists()

        fresh = synchronizer.resolve_project(project.slug)
        assert synchronizer.differ.unsynced_tags(fresh) == ["v1.2.0"]

        report = synchronizer.sync(project.slug)
        assert [r.ref for r in report.synced] == ["v1.2.0"]
        assert (project.path / "1.2" / "intro.md").read_text() == "x"

    def test_unexpected_error_marks_ref_failed(
        self, fake_github, make_project, synchronizer_for, caplog
    ):
        client = fake_github(files={"v1.0.0": menu_tree("x")}, tags=["v1.0.0", "v2.0.0"])
        project = make_project()
        synchronizer = synchronizer_for(client, project)

        with patch.object(
            synchronizer.ref_sync, "sync_ref", side_effect=RuntimeError("boom")
        ):
            report = synchronizer.sync(project)

        assert len(report.failed) == 2
        assert report.failed[0].error == "boom"
        assert "Error syncing tag" in caplog.text


# ---------------------------------------------------------------------------
# Project resolution
# ---------------------------------------------------------------------------


class TestResolution:
    def test_unknown_slug_reports_error(self, fake_github, make_project, synchronizer_for):
        client = fake_github(tags=["v1.0.0"])
        synchronizer = synchronizer_for(client, make_project())

        report = synchronizer.sync("nope")

        assert report.project == "nope"
        assert "does not exist" in report.error
        assert report.results == []
        assert client.calls == []

    def test_disabled_github_reports_error(self, fake_github, make_project, synchronizer_for):
        client = fake_github(tags=["v1.0.0"])
        project = make_project(github={"enabled": False})

        report = synchronizer_for(client, project).sync(project)

        assert "GitHub sync disabled" in report.error
        assert client.calls == []

    def test_sync_tag_unknown_project_returns_none(self, fake_github, make_project, synchronizer_for):
        synchronizer = synchronizer_for(fake_github(), make_project())
        assert synchronizer.sync_tag("nope", "v1.0.0") is None
        assert synchronizer.sync_branch("nope", "master") is None


# ---------------------------------------------------------------------------
# Single references
# ---------------------------------------------------------------------------


class TestSingleRef:
    def test_sync_tag(self, fake_github, make_project, synchronizer_for):
        client = fake_github(files={"v4.1.2": menu_tree("x")})
        project = make_project()

        result = synchronizer_for(client, project).sync_tag(project.slug, "v4.1.2")

        assert result.status == RefStatus.SYNCED
        assert (project.path / "4.1" / "intro.md").exists()

    def test_sync_untracked_branch_is_ignored(self, fake_github, make_project, synchronizer_for):
        client = fake_github(files={"dev": menu_tree("x")}, branches={"dev": "d"})
        project = make_project(github={"branches": ["master"]})

        result = synchronizer_for(client, project).sync_branch(project, "dev")

        assert result.status == RefStatus.IGNORED
        assert client.calls == []

    def test_sync_branch_without_tracked_list_is_ignored(
        self, fake_github, make_project, synchronizer_for
    ):
        client = fake_github(files={"master": menu_tree("x")}, branches={"master": "m"})
        project = make_project()

        result = synchronizer_for(client, project).sync_branch(project, "master")

        assert result.status == RefStatus.IGNORED

    def test_sync_tracked_branch(self, fake_github, make_project, synchronizer_for):
        client = fake_github(files={"master": menu_tree("x")}, branches={"master": "m"})
        project = make_project(github={"branches": ["master"]})
        synchronizer = synchronizer_for(client, project)

        result = synchronizer.sync_branch(project, "master")

        assert result.status == RefStatus.SYNCED
        assert synchronizer.cache.get(project.slug, "master") == "m"


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


class TestFromConfig:
    def test_builds_components(self, tmp_path: Path):
        unified = UnifiedConfig(
            projects={"widget": ProjectConfig(path=str(tmp_path / "widget"))}
        )
        runtime = Config(cache_file=str(tmp_path / "cache.json"), max_parallel_refs=2)

        synchronizer = ProjectSynchronizer.from_config(unified, runtime)

        assert isinstance(synchronizer.client, GithubClient)
        assert synchronizer.projects.has("widget")
        assert synchronizer.max_parallel_refs == 2
        assert isinstance(synchronizer.cache._store, JsonFileCacheStore)
        assert synchronizer.cache._store.path == tmp_path / "cache.json"
