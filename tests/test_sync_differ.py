"""Tests for sync/differ.py -- which tags and branches need syncing."""

from __future__ import annotations

from docmirror.errors import RemoteError
from docmirror.sync.differ import ReferenceDiffer

# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------


class TestUnsyncedTags:
    def test_new_tags_in_listing_order(self, fake_github, make_project, cache, fs):
        client = fake_github(tags=["v2.0.0", "v1.1.0", "v1.0.0"])
        differ = ReferenceDiffer(client, cache, fs)

        assert differ.unsynced_tags(make_project()) == ["v2.0.0", "v1.1.0", "v1.0.0"]

    def test_existing_short_version_skipped(self, fake_github, make_project, cache, fs):
        client = fake_github(tags=["v1.2.3", "v1.2.4", "v1.3.0"])
        differ = ReferenceDiffer(client, cache, fs)
        project = make_project(versions=["1.2"])

        assert differ.unsynced_tags(project) == ["v1.3.0"]

    def test_excluded_tags_skipped(self, fake_github, make_project, cache, fs):
        client = fake_github(tags=["v1.0.0", "v1.1.0"])
        differ = ReferenceDiffer(client, cache, fs)
        project = make_project(github={"exclude_tags": ["v1.0.0"]})

        assert differ.unsynced_tags(project) == ["v1.1.0"]

    def test_start_at_tag_is_inclusive(self, fake_github, make_project, cache, fs):
        client = fake_github(tags=["v0.9.0", "v1.0.0", "v1.0.1", "v2.0.0"])
        differ = ReferenceDiffer(client, cache, fs)
        project = make_project(github={"start_at_tag": "v1.0.0"})

        assert differ.unsynced_tags(project) == ["v1.0.0", "v1.0.1", "v2.0.0"]

    def test_start_at_tag_compares_numerically(self, fake_github, make_project, cache, fs):
        client = fake_github(tags=["v1.9.0", "v1.10.0"])
        differ = ReferenceDiffer(client, cache, fs)
        project = make_project(github={"start_at_tag": "v1.10.0"})

        assert differ.unsynced_tags(project) == ["v1.10.0"]

    def test_non_version_tags_skipped(self, fake_github, make_project, cache, fs):
        client = fake_github(tags=["nightly", "v1.0.0", "release-candidate"])
        differ = ReferenceDiffer(client, cache, fs)

        assert differ.unsynced_tags(make_project()) == ["v1.0.0"]

    def test_branch_folders_do_not_block_tags(self, fake_github, make_project, cache, fs):
        client = fake_github(tags=["v1.0.0"])
        differ = ReferenceDiffer(client, cache, fs)
        project = make_project(versions=["master"])

        assert differ.unsynced_tags(project) == ["v1.0.0"]

    def test_listing_failure_returns_empty(self, fake_github, make_project, cache, fs, caplog):
        client = fake_github(tags=["v1.0.0"])
        client.list_error = RemoteError("Timed out")
        differ = ReferenceDiffer(client, cache, fs)

        assert differ.unsynced_tags(make_project()) == []
        assert "Could not list tags" in caplog.text

    def test_no_content_fetches(self, fake_github, make_project, cache, fs):
        client = fake_github(tags=["v1.0.0"])
        ReferenceDiffer(client, cache, fs).unsynced_tags(make_project())
        assert client.content_fetches() == []


# ---------------------------------------------------------------------------
# Branches
# ---------------------------------------------------------------------------


class TestUnsyncedBranches:
    def test_no_configured_branches(self, fake_github, make_project, cache, fs):
        client = fake_github(branches={"master": "aaa"})
        differ = ReferenceDiffer(client, cache, fs)

        assert differ.unsynced_branches(make_project()) == []
        assert ("list_branches",) not in client.calls

    def test_uncached_branch_is_unsynced(self, fake_github, make_project, cache, fs):
        client = fake_github(branches={"master": "aaa"})
        differ = ReferenceDiffer(client, cache, fs)
        project = make_project(github={"branches": ["master"]})

        assert differ.unsynced_branches(project) == ["master"]

    def test_unchanged_branch_with_output_is_skipped(self, fake_github, make_project, cache, fs):
        client = fake_github(branches={"master": "aaa"})
        differ = ReferenceDiffer(client, cache, fs)
        project = make_project(versions=["master"], github={"branches": ["master"]})
        cache.set(project.slug, "master", "aaa")

        assert differ.unsynced_branches(project) == []

    def test_moved_branch_is_unsynced(self, fake_github, make_project, cache, fs):
        client = fake_github(branches={"master": "bbb"})
        differ = ReferenceDiffer(client, cache, fs)
        project = make_project(versions=["master"], github={"branches": ["master"]})
        cache.set(project.slug, "master", "aaa")

        assert differ.unsynced_branches(project) == ["master"]

    def test_missing_output_folder_heals(self, fake_github, make_project, cache, fs):
        client = fake_github(branches={"master": "aaa"})
        differ = ReferenceDiffer(client, cache, fs)
        project = make_project(github={"branches": ["master"]})
        cache.set(project.slug, "master", "aaa")

        assert differ.unsynced_branches(project) == ["master"]

    def test_result_not_filtered_by_tracked_list(self, fake_github, make_project, cache, fs):
        client = fake_github(branches={"master": "aaa", "feature": "fff"})
        differ = ReferenceDiffer(client, cache, fs)
        project = make_project(github={"branches": ["master"]})

        assert differ.unsynced_branches(project) == ["master", "feature"]

    def test_unsafe_branch_name_counts_as_no_output(self, fake_github, make_project, cache, fs):
        client = fake_github(branches={"../escape": "aaa"})
        differ = ReferenceDiffer(client, cache, fs)
        project = make_project(github={"branches": ["master"]})
        cache.set(project.slug, "../escape", "aaa")

        assert differ.unsynced_branches(project) == ["../escape"]

    def test_listing_failure_returns_empty(self, fake_github, make_project, cache, fs):
        client = fake_github(branches={"master": "aaa"})
        client.list_error = RemoteError("boom", status_code=502)
        differ = ReferenceDiffer(client, cache, fs)
        project = make_project(github={"branches": ["master"]})

        assert differ.unsynced_branches(project) == []
