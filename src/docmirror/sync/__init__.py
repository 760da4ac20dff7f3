"""Incremental GitHub-to-disk documentation sync engine.

Mirrors the ``docs/`` tree of every version of a project into
``<project path>/<version>/``, fetching only what changed since the last
run.

Architecture
------------
Tags are immutable: once a ``major.minor`` folder exists locally, tags
mapping to it are never fetched again.  Branches move: the head sha of
each synced branch is cached, and a branch is re-fetched only when the
remote sha differs or its local folder has gone missing.

Modules:

- ``engine``    -- ``ProjectSynchronizer``: entry point for a project run.
- ``differ``    -- ``ReferenceDiffer``: which tags/branches need syncing.
- ``ref_sync``  -- ``RefSynchronizer``: the per-reference fetch-and-stage
  sequence.
- ``paths``     -- ``resolve_paths``/``SyncPaths``: remote sub-paths and
  local destination of a reference.
- ``manifest``  -- ``parse_manifest``/``extract_pages``: ``menu.yml``
  page discovery.
- ``state``     -- ``SyncCache`` and its ``CacheStore`` backends.
- ``models``    -- ``RefType``, ``RefStatus``, ``RefSyncResult``,
  ``ProjectSyncReport``.
- ``reporter``  -- Human-readable and JSON report formatting.

Usage example
-------------
::

    from docmirror.config_loader import load_hierarchical_config
    from docmirror.config_schema import build_config, to_runtime_config
    from docmirror.sync import ProjectSynchronizer, format_sync_report

    unified = build_config(load_hierarchical_config())
    runtime = to_runtime_config(unified)

    synchronizer = ProjectSynchronizer.from_config(unified, runtime)
    report = synchronizer.sync("widget")
    print(format_sync_report(report))
"""

from .differ import ReferenceDiffer
from .engine import ProjectSynchronizer
from .manifest import extract_pages, parse_manifest
from .models import (
    ProjectSyncReport,
    RefStatus,
    RefSyncResult,
    RefType,
)
from .paths import SyncPaths, resolve_paths
from .ref_sync import RefSynchronizer
from .reporter import format_sync_report, report_to_json
from .state import (
    CacheStore,
    JsonFileCacheStore,
    MemoryCacheStore,
    SyncCache,
)

__all__ = [
    "CacheStore",
    "JsonFileCacheStore",
    "MemoryCacheStore",
    "ProjectSyncReport",
    "ProjectSynchronizer",
    "RefStatus",
    "RefSyncResult",
    "RefSynchronizer",
    "RefType",
    "ReferenceDiffer",
    "SyncCache",
    "SyncPaths",
    "extract_pages",
    "format_sync_report",
    "parse_manifest",
    "report_to_json",
    "resolve_paths",
]
