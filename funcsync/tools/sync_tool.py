"""MCP tool for synchronizing annotated functions across a workspace."""

import logging
from typing import List, Optional

from ..sync.delta import BuildKind, ChangeEvent, ChangeKind, SyncBuilder, make_event
from ..sync.engine import SyncEngine
from ..sync.merkle_tree import ChangeTracker, IncrementalSyncSession

logger = logging.getLogger(__name__)


class SyncTool:
    """Tool for running full and incremental synchronization builds."""

    def __init__(self, engine: SyncEngine, tracker: ChangeTracker):
        """Initialize sync tool.

        Args:
            engine: Synchronization engine
            tracker: Change tracker used to derive deltas between runs
        """
        self.engine = engine
        self.tracker = tracker
        self.builder = SyncBuilder(engine)

    def sync_workspace(self, full: bool = False) -> dict:
        """Synchronize the workspace.

        Uses the change tracker's delta unless a full build is requested or
        no previous state exists.

        Args:
            full: Re-synchronize every managed file

        Returns:
            Dictionary with build results
        """
        workspace = self.engine.workspace
        if not workspace.root.exists():
            return {"success": False, "error": f"Workspace path does not exist: {workspace.root}"}

        with IncrementalSyncSession(self.tracker, workspace) as session:
            if full or not self.tracker.has_state:
                report = self.builder.build(BuildKind.FULL)
            else:
                report = self.builder.build(BuildKind.INCREMENTAL, session.plan())
            session.mark_failed(failure.path for failure in report.failures)

        return report.to_dict()

    def apply_changes(
        self,
        added: Optional[List[str]] = None,
        changed: Optional[List[str]] = None,
        removed: Optional[List[str]] = None,
    ) -> dict:
        """Process an explicit change delta given as workspace paths.

        Args:
            added: Paths of added files
            changed: Paths of changed files
            removed: Paths of removed files

        Returns:
            Dictionary with build results
        """
        delta: List[ChangeEvent] = []
        for kind, paths in (
            (ChangeKind.ADDED, added),
            (ChangeKind.CHANGED, changed),
            (ChangeKind.REMOVED, removed),
        ):
            delta.extend(make_event(kind, path) for path in paths or [])

        return self.apply_delta(delta)

    def apply_delta(self, delta: List[ChangeEvent]) -> dict:
        """Process change events and update the tracked hashes of touched files."""
        report = self.builder.build(BuildKind.INCREMENTAL, delta)

        workspace = self.engine.workspace
        failed = {failure.path for failure in report.failures}
        for path in dict.fromkeys(report.processed + report.written):
            if path not in failed:
                self.tracker.update_file_record(workspace, path)
        self.tracker.commit()

        return report.to_dict()

    def get_status(self) -> dict:
        """Get statistics about the tracked workspace."""
        provenance = self.engine.provenance
        return {
            "success": True,
            "workspace_path": str(self.engine.workspace.root),
            "projects": self.engine.workspace.projects(),
            "tracker": self.tracker.get_stats(),
            "provenance_index_built": provenance.is_built,
            "function_key": self.engine.matcher.key.name,
        }
