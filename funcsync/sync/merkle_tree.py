"""Content-hash change tracking to derive a change delta between builds."""

import json
import logging
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set

import blake3

from .delta import Added, Changed, ChangeEvent, Removed
from .workspace import Workspace

logger = logging.getLogger(__name__)


@dataclass
class FileRecord:
    """Record of a file's state at the last successful build."""

    path: str
    content_hash: str
    last_synced: float  # timestamp


class ChangeTracker:
    """Blake3 content hashes of managed files, persisted between runs.

    Only hashes are stored; provenance is always re-derived from the files.
    """

    def __init__(self, state_path: Path):
        """Initialize change tracker.

        Args:
            state_path: Directory to store tracker state
        """
        self.state_path = Path(state_path)
        self.state_path.mkdir(parents=True, exist_ok=True)

        self.state_file = self.state_path / "sync_state.json"
        self.file_records: Dict[str, FileRecord] = {}
        self._load_state()

    def _load_state(self) -> None:
        """Load tracker state from disk."""
        if self.state_file.exists():
            try:
                with open(self.state_file, "r") as f:
                    data = json.load(f)
                    self.file_records = {
                        path: FileRecord(**record) for path, record in data.items()
                    }
                logger.info(f"Loaded sync state with {len(self.file_records)} files")
            except (OSError, ValueError, TypeError) as e:
                logger.error(f"Error loading sync state, starting fresh: {e}")
                self.file_records = {}
        else:
            logger.info("No existing sync state found, starting fresh")

    def _save_state(self) -> None:
        """Save tracker state to disk."""
        data = {path: asdict(record) for path, record in self.file_records.items()}
        with open(self.state_file, "w") as f:
            json.dump(data, f, indent=2)
        logger.debug(f"Saved sync state with {len(self.file_records)} files")

    @property
    def has_state(self) -> bool:
        return bool(self.file_records)

    @staticmethod
    def compute_hash(content: bytes) -> str:
        return blake3.blake3(content).hexdigest()

    def compute_file_hash(self, workspace: Workspace, path: str) -> Optional[str]:
        """Compute the Blake3 hash of a file's contents, or None if it is gone."""
        try:
            return self.compute_hash(workspace.read_bytes(path))
        except OSError as e:
            logger.debug(f"Cannot hash {path}: {e}")
            return None

    def plan_delta(self, workspace: Workspace) -> List[ChangeEvent]:
        """Compare the workspace with the recorded state.

        Args:
            workspace: Workspace to scan

        Returns:
            Added and changed events in path order, followed by removed events
        """
        current = workspace.managed_files()
        current_set = set(current)
        events: List[ChangeEvent] = []
        unchanged = 0

        for path in current:
            record = self.file_records.get(path)
            if record is None:
                events.append(Added(path))
            elif self.compute_file_hash(workspace, path) != record.content_hash:
                events.append(Changed(path))
            else:
                unchanged += 1

        removed = [Removed(path) for path in sorted(self.file_records) if path not in current_set]
        events.extend(removed)

        logger.info(
            f"Delta plan: {len(events) - len(removed)} added/changed, "
            f"{len(removed)} removed, {unchanged} unchanged"
        )
        return events

    def update_file_record(
        self, workspace: Workspace, path: str, timestamp: Optional[float] = None
    ) -> None:
        """Record the current hash of a file (drops the record if the file is gone)."""
        content_hash = self.compute_file_hash(workspace, path)
        if content_hash is None:
            self.remove_file_record(path)
            return

        self.file_records[path] = FileRecord(
            path=path,
            content_hash=content_hash,
            last_synced=timestamp if timestamp is not None else time.time(),
        )

    def remove_file_record(self, path: str) -> bool:
        if path in self.file_records:
            del self.file_records[path]
            logger.debug(f"Removed record for {path}")
            return True
        return False

    def refresh(self, workspace: Workspace, skip: Iterable[str] = ()) -> None:
        """Replace all records with the current state of the workspace.

        Args:
            workspace: Workspace to scan
            skip: Paths the next delta must report again. Existing skipped
                files lose their record (reported as added); deleted ones
                keep it (reported as removed)
        """
        timestamp = time.time()
        current = workspace.managed_files()
        current_set = set(current)
        skip = set(skip)
        for path in list(self.file_records):
            if (path in current_set) == (path in skip):
                self.remove_file_record(path)
        for path in current:
            if path not in skip:
                self.update_file_record(workspace, path, timestamp)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "tracked_files": len(self.file_records),
            "state_size_bytes": self.state_file.stat().st_size if self.state_file.exists() else 0,
        }

    def commit(self) -> None:
        """Commit current state to disk."""
        self._save_state()


class IncrementalSyncSession:
    """Context manager that commits refreshed hashes after a successful build."""

    def __init__(self, tracker: ChangeTracker, workspace: Workspace):
        self.tracker = tracker
        self.workspace = workspace
        self.delta: List[ChangeEvent] = []
        self.failed: Set[str] = set()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit session; record hashes of every file (engine rewrites included)."""
        if exc_type is None:
            self.tracker.refresh(self.workspace, skip=self.failed)
            self.tracker.commit()
            logger.info("Committed sync state")
        else:
            logger.error(f"Sync session failed: {exc_val}")
        return False

    def plan(self) -> List[ChangeEvent]:
        """Plan the delta for this session (full delta when there is no prior state)."""
        self.delta = self.tracker.plan_delta(self.workspace)
        return self.delta

    def mark_failed(self, paths: Iterable[str]) -> None:
        """Exclude paths from the committed state so they are retried next run."""
        self.failed.update(paths)
