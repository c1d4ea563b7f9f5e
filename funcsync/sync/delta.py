"""Change-delta driver: dispatch file events to the synchronization engine."""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, ClassVar, Iterable, List, Optional, Union

from .engine import SyncEngine
from .exceptions import BuildError, SyncError
from .models import FileOutcome

logger = logging.getLogger(__name__)


class BuildKind(str, Enum):
    """Kinds of build requested by the host."""

    FULL = "full"
    INCREMENTAL = "incremental"


class ChangeKind(str, Enum):
    """Kinds of per-file change."""

    ADDED = "added"
    CHANGED = "changed"
    REMOVED = "removed"


@dataclass(frozen=True)
class Added:
    path: str
    kind: ClassVar[ChangeKind] = ChangeKind.ADDED


@dataclass(frozen=True)
class Changed:
    path: str
    kind: ClassVar[ChangeKind] = ChangeKind.CHANGED


@dataclass(frozen=True)
class Removed:
    path: str
    kind: ClassVar[ChangeKind] = ChangeKind.REMOVED


ChangeEvent = Union[Added, Changed, Removed]

_EVENT_TYPES = {
    ChangeKind.ADDED: Added,
    ChangeKind.CHANGED: Changed,
    ChangeKind.REMOVED: Removed,
}


def make_event(kind: Union[ChangeKind, str], path: str) -> ChangeEvent:
    """Build an event from a change kind and a workspace path."""
    return _EVENT_TYPES[ChangeKind(kind)](path)


def dispatch(engine: SyncEngine, event: ChangeEvent) -> FileOutcome:
    """Run the engine operation for one event.

    Added and changed files are handled identically; removals trigger the
    replica cascade.
    """
    if event.kind is ChangeKind.REMOVED:
        return engine.process_removed(event.path)
    return engine.process_file(event.path)


# Progress callback: (files_done, files_total, current_path) -> keep going?
ProgressCallback = Callable[[int, int, str], Optional[bool]]


@dataclass
class BuildReport:
    """Summary of one build run."""

    kind: BuildKind
    started_at: float = field(default_factory=time.time)
    completed_at: Optional[float] = None
    processed: List[str] = field(default_factory=list)
    written: List[str] = field(default_factory=list)
    removed_functions: int = 0
    markers: int = 0
    failures: List[BuildError] = field(default_factory=list)
    cancelled: bool = False

    @property
    def success(self) -> bool:
        return not self.failures

    def add_outcome(self, outcome: FileOutcome) -> None:
        self.processed.append(outcome.path)
        for path in outcome.written:
            if path not in self.written:
                self.written.append(path)
        self.removed_functions += outcome.removed_functions
        self.markers += outcome.markers
        for error in outcome.errors:
            self.failures.append(
                BuildError(getattr(error, "path", outcome.path), "Failed to build.", error)
            )

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "kind": self.kind.value,
            "processed": len(self.processed),
            "written": list(self.written),
            "removed_functions": self.removed_functions,
            "markers": self.markers,
            "failures": [failure.to_dict() for failure in self.failures],
            "cancelled": self.cancelled,
            "duration_seconds": (
                round(self.completed_at - self.started_at, 3) if self.completed_at else None
            ),
        }


class SyncBuilder:
    """Drive the engine from full builds or incremental change deltas."""

    def __init__(self, engine: SyncEngine):
        self.engine = engine

    def build(
        self,
        kind: BuildKind = BuildKind.INCREMENTAL,
        delta: Optional[Iterable[ChangeEvent]] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> BuildReport:
        """Run a build.

        A full build, or an incremental build without a delta, treats every
        managed file as added. Otherwise each event is processed in the order
        given; overlapping events are not coalesced.

        Args:
            kind: Full or incremental build
            delta: Change events for an incremental build
            progress: Optional callback; returning False stops the build
                before the next file

        Returns:
            Build report
        """
        if kind is BuildKind.FULL or delta is None:
            return self.full_build(progress)
        return self.incremental_build(delta, progress)

    def full_build(self, progress: Optional[ProgressCallback] = None) -> BuildReport:
        """Re-synchronize every managed file of every project."""
        logger.info(f"Starting full build of {self.engine.workspace.root}")
        self.engine.provenance.invalidate()
        events = [Added(path) for path in self.engine.workspace.managed_files()]
        return self._run(BuildKind.FULL, events, progress)

    def incremental_build(
        self, delta: Iterable[ChangeEvent], progress: Optional[ProgressCallback] = None
    ) -> BuildReport:
        events = list(delta)
        logger.info(f"Starting incremental build with {len(events)} changes")
        return self._run(BuildKind.INCREMENTAL, events, progress)

    def _run(
        self,
        kind: BuildKind,
        events: List[ChangeEvent],
        progress: Optional[ProgressCallback],
    ) -> BuildReport:
        report = BuildReport(kind=kind)
        total = len(events)

        for idx, event in enumerate(events, 1):
            if progress is not None and progress(idx - 1, total, event.path) is False:
                logger.info(f"Build cancelled after {idx - 1}/{total} files")
                report.cancelled = True
                break

            logger.debug(f"[{idx}/{total}] {event.kind.value} {event.path}")
            try:
                report.add_outcome(dispatch(self.engine, event))
            except (SyncError, OSError) as e:
                error = BuildError(event.path, "Failed to build.", e)
                logger.error(f"✗ Error processing {event.path}: {e}")
                report.failures.append(error)

        report.completed_at = time.time()
        self._log_summary(report)
        return report

    @staticmethod
    def _log_summary(report: BuildReport) -> None:
        logger.info("=" * 80)
        logger.info(f"Build complete ({report.kind.value})")
        logger.info(f"Processed: {len(report.processed)}")
        logger.info(f"Rewritten: {len(report.written)}")
        logger.info(f"Replicas removed: {report.removed_functions}")
        logger.info(f"Markers: {report.markers}")
        logger.info(f"Failed: {len(report.failures)}")
        if report.cancelled:
            logger.info("Cancelled before completion")
        logger.info("=" * 80)

        for failure in report.failures:
            logger.warning(f"  - {failure.path}: {failure.cause}")
