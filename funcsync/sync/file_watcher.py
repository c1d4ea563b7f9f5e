"""Real-time file system watcher feeding change deltas to the builder."""

import asyncio
import logging
import time
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .delta import ChangeEvent, ChangeKind, make_event
from .workspace import Workspace

logger = logging.getLogger(__name__)


class CodeFileEventHandler(FileSystemEventHandler):
    """Buffer file events for managed source files."""

    def __init__(self, workspace: Workspace):
        """Initialize event handler.

        Args:
            workspace: Workspace used to map and filter paths
        """
        super().__init__()
        self.workspace = workspace

        # Pending changes, in arrival order, keyed by workspace path
        self.pending: Dict[str, ChangeKind] = {}
        self.last_change_time = 0.0

    def _workspace_path(self, file_path: str) -> Optional[str]:
        path = self.workspace.workspace_path(file_path)
        if path is None or not self.workspace.is_managed(path):
            return None
        return path

    def _record(self, file_path: str, kind: ChangeKind) -> None:
        path = self._workspace_path(file_path)
        if path is None:
            return

        previous = self.pending.pop(path, None)
        if kind is ChangeKind.CHANGED and previous is ChangeKind.ADDED:
            # still new to this batch
            kind = ChangeKind.ADDED
        elif kind is ChangeKind.ADDED and previous is ChangeKind.REMOVED:
            kind = ChangeKind.CHANGED

        logger.debug(f"File {kind.value}: {path}")
        self.pending[path] = kind
        self.last_change_time = time.time()

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._record(event.src_path, ChangeKind.CHANGED)

    def on_created(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._record(event.src_path, ChangeKind.ADDED)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._record(event.src_path, ChangeKind.REMOVED)

    def on_moved(self, event: FileSystemEvent) -> None:
        """Handle file move/rename events as a removal followed by an addition."""
        if event.is_directory:
            return

        self._record(event.src_path, ChangeKind.REMOVED)
        dest_path = getattr(event, "dest_path", None)
        if dest_path:
            self._record(dest_path, ChangeKind.ADDED)

    def get_pending_changes(self) -> List[ChangeEvent]:
        """Get pending changes as events and clear the buffer."""
        events = [make_event(kind, path) for path, kind in self.pending.items()]
        self.pending.clear()
        return events

    def has_pending_changes(self) -> bool:
        return bool(self.pending)

    def time_since_last_change(self) -> float:
        return time.time() - self.last_change_time


class CodebaseWatcher:
    """File system watcher for automatic incremental synchronization."""

    def __init__(
        self,
        workspace: Workspace,
        on_change_callback: Callable[[List[ChangeEvent]], Awaitable[None]],
        debounce_seconds: float = 2.0,
        recursive: bool = True,
    ):
        """Initialize codebase watcher.

        Args:
            workspace: Workspace to watch
            on_change_callback: Async callback receiving one delta per debounced batch
            debounce_seconds: Debounce time for batching changes
            recursive: Whether to watch subdirectories recursively
        """
        self.workspace = workspace
        self.watch_path = Path(workspace.root)
        self.on_change_callback = on_change_callback
        self.debounce_seconds = debounce_seconds
        self.recursive = recursive

        self.event_handler = CodeFileEventHandler(workspace)
        self.observer = Observer()
        self.observer.schedule(self.event_handler, str(self.watch_path), recursive=self.recursive)

        self._running = False

        logger.info(f"Initialized file watcher for: {self.watch_path}")

    def start(self) -> None:
        """Start watching for file changes."""
        if not self._running:
            self.observer.start()
            self._running = True
            logger.info(f"Started watching: {self.watch_path}")

    def stop(self) -> None:
        """Stop watching for file changes."""
        if self._running:
            self.observer.stop()
            self.observer.join(timeout=5.0)
            self._running = False
            logger.info("Stopped file watcher")

    def is_running(self) -> bool:
        return self._running

    async def flush(self) -> int:
        """Deliver pending changes to the callback now.

        Returns:
            Number of events delivered
        """
        events = self.event_handler.get_pending_changes()
        if events:
            logger.info(f"Processing {len(events)} file changes")
            await self.on_change_callback(events)
        return len(events)

    async def start_debounce_processor(self) -> None:
        """Start background task to process debounced changes."""
        logger.info("Started debounce processor")

        while self._running:
            try:
                if (
                    self.event_handler.has_pending_changes()
                    and self.event_handler.time_since_last_change() >= self.debounce_seconds
                ):
                    try:
                        await self.flush()
                    except Exception as e:
                        logger.error(f"Error processing file changes: {e}", exc_info=True)

                # Check every 0.5 seconds
                await asyncio.sleep(0.5)

            except asyncio.CancelledError:
                logger.info("Debounce processor cancelled")
                break
