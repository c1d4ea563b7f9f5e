"""FastMCP server exposing annotation-driven function synchronization."""

import asyncio
import logging
import threading
from pathlib import Path
from typing import List, Optional

from mcp.server.fastmcp import FastMCP

from .config import build_engine, configure_logging, get_env_config
from .sync.delta import ChangeEvent
from .sync.diagnostics import MarkerStore
from .sync.file_watcher import CodebaseWatcher
from .sync.merkle_tree import ChangeTracker
from .tools.marker_tool import MarkerTool
from .tools.sync_tool import SyncTool

logger = logging.getLogger(__name__)

# Initialize FastMCP server
mcp = FastMCP("funcsync")

# Global components (initialized on startup)
markers: Optional[MarkerStore] = None
sync_tool: Optional[SyncTool] = None
marker_tool: Optional[MarkerTool] = None
file_watcher: Optional[CodebaseWatcher] = None

# The engine is single-threaded; the watcher thread and tool calls take turns
build_lock = threading.Lock()


async def handle_file_changes(delta: List[ChangeEvent]) -> None:
    """Handle a debounced batch of changes detected by the watcher."""
    if sync_tool is None:
        logger.warning("Components not initialized, skipping file change handling")
        return

    logger.info(f"File watcher detected {len(delta)} changes")
    with build_lock:
        result = sync_tool.apply_delta(delta)
    logger.info(
        f"File watcher update complete: {result['processed']} processed, "
        f"{len(result['written'])} rewritten, {len(result['failures'])} failed"
    )


def initialize_components() -> None:
    """Initialize all components on startup."""
    global markers, sync_tool, marker_tool, file_watcher

    config = get_env_config()
    logger.info("Initializing funcsync...")

    markers = MarkerStore()
    engine = build_engine(config, markers)

    logger.info(f"Initializing sync state at {config['state_path']}")
    tracker = ChangeTracker(config["state_path"])

    sync_tool = SyncTool(engine, tracker)
    marker_tool = MarkerTool(markers)

    if config["enable_watcher"]:
        workspace_path = Path(config["workspace_path"])
        if workspace_path.exists():
            logger.info(
                f"Initializing file watcher for {workspace_path} "
                f"(debounce: {config['watcher_debounce']}s)"
            )
            file_watcher = CodebaseWatcher(
                engine.workspace,
                on_change_callback=handle_file_changes,
                debounce_seconds=config["watcher_debounce"],
            )
        else:
            logger.warning(
                f"Workspace path does not exist: {workspace_path}. "
                "File watcher will not be started."
            )
    else:
        logger.info("File watcher disabled (set ENABLE_FILE_WATCHER=true to enable)")

    logger.info("All components initialized successfully!")


@mcp.tool()
def sync_workspace(full: bool = False) -> dict:
    """Synchronize @copyTo functions across the workspace.

    Args:
        full: Re-synchronize every file instead of only files changed since the last run

    Returns:
        Dictionary with build results (rewritten files, removed replicas, failures)
    """
    if not sync_tool:
        return {"success": False, "error": "Server not initialized"}

    with build_lock:
        return sync_tool.sync_workspace(full)


@mcp.tool()
def apply_changes(
    added: Optional[List[str]] = None,
    changed: Optional[List[str]] = None,
    removed: Optional[List[str]] = None,
) -> dict:
    """Process an explicit change delta.

    Args:
        added: Workspace paths of added files (e.g. "/web/lib/util.js")
        changed: Workspace paths of changed files
        removed: Workspace paths of removed files

    Returns:
        Dictionary with build results
    """
    if not sync_tool:
        return {"success": False, "error": "Server not initialized"}

    with build_lock:
        return sync_tool.apply_changes(added, changed, removed)


@mcp.tool()
def get_markers(file_path: Optional[str] = None) -> dict:
    """List broken-provenance markers.

    Args:
        file_path: Workspace path of a file (all files if omitted)

    Returns:
        Dictionary with markers
    """
    if not marker_tool:
        return {"success": False, "error": "Server not initialized"}

    return marker_tool.get_markers(file_path)


@mcp.tool()
def clear_markers() -> dict:
    """Drop all broken-provenance markers (the next build reports them again)."""
    if not marker_tool:
        return {"success": False, "error": "Server not initialized"}

    return marker_tool.clear_markers()


@mcp.tool()
def get_sync_status() -> dict:
    """Get statistics about the synchronized workspace."""
    if not sync_tool:
        return {"success": False, "error": "Server not initialized"}

    return sync_tool.get_status()


@mcp.tool()
def get_watcher_status() -> dict:
    """Get status of the file watcher.

    Returns:
        Dictionary with watcher status
    """
    if file_watcher is None:
        config = get_env_config()
        return {
            "success": True,
            "enabled": False,
            "running": False,
            "watcher_enabled_in_config": config["enable_watcher"],
            "workspace_path": config["workspace_path"],
            "message": "File watcher not initialized (check ENABLE_FILE_WATCHER and workspace path)",
        }

    handler = file_watcher.event_handler
    return {
        "success": True,
        "enabled": True,
        "running": file_watcher.is_running(),
        "watch_path": str(file_watcher.watch_path),
        "debounce_seconds": file_watcher.debounce_seconds,
        "pending_changes": len(handler.pending),
        "time_since_last_change": (
            handler.time_since_last_change() if handler.last_change_time > 0 else None
        ),
    }


def run_watcher_debounce_in_thread():
    """Run the file watcher's async debounce processor in a separate thread."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    try:
        if file_watcher is not None and file_watcher.is_running():
            logger.info("Starting file watcher debounce processor in background thread...")
            loop.run_until_complete(file_watcher.start_debounce_processor())
    except Exception as e:
        logger.error(f"File watcher debounce processor error: {e}")
    finally:
        loop.close()


def stop_file_watcher_sync():
    """Stop the file watcher synchronously."""
    if file_watcher is not None:
        logger.info("Stopping file watcher observer...")
        file_watcher.stop()


if __name__ == "__main__":
    import atexit

    env = get_env_config()
    configure_logging(env["log_level"], env["log_file"])

    logger.info("Starting funcsync MCP Server...")
    initialize_components()

    if file_watcher is not None:
        file_watcher.start()
        watcher_thread = threading.Thread(
            target=run_watcher_debounce_in_thread,
            daemon=True,
            name="FileWatcherDebounce",
        )
        watcher_thread.start()
        logger.info("File watcher fully initialized and running")

    atexit.register(stop_file_watcher_sync)

    logger.info("Server ready!")

    try:
        mcp.run()
    except KeyboardInterrupt:
        logger.info("Server interrupted")
