#!/usr/bin/env python3
"""Standalone sync script - synchronizes annotated functions in a workspace and exits."""

import json
import logging
import os
import sys
from pathlib import Path

# Setup logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Main sync function."""
    from funcsync.config import build_engine, get_env_config
    from funcsync.sync.diagnostics import MarkerStore
    from funcsync.sync.merkle_tree import ChangeTracker
    from funcsync.tools.sync_tool import SyncTool

    config = get_env_config()
    workspace_path = Path(config["workspace_path"])

    logger.info(f"Workspace path: {workspace_path}")
    logger.info(f"State path: {config['state_path']}")
    logger.info(f"Incremental: {config['incremental']}")

    if not workspace_path.exists():
        logger.error(f"Workspace path does not exist: {workspace_path}")
        return 1

    markers = MarkerStore()
    engine = build_engine(config, markers)
    tracker = ChangeTracker(config["state_path"])
    sync_tool = SyncTool(engine, tracker)

    result = sync_tool.sync_workspace(full=not config["incremental"])

    print(json.dumps({"build": result, "markers": markers.to_dict()}, indent=2))

    return 0 if result["success"] else 1


if __name__ == "__main__":
    try:
        sys.exit(main())
    except Exception as e:
        logger.error(f"Fatal error during sync: {e}", exc_info=True)
        sys.exit(1)
