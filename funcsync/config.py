"""Environment configuration and logging setup."""

import logging
import os
from pathlib import Path
from typing import List, Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _env_bool(key: str, default: str) -> bool:
    return os.getenv(key, default).strip().lower() == "true"


def _env_list(key: str) -> List[str]:
    value = os.getenv(key, "")
    return [item.strip() for item in value.split(",") if item.strip()]


def get_env_config():
    """Get configuration from environment variables."""
    return {
        "workspace_path": os.getenv("WORKSPACE_PATH", "/workspace"),
        "state_path": Path(os.getenv("STATE_PATH", "/index")),
        "log_level": os.getenv("LOG_LEVEL", "INFO"),
        "log_file": os.getenv("LOG_FILE", "/tmp/funcsync.log"),
        "incremental": _env_bool("INCREMENTAL", "true"),
        "enable_watcher": _env_bool("ENABLE_FILE_WATCHER", "true"),
        "watcher_debounce": float(os.getenv("WATCHER_DEBOUNCE_SECONDS", "2.0")),
        "exclude_patterns": _env_list("EXCLUDE_PATTERNS"),
        "follow_gitignore": _env_bool("FOLLOW_GITIGNORE", "true"),
        "function_key": os.getenv("FUNCTION_KEY", "name"),
        "report_missing_destinations": _env_bool("REPORT_MISSING_DESTINATIONS", "false"),
    }


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure the root logger with a console handler and an optional file handler."""
    formatter = logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # File handler (for detailed logs)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def build_engine(config: dict, diagnostics):
    """Assemble a SyncEngine from an env config dict.

    Args:
        config: Dictionary as returned by get_env_config()
        diagnostics: Diagnostics sink receiving markers

    Returns:
        Configured SyncEngine
    """
    from .sync.engine import SyncEngine
    from .sync.matcher import FunctionMatcher, get_function_key
    from .sync.workspace import Workspace

    workspace = Workspace(
        config["workspace_path"],
        exclude_patterns=config["exclude_patterns"],
        follow_gitignore=config["follow_gitignore"],
    )
    return SyncEngine(
        workspace,
        diagnostics,
        matcher=FunctionMatcher(get_function_key(config["function_key"])),
        report_missing_destinations=config["report_missing_destinations"],
    )
