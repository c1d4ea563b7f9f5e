"""Workspace layout: projects, workspace paths and file access."""

import logging
from pathlib import Path, PurePosixPath
from typing import Callable, Dict, List, Optional

from .exceptions import ParseFailure, PersistFailure
from .grammars import LanguageRegistry, get_language_registry

logger = logging.getLogger(__name__)

# Default excludes
DEFAULT_EXCLUDE_DIRS = {
    "node_modules",
    ".git",
    "__pycache__",
    ".pytest_cache",
    "venv",
    ".venv",
    "dist",
    "build",
    ".next",
    ".nuxt",
    "vendor",
    ".idea",
    ".vscode",
}


class Workspace:
    """A root directory whose immediate subdirectories are projects.

    Files are addressed by workspace paths of the form ``/<project>/<path>``,
    always with forward slashes. These are the paths written into
    ``@generatedFrom`` tags.
    """

    def __init__(
        self,
        root: str,
        exclude_patterns: Optional[List[str]] = None,
        follow_gitignore: bool = True,
        registry: Optional[LanguageRegistry] = None,
    ):
        """Initialize workspace.

        Args:
            root: Workspace root directory
            exclude_patterns: Glob patterns (relative to a project) to exclude
            follow_gitignore: Whether to respect each project's .gitignore
            registry: Language registry used to decide which files are managed
        """
        self.root = Path(root).resolve()
        self.exclude_patterns = exclude_patterns or []
        self.follow_gitignore = follow_gitignore
        self.registry = registry or get_language_registry()
        self._gitignore_matchers: Dict[str, Optional[Callable[[str], bool]]] = {}

    def projects(self) -> List[str]:
        """List project names (immediate, non-hidden, non-excluded subdirectories)."""
        if not self.root.is_dir():
            return []
        return sorted(
            child.name
            for child in self.root.iterdir()
            if child.is_dir()
            and not child.name.startswith(".")
            and child.name not in DEFAULT_EXCLUDE_DIRS
        )

    def workspace_path(self, file_path: str) -> Optional[str]:
        """Convert a filesystem path to a workspace path.

        Args:
            file_path: Absolute or root-relative filesystem path

        Returns:
            Workspace path, or None if the file lies outside the workspace
        """
        path = Path(file_path)
        if not path.is_absolute():
            path = self.root / path
        try:
            relative = path.resolve().relative_to(self.root)
        except ValueError:
            return None
        if not relative.parts:
            return None
        return "/" + relative.as_posix()

    def project_of(self, path: str) -> str:
        """Return the project name of a workspace path."""
        parts = PurePosixPath(path).parts
        return parts[1] if len(parts) > 1 else ""

    def to_filesystem(self, path: str) -> Optional[Path]:
        """Map a workspace path to a filesystem path inside the root, or None."""
        relative = path.strip().lstrip("/")
        if not relative:
            return None
        candidate = (self.root / relative).resolve()
        try:
            candidate.relative_to(self.root)
        except ValueError:
            logger.debug(f"Path escapes workspace root: {path}")
            return None
        return candidate

    def resolve(self, path: str) -> Optional[Path]:
        """Resolve a workspace path to an existing file.

        Args:
            path: Workspace path, e.g. /project/lib/util.js

        Returns:
            Filesystem path of the file, or None if it does not exist
        """
        candidate = self.to_filesystem(path)
        if candidate is None or not candidate.is_file():
            return None
        return candidate

    def normalize(self, path: str) -> Optional[str]:
        """Normalize a workspace path (collapse '..' and duplicate slashes)."""
        candidate = self.to_filesystem(path)
        return self.workspace_path(str(candidate)) if candidate is not None else None

    def project_member(self, project: str, relative: str) -> Optional[str]:
        """Workspace path of a file given relative to a project, or None if it escapes."""
        return self.normalize(f"/{project}/{relative.strip().lstrip('/')}")

    def _gitignore_matcher(self, project: str) -> Optional[Callable[[str], bool]]:
        if project not in self._gitignore_matchers:
            matcher = None
            gitignore_path = self.root / project / ".gitignore"
            if self.follow_gitignore and gitignore_path.exists():
                from gitignore_parser import parse_gitignore

                try:
                    matcher = parse_gitignore(gitignore_path)
                    logger.info(f"Loaded .gitignore from {gitignore_path}")
                except Exception as e:
                    logger.warning(f"Error parsing .gitignore: {e}")
            self._gitignore_matchers[project] = matcher
        return self._gitignore_matchers[project]

    def is_managed(self, path: str) -> bool:
        """Check whether a workspace path names a file under synchronization.

        The file does not have to exist; removed files are still managed.
        """
        if not self.registry.is_supported_file(path):
            return False

        parts = PurePosixPath(path).parts[1:]
        if len(parts) < 2:
            return False

        # Skip excluded directories and hidden paths
        if any(part in DEFAULT_EXCLUDE_DIRS or part.startswith(".") for part in parts):
            return False

        relative = PurePosixPath(*parts[1:])
        if any(relative.match(pattern) for pattern in self.exclude_patterns):
            return False

        matcher = self._gitignore_matcher(parts[0])
        if matcher is not None:
            candidate = self.to_filesystem(path)
            if candidate is not None and matcher(str(candidate)):
                return False

        return True

    def project_files(self, project: str) -> List[str]:
        """List the managed files of a project, sorted by workspace path."""
        project_root = self.root / project
        files = []
        for file_path in project_root.rglob("*"):
            if not file_path.is_file():
                continue
            path = self.workspace_path(str(file_path))
            if path is not None and self.is_managed(path):
                files.append(path)
        return sorted(files)

    def managed_files(self) -> List[str]:
        """List the managed files of every project."""
        files = []
        for project in self.projects():
            files.extend(self.project_files(project))
        return files

    def read_bytes(self, path: str) -> bytes:
        """Read a file's contents.

        Raises:
            FileNotFoundError: If the file does not exist
        """
        file_path = self.resolve(path)
        if file_path is None:
            raise FileNotFoundError(path)
        return file_path.read_bytes()

    def read_text(self, path: str) -> str:
        """Read a file as UTF-8 text.

        Raises:
            ParseFailure: If the file is not valid UTF-8
        """
        try:
            return self.read_bytes(path).decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseFailure(path, f"not valid UTF-8: {e}") from e

    def write_text(self, path: str, text: str) -> None:
        """Persist new contents for a file.

        Raises:
            PersistFailure: If the file cannot be written
        """
        file_path = self.to_filesystem(path)
        if file_path is None:
            raise PersistFailure(path, OSError(f"path outside workspace: {path}"))
        try:
            file_path.write_bytes(text.encode("utf-8"))
        except OSError as e:
            raise PersistFailure(path, e) from e
        logger.debug(f"Wrote {path}")
