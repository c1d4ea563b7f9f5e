"""
Shared pytest fixtures for funcsync tests.

Every test gets a fresh temporary workspace; files are addressed with
workspace paths such as ``/web/src/a.js``.
"""

from pathlib import Path

import pytest

from funcsync.sync.diagnostics import MarkerStore
from funcsync.sync.engine import SyncEngine
from funcsync.sync.source_model import SourceModel
from funcsync.sync.workspace import Workspace


class WorkspaceFiles:
    """Helper to read and write files by workspace path."""

    def __init__(self, root: Path):
        self.root = root

    def path(self, workspace_path: str) -> Path:
        return self.root / workspace_path.lstrip("/")

    def write(self, workspace_path: str, text: str) -> Path:
        file_path = self.path(workspace_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(text, encoding="utf-8")
        return file_path

    def read(self, workspace_path: str) -> str:
        return self.path(workspace_path).read_text(encoding="utf-8")

    def delete(self, workspace_path: str) -> None:
        self.path(workspace_path).unlink()

    def exists(self, workspace_path: str) -> bool:
        return self.path(workspace_path).exists()


@pytest.fixture(scope="session")
def model():
    """A single tree-sitter source model shared by all tests."""
    return SourceModel()


@pytest.fixture
def files(tmp_path):
    root = tmp_path / "workspace"
    root.mkdir()
    return WorkspaceFiles(root)


@pytest.fixture
def workspace(files):
    return Workspace(str(files.root))


@pytest.fixture
def markers():
    return MarkerStore()


@pytest.fixture
def engine(workspace, markers, model):
    return SyncEngine(workspace, markers, model=model)
