"""MCP tool for reading synchronization diagnostics."""

import logging
from typing import Optional

from ..sync.diagnostics import MarkerStore

logger = logging.getLogger(__name__)


class MarkerTool:
    """Tool for listing broken-provenance markers."""

    def __init__(self, markers: MarkerStore):
        self.markers = markers

    def get_markers(self, file_path: Optional[str] = None) -> dict:
        """List markers, optionally for a single file.

        Args:
            file_path: Workspace path of the file (all files if omitted)

        Returns:
            Dictionary with the markers
        """
        markers = self.markers.to_dict(file_path)
        return {
            "success": True,
            "file_path": file_path,
            "total_markers": len(markers),
            "markers": markers,
        }

    def clear_markers(self) -> dict:
        """Drop every marker in the store."""
        self.markers.clear()
        return {"success": True, "message": "Markers cleared"}
