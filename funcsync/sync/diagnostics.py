"""Diagnostics sink: per-file, per-line markers for broken provenance links."""

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import asdict, dataclass
from enum import IntEnum
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


class Severity(IntEnum):
    """Marker severity levels."""

    INFO = 0
    WARNING = 1
    ERROR = 2


@dataclass(frozen=True)
class Marker:
    """A diagnostic attached to a file and line."""

    file: str
    message: str
    line: int
    severity: Severity


class DiagnosticsSink(ABC):
    """Receiver of diagnostics produced by the synchronization engine."""

    @abstractmethod
    def add_marker(self, file: str, message: str, line_number: int, severity: Severity) -> None:
        """Record a diagnostic for a file."""

    @abstractmethod
    def delete_markers(self, file: str) -> None:
        """Clear all diagnostics previously recorded for a file."""


class MarkerStore(DiagnosticsSink):
    """In-memory diagnostics sink."""

    def __init__(self):
        self._markers: Dict[str, List[Marker]] = defaultdict(list)

    def add_marker(self, file: str, message: str, line_number: int, severity: Severity) -> None:
        if line_number < 1:
            line_number = 1

        marker = Marker(file=file, message=message, line=line_number, severity=Severity(severity))
        self._markers[file].append(marker)

        log = logger.error if marker.severity == Severity.ERROR else logger.warning
        log(f"{file}:{line_number}: {message}")

    def delete_markers(self, file: str) -> None:
        if self._markers.pop(file, None):
            logger.debug(f"Cleared markers for {file}")

    def markers(self, file: Optional[str] = None) -> List[Marker]:
        """Get markers for one file, or for every file.

        Args:
            file: Workspace path of the file (all files if omitted)

        Returns:
            List of markers
        """
        if file is not None:
            return list(self._markers.get(file, []))
        return [marker for markers in self._markers.values() for marker in markers]

    def count(self) -> int:
        return sum(len(markers) for markers in self._markers.values())

    def clear(self) -> None:
        self._markers.clear()

    def to_dict(self, file: Optional[str] = None) -> List[dict]:
        return [
            {**asdict(marker), "severity": marker.severity.name.lower()}
            for marker in self.markers(file)
        ]
