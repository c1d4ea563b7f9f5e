"""Reverse index from originator files to the replicas generated from them."""

import logging
from collections import defaultdict
from typing import Dict, List, Set

from .annotations import get_generated_from
from .exceptions import SyncError
from .models import ReplicaRef, SourceUnit
from .source_model import SourceModel
from .workspace import Workspace

logger = logging.getLogger(__name__)


class ProvenanceIndex:
    """In-memory map of source path -> replica locations.

    The index is derived entirely from ``@generatedFrom`` tags. It is built
    lazily on the first query by scanning the workspace, then kept current by
    the engine recording every file it parses or rewrites. It is never
    persisted; a full build invalidates it.
    """

    def __init__(self, workspace: Workspace, model: SourceModel):
        self.workspace = workspace
        self.model = model
        self._by_source: Dict[str, Set[ReplicaRef]] = defaultdict(set)
        self._by_file: Dict[str, Set[str]] = defaultdict(set)
        self._built = False

    @property
    def is_built(self) -> bool:
        return self._built

    def invalidate(self) -> None:
        """Drop all entries; the next query rebuilds the index."""
        self._by_source.clear()
        self._by_file.clear()
        self._built = False

    def _rebuild(self) -> None:
        self.invalidate()
        files = self.workspace.managed_files()
        for path in files:
            try:
                text = self.workspace.read_text(path)
                unit = self.model.parse(text.encode("utf-8"), path)
            except (SyncError, OSError) as e:
                logger.warning(f"Skipping {path} while building provenance index: {e}")
                continue
            self._add(unit)
        self._built = True
        logger.info(
            f"Built provenance index: {sum(len(refs) for refs in self._by_source.values())} "
            f"replicas from {len(self._by_source)} sources across {len(files)} files"
        )

    def _add(self, unit: SourceUnit) -> None:
        for function in unit.functions:
            if function.doc is None:
                continue
            source = get_generated_from(function.doc.tags)
            if source:
                self._by_source[source].add(ReplicaRef(file=unit.path, function=function.name))
                self._by_file[unit.path].add(source)

    def forget(self, path: str) -> None:
        """Remove every replica entry owned by a file."""
        for source in self._by_file.pop(path, set()):
            refs = self._by_source.get(source)
            if refs is None:
                continue
            refs.difference_update({ref for ref in refs if ref.file == path})
            if not refs:
                del self._by_source[source]

    def record(self, unit: SourceUnit) -> None:
        """Replace the entries of a file with the replicas found in unit."""
        if not self._built:
            return
        self.forget(unit.path)
        self._add(unit)

    def replicas_of(self, source: str) -> List[ReplicaRef]:
        """Return the replicas generated from a source path.

        Args:
            source: Workspace path of the originator file

        Returns:
            Replica references ordered by file then function name
        """
        if not self._built:
            self._rebuild()
        return sorted(self._by_source.get(source, set()), key=lambda ref: (ref.file, ref.function))
