"""Synchronization engine: replicate annotated functions and track provenance.

A function whose documentation comment carries ``@copyTo a.js, b.js`` is an
originator. Processing its file copies the function into each destination
(relative to the owning project), replacing any function with the same key,
and rewrites the copy's tag to ``@generatedFrom /<project>/<source path>``.
A function carrying ``@generatedFrom`` is a replica; processing its file
checks that the recorded source file and function still exist. Removing an
originator file removes every replica generated from it.
"""

import logging
from typing import Optional

from .annotations import get_copy_to, get_generated_from, rewrite_copy_to
from .diagnostics import DiagnosticsSink, Severity
from .exceptions import SyncError
from .matcher import FunctionMatcher
from .models import FileOutcome, FunctionUnit, SourceUnit
from .provenance import ProvenanceIndex
from .source_model import SourceModel
from .workspace import Workspace

logger = logging.getLogger(__name__)


class SyncEngine:
    """Keep replica functions consistent with their originators."""

    def __init__(
        self,
        workspace: Workspace,
        diagnostics: DiagnosticsSink,
        model: Optional[SourceModel] = None,
        matcher: Optional[FunctionMatcher] = None,
        provenance: Optional[ProvenanceIndex] = None,
        report_missing_destinations: bool = False,
    ):
        """Initialize the engine.

        Args:
            workspace: Workspace holding the managed projects
            diagnostics: Sink receiving broken-provenance markers
            model: Source model used to parse and edit files
            matcher: Function matcher (name equality by default)
            provenance: Reverse index used by the removal cascade
            report_missing_destinations: Add a warning marker when a @copyTo
                destination is missing or unmanaged instead of skipping it silently
        """
        self.workspace = workspace
        self.diagnostics = diagnostics
        self.model = model or SourceModel(workspace.registry)
        self.matcher = matcher or FunctionMatcher()
        self.provenance = provenance or ProvenanceIndex(workspace, self.model)
        self.report_missing_destinations = report_missing_destinations

    def _load(self, path: str) -> SourceUnit:
        text = self.workspace.read_text(path)
        return self.model.parse(text.encode("utf-8"), path)

    def _persist(self, unit: SourceUnit) -> None:
        self.workspace.write_text(unit.path, self.model.serialize(unit))

    def process_file(self, path: str) -> FileOutcome:
        """Synchronize an added or changed file.

        Args:
            path: Workspace path of the file (normalized before use)

        Returns:
            Outcome listing rewritten destinations and markers added

        Raises:
            ParseFailure: If the file (or a destination) cannot be parsed
            PersistFailure: If a destination cannot be written
        """
        canonical = self.workspace.normalize(path)
        if canonical is None:
            logger.warning(f"Ignoring path outside the workspace: {path}")
            return FileOutcome(path=path)
        path = canonical
        outcome = FileOutcome(path=path)

        if not self.workspace.is_managed(path):
            logger.debug(f"Skipping unmanaged file: {path}")
            return outcome

        if self.workspace.resolve(path) is None:
            logger.debug(f"Skipping missing file: {path}")
            return outcome

        self.diagnostics.delete_markers(path)
        unit = self._load(path)

        for function in unit.functions:
            if function.doc is None:
                continue

            destinations = get_copy_to(function.doc.text)
            if destinations:
                replica_text = self._replica_text(unit, function)
                for destination in destinations:
                    written = self._replicate(unit, function, replica_text, destination, outcome)
                    if written:
                        outcome.written.append(written)

            generated_from = get_generated_from(function.doc.tags)
            if generated_from:
                self._validate(unit, function, generated_from, outcome)

        self.provenance.record(unit)

        if outcome.written:
            logger.info(f"Synchronized {path} -> {', '.join(outcome.written)}")
        return outcome

    def _replica_text(self, unit: SourceUnit, function: FunctionUnit) -> str:
        """Text of the copy: doc comment with @copyTo rewritten, then the declaration."""
        doc_text = rewrite_copy_to(function.doc.text, unit.path)
        gap = unit.source[function.doc.end_byte : function.start_byte].decode("utf-8")
        return doc_text + gap + unit.body_text(function)

    def _replicate(
        self,
        unit: SourceUnit,
        function: FunctionUnit,
        replica_text: str,
        destination: str,
        outcome: FileOutcome,
    ) -> Optional[str]:
        """Copy one function into one destination.

        Returns:
            Workspace path of the destination if it was rewritten, else None
        """
        project = self.workspace.project_of(unit.path)
        dest_path = self.workspace.project_member(project, destination)

        if (
            dest_path is None
            or not self.workspace.is_managed(dest_path)
            or self.workspace.resolve(dest_path) is None
        ):
            if self.report_missing_destinations:
                self.diagnostics.add_marker(
                    unit.path,
                    f"Cannot find destination resource {destination}",
                    function.doc.end_line,
                    Severity.WARNING,
                )
                outcome.markers += 1
            else:
                logger.debug(f"Destination not found, skipping: {destination} (from {unit.path})")
            return None

        if dest_path == unit.path:
            logger.warning(f"Ignoring @copyTo of '{function.name}' into its own file {unit.path}")
            return None

        dest_unit = self._load(dest_path)
        original = dest_unit.source

        existing = self.matcher.find(dest_unit.functions, function)
        if existing is not None:
            dest_unit = self.model.remove_function(dest_unit, existing)

        dest_unit = self.model.append_function(dest_unit, replica_text)

        if dest_unit.source == original:
            logger.debug(f"'{function.name}' already up to date in {dest_path}")
            return None

        self._persist(dest_unit)
        self.provenance.record(dest_unit)
        logger.debug(f"Copied '{function.name}' from {unit.path} to {dest_path}")
        return dest_path

    def _validate(
        self, unit: SourceUnit, function: FunctionUnit, generated_from: str, outcome: FileOutcome
    ) -> None:
        """Check that a replica's recorded source file and function still exist."""
        line = function.doc.end_line

        if self.workspace.resolve(generated_from) is None:
            self.diagnostics.add_marker(
                unit.path, f"Cannot find resource {generated_from}", line, Severity.ERROR
            )
            outcome.markers += 1
            return

        try:
            source_unit = self._load(generated_from)
        except SyncError as e:
            logger.warning(f"Cannot verify source of '{function.name}' in {unit.path}: {e}")
            return

        if self.matcher.find(source_unit.functions, function) is None:
            self.diagnostics.add_marker(
                unit.path, f"Cannot find source function {generated_from}", line, Severity.ERROR
            )
            outcome.markers += 1

    def process_removed(self, path: str) -> FileOutcome:
        """Remove every replica generated from a deleted file.

        Replicas are found through the provenance index; each candidate file
        is re-parsed and every function whose @generatedFrom equals path is
        removed. A candidate file that fails to parse is recorded in the
        outcome's errors and the cascade continues with the next one.

        Args:
            path: Workspace path of the removed file (normalized before use)

        Returns:
            Outcome listing rewritten files and the number of removed functions

        Raises:
            PersistFailure: If a rewritten file cannot be written
        """
        canonical = self.workspace.normalize(path)
        if canonical is None:
            logger.warning(f"Ignoring path outside the workspace: {path}")
            return FileOutcome(path=path)
        path = canonical
        outcome = FileOutcome(path=path)
        self.diagnostics.delete_markers(path)

        refs = self.provenance.replicas_of(path)
        self.provenance.forget(path)

        for file in dict.fromkeys(ref.file for ref in refs):
            if self.workspace.resolve(file) is None:
                self.provenance.forget(file)
                continue

            try:
                unit = self._load(file)
            except SyncError as e:
                logger.error(f"Cannot remove replicas of {path} from {file}: {e}")
                outcome.errors.append(e)
                continue

            original = unit.source
            victim = self._find_replica(unit, path)
            while victim is not None:
                unit = self.model.remove_function(unit, victim)
                outcome.removed_functions += 1
                victim = self._find_replica(unit, path)

            if unit.source != original:
                self._persist(unit)
                outcome.written.append(file)
            self.provenance.record(unit)

        if outcome.removed_functions:
            logger.info(
                f"Removed {outcome.removed_functions} replicas of {path} "
                f"from {len(outcome.written)} files"
            )
        return outcome

    @staticmethod
    def _find_replica(unit: SourceUnit, source: str) -> Optional[FunctionUnit]:
        for function in unit.functions:
            if function.doc is not None and get_generated_from(function.doc.tags) == source:
                return function
        return None
