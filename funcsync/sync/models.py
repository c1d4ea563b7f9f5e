"""Data models for annotated source files."""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class Annotation:
    """A documentation-comment tag and its comma-separated fragments."""

    tag: str  # tag name without the leading '@'
    fragments: Tuple[str, ...]


@dataclass(frozen=True)
class DocComment:
    """Documentation comment attached to a function declaration."""

    text: str
    start_byte: int
    end_byte: int
    end_line: int  # 1-based line of the closing '*/'
    tags: Tuple[Annotation, ...]


@dataclass(frozen=True)
class FunctionUnit:
    """A named top-level function declaration inside a source file."""

    name: str
    arity: int
    node_type: str  # function_declaration, export_statement, etc.
    start_byte: int  # start of the declaration statement
    end_byte: int
    start_line: int
    doc: Optional[DocComment] = None

    @property
    def span_start(self) -> int:
        """First byte of the unit, including its documentation comment."""
        return self.doc.start_byte if self.doc else self.start_byte


@dataclass(frozen=True)
class SourceUnit:
    """Immutable parsed view of a source file."""

    path: str  # workspace path, e.g. /project/lib/util.js
    language: str
    source: bytes
    functions: Tuple[FunctionUnit, ...]

    @property
    def text(self) -> str:
        return self.source.decode("utf-8")

    def function_text(self, function: FunctionUnit) -> str:
        """Source text of a function, documentation comment included."""
        return self.source[function.span_start : function.end_byte].decode("utf-8")

    def body_text(self, function: FunctionUnit) -> str:
        """Source text of a function declaration without its documentation comment."""
        return self.source[function.start_byte : function.end_byte].decode("utf-8")


@dataclass(frozen=True)
class ReplicaRef:
    """Location of a replica function: owning file and function name."""

    file: str
    function: str


@dataclass
class FileOutcome:
    """Result of synchronizing a single file."""

    path: str
    written: List[str] = field(default_factory=list)
    markers: int = 0
    removed_functions: int = 0
    errors: List[Exception] = field(default_factory=list)
