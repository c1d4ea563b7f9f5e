"""Parsing of @copyTo / @generatedFrom tags in documentation comments."""

import re
from typing import Iterable, List, Optional, Tuple

from .models import Annotation

COPY_TO = "copyTo"
GENERATED_FROM = "generatedFrom"

_COPY_TO_PATTERN = re.compile(r"@" + COPY_TO + r"\b")
_TAG_LINE_PATTERN = re.compile(r"@(\w+)(.*)")
_COMMENT_CLOSE = "*/"


def _cut_comment_close(segment: str) -> str:
    end = segment.find(_COMMENT_CLOSE)
    return segment[:end] if end >= 0 else segment


def _split_fragments(value: str) -> Tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


def get_copy_to(text: str) -> Optional[List[str]]:
    """Return the destination paths declared by a @copyTo tag.

    The destinations are the text between the tag keyword and the next
    newline, split on commas and trimmed.

    Args:
        text: Raw documentation comment text

    Returns:
        List of destination path fragments, or None if no @copyTo tag exists
    """
    match = _COPY_TO_PATTERN.search(text)
    if match is None:
        return None

    end = text.find("\n", match.end())
    if end == -1:
        end = len(text)

    return list(_split_fragments(_cut_comment_close(text[match.end() : end])))


def parse_tags(text: str) -> Tuple[Annotation, ...]:
    """Tokenize the block tags of a documentation comment.

    Args:
        text: Raw documentation comment text, delimiters included

    Returns:
        Tags in the order they appear
    """
    body = text
    if body.startswith("/**"):
        body = body[3:]
    body = _cut_comment_close(body)

    tags = []
    for line in body.splitlines():
        line = line.strip().lstrip("*").strip()
        match = _TAG_LINE_PATTERN.match(line)
        if match:
            tags.append(Annotation(tag=match.group(1), fragments=_split_fragments(match.group(2))))
    return tuple(tags)


def get_generated_from(tags: Iterable[Annotation]) -> Optional[str]:
    """Return the source path recorded by a @generatedFrom tag, if any."""
    for annotation in tags:
        if annotation.tag == GENERATED_FROM and annotation.fragments:
            return annotation.fragments[0]
    return None


def rewrite_copy_to(text: str, source_path: str) -> str:
    """Turn every @copyTo tag into @generatedFrom pointing at source_path.

    Args:
        text: Raw documentation comment text of the copied function
        source_path: Workspace path of the file the function is copied from

    Returns:
        The rewritten documentation comment
    """
    lines = []
    for line in text.split("\n"):
        match = _COPY_TO_PATTERN.search(line)
        if match:
            rest = line[match.start() :]
            close = rest.find(_COMMENT_CLOSE)
            ending = "\r" if line.endswith("\r") else ""
            line = line[: match.start()] + f"@{GENERATED_FROM} {source_path}"
            if close >= 0:
                line += " " + rest[close:].rstrip("\r")
            line += ending
        lines.append(line)
    return "\n".join(lines)
