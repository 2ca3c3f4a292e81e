#!/usr/bin/env python3
"""Heuristic classification of flattened assistant text.

Used when no structured events are available, or when the structured result is
too thin to be useful. The text is split into blank-line separated chunks and
each chunk is matched against HEURISTIC_RULES in order; the first match wins.
A trailing summary (after SUMMARY_MARKER) always becomes the last Section.

Consecutive chunks that are each a bare OBJECT_PLACEHOLDER are reported as a
single counted object Section, the same way a chunk holding several
placeholders is.
"""

import re
from typing import Callable, Optional

from .factories import OBJECT_LABEL
from .models import Section, SectionKind

SUMMARY_MARKER = "--- Summary ---"
OBJECT_PLACEHOLDER = "[object Object]"
CHUNK_SEPARATOR = "\n\n"

FILE_EXTENSION_MARKERS = (".html", ".js", ".css", ".json")
FILE_PATH_PATTERN = re.compile(r"`([^`]+\.(html|js|css|json|ts|tsx))`")

COMMAND_MARKERS = ("执行", "运行", "命令")
COMMAND_PATTERN = re.compile(r"\b(execute|executed|running|command)\b", re.IGNORECASE)

CODE_MARKERS = ("```", "function", "class")

SUCCESS_MARKERS = ("成功", "完成", "✅")
SUCCESS_PATTERN = re.compile(
    r"\b(success|successfully|complete|completed)\b", re.IGNORECASE
)

ERROR_MARKERS = ("错误", "失败", "❌")
ERROR_PATTERN = re.compile(r"\b(error|failed)\b", re.IGNORECASE)


# =============================================================================
# Chunk Predicates
# =============================================================================


def _contains_any(chunk: str, markers: tuple[str, ...]) -> bool:
    return any(marker in chunk for marker in markers)


def is_command_chunk(chunk: str) -> bool:
    return _contains_any(chunk, COMMAND_MARKERS) or bool(COMMAND_PATTERN.search(chunk))


def is_code_chunk(chunk: str) -> bool:
    return _contains_any(chunk, CODE_MARKERS)


def is_success_chunk(chunk: str) -> bool:
    return _contains_any(chunk, SUCCESS_MARKERS) or bool(SUCCESS_PATTERN.search(chunk))


def is_error_chunk(chunk: str) -> bool:
    return _contains_any(chunk, ERROR_MARKERS) or bool(ERROR_PATTERN.search(chunk))


# =============================================================================
# Chunk Classifiers
# =============================================================================
# Each classifier returns the Sections for a chunk, or None when it does not
# apply so the next rule is tried.

ChunkClassifier = Callable[[str, int], Optional[list[Section]]]


def _classify_placeholder(chunk: str, index: int) -> Optional[list[Section]]:
    if chunk != OBJECT_PLACEHOLDER:
        return None
    return [Section(SectionKind.OBJECT, OBJECT_LABEL, {"index": index})]


def _counted_object_section(count: int) -> Section:
    return Section(SectionKind.OBJECT, f"Performed {count} operations", {"count": count})


def _classify_placeholder_run(chunk: str, index: int) -> Optional[list[Section]]:
    count = chunk.count(OBJECT_PLACEHOLDER)
    if count <= 1:
        return None
    sections = [_counted_object_section(count)]
    residual = chunk.replace(OBJECT_PLACEHOLDER, "").strip()
    if residual:
        sections.append(Section(SectionKind.TEXT, residual))
    return sections


def _classify_file(chunk: str, index: int) -> Optional[list[Section]]:
    if not _contains_any(chunk, FILE_EXTENSION_MARKERS):
        return None
    match = FILE_PATH_PATTERN.search(chunk)
    if match is None:
        return None
    return [
        Section(
            SectionKind.FILE,
            chunk,
            {"file_path": match.group(1), "file_type": match.group(2)},
        )
    ]


def _kind_rule(
    kind: SectionKind, predicate: Callable[[str], bool]
) -> ChunkClassifier:
    def classify(chunk: str, index: int) -> Optional[list[Section]]:
        return [Section(kind, chunk)] if predicate(chunk) else None

    return classify


# Precedence matters: a chunk can satisfy several of these
HEURISTIC_RULES: list[ChunkClassifier] = [
    _classify_placeholder,
    _classify_placeholder_run,
    _classify_file,
    _kind_rule(SectionKind.COMMAND, is_command_chunk),
    _kind_rule(SectionKind.CODE, is_code_chunk),
    _kind_rule(SectionKind.SUCCESS, is_success_chunk),
    _kind_rule(SectionKind.ERROR, is_error_chunk),
]


def classify_chunk(chunk: str, index: int = 0) -> list[Section]:
    """Classify one non-empty chunk, defaulting to a text Section."""
    for rule in HEURISTIC_RULES:
        sections = rule(chunk, index)
        if sections is not None:
            return sections
    return [Section(SectionKind.TEXT, chunk)]


def split_summary(text: str) -> tuple[str, str]:
    """Split text into (main, summary) around the first summary marker."""
    marker_index = text.find(SUMMARY_MARKER)
    if marker_index == -1:
        return text, ""
    return (
        text[:marker_index].strip(),
        text[marker_index + len(SUMMARY_MARKER) :].strip(),
    )


def classify_text(text: str) -> list[Section]:
    """Classify a flattened assistant message into Sections.

    Args:
        text: The flattened message content

    Returns:
        Sections in chunk order, with the summary Section (if any) last
    """
    if not isinstance(text, str):
        return []

    main_text, summary = split_summary(text)
    sections: list[Section] = []
    # Indices of consecutive chunks that are a bare placeholder
    placeholder_run: list[int] = []

    def flush_placeholders() -> None:
        if len(placeholder_run) == 1:
            sections.extend(classify_chunk(OBJECT_PLACEHOLDER, placeholder_run[0]))
        elif placeholder_run:
            sections.append(_counted_object_section(len(placeholder_run)))
        placeholder_run.clear()

    for index, part in enumerate(main_text.split(CHUNK_SEPARATOR)):
        chunk = part.strip()
        if not chunk:
            continue
        if chunk == OBJECT_PLACEHOLDER:
            placeholder_run.append(index)
            continue
        flush_placeholders()
        sections.extend(classify_chunk(chunk, index))
    flush_placeholders()

    if summary:
        sections.append(Section(SectionKind.SUMMARY, summary))

    return sections
