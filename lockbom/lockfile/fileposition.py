"""
Helpers locating tokens inside lockfiles and manifests.

Every column produced here is 1-based and spans `[start, end)`.
"""
import os
import re

from lockbom.core import cachedregexp
from lockbom.models.position import FilePosition
from lockbom.models.position import Position

_LINE_BREAK = r'\r\n|\r|\n'


def bytes_to_lines(content: bytes | str) -> list[str]:
    """Split content on CRLF, CR or LF, without a trailing empty line."""
    if isinstance(content, bytes):
        content = content.decode('utf-8', errors='replace')
    if not content:
        return []
    lines = re.split(_LINE_BREAK, content)
    if lines and lines[-1] == '':
        lines.pop()
    return lines


def _single_line(line_number: int, start: int, length: int) -> FilePosition:
    return FilePosition(
        line=Position(start=line_number, end=line_number),
        column=Position(start=start, end=start + length),
    )


def find_substring_in_block(lines: list[str], needle: str, block_start_line: int) -> FilePosition | None:
    """Position of the first line of `lines` containing `needle`."""
    for i, line in enumerate(lines):
        index = line.find(needle)
        if index >= 0:
            return _single_line(block_start_line + i, index + 1, len(needle))
    return None


def find_substring_in_multiline(block: str, needle: str, block_start_line: int) -> FilePosition | None:
    """Position of the first occurrence of `needle` in a block spanning several lines."""
    index = block.find(needle)
    if index < 0:
        return None
    line = block_start_line + block.count('\n', 0, index)
    line_start = block.rfind('\n', 0, index) + 1
    return _single_line(line, index - line_start + 1, len(needle))


def find_in_block_by_delimiters(
    lines: list[str],
    needle: str,
    block_start_line: int,
    prefix: str = '',
    suffix: str = '',
) -> FilePosition | None:
    """Position of `needle` on the first line holding `prefix + needle + suffix`."""
    delimited = prefix + needle + suffix
    for i, line in enumerate(lines):
        index = line.find(delimited)
        if index >= 0:
            return _single_line(block_start_line + i, index + len(prefix) + 1, len(needle))
    return None


def find_in_block_by_regex(
    lines: list[str],
    body_pattern: str,
    block_start_line: int,
    prefix_pattern: str = '',
    suffix_pattern: str = '',
) -> FilePosition | None:
    """Same as find_in_block_by_delimiters with regex fragments; the body capture gives the span."""
    matcher = cachedregexp.compile(f"{prefix_pattern}({body_pattern}){suffix_pattern}")
    for i, line in enumerate(lines):
        match = matcher.search(line)
        if match:
            start, end = match.span(1)
            return _single_line(block_start_line + i, start + 1, end - start)
    return None


def first_non_empty_column(line: str) -> int:
    """1-based column of the first non blank character, -1 for a blank line."""
    stripped = line.lstrip()
    if not stripped:
        return -1
    return len(line) - len(stripped) + 1


def last_non_empty_column(line: str) -> int:
    """Column just after the last non blank character, -1 for a blank line."""
    stripped = line.rstrip()
    if not stripped:
        return -1
    return len(stripped) + 1


def block_over_lines(lines: list[str], start_index: int, end_index: int, filename: str = '') -> FilePosition:
    """Block covering `lines[start_index:end_index + 1]`, trimmed of surrounding blanks."""
    return FilePosition(
        line=Position(start=start_index + 1, end=end_index + 1),
        column=Position(
            start=first_non_empty_column(lines[start_index]),
            end=last_non_empty_column(lines[end_index]),
        ),
        filename=filename,
    )


def to_relative_path(scan_path: str, path: str) -> str:
    """Express `path` relative to the scan directory, with forward slashes."""
    if not path:
        return path
    try:
        relative = os.path.relpath(path, scan_path)
    except ValueError:
        return path
    return relative.replace(os.sep, '/')


def remove_host_path(scan_path: str, path: str, consider_scan_path_as_root: bool, path_relative_to_scan_dir: bool) -> str:
    """
    Strip the host specific prefix of `path`.

    With `consider_scan_path_as_root` the scan directory becomes `/`; with
    `path_relative_to_scan_dir` the leading separator is dropped too.
    """
    if not (consider_scan_path_as_root or path_relative_to_scan_dir) or not path:
        return path

    relative = path
    if os.path.isabs(path):
        relative = to_relative_path(scan_path, path)
    relative = relative.replace(os.sep, '/').lstrip('/')
    if relative.startswith('./'):
        relative = relative[2:]

    if path_relative_to_scan_dir:
        return relative
    return '/' + relative
