"""
Second-pass trackers attaching line ranges to entries that a structural
decoder already parsed, for decoders that discard positions.
"""
import re
from dataclasses import dataclass
from dataclasses import field

import structlog

from lockbom.core import cachedregexp
from lockbom.core.config import get_config
from lockbom.lockfile.fileposition import block_over_lines
from lockbom.lockfile.fileposition import find_in_block_by_delimiters
from lockbom.models.position import FilePosition

logger = structlog.get_logger('lineposition')

PACKAGE_TABLE = '[[package]]'
METADATA_TABLE = '[metadata]'


@dataclass
class LineSpan:
    start: int = 0
    end: int = 0
    nested: dict[str, 'LineSpan'] = field(default_factory=dict)


def _key_of(line: str) -> str:
    match = cachedregexp.compile(r'"(.+)"').search(line)
    return match.group(1) if match else ''


def in_json(group_key: str, dependencies: dict[str, LineSpan], lines: list[str], start: int = 0) -> None:
    """
    Walk `lines` from `start` counting braces and record, for every key of
    `dependencies` found directly under the `group_key` object, the line where
    its object opens and closes.

    When a dependency holds its own `group_key` object and has nested spans,
    the walk recurses into it. A nested walk stops when its group closes.
    """
    debug = get_config().extraction.debug
    group = ''
    group_level = 0
    stack = 0
    current = ''

    for index in range(start, len(lines)):
        line = lines[index]
        if '{' in line:
            stack += 1
            key = _key_of(line)
            if key:
                if group and stack == group_level + 1 and key in dependencies:
                    current = key
                    dependencies[key].start = index + 1
                    if debug:
                        logger.debug('Dependency start', key=key, line=index + 1)
                if key == group_key:
                    if not group:
                        group = key
                        group_level = stack
                        if debug:
                            logger.debug('Group start', key=key, line=index + 1)
                    elif current in dependencies and dependencies[current].nested:
                        if debug:
                            logger.debug('Nested group start', line=index + 1)
                        in_json(group_key, dependencies[current].nested, lines, index)
        if '}' in line:
            stack -= 1
            if not group:
                continue
            if stack == group_level and current:
                if current in dependencies:
                    dependencies[current].end = index + 1
                    if debug:
                        logger.debug('Dependency end', key=current, line=index + 1)
                current = ''
            elif stack == group_level - 1:
                group = ''
                if debug:
                    logger.debug('Group end', line=index + 1)
                if start != 0:
                    return


def in_toml(group_key: str, other_key: str, dependencies: list[LineSpan], lines: list[str]) -> None:
    """
    Assign line ranges to consecutive `group_key` tables (such as
    `[[package]]`). A table ends before the next `group_key` or `other_key`
    line, trailing blank line excluded, or on the last line of the file.
    """
    debug = get_config().extraction.debug
    dependency = 0
    is_open = False
    last = len(lines) - 1

    for line_number, line in enumerate(lines):
        if line in (group_key, other_key) or line_number == last:
            if is_open and dependency < len(dependencies):
                line_end = line_number
                if line_number == last and line not in (group_key, other_key):
                    line_end += 1
                elif line_number > 0 and lines[line_number - 1] == '':
                    line_end -= 1
                dependencies[dependency].end = line_end
                if debug:
                    logger.debug('Table end', line=line_end)
                dependency += 1
                is_open = False
        if line == group_key and not is_open and dependency < len(dependencies):
            dependencies[dependency].start = line_number + 1
            is_open = True
            if debug:
                logger.debug('Table start', line=line_number + 1)


def in_json_array(group_key: str, lines: list[str]) -> list[LineSpan]:
    """
    Line spans of the objects of the `"group_key": [...]` array, in order.
    Brackets inside strings are ignored.
    """
    opener = cachedregexp.compile(rf'"{re.escape(group_key)}"\s*:\s*\[')
    spans: list[LineSpan] = []
    inside = False
    in_string = False
    escaped = False
    depth = 0

    for index, line in enumerate(lines):
        offset = 0
        if not inside:
            match = opener.search(line)
            if match is None:
                continue
            inside = True
            offset = match.end()

        for char in line[offset:]:
            if in_string:
                if escaped:
                    escaped = False
                elif char == '\\':
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char in '{[':
                if depth == 0 and char == '{':
                    spans.append(LineSpan(start=index + 1))
                depth += 1
            elif char in '}]':
                if depth == 0:
                    return spans
                depth -= 1
                if depth == 0 and char == '}':
                    spans[-1].end = index + 1
    return spans


def toml_table_positions(
    lines: list[str],
    span: LineSpan,
    name: str,
    version: str,
    path: str,
) -> tuple[FilePosition, FilePosition | None, FilePosition | None]:
    """Block, name and version positions of one `[[package]]` table."""
    if not span.start or not span.end:
        return FilePosition(), None, None
    block = lines[span.start - 1:span.end]
    name_position = find_in_block_by_delimiters(block, name, span.start, 'name = "', '"')
    version_position = find_in_block_by_delimiters(block, version, span.start, 'version = "', '"')
    for position in (name_position, version_position):
        if position is not None:
            position.filename = path
    return block_over_lines(lines, span.start - 1, span.end - 1, path), name_position, version_position
