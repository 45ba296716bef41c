"""Pip `requirements.txt`, following `-r` includes."""
import os

import structlog

from lockbom.core.errors import LockbomError
from lockbom.core.errors import ParseError
from lockbom.lockfile import registry
from lockbom.lockfile.depfile import DepFile
from lockbom.lockfile.fileposition import first_non_empty_column
from lockbom.lockfile.fileposition import last_non_empty_column
from lockbom.lockfile.python_utils import is_line_continuation
from lockbom.lockfile.python_utils import is_not_requirement_line
from lockbom.lockfile.python_utils import parse_requirement_line
from lockbom.lockfile.python_utils import strip_comments
from lockbom.models.ecosystem import PackageManager
from lockbom.models.package import PackageRecord

logger = structlog.get_logger('requirements')

INCLUDE_PREFIX = '-r '


def logical_lines(lines: list[str]):
    """
    Yield `(line_number, line_offset, text, column_start, column_end)` for
    every logical line, joining the physical lines ended by a backslash.
    """
    index = 0
    while index < len(lines):
        line_number = index + 1
        line = lines[index]
        last_line = line
        column_start = first_non_empty_column(line)
        offset = 0
        while is_line_continuation(line):
            line = line[:-1]
            if index + offset + 1 >= len(lines):
                break
            offset += 1
            last_line = lines[index + offset]
            line += '\n' + last_line
        yield line_number, offset, line, column_start, last_non_empty_column(last_line)
        index += offset + 1


def group_of(path: str) -> str:
    """Requirement files are told apart by their stem, e.g. `requirements-dev`."""
    return os.path.splitext(os.path.basename(path))[0]


def parse_requirements(file: DepFile, required_already: set[str]) -> dict[str, PackageRecord]:
    packages: dict[str, PackageRecord] = {}
    group = group_of(file.path)

    for line_number, offset, line, column_start, column_end in logical_lines(file.lines()):
        clean_line = strip_comments(line.strip())

        if clean_line.startswith(INCLUDE_PREFIX):
            included = clean_line[len(INCLUDE_PREFIX):].strip()
            # remote requirement files are not fetched
            if included.startswith('http://') or included.startswith('https://'):
                continue
            packages.update(_include(file, included, line, required_already))
            continue

        if is_not_requirement_line(clean_line):
            continue

        record = parse_requirement_line(
            file.path, PackageManager.REQUIREMENTS, line, clean_line,
            line_number, offset, column_start, column_end,
        )
        key = f"{record.name}@{record.version}"
        record = packages.setdefault(key, record)
        record.add_dep_group(group)

    return packages


def _include(file: DepFile, included: str, line: str, required_already: set[str]) -> dict[str, PackageRecord]:
    try:
        with file.open(included) as other:
            if other.path in required_already:
                return {}
            required_already.add(other.path)
            logger.debug('Including requirements', path=other.path, included_by=file.path)
            return parse_requirements(other, required_already)
    except LockbomError as e:
        raise ParseError(f"failed to include {line.strip()}: {e}") from e


def should_extract(path: str) -> bool:
    basename = os.path.basename(path)
    return 'requirements' in basename and basename.endswith('.txt')


def extract(file: DepFile) -> list[PackageRecord]:
    return list(parse_requirements(file, {file.path}).values())


REQUIREMENTS_EXTRACTOR = registry.register(registry.Extractor(
    id='requirements.txt',
    should_extract=should_extract,
    extract=extract,
))
