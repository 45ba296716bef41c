"""
Position recovery in the TOML manifests of Python projects (`Pipfile`,
`pyproject.toml`), plus the name based correlation they share.

The TOML decoder drops positions, so tables are located by a line scan of
the raw text.
"""
from typing import Any

from lockbom.core import cachedregexp
from lockbom.lockfile.depfile import DepFile
from lockbom.lockfile.decoders import load_toml
from lockbom.lockfile.fileposition import find_in_block_by_delimiters
from lockbom.lockfile.fileposition import first_non_empty_column
from lockbom.lockfile.fileposition import last_non_empty_column
from lockbom.lockfile.python_utils import normalized_requirement_name
from lockbom.lockfile.python_utils import parse_requirement_line
from lockbom.models.ecosystem import PackageManager
from lockbom.models.package import PackageRecord
from lockbom.models.position import FileLocations
from lockbom.models.position import FilePosition
from lockbom.models.position import Position

HEADER_PATTERN = r'^\s*\[\[?\s*([^\]]+?)\s*\]\]?\s*(#.*)?$'
ENTRY_PATTERN = r'^\s*(["\']?)([A-Za-z0-9._-]+)\1\s*='


def load_manifest(source: DepFile) -> dict[str, Any]:
    return load_toml(source) or {}


def table_lines(lines: list[str], table: str) -> list[int]:
    """Indexes of the lines that belong to `[table]`, its header excluded."""
    indexes = []
    inside = False
    for index, line in enumerate(lines):
        header = cachedregexp.compile(HEADER_PATTERN).match(line)
        if header:
            inside = header.group(1).replace('"', '').replace("'", '') == table
            continue
        if inside:
            indexes.append(index)
    return indexes


def _line_position(lines: list[str], index: int, filename: str) -> FilePosition:
    return FilePosition(
        line=Position(start=index + 1, end=index + 1),
        column=Position(start=first_non_empty_column(lines[index]), end=last_non_empty_column(lines[index])),
        filename=filename,
    )


def _with_filename(position: FilePosition | None, filename: str) -> FilePosition | None:
    if position is not None:
        position.filename = filename
    return position


def entry_locations(lines: list[str], table: str, name: str, requirement: str, filename: str) -> FileLocations | None:
    """Locations of a `name = "requirement"` (or inline table) entry of `[table]`."""
    wanted = normalized_requirement_name(name)
    for index in table_lines(lines, table):
        entry = cachedregexp.compile(ENTRY_PATTERN).match(lines[index])
        if entry is None or normalized_requirement_name(entry.group(2)) != wanted:
            continue
        line = lines[index]
        name_position = find_in_block_by_delimiters([line], entry.group(2), index + 1)
        version_position = None
        if requirement:
            version_position = find_in_block_by_delimiters([line], requirement, index + 1, '"', '"')
            if version_position is None:
                version_position = find_in_block_by_delimiters([line], requirement, index + 1, "'", "'")
        return FileLocations(
            block=_line_position(lines, index, filename),
            name=_with_filename(name_position, filename),
            version=_with_filename(version_position, filename),
        )
    return None


def requirement_locations(lines: list[str], requirement: str, filename: str) -> FileLocations | None:
    """Locations of a PEP 508 string of a `dependencies = [...]` array."""
    for index, line in enumerate(lines):
        if f'"{requirement}"' not in line and f"'{requirement}'" not in line:
            continue
        record = parse_requirement_line(
            filename, PackageManager.UNKNOWN, line, requirement,
            index + 1, 0, first_non_empty_column(line), last_non_empty_column(line),
        )
        return FileLocations(
            block=record.block_position,
            name=record.name_position,
            version=record.version_position,
        )
    return None


def requirement_of(declaration: Any) -> str:
    """`"^1.0"` and `{version = "^1.0", ...}` both give `^1.0`."""
    if isinstance(declaration, str):
        return declaration
    if isinstance(declaration, dict):
        version = declaration.get('version', '')
        return version if isinstance(version, str) else ''
    return ''


def records_by_name(packages: list[PackageRecord]) -> dict[str, list[PackageRecord]]:
    by_name: dict[str, list[PackageRecord]] = {}
    for record in packages:
        by_name.setdefault(normalized_requirement_name(record.name), []).append(record)
    return by_name


def mark_direct(records: list[PackageRecord], requirement: str, group: str, locations: FileLocations | None) -> None:
    for record in records:
        record.is_direct = True
        record.add_target_version(requirement)
        record.add_dep_group(group)
        if locations is not None:
            record.set_manifest_locations(locations)
