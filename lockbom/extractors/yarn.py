"""Yarn `yarn.lock`, classic (v1) and berry (v2+) flavours."""
import os
from dataclasses import dataclass
from dataclasses import field

import structlog

from lockbom.core import cachedregexp
from lockbom.lockfile import registry
from lockbom.lockfile.commits import try_extract_commit
from lockbom.lockfile.depfile import DepFile
from lockbom.lockfile.fileposition import first_non_empty_column
from lockbom.lockfile.fileposition import last_non_empty_column
from lockbom.matchers.package_json import PACKAGE_JSON_MATCHER
from lockbom.models.ecosystem import Ecosystem
from lockbom.models.ecosystem import PackageManager
from lockbom.models.package import PackageRecord
from lockbom.models.position import FilePosition
from lockbom.models.position import Position

logger = structlog.get_logger('yarn')

VERSION_PATTERN = r'^ {2}"?version"?:? "?([\w.+-]+)"?$'
RESOLUTION_PATTERN = r'^ {2}"?(?:resolution:|resolved)"? "([^ \'"]+)"$'
DEPENDENCY_PATTERN = r'^ {4}"?(@?[^"\s]+?)"?:? "?([^"]*)"?$'
TARGET_PREFIXES = ('file:', 'link:', 'portal:')


@dataclass
class YarnGroup:
    lines: list[str] = field(default_factory=list)
    line_start: int = 0
    line_end: int = 0
    column_start: int = 0
    column_end: int = 0


def _should_skip(line: str) -> bool:
    return line == '' or line.startswith('#')


def group_package_lines(lines: list[str]) -> list[YarnGroup]:
    """Split the lockfile into the blocks starting at each unindented header."""
    groups: list[YarnGroup] = []
    current: YarnGroup | None = None

    for number, line in enumerate(lines, start=1):
        if _should_skip(line):
            continue
        if not line.startswith(' '):
            current = YarnGroup(line_start=number, column_start=first_non_empty_column(line))
            groups.append(current)
        if current is None:
            continue
        current.lines.append(line)
        current.line_end = number
        current.column_end = last_non_empty_column(line)

    return groups


def _strip_target(target: str) -> str:
    for prefix in TARGET_PREFIXES:
        target = target.removeprefix(prefix)
    return target.split('::locator', 1)[0]


def parse_header(header: str) -> tuple[str, list[str]]:
    """
    Name and target versions of a header such as `"pkg@^1.0", pkg@~1.2:`.
    Aliases (`alias@npm:real@^1.0`) resolve to the real package name.
    """
    header = header.replace('"', '').removesuffix(':')
    name = ''
    is_scoped = False
    targets: list[str] = []

    for part in header.split(','):
        part = part.removeprefix(' ')
        if part.startswith('@'):
            is_scoped = True
            part = part[1:]

        part_name, _, right = part.partition('@')
        if not name:
            name = part_name

        if right.startswith('npm:'):
            right = right[len('npm:'):]
            if '@' in right:
                real_name, real_targets = parse_header(right)
                name = real_name
                is_scoped = False
                targets.extend(real_targets)
                continue

        targets.append(_strip_target(right))

    if is_scoped:
        name = '@' + name
    return name, targets


def _first_capture(pattern: str, lines: list[str]) -> str:
    matcher = cachedregexp.compile(pattern)
    for line in lines:
        match = matcher.match(line)
        if match:
            return match.group(1)
    return ''


def _dependencies_of(group: YarnGroup) -> list[tuple[str, str]]:
    dependencies = []
    inside = False
    matcher = cachedregexp.compile(DEPENDENCY_PATTERN)
    for line in group.lines[1:]:
        if not line.startswith('    '):
            inside = line.strip() in ('dependencies:', 'optionalDependencies:')
            continue
        if not inside:
            continue
        match = matcher.match(line)
        if match:
            target = match.group(2).removeprefix('npm:')
            dependencies.append((match.group(1), _strip_target(target)))
    return dependencies


def should_extract(path: str) -> bool:
    return os.path.basename(path) == 'yarn.lock'


def extract(file: DepFile) -> list[PackageRecord]:
    packages: list[PackageRecord] = []
    by_selector: dict[tuple[str, str], PackageRecord] = {}
    edges: list[tuple[PackageRecord, list[tuple[str, str]]]] = []

    for group in group_package_lines(file.lines()):
        name, targets = parse_header(group.lines[0])
        if name == '__metadata':
            continue

        version = _first_capture(VERSION_PATTERN, group.lines)
        if not version:
            logger.warning('Failed to determine version of yarn package', package=name, path=file.path)

        record = PackageRecord(
            name=name,
            version=version,
            ecosystem=Ecosystem.NPM,
            package_manager=PackageManager.YARN,
            commit=try_extract_commit(_first_capture(RESOLUTION_PATTERN, group.lines)),
            block_position=FilePosition(
                line=Position(start=group.line_start, end=group.line_end),
                column=Position(start=group.column_start, end=group.column_end),
                filename=file.path,
            ),
        )
        for target in targets:
            record.add_target_version(target)
            by_selector[(name, target)] = record
        packages.append(record)
        edges.append((record, _dependencies_of(group)))

    for record, dependencies in edges:
        for selector in dependencies:
            dependency = by_selector.get(selector)
            if dependency is not None and dependency is not record:
                record.dependencies.append(dependency)

    return packages


YARN_EXTRACTOR = registry.register(registry.Extractor(
    id='yarn.lock',
    should_extract=should_extract,
    extract=extract,
    matchers=(PACKAGE_JSON_MATCHER,),
))
