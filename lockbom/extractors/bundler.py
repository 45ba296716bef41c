"""
Bundler `Gemfile.lock`.

Gems are read from the `specs:` of every source section (`GEM`, `GIT`,
`PATH`, `PLUGIN SOURCE`); the other sections are skipped.
"""
import os

import structlog

from lockbom.core import cachedregexp
from lockbom.core.errors import ParseError
from lockbom.lockfile import registry
from lockbom.lockfile.depfile import DepFile
from lockbom.lockfile.fileposition import first_non_empty_column
from lockbom.lockfile.fileposition import last_non_empty_column
from lockbom.matchers.gemfile import GEMFILE_MATCHER
from lockbom.models.ecosystem import Ecosystem
from lockbom.models.ecosystem import PackageManager
from lockbom.models.package import PackageRecord
from lockbom.models.position import FilePosition
from lockbom.models.position import Position

logger = structlog.get_logger('bundler')

SOURCE_SECTIONS = frozenset({'GEM', 'GIT', 'PATH', 'PLUGIN SOURCE'})
SPEC_PATTERN = r'^ {4}(?P<name>[^ ]+) \((?P<version>[^)]+)\)$'
REVISION_PATTERN = r'^ {2}revision: (?P<revision>\S+)$'


def _single_line(line_number: int, start: int, end: int, path: str) -> FilePosition:
    return FilePosition(
        line=Position(start=line_number, end=line_number),
        column=Position(start=start, end=end),
        filename=path,
    )


def parse_spec(line: str, line_number: int, path: str) -> PackageRecord:
    match = cachedregexp.compile(SPEC_PATTERN).match(line)
    if match is None:
        raise ParseError(f"could not extract from {path}: invalid spec on line {line_number}: {line.strip()!r}")

    # platform specific gems are suffixed, e.g. `1.15.4-x86_64-linux`
    version = match.group('version').split('-')[0]
    return PackageRecord(
        name=match.group('name'),
        version=version,
        ecosystem=Ecosystem.RUBYGEMS,
        package_manager=PackageManager.BUNDLER,
        block_position=_single_line(line_number, first_non_empty_column(line), last_non_empty_column(line), path),
        name_position=_single_line(line_number, match.start('name') + 1, match.end('name') + 1, path),
        version_position=_single_line(line_number, match.start('version') + 1, match.start('version') + len(version) + 1, path),
    )


def should_extract(path: str) -> bool:
    return os.path.basename(path) == 'Gemfile.lock'


def extract(file: DepFile) -> list[PackageRecord]:
    packages: list[PackageRecord] = []
    section = ''
    revision = ''
    in_specs = False

    for index, line in enumerate(file.lines()):
        if not line.strip():
            continue

        if not line.startswith(' '):
            section = line.strip()
            revision = ''
            in_specs = False
            continue
        if section not in SOURCE_SECTIONS:
            continue

        if not line.startswith('   '):
            in_specs = line.strip() == 'specs:'
            match = cachedregexp.compile(REVISION_PATTERN).match(line)
            if match and section == 'GIT':
                revision = match.group('revision')
            continue

        # deeper lines are the constraints of the gem above
        if not in_specs or line.startswith('      '):
            continue

        record = parse_spec(line, index + 1, file.path)
        record.commit = revision
        packages.append(record)

    return packages


BUNDLER_EXTRACTOR = registry.register(registry.Extractor(
    id='Gemfile.lock',
    should_extract=should_extract,
    extract=extract,
    matchers=(GEMFILE_MATCHER,),
))
