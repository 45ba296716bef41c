"""Correlates Gradle lockfiles with the `build.gradle[.kts]` script next to them."""
import re

from lockbom.core.errors import NotFoundError
from lockbom.lockfile.depfile import DepFile
from lockbom.lockfile.fileposition import find_in_block_by_regex
from lockbom.lockfile.fileposition import first_non_empty_column
from lockbom.lockfile.fileposition import last_non_empty_column
from lockbom.lockfile.registry import Matcher
from lockbom.models.package import PackageRecord
from lockbom.models.position import FileLocations
from lockbom.models.position import FilePosition
from lockbom.models.position import Position

# lockfiles of the gradle/ directory belong to the build script of the root project
CANDIDATES = [
    'build.gradle',
    'build.gradle.kts',
    '../build.gradle',
    '../build.gradle.kts',
]
DELIMITER = '[\'":]'
VERSION_SUFFIX = '[\'"]'


def get_source_file(lockfile: DepFile) -> DepFile:
    for candidate in CANDIDATES:
        try:
            return lockfile.open(candidate)
        except NotFoundError:
            continue
    raise NotFoundError(f"no build.gradle found for {lockfile.path}")


def _locations(line: str, line_number: int, artifact: str, version: str, filename: str) -> FileLocations:
    name = find_in_block_by_regex([line], re.escape(artifact), line_number, DELIMITER, DELIMITER)
    version_position = find_in_block_by_regex([line], re.escape(version), line_number, DELIMITER, VERSION_SUFFIX)
    for position in (name, version_position):
        if position is not None:
            position.filename = filename
    return FileLocations(
        block=FilePosition(
            line=Position(start=line_number, end=line_number),
            column=Position(start=first_non_empty_column(line), end=last_non_empty_column(line)),
            filename=filename,
        ),
        name=name,
        version=version_position,
    )


def match(source: DepFile, packages: list[PackageRecord]) -> None:
    """
    A dependency is any line mentioning both the group and the artifact of a
    record. Positions are only recorded when the resolved version is on the
    line too; ranges and conflict resolution are not interpreted.
    """
    homonyms: dict[str, int] = {}
    for record in packages:
        homonyms[record.name] = homonyms.get(record.name, 0) + 1

    for index, line in enumerate(source.lines()):
        line_number = index + 1
        for record in packages:
            group, _, artifact = record.name.partition(':')
            if group not in line or artifact not in line:
                continue
            if record.version and record.version in line:
                record.is_direct = True
                record.set_manifest_locations(_locations(line, line_number, artifact, record.version, source.path))
            elif homonyms[record.name] == 1:
                record.is_direct = True


BUILD_GRADLE_MATCHER = Matcher(
    name='build.gradle',
    get_source_file=get_source_file,
    match=match,
)
