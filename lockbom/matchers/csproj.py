"""Correlates NuGet lockfiles with the `<PackageReference>` items of the project file."""
import os

import structlog

from lockbom.core.errors import NotFoundError
from lockbom.lockfile.depfile import DepFile
from lockbom.lockfile.fileposition import find_in_block_by_delimiters
from lockbom.lockfile.registry import Matcher
from lockbom.lockfile.xmltree import parse_xml
from lockbom.lockfile.xmltree import XmlElement
from lockbom.models.package import PackageRecord
from lockbom.models.position import FileLocations
from lockbom.models.position import FilePosition

logger = structlog.get_logger('csproj')

PROJECT_EXTENSION = '.csproj'


def get_source_file(lockfile: DepFile) -> DepFile:
    directory = os.path.dirname(lockfile.path)
    try:
        candidates = sorted(name for name in os.listdir(directory) if name.endswith(PROJECT_EXTENSION))
    except OSError as e:
        raise NotFoundError(f"could not list {directory}: {e}") from e
    if not candidates:
        raise NotFoundError(f"no {PROJECT_EXTENSION} found for {lockfile.path}")
    return lockfile.open(candidates[0])


def package_references(element: XmlElement) -> list[XmlElement]:
    references = []
    for child in element.children:
        if child.tag == 'PackageReference':
            references.append(child)
        else:
            references.extend(package_references(child))
    return references


def _attribute_position(lines: list[str], element: XmlElement, attribute: str, value: str, filename: str) -> FilePosition | None:
    start, end = element.start[0], element.end[0]
    position = find_in_block_by_delimiters(lines[start - 1:end], value, start, f'{attribute}="', '"')
    if position is not None:
        position.filename = filename
    return position


def match(source: DepFile, packages: list[PackageRecord]) -> None:
    root = parse_xml(source.read_bytes(), source.path)
    if root is None:
        return
    lines = source.lines()

    by_name: dict[str, list[PackageRecord]] = {}
    for record in packages:
        by_name.setdefault(record.name.lower(), []).append(record)

    for reference in package_references(root):
        name = reference.attributes.get('Include') or reference.attributes.get('Update', '')
        if not name:
            continue
        records = by_name.get(name.lower())
        if not records:
            logger.debug('Package reference not in lockfile', package=name, path=source.path)
            continue

        version = reference.attributes.get('Version', '')
        if version:
            version_position = _attribute_position(lines, reference, 'Version', version, source.path)
        else:
            version = reference.findtext('Version')
            version_element = reference.find('Version')
            version_position = version_element.text_position(source.path) if version_element is not None else None

        attribute = 'Include' if 'Include' in reference.attributes else 'Update'
        locations = FileLocations(
            block=reference.block(source.path),
            name=_attribute_position(lines, reference, attribute, name, source.path),
            version=version_position,
        )
        for record in records:
            record.is_direct = True
            record.add_target_version(version)
            record.set_manifest_locations(locations)


CSPROJ_MATCHER = Matcher(
    name='csproj',
    get_source_file=get_source_file,
    match=match,
)
