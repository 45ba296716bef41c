"""Pipenv `Pipfile.lock`."""
import os

from lockbom.lockfile import registry
from lockbom.lockfile.decoders import load_json
from lockbom.lockfile.depfile import DepFile
from lockbom.lockfile.fileposition import block_over_lines
from lockbom.lockfile.fileposition import find_in_block_by_delimiters
from lockbom.lockfile.lineposition import in_json
from lockbom.lockfile.lineposition import LineSpan
from lockbom.matchers.pipfile import PIPFILE_MATCHER
from lockbom.models.ecosystem import DEV_GROUP
from lockbom.models.ecosystem import Ecosystem
from lockbom.models.ecosystem import PackageManager
from lockbom.models.ecosystem import PROD_GROUP
from lockbom.models.package import PackageRecord

SECTIONS = [
    ('default', PROD_GROUP),
    ('develop', DEV_GROUP),
]


def _record(name: str, version: str, group: str, span: LineSpan, lines: list[str], path: str) -> PackageRecord:
    record = PackageRecord(
        name=name,
        version=version,
        ecosystem=Ecosystem.PYPI,
        package_manager=PackageManager.PIPFILE,
    )
    record.add_dep_group(group)
    if span.start and span.end:
        block = lines[span.start - 1:span.end]
        record.block_position = block_over_lines(lines, span.start - 1, span.end - 1, path)
        record.name_position = find_in_block_by_delimiters(block, name, span.start, '"', '"')
        record.version_position = find_in_block_by_delimiters(block, version, span.start, '"==', '"')
        for position in (record.name_position, record.version_position):
            if position is not None:
                position.filename = path
    return record


def should_extract(path: str) -> bool:
    return os.path.basename(path) == 'Pipfile.lock'


def extract(file: DepFile) -> list[PackageRecord]:
    lockfile = load_json(file)
    if lockfile is None:
        return []
    lines = file.lines()

    details: dict[str, PackageRecord] = {}
    for section, group in SECTIONS:
        packages = lockfile.get(section) or {}
        spans = {name: LineSpan() for name in packages}
        in_json(section, spans, lines)

        for name, package in packages.items():
            raw_version = package.get('version', '') if isinstance(package, dict) else ''
            # packages installed from vcs or paths have no version
            if not raw_version:
                continue
            version = raw_version.removeprefix('==')
            key = f"{name}@{version}"
            if key in details:
                details[key].add_dep_group(group)
                continue
            details[key] = _record(name, version, group, spans[name], lines, file.path)

    return list(details.values())


PIPENV_EXTRACTOR = registry.register(registry.Extractor(
    id='Pipfile.lock',
    should_extract=should_extract,
    extract=extract,
    matchers=(PIPFILE_MATCHER,),
))
