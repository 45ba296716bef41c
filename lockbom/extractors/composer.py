"""Composer `composer.lock`."""
import os

from lockbom.lockfile import registry
from lockbom.lockfile.decoders import load_json
from lockbom.lockfile.depfile import DepFile
from lockbom.lockfile.fileposition import block_over_lines
from lockbom.lockfile.fileposition import find_in_block_by_delimiters
from lockbom.lockfile.lineposition import in_json_array
from lockbom.matchers.composer_json import COMPOSER_JSON_MATCHER
from lockbom.models.ecosystem import DEV_GROUP
from lockbom.models.ecosystem import Ecosystem
from lockbom.models.ecosystem import PackageManager
from lockbom.models.ecosystem import PROD_GROUP
from lockbom.models.package import PackageRecord

SECTIONS = [
    ('packages', PROD_GROUP),
    ('packages-dev', DEV_GROUP),
]


def should_extract(path: str) -> bool:
    return os.path.basename(path) == 'composer.lock'


def extract(file: DepFile) -> list[PackageRecord]:
    lockfile = load_json(file)
    if lockfile is None:
        return []
    lines = file.lines()

    packages = []
    for section, group in SECTIONS:
        entries = lockfile.get(section) or []
        spans = in_json_array(section, lines)

        for index, entry in enumerate(entries):
            name = entry.get('name', '')
            version = entry.get('version', '')
            record = PackageRecord(
                name=name,
                version=version,
                ecosystem=Ecosystem.PACKAGIST,
                package_manager=PackageManager.COMPOSER,
                commit=(entry.get('source') or {}).get('reference', ''),
            )
            record.add_dep_group(group)

            span = spans[index] if index < len(spans) else None
            if span is not None and span.start and span.end:
                block = lines[span.start - 1:span.end]
                record.block_position = block_over_lines(lines, span.start - 1, span.end - 1, file.path)
                record.name_position = find_in_block_by_delimiters(block, name, span.start, '"name": "', '"')
                record.version_position = find_in_block_by_delimiters(block, version, span.start, '"version": "', '"')
                for position in (record.name_position, record.version_position):
                    if position is not None:
                        position.filename = file.path
            packages.append(record)
    return packages


COMPOSER_EXTRACTOR = registry.register(registry.Extractor(
    id='composer.lock',
    should_extract=should_extract,
    extract=extract,
    matchers=(COMPOSER_JSON_MATCHER,),
))
