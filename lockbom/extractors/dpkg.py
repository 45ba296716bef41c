"""Debian package database `var/lib/dpkg/status` and `Packages` indexes."""
import os

import structlog

from lockbom.lockfile import registry
from lockbom.lockfile.depfile import DepFile
from lockbom.lockfile.fileposition import block_over_lines
from lockbom.lockfile.stanzas import field_position
from lockbom.lockfile.stanzas import read_stanzas
from lockbom.models.ecosystem import Ecosystem
from lockbom.models.ecosystem import PackageManager
from lockbom.models.package import PackageRecord

logger = structlog.get_logger('dpkg')

STATUS_SUFFIX = 'var/lib/dpkg/status'
INDEX_NAME = 'Packages'
INSTALLED_STATUS = 'installed'


def source_name(source: str) -> str:
    """`Source: glibc (2.31-13)` names the source package, its version is ignored."""
    return source.split(' ', 1)[0]


def is_installed(status: str) -> bool:
    # `Packages` indexes have no status, every entry counts
    return not status or status.split()[-1] == INSTALLED_STATUS


def should_extract(path: str) -> bool:
    return path.replace('\\', '/').endswith(STATUS_SUFFIX) or os.path.basename(path) == INDEX_NAME


def extract(file: DepFile) -> list[PackageRecord]:
    lines = file.lines()
    packages = []
    for stanza in read_stanzas(lines):
        fields = stanza.fields
        if not fields.get('Package'):
            continue
        if not is_installed(fields.get('Status', '')):
            logger.debug('Skipping package not installed', package=fields['Package'], path=file.path)
            continue

        name_key = 'Source' if fields.get('Source') else 'Package'
        name = source_name(fields[name_key])
        name_position = field_position(lines, stanza, name_key, file.path)
        if name_position is not None:
            name_position.column.end = name_position.column.start + len(name)
        packages.append(PackageRecord(
            name=name,
            version=fields.get('Version', ''),
            ecosystem=Ecosystem.DEBIAN,
            package_manager=PackageManager.DPKG,
            block_position=block_over_lines(lines, stanza.start, stanza.end, file.path),
            name_position=name_position,
            version_position=field_position(lines, stanza, 'Version', file.path),
        ))
    return packages


DPKG_EXTRACTOR = registry.register(registry.Extractor(
    id='Packages',
    should_extract=should_extract,
    extract=extract,
))
