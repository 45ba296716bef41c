"""Alpine package database `lib/apk/db/installed`."""
from lockbom.lockfile import registry
from lockbom.lockfile.depfile import DepFile
from lockbom.lockfile.fileposition import block_over_lines
from lockbom.lockfile.stanzas import field_position
from lockbom.lockfile.stanzas import read_stanzas
from lockbom.models.ecosystem import Ecosystem
from lockbom.models.ecosystem import PackageManager
from lockbom.models.package import PackageRecord

DATABASE_SUFFIX = 'lib/apk/db/installed'


def should_extract(path: str) -> bool:
    return path.replace('\\', '/').endswith(DATABASE_SUFFIX)


def extract(file: DepFile) -> list[PackageRecord]:
    lines = file.lines()
    packages = []
    for stanza in read_stanzas(lines):
        name = stanza.fields.get('P', '')
        if not name:
            continue
        packages.append(PackageRecord(
            name=name,
            version=stanza.fields.get('V', ''),
            ecosystem=Ecosystem.ALPINE,
            package_manager=PackageManager.APK,
            # aports commit the package was built from
            commit=stanza.fields.get('c', ''),
            block_position=block_over_lines(lines, stanza.start, stanza.end, file.path),
            name_position=field_position(lines, stanza, 'P', file.path),
            version_position=field_position(lines, stanza, 'V', file.path),
        ))
    return packages


APK_EXTRACTOR = registry.register(registry.Extractor(
    id='installed',
    should_extract=should_extract,
    extract=extract,
))
