"""R `renv.lock`."""
import os

from lockbom.lockfile import registry
from lockbom.lockfile.decoders import load_json
from lockbom.lockfile.depfile import DepFile
from lockbom.lockfile.fileposition import block_over_lines
from lockbom.lockfile.fileposition import find_in_block_by_delimiters
from lockbom.lockfile.lineposition import in_json
from lockbom.lockfile.lineposition import LineSpan
from lockbom.models.ecosystem import Ecosystem
from lockbom.models.ecosystem import PackageManager
from lockbom.models.package import PackageRecord

PACKAGES_KEY = 'Packages'
# Bioconductor packages are not published on CRAN
NON_CRAN_SOURCES = frozenset({'Bioconductor'})


def should_extract(path: str) -> bool:
    return os.path.basename(path) == 'renv.lock'


def extract(file: DepFile) -> list[PackageRecord]:
    lockfile = load_json(file)
    if lockfile is None:
        return []
    lines = file.lines()

    entries = lockfile.get(PACKAGES_KEY) or {}
    spans = {key: LineSpan() for key in entries}
    in_json(PACKAGES_KEY, spans, lines)

    packages = []
    for key, entry in entries.items():
        if not isinstance(entry, dict) or entry.get('Source') in NON_CRAN_SOURCES:
            continue
        name = entry.get('Package', key)
        version = entry.get('Version', '')
        record = PackageRecord(
            name=name,
            version=version,
            ecosystem=Ecosystem.CRAN,
            package_manager=PackageManager.RENV,
            commit=entry.get('RemoteSha', ''),
        )
        span = spans[key]
        if span.start and span.end:
            block = lines[span.start - 1:span.end]
            record.block_position = block_over_lines(lines, span.start - 1, span.end - 1, file.path)
            record.name_position = find_in_block_by_delimiters(block, name, span.start, '"Package": "', '"')
            record.version_position = find_in_block_by_delimiters(block, version, span.start, '"Version": "', '"')
            for position in (record.name_position, record.version_position):
                if position is not None:
                    position.filename = file.path
        packages.append(record)
    return packages


RENV_EXTRACTOR = registry.register(registry.Extractor(
    id='renv.lock',
    should_extract=should_extract,
    extract=extract,
))
