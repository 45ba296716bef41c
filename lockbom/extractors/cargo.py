"""Cargo `Cargo.lock`."""
import os

from lockbom.lockfile import registry
from lockbom.lockfile.decoders import load_toml
from lockbom.lockfile.depfile import DepFile
from lockbom.lockfile.lineposition import in_toml
from lockbom.lockfile.lineposition import LineSpan
from lockbom.lockfile.lineposition import METADATA_TABLE
from lockbom.lockfile.lineposition import PACKAGE_TABLE
from lockbom.lockfile.lineposition import toml_table_positions
from lockbom.models.ecosystem import Ecosystem
from lockbom.models.ecosystem import PackageManager
from lockbom.models.package import PackageRecord

GIT_SOURCE_PREFIX = 'git+'


def commit_of(source: str) -> str:
    """`git+https://github.com/org/repo?rev=main#<sha>` locks the commit in the fragment."""
    if not source.startswith(GIT_SOURCE_PREFIX):
        return ''
    _, _, commit = source.partition('#')
    return commit


def should_extract(path: str) -> bool:
    return os.path.basename(path) == 'Cargo.lock'


def extract(file: DepFile) -> list[PackageRecord]:
    lockfile = load_toml(file)
    if lockfile is None:
        return []
    lines = file.lines()

    tables = lockfile.get('package') or []
    spans = [LineSpan() for _ in tables]
    in_toml(PACKAGE_TABLE, METADATA_TABLE, spans, lines)

    packages = []
    for table, span in zip(tables, spans):
        name = table.get('name', '')
        version = table.get('version', '')
        block, name_position, version_position = toml_table_positions(lines, span, name, version, file.path)
        packages.append(PackageRecord(
            name=name,
            version=version,
            ecosystem=Ecosystem.CARGO,
            package_manager=PackageManager.CARGO,
            commit=commit_of(table.get('source', '')),
            block_position=block,
            name_position=name_position,
            version_position=version_position,
        ))
    return packages


CARGO_EXTRACTOR = registry.register(registry.Extractor(
    id='Cargo.lock',
    should_extract=should_extract,
    extract=extract,
))
