"""Dart `pubspec.lock`."""
import os

from lockbom.lockfile import registry
from lockbom.lockfile.decoders import load_yaml
from lockbom.lockfile.decoders import mapping_get
from lockbom.lockfile.decoders import node_block
from lockbom.lockfile.decoders import scalar_position
from lockbom.lockfile.depfile import DepFile
from lockbom.models.ecosystem import DEV_GROUP
from lockbom.models.ecosystem import Ecosystem
from lockbom.models.ecosystem import PackageManager
from lockbom.models.package import PackageRecord

DIRECT_DEV = 'direct dev'


def should_extract(path: str) -> bool:
    return os.path.basename(path) == 'pubspec.lock'


def extract(file: DepFile) -> list[PackageRecord]:
    lockfile, root = load_yaml(file)
    if not isinstance(lockfile, dict):
        return []
    lines = file.lines()

    found = mapping_get(root, 'packages')
    packages_node = found[1] if found else None

    packages = []
    for name, detail in (lockfile.get('packages') or {}).items():
        detail = detail or {}
        description = detail.get('description')
        commit = description.get('resolved-ref', '') if isinstance(description, dict) else ''
        record = PackageRecord(
            name=str(name),
            version=str(detail.get('version') or ''),
            ecosystem=Ecosystem.PUB,
            package_manager=PackageManager.PUB,
            commit=str(commit or ''),
        )
        if detail.get('dependency') == DIRECT_DEV:
            record.add_dep_group(DEV_GROUP)

        entry = mapping_get(packages_node, str(name))
        if entry is not None:
            key_node, value_node = entry
            record.block_position = node_block(lines, key_node, value_node, file.path)
            record.name_position = scalar_position(key_node, file.path)
            version = mapping_get(value_node, 'version')
            if version is not None:
                record.version_position = scalar_position(version[1], file.path)
        packages.append(record)
    return packages


PUBSPEC_EXTRACTOR = registry.register(registry.Extractor(
    id='pubspec.lock',
    should_extract=should_extract,
    extract=extract,
))
