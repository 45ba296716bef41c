"""
pnpm `pnpm-lock.yaml`.

Lockfiles up to v6 key packages by dependency path (`/pkg/1.2.3`,
`/@scope/pkg@1.2.3(peer)`); v9 keys them by `pkg@version` and moves the
dependency graph to `importers` and `snapshots`.
"""
import os
from collections import deque

from lockbom.core import cachedregexp
from lockbom.lockfile import registry
from lockbom.lockfile.decoders import load_yaml
from lockbom.lockfile.decoders import mapping_get
from lockbom.lockfile.decoders import node_block
from lockbom.lockfile.depfile import DepFile
from lockbom.matchers.package_json import PACKAGE_JSON_MATCHER
from lockbom.models.ecosystem import DEV_GROUP
from lockbom.models.ecosystem import Ecosystem
from lockbom.models.ecosystem import OPTIONAL_GROUP
from lockbom.models.ecosystem import PackageManager
from lockbom.models.ecosystem import PROD_GROUP
from lockbom.models.package import PackageRecord
from lockbom.models.position import FilePosition

CODELOAD_PATTERN = r'https://codeload\.github\.com(?:/[\w.-]+){2}/tar\.gz/(\w+)$'
LOCAL_PREFIXES = ('file:', 'link:', 'portal:')

SECTIONS = [
    ('dependencies', PROD_GROUP),
    ('optionalDependencies', OPTIONAL_GROUP),
    ('devDependencies', DEV_GROUP),
]


def lockfile_version(lockfile: dict) -> float:
    raw = str(lockfile.get('lockfileVersion', '0')).replace('-flavoured', '')
    try:
        return float(raw)
    except ValueError:
        return 0.0


def _sanitize_local(value: str) -> str:
    for prefix in LOCAL_PREFIXES:
        if value.startswith(prefix):
            return value[len(prefix):].removeprefix('./')
    return value


def _codeload_commit(value: str) -> str:
    if not value.startswith('https://codeload.github.com'):
        return ''
    match = cachedregexp.compile(CODELOAD_PATTERN).search(value)
    return match.group(1) if match else ''


def _dependency_entries(section, specifiers: dict | None = None) -> dict[str, tuple[str, str]]:
    """
    `name -> (specifier, version)` of a dependency section. Before v6 the
    value is the version and specifiers live in a sibling map.
    """
    entries: dict[str, tuple[str, str]] = {}
    if not isinstance(section, dict):
        return entries
    specifiers = specifiers or {}
    for name, value in section.items():
        if isinstance(value, dict):
            entries[name] = (str(value.get('specifier', '')), str(value.get('version', '')))
        else:
            entries[name] = (str(specifiers.get(name, '')), str(value))
    return entries


def _clean_version(version: str) -> str:
    return version.split('(', 1)[0].split('_', 1)[0]


def _name_at_version(value: str) -> tuple[str, str]:
    match = cachedregexp.compile(r'^(.+)@([\d.]+)$').match(value)
    if not match:
        return value, ''
    return match.group(1), match.group(2)


def parse_dependency_path(dependency_path: str) -> tuple[str, str]:
    """Name and version encoded in a dependency path of a pre v9 lockfile."""
    # local packages carry an explicit name, their path never holds a version
    if dependency_path.startswith('file:'):
        return '', ''

    dependency_path = dependency_path.split('(', 1)[0]
    parts = dependency_path.split('/')[1:]
    if not parts or not parts[0]:
        return '', ''

    if parts[0].startswith('@'):
        name = '/'.join(parts[:2])
        parts = parts[2:]
    else:
        name = parts[0]
        parts = parts[1:]

    version = parts[0] if parts else ''
    if not version:
        name, version = _name_at_version(name)

    if not version or not version[0].isdigit():
        return '', ''
    return name, version.split('_', 1)[0]


def _block_of(packages_node, key: str, lines: list[str], path: str) -> FilePosition:
    found = mapping_get(packages_node, key)
    if found is None:
        return FilePosition()
    return node_block(lines, found[0], found[1], path)


def _importer_sections(lockfile: dict) -> list[tuple[dict[str, tuple[str, str]], str]]:
    """Every dependency section of every importer plus the root ones of old lockfiles."""
    sections = []
    importers = lockfile.get('importers') or {}
    for importer_name in sorted(importers):
        importer = importers[importer_name] or {}
        specifiers = importer.get('specifiers') or {}
        for section, group in SECTIONS:
            sections.append((_dependency_entries(importer.get(section), specifiers), group))
    root_specifiers = lockfile.get('specifiers') or {}
    for section, group in SECTIONS:
        sections.append((_dependency_entries(lockfile.get(section), root_specifiers), group))
    return sections


def parse_legacy(lockfile: dict, packages_node, lines: list[str], path: str) -> list[PackageRecord]:
    packages = lockfile.get('packages') or {}
    version_number = lockfile_version(lockfile)
    sections = _importer_sections(lockfile)
    records = []

    for key in sorted(packages):
        detail = packages[key] or {}
        name, version = parse_dependency_path(key)
        # explicit keys are only present when the path does not tell
        name = detail.get('name') or name
        version = str(detail.get('version') or version)
        if not name or not version:
            continue

        separator = '@' if version_number >= 6.0 else '/'
        right = key.split('(', 1)[0].rpartition(separator)[2]

        resolution = detail.get('resolution')
        if not isinstance(resolution, dict):
            resolution = {}
        commit = resolution.get('commit', '') or _codeload_commit(resolution.get('tarball', ''))

        record = PackageRecord(
            name=name,
            version=version,
            ecosystem=Ecosystem.NPM,
            package_manager=PackageManager.PNPM,
            commit=commit,
            block_position=_block_of(packages_node, key, lines, path),
        )
        if detail.get('dev') is True:
            record.add_dep_group(DEV_GROUP)

        for entries, group in sections:
            if name not in entries:
                continue
            specifier, dependency_version = entries[name]
            record.is_direct = True
            dependency_version = _sanitize_local(dependency_version)
            if _clean_version(dependency_version) == version or right in dependency_version:
                record.add_dep_group(group)
                if specifier:
                    record.add_target_version(_sanitize_local(specifier))

        records.append(record)

    return records


def _v9_version(lockfile: dict, name: str, version: str) -> str:
    if version.startswith('https://codeload.github.com'):
        # a tarball link, the resolved version is in the packages section
        package = (lockfile.get('packages') or {}).get(f"{name}@{version}") or {}
        return str(package.get('version', ''))
    return version.split('(', 1)[0]


def _v9_commit(lockfile: dict, name: str, version: str) -> str:
    commit = _codeload_commit(version)
    if commit:
        return commit
    package = (lockfile.get('packages') or {}).get(f"{name}@{version.split('(', 1)[0]}") or {}
    resolution = package.get('resolution') or {}
    return str(resolution.get('commit', '')) if isinstance(resolution, dict) else ''


def parse_v9(lockfile: dict, packages_node, lines: list[str], path: str) -> list[PackageRecord]:
    """
    Direct dependencies come from the importers, transitive ones from a
    breadth-first walk of the snapshots. A package reached several times gets
    the union of the groups and target versions of every path.
    """
    snapshots = lockfile.get('snapshots') or {}
    records: dict[str, PackageRecord] = {}

    def record_for(name: str, raw_version: str) -> PackageRecord:
        version = _v9_version(lockfile, name, raw_version)
        key = f"{name}@{version}"
        if key not in records:
            records[key] = PackageRecord(
                name=name,
                version=version,
                ecosystem=Ecosystem.NPM,
                package_manager=PackageManager.PNPM,
                commit=_v9_commit(lockfile, name, raw_version),
                block_position=_block_of(packages_node, f"{name}@{raw_version.split('(', 1)[0]}", lines, path),
            )
        return records[key]

    importers = lockfile.get('importers') or {}
    for importer_name in sorted(importers):
        importer = importers[importer_name] or {}
        for section, group in SECTIONS:
            for name, (specifier, raw_version) in sorted(_dependency_entries(importer.get(section)).items()):
                root = record_for(name, raw_version)
                root.is_direct = True
                root.add_dep_group(group)
                if specifier:
                    root.add_target_version(specifier)

                visited: set[str] = set()
                queue = deque([(root, f"{name}@{raw_version}")])
                while queue:
                    parent, snapshot_key = queue.popleft()
                    if snapshot_key in visited:
                        continue
                    visited.add(snapshot_key)
                    snapshot = snapshots.get(snapshot_key) or {}
                    children = {
                        **(snapshot.get('dependencies') or {}),
                        **(snapshot.get('optionalDependencies') or {}),
                    }
                    for child_name in sorted(children):
                        child_version = str(children[child_name])
                        child = record_for(child_name, child_version)
                        child.add_dep_group(group)
                        if child is not parent and all(d is not child for d in parent.dependencies):
                            parent.dependencies.append(child)
                        queue.append((child, f"{child_name}@{child_version}"))

    return list(records.values())


def should_extract(path: str) -> bool:
    return os.path.basename(path) == 'pnpm-lock.yaml'


def extract(file: DepFile) -> list[PackageRecord]:
    lockfile, root = load_yaml(file)
    if not isinstance(lockfile, dict):
        return []

    lines = file.lines()
    found = mapping_get(root, 'packages')
    packages_node = found[1] if found else None

    if lockfile_version(lockfile) >= 9.0:
        return parse_v9(lockfile, packages_node, lines, file.path)
    return parse_legacy(lockfile, packages_node, lines, file.path)


PNPM_EXTRACTOR = registry.register(registry.Extractor(
    id='pnpm-lock.yaml',
    should_extract=should_extract,
    extract=extract,
    matchers=(PACKAGE_JSON_MATCHER,),
))
