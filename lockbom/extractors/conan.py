"""
Conan `conan.lock`.

Version 1 lockfiles (`0.4` and older) hold a `graph_lock` whose nodes carry
a `ref` or `pref`; version 2 lockfiles (`0.5`) list references under
`requires`, `build_requires` and `python_requires`.
"""
import os
from dataclasses import dataclass

from lockbom.lockfile import registry
from lockbom.lockfile.decoders import load_json
from lockbom.lockfile.depfile import DepFile
from lockbom.lockfile.fileposition import block_over_lines
from lockbom.lockfile.fileposition import find_in_block_by_delimiters
from lockbom.models.ecosystem import Ecosystem
from lockbom.models.ecosystem import PackageManager
from lockbom.models.package import PackageRecord

V2_SECTIONS = [
    ('requires', ''),
    ('build_requires', 'build-requires'),
    ('python_requires', 'python-requires'),
]


@dataclass
class ConanReference:
    name: str
    version: str
    user: str = ''
    channel: str = ''
    recipe_revision: str = ''


def parse_reference(reference: str) -> ConanReference:
    """`name/version@user/channel#rrev:package_id#prev`, everything after the version being optional."""
    recipe, _, revision = reference.partition('#')
    revision = revision.split(':', 1)[0].split('%', 1)[0]
    recipe = recipe.split(':', 1)[0]
    recipe, _, user_channel = recipe.partition('@')
    name, _, version = recipe.partition('/')
    user, _, channel = user_channel.partition('/')
    return ConanReference(
        name=name,
        version=version,
        user=user,
        channel=channel,
        recipe_revision=revision,
    )


def _references(lockfile: dict) -> list[tuple[str, str]]:
    references = []
    graph = lockfile.get('graph_lock')
    if isinstance(graph, dict):
        for node in (graph.get('nodes') or {}).values():
            reference = node.get('ref') or node.get('pref') or ''
            if reference:
                references.append((reference, ''))
        return references

    for section, group in V2_SECTIONS:
        for reference in lockfile.get(section) or []:
            references.append((reference, group))
    return references


def _record(lines: list[str], reference: str, group: str, path: str) -> PackageRecord:
    parsed = parse_reference(reference)
    record = PackageRecord(
        name=parsed.name,
        version=parsed.version,
        ecosystem=Ecosystem.CONAN,
        package_manager=PackageManager.CONAN,
    )
    record.add_dep_group(group)

    for index, line in enumerate(lines):
        if f'"{reference}"' not in line:
            continue
        record.block_position = block_over_lines(lines, index, index, path)
        record.name_position = find_in_block_by_delimiters([line], parsed.name, index + 1, '"', '/')
        record.version_position = find_in_block_by_delimiters([line], parsed.version, index + 1, '/')
        for position in (record.name_position, record.version_position):
            if position is not None:
                position.filename = path
        break
    return record


def should_extract(path: str) -> bool:
    return os.path.basename(path) == 'conan.lock'


def extract(file: DepFile) -> list[PackageRecord]:
    lockfile = load_json(file)
    if lockfile is None:
        return []
    lines = file.lines()
    return [
        _record(lines, reference, group, file.path)
        for reference, group in _references(lockfile)
        if parse_reference(reference).name
    ]


CONAN_EXTRACTOR = registry.register(registry.Extractor(
    id='conan.lock',
    should_extract=should_extract,
    extract=extract,
))
