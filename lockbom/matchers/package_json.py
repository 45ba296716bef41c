"""Correlates npm, yarn and pnpm lockfiles with their package.json."""
import structlog

from lockbom.core.config import get_config
from lockbom.lockfile.depfile import DepFile
from lockbom.lockfile.registry import Matcher
from lockbom.matchers.dependency_map import find_declaration
from lockbom.matchers.dependency_map import find_section
from lockbom.matchers.dependency_map import load_manifest
from lockbom.matchers.dependency_map import locations_from_match
from lockbom.matchers.dependency_map import propagate_dep_groups
from lockbom.models.ecosystem import DEV_GROUP
from lockbom.models.ecosystem import OPTIONAL_GROUP
from lockbom.models.ecosystem import PROD_GROUP
from lockbom.models.package import PackageRecord

logger = structlog.get_logger('package_json')

# Earlier sections win the position of a package declared twice
SECTIONS = [
    ('dependencies', PROD_GROUP),
    ('devDependencies', DEV_GROUP),
    ('optionalDependencies', OPTIONAL_GROUP),
    ('peerDependencies', None),
]
RESOLUTIONS = 'resolutions'
RANGE_OPERATORS = '^~<>=v'


def get_source_file(lockfile: DepFile) -> DepFile:
    return lockfile.open('package.json')


def requirement_versions(requirement: str) -> set[str]:
    """Versions named by a range, e.g. `{'1.2.0', '2.0.0'}` for `>=1.2.0 <2.0.0`."""
    if requirement.startswith('npm:'):
        requirement = requirement.rpartition('@')[2]
    return {
        token.lstrip(RANGE_OPERATORS)
        for token in requirement.replace('||', ' ').split()
        if token.lstrip(RANGE_OPERATORS)
    }


def _is_declared_by(record: PackageRecord, requirement: str, homonyms: int) -> bool:
    """
    A record matches a declaration when the requirement is one of its target
    versions. Records without target versions fall back on the name, unless
    several records share it and the requirement does not mention the version.
    """
    if record.target_versions:
        return requirement in record.target_versions
    return homonyms == 1 or (record.version != '' and record.version in requirement_versions(requirement))


def match(source: DepFile, packages: list[PackageRecord]) -> None:
    content, manifest = load_manifest(source)
    debug = get_config().extraction.debug

    by_name: dict[str, list[PackageRecord]] = {}
    for record in packages:
        by_name.setdefault(record.name, []).append(record)

    for section, group in SECTIONS:
        declared = manifest.get(section)
        if not isinstance(declared, dict):
            continue
        span = find_section(content, section)

        for name, requirement in declared.items():
            if not isinstance(requirement, str):
                continue
            records = by_name.get(name, [])
            for record in records:
                if not _is_declared_by(record, requirement, len(records)):
                    continue

                record.is_direct = True
                record.add_target_version(requirement)
                if group:
                    record.add_dep_group(group)
                    propagate_dep_groups(record)

                if group in (DEV_GROUP, OPTIONAL_GROUP) and record.sourcefile is not None:
                    continue
                if record.sourcefile is not None and section == 'peerDependencies':
                    continue
                declaration = find_declaration(content, span, name, requirement) if span else None
                if declaration is None:
                    continue
                record.set_manifest_locations(locations_from_match(content, declaration, source.path))
                if debug:
                    logger.debug('Matched manifest declaration', package=name, section=section)

    resolutions = manifest.get(RESOLUTIONS)
    span = find_section(content, RESOLUTIONS)
    if isinstance(resolutions, dict) and span:
        for name, requirement in resolutions.items():
            if not isinstance(requirement, str):
                continue
            for record in by_name.get(name, []):
                if record.sourcefile is not None:
                    continue
                declaration = find_declaration(content, span, name, requirement)
                if declaration is not None:
                    record.set_manifest_locations(locations_from_match(content, declaration, source.path))


PACKAGE_JSON_MATCHER = Matcher(
    name='package.json',
    get_source_file=get_source_file,
    match=match,
)
