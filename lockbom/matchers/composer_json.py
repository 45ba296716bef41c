"""Correlates `composer.lock` with `composer.json`."""
import structlog

from lockbom.core.config import get_config
from lockbom.lockfile.depfile import DepFile
from lockbom.lockfile.registry import Matcher
from lockbom.matchers.dependency_map import find_declaration
from lockbom.matchers.dependency_map import find_section
from lockbom.matchers.dependency_map import load_manifest
from lockbom.matchers.dependency_map import locations_from_match
from lockbom.models.ecosystem import DEV_GROUP
from lockbom.models.ecosystem import PROD_GROUP
from lockbom.models.package import PackageRecord

logger = structlog.get_logger('composer_json')

# `require` goes first, a package declared in both keeps its non-dev location
SECTIONS = [
    ('require', PROD_GROUP),
    ('require-dev', DEV_GROUP),
]


def get_source_file(lockfile: DepFile) -> DepFile:
    return lockfile.open('composer.json')


def match(source: DepFile, packages: list[PackageRecord]) -> None:
    content, manifest = load_manifest(source)
    debug = get_config().extraction.debug

    by_name: dict[str, list[PackageRecord]] = {}
    for record in packages:
        by_name.setdefault(record.name.lower(), []).append(record)

    for section, group in SECTIONS:
        declared = manifest.get(section)
        if not isinstance(declared, dict):
            continue
        span = find_section(content, section)

        for name, requirement in declared.items():
            if not isinstance(requirement, str):
                continue
            # platform requirements such as `php` or `ext-json` are not in the lockfile
            for record in by_name.get(name.lower(), []):
                record.is_direct = True
                record.add_target_version(requirement)
                record.add_dep_group(group)

                if group == DEV_GROUP and record.sourcefile is not None:
                    continue
                declaration = find_declaration(content, span, name, requirement) if span else None
                if declaration is None:
                    continue
                record.set_manifest_locations(locations_from_match(content, declaration, source.path))
                if debug:
                    logger.debug('Matched manifest declaration', package=name, section=section)


COMPOSER_JSON_MATCHER = Matcher(
    name='composer.json',
    get_source_file=get_source_file,
    match=match,
)
