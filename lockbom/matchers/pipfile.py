"""Correlates `Pipfile.lock` with the `Pipfile` it was locked from."""
import structlog

from lockbom.lockfile.depfile import DepFile
from lockbom.lockfile.python_utils import normalized_requirement_name
from lockbom.lockfile.registry import Matcher
from lockbom.matchers.python_manifest import entry_locations
from lockbom.matchers.python_manifest import load_manifest
from lockbom.matchers.python_manifest import mark_direct
from lockbom.matchers.python_manifest import records_by_name
from lockbom.matchers.python_manifest import requirement_of
from lockbom.models.ecosystem import DEV_GROUP
from lockbom.models.ecosystem import PROD_GROUP
from lockbom.models.package import PackageRecord

logger = structlog.get_logger('pipfile')

SECTIONS = [
    ('packages', PROD_GROUP),
    ('dev-packages', DEV_GROUP),
]


def get_source_file(lockfile: DepFile) -> DepFile:
    return lockfile.open('Pipfile')


def match(source: DepFile, packages: list[PackageRecord]) -> None:
    manifest = load_manifest(source)
    lines = source.lines()
    by_name = records_by_name(packages)

    for section, group in SECTIONS:
        declared = manifest.get(section)
        if not isinstance(declared, dict):
            continue
        for name, declaration in declared.items():
            records = by_name.get(normalized_requirement_name(name))
            if not records:
                logger.debug('Pipfile package not in lockfile', package=name, path=source.path)
                continue
            requirement = requirement_of(declaration)
            mark_direct(records, requirement, group, entry_locations(lines, section, name, requirement, source.path))


PIPFILE_MATCHER = Matcher(
    name='Pipfile',
    get_source_file=get_source_file,
    match=match,
)
