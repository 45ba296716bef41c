"""
Correlates `poetry.lock` and `pdm.lock` with `pyproject.toml`.

Both the Poetry tables (`[tool.poetry.dependencies]`, dev and group
tables) and the standard `[project]` arrays are read.
"""
import structlog

from lockbom.core import cachedregexp
from lockbom.core.errors import ParseError
from lockbom.lockfile.depfile import DepFile
from lockbom.lockfile.python_utils import normalized_requirement_name
from lockbom.lockfile.python_utils import REQUIREMENT_PATTERN
from lockbom.lockfile.registry import Matcher
from lockbom.matchers.python_manifest import entry_locations
from lockbom.matchers.python_manifest import load_manifest
from lockbom.matchers.python_manifest import mark_direct
from lockbom.matchers.python_manifest import records_by_name
from lockbom.matchers.python_manifest import requirement_locations
from lockbom.matchers.python_manifest import requirement_of
from lockbom.models.ecosystem import DEV_GROUP
from lockbom.models.ecosystem import OPTIONAL_GROUP
from lockbom.models.ecosystem import PROD_GROUP
from lockbom.models.package import PackageRecord

logger = structlog.get_logger('pyproject_toml')

# the interpreter constraint is not a package
IGNORED_NAMES = frozenset({'python'})


def get_source_file(lockfile: DepFile) -> DepFile:
    return lockfile.open('pyproject.toml')


def poetry_tables(manifest: dict) -> list[tuple[str, dict, str]]:
    """`(table name, declarations, group)` of every Poetry dependency table."""
    poetry = manifest.get('tool', {}).get('poetry', {})
    if not isinstance(poetry, dict):
        return []

    tables = [
        ('tool.poetry.dependencies', poetry.get('dependencies'), PROD_GROUP),
        ('tool.poetry.dev-dependencies', poetry.get('dev-dependencies'), DEV_GROUP),
    ]
    for group, table in (poetry.get('group') or {}).items():
        if isinstance(table, dict):
            tables.append((f"tool.poetry.group.{group}.dependencies", table.get('dependencies'), group))
    return [(name, declared, group) for name, declared, group in tables if isinstance(declared, dict)]


def project_requirements(manifest: dict) -> list[tuple[str, str]]:
    """`(requirement, group)` of the `[project]` arrays and the pdm dev groups."""
    requirements = []
    project = manifest.get('project', {})
    for requirement in project.get('dependencies') or []:
        requirements.append((requirement, PROD_GROUP))
    for _, optional in (project.get('optional-dependencies') or {}).items():
        for requirement in optional:
            requirements.append((requirement, OPTIONAL_GROUP))

    pdm = manifest.get('tool', {}).get('pdm', {})
    for _, dev in (pdm.get('dev-dependencies') or {}).items():
        for requirement in dev:
            requirements.append((requirement, DEV_GROUP))
    for _, dev in (manifest.get('dependency-groups') or {}).items():
        for requirement in dev:
            if isinstance(requirement, str):
                requirements.append((requirement, DEV_GROUP))
    return requirements


def match(source: DepFile, packages: list[PackageRecord]) -> None:
    manifest = load_manifest(source)
    lines = source.lines()
    by_name = records_by_name(packages)

    for table, declared, group in poetry_tables(manifest):
        for name, declaration in declared.items():
            if name.lower() in IGNORED_NAMES:
                continue
            records = by_name.get(normalized_requirement_name(name))
            if not records:
                logger.debug('Dependency not in lockfile', package=name, path=source.path)
                continue
            group_name = group
            if isinstance(declaration, dict) and declaration.get('optional'):
                group_name = OPTIONAL_GROUP
            requirement = requirement_of(declaration)
            mark_direct(records, requirement, group_name, entry_locations(lines, table, name, requirement, source.path))

    for requirement, group in project_requirements(manifest):
        parsed = cachedregexp.compile(REQUIREMENT_PATTERN).match(requirement)
        if parsed is None or not parsed.group('pkgname'):
            raise ParseError(f"could not parse requirement {requirement!r} of {source.path}")
        records = by_name.get(normalized_requirement_name(parsed.group('pkgname')))
        if not records:
            continue
        target = cachedregexp.compile(r'\s+').sub('', parsed.group('requirement') or '')
        mark_direct(records, target, group, requirement_locations(lines, requirement, source.path))


PYPROJECT_TOML_MATCHER = Matcher(
    name='pyproject.toml',
    get_source_file=get_source_file,
    match=match,
)
