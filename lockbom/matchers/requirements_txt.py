"""Correlates a Python lockfile with the `requirements.txt` sitting next to it."""
from lockbom.extractors.requirements import group_of
from lockbom.extractors.requirements import logical_lines
from lockbom.lockfile.depfile import DepFile
from lockbom.lockfile.python_utils import is_not_requirement_line
from lockbom.lockfile.python_utils import parse_requirement_line
from lockbom.lockfile.python_utils import strip_comments
from lockbom.lockfile.registry import Matcher
from lockbom.matchers.python_manifest import mark_direct
from lockbom.matchers.python_manifest import records_by_name
from lockbom.models.ecosystem import PackageManager
from lockbom.models.package import PackageRecord


def get_source_file(lockfile: DepFile) -> DepFile:
    return lockfile.open('requirements.txt')


def match(source: DepFile, packages: list[PackageRecord]) -> None:
    by_name = records_by_name(packages)
    group = group_of(source.path)

    for line_number, offset, line, column_start, column_end in logical_lines(source.lines()):
        clean_line = strip_comments(line.strip())
        if is_not_requirement_line(clean_line):
            continue
        declared = parse_requirement_line(
            source.path, PackageManager.REQUIREMENTS, line, clean_line,
            line_number, offset, column_start, column_end,
        )
        records = by_name.get(declared.name)
        if not records:
            continue
        mark_direct(records, declared.version, group, declared.lockfile_locations())


REQUIREMENTS_TXT_MATCHER = Matcher(
    name='requirements.txt',
    get_source_file=get_source_file,
    match=match,
)
