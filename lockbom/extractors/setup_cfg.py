"""
Setuptools declarative configuration `setup.cfg`.

Only `options.install_requires` is read, either inline
(`install_requires = a; b`) or as an indented block ending on the next
line starting at the first column.
"""
import os

from lockbom.core import cachedregexp
from lockbom.core.errors import ParseError
from lockbom.lockfile import registry
from lockbom.lockfile.depfile import DepFile
from lockbom.lockfile.fileposition import first_non_empty_column
from lockbom.lockfile.fileposition import last_non_empty_column
from lockbom.lockfile.python_utils import is_not_requirement_line
from lockbom.lockfile.python_utils import parse_requirement_line
from lockbom.lockfile.python_utils import strip_comments
from lockbom.models.ecosystem import PackageManager
from lockbom.models.package import PackageRecord

OPTIONS_SECTION = '[options]'
INSTALL_REQUIRES_PATTERN = r'install_requires\s*=\s*(?P<requirements>.+)?\s*'


def should_extract(path: str) -> bool:
    return os.path.basename(path) == 'setup.cfg'


def extract(file: DepFile) -> list[PackageRecord]:
    lines = file.lines()
    if not any(line.strip() for line in lines):
        return []

    packages: dict[str, PackageRecord] = {}
    group = os.path.splitext(os.path.basename(file.path))[0]
    in_options = False
    in_install_requires = False

    def add(line: str, requirement: str, line_number: int, column_start: int, column_end: int) -> None:
        record = parse_requirement_line(
            file.path, PackageManager.SETUPTOOLS, line, requirement,
            line_number, 0, column_start, column_end, pinned_versions=True,
        )
        record = packages.setdefault(f"{record.name}@{record.version}", record)
        record.add_dep_group(group)

    for index, line in enumerate(lines):
        column_start = first_non_empty_column(line)
        column_end = last_non_empty_column(line)
        clean_line = strip_comments(line.strip())
        if not clean_line:
            continue

        if not in_options:
            in_options = clean_line.startswith(OPTIONS_SECTION)
            continue

        if not in_install_requires:
            match = cachedregexp.compile(INSTALL_REQUIRES_PATTERN).search(clean_line)
            if match is None:
                continue
            in_install_requires = True
            inline = match.group('requirements')
            if inline:
                for requirement in inline.split(';'):
                    if requirement.strip():
                        add(line, requirement.strip(), index + 1, column_start, column_end)
                break
            continue

        # dedent, the block is over
        if column_start == 1:
            break
        if is_not_requirement_line(clean_line):
            continue
        add(line, clean_line, index + 1, column_start, column_end)

    if not in_options or not in_install_requires:
        raise ParseError(f"could not extract from {file.path}: could not find options.install_requires")

    return list(packages.values())


SETUP_CFG_EXTRACTOR = registry.register(registry.Extractor(
    id='setup.cfg',
    should_extract=should_extract,
    extract=extract,
))
