"""
Prepared package lists, one `ecosystem,compare-as,name,version` row per
package. Never picked by filename; select it explicitly with `csv`.

A row without an ecosystem describes a commit: its fourth field is the
commit instead of a version.
"""
import csv
import io

from lockbom.core.errors import ParseError
from lockbom.lockfile import registry
from lockbom.lockfile.depfile import DepFile
from lockbom.models.ecosystem import Ecosystem
from lockbom.models.ecosystem import PackageManager
from lockbom.models.package import PackageRecord

MIN_FIELDS = 4


def _ecosystem(value: str) -> Ecosystem:
    try:
        return Ecosystem(value)
    except ValueError as e:
        raise ParseError(f"unknown ecosystem {value!r}") from e


def parse_row(row: list[str]) -> PackageRecord:
    if len(row) < MIN_FIELDS:
        raise ParseError('not enough fields (expected at least four)')

    ecosystem, compare_as, name, version = row[:MIN_FIELDS]
    commit = ''
    if not ecosystem:
        if not version:
            raise ParseError('field 4 is empty (must be a commit)')
        commit, version = version, ''
    if not name:
        raise ParseError('field 3 is empty (must be the name of a package)')

    # a commit row is typed by its compare-as field
    if not (ecosystem or compare_as):
        raise ParseError('fields 1 and 2 are empty (need an ecosystem)')
    record_ecosystem = _ecosystem(ecosystem or compare_as)
    return PackageRecord(
        name=name,
        version=version,
        ecosystem=record_ecosystem,
        compare_as=_ecosystem(compare_as) if compare_as else record_ecosystem,
        package_manager=PackageManager.UNKNOWN,
        commit=commit,
    )


def parse_rows(rows: list[str], path: str = '') -> list[PackageRecord]:
    packages = []
    reader = csv.reader(io.StringIO('\n'.join(rows)))
    try:
        parsed = list(reader)
    except csv.Error as e:
        raise ParseError(f"{path or 'csv'}: line {reader.line_num}: {e}") from e

    for row_number, row in enumerate(parsed, start=1):
        if not row:
            continue
        try:
            record = parse_row(row)
        except ParseError as e:
            raise ParseError(f"{path or 'csv'}: row {row_number}: {e}") from e
        packages.append(record)

    packages.sort(key=lambda pkg: (pkg.name, pkg.version))
    return packages


def should_extract(path: str) -> bool:
    return False


def extract(file: DepFile) -> list[PackageRecord]:
    return parse_rows(file.lines(), file.path)


CSV_EXTRACTOR = registry.register(registry.Extractor(
    id='csv',
    should_extract=should_extract,
    extract=extract,
))
