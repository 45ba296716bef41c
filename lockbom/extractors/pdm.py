"""PDM `pdm.lock`."""
import os

from lockbom.lockfile import registry
from lockbom.lockfile.decoders import load_toml
from lockbom.lockfile.depfile import DepFile
from lockbom.lockfile.lineposition import in_toml
from lockbom.lockfile.lineposition import LineSpan
from lockbom.lockfile.lineposition import METADATA_TABLE
from lockbom.lockfile.lineposition import PACKAGE_TABLE
from lockbom.lockfile.lineposition import toml_table_positions
from lockbom.matchers.pyproject_toml import PYPROJECT_TOML_MATCHER
from lockbom.matchers.requirements_txt import REQUIREMENTS_TXT_MATCHER
from lockbom.models.ecosystem import Ecosystem
from lockbom.models.ecosystem import PackageManager
from lockbom.models.ecosystem import PROD_GROUP
from lockbom.models.package import PackageRecord

# pdm names the production group `default`
DEFAULT_GROUP = 'default'


def should_extract(path: str) -> bool:
    return os.path.basename(path) == 'pdm.lock'


def extract(file: DepFile) -> list[PackageRecord]:
    lockfile = load_toml(file)
    if lockfile is None:
        return []
    lines = file.lines()

    tables = lockfile.get('package') or []
    spans = [LineSpan() for _ in tables]
    in_toml(PACKAGE_TABLE, METADATA_TABLE, spans, lines)

    packages = []
    for table, span in zip(tables, spans):
        name = table.get('name', '')
        version = table.get('version', '')
        block, name_position, version_position = toml_table_positions(lines, span, name, version, file.path)
        record = PackageRecord(
            name=name,
            version=version,
            ecosystem=Ecosystem.PYPI,
            package_manager=PackageManager.PDM,
            commit=table.get('revision', ''),
            block_position=block,
            name_position=name_position,
            version_position=version_position,
        )
        for group in table.get('groups') or []:
            record.add_dep_group(PROD_GROUP if group == DEFAULT_GROUP else group)
        packages.append(record)
    return packages


PDM_EXTRACTOR = registry.register(registry.Extractor(
    id='pdm.lock',
    should_extract=should_extract,
    extract=extract,
    matchers=(PYPROJECT_TOML_MATCHER, REQUIREMENTS_TXT_MATCHER),
))
