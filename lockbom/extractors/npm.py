"""npm `package-lock.json`, both the legacy `dependencies` tree and the v2+ `packages` map."""
import os
import posixpath

from lockbom.lockfile import registry
from lockbom.lockfile.commits import try_extract_commit
from lockbom.lockfile.decoders import load_json
from lockbom.lockfile.depfile import DepFile
from lockbom.lockfile.fileposition import block_over_lines
from lockbom.lockfile.lineposition import in_json
from lockbom.lockfile.lineposition import LineSpan
from lockbom.matchers.package_json import PACKAGE_JSON_MATCHER
from lockbom.models.ecosystem import DEV_GROUP
from lockbom.models.ecosystem import Ecosystem
from lockbom.models.ecosystem import OPTIONAL_GROUP
from lockbom.models.ecosystem import PackageManager
from lockbom.models.package import PackageRecord
from lockbom.models.position import FilePosition

TARGET_PREFIXES = ('file:', 'link:', 'portal:')


def _block(span: LineSpan | None, lines: list[str], path: str) -> FilePosition:
    if span is None or span.start == 0 or span.end == 0:
        return FilePosition()
    return block_over_lines(lines, span.start - 1, span.end - 1, path)


def _v1_spans(dependencies: dict) -> dict[str, LineSpan]:
    return {
        name: LineSpan(nested=_v1_spans(detail.get('dependencies') or {}))
        for name, detail in dependencies.items()
        if isinstance(detail, dict)
    }


def _v1_groups(detail: dict) -> list[str]:
    groups = []
    if detail.get('dev'):
        groups.append(DEV_GROUP)
    if detail.get('optional'):
        groups.append(OPTIONAL_GROUP)
    return groups


def parse_dependencies(dependencies: dict, spans: dict[str, LineSpan], lines: list[str], path: str) -> dict[str, PackageRecord]:
    """Records of a legacy lockfile, nested installs included."""
    details: dict[str, PackageRecord] = {}

    for key in sorted(dependencies):
        detail = dependencies[key]
        if not isinstance(detail, dict):
            continue
        if detail.get('dependencies'):
            details.update(parse_dependencies(
                detail['dependencies'], spans[key].nested, lines, path,
            ))

        name = key

        raw_version = detail.get('version', '')
        version = raw_version
        final_version = raw_version
        commit = ''

        if raw_version.startswith('npm:') and raw_version.rfind('@') > 4:
            i = raw_version.rfind('@')
            name = raw_version[4:i]
            final_version = raw_version[i + 1:]

        if raw_version.startswith('file:'):
            final_version = ''
            version = ''
        else:
            commit = try_extract_commit(raw_version)
            # the commit is the identity, the "version" is meaningless then
            if commit:
                final_version = ''
                version = commit

        details[f"{name}@{version}"] = PackageRecord(
            name=name,
            version=final_version,
            ecosystem=Ecosystem.NPM,
            package_manager=PackageManager.NPM,
            commit=commit,
            dep_groups=_v1_groups(detail),
            block_position=_block(spans.get(key), lines, path),
        )

    return details


def package_name_from_path(install_path: str) -> str:
    """`node_modules/@scope/pkg` and `node_modules/a/node_modules/b` style install paths."""
    maybe_scope = posixpath.basename(posixpath.dirname(install_path))
    name = posixpath.basename(install_path)
    if maybe_scope.startswith('@'):
        name = f"{maybe_scope}/{name}"
    return name


def clean_target_version(target: str) -> str:
    if target.startswith('npm:'):
        target = target.rpartition('@')[2]
    for prefix in TARGET_PREFIXES:
        if target.startswith(prefix):
            target = target[len(prefix):]
            target = target.removeprefix('./')
    return target


def _v2_groups(detail: dict) -> list[str]:
    if detail.get('dev'):
        return [DEV_GROUP]
    if detail.get('optional'):
        return [OPTIONAL_GROUP]
    if detail.get('devOptional'):
        return [DEV_GROUP, OPTIONAL_GROUP]
    return []


def parse_packages(packages: dict, spans: dict[str, LineSpan], lines: list[str], path: str) -> dict[str, PackageRecord]:
    """Records of a v2+ lockfile; the root entry only provides target versions."""
    details: dict[str, PackageRecord] = {}
    root = packages.get('') if isinstance(packages.get(''), dict) else {}
    root_dependencies = root.get('dependencies') or {}
    root_dev_dependencies = root.get('devDependencies') or {}

    for install_path in sorted(packages):
        detail = packages[install_path]
        if not install_path or not isinstance(detail, dict):
            continue

        name = detail.get('name') or package_name_from_path(install_path)
        version = detail.get('version', '')
        commit = try_extract_commit(detail.get('resolved', ''))
        final_version = commit or version
        if not final_version:
            # a local package without a version of its own
            version = '0.0.0'

        root_key = install_path.partition('/')[2]
        target = root_dependencies.get(root_key) or root_dev_dependencies.get(root_key) or ''
        target_versions = [clean_target_version(target)] if target else []

        key = f"{name}@{final_version}"
        if key in details or detail.get('link'):
            continue

        details[key] = PackageRecord(
            name=name,
            version=version,
            ecosystem=Ecosystem.NPM,
            package_manager=PackageManager.NPM,
            commit=commit,
            dep_groups=_v2_groups(detail),
            target_versions=target_versions,
            block_position=_block(spans.get(install_path), lines, path),
        )

    return details


def should_extract(path: str) -> bool:
    return os.path.basename(path) == 'package-lock.json'


def extract(file: DepFile) -> list[PackageRecord]:
    lockfile = load_json(file)
    if not lockfile:
        return []
    lines = file.lines()

    packages = lockfile.get('packages')
    if isinstance(packages, dict):
        spans = {key: LineSpan() for key in packages}
        in_json('packages', spans, lines)
        return list(parse_packages(packages, spans, lines, file.path).values())

    dependencies = lockfile.get('dependencies')
    if not isinstance(dependencies, dict):
        return []
    spans = _v1_spans(dependencies)
    in_json('dependencies', spans, lines)
    return list(parse_dependencies(dependencies, spans, lines, file.path).values())


NPM_EXTRACTOR = registry.register(registry.Extractor(
    id='package-lock.json',
    should_extract=should_extract,
    extract=extract,
    matchers=(PACKAGE_JSON_MATCHER,),
))
