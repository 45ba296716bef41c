"""Package URL canonicalization, per ecosystem."""
from collections.abc import Callable

import structlog
from packageurl import PackageURL

from lockbom.lockfile.python_utils import normalized_requirement_name
from lockbom.models.ecosystem import Ecosystem
from lockbom.models.package import PackageRecord

logger = structlog.get_logger('purl')

# (namespace, name), None when the name cannot be split
NameSplit = tuple[str, str] | None


def split_maven(name: str) -> NameSplit:
    parts = name.split(':')
    if len(parts) < 2 or not parts[0] or not parts[1]:
        return None
    return parts[0], parts[1]


def split_npm(name: str) -> NameSplit:
    if not name:
        return None
    if name.startswith('@'):
        scope, _, package = name.partition('/')
        if not package:
            return None
        return scope.removeprefix('@'), package
    return '', name


def split_go(name: str) -> NameSplit:
    """`golang.org/x/mod` gives `golang.org/x` and `mod`; a bare domain has no namespace."""
    if not name:
        return None
    namespace, _, package = name.rpartition('/')
    return namespace, package


def split_composer(name: str) -> NameSplit:
    parts = name.split('/')
    if len(parts) < 2 or not parts[0] or not parts[1]:
        return None
    return parts[0], parts[1]


def split_pypi(name: str) -> NameSplit:
    if not name:
        return None
    return '', normalized_requirement_name(name)


def plain(name: str) -> NameSplit:
    if not name:
        return None
    return '', name


def in_namespace(namespace: str) -> Callable[[str], NameSplit]:
    def split(name: str) -> NameSplit:
        return (namespace, name) if name else None
    return split


# ecosystem -> (purl type, name splitter)
PURL_TYPES: dict[Ecosystem, tuple[str, Callable[[str], NameSplit]]] = {
    Ecosystem.MAVEN: ('maven', split_maven),
    Ecosystem.NPM: ('npm', split_npm),
    Ecosystem.GO: ('golang', split_go),
    Ecosystem.PYPI: ('pypi', split_pypi),
    Ecosystem.PACKAGIST: ('composer', split_composer),
    Ecosystem.NUGET: ('nuget', plain),
    Ecosystem.RUBYGEMS: ('gem', plain),
    Ecosystem.CARGO: ('cargo', plain),
    Ecosystem.PUB: ('pub', plain),
    Ecosystem.HEX: ('hex', plain),
    Ecosystem.CONAN: ('conan', plain),
    Ecosystem.CRAN: ('cran', plain),
    Ecosystem.ALPINE: ('apk', in_namespace('alpine')),
    Ecosystem.DEBIAN: ('deb', in_namespace('debian')),
}


def purl_version(ecosystem: Ecosystem, version: str) -> str:
    if ecosystem == Ecosystem.GO:
        return version.removeprefix('v')
    return version


def package_url(record: PackageRecord) -> PackageURL | None:
    """The canonical PURL of `record`, None when its ecosystem or name do not allow one."""
    known = PURL_TYPES.get(record.ecosystem)
    if known is None:
        return None
    purl_type, split = known
    parts = split(record.name)
    if parts is None:
        return None
    namespace, name = parts
    return PackageURL(
        type=purl_type,
        namespace=namespace or None,
        name=name,
        version=purl_version(record.ecosystem, record.version) or None,
    )


def purl_string(record: PackageRecord) -> str | None:
    purl = package_url(record)
    if purl is None:
        logger.warning(
            'Dropping package without a package URL',
            package=record.name, ecosystem=str(record.ecosystem),
        )
        return None
    return purl.to_string()
