"""
Registry of lockfile extractors and the manifest matchers they declare.

Extractors and matchers are plain capability records; modules register
their extractor at import time, see `lockbom.lockfile`.
"""
from collections.abc import Callable
from collections.abc import Iterable
from dataclasses import dataclass

import structlog

from lockbom.core.errors import ExtractorNotFoundError
from lockbom.core.errors import LockbomError
from lockbom.lockfile.depfile import DepFile
from lockbom.models.artifact import ArtifactDescriptor
from lockbom.models.package import Lockfile
from lockbom.models.package import PackageRecord

logger = structlog.get_logger('registry')


@dataclass(frozen=True)
class Matcher:
    """
    Correlates a lockfile with the manifest it was generated from.

    `get_source_file` opens the manifest or raises NotFoundError; `match`
    enriches the records in place and may return the artifact the manifest
    describes.
    """
    name: str
    get_source_file: Callable[[DepFile], DepFile]
    match: Callable[[DepFile, list[PackageRecord]], ArtifactDescriptor | None]


@dataclass(frozen=True)
class Extractor:
    id: str
    should_extract: Callable[[str], bool]
    extract: Callable[[DepFile], list[PackageRecord]]
    matchers: tuple[Matcher, ...] = ()
    # Build files describing an artifact of their own
    artifact: Callable[[DepFile], ArtifactDescriptor | None] | None = None


_extractors: dict[str, Extractor] = {}


def register(extractor: Extractor) -> Extractor:
    existing = _extractors.get(extractor.id)
    if existing is not None and existing is not extractor:
        raise ValueError(f"an extractor is already registered as {extractor.id}")
    _extractors[extractor.id] = extractor
    return extractor


def get(extractor_id: str) -> Extractor | None:
    return _extractors.get(extractor_id)


def list_extractors() -> list[str]:
    return sorted(_extractors, key=str.lower)


def _is_enabled(extractor_id: str, enabled: Iterable[str] | None) -> bool:
    enabled = list(enabled or [])
    return not enabled or extractor_id in enabled


def find_extractor(path: str, extract_as: str = '', enabled: Iterable[str] | None = None) -> Extractor | None:
    """
    Pick the extractor for `path`. An explicit `extract_as` id wins over
    filename detection, but an extractor outside `enabled` is never returned.
    """
    enabled = list(enabled or [])
    if extract_as:
        extractor = _extractors.get(extract_as)
        if extractor is not None and _is_enabled(extract_as, enabled):
            return extractor
        return None

    for extractor_id, extractor in _extractors.items():
        if _is_enabled(extractor_id, enabled) and extractor.should_extract(path):
            return extractor
    return None


def run_matchers(extractor: Extractor, file: DepFile, packages: list[PackageRecord]) -> ArtifactDescriptor | None:
    """Apply every matcher of `extractor`; a failing matcher never fails the lockfile."""
    artifact = None
    for matcher in extractor.matchers:
        try:
            source = matcher.get_source_file(file)
        except LockbomError as e:
            logger.debug('No manifest for lockfile', matcher=matcher.name, path=file.path, reason=str(e))
            continue

        with source:
            try:
                found = matcher.match(source, packages)
            except LockbomError as e:
                logger.warning(
                    'Matcher failed',
                    matcher=matcher.name, path=source.path, error=str(e),
                )
                continue
        if found is not None:
            artifact = found
    return artifact


def extract_deps(file: DepFile, extract_as: str = '', enabled: Iterable[str] | None = None) -> Lockfile:
    """Extract, match and sort the packages of one file."""
    extractor = find_extractor(file.path, extract_as, enabled)
    if extractor is None:
        if extract_as:
            raise ExtractorNotFoundError(f"could not determine extractor, requested {extract_as}")
        raise ExtractorNotFoundError(f"could not determine extractor for {file.path}")

    packages = extractor.extract(file)
    artifact = run_matchers(extractor, file, packages)
    if extractor.artifact is not None:
        artifact = extractor.artifact(file) or artifact

    packages.sort(key=lambda pkg: (pkg.name, pkg.version))

    return Lockfile(
        file_path=file.path,
        parsed_as=extractor.id,
        packages=packages,
        artifact=artifact,
    )
