"""Gradle dependency lockfiles (`gradle.lockfile`, `buildscript-gradle.lockfile`)."""
import os

import structlog

from lockbom.lockfile import registry
from lockbom.lockfile.depfile import DepFile
from lockbom.lockfile.fileposition import first_non_empty_column
from lockbom.lockfile.fileposition import last_non_empty_column
from lockbom.matchers.build_gradle import BUILD_GRADLE_MATCHER
from lockbom.models.ecosystem import Ecosystem
from lockbom.models.ecosystem import PackageManager
from lockbom.models.package import PackageRecord
from lockbom.models.position import FilePosition
from lockbom.models.position import Position

logger = structlog.get_logger('gradle')

GRADLE_LOCKFILE = 'gradle.lockfile'
BUILDSCRIPT_GRADLE_LOCKFILE = 'buildscript-gradle.lockfile'
COMMENT_PREFIX = '#'
EMPTY_PREFIX = 'empty='


def is_dependency_line(line: str) -> bool:
    return not (line.startswith(COMMENT_PREFIX) or line.startswith(EMPTY_PREFIX))


def parse_line(line: str) -> PackageRecord | None:
    """`group:artifact:version=conf1,conf2`, None when the line has fewer than three parts."""
    parts = line.split(':', 2)
    if len(parts) < 3:
        return None

    group, artifact, rest = parts
    version, _, configurations = rest.partition('=')
    record = PackageRecord(
        name=f"{group}:{artifact}",
        version=version,
        ecosystem=Ecosystem.MAVEN,
        package_manager=PackageManager.GRADLE,
    )
    record.add_dep_groups([c for c in configurations.split(',') if c])
    return record


def should_extract(path: str) -> bool:
    return os.path.basename(path) == GRADLE_LOCKFILE


def should_extract_buildscript(path: str) -> bool:
    return os.path.basename(path) == BUILDSCRIPT_GRADLE_LOCKFILE


def extract(file: DepFile) -> list[PackageRecord]:
    packages = []
    for index, raw_line in enumerate(file.lines()):
        line = raw_line.strip()
        if not line or not is_dependency_line(line):
            continue

        record = parse_line(line)
        if record is None:
            logger.debug('Skipping invalid gradle lockfile line', path=file.path, line=index + 1)
            continue

        record.block_position = FilePosition(
            line=Position(start=index + 1, end=index + 1),
            column=Position(start=first_non_empty_column(raw_line), end=last_non_empty_column(raw_line)),
            filename=file.path,
        )
        packages.append(record)
    return packages


GRADLE_EXTRACTOR = registry.register(registry.Extractor(
    id=GRADLE_LOCKFILE,
    should_extract=should_extract,
    extract=extract,
    matchers=(BUILD_GRADLE_MATCHER,),
))

BUILDSCRIPT_GRADLE_EXTRACTOR = registry.register(registry.Extractor(
    id=BUILDSCRIPT_GRADLE_LOCKFILE,
    should_extract=should_extract_buildscript,
    extract=extract,
    matchers=(BUILD_GRADLE_MATCHER,),
))
