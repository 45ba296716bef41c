"""NuGet `packages.lock.json`."""
import os

from lockbom.core.errors import ParseError
from lockbom.core.errors import SchemaVersionError
from lockbom.lockfile import registry
from lockbom.lockfile.decoders import load_json
from lockbom.lockfile.depfile import DepFile
from lockbom.lockfile.fileposition import block_over_lines
from lockbom.lockfile.lineposition import in_json
from lockbom.lockfile.lineposition import LineSpan
from lockbom.matchers.csproj import CSPROJ_MATCHER
from lockbom.models.ecosystem import Ecosystem
from lockbom.models.ecosystem import PackageManager
from lockbom.models.package import PackageRecord

SUPPORTED_VERSIONS = (1, 2)
PROJECT_TYPE = 'project'
DIRECT_TYPE = 'Direct'


def _framework_spans(frameworks: dict, lines: list[str]) -> dict[str, dict[str, LineSpan]]:
    """Line spans of every package, per target framework."""
    framework_spans = {name: LineSpan() for name in frameworks}
    in_json('dependencies', framework_spans, lines)

    spans: dict[str, dict[str, LineSpan]] = {}
    for framework, framework_span in framework_spans.items():
        package_spans = {name: LineSpan() for name in frameworks[framework] or {}}
        if framework_span.start and framework_span.end:
            offset = framework_span.start - 1
            # the framework object is walked on its own, its key being the group
            in_json(framework, package_spans, lines[offset:framework_span.end])
            for span in package_spans.values():
                if span.start and span.end:
                    span.start += offset
                    span.end += offset
        spans[framework] = package_spans
    return spans


def should_extract(path: str) -> bool:
    return os.path.basename(path) == 'packages.lock.json'


def extract(file: DepFile) -> list[PackageRecord]:
    lockfile = load_json(file)
    if lockfile is None:
        return []

    version = lockfile.get('version')
    if version not in SUPPORTED_VERSIONS:
        raise SchemaVersionError(f"could not extract: unsupported lock file version {version}")
    frameworks = lockfile.get('dependencies') or {}
    if not isinstance(frameworks, dict):
        raise ParseError(f"could not extract from {file.path}: dependencies must be an object")

    lines = file.lines()
    spans = _framework_spans(frameworks, lines)

    # frameworks, such as `net6.0`, may share dependencies
    details: dict[str, PackageRecord] = {}
    for framework, dependencies in frameworks.items():
        for name, dependency in (dependencies or {}).items():
            kind = dependency.get('type', '')
            if kind.lower() == PROJECT_TYPE:
                continue
            resolved = dependency.get('resolved', '')
            record = PackageRecord(
                name=name,
                version=resolved,
                ecosystem=Ecosystem.NUGET,
                package_manager=PackageManager.NUGET,
                is_direct=kind == DIRECT_TYPE,
            )
            span = spans[framework].get(name)
            if span is not None and span.start and span.end:
                record.block_position = block_over_lines(lines, span.start - 1, span.end - 1, file.path)
            details[f"{name}@{resolved}"] = record

    return list(details.values())


NUGET_EXTRACTOR = registry.register(registry.Extractor(
    id='packages.lock.json',
    should_extract=should_extract,
    extract=extract,
    matchers=(CSPROJ_MATCHER,),
))
