"""
Maven `pom.xml`.

A POM is both lockfile and manifest: its dependencies are resolved against
the properties of the POM hierarchy, walking up `<parent>` declarations found
on disk, and the POM itself is reported as an artifact.
"""
import os
import posixpath
from dataclasses import dataclass
from dataclasses import field

import structlog

from lockbom.core import cachedregexp
from lockbom.core.config import get_config
from lockbom.core.errors import NotFoundError
from lockbom.core.errors import ParseError
from lockbom.lockfile import registry
from lockbom.lockfile.depfile import DepFile
from lockbom.lockfile.xmltree import parse_xml
from lockbom.lockfile.xmltree import XmlElement
from lockbom.models.artifact import ArtifactDescriptor
from lockbom.models.ecosystem import Ecosystem
from lockbom.models.ecosystem import PackageManager
from lockbom.models.package import PackageRecord
from lockbom.models.position import FilePosition

logger = structlog.get_logger('maven')

BUILD_GROUP = 'build'
INTERPOLATION_PATTERN = r'\$\{([^}]+)\}'
REQUIREMENT_PATTERN = r'^[\[(]?(.*?)(?:,|[)\]]|$)'


@dataclass
class MavenDependency:
    group_id: str
    artifact_id: str
    version: str
    scope: str
    source_file: str
    block: FilePosition
    name_position: FilePosition | None = None
    version_position: FilePosition | None = None

    @property
    def name(self) -> str:
        return f"{self.group_id}:{self.artifact_id}"


@dataclass
class MavenProject:
    path: str
    group_id: str = ''
    artifact_id: str = ''
    version: str = ''
    properties: dict[str, str] = field(default_factory=dict)
    dependencies: list[MavenDependency] = field(default_factory=list)
    managed_dependencies: list[MavenDependency] = field(default_factory=list)
    plugins: list[MavenDependency] = field(default_factory=list)
    parent: 'MavenProject | None' = None

    @property
    def name(self) -> str:
        return f"{self.group_id}:{self.artifact_id}"


def _dependency(element: XmlElement, path: str) -> MavenDependency:
    artifact = element.find('artifactId')
    version = element.find('version')
    return MavenDependency(
        group_id=element.findtext('groupId'),
        artifact_id=element.findtext('artifactId'),
        version=element.findtext('version'),
        scope=element.findtext('scope'),
        source_file=path,
        block=element.block(path),
        name_position=artifact.text_position(path) if artifact is not None else None,
        version_position=version.text_position(path) if version is not None else None,
    )


def parse_project(root: XmlElement, path: str) -> MavenProject:
    project = MavenProject(
        path=path,
        group_id=root.findtext('groupId') or root.findtext('parent', 'groupId'),
        artifact_id=root.findtext('artifactId'),
        version=root.findtext('version') or root.findtext('parent', 'version'),
    )
    properties = root.find('properties')
    if properties is not None:
        project.properties = {child.tag: child.text.strip() for child in properties.children}

    project.dependencies = [
        _dependency(element, path)
        for element in root.findall('dependencies', 'dependency')
    ]
    project.managed_dependencies = [
        _dependency(element, path)
        for element in root.findall('dependencyManagement', 'dependencies', 'dependency')
    ]
    # plugins without an explicit version are resolved by Maven itself
    project.plugins = [
        _dependency(element, path)
        for element in root.findall('build', 'plugins', 'plugin')
        if element.findtext('version')
    ]
    return project


def _parent_path(root: XmlElement) -> str | None:
    parent = root.find('parent')
    if parent is None:
        return None
    relative_path = parent.findtext('relativePath')
    if not relative_path:
        return '../pom.xml'
    if not relative_path.endswith('.xml'):
        return posixpath.join(relative_path, 'pom.xml')
    return relative_path


def decode_project(file: DepFile, depth: int = 0) -> MavenProject | None:
    """Decode a POM and, recursively, the parents that exist on disk."""
    max_depth = get_config().extraction.max_parent_depth
    if depth >= max_depth:
        raise ParseError(
            f"maven file decoding reached the max depth ({depth}/{max_depth}), "
            'check for a circular dependency',
        )

    root = parse_xml(file.read_bytes(), file.path)
    if root is None:
        return None
    project = parse_project(root, file.path)

    parent_path = _parent_path(root)
    if parent_path is None:
        return project

    try:
        parent_file = file.open(parent_path)
    except NotFoundError:
        logger.debug('Parent POM not found locally', path=file.path, parent=parent_path)
        return project

    with parent_file:
        logger.debug('Opening parent POM', path=parent_file.path)
        project.parent = decode_project(parent_file, depth + 1)
    return project


def _merged(project: MavenProject) -> tuple[dict[str, str], list[MavenDependency], list[MavenDependency], list[MavenDependency]]:
    """Properties and dependencies of the hierarchy, the child overriding its ancestors."""
    if project.parent is None:
        properties: dict[str, str] = {}
        dependencies: list[MavenDependency] = []
        managed: list[MavenDependency] = []
        plugins: list[MavenDependency] = []
    else:
        properties, dependencies, managed, plugins = _merged(project.parent)

    properties = {**properties, **_builtin_properties(project), **project.properties}
    return (
        properties,
        dependencies + project.dependencies,
        managed + project.managed_dependencies,
        plugins + project.plugins,
    )


def _builtin_properties(project: MavenProject) -> dict[str, str]:
    builtins = {
        'project.groupId': project.group_id,
        'project.artifactId': project.artifact_id,
        'project.version': project.version,
    }
    if project.parent is not None:
        builtins['project.parent.version'] = project.parent.version
        builtins['project.parent.groupId'] = project.parent.group_id
    return {key: value for key, value in builtins.items() if value}


def parse_resolved_version(version: str) -> str:
    """Keep the lower bound of a version range, `0` when there is none."""
    match = cachedregexp.compile(REQUIREMENT_PATTERN).search(version)
    if match is None or match.group(1) == '':
        return '0'
    return match.group(1)


def resolve_version(dependency_name: str, version: str, properties: dict[str, str], project_name: str = '') -> str:
    def substitute(match) -> str:
        value = properties.get(match.group(1))
        if value is None:
            logger.warning(
                'Failed to resolve version: property could not be found',
                package=dependency_name,
                property=match.group(0),
                project=project_name,
            )
            return '0'
        return parse_resolved_version(value)

    interpolated = cachedregexp.compile(INTERPOLATION_PATTERN).sub(substitute, version)
    return parse_resolved_version(interpolated)


def _record(dependency: MavenDependency, version: str, is_direct: bool, group: str = '') -> PackageRecord:
    record = PackageRecord(
        name=dependency.name,
        version=version,
        ecosystem=Ecosystem.MAVEN,
        package_manager=PackageManager.MAVEN,
        is_direct=is_direct,
        block_position=dependency.block,
        name_position=dependency.name_position,
        version_position=dependency.version_position,
    )
    if dependency.scope.strip():
        record.add_dep_group(dependency.scope.strip())
    record.add_dep_group(group)
    return record


def should_extract(path: str) -> bool:
    return os.path.basename(path) == 'pom.xml'


def extract(file: DepFile) -> list[PackageRecord]:
    project = decode_project(file)
    if project is None:
        return []
    properties, dependencies, managed, plugins = _merged(project)

    details: dict[str, PackageRecord] = {}
    for dependency in dependencies:
        version = resolve_version(dependency.name, dependency.version, properties, project.name)
        details[dependency.name] = _record(dependency, version, is_direct=True)

    # managed versions take precedence over plain dependencies
    for dependency in managed:
        version = resolve_version(dependency.name, dependency.version, properties, project.name)
        is_direct = dependency.name in details
        details[dependency.name] = _record(dependency, version, is_direct=is_direct)

    for dependency in plugins:
        if dependency.name in details:
            continue
        version = resolve_version(dependency.name, dependency.version, properties, project.name)
        details[dependency.name] = _record(dependency, version, is_direct=True, group=BUILD_GROUP)

    return list(details.values())


def _descriptor(project: MavenProject) -> ArtifactDescriptor | None:
    if not project.group_id or not project.artifact_id:
        return None
    properties, _, _, _ = _merged(project)
    return ArtifactDescriptor(
        name=project.name,
        version=resolve_version(project.name, project.version, properties, project.name),
        filename=project.path,
        ecosystem=Ecosystem.MAVEN,
        depends_on=_descriptor(project.parent) if project.parent is not None else None,
    )


def artifact(file: DepFile) -> ArtifactDescriptor | None:
    """The artifact the POM builds, pointing at its parent POM when that is on disk."""
    project = decode_project(file)
    if project is None:
        return None
    return _descriptor(project)


MAVEN_EXTRACTOR = registry.register(registry.Extractor(
    id='pom.xml',
    should_extract=should_extract,
    extract=extract,
    artifact=artifact,
))
