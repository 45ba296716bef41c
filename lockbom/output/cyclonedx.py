"""
CycloneDX 1.4 and 1.5 rendering of grouped scan results.

The document is fully deterministic: it carries no serial number nor
timestamp, and every list is sorted.
"""
from enum import Enum
from typing import TextIO

import structlog
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from lockbom.core.config import get_config
from lockbom.core.errors import UnsupportedFormatError
from lockbom.core.purl import package_url
from lockbom.models.artifact import ArtifactDescriptor
from lockbom.models.package import PackageRecord
from lockbom.models.results import PackageComponent
from lockbom.models.results import ScanResults
from lockbom.services.grouper import group_by_purl

logger = structlog.get_logger('cyclonedx')

BOM_FORMAT = 'CycloneDX'
LIBRARY_COMPONENT = 'library'
FILE_COMPONENT = 'file'
PACKAGE_PROPERTY = 'package'


class CycloneDXVersion(str, Enum):
    V1_4 = '1.4'
    V1_5 = '1.5'

    def __str__(self) -> str:
        return self.value

    @property
    def schema_url(self) -> str:
        return f"http://cyclonedx.org/schema/bom-{self.value}.schema.json"

    @property
    def has_evidence(self) -> bool:
        return self != CycloneDXVersion.V1_4


FORMATS = {
    'cyclonedx-1-4': CycloneDXVersion.V1_4,
    'cyclonedx-1-5': CycloneDXVersion.V1_5,
}


class Property(BaseModel):
    name: str
    value: str


class Occurrence(BaseModel):
    # JSON encoded PackageLocations, nested as a string
    location: str


class Evidence(BaseModel):
    occurrences: list[Occurrence] = Field(default_factory=list)


class Component(BaseModel):
    bom_ref: str = Field(alias='bom-ref')
    type: str
    name: str
    version: str | None = None
    purl: str | None = None
    properties: list[Property] | None = None
    evidence: Evidence | None = None

    model_config = ConfigDict(populate_by_name=True)


class Dependency(BaseModel):
    ref: str
    depends_on: list[str] = Field(alias='dependsOn', default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


class Bom(BaseModel):
    schema_url: str = Field(alias='$schema')
    bom_format: str = Field(alias='bomFormat', default=BOM_FORMAT)
    spec_version: str = Field(alias='specVersion')
    version: int = 1
    components: list[Component] = Field(default_factory=list)
    dependencies: list[Dependency] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


def property_name(key: str) -> str:
    return f"{get_config().output.property_prefix}:{key}"


def build_properties(metadata: dict[str, str]) -> list[Property]:
    """Namespaced and sorted properties, empty values dropped."""
    return sorted(
        (Property(name=property_name(key), value=value) for key, value in metadata.items() if value),
        key=lambda prop: prop.name,
    )


def artifact_purl(artifact: ArtifactDescriptor) -> str:
    purl = package_url(PackageRecord(
        name=artifact.name,
        version=artifact.version,
        ecosystem=artifact.ecosystem,
    ))
    return purl.to_string() if purl is not None else ''


def find_artifact(component: PackageComponent, artifacts: list[ArtifactDescriptor]) -> ArtifactDescriptor | None:
    for artifact in artifacts:
        if artifact.name == component.name and artifact.version == component.version:
            return artifact
    return None


class BomBuilder:
    """Assembles the components and the file dependency graph of one BOM."""

    def __init__(self, version: CycloneDXVersion):
        self.version = version
        self.components: dict[str, Component] = {}
        self.dependencies: dict[str, set[str]] = {}

    def _depend(self, source: str, target: str) -> None:
        self.dependencies.setdefault(source, set()).add(target)

    def _add_file(self, filename: str, properties: list[Property] | None = None) -> None:
        existing = self.components.get(filename)
        if existing is not None:
            if properties and not existing.properties:
                existing.properties = properties
            return
        self.components[filename] = Component(
            bom_ref=filename,
            type=FILE_COMPONENT,
            name=filename,
            properties=properties,
        )

    def add_artifacts(self, artifacts: list[ArtifactDescriptor]) -> None:
        for artifact in artifacts:
            purl = artifact_purl(artifact)
            properties = [Property(name=property_name(PACKAGE_PROPERTY), value=purl)] if purl else None
            self._add_file(artifact.filename, properties)
            if artifact.depends_on is not None:
                self._depend(artifact.filename, artifact.depends_on.filename)

    def add_package(self, component: PackageComponent, artifacts: list[ArtifactDescriptor]) -> None:
        locations = component.sorted_locations()
        library = Component(
            bom_ref=component.purl,
            type=LIBRARY_COMPONENT,
            name=component.name,
            version=component.version or None,
            purl=component.purl,
            properties=build_properties(component.metadata) or None,
        )
        if self.version.has_evidence:
            library.evidence = Evidence(
                occurrences=[Occurrence(location=location.to_json_string()) for location in locations],
            )
        self.components[component.purl] = library

        # a package that is itself built in the tree links its lockfiles to the build file
        artifact = find_artifact(component, artifacts)
        for location in locations:
            filename = location.block.file_name
            self._add_file(filename)
            if artifact is not None:
                self._depend(filename, artifact.filename)

    def build(self) -> Bom:
        return Bom(
            schema_url=self.version.schema_url,
            spec_version=str(self.version),
            components=[self.components[ref] for ref in sorted(self.components)],
            dependencies=[
                Dependency(ref=ref, depends_on=sorted(self.dependencies[ref]))
                for ref in sorted(self.dependencies)
            ],
        )


def create_bom(
    components: dict[str, PackageComponent],
    artifacts: list[ArtifactDescriptor],
    version: CycloneDXVersion = CycloneDXVersion.V1_5,
) -> Bom:
    builder = BomBuilder(version)
    builder.add_artifacts(artifacts)
    for purl in sorted(components):
        builder.add_package(components[purl], artifacts)
    return builder.build()


def render_bom(bom: Bom, pretty: bool | None = None) -> str:
    if pretty is None:
        pretty = get_config().output.pretty
    return bom.model_dump_json(by_alias=True, exclude_none=True, indent=2 if pretty else None)


def parse_format(format_id: str) -> CycloneDXVersion:
    version = FORMATS.get(format_id)
    if version is None:
        raise UnsupportedFormatError(
            f"unsupported output format \"{format_id}\" - must be one of: {', '.join(FORMATS)}",
        )
    return version


def format_results(results: ScanResults, format_id: str, stream: TextIO) -> None:
    """Group `results` by package URL and write them to `stream` as a CycloneDX BOM."""
    version = parse_format(format_id)
    components = group_by_purl(results.sources)
    bom = create_bom(components, results.artifacts, version)
    stream.write(render_bom(bom))
    stream.write('\n')
    logger.debug('Wrote BOM', format=format_id, components=len(bom.components))
