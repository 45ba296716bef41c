from dataclasses import dataclass
from dataclasses import field

from lockbom.models.artifact import ArtifactDescriptor
from lockbom.models.ecosystem import Ecosystem
from lockbom.models.ecosystem import PackageManager
from lockbom.models.position import FileLocations
from lockbom.models.position import FilePosition


@dataclass
class PackageRecord:
    """A resolved package as declared by a lockfile, optionally enriched by its manifest."""
    name: str
    version: str
    ecosystem: Ecosystem
    compare_as: Ecosystem | None = None
    package_manager: PackageManager = PackageManager.UNKNOWN
    commit: str = ''
    is_direct: bool = False
    dep_groups: list[str] = field(default_factory=list)
    target_versions: list[str] = field(default_factory=list)
    block_position: FilePosition = field(default_factory=FilePosition)
    name_position: FilePosition | None = None
    version_position: FilePosition | None = None

    # Manifest side positions recorded by a matcher
    sourcefile: FileLocations | None = None

    # Library to library edges, only filled by extractors that know them
    dependencies: list['PackageRecord'] = field(default_factory=list, compare=False, repr=False)

    # Opaque requirement details, never used for matching
    options: str = ''
    env_markers: str = ''

    def __post_init__(self):
        if self.compare_as is None:
            self.compare_as = self.ecosystem

    @property
    def key(self) -> str:
        return f"{self.name}@{self.commit or self.version}"

    def add_dep_group(self, group: str) -> None:
        if group and group not in self.dep_groups:
            self.dep_groups.append(group)

    def add_dep_groups(self, groups: list[str]) -> None:
        for group in groups:
            self.add_dep_group(group)

    def add_target_version(self, target: str) -> None:
        if target and target not in self.target_versions:
            self.target_versions.append(target)

    def lockfile_locations(self) -> FileLocations:
        return FileLocations(
            block=self.block_position,
            name=self.name_position,
            version=self.version_position,
        )

    def set_manifest_locations(self, locations: FileLocations) -> None:
        """Record manifest positions, also using them as the main ones when none were recovered."""
        self.sourcefile = locations
        if self.block_position.is_empty():
            self.block_position = locations.block
            self.name_position = locations.name
            self.version_position = locations.version


@dataclass
class Lockfile:
    file_path: str
    parsed_as: str
    packages: list[PackageRecord] = field(default_factory=list)
    artifact: ArtifactDescriptor | None = None
