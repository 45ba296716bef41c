from dataclasses import dataclass
from dataclasses import field

from lockbom.models.artifact import ArtifactDescriptor
from lockbom.models.location import PackageLocations
from lockbom.models.package import PackageRecord

PACKAGE_MANAGER_METADATA = 'package-manager'
IS_DIRECT_METADATA = 'is-direct-dependency'
DEP_GROUPS_METADATA = 'dependency-groups'


@dataclass
class PackageSource:
    """The packages recovered from one lockfile."""
    path: str
    scan_path: str = ''
    parsed_as: str = ''
    packages: list[PackageRecord] = field(default_factory=list)


@dataclass
class ScanResults:
    sources: list[PackageSource] = field(default_factory=list)
    artifacts: list[ArtifactDescriptor] = field(default_factory=list)

    @property
    def package_count(self) -> int:
        return sum(len(source.packages) for source in self.sources)


@dataclass
class PackageComponent:
    """A package deduplicated across every source, keyed by its PURL."""
    purl: str
    name: str
    version: str
    ecosystem: str
    commit: str = ''
    locations: list[PackageLocations] = field(default_factory=list)
    metadata: dict[str, str] = field(default_factory=dict)
    _location_hashes: set[str] = field(default_factory=set, repr=False)

    def add_location(self, location: PackageLocations) -> bool:
        """Add a location unless one with the same block is already known."""
        location_hash = location.block.hash()
        if location_hash in self._location_hashes:
            return False
        self._location_hashes.add(location_hash)
        self.locations.append(location)
        return True

    def sorted_locations(self) -> list[PackageLocations]:
        return sorted(self.locations, key=lambda loc: loc.block.sort_key())
