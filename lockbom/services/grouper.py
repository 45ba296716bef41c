"""
Deduplication of the packages of every scanned source into components keyed
by package URL.
"""
import structlog

from lockbom.core.purl import purl_string
from lockbom.lockfile.fileposition import remove_host_path
from lockbom.models.location import PackageLocation
from lockbom.models.location import PackageLocations
from lockbom.models.location import SourcefileLocations
from lockbom.models.package import PackageRecord
from lockbom.models.position import FileLocations
from lockbom.models.position import FilePosition
from lockbom.models.results import DEP_GROUPS_METADATA
from lockbom.models.results import IS_DIRECT_METADATA
from lockbom.models.results import PACKAGE_MANAGER_METADATA
from lockbom.models.results import PackageComponent
from lockbom.models.results import PackageSource

logger = structlog.get_logger('grouper')


class PackageGrouper:
    """Groups package records by PURL, keeping every distinct location."""

    def __init__(self, consider_scan_path_as_root: bool = False, path_relative_to_scan_dir: bool = False):
        self.consider_scan_path_as_root = consider_scan_path_as_root
        self.path_relative_to_scan_dir = path_relative_to_scan_dir

    def _location(self, scan_path: str, position: FilePosition | None) -> PackageLocation | None:
        if position is None or not position.is_well_formed():
            return None
        filename = remove_host_path(
            scan_path, position.filename,
            self.consider_scan_path_as_root, self.path_relative_to_scan_dir,
        )
        return PackageLocation.from_position(position, filename)

    def _sourcefile(self, scan_path: str, locations: FileLocations | None) -> SourcefileLocations | None:
        if locations is None:
            return None
        block = self._location(scan_path, locations.block)
        if block is None:
            return None
        return SourcefileLocations(
            block=block,
            name=self._location(scan_path, locations.name),
            version=self._location(scan_path, locations.version),
        )

    def locations_of(self, scan_path: str, record: PackageRecord) -> PackageLocations | None:
        """Lockfile side locations of `record`, None unless its block is well formed."""
        block = self._location(scan_path, record.block_position)
        if block is None:
            return None
        return PackageLocations(
            block=block,
            name=self._location(scan_path, record.name_position),
            version=self._location(scan_path, record.version_position),
            sourcefile=self._sourcefile(scan_path, record.sourcefile),
        )

    def group(self, sources: list[PackageSource]) -> dict[str, PackageComponent]:
        components: dict[str, PackageComponent] = {}
        groups: dict[str, set[str]] = {}

        for source in sources:
            for record in source.packages:
                purl = purl_string(record)
                if purl is None:
                    continue

                component = components.get(purl)
                if component is None:
                    component = PackageComponent(
                        purl=purl,
                        name=record.name,
                        version=record.version,
                        ecosystem=str(record.ecosystem),
                        commit=record.commit,
                        metadata={
                            PACKAGE_MANAGER_METADATA: str(record.package_manager),
                            IS_DIRECT_METADATA: 'false',
                        },
                    )
                    components[purl] = component
                    groups[purl] = set()

                if record.is_direct:
                    component.metadata[IS_DIRECT_METADATA] = 'true'
                groups[purl].update(record.dep_groups)

                location = self.locations_of(source.scan_path, record)
                if location is not None:
                    component.add_location(location)

        for purl, component in components.items():
            component.metadata[DEP_GROUPS_METADATA] = ','.join(sorted(groups[purl]))

        logger.debug('Grouped packages', components=len(components), sources=len(sources))
        return components


def group_by_purl(
    sources: list[PackageSource],
    consider_scan_path_as_root: bool = False,
    path_relative_to_scan_dir: bool = False,
) -> dict[str, PackageComponent]:
    return PackageGrouper(consider_scan_path_as_root, path_relative_to_scan_dir).group(sources)
