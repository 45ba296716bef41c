from structlog.testing import capture_logs

from lockbom.models.ecosystem import Ecosystem
from lockbom.models.ecosystem import PackageManager
from lockbom.models.package import PackageRecord
from lockbom.models.position import FileLocations
from lockbom.models.position import FilePosition
from lockbom.models.position import Position
from lockbom.models.results import PackageSource
from lockbom.services.grouper import group_by_purl
from lockbom.services.grouper import PackageGrouper

SCAN_PATH = '/scan'
PURL = 'pkg:maven/foo.bar/pkg@1.0.0'


def position(filename: str, line: int = 3) -> FilePosition:
    return FilePosition(
        line=Position(start=line, end=line + 2),
        column=Position(start=5, end=20),
        filename=filename,
    )


def maven_record(filename: str = '', **kwargs) -> PackageRecord:
    record = PackageRecord(
        name='foo.bar:pkg',
        version='1.0.0',
        ecosystem=Ecosystem.MAVEN,
        package_manager=PackageManager.MAVEN,
        **kwargs,
    )
    if filename:
        record.block_position = position(filename)
    return record


def source(path: str, *records: PackageRecord) -> PackageSource:
    return PackageSource(path=path, scan_path=SCAN_PATH, packages=list(records))


class TestPackageGrouper:
    """Tests for grouping records by package URL."""

    def test_same_package_in_two_files(self):
        components = group_by_purl([
            source('/scan/dir/lockfile.xml', maven_record('/scan/dir/lockfile.xml')),
            source('/scan/dir2/lockfile.json', maven_record('/scan/dir2/lockfile.json')),
        ])

        assert list(components) == [PURL]
        locations = components[PURL].sorted_locations()
        assert [loc.block.file_name for loc in locations] == ['/scan/dir/lockfile.xml', '/scan/dir2/lockfile.json']

    def test_duplicate_blocks_are_kept_once(self):
        components = group_by_purl([
            source('/scan/a.lock', maven_record('/scan/a.lock'), maven_record('/scan/a.lock')),
        ])
        assert len(components[PURL].locations) == 1

    def test_record_without_block_has_no_location(self):
        components = group_by_purl([source('/scan/a.lock', maven_record())])
        assert components[PURL].locations == []

    def test_paths_relative_to_scan_dir(self):
        components = group_by_purl(
            [source('/scan/dir/pom.xml', maven_record('/scan/dir/pom.xml'))],
            path_relative_to_scan_dir=True,
        )
        (location,) = components[PURL].locations
        assert location.block.file_name == 'dir/pom.xml'

    def test_scan_path_as_root(self):
        components = group_by_purl(
            [source('/scan/dir/pom.xml', maven_record('/scan/dir/pom.xml'))],
            consider_scan_path_as_root=True,
        )
        (location,) = components[PURL].locations
        assert location.block.file_name == '/dir/pom.xml'

    def test_sourcefile_locations(self):
        record = maven_record('/scan/gradle.lockfile')
        record.sourcefile = FileLocations(
            block=position('/scan/build.gradle', line=10),
            name=position('/scan/build.gradle', line=10),
        )
        components = PackageGrouper(path_relative_to_scan_dir=True).group([source('/scan/gradle.lockfile', record)])

        (location,) = components[PURL].locations
        assert location.sourcefile.block.file_name == 'build.gradle'
        assert location.sourcefile.block.line_start == 10
        assert location.sourcefile.version is None

    def test_metadata(self):
        components = group_by_purl([
            source('/scan/a.lock', maven_record('/scan/a.lock', dep_groups=['test'])),
            source('/scan/b.lock', maven_record('/scan/b.lock', is_direct=True, dep_groups=['compile'])),
        ])
        assert components[PURL].metadata == {
            'package-manager': 'Maven',
            'is-direct-dependency': 'true',
            'dependency-groups': 'compile,test',
        }

    def test_records_without_purl_are_dropped(self):
        unnamed = PackageRecord(name='no-group', version='1.0.0', ecosystem=Ecosystem.MAVEN)
        with capture_logs() as logs:
            components = group_by_purl([source('/scan/a.lock', unnamed, maven_record())])

        assert list(components) == [PURL]
        assert [log['event'] for log in logs if log['log_level'] == 'warning'] == [
            'Dropping package without a package URL',
        ]
