from lockbom.extractors import apk
from lockbom.extractors import dpkg
from lockbom.lockfile.stanzas import read_stanzas
from lockbom.models.ecosystem import Ecosystem
from lockbom.models.position import Position

APK_INSTALLED = '''C:Q1SJOZa7p1UCBo1gdvEOfLHCuEUnY=
P:musl
V:1.2.3-r4
A:x86_64
c:f93af038c3de7146121c2ea8124ba5ce29b4b058

C:Q1lV0oRGGi+DZk+SN+3WzRiswjGQs=
P:busybox
V:1.35.0-r17
'''

DPKG_STATUS = '''Package: libc6
Status: install ok installed
Priority: required
Source: glibc (2.31-13)
Version: 2.31-13+deb11u5
Description: GNU C Library: Shared libraries
 Contains the standard libraries that are used by nearly all programs on
 the system.

Package: removed
Status: deinstall ok config-files
Version: 1.0

Package: tzdata
Status: install ok installed
Version: 2021a-1
'''


class TestStanzas:
    """Tests for the blank-line separated record reader."""

    def test_continuation_lines_extend_record(self):
        stanzas = list(read_stanzas(DPKG_STATUS.splitlines()))
        assert [(s.start, s.end) for s in stanzas] == [(0, 7), (9, 11), (13, 15)]
        assert stanzas[0].fields['Source'] == 'glibc (2.31-13)'
        assert stanzas[0].field_lines['Version'] == 4

    def test_first_key_wins(self):
        stanza = next(read_stanzas(['P:first', 'P:second']))
        assert stanza.fields == {'P': 'first'}


class TestApkInstalled:
    """Tests for the apk database extractor."""

    def test_should_extract(self):
        assert apk.should_extract('/image/lib/apk/db/installed')
        assert not apk.should_extract('/image/lib/apk/db/triggers')

    def test_packages(self, write_file, extract_with):
        path = write_file('lib/apk/db/installed', APK_INSTALLED)
        packages = extract_with(apk.extract, path)

        assert [(p.name, p.version) for p in packages] == [('musl', '1.2.3-r4'), ('busybox', '1.35.0-r17')]
        assert packages[0].ecosystem == Ecosystem.ALPINE
        assert packages[0].commit == 'f93af038c3de7146121c2ea8124ba5ce29b4b058'
        assert packages[1].commit == ''

    def test_positions(self, write_file, extract_with):
        path = write_file('lib/apk/db/installed', APK_INSTALLED)
        musl = extract_with(apk.extract, path)[0]

        assert musl.block_position.line == Position(start=1, end=5)
        assert musl.name_position.line == Position(start=2, end=2)
        assert musl.name_position.column == Position(start=3, end=7)
        assert musl.version_position.column == Position(start=3, end=11)
        assert musl.name_position.filename == path


class TestDpkgStatus:
    """Tests for the dpkg status extractor."""

    def test_should_extract(self):
        assert dpkg.should_extract('/image/var/lib/dpkg/status')
        assert dpkg.should_extract('/mirror/dists/main/binary-amd64/Packages')
        assert not dpkg.should_extract('/image/var/lib/dpkg/available')

    def test_is_installed(self):
        assert dpkg.is_installed('install ok installed')
        assert dpkg.is_installed('')
        assert not dpkg.is_installed('deinstall ok config-files')

    def test_source_name_is_used(self, write_file, extract_with):
        packages = extract_with(dpkg.extract, write_file('var/lib/dpkg/status', DPKG_STATUS))

        assert [(p.name, p.version) for p in packages] == [('glibc', '2.31-13+deb11u5'), ('tzdata', '2021a-1')]
        assert all(p.ecosystem == Ecosystem.DEBIAN for p in packages)

    def test_positions(self, write_file, extract_with):
        glibc = extract_with(dpkg.extract, write_file('var/lib/dpkg/status', DPKG_STATUS))[0]

        assert glibc.block_position.line == Position(start=1, end=8)
        assert glibc.name_position.line == Position(start=4, end=4)
        assert glibc.name_position.column == Position(start=9, end=14)
        assert glibc.version_position.column == Position(start=10, end=25)
