import pytest
from structlog.testing import capture_logs

import lockbom.extractors  # registers every extractor
from lockbom.core.errors import ExtractorNotFoundError
from lockbom.core.errors import NotFoundError
from lockbom.core.errors import ParseError
from lockbom.lockfile import registry
from lockbom.lockfile.depfile import open_local_dep_file
from lockbom.models.artifact import ArtifactDescriptor
from lockbom.models.ecosystem import Ecosystem
from lockbom.models.package import PackageRecord


def fake_extract(file):
    return [
        PackageRecord(name='b', version='1.0.0', ecosystem=Ecosystem.NPM),
        PackageRecord(name='a', version='2.0.0', ecosystem=Ecosystem.NPM),
        PackageRecord(name='a', version='1.0.0', ecosystem=Ecosystem.NPM),
    ]


def missing_source(lockfile):
    raise NotFoundError('no manifest')


def failing_match(source, packages):
    raise ParseError('broken manifest')


def direct_match(source, packages):
    for record in packages:
        record.is_direct = True
    return ArtifactDescriptor(name='demo', version='1.0.0', filename=source.path, ecosystem=Ecosystem.NPM)


@pytest.fixture
def fake_registry(monkeypatch):
    monkeypatch.setattr(registry, '_extractors', {})
    return registry


class TestFindExtractor:
    """Tests for extractor selection."""

    def test_by_filename(self):
        assert registry.find_extractor('/app/package-lock.json').id == 'package-lock.json'
        assert registry.find_extractor('/app/Gemfile.lock').id == 'Gemfile.lock'
        assert registry.find_extractor('/app/README.md') is None

    def test_extract_as(self):
        assert registry.find_extractor('/app/packages.csv', extract_as='csv').id == 'csv'
        assert registry.find_extractor('/app/deps.txt', extract_as='package-lock.json').id == 'package-lock.json'
        assert registry.find_extractor('/app/deps.txt', extract_as='nope') is None

    def test_csv_is_never_detected(self):
        assert registry.find_extractor('/app/packages.csv') is None

    def test_enabled(self):
        assert registry.find_extractor('/app/package-lock.json', enabled=['yarn.lock']) is None
        assert registry.find_extractor('/app/yarn.lock', enabled=['yarn.lock']).id == 'yarn.lock'
        assert registry.find_extractor('/app/x.csv', extract_as='csv', enabled=['yarn.lock']) is None

    def test_os_package_databases_win_over_go_binaries(self):
        assert registry.find_extractor('/lib/apk/db/installed').id == 'installed'
        assert registry.find_extractor('/app/server').id == 'go-binary'


class TestRegister:
    """Tests for extractor registration."""

    def test_register_and_get(self, fake_registry):
        extractor = registry.Extractor(id='fake.lock', should_extract=lambda path: True, extract=fake_extract)

        assert registry.register(extractor) is extractor
        assert registry.get('fake.lock') is extractor
        # registering the same extractor again is harmless
        assert registry.register(extractor) is extractor

    def test_duplicate_id(self, fake_registry):
        registry.register(registry.Extractor(id='fake.lock', should_extract=lambda path: True, extract=fake_extract))
        with pytest.raises(ValueError, match='fake.lock'):
            registry.register(registry.Extractor(id='fake.lock', should_extract=lambda path: False, extract=fake_extract))


class TestExtractDeps:
    """Tests for extract_deps and the matchers it runs."""

    def test_packages_are_sorted(self, fake_registry, write_file):
        registry.register(registry.Extractor(id='fake.lock', should_extract=lambda path: True, extract=fake_extract))
        with open_local_dep_file(write_file('fake.lock', '')) as file:
            lockfile = registry.extract_deps(file)

        assert lockfile.parsed_as == 'fake.lock'
        assert [(p.name, p.version) for p in lockfile.packages] == [('a', '1.0.0'), ('a', '2.0.0'), ('b', '1.0.0')]
        assert lockfile.artifact is None

    def test_no_extractor(self, fake_registry, write_file):
        with open_local_dep_file(write_file('fake.lock', '')) as file:
            with pytest.raises(ExtractorNotFoundError, match='fake.lock'):
                registry.extract_deps(file)
            with pytest.raises(ExtractorNotFoundError, match='requested nope'):
                registry.extract_deps(file, extract_as='nope')

    def test_failing_matchers_do_not_fail_the_lockfile(self, fake_registry, write_file):
        matchers = (
            registry.Matcher(name='missing', get_source_file=missing_source, match=direct_match),
            registry.Matcher(name='failing', get_source_file=lambda lockfile: lockfile.open('manifest'), match=failing_match),
            registry.Matcher(name='direct', get_source_file=lambda lockfile: lockfile.open('manifest'), match=direct_match),
        )
        registry.register(registry.Extractor(
            id='fake.lock', should_extract=lambda path: True, extract=fake_extract, matchers=matchers,
        ))
        manifest = write_file('manifest', '{}')

        with capture_logs() as logs, open_local_dep_file(write_file('fake.lock', '')) as file:
            lockfile = registry.extract_deps(file)

        assert all(p.is_direct for p in lockfile.packages)
        assert lockfile.artifact.filename == manifest
        levels = {log['matcher']: log['log_level'] for log in logs if 'matcher' in log}
        assert levels == {'missing': 'debug', 'failing': 'warning'}

    def test_extractor_artifact_wins(self, fake_registry, write_file):
        def artifact(file):
            return ArtifactDescriptor(name='built', version='2.0.0', filename=file.path, ecosystem=Ecosystem.NPM)

        registry.register(registry.Extractor(
            id='fake.lock',
            should_extract=lambda path: True,
            extract=fake_extract,
            matchers=(registry.Matcher(name='direct', get_source_file=lambda lockfile: lockfile.open('manifest'), match=direct_match),),
            artifact=artifact,
        ))
        write_file('manifest', '{}')
        with open_local_dep_file(write_file('fake.lock', '')) as file:
            lockfile = registry.extract_deps(file)

        assert lockfile.artifact.name == 'built'


def test_every_extractor_is_registered():
    assert registry.list_extractors() == [
        'buildscript-gradle.lockfile',
        'Cargo.lock',
        'composer.lock',
        'conan.lock',
        'csv',
        'Gemfile.lock',
        'go-binary',
        'go.mod',
        'gradle.lockfile',
        'installed',
        'mix.lock',
        'package-lock.json',
        'Packages',
        'packages.lock.json',
        'pdm.lock',
        'Pipfile.lock',
        'pnpm-lock.yaml',
        'poetry.lock',
        'pom.xml',
        'pubspec.lock',
        'renv.lock',
        'requirements.txt',
        'setup.cfg',
        'setup.py',
        'yarn.lock',
    ]
