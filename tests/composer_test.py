from lockbom.extractors import composer
from lockbom.lockfile.depfile import open_local_dep_file
from lockbom.matchers import composer_json
from lockbom.matchers import dependency_map
from lockbom.models.ecosystem import Ecosystem
from lockbom.models.ecosystem import PackageManager
from lockbom.models.position import Position

COMPOSER_LOCK = '''{
    "packages": [
        {
            "name": "monolog/monolog",
            "version": "2.9.1",
            "source": {
                "type": "git",
                "reference": "f259e2b1"
            }
        }
    ],
    "packages-dev": [
        {
            "name": "phpunit/phpunit",
            "version": "10.3.2"
        }
    ]
}
'''

COMPOSER_JSON = '''{
    "require": {
        "php": ">=8.1",
        "Monolog/Monolog": "^2.9"
    },
    "require-dev": {
        "phpunit/phpunit": "^10.3",
        "monolog/monolog": "^2.0"
    }
}
'''


def by_name(packages):
    return {p.name: p for p in packages}


class TestComposerLock:
    """Tests for the composer.lock extractor."""

    def test_should_extract(self):
        assert composer.should_extract('/app/composer.lock')
        assert not composer.should_extract('/app/composer.json')

    def test_empty_file(self, write_file, extract_with):
        assert extract_with(composer.extract, write_file('composer.lock', '')) == []

    def test_packages(self, write_file, extract_with):
        packages = by_name(extract_with(composer.extract, write_file('composer.lock', COMPOSER_LOCK)))

        monolog = packages['monolog/monolog']
        assert monolog.version == '2.9.1'
        assert monolog.ecosystem == Ecosystem.PACKAGIST
        assert monolog.package_manager == PackageManager.COMPOSER
        assert monolog.commit == 'f259e2b1'
        assert monolog.dep_groups == ['prod']
        assert packages['phpunit/phpunit'].dep_groups == ['dev']

    def test_positions(self, write_file, extract_with):
        path = write_file('composer.lock', COMPOSER_LOCK)
        packages = by_name(extract_with(composer.extract, path))

        monolog = packages['monolog/monolog']
        assert monolog.block_position.line == Position(start=3, end=10)
        assert monolog.block_position.column == Position(start=9, end=10)
        assert monolog.block_position.filename == path
        assert monolog.name_position.line == Position(start=4, end=4)
        assert monolog.name_position.column == Position(start=22, end=37)
        assert monolog.version_position.line == Position(start=5, end=5)
        assert monolog.version_position.column == Position(start=25, end=30)

        assert packages['phpunit/phpunit'].block_position.line == Position(start=13, end=16)


class TestComposerJsonMatcher:
    """Tests for the composer.json matcher."""

    def match(self, write_file, extract_with):
        packages = extract_with(composer.extract, write_file('composer.lock', COMPOSER_LOCK))
        manifest = write_file('composer.json', COMPOSER_JSON)
        with open_local_dep_file(manifest) as source:
            composer_json.match(source, packages)
        return manifest, by_name(packages)

    def test_names_match_case_insensitively(self, write_file, extract_with):
        manifest, packages = self.match(write_file, extract_with)

        monolog = packages['monolog/monolog']
        assert monolog.is_direct
        assert monolog.sourcefile.block.filename == manifest
        assert monolog.sourcefile.block.line == Position(start=4, end=4)
        assert monolog.sourcefile.block.column == Position(start=9, end=34)
        assert monolog.sourcefile.name.column == Position(start=10, end=25)
        assert monolog.sourcefile.version.column == Position(start=29, end=33)

    def test_non_dev_location_wins(self, write_file, extract_with):
        _, packages = self.match(write_file, extract_with)

        monolog = packages['monolog/monolog']
        assert monolog.target_versions == ['^2.9', '^2.0']
        assert monolog.dep_groups == ['prod', 'dev']
        assert monolog.sourcefile.block.line == Position(start=4, end=4)

    def test_dev_requirement(self, write_file, extract_with):
        _, packages = self.match(write_file, extract_with)

        phpunit = packages['phpunit/phpunit']
        assert phpunit.is_direct
        assert phpunit.target_versions == ['^10.3']
        assert phpunit.dep_groups == ['dev']
        assert phpunit.sourcefile.block.line == Position(start=7, end=7)
        # lockfile positions are kept
        assert phpunit.block_position.line == Position(start=13, end=16)

    def test_find_section(self):
        content = '{"require": {"a/b": "^1.0"}, "require-dev": {}}'
        start, end = dependency_map.find_section(content, 'require')

        assert content[start:end] == '{"a/b": "^1.0"}'
        assert dependency_map.find_section(content, 'missing') is None

    def test_find_declaration_respects_quotes(self):
        content = '{"require": {"a/b-c": "^2.0", "a/b": "^1.0"}}'
        span = dependency_map.find_section(content, 'require')
        match = dependency_map.find_declaration(content, span, 'a/b', '^1.0')

        assert match.group(1) == 'a/b'
        assert match.group(2) == '^1.0'
        assert dependency_map.find_declaration(content, span, 'a/b', '^2.0') is None
