import pytest

from lockbom.core.errors import ParseError
from lockbom.extractors import pubspec
from lockbom.models.ecosystem import Ecosystem
from lockbom.models.position import Position

PUBSPEC_LOCK = '''# Generated by pub
packages:
  collection:
    dependency: transitive
    description:
      name: collection
      url: "https://pub.dartlang.org"
    source: hosted
    version: "1.15.0"
  flutter_lints:
    dependency: "direct dev"
    description:
      name: flutter_lints
      url: "https://pub.dartlang.org"
    source: hosted
    version: "2.0.1"
  mine:
    dependency: "direct main"
    description:
      path: "."
      ref: main
      resolved-ref: "abc123"
      url: "https://github.com/org/mine.git"
    source: git
    version: "0.0.1"
sdks:
  dart: ">=2.17.0 <3.0.0"
'''


class TestPubspecLock:
    """Tests for the pubspec.lock extractor."""

    def test_packages(self, write_file, extract_with):
        packages = extract_with(pubspec.extract, write_file('pubspec.lock', PUBSPEC_LOCK))

        assert [(p.name, p.version) for p in packages] == [
            ('collection', '1.15.0'),
            ('flutter_lints', '2.0.1'),
            ('mine', '0.0.1'),
        ]
        assert all(p.ecosystem == Ecosystem.PUB for p in packages)

    def test_direct_dev_dependency_is_dev(self, write_file, extract_with):
        packages = extract_with(pubspec.extract, write_file('pubspec.lock', PUBSPEC_LOCK))
        assert packages[0].dep_groups == []
        assert packages[1].dep_groups == ['dev']
        assert packages[2].dep_groups == []

    def test_git_dependency_commit(self, write_file, extract_with):
        packages = extract_with(pubspec.extract, write_file('pubspec.lock', PUBSPEC_LOCK))
        assert packages[2].commit == 'abc123'

    def test_positions(self, write_file, extract_with):
        path = write_file('pubspec.lock', PUBSPEC_LOCK)
        collection = extract_with(pubspec.extract, path)[0]

        assert collection.block_position.line == Position(start=3, end=9)
        assert collection.block_position.column == Position(start=3, end=22)
        assert collection.name_position.line == Position(start=3, end=3)
        assert collection.name_position.column == Position(start=3, end=13)
        assert collection.version_position.line == Position(start=9, end=9)
        assert collection.version_position.column == Position(start=15, end=21)
        assert collection.version_position.filename == path

    def test_empty_file(self, write_file, extract_with):
        assert extract_with(pubspec.extract, write_file('pubspec.lock', '')) == []

    def test_invalid_yaml(self, write_file, extract_with):
        with pytest.raises(ParseError):
            extract_with(pubspec.extract, write_file('pubspec.lock', 'packages: [unclosed\n'))
