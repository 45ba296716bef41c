import json

from lockbom.extractors import npm
from lockbom.lockfile.depfile import open_local_dep_file
from lockbom.lockfile.registry import extract_deps
from lockbom.matchers import package_json
from lockbom.models.ecosystem import Ecosystem
from lockbom.models.position import Position

PACKAGE_LOCK_V2 = '''{
  "name": "app",
  "version": "1.0.0",
  "lockfileVersion": 2,
  "requires": true,
  "packages": {
    "": {
      "name": "app",
      "version": "1.0.0",
      "dependencies": {
        "wrappy": "^1.0.0"
      }
    },
    "node_modules/wrappy": {
      "version": "1.0.2",
      "resolved": "https://registry.npmjs.org/wrappy/-/wrappy-1.0.2.tgz",
      "integrity": "sha1-tSQ9jz7BqjXxNkYFvA0QNuMKtp8="
    }
  }
}
'''

PACKAGE_JSON = '''{
  "name": "app",
  "dependencies": {
    "wrappy": "^1.0.0"
  }
}
'''

PACKAGE_LOCK_V1 = '''{
  "name": "app",
  "lockfileVersion": 1,
  "dependencies": {
    "wrappy": {
      "version": "1.0.2",
      "dev": true
    },
    "mine": {
      "version": "git+ssh://git@github.com/org/mine.git#abc1234"
    }
  }
}
'''


class TestPackageNames:
    """Tests for install path and target helpers."""

    def test_package_name_from_path(self):
        assert npm.package_name_from_path('node_modules/wrappy') == 'wrappy'
        assert npm.package_name_from_path('node_modules/@babel/core') == '@babel/core'
        assert npm.package_name_from_path('node_modules/a/node_modules/b') == 'b'

    def test_clean_target_version(self):
        assert npm.clean_target_version('^1.0.0') == '^1.0.0'
        assert npm.clean_target_version('npm:string-width@^4.2.0') == '^4.2.0'
        assert npm.clean_target_version('file:./local') == 'local'


class TestPackageLock:
    """Tests for the package-lock.json extractor."""

    def test_should_extract(self):
        assert npm.should_extract('/app/package-lock.json')
        assert not npm.should_extract('/app/package.json')

    def test_v2_packages(self, write_file, extract_with):
        path = write_file('package-lock.json', PACKAGE_LOCK_V2)
        (wrappy,) = extract_with(npm.extract, path)

        assert (wrappy.name, wrappy.version, wrappy.commit) == ('wrappy', '1.0.2', '')
        assert wrappy.ecosystem == Ecosystem.NPM
        assert wrappy.target_versions == ['^1.0.0']
        assert wrappy.block_position.line == Position(start=14, end=18)
        assert wrappy.block_position.filename == path

    def test_v1_dependencies(self, write_file, extract_with):
        packages = extract_with(npm.extract, write_file('package-lock.json', PACKAGE_LOCK_V1))
        by_name = {p.name: p for p in packages}

        assert by_name['wrappy'].dep_groups == ['dev']
        assert by_name['wrappy'].block_position.line == Position(start=5, end=8)
        assert by_name['mine'].commit == 'abc1234'
        assert by_name['mine'].version == ''

    def test_empty_file(self, write_file, extract_with):
        assert extract_with(npm.extract, write_file('package-lock.json', '')) == []


class TestPackageJsonMatcher:
    """Tests for package-lock.json correlated with its package.json."""

    def test_direct_dependency(self, write_file):
        lockfile_path = write_file('package-lock.json', PACKAGE_LOCK_V2)
        manifest_path = write_file('package.json', PACKAGE_JSON)

        with open_local_dep_file(lockfile_path) as file:
            lockfile = extract_deps(file)

        (wrappy,) = lockfile.packages
        assert lockfile.parsed_as == 'package-lock.json'
        assert wrappy.is_direct
        assert wrappy.dep_groups == ['prod']
        assert wrappy.target_versions == ['^1.0.0']
        assert wrappy.commit == ''

        # the lockfile block is kept, the manifest declaration is recorded aside
        assert wrappy.block_position.filename == lockfile_path
        assert wrappy.sourcefile.block.filename == manifest_path
        assert wrappy.sourcefile.block.line == Position(start=4, end=4)
        assert wrappy.sourcefile.block.column == Position(start=5, end=23)
        assert wrappy.sourcefile.name.column == Position(start=6, end=12)
        assert wrappy.sourcefile.version.column == Position(start=16, end=22)

    def test_dev_dependency(self, write_file):
        lockfile_path = write_file('package-lock.json', PACKAGE_LOCK_V2)
        write_file('package.json', json.dumps({'devDependencies': {'wrappy': '^1.0.0'}}))

        with open_local_dep_file(lockfile_path) as file:
            (wrappy,) = extract_deps(file).packages

        assert wrappy.dep_groups == ['dev']
        assert wrappy.is_direct

    def test_missing_manifest_keeps_records(self, write_file):
        with open_local_dep_file(write_file('package-lock.json', PACKAGE_LOCK_V2)) as file:
            (wrappy,) = extract_deps(file).packages

        assert not wrappy.is_direct
        assert wrappy.sourcefile is None

    def test_homonyms_match_on_the_declared_version(self, write_file):
        lockfile_path = write_file('package-lock.json', json.dumps({
            'name': 'app',
            'lockfileVersion': 1,
            'dependencies': {
                'legacy': {
                    'version': '1.0.0',
                    'dependencies': {
                        'lodash': {'version': '2.1.0'},
                    },
                },
                'lodash': {'version': '12.1.0'},
            },
        }, indent=2))
        write_file('package.json', json.dumps({
            'dependencies': {'legacy': '^1.0.0', 'lodash': '^12.1.0'},
        }, indent=2))

        with open_local_dep_file(lockfile_path) as file:
            packages = extract_deps(file).packages

        lodash = {p.version: p for p in packages if p.name == 'lodash'}
        assert lodash['12.1.0'].is_direct
        assert lodash['12.1.0'].target_versions == ['^12.1.0']
        assert not lodash['2.1.0'].is_direct
        assert lodash['2.1.0'].target_versions == []

    def test_requirement_versions(self):
        assert package_json.requirement_versions('^12.1.0') == {'12.1.0'}
        assert package_json.requirement_versions('>=1.2.0 <2.0.0') == {'1.2.0', '2.0.0'}
        assert package_json.requirement_versions('~1.0.0 || v2.0.0') == {'1.0.0', '2.0.0'}
        assert package_json.requirement_versions('npm:string-width@^4.2.0') == {'4.2.0'}
        assert package_json.requirement_versions('*') == {'*'}
