import pytest

from lockbom.core.errors import ParseError
from lockbom.core.errors import UnsupportedSyntaxError
from lockbom.extractors import requirements
from lockbom.extractors import setup_cfg
from lockbom.extractors import setup_py
from lockbom.lockfile import python_utils
from lockbom.models.ecosystem import Ecosystem
from lockbom.models.ecosystem import PackageManager
from lockbom.models.position import Position

REQUIREMENTS_TXT = '''# comment
Django==4.2.0
requests[security]>=2.28.0,<3  # loosely pinned
Flask_SQLAlchemy
-r requirements-dev.txt
--index-url https://example.com/simple
numpy==1.24.0 \\
    --hash=sha256:abc
pyyaml==6.0 ; python_version >= "3.8"
'''

SETUP_CFG = '''[metadata]
name = demo

[options]
packages = find:
install_requires =
    requests>=2.0
    six==1.16.0  # pinned

[options.extras_require]
dev = pytest
'''

SETUP_PY = '''from setuptools import setup

# install_requires is below
setup(
    name='demo',
    install_requires=[
        'requests>=2.0',  # http
        "six==1.16.0",
    ],
)
'''


def by_name(packages):
    return {p.name: p for p in packages}


class TestPythonUtils:
    """Tests for the requirement specifier helpers."""

    @pytest.mark.parametrize('name,expected', [
        ('Django', 'django'),
        ('Flask_SQLAlchemy', 'flask-sqlalchemy'),
        ('zope.interface', 'zope-interface'),
        ('requests[security]', 'requests'),
        ('a__-.b', 'a-b'),
    ])
    def test_normalized_requirement_name(self, name, expected):
        assert python_utils.normalized_requirement_name(name) == expected

    def test_is_line_continuation(self):
        assert python_utils.is_line_continuation('six \\')
        assert not python_utils.is_line_continuation('six \\\\')
        assert python_utils.is_line_continuation('six \\\\\\')
        assert not python_utils.is_line_continuation('six')

    @pytest.mark.parametrize('line', ['', '-e .', '--index-url x', 'https://x/a.whl', './local', '/abs/path'])
    def test_is_not_requirement_line(self, line):
        assert python_utils.is_not_requirement_line(line)

    def test_setup_version(self):
        assert python_utils.setup_version('==1.0') == '1.0'
        assert python_utils.setup_version('===1.0') == '1.0'
        assert python_utils.setup_version('>=1.0') == '>=1.0'
        assert python_utils.setup_version('==1.*') == '==1.*'
        assert python_utils.setup_version('') == ''

    def test_version_from_wheel_url(self):
        url = 'https://example.com/pkg-2.0.1-cp311-cp311-manylinux_2_17_x86_64.whl'
        assert python_utils.version_from_wheel_url(url) == '2.0.1'
        assert python_utils.version_from_wheel_url('https://example.com/pkg-2.0.1.tar.gz') == ''

    def test_split_options(self):
        assert python_utils.split_options('six==1.0 --hash=sha256:a --hash=sha256:b') == (
            'six==1.0', '--hash=sha256:a --hash=sha256:b',
        )
        assert python_utils.split_options('six==1.0') == ('six==1.0', '')

    def test_parse_requirement_line_keeps_the_constraint(self):
        record = python_utils.parse_requirement_line(
            'requirements.txt', PackageManager.REQUIREMENTS, 'Django==4.2.0', 'Django==4.2.0', 2, 0, 1, 14,
        )
        assert record.name == 'django'
        assert record.version == '==4.2.0'
        assert record.ecosystem == Ecosystem.PYPI
        assert record.version_position.column == Position(start=7, end=14)

    def test_parse_requirement_line_pinned(self):
        record = python_utils.parse_requirement_line(
            'setup.cfg', PackageManager.SETUPTOOLS, 'six==1.16.0', 'six==1.16.0', 1, 0, 1, 12,
            pinned_versions=True,
        )
        assert record.version == '1.16.0'
        assert record.version_position.column == Position(start=6, end=12)

    def test_unparsable_line(self):
        with pytest.raises(ParseError):
            python_utils.parse_requirement_line(
                'requirements.txt', PackageManager.REQUIREMENTS, '==1.0', '==1.0', 1, 0, 1, 6,
            )


class TestRequirementsTxt:
    """Tests for the requirements.txt extractor."""

    @pytest.mark.parametrize('path,expected', [
        ('requirements.txt', True),
        ('/app/requirements-dev.txt', True),
        ('dev-requirements.txt', True),
        ('requirements.in', False),
        ('setup.py', False),
    ])
    def test_should_extract(self, path, expected):
        assert requirements.should_extract(path) == expected

    def test_empty_file(self, write_file, extract_with):
        assert extract_with(requirements.extract, write_file('requirements.txt', '')) == []

    def test_requirements(self, write_file, extract_with):
        write_file('requirements-dev.txt', 'pytest==7.0.0\n')
        path = write_file('requirements.txt', REQUIREMENTS_TXT)
        packages = by_name(extract_with(requirements.extract, path))

        assert sorted(packages) == ['django', 'flask-sqlalchemy', 'numpy', 'pytest', 'pyyaml', 'requests']
        assert packages['django'].version == '==4.2.0'
        assert packages['django'].package_manager == PackageManager.REQUIREMENTS
        assert packages['requests'].version == '>=2.28.0,<3'
        assert packages['flask-sqlalchemy'].version == ''
        assert packages['flask-sqlalchemy'].version_position is None
        assert packages['pyyaml'].env_markers == 'python_version >= "3.8"'

    def test_positions(self, write_file, extract_with):
        path = write_file('requirements.txt', 'flask\nDjango==4.2.0\n')
        django = by_name(extract_with(requirements.extract, path))['django']

        assert django.block_position.line == Position(start=2, end=2)
        assert django.block_position.column == Position(start=1, end=14)
        assert django.block_position.filename == path
        assert django.name_position.column == Position(start=1, end=7)
        assert django.version_position.line == Position(start=2, end=2)
        assert django.version_position.column == Position(start=7, end=14)

    def test_continuation_lines_and_options(self, write_file, extract_with):
        write_file('requirements-dev.txt', 'pytest==7.0.0\n')
        path = write_file('requirements.txt', REQUIREMENTS_TXT)
        numpy = by_name(extract_with(requirements.extract, path))['numpy']

        assert numpy.version == '==1.24.0'
        assert numpy.options == '--hash=sha256:abc'
        assert numpy.block_position.line == Position(start=7, end=8)
        assert numpy.block_position.column == Position(start=1, end=22)

    def test_file_stem_is_a_group(self, write_file, extract_with):
        write_file('requirements-dev.txt', 'pytest==7.0.0\n')
        path = write_file('requirements.txt', REQUIREMENTS_TXT)
        packages = by_name(extract_with(requirements.extract, path))

        assert packages['django'].dep_groups == ['requirements']
        assert packages['pytest'].dep_groups == ['requirements-dev']
        assert packages['pytest'].block_position.filename.endswith('requirements-dev.txt')

    def test_wheel_url(self, write_file, extract_with):
        path = write_file('requirements.txt', 'mypkg @ https://example.com/mypkg-1.0.0-py3-none-any.whl\n')
        packages = extract_with(requirements.extract, path)

        assert [(p.name, p.version) for p in packages] == [('mypkg', '==1.0.0')]

    def test_missing_include(self, write_file, extract_with):
        path = write_file('requirements.txt', 'six==1.16.0\n-r missing.txt\n')
        with pytest.raises(ParseError, match='failed to include'):
            extract_with(requirements.extract, path)

    def test_remote_include_is_skipped(self, write_file, extract_with):
        path = write_file('requirements.txt', '-r https://example.com/requirements.txt\nsix==1.16.0\n')
        assert [p.name for p in extract_with(requirements.extract, path)] == ['six']

    def test_cyclic_includes(self, write_file, extract_with):
        write_file('requirements-b.txt', 'attrs==23.1.0\n-r requirements.txt\n')
        path = write_file('requirements.txt', 'six==1.16.0\n-r requirements-b.txt\n')
        packages = extract_with(requirements.extract, path)

        assert sorted(p.name for p in packages) == ['attrs', 'six']


class TestSetupCfg:
    """Tests for the setup.cfg extractor."""

    def test_should_extract(self):
        assert setup_cfg.should_extract('/app/setup.cfg')
        assert not setup_cfg.should_extract('/app/setup.py')

    def test_block_requirements(self, write_file, extract_with):
        path = write_file('setup.cfg', SETUP_CFG)
        packages = by_name(extract_with(setup_cfg.extract, path))

        assert sorted(packages) == ['requests', 'six']
        assert packages['requests'].version == '>=2.0'
        assert packages['six'].version == '1.16.0'
        assert packages['six'].package_manager == PackageManager.SETUPTOOLS
        assert packages['six'].dep_groups == ['setup']

    def test_positions(self, write_file, extract_with):
        path = write_file('setup.cfg', SETUP_CFG)
        packages = by_name(extract_with(setup_cfg.extract, path))

        requests = packages['requests']
        assert requests.block_position.line == Position(start=7, end=7)
        assert requests.block_position.column == Position(start=5, end=18)
        assert requests.name_position.column == Position(start=5, end=13)
        assert requests.version_position.column == Position(start=13, end=18)

        six = packages['six']
        assert six.block_position.line == Position(start=8, end=8)
        assert six.version_position.column == Position(start=10, end=16)

    def test_inline_requirements(self, write_file, extract_with):
        path = write_file('setup.cfg', '[options]\ninstall_requires = requests; six==1.16.0\n')
        packages = extract_with(setup_cfg.extract, path)

        assert sorted((p.name, p.version) for p in packages) == [('requests', ''), ('six', '1.16.0')]

    def test_missing_install_requires(self, write_file, extract_with):
        path = write_file('setup.cfg', '[metadata]\nname = demo\n')
        with pytest.raises(ParseError, match='install_requires'):
            extract_with(setup_cfg.extract, path)


class TestSetupPy:
    """Tests for the setup.py extractor."""

    def test_should_extract(self):
        assert setup_py.should_extract('/app/setup.py')
        assert not setup_py.should_extract('/app/setup.cfg')

    def test_empty_file(self, write_file, extract_with):
        assert extract_with(setup_py.extract, write_file('setup.py', '\n')) == []

    def test_literal_list(self, write_file, extract_with):
        path = write_file('setup.py', SETUP_PY)
        packages = by_name(extract_with(setup_py.extract, path))

        assert sorted((p.name, p.version) for p in packages.values()) == [('requests', '>=2.0'), ('six', '1.16.0')]

        requests = packages['requests']
        assert requests.block_position.line == Position(start=7, end=7)
        assert requests.block_position.column == Position(start=10, end=23)
        assert requests.name_position.line == Position(start=7, end=7)
        assert requests.name_position.column == Position(start=10, end=18)
        assert requests.version_position.column == Position(start=18, end=23)

        six = packages['six']
        assert six.name_position.line == Position(start=8, end=8)
        assert six.name_position.column == Position(start=10, end=13)
        assert six.version_position.column == Position(start=15, end=21)

    def test_non_literal_value(self, write_file, extract_with):
        path = write_file('setup.py', 'setup(install_requires=REQUIREMENTS)\n')
        with pytest.raises(UnsupportedSyntaxError):
            extract_with(setup_py.extract, path)

    def test_no_install_requires(self, write_file, extract_with):
        path = write_file('setup.py', 'setup(name="demo")\n')
        with pytest.raises(UnsupportedSyntaxError):
            extract_with(setup_py.extract, path)
