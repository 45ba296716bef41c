from enum import Enum


class Ecosystem(str, Enum):
    NPM = 'npm'
    PYPI = 'PyPI'
    MAVEN = 'Maven'
    GO = 'Go'
    NUGET = 'NuGet'
    RUBYGEMS = 'RubyGems'
    PACKAGIST = 'Packagist'
    PUB = 'Pub'
    ALPINE = 'Alpine'
    DEBIAN = 'Debian'
    CRAN = 'CRAN'
    CONAN = 'ConanCenter'
    CARGO = 'crates.io'
    HEX = 'Hex'

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return self.value


class PackageManager(str, Enum):
    MAVEN = 'Maven'
    GRADLE = 'Gradle'
    NPM = 'NPM'
    YARN = 'Yarn'
    PNPM = 'Pnpm'
    REQUIREMENTS = 'Requirements'
    PIPFILE = 'Pipfile'
    POETRY = 'Poetry'
    PDM = 'Pdm'
    SETUPTOOLS = 'SetupTools'
    NUGET = 'NuGet'
    BUNDLER = 'Bundler'
    GOLANG = 'Golang'
    COMPOSER = 'Composer'
    CARGO = 'Cargo'
    MIX = 'Mix'
    PUB = 'Pub'
    CONAN = 'Conan'
    APK = 'Apk'
    DPKG = 'Dpkg'
    RENV = 'Renv'
    UNKNOWN = 'Unknown'

    def __str__(self) -> str:
        return self.value


DEV_GROUP = 'dev'
OPTIONAL_GROUP = 'optional'
PROD_GROUP = 'prod'

BUNDLER_DEV_GROUPS = frozenset({
    'dev',
    'development',
    'test',
    'ci',
    'cucumber',
    'linting',
    'rubocop',
})


def _all_in(groups: list[str], allowed: frozenset[str] | set[str]) -> bool:
    return bool(groups) and all(g in allowed for g in groups)


def is_dev_group(ecosystem: Ecosystem | str, groups: list[str]) -> bool:
    """Tell whether `groups` marks a development-only dependency for `ecosystem`."""
    if not groups:
        return False

    ecosystem = Ecosystem(ecosystem)
    if ecosystem == Ecosystem.NPM:
        return _all_in(groups, {DEV_GROUP, OPTIONAL_GROUP}) and DEV_GROUP in groups
    if ecosystem in (Ecosystem.PACKAGIST, Ecosystem.PYPI):
        return _all_in(groups, {DEV_GROUP})
    if ecosystem == Ecosystem.MAVEN:
        return all(g.startswith('test') for g in groups)
    if ecosystem == Ecosystem.RUBYGEMS:
        return _all_in(groups, BUNDLER_DEV_GROUPS)
    return False
