"""
Requirement specifiers as written in `requirements.txt`, `setup.cfg` and
`setup.py`.

See https://pip.pypa.io/en/stable/reference/requirements-file-format/
"""
from lockbom.core import cachedregexp
from lockbom.core.errors import ParseError
from lockbom.lockfile.fileposition import find_substring_in_multiline
from lockbom.models.ecosystem import Ecosystem
from lockbom.models.ecosystem import PackageManager
from lockbom.models.package import PackageRecord
from lockbom.models.position import FilePosition
from lockbom.models.position import Position

COMMENTS_PATTERN = r'\s*#.*'
SPACES_PATTERN = r'\s+'
OPTIONS_PATTERN = r'\s+(--[a-zA-Z][\w-]*(?:[= ]\S+)?)'
REQUIREMENT_PATTERN = (
    r'\s*(?P<pkgname>[a-zA-Z0-9._-]+)\s*'
    r'(\[(?P<optnames>[a-zA-Z0-9._,\s-]+)])?\s*'
    r'(\(?\s*(?P<requirement>(,?(?P<constraint>~=|==|!=|<=|>=|<|>|===)\s*(?P<version>[a-zA-Z0-9._!*+-]+))+'
    r'|(@\s*(?P<wheel>[^;]+)))\s*\)?)?\s*'
    r'(;\s*(?P<envmarkers>.*))?\s*'
)
# https://packaging.python.org/en/latest/specifications/binary-distribution-format/#file-name-convention
WHEEL_URL_PATTERN = (
    r'^.*?/(?P<distribution>[^-/]+)-(?P<version>[^-/]+)(-(?P<buildtag>[^-/]+))?'
    r'-(?P<pythontag>[^-/]+)-(?P<abitag>[^-/]+)-(?P<platformtag>[^-/]+)\.whl\s*$'
)
EXACT_PATTERN = r'(===|==)([^,*]+)'


def normalized_requirement_name(name: str) -> str:
    """
    PEP 503 normalization, extras removed.

    Pip accepts non normalized names, so both the records and the advisories
    they are compared to are normalized.
    """
    name = cachedregexp.compile(r'[-_.]+').sub('-', name).lower()
    return name.partition('[')[0]


def strip_comments(line: str) -> str:
    return cachedregexp.compile(COMMENTS_PATTERN).sub('', line)


def is_not_requirement_line(line: str) -> bool:
    return (
        line == ''
        # flags are not supported
        or line.startswith('-')
        # nor are file urls and paths
        or line.startswith('https://')
        or line.startswith('http://')
        or line.startswith('.')
        or line.startswith('/')
    )


def is_line_continuation(line: str) -> bool:
    """True when the line ends with an odd number of backslashes."""
    return cachedregexp.compile(r'([^\\]|^)(\\{2})*\\$').search(line) is not None


def version_from_wheel_url(url: str) -> str:
    match = cachedregexp.compile(WHEEL_URL_PATTERN).match(url)
    return match.group('version') if match else ''


def setup_version(requirement: str) -> str:
    """`==X` and `===X` pin `X`, any other constraint is kept as written."""
    match = cachedregexp.compile(EXACT_PATTERN).fullmatch(requirement)
    return match.group(2) if match else requirement


def split_options(line: str) -> tuple[str, str]:
    """Separate per-requirement options such as `--hash=sha256:...` from the requirement."""
    options = cachedregexp.compile(OPTIONS_PATTERN).findall(line)
    if not options:
        return line, ''
    requirement = cachedregexp.compile(OPTIONS_PATTERN).sub('', line)
    return requirement.strip(), ' '.join(options)


def parse_requirement_line(
    path: str,
    package_manager: PackageManager,
    line: str,
    clean_line: str,
    line_number: int,
    line_offset: int,
    column_start: int,
    column_end: int,
    pinned_versions: bool = False,
) -> PackageRecord:
    """
    Parse one requirement. `line` is the raw text, continuation lines
    included, used to locate the tokens; `clean_line` is the requirement
    without comments. With `pinned_versions`, an exact pin is reported as the
    bare version.
    """
    clean_line, options = split_options(clean_line)
    match = cachedregexp.compile(REQUIREMENT_PATTERN).match(clean_line)
    if match is None or not match.group('pkgname'):
        raise ParseError(f"could not parse requirement line {line_number} of {path}")

    name = match.group('pkgname')
    written = match.group('requirement') or ''
    requirement = cachedregexp.compile(SPACES_PATTERN).sub('', written)
    located = written

    wheel = (match.group('wheel') or '').strip()
    if wheel:
        located = wheel
        requirement = ''
        if wheel.endswith('.whl'):
            requirement = '==' + version_from_wheel_url(wheel)
        else:
            located = ''

    version = requirement
    if pinned_versions:
        version = setup_version(requirement)
        if version != requirement:
            located = version

    name_position = find_substring_in_multiline(line, name, line_number)
    version_position = find_substring_in_multiline(line, located, line_number) if located else None
    for position in (name_position, version_position):
        if position is not None:
            position.filename = path

    return PackageRecord(
        name=normalized_requirement_name(name),
        version=version,
        ecosystem=Ecosystem.PYPI,
        package_manager=package_manager,
        block_position=FilePosition(
            line=Position(start=line_number, end=line_number + line_offset),
            column=Position(start=column_start, end=column_end),
            filename=path,
        ),
        name_position=name_position,
        version_position=version_position,
        options=options,
        env_markers=(match.group('envmarkers') or '').strip(),
    )
