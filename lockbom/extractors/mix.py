"""Elixir `mix.lock`, read line by line since it is an Elixir map literal."""
import os

from lockbom.core import cachedregexp
from lockbom.lockfile import registry
from lockbom.lockfile.depfile import DepFile
from lockbom.lockfile.fileposition import block_over_lines
from lockbom.lockfile.fileposition import find_in_block_by_delimiters
from lockbom.models.ecosystem import Ecosystem
from lockbom.models.ecosystem import PackageManager
from lockbom.models.package import PackageRecord

ENTRY_PATTERN = r'^ +"(\w+)": \{:+(\w+),'


def _unquote(field: str) -> str:
    return field.strip().removeprefix(':').strip('"')


def parse_entry(line: str) -> tuple[str, str, str] | None:
    """
    `"plug": {:hex, :plug, "1.11.1", "<hash>", ...}` gives the name, the
    version and no commit; a `:git` entry carries the commit where hex puts
    the version.
    """
    match = cachedregexp.compile(ENTRY_PATTERN).match(line)
    if match is None:
        return None
    # the name and version fields never hold a comma
    fields = line.strip().split(',', 4)
    if len(fields) < 4:
        return None
    name, source = match.group(1), match.group(2)
    if source == 'git':
        return name, '', _unquote(fields[2])
    return name, _unquote(fields[2]), ''


def should_extract(path: str) -> bool:
    return os.path.basename(path) == 'mix.lock'


def extract(file: DepFile) -> list[PackageRecord]:
    lines = file.lines()
    packages = []
    for index, line in enumerate(lines):
        entry = parse_entry(line)
        if entry is None:
            continue
        name, version, commit = entry
        line_number = index + 1
        name_position = find_in_block_by_delimiters([line], name, line_number, '"', '"')
        version_position = find_in_block_by_delimiters([line], version or commit, line_number, '"', '"')
        for position in (name_position, version_position):
            if position is not None:
                position.filename = file.path
        packages.append(PackageRecord(
            name=name,
            version=version,
            ecosystem=Ecosystem.HEX,
            package_manager=PackageManager.MIX,
            commit=commit,
            block_position=block_over_lines(lines, index, index, file.path),
            name_position=name_position,
            version_position=version_position,
        ))
    return packages


MIX_EXTRACTOR = registry.register(registry.Extractor(
    id='mix.lock',
    should_extract=should_extract,
    extract=extract,
))
