"""
Position recovery inside the dependency maps of JSON manifests
(`package.json`, `composer.json`), working on the raw text so that the
reported spans match what a user sees in the file.
"""
import json
import re

from lockbom.core import cachedregexp
from lockbom.core.errors import ParseError
from lockbom.lockfile.depfile import DepFile
from lockbom.models.package import PackageRecord
from lockbom.models.position import FileLocations
from lockbom.models.position import FilePosition
from lockbom.models.position import Position


def load_manifest(source: DepFile) -> tuple[str, dict]:
    content = source.read_text()
    if not content.strip():
        return content, {}
    try:
        manifest = json.loads(content)
    except ValueError as e:
        raise ParseError(f"could not parse {source.path}: {e}") from e
    if not isinstance(manifest, dict):
        raise ParseError(f"could not parse {source.path}: not a JSON object")
    return content, manifest


def find_section(content: str, section: str) -> tuple[int, int] | None:
    """Character span of the object value of `"section": {...}`."""
    match = cachedregexp.compile(rf'"{re.escape(section)}"\s*:\s*(\{{)').search(content)
    if not match:
        return None
    start = match.start(1)
    try:
        _, end = json.JSONDecoder().raw_decode(content, start)
    except ValueError:
        return None
    return start, end


def find_declaration(content: str, span: tuple[int, int], name: str, requirement: str) -> re.Match | None:
    """
    Find `"name": "requirement"` inside `span`. The quotes around the name
    keep `foo` from matching `foo-bar`.
    """
    pattern = cachedregexp.compile(rf'"({re.escape(name)})"\s*:\s*"({re.escape(requirement)})"')
    return pattern.search(content, span[0], span[1])


def _line_and_column(content: str, index: int) -> tuple[int, int]:
    line = content.count('\n', 0, index) + 1
    column = index - content.rfind('\n', 0, index)
    return line, column


def locations_from_match(content: str, match: re.Match, filename: str) -> FileLocations:
    """
    Turn a declaration match into block/name/version positions: group 0 is
    the whole pair, group 1 the name and group 2 the requirement.
    """
    line_start, column_start = _line_and_column(content, match.start())
    line_end, column_end = _line_and_column(content, match.end())
    name_line, name_start = _line_and_column(content, match.start(1))
    _, name_end = _line_and_column(content, match.end(1))
    version_line, version_start = _line_and_column(content, match.start(2))
    _, version_end = _line_and_column(content, match.end(2))

    return FileLocations(
        block=FilePosition(
            line=Position(start=line_start, end=line_end),
            column=Position(start=column_start, end=column_end),
            filename=filename,
        ),
        name=FilePosition(
            line=Position(start=name_line, end=name_line),
            column=Position(start=name_start, end=name_end),
            filename=filename,
        ),
        version=FilePosition(
            line=Position(start=version_line, end=version_line),
            column=Position(start=version_start, end=version_end),
            filename=filename,
        ),
    )


def propagate_dep_groups(root: PackageRecord, seen: set[int] | None = None) -> None:
    """Give every transitive dependency of `root` the groups of `root`."""
    seen = seen if seen is not None else set()
    if id(root) in seen:
        return
    seen.add(id(root))
    for dependency in root.dependencies:
        dependency.add_dep_groups(root.dep_groups)
        propagate_dep_groups(dependency, seen)
