"""
Setuptools `setup.py`.

Only a literal `install_requires=[...]` list of plain strings is read; the
walk fails fast on anything else, as the real value is only known once the
script runs.
"""
import os

from lockbom.core.errors import UnsupportedSyntaxError
from lockbom.lockfile import registry
from lockbom.lockfile.depfile import DepFile
from lockbom.lockfile.python_utils import parse_requirement_line
from lockbom.models.ecosystem import PackageManager
from lockbom.models.package import PackageRecord
from lockbom.models.position import FilePosition

INSTALL_REQUIRES_KEYWORD = 'install_requires'
SKIPPED_CHARACTERS = ' \t\r\f\n,'
QUOTES = '\'"'


class _Cursor:
    """Walks the script character by character, keeping track of lines and columns."""

    def __init__(self, text: str):
        self.text = text
        self.index = 0
        self.line = 1
        self.column = 1

    def done(self) -> bool:
        return self.index >= len(self.text)

    def peek(self) -> str:
        return self.text[self.index]

    def advance(self, count: int = 1) -> None:
        for _ in range(count):
            if self.text[self.index] == '\n':
                self.line += 1
                self.column = 1
            else:
                self.column += 1
            self.index += 1

    def skip_comment(self) -> None:
        while not self.done() and self.peek() != '\n':
            self.advance()

    def read_until(self, end: str) -> str:
        start = self.index
        while not self.done() and self.peek() != end:
            self.advance()
        return self.text[start:self.index]


def _shift(position: FilePosition | None, line: int, offset: int) -> FilePosition | None:
    if position is None:
        return None
    position.line.start = position.line.end = line
    position.column.start += offset
    position.column.end += offset
    return position


def _record(path: str, requirement: str, line: int, column: int) -> PackageRecord:
    record = parse_requirement_line(
        path, PackageManager.SETUPTOOLS, requirement, requirement.strip(),
        line, 0, column, column + len(requirement), pinned_versions=True,
    )
    record.name_position = _shift(record.name_position, line, column - 1)
    record.version_position = _shift(record.version_position, line, column - 1)
    return record


def should_extract(path: str) -> bool:
    return os.path.basename(path) == 'setup.py'


def extract(file: DepFile) -> list[PackageRecord]:
    text = file.read_text()
    if not text.strip():
        return []

    packages: dict[str, PackageRecord] = {}
    cursor = _Cursor(text)
    in_install_requires = False
    in_equal = False
    in_array = False

    while not cursor.done():
        char = cursor.peek()

        # comments may mention install_requires too
        if char == '#':
            cursor.skip_comment()
            continue

        if not in_install_requires:
            if text.startswith(INSTALL_REQUIRES_KEYWORD, cursor.index):
                in_install_requires = True
                cursor.advance(len(INSTALL_REQUIRES_KEYWORD))
            else:
                cursor.advance()
            continue

        if char in SKIPPED_CHARACTERS:
            cursor.advance()
        elif char == '=':
            if in_equal:
                raise UnsupportedSyntaxError('unexpected equal inside already started equal')
            in_equal = True
            cursor.advance()
        elif char == '[':
            if not in_equal:
                raise UnsupportedSyntaxError('unexpected array start without =')
            if in_array:
                raise UnsupportedSyntaxError('unexpected array start inside already started array')
            in_array = True
            cursor.advance()
        elif char == ']':
            if not in_equal or not in_array:
                raise UnsupportedSyntaxError('unexpected array end without start and/or equal')
            return list(packages.values())
        elif char in QUOTES:
            if not in_array:
                raise UnsupportedSyntaxError('unexpected string outside of install_requires with equal array')
            cursor.advance()
            line, column = cursor.line, cursor.column
            requirement = cursor.read_until(char)
            if cursor.done():
                raise UnsupportedSyntaxError('unterminated string in install_requires')
            cursor.advance()
            if requirement.strip():
                record = _record(file.path, requirement, line, column)
                packages[f"{record.name}@{record.version}"] = record
        else:
            raise UnsupportedSyntaxError(f"unexpected text={text[cursor.index:cursor.index + 20]!r}")

    raise UnsupportedSyntaxError(f"could not find a literal install_requires list in {file.path}")


SETUP_PY_EXTRACTOR = registry.register(registry.Extractor(
    id='setup.py',
    should_extract=should_extract,
    extract=extract,
))
