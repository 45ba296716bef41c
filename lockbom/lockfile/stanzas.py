"""Blank-line separated `Key: value` records, as used by the apk and dpkg databases."""
from collections.abc import Iterator
from dataclasses import dataclass
from dataclasses import field

from lockbom.models.position import FilePosition
from lockbom.models.position import Position


@dataclass
class Stanza:
    start: int
    end: int
    fields: dict[str, str] = field(default_factory=dict)
    # 0-based index of the line holding each field
    field_lines: dict[str, int] = field(default_factory=dict)


def read_stanzas(lines: list[str]) -> Iterator[Stanza]:
    """
    Yield every record of `lines`. Lines starting with a blank continue the
    previous field and are ignored; the first occurrence of a key wins.
    """
    stanza: Stanza | None = None
    for index, line in enumerate(lines):
        if not line.strip():
            if stanza is not None:
                yield stanza
                stanza = None
            continue
        if line[0] in ' \t':
            if stanza is not None:
                stanza.end = index
            continue

        key, found, value = line.partition(':')
        if not found:
            continue
        if stanza is None:
            stanza = Stanza(start=index, end=index)
        stanza.end = index
        if key not in stanza.fields:
            stanza.fields[key] = value.strip()
            stanza.field_lines[key] = index

    if stanza is not None:
        yield stanza


def field_position(lines: list[str], stanza: Stanza, key: str, filename: str) -> FilePosition | None:
    """Position of the value of `key`, None when the record lacks it."""
    index = stanza.field_lines.get(key)
    value = stanza.fields.get(key, '')
    if index is None or not value:
        return None
    start = lines[index].find(value, len(key) + 1)
    if start < 0:
        return None
    return FilePosition(
        line=Position(start=index + 1, end=index + 1),
        column=Position(start=start + 1, end=start + 1 + len(value)),
        filename=filename,
    )
