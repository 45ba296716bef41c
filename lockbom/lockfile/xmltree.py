"""
A minimal element tree built with expat that remembers where each element
and its text sit in the source document.
"""
from dataclasses import dataclass
from dataclasses import field
from xml.parsers import expat

from lockbom.core.errors import ParseError
from lockbom.lockfile.fileposition import bytes_to_lines
from lockbom.models.position import FilePosition
from lockbom.models.position import Position


@dataclass
class XmlElement:
    tag: str
    attributes: dict[str, str] = field(default_factory=dict)
    children: list['XmlElement'] = field(default_factory=list)
    text: str = ''
    # (line, 1-based column) of the opening `<`
    start: tuple[int, int] = (0, 0)
    # (line, exclusive 1-based column) after the closing tag
    end: tuple[int, int] = (0, 0)
    text_start: tuple[int, int] | None = None

    def find(self, *path: str) -> 'XmlElement | None':
        element: XmlElement | None = self
        for tag in path:
            if element is None:
                return None
            element = next((child for child in element.children if child.tag == tag), None)
        return element

    def findall(self, *path: str) -> list['XmlElement']:
        *parents, tag = path
        parent = self.find(*parents) if parents else self
        if parent is None:
            return []
        return [child for child in parent.children if child.tag == tag]

    def findtext(self, *path: str) -> str:
        element = self.find(*path)
        return element.text.strip() if element is not None else ''

    def block(self, filename: str) -> FilePosition:
        return FilePosition(
            line=Position(start=self.start[0], end=self.end[0]),
            column=Position(start=self.start[1], end=self.end[1]),
            filename=filename,
        )

    def text_position(self, filename: str) -> FilePosition | None:
        """Span of the stripped text, when it sits on a single line."""
        value = self.text.strip()
        if not value or self.text_start is None or '\n' in value:
            return None
        line, column = self.text_start
        return FilePosition(
            line=Position(start=line, end=line),
            column=Position(start=column, end=column + len(value)),
            filename=filename,
        )


class _TreeBuilder:
    def __init__(self, parser: expat.XMLParserType, lines: list[str]):
        self._parser = parser
        self._lines = lines
        self._stack: list[XmlElement] = []
        self.root: XmlElement | None = None

    def _position(self) -> tuple[int, int]:
        return self._parser.CurrentLineNumber, self._parser.CurrentColumnNumber + 1

    def start(self, tag: str, attributes: dict[str, str]) -> None:
        element = XmlElement(tag=tag, attributes=attributes, start=self._position())
        if self._stack:
            self._stack[-1].children.append(element)
        else:
            self.root = element
        self._stack.append(element)

    def end(self, tag: str) -> None:
        element = self._stack.pop()
        line, column = self._position()
        if (line, column) == element.start:
            # self-closing element, expat reports the opening position
            element.end = self._self_closing_end(line, column)
        else:
            element.end = (line, column + len(f"</{tag}>"))

    def _self_closing_end(self, line: int, column: int) -> tuple[int, int]:
        offset = column - 1
        for index in range(line - 1, len(self._lines)):
            found = self._lines[index].find('/>', offset)
            if found >= 0:
                return index + 1, found + 3
            offset = 0
        return line, column + 1

    def data(self, chunk: str) -> None:
        if not self._stack:
            return
        element = self._stack[-1]
        if element.text_start is None and chunk.strip():
            line, column = self._position()
            element.text_start = (line, column + len(chunk) - len(chunk.lstrip()))
        element.text += chunk


def parse_xml(content: bytes, path: str) -> XmlElement | None:
    """Parse `content`, raising ParseError on malformed documents; None when blank."""
    if not content.strip():
        return None

    parser = expat.ParserCreate()
    builder = _TreeBuilder(parser, bytes_to_lines(content))
    parser.StartElementHandler = builder.start
    parser.EndElementHandler = builder.end
    parser.CharacterDataHandler = builder.data
    try:
        parser.Parse(content, True)
    except expat.ExpatError as e:
        raise ParseError(f"could not extract from {path}: {e}") from e
    return builder.root
