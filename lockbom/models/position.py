from dataclasses import dataclass
from dataclasses import field


@dataclass
class Position:
    """Inclusive 1-based range, zero meaning unset."""
    start: int = 0
    end: int = 0

    def is_set(self) -> bool:
        return self.start > 0 and self.end > 0


@dataclass
class FilePosition:
    line: Position = field(default_factory=Position)
    column: Position = field(default_factory=Position)
    filename: str = ''

    def is_well_formed(self) -> bool:
        """True when every coordinate is positive and the file is known."""
        return self.line.is_set() and self.column.is_set() and self.filename != ''

    def is_empty(self) -> bool:
        return (
            self.line.start == 0 and self.line.end == 0
            and self.column.start == 0 and self.column.end == 0
        )

    def contains_lines_of(self, other: 'FilePosition') -> bool:
        return self.line.start <= other.line.start and other.line.end <= self.line.end


@dataclass
class FileLocations:
    """The block of a declaration plus the optional name and version tokens inside it."""
    block: FilePosition = field(default_factory=FilePosition)
    name: FilePosition | None = None
    version: FilePosition | None = None

    def positions(self) -> list[FilePosition]:
        return [p for p in (self.block, self.name, self.version) if p is not None]
