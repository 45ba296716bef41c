from pydantic import BaseModel
from pydantic import ConfigDict

from lockbom.models.position import FilePosition


class PackageLocation(BaseModel):
    """Serialized form of a FilePosition, as embedded in SBOM evidence."""
    file_name: str
    line_start: int
    line_end: int
    column_start: int
    column_end: int

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_position(cls, position: FilePosition, filename: str | None = None) -> 'PackageLocation':
        return cls(
            file_name=position.filename if filename is None else filename,
            line_start=position.line.start,
            line_end=position.line.end,
            column_start=position.column.start,
            column_end=position.column.end,
        )

    def hash(self) -> str:
        return '#'.join([
            self.file_name,
            str(self.line_start),
            str(self.line_end),
            str(self.column_start),
            str(self.column_end),
        ])

    def sort_key(self) -> tuple:
        return (self.file_name, self.line_start, self.line_end, self.column_start, self.column_end)


class SourcefileLocations(BaseModel):
    block: PackageLocation
    name: PackageLocation | None = None
    version: PackageLocation | None = None


class PackageLocations(BaseModel):
    block: PackageLocation
    namespace: PackageLocation | None = None
    name: PackageLocation | None = None
    version: PackageLocation | None = None
    sourcefile: SourcefileLocations | None = None

    def to_json_string(self) -> str:
        return self.model_dump_json(exclude_none=True)
