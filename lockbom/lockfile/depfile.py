"""Files opened for extraction, and the siblings they open in turn."""
import codecs
import os
from typing import BinaryIO

from lockbom.core.errors import FileIOError
from lockbom.core.errors import NotFoundError
from lockbom.lockfile.fileposition import bytes_to_lines

_BOMS = [
    (codecs.BOM_UTF8, 'utf-8'),
    (codecs.BOM_UTF16_LE, 'utf-16-le'),
    (codecs.BOM_UTF16_BE, 'utf-16-be'),
]


def decode_bom(raw: bytes) -> bytes:
    """Strip a leading UTF-8/UTF-16 BOM, re-encoding UTF-16 content as UTF-8."""
    for bom, encoding in _BOMS:
        if raw.startswith(bom):
            content = raw[len(bom):]
            if encoding == 'utf-8':
                return content
            return content.decode(encoding, errors='replace').encode('utf-8')
    return raw


class DepFile:
    """
    A file opened for extraction that knows how to open other files
    relative to itself.
    """

    def __init__(self, path: str, handle: BinaryIO):
        self._path = path
        self._handle = handle
        self._content: bytes | None = None

    @property
    def path(self) -> str:
        return self._path

    def read_bytes(self) -> bytes:
        if self._content is None:
            try:
                self._content = decode_bom(self._handle.read())
            except OSError as e:
                raise FileIOError(f"could not read {self._path}: {e}") from e
        return self._content

    def read_text(self) -> str:
        return self.read_bytes().decode('utf-8', errors='replace')

    def lines(self) -> list[str]:
        return bytes_to_lines(self.read_bytes())

    def open(self, path: str) -> 'DepFile':
        """
        Open `path` absolutely, or relative to the directory holding this file.
        The caller is responsible for closing the returned file.
        """
        if os.path.isabs(path):
            return open_local_dep_file(path)
        return open_local_dep_file(os.path.join(os.path.dirname(self._path), path))

    def close(self) -> None:
        self._handle.close()

    def __enter__(self) -> 'DepFile':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"DepFile({self._path!r})"


def open_local_dep_file(path: str) -> DepFile:
    """Open a file on the local filesystem; the reported path is always absolute."""
    absolute = os.path.abspath(path)
    try:
        handle = open(absolute, 'rb')
    except FileNotFoundError as e:
        raise NotFoundError(f"no such file: {absolute}") from e
    except IsADirectoryError as e:
        raise FileIOError(f"{absolute} is a directory") from e
    except OSError as e:
        raise FileIOError(f"could not open {absolute}: {e}") from e
    return DepFile(absolute, handle)
