"""
Go binaries, read through the build info embedded by the Go toolchain.

Only the inline string layout of Go 1.18+ is understood; binaries built
with older toolchains store pointers into the data segment instead.
"""
import os

import structlog

from lockbom.core.errors import IncompatibleFormatError
from lockbom.lockfile import registry
from lockbom.lockfile.depfile import DepFile
from lockbom.models.ecosystem import Ecosystem
from lockbom.models.ecosystem import PackageManager
from lockbom.models.package import PackageRecord

logger = structlog.get_logger('gobinary')

BUILDINFO_MAGIC = b'\xff Go buildinf:'
HEADER_SIZE = 32
FLAG_INLINE_STRINGS = 0x2
# modinfo is wrapped by two 16 bytes sentinels
SENTINEL_SIZE = 16


def should_extract(path: str) -> bool:
    if not path or path.endswith(os.sep) or path.endswith('/'):
        return False
    # files with an extension other than .exe are assumed not to be binaries
    _, extension = os.path.splitext(path)
    return extension in ('', '.exe')


def read_varint(data: bytes, offset: int) -> tuple[int, int]:
    """Decode an unsigned LEB128 integer, returning it with the offset after it."""
    value = 0
    shift = 0
    while offset < len(data):
        byte = data[offset]
        offset += 1
        value |= (byte & 0x7f) << shift
        if not byte & 0x80:
            return value, offset
        shift += 7
    raise IncompatibleFormatError('truncated build info')


def read_string(data: bytes, offset: int) -> tuple[str, int]:
    length, offset = read_varint(data, offset)
    if offset + length > len(data):
        raise IncompatibleFormatError('truncated build info')
    return data[offset:offset + length].decode('utf-8', errors='replace'), offset + length


def read_build_info(data: bytes) -> tuple[str, str]:
    """The Go version and the module info text of a binary."""
    offset = data.find(BUILDINFO_MAGIC)
    while offset >= 0 and offset % 16:
        offset = data.find(BUILDINFO_MAGIC, offset + 1)
    if offset < 0 or offset + HEADER_SIZE > len(data):
        raise IncompatibleFormatError('not a go executable')

    flags = data[offset + 15]
    if not flags & FLAG_INLINE_STRINGS:
        raise IncompatibleFormatError('unsupported go build info layout')

    go_version, cursor = read_string(data, offset + HEADER_SIZE)
    modinfo, _ = read_string(data, cursor)
    if len(modinfo) >= 2 * SENTINEL_SIZE + 1 and modinfo[-SENTINEL_SIZE - 1] == '\n':
        modinfo = modinfo[SENTINEL_SIZE:-SENTINEL_SIZE]
    else:
        modinfo = ''
    return go_version, modinfo


def parse_modinfo(modinfo: str) -> list[tuple[str, str]]:
    """`(path, version)` of every dependency, replacements taking the place of the module they replace."""
    deps: list[tuple[str, str]] = []
    for line in modinfo.splitlines():
        fields = line.split('\t')
        if fields[0] == 'dep' and len(fields) >= 3:
            deps.append((fields[1], fields[2]))
        elif fields[0] == '=>' and len(fields) >= 3 and deps:
            deps[-1] = (fields[1], fields[2])
    return deps


def extract(file: DepFile) -> list[PackageRecord]:
    data = file.read_bytes()
    if not data:
        return []

    go_version, modinfo = read_build_info(data)
    packages = [
        PackageRecord(
            name='stdlib',
            version=go_version.removeprefix('go'),
            ecosystem=Ecosystem.GO,
            package_manager=PackageManager.GOLANG,
        ),
    ]
    for path, version in parse_modinfo(modinfo):
        packages.append(PackageRecord(
            name=path,
            version=version.removeprefix('v'),
            ecosystem=Ecosystem.GO,
            package_manager=PackageManager.GOLANG,
        ))
    logger.debug('Read go build info', path=file.path, go_version=go_version, modules=len(packages) - 1)
    return packages


GOBINARY_EXTRACTOR = registry.register(registry.Extractor(
    id='go-binary',
    should_extract=should_extract,
    extract=extract,
))
