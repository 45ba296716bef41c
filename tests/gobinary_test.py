import pytest

from lockbom.core.errors import IncompatibleFormatError
from lockbom.extractors import gobinary
from lockbom.models.ecosystem import Ecosystem

MODINFO = (
    'path\texample.com/app\n'
    'mod\texample.com/app\t(devel)\t\n'
    'dep\tgolang.org/x/mod\tv0.5.0\th1:abc=\n'
    'dep\texample.com/a\tv1.0.0\th1:def=\n'
    '=>\texample.com/fork/a\tv1.4.5\th1:ghi=\n'
)
SENTINEL = b'0123456789abcdef'


def uvarint(value: int) -> bytes:
    encoded = bytearray()
    while True:
        byte = value & 0x7f
        value >>= 7
        if value:
            encoded.append(byte | 0x80)
        else:
            encoded.append(byte)
            return bytes(encoded)


def inline_string(value: bytes) -> bytes:
    return uvarint(len(value)) + value


def go_binary(go_version: str = 'go1.21.0', modinfo: str = MODINFO, flags: int = 0x2) -> bytes:
    header = gobinary.BUILDINFO_MAGIC + bytes([8, flags])
    header += b'\x00' * (gobinary.HEADER_SIZE - len(header))
    return (
        b'\x7fELF' + b'\x00' * 12
        + header
        + inline_string(go_version.encode())
        + inline_string(SENTINEL + modinfo.encode() + SENTINEL)
        + b'\x00' * 8
    )


class TestBuildInfo:
    """Tests for decoding the build info of Go binaries."""

    def test_read_varint(self):
        assert gobinary.read_varint(b'\x96\x01', 0) == (150, 2)

    def test_read_build_info(self):
        assert gobinary.read_build_info(go_binary()) == ('go1.21.0', MODINFO)

    def test_parse_modinfo_applies_replacements(self):
        assert gobinary.parse_modinfo(MODINFO) == [
            ('golang.org/x/mod', 'v0.5.0'),
            ('example.com/fork/a', 'v1.4.5'),
        ]

    def test_not_a_go_binary(self):
        with pytest.raises(IncompatibleFormatError):
            gobinary.read_build_info(b'#!/bin/sh\necho hello\n')

    def test_pointer_layout_is_unsupported(self):
        with pytest.raises(IncompatibleFormatError, match='layout'):
            gobinary.read_build_info(go_binary(flags=0x0))


class TestGoBinary:
    """Tests for the go-binary extractor."""

    def test_should_extract(self):
        assert gobinary.should_extract('/usr/local/bin/app')
        assert gobinary.should_extract('/build/app.exe')
        assert not gobinary.should_extract('/app/README.md')
        assert not gobinary.should_extract('/app/')

    def test_packages(self, write_file, extract_with):
        packages = extract_with(gobinary.extract, write_file('app', go_binary()))

        assert [(p.name, p.version) for p in packages] == [
            ('stdlib', '1.21.0'),
            ('golang.org/x/mod', '0.5.0'),
            ('example.com/fork/a', '1.4.5'),
        ]
        assert all(p.ecosystem == Ecosystem.GO for p in packages)
        assert all(p.block_position.is_empty() for p in packages)

    def test_empty_file(self, write_file, extract_with):
        assert extract_with(gobinary.extract, write_file('app', b'')) == []
