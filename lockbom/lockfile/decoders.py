"""Structural decoders shared by extractors; failures become ParseError."""
import json
import tomllib
from typing import Any

import yaml

from lockbom.core.errors import ParseError
from lockbom.lockfile.depfile import DepFile
from lockbom.lockfile.fileposition import last_non_empty_column
from lockbom.models.position import FilePosition
from lockbom.models.position import Position


def _parse_error(file: DepFile, e: Exception) -> ParseError:
    return ParseError(f"could not extract from {file.path}: {e}")


def load_json(file: DepFile, expected: type = dict) -> Any:
    """Decode a JSON document, None for a blank file."""
    content = file.read_text()
    if not content.strip():
        return None
    try:
        data = json.loads(content)
    except ValueError as e:
        raise _parse_error(file, e) from e
    if not isinstance(data, expected):
        raise ParseError(f"could not extract from {file.path}: unexpected JSON document")
    return data


def load_toml(file: DepFile) -> dict[str, Any] | None:
    content = file.read_text()
    if not content.strip():
        return None
    try:
        return tomllib.loads(content)
    except tomllib.TOMLDecodeError as e:
        raise _parse_error(file, e) from e


def load_yaml(file: DepFile) -> tuple[Any, yaml.Node | None]:
    """
    Decode a YAML document, returning both the data and the node tree that
    carries line/column marks.
    """
    content = file.read_text()
    if not content.strip():
        return None, None

    loader = yaml.SafeLoader(content)
    try:
        node = loader.get_single_node()
        data = loader.construct_document(node) if node is not None else None
    except yaml.YAMLError as e:
        raise _parse_error(file, e) from e
    finally:
        loader.dispose()
    return data, node


def mapping_get(node: yaml.Node | None, key: str) -> tuple[yaml.Node, yaml.Node] | None:
    """The (key, value) node pair of `key` in a YAML mapping node."""
    if not isinstance(node, yaml.MappingNode):
        return None
    for key_node, value_node in node.value:
        if isinstance(key_node, yaml.ScalarNode) and key_node.value == key:
            return key_node, value_node
    return None


def _last_mark(node: yaml.Node) -> yaml.Mark:
    """End mark of the last token that belongs to `node`."""
    if isinstance(node, yaml.ScalarNode) or getattr(node, 'flow_style', False):
        return node.end_mark
    children: list[yaml.Node] = []
    if isinstance(node, yaml.MappingNode):
        for key_node, value_node in node.value:
            children.extend((key_node, value_node))
    elif isinstance(node, yaml.SequenceNode):
        children = list(node.value)
    if not children:
        return node.start_mark
    return max((_last_mark(child) for child in children), key=lambda mark: mark.index)


def node_block(lines: list[str], key_node: yaml.Node, value_node: yaml.Node, filename: str) -> FilePosition:
    """Block spanning a mapping entry, from its key to the last line of its value."""
    start = key_node.start_mark
    end_line = min(_last_mark(value_node).line, len(lines) - 1)
    if end_line < start.line:
        end_line = start.line
    return FilePosition(
        line=Position(start=start.line + 1, end=end_line + 1),
        column=Position(start=start.column + 1, end=last_non_empty_column(lines[end_line])),
        filename=filename,
    )


def scalar_position(node: yaml.Node, filename: str) -> FilePosition | None:
    """Position of a single line scalar, surrounding quotes excluded."""
    if not isinstance(node, yaml.ScalarNode) or node.start_mark.line != node.end_mark.line:
        return None
    start = node.start_mark.column + 1
    end = node.end_mark.column + 1
    if node.style in ('"', "'"):
        start += 1
        end -= 1
    return FilePosition(
        line=Position(start=node.start_mark.line + 1, end=node.start_mark.line + 1),
        column=Position(start=start, end=end),
        filename=filename,
    )
