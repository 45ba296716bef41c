"""
Correlates `Gemfile.lock` with the `Gemfile` next to it.

The Gemfile is Ruby code, it is parsed with tree-sitter and queried for
`gem "name", "requirement"` calls, the `group` blocks around them and their
`group:` options.
"""
import functools
from dataclasses import dataclass
from dataclasses import field

import structlog
import tree_sitter_ruby
from tree_sitter import Language
from tree_sitter import Node
from tree_sitter import Parser
from tree_sitter import Query
from tree_sitter import QueryCursor

from lockbom.lockfile.depfile import DepFile
from lockbom.lockfile.registry import Matcher
from lockbom.models.package import PackageRecord
from lockbom.models.position import FileLocations
from lockbom.models.position import FilePosition
from lockbom.models.position import Position

logger = structlog.get_logger('gemfile')

GEMFILE = 'Gemfile'

GEM_QUERY = '''
(call
  method: (identifier) @method_name
  (#eq? @method_name "gem")
  arguments: (argument_list)) @gem_call
'''

GROUP_QUERY = '''
(call
  method: (identifier) @method_name
  (#eq? @method_name "group")
  arguments: (argument_list) @group_keys
  block: (_) @block)
'''

# `group: :x` as well as `:groups => [:x, :y]`
PAIR_QUERY = '''
(pair
  key: [(hash_key_symbol) (simple_symbol)] @pair_key
  (#match? @pair_key "^:?groups?$")
  value: [(array) (simple_symbol) (string)] @pair_value)
'''

_parser: Parser | None = None


@dataclass
class GemDeclaration:
    name: str
    call: Node
    name_node: Node
    requirement_node: Node | None = None
    requirement: str = ''
    groups: list[str] = field(default_factory=list)


@functools.cache
def get_language() -> Language:
    return Language(tree_sitter_ruby.language())


def get_parser() -> Parser:
    global _parser
    if _parser is None:
        _parser = Parser(get_language())
    return _parser


@functools.cache
def compile_query(source: str) -> Query:
    return Query(get_language(), source)


def query_matches(source: str, node: Node) -> list[dict[str, list[Node]]]:
    """Captures of every match of the query under `node`, in document order."""
    return [captures for _, captures in QueryCursor(compile_query(source)).matches(node)]


def node_position(node: Node, filename: str) -> FilePosition:
    return FilePosition(
        line=Position(start=node.start_point[0] + 1, end=node.end_point[0] + 1),
        column=Position(start=node.start_point[1] + 1, end=node.end_point[1] + 1),
        filename=filename,
    )


def text_values(node: Node) -> list[str]:
    """The plain values of strings, symbols and arrays of them; anything else is ignored."""
    if node.type == 'string':
        return [''.join(child.text.decode() for child in node.named_children if child.type == 'string_content')]
    if node.type in ('simple_symbol', 'hash_key_symbol'):
        return [node.text.decode().strip(':')]
    if node.type in ('array', 'argument_list'):
        values = []
        for child in node.named_children:
            values.extend(text_values(child))
        return values
    return []


def _arguments(call: Node) -> list[Node]:
    arguments = call.child_by_field_name('arguments')
    if arguments is None:
        return []
    return [child for child in arguments.named_children if child.type != 'comment']


def groups_in_pairs(call: Node) -> list[str]:
    """Values of the `group: :x` / `:group => [:x, :y]` options of a call."""
    groups = []
    for captures in query_matches(PAIR_QUERY, call):
        groups.extend(text_values(captures['pair_value'][0]))
    return groups


def gem_declaration(call: Node) -> GemDeclaration | None:
    arguments = _arguments(call)
    if not arguments or arguments[0].type != 'string':
        return None
    declaration = GemDeclaration(
        name=text_values(arguments[0])[0],
        call=call,
        name_node=arguments[0],
        groups=groups_in_pairs(call),
    )
    if len(arguments) > 1 and arguments[1].type == 'string':
        declaration.requirement_node = arguments[1]
        declaration.requirement = text_values(arguments[1])[0]
    return declaration


def _encloses(outer: Node, inner: Node) -> bool:
    return outer.start_byte <= inner.start_byte and inner.end_byte <= outer.end_byte


def find_gems(node: Node) -> list[GemDeclaration]:
    """Every `gem` call under `node`; the groups of the innermost enclosing `group` block win over the call options."""
    gems = []
    for captures in query_matches(GEM_QUERY, node):
        declaration = gem_declaration(captures['gem_call'][0])
        if declaration is not None:
            gems.append(declaration)

    # outer blocks match first
    for captures in query_matches(GROUP_QUERY, node):
        groups = text_values(captures['group_keys'][0])
        if not groups:
            continue
        block = captures['block'][0]
        for gem in gems:
            if _encloses(block, gem.call):
                gem.groups = list(groups)
    return gems


def get_source_file(lockfile: DepFile) -> DepFile:
    return lockfile.open(GEMFILE)


def match(source: DepFile, packages: list[PackageRecord]) -> None:
    tree = get_parser().parse(source.read_bytes())
    by_name = {record.name: record for record in packages}

    for gem in find_gems(tree.root_node):
        record = by_name.get(gem.name)
        # the lockfile is the source of truth
        if record is None:
            logger.warning('Skipping gem missing from Gemfile.lock', gem=gem.name, path=source.path)
            continue

        record.is_direct = True
        record.add_target_version(gem.requirement)
        record.add_dep_groups(gem.groups)
        record.set_manifest_locations(FileLocations(
            block=node_position(gem.call, source.path),
            name=node_position(gem.name_node, source.path),
            version=node_position(gem.requirement_node, source.path) if gem.requirement_node is not None else None,
        ))


GEMFILE_MATCHER = Matcher(
    name='Gemfile',
    get_source_file=get_source_file,
    match=match,
)
