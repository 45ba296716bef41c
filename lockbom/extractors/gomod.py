"""
Go modules `go.mod`.

The module file is read with a small lexer following the upstream grammar:
single line directives (`require a v1.0.0`) and parenthesised blocks
(`require ( ... )`), `//` comments and quoted strings.
"""
import os
from dataclasses import dataclass

import structlog

from lockbom.core import cachedregexp
from lockbom.core.errors import ParseError
from lockbom.lockfile import registry
from lockbom.lockfile.depfile import DepFile
from lockbom.models.ecosystem import Ecosystem
from lockbom.models.ecosystem import PackageManager
from lockbom.models.package import PackageRecord
from lockbom.models.position import FilePosition
from lockbom.models.position import Position

logger = structlog.get_logger('gomod')

UNKNOWN_VERSION = 'v0.0.0-unknown-version'
KNOWN_VERBS = frozenset({
    'module', 'go', 'toolchain', 'godebug', 'require', 'exclude',
    'replace', 'retract', 'tool', 'ignore',
})
SEMVER_PATTERN = (
    r'^v(?P<major>0|[1-9]\d*)'
    r'(?:\.(?P<minor>0|[1-9]\d*))?'
    r'(?:\.(?P<patch>0|[1-9]\d*))?'
    r'(?P<prerelease>-[0-9A-Za-z.-]+)?'
    r'(?P<build>\+[0-9A-Za-z.-]+)?$'
)


@dataclass
class Token:
    text: str
    start: int
    end: int


@dataclass
class Directive:
    verb: str
    args: list[Token]
    line: int
    start: int
    end: int

    def position(self, filename: str) -> FilePosition:
        return FilePosition(
            line=Position(start=self.line, end=self.line),
            column=Position(start=self.start, end=self.end),
            filename=filename,
        )


def tokenize(line: str) -> list[Token]:
    tokens = []
    i = 0
    while i < len(line):
        char = line[i]
        if char.isspace():
            i += 1
            continue
        if line.startswith('//', i):
            break
        if char in '"`':
            j = i + 1
            while j < len(line) and line[j] != char:
                j += 2 if char == '"' and line[j] == '\\' else 1
            tokens.append(Token(line[i + 1:j], i + 1, j + 2))
            i = j + 1
            continue
        if char in '()':
            tokens.append(Token(char, i + 1, i + 2))
            i += 1
            continue
        j = i
        while j < len(line) and not line[j].isspace() and line[j] not in '()' and not line.startswith('//', j):
            j += 1
        tokens.append(Token(line[i:j], i + 1, j + 1))
        i = j
    return tokens


def parse_directives(lines: list[str], path: str) -> list[Directive]:
    directives: list[Directive] = []
    block_verb = ''
    block_line = 0

    for number, line in enumerate(lines, start=1):
        tokens = tokenize(line)
        if not tokens:
            continue

        if block_verb:
            if tokens[0].text == ')':
                block_verb = ''
                continue
            directives.append(Directive(block_verb, tokens, number, tokens[0].start, tokens[-1].end))
            continue

        verb = tokens[0].text
        if verb not in KNOWN_VERBS:
            raise ParseError(f"could not extract from {path}: {number}: unknown directive: {verb}")
        if len(tokens) >= 2 and tokens[1].text == '(':
            if not (len(tokens) >= 3 and tokens[2].text == ')'):
                block_verb = verb
                block_line = number
            continue
        directives.append(Directive(verb, tokens[1:], number, tokens[0].start, tokens[-1].end))

    if block_verb:
        raise ParseError(f"could not extract from {path}: {block_line}: unterminated {block_verb} block")
    return directives


def canonical_version(version: str) -> str:
    """Canonical `vX.Y.Z[-pre]` form of a semver, empty when invalid."""
    match = cachedregexp.compile(SEMVER_PATTERN).match(version)
    if not match:
        return ''
    if match.group('prerelease') and (match.group('minor') is None or match.group('patch') is None):
        return ''
    canonical = f"v{match.group('major')}.{match.group('minor') or 0}.{match.group('patch') or 0}"
    canonical += match.group('prerelease') or ''
    if match.group('build') == '+incompatible':
        canonical += '+incompatible'
    return canonical


def path_major(module_path: str) -> str:
    """`v8` for `example.com/mod/v8` and `gopkg.in/yaml.v2`, empty otherwise."""
    if module_path.startswith('gopkg.in/'):
        match = cachedregexp.compile(r'\.(v\d+)(?:-unstable)?$').search(module_path)
    else:
        match = cachedregexp.compile(r'/(v(?:[2-9]|[1-9]\d+))$').search(module_path)
    return match.group(1) if match else ''


def resolve_version(module_path: str, version: str) -> str:
    resolved = canonical_version(version) or path_major(module_path)
    if not resolved:
        logger.warning('Not a canonical version, defaulting to an empty version', module=module_path, version=version)
        return UNKNOWN_VERSION
    return resolved


def _clean(version: str) -> str:
    if version == UNKNOWN_VERSION:
        return ''
    return version.removeprefix('v')


def stdlib_version(go_version: str) -> str:
    """Pad a `go` directive version to three components (`1.20` becomes `1.20.0`)."""
    match = cachedregexp.compile(r'^(\d+)(?:\.(\d+))?(?:\.(\d+))?').match(go_version.removeprefix('go'))
    if not match:
        return ''
    return '.'.join(part or '0' for part in match.groups())


def _token_position(token: Token, line: int, filename: str, skip: int = 0) -> FilePosition:
    return FilePosition(
        line=Position(start=line, end=line),
        column=Position(start=token.start + skip, end=token.end),
        filename=filename,
    )


def _record(directive: Directive, name_token: Token, version_token: Token | None, version: str, filename: str) -> PackageRecord:
    version_position = None
    if version_token is not None and version:
        skip = 1 if version_token.text.startswith('v') else 0
        version_position = _token_position(version_token, directive.line, filename, skip)
    return PackageRecord(
        name=name_token.text,
        version=_clean(version),
        ecosystem=Ecosystem.GO,
        package_manager=PackageManager.GOLANG,
        block_position=directive.position(filename),
        name_position=_token_position(name_token, directive.line, filename),
        version_position=version_position if _clean(version) else None,
    )


def _parse_replace(directive: Directive, path: str) -> tuple[Token, str, Token, Token | None]:
    texts = [token.text for token in directive.args]
    if '=>' not in texts:
        raise ParseError(f"could not extract from {path}: {directive.line}: usage: replace module/path [v1.2.3] => other/module v1.4")
    arrow = texts.index('=>')
    left, right = directive.args[:arrow], directive.args[arrow + 1:]
    if not left or len(left) > 2 or not right or len(right) > 2:
        raise ParseError(f"could not extract from {path}: {directive.line}: invalid replace directive")
    old_version = resolve_version(left[0].text, left[1].text) if len(left) == 2 else ''
    return left[0], old_version, right[0], right[1] if len(right) == 2 else None


def should_extract(path: str) -> bool:
    return os.path.basename(path) == 'go.mod'


def extract(file: DepFile) -> list[PackageRecord]:
    directives = parse_directives(file.lines(), file.path)
    packages: dict[str, PackageRecord] = {}
    go_directive: Directive | None = None
    toolchain = ''

    for directive in directives:
        if directive.verb == 'go' and directive.args:
            go_directive = directive
        elif directive.verb == 'toolchain' and directive.args:
            toolchain = directive.args[0].text
        elif directive.verb == 'require':
            if len(directive.args) != 2:
                raise ParseError(f"could not extract from {file.path}: {directive.line}: usage: require module/path v1.2.3")
            name, version = directive.args
            resolved = resolve_version(name.text, version.text)
            packages[f"{name.text}@{resolved}"] = _record(directive, name, version, resolved, file.path)

    for directive in directives:
        if directive.verb != 'replace':
            continue
        old, old_version, new, new_version = _parse_replace(directive, file.path)

        if not old_version:
            # all the required versions of the module are replaced
            replaced = [key for key, record in packages.items() if record.name == old.text]
        else:
            # a replace of a version that is not required has no effect
            key = f"{old.text}@{old_version}"
            replaced = [key] if key in packages else []

        for key in replaced:
            resolved = resolve_version(new.text, new_version.text) if new_version is not None else ''
            if not _clean(resolved):
                # local directory replacement, the directory is scanned on its own
                del packages[key]
                continue
            packages[key] = _record(directive, new, new_version, resolved, file.path)

    if go_directive is not None:
        version = stdlib_version(toolchain or go_directive.args[0].text)
        if version:
            packages['stdlib'] = PackageRecord(
                name='stdlib',
                version=version,
                ecosystem=Ecosystem.GO,
                package_manager=PackageManager.GOLANG,
                block_position=go_directive.position(file.path),
            )

    deduplicated = {f"{record.name}@{record.version}": record for record in packages.values()}
    return list(deduplicated.values())


GOMOD_EXTRACTOR = registry.register(registry.Extractor(
    id='go.mod',
    should_extract=should_extract,
    extract=extract,
))
