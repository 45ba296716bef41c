"""
Directory scanning: walk the requested paths, extract every recognised
lockfile and collect the packages and artifacts found.
"""
import os
from dataclasses import dataclass
from dataclasses import field

import structlog

# importing the package registers every extractor
from lockbom import extractors
from lockbom.core.errors import ExtractorNotFoundError
from lockbom.core.errors import IncompatibleFormatError
from lockbom.core.errors import LockbomError
from lockbom.core.errors import NoPackagesFoundError
from lockbom.core.stats import ScanStats
from lockbom.lockfile.depfile import open_local_dep_file
from lockbom.lockfile.fileposition import remove_host_path
from lockbom.lockfile.registry import extract_deps
from lockbom.models.artifact import ArtifactDescriptor
from lockbom.models.package import PackageRecord
from lockbom.models.position import FilePosition
from lockbom.models.results import PackageSource
from lockbom.models.results import ScanResults

logger = structlog.get_logger('scanner')

GIT_DIR = '.git'


@dataclass
class ScanActions:
    paths: list[str] = field(default_factory=list)
    recursive: bool = False
    ignore_gitignore: bool = False
    # empty means every registered extractor
    enabled_parsers: list[str] = field(default_factory=list)
    only_packages: bool = False
    consider_scan_path_as_root: bool = False
    paths_relative_to_scan_dir: bool = False
    debug: bool = False


class GitIgnoreFilter:
    """
    Answers which paths are ignored by the repository holding the scan
    directory. Without a usable repository nothing is ignored.
    """

    def __init__(self, scan_path: str):
        self._git = None
        self._repo = None
        try:
            import git
        except ImportError as e:
            # GitPython refuses to load without a git executable
            logger.warning('Unable to load git, .gitignore files are not honored', error=str(e))
            return
        self._git = git
        try:
            self._repo = git.Repo(scan_path, search_parent_directories=True)
        except (git.InvalidGitRepositoryError, git.NoSuchPathError):
            logger.debug('Scan path is not in a git repository', path=scan_path)

    def ignored(self, paths: list[str]) -> set[str]:
        if self._repo is None or not paths:
            return set()
        try:
            ignored = self._repo.ignored(*paths)
        except self._git.GitCommandError as e:
            logger.warning('Unable to check .gitignore, scanning without it', error=str(e))
            self._repo = None
            return set()
        root = self._repo.working_tree_dir
        return {os.path.abspath(os.path.join(root, path)) for path in ignored}


class Scanner:
    def __init__(self, actions: ScanActions):
        self.actions = actions
        self.results = ScanResults()
        self.stats = ScanStats()
        self._rerooted: set[int] = set()

    @property
    def reroots(self) -> bool:
        return self.actions.consider_scan_path_as_root or self.actions.paths_relative_to_scan_dir

    def _reroot_path(self, scan_path: str, path: str) -> str:
        return remove_host_path(
            scan_path, path,
            self.actions.consider_scan_path_as_root,
            self.actions.paths_relative_to_scan_dir,
        )

    def _reroot_position(self, scan_path: str, position: FilePosition | None) -> None:
        if position is None or id(position) in self._rerooted:
            return
        self._rerooted.add(id(position))
        position.filename = self._reroot_path(scan_path, position.filename)

    def _reroot_record(self, scan_path: str, record: PackageRecord) -> None:
        for position in (record.block_position, record.name_position, record.version_position):
            self._reroot_position(scan_path, position)
        if record.sourcefile is not None:
            for position in record.sourcefile.positions():
                self._reroot_position(scan_path, position)

    def _reroot_artifact(self, scan_path: str, artifact: ArtifactDescriptor | None) -> None:
        while artifact is not None and id(artifact) not in self._rerooted:
            self._rerooted.add(id(artifact))
            artifact.filename = self._reroot_path(scan_path, artifact.filename)
            artifact = artifact.depends_on

    def scan_file(self, path: str, scan_path: str) -> None:
        try:
            with open_local_dep_file(path) as file:
                lockfile = extract_deps(file, enabled=self.actions.enabled_parsers)
        except ExtractorNotFoundError:
            return
        except IncompatibleFormatError as e:
            logger.debug('Skipping file in an unsupported format', path=path, reason=str(e))
            return
        except LockbomError as e:
            logger.warning('Failed to extract packages', path=path, kind=str(e.kind), error=str(e))
            self.stats.inc_failed()
            return

        source = PackageSource(
            path=lockfile.file_path,
            scan_path=scan_path,
            parsed_as=lockfile.parsed_as,
            packages=lockfile.packages,
        )
        if self.reroots:
            for record in source.packages:
                self._reroot_record(scan_path, record)
            self._reroot_artifact(scan_path, lockfile.artifact)

        self.results.sources.append(source)
        if lockfile.artifact is not None:
            self.results.artifacts.append(lockfile.artifact)
        self.stats.inc_scanned(len(lockfile.packages))
        logger.info(
            'Scanned file',
            path=lockfile.file_path, parsed_as=lockfile.parsed_as, packages=len(lockfile.packages),
        )

    def scan_directory(self, scan_path: str) -> None:
        ignore = None if self.actions.ignore_gitignore else GitIgnoreFilter(scan_path)
        self._walk(scan_path, scan_path, ignore)

    def _walk(self, directory: str, scan_path: str, ignore: GitIgnoreFilter | None) -> None:
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda entry: entry.name)
        except OSError as e:
            logger.warning('Unable to read directory', path=directory, error=str(e))
            return

        ignored = ignore.ignored([entry.path for entry in entries]) if ignore is not None else set()
        for entry in entries:
            if entry.path in ignored:
                logger.debug('Skipping ignored path', path=entry.path)
                self.stats.inc_ignored()
                continue
            if entry.is_dir(follow_symlinks=False):
                if entry.name == GIT_DIR or not self.actions.recursive:
                    continue
                self._walk(entry.path, scan_path, ignore)
            elif entry.is_file():
                self.scan_file(entry.path, scan_path)

    def run(self) -> ScanResults:
        for requested in self.actions.paths:
            path = os.path.abspath(requested)
            if os.path.isdir(path):
                logger.info('Scanning directory', path=path)
                self.scan_directory(path)
            else:
                self.scan_file(path, os.path.dirname(path))

        logger.info(
            'Scan complete',
            files_scanned=self.stats.files_scanned,
            files_failed=self.stats.files_failed,
            files_ignored=self.stats.files_ignored,
            packages=self.stats.packages,
            elapsed=f"{self.stats.elapsed_time:.2f}s",
        )
        if self.results.package_count == 0:
            raise NoPackagesFoundError(results=self.results)
        return self.results


def do_scan(actions: ScanActions) -> ScanResults:
    """Scan every path of `actions`; raises NoPackagesFoundError when nothing was found."""
    if actions.debug:
        os.environ['debug'] = 'true'
    return Scanner(actions).run()
