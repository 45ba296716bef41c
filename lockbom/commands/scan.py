import sys
from pathlib import Path

import structlog
import typer

from lockbom.core.config import get_config
from lockbom.core.decorators import handle_errors
from lockbom.core.errors import NoPackagesFoundError
from lockbom.core.logging import parse_verbosity
from lockbom.core.logging import setup_logging
from lockbom.output.cyclonedx import format_results
from lockbom.output.cyclonedx import parse_format
from lockbom.services.scanner import do_scan
from lockbom.services.scanner import ScanActions

logger = structlog.get_logger('scan_command')


def split_parsers(values: list[str] | None) -> list[str]:
    """`--enable-parsers` may be repeated and holds comma separated ids."""
    parsers = []
    for value in values or []:
        parsers.extend(p.strip() for p in value.split(',') if p.strip())
    return parsers


@handle_errors
def scan(
    paths: list[Path] = typer.Argument(..., help='Directories or lockfiles to scan'),
    output_format: str = typer.Option(
        get_config().output.default_format, '--format', '-f',
        help='Output format: cyclonedx-1-4 or cyclonedx-1-5',
    ),
    output: Path | None = typer.Option(None, '--output', help='Write the SBOM to this file instead of stdout'),
    recursive: bool = typer.Option(False, '--recursive', '-r', help='Scan subdirectories'),
    no_ignore: bool = typer.Option(False, '--no-ignore', help='Also scan files ignored by .gitignore'),
    verbosity: str = typer.Option('info', '--verbosity', help='error, warn, info, verbose or debug'),
    only_packages: bool = typer.Option(
        False, '--experimental-only-packages', help='Has no effect, packages are always listed without any lookup',
    ),
    consider_scan_path_as_root: bool = typer.Option(
        False, '--consider-scan-path-as-root', help='Report paths as if the scan directory was /',
    ),
    paths_relative_to_scan_dir: bool = typer.Option(
        False, '--paths-relative-to-scan-dir', help='Report paths relative to the scan directory',
    ),
    enable_parsers: list[str] | None = typer.Option(
        None, '--enable-parsers', help='Only use these extractors (repeatable, comma separated)',
    ),
    skip_git: bool = typer.Option(False, '--skip-git', hidden=True, help='Deprecated, has no effect'),
):
    """
    Scan directories for lockfiles and print a CycloneDX SBOM.
    """
    setup_logging(level=parse_verbosity(verbosity))
    parse_format(output_format)
    if skip_git:
        logger.warning('--skip-git is deprecated and has no effect')

    actions = ScanActions(
        paths=[str(p) for p in paths],
        recursive=recursive,
        ignore_gitignore=no_ignore,
        enabled_parsers=split_parsers(enable_parsers),
        only_packages=only_packages,
        consider_scan_path_as_root=consider_scan_path_as_root,
        paths_relative_to_scan_dir=paths_relative_to_scan_dir,
        debug=verbosity.lower() == 'debug',
    )

    try:
        results = do_scan(actions)
    except NoPackagesFoundError as e:
        logger.warning('No packages found', paths=actions.paths)
        results = e.results

    if output is not None:
        with open(output, 'w', encoding='utf-8') as f:
            format_results(results, output_format, f)
        logger.info('SBOM written', path=str(output))
    else:
        format_results(results, output_format, sys.stdout)
