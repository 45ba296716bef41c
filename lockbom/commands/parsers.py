import typer

from lockbom import extractors  # registers every extractor
from lockbom.lockfile.registry import list_extractors


def list_parsers():
    """
    List the ids accepted by --enable-parsers.
    """
    for extractor_id in list_extractors():
        typer.echo(extractor_id)
