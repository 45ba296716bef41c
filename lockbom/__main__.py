import typer

from lockbom.__version__ import __version__
from lockbom.commands import parsers
from lockbom.commands import scan

app = typer.Typer(
    help='lockbom: lockfiles in, CycloneDX SBOM out.',
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)

app.command(name='scan')(scan.scan)
app.command(name='list-parsers')(parsers.list_parsers)


def version_callback(value: bool):
    if value:
        typer.echo(f"lockbom {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, '--version', callback=version_callback, is_eager=True,
        help='Show the version and exit',
    ),
):
    """
    lockbom CLI - Software Bill of Materials from lockfiles.
    """


if __name__ == '__main__':
    app()
