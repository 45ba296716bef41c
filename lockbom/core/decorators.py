import functools
from collections.abc import Callable
from typing import Any

import structlog
import typer

from lockbom.core.errors import LockbomError
from lockbom.core.errors import UnsupportedFormatError
from lockbom.core.logging import console

logger = structlog.get_logger('cli')

EXIT_USAGE = 127


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator to handle exceptions in CLI commands nicely."""
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except UnsupportedFormatError as e:
            console.print(f"[bold red]Usage Error:[/] {e}")
            raise typer.Exit(EXIT_USAGE)
        except LockbomError as e:
            console.print(f"[bold red]Scan Error:[/] {e}")
            logger.debug('Scan error', kind=str(e.kind), exc_info=True)
            raise typer.Exit(1)
        except KeyboardInterrupt:
            console.print('\n[yellow]Operation cancelled by user.[/]')
            raise typer.Exit(130)
        except Exception as e:
            console.print(f"[bold red]Unexpected Error:[/] {e}")
            logger.exception('Unexpected error')
            raise typer.Exit(1)
    return wrapper
