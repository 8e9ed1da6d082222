"""
Exit code mapping for the admin CLI.

Store errors, bad input and converter failures each get their own exit code
so scripts driving `artifact-store` can tell a missing object from a broken
disk without parsing stderr.
"""
from __future__ import annotations

import logging
from typing import Callable, TypeVar

import typer

from ..storage.errors import ConversionFailed, ObjectNotFound, StorageFault

logger = logging.getLogger(__name__)

T = TypeVar("T")

EXIT_NOT_FOUND = 1
EXIT_INVALID = 2
EXIT_STORAGE = 3
EXIT_CONVERSION = 4

# Keyed by class name so pydantic's ValidationError needs no import here
EXIT_CODES = {
    ObjectNotFound.__name__: EXIT_NOT_FOUND,
    "ValidationError": EXIT_INVALID,
    "ValueError": EXIT_INVALID,
    "BadParameter": EXIT_INVALID,
    StorageFault.__name__: EXIT_STORAGE,
    ConversionFailed.__name__: EXIT_CONVERSION,
}


def exit_code_for(exc: BaseException) -> int:
    """
    Exit code for an exception raised by a CLI command.

    Exact class names are checked first, then the class's bases, so
    subclasses of a mapped error inherit its code. Anything else is
    treated as a storage fault (3).
    """
    for cls in type(exc).__mro__:
        code = EXIT_CODES.get(cls.__name__)
        if code is not None:
            return code
    return EXIT_STORAGE


def run_and_exit(func: Callable[[], T]) -> T:
    """
    Run a command body, turning any error into `typer.Exit`.

    The error message goes to stderr as `Error: <message>`. An explicit
    `typer.Exit` from the body passes through untouched.
    """
    try:
        return func()
    except typer.Exit:
        raise
    except Exception as e:
        code = exit_code_for(e)
        if code == EXIT_STORAGE and not isinstance(e, StorageFault):
            logger.debug("Unexpected error in CLI command", exc_info=True)
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=code) from e
