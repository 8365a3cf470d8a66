"""
Common CLI utilities and decorators for consistent command behavior.
"""

import sys
import click
from functools import wraps
from rich.console import Console
from rich.text import Text

from .config import logger
from .exit_codes import SUCCESS, INTERRUPTED, CommandError


def error_console() -> Console:
    """Console on the current stderr (resolved per call for test runners)."""
    return Console(file=sys.stderr, highlight=False, soft_wrap=True)


def print_error(message: str) -> None:
    error_console().print(Text(message, style="bold red"))


def standard_command(func):
    """
    Decorator that provides standard CLI behavior:
    - The command returns its exit code (None means success)
    - CommandError is reported on stderr and mapped to its exit code
    - Ctrl+C exits with 130
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            code = func(*args, **kwargs)
        except KeyboardInterrupt:
            print_error("Interrupted by user")
            sys.exit(INTERRUPTED)
        except click.ClickException:
            # Click exceptions already have their exit code
            raise
        except CommandError as e:
            logger.debug(f"{type(e).__name__}: {e}")
            print_error(str(e))
            sys.exit(e.exit_code)
        sys.exit(SUCCESS if code is None else code)

    return wrapper


# Standard options that many commands share
common_options = {
    'verbose': click.option('-v', '--verbose', is_flag=True,
                           help='Show banners, stream tags and debug logging'),
}


def add_common_options(*option_names):
    """
    Decorator to add common options to a command.

    Example:
        @add_common_options('verbose')
        def my_command(verbose):
            ...
    """
    def decorator(func):
        for name in reversed(option_names):
            if name in common_options:
                func = common_options[name](func)
        return func
    return decorator
