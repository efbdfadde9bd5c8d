"""
Common CLI utilities and decorators for consistent command behavior.
"""

import json
import logging
import sys
from functools import wraps
from typing import Generator

import click

from .config import logger
from .errors import TLError
from .exit_codes import (
    SUCCESS, INTERRUPTED,
    get_exit_code_for_exception, CommandError
)
from .format_utils import FORMATS, format_output, get_format_from_env


def _error_object(e: Exception) -> dict:
    if isinstance(e, TLError):
        error_obj = e.to_dict()
    else:
        error_obj = {"error": str(e), "type": type(e).__name__}
    if e.__cause__ is not None:
        error_obj["cause"] = f"{type(e.__cause__).__name__}: {e.__cause__}"
    return error_obj


def standard_command(func):
    """
    Decorator that provides standard CLI behavior:
    - Log output on stderr
    - Clean JSON output on stdout
    - --verbose lowers the log level to DEBUG
    - --quiet suppresses data output
    - Consistent error handling and exit codes
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        quiet = kwargs.get('quiet', False)
        output_format = kwargs.get('format', None) or get_format_from_env('jsonl')

        if kwargs.get('verbose', False):
            logger.setLevel(logging.DEBUG)

        try:
            result = func(*args, **kwargs)

            if quiet:
                if isinstance(result, Generator):
                    for _ in result:
                        pass
            elif result is None or output_format == 'table':
                # Command handles its own output
                pass
            elif isinstance(result, Generator):
                for line in format_output(result, output_format):
                    print(line, flush=True)
            elif isinstance(result, (list, tuple)):
                for line in format_output(iter(result), output_format):
                    print(line, flush=True)
            elif isinstance(result, dict):
                for line in format_output([result], output_format):
                    print(line, flush=True)
            else:
                print(result, flush=True)

            sys.exit(SUCCESS)

        except KeyboardInterrupt:
            logger.error("Interrupted by user")
            sys.exit(INTERRUPTED)
        except click.ClickException:
            raise
        except CommandError as e:
            logger.error(str(e))
            if not quiet:
                error_obj = _error_object(e)
                error_obj["exit_code"] = e.exit_code
                print(json.dumps(error_obj, ensure_ascii=False), flush=True)
            sys.exit(e.exit_code)
        except Exception as e:
            logger.error(f"Command failed: {e}")
            note = getattr(e, 'note', None)
            if note:
                logger.error(note)
            logger.debug("Traceback", exc_info=True)
            if not quiet:
                print(json.dumps(_error_object(e), ensure_ascii=False), flush=True)
            sys.exit(get_exit_code_for_exception(e))

    return wrapper


# Standard options that many commands share
common_options = {
    'verbose': click.option('-v', '--verbose', is_flag=True,
                            help='Show debug output on stderr'),
    'quiet': click.option('-q', '--quiet', is_flag=True,
                          help='Suppress data output, show only logs'),
    'format': click.option('-f', '--format',
                           type=click.Choice(list(FORMATS)),
                           help='Output format (default: jsonl, or from TLSETUP_FORMAT env)'),
}


def add_common_options(*option_names):
    """
    Decorator to add common options to a command.

    Example:
        @add_common_options('verbose', 'quiet')
        def my_command(verbose, quiet):
            ...
    """
    def decorator(func):
        for name in reversed(option_names):
            if name in common_options:
                func = common_options[name](func)
        return func
    return decorator
