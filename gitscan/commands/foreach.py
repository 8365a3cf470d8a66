"""
Handles the 'foreach' command: run a shell command in every nested repository.

This command follows our design principles:
- Child output is streamed to stdout/stderr unchanged
- --verbose/-v adds banners and STDOUT/STDERR tags
- Thin CLI layer over ForeachService
"""

import json
import os

import click

from ..config import load_config, configure_logging
from ..cli_utils import standard_command, add_common_options
from ..domain import StatusFilter
from ..exit_codes import UsageError
from ..services import CommandExecutor, ForeachService, RepositoryScanner
from ..utils import to_absolute_paths, validate_exists


@click.command(name='foreach')
@click.argument('paths', nargs=-1, type=click.Path())
@click.option('-c', '--command', 'command_line', default=None,
              help='The shell command to execute in each repository')
@click.option('--status', 'status', default=None,
              help='Filter repositories by status ("all", "novel", "boring"; case-insensitive)')
@click.option('-j', '--parallel', type=int, default=None,
              help='Run up to N commands at once (default: 1, sequential)')
@click.option('--timeout', type=float, default=None,
              help='Kill a command after this many seconds (default: no limit)')
@click.option('--nested/--no-nested', default=None,
              help='Also run in repositories nested inside other repositories')
@click.option('--summary', is_flag=True,
              help='Print a JSON summary of the run on stderr')
@add_common_options('verbose')
@standard_command
def foreach_handler(paths, command_line, status, parallel, timeout, nested, summary, verbose):
    """Execute a shell command on all nested repositories.

    PATHS: Local base paths to search (default: current directory)

    \b
    The following shell variables can be used within a command:
      $path     - The relative path of the git repository
      $toplevel - The absolute path of the directory being searched

    $path has no trailing slash and is "." for a repository at the search
    root itself (for example "group/repo", not "group/repo/").

    Examples:

    \b
        gitscan foreach -c 'echo Examine $path in $toplevel'
        gitscan foreach -c 'echo Examine $path in $toplevel' --status=boring
        gitscan foreach ~/download ~/src -c 'echo Examine $path in $toplevel'
        gitscan foreach -j 4 --status=novel -c 'git status --short'

    Use single quotes so your shell does not expand the $ variables.

    \b
    Exit codes:
      0  every command succeeded (or no repository matched)
      1  usage error
      2  one or more commands exited nonzero
    """
    config = load_config()
    configure_logging(config, verbose)
    scan_config = config.get('scan', {})
    foreach_config = config.get('foreach', {})

    if not command_line:
        raise UsageError("Missing required option: --command")

    status_filter = StatusFilter.parse(status or foreach_config.get('status', 'all'))

    roots = to_absolute_paths(paths or [os.getcwd()])
    validate_exists(roots)

    if parallel is None:
        parallel = foreach_config.get('parallel', 1)
    try:
        parallel = int(parallel)
    except (TypeError, ValueError):
        raise UsageError(f"Invalid parallel setting: {parallel!r}") from None

    if timeout is None:
        timeout = foreach_config.get('timeout') or None
    try:
        timeout = float(timeout) if timeout is not None else None
    except (TypeError, ValueError):
        raise UsageError(f"Invalid timeout setting: {timeout!r}") from None
    if timeout is not None and timeout <= 0:
        timeout = None

    if nested is None:
        nested = bool(scan_config.get('include_nested', False))

    scanner = RepositoryScanner(
        include_nested=nested,
        exclude_dirs=scan_config.get('exclude_dirs', []),
        follow_symlinks=scan_config.get('follow_symlinks', True),
    )
    executor = CommandExecutor(
        verbose=verbose,
        timeout=timeout,
        path_var=foreach_config.get('path_var', 'path'),
        toplevel_var=foreach_config.get('toplevel_var', 'toplevel'),
    )
    service = ForeachService(scanner=scanner, executor=executor, config=config)

    result = service.run(roots, command_line, status_filter, parallel=parallel)

    if summary:
        click.echo(json.dumps(result.to_dict(), ensure_ascii=False), err=True)

    return result.exit_code
