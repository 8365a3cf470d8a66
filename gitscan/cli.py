#!/usr/bin/env python3

import click

from gitscan import __version__
from gitscan.commands.foreach import foreach_handler


@click.group()
@click.version_option(version=__version__, prog_name='gitscan')
def cli():
    """gitscan - Find nested git repositories and work with them in bulk.

    Scans directories for git working copies, classifies each one as
    novel (needs attention) or boring (clean and pushed), and runs
    commands across them.
    """
    pass


cli.add_command(foreach_handler, name='foreach')


def main():
    cli()

if __name__ == "__main__":
    main()
