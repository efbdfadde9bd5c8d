"""
Package commands for tlsetup.
"""

import os

import click

from .. import depends_txt
from ..cli_utils import standard_command, add_common_options
from ..config import load_config
from ..domain.version import Version
from ..render import render_dependencies_table, render_packages_table
from ..services import SetupService


@click.command('packages')
@click.argument('files', nargs=-1, type=click.Path(exists=True, dir_okay=False))
@click.option('--table', is_flag=True, help='Display as formatted table')
@add_common_options('verbose', 'quiet', 'format')
@standard_command
def packages_cmd(files, table, **kwargs):
    """Parse DEPENDS.txt files and list the dependencies.

    Reads standard input when no file is given.

    \b
    Examples:
        tlsetup packages DEPENDS.txt
        echo "hard amsmath" | tlsetup packages
    """
    def dependencies():
        if not files:
            yield from depends_txt.parse(click.get_text_stream('stdin').read())
        for path in files:
            yield from depends_txt.parse_file(path)

    if table:
        render_dependencies_table(list(dependencies()))
        return None
    return (dep.to_dict() for dep in dependencies())


@click.command('list')
@click.argument('texdir', type=click.Path(exists=True, file_okay=False))
@click.option('--table', is_flag=True, help='Display as formatted table')
@add_common_options('verbose', 'quiet', 'format')
@standard_command
def list_cmd(texdir, table, **kwargs):
    """List the packages installed in TEXDIR.

    \b
    Examples:
        tlsetup list /opt/texlive/2026
        tlsetup list /opt/texlive/2026 --table
    """
    service = SetupService(load_config())
    packages = service.packages(os.path.abspath(texdir), Version())
    if table:
        render_packages_table(list(packages))
        return None
    return (package.to_dict() for package in packages)
