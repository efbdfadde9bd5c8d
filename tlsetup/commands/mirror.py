"""
Repository location commands for tlsetup.
"""

import click

from ..cli_utils import standard_command, add_common_options
from ..config import load_config
from ..services import SetupService


@click.command('mirror')
@click.option('--master', is_flag=True, help='Use the CTAN master site')
@add_common_options('verbose', 'quiet', 'format')
@standard_command
def mirror_cmd(master, **kwargs):
    """Resolve a CTAN mirror.

    \b
    Examples:
        tlsetup mirror
        tlsetup mirror --master
    """
    service = SetupService(load_config())
    return {'mirror': service.mirrors.resolve(master=master), 'master': master}


@click.command('repository')
@click.argument('version', default='latest')
@click.option('--master', is_flag=True, help='Use the master site instead of a mirror')
@add_common_options('verbose', 'quiet', 'format')
@standard_command
def repository_cmd(version, master, **kwargs):
    """Print the tlnet repository of a TeX Live release.

    \b
    Examples:
        tlsetup repository
        tlsetup repository 2021 --master
    """
    service = SetupService(load_config())
    return {
        'version': version,
        'repository': service.repository(version, master=master),
        'master': master,
    }
