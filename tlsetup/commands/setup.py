"""
Setup commands for tlsetup.

`run` installs (or restores) TeX Live; `save` stores the installation
in the cache once the job that used it is done.
"""

import click

from ..cli_utils import standard_command, add_common_options
from ..config import load_config
from ..services import SetupService


@click.command('run')
@click.option('--version', 'tl_version', default=None,
              help='TeX Live version to install: a year or "latest" (default)')
@click.option('--repository', default=None, help='Package repository URL (2012 or later)')
@click.option('--prefix', default=None,
              help='Installation prefix (default: $TEXLIVE_INSTALL_PREFIX or a temp directory)')
@click.option('--texdir', default=None, help='Installation directory, overriding the prefix')
@click.option('--tlcontrib', is_flag=True, help='Set up TLContrib as an additional repository')
@click.option('--update-all-packages', is_flag=True, help='Update all packages of a restored installation')
@click.option('--packages', default=None, help='Packages to install, in DEPENDS.txt format')
@click.option('--package-file', default=None, help='Glob of DEPENDS.txt files to read packages from')
@click.option('--cache/--no-cache', default=True, help='Restore and save the installation cache')
@add_common_options('verbose', 'quiet', 'format')
@standard_command
def run_cmd(tl_version, repository, prefix, texdir, tlcontrib, update_all_packages,
            packages, package_file, cache, **kwargs):
    """Install TeX Live and the requested packages.

    \b
    Examples:
        tlsetup run
        tlsetup run --version 2021 --packages "hard amsmath hyperref"
        tlsetup run --package-file "**/DEPENDS.txt" --tlcontrib
    """
    service = SetupService(load_config())
    return service.run(
        version=tl_version,
        repository=repository,
        prefix=prefix,
        texdir=texdir,
        tlcontrib=tlcontrib,
        update_all_packages=update_all_packages,
        packages=packages,
        package_file=package_file,
        cache=cache,
    )


@click.command('save')
@add_common_options('verbose', 'quiet', 'format')
@standard_command
def save_cmd(**kwargs):
    """Save the installation registered by `run` to the cache."""
    key = SetupService(load_config()).save_cache()
    return {'saved': key is not None, 'key': key}
