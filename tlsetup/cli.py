#!/usr/bin/env python3

import click

from tlsetup.commands.setup import run_cmd, save_cmd
from tlsetup.commands.packages import packages_cmd, list_cmd
from tlsetup.commands.mirror import mirror_cmd, repository_cmd


@click.group()
@click.version_option()
def cli():
    """tlsetup - Install and cache TeX Live for CI jobs.

    Installs a TeX Live release from a CTAN mirror (or its historic
    archive), adds packages listed in DEPENDS.txt files and caches the
    installation between runs.
    """
    pass


cli.add_command(run_cmd)
cli.add_command(save_cmd)
cli.add_command(packages_cmd)
cli.add_command(list_cmd)
cli.add_command(mirror_cmd)
cli.add_command(repository_cmd)


def main():
    cli()

if __name__ == "__main__":
    main()
