"""Entry point for the horizons-spk command line."""

import logging

import click

from horizons_spk import __version__
from horizons_spk.cli.commands.fetch import fetch


@click.group()
@click.version_option(__version__)
@click.option("--verbose", "-v", is_flag=True, help="Log every dialogue step")
def cli(verbose):
    """Request and download small-body SPK files from JPL Horizons."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


cli.add_command(fetch)


if __name__ == "__main__":
    cli()
