"""
Command line interface.

    censuscartogram run [CONFIG] [--output-dir DIR] [--no-animation] [--verbose]
    censuscartogram check [CONFIG]

CONFIG is a YAML file merged over the packaged Irish defaults.
"""

import logging

import click

from censuscartogram.config import CartogramConfig
from censuscartogram.errors import CensusCartogramError

logger = logging.getLogger(__name__)


def _setup_logging(verbose):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_config(config_path, output_dir=None):
    try:
        config = CartogramConfig.from_file(config_path)
    except FileNotFoundError as e:
        raise click.ClickException(str(e))
    except CensusCartogramError as e:
        raise click.ClickException(f"Invalid configuration: {e}")
    if output_dir is not None:
        config.output["directory"] = str(output_dir)
    return config


@click.group()
def main():
    """Census population cartograms of the counties of Ireland."""


@main.command()
@click.argument("config_path", required=False, type=click.Path(dir_okay=False))
@click.option("--output-dir", type=click.Path(file_okay=False), default=None,
              help="Directory for images and animations (overrides the config).")
@click.option("--no-animation", is_flag=True, help="Only write the static images.")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging and progress bars.")
def run(config_path, output_dir, no_animation, verbose):
    """Compute the cartograms of all census years and render them."""
    # imported here so that the backend is chosen before pyplot loads
    import matplotlib
    matplotlib.use("Agg")
    from censuscartogram import pipeline

    _setup_logging(verbose)
    config = _load_config(config_path, output_dir)

    try:
        result = pipeline.run(config, verbose=verbose, animations=not no_animation)
    except (CensusCartogramError, FileNotFoundError) as e:
        raise click.ClickException(str(e))

    for year, error in sorted(result.convergence.items()):
        click.echo(f"{year}: mean size error {error:.4f}")
    for path in result.static_paths + result.animation_paths:
        click.echo(f"wrote {path}")


@main.command()
@click.argument("config_path", required=False, type=click.Path(dir_okay=False))
def check(config_path):
    """Check that census counties and boundary counties match."""
    from censuscartogram import pipeline

    _setup_logging(False)
    config = _load_config(config_path)

    try:
        report = pipeline.validate(config)
    except (CensusCartogramError, FileNotFoundError) as e:
        raise click.ClickException(str(e))

    click.echo(report.describe())
    if not report.ok:
        raise click.ClickException("census and boundary counties do not match")
