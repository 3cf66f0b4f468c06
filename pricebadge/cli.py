"""
pricebadge CLI - Command line interface for node price badges.
"""

import logging
from pathlib import Path
from typing import Optional

import click

from .config import PricingConfig, set_config
from .pricing.cli import check, deps, price


def setup_logging(verbose: bool = False):
    """
    Send pricebadge logs to stderr.

    Verbose mode adds the pricebadge debug traces (compile and settle
    events) tagged with their module; other libraries stay at WARNING.
    """
    logging.basicConfig(
        level=logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s" if verbose else "%(message)s",
        handlers=[logging.StreamHandler()]
    )
    logging.getLogger("pricebadge").setLevel(logging.DEBUG if verbose else logging.INFO)


@click.group()
@click.option('-v', '--verbose', is_flag=True, help='Enable verbose output')
@click.option('--data-dir', type=click.Path(file_okay=False), help='Config directory')
@click.option('--dev', is_flag=True, help='Log evaluation failures')
@click.pass_context
def main(ctx, verbose: bool, data_dir: Optional[str], dev: bool):
    """💲 pricebadge - price labels for priced nodes"""
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    setup_logging(verbose)

    config = PricingConfig.load(Path(data_dir) if data_dir else None)
    if dev:
        config.development = True
    if verbose:
        config.debug = True
    set_config(config)


main.add_command(check)
main.add_command(deps)
main.add_command(price)


if __name__ == '__main__':
    main()
