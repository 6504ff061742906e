#!/usr/bin/python3
from pathlib import Path

import click

from sparkblox_deployment.registry import merge_registries


@click.command()
@click.argument(
    "registries",
    nargs=-1,
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    required=True,
)
@click.option(
    "--output-registry",
    "-o",
    help="Filepath of the merged address book",
    type=click.Path(dir_okay=False, path_type=Path),
    required=True,
)
@click.option(
    "--deprecated-contract",
    "-d",
    "deprecated_contracts",
    help="Contracts to leave out of the merged address book",
    multiple=True,
)
def cli(registries, output_registry, deprecated_contracts):
    """
    Collect the artifacts of one-off deployments (forwarder, registry, factory)
    into a single address book, in the order given.
    """
    if len(registries) < 2:
        raise click.BadParameter("at least two registry artifacts are needed")

    merged = registries[0]
    for registry in registries[1:]:
        merged = merge_registries(
            registry_1_filepath=merged,
            registry_2_filepath=registry,
            output_filepath=output_registry,
            deprecated_contracts=list(deprecated_contracts),
        )


if __name__ == "__main__":
    cli()
