#!/usr/bin/python3

from itertools import groupby
from pathlib import Path
from typing import List, Optional, Tuple

import click

from sparkblox_deployment.constants import ARTIFACTS_DIR
from sparkblox_deployment.networks import NETWORKS
from sparkblox_deployment.registry import RegistryEntry, read_registry


def _chain_name(chain_id: int) -> str:
    for name, defaults in NETWORKS.items():
        if defaults.chain_id == chain_id:
            return f"{defaults.ecosystem.capitalize()}/{name.capitalize()}"
    return f"Chain {chain_id}"


def _get_registry_entries(
    registry_filepath: Optional[Path] = None,
) -> List[Tuple[Path, List[RegistryEntry]]]:
    filepaths = [registry_filepath] if registry_filepath else sorted(ARTIFACTS_DIR.glob("*.json"))
    return [(filepath, read_registry(filepath=filepath)) for filepath in filepaths]


@click.command(name="list-contracts")
@click.option(
    "--registry-filepath",
    "-f",
    help="Registry artifact to list; defaults to every artifact.",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
)
def cli(registry_filepath):
    """List the deployed contracts of the registry artifacts."""
    for filepath, entries in _get_registry_entries(registry_filepath):
        click.secho(f"\n{filepath.name}", fg="green")
        for chain_id, chain_entries in groupby(entries, key=lambda e: e.chain_id):
            click.secho(f"    {_chain_name(chain_id)}", fg="yellow")
            for index, entry in enumerate(chain_entries, start=1):
                click.secho(f"        {index}. {entry.name} {entry.address}", fg="cyan")


if __name__ == "__main__":
    cli()
