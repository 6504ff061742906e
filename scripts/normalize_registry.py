#!/usr/bin/python3
from pathlib import Path

import click

from sparkblox_deployment.constants import ARTIFACTS_DIR
from sparkblox_deployment.registry import normalize_registry


@click.command()
@click.option(
    "--registry-filepath",
    "-f",
    help="Registry artifact to normalize; defaults to every artifact.",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
)
def cli(registry_filepath):
    """Rewrite registry artifacts in the standard order and format."""
    filepaths = [registry_filepath] if registry_filepath else sorted(ARTIFACTS_DIR.glob("*.json"))
    for filepath in filepaths:
        normalize_registry(filepath)


if __name__ == "__main__":
    cli()
