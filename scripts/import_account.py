#!/usr/bin/python3

import click
from dotenv import load_dotenv

from sparkblox_deployment.networks import SIGNER_ALIAS, signer_from_env


@click.command()
def cli():
    """Import the signing key of the environment (.env) into the ape keystore."""
    load_dotenv()
    account, _ = signer_from_env()
    click.echo(f"Signer '{SIGNER_ALIAS}': {account.address}")


if __name__ == "__main__":
    cli()
