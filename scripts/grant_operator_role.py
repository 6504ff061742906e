#!/usr/bin/python3

from pathlib import Path

import click
from ape import networks

from sparkblox_deployment.access import grant_role_if_absent, role_id
from sparkblox_deployment.cli import abort_on_failure, connect, get_signer, load_network
from sparkblox_deployment.constants import FACTORY, OPERATOR_ROLE_NAME, REGISTRY
from sparkblox_deployment.options import account_alias_option, autosign_option, network_option
from sparkblox_deployment.params import Transactor
from sparkblox_deployment.registry import contracts_from_registry
from sparkblox_deployment.types import ChecksumAddress


@click.command()
@network_option
@click.option(
    "--address-book",
    "-b",
    help="Registry artifact with the SparkbloxRegistry and SparkbloxFactory deployments.",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    required=True,
)
@click.option(
    "--grant-address",
    "-g",
    help="Address to grant the operator role; defaults to the factory.",
    type=ChecksumAddress(),
    required=False,
)
@account_alias_option
@autosign_option
@abort_on_failure("Granting OPERATOR_ROLE")
def cli(network_name, address_book, grant_address, account_alias, autosign):
    """Grant OPERATOR_ROLE on the registry, unless already granted."""
    network_config = load_network(network_name)
    with connect(network_config):
        account, passphrase = get_signer(network_config, account_alias)
        transactor = Transactor(account, autosign=autosign, passphrase=passphrase)
        deployments = contracts_from_registry(
            filepath=address_book, chain_id=networks.provider.chain_id
        )
        registry = deployments[REGISTRY]
        grantee = grant_address or deployments[FACTORY].address
        grant_role_if_absent(transactor, registry, role_id(OPERATOR_ROLE_NAME), grantee)


if __name__ == "__main__":
    cli()
