#!/usr/bin/python3

from pathlib import Path

import click

from sparkblox_deployment.access import DEFAULT_ADMIN_ROLE, require_role
from sparkblox_deployment.cli import abort_on_failure, build_deployer, connect, load_network
from sparkblox_deployment.constants import FACTORY, REGISTRY
from sparkblox_deployment.options import (
    account_alias_option,
    autosign_option,
    network_option,
    verify_option,
)
from sparkblox_deployment.utils import get_contract_container


@click.command()
@network_option
@click.option(
    "--params-filepath",
    "-p",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    required=True,
    help="Params file listing the factory, e.g. constructor_params/amoy/factory.yml",
)
@click.option(
    "--address-book",
    "-b",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    required=True,
    help="Registry artifact with the Forwarder and SparkbloxRegistry deployments.",
)
@account_alias_option
@verify_option
@autosign_option
@abort_on_failure("SparkbloxFactory deployment")
def cli(network_name, params_filepath, address_book, account_alias, verify, autosign):
    """
    Deploy the SparkbloxFactory against an already deployed Forwarder and registry.
    The deployer must be admin on the registry.
    """
    network_config = load_network(network_name)
    with connect(network_config):
        deployer = build_deployer(
            network_config,
            params_filepath=params_filepath,
            verify=verify,
            account_alias=account_alias,
            autosign=autosign,
            address_book=address_book,
        )
        deployer.report_balance()

        registry_address = deployer.deployments.address_of(REGISTRY)
        registry = get_contract_container(REGISTRY).at(registry_address)
        require_role(registry, DEFAULT_ADMIN_ROLE, deployer.get_account().address)

        factory = deployer.deploy(get_contract_container(FACTORY))
        deployer.finalize(deployments=[factory])


if __name__ == "__main__":
    cli()
