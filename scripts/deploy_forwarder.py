#!/usr/bin/python3

from pathlib import Path

import click

from sparkblox_deployment.cli import abort_on_failure, build_deployer, connect, load_network
from sparkblox_deployment.constants import FORWARDER
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
    help="Params file listing the Forwarder, e.g. constructor_params/amoy/forwarder.yml",
)
@account_alias_option
@verify_option
@autosign_option
@abort_on_failure("Forwarder deployment")
def cli(network_name, params_filepath, account_alias, verify, autosign):
    """Deploy the Forwarder on its own."""
    network_config = load_network(network_name)
    with connect(network_config):
        deployer = build_deployer(
            network_config,
            params_filepath=params_filepath,
            verify=verify,
            account_alias=account_alias,
            autosign=autosign,
        )
        deployer.report_balance()
        forwarder = deployer.deploy(get_contract_container(FORWARDER))
        deployer.finalize(deployments=[forwarder])


if __name__ == "__main__":
    cli()
