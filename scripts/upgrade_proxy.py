#!/usr/bin/python3

from pathlib import Path

import click

from sparkblox_deployment.cli import abort_on_failure, build_deployer, connect, load_network
from sparkblox_deployment.constants import DYNAMIC_COLLECTION
from sparkblox_deployment.options import (
    account_alias_option,
    autosign_option,
    network_option,
    proxy_address_option,
    verify_option,
)
from sparkblox_deployment.params import proxy_info
from sparkblox_deployment.types import SparkbloxContract
from sparkblox_deployment.utils import get_contract_container


@click.command()
@network_option
@click.option(
    "--params-filepath",
    "-p",
    help="Params file listing the new implementation, e.g. amoy/upgrade-dynamic.yml",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    required=True,
)
@proxy_address_option
@click.option(
    "--contract-name",
    "-c",
    help="Contract of the new implementation.",
    type=SparkbloxContract(),
    default=DYNAMIC_COLLECTION,
    show_default=True,
)
@account_alias_option
@verify_option
@autosign_option
@abort_on_failure("Proxy upgrade")
def cli(
    network_name, params_filepath, proxy_address, contract_name, account_alias, verify, autosign
):
    """Upgrade an NFTCollection proxy, by default to a DynamicCollection implementation."""
    network_config = load_network(network_name)
    with connect(network_config):
        deployer = build_deployer(
            network_config,
            params_filepath=params_filepath,
            verify=verify,
            account_alias=account_alias,
            autosign=autosign,
        )
        implementation, admin = proxy_info(proxy_address)
        print(f"Proxy {proxy_address}: implementation {implementation}, admin {admin}")

        upgraded = deployer.upgrade(get_contract_container(contract_name), proxy_address)
        print(f"{upgraded.address} {contract_name} address (should be the same)")

        implementation, admin = proxy_info(proxy_address)
        print(f"Proxy {proxy_address}: implementation {implementation}, admin {admin}")

        deployer.finalize()


if __name__ == "__main__":
    cli()
