#!/usr/bin/python3

from pathlib import Path

import click
from ape import networks

from sparkblox_deployment.cli import abort_on_failure, connect, load_network
from sparkblox_deployment.constants import CONTRACT_SOURCES
from sparkblox_deployment.options import network_option
from sparkblox_deployment.registry import records_from_registry
from sparkblox_deployment.types import SparkbloxContract
from sparkblox_deployment.utils import check_etherscan_plugin
from sparkblox_deployment.verify import ExplorerVerifier, verify_records


@click.command()
@network_option
@click.option(
    "--address-book",
    "-b",
    help="Registry artifact of the deployment to verify.",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    required=True,
)
@click.option(
    "--contract-name",
    "-c",
    "contract_names",
    help="Contract to verify; defaults to every contract of the chain in the artifact.",
    type=SparkbloxContract(),
    multiple=True,
)
@abort_on_failure("Verification")
def cli(network_name, address_book, contract_names):
    """Verify deployed contracts with the constructor arguments recorded at deployment."""
    network_config = load_network(network_name)
    with connect(network_config):
        check_etherscan_plugin()
        chain_id = networks.provider.chain_id
        records = records_from_registry(address_book, chain_id=chain_id)
        if contract_names:
            available = {record.name for record in records}
            missing = set(contract_names) - available
            if missing:
                raise ValueError(
                    f"Contracts {', '.join(sorted(missing))} not found in '{address_book}' "
                    f"for chain {chain_id}"
                )
            records = [record for record in records if record.name in contract_names]

        records = [record._replace(source=CONTRACT_SOURCES.get(record.name)) for record in records]
        verify_records(records, verifier=ExplorerVerifier())


if __name__ == "__main__":
    cli()
