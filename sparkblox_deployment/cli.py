import functools
import traceback
from pathlib import Path
from typing import List, Optional, Tuple

import click
from ape import accounts, networks
from ape.api import AccountAPI
from ape.contracts import ContractInstance
from dotenv import load_dotenv

from sparkblox_deployment.constants import CONSTRUCTOR_PARAMS_DIR
from sparkblox_deployment.networks import NetworkConfig, network_config_from_env, signer_from_env
from sparkblox_deployment.options import (
    account_alias_option,
    autosign_option,
    network_option,
    params_filepath_option,
    verify_option,
)
from sparkblox_deployment.params import Deployer
from sparkblox_deployment.registry import addresses_from_registry
from sparkblox_deployment.sequence import deploy_sparkblox


def abort_on_failure(action: str):
    """Reports any failure of the wrapped command on stderr and exits with status 1."""

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                click.echo(traceback.format_exc(), err=True)
                click.secho(f"{action} failed: {e}", fg="red", err=True)
                raise SystemExit(1)

        return wrapper

    return decorator


def load_network(network_name: str) -> NetworkConfig:
    load_dotenv()
    return network_config_from_env(network_name)


def default_params_filepath(network_name: str) -> Path:
    return CONSTRUCTOR_PARAMS_DIR / f"{network_name}.yml"


def connect(network_config: NetworkConfig):
    """Context manager connecting ape to the configured network."""
    return networks.parse_network_choice(network_config.network_choice)


def get_signer(
    network_config: NetworkConfig, account_alias: Optional[str] = None
) -> Tuple[AccountAPI, Optional[str]]:
    """Returns the signing account and, for an environment key, its passphrase."""
    if account_alias:
        return accounts.load(account_alias), None
    if network_config.is_local:
        return accounts.test_accounts[0], None
    return signer_from_env()


def build_deployer(
    network_config: NetworkConfig,
    params_filepath: Path,
    verify: Optional[bool],
    account_alias: Optional[str] = None,
    autosign: bool = False,
    address_book: Optional[Path] = None,
) -> Deployer:
    """Creates a deployer on the connected network."""
    if verify is None:
        verify = not network_config.is_local
    account, passphrase = get_signer(network_config, account_alias)
    known_addresses = None
    if address_book:
        chain_id = networks.provider.chain_id
        known_addresses = addresses_from_registry(address_book, chain_id=chain_id)
    return Deployer.from_yaml(
        filepath=params_filepath,
        verify=verify,
        account=account,
        autosign=autosign,
        passphrase=passphrase,
        known_addresses=known_addresses,
    )


def run_deployment(
    network_config: NetworkConfig,
    params_filepath: Path,
    verify: Optional[bool],
    account_alias: Optional[str] = None,
    autosign: bool = False,
) -> List[ContractInstance]:
    with connect(network_config):
        deployer = build_deployer(
            network_config,
            params_filepath=params_filepath,
            verify=verify,
            account_alias=account_alias,
            autosign=autosign,
        )
        return deploy_sparkblox(deployer)


@click.command(name="deploy")
@network_option
@params_filepath_option
@account_alias_option
@verify_option
@autosign_option
@abort_on_failure("Deployment")
def deploy(network_name, params_filepath, account_alias, verify, autosign):
    """Deploy the Sparkblox contracts, grant the operator role and verify sources."""
    network_config = load_network(network_name)
    run_deployment(
        network_config,
        params_filepath=params_filepath or default_params_filepath(network_name),
        verify=verify,
        account_alias=account_alias,
        autosign=autosign,
    )
