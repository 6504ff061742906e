from pathlib import Path

import click

from sparkblox_deployment.constants import SUPPORTED_NETWORKS
from sparkblox_deployment.types import ChecksumAddress

network_option = click.option(
    "--network",
    "-n",
    "network_name",
    help="Network to deploy to; its RPC endpoint is taken from the environment.",
    type=click.Choice(SUPPORTED_NETWORKS),
    required=True,
)

params_filepath_option = click.option(
    "--params-filepath",
    "-p",
    help="Constructor parameters YAML; defaults to constructor_params/<network>.yml",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    required=False,
)

account_alias_option = click.option(
    "--account",
    "-a",
    "account_alias",
    help="Alias of an ape account; defaults to the signing key in the environment.",
    type=str,
    required=False,
)

verify_option = click.option(
    "--verify/--no-verify",
    help="Verify sources on the block explorer; defaults to verifying on live networks.",
    default=None,
)

autosign_option = click.option(
    "--autosign",
    help="Sign transactions without asking for confirmation.",
    is_flag=True,
    default=False,
)

proxy_address_option = click.option(
    "--proxy-address",
    help="Address of the proxy contract.",
    type=ChecksumAddress(),
    required=True,
)
